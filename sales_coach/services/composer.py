"""
Coaching draft composer.

Produces the deterministic plain-text draft a manager reviews before
sending: a header, the overall score, one block per rubric component and,
when retrieval found any, practice scripts for the weakest area and
related guidance covering every weak area.
"""

from datetime import date
from typing import Optional, Union

from sales_coach.models.analysis import AnalysisResult, ComponentScore
from sales_coach.models.knowledge import KnowledgeChunk
from sales_coach.scoring.rubrics import MethodologyRubric, get_rubric

RULE_LINE = "-" * 40
SCRIPTS_HEADER = "RECOMMENDED PRACTICE SCRIPTS"
GUIDANCE_HEADER = "RELATED GUIDANCE"
NOTHING_OBSERVED = "Nothing observed yet"
NO_DATA_NOTE = "No transcript was available for this call, so there is nothing to score yet."


def rep_display_name(email: Optional[str]) -> str:
    """Friendly name from an email address ("jane.doe@x.com" -> "Jane Doe")."""
    if not email:
        return "Rep"
    local = email.split("@", 1)[0]
    name = " ".join(local.replace(".", " ").replace("_", " ").split())
    return name.title() if name else "Rep"


def format_score(score: float) -> str:
    """6.0 -> "6", 6.5 -> "6.5"."""
    return f"{score:g}"


def format_call_date(call_date: Union[date, str, None]) -> str:
    if call_date is None:
        return "unknown date"
    if isinstance(call_date, date):
        return call_date.strftime("%Y-%m-%d")
    return call_date


def next_call_instruction(rubric: MethodologyRubric, component: ComponentScore, missing: str) -> str:
    """The rule's next-call script for a gap, or a plain prompt to work on it."""
    rule = rubric.rule_for(component.name)
    script = rule.next_call_for(missing) if rule else None
    return script or f"Work on: {missing}"


def _component_block(rubric: MethodologyRubric, component: ComponentScore) -> list[str]:
    lines = [f"{component.name}: {format_score(component.score)}/10 ({component.grade})"]
    lines.append("  What worked:")
    for indicator in component.indicators or [NOTHING_OBSERVED]:
        lines.append(f"  - {indicator}")
    if component.missing_elements:
        lines.append("  Next call:")
        for missing in component.missing_elements:
            lines.append(f"  - {next_call_instruction(rubric, component, missing)}")
    return lines


def _scripts_section(chunks: list[KnowledgeChunk]) -> list[str]:
    lines = [RULE_LINE, SCRIPTS_HEADER, RULE_LINE]
    for i, chunk in enumerate(chunks, start=1):
        lines.append(f"{i}. {chunk.title}")
        lines.append(chunk.text.strip())
        lines.append("")
    return lines


def _guidance_section(chunks: list[KnowledgeChunk]) -> list[str]:
    lines = [RULE_LINE, GUIDANCE_HEADER, RULE_LINE]
    for chunk in chunks:
        lines.append(f"* {chunk.title}")
        lines.append(chunk.text.strip())
        lines.append("")
    return lines


def compose(
    analysis: AnalysisResult,
    rep_display_name: str,
    call_date: Union[date, str, None],
    rag_chunks: Optional[list[KnowledgeChunk]] = None,
    rubric: Optional[MethodologyRubric] = None,
    context_chunks: Optional[list[KnowledgeChunk]] = None,
) -> str:
    """
    Render the coaching draft.

    Args:
        analysis: Scored breakdown of the call
        rep_display_name: Name used in the header
        call_date: Date of the call (date or preformatted label)
        rag_chunks: Practice scripts to append; section omitted when empty
        rubric: Rubric the analysis was scored against (looked up if omitted)
        context_chunks: Guidance retrieved for all weak areas; chunks already
            listed as scripts are skipped and the section is omitted when empty

    Returns:
        Plain-text draft. The same inputs always give the same text.
    """
    rubric = rubric or get_rubric(analysis.methodology)
    lines = [
        f"COACHING SUMMARY for {rep_display_name} - call on {format_call_date(call_date)}",
        f"Methodology: {rubric.display_name}",
        f"Overall score: {analysis.overall_score}/10 ({analysis.overall_grade})",
    ]
    if analysis.talk_ratio is not None:
        lines.append(f"Talk ratio: rep spoke {analysis.talk_ratio:.0%} of the words")
    lines.append("")

    if analysis.no_data:
        lines.append(NO_DATA_NOTE)
        lines.append("")
    for component in analysis.scores:
        lines.extend(_component_block(rubric, component))
        lines.append("")

    if rag_chunks:
        lines.extend(_scripts_section(rag_chunks))

    script_ids = {chunk.id for chunk in rag_chunks or []}
    guidance = [chunk for chunk in context_chunks or [] if chunk.id not in script_ids]
    if guidance:
        lines.extend(_guidance_section(guidance))

    return "\n".join(lines).rstrip() + "\n"
