"""
Scoring prompt for the model-driven scorer.

Version-tracked for reproducibility and auditing. The rubric section is
rendered from the same variant table the heuristic scorer uses, so the model
and the rules grade against identical component names.
"""

from typing import Optional

from sales_coach.scoring.rubrics import MethodologyRubric

PROMPT_VERSION = "2.0.0"

SYSTEM_PROMPT = """
You are an expert sales coach. You score a single sales call against the
{display_name} methodology and return structured JSON.

## SCORING SCALE (0-10 per component)
- 9-10: Textbook execution with clear evidence in the transcript
- 7-8: Good - present and effective, minor gaps
- 5-6: Partial - attempted but shallow or out of order
- 3-4: Weak - barely attempted
- 0-2: Absent

## COMPONENTS
Score every component below, using these exact names and no others:

{components}

## OUTPUT REQUIREMENTS
1. One entry per component, names copied exactly as listed above
2. `indicators`: short phrases describing what the rep did well, quoted or paraphrased from the call
3. `missing`: short phrases naming what the rep skipped or did poorly
4. "Overall" reflects the whole call, including how much the rep talked versus listened
5. `talk_ratio`: the rep's estimated share of words spoken (0-1), or null if you cannot tell
"""

USER_TEMPLATE = """# CALL TRANSCRIPT

{transcript}
{summary_section}"""


def render_components(rubric: MethodologyRubric) -> str:
    """Bullet list of component names and what each one measures."""
    lines = []
    for rule in rubric.components:
        detail = rule.description or "Overall execution of the methodology"
        lines.append(f"- {rule.name}: {detail}")
    return "\n".join(lines)


def build_system_instruction(rubric: MethodologyRubric) -> str:
    """System instruction for one methodology."""
    return SYSTEM_PROMPT.format(
        display_name=rubric.display_name,
        components=render_components(rubric),
    ).strip()


def build_user_message(transcript: str, summary: Optional[str] = None) -> str:
    """User turn carrying the transcript and any prior summary."""
    summary_section = f"\n# PRIOR SUMMARY\n\n{summary}\n" if summary else ""
    return USER_TEMPLATE.format(transcript=transcript, summary_section=summary_section)
