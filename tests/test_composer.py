"""Tests for the coaching draft composer."""

from datetime import date, datetime

from sales_coach.models.analysis import NO_DATA_INDICATOR, NO_EVIDENCE_MISSING
from sales_coach.models.knowledge import KnowledgeChunk
from sales_coach.scoring.base import no_data_result
from sales_coach.scoring.rubrics import SANDLER, SCRIPT_BUDGET
from sales_coach.services.composer import (
    GUIDANCE_HEADER,
    NO_DATA_NOTE,
    NOTHING_OBSERVED,
    SCRIPTS_HEADER,
    compose,
    format_call_date,
    rep_display_name,
)


class TestRepDisplayName:
    """Tests for rep_display_name."""

    def test_from_email(self):
        assert rep_display_name("jane.doe@example.com") == "Jane Doe"
        assert rep_display_name("bob_smith@example.com") == "Bob Smith"

    def test_missing_email(self):
        assert rep_display_name(None) == "Rep"
        assert rep_display_name("") == "Rep"


class TestCompose:
    """Tests for compose."""

    def test_header(self, sample_analysis):
        text = compose(sample_analysis, "Jane Doe", date(2025, 1, 15))
        lines = text.splitlines()
        assert lines[0] == "COACHING SUMMARY for Jane Doe - call on 2025-01-15"
        assert lines[1] == "Methodology: General Sales"
        assert lines[2] == "Overall score: 6/10 (warn)"
        assert lines[3] == "Talk ratio: rep spoke 40% of the words"

    def test_component_blocks(self, sample_analysis):
        text = compose(sample_analysis, "Jane Doe", date(2025, 1, 15))
        assert "Opening: 8/10 (good)\n  What worked:\n  - Set an agenda\n" in text
        assert "Budget: 3/10 (poor)" in text
        assert f"  - {NOTHING_OBSERVED}" in text
        assert f"  Next call:\n  - {SCRIPT_BUDGET}" in text
        assert "Overall: 6.5/10 (warn)" in text

    def test_components_in_analysis_order(self, sample_analysis):
        text = compose(sample_analysis, "Jane Doe", date(2025, 1, 15))
        assert text.index("Opening:") < text.index("Budget:") < text.index("Overall:")

    def test_gap_without_script_uses_plain_prompt(self, sample_analysis):
        sample_analysis.scores[0].missing_elements.append("Forgot the name")
        text = compose(sample_analysis, "Jane Doe", date(2025, 1, 15))
        assert "  - Work on: Forgot the name" in text

    def test_no_scripts_section_without_chunks(self, sample_analysis):
        text = compose(sample_analysis, "Jane Doe", date(2025, 1, 15))
        assert SCRIPTS_HEADER not in text

    def test_degraded_draft_matches_plain_draft(self, sample_analysis):
        """An empty augmentation composes exactly like no augmentation."""
        plain = compose(sample_analysis, "Jane Doe", date(2025, 1, 15))
        degraded = compose(sample_analysis, "Jane Doe", date(2025, 1, 15), rag_chunks=[])
        assert degraded == plain

    def test_scripts_section(self, sample_analysis):
        chunks = [
            KnowledgeChunk(id="a", title="Asking for the investment", text="What have you set aside?"),
            KnowledgeChunk(id="b", title="Bracketing a range", text="What ballpark makes sense?"),
        ]
        text = compose(sample_analysis, "Jane Doe", date(2025, 1, 15), rag_chunks=chunks)

        assert SCRIPTS_HEADER in text
        assert "1. Asking for the investment\nWhat have you set aside?" in text
        assert text.index("2. Bracketing a range") > text.index("1. Asking for the investment")
        assert text.index(SCRIPTS_HEADER) > text.index("Overall:")

    def test_deterministic(self, sample_analysis):
        first = compose(sample_analysis, "Jane Doe", datetime(2025, 1, 15, 9, 30))
        second = compose(sample_analysis, "Jane Doe", datetime(2025, 1, 15, 9, 30))
        assert first == second
        assert first.endswith("\n")

    def test_no_data(self):
        text = compose(no_data_result(SANDLER), "Jane Doe", None)
        assert "call on unknown date" in text
        assert "Overall score: 0/10 (poor)" in text
        assert NO_DATA_NOTE in text
        assert text.index(NO_DATA_NOTE) < text.index("What worked")

    def test_no_data_renders_every_component(self):
        text = compose(no_data_result(SANDLER), "Jane Doe", None)
        for name in SANDLER.component_names:
            assert f"{name}: 0/10 (poor)\n  What worked:\n  - {NO_DATA_INDICATOR}\n" in text
        assert text.count(f"  - Work on: {NO_EVIDENCE_MISSING}") == len(SANDLER.component_names)

    def test_guidance_section(self, sample_analysis):
        scripts = [KnowledgeChunk(id="a", title="Asking for the investment", text="What have you set aside?")]
        context = [
            KnowledgeChunk(id="a", title="Asking for the investment", text="What have you set aside?"),
            KnowledgeChunk(id="c", title="Budget step", text="Money talk comes before the presentation."),
        ]
        text = compose(
            sample_analysis, "Jane Doe", date(2025, 1, 15), rag_chunks=scripts, context_chunks=context
        )

        assert GUIDANCE_HEADER in text
        assert "* Budget step\nMoney talk comes before the presentation." in text
        assert text.count("Asking for the investment") == 1
        assert text.index(GUIDANCE_HEADER) > text.index(SCRIPTS_HEADER)

    def test_no_guidance_section_without_context(self, sample_analysis):
        text = compose(sample_analysis, "Jane Doe", date(2025, 1, 15), context_chunks=[])
        assert GUIDANCE_HEADER not in text

    def test_format_call_date(self):
        assert format_call_date("last Tuesday") == "last Tuesday"
        assert format_call_date(None) == "unknown date"
