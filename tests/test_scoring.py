"""Tests for methodology scoring."""

import json
from unittest.mock import MagicMock

import httpx
import pytest

from sales_coach.config import Settings
from sales_coach.errors import UpstreamError
from sales_coach.models.analysis import AnalysisResult, ComponentScore, grade_for
from sales_coach.prompts.scoring_prompt import build_system_instruction, build_user_message
from sales_coach.scoring.heuristic import (
    HeuristicScorer,
    extract_signals,
    identify_rep,
    mentions,
    parse_turns,
)
from sales_coach.scoring.model_scorer import ModelScorer, SchemaError, ScoringOk, parse_response
from sales_coach.scoring.rubrics import (
    GENERIC,
    RUBRICS,
    SANDLER,
    SCRIPT_BUDGET,
    Methodology,
    get_rubric,
)


# =============================================================================
# Rubric Tests
# =============================================================================

class TestRubrics:
    """Tests for the methodology variant table."""

    def test_sandler_component_order(self):
        """Sandler components appear in rubric order."""
        assert SANDLER.component_names == [
            "Bonding & Rapport",
            "Up-Front Contract",
            "Pain",
            "Budget",
            "Decision",
            "Fulfillment",
            "Post-Sell",
            "Overall",
        ]

    def test_every_methodology_has_a_rubric(self):
        """Each methodology resolves and ends with Overall."""
        for methodology in Methodology:
            rubric = RUBRICS[methodology]
            assert rubric.component_names[-1] == "Overall"
            assert len(set(rubric.component_names)) == len(rubric.components)

    def test_get_rubric_unknown_falls_back_to_generic(self):
        """Unknown or empty methodology uses the generic rubric."""
        assert get_rubric("bogus") is GENERIC
        assert get_rubric(None) is GENERIC
        assert get_rubric("") is GENERIC

    def test_get_rubric_is_case_insensitive(self):
        assert get_rubric(" Sandler ") is SANDLER

    def test_budget_gap_has_next_call_script(self):
        rule = SANDLER.rule_for("Budget")
        assert rule.next_call_for("No budget or investment discussion") == SCRIPT_BUDGET


# =============================================================================
# Grade / Overall Tests
# =============================================================================

class TestGrades:
    """Tests for grade buckets and overall rounding."""

    @pytest.mark.parametrize(
        "score,grade",
        [(10, "good"), (7, "good"), (6.9, "warn"), (5, "warn"), (4.9, "poor"), (0, "poor")],
    )
    def test_grade_boundaries(self, score, grade):
        assert grade_for(score) == grade

    def test_overall_rounds_half_up(self):
        """Mean 6.5 rounds to 7."""
        analysis = AnalysisResult(
            methodology="generic",
            scores=[ComponentScore(name="A", score=6), ComponentScore(name="B", score=7)],
        )
        assert analysis.overall_score == 7
        assert analysis.overall_grade == "good"

    def test_overall_is_mean_of_components(self):
        analysis = AnalysisResult(
            methodology="generic",
            scores=[ComponentScore(name=n, score=s) for n, s in [("A", 3), ("B", 4), ("C", 4)]],
        )
        assert analysis.overall_score == 4
        assert analysis.overall_grade == "poor"


# =============================================================================
# Transcript Signal Tests
# =============================================================================

class TestSignals:
    """Tests for transcript parsing and signal extraction."""

    def test_mentions_requires_word_start(self):
        """Phrases must start at a word boundary."""
        assert mentions("what's your budget?", ("budget",))
        assert not mentions("the nobudget plan", ("budget",))

    def test_parse_turns_with_timestamps(self):
        turns = parse_turns("[00:01] Rep: Hello there\nProspect: Hi\nno label here")
        assert [t.speaker for t in turns] == ["rep", "prospect", None]
        assert turns[0].text == "Hello there"

    def test_identify_rep_prefers_label(self):
        turns = parse_turns("prospect: hi\nagent: hello")
        assert identify_rep(turns) == "agent"

    def test_identify_rep_needs_two_speakers(self):
        assert identify_rep(parse_turns("rep: talking to myself")) is None

    def test_talk_ratio(self):
        signals = extract_signals("Rep: one two three\nProspect: four")
        assert signals.talk_ratio == 0.75

    def test_counts_rep_questions(self, sandler_transcript):
)
        assert signals.rep_questions >= 3
        assert signals.deepening_questions >= 2


# =============================================================================
# Heuristic Scorer Tests
# =============================================================================

class TestHeuristicScorer:
    """Tests for rule-based scoring."""

    @pytest.fixture
    def scorer(self):
        return HeuristicScorer(min_words=5)

    def test_scores_every_component_in_order(self, scorer, sandler_transcript):
, None, SANDLER)
        assert [s.name for s in analysis.scores] == SANDLER.component_names
        assert analysis.methodology == "sandler"
        assert not analysis.no_data

    def test_strong_upfront_contract(self, scorer, sandler_transcript):
, None, SANDLER)
        upfront = analysis.get("Up-Front Contract")
        assert upfront.score >= 8
        assert upfront.grade == "good"
        assert "Gave explicit permission to say no" in upfront.indicators

    def test_missing_budget_conversation(self, scorer, sandler_transcript):
, None, SANDLER)
        budget = analysis.get("Budget")
        assert budget.score <= 4
        assert budget.grade == "poor"
        assert "No budget or investment discussion" in budget.missing_elements

    def test_summary_counts_as_evidence(self, scorer, sandler_transcript):
, summary, SANDLER)
        assert analysis.get("Budget").score >= 7

    def test_empty_transcript_returns_no_data(self, scorer):
        analysis = scorer.score("", None, SANDLER)
        assert analysis.no_data
        assert len(analysis.scores) == len(SANDLER.components)
        assert all(s.score == 0 for s in analysis.scores)
        assert analysis.overall_score == 0
        assert analysis.overall_grade == "poor"

    def test_short_transcript_returns_no_data(self, scorer):
        assert scorer.score("Rep: hi", None, GENERIC).no_data

    def test_deterministic(self, scorer, sandler_transcript):
, None, SANDLER)
        second = scorer.score(sandler_transcript, None, SANDLER)
        assert first == second

    def test_rep_dominating_lowers_overall(self, scorer):
        transcript = (
            "Rep: " + " ".join(["our platform does everything you could want"] * 10) + "\n"
            "Prospect: okay thanks"
        )
        analysis = scorer.score(transcript, None, GENERIC)
        assert analysis.talk_ratio > 0.9
        assert "Rep dominated the conversation" in analysis.get("Overall").missing_elements


# =============================================================================
# Model Scorer Tests
# =============================================================================

def _generic_payload(**overrides):
    components = [
        {"name": name, "score": 6, "indicators": ["ok"], "missing": []}
        for name in GENERIC.component_names
    ]
    payload = {"components": components, "talk_ratio": 0.45}
    payload.update(overrides)
    return json.dumps(payload)


class TestParseResponse:
    """Tests for strict model output parsing."""

    def test_valid_response(self):
        outcome = parse_response(_generic_payload(), GENERIC)
        assert isinstance(outcome, ScoringOk)
        assert outcome.analysis.talk_ratio == 0.45
        assert [s.name for s in outcome.analysis.scores] == GENERIC.component_names

    def test_reorders_to_rubric_order(self):
        payload = json.loads(_generic_payload())
        payload["components"].reverse()
        outcome = parse_response(json.dumps(payload), GENERIC)
        assert [s.name for s in outcome.analysis.scores] == GENERIC.component_names

    def test_invalid_json(self):
        outcome = parse_response("not json", GENERIC)
        assert isinstance(outcome, SchemaError)
        assert outcome.raw == "not json"

    def test_score_out_of_range(self):
        payload = json.loads(_generic_payload())
        payload["components"][0]["score"] = 11
        assert isinstance(parse_response(json.dumps(payload), GENERIC), SchemaError)

    def test_unknown_component(self):
        payload = json.loads(_generic_payload())
        payload["components"][0]["name"] = "Small Talk"
        outcome = parse_response(json.dumps(payload), GENERIC)
        assert isinstance(outcome, SchemaError)
        assert any("Small Talk" in e for e in outcome.errors)


class TestModelScorer:
    """Tests for ModelScorer with a mocked Gemini client."""

    @pytest.fixture
    def client(self):
        return MagicMock()

    @pytest.fixture
    def scorer(self, client):
        settings = Settings(_env_file=None, scoring_mode="model", scoring_max_attempts=2)
        return ModelScorer(settings, client=client)

    def test_success(self, scorer, client, sandler_transcript):
, None, GENERIC)
        assert analysis.overall_score == 6
        client.models.generate_content.assert_called_once()

    def test_retries_schema_error(self, scorer, client, sandler_transcript):
, None, GENERIC)
        assert len(analysis.scores) == len(GENERIC.components)
        assert client.models.generate_content.call_count == 2

    def test_gives_up_after_max_attempts(self, scorer, client, sandler_transcript):
, None, GENERIC)
        assert client.models.generate_content.call_count == 2

    def test_transport_error_is_upstream(self, scorer, client, sandler_transcript):
, None, GENERIC)

    def test_empty_transcript_skips_model(self, scorer, client):
        analysis = scorer.score("", None, GENERIC)
        assert analysis.no_data
        client.models.generate_content.assert_not_called()


class TestScoringPrompt:
    """Tests for prompt rendering."""

    def test_system_instruction_lists_components(self):
        instruction = build_system_instruction(SANDLER)
        assert "Sandler" in instruction
        for name in SANDLER.component_names:
            assert f"- {name}:" in instruction

    def test_user_message_includes_summary(self):
        message = build_user_message("Rep: hi", "Short call")
        assert "Rep: hi" in message
        assert "PRIOR SUMMARY" in message
        assert "PRIOR SUMMARY" not in build_user_message("Rep: hi")
