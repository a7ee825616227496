"""Scorer contract and the no-data path shared by every scorer."""

from typing import Optional, Protocol

from sales_coach.models.analysis import AnalysisResult, ComponentScore
from sales_coach.scoring.rubrics import MethodologyRubric


class MethodologyScorer(Protocol):
    """Anything that turns a transcript into a rubric breakdown."""

    def score(
        self,
        transcript: str,
        summary: Optional[str],
        rubric: MethodologyRubric,
    ) -> AnalysisResult: ...


def is_empty_transcript(transcript: Optional[str], min_words: int) -> bool:
    """True when there is not enough text to analyze."""
    if not transcript:
        return True
    return len(transcript.split()) < min_words


def no_data_result(rubric: MethodologyRubric) -> AnalysisResult:
    """Zero-scored breakdown, one entry per rubric component."""
    return AnalysisResult(
        methodology=rubric.methodology.value,
        scores=[ComponentScore.no_data(name) for name in rubric.component_names],
        no_data=True,
    )
