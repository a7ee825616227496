"""
Analysis result models.

A run of the scorer produces one ComponentScore per rubric component; the
overall score and grade are always derived from those component scores.
"""

from decimal import ROUND_HALF_UP, Decimal
from statistics import mean
from typing import Any, Optional

from pydantic import BaseModel, Field, computed_field, field_validator

# Grade thresholds shared by every surface of the product
GOOD_THRESHOLD = 7.0
WARN_THRESHOLD = 5.0

NO_DATA_INDICATOR = "No data: transcript was empty"
NO_EVIDENCE_MISSING = "No evidence found in transcript"


def grade_for(score: float) -> str:
    """Bucket a 0-10 score into good / warn / poor."""
    if score >= GOOD_THRESHOLD:
        return "good"
    if score >= WARN_THRESHOLD:
        return "warn"
    return "poor"


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (6.5 -> 7)."""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class ComponentScore(BaseModel):
    """Score and evidence for one rubric component."""

    name: str = Field(min_length=1, description="Rubric component display name")
    score: float = Field(ge=0, le=10, description="0-10, integer or one decimal")
    indicators: list[str] = Field(default_factory=list, description="Evidence of what worked")
    missing_elements: list[str] = Field(default_factory=list, description="Gaps to coach on")

    @field_validator("score")
    @classmethod
    def one_decimal(cls, v: float) -> float:
        """Keep at most one decimal place."""
        return round(v, 1)

    @property
    def grade(self) -> str:
        """Grade bucket for this component."""
        return grade_for(self.score)

    @classmethod
    def no_data(cls, name: str) -> "ComponentScore":
        """Zero score used when there is nothing to analyze."""
        return cls(
            name=name,
            score=0,
            indicators=[NO_DATA_INDICATOR],
            missing_elements=[NO_EVIDENCE_MISSING],
        )

    def to_wire(self) -> dict[str, Any]:
        """Conversation-update representation."""
        return {
            "name": self.name,
            "score": self.score,
            "indicators": list(self.indicators),
            "missing": list(self.missing_elements),
        }


class AnalysisResult(BaseModel):
    """Methodology-scored breakdown of a single call."""

    methodology: str
    scores: list[ComponentScore]
    talk_ratio: Optional[float] = Field(
        default=None, ge=0, le=1, description="Estimated share of words spoken by the rep"
    )
    no_data: bool = False

    @computed_field  # type: ignore[prop-decorator]
    @property
    def overall_score(self) -> int:
        """round(mean(component scores)); 0 when there are no components."""
        if not self.scores:
            return 0
        return round_half_up(mean(s.score for s in self.scores))

    @computed_field  # type: ignore[prop-decorator]
    @property
    def overall_grade(self) -> str:
        """Grade bucket of the overall score."""
        return grade_for(self.overall_score)

    def get(self, name: str) -> Optional[ComponentScore]:
        """Look up a component score by display name."""
        for score in self.scores:
            if score.name == name:
                return score
        return None
