"""
Conversation data models.

These models represent the ingestion contract for a synced call record and
the score update written back after analysis.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from sales_coach.models.analysis import AnalysisResult


class ConversationRecord(BaseModel):
    """A call record populated by the ingestion connectors."""

    id: str = Field(min_length=1, description="Call id")
    account_id: Optional[str] = None
    transcript: str = Field(default="", description="Raw transcript, may be empty")
    ai_summary: Optional[str] = Field(default=None, description="Prior summary if any")
    rep_email: Optional[str] = None
    call_date: Optional[datetime] = None
    methodology: Optional[str] = Field(default=None, description="Rubric name, generic if unset")

    # Written back by the pipeline
    methodology_scores: Optional[dict[str, Any]] = None
    analyzed_at: Optional[datetime] = None


class MethodologyScoresUpdate(BaseModel):
    """Conversation update written after each analysis run."""

    overall: int
    grade: str
    components: list[dict[str, Any]]
    rag_enhanced: bool = False

    @classmethod
    def from_analysis(cls, analysis: AnalysisResult, rag_enhanced: bool) -> "MethodologyScoresUpdate":
        """Build the update payload from an analysis result."""
        return cls(
            overall=analysis.overall_score,
            grade=analysis.overall_grade,
            components=[s.to_wire() for s in analysis.scores],
            rag_enhanced=rag_enhanced,
        )
