"""Data models for Sales Coach."""

from sales_coach.models.analysis import (
    AnalysisResult,
    ComponentScore,
    grade_for,
)
from sales_coach.models.coaching import (
    PENDING_STATUSES,
    CoachingMessage,
    CoachingStatus,
)
from sales_coach.models.conversation import ConversationRecord, MethodologyScoresUpdate
from sales_coach.models.knowledge import KnowledgeChunk, RetrievalQuery, ScoredChunk

__all__ = [
    "AnalysisResult",
    "ComponentScore",
    "grade_for",
    "CoachingMessage",
    "CoachingStatus",
    "PENDING_STATUSES",
    "ConversationRecord",
    "MethodologyScoresUpdate",
    "KnowledgeChunk",
    "RetrievalQuery",
    "ScoredChunk",
]
