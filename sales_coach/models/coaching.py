"""
Coaching message model.

The message moves through the coaching lifecycle:
generated -> sent -> read -> replied, with failed reachable from a send.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


def _utc_now() -> datetime:
    """Get current UTC time (timezone-aware)."""
    return datetime.now(timezone.utc)


class CoachingStatus(str, Enum):
    """Lifecycle status for a coaching message."""

    GENERATED = "generated"  # Draft produced by analysis, editable
    APPROVED = "approved"  # Legacy label; treated exactly like GENERATED
    SENT = "sent"  # Delivered to transport, reply token minted
    READ = "read"  # Rep opened the reply link
    REPLIED = "replied"  # Rep response recorded; message is read-only
    FAILED = "failed"  # Transport rejected the send


PENDING_STATUSES = frozenset({CoachingStatus.GENERATED, CoachingStatus.APPROVED})
SENDABLE_STATUSES = PENDING_STATUSES | {CoachingStatus.FAILED}
REPLYABLE_STATUSES = frozenset({CoachingStatus.SENT, CoachingStatus.READ})


class CoachingMessage(BaseModel):
    """Governed coaching artifact sent from a manager to a rep."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    account_id: Optional[str] = None
    call_id: Optional[str] = None
    rep_email: str
    manager_email: Optional[str] = None
    methodology: str
    coaching_content: str

    status: CoachingStatus = Field(default=CoachingStatus.GENERATED)

    generated_at: datetime = Field(default_factory=_utc_now)
    sent_at: Optional[datetime] = None
    read_at: Optional[datetime] = None
    rep_response: Optional[str] = None
    responded_at: Optional[datetime] = None
    reply_token: Optional[str] = None
    last_error: Optional[str] = None

    # Row version for compare-and-set writes
    version: int = Field(default=0, ge=0)

    @property
    def is_pending(self) -> bool:
        """Draft bucket (generated or the legacy approved label)."""
        return self.status in PENDING_STATUSES

    @property
    def has_reply(self) -> bool:
        """True once a rep response has been recorded."""
        return bool(self.rep_response)

    def to_bq_row(self) -> dict:
        """Convert to BigQuery row format."""
        row = self.model_dump()
        row["status"] = self.status.value

        for name in ["generated_at", "sent_at", "read_at", "responded_at"]:
            if row[name] is not None:
                row[name] = row[name].isoformat()

        return row

    @classmethod
    def from_bq_row(cls, row: dict) -> "CoachingMessage":
        """Create from BigQuery row."""
        row = dict(row)
        if isinstance(row.get("status"), str):
            row["status"] = CoachingStatus(row["status"])
        return cls(**row)
