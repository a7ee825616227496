"""Service layer for Sales Coach."""

from sales_coach.services.bigquery import BigQueryStore
from sales_coach.services.composer import compose, rep_display_name
from sales_coach.services.email import EmailRequest, EmailTransport, ResendTransport
from sales_coach.services.lifecycle import CoachingLifecycle
from sales_coach.services.reply_tokens import ReplyTokenService
from sales_coach.services.store import CoachingStore, InMemoryStore

__all__ = [
    "BigQueryStore",
    "compose",
    "rep_display_name",
    "EmailRequest",
    "EmailTransport",
    "ResendTransport",
    "CoachingLifecycle",
    "ReplyTokenService",
    "CoachingStore",
    "InMemoryStore",
]
