"""
Single-use reply tokens for coaching messages.

A token is 32 random bytes, hex encoded, stored 1:1 with its message. The
token is the only credential on the public reply endpoint, so lookups are
exact-match and confirmed with a constant-time comparison. Tokens do not
expire; revoke() clears one manually.
"""

import hmac
import logging
import secrets
from datetime import datetime, timezone
from typing import Optional

from sales_coach.errors import (
    ConcurrencyError,
    DuplicateReplyError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from sales_coach.models.coaching import REPLYABLE_STATUSES, CoachingMessage, CoachingStatus
from sales_coach.services.store import CoachingStore

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


def generate_token() -> str:
    """64 hex characters from a CSPRNG."""
    return secrets.token_hex(TOKEN_BYTES)


class ReplyTokenService:
    """Issues, resolves and redeems reply tokens."""

    def __init__(self, store: CoachingStore):
        self.store = store

    def _load(self, message_id: str) -> CoachingMessage:
        message = self.store.get_message(message_id)
        if message is None:
            raise NotFoundError(f"Coaching message not found: {message_id}")
        return message

    def issue(self, message_id: str, expected_version: Optional[int] = None) -> tuple[str, CoachingMessage]:
        """
        Mint a fresh token for a message, replacing any previous one.

        Returns:
            The token and the stored message.
        """
        message = self._load(message_id)
        version = message.version if expected_version is None else expected_version
        token = generate_token()
        stored = self.store.compare_and_set_message(
            message.model_copy(update={"reply_token": token}),
            expected_version=version,
        )
        logger.info(f"Issued reply token for coaching message {message_id}")
        return token, stored

    def resolve(self, token: Optional[str]) -> CoachingMessage:
        """
        Find the message a token belongs to.

        Raises:
            ValidationError: Empty token.
            NotFoundError: No message holds this exact token.
        """
        if not token or not token.strip():
            raise ValidationError("Reply token is required")

        message = self.store.get_message_by_token(token)
        if message is None or not message.reply_token:
            raise NotFoundError("Invalid or expired reply link")
        if not hmac.compare_digest(message.reply_token.encode(), token.encode()):
            raise NotFoundError("Invalid or expired reply link")
        return message

    def redeem(self, token: Optional[str], reply_text: Optional[str]) -> CoachingMessage:
        """
        Record the rep's reply. Succeeds at most once per message.

        Raises:
            ValidationError: Empty token or reply text.
            NotFoundError: Unknown token.
            DuplicateReplyError: A reply was already recorded.
            InvalidTransitionError: The message was never delivered.
        """
        if not reply_text or not reply_text.strip():
            raise ValidationError("Reply text is required")

        message = self.resolve(token)
        if message.has_reply:
            raise DuplicateReplyError(f"Coaching message {message.id} already has a reply")
        if message.status not in REPLYABLE_STATUSES:
            raise InvalidTransitionError(
                f"Cannot reply to coaching message in status '{message.status.value}'"
            )

        updated = message.model_copy(
            update={
                "rep_response": reply_text.strip(),
                "responded_at": datetime.now(timezone.utc),
                "status": CoachingStatus.REPLIED,
            }
        )
        try:
            stored = self.store.compare_and_set_message(updated, expected_version=message.version)
        except ConcurrencyError:
            current = self._load(message.id)
            if current.has_reply:
                raise DuplicateReplyError(f"Coaching message {message.id} already has a reply")
            raise

        logger.info(f"Recorded rep reply for coaching message {message.id}")
        return stored

    def revoke(self, message_id: str, expected_version: Optional[int] = None) -> CoachingMessage:
        """Clear a message's token so its reply link stops working."""
        message = self._load(message_id)
        version = message.version if expected_version is None else expected_version
        stored = self.store.compare_and_set_message(
            message.model_copy(update={"reply_token": None}),
            expected_version=version,
        )
        logger.info(f"Revoked reply token for coaching message {message_id}")
        return stored
