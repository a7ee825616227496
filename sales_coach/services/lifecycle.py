"""
Coaching message lifecycle.

    generated --send--> sent --mark_read--> read --submit_reply--> replied
                  \\--(transport error)--> failed --send (retry)--> sent

Drafts ("generated", or the legacy "approved" label) are editable; nothing
is deleted or un-sent. Every write is a compare-and-set on the message
version, so two managers acting on the same message cannot silently
overwrite each other.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sales_coach.config import Settings
from sales_coach.errors import (
    ConcurrencyError,
    InvalidTransitionError,
    NotFoundError,
    UpstreamError,
    ValidationError,
)
from sales_coach.models.analysis import AnalysisResult
from sales_coach.models.coaching import (
    SENDABLE_STATUSES,
    CoachingMessage,
    CoachingStatus,
)
from sales_coach.models.conversation import ConversationRecord
from sales_coach.services.composer import rep_display_name
from sales_coach.services.email import EmailTransport, build_coaching_email
from sales_coach.services.reply_tokens import ReplyTokenService
from sales_coach.services.store import CoachingStore

logger = logging.getLogger(__name__)


def _check_version(message: CoachingMessage, expected_version: Optional[int]) -> int:
    """Version to write against; rejects a stale expected_version up front."""
    if expected_version is None:
        return message.version
    if expected_version != message.version:
        raise ConcurrencyError(
            f"Coaching message {message.id} is at version {message.version}, expected {expected_version}"
        )
    return expected_version


class CoachingLifecycle:
    """Governs drafts, sends, reads and replies for coaching messages."""

    def __init__(
        self,
        store: CoachingStore,
        transport: EmailTransport,
        settings: Settings,
        tokens: Optional[ReplyTokenService] = None,
    ):
        self.store = store
        self.transport = transport
        self.settings = settings
        self.tokens = tokens or ReplyTokenService(store)

    def get(self, message_id: str) -> CoachingMessage:
        """Load a message or raise NotFoundError."""
        message = self.store.get_message(message_id)
        if message is None:
            raise NotFoundError(f"Coaching message not found: {message_id}")
        return message

    def create_draft(
        self,
        conversation: ConversationRecord,
        analysis: AnalysisResult,
        content: str,
        manager_email: Optional[str] = None,
    ) -> CoachingMessage:
        """Persist a new draft in status generated."""
        if not conversation.rep_email:
            raise ValidationError(f"Conversation {conversation.id} has no rep email")

        message = CoachingMessage(
            account_id=conversation.account_id,
            call_id=conversation.id,
            rep_email=conversation.rep_email,
            manager_email=manager_email,
            methodology=analysis.methodology,
            coaching_content=content,
        )
        stored = self.store.create_message(message)
        logger.info(f"Created coaching draft {stored.id} for call {conversation.id}")
        return stored

    def edit(self, message_id: str, content: str, expected_version: Optional[int] = None) -> CoachingMessage:
        """
        Replace a draft's content.

        Raises:
            InvalidTransitionError: The message is no longer a draft, or a send
                has already issued its reply token.
            ConcurrencyError: The message changed since `expected_version`.
        """
        message = self.get(message_id)
        if not message.is_pending:
            raise InvalidTransitionError(
                f"Cannot edit coaching message in status '{message.status.value}'"
            )
        if message.reply_token:
            raise InvalidTransitionError(f"Coaching message {message.id} is being sent and cannot be edited")
        if not content or not content.strip():
            raise ValidationError("Coaching content cannot be empty")

        version = _check_version(message, expected_version)
        return self.store.compare_and_set_message(
            message.model_copy(update={"coaching_content": content}),
            expected_version=version,
        )

    def send(
        self,
        message_id: str,
        manager_name: str,
        subject: Optional[str] = None,
        expected_version: Optional[int] = None,
    ) -> CoachingMessage:
        """
        Mint a reply token and hand the email to the transport.

        On success the message becomes sent. On transport failure it becomes
        failed with last_error recorded, and the UpstreamError is re-raised
        after that write; a failed message can be sent again.
        """
        message = self.get(message_id)
        if message.status not in SENDABLE_STATUSES:
            raise InvalidTransitionError(
                f"Cannot send coaching message in status '{message.status.value}'"
            )
        version = _check_version(message, expected_version)

        token, message = self.tokens.issue(message.id, expected_version=version)
        request = build_coaching_email(
            message,
            token=token,
            manager_name=manager_name,
            rep_name=rep_display_name(message.rep_email),
            reply_base_url=self.settings.reply_base_url,
            subject=subject,
        )

        try:
            provider_id = self.transport.send(request)
        except UpstreamError as e:
            failed = self.store.compare_and_set_message(
                message.model_copy(
                    update={
                        "status": CoachingStatus.FAILED,
                        "last_error": str(e),
                        "sent_at": None,
                    }
                ),
                expected_version=message.version,
            )
            logger.error(f"Sending coaching message {failed.id} failed: {e}")
            raise

        sent = self.store.compare_and_set_message(
            message.model_copy(
                update={
                    "status": CoachingStatus.SENT,
                    "sent_at": datetime.now(timezone.utc),
                    "last_error": None,
                }
            ),
            expected_version=message.version,
        )
        logger.info(f"Sent coaching message {sent.id} to {sent.rep_email} (provider id {provider_id})")
        return sent

    def mark_read(self, token: Optional[str]) -> CoachingMessage:
        """Record the first open of the reply link; later opens change nothing."""
        message = self.tokens.resolve(token)
        if message.status != CoachingStatus.SENT:
            return message

        try:
            return self.store.compare_and_set_message(
                message.model_copy(
                    update={"status": CoachingStatus.READ, "read_at": datetime.now(timezone.utc)}
                ),
                expected_version=message.version,
            )
        except ConcurrencyError:
            # Another request got there first
            return self.tokens.resolve(token)

    def submit_reply(self, token: Optional[str], text: Optional[str]) -> CoachingMessage:
        """Record the rep's reply through the token service."""
        return self.tokens.redeem(token, text)

    def revoke_token(self, message_id: str, expected_version: Optional[int] = None) -> CoachingMessage:
        """Invalidate a message's reply link."""
        message = self.get(message_id)
        version = _check_version(message, expected_version)
        return self.tokens.revoke(message.id, expected_version=version)
