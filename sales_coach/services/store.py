"""
Persistence contract for conversations and coaching messages.

Every coaching-message write is a compare-and-set on the row version: the
caller passes the version it read, the store rejects the write with
ConcurrencyError if the row moved on, and otherwise stores it at
version + 1.
"""

import logging
import threading
from datetime import datetime
from typing import Optional, Protocol

from sales_coach.errors import ConcurrencyError, NotFoundError, ValidationError
from sales_coach.models.coaching import CoachingMessage
from sales_coach.models.conversation import ConversationRecord, MethodologyScoresUpdate

logger = logging.getLogger(__name__)


class CoachingStore(Protocol):
    """Storage operations the engine depends on."""

    def get_conversation(self, call_id: str) -> Optional[ConversationRecord]: ...

    def update_conversation_scores(
        self,
        call_id: str,
        update: MethodologyScoresUpdate,
        analyzed_at: datetime,
    ) -> None: ...

    def create_message(self, message: CoachingMessage) -> CoachingMessage: ...

    def get_message(self, message_id: str) -> Optional[CoachingMessage]: ...

    def get_message_by_token(self, token: str) -> Optional[CoachingMessage]: ...

    def compare_and_set_message(
        self,
        message: CoachingMessage,
        expected_version: int,
    ) -> CoachingMessage: ...


class InMemoryStore:
    """Thread-safe dictionary-backed store for tests and local runs."""

    def __init__(self):
        self._lock = threading.Lock()
        self._conversations: dict[str, ConversationRecord] = {}
        self._messages: dict[str, CoachingMessage] = {}
        self._tokens: dict[str, str] = {}

    def add_conversation(self, record: ConversationRecord) -> None:
        """Seed a conversation, as an ingestion connector would."""
        with self._lock:
            self._conversations[record.id] = record.model_copy(deep=True)

    def get_conversation(self, call_id: str) -> Optional[ConversationRecord]:
        with self._lock:
            record = self._conversations.get(call_id)
            return record.model_copy(deep=True) if record else None

    def update_conversation_scores(
        self,
        call_id: str,
        update: MethodologyScoresUpdate,
        analyzed_at: datetime,
    ) -> None:
        """Overwrite the conversation's scores from the latest run."""
        with self._lock:
            record = self._conversations.get(call_id)
            if record is None:
                raise NotFoundError(f"Conversation not found: {call_id}")
            self._conversations[call_id] = record.model_copy(
                update={"methodology_scores": update.model_dump(), "analyzed_at": analyzed_at}
            )

    def create_message(self, message: CoachingMessage) -> CoachingMessage:
        with self._lock:
            if message.id in self._messages:
                raise ValidationError(f"Coaching message already exists: {message.id}")
            stored = message.model_copy(deep=True)
            self._messages[stored.id] = stored
            if stored.reply_token:
                self._tokens[stored.reply_token] = stored.id
            return stored.model_copy(deep=True)

    def get_message(self, message_id: str) -> Optional[CoachingMessage]:
        with self._lock:
            message = self._messages.get(message_id)
            return message.model_copy(deep=True) if message else None

    def get_message_by_token(self, token: str) -> Optional[CoachingMessage]:
        """Exact-match token lookup."""
        with self._lock:
            message_id = self._tokens.get(token)
            if message_id is None:
                return None
            return self._messages[message_id].model_copy(deep=True)

    def compare_and_set_message(
        self,
        message: CoachingMessage,
        expected_version: int,
    ) -> CoachingMessage:
        """Store `message` if the current row is still at `expected_version`."""
        with self._lock:
            current = self._messages.get(message.id)
            if current is None:
                raise NotFoundError(f"Coaching message not found: {message.id}")
            if current.version != expected_version:
                raise ConcurrencyError(
                    f"Coaching message {message.id} is at version {current.version}, "
                    f"expected {expected_version}"
                )

            stored = message.model_copy(update={"version": expected_version + 1}, deep=True)
            if current.reply_token and current.reply_token != stored.reply_token:
                self._tokens.pop(current.reply_token, None)
            if stored.reply_token:
                self._tokens[stored.reply_token] = stored.id
            self._messages[stored.id] = stored
            return stored.model_copy(deep=True)
