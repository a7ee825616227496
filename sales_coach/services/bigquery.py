"""
BigQuery store for Sales Coach.

Handles:
- Conversation reads and score write-back
- Coaching message inserts and compare-and-set updates (version guard in
  the DML WHERE clause)
- Schema management for the two tables it owns
"""

import json
import logging
from datetime import datetime
from typing import Any, Optional

from google.cloud import bigquery
from google.cloud.exceptions import NotFound

from sales_coach.config import Settings
from sales_coach.errors import ConcurrencyError, NotFoundError
from sales_coach.models.coaching import CoachingMessage
from sales_coach.models.conversation import ConversationRecord, MethodologyScoresUpdate

logger = logging.getLogger(__name__)

CONVERSATIONS_TABLE = "conversations"
MESSAGES_TABLE = "coaching_messages"

# BigQuery table schemas
CONVERSATIONS_SCHEMA = [
    bigquery.SchemaField("id", "STRING", mode="REQUIRED"),
    bigquery.SchemaField("account_id", "STRING"),
    bigquery.SchemaField("transcript", "STRING"),
    bigquery.SchemaField("ai_summary", "STRING"),
    bigquery.SchemaField("rep_email", "STRING"),
    bigquery.SchemaField("call_date", "TIMESTAMP"),
    bigquery.SchemaField("methodology", "STRING"),
    bigquery.SchemaField("methodology_scores", "JSON"),
    bigquery.SchemaField("analyzed_at", "TIMESTAMP"),
]

MESSAGES_SCHEMA = [
    bigquery.SchemaField("id", "STRING", mode="REQUIRED"),
    bigquery.SchemaField("account_id", "STRING"),
    bigquery.SchemaField("call_id", "STRING"),
    bigquery.SchemaField("rep_email", "STRING", mode="REQUIRED"),
    bigquery.SchemaField("manager_email", "STRING"),
    bigquery.SchemaField("methodology", "STRING"),
    bigquery.SchemaField("coaching_content", "STRING"),
    bigquery.SchemaField("status", "STRING"),
    bigquery.SchemaField("generated_at", "TIMESTAMP"),
    bigquery.SchemaField("sent_at", "TIMESTAMP"),
    bigquery.SchemaField("read_at", "TIMESTAMP"),
    bigquery.SchemaField("rep_response", "STRING"),
    bigquery.SchemaField("responded_at", "TIMESTAMP"),
    bigquery.SchemaField("reply_token", "STRING"),
    bigquery.SchemaField("last_error", "STRING"),
    bigquery.SchemaField("version", "INTEGER"),
]

# Columns written on every message update
_MUTABLE_MESSAGE_FIELDS = [
    ("coaching_content", "STRING"),
    ("status", "STRING"),
    ("sent_at", "TIMESTAMP"),
    ("read_at", "TIMESTAMP"),
    ("rep_response", "STRING"),
    ("responded_at", "TIMESTAMP"),
    ("reply_token", "STRING"),
    ("last_error", "STRING"),
]


def _message_params(message: CoachingMessage, fields: list[tuple[str, str]]) -> list[bigquery.ScalarQueryParameter]:
    values = message.model_dump()
    values["status"] = message.status.value
    return [bigquery.ScalarQueryParameter(name, bq_type, values[name]) for name, bq_type in fields]


class BigQueryStore:
    """CoachingStore backed by BigQuery tables."""

    def __init__(self, settings: Settings, client: Optional[bigquery.Client] = None):
        """Initialize BigQuery store."""
        self.settings = settings
        self._client = client

    @property
    def client(self) -> bigquery.Client:
        """Lazy-load BigQuery client."""
        if self._client is None:
            self._client = bigquery.Client(project=self.settings.project_id)
        return self._client

    @property
    def dataset_ref(self) -> bigquery.DatasetReference:
        """Get dataset reference."""
        return bigquery.DatasetReference(self.settings.project_id, self.settings.bq_dataset)

    def _table_id(self, table_name: str) -> str:
        """Get full table ID."""
        return f"{self.settings.bq_dataset_id}.{table_name}"

    def ensure_table(self, table_name: str, schema: list[bigquery.SchemaField]) -> bigquery.Table:
        """Create table if it doesn't exist."""
        table_ref = self.dataset_ref.table(table_name)
        try:
            existing = self.client.get_table(table_ref)
            logger.info(f"Table {table_name} already exists")
            return existing
        except NotFound:
            table = bigquery.Table(table_ref, schema=schema)
            table.description = f"Sales Coach - {table_name}"
            created = self.client.create_table(table)
            logger.info(f"Created table {table_name}")
            return created

    def ensure_tables(self) -> dict[str, bigquery.Table]:
        """Create the conversation and coaching message tables."""
        return {
            CONVERSATIONS_TABLE: self.ensure_table(CONVERSATIONS_TABLE, CONVERSATIONS_SCHEMA),
            MESSAGES_TABLE: self.ensure_table(MESSAGES_TABLE, MESSAGES_SCHEMA),
        }

    def _query_rows(self, query: str, params: list[bigquery.ScalarQueryParameter]) -> list[dict[str, Any]]:
        job_config = bigquery.QueryJobConfig(query_parameters=params)
        return [dict(row) for row in self.client.query(query, job_config=job_config).result()]

    # Conversations

    def get_conversation(self, call_id: str) -> Optional[ConversationRecord]:
        """Get a conversation by call id."""
        query = f"""
        SELECT * FROM `{self._table_id(CONVERSATIONS_TABLE)}`
        WHERE id = @call_id
        LIMIT 1
        """
        rows = self._query_rows(query, [bigquery.ScalarQueryParameter("call_id", "STRING", call_id)])
        if not rows:
            return None
        return ConversationRecord(**rows[0])

    def update_conversation_scores(
        self,
        call_id: str,
        update: MethodologyScoresUpdate,
        analyzed_at: datetime,
    ) -> None:
        """Overwrite methodology_scores and analyzed_at for a conversation."""
        query = f"""
        UPDATE `{self._table_id(CONVERSATIONS_TABLE)}`
        SET methodology_scores = PARSE_JSON(@scores),
            analyzed_at = @analyzed_at
        WHERE id = @call_id
        """
        job_config = bigquery.QueryJobConfig(
            query_parameters=[
                bigquery.ScalarQueryParameter("scores", "STRING", json.dumps(update.model_dump())),
                bigquery.ScalarQueryParameter("analyzed_at", "TIMESTAMP", analyzed_at),
                bigquery.ScalarQueryParameter("call_id", "STRING", call_id),
            ]
        )
        job = self.client.query(query, job_config=job_config)
        job.result()
        if not job.num_dml_affected_rows:
            raise NotFoundError(f"Conversation not found: {call_id}")
        logger.debug(f"Updated methodology scores for {call_id}")

    # Coaching messages

    def create_message(self, message: CoachingMessage) -> CoachingMessage:
        """Insert a new coaching message.

        Uses DML rather than streaming inserts so the row can be updated
        immediately afterwards.
        """
        fields = [(f.name, "INT64" if f.field_type == "INTEGER" else f.field_type) for f in MESSAGES_SCHEMA]
        columns = ", ".join(name for name, _ in fields)
        placeholders = ", ".join(f"@{name}" for name, _ in fields)
        query = f"""
        INSERT INTO `{self._table_id(MESSAGES_TABLE)}` ({columns})
        VALUES ({placeholders})
        """
        job_config = bigquery.QueryJobConfig(query_parameters=_message_params(message, fields))
        self.client.query(query, job_config=job_config).result()
        logger.debug(f"Inserted coaching message {message.id}")
        return message

    def get_message(self, message_id: str) -> Optional[CoachingMessage]:
        """Get a coaching message by id."""
        query = f"""
        SELECT * FROM `{self._table_id(MESSAGES_TABLE)}`
        WHERE id = @message_id
        LIMIT 1
        """
        rows = self._query_rows(query, [bigquery.ScalarQueryParameter("message_id", "STRING", message_id)])
        return CoachingMessage.from_bq_row(rows[0]) if rows else None

    def get_message_by_token(self, token: str) -> Optional[CoachingMessage]:
        """Exact-match lookup by reply token."""
        query = f"""
        SELECT * FROM `{self._table_id(MESSAGES_TABLE)}`
        WHERE reply_token = @token
        LIMIT 1
        """
        rows = self._query_rows(query, [bigquery.ScalarQueryParameter("token", "STRING", token)])
        return CoachingMessage.from_bq_row(rows[0]) if rows else None

    def compare_and_set_message(
        self,
        message: CoachingMessage,
        expected_version: int,
    ) -> CoachingMessage:
        """
        Update a message only if its stored version still matches.

        Raises:
            NotFoundError: No message with this id.
            ConcurrencyError: The stored version moved on.
        """
        assignments = ",\n            ".join(f"{name} = @{name}" for name, _ in _MUTABLE_MESSAGE_FIELDS)
        query = f"""
        UPDATE `{self._table_id(MESSAGES_TABLE)}`
        SET {assignments},
            version = @new_version
        WHERE id = @id AND version = @expected_version
        """
        params = _message_params(message, _MUTABLE_MESSAGE_FIELDS) + [
            bigquery.ScalarQueryParameter("new_version", "INT64", expected_version + 1),
            bigquery.ScalarQueryParameter("id", "STRING", message.id),
            bigquery.ScalarQueryParameter("expected_version", "INT64", expected_version),
        ]
        job = self.client.query(query, job_config=bigquery.QueryJobConfig(query_parameters=params))
        job.result()

        if not job.num_dml_affected_rows:
            if self.get_message(message.id) is None:
                raise NotFoundError(f"Coaching message not found: {message.id}")
            raise ConcurrencyError(
                f"Coaching message {message.id} changed since version {expected_version}"
            )
        return message.model_copy(update={"version": expected_version + 1})
