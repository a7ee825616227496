"""Pytest fixtures for Sales Coach tests."""

from datetime import datetime
from unittest.mock import MagicMock, patch

import pytest

from sales_coach.config import Settings
from sales_coach.models.analysis import AnalysisResult, ComponentScore
from sales_coach.models.conversation import ConversationRecord
from sales_coach.models.knowledge import KnowledgeChunk
from sales_coach.services.lifecycle import CoachingLifecycle
from sales_coach.services.store import InMemoryStore

SANDLER_TRANSCRIPT = """\
Rep: Hi Sarah, thanks for making time today. I'm curious, how did you end up leading operations?
Prospect: I came over from logistics about three years ago.
Rep: Here's what I was thinking for our time together. We have about 30 minutes, does that still work for you? I'll ask some questions, you can ask me anything, and at the end of this call it's completely okay to say no if it's not a fit.
Prospect: Sounds good.
Rep: Tell me more about the reporting problem you mentioned?
Prospect: Our team loses two days every month building reports by hand, and the numbers are often wrong.
Rep: How long has that been going on?
Prospect: Since we grew past fifty people, so about a year.
"""


class FakeEmbedder:
    """Returns a fixed vector per known text and a default otherwise."""

    def __init__(self, vectors=None, default=(1.0, 0.0)):
        self.vectors = vectors or {}
        self.default = list(default)
        self.calls = []

    def embed(self, text):
        self.calls.append(text)
        return list(self.vectors.get(text, self.default))


@pytest.fixture
def mock_settings():
    """Provide test settings."""
    return Settings(
        _env_file=None,
        project_id="test-project",
        bq_dataset="test_dataset",
        gemini_api_key=None,
        resend_api_key=None,
        reply_base_url="https://coach.example.com/coaching-reply",
        rag_similarity_threshold=0.0,
    )


@pytest.fixture
def store():
    """Provide an empty in-memory store."""
    return InMemoryStore()


@pytest.fixture
def sample_conversation():
    """Provide a Sandler discovery call."""
    return ConversationRecord(
        id="call-001",
        account_id="acct-1",
        transcript=SANDLER_TRANSCRIPT,
        rep_email="jane.doe@example.com",
        call_date=datetime(2025, 1, 15, 10, 0, 0),
        methodology="sandler",
    )


@pytest.fixture
def seeded_store(store, sample_conversation):
    """Store holding the sample conversation."""
    store.add_conversation(sample_conversation)
    return store


@pytest.fixture
def sample_analysis():
    """Provide a generic-rubric analysis with one weak component."""
    return AnalysisResult(
        methodology="generic",
        scores=[
            ComponentScore(name="Opening", score=8, indicators=["Set an agenda"]),
            ComponentScore(
                name="Budget",
                score=3,
                missing_elements=["No budget or investment discussion"],
            ),
            ComponentScore(name="Overall", score=6.5),
        ],
        talk_ratio=0.4,
    )


@pytest.fixture
def sample_chunks():
    """Provide a few knowledge chunks with fixed embeddings."""
    return [
        KnowledgeChunk(
            id="SCR-BUDGET-01",
            title="Asking for the investment",
            text='"What kind of investment have you set aside to solve this problem?"',
            methodology_tag="sandler",
            content_type="script",
            component_tags=("budget",),
            embedding=(1.0, 0.0),
        ),
        KnowledgeChunk(
            id="SCR-BUDGET-02",
            title="Bracketing a range",
            text='"Help me understand what ballpark makes sense for you."',
            methodology_tag="generic",
            content_type="script",
            component_tags=("budget",),
            embedding=(0.8, 0.6),
        ),
        KnowledgeChunk(
            id="GUIDE-BUDGET",
            title="Budget",
            text="Have an honest money conversation before presenting.",
            methodology_tag="meddic",
            content_type="component",
            component_tags=("budget",),
            embedding=(0.6, 0.8),
        ),
        KnowledgeChunk(
            id="SCR-PAIN-01",
            title="Opening the pain conversation",
            text='"Tell me more about that..."',
            methodology_tag="sandler",
            content_type="script",
            component_tags=("pain",),
            embedding=(0.0, 1.0),
        ),
    ]


@pytest.fixture
def mock_transport():
    """Email transport that always succeeds."""
    transport = MagicMock()
    transport.send.return_value = "email-123"
    return transport


@pytest.fixture
def lifecycle(store, mock_transport, mock_settings):
    """Lifecycle over the in-memory store and mock transport."""
    return CoachingLifecycle(store, mock_transport, mock_settings)


@pytest.fixture
def mock_bigquery_client():
    """Mock BigQuery client."""
    with patch("sales_coach.services.bigquery.bigquery.Client") as mock:
        client = MagicMock()
        mock.return_value = client
        yield client


@pytest.fixture
def sandler_transcript():
    """Provide the Sandler discovery call transcript."""
    return SANDLER_TRANSCRIPT


@pytest.fixture
def fake_embedder():
    """Embedder mapping every text to the unit x vector."""
    return FakeEmbedder()
