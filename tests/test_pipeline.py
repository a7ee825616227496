"""Tests for the coaching pipeline."""

from unittest.mock import MagicMock

import pytest

from sales_coach.errors import ComposeDegradedWarning, NotFoundError, UpstreamError, ValidationError
from sales_coach.models.coaching import CoachingStatus
from sales_coach.models.conversation import ConversationRecord
from sales_coach.models.knowledge import KnowledgeChunk
from sales_coach.monitoring.logging import ComponentLogger, read_logs
from sales_coach.pipeline import CoachingPipeline, create_scorer
from sales_coach.rag.config import RAGConfig
from sales_coach.rag.corpus import InMemoryCorpus
from sales_coach.rag.embeddings import GeminiEmbedder
from sales_coach.rag.retriever import KnowledgeRetriever
from sales_coach.scoring.heuristic import HeuristicScorer
from sales_coach.scoring.model_scorer import ModelScorer
from sales_coach.services.composer import GUIDANCE_HEADER, SCRIPTS_HEADER
from sales_coach.services.lifecycle import CoachingLifecycle
from sales_coach.services.store import InMemoryStore


class BrokenEmbedder:
    def embed(self, text):
        raise UpstreamError("embedding timeout")


class TestCreateScorer:
    def test_heuristic_by_default(self, mock_settings):
        assert isinstance(create_scorer(mock_settings), HeuristicScorer)

    def test_model_mode(self, mock_settings):
        settings = mock_settings.model_copy(update={"scoring_mode": "model"})
        assert isinstance(create_scorer(settings), ModelScorer)


class TestCoachingPipeline:
    """Tests for CoachingPipeline.run."""

    @pytest.fixture
    def retriever(self, sample_chunks, fake_embedder):
        return KnowledgeRetriever(InMemoryCorpus(sample_chunks), fake_embedder, RAGConfig(similarity_threshold=0.0))

    @pytest.fixture
    def pipeline(self, mock_settings, seeded_store, retriever, lifecycle):
        return CoachingPipeline(mock_settings, seeded_store, retriever=retriever, lifecycle=lifecycle)

    def test_run_creates_draft(self, pipeline, store, sample_conversation):
        result = pipeline.run(sample_conversation.id)

        assert result.analysis.methodology == "sandler"
        assert "Budget" in result.weak_areas
        assert result.message is not None
        assert result.message.status == CoachingStatus.GENERATED
        assert result.message.coaching_content == result.coaching_content
        assert result.coaching_content.startswith("COACHING SUMMARY for Jane Doe - call on 2025-01-15")

    def test_run_writes_scores(self, pipeline, store, sample_conversation):
        result = pipeline.run(sample_conversation.id)

        stored = store.get_conversation(sample_conversation.id)
        assert stored.analyzed_at is not None
        assert stored.methodology_scores["overall"] == result.analysis.overall_score
        assert stored.methodology_scores["grade"] == result.analysis.overall_grade
        assert [c["name"] for c in stored.methodology_scores["components"]] == [
            s.name for s in result.analysis.scores
        ]
        assert stored.methodology_scores["rag_enhanced"] == result.rag_enhanced

    def test_run_with_scripts(self, pipeline, sample_conversation):
        result = pipeline.run(sample_conversation.id)
        assert result.rag_enhanced
        assert SCRIPTS_HEADER in result.coaching_content

    def test_run_without_rag(self, pipeline, sample_conversation, fake_embedder):
        result = pipeline.run(sample_conversation.id, use_rag=False)
        assert not result.rag_enhanced
        assert SCRIPTS_HEADER not in result.coaching_content
        assert fake_embedder.calls == []

    def test_retrieval_failure_degrades(self, mock_settings, seeded_store, sample_chunks, lifecycle, sample_conversation):
        retriever = KnowledgeRetriever(InMemoryCorpus(sample_chunks), BrokenEmbedder(), RAGConfig())
        pipeline = CoachingPipeline(mock_settings, seeded_store, retriever=retriever, lifecycle=lifecycle)

        with pytest.warns(Warning):
            result = pipeline.run(sample_conversation.id)

        assert result.augmentation.degraded
        assert result.message is not None
        assert SCRIPTS_HEADER not in result.coaching_content
        assert seeded_store.get_conversation(sample_conversation.id).methodology_scores["rag_enhanced"] is False

    def test_degraded_draft_matches_unaugmented_draft(self, mock_settings, sample_conversation, sample_chunks, mock_transport):
        def run(retriever, use_rag):
            store = InMemoryStore()
            store.add_conversation(sample_conversation)
            lifecycle = CoachingLifecycle(store, mock_transport, mock_settings)
            pipeline = CoachingPipeline(mock_settings, store, retriever=retriever, lifecycle=lifecycle)
            return pipeline.run(sample_conversation.id, use_rag=use_rag)

        broken = KnowledgeRetriever(InMemoryCorpus(sample_chunks), BrokenEmbedder(), RAGConfig())
        with pytest.warns(ComposeDegradedWarning):
            degraded = run(broken, use_rag=True)
        plain = run(None, use_rag=False)

        assert degraded.augmentation.degraded
        assert degraded.coaching_content == plain.coaching_content

    def test_corpus_load_failure_degrades(self, mock_settings, seeded_store, lifecycle, sample_conversation, monkeypatch):
        monkeypatch.setattr(GeminiEmbedder, "embed", BrokenEmbedder.embed)
        settings = mock_settings.model_copy(update={"gemini_api_key": "test-key", "rag_enabled": True})
        pipeline = CoachingPipeline(settings, seeded_store, lifecycle=lifecycle)

        with pytest.warns(ComposeDegradedWarning):
            result = pipeline.run(sample_conversation.id)

        assert result.augmentation.degraded
        assert result.message is not None
        assert SCRIPTS_HEADER not in result.coaching_content

    def test_related_guidance_in_draft(self, mock_settings, seeded_store, sample_chunks, fake_embedder, lifecycle, sample_conversation):
        guide = KnowledgeChunk(
            id="GUIDE-BUDGET-SANDLER",
            title="Budget step",
            text="Money talk comes before any presentation.",
            methodology_tag="sandler",
            content_type="component",
            component_tags=("budget",),
            embedding=(1.0, 0.0),
        )
        corpus = InMemoryCorpus(sample_chunks + [guide])
        retriever = KnowledgeRetriever(corpus, fake_embedder, RAGConfig(similarity_threshold=0.0))
        pipeline = CoachingPipeline(mock_settings, seeded_store, retriever=retriever, lifecycle=lifecycle)

        result = pipeline.run(sample_conversation.id)

        assert GUIDANCE_HEADER in result.coaching_content
        assert "* Budget step\nMoney talk comes before any presentation." in result.coaching_content
        assert result.message.coaching_content == result.coaching_content

    def test_missing_call_id(self, pipeline):
        with pytest.raises(ValidationError):
            pipeline.run("")

    def test_unknown_call_id(self, pipeline):
        with pytest.raises(NotFoundError):
            pipeline.run("no-such-call")

    def test_no_rep_email_skips_draft(self, pipeline, store):
        store.add_conversation(ConversationRecord(id="call-2", transcript="Rep: hello there how are you doing today"))
        result = pipeline.run("call-2")
        assert result.message is None
        assert store.get_conversation("call-2").methodology_scores is not None

    def test_empty_transcript(self, pipeline, store):
        store.add_conversation(ConversationRecord(id="call-3", transcript="", rep_email="rep@example.com"))
        result = pipeline.run("call-3")
        assert result.analysis.no_data
        assert result.analysis.overall_score == 0
        assert result.message is not None

    def test_scoring_failure_propagates(self, mock_settings, seeded_store, lifecycle, sample_conversation):
        scorer = MagicMock()
        scorer.score.side_effect = UpstreamError("model unavailable")
        pipeline = CoachingPipeline(mock_settings, seeded_store, scorer=scorer, lifecycle=lifecycle)

        with pytest.raises(UpstreamError):
            pipeline.run(sample_conversation.id)
        assert seeded_store.get_conversation(sample_conversation.id).methodology_scores is None

    def test_component_logging(self, mock_settings, seeded_store, retriever, lifecycle, sample_conversation, tmp_path):
        monitor = ComponentLogger(log_dir=tmp_path)
        pipeline = CoachingPipeline(
            mock_settings, seeded_store, retriever=retriever, lifecycle=lifecycle, monitor=monitor
        )
        pipeline.run(sample_conversation.id)

        entries = read_logs(tmp_path)
        assert [e["component"] for e in entries] == [
            "data_fetch", "scoring", "rag_retrieval", "compose", "storage", "e2e",
        ]
        e2e = read_logs(tmp_path, component="e2e")[0]
        assert e2e["success"] is True
        assert e2e["call_id"] == sample_conversation.id

    def test_log_dir_from_settings(self, mock_settings, seeded_store, lifecycle, sample_conversation, tmp_path):
        settings = mock_settings.model_copy(update={"log_dir": tmp_path, "rag_enabled": False})
        pipeline = CoachingPipeline(settings, seeded_store, lifecycle=lifecycle)
        pipeline.run(sample_conversation.id)

        assert read_logs(tmp_path, component="e2e", call_id=sample_conversation.id)[0]["success"] is True

    def test_reports_step_timings(self, pipeline, sample_conversation):
        result = pipeline.run(sample_conversation.id)
        assert list(result.timings) == ["data_fetch", "scoring", "rag_retrieval", "compose", "storage"]
