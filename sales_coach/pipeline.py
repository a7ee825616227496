"""
Coaching pipeline.

One sequential run per call:

    fetch conversation -> pick rubric -> score -> select weak areas
        -> retrieve scripts (may degrade) -> compose draft
        -> write scores to the conversation -> create the coaching draft

Each step is timed through ComponentLogger. Scoring failures propagate;
retrieval failures, including a corpus that cannot be loaded, only remove
the practice scripts and related guidance from the draft.
"""

import logging
import time
import warnings
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from sales_coach.config import Settings
from sales_coach.errors import ComposeDegradedWarning, NotFoundError, ValidationError
from sales_coach.models.analysis import AnalysisResult
from sales_coach.models.coaching import CoachingMessage
from sales_coach.models.conversation import MethodologyScoresUpdate
from sales_coach.monitoring.logging import ComponentLogger, new_request_context
from sales_coach.rag.config import RAGConfig
from sales_coach.rag.retriever import Augmentation, KnowledgeRetriever
from sales_coach.scoring.base import MethodologyScorer
from sales_coach.scoring.heuristic import HeuristicScorer
from sales_coach.scoring.model_scorer import ModelScorer
from sales_coach.scoring.rubrics import get_rubric
from sales_coach.scoring.weak_areas import select_weak
from sales_coach.services.composer import compose, rep_display_name
from sales_coach.services.email import ResendTransport
from sales_coach.services.lifecycle import CoachingLifecycle
from sales_coach.services.store import CoachingStore

logger = logging.getLogger(__name__)


def create_scorer(settings: Settings) -> MethodologyScorer:
    """Scorer selected by settings.scoring_mode."""
    if settings.scoring_mode == "model":
        return ModelScorer(settings)
    return HeuristicScorer.from_settings(settings)


@dataclass
class PipelineResult:
    """Everything produced by one coaching run."""

    call_id: str
    request_id: str
    analysis: AnalysisResult
    weak_areas: list[str] = field(default_factory=list)
    augmentation: Augmentation = field(default_factory=Augmentation)
    coaching_content: str = ""
    scores_update: Optional[MethodologyScoresUpdate] = None
    message: Optional[CoachingMessage] = None
    timings: dict[str, int] = field(default_factory=dict)

    @property
    def rag_enhanced(self) -> bool:
        return self.augmentation.rag_enhanced


class CoachingPipeline:
    """Runs analysis and drafts coaching for one call at a time."""

    def __init__(
        self,
        settings: Settings,
        store: CoachingStore,
        scorer: Optional[MethodologyScorer] = None,
        retriever: Optional[KnowledgeRetriever] = None,
        lifecycle: Optional[CoachingLifecycle] = None,
        monitor: Optional[ComponentLogger] = None,
    ):
        """Initialize the pipeline.

        Args:
            settings: Application settings
            store: Conversation and coaching message storage
            scorer: Scorer override (default chosen by settings.scoring_mode)
            retriever: Knowledge retriever; loaded from the corpus lazily when
                RAG is enabled and none is given
            lifecycle: Lifecycle used to create the draft message
            monitor: Component logger for step timing
        """
        self.settings = settings
        self.store = store
        self.scorer = scorer or create_scorer(settings)
        self._retriever = retriever
        self.lifecycle = lifecycle or CoachingLifecycle(store, ResendTransport(settings), settings)
        self.monitor = monitor or ComponentLogger(log_dir=settings.log_dir)

    @property
    def retriever(self) -> Optional[KnowledgeRetriever]:
        """Lazy-load the knowledge retriever when RAG is enabled."""
        if self._retriever is None and self.settings.rag_enabled:
            self._retriever = KnowledgeRetriever.from_config(RAGConfig.from_settings(self.settings))
        return self._retriever

    def _augment(self, weak_areas: list[str], transcript: str, methodology: str) -> Augmentation:
        """Retrieve coaching material, degrading when the corpus cannot be loaded."""
        try:
            retriever = self.retriever
        except Exception as e:
            message = f"Knowledge corpus unavailable, composing without scripts: {e}"
            logger.warning(message)
            warnings.warn(message, ComposeDegradedWarning, stacklevel=2)
            return Augmentation(degraded=True)
        return retriever.augment(weak_areas, transcript, methodology)

    def run(self, call_id: Optional[str], use_rag: bool = True) -> PipelineResult:
        """
        Analyze a call and create its coaching draft.

        Args:
            call_id: Conversation id
            use_rag: Retrieve practice scripts and related guidance

        Returns:
            PipelineResult with the analysis, draft text and stored message

        Raises:
            ValidationError: call_id is missing.
            NotFoundError: No conversation with this id.
            UpstreamError: The scorer could not produce a valid result.
        """
        if not call_id:
            raise ValidationError("call_id is required")

        request_id = new_request_context(call_id)
        start_time = time.time()

        try:
            # 1. Fetch conversation
            with self.monitor.component("data_fetch") as result:
                conversation = self.store.get_conversation(call_id)
                result["found"] = conversation is not None
                if conversation is None:
                    raise NotFoundError(f"Conversation not found: {call_id}")

            rubric = get_rubric(conversation.methodology)

            # 2. Score
            with self.monitor.component("scoring", methodology=rubric.methodology.value) as result:
                analysis = self.scorer.score(conversation.transcript, conversation.ai_summary, rubric)
                result["overall_score"] = analysis.overall_score
                result["no_data"] = analysis.no_data

            # 3. Weak areas
            weak_areas = select_weak(analysis.scores, limit=3, rubric=rubric)

            # 4. Retrieval
            augmentation = Augmentation()
            with self.monitor.component("rag_retrieval") as result:
                rag_enabled = use_rag and (self._retriever is not None or self.settings.rag_enabled)
                if rag_enabled and weak_areas:
                    augmentation = self._augment(weak_areas, conversation.transcript, rubric.methodology.value)
                result["rag_enabled"] = rag_enabled
                result["scripts"] = len(augmentation.scripts)
                result["context_chunks"] = len(augmentation.context_chunks)
                result["degraded"] = augmentation.degraded

            # 5. Compose
            with self.monitor.component("compose") as result:
                content = compose(
                    analysis,
                    rep_display_name(conversation.rep_email),
                    conversation.call_date,
                    augmentation.scripts,
                    rubric=rubric,
                    context_chunks=augmentation.context_chunks,
                )
                result["chars"] = len(content)

            # 6. Store
            with self.monitor.component("storage") as result:
                update = MethodologyScoresUpdate.from_analysis(analysis, rag_enhanced=augmentation.rag_enhanced)
                self.store.update_conversation_scores(call_id, update, datetime.now(timezone.utc))

                message = None
                if conversation.rep_email:
                    message = self.lifecycle.create_draft(conversation, analysis, content)
                else:
                    logger.warning(f"Conversation {call_id} has no rep email, coaching draft not created")
                result["message_id"] = message.id if message else None

            timings = self.monitor.step_timings
            total_duration_ms = int((time.time() - start_time) * 1000)
            self.monitor.log_e2e_result(call_id=call_id, success=True, total_duration_ms=total_duration_ms)
            logger.info(
                f"Coaching completed for {call_id} in {total_duration_ms}ms: "
                f"overall={analysis.overall_score} weak={weak_areas} rag={augmentation.rag_enhanced}"
            )

            return PipelineResult(
                call_id=call_id,
                request_id=request_id,
                analysis=analysis,
                weak_areas=weak_areas,
                augmentation=augmentation,
                coaching_content=content,
                scores_update=update,
                message=message,
                timings=timings,
            )

        except Exception as e:
            total_duration_ms = int((time.time() - start_time) * 1000)
            self.monitor.log_e2e_result(
                call_id=call_id,
                success=False,
                total_duration_ms=total_duration_ms,
                error=str(e),
            )
            logger.error(f"Coaching failed for {call_id}: {e}")
            raise
