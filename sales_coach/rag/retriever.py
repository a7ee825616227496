"""Knowledge retriever for coaching augmentation.

Provides:
- Similarity retrieval over a KnowledgeCorpus with metadata filters
- Coaching augmentation for a list of weak areas: a combined context across
  all areas plus practice scripts for the weakest one
- Degradation: retrieval failures produce an empty, flagged augmentation
  instead of failing the coaching run
"""

import logging
import warnings
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Optional

from sales_coach.errors import ComposeDegradedWarning
from sales_coach.models.knowledge import KnowledgeChunk, RetrievalQuery
from sales_coach.rag.config import (
    CONTEXT_CONTENT_TYPES,
    CONTEXT_TOP_K,
    SCRIPT_CONTENT_TYPES,
    RAGConfig,
)
from sales_coach.rag.corpus import InMemoryCorpus, KnowledgeCorpus
from sales_coach.rag.embeddings import Embedder, create_embedder
from sales_coach.rag.parser import load_corpus_dir
from sales_coach.scoring.weak_areas import component_key

logger = logging.getLogger(__name__)


def context_query_text(weak_areas: list[str], transcript: str, context_chars: int) -> str:
    """Combined query covering every weak area plus the start of the call."""
    text = f"Coaching for sales rep weakness in: {', '.join(weak_areas)}."
    excerpt = (transcript or "")[:context_chars].strip()
    if excerpt:
        text += f" Call context: {excerpt}"
    return text


def script_query_text(weakest: str) -> str:
    """Narrow query for practice scripts on a single component."""
    return f"Sales script for {weakest} improvement"


@dataclass
class Augmentation:
    """Retrieved material for one coaching run."""

    scripts: list[KnowledgeChunk] = field(default_factory=list)
    context_chunks: list[KnowledgeChunk] = field(default_factory=list)
    degraded: bool = False

    @property
    def rag_enhanced(self) -> bool:
        """True when practice scripts were found for the weakest area."""
        return bool(self.scripts)


class KnowledgeRetriever:
    """Embeds queries and searches a knowledge corpus."""

    def __init__(
        self,
        corpus: KnowledgeCorpus,
        embedder: Embedder,
        config: Optional[RAGConfig] = None,
    ):
        self.corpus = corpus
        self.embedder = embedder
        self.config = config or RAGConfig()

    @classmethod
    def from_config(cls, config: RAGConfig, embedder: Optional[Embedder] = None) -> "KnowledgeRetriever":
        """Load the configured corpus directory and embed it."""
        embedder = embedder or create_embedder(config)
        report = load_corpus_dir(config.corpus_path)
        for file_name, errors in report.errors.items():
            logger.warning(f"Corpus file {file_name} rejected: {'; '.join(errors)}")
        corpus = InMemoryCorpus.from_chunks(report.chunks, embedder)
        return cls(corpus=corpus, embedder=embedder, config=config)

    def retrieve(self, query: RetrievalQuery) -> list[KnowledgeChunk]:
        """
        Run one similarity query.

        Returns:
            Chunks ordered by similarity (desc), at most query.top_k.

        Raises:
            UpstreamError: If the query cannot be embedded.
        """
        embedding = self.embedder.embed(query.query_text)
        results = self.corpus.search(query, embedding)
        logger.debug(
            f"Retrieved {len(results)} chunks for query '{query.query_text[:60]}' "
            f"(top_k={query.top_k}, threshold={query.similarity_threshold})"
        )
        return [r.chunk for r in results]

    def build_queries(
        self,
        weak_areas: list[str],
        transcript: str,
        methodology: Optional[str] = None,
    ) -> tuple[RetrievalQuery, RetrievalQuery]:
        """The combined context query and the weakest-area script query."""
        context_query = RetrievalQuery(
            query_text=context_query_text(weak_areas, transcript, self.config.context_chars),
            content_type_filter=CONTEXT_CONTENT_TYPES,
            component_filter=[component_key(area) for area in weak_areas],
            methodology_filter=methodology,
            top_k=CONTEXT_TOP_K,
            similarity_threshold=self.config.similarity_threshold,
        )
        weakest = weak_areas[0]
        script_query = RetrievalQuery(
            query_text=script_query_text(weakest),
            content_type_filter=SCRIPT_CONTENT_TYPES,
            component_filter=[component_key(weakest)],
            top_k=self.config.script_top_k,
            similarity_threshold=self.config.similarity_threshold,
        )
        return context_query, script_query

    def augment(
        self,
        weak_areas: list[str],
        transcript: str,
        methodology: Optional[str] = None,
    ) -> Augmentation:
        """
        Retrieve coaching material for the given weak areas.

        Both queries run concurrently; output order does not depend on which
        finishes first. Any failure yields an empty augmentation flagged as
        degraded, with a ComposeDegradedWarning.

        Args:
            weak_areas: Component names, weakest first
            transcript: Raw call transcript (only the start is used)
            methodology: Methodology tag for the combined query

        Returns:
            Augmentation with scripts for the weakest area and combined context
        """
        if not weak_areas:
            return Augmentation()

        context_query, script_query = self.build_queries(weak_areas, transcript, methodology)
        try:
            with ThreadPoolExecutor(max_workers=2) as pool:
                context_future = pool.submit(self.retrieve, context_query)
                script_future = pool.submit(self.retrieve, script_query)
                context_chunks = context_future.result()
                scripts = script_future.result()
        except Exception as e:
            message = f"Knowledge retrieval failed, composing without scripts: {e}"
            logger.warning(message)
            warnings.warn(message, ComposeDegradedWarning, stacklevel=2)
            return Augmentation(degraded=True)

        logger.info(
            f"Augmentation: {len(scripts)} scripts for '{weak_areas[0]}', "
            f"{len(context_chunks)} context chunks for {len(weak_areas)} weak areas"
        )
        return Augmentation(
            scripts=scripts,
            context_chunks=context_chunks,
        )
