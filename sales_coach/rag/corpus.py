"""In-memory knowledge corpus with cosine-similarity search."""

import logging
from typing import Protocol

from sales_coach.models.knowledge import KnowledgeChunk, RetrievalQuery, ScoredChunk
from sales_coach.rag.embeddings import Embedder, cosine_similarity

logger = logging.getLogger(__name__)


class KnowledgeCorpus(Protocol):
    """Searchable store of knowledge chunks."""

    def search(self, query: RetrievalQuery, query_embedding: list[float]) -> list[ScoredChunk]: ...


def _matches(chunk: KnowledgeChunk, query: RetrievalQuery) -> bool:
    if query.content_type_filter and chunk.content_type not in query.content_type_filter:
        return False
    if query.component_filter and not set(query.component_filter) & set(chunk.component_tags):
        return False
    if query.situation_filter and not set(query.situation_filter) & set(chunk.situation_tags):
        return False
    if query.methodology_filter and chunk.methodology_tag not in (query.methodology_filter, "generic"):
        return False
    return True


class InMemoryCorpus:
    """Chunks held in memory, each with a precomputed embedding."""

    def __init__(self, chunks: list[KnowledgeChunk]):
        self.chunks = list(chunks)

    @classmethod
    def from_chunks(cls, chunks: list[KnowledgeChunk], embedder: Embedder) -> "InMemoryCorpus":
        """Build a corpus, embedding any chunk that has no vector yet."""
        embedded = []
        for chunk in chunks:
            if not chunk.embedding:
                vector = embedder.embed(f"{chunk.title}\n{chunk.text}")
                chunk = chunk.model_copy(update={"embedding": tuple(vector)})
            embedded.append(chunk)
        logger.debug(f"Embedded corpus of {len(embedded)} chunks")
        return cls(embedded)

    def __len__(self) -> int:
        return len(self.chunks)

    def search(self, query: RetrievalQuery, query_embedding: list[float]) -> list[ScoredChunk]:
        """
        Rank filtered chunks by cosine similarity.

        Results at or above the threshold, highest similarity first, ties
        broken by chunk id, truncated to top_k.
        """
        scored = []
        for chunk in self.chunks:
            if not _matches(chunk, query):
                continue
            similarity = cosine_similarity(list(chunk.embedding), query_embedding)
            if similarity >= query.similarity_threshold:
                scored.append(ScoredChunk(chunk=chunk, similarity=similarity))
        scored.sort(key=lambda s: (-s.similarity, s.chunk.id))
        return scored[: query.top_k]
