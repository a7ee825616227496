"""Knowledge corpus models used by retrieval."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class KnowledgeChunk(BaseModel):
    """Immutable corpus entry (script, component guide, example)."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    title: str
    text: str
    methodology_tag: str = Field(default="generic")
    content_type: str = Field(default="script", description="script, component or example")
    component_tags: tuple[str, ...] = Field(default=())
    situation_tags: tuple[str, ...] = Field(default=())
    embedding: tuple[float, ...] = Field(default=())


class RetrievalQuery(BaseModel):
    """Similarity search request against the knowledge corpus."""

    query_text: str = Field(min_length=1)
    content_type_filter: Optional[list[str]] = None
    component_filter: list[str] = Field(default_factory=list)
    situation_filter: list[str] = Field(default_factory=list)
    methodology_filter: Optional[str] = None
    top_k: int = Field(default=5, ge=1, le=50)
    similarity_threshold: float = Field(default=0.5, ge=-1.0, le=1.0)


class ScoredChunk(BaseModel):
    """A chunk with its similarity to the query embedding."""

    chunk: KnowledgeChunk
    similarity: float
