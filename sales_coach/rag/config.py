"""Configuration for the knowledge retrieval pipeline.

Values come from Settings (SC_RAG_* environment variables); the query
shapes used by coaching augmentation are fixed here.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sales_coach.config import Settings

# Bundled Sandler corpus shipped with the package
DEFAULT_CORPUS_PATH = Path(__file__).parent / "data"

# Combined query across all weak areas
CONTEXT_CONTENT_TYPES = ["script", "component"]
CONTEXT_TOP_K = 5

# Narrow query for the weakest area
SCRIPT_CONTENT_TYPES = ["script"]

# Valid chunk content types
VALID_CONTENT_TYPES = {"script", "component", "example", "objection"}

# Required frontmatter fields
REQUIRED_METADATA_FIELDS = {"id", "title", "content_type"}


@dataclass
class RAGConfig:
    """Configuration for retrieval components."""

    enabled: bool = True
    corpus_path: Path = DEFAULT_CORPUS_PATH
    script_top_k: int = 3
    similarity_threshold: float = 0.4
    context_chars: int = 1000
    embedding_model: str = "text-embedding-004"
    embedding_dimensions: int = 768
    timeout_seconds: float = 30.0
    api_key: Optional[str] = None

    def __post_init__(self):
        """Validate configuration after initialization."""
        if isinstance(self.corpus_path, str):
            self.corpus_path = Path(self.corpus_path)

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors."""
        errors = []
        if not self.corpus_path.is_dir():
            errors.append(f"Corpus directory not found: {self.corpus_path}")
        if not 0 <= self.similarity_threshold <= 1:
            errors.append("similarity_threshold must be between 0 and 1")
        if self.script_top_k < 1:
            errors.append("script_top_k must be at least 1")
        return errors

    @classmethod
    def from_settings(cls, settings: Settings) -> "RAGConfig":
        """Create config from application settings."""
        return cls(
            enabled=settings.rag_enabled,
            corpus_path=settings.corpus_path or DEFAULT_CORPUS_PATH,
            script_top_k=settings.rag_top_k,
            similarity_threshold=settings.rag_similarity_threshold,
            context_chars=settings.rag_context_chars,
            embedding_model=settings.embedding_model,
            embedding_dimensions=settings.embedding_dimensions,
            timeout_seconds=settings.request_timeout_seconds,
            api_key=settings.gemini_api_key,
        )
