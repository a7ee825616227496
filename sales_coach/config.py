"""
Configuration management using Pydantic Settings.

Supports environment variables and .env files for configuration.
Settings are resolved once at process start (CLI, API factory) and passed
explicitly into the pipeline, retriever and lifecycle objects.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SC_",
        case_sensitive=False,
    )

    # Gemini (scoring model + embeddings)
    gemini_api_key: Optional[str] = Field(
        default=None,
        description="API key for the Gemini API",
    )
    scoring_model: str = Field(
        default="gemini-2.5-flash",
        description="Model used when scoring_mode is 'model'",
    )
    embedding_model: str = Field(
        default="text-embedding-004",
        description="Embedding model for knowledge retrieval",
    )
    embedding_dimensions: int = Field(
        default=768,
        description="Output dimensionality requested from the embedding model",
    )

    # Scoring
    scoring_mode: Literal["heuristic", "model"] = Field(
        default="heuristic",
        description="Rule-based scoring or structured model output",
    )
    scoring_max_attempts: int = Field(
        default=2,
        ge=1,
        le=5,
        description="Attempts before a schema-invalid model response becomes an error",
    )
    min_transcript_words: int = Field(
        default=5,
        description="Transcripts shorter than this are treated as no data",
    )

    # Timeouts for every external call (model, embeddings, email)
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Upper bound for any single outbound request",
    )

    # RAG
    rag_enabled: bool = Field(default=True, description="Enable knowledge augmentation")
    rag_top_k: int = Field(default=3, description="Scripts retrieved for the weakest area")
    rag_similarity_threshold: float = Field(
        default=0.4,
        description="Minimum cosine similarity for a chunk to be returned",
    )
    rag_context_chars: int = Field(
        default=1000,
        description="Transcript characters included in retrieval queries",
    )
    corpus_path: Optional[Path] = Field(
        default=None,
        description="Directory of knowledge markdown files (defaults to bundled corpus)",
    )

    # Email transport (Resend)
    resend_api_key: Optional[str] = Field(default=None, description="Resend API key")
    resend_domain: Optional[str] = Field(default=None, description="Verified sender domain")
    reply_base_url: str = Field(
        default="http://localhost:8000/coaching-reply",
        description="Public URL of the reply endpoint",
    )

    # BigQuery store
    project_id: str = Field(default="", description="GCP Project ID")
    bq_dataset: str = Field(default="sales_coach", description="BigQuery dataset name")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_dir: Optional[Path] = Field(
        default=None,
        description="Directory for daily pipeline run logs (JSONL); unset logs to the console only",
    )

    @property
    def bq_dataset_id(self) -> str:
        """Full BigQuery dataset ID."""
        return f"{self.project_id}.{self.bq_dataset}"

    @property
    def sender_address(self) -> str:
        """From header for coaching emails."""
        if self.resend_domain:
            return f"Sales Coach <coaching@{self.resend_domain}>"
        return "Sales Coach <onboarding@resend.dev>"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
