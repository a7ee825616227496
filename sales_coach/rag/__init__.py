"""Knowledge retrieval for Sales Coach.

This module provides:
- Corpus loading from markdown files with YAML frontmatter
- Embeddings (Gemini, with a SHA-256 keyed cache) and cosine-similarity search
- Coaching augmentation for weak rubric components
"""

from sales_coach.rag.config import RAGConfig
from sales_coach.rag.corpus import InMemoryCorpus, KnowledgeCorpus
from sales_coach.rag.embeddings import Embedder, GeminiEmbedder, HashingEmbedder, create_embedder
from sales_coach.rag.parser import load_corpus_dir, parse_document, validate_metadata
from sales_coach.rag.retriever import Augmentation, KnowledgeRetriever

__all__ = [
    "RAGConfig",
    "InMemoryCorpus",
    "KnowledgeCorpus",
    "Embedder",
    "GeminiEmbedder",
    "HashingEmbedder",
    "create_embedder",
    "load_corpus_dir",
    "parse_document",
    "validate_metadata",
    "Augmentation",
    "KnowledgeRetriever",
]
