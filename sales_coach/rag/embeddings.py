"""
Text embeddings for knowledge retrieval.

GeminiEmbedder calls the Gemini embedding API with a bounded timeout and
caches vectors by the SHA-256 of the normalized text, so repeated queries
and re-loaded corpora do not pay twice. HashingEmbedder is a local,
deterministic bag-of-words embedder for running without an API key.
"""

import hashlib
import logging
import math
import re
import threading
from collections import OrderedDict
from typing import Optional, Protocol

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from sales_coach.errors import UpstreamError
from sales_coach.rag.config import RAGConfig
from sales_coach.rag.parser import compute_checksum

logger = logging.getLogger(__name__)

_TOKEN = re.compile(r"[a-z0-9']+")

# Bundled corpus plus a long tail of distinct queries
EMBEDDING_CACHE_SIZE = 2048


class Embedder(Protocol):
    """Turns text into a fixed-length vector."""

    def embed(self, text: str) -> list[float]: ...


def normalize_text(text: str) -> str:
    """Cache-key normalization: trimmed and lowercased."""
    return text.strip().lower()


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity; 0.0 when either vector is empty or zero."""
    if not a or not b:
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    na = math.sqrt(sum(x * x for x in a))
    nb = math.sqrt(sum(y * y for y in b))
    if not na or not nb:
        return 0.0
    return dot / (na * nb)


class GeminiEmbedder:
    """Gemini embedding client with a bounded in-process LRU cache."""

    def __init__(
        self,
        config: RAGConfig,
        client: Optional[genai.Client] = None,
        cache_size: int = EMBEDDING_CACHE_SIZE,
    ):
        self.config = config
        self.model = config.embedding_model
        self._client = client
        self.cache_size = cache_size
        self._cache: OrderedDict[str, list[float]] = OrderedDict()
        self._lock = threading.Lock()
        self.cache_hits = 0

    @property
    def client(self) -> genai.Client:
        """Lazy-load the Gemini client."""
        if self._client is None:
            self._client = genai.Client(
                api_key=self.config.api_key,
                http_options=types.HttpOptions(timeout=int(self.config.timeout_seconds * 1000)),
            )
        return self._client

    def embed(self, text: str) -> list[float]:
        """
        Embed text, serving repeats from the cache.

        Raises:
            UpstreamError: If the embedding API fails or times out.
        """
        key = compute_checksum(normalize_text(text))
        with self._lock:
            cached = self._cache.get(key)
            if cached is not None:
                self._cache.move_to_end(key)
        if cached is not None:
            self.cache_hits += 1
            return cached

        try:
            response = self.client.models.embed_content(
                model=self.model,
                contents=text,
                config=types.EmbedContentConfig(output_dimensionality=self.config.embedding_dimensions),
            )
        except (genai_errors.APIError, httpx.HTTPError) as e:
            raise UpstreamError(f"Embedding request failed: {e}") from e

        if not response.embeddings or not response.embeddings[0].values:
            raise UpstreamError("Embedding response contained no vector")

        vector = list(response.embeddings[0].values)
        with self._lock:
            self._cache[key] = vector
            while len(self._cache) > self.cache_size:
                self._cache.popitem(last=False)
        return vector


class HashingEmbedder:
    """Feature-hashed bag of words; no network, stable across runs."""

    def __init__(self, dimensions: int = 256):
        self.dimensions = dimensions

    def embed(self, text: str) -> list[float]:
        vector = [0.0] * self.dimensions
        for token in _TOKEN.findall(normalize_text(text)):
            digest = hashlib.sha256(token.encode("utf-8")).digest()
            index = int.from_bytes(digest[:4], "big") % self.dimensions
            vector[index] += 1.0
        return vector


def create_embedder(config: RAGConfig) -> Embedder:
    """Gemini when an API key is configured, local hashing otherwise."""
    if config.api_key:
        return GeminiEmbedder(config)
    logger.info("No Gemini API key configured, using local hashing embedder")
    return HashingEmbedder()
