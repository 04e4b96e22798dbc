"""Batched embedding generation with pacing and per-batch fallback.

A provider fault on one batch replaces that batch with fallback vectors and
processing continues. Fallback vectors are always flagged so callers can tell
them apart from genuine embeddings. A response with the wrong shape is a
consistency error and is raised, not masked.
"""
import hashlib
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
import structlog

from docintel import config
from docintel.embedding_client import EmbeddingProvider
from docintel.rag.errors import EmbeddingDimensionError
from docintel.rag.rate_limit import IntervalPacer, RateLimiter

logger = structlog.get_logger()


@dataclass
class EmbeddingBatchResult:
    """Vectors for a list of texts, with a per-vector fallback flag."""

    vectors: List[List[float]] = field(default_factory=list)
    fallback_mask: List[bool] = field(default_factory=list)

    @property
    def fallback_count(self) -> int:
        return sum(self.fallback_mask)

    @property
    def any_fallback(self) -> bool:
        return any(self.fallback_mask)

    @property
    def all_fallback(self) -> bool:
        return bool(self.fallback_mask) and all(self.fallback_mask)


@dataclass
class QueryEmbedding:
    vector: List[float]
    is_fallback: bool


class Embedder:
    """Turns texts into fixed-dimension vectors through an injected provider."""

    def __init__(
        self,
        provider: Optional[EmbeddingProvider],
        dimension: int = None,
        batch_size: int = None,
        rate_limiter: Optional[RateLimiter] = None,
        fallback_seed: int = None,
    ):
        """Initialize the embedder.

        Args:
            provider: Embedding provider; None puts every call in fallback mode
            dimension: Expected vector length D (default from config)
            batch_size: Texts per provider request (default from config)
            rate_limiter: Pacing policy (default: fixed inter-batch delay from config)
            fallback_seed: Extra seed mixed into fallback noise (default from config)
        """
        self.provider = provider
        self.dimension = config.EMBEDDING_DIMENSION if dimension is None else dimension
        self.batch_size = config.EMBEDDING_BATCH_SIZE if batch_size is None else batch_size
        self.rate_limiter = rate_limiter or IntervalPacer(config.EMBEDDING_BATCH_DELAY)
        self.fallback_seed = config.FALLBACK_SEED if fallback_seed is None else fallback_seed

        if self.dimension <= 0:
            raise ValueError(f"Embedding dimension must be positive, got {self.dimension}")
        if self.batch_size <= 0:
            raise ValueError(f"Batch size must be positive, got {self.batch_size}")
        if self.fallback_seed < 0:
            raise ValueError(f"Fallback seed must not be negative, got {self.fallback_seed}")

        if provider is None:
            logger.warning("embedder_unavailable", mode="fallback_vectors", dimension=self.dimension)
        else:
            logger.info(
                "embedder_initialized",
                provider=provider.name,
                model=provider.model,
                dimension=self.dimension,
                batch_size=self.batch_size,
            )

    def is_available(self) -> bool:
        """Whether a provider is configured (False means every vector is a fallback)."""
        return self.provider is not None

    def fallback_vector(self, text: str) -> List[float]:
        """Noise vector of the expected dimension, reproducible for a given text."""
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        seed = int.from_bytes(digest[:8], "big") ^ self.fallback_seed
        rng = np.random.default_rng(seed)
        return rng.random(self.dimension).tolist()

    def _validate(self, batch: List[str], vectors: List[List[float]]) -> List[List[float]]:
        if len(vectors) != len(batch):
            raise EmbeddingDimensionError(
                f"Provider returned {len(vectors)} vectors for a batch of {len(batch)} texts"
            )
        for position, vector in enumerate(vectors):
            if len(vector) != self.dimension:
                raise EmbeddingDimensionError(
                    f"Embedding dimension mismatch: expected {self.dimension}, "
                    f"got {len(vector)} (batch position {position})"
                )
        return [[float(value) for value in vector] for vector in vectors]

    async def embed_batch(self, texts: List[str]) -> EmbeddingBatchResult:
        """Embed texts batch by batch, falling back per failed batch.

        Args:
            texts: Texts to embed

        Returns:
            EmbeddingBatchResult aligned with the input

        Raises:
            EmbeddingDimensionError: If the provider answers with the wrong shape
        """
        result = EmbeddingBatchResult()

        if not texts:
            return result

        if self.provider is None:
            result.vectors = [self.fallback_vector(text) for text in texts]
            result.fallback_mask = [True] * len(texts)
            logger.warning("fallback_embeddings_generated", count=len(texts), reason="provider_unavailable")
            return result

        for i in range(0, len(texts), self.batch_size):
            batch = texts[i : i + self.batch_size]

            await self.rate_limiter.acquire()

            try:
                vectors = await self.provider.embed(batch)
            except Exception as e:
                logger.error(
                    "embedding_batch_failed",
                    provider=self.provider.name,
                    batch_start=i,
                    batch_size=len(batch),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                result.vectors.extend(self.fallback_vector(text) for text in batch)
                result.fallback_mask.extend([True] * len(batch))
                continue

            result.vectors.extend(self._validate(batch, vectors))
            result.fallback_mask.extend([False] * len(batch))

            logger.debug(
                "embeddings_batch_generated",
                batch_size=len(batch),
                total_so_far=len(result.vectors),
            )

        logger.info(
            "embeddings_generated",
            count=len(result.vectors),
            fallback_count=result.fallback_count,
        )

        return result

    async def embed(self, texts: List[str]) -> List[List[float]]:
        """Embed texts and return only the vectors."""
        result = await self.embed_batch(texts)
        return result.vectors

    async def embed_query(self, query: str) -> QueryEmbedding:
        """Embed a single query string."""
        result = await self.embed_batch([query])
        return QueryEmbedding(vector=result.vectors[0], is_fallback=result.fallback_mask[0])
