"""Semantic search over processed documents.

Handles:
- Query embedding generation
- Cosine similarity scoring of every chunk
- Threshold / category filtering
- Deterministic ranking and top-K truncation
"""
from typing import Any, List, Optional, Sequence

import numpy as np
import structlog

from docintel import config
from docintel.rag.embedder import Embedder
from docintel.rag.errors import EmbeddingDimensionError, EmbeddingUnavailableError
from docintel.rag.models import ProcessedDocument, SearchOptions, SearchResponse, SearchResult

logger = structlog.get_logger()


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors.

    Returns 0.0 when the lengths differ or either vector has zero norm.
    """
    if len(a) != len(b) or len(a) == 0:
        return 0.0

    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)

    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = float(np.dot(va, vb) / (norm_a * norm_b))
    return max(-1.0, min(1.0, similarity))


def resolve_options(options: Optional[SearchOptions] = None, **overrides: Any) -> SearchOptions:
    """Merge keyword overrides into search options, validating the result.

    An override of None means "not given" and keeps the value from options, so
    categories=None cannot widen a search whose options already name categories.
    Pass options=None (or fresh SearchOptions) to search every category.

    Raises:
        pydantic.ValidationError: If top_k <= 0 or min_similarity is outside [0, 1]
    """
    base = options.model_dump() if options is not None else {}
    base.update({key: value for key, value in overrides.items() if value is not None})
    return SearchOptions(**base)


class DocumentSearcher:
    """Ranks document chunks against a query by cosine similarity."""

    def __init__(self, embedder: Embedder, strict_query_embeddings: bool = None):
        """Initialize the searcher.

        Args:
            embedder: Embedder used for query vectors
            strict_query_embeddings: Raise instead of ranking against a fallback
                query vector (default from config)
        """
        self.embedder = embedder
        self.strict_query_embeddings = (
            config.STRICT_QUERY_EMBEDDINGS
            if strict_query_embeddings is None
            else strict_query_embeddings
        )

    @staticmethod
    def filter_documents(
        documents: Sequence[ProcessedDocument], options: SearchOptions
    ) -> List[ProcessedDocument]:
        """Documents in scope for the search (None categories keeps all)."""
        if options.categories is None:
            return list(documents)
        allowed = set(options.categories)
        return [doc for doc in documents if doc.category in allowed]

    def rank(
        self,
        query_vector: Sequence[float],
        documents: Sequence[ProcessedDocument],
        options: SearchOptions,
    ) -> List[SearchResult]:
        """Score, filter, sort and truncate. Pure; no I/O.

        Args:
            query_vector: Query embedding
            documents: Documents to search, in caller order
            options: Validated search options

        Returns:
            Results sorted by similarity (descending), ties in document/chunk order

        Raises:
            EmbeddingDimensionError: If a chunk vector's length differs from the query's
        """
        documents = self.filter_documents(documents, options)

        results: List[SearchResult] = []
        dimension = len(query_vector)

        for document in documents:
            summary = document.summary()
            for chunk in document.chunks:
                if len(chunk.embedding) != dimension:
                    raise EmbeddingDimensionError(
                        f"Chunk {chunk.id} has dimension {len(chunk.embedding)}, "
                        f"query has {dimension}"
                    )

                similarity = cosine_similarity(query_vector, chunk.embedding)

                if similarity >= options.min_similarity:
                    results.append(
                        SearchResult(chunk=chunk, similarity=similarity, document=summary)
                    )

        # sorted() is stable, so equal scores keep document-then-chunk order
        ranked = sorted(results, key=lambda r: -r.similarity)
        return ranked[: options.top_k]

    async def search_with_status(
        self,
        query: str,
        documents: Sequence[ProcessedDocument],
        options: Optional[SearchOptions] = None,
        **overrides: Any,
    ) -> SearchResponse:
        """Search and report how trustworthy the ranking is.

        Args:
            query: Free-text query
            documents: Documents to search
            options: Search options (defaults from config)
            **overrides: top_k / min_similarity / categories overrides

        Returns:
            SearchResponse with ranked results and degradation flags

        Raises:
            pydantic.ValidationError: If the options are invalid
            EmbeddingUnavailableError: If strict mode is on and the query vector is a fallback
            EmbeddingDimensionError: If stored vectors disagree with the query dimension
        """
        options = resolve_options(options, **overrides)

        if not query or not query.strip():
            logger.warning("empty_query_provided")
            return SearchResponse()

        logger.info(
            "search_started",
            query_preview=query[:100],
            document_count=len(documents),
            top_k=options.top_k,
            min_similarity=options.min_similarity,
        )

        query_embedding = await self.embedder.embed_query(query)

        if query_embedding.is_fallback:
            logger.warning("query_embedding_fallback", strict=self.strict_query_embeddings)
            if self.strict_query_embeddings:
                raise EmbeddingUnavailableError(
                    "Query could not be embedded by the provider; refusing to rank "
                    "against a fallback vector"
                )

        results = self.rank(query_embedding.vector, documents, options)

        degraded_ids = [
            doc.id for doc in self.filter_documents(documents, options) if doc.is_degraded
        ]

        logger.info(
            "search_completed",
            results_returned=len(results),
            top_similarity=round(results[0].similarity, 4) if results else None,
            degraded=query_embedding.is_fallback or bool(degraded_ids),
        )

        return SearchResponse(
            results=results,
            query_embedding_fallback=query_embedding.is_fallback,
            degraded_document_ids=degraded_ids,
        )

    async def search(
        self,
        query: str,
        documents: Sequence[ProcessedDocument],
        options: Optional[SearchOptions] = None,
        **overrides: Any,
    ) -> List[SearchResult]:
        """Search and return only the ranked results (see search_with_status)."""
        response = await self.search_with_status(query, documents, options, **overrides)
        return response.results
