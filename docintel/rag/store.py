"""In-memory collection of processed documents.

Keeps every document's chunk vectors at one embedding dimension so that
search over the whole collection is well defined.
"""
from typing import Any, Dict, List, Optional

import structlog

from docintel.rag.errors import EmbeddingDimensionError
from docintel.rag.models import ProcessedDocument

logger = structlog.get_logger()


class InMemoryDocumentStore:
    """Insertion-ordered document collection keyed by document id."""

    def __init__(self):
        self._documents: Dict[str, ProcessedDocument] = {}

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, document_id: str) -> bool:
        return document_id in self._documents

    @property
    def dimension(self) -> Optional[int]:
        """Embedding dimension shared by stored chunks (None while no chunk is stored)."""
        for document in self._documents.values():
            if document.embedding_dimension is not None:
                return document.embedding_dimension
        return None

    def add(self, document: ProcessedDocument) -> None:
        """Add or replace a document.

        Raises:
            EmbeddingDimensionError: If the document's vectors are inconsistent
                with each other or with the collection
        """
        dimensions = {len(chunk.embedding) for chunk in document.chunks}
        if len(dimensions) > 1:
            raise EmbeddingDimensionError(
                f"Document {document.id} mixes embedding dimensions {sorted(dimensions)}"
            )

        expected = self.dimension
        if expected is not None and dimensions and dimensions != {expected}:
            raise EmbeddingDimensionError(
                f"Dimension mismatch: expected {expected}, "
                f"got {document.embedding_dimension} for document {document.id}"
            )

        self._documents[document.id] = document

        logger.info(
            "document_stored",
            document_id=document.id,
            file_name=document.file_name,
            chunks=len(document.chunks),
            total_documents=len(self._documents),
        )

    def get(self, document_id: str) -> Optional[ProcessedDocument]:
        return self._documents.get(document_id)

    def remove(self, document_id: str) -> bool:
        """Remove a document; returns False when it was not stored."""
        removed = self._documents.pop(document_id, None)
        if removed is None:
            return False
        logger.info("document_removed", document_id=document_id)
        return True

    def list(
        self, category: Optional[str] = None, session_id: Optional[str] = None
    ) -> List[ProcessedDocument]:
        """List documents, optionally filtered by category and session."""
        return [
            document
            for document in self._documents.values()
            if (category is None or document.category == category)
            and (session_id is None or document.session_id == session_id)
        ]

    def documents(self) -> List[ProcessedDocument]:
        return list(self._documents.values())

    def clear(self) -> None:
        count = len(self._documents)
        self._documents.clear()
        logger.warning("document_store_cleared", documents_removed=count)

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics about the collection.

        Returns:
            Dictionary with collection statistics
        """
        categories: Dict[str, int] = {}
        for document in self._documents.values():
            categories[document.category] = categories.get(document.category, 0) + 1

        return {
            "document_count": len(self._documents),
            "chunk_count": sum(len(d.chunks) for d in self._documents.values()),
            "degraded_documents": sum(1 for d in self._documents.values() if d.is_degraded),
            "fallback_chunks": sum(d.fallback_chunk_count for d in self._documents.values()),
            "categories": categories,
            "embedding_dimension": self.dimension,
        }
