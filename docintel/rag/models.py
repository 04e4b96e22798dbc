"""Data model for processed documents, chunks and search results.

Documents and chunks are immutable once the pipeline hands them out.
Search results are ephemeral and built per query.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from docintel import config


@dataclass(frozen=True)
class ChunkMetadata:
    """Positional and heuristic metadata for a chunk."""

    word_count: int
    section: str
    page_number: Optional[int] = None


@dataclass(frozen=True)
class DocumentChunk:
    """One overlapping text window of a document, with its embedding."""

    id: str
    document_id: str
    text: str
    chunk_index: int
    start_index: int  # token offset, inclusive
    end_index: int  # token offset, exclusive
    embedding: Tuple[float, ...]
    metadata: ChunkMetadata
    is_fallback_embedding: bool = False

    def __post_init__(self):
        # frozen guards attributes only; freeze the vector too
        object.__setattr__(self, "embedding", tuple(self.embedding))

    def to_dict(self, include_embedding: bool = False) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "documentId": self.document_id,
            "text": self.text,
            "chunkIndex": self.chunk_index,
            "startIndex": self.start_index,
            "endIndex": self.end_index,
            "metadata": {
                "wordCount": self.metadata.word_count,
                "section": self.metadata.section,
                "pageNumber": self.metadata.page_number,
            },
            "fallbackEmbedding": self.is_fallback_embedding,
        }
        if include_embedding:
            data["embedding"] = list(self.embedding)
        return data


@dataclass(frozen=True)
class DocumentSummary:
    """Lightweight reference to the document owning a search hit."""

    id: str
    file_name: str
    category: str


@dataclass(frozen=True)
class ProcessedDocument:
    """An ingested file: extracted text plus embedded chunks."""

    id: str
    file_name: str
    file_type: str
    file_size: int
    category: str
    extracted_text: str
    chunks: Tuple[DocumentChunk, ...]
    uploaded_at: datetime
    processed_at: datetime
    description: Optional[str] = None
    session_id: Optional[str] = None
    extraction_failed: bool = False

    def __post_init__(self):
        object.__setattr__(self, "chunks", tuple(self.chunks))

    @property
    def embeddings(self) -> List[Tuple[float, ...]]:
        return [chunk.embedding for chunk in self.chunks]

    @property
    def fallback_chunk_count(self) -> int:
        """Number of chunks carrying a fallback vector instead of a real embedding."""
        return sum(1 for chunk in self.chunks if chunk.is_fallback_embedding)

    @property
    def is_degraded(self) -> bool:
        """True when semantic search over this document is unreliable."""
        return self.fallback_chunk_count > 0

    @property
    def embedding_dimension(self) -> Optional[int]:
        return len(self.chunks[0].embedding) if self.chunks else None

    def summary(self) -> DocumentSummary:
        return DocumentSummary(id=self.id, file_name=self.file_name, category=self.category)

    def to_dict(self, include_embeddings: bool = False) -> Dict[str, Any]:
        """Serialize for the persistence collaborator or an API response.

        Args:
            include_embeddings: Include chunk vectors (large)

        Returns:
            JSON-compatible dictionary
        """
        return {
            "id": self.id,
            "fileName": self.file_name,
            "fileType": self.file_type,
            "fileSize": self.file_size,
            "category": self.category,
            "description": self.description,
            "sessionId": self.session_id,
            "extractedTextLength": len(self.extracted_text),
            "extractionFailed": self.extraction_failed,
            "chunksCreated": len(self.chunks),
            "fallbackChunks": self.fallback_chunk_count,
            "embeddingDegraded": self.is_degraded,
            "uploadedAt": self.uploaded_at.isoformat(),
            "processedAt": self.processed_at.isoformat(),
            "chunks": [chunk.to_dict(include_embeddings) for chunk in self.chunks],
        }


@dataclass
class SearchResult:
    """A chunk matched by a query, with its cosine similarity."""

    chunk: DocumentChunk
    similarity: float
    document: DocumentSummary

    def to_dict(self) -> Dict[str, Any]:
        return {
            "chunk": self.chunk.to_dict(),
            "similarity": round(self.similarity, 6),
            "document": {
                "id": self.document.id,
                "fileName": self.document.file_name,
                "category": self.document.category,
            },
        }


@dataclass
class SearchResponse:
    """Ranked results plus flags telling the caller how trustworthy they are."""

    results: List[SearchResult] = field(default_factory=list)
    query_embedding_fallback: bool = False
    degraded_document_ids: List[str] = field(default_factory=list)

    @property
    def degraded(self) -> bool:
        return self.query_embedding_fallback or bool(self.degraded_document_ids)

    @property
    def is_empty(self) -> bool:
        return not self.results


class IngestMetadata(BaseModel):
    """Metadata supplied by the upload layer alongside the raw bytes."""

    model_config = ConfigDict(populate_by_name=True)

    category: str = "general"
    description: Optional[str] = None
    session_id: Optional[str] = Field(default=None, alias="sessionId")


class SearchOptions(BaseModel):
    """Query options; invalid values raise a ValidationError (a ValueError)."""

    model_config = ConfigDict(populate_by_name=True)

    top_k: int = Field(default=config.DEFAULT_TOP_K, gt=0, alias="topK")
    min_similarity: float = Field(
        default=config.DEFAULT_MIN_SIMILARITY, ge=0.0, le=1.0, alias="minSimilarity"
    )
    categories: Optional[List[str]] = None
