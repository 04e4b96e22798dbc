"""Document processing pipeline for the RAG system.

Orchestrates:
- Text extraction
- Word-window chunking
- Batched embedding generation
- Search and context assembly over processed documents
"""
import uuid
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Sequence, Union

import structlog

from docintel import config
from docintel.embedding_client import create_embedding_provider
from docintel.rag.chunker import TextChunker
from docintel.rag.context import ContextAssembler, ContextBundle
from docintel.rag.embedder import Embedder
from docintel.rag.extractors import ExtractorRegistry, get_extractor_registry
from docintel.rag.models import (
    ChunkMetadata,
    DocumentChunk,
    IngestMetadata,
    ProcessedDocument,
    SearchOptions,
    SearchResponse,
    SearchResult,
)
from docintel.rag.search import DocumentSearcher

logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DocumentProcessor:
    """Turns uploaded files into searchable documents and answers queries over them."""

    def __init__(
        self,
        embedder: Optional[Embedder] = None,
        extractors: Optional[ExtractorRegistry] = None,
        chunker: Optional[TextChunker] = None,
        searcher: Optional[DocumentSearcher] = None,
        assembler: Optional[ContextAssembler] = None,
    ):
        """Initialize the document processor.

        Args:
            embedder: Embedder (default: configured provider, or fallback mode)
            extractors: Extractor registry (default: built-in extractors)
            chunker: Text chunker (default from config)
            searcher: Similarity searcher sharing this processor's embedder
            assembler: Context assembler (default from config)
        """
        self.embedder = embedder or Embedder(create_embedding_provider())
        self.extractors = extractors or get_extractor_registry()
        self.chunker = chunker or TextChunker()
        self.searcher = searcher or DocumentSearcher(self.embedder)
        self.assembler = assembler or ContextAssembler()

        logger.info(
            "document_processor_initialized",
            embedding_available=self.embedder.is_available(),
            chunk_size=self.chunker.chunk_size,
            chunk_overlap=self.chunker.chunk_overlap,
            max_chunks=self.chunker.max_chunks,
        )

    @property
    def embedding_available(self) -> bool:
        return self.embedder.is_available()

    async def process_document(
        self,
        data: bytes,
        file_name: str,
        content_type: str,
        metadata: Union[IngestMetadata, Mapping[str, Any], None] = None,
    ) -> ProcessedDocument:
        """Extract, chunk and embed a single file.

        Extraction failures degrade to placeholder text and provider failures
        degrade to flagged fallback vectors, so a document is always returned.

        Args:
            data: Raw file bytes
            file_name: Original file name
            content_type: Declared content type
            metadata: Category, description and session id

        Returns:
            The processed document

        Raises:
            EmbeddingDimensionError: If the provider returns vectors of the wrong shape
        """
        if metadata is None:
            metadata = IngestMetadata()
        elif not isinstance(metadata, IngestMetadata):
            metadata = IngestMetadata.model_validate(dict(metadata))

        uploaded_at = _utcnow()
        document_id = f"doc_{uuid.uuid4().hex}"

        logger.info(
            "processing_document",
            document_id=document_id,
            file_name=file_name,
            content_type=content_type,
            file_size=len(data),
            category=metadata.category,
        )

        extraction = self.extractors.extract(data, content_type, file_name)
        text_chunks = self.chunker.chunk(extraction.text, file_name)

        embedded = await self.embedder.embed_batch([chunk.content for chunk in text_chunks])

        chunks: List[DocumentChunk] = []
        for text_chunk, vector, is_fallback in zip(
            text_chunks, embedded.vectors, embedded.fallback_mask
        ):
            chunks.append(
                DocumentChunk(
                    id=f"{document_id}_chunk_{text_chunk.chunk_index}",
                    document_id=document_id,
                    text=text_chunk.content,
                    chunk_index=text_chunk.chunk_index,
                    start_index=text_chunk.start_index,
                    end_index=text_chunk.end_index,
                    embedding=vector,
                    metadata=ChunkMetadata(
                        word_count=text_chunk.word_count,
                        section=text_chunk.section,
                    ),
                    is_fallback_embedding=is_fallback,
                )
            )

        document = ProcessedDocument(
            id=document_id,
            file_name=file_name,
            file_type=content_type,
            file_size=len(data),
            category=metadata.category,
            description=metadata.description,
            session_id=metadata.session_id,
            extracted_text=extraction.text,
            extraction_failed=extraction.failed,
            chunks=chunks,
            uploaded_at=uploaded_at,
            processed_at=_utcnow(),
        )

        log = logger.warning if document.is_degraded or extraction.failed else logger.info
        log(
            "document_processed",
            document_id=document_id,
            file_name=file_name,
            chunks_created=len(chunks),
            fallback_chunks=document.fallback_chunk_count,
            extraction_failed=extraction.failed,
        )

        return document

    async def search_documents_with_status(
        self,
        query: str,
        documents: Sequence[ProcessedDocument],
        options: Optional[SearchOptions] = None,
        **overrides: Any,
    ) -> SearchResponse:
        """Rank chunks of the given documents, reporting degraded embeddings."""
        return await self.searcher.search_with_status(query, documents, options, **overrides)

    async def search_documents(
        self,
        query: str,
        documents: Sequence[ProcessedDocument],
        options: Optional[SearchOptions] = None,
        **overrides: Any,
    ) -> List[SearchResult]:
        """Rank chunks of the given documents against a query.

        Args:
            query: Free-text query
            documents: Documents to search
            options: Search options (defaults: top_k=5, min_similarity=0.7)
            **overrides: top_k / min_similarity / categories

        Returns:
            Ranked search results (possibly empty)
        """
        return await self.searcher.search(query, documents, options, **overrides)

    async def get_context_bundle(
        self,
        query: str,
        documents: Sequence[ProcessedDocument],
        max_context_length: int = None,
        top_k: int = None,
        min_similarity: float = None,
        categories: Optional[List[str]] = None,
    ) -> ContextBundle:
        """Search and assemble a bounded context with its sources."""
        max_context_length = (
            config.MAX_CONTEXT_LENGTH if max_context_length is None else max_context_length
        )
        if max_context_length < 0:
            raise ValueError(f"max_context_length must not be negative, got {max_context_length}")

        results = await self.search_documents(
            query,
            documents,
            top_k=config.CONTEXT_TOP_K if top_k is None else top_k,
            min_similarity=(
                config.CONTEXT_MIN_SIMILARITY if min_similarity is None else min_similarity
            ),
            categories=categories,
        )

        if not results:
            return ContextBundle()

        return self.assembler.assemble_with_sources(results, max_context_length)

    async def get_relevant_context(
        self,
        query: str,
        documents: Sequence[ProcessedDocument],
        max_context_length: int = None,
        top_k: int = None,
        min_similarity: float = None,
    ) -> str:
        """Search and assemble a bounded context string.

        Args:
            query: Free-text query
            documents: Documents to search
            max_context_length: Maximum characters (default 2000)
            top_k: Results considered (default 3)
            min_similarity: Similarity threshold (default 0.6)

        Returns:
            Context string, empty when nothing is relevant
        """
        bundle = await self.get_context_bundle(
            query,
            documents,
            max_context_length=max_context_length,
            top_k=top_k,
            min_similarity=min_similarity,
        )
        return bundle.context


# Singleton instance for convenience
_processor_instance: Optional[DocumentProcessor] = None


def get_document_processor() -> DocumentProcessor:
    """Get or create a singleton document processor.

    Returns:
        DocumentProcessor instance
    """
    global _processor_instance
    if _processor_instance is None:
        _processor_instance = DocumentProcessor()
    return _processor_instance
