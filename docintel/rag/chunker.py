"""Word-window chunking with overlap for the RAG pipeline.

Implements whitespace-token windows so chunk boundaries are deterministic and
independent of any tokenizer.
"""
from typing import List, Optional
from dataclasses import dataclass
import structlog

from docintel import config
from docintel.rag.errors import ChunkingConfigError
from docintel.rag.sections import KeywordSectionClassifier, SectionClassifier

logger = structlog.get_logger()


@dataclass
class TextChunk:
    """Represents a chunk of text with position information (no embedding yet)."""

    content: str
    chunk_index: int
    start_index: int
    end_index: int
    word_count: int
    section: str


class TextChunker:
    """Word-based text chunker with overlap support."""

    def __init__(
        self,
        chunk_size: Optional[int] = None,
        chunk_overlap: Optional[int] = None,
        max_chunks: Optional[int] = None,
        classifier: Optional[SectionClassifier] = None,
    ):
        """Initialize the text chunker.

        Args:
            chunk_size: Words per chunk (default from config)
            chunk_overlap: Words shared by consecutive chunks (default from config)
            max_chunks: Hard cap on chunks per document (default from config)
            classifier: Section classifier (default: keyword heuristics)

        Raises:
            ChunkingConfigError: If the parameters cannot produce a terminating split
        """
        self.chunk_size = config.CHUNK_SIZE if chunk_size is None else chunk_size
        self.chunk_overlap = config.CHUNK_OVERLAP if chunk_overlap is None else chunk_overlap
        self.max_chunks = config.MAX_CHUNKS if max_chunks is None else max_chunks
        self.classifier = classifier or KeywordSectionClassifier()

        # Validate parameters
        if self.chunk_size <= 0:
            raise ChunkingConfigError(f"Chunk size must be positive, got {self.chunk_size}")
        if self.chunk_overlap < 0:
            raise ChunkingConfigError(f"Overlap must not be negative, got {self.chunk_overlap}")
        if self.chunk_overlap >= self.chunk_size:
            raise ChunkingConfigError(
                f"Overlap ({self.chunk_overlap}) must be less than "
                f"chunk size ({self.chunk_size})"
            )
        if self.max_chunks <= 0:
            raise ChunkingConfigError(f"Max chunks must be positive, got {self.max_chunks}")

        logger.debug(
            "chunker_initialized",
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
            max_chunks=self.max_chunks,
        )

    @property
    def step(self) -> int:
        return self.chunk_size - self.chunk_overlap

    def chunk(self, text: str, file_name: str = "") -> List[TextChunk]:
        """Split text into overlapping word windows.

        Args:
            text: Extracted document text
            file_name: Source file name (for logging only)

        Returns:
            List of TextChunk objects, chunk_index ascending from 0
        """
        words = text.split() if text else []

        if not words:
            logger.warning("no_words_to_chunk", file_name=file_name)
            return []

        word_total = len(words)
        chunks: List[TextChunk] = []
        start = 0

        while len(chunks) < self.max_chunks:
            end = min(start + self.chunk_size, word_total)
            window = words[start:end]
            content = " ".join(window)

            chunks.append(
                TextChunk(
                    content=content,
                    chunk_index=len(chunks),
                    start_index=start,
                    end_index=end,
                    word_count=len(window),
                    section=self.classifier.classify(content),
                )
            )

            # Text shorter than one window stays a single chunk
            if word_total < self.chunk_size:
                break
            start += self.step
            if start >= word_total:
                break

        if chunks[-1].end_index < word_total:
            logger.warning(
                "chunk_limit_reached",
                file_name=file_name,
                max_chunks=self.max_chunks,
                words_dropped=word_total - chunks[-1].end_index,
            )

        logger.info(
            "text_chunked",
            file_name=file_name,
            word_count=word_total,
            chunk_count=len(chunks),
        )

        return chunks

    def get_chunk_stats(self, chunks: List[TextChunk]) -> dict:
        """Get statistics about a set of chunks.

        Args:
            chunks: List of TextChunk objects

        Returns:
            Dictionary with chunk statistics
        """
        if not chunks:
            return {
                "chunk_count": 0,
                "total_words": 0,
                "avg_chunk_words": 0,
                "min_chunk_words": 0,
                "max_chunk_words": 0,
            }

        sizes = [c.word_count for c in chunks]

        return {
            "chunk_count": len(chunks),
            "total_words": sum(sizes),
            "avg_chunk_words": sum(sizes) // len(chunks),
            "min_chunk_words": min(sizes),
            "max_chunk_words": max(sizes),
            "overlap": self.chunk_overlap,
            "sections": sorted({c.section for c in chunks}),
        }


def chunk_text(
    text: str,
    file_name: str = "",
    chunk_size: Optional[int] = None,
    overlap: Optional[int] = None,
    max_chunks: Optional[int] = None,
    classifier: Optional[SectionClassifier] = None,
) -> List[TextChunk]:
    """Chunk text with an ad hoc configuration (convenience function).

    Raises:
        ChunkingConfigError: If overlap >= chunk_size or a limit is not positive
    """
    chunker = TextChunker(
        chunk_size=chunk_size,
        chunk_overlap=overlap,
        max_chunks=max_chunks,
        classifier=classifier,
    )
    return chunker.chunk(text, file_name)
