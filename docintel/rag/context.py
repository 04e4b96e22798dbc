"""Bounded context assembly from ranked search results."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

import structlog

from docintel import config
from docintel.rag.models import SearchResult

logger = structlog.get_logger()


@dataclass
class ContextSource:
    """A document chunk that contributed to an assembled context."""

    document_id: str
    document_name: str
    chunk_index: int
    score: float
    truncated: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "documentId": self.document_id,
            "documentName": self.document_name,
            "chunkIndex": self.chunk_index,
            "score": round(self.score, 6),
            "truncated": self.truncated,
        }


@dataclass
class ContextBundle:
    """Assembled context plus the sources it was built from."""

    context: str = ""
    sources: List[ContextSource] = field(default_factory=list)
    total_results: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.context


class ContextAssembler:
    """Concatenates ranked chunks into a character-bounded context string."""

    def __init__(self, min_truncation_room: int = None, ellipsis: str = "..."):
        """Initialize the assembler.

        Args:
            min_truncation_room: Remaining characters required before a block is
                truncated into the context rather than dropped (default from config)
            ellipsis: Marker appended to a truncated block
        """
        self.min_truncation_room = (
            config.CONTEXT_MIN_TRUNCATION if min_truncation_room is None else min_truncation_room
        )
        self.ellipsis = ellipsis

    def format_block(self, result: SearchResult) -> str:
        return f"\n[Document: {result.document.file_name}]\n{result.chunk.text}\n"

    def assemble_with_sources(
        self, results: Sequence[SearchResult], max_length: int = None
    ) -> ContextBundle:
        """Build the context string, keeping track of contributing chunks.

        Args:
            results: Search results in rank order
            max_length: Maximum context length in characters (default from config)

        Returns:
            ContextBundle whose context never exceeds max_length

        Raises:
            ValueError: If max_length is negative
        """
        max_length = config.MAX_CONTEXT_LENGTH if max_length is None else max_length
        if max_length < 0:
            raise ValueError(f"max_length must not be negative, got {max_length}")

        parts: List[str] = []
        sources: List[ContextSource] = []
        current_length = 0

        for result in results:
            block = self.format_block(result)

            if current_length + len(block) > max_length:
                remaining = max_length - current_length
                if remaining > self.min_truncation_room and remaining > len(self.ellipsis):
                    parts.append(block[: remaining - len(self.ellipsis)] + self.ellipsis)
                    sources.append(self._source(result, truncated=True))
                break

            parts.append(block)
            sources.append(self._source(result))
            current_length += len(block)

        context = "".join(parts).strip()

        logger.debug(
            "context_assembled",
            blocks=len(sources),
            total_chars=len(context),
            max_length=max_length,
        )

        return ContextBundle(context=context, sources=sources, total_results=len(results))

    def assemble(self, results: Sequence[SearchResult], max_length: int = None) -> str:
        """Build the context string only (see assemble_with_sources)."""
        return self.assemble_with_sources(results, max_length).context

    @staticmethod
    def _source(result: SearchResult, truncated: bool = False) -> ContextSource:
        return ContextSource(
            document_id=result.document.id,
            document_name=result.document.file_name,
            chunk_index=result.chunk.chunk_index,
            score=result.similarity,
            truncated=truncated,
        )


def enhance_prompt(original_prompt: str, bundle: ContextBundle) -> str:
    """Append retrieved document context and a sources list to a prompt.

    Args:
        original_prompt: Prompt for the downstream generator
        bundle: Assembled context

    Returns:
        The enhanced prompt, or the original prompt when there is no context
    """
    if not bundle.context.strip():
        return original_prompt

    sources_list = "\n".join(
        f"- {source.document_name} (relevance: {source.score * 100:.1f}%)"
        for source in bundle.sources
    )

    return (
        f"{original_prompt}\n\n"
        "RELEVANT COMPANY DOCUMENTS:\n"
        "Based on the following information from uploaded company documents, "
        "provide data-driven insights and recommendations:\n\n"
        f"{bundle.context}\n\n"
        "SOURCES CONSULTED:\n"
        f"{sources_list}\n\n"
        "Please reference specific information from these documents in your response "
        "and explain how the company data influences your recommendations."
    )
