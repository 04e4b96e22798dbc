"""Exceptions raised by the document retrieval pipeline.

Extraction faults and single-batch provider faults are recovered inside the
pipeline and never show up here. These types cover configuration mistakes and
consistency violations that must stop processing.
"""


class DocintelError(Exception):
    """Base class for all pipeline errors."""


class ChunkingConfigError(DocintelError, ValueError):
    """Chunker parameters would produce a non-terminating or degenerate split."""


class EmbeddingDimensionError(DocintelError, ValueError):
    """A vector does not have the configured embedding dimension."""


class EmbeddingUnavailableError(DocintelError, RuntimeError):
    """No genuine embedding could be produced and the caller asked for strictness."""
