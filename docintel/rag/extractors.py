"""Text extraction from uploaded file bytes.

Extractors are registered per declared content type. Extraction is a soft
failure boundary: a broken or unsupported file yields a placeholder string
naming the file, never an exception, so chunking and embedding can proceed.
"""
import io
import re
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Protocol, runtime_checkable

import docx
import structlog
import yaml
from pypdf import PdfReader

logger = structlog.get_logger()

PDF = "application/pdf"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
DOC = "application/msword"
XLS = "application/vnd.ms-excel"
XLSX = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@runtime_checkable
class TextExtractor(Protocol):
    """Converts raw file bytes into plain text."""

    def extract(self, data: bytes) -> str:
        ...


@dataclass
class ExtractionResult:
    """Extracted text and whether it is a failure placeholder."""

    text: str
    failed: bool = False
    extractor_name: Optional[str] = None


def decode_text(data: bytes) -> str:
    """Decode bytes as UTF-8, dropping a BOM and replacing invalid sequences."""
    return data.decode("utf-8-sig", errors="replace")


class PlainTextExtractor:
    """Plain text and CSV-like formats: decoded as-is."""

    def extract(self, data: bytes) -> str:
        return decode_text(data)


class MarkdownExtractor:
    """Markdown with optional YAML frontmatter, which is stripped."""

    # Regex for YAML frontmatter (must be at start of file)
    FRONTMATTER_PATTERN = re.compile(r"^---\s*\n(.*?)\n---\s*\n", re.DOTALL)

    def extract(self, data: bytes) -> str:
        content = decode_text(data)
        match = self.FRONTMATTER_PATTERN.match(content)

        if not match:
            return content

        try:
            yaml.safe_load(match.group(1))
        except yaml.YAMLError as e:
            logger.warning("frontmatter_parse_error", error=str(e))
            return content

        return content[match.end():]


class PdfExtractor:
    """PDF documents via pypdf."""

    def extract(self, data: bytes) -> str:
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
        return "\n\n".join(text for text in pages if text.strip())


class DocxExtractor:
    """Word documents via python-docx."""

    def extract(self, data: bytes) -> str:
        document = docx.Document(io.BytesIO(data))
        return "\n\n".join(p.text for p in document.paragraphs if p.text)


def _normalize_content_type(content_type: Optional[str]) -> str:
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


class ExtractorRegistry:
    """Registry of per-format extractors keyed by content type."""

    def __init__(self):
        self._extractors: Dict[str, Optional[TextExtractor]] = {}

    def register(self, content_types: Iterable[str], extractor: TextExtractor) -> None:
        """Register an extractor for one or more content types."""
        for content_type in content_types:
            self._extractors[_normalize_content_type(content_type)] = extractor
            logger.debug(
                "extractor_registered",
                content_type=content_type,
                extractor=type(extractor).__name__,
            )

    def register_unsupported(self, content_types: Iterable[str]) -> None:
        """Declare known binary formats that have no extractor yet."""
        for content_type in content_types:
            self._extractors[_normalize_content_type(content_type)] = None

    def get(self, content_type: str) -> Optional[TextExtractor]:
        return self._extractors.get(_normalize_content_type(content_type))

    def content_types(self) -> List[str]:
        return sorted(self._extractors)

    def extract(self, data: bytes, content_type: str, file_name: str) -> ExtractionResult:
        """Extract text, degrading to a placeholder on failure.

        Args:
            data: Raw file bytes
            content_type: Declared content type
            file_name: File name, named in placeholder text

        Returns:
            ExtractionResult (failed=True when the text is a placeholder)
        """
        key = _normalize_content_type(content_type)

        if key not in self._extractors:
            logger.info("unknown_content_type_decoding_as_text", content_type=content_type, file_name=file_name)
            return ExtractionResult(text=decode_text(data), extractor_name="raw")

        extractor = self._extractors[key]
        if extractor is None:
            logger.warning("no_extractor_available", content_type=content_type, file_name=file_name)
            return ExtractionResult(
                text=f"No text extractor available for {content_type} ({file_name}).",
                failed=True,
            )

        name = type(extractor).__name__
        try:
            text = extractor.extract(data)
        except Exception as e:
            logger.error(
                "text_extraction_failed",
                file_name=file_name,
                content_type=content_type,
                extractor=name,
                error=str(e),
                error_type=type(e).__name__,
            )
            return ExtractionResult(
                text=f"Error extracting text from {file_name}. File may be corrupted or unsupported format.",
                failed=True,
                extractor_name=name,
            )

        logger.debug("text_extracted", file_name=file_name, extractor=name, text_length=len(text))
        return ExtractionResult(text=text, extractor_name=name)


def default_registry() -> ExtractorRegistry:
    """Build a registry with the built-in extractors."""
    registry = ExtractorRegistry()
    registry.register(["text/plain", "text/csv", "application/json"], PlainTextExtractor())
    registry.register(["text/markdown", "text/x-markdown"], MarkdownExtractor())
    registry.register([PDF], PdfExtractor())
    registry.register([DOCX], DocxExtractor())
    registry.register_unsupported([DOC, XLS, XLSX])
    return registry


# Global registry instance
_registry: Optional[ExtractorRegistry] = None


def get_extractor_registry() -> ExtractorRegistry:
    """Get the global extractor registry."""
    global _registry
    if _registry is None:
        _registry = default_registry()
    return _registry
