"""Section labelling for chunks.

The chunker only depends on the ``SectionClassifier`` protocol, so a trained
classifier can replace the keyword heuristics without touching windowing.
"""
from typing import Protocol, Sequence, Tuple, runtime_checkable


@runtime_checkable
class SectionClassifier(Protocol):
    """Assigns a section label to a chunk of text."""

    def classify(self, text: str) -> str:
        ...


# Ordered: first matching rule wins.
DEFAULT_SECTION_RULES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("executive_summary", ("executive summary", "summary")),
    ("introduction", ("introduction", "overview")),
    ("conclusion", ("conclusion", "recommendations")),
    ("financial", ("financial", "revenue", "budget")),
    ("strategic", ("strategy", "strategic")),
)


class KeywordSectionClassifier:
    """Substring keyword matching against the lowercased chunk text."""

    def __init__(
        self,
        rules: Sequence[Tuple[str, Sequence[str]]] = DEFAULT_SECTION_RULES,
        default_label: str = "content",
    ):
        """Initialize the classifier.

        Args:
            rules: Ordered (label, keywords) pairs
            default_label: Label used when no keyword matches
        """
        self.rules = [(label, tuple(k.lower() for k in keywords)) for label, keywords in rules]
        self.default_label = default_label

    def classify(self, text: str) -> str:
        lowered = text.lower()
        for label, keywords in self.rules:
            if any(keyword in lowered for keyword in keywords):
                return label
        return self.default_label
