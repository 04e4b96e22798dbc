"""docintel: document ingestion and retrieval for retrieval-augmented generation."""

__version__ = "0.1.0"
