"""RAG (Retrieval-Augmented Generation) pipeline components.

This package contains modules for:
- Text extraction from uploaded files
- Word-window chunking with overlap
- Batched embedding generation with fallback vectors
- Cosine similarity search
- Bounded context assembly
"""
