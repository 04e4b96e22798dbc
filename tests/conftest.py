"""Shared fixtures for unit and API tests."""
import pytest

from docintel.rag.chunker import TextChunker
from docintel.rag.embedder import Embedder
from docintel.rag.pipeline import DocumentProcessor
from docintel.rag.store import InMemoryDocumentStore
from fakes import DIMENSION, FakeClock, KeywordBagProvider, RecordingRateLimiter


@pytest.fixture
def keyword_provider():
    return KeywordBagProvider()


@pytest.fixture
def rate_limiter():
    return RecordingRateLimiter()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def embedder(keyword_provider, rate_limiter):
    return Embedder(keyword_provider, dimension=DIMENSION, batch_size=2, rate_limiter=rate_limiter)


@pytest.fixture
def fallback_embedder(rate_limiter):
    return Embedder(None, dimension=DIMENSION, rate_limiter=rate_limiter)


@pytest.fixture
def sentence_chunker():
    """Six-word windows without overlap: one chunk per sample sentence."""
    return TextChunker(chunk_size=6, chunk_overlap=0)


@pytest.fixture
def processor(embedder, sentence_chunker):
    return DocumentProcessor(embedder=embedder, chunker=sentence_chunker)


@pytest.fixture
def fallback_processor(fallback_embedder, sentence_chunker):
    return DocumentProcessor(embedder=fallback_embedder, chunker=sentence_chunker)


@pytest.fixture
def store():
    return InMemoryDocumentStore()
