"""Unit tests for the embedding provider clients (httpx.MockTransport, no network)."""
import json

import httpx
import pytest

from docintel import config
from docintel.embedding_client import (
    EmbeddingProvider,
    OllamaEmbeddingClient,
    OpenAIEmbeddingClient,
    create_embedding_provider,
)


def openai_handler(request: httpx.Request) -> httpx.Response:
    body = json.loads(request.content)
    # Answer out of order; the client must sort by index
    data = [
        {"index": i, "embedding": [float(i), 1.0]}
        for i in reversed(range(len(body["input"])))
    ]
    return httpx.Response(200, json={"data": data, "model": body["model"]})


class TestOpenAIEmbeddingClient:

    @pytest.mark.asyncio
    async def test_request_shape_and_ordering(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return openai_handler(request)

        client = OpenAIEmbeddingClient(
            api_key="sk-test",
            base_url="https://example.test/v1/",
            model="text-embedding-ada-002",
            transport=httpx.MockTransport(handler),
        )

        vectors = await client.embed(["first", "second", "third"])

        assert vectors == [[0.0, 1.0], [1.0, 1.0], [2.0, 1.0]]
        assert seen["url"] == "https://example.test/v1/embeddings"
        assert seen["auth"] == "Bearer sk-test"
        assert seen["body"] == {"model": "text-embedding-ada-002", "input": ["first", "second", "third"]}

    @pytest.mark.asyncio
    async def test_http_error_is_raised(self):
        client = OpenAIEmbeddingClient(
            api_key="sk-test",
            transport=httpx.MockTransport(lambda request: httpx.Response(429, json={"error": "rate"})),
        )

        with pytest.raises(httpx.HTTPStatusError):
            await client.embed(["text"])

    @pytest.mark.asyncio
    async def test_malformed_response_raises_value_error(self):
        client = OpenAIEmbeddingClient(
            api_key="sk-test",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"oops": []})),
        )

        with pytest.raises(ValueError):
            await client.embed(["text"])

    def test_api_key_required(self):
        with pytest.raises(ValueError):
            OpenAIEmbeddingClient(api_key="")

    def test_satisfies_protocol(self):
        assert isinstance(OpenAIEmbeddingClient(api_key="sk-test"), EmbeddingProvider)


class TestOllamaEmbeddingClient:

    @pytest.mark.asyncio
    async def test_embed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/embed"
            body = json.loads(request.content)
            return httpx.Response(200, json={"embeddings": [[0.1, 0.2] for _ in body["input"]]})

        client = OllamaEmbeddingClient(
            base_url="http://ollama.test", model="nomic-embed-text", transport=httpx.MockTransport(handler)
        )

        assert await client.embed(["a", "b"]) == [[0.1, 0.2], [0.1, 0.2]]

    @pytest.mark.asyncio
    async def test_missing_embeddings_raises_value_error(self):
        client = OllamaEmbeddingClient(
            base_url="http://ollama.test",
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})),
        )

        with pytest.raises(ValueError):
            await client.embed(["a"])


class TestCreateEmbeddingProvider:

    def test_none_disables_embeddings(self):
        assert create_embedding_provider("none") is None

    def test_openai_without_key_is_unavailable(self, monkeypatch):
        monkeypatch.setattr(config, "OPENAI_API_KEY", "")
        assert create_embedding_provider("openai") is None

    def test_openai_with_key(self, monkeypatch):
        monkeypatch.setattr(config, "OPENAI_API_KEY", "sk-test")
        assert isinstance(create_embedding_provider("OpenAI"), OpenAIEmbeddingClient)

    def test_ollama(self):
        assert isinstance(create_embedding_provider("ollama"), OllamaEmbeddingClient)

    def test_unknown_provider_rejected(self):
        with pytest.raises(ValueError):
            create_embedding_provider("cohere")
