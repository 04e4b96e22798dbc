"""HTTP surface tests using Quart's test client."""
import io

import pytest
from werkzeug.datastructures import FileStorage

from docintel import config
from docintel.main import create_app
from fakes import SAMPLE_TEXT


def upload_file(data: bytes = SAMPLE_TEXT.encode(), filename="report.txt", content_type="text/plain"):
    return {"file": FileStorage(io.BytesIO(data), filename=filename, content_type=content_type)}


@pytest.fixture
def app(processor, store):
    return create_app(processor=processor, store=store)


@pytest.fixture
def client(app):
    return app.test_client()


async def upload(client, form=None, **file_kwargs):
    return await client.post("/api/documents", files=upload_file(**file_kwargs), form=form or {})


class TestUpload:

    @pytest.mark.asyncio
    async def test_upload_processes_and_stores(self, client, store):
        response = await upload(client, form={"category": "financial", "sessionId": "s1"})

        assert response.status_code == 201
        body = await response.get_json()
        document = body["document"]
        assert body["success"] is True
        assert document["fileName"] == "report.txt"
        assert document["category"] == "financial"
        assert document["sessionId"] == "s1"
        assert document["chunksCreated"] == 3
        assert document["fallbackChunks"] == 0
        assert document["embeddingDegraded"] is False
        assert "chunks" not in document
        assert store.get(document["id"]) is not None

    @pytest.mark.asyncio
    async def test_missing_file_rejected(self, client):
        response = await client.post("/api/documents", form={"category": "general"})

        assert response.status_code == 400
        assert (await response.get_json())["error"] == "No file provided"

    @pytest.mark.asyncio
    async def test_oversized_file_rejected(self, client, store, monkeypatch):
        monkeypatch.setattr(config, "MAX_FILE_SIZE", 10)

        response = await upload(client)

        assert response.status_code == 400
        assert "too large" in (await response.get_json())["error"]
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_disallowed_type_rejected(self, client):
        response = await upload(client, filename="a.zip", content_type="application/zip")

        assert response.status_code == 400
        assert "not supported" in (await response.get_json())["error"]

    @pytest.mark.asyncio
    async def test_invalid_category_rejected(self, client):
        response = await upload(client, form={"category": "marketing"})

        assert response.status_code == 400
        assert "Invalid category" in (await response.get_json())["error"]

    @pytest.mark.asyncio
    async def test_degraded_upload_is_reported(self, fallback_processor, store):
        client = create_app(processor=fallback_processor, store=store).test_client()

        response = await upload(client)

        document = (await response.get_json())["document"]
        assert response.status_code == 201
        assert document["fallbackChunks"] == 3
        assert document["embeddingDegraded"] is True


class TestDocuments:

    @pytest.mark.asyncio
    async def test_list_and_filter(self, client):
        await upload(client, form={"category": "financial", "sessionId": "s1"})
        await upload(client, form={"category": "hr", "sessionId": "s2"})

        everything = await (await client.get("/api/documents")).get_json()
        hr_only = await (await client.get("/api/documents?category=hr")).get_json()
        session = await (await client.get("/api/documents?sessionId=s1")).get_json()

        assert everything["count"] == 2
        assert [d["category"] for d in hr_only["documents"]] == ["hr"]
        assert [d["sessionId"] for d in session["documents"]] == ["s1"]

    @pytest.mark.asyncio
    async def test_delete(self, client):
        document = (await (await upload(client)).get_json())["document"]

        first = await client.delete(f"/api/documents/{document['id']}")
        second = await client.delete(f"/api/documents/{document['id']}")

        assert first.status_code == 204
        assert second.status_code == 404


class TestSearch:

    @pytest.mark.asyncio
    async def test_search_returns_ranked_results(self, client):
        await upload(client)

        response = await client.post("/api/rag/search", json={"query": "revenue growth", "topK": 1})

        body = await response.get_json()
        assert response.status_code == 200
        assert body["count"] == 1
        assert body["degraded"] is False
        assert body["results"][0]["chunk"]["text"] == "Revenue growth was strong this quarter."
        assert body["results"][0]["document"]["fileName"] == "report.txt"
        assert "message" not in body

    @pytest.mark.asyncio
    async def test_empty_results_message(self, client):
        await upload(client)

        body = await (await client.post("/api/rag/search", json={"query": "strategy"})).get_json()

        assert body["count"] == 0
        assert body["message"] == "No relevant documents found"

    @pytest.mark.asyncio
    async def test_category_filter(self, client):
        await upload(client, form={"category": "hr"})

        body = await (
            await client.post(
                "/api/rag/search", json={"query": "revenue growth", "categories": ["financial"]}
            )
        ).get_json()

        assert body["count"] == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {"query": "revenue", "topK": 0},
        {"query": "revenue", "minSimilarity": 2},
        {"topK": 3},
        {"query": 42},
    ])
    async def test_invalid_requests_rejected(self, client, payload):
        response = await client.post("/api/rag/search", json=payload)
        assert response.status_code == 400


class TestContext:

    @pytest.mark.asyncio
    async def test_context_with_sources(self, client):
        await upload(client)

        body = await (
            await client.post("/api/rag/context", json={"query": "revenue growth"})
        ).get_json()

        assert body["context"] == "[Document: report.txt]\nRevenue growth was strong this quarter."
        assert body["totalChunks"] == 1
        assert body["sources"][0]["documentName"] == "report.txt"
        assert body["sources"][0]["chunkIndex"] == 0

    @pytest.mark.asyncio
    async def test_context_respects_max_length(self, client):
        await upload(client)

        body = await (
            await client.post("/api/rag/context", json={"query": "revenue growth", "maxLength": 20})
        ).get_json()

        assert len(body["context"]) <= 20

    @pytest.mark.asyncio
    async def test_negative_max_length_rejected(self, client):
        response = await client.post("/api/rag/context", json={"query": "x", "maxLength": -1})
        assert response.status_code == 400


class TestStatusAndHealth:

    @pytest.mark.asyncio
    async def test_status(self, client):
        await upload(client)

        body = await (await client.get("/api/rag/status")).get_json()

        assert body["embeddingAvailable"] is True
        assert body["store"]["document_count"] == 1
        assert body["store"]["chunk_count"] == 3

    @pytest.mark.asyncio
    async def test_ready_when_embeddings_available(self, client):
        response = await client.get("/health/ready")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_not_ready_without_provider(self, fallback_processor, store):
        client = create_app(processor=fallback_processor, store=store).test_client()

        response = await client.get("/health/ready")

        assert response.status_code == 503
        assert (await response.get_json())["embeddings"] is False

    @pytest.mark.asyncio
    async def test_live(self, client):
        response = await client.get("/health/live")
        assert (await response.get_json()) == {"status": "alive"}

    @pytest.mark.asyncio
    async def test_unknown_route_is_json_404(self, client):
        response = await client.get("/nope")

        assert response.status_code == 404
        assert (await response.get_json()) == {"error": "Not found"}
