"""Quart application exposing document upload, search and context retrieval."""
from typing import Optional

import structlog
from pydantic import ValidationError
from quart import Blueprint, Quart, current_app, jsonify, request

from docintel import config
from docintel.log import configure_logging
from docintel.rag.errors import EmbeddingDimensionError, EmbeddingUnavailableError
from docintel.rag.models import IngestMetadata, SearchOptions
from docintel.rag.pipeline import DocumentProcessor, get_document_processor
from docintel.rag.store import InMemoryDocumentStore

logger = structlog.get_logger()

api = Blueprint("api", __name__)


def _processor() -> DocumentProcessor:
    return current_app.config["DOCUMENT_PROCESSOR"]


def _store() -> InMemoryDocumentStore:
    return current_app.config["DOCUMENT_STORE"]


def _validation_message(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(part) for part in err['loc']) or 'body'}: {err['msg']}"
        for err in error.errors()
    )


@api.route("/api/documents", methods=["POST"])
async def upload_document():
    """Upload and process a document.

    Expects multipart form data:
        file: the document
        category: financial | strategic | technical | hr | general (optional)
        description: free text (optional)
        sessionId: owning session (optional)

    Returns JSON summary of the processed document (201).
    """
    files = await request.files
    form = await request.form

    upload = files.get("file")
    if upload is None or not upload.filename:
        return jsonify({"error": "No file provided"}), 400

    data = upload.read()
    if len(data) > config.MAX_FILE_SIZE:
        logger.warning("upload_too_large", file_name=upload.filename, file_size=len(data))
        return jsonify({
            "error": f"File too large. Maximum size is {config.MAX_FILE_SIZE // (1024 * 1024)}MB"
        }), 400

    content_type = upload.mimetype
    if content_type not in config.ALLOWED_CONTENT_TYPES:
        logger.warning("upload_type_rejected", file_name=upload.filename, content_type=content_type)
        return jsonify({"error": f"File type not supported: {content_type or 'unknown'}"}), 400

    try:
        metadata = IngestMetadata.model_validate({
            "category": form.get("category") or "general",
            "description": form.get("description") or None,
            "sessionId": form.get("sessionId") or None,
        })
    except ValidationError as e:
        return jsonify({"error": f"Invalid form data: {_validation_message(e)}"}), 400

    if metadata.category not in config.DOCUMENT_CATEGORIES:
        return jsonify({
            "error": f"Invalid category '{metadata.category}'. "
            f"Expected one of: {', '.join(config.DOCUMENT_CATEGORIES)}"
        }), 400

    document = await _processor().process_document(
        data, upload.filename, content_type, metadata
    )
    _store().add(document)

    logger.info(
        "document_uploaded",
        document_id=document.id,
        file_name=document.file_name,
        chunks_created=len(document.chunks),
        fallback_chunks=document.fallback_chunk_count,
    )

    summary = document.to_dict()
    summary.pop("chunks")
    return jsonify({"success": True, "document": summary}), 201


@api.route("/api/documents", methods=["GET"])
async def list_documents():
    """List stored documents, optionally filtered by ``category`` and ``sessionId``."""
    documents = _store().list(
        category=request.args.get("category") or None,
        session_id=request.args.get("sessionId") or None,
    )

    summaries = []
    for document in documents:
        summary = document.to_dict()
        summary.pop("chunks")
        summaries.append(summary)

    return jsonify({"documents": summaries, "count": len(summaries)})


@api.route("/api/documents/<document_id>", methods=["DELETE"])
async def delete_document(document_id: str):
    """Delete a document.

    Returns:
        204 No Content if successful
        404 Not Found if the document doesn't exist
    """
    if _store().remove(document_id):
        return "", 204
    return jsonify({"error": "Document not found"}), 404


@api.route("/api/rag/search", methods=["POST"])
async def rag_search():
    """Semantic search over stored documents.

    Expects JSON body:
    {
        "query": "revenue growth",
        "topK": 5,              // optional
        "minSimilarity": 0.7,   // optional
        "categories": ["financial"]  // optional
    }
    """
    data = await request.get_json(silent=True)

    if not isinstance(data, dict) or not isinstance(data.get("query"), str):
        return jsonify({"error": "Missing 'query' in request body"}), 400

    query = data["query"]
    try:
        options = SearchOptions.model_validate(
            {key: value for key, value in data.items() if key != "query" and value is not None}
        )
    except ValidationError as e:
        return jsonify({"error": f"Invalid search options: {_validation_message(e)}"}), 400

    response = await _processor().search_documents_with_status(
        query, _store().documents(), options
    )

    body = {
        "query": query,
        "results": [result.to_dict() for result in response.results],
        "count": len(response.results),
        "degraded": response.degraded,
        "queryEmbeddingFallback": response.query_embedding_fallback,
        "degradedDocuments": response.degraded_document_ids,
    }
    if response.is_empty:
        body["message"] = "No relevant documents found"

    return jsonify(body)


@api.route("/api/rag/context", methods=["POST"])
async def rag_context():
    """Assemble a bounded context string for a query.

    Expects JSON body:
    {
        "query": "revenue growth",
        "maxLength": 2000  // optional
    }
    """
    data = await request.get_json(silent=True)

    if not isinstance(data, dict) or not isinstance(data.get("query"), str):
        return jsonify({"error": "Missing 'query' in request body"}), 400

    max_length = data.get("maxLength", config.MAX_CONTEXT_LENGTH)
    if not isinstance(max_length, int) or isinstance(max_length, bool) or max_length < 0:
        return jsonify({"error": "'maxLength' must be a non-negative integer"}), 400

    bundle = await _processor().get_context_bundle(
        data["query"], _store().documents(), max_context_length=max_length
    )

    return jsonify({
        "context": bundle.context,
        "sources": [source.to_dict() for source in bundle.sources],
        "totalChunks": bundle.total_results,
    })


@api.route("/api/rag/status", methods=["GET"])
async def rag_status():
    """Collection statistics and embedding availability."""
    return jsonify({
        "embeddingAvailable": _processor().embedding_available,
        "store": _store().get_stats(),
        "config": {
            "chunkSize": config.CHUNK_SIZE,
            "chunkOverlap": config.CHUNK_OVERLAP,
            "maxChunks": config.MAX_CHUNKS,
            "embeddingModel": config.EMBEDDING_MODEL,
            "embeddingDimension": config.EMBEDDING_DIMENSION,
        },
    })


@api.route("/health/ready")
async def health_ready():
    """Readiness probe - embeddings must come from a real provider."""
    available = _processor().embedding_available
    checks = {
        "status": "healthy" if available else "unhealthy",
        "embeddings": available,
    }
    if not available:
        checks["error"] = "No embedding provider configured; search would use fallback vectors"
    return jsonify(checks), 200 if available else 503


@api.route("/health/live")
async def health_live():
    """Liveness probe - check if app is running."""
    return jsonify({"status": "alive"}), 200


@api.app_errorhandler(EmbeddingDimensionError)
async def dimension_mismatch(error):
    logger.error("embedding_dimension_error", error=str(error))
    return jsonify({"error": str(error)}), 409


@api.app_errorhandler(EmbeddingUnavailableError)
async def embeddings_unavailable(error):
    logger.error("embedding_unavailable", error=str(error))
    return jsonify({"error": str(error)}), 503


@api.app_errorhandler(404)
async def not_found(error):
    """Handle 404 errors."""
    return jsonify({"error": "Not found"}), 404


@api.app_errorhandler(500)
async def internal_error(error):
    """Handle 500 errors."""
    logger.error("internal_server_error", error=str(error))
    return jsonify({"error": "Internal server error"}), 500


def create_app(
    processor: Optional[DocumentProcessor] = None,
    store: Optional[InMemoryDocumentStore] = None,
) -> Quart:
    """Build the Quart application.

    Args:
        processor: Document processor (default: module singleton)
        store: Document collection (default: a new in-memory store)

    Returns:
        Configured Quart app
    """
    configure_logging()

    app = Quart(__name__)
    app.config["DOCUMENT_PROCESSOR"] = processor or get_document_processor()
    app.config["DOCUMENT_STORE"] = store if store is not None else InMemoryDocumentStore()
    app.register_blueprint(api)

    logger.info(
        "app_created",
        embedding_available=app.config["DOCUMENT_PROCESSOR"].embedding_available,
    )

    return app


if __name__ == "__main__":
    # For development - use hypercorn in production
    create_app().run(host="0.0.0.0", port=5000, debug=True)
