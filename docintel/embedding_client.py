"""Embedding provider clients (OpenAI-compatible and Ollama) with error handling."""
from typing import List, Optional, Protocol, runtime_checkable

import httpx
import structlog

from docintel import config

logger = structlog.get_logger()


@runtime_checkable
class EmbeddingProvider(Protocol):
    """External service turning texts into vectors, index-aligned with the input."""

    name: str
    model: str

    async def embed(self, texts: List[str]) -> List[List[float]]:
        ...


class OpenAIEmbeddingClient:
    """Async client for an OpenAI-compatible ``/embeddings`` endpoint."""

    name = "openai"

    def __init__(
        self,
        api_key: str,
        base_url: str = None,
        model: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the client.

        Args:
            api_key: Bearer token for the API
            base_url: API base URL (defaults to config.OPENAI_BASE_URL)
            model: Embedding model (defaults to config.EMBEDDING_MODEL)
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        if not api_key:
            raise ValueError("An API key is required for the OpenAI embedding client")
        self.api_key = api_key
        self.base_url = (base_url or config.OPENAI_BASE_URL).rstrip("/")
        self.model = model or config.EMBEDDING_MODEL
        self.timeout = timeout or config.EMBEDDING_TIMEOUT
        self._transport = transport

    async def embed(self, texts: List[str]) -> List[List[float]]:
        """Generate embeddings for a batch of texts.

        Args:
            texts: Texts to embed

        Returns:
            One vector per input text, in input order

        Raises:
            httpx.HTTPError: On API errors
            ValueError: If the response body is malformed
        """
        payload = {"model": self.model, "input": texts}
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                logger.debug(
                    "openai_embedding_request",
                    model=self.model,
                    batch_size=len(texts),
                )

                response = await client.post(
                    f"{self.base_url}/embeddings",
                    json=payload,
                    headers=headers,
                )
                response.raise_for_status()

                data = response.json()

        except httpx.HTTPError as e:
            logger.error(
                "openai_embedding_error",
                error=str(e),
                status_code=getattr(getattr(e, "response", None), "status_code", None),
            )
            raise

        try:
            items = sorted(data["data"], key=lambda item: item["index"])
            return [item["embedding"] for item in items]
        except (KeyError, TypeError) as e:
            raise ValueError(f"Malformed embedding response: {e}") from e


class OllamaEmbeddingClient:
    """Async client for the Ollama ``/api/embed`` endpoint."""

    name = "ollama"

    def __init__(
        self,
        base_url: str = None,
        model: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or config.OLLAMA_BASE_URL).rstrip("/")
        self.model = model or config.EMBEDDING_MODEL
        self.timeout = timeout or config.EMBEDDING_TIMEOUT
        self._transport = transport

    async def embed(self, texts: List[str]) -> List[List[float]]:
        """Generate embeddings for a batch of texts.

        Raises:
            httpx.HTTPError: On API errors
            ValueError: If the response body is malformed
        """
        payload = {"model": self.model, "input": texts}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                logger.debug(
                    "ollama_embedding_request",
                    model=self.model,
                    batch_size=len(texts),
                )

                response = await client.post(f"{self.base_url}/api/embed", json=payload)
                response.raise_for_status()

                data = response.json()

        except httpx.HTTPError as e:
            logger.error("ollama_embedding_error", error=str(e), base_url=self.base_url)
            raise

        embeddings = data.get("embeddings") if isinstance(data, dict) else None
        if embeddings is None:
            raise ValueError("Malformed embedding response: missing 'embeddings'")
        return embeddings


def create_embedding_provider(provider_name: str = None) -> Optional[EmbeddingProvider]:
    """Build the configured provider, or None when embeddings are unavailable.

    Args:
        provider_name: openai | ollama | none (defaults to config.EMBEDDING_PROVIDER)

    Returns:
        Provider instance, or None (fallback-vector mode)

    Raises:
        ValueError: If the provider name is unknown
    """
    provider_name = (provider_name or config.EMBEDDING_PROVIDER).strip().lower()

    if provider_name == "none":
        logger.warning("embedding_provider_disabled")
        return None

    if provider_name == "openai":
        if not config.OPENAI_API_KEY:
            logger.warning("openai_api_key_missing", fallback="random_vectors")
            return None
        return OpenAIEmbeddingClient(api_key=config.OPENAI_API_KEY)

    if provider_name == "ollama":
        return OllamaEmbeddingClient()

    raise ValueError(f"Unknown embedding provider: {provider_name}")
