"""
Embedding Service

This module turns content and search queries into dense vectors through the
Cohere embed API (v2).

Model: embed-english-v3.0
- 1024 dimensions
- Separate input types for documents and queries
  ("search_document" / "search_query")

Features:
---------
- Deterministic rendering of a Content into embeddable text
- One shared httpx.AsyncClient per process (boot/close)
- Dimension and finiteness check before any vector leaves this module
- Every failure surfaces as EmbeddingError
"""

from typing import Any, Optional, Union

import httpx
import numpy as np

from second_brain.core.config import settings
from second_brain.core.exceptions import EmbeddingError
from second_brain.core.logging import get_logger
from second_brain.models.content import Content

logger = get_logger(__name__)

DOCUMENT_INPUT_TYPE = "search_document"
QUERY_INPUT_TYPE = "search_query"


def render_content_text(content: Content) -> str:
    """
    Render a Content into the text that gets embedded.

    Format:
        "Title: <title>. Type: <type>. Link: <url>. Description: <description>. Tags: <a>, <b>."

    Tags are sorted, so the same content always renders to the same text.
    """
    tags = ", ".join(sorted(tag.title for tag in content.tags))
    content_type = getattr(content.type, "value", content.type)
    link = content.link.hash if content.link is not None else ""
    return (
        f"Title: {content.title}. "
        f"Type: {content_type}. "
        f"Link: {link}. "
        f"Description: {content.description or ''}. "
        f"Tags: {tags}."
    ).strip()


class EmbeddingService:
    """
    Client for the Cohere embed endpoint.

    Usage:
    ------
    embedder = EmbeddingService()
    await embedder.boot()

    vector = await embedder.embed(content)         # document embedding
    vector = await embedder.embed("react hooks")   # query embedding

    await embedder.close()
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        dimension: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.COHERE_API_KEY
        self.base_url = (base_url or settings.COHERE_BASE_URL).rstrip("/")
        self.model = model or settings.EMBEDDING_MODEL
        self.dimension = dimension or settings.EMBEDDING_DIMENSION
        self.timeout = timeout or settings.EMBEDDING_TIMEOUT

        self._client: Optional[httpx.AsyncClient] = None

    # ================================
    # Lifecycle
    # ================================

    async def boot(self) -> None:
        """Open the shared HTTP client. Safe to call twice."""
        if self._client is not None:
            return

        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        else:
            logger.warning("cohere_api_key_missing")

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
        )
        logger.info(
            "embedding_service_booted",
            model=self.model,
            dimension=self.dimension,
            base_url=self.base_url,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("embedding_service_closed")

    # ================================
    # Public API
    # ================================

    async def embed(self, data: Union[Content, str, None]) -> list[float]:
        """
        Embed either a Content (as a document) or a raw string (as a query).

        Raises:
            EmbeddingError: Blank input, service failure, or bad vector
        """
        if data is None:
            raise EmbeddingError("Nothing to embed", details={"reason": "empty_input"})
        if isinstance(data, str):
            return await self.embed_query(data)
        return await self.embed_content(data)

    async def embed_content(self, content: Content) -> list[float]:
        """Embed a Content's rendered text with the document input type."""
        return await self._embed_text(render_content_text(content), DOCUMENT_INPUT_TYPE)

    async def embed_query(self, query: str) -> list[float]:
        """Embed a trimmed search query with the query input type."""
        return await self._embed_text(query, QUERY_INPUT_TYPE)

    # ================================
    # Internals
    # ================================

    async def _embed_text(self, text: Optional[str], input_type: str) -> list[float]:
        if text is None or not text.strip():
            raise EmbeddingError("Nothing to embed", details={"reason": "empty_input"})
        if self._client is None:
            raise EmbeddingError("Embedding client not initialised. Call boot() first.")

        body = {
            "model": self.model,
            "input_type": input_type,
            "embedding_types": ["float"],
            "texts": [text.strip()],
        }

        try:
            response = await self._client.post("/v2/embed", json=body)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            logger.error("embedding_timeout", model=self.model, timeout=self.timeout)
            raise EmbeddingError("Embedding request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.error(
                "embedding_request_failed",
                model=self.model,
                status_code=e.response.status_code,
            )
            raise EmbeddingError(
                f"Embedding service returned status {e.response.status_code}",
                details={"status_code": e.response.status_code},
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("embedding_request_failed", model=self.model, error=str(e))
            raise EmbeddingError("Embedding request failed") from e

        return self._extract_vector(data)

    def _extract_vector(self, data: Any) -> list[float]:
        """Pull the first float vector out of a v2/embed response and validate it."""
        try:
            vectors = data["embeddings"]["float"]
            vector = vectors[0] if vectors else None
        except (KeyError, TypeError, IndexError):
            vector = None

        if not vector:
            logger.error("embedding_missing_vector", model=self.model)
            raise EmbeddingError("Embedding service returned no vector")

        try:
            array = np.asarray(vector, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise EmbeddingError("Embedding vector is not numeric") from e

        if array.ndim != 1 or array.shape[0] != self.dimension:
            logger.error(
                "embedding_dimension_mismatch",
                expected=self.dimension,
                actual=int(array.size),
            )
            raise EmbeddingError(
                f"Expected a {self.dimension}-dimensional vector, got {array.size}",
                details={"expected": self.dimension, "actual": int(array.size)},
            )
        if not np.all(np.isfinite(array)):
            raise EmbeddingError("Embedding vector contains non-finite values")

        return array.tolist()
