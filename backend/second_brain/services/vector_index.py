"""
Vector Index Service

Wraps the Qdrant REST API via httpx. One point per Content, keyed by the
Content id, carrying the payload mirror {id, title, tags}.

Failure policy:
---------------
ensure_collection() raises VectorIndexError; the application refuses to
start without a usable collection.

Every other operation returns an IndexResult instead of raising on
transport or HTTP failures. The indexing pipeline decides whether a
failure degrades (search, delete) or is only recorded (create).
"""

from dataclasses import dataclass, field
from typing import Any, Generic, Optional, TypeVar

import httpx

from second_brain.core.config import settings
from second_brain.core.exceptions import VectorIndexError
from second_brain.core.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class VectorMatch:
    """One nearest-neighbour hit."""

    id: int
    score: float
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass
class IndexResult(Generic[T]):
    """Outcome of a vector index call: a value or a VectorIndexError."""

    value: Optional[T] = None
    error: Optional[VectorIndexError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value, or raise the recorded error."""
        if self.error is not None:
            raise self.error
        return self.value

    @classmethod
    def success(cls, value: T) -> "IndexResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: VectorIndexError) -> "IndexResult[T]":
        return cls(error=error)


class VectorIndexService:
    """
    Qdrant collection client.

    Usage:
    ------
    index = VectorIndexService()
    await index.boot()
    await index.ensure_collection()

    result = await index.search_nearest(vector, limit=3)
    if result.ok:
        for match in result.value:
            ...

    await index.close()
    """

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        collection: Optional[str] = None,
        vector_size: Optional[int] = None,
        distance: Optional[str] = None,
        timeout: Optional[float] = None,
        scroll_page_size: Optional[int] = None,
    ):
        self.url = (url or settings.QDRANT_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.QDRANT_API_KEY
        self.collection = collection or settings.QDRANT_COLLECTION
        self.vector_size = vector_size or settings.EMBEDDING_DIMENSION
        self.distance = distance or settings.QDRANT_DISTANCE
        self.timeout = timeout or settings.QDRANT_TIMEOUT
        self.scroll_page_size = scroll_page_size or settings.QDRANT_SCROLL_PAGE_SIZE

        self._client: Optional[httpx.AsyncClient] = None

    ##########################################
    ############### LIFECYCLE ################
    ##########################################

    async def boot(self) -> None:
        """Initialise the HTTP client with base URL and auth headers."""
        if self._client is not None:
            return
        headers = {"api-key": self.api_key} if self.api_key else {}
        self._client = httpx.AsyncClient(
            base_url=self.url,
            headers=headers,
            timeout=self.timeout,
        )
        logger.info("vector_index_booted", url=self.url, collection=self.collection)

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
            logger.info("vector_index_closed")

    ##########################################
    ############### COLLECTION ###############
    ##########################################

    async def ensure_collection(self) -> None:
        """
        Create the collection if it does not exist yet.

        Idempotent: an existing collection is left untouched, but its vector
        size and distance must match this service's.

        Raises:
            VectorIndexError: Qdrant unreachable, collection creation failed,
                or the existing collection has a different vector config
        """
        response = await self._request("GET", f"/collections/{self.collection}/exists")
        exists = bool(self._result(response).get("exists"))
        if exists:
            await self._check_collection_config()
            logger.info("vector_collection_exists", collection=self.collection)
            return

        body = {"vectors": {"size": self.vector_size, "distance": self.distance}}
        response = await self._request("PUT", f"/collections/{self.collection}", json=body)
        self._result(response)
        logger.info(
            "vector_collection_created",
            collection=self.collection,
            size=self.vector_size,
            distance=self.distance,
        )

    async def _check_collection_config(self) -> None:
        response = await self._request("GET", f"/collections/{self.collection}")
        info = self._result(response)
        vectors = info.get("config", {}).get("params", {}).get("vectors", {})

        # Named-vector collections have no top-level size
        actual = {"size": vectors.get("size"), "distance": vectors.get("distance")}
        expected = {"size": self.vector_size, "distance": self.distance}
        if actual != expected:
            logger.error(
                "vector_collection_mismatch",
                collection=self.collection,
                expected=expected,
                actual=actual,
            )
            raise VectorIndexError(
                f"Collection {self.collection} has vectors {actual}, expected {expected}",
                details={"expected": expected, "actual": actual},
            )

    async def check_health(self) -> bool:
        """True when Qdrant answers and the collection is listed."""
        try:
            response = await self._request("GET", "/collections")
            collections = self._result(response).get("collections", [])
        except VectorIndexError:
            return False
        return any(c.get("name") == self.collection for c in collections)

    ##########################################
    ################ POINTS ##################
    ##########################################

    async def upsert_point(
        self,
        point_id: int,
        vector: list[float],
        payload: dict[str, Any],
    ) -> IndexResult[int]:
        """Insert or replace one point and wait for Qdrant to apply it."""
        body = {"points": [{"id": point_id, "vector": vector, "payload": payload}]}
        try:
            response = await self._request(
                "PUT",
                f"/collections/{self.collection}/points",
                params={"wait": "true"},
                json=body,
            )
            self._result(response)
        except VectorIndexError as e:
            logger.warning("vector_upsert_failed", point_id=point_id, error=e.message)
            return IndexResult.failure(e)

        logger.debug("vector_upserted", point_id=point_id)
        return IndexResult.success(point_id)

    async def search_nearest(
        self,
        query_vector: list[float],
        limit: int = 3,
    ) -> IndexResult[list[VectorMatch]]:
        """Nearest points to query_vector, highest score first."""
        body = {"vector": query_vector, "limit": limit, "with_payload": True}
        try:
            response = await self._request(
                "POST", f"/collections/{self.collection}/points/search", json=body
            )
            points = self._result(response, default=[])
            matches = [
                VectorMatch(
                    id=int(point["id"]),
                    score=float(point.get("score") or 0.0),
                    payload=point.get("payload") or {},
                )
                for point in points
            ]
        except VectorIndexError as e:
            logger.warning("vector_search_failed", error=e.message)
            return IndexResult.failure(e)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("vector_search_malformed", error=str(e))
            return IndexResult.failure(VectorIndexError("Malformed search response"))

        matches.sort(key=lambda match: match.score, reverse=True)
        return IndexResult.success(matches)

    async def delete_point(self, point_id: int) -> IndexResult[int]:
        """Delete one point. Deleting a missing point is not an error."""
        try:
            response = await self._request(
                "POST",
                f"/collections/{self.collection}/points/delete",
                params={"wait": "true"},
                json={"points": [point_id]},
            )
            self._result(response)
        except VectorIndexError as e:
            logger.warning("vector_delete_failed", point_id=point_id, error=e.message)
            return IndexResult.failure(e)

        logger.debug("vector_deleted", point_id=point_id)
        return IndexResult.success(point_id)

    async def list_point_ids(self) -> IndexResult[list[int]]:
        """Every point id in the collection, scrolling page by page."""
        ids: list[int] = []
        offset: Any = None
        try:
            while True:
                body: dict[str, Any] = {
                    "limit": self.scroll_page_size,
                    "with_payload": False,
                    "with_vector": False,
                }
                if offset is not None:
                    body["offset"] = offset
                response = await self._request(
                    "POST", f"/collections/{self.collection}/points/scroll", json=body
                )
                page = self._result(response)
                ids.extend(int(point["id"]) for point in page.get("points", []))
                offset = page.get("next_page_offset")
                if offset is None:
                    break
        except VectorIndexError as e:
            logger.warning("vector_scroll_failed", error=e.message)
            return IndexResult.failure(e)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("vector_scroll_malformed", error=str(e))
            return IndexResult.failure(VectorIndexError("Malformed scroll response"))

        return IndexResult.success(ids)

    ##########################################
    ############# CORE REQUESTS ##############
    ##########################################

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        """
        Send an HTTP request to Qdrant.

        Raises:
            VectorIndexError: Client not booted, transport failure or non-2xx status
        """
        if self._client is None:
            raise VectorIndexError("Vector index client not initialised. Call boot() first.")
        try:
            response = await self._client.request(method, url, **kwargs)
        except httpx.TimeoutException as e:
            raise VectorIndexError(f"Qdrant request timed out: {method} {url}") from e
        except httpx.HTTPError as e:
            raise VectorIndexError(f"Qdrant request failed: {method} {url}: {e}") from e

        if response.status_code not in (200, 201):
            raise VectorIndexError(
                f"Qdrant {method} {url} failed with status {response.status_code}",
                details={"status_code": response.status_code},
            )
        return response

    @staticmethod
    def _result(response: httpx.Response, default: Any = None) -> Any:
        """The "result" member of a Qdrant response body."""
        try:
            data = response.json()
        except ValueError as e:
            raise VectorIndexError("Qdrant returned a non-JSON body") from e
        result = data.get("result") if isinstance(data, dict) else None
        if result is None:
            return default if default is not None else {}
        return result
