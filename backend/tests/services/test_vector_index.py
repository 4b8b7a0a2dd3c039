"""
Tests for VectorIndexService.

The Qdrant REST API is mocked with respx.

This test module verifies:
1. ensure_collection is idempotent, checks an existing collection's config,
   and is fatal on failure
2. Search results come back best-first
3. Transport and HTTP failures become failed IndexResults
4. Point listing follows scroll pagination
"""

import json

import httpx
import pytest
import pytest_asyncio
import respx

from second_brain.core.exceptions import VectorIndexError
from second_brain.services.vector_index import IndexResult, VectorIndexService

BASE_URL = "http://qdrant.test:6333"
COLLECTION = "test_collection"


def ok(result) -> httpx.Response:
    return httpx.Response(200, json={"result": result, "status": "ok", "time": 0.001})


def collection_info(size: int, distance: str) -> dict:
    """Trimmed GET /collections/{name} result."""
    return {
        "status": "green",
        "points_count": 0,
        "config": {"params": {"vectors": {"size": size, "distance": distance}}},
    }


@pytest_asyncio.fixture
async def index():
    service = VectorIndexService(
        url=BASE_URL,
        api_key="qdrant-key",
        collection=COLLECTION,
        vector_size=4,
        scroll_page_size=2,
    )
    await service.boot()
    yield service
    await service.close()


class TestIndexResult:

    def test_success(self):
        result = IndexResult.success(5)

        assert result.ok
        assert result.unwrap() == 5

    def test_failure_unwrap_raises(self):
        result = IndexResult.failure(VectorIndexError("down"))

        assert not result.ok
        with pytest.raises(VectorIndexError):
            result.unwrap()


@pytest.mark.asyncio
class TestEnsureCollection:

    async def test_creates_missing_collection(self, index):
        with respx.mock(base_url=BASE_URL) as mock:
            mock.get(f"/collections/{COLLECTION}/exists").mock(return_value=ok({"exists": False}))
            create = mock.put(f"/collections/{COLLECTION}").mock(return_value=ok(True))

            await index.ensure_collection()

        body = json.loads(create.calls.last.request.content)
        assert body == {"vectors": {"size": 4, "distance": "Cosine"}}
        assert create.calls.last.request.headers["api-key"] == "qdrant-key"

    async def test_existing_collection_untouched(self, index):
        with respx.mock(base_url=BASE_URL, assert_all_called=False) as mock:
            mock.get(f"/collections/{COLLECTION}/exists").mock(return_value=ok({"exists": True}))
            mock.get(f"/collections/{COLLECTION}").mock(
                return_value=ok(collection_info(size=4, distance="Cosine"))
            )
            create = mock.put(f"/collections/{COLLECTION}")

            await index.ensure_collection()
            await index.ensure_collection()

        assert not create.called

    @pytest.mark.parametrize(
        "size, distance",
        [(384, "Cosine"), (4, "Dot"), (384, "Dot")],
    )
    async def test_existing_collection_with_other_config_raises(self, index, size, distance):
        with respx.mock(base_url=BASE_URL, assert_all_called=False) as mock:
            mock.get(f"/collections/{COLLECTION}/exists").mock(return_value=ok({"exists": True}))
            info = mock.get(f"/collections/{COLLECTION}").mock(
                return_value=ok(collection_info(size=size, distance=distance))
            )
            create = mock.put(f"/collections/{COLLECTION}")

            with pytest.raises(VectorIndexError) as exc_info:
                await index.ensure_collection()

        assert info.called
        assert not create.called
        assert exc_info.value.details["expected"] == {"size": 4, "distance": "Cosine"}
        assert exc_info.value.details["actual"] == {"size": size, "distance": distance}

    async def test_named_vector_collection_raises(self, index):
        named = {"config": {"params": {"vectors": {"text": {"size": 4, "distance": "Cosine"}}}}}
        with respx.mock(base_url=BASE_URL) as mock:
            mock.get(f"/collections/{COLLECTION}/exists").mock(return_value=ok({"exists": True}))
            mock.get(f"/collections/{COLLECTION}").mock(return_value=ok(named))

            with pytest.raises(VectorIndexError):
                await index.ensure_collection()

    async def test_unreachable_raises(self, index):
        with respx.mock(base_url=BASE_URL) as mock:
            mock.get(f"/collections/{COLLECTION}/exists").mock(
                side_effect=httpx.ConnectError("connection refused")
            )

            with pytest.raises(VectorIndexError):
                await index.ensure_collection()


@pytest.mark.asyncio
class TestPoints:

    async def test_upsert_waits_for_ack(self, index):
        with respx.mock(base_url=BASE_URL) as mock:
            route = mock.put(f"/collections/{COLLECTION}/points").mock(
                return_value=ok({"operation_id": 1, "status": "completed"})
            )

            result = await index.upsert_point(7, [0.1, 0.2, 0.3, 0.4], {"id": 7, "title": "t", "tags": []})

        assert result.ok and result.value == 7
        request = route.calls.last.request
        assert request.url.params["wait"] == "true"
        assert json.loads(request.content)["points"][0]["id"] == 7

    async def test_upsert_failure_is_a_result(self, index):
        with respx.mock(base_url=BASE_URL) as mock:
            mock.put(f"/collections/{COLLECTION}/points").mock(return_value=httpx.Response(500))

            result = await index.upsert_point(7, [0.0] * 4, {})

        assert not result.ok
        assert isinstance(result.error, VectorIndexError)

    async def test_search_best_first(self, index):
        hits = [
            {"id": 7, "score": 0.5, "payload": {"id": 7}},
            {"id": 5, "score": 0.9, "payload": {"id": 5}},
            {"id": 9, "score": 0.8, "payload": {"id": 9}},
        ]
        with respx.mock(base_url=BASE_URL) as mock:
            route = mock.post(f"/collections/{COLLECTION}/points/search").mock(return_value=ok(hits))

            result = await index.search_nearest([0.1] * 4, limit=3)

        assert [m.id for m in result.unwrap()] == [5, 9, 7]
        assert json.loads(route.calls.last.request.content)["limit"] == 3

    async def test_search_timeout_is_a_result(self, index):
        with respx.mock(base_url=BASE_URL) as mock:
            mock.post(f"/collections/{COLLECTION}/points/search").mock(
                side_effect=httpx.ReadTimeout("timed out")
            )

            result = await index.search_nearest([0.1] * 4)

        assert not result.ok

    async def test_delete_point(self, index):
        with respx.mock(base_url=BASE_URL) as mock:
            route = mock.post(f"/collections/{COLLECTION}/points/delete").mock(
                return_value=ok({"operation_id": 2, "status": "completed"})
            )

            result = await index.delete_point(7)

        assert result.ok
        assert json.loads(route.calls.last.request.content) == {"points": [7]}

    async def test_list_point_ids_follows_pages(self, index):
        pages = [
            ok({"points": [{"id": 1}, {"id": 2}], "next_page_offset": 3}),
            ok({"points": [{"id": 3}], "next_page_offset": None}),
        ]
        with respx.mock(base_url=BASE_URL) as mock:
            route = mock.post(f"/collections/{COLLECTION}/points/scroll").mock(side_effect=pages)

            result = await index.list_point_ids()

        assert result.unwrap() == [1, 2, 3]
        assert json.loads(route.calls[1].request.content)["offset"] == 3

    async def test_check_health(self, index):
        with respx.mock(base_url=BASE_URL) as mock:
            mock.get("/collections").mock(return_value=ok({"collections": [{"name": COLLECTION}]}))

            assert await index.check_health() is True

    async def test_check_health_down(self, index):
        with respx.mock(base_url=BASE_URL) as mock:
            mock.get("/collections").mock(side_effect=httpx.ConnectError("refused"))

            assert await index.check_health() is False
