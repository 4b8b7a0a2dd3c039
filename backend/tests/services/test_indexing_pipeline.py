"""
Tests for IndexingPipeline.

Runs against the in-memory database plus the FakeEmbedder / FakeVectorIndex
from conftest. Failure injection uses AsyncMock.

This test module verifies:
1. Dual-store consistency on create
2. Ownership filtering and score ranking on search
3. Delete removes searchability and tolerates index failures
4. Embedding failures never reach the index
5. Reconciliation backfills and prunes
"""

from unittest.mock import AsyncMock

import pytest

from second_brain.core.exceptions import EmbeddingError, NotFoundError, StoreError, ValidationError
from second_brain.models import Content, ContentType
from second_brain.schemas.content import ContentCreate
from second_brain.services.indexing_pipeline import IndexingPipeline
from second_brain.services.vector_index import IndexResult, VectorMatch


def make_request(title: str, tags=None, content_type=ContentType.ARTICLE) -> ContentCreate:
    return ContentCreate(
        title=title,
        link=f"https://example.com/{title.replace(' ', '-')}",
        type=content_type,
        tags=tags or [],
        description="notes",
    )


@pytest.fixture
def pipeline(db_session, embedder, vector_index) -> IndexingPipeline:
    return IndexingPipeline(db_session, embedder, vector_index)


@pytest.mark.asyncio
class TestCreate:

    async def test_create_writes_both_stores(self, pipeline, vector_index, test_user):
        outcome = await pipeline.create_content(test_user.id, make_request("Rust ownership", ["Rust"]))

        assert outcome.indexed is True
        vector, payload = vector_index.points[outcome.content.id]
        assert payload == {"id": outcome.content.id, "title": "Rust ownership", "tags": ["rust"]}
        assert len(vector) == 1024

    async def test_exact_title_search_finds_new_content(self, pipeline, test_user):
        for title in ("Kubernetes operators", "Sourdough starter", "Jazz piano voicings"):
            await pipeline.create_content(test_user.id, make_request(title))
        created = await pipeline.create_content(test_user.id, make_request("Rust ownership"))

        outcome = await pipeline.search(test_user.id, "Rust ownership")

        assert created.content.id in [c.id for c in outcome.results]
        assert outcome.query == "Rust ownership"

    async def test_store_error_skips_embedding(self, pipeline, embedder, vector_index, test_user):
        pipeline.repository.create_content_with_link = AsyncMock(side_effect=StoreError("db down"))

        with pytest.raises(StoreError):
            await pipeline.create_content(test_user.id, make_request("anything"))

        assert embedder.calls == []
        assert vector_index.points == {}

    async def test_embedding_failure_keeps_content_unindexed(self, pipeline, embedder, vector_index, test_user):
        embedder.fail = True

        outcome = await pipeline.create_content(test_user.id, make_request("Offline note"))

        assert outcome.indexed is False
        assert vector_index.points == {}
        assert [c.id for c in await pipeline.list_content(test_user.id)] == [outcome.content.id]

    async def test_dimension_guard_prevents_index_write(self, pipeline, vector_index, test_user):
        pipeline.embedder.embed_content = AsyncMock(
            side_effect=EmbeddingError("Expected a 1024-dimensional vector, got 3")
        )
        vector_index.upsert_point = AsyncMock()

        outcome = await pipeline.create_content(test_user.id, make_request("Bad vector"))

        assert outcome.indexed is False
        vector_index.upsert_point.assert_not_awaited()

    async def test_index_failure_keeps_content_unindexed(self, pipeline, vector_index, test_user):
        vector_index.fail = True

        outcome = await pipeline.create_content(test_user.id, make_request("No index"))

        assert outcome.indexed is False
        assert outcome.content.id is not None


@pytest.mark.asyncio
class TestSearch:

    async def _contents(self, db_session, user_id, count):
        from second_brain.services.content_repository import ContentRepository

        repo = ContentRepository(db_session)
        return [
            await repo.create_content_with_link(
                user_id=user_id,
                title=f"item {i}",
                content_type=ContentType.VIDEO,
                description="",
                link_hash=f"https://example.com/{i}",
            )
            for i in range(count)
        ]

    async def test_ranking_order(self, pipeline, db_session, vector_index, test_user):
        a, b, c = await self._contents(db_session, test_user.id, 3)
        # Matches arrive in id order; the result must follow the scores
        vector_index.search_nearest = AsyncMock(return_value=IndexResult.success([
            VectorMatch(id=a.id, score=0.9),
            VectorMatch(id=b.id, score=0.5),
            VectorMatch(id=c.id, score=0.8),
        ]))

        outcome = await pipeline.search(test_user.id, "anything")

        assert [x.id for x in outcome.results] == [a.id, c.id, b.id]

    async def test_ownership_filtering(self, pipeline, db_session, vector_index, test_user, other_user):
        (theirs,) = await self._contents(db_session, other_user.id, 1)
        (mine,) = await self._contents(db_session, test_user.id, 1)
        vector_index.search_nearest = AsyncMock(return_value=IndexResult.success([
            VectorMatch(id=theirs.id, score=0.99),
            VectorMatch(id=mine.id, score=0.10),
        ]))

        outcome = await pipeline.search(test_user.id, "anything")

        assert [x.id for x in outcome.results] == [mine.id]

    async def test_index_failure_degrades_to_empty(self, pipeline, vector_index, test_user):
        vector_index.fail = True

        outcome = await pipeline.search(test_user.id, "anything")

        assert outcome.results == []

    async def test_embedding_failure_propagates(self, pipeline, embedder, test_user):
        embedder.fail = True

        with pytest.raises(EmbeddingError):
            await pipeline.search(test_user.id, "anything")

    @pytest.mark.parametrize("query", ["", "   ", None, 42])
    async def test_invalid_query(self, pipeline, test_user, query):
        with pytest.raises(ValidationError):
            await pipeline.search(test_user.id, query)


@pytest.mark.asyncio
class TestDelete:

    async def test_delete_removes_searchability(self, pipeline, vector_index, test_user):
        created = await pipeline.create_content(test_user.id, make_request("Rust ownership"))

        await pipeline.delete_content(test_user.id, created.content.id)

        assert created.content.id not in vector_index.points
        outcome = await pipeline.search(test_user.id, "Rust ownership")
        assert created.content.id not in [c.id for c in outcome.results]

    async def test_other_users_content_is_not_found(self, pipeline, vector_index, test_user, other_user):
        created = await pipeline.create_content(other_user.id, make_request("Private"))

        with pytest.raises(NotFoundError):
            await pipeline.delete_content(test_user.id, created.content.id)

        assert created.content.id in vector_index.points

    async def test_index_failure_does_not_block_delete(self, pipeline, db_session, vector_index, test_user):
        created = await pipeline.create_content(test_user.id, make_request("Doomed"))
        vector_index.fail = True

        await pipeline.delete_content(test_user.id, created.content.id)

        assert await db_session.get(Content, created.content.id) is None


@pytest.mark.asyncio
class TestReindex:

    async def test_backfills_missing_points(self, pipeline, vector_index, test_user):
        vector_index.fail = True
        first = await pipeline.create_content(test_user.id, make_request("one"))
        second = await pipeline.create_content(test_user.id, make_request("two"))
        vector_index.fail = False

        report = await pipeline.reindex()

        assert (report.checked, report.missing, report.reindexed, report.failed) == (2, 2, 2, 0)
        assert set(vector_index.points) == {first.content.id, second.content.id}

    async def test_prunes_dangling_points(self, pipeline, vector_index, test_user):
        kept = await pipeline.create_content(test_user.id, make_request("kept"))
        await vector_index.upsert_point(999, [0.0] * 1024, {"id": 999, "title": "ghost", "tags": []})

        report = await pipeline.reindex()

        assert report.pruned == 1
        assert set(vector_index.points) == {kept.content.id}

    async def test_single_user_pass_never_prunes(self, pipeline, vector_index, test_user, other_user):
        theirs = await pipeline.create_content(other_user.id, make_request("theirs"))

        report = await pipeline.reindex(user_id=test_user.id)

        assert report.checked == 0
        assert report.pruned == 0
        assert theirs.content.id in vector_index.points

    async def test_counts_failures(self, pipeline, embedder, vector_index, test_user):
        embedder.fail = True
        await pipeline.create_content(test_user.id, make_request("stuck"))

        report = await pipeline.reindex()

        assert report.missing == 1
        assert report.failed == 1
        assert report.reindexed == 0
