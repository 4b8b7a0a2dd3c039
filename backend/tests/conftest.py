"""
Pytest configuration and fixtures.

This file is automatically discovered by pytest and provides
shared fixtures for all test modules.

Tests run against an in-memory SQLite database (aiosqlite) and in-memory
stand-ins for the embedding service and the vector index, so no external
service is needed. HTTP-level tests of the real clients use respx.

References:
-----------
- Pytest Fixtures: https://docs.pytest.org/en/stable/fixture.html
- FastAPI Testing: https://fastapi.tiangolo.com/advanced/async-tests/
"""

import os

# Settings are read at import time
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-that-is-at-least-32-characters")
os.environ.setdefault("COHERE_API_KEY", "test-cohere-key")
os.environ.setdefault("QDRANT_URL", "http://qdrant.test:6333")
os.environ.setdefault("LOG_FORMAT", "text")

import re
import zlib
from typing import Any, AsyncGenerator, Optional

import numpy as np
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from second_brain.api.deps import get_embedder, get_vector_index
from second_brain.core.config import settings
from second_brain.core.exceptions import EmbeddingError, VectorIndexError
from second_brain.core.security import create_access_token, get_password_hash
from second_brain.db.base import Base
from second_brain.db.deps import get_db, get_db_override
from second_brain.main import app
from second_brain.models import User
from second_brain.services.embedder import render_content_text
from second_brain.services.vector_index import IndexResult, VectorMatch


# ================================
# In-memory Service Fakes
# ================================

_TOKEN_RE = re.compile(r"[a-z0-9]+")


def bag_of_words_vector(text: str, dimension: int = 1024) -> list[float]:
    """Deterministic unit vector: each lower-cased token hashed into a bucket."""
    vector = np.zeros(dimension, dtype=np.float64)
    for token in _TOKEN_RE.findall(text.lower()):
        vector[zlib.crc32(token.encode("utf-8")) % dimension] += 1.0
    norm = np.linalg.norm(vector)
    if norm:
        vector /= norm
    return vector.tolist()


class FakeEmbedder:
    """Same surface as EmbeddingService, computed locally."""

    def __init__(self, dimension: int = 1024):
        self.dimension = dimension
        self.fail = False
        self.calls: list[str] = []

    async def boot(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def embed(self, data):
        if data is None:
            raise EmbeddingError("Nothing to embed")
        if isinstance(data, str):
            return await self.embed_query(data)
        return await self.embed_content(data)

    async def embed_content(self, content) -> list[float]:
        return self._embed(render_content_text(content))

    async def embed_query(self, query: str) -> list[float]:
        return self._embed(query)

    def _embed(self, text: Optional[str]) -> list[float]:
        if self.fail:
            raise EmbeddingError("Embedding service unavailable")
        if text is None or not text.strip():
            raise EmbeddingError("Nothing to embed")
        self.calls.append(text)
        return bag_of_words_vector(text, self.dimension)


class FakeVectorIndex:
    """Same surface as VectorIndexService, backed by a dict and numpy cosine."""

    def __init__(self):
        self.points: dict[int, tuple[np.ndarray, dict[str, Any]]] = {}
        self.fail = False

    async def boot(self) -> None:
        pass

    async def close(self) -> None:
        pass

    async def ensure_collection(self) -> None:
        if self.fail:
            raise VectorIndexError("Qdrant unreachable")

    async def check_health(self) -> bool:
        return not self.fail

    def _failure(self) -> IndexResult:
        return IndexResult.failure(VectorIndexError("Qdrant unreachable"))

    async def upsert_point(self, point_id: int, vector: list[float], payload: dict) -> IndexResult:
        if self.fail:
            return self._failure()
        self.points[point_id] = (np.asarray(vector, dtype=np.float64), dict(payload))
        return IndexResult.success(point_id)

    async def search_nearest(self, query_vector: list[float], limit: int = 3) -> IndexResult:
        if self.fail:
            return self._failure()
        query = np.asarray(query_vector, dtype=np.float64)
        matches = []
        for point_id, (vector, payload) in self.points.items():
            denominator = np.linalg.norm(query) * np.linalg.norm(vector)
            score = float(query @ vector / denominator) if denominator else 0.0
            matches.append(VectorMatch(id=point_id, score=score, payload=payload))
        matches.sort(key=lambda match: match.score, reverse=True)
        return IndexResult.success(matches[:limit])

    async def delete_point(self, point_id: int) -> IndexResult:
        if self.fail:
            return self._failure()
        self.points.pop(point_id, None)
        return IndexResult.success(point_id)

    async def list_point_ids(self) -> IndexResult:
        if self.fail:
            return self._failure()
        return IndexResult.success(sorted(self.points))


# ================================
# Database Fixtures
# ================================

@pytest_asyncio.fixture
async def test_engine():
    """
    A fresh in-memory SQLite database per test.

    StaticPool keeps the single connection alive (an in-memory database
    lives only as long as its connection); foreign keys are off in SQLite
    unless switched on per connection.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ================================
# Service Fixtures
# ================================

@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder(dimension=settings.EMBEDDING_DIMENSION)


@pytest.fixture
def vector_index() -> FakeVectorIndex:
    return FakeVectorIndex()


# ================================
# User Fixtures
# ================================

async def create_user(db: AsyncSession, username: str, password: str = "testpass123") -> User:
    user = User(username=username, hashed_password=get_password_hash(password))
    db.add(user)
    await db.commit()
    return user


@pytest_asyncio.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Password is "testpass123"."""
    return await create_user(db_session, "alice@example.com")


@pytest_asyncio.fixture
async def other_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, "bob@example.com")


@pytest.fixture
def auth_headers(test_user: User) -> dict[str, str]:
    token = create_access_token({"sub": str(test_user.id)})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_auth_headers(other_user: User) -> dict[str, str]:
    token = create_access_token({"sub": str(other_user.id)})
    return {"Authorization": f"Bearer {token}"}


# ================================
# FastAPI Client Fixtures
# ================================

@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    embedder: FakeEmbedder,
    vector_index: FakeVectorIndex,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client against the app, with the database session and the
    service handles swapped for test doubles.

    ASGITransport does not run the lifespan, so nothing external is booted.

    Usage:
        async def test_something(client: AsyncClient):
            response = await client.get("/api/v1/content")
    """
    app.dependency_overrides[get_db] = get_db_override(db_session)
    app.dependency_overrides[get_embedder] = lambda: embedder
    app.dependency_overrides[get_vector_index] = lambda: vector_index

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
