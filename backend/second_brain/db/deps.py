"""
FastAPI database dependencies.

    @router.get("/content")
    async def list_content(db: DBSession):
        ...

Tests swap the session in with get_db_override().
"""

from collections.abc import AsyncGenerator, Callable
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from second_brain.db.session import get_session


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """One session per request; the repository commits explicitly."""
    async for session in get_session():
        yield session


DBSession = Annotated[AsyncSession, Depends(get_db)]


def get_db_override(session: AsyncSession) -> Callable[[], AsyncGenerator[AsyncSession, None]]:
    """
    Build a get_db replacement that always yields ``session``.

        app.dependency_overrides[get_db] = get_db_override(test_session)
    """
    async def _override() -> AsyncGenerator[AsyncSession, None]:
        yield session

    return _override
