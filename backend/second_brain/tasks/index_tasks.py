"""
Celery tasks for vector index maintenance.

This module contains background tasks for:
- Reconciling the vector index with the relational store
  (backfilling points that failed to index, pruning dangling ones)
"""

import asyncio
import concurrent.futures
from typing import Optional

from celery import Task

from second_brain.core.exceptions import StoreError, VectorIndexError
from second_brain.core.logging import get_logger
from second_brain.db.session import AsyncSessionLocal, engine
from second_brain.services.embedder import EmbeddingService
from second_brain.services.indexing_pipeline import IndexingPipeline
from second_brain.services.vector_index import VectorIndexService
from second_brain.workers.celery_app import celery_app

logger = get_logger(__name__)


# ========================================
# Async Helper
# ========================================

def run_async(coro):
    """
    Run async coroutine, handling both event loop and no event loop scenarios.

    - Celery worker (no running loop): asyncio.run()
    - Inside a running loop (tests): asyncio.run() in a worker thread
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)

    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as executor:
        future = executor.submit(asyncio.run, coro)
        return future.result()


# ========================================
# Base Task Class
# ========================================

class IndexTask(Task):
    """Base task class with retry logic for unavailable stores."""

    autoretry_for = (StoreError, VectorIndexError)
    retry_kwargs = {'max_retries': 3}
    retry_backoff = True
    retry_backoff_max = 600  # 10 minutes
    retry_jitter = True


# ========================================
# Helpers
# ========================================

async def reconcile(user_id: Optional[int] = None, prune: bool = True) -> dict:
    """
    One reconciliation pass with its own session and clients.

    Each Celery run gets its own event loop, so nothing created here may
    outlive it: the clients are closed and the engine's pool is disposed.
    """
    embedder = EmbeddingService()
    vector_index = VectorIndexService()
    await embedder.boot()
    await vector_index.boot()
    try:
        await vector_index.ensure_collection()
        async with AsyncSessionLocal() as db:
            pipeline = IndexingPipeline(db, embedder, vector_index)
            report = await pipeline.reindex(user_id=user_id, prune=prune)
        return report.as_dict()
    finally:
        await embedder.close()
        await vector_index.close()
        await engine.dispose()


# ========================================
# Tasks
# ========================================

@celery_app.task(
    base=IndexTask,
    name='index.reconcile_vector_index',
    bind=True,
)
def reconcile_vector_index(self, user_id: Optional[int] = None, prune: bool = True) -> dict:
    """
    Re-index content missing from the vector index and prune dangling points.

    Args:
        user_id: Limit the pass to one user's content (no pruning then)
        prune: Delete points that have no Content row

    Returns:
        {"checked", "missing", "reindexed", "failed", "pruned"}
    """
    logger.info(
        "reconcile_started",
        user_id=user_id,
        prune=prune,
        attempt=self.request.retries,
    )

    report = run_async(reconcile(user_id=user_id, prune=prune))

    logger.info("reconcile_finished", user_id=user_id, **report)
    return report
