"""
Celery tasks for background processing.
"""

from second_brain.tasks.index_tasks import reconcile_vector_index

__all__ = [
    "reconcile_vector_index",
]
