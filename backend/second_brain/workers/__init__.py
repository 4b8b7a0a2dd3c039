"""Celery worker configuration."""

from second_brain.workers.celery_app import celery_app

__all__ = ["celery_app"]
