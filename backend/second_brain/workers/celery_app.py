"""
Celery application instance and configuration.
"""

from celery import Celery
from celery.schedules import crontab

from second_brain.core.config import settings

# Create Celery application
celery_app = Celery(
    "second_brain",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
)

# Configure Celery
celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone=settings.CELERY_TIMEZONE,
    enable_utc=True,
    task_track_started=True,
    task_time_limit=30 * 60,  # 30 minutes
    task_soft_time_limit=25 * 60,  # 25 minutes
    result_expires=3600,  # 1 hour
)

# Celery Beat Schedule (Periodic Tasks)
celery_app.conf.beat_schedule = {
    'reconcile-vector-index': {
        'task': 'index.reconcile_vector_index',
        'schedule': crontab(minute='0', hour=f'*/{settings.RECONCILE_INTERVAL_HOURS}'),
        'options': {'queue': 'index'},
    },
}

# Task routing
celery_app.conf.task_routes = {
    'index.*': {'queue': 'index'},
}

# Auto-discover tasks from second_brain.tasks
celery_app.autodiscover_tasks(['second_brain.tasks'])
