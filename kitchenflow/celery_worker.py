"""
Celery Worker Configuration
Sets up Celery with Redis as message broker and result backend.
"""

from celery import Celery

from kitchenflow.core.config import get_settings

# Redis connection URL
REDIS_URL = get_settings().redis_url

# Create Celery app
celery_app = Celery(
    'kitchenflow_worker',
    broker=REDIS_URL,
    backend=REDIS_URL,
    include=['kitchenflow.tasks']  # Module containing our tasks
)

# Celery configuration
celery_app.conf.update(
    # Task settings
    task_serializer='json',
    accept_content=['json'],
    result_serializer='json',
    timezone='UTC',
    enable_utc=True,

    # Worker settings
    worker_prefetch_multiplier=1,  # One settlement at a time per process
    worker_concurrency=4,

    # Result settings
    result_expires=3600,

    # Task execution settings
    task_acks_late=True,  # Acknowledge task after completion
    task_reject_on_worker_lost=True,  # Requeue task if worker dies

    broker_connection_retry_on_startup=True,
)


if __name__ == '__main__':
    celery_app.start()
