"""Celery worker entrypoint.

Run with:
    celery -A apps.worker.main:celery_app worker -Q maintenance --loglevel=info
    celery -A apps.worker.main:celery_app beat --loglevel=info

This module imports the Celery app and explicitly registers all tasks.
Task definitions are in the licensor.tasks package - no autodiscovery.

Logging Convention:
- All task log entries include task_name and task_id
- Use configure_task_logging() at the start of each task to set up context
"""

from celery.signals import worker_process_init

from licensor.celery import celery_app
from licensor.config import get_settings
from licensor.logging import configure_logging, get_logger

# =============================================================================
# Task Registration (explicit imports - no autodiscovery)
# =============================================================================

from licensor.tasks import delete_expired_tokens  # noqa: F401, E402

# =============================================================================
# Worker Lifecycle
# =============================================================================


@worker_process_init.connect
def setup_worker_logging(**kwargs):
    """Configure structlog when a worker process starts."""
    settings = get_settings()
    configure_logging(json_format=settings.log_json, level=settings.log_level)
    logger = get_logger(__name__)
    logger.info("celery_worker_started", queue="maintenance")


# Export celery_app for Celery to find
__all__ = ["celery_app"]
