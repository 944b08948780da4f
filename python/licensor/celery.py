"""Celery application configuration.

The maintenance worker runs the token ledger sweep on a beat schedule.

Usage:
    from licensor.celery import celery_app

    # Run the sweep now:
    celery_app.send_task("delete_expired_tokens")
"""

from celery import Celery

from licensor.config import get_settings

settings = get_settings()

# Create Celery app
celery_app = Celery("licensor")

# Configure from settings
celery_app.conf.broker_url = settings.effective_celery_broker_url
celery_app.conf.result_backend = settings.effective_celery_result_backend

# Task configuration
celery_app.conf.task_serializer = "json"
celery_app.conf.result_serializer = "json"
celery_app.conf.accept_content = ["json"]
celery_app.conf.timezone = "UTC"
celery_app.conf.enable_utc = True

celery_app.conf.task_routes = {
    "delete_expired_tokens": {"queue": "maintenance"},
}
celery_app.conf.task_default_queue = "default"

celery_app.conf.beat_schedule = {
    "delete-expired-tokens": {
        "task": "delete_expired_tokens",
        "schedule": float(settings.token_sweep_interval),
    },
}
