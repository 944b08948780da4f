"""Expired token sweep task.

Celery beat job ``delete_expired_tokens``: removes every anti-replay ledger
row whose ``exp`` is in the past and logs the count. The request path never
deletes tokens.
"""

from licensor.celery import celery_app
from licensor.context import ServiceContext
from licensor.db.engine import get_registry_engine, get_secrets_engine
from licensor.db.session import create_session_factory
from licensor.logging import clear_task_context, configure_task_logging, get_logger
from licensor.services.tokens import TokenAuthority

logger = get_logger(__name__)


def delete_expired_tokens_sync(context: ServiceContext | None = None) -> int:
    """Run the sweep synchronously.

    Args:
        context: Service context. If None, one is built on the worker's
            cached engines.

    Returns:
        Number of ledger rows deleted.
    """
    if context is None:
        context = ServiceContext(
            registry_sessions=create_session_factory(get_registry_engine()),
            secret_sessions=create_session_factory(get_secrets_engine()),
        )
    return TokenAuthority(context).delete_expired()


@celery_app.task(bind=True, max_retries=0, name="delete_expired_tokens")
def delete_expired_tokens(self) -> dict:
    """Celery entrypoint for the token ledger sweep."""
    configure_task_logging(task_name="delete_expired_tokens", task_id=self.request.id)
    try:
        deleted = delete_expired_tokens_sync()
        logger.info("token_sweep_completed", deleted=deleted)
        return {"deleted": deleted}
    finally:
        clear_task_context()
