"""Celery tasks for licensor.

Tasks are explicitly imported here to register them with Celery.
No autodiscovery - all tasks must be imported in this module.
"""

from licensor.tasks.sweep_tokens import delete_expired_tokens

__all__ = ["delete_expired_tokens"]
