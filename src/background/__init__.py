"""
Background tasks package.
"""

from .celery_app import celery_app
from .tasks import check_dispatch_timeouts_task, dispatch_intervention_task

__all__ = [
    "celery_app",
    # Tasks
    "check_dispatch_timeouts_task",
    "dispatch_intervention_task",
]
