"""
Background tasks package.
"""

from .dispatch_timeouts import check_dispatch_timeouts_task, dispatch_intervention_task

__all__ = [
    "check_dispatch_timeouts_task",
    "dispatch_intervention_task",
]
