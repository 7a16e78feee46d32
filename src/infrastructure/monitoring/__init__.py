"""
Monitoring package.
"""

from .health_checks import HealthChecker, health_checker
from .metrics import get_metrics, get_metrics_content_type

__all__ = [
    "HealthChecker",
    "health_checker",
    "get_metrics",
    "get_metrics_content_type",
]
