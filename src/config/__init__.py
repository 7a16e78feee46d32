"""
Configuration package.
"""

from .logging import configure_logging, get_logger
from .settings import settings

__all__ = [
    "settings",
    # Logging
    "configure_logging",
    "get_logger",
]
