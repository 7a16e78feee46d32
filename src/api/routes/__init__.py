"""
API routes package.
"""

from .health import router as health_router
from .interventions import router as interventions_router

__all__ = [
    "health_router",
    "interventions_router",
]
