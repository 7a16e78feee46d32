"""
Health check implementations for the application.
"""

from typing import Any, Awaitable, Callable, Dict, Optional

from src.config.database import get_database_health
from src.config.logging import get_logger
from src.config.settings import settings

logger = get_logger(__name__)


async def _in_memory_store_health() -> Dict[str, Any]:
    return {"status": "healthy", "backend": "memory"}


class HealthChecker:
    """Health checker for application components."""

    def __init__(self, checks: Optional[Dict[str, Callable[[], Awaitable[Dict[str, Any]]]]] = None):
        if checks is None:
            checks = {
                "database": _in_memory_store_health
                if settings.USE_IN_MEMORY_STORE
                else get_database_health,
            }
        self.checks = checks

    async def run_health_checks(self) -> Dict[str, Any]:
        """Run all health checks."""
        results = {}

        for check_name, check_func in self.checks.items():
            try:
                results[check_name] = await check_func()
            except Exception as e:
                logger.error("Health check failed", check_name=check_name, error=str(e))
                results[check_name] = {"status": "error", "error": str(e)}

        return results

    async def check_readiness(self) -> bool:
        """Ready when every component reports healthy."""
        results = await self.run_health_checks()
        return all(result.get("status") == "healthy" for result in results.values())


health_checker = HealthChecker()
