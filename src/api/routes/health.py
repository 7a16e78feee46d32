"""
Health check endpoints for the application.
"""

from typing import Any, Dict

from fastapi import APIRouter, HTTPException, status
from fastapi.responses import Response

from src.api.dependencies import HealthCheckerDep
from src.config.logging import get_logger
from src.domain.value_objects.timestamps import utc_now
from src.infrastructure.monitoring.metrics import get_metrics, get_metrics_content_type

logger = get_logger(__name__)
router = APIRouter(prefix="/health", tags=["health"])


def _timestamp() -> str:
    return utc_now().isoformat()


@router.get("")
async def health_check(health_checker: HealthCheckerDep) -> Dict[str, Any]:
    """Basic health check endpoint."""
    components = await health_checker.run_health_checks()
    is_healthy = all(
        component.get("status") == "healthy" for component in components.values()
    )

    return {
        "status": "healthy" if is_healthy else "unhealthy",
        "components": components,
        "timestamp": _timestamp(),
    }


@router.get("/ready")
async def readiness_check(health_checker: HealthCheckerDep) -> Dict[str, Any]:
    """Readiness check for Kubernetes."""
    try:
        is_ready = await health_checker.check_readiness()
    except Exception as e:
        logger.error("Readiness check failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Readiness check failed: {str(e)}",
        )

    if not is_ready:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not ready",
        )

    return {"status": "ready", "timestamp": _timestamp()}


@router.get("/live")
async def liveness_check() -> Dict[str, Any]:
    """Liveness check for Kubernetes."""
    return {"status": "alive", "timestamp": _timestamp()}


@router.get("/metrics")
async def prometheus_metrics() -> Response:
    """Prometheus metrics endpoint."""
    try:
        metrics_data = get_metrics()
        content_type = get_metrics_content_type()
    except Exception as e:
        logger.error("Failed to generate Prometheus metrics", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate metrics",
        )

    logger.debug("Prometheus metrics requested")
    return Response(content=metrics_data, media_type=content_type)
