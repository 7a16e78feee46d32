"""
FastAPI dependency injection container.
"""

from typing import Annotated, AsyncGenerator

from fastapi import Depends

from src.application.interfaces.notifications import NotificationSenderInterface
from src.application.services.dispatch_policy import DispatchPolicy
from src.config.settings import settings
from src.infrastructure.dispatch_factory import (
    DispatchEngine,
    DispatchRepositories,
    build_dispatch_engine,
    open_dispatch_repositories,
)
from src.infrastructure.monitoring.health_checks import HealthChecker
from src.infrastructure.notifications.factory import create_notification_sender


# Repository Dependencies
async def get_dispatch_repositories() -> AsyncGenerator[DispatchRepositories, None]:
    """Get repositories for the configured store, one unit of work per request."""
    async with open_dispatch_repositories() as repositories:
        yield repositories


# Service Dependencies
async def get_dispatch_policy() -> DispatchPolicy:
    """Get dispatch policy from settings."""
    return DispatchPolicy.from_settings(settings)


async def get_notification_sender() -> NotificationSenderInterface:
    """Get the configured notification sender."""
    return create_notification_sender()


async def get_dispatch_engine(
    repositories: DispatchRepositories = Depends(get_dispatch_repositories),
    policy: DispatchPolicy = Depends(get_dispatch_policy),
    sender: NotificationSenderInterface = Depends(get_notification_sender),
) -> DispatchEngine:
    """Get the wired dispatch engine."""
    return build_dispatch_engine(repositories, policy=policy, sender=sender)


async def get_health_checker() -> HealthChecker:
    """Get health checker instance."""
    return HealthChecker()


# Type aliases for cleaner dependency injection
DispatchRepositoriesDep = Annotated[
    DispatchRepositories, Depends(get_dispatch_repositories)
]
DispatchPolicyDep = Annotated[DispatchPolicy, Depends(get_dispatch_policy)]
NotificationSenderDep = Annotated[
    NotificationSenderInterface, Depends(get_notification_sender)
]
DispatchEngineDep = Annotated[DispatchEngine, Depends(get_dispatch_engine)]
HealthCheckerDep = Annotated[HealthChecker, Depends(get_health_checker)]
