"""
Celery tasks for dispatch rounds and offer timeouts.

check_dispatch_timeouts_task is the periodic poller: it finds interventions
whose offers expired and runs check_timeout for each. dispatch_intervention_task
lets the booking flow start a round without waiting on the HTTP API.
"""

import asyncio
from uuid import UUID

import structlog
from celery import current_app

logger = structlog.get_logger()


def run_async_in_new_loop(coro):
    """
    Run an async coroutine in a new event loop.

    Each Celery task gets its own event loop, so the shared database engine
    is disposed before the loop closes.
    """
    from src.config.database import close_database_connections

    async def run_and_dispose():
        try:
            return await coro
        finally:
            await close_database_connections()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(run_and_dispose())
    except Exception as e:
        logger.error("Error in async execution", error=str(e))
        raise
    finally:
        loop.close()


async def sweep_expired_offers(batch_size: int):
    """Run one timeout sweep over the configured store."""
    from src.application.use_cases.sweep_dispatch_timeouts import (
        SweepDispatchTimeoutsUseCase,
    )
    from src.infrastructure.dispatch_factory import (
        build_dispatch_engine,
        open_dispatch_repositories,
    )

    async with open_dispatch_repositories() as repositories:
        engine = build_dispatch_engine(repositories)
        use_case = SweepDispatchTimeoutsUseCase(
            attempt_repository=repositories.attempts,
            state_machine=engine.state_machine,
            batch_size=batch_size,
        )
        return await use_case.execute()


async def dispatch_intervention(intervention_id: UUID):
    """Run one dispatch round over the configured store."""
    from src.application.use_cases.handle_dispatch_action import DispatchRequest
    from src.infrastructure.dispatch_factory import (
        build_dispatch_engine,
        open_dispatch_repositories,
    )

    async with open_dispatch_repositories() as repositories:
        engine = build_dispatch_engine(repositories)
        return await engine.use_case.execute(
            DispatchRequest(intervention_id=intervention_id)
        )


@current_app.task(bind=True, max_retries=0, name="check_dispatch_timeouts_task")
def check_dispatch_timeouts_task(self):
    """Resolve expired dispatch offers and move interventions to their next technician."""
    from src.config.settings import settings

    logger.info("Starting dispatch timeout sweep")

    result = run_async_in_new_loop(sweep_expired_offers(settings.TIMEOUT_SWEEP_BATCH_SIZE))

    logger.info(
        "Dispatch timeout sweep completed",
        processed=result.processed,
        failed=result.failed,
        processing_time=result.processing_time,
    )
    return result.to_dict()


@current_app.task(bind=True, max_retries=3, name="dispatch_intervention_task")
def dispatch_intervention_task(self, intervention_id: str):
    """Start a dispatch round for an intervention."""
    logger.info(
        "Starting dispatch task",
        intervention_id=intervention_id,
        attempt=self.request.retries + 1,
    )

    try:
        result = run_async_in_new_loop(dispatch_intervention(UUID(intervention_id)))
    except Exception as e:
        logger.error(
            "Dispatch task failed with exception",
            intervention_id=intervention_id,
            error=str(e),
            error_type=type(e).__name__,
            attempt=self.request.retries + 1,
        )
        from src.domain.exceptions.dispatch_error import InterventionNotFoundError
        from src.domain.exceptions.validation_error import ValidationError

        if isinstance(e, (InterventionNotFoundError, ValidationError)):
            raise
        raise self.retry(exc=e, countdown=2**self.request.retries)

    logger.info(
        "Dispatch task completed",
        intervention_id=intervention_id,
        success=result.success,
        message=result.message,
    )
    return result.to_dict()
