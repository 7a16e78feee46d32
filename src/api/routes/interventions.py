"""Intervention dispatch endpoints."""

from typing import List
from uuid import UUID

from fastapi import APIRouter

from src.api.dependencies import DispatchEngineDep, DispatchRepositoriesDep
from src.api.schemas.dispatch import (
    ActionRequestSchema,
    ActionResultResponse,
    DispatchAttemptResponse,
    ExclusionResponse,
    InterventionResponse,
)
from src.application.services.dispatch_results import ActionResult
from src.application.use_cases.handle_dispatch_action import DispatchRequest
from src.config.logging import get_logger
from src.domain.exceptions.dispatch_error import InterventionNotFoundError

logger = get_logger(__name__)
router = APIRouter(prefix="/interventions", tags=["interventions"])


def _to_response(result: ActionResult) -> ActionResultResponse:
    return ActionResultResponse(**result.to_dict())


@router.post(
    "/{intervention_id}/dispatch",
    response_model=ActionResultResponse,
    response_model_exclude_none=True,
)
async def dispatch_intervention(intervention_id: UUID, engine: DispatchEngineDep):
    """Run a dispatch round and notify the top ranked technicians."""
    result = await engine.use_case.execute(DispatchRequest(intervention_id=intervention_id))
    return _to_response(result)


@router.post(
    "/{intervention_id}/actions",
    response_model=ActionResultResponse,
    response_model_exclude_none=True,
)
async def handle_action(
    intervention_id: UUID,
    action: ActionRequestSchema,
    engine: DispatchEngineDep,
):
    """
    Execute a dispatch action.

    Business conflicts (already taken, expired offer, nothing to reassign)
    come back with 200 and ``success: false``.
    """
    result = await engine.use_case.execute(action.to_request(intervention_id))
    return _to_response(result)


@router.get("/{intervention_id}", response_model=InterventionResponse)
async def get_intervention(intervention_id: UUID, repositories: DispatchRepositoriesDep):
    """Get the current state of an intervention."""
    intervention = await repositories.interventions.get_by_id(intervention_id)
    if not intervention:
        raise InterventionNotFoundError(str(intervention_id))
    return InterventionResponse(**intervention.to_dict())


@router.get(
    "/{intervention_id}/attempts", response_model=List[DispatchAttemptResponse]
)
async def list_attempts(intervention_id: UUID, repositories: DispatchRepositoriesDep):
    """List every dispatch attempt, ordered by round and rank."""
    if not await repositories.interventions.get_by_id(intervention_id):
        raise InterventionNotFoundError(str(intervention_id))

    attempts = await repositories.attempts.get_by_intervention(intervention_id)
    return [DispatchAttemptResponse(**attempt.to_dict()) for attempt in attempts]


@router.get(
    "/{intervention_id}/exclusions", response_model=List[ExclusionResponse]
)
async def list_exclusions(intervention_id: UUID, repositories: DispatchRepositoriesDep):
    """List technicians permanently excluded from this intervention."""
    if not await repositories.interventions.get_by_id(intervention_id):
        raise InterventionNotFoundError(str(intervention_id))

    records = await repositories.exclusions.list_for_intervention(intervention_id)
    return [
        ExclusionResponse(
            id=record.id,
            intervention_id=record.intervention_id,
            technician_id=record.technician_id,
            kind=record.kind.value,
            reason=record.reason,
            created_at=record.created_at,
        )
        for record in records
    ]
