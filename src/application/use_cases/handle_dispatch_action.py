"""Dispatch action use case: routes tagged action requests to the engine."""

from dataclasses import dataclass
from typing import Optional, Union
from uuid import UUID

from src.application.services.assignment_state_machine import AssignmentStateMachine
from src.application.services.dispatch_orchestrator import DispatchOrchestrator
from src.application.services.dispatch_results import ActionResult
from src.config.logging import get_logger
from src.domain.exceptions.validation_error import (
    InvalidIdentifierError,
    RequiredFieldError,
)
from src.domain.value_objects.intervention_status import InterventionStatus

logger = get_logger(__name__)


def parse_identifier(field_name: str, value) -> UUID:
    """Coerce an identifier, raising a validation error when missing or malformed."""
    if value is None or value == "":
        raise RequiredFieldError(field_name)
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise InvalidIdentifierError(field_name, value)


@dataclass
class _InterventionRequest:
    intervention_id: UUID

    def __post_init__(self):
        self.intervention_id = parse_identifier("intervention_id", self.intervention_id)


@dataclass
class _TechnicianRequest(_InterventionRequest):
    technician_id: UUID

    def __post_init__(self):
        super().__post_init__()
        self.technician_id = parse_identifier("technician_id", self.technician_id)


@dataclass
class DispatchRequest(_InterventionRequest):
    """Start a dispatch round."""


@dataclass
class CheckTimeoutRequest(_InterventionRequest):
    """Expire elapsed offers and reassign."""


@dataclass
class AcceptRequest(_TechnicianRequest):
    """Accept a pending offer."""


@dataclass
class GoRequest(_TechnicianRequest):
    """Self-assign and head out."""


@dataclass
class RejectRequest(_TechnicianRequest):
    """Refuse a pending offer."""


@dataclass
class DeclineRequest(_TechnicianRequest):
    """Refuse a pending offer for good."""

    reason: Optional[str] = None


@dataclass
class CancelRequest(_TechnicianRequest):
    """Abandon an accepted intervention."""

    reason: Optional[str] = None


@dataclass
class AdvanceRequest(_TechnicianRequest):
    """Move along the on-site progression."""

    target_status: InterventionStatus = InterventionStatus.ARRIVED

    def __post_init__(self):
        super().__post_init__()
        self.target_status = InterventionStatus(self.target_status)


DispatchActionRequest = Union[
    DispatchRequest,
    AcceptRequest,
    RejectRequest,
    DeclineRequest,
    CancelRequest,
    GoRequest,
    CheckTimeoutRequest,
    AdvanceRequest,
]


class HandleDispatchActionUseCase:
    """Use case for executing a single dispatch action."""

    def __init__(
        self,
        orchestrator: DispatchOrchestrator,
        state_machine: AssignmentStateMachine,
    ):
        self.orchestrator = orchestrator
        self.state_machine = state_machine

    async def execute(self, request: DispatchActionRequest) -> ActionResult:
        """Execute the action the request stands for."""
        logger.info(
            "Handling dispatch action",
            action=type(request).__name__,
            intervention_id=str(request.intervention_id),
            technician_id=str(getattr(request, "technician_id", None)),
        )

        if isinstance(request, DispatchRequest):
            return await self.orchestrator.dispatch(request.intervention_id)
        if isinstance(request, CheckTimeoutRequest):
            return await self.state_machine.check_timeout(request.intervention_id)
        if isinstance(request, AcceptRequest):
            return await self.state_machine.accept(
                request.intervention_id, request.technician_id
            )
        if isinstance(request, GoRequest):
            return await self.state_machine.go(
                request.intervention_id, request.technician_id
            )
        if isinstance(request, RejectRequest):
            return await self.state_machine.reject(
                request.intervention_id, request.technician_id
            )
        if isinstance(request, DeclineRequest):
            return await self.state_machine.decline(
                request.intervention_id, request.technician_id, request.reason
            )
        if isinstance(request, CancelRequest):
            return await self.state_machine.cancel(
                request.intervention_id, request.technician_id, request.reason
            )
        if isinstance(request, AdvanceRequest):
            return await self.state_machine.advance(
                request.intervention_id, request.technician_id, request.target_status
            )

        raise TypeError(f"Unsupported dispatch action: {type(request).__name__}")
