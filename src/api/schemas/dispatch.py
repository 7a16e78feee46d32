"""
Dispatch API schemas.
"""

from datetime import datetime
from typing import Annotated, Dict, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field

from src.application.use_cases.handle_dispatch_action import (
    AcceptRequest,
    AdvanceRequest,
    CancelRequest,
    CheckTimeoutRequest,
    DeclineRequest,
    DispatchActionRequest,
    DispatchRequest,
    GoRequest,
    RejectRequest,
)
from src.domain.value_objects.intervention_status import InterventionStatus


class DispatchActionSchema(BaseModel):
    """Start a new dispatch round."""

    action: Literal["dispatch"]

    def to_request(self, intervention_id: UUID) -> DispatchActionRequest:
        return DispatchRequest(intervention_id=intervention_id)


class CheckTimeoutActionSchema(BaseModel):
    """Expire elapsed offers and reassign."""

    action: Literal["check_timeout"]

    def to_request(self, intervention_id: UUID) -> DispatchActionRequest:
        return CheckTimeoutRequest(intervention_id=intervention_id)


class AcceptActionSchema(BaseModel):
    action: Literal["accept"]
    technician_id: UUID

    def to_request(self, intervention_id: UUID) -> DispatchActionRequest:
        return AcceptRequest(
            intervention_id=intervention_id, technician_id=self.technician_id
        )


class GoActionSchema(BaseModel):
    action: Literal["go"]
    technician_id: UUID

    def to_request(self, intervention_id: UUID) -> DispatchActionRequest:
        return GoRequest(intervention_id=intervention_id, technician_id=self.technician_id)


class RejectActionSchema(BaseModel):
    action: Literal["reject"]
    technician_id: UUID

    def to_request(self, intervention_id: UUID) -> DispatchActionRequest:
        return RejectRequest(
            intervention_id=intervention_id, technician_id=self.technician_id
        )


class DeclineActionSchema(BaseModel):
    action: Literal["decline"]
    technician_id: UUID
    reason: Optional[str] = Field(None, max_length=500)

    def to_request(self, intervention_id: UUID) -> DispatchActionRequest:
        return DeclineRequest(
            intervention_id=intervention_id,
            technician_id=self.technician_id,
            reason=self.reason,
        )


class CancelActionSchema(BaseModel):
    action: Literal["cancel"]
    technician_id: UUID
    reason: Optional[str] = Field(None, max_length=500)

    def to_request(self, intervention_id: UUID) -> DispatchActionRequest:
        return CancelRequest(
            intervention_id=intervention_id,
            technician_id=self.technician_id,
            reason=self.reason,
        )


class AdvanceActionSchema(BaseModel):
    """Move along on_route, arrived, in_progress, completed."""

    action: Literal["advance"]
    technician_id: UUID
    target_status: InterventionStatus

    def to_request(self, intervention_id: UUID) -> DispatchActionRequest:
        return AdvanceRequest(
            intervention_id=intervention_id,
            technician_id=self.technician_id,
            target_status=self.target_status,
        )


ActionRequestSchema = Annotated[
    Union[
        DispatchActionSchema,
        CheckTimeoutActionSchema,
        AcceptActionSchema,
        GoActionSchema,
        RejectActionSchema,
        DeclineActionSchema,
        CancelActionSchema,
        AdvanceActionSchema,
    ],
    Field(discriminator="action"),
]


class NotifiedCandidateResponse(BaseModel):
    technician_id: UUID
    attempt_order: int
    score: float
    distance_km: float
    estimated_travel_minutes: int


class ActionResultResponse(BaseModel):
    """Outcome of a dispatch or assignment action."""

    success: bool
    message: str
    intervention_id: Optional[UUID] = None
    technician_id: Optional[UUID] = None
    status: Optional[str] = None
    round_number: Optional[int] = None
    notified: Optional[List[NotifiedCandidateResponse]] = None
    standby_count: Optional[int] = None
    total_candidates: Optional[int] = None
    timeout_at: Optional[datetime] = None
    requires_manual_assignment: Optional[bool] = None
    response_time_seconds: Optional[int] = None
    timed_out_count: Optional[int] = None


class InterventionResponse(BaseModel):
    id: UUID
    category: str
    priority: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    status: InterventionStatus
    technician_id: Optional[UUID] = None
    requires_manual_assignment: bool
    accepted_at: Optional[datetime] = None
    response_time_seconds: Optional[int] = None
    created_at: Optional[datetime] = None


class DispatchAttemptResponse(BaseModel):
    id: UUID
    intervention_id: UUID
    technician_id: UUID
    round_number: int
    attempt_order: int
    score: float
    score_breakdown: Dict[str, float]
    distance_km: Optional[float] = None
    estimated_travel_minutes: Optional[int] = None
    status: str
    notified_at: Optional[datetime] = None
    timeout_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None


class ExclusionResponse(BaseModel):
    id: UUID
    intervention_id: UUID
    technician_id: UUID
    kind: str
    reason: str
    created_at: Optional[datetime] = None
