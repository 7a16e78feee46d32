"""
Intervention repository implementation.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import and_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.application.interfaces.repositories import InterventionRepositoryInterface
from src.config.logging import get_logger
from src.domain.entities.intervention import Intervention
from src.domain.value_objects.intervention_status import InterventionStatus
from src.domain.value_objects.timestamps import ensure_utc
from src.infrastructure.database.models.intervention import InterventionModel

logger = get_logger(__name__)

_UNHELD_STATUSES = [
    InterventionStatus.NEW.value,
    InterventionStatus.TO_REASSIGN.value,
]
_RESERVABLE_STATUSES = [
    InterventionStatus.NEW.value,
    InterventionStatus.ASSIGNED.value,
    InterventionStatus.TO_REASSIGN.value,
]
_ACTIVE_STATUSES = [
    InterventionStatus.ASSIGNED.value,
    InterventionStatus.ON_ROUTE.value,
    InterventionStatus.ARRIVED.value,
    InterventionStatus.IN_PROGRESS.value,
]


class InterventionRepository(InterventionRepositoryInterface):
    """Intervention repository implementation."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(self, intervention: Intervention) -> Intervention:
        """Create a new intervention."""
        model = InterventionModel(
            id=intervention.id,
            category=intervention.category,
            priority=intervention.priority,
            latitude=intervention.latitude,
            longitude=intervention.longitude,
            status=intervention.status.value,
            technician_id=intervention.technician_id,
            requires_manual_assignment=intervention.requires_manual_assignment,
            accepted_at=intervention.accepted_at,
            response_time_seconds=intervention.response_time_seconds,
            created_at=intervention.created_at,
            updated_at=intervention.updated_at,
        )

        self.db.add(model)
        await self.db.flush()

        logger.info("Intervention created", intervention_id=str(model.id))
        return self._model_to_entity(model)

    async def get_by_id(self, intervention_id: UUID) -> Optional[Intervention]:
        """Get intervention by ID."""
        stmt = (
            select(InterventionModel)
            .where(InterventionModel.id == intervention_id)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        model = result.scalar_one_or_none()

        return self._model_to_entity(model) if model else None

    async def lock_for_update(self, intervention_id: UUID) -> Optional[Intervention]:
        """Lock the intervention row for the rest of the transaction."""
        stmt = (
            select(InterventionModel)
            .where(InterventionModel.id == intervention_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        model = result.scalar_one_or_none()

        return self._model_to_entity(model) if model else None

    async def open_for_dispatch(self, intervention_id: UUID, now: datetime) -> bool:
        """Set an unassigned intervention back to 'new' and clear the manual flag."""
        return await self._guarded_update(
            and_(
                InterventionModel.id == intervention_id,
                InterventionModel.technician_id.is_(None),
                InterventionModel.status.in_(_UNHELD_STATUSES),
            ),
            status=InterventionStatus.NEW.value,
            requires_manual_assignment=False,
            updated_at=now,
        )

    async def assign_pending(
        self, intervention_id: UUID, technician_id: UUID, now: datetime
    ) -> bool:
        """Reserve the intervention for a technician awaiting response."""
        return await self._guarded_update(
            and_(
                InterventionModel.id == intervention_id,
                InterventionModel.status.in_(_RESERVABLE_STATUSES),
            ),
            technician_id=technician_id,
            status=InterventionStatus.ASSIGNED.value,
            requires_manual_assignment=False,
            updated_at=now,
        )

    async def return_to_pool(self, intervention_id: UUID, now: datetime) -> bool:
        """Clear any pending reservation and flag for manual assignment."""
        return await self._guarded_update(
            and_(
                InterventionModel.id == intervention_id,
                InterventionModel.status.in_(_RESERVABLE_STATUSES),
            ),
            technician_id=None,
            status=InterventionStatus.NEW.value,
            requires_manual_assignment=True,
            updated_at=now,
        )

    async def release_technician(
        self, intervention_id: UUID, technician_id: UUID, now: datetime
    ) -> bool:
        """Drop the holding technician and mark the intervention 'to_reassign'."""
        return await self._guarded_update(
            and_(
                InterventionModel.id == intervention_id,
                InterventionModel.technician_id == technician_id,
                InterventionModel.status.in_(_ACTIVE_STATUSES),
            ),
            technician_id=None,
            status=InterventionStatus.TO_REASSIGN.value,
            updated_at=now,
        )

    async def advance(
        self,
        intervention_id: UUID,
        technician_id: UUID,
        from_status: InterventionStatus,
        to_status: InterventionStatus,
        now: datetime,
    ) -> bool:
        """Move the holding technician one step along the field progression."""
        return await self._guarded_update(
            and_(
                InterventionModel.id == intervention_id,
                InterventionModel.technician_id == technician_id,
                InterventionModel.status == from_status.value,
            ),
            status=to_status.value,
            updated_at=now,
        )

    async def _guarded_update(self, criteria, **values) -> bool:
        stmt = (
            update(InterventionModel)
            .where(criteria)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        applied = result.rowcount == 1

        logger.debug(
            "Intervention guarded update",
            applied=applied,
            status=values.get("status"),
        )
        return applied

    def _model_to_entity(self, model: InterventionModel) -> Intervention:
        """Convert SQLAlchemy model to domain entity."""
        return Intervention(
            id=model.id,
            category=model.category,
            priority=model.priority,
            latitude=model.latitude,
            longitude=model.longitude,
            status=model.status,
            technician_id=model.technician_id,
            requires_manual_assignment=model.requires_manual_assignment,
            accepted_at=ensure_utc(model.accepted_at),
            response_time_seconds=model.response_time_seconds,
            created_at=ensure_utc(model.created_at),
            updated_at=ensure_utc(model.updated_at),
        )
