"""
Technician directory, workload and rating repositories.
"""

from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.application.interfaces.repositories import (
    RatingSourceInterface,
    TechnicianDirectoryInterface,
    WorkloadSourceInterface,
)
from src.domain.entities.technician import Technician
from src.domain.value_objects.intervention_status import InterventionStatus
from src.domain.value_objects.timestamps import ensure_utc
from src.infrastructure.database.models.intervention import InterventionModel
from src.infrastructure.database.models.intervention_rating import (
    InterventionRatingModel,
)
from src.infrastructure.database.models.technician import TechnicianModel


class TechnicianRepository(TechnicianDirectoryInterface):
    """Technician directory backed by the technicians table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, technician_id: UUID) -> Optional[Technician]:
        """Get technician by ID."""
        result = await self.session.execute(
            select(TechnicianModel).where(TechnicianModel.id == technician_id)
        )
        model = result.scalar_one_or_none()
        return self._model_to_entity(model) if model else None

    async def find_dispatchable(self) -> List[Technician]:
        """Approved, active and geolocated technicians."""
        result = await self.session.execute(
            select(TechnicianModel)
            .where(
                and_(
                    TechnicianModel.is_active.is_(True),
                    TechnicianModel.application_status == "approved",
                    TechnicianModel.latitude.is_not(None),
                    TechnicianModel.longitude.is_not(None),
                )
            )
            .order_by(TechnicianModel.id)
        )
        return [self._model_to_entity(model) for model in result.scalars().all()]

    async def create(self, technician: Technician) -> Technician:
        """Create a new technician."""
        model = TechnicianModel(
            id=technician.id,
            name=technician.name,
            phone=technician.phone,
            email=technician.email,
            skills=sorted(technician.skills),
            latitude=technician.latitude,
            longitude=technician.longitude,
            is_active=technician.is_active,
            application_status=technician.application_status,
            is_available=technician.is_available,
            max_concurrent_interventions=technician.max_concurrent_interventions,
        )
        self.session.add(model)
        await self.session.flush()
        return self._model_to_entity(model)

    def _model_to_entity(self, model: TechnicianModel) -> Technician:
        """Convert SQLAlchemy model to domain entity."""
        return Technician(
            id=model.id,
            name=model.name,
            skills=model.skills or [],
            latitude=model.latitude,
            longitude=model.longitude,
            is_active=model.is_active,
            application_status=model.application_status,
            is_available=model.is_available,
            max_concurrent_interventions=model.max_concurrent_interventions,
            email=model.email,
            phone=model.phone,
            created_at=ensure_utc(model.created_at),
            updated_at=ensure_utc(model.updated_at),
        )


class WorkloadRepository(WorkloadSourceInterface):
    """Active job counts derived from the interventions table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def count_active_jobs(
        self, technician_ids: Iterable[UUID]
    ) -> Dict[UUID, int]:
        """Interventions currently held per technician."""
        technician_ids = list(technician_ids)
        if not technician_ids:
            return {}

        result = await self.session.execute(
            select(InterventionModel.technician_id, func.count(InterventionModel.id))
            .where(
                and_(
                    InterventionModel.technician_id.in_(technician_ids),
                    InterventionModel.status.in_(
                        [status.value for status in InterventionStatus.workload_statuses()]
                    ),
                )
            )
            .group_by(InterventionModel.technician_id)
        )
        return {technician_id: count for technician_id, count in result.fetchall()}


class RatingRepository(RatingSourceInterface):
    """Average ratings derived from the intervention_ratings table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_average_ratings(
        self, technician_ids: Iterable[UUID]
    ) -> Dict[UUID, float]:
        """Average rating per technician. Technicians never rated are absent."""
        technician_ids = list(technician_ids)
        if not technician_ids:
            return {}

        result = await self.session.execute(
            select(
                InterventionRatingModel.technician_id,
                func.avg(InterventionRatingModel.rating),
            )
            .where(InterventionRatingModel.technician_id.in_(technician_ids))
            .group_by(InterventionRatingModel.technician_id)
        )
        return {
            technician_id: float(average)
            for technician_id, average in result.fetchall()
            if average is not None
        }
