"""
Exclusion ledger repository implementation.
"""

from typing import List, Set
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.application.interfaces.repositories import ExclusionRepositoryInterface
from src.config.logging import get_logger
from src.domain.entities.exclusion_record import ExclusionRecord
from src.domain.value_objects.timestamps import ensure_utc
from src.infrastructure.database.models.intervention_exclusion import (
    InterventionExclusionModel,
)

logger = get_logger(__name__)


class ExclusionRepository(ExclusionRepositoryInterface):
    """Append-only exclusion ledger. Rows are never updated or deleted."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def add(self, record: ExclusionRecord) -> ExclusionRecord:
        """Append an exclusion record."""
        model = InterventionExclusionModel(
            id=record.id,
            intervention_id=record.intervention_id,
            technician_id=record.technician_id,
            kind=record.kind.value,
            reason=record.reason,
            created_at=record.created_at,
            updated_at=record.created_at,
        )
        self.db.add(model)
        await self.db.flush()

        logger.info(
            "Technician excluded from intervention",
            intervention_id=str(record.intervention_id),
            technician_id=str(record.technician_id),
            kind=record.kind.value,
        )
        return record

    async def get_excluded_technician_ids(self, intervention_id: UUID) -> Set[UUID]:
        """Technicians who ever declined or abandoned the intervention."""
        result = await self.db.execute(
            select(InterventionExclusionModel.technician_id)
            .where(InterventionExclusionModel.intervention_id == intervention_id)
            .distinct()
        )
        return {row[0] for row in result.fetchall()}

    async def list_for_intervention(
        self, intervention_id: UUID
    ) -> List[ExclusionRecord]:
        """Exclusion records in insertion order."""
        result = await self.db.execute(
            select(InterventionExclusionModel)
            .where(InterventionExclusionModel.intervention_id == intervention_id)
            .order_by(InterventionExclusionModel.created_at.asc())
        )
        return [
            ExclusionRecord(
                id=model.id,
                intervention_id=model.intervention_id,
                technician_id=model.technician_id,
                kind=model.kind,
                reason=model.reason,
                created_at=ensure_utc(model.created_at),
            )
            for model in result.scalars().all()
        ]
