"""
Dispatch attempt repository implementation.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.application.interfaces.repositories import DispatchAttemptRepositoryInterface
from src.config.logging import get_logger
from src.domain.entities.dispatch_attempt import DispatchAttempt
from src.domain.value_objects.attempt_status import AttemptStatus
from src.domain.value_objects.intervention_status import InterventionStatus
from src.domain.value_objects.timestamps import ensure_utc
from src.infrastructure.database.models.dispatch_attempt import DispatchAttemptModel
from src.infrastructure.database.models.intervention import InterventionModel

logger = get_logger(__name__)

_PENDING = AttemptStatus.PENDING.value
_LIVE_STATUSES = [AttemptStatus.PENDING.value, AttemptStatus.ACCEPTED.value]
_CLAIMABLE_STATUSES = [
    InterventionStatus.NEW.value,
    InterventionStatus.ASSIGNED.value,
]


class DispatchAttemptRepository(DispatchAttemptRepositoryInterface):
    """Dispatch attempt repository implementation."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_many(
        self, attempts: List[DispatchAttempt]
    ) -> List[DispatchAttempt]:
        """Persist the attempts of a new round."""
        models = [
            DispatchAttemptModel(
                id=attempt.id,
                intervention_id=attempt.intervention_id,
                technician_id=attempt.technician_id,
                round_number=attempt.round_number,
                attempt_order=attempt.attempt_order,
                score=attempt.score,
                score_breakdown=dict(attempt.score_breakdown),
                distance_km=attempt.distance_km,
                estimated_travel_minutes=attempt.estimated_travel_minutes,
                status=attempt.status.value,
                notified_at=attempt.notified_at,
                timeout_at=attempt.timeout_at,
                responded_at=attempt.responded_at,
                created_at=attempt.created_at,
                updated_at=attempt.created_at,
            )
            for attempt in attempts
        ]
        self.db.add_all(models)
        await self.db.flush()

        logger.info(
            "Dispatch attempts created",
            count=len(models),
            intervention_id=str(attempts[0].intervention_id) if attempts else None,
        )
        return [self._model_to_entity(model) for model in models]

    async def get_by_intervention(self, intervention_id: UUID) -> List[DispatchAttempt]:
        """Full attempt history ordered by round then attempt order."""
        stmt = (
            select(DispatchAttemptModel)
            .where(DispatchAttemptModel.intervention_id == intervention_id)
            .order_by(
                DispatchAttemptModel.round_number.asc(),
                DispatchAttemptModel.attempt_order.asc(),
            )
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return [self._model_to_entity(model) for model in result.scalars().all()]

    async def get_latest_round_number(self, intervention_id: UUID) -> int:
        """Highest round number recorded, 0 when never dispatched."""
        stmt = select(func.max(DispatchAttemptModel.round_number)).where(
            DispatchAttemptModel.intervention_id == intervention_id
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def get_latest_for_technician(
        self, intervention_id: UUID, technician_id: UUID
    ) -> Optional[DispatchAttempt]:
        """Most recent attempt offered to a technician."""
        stmt = (
            select(DispatchAttemptModel)
            .where(
                and_(
                    DispatchAttemptModel.intervention_id == intervention_id,
                    DispatchAttemptModel.technician_id == technician_id,
                )
            )
            .order_by(
                DispatchAttemptModel.round_number.desc(),
                DispatchAttemptModel.attempt_order.desc(),
            )
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        model = result.scalar_one_or_none()
        return self._model_to_entity(model) if model else None

    async def supersede_pending(
        self, intervention_id: UUID, now: datetime
    ) -> List[DispatchAttempt]:
        """Cancel every pending attempt. Returns the cancelled ones."""
        return await self._close_matching(
            and_(
                DispatchAttemptModel.intervention_id == intervention_id,
                DispatchAttemptModel.status == _PENDING,
            ),
            [_PENDING],
            AttemptStatus.CANCELLED,
            now,
        )

    async def cancel_live(
        self, intervention_id: UUID, now: datetime
    ) -> List[DispatchAttempt]:
        """Cancel pending and accepted attempts. Returns the cancelled ones."""
        return await self._close_matching(
            and_(
                DispatchAttemptModel.intervention_id == intervention_id,
                DispatchAttemptModel.status.in_(_LIVE_STATUSES),
            ),
            _LIVE_STATUSES,
            AttemptStatus.CANCELLED,
            now,
        )

    async def mark_timed_out(
        self, intervention_id: UUID, now: datetime
    ) -> List[DispatchAttempt]:
        """Expire notified pending attempts whose window has elapsed."""
        return await self._close_matching(
            and_(
                DispatchAttemptModel.intervention_id == intervention_id,
                DispatchAttemptModel.status == _PENDING,
                DispatchAttemptModel.notified_at.is_not(None),
                DispatchAttemptModel.timeout_at < now,
            ),
            [_PENDING],
            AttemptStatus.TIMEOUT,
            now,
        )

    async def mark_responded(
        self, attempt_id: UUID, status: AttemptStatus, now: datetime
    ) -> bool:
        """Close a notified pending attempt with the technician's answer."""
        stmt = (
            update(DispatchAttemptModel)
            .where(
                and_(
                    DispatchAttemptModel.id == attempt_id,
                    DispatchAttemptModel.status == _PENDING,
                    DispatchAttemptModel.notified_at.is_not(None),
                )
            )
            .values(status=status.value, responded_at=now, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def try_claim(
        self,
        attempt_id: UUID,
        intervention_id: UUID,
        technician_id: UUID,
        now: datetime,
        response_time_seconds: int,
    ) -> bool:
        """Atomically accept an offer and take the intervention.

        Claimers serialize on the intervention row lock, so the attempt and
        sibling updates never interleave across transactions.
        """
        lock_stmt = (
            select(InterventionModel.id)
            .where(InterventionModel.id == intervention_id)
            .with_for_update()
        )
        await self.db.execute(lock_stmt)

        attempt_stmt = (
            update(DispatchAttemptModel)
            .where(
                and_(
                    DispatchAttemptModel.id == attempt_id,
                    DispatchAttemptModel.status == _PENDING,
                    DispatchAttemptModel.notified_at.is_not(None),
                )
            )
            .values(
                status=AttemptStatus.ACCEPTED.value, responded_at=now, updated_at=now
            )
            .execution_options(synchronize_session=False)
        )
        if (await self.db.execute(attempt_stmt)).rowcount != 1:
            logger.info(
                "Claim rejected, attempt no longer pending",
                attempt_id=str(attempt_id),
                technician_id=str(technician_id),
            )
            return False

        intervention_stmt = (
            update(InterventionModel)
            .where(
                and_(
                    InterventionModel.id == intervention_id,
                    InterventionModel.status.in_(_CLAIMABLE_STATUSES),
                    or_(
                        InterventionModel.technician_id.is_(None),
                        InterventionModel.technician_id == technician_id,
                    ),
                )
            )
            .values(
                technician_id=technician_id,
                status=InterventionStatus.ON_ROUTE.value,
                accepted_at=now,
                response_time_seconds=response_time_seconds,
                requires_manual_assignment=False,
                updated_at=now,
            )
            .execution_options(synchronize_session=False)
        )
        if (await self.db.execute(intervention_stmt)).rowcount != 1:
            # Intervention went to someone else: the claimant's offer is void
            compensate_stmt = (
                update(DispatchAttemptModel)
                .where(DispatchAttemptModel.id == attempt_id)
                .values(status=AttemptStatus.CANCELLED.value, updated_at=now)
                .execution_options(synchronize_session=False)
            )
            await self.db.execute(compensate_stmt)
            logger.info(
                "Claim lost, intervention already taken",
                attempt_id=str(attempt_id),
                intervention_id=str(intervention_id),
                technician_id=str(technician_id),
            )
            return False

        siblings_stmt = (
            update(DispatchAttemptModel)
            .where(
                and_(
                    DispatchAttemptModel.intervention_id == intervention_id,
                    DispatchAttemptModel.id != attempt_id,
                    DispatchAttemptModel.status == _PENDING,
                )
            )
            .values(status=AttemptStatus.CANCELLED.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        await self.db.execute(siblings_stmt)

        logger.info(
            "Intervention claimed",
            intervention_id=str(intervention_id),
            technician_id=str(technician_id),
            response_time_seconds=response_time_seconds,
        )
        return True

    async def count_open_offers(self, intervention_id: UUID) -> int:
        """Count notified attempts still waiting for an answer."""
        stmt = select(func.count(DispatchAttemptModel.id)).where(
            and_(
                DispatchAttemptModel.intervention_id == intervention_id,
                DispatchAttemptModel.status == _PENDING,
                DispatchAttemptModel.notified_at.is_not(None),
            )
        )
        result = await self.db.execute(stmt)
        return result.scalar() or 0

    async def next_standby(self, intervention_id: UUID) -> Optional[DispatchAttempt]:
        """Lowest-order attempt that was ranked but never notified."""
        stmt = (
            select(DispatchAttemptModel)
            .where(
                and_(
                    DispatchAttemptModel.intervention_id == intervention_id,
                    DispatchAttemptModel.status == _PENDING,
                    DispatchAttemptModel.notified_at.is_(None),
                )
            )
            .order_by(
                DispatchAttemptModel.round_number.desc(),
                DispatchAttemptModel.attempt_order.asc(),
            )
            .limit(1)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        model = result.scalar_one_or_none()
        return self._model_to_entity(model) if model else None

    async def notify_standby(
        self, attempt_id: UUID, now: datetime, timeout_at: datetime
    ) -> bool:
        """Open the offer window of a standby attempt."""
        stmt = (
            update(DispatchAttemptModel)
            .where(
                and_(
                    DispatchAttemptModel.id == attempt_id,
                    DispatchAttemptModel.status == _PENDING,
                    DispatchAttemptModel.notified_at.is_(None),
                )
            )
            .values(notified_at=now, timeout_at=timeout_at, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = await self.db.execute(stmt)
        return result.rowcount == 1

    async def find_interventions_with_expired_offers(
        self, now: datetime, limit: int = 100
    ) -> List[UUID]:
        """Interventions holding at least one expired open offer."""
        stmt = (
            select(DispatchAttemptModel.intervention_id)
            .where(
                and_(
                    DispatchAttemptModel.status == _PENDING,
                    DispatchAttemptModel.notified_at.is_not(None),
                    DispatchAttemptModel.timeout_at < now,
                )
            )
            .group_by(DispatchAttemptModel.intervention_id)
            .order_by(func.min(DispatchAttemptModel.timeout_at))
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return [row[0] for row in result.fetchall()]

    async def _close_matching(
        self,
        criteria,
        expected_statuses: List[str],
        new_status: AttemptStatus,
        now: datetime,
    ) -> List[DispatchAttempt]:
        """Select, then close with a status guard, the attempts matching criteria."""
        stmt = (
            select(DispatchAttemptModel)
            .where(criteria)
            .order_by(DispatchAttemptModel.attempt_order.asc())
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        candidates = [self._model_to_entity(model) for model in result.scalars().all()]
        if not candidates:
            return []

        close_stmt = (
            update(DispatchAttemptModel)
            .where(
                and_(
                    DispatchAttemptModel.id.in_([attempt.id for attempt in candidates]),
                    DispatchAttemptModel.status.in_(expected_statuses),
                )
            )
            .values(status=new_status.value, updated_at=now)
            .returning(DispatchAttemptModel.id)
            .execution_options(synchronize_session=False)
        )
        closed_result = await self.db.execute(close_stmt)
        closed_ids = {row[0] for row in closed_result.fetchall()}

        closed = []
        for attempt in candidates:
            if attempt.id in closed_ids:
                attempt.status = new_status
                closed.append(attempt)

        logger.info(
            "Dispatch attempts closed",
            status=new_status.value,
            count=len(closed),
        )
        return closed

    def _model_to_entity(self, model: DispatchAttemptModel) -> DispatchAttempt:
        """Convert SQLAlchemy model to domain entity."""
        return DispatchAttempt(
            id=model.id,
            intervention_id=model.intervention_id,
            technician_id=model.technician_id,
            round_number=model.round_number,
            attempt_order=model.attempt_order,
            score=model.score,
            score_breakdown=dict(model.score_breakdown or {}),
            distance_km=model.distance_km,
            estimated_travel_minutes=model.estimated_travel_minutes,
            status=model.status,
            notified_at=ensure_utc(model.notified_at),
            timeout_at=ensure_utc(model.timeout_at),
            responded_at=ensure_utc(model.responded_at),
            created_at=ensure_utc(model.created_at),
        )
