"""
In-process data store backing the in-memory repositories.
"""

import asyncio
from collections import defaultdict
from typing import Dict, List, Optional
from uuid import UUID

from src.domain.entities.dispatch_attempt import DispatchAttempt
from src.domain.entities.exclusion_record import ExclusionRecord
from src.domain.entities.intervention import Intervention
from src.domain.entities.technician import Technician


class InMemoryStore:
    """
    Shared state for one in-memory deployment.

    Every mutation of interventions and attempts runs under ``lock`` so
    guarded updates behave like single SQL statements.
    Per-intervention row locks stand in for SELECT ... FOR UPDATE and are
    released by the transaction service when the operation ends.
    """

    def __init__(self):
        self.lock = asyncio.Lock()
        self.interventions: Dict[UUID, Intervention] = {}
        self.attempts: Dict[UUID, DispatchAttempt] = {}
        self.exclusions: List[ExclusionRecord] = []
        self.technicians: Dict[UUID, Technician] = {}
        self.ratings: Dict[UUID, List[int]] = defaultdict(list)
        self._row_locks: Dict[UUID, asyncio.Lock] = {}
        self._held_row_locks: Dict[Optional[asyncio.Task], List[asyncio.Lock]] = {}

    def add_technician(self, technician: Technician) -> Technician:
        self.technicians[technician.id] = technician
        return technician

    def add_rating(self, technician_id: UUID, rating: int) -> None:
        if not 1 <= rating <= 5:
            raise ValueError("Rating must be between 1 and 5")
        self.ratings[technician_id].append(rating)

    def attempts_for(self, intervention_id: UUID) -> List[DispatchAttempt]:
        return sorted(
            (
                attempt
                for attempt in self.attempts.values()
                if attempt.intervention_id == intervention_id
            ),
            key=lambda attempt: (attempt.round_number, attempt.attempt_order),
        )

    async def lock_intervention(self, intervention_id: UUID) -> None:
        """
        Hold the intervention's row lock until the current transaction ends.

        Re-locking from the task that already holds it is a no-op.
        """
        held = self._held_row_locks.setdefault(asyncio.current_task(), [])
        lock = self._row_locks.setdefault(intervention_id, asyncio.Lock())
        if lock in held:
            return
        await lock.acquire()
        held.append(lock)

    def release_row_locks(self) -> None:
        """Release every row lock the current task holds."""
        for lock in reversed(self._held_row_locks.pop(asyncio.current_task(), [])):
            lock.release()

    def clear(self) -> None:
        self.interventions.clear()
        self.attempts.clear()
        self.exclusions.clear()
        self.technicians.clear()
        self.ratings.clear()
        self._row_locks.clear()
        self._held_row_locks.clear()


async def simulate_io() -> None:
    """Yield to the event loop the way a database round trip would."""
    await asyncio.sleep(0)
