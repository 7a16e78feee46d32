"""
Builds the dispatch engine over SQL or in-memory repositories.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import AsyncIterator, Callable, Optional

from src.application.interfaces.notifications import NotificationSenderInterface
from src.application.interfaces.repositories import (
    DispatchAttemptRepositoryInterface,
    ExclusionRepositoryInterface,
    InterventionRepositoryInterface,
    RatingSourceInterface,
    TechnicianDirectoryInterface,
    WorkloadSourceInterface,
)
from src.application.interfaces.services import TransactionServiceInterface
from src.application.services.assignment_state_machine import AssignmentStateMachine
from src.application.services.candidate_filter import CandidateFilter
from src.application.services.dispatch_orchestrator import DispatchOrchestrator
from src.application.services.dispatch_policy import DispatchPolicy
from src.application.services.offer_notifier import OfferNotifier
from src.application.services.technician_scorer import TechnicianScorer
from src.application.use_cases.handle_dispatch_action import HandleDispatchActionUseCase
from src.config.database import get_async_session_factory
from src.config.settings import settings
from src.infrastructure.database.repositories.dispatch_attempt_repository import (
    DispatchAttemptRepository,
)
from src.infrastructure.database.repositories.exclusion_repository import (
    ExclusionRepository,
)
from src.infrastructure.database.repositories.intervention_repository import (
    InterventionRepository,
)
from src.infrastructure.database.repositories.technician_repository import (
    RatingRepository,
    TechnicianRepository,
    WorkloadRepository,
)
from src.infrastructure.database.repositories.transaction_repository import (
    TransactionService,
)
from src.infrastructure.memory.repositories import (
    InMemoryDispatchAttemptRepository,
    InMemoryExclusionRepository,
    InMemoryInterventionRepository,
    InMemoryRatingSource,
    InMemoryTechnicianDirectory,
    InMemoryTransactionService,
    InMemoryWorkloadSource,
)
from src.infrastructure.memory.store import InMemoryStore
from src.infrastructure.notifications.factory import create_notification_sender

_in_memory_store: Optional[InMemoryStore] = None


def get_in_memory_store() -> InMemoryStore:
    """Process-wide store used when USE_IN_MEMORY_STORE is set."""
    global _in_memory_store
    if _in_memory_store is None:
        _in_memory_store = InMemoryStore()
    return _in_memory_store


@dataclass
class DispatchRepositories:
    """Repositories sharing one unit of work."""

    interventions: InterventionRepositoryInterface
    attempts: DispatchAttemptRepositoryInterface
    exclusions: ExclusionRepositoryInterface
    technicians: TechnicianDirectoryInterface
    workload: WorkloadSourceInterface
    ratings: RatingSourceInterface
    transaction_service: TransactionServiceInterface

    @classmethod
    def for_session(cls, session) -> "DispatchRepositories":
        return cls(
            interventions=InterventionRepository(session),
            attempts=DispatchAttemptRepository(session),
            exclusions=ExclusionRepository(session),
            technicians=TechnicianRepository(session),
            workload=WorkloadRepository(session),
            ratings=RatingRepository(session),
            transaction_service=TransactionService(session),
        )

    @classmethod
    def in_memory(cls, store: InMemoryStore) -> "DispatchRepositories":
        return cls(
            interventions=InMemoryInterventionRepository(store),
            attempts=InMemoryDispatchAttemptRepository(store),
            exclusions=InMemoryExclusionRepository(store),
            technicians=InMemoryTechnicianDirectory(store),
            workload=InMemoryWorkloadSource(store),
            ratings=InMemoryRatingSource(store),
            transaction_service=InMemoryTransactionService(store),
        )


@asynccontextmanager
async def open_dispatch_repositories() -> AsyncIterator[DispatchRepositories]:
    """Repositories for the configured backend, closed on exit."""
    if settings.USE_IN_MEMORY_STORE:
        yield DispatchRepositories.in_memory(get_in_memory_store())
        return

    async with get_async_session_factory()() as session:
        yield DispatchRepositories.for_session(session)


@dataclass
class DispatchEngine:
    """The wired orchestrator, state machine and action use case."""

    repositories: DispatchRepositories
    orchestrator: DispatchOrchestrator
    state_machine: AssignmentStateMachine
    use_case: HandleDispatchActionUseCase


def build_dispatch_engine(
    repositories: DispatchRepositories,
    policy: Optional[DispatchPolicy] = None,
    sender: Optional[NotificationSenderInterface] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> DispatchEngine:
    """Wire the dispatch services over one set of repositories."""
    policy = policy or DispatchPolicy.from_settings(settings)
    notifier = OfferNotifier(sender or create_notification_sender())

    orchestrator = DispatchOrchestrator(
        intervention_repository=repositories.interventions,
        attempt_repository=repositories.attempts,
        exclusion_repository=repositories.exclusions,
        candidate_filter=CandidateFilter(
            technician_directory=repositories.technicians,
            workload_source=repositories.workload,
            rating_source=repositories.ratings,
            policy=policy,
        ),
        scorer=TechnicianScorer(policy),
        transaction_service=repositories.transaction_service,
        notifier=notifier,
        policy=policy,
        clock=clock,
    )
    state_machine = AssignmentStateMachine(
        intervention_repository=repositories.interventions,
        attempt_repository=repositories.attempts,
        exclusion_repository=repositories.exclusions,
        orchestrator=orchestrator,
        transaction_service=repositories.transaction_service,
        notifier=notifier,
        policy=policy,
        clock=clock,
    )
    return DispatchEngine(
        repositories=repositories,
        orchestrator=orchestrator,
        state_machine=state_machine,
        use_case=HandleDispatchActionUseCase(orchestrator, state_machine),
    )
