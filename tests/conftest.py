"""
Pytest configuration and fixtures.
"""

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, Optional
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.application.interfaces.notifications import NotificationSenderInterface
from src.application.services.dispatch_policy import DispatchPolicy
from src.domain.entities.intervention import Intervention
from src.domain.entities.technician import Technician
from src.infrastructure.database.models import Base
from src.infrastructure.dispatch_factory import DispatchRepositories, build_dispatch_engine
from src.infrastructure.memory.store import InMemoryStore

# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Kilometres per degree of longitude on the equator
KM_PER_DEGREE = 6371.0 * 3.141592653589793 / 180.0

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class FixedClock:
    """Controllable clock injected into the dispatch services."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


def technician_at(
    distance_km: float,
    skills=("plumbing",),
    technician_id: Optional[UUID] = None,
    **kwargs,
) -> Technician:
    """Technician placed due east of (0, 0) at the given distance."""
    return Technician(
        id=technician_id or uuid4(),
        name=kwargs.pop("name", f"Tech {distance_km}km"),
        skills=skills,
        latitude=0.0,
        longitude=distance_km / KM_PER_DEGREE,
        **kwargs,
    )


def intervention_at_origin(category: str = "plumbing", **kwargs) -> Intervention:
    kwargs.setdefault("created_at", T0 - timedelta(minutes=2))
    return Intervention(category=category, latitude=0.0, longitude=0.0, **kwargs)


@pytest.fixture
def clock():
    """Clock frozen at T0."""
    return FixedClock()


@pytest.fixture
def policy():
    """Default dispatch policy."""
    return DispatchPolicy()


@pytest.fixture
def store():
    """Fresh in-memory store."""
    return InMemoryStore()


@pytest.fixture
def repositories(store):
    """In-memory repositories over the store."""
    return DispatchRepositories.in_memory(store)


@pytest.fixture
def mock_sender():
    """Mock notification sender."""
    sender = AsyncMock(spec=NotificationSenderInterface)
    sender.name = "mock"
    sender.send_offer = AsyncMock(return_value=None)
    sender.revoke_offer = AsyncMock(return_value=None)
    sender.notify_manual_assignment_required = AsyncMock(return_value=None)
    return sender


@pytest.fixture
def engine(repositories, policy, mock_sender, clock):
    """Dispatch engine over in-memory repositories."""
    return build_dispatch_engine(
        repositories, policy=policy, sender=mock_sender, clock=clock
    )


@pytest.fixture
def orchestrator(engine):
    return engine.orchestrator


@pytest.fixture
def state_machine(engine):
    return engine.state_machine


@pytest.fixture
def five_plumbers(store):
    """
    Five plumbers 1/5/12/30/60 km away, no workload, rated 4.5,
    and a plumbing intervention at the origin.
    """
    technicians = [technician_at(km) for km in (1, 5, 12, 30, 60)]
    for technician in technicians:
        store.add_technician(technician)
        store.add_rating(technician.id, 4)
        store.add_rating(technician.id, 5)

    intervention = intervention_at_origin()
    store.interventions[intervention.id] = intervention
    return intervention, technicians


@pytest_asyncio.fixture
async def test_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session_factory = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def make_technician():
    """Factory for technicians placed by distance from the origin."""
    return technician_at


@pytest.fixture
def make_intervention():
    """Factory for interventions located at the origin."""
    return intervention_at_origin
