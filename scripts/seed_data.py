#!/usr/bin/env python3
"""
Seed database with technicians and an intervention for development.
"""

import asyncio
import sys
from pathlib import Path
from uuid import uuid4

# Make the src package importable when run from the scripts directory
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import func, select

from src.config.database import close_database_connections, get_async_session_factory
from src.config.logging import configure_logging, get_logger
from src.domain.entities.intervention import Intervention
from src.domain.entities.technician import Technician
from src.infrastructure.database.models.technician import TechnicianModel
from src.infrastructure.database.repositories.intervention_repository import (
    InterventionRepository,
)
from src.infrastructure.database.repositories.technician_repository import (
    TechnicianRepository,
)

configure_logging()
logger = get_logger(__name__)

# Technicians spread east of Place de la Concorde, Paris
SEED_TECHNICIANS = [
    ("Camille Laurent", ["plumbing", "heating"], 48.8566, 2.3522),
    ("Noah Girard", ["locksmith"], 48.8566, 2.4888),
    ("Ines Moreau", ["electricity", "plumbing"], 48.8566, 2.6660),
    ("Sacha Bernard", ["glazing"], 48.8566, 3.1630),
    ("Lina Petit", ["plumbing"], 48.8566, 3.7000),
]


async def seed_database():
    """Seed database with development data."""
    session_factory = get_async_session_factory()

    async with session_factory() as session:
        existing = await session.execute(select(func.count(TechnicianModel.id)))
        if existing.scalar() > 0:
            logger.info("Database already has data, skipping seed")
            return

        technician_repository = TechnicianRepository(session)
        for name, skills, latitude, longitude in SEED_TECHNICIANS:
            technician = await technician_repository.create(
                Technician(
                    id=uuid4(),
                    name=name,
                    skills=skills,
                    latitude=latitude,
                    longitude=longitude,
                )
            )
            logger.info("Technician created", technician_id=str(technician.id), name=name)

        intervention = await InterventionRepository(session).create(
            Intervention(category="plumbing", latitude=48.8566, longitude=2.3522)
        )
        await session.commit()

        logger.info(
            "Seed completed",
            technicians=len(SEED_TECHNICIANS),
            intervention_id=str(intervention.id),
        )


async def main():
    try:
        await seed_database()
    finally:
        await close_database_connections()


if __name__ == "__main__":
    asyncio.run(main())
