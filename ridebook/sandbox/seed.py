"""Fixed driver roster for the sandbox authority."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ridebook.infrastructure.models import DriverModel
from ridebook.infrastructure.repositories import DriverRepository

logger = logging.getLogger(__name__)

DRIVERS = [
    {"name": "Aarav Sharma", "phone": "+1-555-0101", "rating": 4.8, "vehicle": "Toyota Prius - KA01 AB 1234"},
    {"name": "Priya Patel", "phone": "+1-555-0102", "rating": 4.9, "vehicle": "Honda City - KA02 CD 5678"},
    {"name": "Rohan Mehta", "phone": "+1-555-0103", "rating": 4.5, "vehicle": "Hyundai Verna - KA03 EF 9012"},
    {"name": "Sneha Gupta", "phone": "+1-555-0104", "rating": 4.7, "vehicle": "Mercedes E-Class - KA04 GH 3456"},
    {"name": "Vikram Singh", "phone": "+1-555-0105", "rating": 4.6, "vehicle": "BMW 5 Series - KA05 IJ 7890"},
]


async def seed_drivers(session: AsyncSession) -> int:
    """Insert the roster into an empty ``drivers`` table; returns rows added."""
    repo = DriverRepository(session)
    if await repo.count() > 0:
        return 0
    for d in DRIVERS:
        await repo.create(DriverModel(is_available=True, **d))
    logger.info("Seeded %d sandbox drivers", len(DRIVERS))
    return len(DRIVERS)
