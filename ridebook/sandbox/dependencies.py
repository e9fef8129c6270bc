"""FastAPI dependency injection helpers for the sandbox authority."""

from datetime import datetime, timezone
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession

from ridebook.config import settings
from ridebook.domain.pricing import PricingEngine
from ridebook.infrastructure.database import async_session_factory


async def get_db() -> AsyncIterator[AsyncSession]:
    """Yield a sandbox DB session; commit on success, roll back on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_pricing() -> PricingEngine:
    return PricingEngine(
        tax_rate=settings.sandbox_tax_rate,
        average_speed_kmh=settings.sandbox_average_speed_kmh,
        currency=settings.sandbox_currency,
    )


def get_clock() -> datetime:
    """Current time; overridden in tests to pin timestamps."""
    return datetime.now(timezone.utc)
