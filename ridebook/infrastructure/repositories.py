"""
Repository Pattern -- abstracts DB access so the sandbox routes stay DB-agnostic.

Each repository receives an ``AsyncSession`` (unit-of-work) and exposes
domain-relevant queries only.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import DriverModel, RideModel
from ridebook.domain.entities import Location
from ridebook.domain.enums import PaymentMethod, RideClass, RideStatus


class RideRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_ride(
        self,
        *,
        pickup: Location,
        destination: Location,
        ride_class: RideClass,
        payment_method: PaymentMethod,
        fare: dict,
        requested_at: datetime,
        passengers: int = 1,
        notes: Optional[str] = None,
        scheduled_time: Optional[datetime] = None,
        idempotency_key: Optional[str] = None,
    ) -> RideModel:
        ride = RideModel(
            status=RideStatus.PENDING,
            ride_class=ride_class,
            payment_method=payment_method,
            passengers=passengers,
            notes=notes,
            scheduled_time=scheduled_time,
            pickup_address=pickup.address,
            pickup_lat=pickup.latitude,
            pickup_lng=pickup.longitude,
            pickup_place_id=pickup.place_id,
            destination_address=destination.address,
            destination_lat=destination.latitude,
            destination_lng=destination.longitude,
            destination_place_id=destination.place_id,
            fare=fare,
            driver=None,
            requested_at=requested_at,
            idempotency_key=idempotency_key,
        )
        self.session.add(ride)
        await self.session.flush()
        return ride

    async def get_by_id(self, ride_id: str) -> Optional[RideModel]:
        return await self.session.get(RideModel, ride_id)

    async def get_by_idempotency_key(self, key: str) -> Optional[RideModel]:
        result = await self.session.execute(
            select(RideModel).where(RideModel.idempotency_key == key)
        )
        return result.scalar_one_or_none()

    async def count_pending(self) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(RideModel)
            .where(RideModel.status == RideStatus.PENDING)
        )
        return result.scalar() or 0


class DriverRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, driver: DriverModel) -> DriverModel:
        self.session.add(driver)
        await self.session.flush()
        return driver

    async def get_available(self) -> list[DriverModel]:
        result = await self.session.execute(
            select(DriverModel)
            .where(DriverModel.is_available.is_(True))
            .order_by(DriverModel.id)
        )
        return list(result.scalars().all())

    async def count(self) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(DriverModel)
        )
        return result.scalar() or 0

    async def count_available(self) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(DriverModel)
            .where(DriverModel.is_available.is_(True))
        )
        return result.scalar() or 0
