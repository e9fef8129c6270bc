"""Sandbox-only request / response schemas and ORM → wire conversion.

The public ride contract lives in ``ridebook.client.schemas`` and is reused
here so the sandbox can never drift from what the client parses.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel

from ridebook.client.schemas import (
    DriverPayload,
    FareEstimatePayload,
    LocationPayload,
    RatingPayload,
    RidePayload,
    TimestampsPayload,
    WireModel,
)
from ridebook.domain.enums import RideStatus
from ridebook.infrastructure.models import DriverModel, RideModel


class StatusUpdateRequest(WireModel):
    status: RideStatus


class HealthResponse(BaseModel):
    status: str = "ok"
    drivers_available: int = 0


def _utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def driver_payload(driver: DriverModel) -> DriverPayload:
    return DriverPayload(
        id=str(driver.id),
        name=driver.name,
        phone=driver.phone,
        rating=driver.rating,
        vehicle=driver.vehicle,
    )


def ride_payload(ride: RideModel) -> RidePayload:
    return RidePayload(
        id=ride.id,
        status=ride.status,
        pickup_location=LocationPayload(
            address=ride.pickup_address,
            latitude=ride.pickup_lat,
            longitude=ride.pickup_lng,
            place_id=ride.pickup_place_id,
        ),
        destination_location=LocationPayload(
            address=ride.destination_address,
            latitude=ride.destination_lat,
            longitude=ride.destination_lng,
            place_id=ride.destination_place_id,
        ),
        ride_class=ride.ride_class,
        driver=driver_payload(ride.driver) if ride.driver else None,
        fare=FareEstimatePayload.model_validate(ride.fare),
        payment_method=ride.payment_method,
        passengers=ride.passengers,
        notes=ride.notes,
        scheduled_time=_utc(ride.scheduled_time),
        timestamps=TimestampsPayload(
            requested=_utc(ride.requested_at),
            accepted=_utc(ride.accepted_at),
            driver_arriving=_utc(ride.driver_arriving_at),
            pickup_time=_utc(ride.pickup_time),
            dropoff_time=_utc(ride.dropoff_time),
            cancelled_at=_utc(ride.cancelled_at),
        ),
        rating=(
            RatingPayload(value=ride.rating, comment=ride.rating_comment)
            if ride.rating
            else None
        ),
    )
