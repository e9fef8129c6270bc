"""
Admin / simulation endpoints
============================

The sandbox has no real drivers, so a ride only moves forward when someone
advances it here.  Live-sync picks the change up on its next poll.

PATCH /api/v1/admin/rides/{ride_id}/status -- advance a ride's status
GET   /api/v1/admin/health                 -- simple health check
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ridebook.client.schemas import RidePayload
from ridebook.config import settings
from ridebook.domain.enums import RIDE_TRANSITIONS, TERMINAL_STATUSES, RideStatus
from ridebook.infrastructure.repositories import DriverRepository, RideRepository
from ridebook.sandbox.dependencies import get_clock, get_db
from ridebook.sandbox.middleware import limiter
from ridebook.sandbox.schemas import HealthResponse, StatusUpdateRequest, ride_payload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])

# Timestamp column stamped when a ride enters each status
_STATUS_TIMESTAMP: dict[RideStatus, str] = {
    RideStatus.ACCEPTED: "accepted_at",
    RideStatus.DRIVER_ARRIVING: "driver_arriving_at",
    RideStatus.IN_PROGRESS: "pickup_time",
    RideStatus.COMPLETED: "dropoff_time",
    RideStatus.CANCELLED: "cancelled_at",
}


@router.patch(
    "/rides/{ride_id}/status",
    response_model=RidePayload,
    response_model_by_alias=True,
    response_model_exclude_none=True,
    summary="Advance a ride to its next status",
    description=(
        "Applies one legal transition.  Accepting assigns the first available "
        "driver; completing or cancelling releases it."
    ),
)
@limiter.limit(settings.sandbox_rate_limit)
async def update_ride_status(
    request: Request,
    ride_id: str,
    body: StatusUpdateRequest,
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_clock),
):
    ride = await RideRepository(db).get_by_id(ride_id)
    if not ride:
        raise HTTPException(status_code=404, detail="Ride not found")

    current = RideStatus(ride.status)
    if body.status not in RIDE_TRANSITIONS.get(current, set()):
        raise HTTPException(
            status_code=409,
            detail=f"Invalid transition: {current.value} -> {body.status.value}",
        )

    if body.status is RideStatus.ACCEPTED:
        available = await DriverRepository(db).get_available()
        if not available:
            raise HTTPException(status_code=409, detail="No drivers available")
        driver = available[0]
        driver.is_available = False
        ride.driver = driver

    if body.status in TERMINAL_STATUSES and ride.driver:
        ride.driver.is_available = True

    ride.status = body.status
    setattr(ride, _STATUS_TIMESTAMP[body.status], now)
    await db.flush()
    logger.info("Ride %s: %s -> %s", ride.id, current.value, body.status.value)
    return ride_payload(ride)


@router.get("/health", response_model=HealthResponse, summary="Health check")
async def health(db: AsyncSession = Depends(get_db)):
    return HealthResponse(
        drivers_available=await DriverRepository(db).count_available()
    )
