"""
Ride endpoints
==============

POST  /api/v1/rides                      -- create a ride request (201)
GET   /api/v1/rides/{ride_id}            -- ride detail, polled by live sync
POST  /api/v1/rides/estimate-fare        -- priced breakdown per ride class
PATCH /api/v1/rides/{ride_id}/cancel     -- cancel a ride
PATCH /api/v1/rides/{ride_id}/rate-driver -- rate the driver of a completed ride
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ridebook.client.schemas import (
    CancelRideRequest,
    FareEstimatePayload,
    FareEstimateRequest,
    RateDriverRequest,
    RideCreateRequest,
    RidePayload,
)
from ridebook.config import settings
from ridebook.domain.enums import RIDE_TRANSITIONS, RideStatus
from ridebook.domain.pricing import PricingEngine
from ridebook.infrastructure.models import RideModel
from ridebook.infrastructure.repositories import DriverRepository, RideRepository
from ridebook.sandbox.dependencies import get_clock, get_db, get_pricing
from ridebook.sandbox.middleware import limiter
from ridebook.sandbox.schemas import ride_payload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rides", tags=["rides"])


async def _load_ride(db: AsyncSession, ride_id: str) -> RideModel:
    ride = await RideRepository(db).get_by_id(ride_id)
    if not ride:
        raise HTTPException(status_code=404, detail="Ride not found")
    return ride


async def _current_surge(db: AsyncSession, extra_requests: int = 0) -> float:
    pending = await RideRepository(db).count_pending()
    available = await DriverRepository(db).count_available()
    return PricingEngine.compute_surge(pending + extra_requests, available)


@router.post(
    "",
    status_code=201,
    response_model=RidePayload,
    response_model_by_alias=True,
    response_model_exclude_none=True,
    summary="Create a ride request",
)
@limiter.limit(settings.sandbox_rate_limit)
async def create_ride(
    request: Request,
    body: RideCreateRequest,
    db: AsyncSession = Depends(get_db),
    pricing: PricingEngine = Depends(get_pricing),
    now: datetime = Depends(get_clock),
):
    repo = RideRepository(db)

    # ── Idempotency guard ─────────────────────────────────────────
    if body.idempotency_key:
        existing = await repo.get_by_idempotency_key(body.idempotency_key)
        if existing:
            logger.info("Replayed ride request %s", body.idempotency_key)
            return ride_payload(existing)

    pickup = body.pickup_location.to_entity()
    destination = body.destination_location.to_entity()
    surge = await _current_surge(db, extra_requests=1)
    fare = pricing.estimate(pickup, destination, body.ride_class, surge)

    ride = await repo.create_ride(
        pickup=pickup,
        destination=destination,
        ride_class=body.ride_class,
        payment_method=body.payment_method,
        fare=FareEstimatePayload.from_entity(fare).to_wire(),
        requested_at=now,
        passengers=body.passengers,
        notes=body.notes,
        scheduled_time=body.scheduled_time,
        idempotency_key=body.idempotency_key,
    )
    logger.info("Ride %s requested (%s, %.2f)", ride.id, body.ride_class.value, fare.total)
    return ride_payload(ride)


@router.post(
    "/estimate-fare",
    response_model=list[FareEstimatePayload],
    response_model_by_alias=True,
    summary="Estimate the fare for each requested ride class",
)
@limiter.limit(settings.sandbox_rate_limit)
async def estimate_fare(
    request: Request,
    body: FareEstimateRequest,
    db: AsyncSession = Depends(get_db),
    pricing: PricingEngine = Depends(get_pricing),
):
    pickup = body.pickup.to_entity()
    destination = body.destination.to_entity()
    surge = await _current_surge(db)
    return [
        FareEstimatePayload.from_entity(
            pricing.estimate(pickup, destination, ride_class, surge)
        )
        for ride_class in dict.fromkeys(body.ride_classes)
    ]


@router.get(
    "/{ride_id}",
    response_model=RidePayload,
    response_model_by_alias=True,
    response_model_exclude_none=True,
    summary="Get ride detail",
)
@limiter.limit(settings.sandbox_rate_limit)
async def get_ride(
    request: Request,
    ride_id: str,
    db: AsyncSession = Depends(get_db),
):
    return ride_payload(await _load_ride(db, ride_id))


@router.patch(
    "/{ride_id}/cancel",
    response_model=RidePayload,
    response_model_by_alias=True,
    response_model_exclude_none=True,
    summary="Cancel a ride",
    description=(
        "Transitions a pending, accepted or driver-arriving ride to cancelled "
        "and frees its driver.  Cancelling an already cancelled ride is a no-op."
    ),
)
@limiter.limit(settings.sandbox_rate_limit)
async def cancel_ride(
    request: Request,
    ride_id: str,
    body: CancelRideRequest,
    db: AsyncSession = Depends(get_db),
    now: datetime = Depends(get_clock),
):
    ride = await _load_ride(db, ride_id)
    status = RideStatus(ride.status)
    if status is RideStatus.CANCELLED:
        return ride_payload(ride)

    if RideStatus.CANCELLED not in RIDE_TRANSITIONS.get(status, set()):
        raise HTTPException(
            status_code=409,
            detail=f"Cannot cancel a ride that is {status.value}",
        )

    if ride.driver:
        ride.driver.is_available = True
    ride.status = RideStatus.CANCELLED
    ride.cancelled_at = now
    ride.cancel_reason = body.reason
    await db.flush()
    logger.info("Ride %s cancelled from %s", ride.id, status.value)
    return ride_payload(ride)


@router.patch(
    "/{ride_id}/rate-driver",
    response_model=RidePayload,
    response_model_by_alias=True,
    response_model_exclude_none=True,
    summary="Rate the driver of a completed ride",
)
@limiter.limit(settings.sandbox_rate_limit)
async def rate_driver(
    request: Request,
    ride_id: str,
    body: RateDriverRequest,
    db: AsyncSession = Depends(get_db),
):
    ride = await _load_ride(db, ride_id)
    if RideStatus(ride.status) is not RideStatus.COMPLETED:
        raise HTTPException(
            status_code=409, detail="Only completed rides can be rated"
        )
    if ride.rating:
        return ride_payload(ride)
    if not ride.driver or str(ride.driver.id) != body.driver_id:
        raise HTTPException(
            status_code=422, detail="Driver does not match this ride"
        )

    ride.rating = body.rating
    ride.rating_comment = body.comment
    await db.flush()
    logger.info("Ride %s rated %d", ride.id, body.rating)
    return ride_payload(ride)
