"""
Ride request builder and form state.

``build_ride_request`` validates user selections into a ``RideCreateRequest``.
``RideRequestForm`` holds the booking form (with recently used locations),
asks the estimation adapter for a price, and submits exactly once when a
price for the current inputs is on screen.
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from ridebook.client.authority import RideAuthorityClient
from ridebook.client.errors import AuthorityError
from ridebook.client.schemas import (
    COMMENT_MAX_LENGTH,
    LocationPayload,
    RideCreateRequest,
)
from ridebook.config import settings
from ridebook.domain.entities import FareEstimate, Location, RecentLocations
from ridebook.domain.enums import PaymentMethod, RideClass

from .estimation import EstimateResult, FareEstimationAdapter
from .exceptions import RideRequestError
from .notifications import Notifier

logger = logging.getLogger(__name__)

MIN_PASSENGERS = 1
MAX_PASSENGERS = 4
GENERIC_SUBMIT_ERROR = "Failed to create ride request"


def clamp_passengers(passengers: int) -> int:
    return max(MIN_PASSENGERS, min(MAX_PASSENGERS, int(passengers)))


def _valid_coordinates(location: Location) -> bool:
    return (
        math.isfinite(location.latitude)
        and math.isfinite(location.longitude)
        and -90 <= location.latitude <= 90
        and -180 <= location.longitude <= 180
    )


def build_ride_request(
    pickup: Optional[Location],
    destination: Optional[Location],
    ride_class: Union[RideClass, str],
    payment_method: Union[PaymentMethod, str],
    passengers: int = 1,
    notes: Optional[str] = None,
    scheduled_time: Optional[datetime] = None,
    idempotency_key: Optional[str] = None,
) -> RideCreateRequest:
    """Validate the form inputs; raise ``RideRequestError`` listing every problem."""
    errors: dict[str, str] = {}

    if pickup is None or not pickup.address.strip():
        errors["pickup_location"] = "Pickup location is required"
    elif not _valid_coordinates(pickup):
        errors["pickup_location"] = "Pickup location has invalid coordinates"
    if destination is None or not destination.address.strip():
        errors["destination_location"] = "Destination is required"
    elif not _valid_coordinates(destination):
        errors["destination_location"] = "Destination has invalid coordinates"

    try:
        ride_class = RideClass(ride_class)
    except ValueError:
        errors["ride_class"] = f"Unknown ride class: {ride_class}"
    try:
        payment_method = PaymentMethod(payment_method)
    except ValueError:
        errors["payment_method"] = "Payment method must be cash, card or wallet"

    notes = (notes or "").strip() or None
    if notes and len(notes) > COMMENT_MAX_LENGTH:
        errors["notes"] = f"Notes must be at most {COMMENT_MAX_LENGTH} characters"

    if errors:
        raise RideRequestError(errors)

    return RideCreateRequest(
        pickup_location=LocationPayload.from_entity(pickup),
        destination_location=LocationPayload.from_entity(destination),
        ride_class=ride_class,
        payment_method=payment_method,
        passengers=clamp_passengers(passengers),
        notes=notes,
        scheduled_time=scheduled_time,
        idempotency_key=idempotency_key,
    )


@dataclass(frozen=True)
class SubmitResult:
    ride_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.ride_id is not None


class RideRequestForm:
    def __init__(
        self,
        client: RideAuthorityClient,
        estimator: Optional[FareEstimationAdapter] = None,
        notifier: Optional[Notifier] = None,
        recent_limit: Optional[int] = None,
    ):
        self.client = client
        self.estimator = estimator or FareEstimationAdapter(client)
        self.notifier = notifier or Notifier()
        limit = recent_limit if recent_limit is not None else settings.recent_locations_limit
        self.recent_pickups = RecentLocations(limit=limit)
        self.recent_destinations = RecentLocations(limit=limit)
        self.submitting = False
        self.reset()

    def reset(self) -> None:
        self.pickup: Optional[Location] = None
        self.destination: Optional[Location] = None
        self.ride_class = RideClass.ECONOMY
        self.payment_method = PaymentMethod.CASH
        self.passengers = 1
        self.notes = ""
        self.scheduled_time: Optional[datetime] = None

    # ── Field updates ─────────────────────────────────────────────

    def set_pickup(self, location: Location) -> None:
        self.pickup = location
        self.recent_pickups.remember(location)

    def set_destination(self, location: Location) -> None:
        self.destination = location
        self.recent_destinations.remember(location)

    def swap_locations(self) -> None:
        self.pickup, self.destination = self.destination, self.pickup

    def set_passengers(self, passengers: int) -> None:
        self.passengers = clamp_passengers(passengers)

    # ── Pricing ───────────────────────────────────────────────────

    async def refresh_estimate(self) -> EstimateResult:
        return await self.estimator.estimate(
            self.pickup, self.destination, self.ride_class
        )

    @property
    def fare_estimate(self) -> EstimateResult:
        return self.estimator.current(self.pickup, self.destination, self.ride_class)

    @property
    def can_submit(self) -> bool:
        if self.submitting or not isinstance(self.fare_estimate, FareEstimate):
            return False
        try:
            self._build()
        except RideRequestError:
            return False
        return True

    # ── Submission ────────────────────────────────────────────────

    def _build(self, idempotency_key: Optional[str] = None) -> RideCreateRequest:
        return build_ride_request(
            self.pickup,
            self.destination,
            self.ride_class,
            self.payment_method,
            self.passengers,
            self.notes,
            self.scheduled_time,
            idempotency_key,
        )

    async def submit(self) -> SubmitResult:
        """Create the ride; on success return its id for the caller to route to."""
        if not isinstance(self.fare_estimate, FareEstimate):
            raise RideRequestError(
                {"fare": "A fare estimate for this trip is required before booking"}
            )
        if self.submitting:
            raise RideRequestError({"form": "A ride request is already being submitted"})
        request = self._build(idempotency_key=uuid.uuid4().hex)

        self.submitting = True
        try:
            ride = await self.client.create_ride(request)
        except AuthorityError as exc:
            message = exc.message or GENERIC_SUBMIT_ERROR
            logger.warning("Ride request failed: %s", exc)
            self.notifier.error(message)
            return SubmitResult(error=message)
        finally:
            self.submitting = False

        logger.info("Ride %s requested", ride.id)
        self.notifier.success("Ride requested successfully!")
        return SubmitResult(ride_id=ride.id)
