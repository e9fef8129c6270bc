"""
Domain entities with business logic.

Patterns used
-------------
- **State Pattern** on ``Ride``: enforces valid lifecycle transitions
  (pending -> accepted -> driver-arriving -> in-progress -> completed,
  with cancellation allowed before pickup).
- ``RideTimestamps.merge`` keeps every timestamp set-once: a later sync can
  fill a gap but never clear or overwrite a populated field.
- ``Ride.merge_from`` reconciles the cached copy with a fresh authoritative
  record without ever regressing a terminal status.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from typing import Optional

from .enums import (
    RIDE_TRANSITIONS,
    TERMINAL_STATUSES,
    PaymentMethod,
    RideClass,
    RideStatus,
)

FARE_TOLERANCE = 0.01


class InvalidStateTransition(Exception):
    """Raised when a ride status change violates the state machine."""


# ── Value Objects ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class Location:
    address: str
    latitude: float
    longitude: float
    place_id: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        """True when the coordinates point at a real place."""
        if not (math.isfinite(self.latitude) and math.isfinite(self.longitude)):
            return False
        if not (-90 <= self.latitude <= 90 and -180 <= self.longitude <= 180):
            return False
        return not (self.latitude == 0 and self.longitude == 0)

    def same_place(self, other: Optional["Location"]) -> bool:
        """Recently-used lists de-duplicate on the address alone."""
        return other is not None and other.address == self.address


@dataclass(frozen=True)
class FareEstimate:
    ride_class: RideClass
    base_fare: float
    distance_fare: float
    time_fare: float
    surge_fare: float
    surge_multiplier: float
    taxes: float
    discount: float
    total: float
    distance_meters: float = 0.0
    duration_minutes: float = 0.0
    currency: str = "USD"

    @property
    def expected_total(self) -> float:
        return (
            self.base_fare
            + self.distance_fare
            + self.time_fare
            + self.surge_fare
            + self.taxes
            - self.discount
        )

    def is_consistent(self, tolerance: float = FARE_TOLERANCE) -> bool:
        return abs(self.total - self.expected_total) <= tolerance


@dataclass(frozen=True)
class DriverSummary:
    id: str
    name: str
    phone: Optional[str] = None
    rating: Optional[float] = None
    vehicle: Optional[str] = None


@dataclass(frozen=True)
class RideRating:
    value: int
    comment: Optional[str] = None


@dataclass(frozen=True)
class RideTimestamps:
    requested: datetime
    accepted: Optional[datetime] = None
    driver_arriving: Optional[datetime] = None
    pickup_time: Optional[datetime] = None
    dropoff_time: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    def merge(self, incoming: "RideTimestamps") -> "RideTimestamps":
        """Fill empty fields from *incoming*; populated fields win."""
        merged = {}
        for f in fields(self):
            current = getattr(self, f.name)
            merged[f.name] = current if current is not None else getattr(incoming, f.name)
        return RideTimestamps(**merged)

    def populated(self) -> dict[str, datetime]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


# ── Entities ──────────────────────────────────────────────────────────


@dataclass
class Ride:
    id: str
    pickup_location: Location
    destination_location: Location
    fare: FareEstimate
    timestamps: RideTimestamps
    status: RideStatus = RideStatus.PENDING
    ride_class: RideClass = RideClass.ECONOMY
    payment_method: PaymentMethod = PaymentMethod.CASH
    passengers: int = 1
    driver: Optional[DriverSummary] = None
    notes: Optional[str] = None
    scheduled_time: Optional[datetime] = None
    rating: Optional[RideRating] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def transition_to(self, new_status: RideStatus) -> None:
        """Move to *new_status* if the transition is legal, else raise."""
        allowed = RIDE_TRANSITIONS.get(self.status, set())
        if new_status not in allowed:
            raise InvalidStateTransition(
                f"Cannot transition from {self.status.value} to {new_status.value}"
            )
        self.status = new_status

    def merge_from(self, fresh: "Ride") -> None:
        """Adopt the authority's view of the ride, keeping set-once fields."""
        if fresh.id != self.id:
            raise ValueError(f"Cannot merge ride {fresh.id} into {self.id}")
        if not self.is_terminal:
            self.status = fresh.status
        self.timestamps = self.timestamps.merge(fresh.timestamps)
        self.driver = fresh.driver or self.driver
        self.rating = self.rating or fresh.rating
        self.fare = fresh.fare
        self.notes = fresh.notes
        self.scheduled_time = fresh.scheduled_time

    def mark_cancelled(self, at: datetime) -> None:
        if self.status != RideStatus.CANCELLED:
            self.transition_to(RideStatus.CANCELLED)
        self.timestamps = self.timestamps.merge(
            replace(self.timestamps, cancelled_at=at)
        )

    def copy(self) -> "Ride":
        return replace(self)


@dataclass
class RecentLocations:
    """Most-recent-first list of picked locations, unique by address."""

    limit: int = 5
    items: list[Location] = field(default_factory=list)

    def remember(self, location: Location) -> None:
        self.items = [loc for loc in self.items if not loc.same_place(location)]
        self.items.insert(0, location)
        del self.items[self.limit:]

    def forget(self, address: str) -> None:
        self.items = [loc for loc in self.items if loc.address != address]

    def clear(self) -> None:
        self.items.clear()
