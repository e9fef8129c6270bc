"""Pydantic wire schemas for the ride authority's REST contract.

Field names travel as camelCase.  Every response is validated strictly: a
missing or mistyped field raises instead of being guessed at.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from ridebook.domain.entities import (
    FARE_TOLERANCE,
    DriverSummary,
    FareEstimate,
    Location,
    Ride,
    RideRating,
    RideTimestamps,
)
from ridebook.domain.enums import PaymentMethod, RideClass, RideStatus

COMMENT_MAX_LENGTH = 500


class WireModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    def to_wire(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ── Shared shapes ─────────────────────────────────────────────────────


class LocationPayload(WireModel):
    address: str
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    place_id: Optional[str] = None

    @classmethod
    def from_entity(cls, location: Location) -> "LocationPayload":
        return cls(
            address=location.address,
            latitude=location.latitude,
            longitude=location.longitude,
            place_id=location.place_id,
        )

    def to_entity(self) -> Location:
        return Location(self.address, self.latitude, self.longitude, self.place_id)


class FareEstimatePayload(WireModel):
    ride_class: RideClass
    base_fare: float = Field(..., ge=0)
    distance_fare: float = Field(..., ge=0)
    time_fare: float = Field(..., ge=0)
    surge_fare: float = Field(..., ge=0)
    surge_multiplier: float = Field(1.0, ge=1)
    taxes: float = Field(..., ge=0)
    discount: float = Field(..., ge=0)
    total: float = Field(..., ge=0)
    distance_meters: float = Field(0, ge=0)
    duration_minutes: float = Field(0, ge=0)
    currency: str = "USD"

    @model_validator(mode="after")
    def _total_matches_parts(self) -> "FareEstimatePayload":
        if not self.to_entity().is_consistent(FARE_TOLERANCE):
            raise ValueError(
                f"fare total {self.total} does not match its breakdown"
            )
        return self

    @classmethod
    def from_entity(cls, fare: FareEstimate) -> "FareEstimatePayload":
        return cls(
            ride_class=fare.ride_class,
            base_fare=fare.base_fare,
            distance_fare=fare.distance_fare,
            time_fare=fare.time_fare,
            surge_fare=fare.surge_fare,
            surge_multiplier=fare.surge_multiplier,
            taxes=fare.taxes,
            discount=fare.discount,
            total=fare.total,
            distance_meters=fare.distance_meters,
            duration_minutes=fare.duration_minutes,
            currency=fare.currency,
        )

    def to_entity(self) -> FareEstimate:
        return FareEstimate(
            ride_class=self.ride_class,
            base_fare=self.base_fare,
            distance_fare=self.distance_fare,
            time_fare=self.time_fare,
            surge_fare=self.surge_fare,
            surge_multiplier=self.surge_multiplier,
            taxes=self.taxes,
            discount=self.discount,
            total=self.total,
            distance_meters=self.distance_meters,
            duration_minutes=self.duration_minutes,
            currency=self.currency,
        )


class DriverPayload(WireModel):
    id: str
    name: str
    phone: Optional[str] = None
    rating: Optional[float] = Field(None, ge=0, le=5)
    vehicle: Optional[str] = None

    def to_entity(self) -> DriverSummary:
        return DriverSummary(self.id, self.name, self.phone, self.rating, self.vehicle)


class RatingPayload(WireModel):
    value: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=COMMENT_MAX_LENGTH)


class TimestampsPayload(WireModel):
    requested: datetime
    accepted: Optional[datetime] = None
    driver_arriving: Optional[datetime] = None
    pickup_time: Optional[datetime] = None
    dropoff_time: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    def to_entity(self) -> RideTimestamps:
        return RideTimestamps(**self.model_dump())


class RidePayload(WireModel):
    id: str
    status: RideStatus
    pickup_location: LocationPayload
    destination_location: LocationPayload
    ride_class: RideClass = RideClass.ECONOMY
    driver: Optional[DriverPayload] = None
    fare: FareEstimatePayload
    payment_method: PaymentMethod
    passengers: int = Field(1, ge=1, le=4)
    notes: Optional[str] = None
    scheduled_time: Optional[datetime] = None
    timestamps: TimestampsPayload
    rating: Optional[RatingPayload] = None

    def to_entity(self) -> Ride:
        return Ride(
            id=self.id,
            status=self.status,
            pickup_location=self.pickup_location.to_entity(),
            destination_location=self.destination_location.to_entity(),
            ride_class=self.ride_class,
            driver=self.driver.to_entity() if self.driver else None,
            fare=self.fare.to_entity(),
            payment_method=self.payment_method,
            passengers=self.passengers,
            notes=self.notes,
            scheduled_time=self.scheduled_time,
            timestamps=self.timestamps.to_entity(),
            rating=(
                RideRating(self.rating.value, self.rating.comment)
                if self.rating
                else None
            ),
        )


# ── Requests ──────────────────────────────────────────────────────────


class RideCreateRequest(WireModel):
    pickup_location: LocationPayload
    destination_location: LocationPayload
    ride_class: RideClass
    payment_method: PaymentMethod
    passengers: int = Field(1, ge=1, le=4)
    notes: Optional[str] = Field(None, max_length=COMMENT_MAX_LENGTH)
    scheduled_time: Optional[datetime] = None
    idempotency_key: Optional[str] = Field(
        None,
        max_length=64,
        description="Client-generated key to prevent double-booking on retries.",
    )


class FareEstimateRequest(WireModel):
    pickup: LocationPayload
    destination: LocationPayload
    ride_classes: list[RideClass] = Field(..., min_length=1)


class CancelRideRequest(WireModel):
    reason: Optional[str] = Field(None, max_length=COMMENT_MAX_LENGTH)


class RateDriverRequest(WireModel):
    driver_id: str
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=COMMENT_MAX_LENGTH)
