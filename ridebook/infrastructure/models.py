"""
SQLAlchemy ORM models for the sandbox authority.

Tables
------
* ``drivers`` -- the sandbox's fixed roster, assigned on acceptance
* ``rides``   -- ride records, fare breakdown stored as JSON

Indexes
-------
* **B-Tree** on ``status``, ``driver_id`` and ``idempotency_key`` for the
  look-ups used by the routes.
"""

import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import relationship

from .database import Base
from ridebook.domain.enums import PaymentMethod, RideClass, RideStatus


def _new_ride_id() -> str:
    return uuid.uuid4().hex


class DriverModel(Base):
    __tablename__ = "drivers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(120), nullable=False)
    phone = Column(String(32), nullable=True)
    rating = Column(Float, default=5.0)
    vehicle = Column(String(120), nullable=True)
    is_available = Column(Boolean, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    __table_args__ = (Index("idx_drivers_available", "is_available"),)


class RideModel(Base):
    __tablename__ = "rides"

    id = Column(String(32), primary_key=True, default=_new_ride_id)
    status = Column(Enum(RideStatus), default=RideStatus.PENDING, nullable=False)
    ride_class = Column(Enum(RideClass), default=RideClass.ECONOMY, nullable=False)
    payment_method = Column(Enum(PaymentMethod), nullable=False)
    passengers = Column(Integer, default=1, nullable=False)
    notes = Column(Text, nullable=True)
    scheduled_time = Column(DateTime(timezone=True), nullable=True)

    pickup_address = Column(String(255), nullable=False)
    pickup_lat = Column(Float, nullable=False)
    pickup_lng = Column(Float, nullable=False)
    pickup_place_id = Column(String(128), nullable=True)
    destination_address = Column(String(255), nullable=False)
    destination_lat = Column(Float, nullable=False)
    destination_lng = Column(Float, nullable=False)
    destination_place_id = Column(String(128), nullable=True)

    # Full camelCase breakdown as published to the client
    fare = Column(JSON, nullable=False)

    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=True)
    driver = relationship(DriverModel, lazy="joined")

    requested_at = Column(DateTime(timezone=True), nullable=False)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    driver_arriving_at = Column(DateTime(timezone=True), nullable=True)
    pickup_time = Column(DateTime(timezone=True), nullable=True)
    dropoff_time = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancel_reason = Column(Text, nullable=True)

    rating = Column(Integer, nullable=True)
    rating_comment = Column(Text, nullable=True)

    idempotency_key = Column(String(64), unique=True, nullable=True)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("idx_rides_status", "status"),
        Index("idx_rides_driver", "driver_id"),
        Index("idx_rides_idempotency", "idempotency_key"),
    )
