"""
Sandbox Fare Engine  (Strategy Pattern)
=======================================

Used only by the bundled sandbox authority; the rider client consumes the
breakdown the authority returns and never prices a ride itself.

Formula
-------
Subtotal = Base_Fare + Distance x Rate_Per_KM + Minutes x Rate_Per_Minute
Surge    = Subtotal x (Surge_Multiplier - 1)
Taxes    = (Subtotal + Surge) x Tax_Rate
Total    = Subtotal + Surge + Taxes - Discount

* **Surge_Multiplier** = clamp(active_requests / available_drivers, 1.0, 3.0)
* Each component is rounded to cents *before* summing so the published
  ``total`` always equals the sum of the published parts.

Complexity: O(1) per estimate.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from .distance import haversine_km, travel_minutes
from .entities import FareEstimate, Location
from .enums import RideClass


@dataclass(frozen=True)
class Tariff:
    base_fare: float
    rate_per_km: float
    rate_per_minute: float


TARIFFS: dict[RideClass, Tariff] = {
    RideClass.ECONOMY: Tariff(base_fare=2.50, rate_per_km=1.20, rate_per_minute=0.25),
    RideClass.PREMIUM: Tariff(base_fare=4.00, rate_per_km=1.80, rate_per_minute=0.35),
    RideClass.LUXURY: Tariff(base_fare=7.00, rate_per_km=2.80, rate_per_minute=0.50),
}


# ── Strategy hierarchy ────────────────────────────────────────────────


class PricingStrategy(ABC):
    @abstractmethod
    def calculate(
        self, distance_km: float, minutes: float, tariff: Tariff
    ) -> float: ...


class StandardPricing(PricingStrategy):
    def calculate(
        self, distance_km: float, minutes: float, tariff: Tariff
    ) -> float:
        return (
            tariff.base_fare
            + distance_km * tariff.rate_per_km
            + minutes * tariff.rate_per_minute
        )


class SurgePricing(PricingStrategy):
    def __init__(self, surge_multiplier: float = 1.0):
        self.surge_multiplier = surge_multiplier

    def calculate(
        self, distance_km: float, minutes: float, tariff: Tariff
    ) -> float:
        standard = StandardPricing().calculate(distance_km, minutes, tariff)
        return standard * self.surge_multiplier


# ── Engine facade ─────────────────────────────────────────────────────


class PricingEngine:
    """High-level API used by the sandbox estimate and create-ride routes."""

    def __init__(
        self,
        tax_rate: float = 0.08,
        average_speed_kmh: float = 30.0,
        currency: str = "USD",
    ):
        self.tax_rate = tax_rate
        self.average_speed_kmh = average_speed_kmh
        self.currency = currency

    @staticmethod
    def compute_surge(active_requests: int, available_drivers: int) -> float:
        if available_drivers <= 0:
            return 3.0
        return min(3.0, max(1.0, active_requests / available_drivers))

    def estimate(
        self,
        pickup: Location,
        destination: Location,
        ride_class: RideClass,
        surge_multiplier: float = 1.0,
        discount: float = 0.0,
    ) -> FareEstimate:
        tariff = TARIFFS[ride_class]
        distance_km = haversine_km(
            pickup.latitude, pickup.longitude,
            destination.latitude, destination.longitude,
        )
        minutes = travel_minutes(distance_km, self.average_speed_kmh)

        base_fare = round(tariff.base_fare, 2)
        distance_fare = round(distance_km * tariff.rate_per_km, 2)
        time_fare = round(minutes * tariff.rate_per_minute, 2)
        standard = StandardPricing().calculate(distance_km, minutes, tariff)
        surged = SurgePricing(surge_multiplier).calculate(distance_km, minutes, tariff)
        surge_fare = round(surged - standard, 2)

        subtotal = base_fare + distance_fare + time_fare + surge_fare
        taxes = round(subtotal * self.tax_rate, 2)
        discount = round(min(max(discount, 0.0), subtotal + taxes), 2)
        total = round(subtotal + taxes - discount, 2)

        return FareEstimate(
            ride_class=ride_class,
            base_fare=base_fare,
            distance_fare=distance_fare,
            time_fare=time_fare,
            surge_fare=surge_fare,
            surge_multiplier=round(surge_multiplier, 2),
            taxes=taxes,
            discount=discount,
            total=total,
            distance_meters=round(distance_km * 1000, 1),
            duration_minutes=round(minutes, 1),
            currency=self.currency,
        )
