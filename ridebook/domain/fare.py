"""Fare breakdown presentation helpers shared by the estimate card and ride detail."""

from __future__ import annotations

from dataclasses import dataclass

from .entities import FareEstimate

_CURRENCY_SYMBOLS = {"USD": "$", "EUR": "€", "GBP": "£", "INR": "₹"}


@dataclass(frozen=True)
class FareRow:
    key: str
    label: str
    amount: float
    display: str
    emphasis: str = "normal"  # normal | surcharge | credit | total


def format_currency(amount: float, currency: str = "USD") -> str:
    symbol = _CURRENCY_SYMBOLS.get(currency)
    if symbol is None:
        return f"{amount:,.2f} {currency}"
    return f"{symbol}{amount:,.2f}"


def format_distance(meters: float) -> str:
    if meters >= 1000:
        return f"{meters / 1000:.1f} km"
    return f"{round(meters)} m"


def breakdown_rows(fare: FareEstimate) -> list[FareRow]:
    """Rows shown on the fare card.

    Base, distance and time rows always appear; surge, taxes and discount
    only when non-zero.
    """
    def fmt(amount: float) -> str:
        return format_currency(amount, fare.currency)

    rows = [
        FareRow("base_fare", "Base Fare", fare.base_fare, fmt(fare.base_fare)),
        FareRow("distance_fare", "Distance", fare.distance_fare,
                fmt(fare.distance_fare)),
        FareRow("time_fare", "Time", fare.time_fare, fmt(fare.time_fare)),
    ]
    if fare.surge_fare > 0:
        rows.append(
            FareRow("surge_fare", f"Surge Pricing ({fare.surge_multiplier:g}x)",
                    fare.surge_fare, f"+{fmt(fare.surge_fare)}", "surcharge")
        )
    if fare.taxes > 0:
        rows.append(FareRow("taxes", "Taxes & Fees", fare.taxes, fmt(fare.taxes)))
    if fare.discount > 0:
        rows.append(
            FareRow("discount", "Discount", fare.discount,
                    f"-{fmt(fare.discount)}", "credit")
        )
    rows.append(FareRow("total", "Total", fare.total, fmt(fare.total), "total"))
    return rows
