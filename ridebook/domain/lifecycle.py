"""
Ride Status Machine
===================

Pure functions over a ``Ride`` / ``RideStatus`` that every consumer shares:

* the progress timeline (``derive_step_status`` / ``timeline_steps``),
* which user actions are currently permitted (``allowed_actions``),
* whether live sync should keep running (``is_terminal``).

No I/O happens here.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .entities import Ride, RideTimestamps
from .enums import (
    CANCELLABLE_STATUSES,
    DRIVER_CONTACT_STATUSES,
    STATUS_ORDER,
    TERMINAL_STATUSES,
    RideAction,
    RideStatus,
    StepState,
)


@dataclass(frozen=True)
class StatusDisplay:
    label: str
    color: str


STATUS_DISPLAY: dict[RideStatus, StatusDisplay] = {
    RideStatus.PENDING: StatusDisplay("Pending", "yellow"),
    RideStatus.ACCEPTED: StatusDisplay("Accepted", "blue"),
    RideStatus.DRIVER_ARRIVING: StatusDisplay("Driver Arriving", "purple"),
    RideStatus.IN_PROGRESS: StatusDisplay("In Progress", "green"),
    RideStatus.COMPLETED: StatusDisplay("Completed", "emerald"),
    RideStatus.CANCELLED: StatusDisplay("Cancelled", "red"),
}


@dataclass(frozen=True)
class TimelineStep:
    key: str
    label: str
    description: str
    status: RideStatus


# One step per happy-path status; ``key`` names the matching timestamp field.
TIMELINE: tuple[TimelineStep, ...] = (
    TimelineStep("requested", "Ride Requested",
                 "Your ride request has been submitted", RideStatus.PENDING),
    TimelineStep("accepted", "Driver Assigned",
                 "A driver has accepted your ride", RideStatus.ACCEPTED),
    TimelineStep("driver_arriving", "Driver Arriving",
                 "Driver is on the way to pickup location",
                 RideStatus.DRIVER_ARRIVING),
    TimelineStep("pickup_time", "Trip Started",
                 "You have been picked up, trip in progress",
                 RideStatus.IN_PROGRESS),
    TimelineStep("dropoff_time", "Trip Completed",
                 "You have reached your destination", RideStatus.COMPLETED),
)

CANCELLED_STEP = TimelineStep(
    "cancelled_at", "Ride Cancelled", "The ride has been cancelled",
    RideStatus.CANCELLED,
)


@dataclass(frozen=True)
class RenderedStep:
    key: str
    label: str
    description: str
    state: StepState
    timestamp: Optional[datetime] = None


def is_terminal(status: RideStatus) -> bool:
    return status in TERMINAL_STATUSES


def derive_step_status(
    step: RideStatus,
    current: RideStatus,
    timestamps: Optional[RideTimestamps] = None,
) -> Optional[StepState]:
    """Return the visual state of *step* while the ride is at *current*.

    For a cancelled ride only steps that actually happened are shown; an
    unreached step yields ``None`` (omitted from the timeline).
    """
    if step == RideStatus.CANCELLED:
        return StepState.CANCELLED if current == RideStatus.CANCELLED else None

    if current == RideStatus.CANCELLED:
        if timestamps is None:
            return None
        key = TIMELINE[STATUS_ORDER.index(step)].key
        return StepState.COMPLETED if getattr(timestamps, key) else None

    current_index = STATUS_ORDER.index(current)
    step_index = STATUS_ORDER.index(step)
    if step_index <= current_index:
        return StepState.COMPLETED
    if step_index == current_index + 1:
        return StepState.CURRENT
    return StepState.PENDING


def timeline_steps(ride: Ride) -> list[RenderedStep]:
    steps: list[RenderedStep] = []
    for step in TIMELINE:
        state = derive_step_status(step.status, ride.status, ride.timestamps)
        if state is None:
            continue
        steps.append(
            RenderedStep(
                key=step.key,
                label=step.label,
                description=step.description,
                state=state,
                timestamp=getattr(ride.timestamps, step.key),
            )
        )

    if ride.status == RideStatus.CANCELLED:
        steps.append(
            RenderedStep(
                key=CANCELLED_STEP.key,
                label=CANCELLED_STEP.label,
                description=CANCELLED_STEP.description,
                state=StepState.CANCELLED,
                timestamp=ride.timestamps.cancelled_at,
            )
        )
    return steps


# ── Action guards ─────────────────────────────────────────────────────


def can_cancel(ride: Ride) -> bool:
    return ride.status in CANCELLABLE_STATUSES


def can_rate(ride: Ride) -> bool:
    return ride.status == RideStatus.COMPLETED and ride.rating is None


def can_call_driver(ride: Ride) -> bool:
    return ride.status in DRIVER_CONTACT_STATUSES and ride.driver is not None


_GUARDS = {
    RideAction.CANCEL: can_cancel,
    RideAction.RATE: can_rate,
    RideAction.CALL_DRIVER: can_call_driver,
}


def is_allowed(action: RideAction, ride: Ride) -> bool:
    return _GUARDS[action](ride)


def allowed_actions(ride: Ride) -> frozenset[RideAction]:
    return frozenset(action for action, guard in _GUARDS.items() if guard(ride))
