"""Domain enumerations and state-transition rules."""

import enum


class RideStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DRIVER_ARRIVING = "driver-arriving"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# State machine: maps current status -> set of valid next statuses
RIDE_TRANSITIONS: dict[RideStatus, set[RideStatus]] = {
    RideStatus.PENDING: {RideStatus.ACCEPTED, RideStatus.CANCELLED},
    RideStatus.ACCEPTED: {RideStatus.DRIVER_ARRIVING, RideStatus.CANCELLED},
    RideStatus.DRIVER_ARRIVING: {RideStatus.IN_PROGRESS, RideStatus.CANCELLED},
    RideStatus.IN_PROGRESS: {RideStatus.COMPLETED},
    RideStatus.COMPLETED: set(),
    RideStatus.CANCELLED: set(),
}

# Happy path in timeline order; ``cancelled`` is not a step.
STATUS_ORDER: tuple[RideStatus, ...] = (
    RideStatus.PENDING,
    RideStatus.ACCEPTED,
    RideStatus.DRIVER_ARRIVING,
    RideStatus.IN_PROGRESS,
    RideStatus.COMPLETED,
)

TERMINAL_STATUSES = frozenset(
    status for status, nxt in RIDE_TRANSITIONS.items() if not nxt
)
CANCELLABLE_STATUSES = frozenset(
    status
    for status, nxt in RIDE_TRANSITIONS.items()
    if RideStatus.CANCELLED in nxt
)
DRIVER_CONTACT_STATUSES = frozenset(
    {RideStatus.ACCEPTED, RideStatus.DRIVER_ARRIVING}
)


class RideClass(str, enum.Enum):
    ECONOMY = "economy"
    PREMIUM = "premium"
    LUXURY = "luxury"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"
    WALLET = "wallet"


class RideAction(str, enum.Enum):
    CANCEL = "cancel"
    RATE = "rate"
    CALL_DRIVER = "call-driver"


class StepState(str, enum.Enum):
    COMPLETED = "completed"
    CURRENT = "current"
    PENDING = "pending"
    CANCELLED = "cancelled"
