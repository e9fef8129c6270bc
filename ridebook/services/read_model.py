"""Read model handed to presentation layers, derived purely from a ``Ride``."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ridebook.domain import lifecycle
from ridebook.domain.entities import Ride
from ridebook.domain.enums import RideAction, RideStatus, StepState
from ridebook.domain.fare import breakdown_rows


class ReadModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FareRowView(ReadModel):
    key: str
    label: str
    amount: float
    display: str
    emphasis: str


class TimelineStepView(ReadModel):
    key: str
    label: str
    description: str
    state: StepState
    timestamp: Optional[datetime] = None


class RideReadModel(ReadModel):
    ride_id: str
    status: RideStatus
    status_label: str
    status_color: str
    allowed_actions: list[RideAction]
    fare_total: float
    currency: str
    fare_breakdown_rows: list[FareRowView]
    timeline_steps: list[TimelineStepView]
    timestamps: dict[str, datetime]

    @classmethod
    def from_ride(cls, ride: Ride) -> "RideReadModel":
        display = lifecycle.STATUS_DISPLAY[ride.status]
        allowed = lifecycle.allowed_actions(ride)
        return cls(
            ride_id=ride.id,
            status=ride.status,
            status_label=display.label,
            status_color=display.color,
            allowed_actions=[action for action in RideAction if action in allowed],
            fare_total=ride.fare.total,
            currency=ride.fare.currency,
            fare_breakdown_rows=[
                FareRowView(
                    key=row.key,
                    label=row.label,
                    amount=row.amount,
                    display=row.display,
                    emphasis=row.emphasis,
                )
                for row in breakdown_rows(ride.fare)
            ],
            timeline_steps=[
                TimelineStepView(
                    key=step.key,
                    label=step.label,
                    description=step.description,
                    state=step.state,
                    timestamp=step.timestamp,
                )
                for step in lifecycle.timeline_steps(ride)
            ],
            timestamps=ride.timestamps.populated(),
        )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, raw: str) -> "RideReadModel":
        return cls.model_validate_json(raw)
