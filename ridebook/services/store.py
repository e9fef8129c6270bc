"""
Per-view ride state container.

One ``RideViewStore`` owns the cached copy of one ride for the lifetime of
one view.  Live sync and the action handlers are its only writers; every
update is a synchronous method call, so updates apply one at a time and
listeners always observe a consistent record.
"""

from __future__ import annotations

import enum
import logging
from datetime import datetime
from typing import Callable, Optional

from ridebook.domain.entities import Ride, RideRating
from ridebook.domain.enums import RideStatus

logger = logging.getLogger(__name__)

Listener = Callable[["RideViewStore"], None]


class ViewCondition(str, enum.Enum):
    LOADING = "loading"
    READY = "ready"
    NOT_FOUND = "not-found"
    ERROR = "error"


class RideViewStore:
    def __init__(self, ride_id: str):
        self.ride_id = ride_id
        self.ride: Optional[Ride] = None
        self.condition = ViewCondition.LOADING
        self.error: Optional[str] = None
        self._listeners: list[Listener] = []

    # ── Reads ─────────────────────────────────────────────────────

    @property
    def status(self) -> Optional[RideStatus]:
        return self.ride.status if self.ride else None

    @property
    def is_terminal(self) -> bool:
        return self.ride is not None and self.ride.is_terminal

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ── Updates ───────────────────────────────────────────────────

    def load(self, ride: Ride) -> None:
        self.ride = ride.copy()
        self.condition = ViewCondition.READY
        self._emit()

    def apply_sync(self, fresh: Ride) -> None:
        """Merge an authoritative record into the cached copy."""
        if self.condition in (ViewCondition.NOT_FOUND, ViewCondition.ERROR):
            return
        if self.ride is None:
            self.load(fresh)
            return
        previous = self.ride.status
        self.ride.merge_from(fresh)
        if self.ride.status != previous:
            logger.info(
                "Ride %s: %s -> %s", self.ride_id, previous.value, self.ride.status.value
            )
        self._emit()

    def mark_cancelled(self, at: datetime) -> None:
        if self.ride is None:
            return
        self.ride.mark_cancelled(at)
        self._emit()

    def mark_rated(self, rating: RideRating) -> None:
        if self.ride is None or self.ride.rating is not None:
            return
        self.ride.rating = rating
        self._emit()

    def mark_not_found(self) -> None:
        """Fatal for the view; reported once."""
        if self.condition == ViewCondition.NOT_FOUND:
            return
        logger.warning("Ride %s no longer exists", self.ride_id)
        self.condition = ViewCondition.NOT_FOUND
        self._emit()

    def mark_failed(self, message: str) -> None:
        """Fatal for the view; reported once."""
        if self.condition in (ViewCondition.NOT_FOUND, ViewCondition.ERROR):
            return
        self.condition = ViewCondition.ERROR
        self.error = message
        self._emit()

    def _emit(self) -> None:
        for listener in list(self._listeners):
            listener(self)
