"""
Cancellation / rating action handlers.

Both actions are gated by the status machine before any call is made.  A
failed call leaves the cached ride untouched and is reported once through
the notifier; nothing is retried automatically.  Calls still outstanding
when the view closes are cancelled and their results dropped.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from ridebook.client.authority import RideAuthorityClient
from ridebook.client.errors import AuthorityError
from ridebook.client.schemas import COMMENT_MAX_LENGTH
from ridebook.domain import lifecycle
from ridebook.domain.entities import Ride, RideRating

from .exceptions import ActionNotAllowedError
from .live_sync import LiveRideSync
from .notifications import Notifier
from .store import RideViewStore

logger = logging.getLogger(__name__)

RATING_LABELS = {1: "Poor", 2: "Fair", 3: "Good", 4: "Very Good", 5: "Excellent"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RatingPrompt:
    """Dialog state; entered values survive a failed submission."""

    is_open: bool = False
    value: Optional[int] = None
    comment: Optional[str] = None

    @property
    def label(self) -> Optional[str]:
        return RATING_LABELS.get(self.value) if self.value else None

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        self.is_open = False
        self.value = None
        self.comment = None


class RideActionHandlers:
    def __init__(
        self,
        client: RideAuthorityClient,
        store: RideViewStore,
        sync: LiveRideSync,
        notifier: Optional[Notifier] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.client = client
        self.store = store
        self.sync = sync
        self.notifier = notifier or Notifier()
        self.clock = clock
        self.cancelling = False
        self.rating_in_progress = False
        self.rating_prompt = RatingPrompt()
        self._calls: set[asyncio.Task] = set()
        self._closed = False

    def _ride(self) -> Ride:
        if self._closed:
            raise ActionNotAllowedError("Ride view is closed")
        if self.store.ride is None:
            raise ActionNotAllowedError("Ride is not loaded")
        return self.store.ride

    async def _call(self, coro: Awaitable[Ride]) -> Optional[Ride]:
        """Run one authority call tied to the view; None once the view is closed."""
        task = asyncio.ensure_future(coro)
        self._calls.add(task)
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            self._calls.discard(task)
        if task.cancelled():
            return None
        if self._closed:
            task.exception()  # retrieved so a late failure is not reported
            logger.debug("Discarding action result for closed view %s", self.store.ride_id)
            return None
        return task.result()

    async def aclose(self) -> None:
        """Cancel every outstanding call; their results are dropped."""
        self._closed = True
        pending = [task for task in self._calls if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.wait(pending)

    # ── Cancel ────────────────────────────────────────────────────

    async def cancel(self, reason: Optional[str] = None) -> bool:
        """Cancel the ride; True on success, False if refused or the view closed."""
        ride = self._ride()
        if not lifecycle.can_cancel(ride):
            raise ActionNotAllowedError(
                f"Ride {ride.id} cannot be cancelled while {ride.status.value}"
            )
        if self.cancelling:
            raise ActionNotAllowedError("Cancellation already in progress")

        self.cancelling = True
        try:
            confirmed = await self._call(self.client.cancel_ride(ride.id, reason))
        except AuthorityError as exc:
            logger.warning("Cancel of ride %s failed: %s", ride.id, exc)
            self.notifier.error(exc.message or "Failed to cancel ride")
            return False
        finally:
            self.cancelling = False
        if confirmed is None:
            return False

        self.store.apply_sync(confirmed)
        self.store.mark_cancelled(self.clock())
        self.notifier.success("Ride cancelled successfully")
        await self.sync.reconcile()
        return True

    # ── Rate ──────────────────────────────────────────────────────

    def open_rating_prompt(self) -> None:
        if not lifecycle.can_rate(self._ride()):
            raise ActionNotAllowedError("This ride cannot be rated")
        self.rating_prompt.open()

    async def rate(self, value: int, comment: Optional[str] = None) -> bool:
        """Rate the driver; True on success, False if refused or the view closed."""
        ride = self._ride()
        if not lifecycle.can_rate(ride):
            raise ActionNotAllowedError(f"Ride {ride.id} cannot be rated")
        if ride.driver is None:
            raise ActionNotAllowedError(f"Ride {ride.id} has no driver to rate")
        if self.rating_in_progress:
            raise ActionNotAllowedError("Rating already being submitted")
        if not 1 <= value <= 5:
            raise ValueError("Rating must be between 1 and 5")
        comment = (comment or "").strip() or None
        if comment and len(comment) > COMMENT_MAX_LENGTH:
            raise ValueError(f"Comment must be at most {COMMENT_MAX_LENGTH} characters")

        self.rating_prompt.value = value
        self.rating_prompt.comment = comment
        self.rating_in_progress = True
        try:
            confirmed = await self._call(
                self.client.rate_driver(ride.id, ride.driver.id, value, comment)
            )
        except AuthorityError as exc:
            logger.warning("Rating of ride %s failed: %s", ride.id, exc)
            self.notifier.error(exc.message or "Failed to submit rating")
            return False
        finally:
            self.rating_in_progress = False
        if confirmed is None:
            return False

        self.store.apply_sync(confirmed)
        self.store.mark_rated(RideRating(value, comment))
        self.rating_prompt.close()
        self.notifier.success("Rating submitted successfully")
        return True
