"""
Ride detail view session.

``RideView`` is the handle a presentation layer holds while a ride detail
screen is open::

    async with RideView(client, ride_id) as view:
        model = view.read_model()
        await view.actions.cancel()

Entering loads the ride and starts live sync when it is non-terminal;
leaving stops sync and cancels anything still in flight.
"""

from __future__ import annotations

import logging
from typing import Optional

from ridebook.client.authority import RideAuthorityClient
from ridebook.client.errors import AuthorityError, RideNotFoundError

from .actions import RideActionHandlers
from .live_sync import LiveRideSync
from .notifications import Notifier
from .read_model import RideReadModel
from .store import RideViewStore, ViewCondition

logger = logging.getLogger(__name__)


class RideView:
    def __init__(
        self,
        client: RideAuthorityClient,
        ride_id: str,
        *,
        notifier: Optional[Notifier] = None,
        poll_interval: Optional[float] = None,
    ):
        self.client = client
        self.notifier = notifier or Notifier()
        self.store = RideViewStore(ride_id)
        self.sync = LiveRideSync(client, self.store, interval=poll_interval)
        self.actions = RideActionHandlers(client, self.store, self.sync, self.notifier)

    @property
    def condition(self) -> ViewCondition:
        return self.store.condition

    async def open(self) -> None:
        try:
            ride = await self.client.get_ride(self.store.ride_id)
        except RideNotFoundError:
            self.store.mark_not_found()
            return
        except AuthorityError as exc:
            logger.warning("Could not load ride %s: %s", self.store.ride_id, exc)
            self.store.mark_failed(exc.message or "Failed to load ride details")
            self.notifier.error(self.store.error)
            return

        self.store.load(ride)
        self.sync.start()

    async def close(self) -> None:
        await self.actions.aclose()
        await self.sync.stop()

    async def __aenter__(self) -> "RideView":
        await self.open()
        return self

    async def __aexit__(self, *args) -> None:
        await self.close()

    def read_model(self) -> Optional[RideReadModel]:
        if self.store.ride is None or self.condition != ViewCondition.READY:
            return None
        return RideReadModel.from_ride(self.store.ride)
