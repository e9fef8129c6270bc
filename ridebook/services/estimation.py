"""
Fare Estimation Adapter
=======================

Turns a (pickup, destination, ride class) tuple into one of:

* a ``FareEstimate`` for exactly that tuple,
* ``EstimateStatus.PENDING`` while the authority is being asked,
* ``EstimateStatus.UNAVAILABLE`` when inputs are incomplete or the call
  failed.

Estimation is advisory: failures are logged, never raised, and never turned
into a zero price.  Each new tuple bumps a generation counter; a response
that arrives for a superseded generation is dropped.
"""

from __future__ import annotations

import enum
import logging
from typing import Optional, Union

from ridebook.client.authority import RideAuthorityClient
from ridebook.client.errors import AuthorityError
from ridebook.domain.entities import FareEstimate, Location
from ridebook.domain.enums import RideClass

logger = logging.getLogger(__name__)


class EstimateStatus(str, enum.Enum):
    PENDING = "pending"
    UNAVAILABLE = "unavailable"


EstimateResult = Union[FareEstimate, EstimateStatus]
Route = tuple[Location, Location]


def _resolved(location: Optional[Location]) -> bool:
    return location is not None and location.is_resolved


class FareEstimationAdapter:
    def __init__(self, client: RideAuthorityClient):
        self.client = client
        self._route: Optional[Route] = None
        self._ride_class: Optional[RideClass] = None
        self._quotes: dict[RideClass, FareEstimate] = {}
        self._pending = False
        self._generation = 0

    def current(
        self,
        pickup: Optional[Location],
        destination: Optional[Location],
        ride_class: RideClass,
    ) -> EstimateResult:
        """Result held for this exact tuple, without touching the network."""
        if not (_resolved(pickup) and _resolved(destination)):
            return EstimateStatus.UNAVAILABLE
        if (pickup, destination) != self._route or ride_class != self._ride_class:
            return EstimateStatus.UNAVAILABLE
        if self._pending:
            return EstimateStatus.PENDING
        return self._quotes.get(ride_class, EstimateStatus.UNAVAILABLE)

    def invalidate(self) -> None:
        self._generation += 1
        self._route = None
        self._ride_class = None
        self._quotes = {}
        self._pending = False

    async def estimate(
        self,
        pickup: Optional[Location],
        destination: Optional[Location],
        ride_class: RideClass,
    ) -> EstimateResult:
        if not (_resolved(pickup) and _resolved(destination)):
            self.invalidate()
            return EstimateStatus.UNAVAILABLE

        route = (pickup, destination)
        if route == self._route:
            if ride_class == self._ride_class:
                # Same inputs: no new request, whatever the last outcome was.
                return self.current(pickup, destination, ride_class)
            if ride_class in self._quotes:
                self._ride_class = ride_class
                return self._quotes[ride_class]

        self.invalidate()
        generation = self._generation
        self._route, self._ride_class = route, ride_class
        self._pending = True

        try:
            estimates = await self.client.estimate_fare(pickup, destination)
        except AuthorityError as exc:
            if generation == self._generation:
                self._pending = False
                logger.warning(
                    "Fare estimate unavailable for %s -> %s (%s): %s",
                    pickup.address, destination.address, ride_class.value, exc,
                )
            return EstimateStatus.UNAVAILABLE

        if generation != self._generation:
            logger.debug("Discarding fare estimate for superseded route")
            return EstimateStatus.UNAVAILABLE

        self._pending = False
        self._quotes = {e.ride_class: e for e in estimates}
        return self._quotes.get(ride_class, EstimateStatus.UNAVAILABLE)
