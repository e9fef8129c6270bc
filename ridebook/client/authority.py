"""
Ride authority client
=====================

Async HTTP client for the five calls the rider core makes:

POST  /rides                  -- create a ride
GET   /rides/{id}             -- ride detail (used by live sync)
POST  /rides/estimate-fare    -- priced breakdown per ride class
PATCH /rides/{id}/cancel      -- cancel a ride
PATCH /rides/{id}/rate-driver -- rate the driver of a completed ride

Every call resolves to a parsed domain value or raises one of the typed
errors in ``ridebook.client.errors``; nothing else escapes.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, TypeVar

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from ridebook.config import settings
from ridebook.domain.entities import FareEstimate, Location, Ride
from ridebook.domain.enums import RideClass

from .errors import (
    AuthorityError,
    AuthorityUnavailableError,
    ParseError,
    RideNotFoundError,
)
from .schemas import (
    CancelRideRequest,
    FareEstimatePayload,
    FareEstimateRequest,
    LocationPayload,
    RateDriverRequest,
    RideCreateRequest,
    RidePayload,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

_estimate_list = TypeAdapter(list[FareEstimatePayload])


def _error_message(response: httpx.Response) -> Optional[str]:
    """Pull the authority's human-readable message out of an error body."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        for key in ("message", "detail"):
            if isinstance(body.get(key), str) and body[key]:
                return body[key]
    return None


class RideAuthorityClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"Accept": "application/json"}
        token = token if token is not None else settings.api_token
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._http = httpx.AsyncClient(
            base_url=base_url or settings.api_base_url,
            timeout=timeout if timeout is not None else settings.api_timeout_seconds,
            headers=headers,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "RideAuthorityClient":
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    # ── Calls ─────────────────────────────────────────────────────

    async def create_ride(self, request: RideCreateRequest) -> Ride:
        data = await self._request("POST", "/rides", json=request.to_wire())
        return self._parse(RidePayload, data).to_entity()

    async def get_ride(self, ride_id: str) -> Ride:
        data = await self._request("GET", f"/rides/{ride_id}")
        return self._parse(RidePayload, data).to_entity()

    async def estimate_fare(
        self,
        pickup: Location,
        destination: Location,
        ride_classes: Iterable[RideClass] = tuple(RideClass),
    ) -> list[FareEstimate]:
        body = FareEstimateRequest(
            pickup=LocationPayload.from_entity(pickup),
            destination=LocationPayload.from_entity(destination),
            ride_classes=list(ride_classes),
        )
        data = await self._request("POST", "/rides/estimate-fare", json=body.to_wire())
        try:
            payloads = _estimate_list.validate_python(data)
        except ValidationError as exc:
            raise ParseError(detail=f"Malformed fare estimate list: {exc}") from exc
        return [p.to_entity() for p in payloads]

    async def cancel_ride(self, ride_id: str, reason: Optional[str] = None) -> Ride:
        body = CancelRideRequest(reason=reason)
        data = await self._request(
            "PATCH", f"/rides/{ride_id}/cancel", json=body.to_wire()
        )
        return self._parse(RidePayload, data).to_entity()

    async def rate_driver(
        self,
        ride_id: str,
        driver_id: str,
        rating: int,
        comment: Optional[str] = None,
    ) -> Ride:
        body = RateDriverRequest(driver_id=driver_id, rating=rating, comment=comment)
        data = await self._request(
            "PATCH", f"/rides/{ride_id}/rate-driver", json=body.to_wire()
        )
        return self._parse(RidePayload, data).to_entity()

    # ── Internals ─────────────────────────────────────────────────

    async def _request(self, method: str, path: str, json: Any = None) -> Any:
        try:
            response = await self._http.request(method, path, json=json)
        except httpx.RequestError as exc:
            logger.debug("%s %s failed before a response: %s", method, path, exc)
            raise AuthorityUnavailableError(
                detail=str(exc) or type(exc).__name__
            ) from exc

        if response.status_code == 404:
            raise RideNotFoundError(_error_message(response), 404)
        if response.is_error:
            raise AuthorityError(_error_message(response), response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise ParseError(detail=f"{method} {path} returned a non-JSON body") from exc

    @staticmethod
    def _parse(model: type[M], data: Any) -> M:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise ParseError(detail=f"Malformed {model.__name__}: {exc}") from exc
