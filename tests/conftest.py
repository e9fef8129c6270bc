"""
Shared test fixtures.

* ``ScriptedAuthority`` -- an in-memory ride authority mounted behind
  ``httpx.MockTransport`` so client-side services run against real HTTP
  round trips without a server.
* ``api`` -- the sandbox FastAPI app over ``ASGITransport``, backed by an
  in-memory SQLite database (via aiosqlite) seeded with the driver roster.
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from ridebook.client.authority import RideAuthorityClient
from ridebook.domain.entities import (
    FareEstimate,
    Location,
    Ride,
    RideTimestamps,
)
from ridebook.domain.enums import RideClass, RideStatus

AUTHORITY_URL = "http://authority.test/api/v1"
REQUESTED_AT = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)

PICKUP = Location("A St", 40.7128, -74.0060, place_id="place-a")
DESTINATION = Location("B Ave", 40.7306, -73.9352, place_id="place-b")


# ── Domain factories ──────────────────────────────────────────────────


def make_fare(ride_class: RideClass = RideClass.ECONOMY, **overrides) -> FareEstimate:
    values = dict(
        ride_class=ride_class,
        base_fare=5.0,
        distance_fare=8.0,
        time_fare=3.0,
        surge_fare=0.0,
        surge_multiplier=1.0,
        taxes=1.2,
        discount=0.0,
        total=17.2,
    )
    values.update(overrides)
    return FareEstimate(**values)


def make_ride(
    ride_id: str = "ride-1",
    status: RideStatus = RideStatus.PENDING,
    **overrides,
) -> Ride:
    values = dict(
        id=ride_id,
        status=status,
        pickup_location=PICKUP,
        destination_location=DESTINATION,
        fare=make_fare(),
        timestamps=RideTimestamps(requested=REQUESTED_AT),
    )
    values.update(overrides)
    return Ride(**values)


# ── Wire factories ────────────────────────────────────────────────────


def location_json(location: Location) -> dict:
    return {
        "address": location.address,
        "latitude": location.latitude,
        "longitude": location.longitude,
        "placeId": location.place_id,
    }


def fare_json(ride_class: str = "economy", **overrides) -> dict:
    data = {
        "rideClass": ride_class,
        "baseFare": 5.0,
        "distanceFare": 8.0,
        "timeFare": 3.0,
        "surgeFare": 0.0,
        "surgeMultiplier": 1.0,
        "taxes": 1.2,
        "discount": 0.0,
        "total": 17.2,
        "distanceMeters": 8000,
        "durationMinutes": 12,
        "currency": "USD",
    }
    data.update(overrides)
    return data


def ride_json(ride_id: str = "ride-1", status: str = "pending", **overrides) -> dict:
    data = {
        "id": ride_id,
        "status": status,
        "pickupLocation": location_json(PICKUP),
        "destinationLocation": location_json(DESTINATION),
        "rideClass": "economy",
        "fare": fare_json(),
        "paymentMethod": "cash",
        "passengers": 1,
        "timestamps": {"requested": REQUESTED_AT.isoformat()},
    }
    data.update(overrides)
    return data


DRIVER_JSON = {
    "id": "drv-7",
    "name": "Priya Patel",
    "phone": "+1-555-0102",
    "rating": 4.9,
    "vehicle": "Honda City - KA02 CD 5678",
}

# Timestamp field stamped when a scripted ride enters each status
_STAMPS = {
    "accepted": "accepted",
    "driver-arriving": "driverArriving",
    "in-progress": "pickupTime",
    "completed": "dropoffTime",
    "cancelled": "cancelledAt",
}


# ── Scripted authority ────────────────────────────────────────────────


class ScriptedAuthority:
    """Minimal ride authority whose behaviour each test scripts up front.

    ``advance_on_get`` queues statuses that successive ``GET /rides/{id}``
    calls apply before answering; ``fail`` makes one kind of call answer
    with an error; ``gate`` holds every GET until the event is set and
    ``hold`` does the same for any other kind of call.
    """

    def __init__(self):
        self.rides: dict[str, dict] = {}
        self.estimates: list[dict] = [
            fare_json("economy"),
            fare_json(
                "premium", baseFare=8.0, distanceFare=12.0, timeFare=4.0,
                taxes=1.92, total=25.92,
            ),
            fare_json(
                "luxury", baseFare=12.0, distanceFare=20.0, timeFare=6.0,
                taxes=3.04, total=41.04,
            ),
        ]
        self.calls: list[tuple[str, str]] = []
        self.bodies: list[dict] = []
        self.failures: dict[str, tuple[int, dict]] = {}
        self.unavailable: set[str] = set()
        self.get_script: dict[str, list[str]] = {}
        self.gate: Optional[asyncio.Event] = None
        self.held: dict[str, asyncio.Event] = {}
        self._counter = 0

    # ── Scripting ─────────────────────────────────────────────────

    def add_ride(self, ride_id: str = "ride-1", status: str = "pending", **overrides) -> dict:
        ride = ride_json(ride_id, status, **overrides)
        if status in ("accepted", "driver-arriving", "in-progress", "completed"):
            ride.setdefault("driver", dict(DRIVER_JSON))
        self.rides[ride_id] = ride
        return ride

    def set_status(self, ride_id: str, status: str) -> None:
        ride = self.rides[ride_id]
        ride["status"] = status
        if status == "accepted":
            ride.setdefault("driver", dict(DRIVER_JSON))
        stamp = _STAMPS.get(status)
        if stamp:
            ride["timestamps"].setdefault(stamp, REQUESTED_AT.isoformat())

    def advance_on_get(self, ride_id: str, *statuses: str) -> None:
        self.get_script[ride_id] = list(statuses)

    def fail(self, kind: str, status_code: int = 500, body: Optional[dict] = None) -> None:
        self.failures[kind] = (status_code, body or {})

    def hold(self, kind: str) -> asyncio.Event:
        """Hold every call of one kind until the returned event is set."""
        self.held[kind] = asyncio.Event()
        return self.held[kind]

    def count(self, kind: str) -> int:
        return sum(1 for k, _ in self.calls if k == kind)

    # ── Transport ─────────────────────────────────────────────────

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    async def handle(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix("/api/v1")
        parts = [p for p in path.split("/") if p]
        kind, ride_id = self._route(request.method, parts)
        self.calls.append((kind, ride_id or ""))
        body = json.loads(request.content) if request.content else {}
        self.bodies.append(body)

        if kind in self.unavailable:
            raise httpx.ConnectError("connection refused", request=request)
        if kind == "get" and self.gate is not None:
            await self.gate.wait()
        if kind in self.held:
            await self.held[kind].wait()
        if kind in self.failures:
            status_code, payload = self.failures[kind]
            return httpx.Response(status_code, json=payload)

        if kind == "estimate":
            wanted = set(body.get("rideClasses", []))
            return httpx.Response(
                200, json=[e for e in self.estimates if e["rideClass"] in wanted]
            )
        if kind == "create":
            self._counter += 1
            new_id = f"ride-new-{self._counter}"
            ride = ride_json(
                new_id,
                "pending",
                pickupLocation=body["pickupLocation"],
                destinationLocation=body["destinationLocation"],
                rideClass=body["rideClass"],
                paymentMethod=body["paymentMethod"],
                passengers=body.get("passengers", 1),
                fare=next(
                    e for e in self.estimates if e["rideClass"] == body["rideClass"]
                ),
            )
            self.rides[new_id] = ride
            return httpx.Response(201, json=ride)

        ride = self.rides.get(ride_id)
        if ride is None:
            return httpx.Response(404, json={"message": "Ride not found"})

        if kind == "get":
            script = self.get_script.get(ride_id)
            if script:
                self.set_status(ride_id, script.pop(0))
        elif kind == "cancel":
            self.set_status(ride_id, "cancelled")
        elif kind == "rate":
            ride["rating"] = {"value": body["rating"], "comment": body.get("comment")}
        return httpx.Response(200, json=ride)

    @staticmethod
    def _route(method: str, parts: list[str]) -> tuple[str, Optional[str]]:
        if method == "POST" and parts == ["rides"]:
            return "create", None
        if method == "POST" and parts == ["rides", "estimate-fare"]:
            return "estimate", None
        if method == "GET" and len(parts) == 2:
            return "get", parts[1]
        if method == "PATCH" and parts[-1] == "cancel":
            return "cancel", parts[1]
        if method == "PATCH" and parts[-1] == "rate-driver":
            return "rate", parts[1]
        raise AssertionError(f"unexpected call {method} /{'/'.join(parts)}")


@pytest.fixture
def authority() -> ScriptedAuthority:
    return ScriptedAuthority()


@pytest_asyncio.fixture
async def authority_client(
    authority: ScriptedAuthority,
) -> AsyncGenerator[RideAuthorityClient, None]:
    client = RideAuthorityClient(AUTHORITY_URL, transport=authority.transport)
    yield client
    await client.aclose()


# ── Sandbox authority (SQLite in-memory) ──────────────────────────────

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def sandbox_sessions() -> AsyncGenerator[async_sessionmaker, None]:
    """Create the schema on a fresh in-memory DB and seed the drivers."""
    from ridebook.infrastructure.database import Base
    from ridebook.sandbox.seed import seed_drivers

    engine = create_async_engine(TEST_DB_URL, echo=False, poolclass=StaticPool)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with factory() as session:
        await seed_drivers(session)
        await session.commit()

    yield factory

    await engine.dispose()


@pytest_asyncio.fixture
async def sandbox_app(sandbox_sessions: async_sessionmaker):
    from ridebook.sandbox.app import create_app
    from ridebook.sandbox.dependencies import get_db
    from ridebook.sandbox.middleware import limiter

    async def _test_db():
        async with sandbox_sessions() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    limiter.reset()
    app = create_app()
    app.dependency_overrides[get_db] = _test_db
    return app


@pytest_asyncio.fixture
async def api(sandbox_app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=sandbox_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ── Async helpers ─────────────────────────────────────────────────────

FAST = 0.01  # poll interval for live-sync tests


async def wait_until(predicate, timeout: float = 2.0) -> None:
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)
