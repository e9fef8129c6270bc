"""
Live Ride Sync
==============

Keeps one view's cached ride fresh by polling ``GET /rides/{id}`` every
``ride_poll_interval_seconds`` (default 10 s) while the ride is non-terminal.

Resource rules
--------------
* **Single-flight**: a tick that fires while the previous refresh is still
  outstanding is skipped, not queued.
* **Stop conditions**: the loop ends as soon as the store reports a terminal
  status, on a 404 (fatal for the view), or when ``stop()`` is called on
  teardown.  Teardown also cancels the in-flight call and any result that
  still arrives is discarded.
* Failures the authority answers deliberately (a 4xx or a malformed body)
  are fatal for the view as well.  Transport failures and 5xx answers are
  retried on the next tick, up to ``ride_sync_max_failures`` in a row.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from ridebook.client.authority import RideAuthorityClient
from ridebook.client.errors import AuthorityError, ParseError, RideNotFoundError
from ridebook.config import settings

from .store import RideViewStore, ViewCondition

logger = logging.getLogger(__name__)


class LiveRideSync:
    def __init__(
        self,
        client: RideAuthorityClient,
        store: RideViewStore,
        interval: Optional[float] = None,
        max_failures: Optional[int] = None,
    ):
        self.client = client
        self.store = store
        self.interval = (
            interval if interval is not None else settings.ride_poll_interval_seconds
        )
        self.max_failures = (
            max_failures if max_failures is not None else settings.ride_sync_max_failures
        )
        self.refresh_count = 0
        self.skipped_ticks = 0
        self.consecutive_failures = 0
        self._task: Optional[asyncio.Task] = None
        self._in_flight: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._closed = False

    # ── Public API ────────────────────────────────────────────────

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Begin polling; a no-op when already running or the ride is terminal."""
        if self._closed or self.running or self.store.is_terminal:
            return
        self._stop_event = asyncio.Event()
        self._unsubscribe = self.store.subscribe(self._on_store_change)
        self._task = asyncio.create_task(self._loop())
        logger.info(
            "Live sync started for ride %s (interval=%ss)",
            self.store.ride_id, self.interval,
        )

    async def stop(self) -> None:
        """Tear down: stop the timer, cancel the in-flight call, drop late results."""
        self._closed = True
        if self._stop_event:
            self._stop_event.set()
        for task in (self._in_flight, self._task):
            if task and not task.done():
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        logger.info("Live sync stopped for ride %s", self.store.ride_id)

    async def wait_stopped(self) -> None:
        if self._task:
            await self._task

    async def reconcile(self) -> None:
        """One refresh outside the timer, after any refresh already in flight.

        Returns quietly when teardown cancels the refresh being waited on;
        cancellation of the caller itself still propagates.
        """
        if self._closed:
            return
        if self._in_flight and not self._in_flight.done():
            await asyncio.wait({self._in_flight})
        if self._closed or self.store.condition in (
            ViewCondition.NOT_FOUND, ViewCondition.ERROR,
        ):
            return
        self._in_flight = asyncio.create_task(self._refresh())
        await asyncio.wait({self._in_flight})

    async def __aenter__(self) -> "LiveRideSync":
        self.start()
        return self

    async def __aexit__(self, *args) -> None:
        await self.stop()

    # ── Internals ─────────────────────────────────────────────────

    async def _loop(self) -> None:
        """Periodic loop: wait one period, fire a tick, repeat until stopped."""
        assert self._stop_event is not None
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
                break
            except asyncio.TimeoutError:
                pass  # next tick
            self._tick()

    def _tick(self) -> None:
        if self._in_flight and not self._in_flight.done():
            self.skipped_ticks += 1
            logger.debug(
                "Refresh for ride %s still in flight – skipping tick",
                self.store.ride_id,
            )
            return
        self._in_flight = asyncio.create_task(self._refresh())

    async def _refresh(self) -> None:
        self.refresh_count += 1
        try:
            fresh = await self.client.get_ride(self.store.ride_id)
        except RideNotFoundError:
            if not self._closed:
                self.store.mark_not_found()
                self._halt()
            return
        except ParseError as exc:
            self._fail(exc, fatal=True)
            return
        except AuthorityError as exc:
            status = exc.status_code
            self._fail(exc, fatal=status is not None and 400 <= status < 500)
            return
        except Exception as exc:
            logger.exception("Unhandled error refreshing ride %s", self.store.ride_id)
            self._fail(exc, fatal=False)
            return

        if self._closed:
            logger.debug("Discarding refresh result for closed view %s", self.store.ride_id)
            return
        self.consecutive_failures = 0
        self.store.apply_sync(fresh)

    def _fail(self, exc: Exception, fatal: bool) -> None:
        if self._closed:
            return
        self.consecutive_failures += 1
        if not fatal and self.consecutive_failures < self.max_failures:
            logger.warning(
                "Refresh of ride %s failed (%d/%d): %s",
                self.store.ride_id, self.consecutive_failures, self.max_failures, exc,
            )
            return
        logger.error("Giving up live sync for ride %s: %s", self.store.ride_id, exc)
        message = getattr(exc, "message", None)
        self.store.mark_failed(message or "Failed to refresh ride details")
        self._halt()

    def _on_store_change(self, store: RideViewStore) -> None:
        if store.is_terminal and self._stop_event and not self._stop_event.is_set():
            logger.info(
                "Ride %s reached %s – stopping live sync",
                store.ride_id, store.status.value,
            )
            self._halt()

    def _halt(self) -> None:
        if self._stop_event:
            self._stop_event.set()
