"""Unit tests for ride state transitions, the timeline and action guards."""

from datetime import timedelta

import pytest

from ridebook.domain import lifecycle
from ridebook.domain.entities import (
    DriverSummary,
    InvalidStateTransition,
    Location,
    RecentLocations,
    RideRating,
    RideTimestamps,
)
from ridebook.domain.enums import RideAction, RideStatus, StepState

from tests.conftest import REQUESTED_AT, make_ride

DRIVER = DriverSummary("drv-7", "Priya Patel", "+1-555-0102", 4.9, "Honda City")


class TestRideStateMachine:
    def test_initial_status_is_pending(self):
        assert make_ride().status == RideStatus.PENDING

    # ── Valid transitions ─────────────────────────────────────────

    def test_happy_path(self):
        ride = make_ride()
        for status in (
            RideStatus.ACCEPTED,
            RideStatus.DRIVER_ARRIVING,
            RideStatus.IN_PROGRESS,
            RideStatus.COMPLETED,
        ):
            ride.transition_to(status)
        assert ride.status == RideStatus.COMPLETED
        assert ride.is_terminal

    @pytest.mark.parametrize(
        "status",
        [RideStatus.PENDING, RideStatus.ACCEPTED, RideStatus.DRIVER_ARRIVING],
    )
    def test_cancel_before_pickup(self, status):
        ride = make_ride(status=status)
        ride.transition_to(RideStatus.CANCELLED)
        assert ride.status == RideStatus.CANCELLED

    # ── Invalid transitions ───────────────────────────────────────

    def test_pending_to_completed_fails(self):
        with pytest.raises(InvalidStateTransition):
            make_ride().transition_to(RideStatus.COMPLETED)

    def test_in_progress_to_cancelled_fails(self):
        """Once the trip has started it can only complete."""
        with pytest.raises(InvalidStateTransition):
            make_ride(status=RideStatus.IN_PROGRESS).transition_to(RideStatus.CANCELLED)

    @pytest.mark.parametrize("terminal", [RideStatus.COMPLETED, RideStatus.CANCELLED])
    def test_terminal_states_are_final(self, terminal):
        ride = make_ride(status=terminal)
        for status in RideStatus:
            with pytest.raises(InvalidStateTransition):
                ride.transition_to(status)


class TestMerge:
    def test_timestamps_are_set_once(self):
        later = REQUESTED_AT + timedelta(minutes=3)
        local = RideTimestamps(requested=REQUESTED_AT, accepted=REQUESTED_AT)
        incoming = RideTimestamps(requested=later, accepted=later, driver_arriving=later)

        merged = local.merge(incoming)

        assert merged.requested == REQUESTED_AT
        assert merged.accepted == REQUESTED_AT
        assert merged.driver_arriving == later

    def test_merge_never_clears_a_timestamp(self):
        local = RideTimestamps(requested=REQUESTED_AT, accepted=REQUESTED_AT)
        merged = local.merge(RideTimestamps(requested=REQUESTED_AT))
        assert merged.accepted == REQUESTED_AT

    def test_terminal_status_is_not_regressed(self):
        ride = make_ride(status=RideStatus.CANCELLED)
        ride.merge_from(make_ride(status=RideStatus.ACCEPTED, driver=DRIVER))
        assert ride.status == RideStatus.CANCELLED

    def test_merge_adopts_status_and_driver(self):
        ride = make_ride()
        ride.merge_from(make_ride(status=RideStatus.ACCEPTED, driver=DRIVER))
        assert ride.status == RideStatus.ACCEPTED
        assert ride.driver == DRIVER

    def test_local_rating_survives_merge(self):
        ride = make_ride(status=RideStatus.COMPLETED, rating=RideRating(5, "great"))
        ride.merge_from(make_ride(status=RideStatus.COMPLETED))
        assert ride.rating == RideRating(5, "great")

    def test_merge_rejects_other_ride(self):
        with pytest.raises(ValueError):
            make_ride("a").merge_from(make_ride("b"))

    def test_mark_cancelled_is_idempotent(self):
        ride = make_ride(status=RideStatus.ACCEPTED)
        first = REQUESTED_AT + timedelta(minutes=1)
        ride.mark_cancelled(first)
        ride.mark_cancelled(first + timedelta(minutes=1))
        assert ride.status == RideStatus.CANCELLED
        assert ride.timestamps.cancelled_at == first


class TestStepStatus:
    def test_in_progress_ride(self):
        current = RideStatus.DRIVER_ARRIVING
        assert lifecycle.derive_step_status(RideStatus.PENDING, current) == StepState.COMPLETED
        assert lifecycle.derive_step_status(RideStatus.DRIVER_ARRIVING, current) == StepState.COMPLETED
        assert lifecycle.derive_step_status(RideStatus.IN_PROGRESS, current) == StepState.CURRENT
        assert lifecycle.derive_step_status(RideStatus.COMPLETED, current) == StepState.PENDING

    def test_completed_ride_has_every_step_completed(self):
        states = {
            lifecycle.derive_step_status(step, RideStatus.COMPLETED)
            for step in (
                RideStatus.PENDING, RideStatus.ACCEPTED, RideStatus.DRIVER_ARRIVING,
                RideStatus.IN_PROGRESS, RideStatus.COMPLETED,
            )
        }
        assert states == {StepState.COMPLETED}

    def test_cancelled_ride_shows_only_reached_steps(self):
        ride = make_ride(
            status=RideStatus.CANCELLED,
            timestamps=RideTimestamps(
                requested=REQUESTED_AT,
                accepted=REQUESTED_AT + timedelta(minutes=1),
                cancelled_at=REQUESTED_AT + timedelta(minutes=2),
            ),
        )
        steps = lifecycle.timeline_steps(ride)

        assert [s.key for s in steps] == ["requested", "accepted", "cancelled_at"]
        assert [s.state for s in steps] == [
            StepState.COMPLETED, StepState.COMPLETED, StepState.CANCELLED,
        ]
        assert steps[-1].timestamp == REQUESTED_AT + timedelta(minutes=2)

    def test_cancel_marker_only_for_cancelled_rides(self):
        assert lifecycle.derive_step_status(RideStatus.CANCELLED, RideStatus.PENDING) is None
        keys = [s.key for s in lifecycle.timeline_steps(make_ride())]
        assert "cancelled_at" not in keys
        assert len(keys) == 5


class TestAllowedActions:
    @pytest.mark.parametrize("status", list(RideStatus))
    def test_cancel_permitted_exactly_before_pickup(self, status):
        expected = status in {
            RideStatus.PENDING, RideStatus.ACCEPTED, RideStatus.DRIVER_ARRIVING,
        }
        assert lifecycle.can_cancel(make_ride(status=status)) is expected

    def test_rate_only_once_when_completed(self):
        ride = make_ride(status=RideStatus.COMPLETED, driver=DRIVER)
        assert lifecycle.is_allowed(RideAction.RATE, ride)
        ride.rating = RideRating(4)
        assert not lifecycle.is_allowed(RideAction.RATE, ride)

    def test_rate_not_allowed_before_completion(self):
        ride = make_ride(status=RideStatus.IN_PROGRESS, driver=DRIVER)
        assert not lifecycle.can_rate(ride)

    def test_call_driver_needs_a_driver(self):
        assert not lifecycle.can_call_driver(make_ride(status=RideStatus.ACCEPTED))
        ride = make_ride(status=RideStatus.DRIVER_ARRIVING, driver=DRIVER)
        assert lifecycle.allowed_actions(ride) == {
            RideAction.CANCEL, RideAction.CALL_DRIVER,
        }

    def test_terminal_cancelled_ride_allows_nothing(self):
        assert lifecycle.allowed_actions(make_ride(status=RideStatus.CANCELLED)) == frozenset()


class TestLocations:
    def test_resolved_location(self):
        assert Location("A St", 40.7, -74.0).is_resolved
        assert not Location("Null Island", 0, 0).is_resolved
        assert not Location("Bad", 91, 0).is_resolved
        assert not Location("NaN", float("nan"), 1).is_resolved

    def test_recent_locations_move_to_front_and_cap(self):
        recent = RecentLocations(limit=2)
        a, b, c = (Location(n, 1, 1) for n in ("A", "B", "C"))
        recent.remember(a)
        recent.remember(b)
        recent.remember(Location("A", 2, 2))
        assert [loc.address for loc in recent.items] == ["A", "B"]
        recent.remember(c)
        assert [loc.address for loc in recent.items] == ["C", "A"]
        recent.forget("A")
        assert [loc.address for loc in recent.items] == ["C"]
