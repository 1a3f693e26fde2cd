from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import date, timedelta

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.db.models import Trip
from app.services.route_segments import RouteTopology
from app.services.seat_propagation import (
    SeatPropagator,
    SeatStoreError,
    TripNotFoundError,
    propagate_seat_change,
)

from factories import SERVICE_DATE, create_route, publish_run, seats_by_segment, segment_trip

ALL_SEGMENTS = ["AD", "AB", "AC", "BC", "BD", "CD"]


def _full(capacity: int = 40) -> dict[str, int]:
    return {key: capacity for key in ALL_SEGMENTS}


def test_reserving_middle_segment_blocks_overlapping_trips(db_session: Session) -> None:
    route = create_route(db_session)
    [main_id] = publish_run(db_session, route)
    bc = segment_trip(db_session, main_id, "B", "C")

    result = propagate_seat_change(db_session, bc.trip_id, -4)
    db_session.commit()

    assert result.applied_delta == -4
    assert seats_by_segment(db_session, main_id) == {
        "AD": 36,
        "AB": 40,
        "AC": 36,
        "BC": 36,
        "BD": 36,
        "CD": 40,
    }


def test_releasing_seats_restores_counts(db_session: Session) -> None:
    route = create_route(db_session)
    [main_id] = publish_run(db_session, route)
    ac = segment_trip(db_session, main_id, "A", "C")

    propagate_seat_change(db_session, ac.trip_id, -5)
    propagate_seat_change(db_session, ac.trip_id, 5)
    db_session.commit()

    assert seats_by_segment(db_session, main_id) == _full()


def test_main_trip_change_reaches_every_sub_trip(db_session: Session) -> None:
    route = create_route(db_session)
    [main_id] = publish_run(db_session, route)

    result = propagate_seat_change(db_session, main_id, -3)
    db_session.commit()

    assert seats_by_segment(db_session, main_id) == _full(37)
    assert len(result.updated) == 6


def test_other_runs_of_same_departure_are_updated(db_session: Session) -> None:
    route = create_route(db_session)
    [first_id] = publish_run(db_session, route)
    [second_id] = publish_run(db_session, route)
    bc = segment_trip(db_session, first_id, "B", "C")

    propagate_seat_change(db_session, bc.trip_id, -2)
    db_session.commit()

    expected = {"AD": 38, "AB": 40, "AC": 38, "BC": 38, "BD": 38, "CD": 40}
    assert seats_by_segment(db_session, first_id) == expected
    assert seats_by_segment(db_session, second_id) == expected


def test_other_dates_are_untouched(db_session: Session) -> None:
    route = create_route(db_session)
    today_id, tomorrow_id = publish_run(
        db_session,
        route,
        start=SERVICE_DATE,
        end=SERVICE_DATE + timedelta(days=1),
    )

    propagate_seat_change(db_session, today_id, -6)
    db_session.commit()

    assert seats_by_segment(db_session, today_id) == _full(34)
    assert seats_by_segment(db_session, tomorrow_id) == _full()


def test_increase_on_full_trip_is_absorbed(db_session: Session) -> None:
    route = create_route(db_session)
    [main_id] = publish_run(db_session, route)
    bc = segment_trip(db_session, main_id, "B", "C")

    result = propagate_seat_change(db_session, bc.trip_id, 10)
    db_session.commit()

    assert result.applied_delta == 0
    assert result.updated == {}
    assert seats_by_segment(db_session, main_id) == _full()


def test_overdraw_is_clamped_and_only_effective_delta_spreads(db_session: Session) -> None:
    route = create_route(db_session, stops=["B", "C"])
    [main_id] = publish_run(db_session, route, capacity=10)
    ab = segment_trip(db_session, main_id, "A", "B")
    cd = segment_trip(db_session, main_id, "C", "D")

    propagate_seat_change(db_session, ab.trip_id, -3)
    result = propagate_seat_change(db_session, cd.trip_id, -50)
    db_session.commit()

    assert result.applied_delta == -10
    seats = seats_by_segment(db_session, main_id)
    assert seats["CD"] == 0
    assert seats["AD"] == 0
    assert seats["AB"] == 7
    assert all(0 <= value <= 10 for value in seats.values())


def test_bounds_hold_after_random_sequence(db_session: Session) -> None:
    route = create_route(db_session)
    [first_id] = publish_run(db_session, route, capacity=12)
    publish_run(db_session, route, capacity=12)
    trip_ids = list(db_session.scalars(select(Trip.trip_id)))
    rng = random.Random(7)

    for _ in range(40):
        propagate_seat_change(db_session, rng.choice(trip_ids), rng.randint(-6, 6))
    db_session.commit()
    db_session.expire_all()

    for trip in db_session.scalars(select(Trip)):
        assert 0 <= trip.available_seats <= trip.capacity
    assert first_id in trip_ids


def test_missing_trip_raises_and_writes_nothing(db_session: Session) -> None:
    route = create_route(db_session)
    [main_id] = publish_run(db_session, route)

    with pytest.raises(TripNotFoundError) as exc:
        propagate_seat_change(db_session, 9999, -1)

    assert exc.value.code == "trip_not_found"
    assert seats_by_segment(db_session, main_id) == _full()


def test_segment_off_route_updates_target_and_parent_only(db_session: Session, caplog) -> None:
    route = create_route(db_session)
    [main_id] = publish_run(db_session, route)
    bc = segment_trip(db_session, main_id, "B", "C")
    bc.segment_origin = "Z"
    db_session.commit()

    with caplog.at_level(logging.WARNING, logger="app.services.seat_propagation"):
        propagate_seat_change(db_session, bc.trip_id, -4)
    db_session.commit()

    assert "does not match route" in caplog.text
    seats = seats_by_segment(db_session, main_id)
    assert seats["ZC"] == 36
    assert seats["AD"] == 36
    assert seats["AC"] == 40
    assert seats["BD"] == 40


def test_orphan_sub_trip_only_updates_itself(db_session: Session) -> None:
    route = create_route(db_session)
    orphan = Trip(
        route_id=route.route_id,
        capacity=20,
        available_seats=20,
        price=50,
        departure_date=SERVICE_DATE,
        is_sub_trip=True,
        segment_origin="A",
        segment_destination="B",
    )
    db_session.add(orphan)
    db_session.commit()

    result = propagate_seat_change(db_session, orphan.trip_id, -2)
    db_session.commit()

    assert result.updated == {orphan.trip_id: 18}


# --------------------------------------------------------------------- #
# In-memory stores
# --------------------------------------------------------------------- #
@dataclass
class _Trip:
    trip_id: int
    route_id: int
    departure_date: date
    capacity: int
    available_seats: int
    is_sub_trip: bool
    parent_trip_id: int | None = None
    segment_origin: str | None = None
    segment_destination: str | None = None


class _MemoryTripStore:
    def __init__(self, trips: list[_Trip], failing: set[int] | None = None):
        self.trips = {trip.trip_id: trip for trip in trips}
        self.failing = failing or set()
        self.locked: list[tuple[int, date]] = []

    def get(self, trip_id, *, lock=False):
        return self.trips.get(trip_id)

    def update(self, trip_id, available_seats):
        self.trips[trip_id].available_seats = available_seats
        return self.trips[trip_id]

    def apply_seat_delta(self, trip_id, delta):
        if trip_id in self.failing:
            raise SeatStoreError("deadlock")
        trip = self.trips[trip_id]
        trip.available_seats = max(0, min(trip.capacity, trip.available_seats + delta))
        return trip.available_seats

    def find_sibling_sub_trips(self, parent_trip_id, exclude_id):
        return [
            t for t in self.trips.values()
            if t.parent_trip_id == parent_trip_id and t.trip_id != exclude_id
        ]

    def find_main_trips_by_same_route_and_date(self, route_id, departure_date, exclude_id):
        return [
            t for t in self.trips.values()
            if not t.is_sub_trip
            and t.route_id == route_id
            and t.departure_date == departure_date
            and t.trip_id != exclude_id
        ]

    def find_sub_trips(self, parent_trip_id):
        return [t for t in self.trips.values() if t.parent_trip_id == parent_trip_id]

    def lock_departure(self, route_id, departure_date):
        self.locked.append((route_id, departure_date))


class _MemoryRouteStore:
    def get_route_with_stops(self, route_id):
        return RouteTopology(origin="A", destination="D", stops=("B", "C"))


def _memory_run() -> list[_Trip]:
    trips = [_Trip(1, 7, SERVICE_DATE, 10, 10, False)]
    pairs = [("A", "B"), ("A", "C"), ("B", "C"), ("B", "D"), ("C", "D")]
    for offset, (origin, destination) in enumerate(pairs, start=2):
        trips.append(_Trip(offset, 7, SERVICE_DATE, 10, 10, True, 1, origin, destination))
    return trips


def test_failed_related_update_is_skipped(caplog) -> None:
    # ids: 2=AB 3=AC 4=BC 5=BD 6=CD
    store = _MemoryTripStore(_memory_run(), failing={3})
    propagator = SeatPropagator(store, _MemoryRouteStore())

    with caplog.at_level(logging.WARNING, logger="app.services.seat_propagation"):
        result = propagator.propagate(4, -2)

    assert result.skipped == [3]
    assert result.updated == {4: 8, 1: 8, 5: 8}
    assert store.trips[3].available_seats == 10
    assert store.trips[2].available_seats == 10
    assert store.locked == [(7, SERVICE_DATE)]
    assert "Seat update failed for trip 3" in caplog.text
