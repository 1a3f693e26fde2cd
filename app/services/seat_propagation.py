"""Keep seat availability consistent across a departure's overlapping trips.

A departure is one main trip (the full route run) plus one sub-trip per
purchasable segment. Selling or releasing seats on any of them changes the
availability of every trip whose stop range overlaps it: the parent, the
overlapping siblings, and the other main trips published for the same route
and date together with their overlapping sub-trips.

The caller owns the transaction. ``SeatPropagator.propagate`` only flushes;
the reservation/package/trip services commit once the whole operation has
succeeded, so a failed propagation rolls back together with the write that
triggered it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Protocol, Sequence

from app.services.route_segments import RouteTopology
from app.services.segment_overlap import (
    SegmentRange,
    TopologyMismatchError,
    full_range,
    locate_segment,
    overlaps,
    resolve_segment,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class SeatPropagationError(Exception):
    """Raised when a seat change cannot be applied at all."""

    def __init__(self, code: str, detail: str | None = None) -> None:
        self.code = code
        self.detail = detail or code
        super().__init__(self.detail)


class TripNotFoundError(SeatPropagationError):
    pass


class SeatStoreError(Exception):
    """Raised by a store when a single related-trip write fails."""


class TripRecord(Protocol):
    trip_id: int
    route_id: int
    departure_date: date
    capacity: int
    available_seats: int
    is_sub_trip: bool
    parent_trip_id: int | None
    segment_origin: str | None
    segment_destination: str | None


class RouteStore(Protocol):
    def get_route_with_stops(self, route_id: int) -> RouteTopology | None: ...


class TripStore(Protocol):
    def get(self, trip_id: int, *, lock: bool = False) -> TripRecord | None: ...

    def update(self, trip_id: int, available_seats: int) -> TripRecord: ...

    def apply_seat_delta(self, trip_id: int, delta: int) -> int | None: ...

    def find_sibling_sub_trips(self, parent_trip_id: int, exclude_id: int) -> Sequence[TripRecord]: ...

    def find_main_trips_by_same_route_and_date(
        self, route_id: int, departure_date: date, exclude_id: int
    ) -> Sequence[TripRecord]: ...

    def find_sub_trips(self, parent_trip_id: int) -> Sequence[TripRecord]: ...

    def lock_departure(self, route_id: int, departure_date: date) -> None: ...


@dataclass(slots=True)
class PropagationResult:
    trip_id: int
    requested_delta: int
    applied_delta: int = 0
    updated: dict[int, int] = field(default_factory=dict)
    skipped: list[int] = field(default_factory=list)


def clamp_seats(value: int, capacity: int) -> int:
    return max(0, min(capacity, value))


class SeatPropagator:
    def __init__(self, trips: TripStore, routes: RouteStore) -> None:
        self.trips = trips
        self.routes = routes

    def propagate(self, trip_id: int, seat_delta: int) -> PropagationResult:
        """Apply ``seat_delta`` (negative = seats taken) to a trip and every overlapping trip."""
        trip = self.trips.get(trip_id)
        if trip is None:
            raise TripNotFoundError("trip_not_found", f"trip {trip_id} does not exist")

        parent: TripRecord | None = None
        if trip.is_sub_trip and trip.parent_trip_id is not None:
            parent = self.trips.get(trip.parent_trip_id)
        anchor = parent if trip.is_sub_trip else trip
        if anchor is not None:
            self.trips.lock_departure(anchor.route_id, anchor.departure_date)
        # Re-read under the departure lock
        trip = self.trips.get(trip_id, lock=True) or trip

        result = PropagationResult(trip_id=trip.trip_id, requested_delta=seat_delta)
        new_seats = clamp_seats(trip.available_seats + seat_delta, trip.capacity)
        applied = new_seats - trip.available_seats
        result.applied_delta = applied
        if applied == 0:
            logger.info(
                "Trip %s: seat change %s absorbed by bounds (available=%s, capacity=%s)",
                trip.trip_id,
                seat_delta,
                trip.available_seats,
                trip.capacity,
            )
            return result

        self.trips.update(trip.trip_id, new_seats)
        result.updated[trip.trip_id] = new_seats

        if trip.is_sub_trip:
            self._propagate_from_sub_trip(trip, parent, applied, result)
        else:
            self._propagate_from_main_trip(trip, applied, result)

        logger.info(
            "Trip %s: seat change %s (applied %s) touched %s trips, skipped %s",
            trip.trip_id,
            seat_delta,
            applied,
            len(result.updated),
            len(result.skipped),
        )
        return result

    # ------------------------------------------------------------------ #
    # Fan-out
    # ------------------------------------------------------------------ #
    def _propagate_from_sub_trip(
        self,
        trip: TripRecord,
        parent: TripRecord | None,
        delta: int,
        result: PropagationResult,
    ) -> None:
        if parent is None:
            logger.warning(
                "Sub-trip %s has no parent trip (parent_trip_id=%s); only the sub-trip was updated",
                trip.trip_id,
                trip.parent_trip_id,
            )
            return

        self._apply(parent.trip_id, delta, result)

        topology = self.routes.get_route_with_stops(parent.route_id)
        target_range: SegmentRange | None = None
        if topology is None:
            logger.warning(
                "Route %s of trip %s not found; skipping overlap propagation",
                parent.route_id,
                trip.trip_id,
            )
        else:
            try:
                target_range = locate_segment(topology, trip.segment_origin, trip.segment_destination)
            except TopologyMismatchError as exc:
                logger.warning(
                    "Trip %s segment does not match route %s (%s); skipping overlap propagation",
                    trip.trip_id,
                    parent.route_id,
                    exc.detail,
                )

        if topology is not None and target_range is not None:
            for sibling in self.trips.find_sibling_sub_trips(parent.trip_id, trip.trip_id):
                self._apply_if_overlapping(sibling, topology, target_range, delta, result)

        self._propagate_to_other_departures(parent, topology, target_range, delta, result)

    def _propagate_from_main_trip(self, trip: TripRecord, delta: int, result: PropagationResult) -> None:
        # The main trip spans the whole route, so every one of its segments is affected
        for sub_trip in self.trips.find_sub_trips(trip.trip_id):
            self._apply(sub_trip.trip_id, delta, result)

        topology = self.routes.get_route_with_stops(trip.route_id)
        if topology is None:
            logger.warning(
                "Route %s of trip %s not found; sub-trips of sibling runs are left untouched",
                trip.route_id,
                trip.trip_id,
            )
        target_range = full_range(topology) if topology is not None else None
        self._propagate_to_other_departures(trip, topology, target_range, delta, result)

    def _propagate_to_other_departures(
        self,
        main_trip: TripRecord,
        topology: RouteTopology | None,
        target_range: SegmentRange | None,
        delta: int,
        result: PropagationResult,
    ) -> None:
        others = self.trips.find_main_trips_by_same_route_and_date(
            main_trip.route_id,
            main_trip.departure_date,
            main_trip.trip_id,
        )
        for other in others:
            self._apply(other.trip_id, delta, result)
            if topology is None or target_range is None:
                continue
            for sub_trip in self.trips.find_sub_trips(other.trip_id):
                self._apply_if_overlapping(sub_trip, topology, target_range, delta, result)

    def _apply_if_overlapping(
        self,
        candidate: TripRecord,
        topology: RouteTopology,
        target_range: SegmentRange,
        delta: int,
        result: PropagationResult,
    ) -> None:
        candidate_range = resolve_segment(topology, candidate.segment_origin, candidate.segment_destination)
        if candidate_range is None:
            result.skipped.append(candidate.trip_id)
            return
        if overlaps(target_range, candidate_range):
            self._apply(candidate.trip_id, delta, result)

    def _apply(self, trip_id: int, delta: int, result: PropagationResult) -> None:
        try:
            new_seats = self.trips.apply_seat_delta(trip_id, delta)
        except SeatStoreError as exc:
            logger.warning("Seat update failed for trip %s: %s", trip_id, exc, exc_info=exc)
            result.skipped.append(trip_id)
            return
        if new_seats is None:
            logger.warning("Trip %s disappeared during seat propagation", trip_id)
            result.skipped.append(trip_id)
            return
        result.updated[trip_id] = new_seats
        logger.debug("Trip %s: available seats now %s", trip_id, new_seats)


def propagate_seat_change(db: "Session", trip_id: int, seat_delta: int) -> PropagationResult:
    from app.services.trip_store import SqlRouteStore, SqlTripStore

    propagator = SeatPropagator(SqlTripStore(db), SqlRouteStore(db))
    return propagator.propagate(trip_id, seat_delta)
