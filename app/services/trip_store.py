from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import case, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models.route import Route
from app.db.models.trip import Trip
from app.services.route_segments import RouteTopology
from app.services.seat_propagation import SeatStoreError

logger = logging.getLogger(__name__)


def clamped_seats_expression(delta: int):
    new_value = Trip.available_seats + delta
    return case(
        (new_value < 0, 0),
        (new_value > Trip.capacity, Trip.capacity),
        else_=new_value,
    )


class SqlTripStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, trip_id: int, *, lock: bool = False) -> Trip | None:
        if not lock:
            return self.db.get(Trip, trip_id)
        query = (
            select(Trip)
            .where(Trip.trip_id == trip_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.db.scalar(query)

    def update(self, trip_id: int, available_seats: int) -> Trip:
        trip = self.db.get(Trip, trip_id)
        if trip is None:
            raise SeatStoreError(f"trip {trip_id} not found")
        trip.available_seats = available_seats
        # Flush before any savepoint so the outer transaction is already open
        self.db.flush()
        return trip

    def apply_seat_delta(self, trip_id: int, delta: int) -> int | None:
        stmt = (
            update(Trip)
            .where(Trip.trip_id == trip_id)
            .values(available_seats=clamped_seats_expression(delta))
            .execution_options(synchronize_session="fetch")
        )
        try:
            with self.db.begin_nested():
                self.db.execute(stmt)
        except SQLAlchemyError as exc:
            raise SeatStoreError(f"trip {trip_id}: {exc}") from exc
        # None when the row no longer exists
        return self.db.scalar(select(Trip.available_seats).where(Trip.trip_id == trip_id))

    def find_sibling_sub_trips(self, parent_trip_id: int, exclude_id: int) -> list[Trip]:
        query = (
            select(Trip)
            .where(
                Trip.parent_trip_id == parent_trip_id,
                Trip.is_sub_trip.is_(True),
                Trip.trip_id != exclude_id,
            )
            .order_by(Trip.trip_id)
        )
        return list(self.db.scalars(query).all())

    def find_main_trips_by_same_route_and_date(
        self, route_id: int, departure_date: date, exclude_id: int
    ) -> list[Trip]:
        query = (
            select(Trip)
            .where(
                Trip.route_id == route_id,
                Trip.departure_date == departure_date,
                Trip.is_sub_trip.is_(False),
                Trip.trip_id != exclude_id,
            )
            .order_by(Trip.trip_id)
        )
        return list(self.db.scalars(query).all())

    def find_sub_trips(self, parent_trip_id: int) -> list[Trip]:
        query = (
            select(Trip)
            .where(Trip.parent_trip_id == parent_trip_id, Trip.is_sub_trip.is_(True))
            .order_by(Trip.trip_id)
        )
        return list(self.db.scalars(query).all())

    def lock_departure(self, route_id: int, departure_date: date) -> None:
        # Id order keeps concurrent writers on the same departure from deadlocking
        query = (
            select(Trip.trip_id)
            .where(
                Trip.route_id == route_id,
                Trip.departure_date == departure_date,
                Trip.is_sub_trip.is_(False),
            )
            .order_by(Trip.trip_id)
            .with_for_update()
        )
        locked = self.db.scalars(query).all()
        logger.debug("Locked %s main trips of route %s on %s", len(locked), route_id, departure_date)


class SqlRouteStore:
    def __init__(self, db: Session):
        self.db = db

    def get_route_with_stops(self, route_id: int) -> RouteTopology | None:
        route = self.db.get(Route, route_id)
        if route is None:
            return None
        return RouteTopology.from_route(route)
