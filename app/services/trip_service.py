from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Sequence

from fastapi import HTTPException
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.api.deps import CompanyContext
from app.core.config import settings
from app.db.models.route import Route
from app.db.models.trip import Trip
from app.schemas.segment import CityPairPriceRequest, CityPairPriceResponse, SegmentPrice
from app.schemas.trip import (
    SubTripOutput,
    TripDetail,
    TripListItem,
    TripListResponse,
    TripPublishRequest,
    TripPublishResponse,
    TripUpdate,
    TripVisibility,
)
from app.services.reservation_service import apply_seat_change
from app.services.route_segments import RouteTopology
from app.services.seat_propagation import clamp_seats
from app.services.segment_schedule import (
    apply_city_pair_price,
    build_segment_table,
    group_segments_by_city,
    main_times_from_stop_times,
    reconcile_stop_times_to_segments,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TripFilters:
    route_id: int | None = None
    departure_date: date | None = None
    origin: str | None = None
    destination: str | None = None
    min_seats: int | None = None
    visibility: TripVisibility | None = None
    include_sub_trips: bool = True


class TripService:
    def __init__(self, db: Session, ctx: CompanyContext):
        self.db = db
        self.ctx = ctx

    # ------------------------------------------------------------------ #
    # Publishing
    # ------------------------------------------------------------------ #
    def publish_trips(self, payload: TripPublishRequest) -> TripPublishResponse:
        route = self._get_route(payload.route_id)
        if payload.start_date > payload.end_date:
            raise HTTPException(status_code=400, detail="invalid_date_range")
        day_count = (payload.end_date - payload.start_date).days + 1
        if day_count > settings.max_publish_days:
            raise HTTPException(status_code=400, detail="too_many_dates")

        topology = RouteTopology.from_route(route)
        table = build_segment_table(topology, payload.price, payload.segment_prices, payload.stop_times)
        main_entry = self._main_entry(topology, table)
        price, departure_time, arrival_time = self._main_values(payload.price, main_entry, payload.stop_times)

        created: list[Trip] = []
        for offset in range(day_count):
            service_date = payload.start_date + timedelta(days=offset)
            main = Trip(
                route_id=route.route_id,
                company_id=self.ctx.company_id or route.company_id,
                capacity=payload.capacity,
                available_seats=payload.capacity,
                price=price,
                departure_date=service_date,
                departure_time=departure_time,
                arrival_time=arrival_time,
                vehicle_id=payload.vehicle_id,
                driver_id=payload.driver_id,
                visibility=payload.visibility,
                is_sub_trip=False,
                segment_prices=[entry.model_dump() for entry in table],
            )
            for entry in table:
                if (entry.origin, entry.destination) == (topology.origin, topology.destination):
                    continue
                main.sub_trips.append(
                    Trip(
                        route_id=route.route_id,
                        company_id=main.company_id,
                        capacity=payload.capacity,
                        available_seats=payload.capacity,
                        price=entry.price,
                        departure_date=service_date,
                        departure_time=entry.departure_time,
                        arrival_time=entry.arrival_time,
                        vehicle_id=payload.vehicle_id,
                        driver_id=payload.driver_id,
                        visibility=payload.visibility,
                        is_sub_trip=True,
                        segment_origin=entry.origin,
                        segment_destination=entry.destination,
                    )
                )
            self.db.add(main)
            created.append(main)

        self.db.commit()
        for trip in created:
            self.db.refresh(trip)
        logger.info(
            "Published route %s from %s to %s: %s runs, %s segments each",
            route.route_id,
            payload.start_date,
            payload.end_date,
            len(created),
            len(table),
        )
        return TripPublishResponse(items=[self._build_trip_detail(trip) for trip in created])

    # ------------------------------------------------------------------ #
    # Editing
    # ------------------------------------------------------------------ #
    def update_trip(self, trip_id: int, payload: TripUpdate) -> TripDetail:
        trip = self._get_trip(trip_id)
        fields_set = payload.model_fields_set
        run = [trip] if trip.is_sub_trip else [trip, *trip.sub_trips]

        for field_name in ("vehicle_id", "driver_id", "visibility"):
            if field_name not in fields_set:
                continue
            value = getattr(payload, field_name)
            if field_name == "visibility" and value is None:
                continue
            for row in run:
                setattr(row, field_name, value)

        if "price" in fields_set and payload.price is not None:
            trip.price = payload.price
        if "departure_time" in fields_set:
            trip.departure_time = payload.departure_time
        if "arrival_time" in fields_set:
            trip.arrival_time = payload.arrival_time
        if fields_set & {"price", "departure_time", "arrival_time"}:
            self._sync_table_entry(trip)

        if payload.segment_prices is not None or payload.stop_times:
            if trip.is_sub_trip:
                raise HTTPException(status_code=400, detail="segment_prices_on_sub_trip")
            self._rewrite_segment_table(trip, payload)

        if payload.capacity is not None and payload.capacity != trip.capacity:
            if trip.is_sub_trip:
                raise HTTPException(status_code=400, detail="capacity_on_sub_trip")
            self._change_capacity(run, payload.capacity)

        self.db.commit()
        self.db.refresh(trip)
        return self._build_trip_detail(trip)

    def delete_trip(self, trip_id: int) -> None:
        trip = self._get_trip(trip_id)
        if trip.is_sub_trip:
            raise HTTPException(status_code=400, detail="cannot_delete_sub_trip")
        sub_count = len(trip.sub_trips)
        released = self._release_booked_seats([trip, *trip.sub_trips])
        self.db.delete(trip)
        self.db.commit()
        logger.info("Deleted trip %s with %s sub-trips, released %s seats", trip_id, sub_count, released)

    # ------------------------------------------------------------------ #
    # Queries
    # ------------------------------------------------------------------ #
    def list_trips(self, filters: TripFilters, limit: int, offset: int) -> TripListResponse:
        trip_origin = func.coalesce(Trip.segment_origin, Route.origin)
        trip_destination = func.coalesce(Trip.segment_destination, Route.destination)
        query = select(Trip).join(Route, Trip.route_id == Route.route_id)

        if self.ctx.company_id is not None:
            query = query.where(Trip.company_id == self.ctx.company_id)
        if filters.route_id is not None:
            query = query.where(Trip.route_id == filters.route_id)
        if filters.departure_date is not None:
            query = query.where(Trip.departure_date == filters.departure_date)
        if filters.origin:
            query = query.where(trip_origin.ilike(f"%{filters.origin.strip()}%"))
        if filters.destination:
            query = query.where(trip_destination.ilike(f"%{filters.destination.strip()}%"))
        if filters.min_seats is not None:
            query = query.where(Trip.available_seats >= filters.min_seats)
        if filters.visibility is not None:
            query = query.where(Trip.visibility == filters.visibility)
        if not filters.include_sub_trips:
            query = query.where(Trip.is_sub_trip.is_(False))

        query = query.order_by(Trip.departure_date, Trip.trip_id).offset(offset).limit(limit + 1)
        rows = self.db.scalars(query).all()

        has_more = len(rows) > limit
        items = rows[:limit]
        return TripListResponse(
            items=[
                TripListItem(
                    trip_id=trip.trip_id,
                    route_id=trip.route_id,
                    is_sub_trip=bool(trip.is_sub_trip),
                    parent_trip_id=trip.parent_trip_id,
                    origin=trip.origin,
                    destination=trip.destination,
                    departure_date=trip.departure_date,
                    departure_time=trip.departure_time,
                    arrival_time=trip.arrival_time,
                    price=trip.price,
                    capacity=trip.capacity,
                    available_seats=trip.available_seats,
                    visibility=trip.visibility,  # type: ignore[arg-type]
                )
                for trip in items
            ],
            next_offset=(offset + len(items)) if has_more else None,
            has_more=has_more,
        )

    def get_trip_detail(self, trip_id: int) -> TripDetail:
        return self._build_trip_detail(self._get_trip(trip_id))

    @staticmethod
    def city_pair_price(payload: CityPairPriceRequest) -> CityPairPriceResponse:
        segments = apply_city_pair_price(
            payload.segments,
            payload.origin_city.strip(),
            payload.destination_city.strip(),
            payload.price,
        )
        return CityPairPriceResponse(segments=segments, city_pairs=group_segments_by_city(segments))

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    def _get_route(self, route_id: int) -> Route:
        route = self.db.get(Route, route_id)
        if not route or not self.ctx.owns(route.company_id):
            raise HTTPException(status_code=404, detail="route_not_found")
        return route

    def _get_trip(self, trip_id: int) -> Trip:
        trip = self.db.get(Trip, trip_id)
        if not trip or not self.ctx.owns(trip.company_id):
            raise HTTPException(status_code=404, detail="trip_not_found")
        return trip

    @staticmethod
    def _main_entry(topology: RouteTopology, table: Sequence[SegmentPrice]) -> SegmentPrice | None:
        for entry in table:
            if (entry.origin, entry.destination) == (topology.origin, topology.destination):
                return entry
        return None

    @staticmethod
    def _main_values(
        price: float | None,
        main_entry: SegmentPrice | None,
        stop_times,
    ) -> tuple[float, str, str]:
        default_departure, default_arrival = main_times_from_stop_times(stop_times)
        if price is None:
            price = main_entry.price if main_entry else 0.0
        departure = (main_entry.departure_time if main_entry else None) or default_departure
        arrival = (main_entry.arrival_time if main_entry else None) or default_arrival
        return float(price), departure, arrival

    def _rewrite_segment_table(self, trip: Trip, payload: TripUpdate) -> None:
        topology = RouteTopology.from_route(trip.route)
        if payload.segment_prices is not None:
            table = build_segment_table(topology, trip.price, payload.segment_prices, payload.stop_times)
        else:
            current = [SegmentPrice.model_validate(entry) for entry in trip.segment_prices or []]
            table = reconcile_stop_times_to_segments(payload.stop_times or [], current)

        main_entry = self._main_entry(topology, table)
        if main_entry is not None:
            trip.price = main_entry.price
            trip.departure_time = main_entry.departure_time or trip.departure_time
            trip.arrival_time = main_entry.arrival_time or trip.arrival_time
        elif payload.stop_times:
            trip.departure_time, trip.arrival_time = main_times_from_stop_times(payload.stop_times)
        trip.segment_prices = [entry.model_dump() for entry in table]

        by_key = {(entry.origin, entry.destination): entry for entry in table}
        for sub_trip in trip.sub_trips:
            entry = by_key.get((sub_trip.segment_origin, sub_trip.segment_destination))
            if entry is None:
                logger.warning(
                    "Sub-trip %s (%s -> %s) has no entry in the new segment table",
                    sub_trip.trip_id,
                    sub_trip.segment_origin,
                    sub_trip.segment_destination,
                )
                continue
            sub_trip.price = entry.price
            sub_trip.departure_time = entry.departure_time
            sub_trip.arrival_time = entry.arrival_time

    def _change_capacity(self, run: Sequence[Trip], capacity: int) -> None:
        for row in run:
            delta = capacity - row.capacity
            row.capacity = capacity
            row.available_seats = clamp_seats(row.available_seats + delta, capacity)
        logger.info("Trip %s: capacity set to %s across %s rows", run[0].trip_id, capacity, len(run))

    def _sync_table_entry(self, trip: Trip) -> None:
        """Mirror a trip's own price and times into its run's segment table."""
        owner = trip.parent if trip.is_sub_trip else trip
        if owner is None or not owner.segment_prices:
            return
        key = (trip.origin, trip.destination)
        entries = []
        for entry in owner.segment_prices:
            if (entry.get("origin"), entry.get("destination")) == key:
                entry = {
                    **entry,
                    "price": trip.price,
                    "departure_time": trip.departure_time,
                    "arrival_time": trip.arrival_time,
                }
            entries.append(entry)
        # JSON columns only see reassignment
        owner.segment_prices = entries

    def _release_booked_seats(self, run: Sequence[Trip]) -> int:
        """Hand the seats booked on ``run`` back to every trip they were taken from."""
        released = 0
        for row in sorted(run, key=lambda r: r.trip_id):
            seats = sum(r.seat_count for r in row.reservations if r.status == "confirmed")
            seats += sum(p.seat_count for p in row.packages)
            if seats:
                apply_seat_change(self.db, row.trip_id, seats)
                released += seats
        return released

    def _build_trip_detail(self, trip: Trip) -> TripDetail:
        sub_trips = [] if trip.is_sub_trip else trip.sub_trips
        return TripDetail(
            trip_id=trip.trip_id,
            route_id=trip.route_id,
            company_id=trip.company_id,
            is_sub_trip=bool(trip.is_sub_trip),
            parent_trip_id=trip.parent_trip_id,
            origin=trip.origin,
            destination=trip.destination,
            departure_date=trip.departure_date,
            departure_time=trip.departure_time,
            arrival_time=trip.arrival_time,
            capacity=trip.capacity,
            available_seats=trip.available_seats,
            price=trip.price,
            vehicle_id=trip.vehicle_id,
            driver_id=trip.driver_id,
            visibility=trip.visibility,  # type: ignore[arg-type]
            segment_prices=[SegmentPrice.model_validate(entry) for entry in trip.segment_prices or []],
            sub_trips=[
                SubTripOutput(
                    trip_id=sub.trip_id,
                    origin=sub.segment_origin,
                    destination=sub.segment_destination,
                    price=sub.price,
                    capacity=sub.capacity,
                    available_seats=sub.available_seats,
                    departure_time=sub.departure_time,
                    arrival_time=sub.arrival_time,
                )
                for sub in sub_trips
            ],
            created_at=trip.created_at,
            updated_at=trip.updated_at,
        )
