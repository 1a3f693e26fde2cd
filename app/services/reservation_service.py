from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import HTTPException
from sqlalchemy import desc, select
from sqlalchemy.orm import Session

from app.api.deps import CompanyContext
from app.db.models.reservation import Passenger, Reservation
from app.db.models.trip import Trip
from app.schemas.reservation import (
    PassengerOutput,
    ReservationCreate,
    ReservationDetail,
    ReservationListResponse,
    ReservationPassengersUpdate,
    ReservationStatus,
)
from app.services.seat_propagation import TripNotFoundError, propagate_seat_change

logger = logging.getLogger(__name__)


def apply_seat_change(db: Session, trip_id: int, seat_delta: int) -> None:
    """Propagate a seat change inside the caller's transaction.

    Rolls the transaction back and raises an HTTP error when the trip is gone
    or when fewer seats were available than requested.
    """
    if seat_delta == 0:
        return
    try:
        result = propagate_seat_change(db, trip_id, seat_delta)
    except TripNotFoundError as exc:
        db.rollback()
        raise HTTPException(status_code=404, detail=exc.code) from exc
    if seat_delta < 0 and result.applied_delta != seat_delta:
        db.rollback()
        raise HTTPException(status_code=409, detail="not_enough_seats")
    if result.skipped:
        logger.warning("Trip %s: related trips %s were not updated", trip_id, result.skipped)


class ReservationService:
    def __init__(self, db: Session, ctx: CompanyContext):
        self.db = db
        self.ctx = ctx

    def create_reservation(self, payload: ReservationCreate) -> ReservationDetail:
        trip = self._get_trip(payload.trip_id)
        if trip.visibility == "cancelled":
            raise HTTPException(status_code=409, detail="trip_cancelled")
        seats = len(payload.passengers)
        if trip.available_seats < seats:
            raise HTTPException(status_code=409, detail="not_enough_seats")

        reservation = Reservation(
            trip_id=trip.trip_id,
            company_id=trip.company_id,
            phone=payload.phone,
            email=payload.email,
            notes=payload.notes,
            total_amount=payload.total_amount,
            advance_amount=payload.advance_amount,
            payment_method=payload.payment_method,
            payment_status=payload.payment_status,
            status="confirmed",
            created_by=payload.created_by,
            marked_as_paid_at=datetime.now(UTC) if payload.payment_status == "paid" else None,
            passengers=[Passenger(first_name=p.first_name, last_name=p.last_name) for p in payload.passengers],
        )
        self.db.add(reservation)
        self.db.flush()
        apply_seat_change(self.db, trip.trip_id, -seats)

        self.db.commit()
        self.db.refresh(reservation)
        logger.info("Reservation %s: %s seats on trip %s", reservation.reservation_id, seats, trip.trip_id)
        return self._build_detail(reservation)

    def list_reservations(
        self,
        trip_id: int | None,
        status: ReservationStatus | None,
        limit: int,
        offset: int,
    ) -> ReservationListResponse:
        query = select(Reservation)
        if self.ctx.company_id is not None:
            query = query.where(Reservation.company_id == self.ctx.company_id)
        if trip_id is not None:
            query = query.where(Reservation.trip_id == trip_id)
        if status is not None:
            query = query.where(Reservation.status == status)
        query = query.order_by(desc(Reservation.reservation_id)).offset(offset).limit(limit + 1)
        rows = self.db.scalars(query).all()

        has_more = len(rows) > limit
        items = rows[:limit]
        return ReservationListResponse(
            items=[self._build_detail(reservation) for reservation in items],
            next_offset=(offset + len(items)) if has_more else None,
            has_more=has_more,
        )

    def get_reservation(self, reservation_id: int) -> ReservationDetail:
        return self._build_detail(self._get_reservation(reservation_id))

    def cancel_reservation(self, reservation_id: int) -> ReservationDetail:
        reservation = self._get_reservation(reservation_id)
        if reservation.status == "canceled":
            raise HTTPException(status_code=400, detail="reservation_already_canceled")
        reservation.status = "canceled"
        self.db.flush()
        apply_seat_change(self.db, reservation.trip_id, reservation.seat_count)

        self.db.commit()
        self.db.refresh(reservation)
        logger.info("Reservation %s canceled, %s seats released", reservation_id, reservation.seat_count)
        return self._build_detail(reservation)

    def delete_reservation(self, reservation_id: int) -> None:
        reservation = self._get_reservation(reservation_id)
        trip_id = reservation.trip_id
        released = reservation.seat_count if reservation.status == "confirmed" else 0
        self.db.delete(reservation)
        self.db.flush()
        apply_seat_change(self.db, trip_id, released)
        self.db.commit()

    def replace_passengers(self, reservation_id: int, payload: ReservationPassengersUpdate) -> ReservationDetail:
        reservation = self._get_reservation(reservation_id)
        if reservation.status == "canceled":
            raise HTTPException(status_code=400, detail="reservation_canceled")

        old_count = reservation.seat_count
        new_count = len(payload.passengers)
        reservation.passengers.clear()
        for passenger in payload.passengers:
            reservation.passengers.append(
                Passenger(first_name=passenger.first_name, last_name=passenger.last_name)
            )
        self.db.flush()
        # More passengers take seats, fewer release them
        apply_seat_change(self.db, reservation.trip_id, old_count - new_count)

        self.db.commit()
        self.db.refresh(reservation)
        return self._build_detail(reservation)

    def mark_paid(self, reservation_id: int) -> ReservationDetail:
        reservation = self._get_reservation(reservation_id)
        if reservation.status == "canceled":
            raise HTTPException(status_code=400, detail="reservation_canceled")
        reservation.payment_status = "paid"
        reservation.advance_amount = reservation.total_amount
        reservation.marked_as_paid_at = datetime.now(UTC)
        self.db.commit()
        self.db.refresh(reservation)
        return self._build_detail(reservation)

    # ------------------------------------------------------------------ #
    # Helpers
    # ------------------------------------------------------------------ #
    def _get_trip(self, trip_id: int) -> Trip:
        trip = self.db.get(Trip, trip_id)
        if not trip or not self.ctx.owns(trip.company_id):
            raise HTTPException(status_code=404, detail="trip_not_found")
        return trip

    def _get_reservation(self, reservation_id: int) -> Reservation:
        reservation = self.db.get(Reservation, reservation_id)
        if not reservation or not self.ctx.owns(reservation.company_id):
            raise HTTPException(status_code=404, detail="reservation_not_found")
        return reservation

    def _build_detail(self, reservation: Reservation) -> ReservationDetail:
        return ReservationDetail(
            reservation_id=reservation.reservation_id,
            trip_id=reservation.trip_id,
            company_id=reservation.company_id,
            phone=reservation.phone,
            email=reservation.email,
            notes=reservation.notes,
            total_amount=reservation.total_amount,
            advance_amount=reservation.advance_amount,
            payment_method=reservation.payment_method,  # type: ignore[arg-type]
            payment_status=reservation.payment_status,  # type: ignore[arg-type]
            status=reservation.status,  # type: ignore[arg-type]
            seat_count=reservation.seat_count,
            passengers=[
                PassengerOutput(
                    passenger_id=passenger.passenger_id,
                    first_name=passenger.first_name,
                    last_name=passenger.last_name,
                )
                for passenger in reservation.passengers
            ],
            created_at=reservation.created_at,
            updated_at=reservation.updated_at,
        )
