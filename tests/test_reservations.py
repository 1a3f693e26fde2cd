from __future__ import annotations

import pytest
from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.api.deps import CompanyContext
from app.api.reservations import cancel_reservation, create_reservation
from app.db.models import Reservation
from app.schemas.reservation import PassengerInput, ReservationCreate, ReservationPassengersUpdate
from app.services.reservation_service import ReservationService

from factories import create_route, publish_run, seats_by_segment, segment_trip


def _passengers(count: int) -> list[PassengerInput]:
    return [PassengerInput(first_name=f"Pasajero{i}", last_name="Lopez") for i in range(count)]


def _payload(trip_id: int, count: int, **overrides) -> ReservationCreate:
    data = {
        "trip_id": trip_id,
        "passengers": _passengers(count),
        "phone": "5551234567",
        "total_amount": 100.0 * count,
    }
    data.update(overrides)
    return ReservationCreate(**data)


@pytest.fixture()
def run(db_session: Session) -> int:
    route = create_route(db_session)
    [main_id] = publish_run(db_session, route, capacity=10)
    return main_id


def test_reservation_takes_seats_on_overlapping_trips(db_session: Session, ctx: CompanyContext, run: int) -> None:
    bc = segment_trip(db_session, run, "B", "C")
    service = ReservationService(db_session, ctx)

    detail = create_reservation(payload=_payload(bc.trip_id, 4), service=service)

    assert detail.seat_count == 4
    assert detail.status == "confirmed"
    assert [p.first_name for p in detail.passengers] == ["Pasajero0", "Pasajero1", "Pasajero2", "Pasajero3"]
    assert seats_by_segment(db_session, run) == {
        "AD": 6,
        "AB": 10,
        "AC": 6,
        "BC": 6,
        "BD": 6,
        "CD": 10,
    }


def test_not_enough_seats_leaves_counters_alone(db_session: Session, ctx: CompanyContext, run: int) -> None:
    ab = segment_trip(db_session, run, "A", "B")
    service = ReservationService(db_session, ctx)
    service.create_reservation(_payload(ab.trip_id, 8))

    with pytest.raises(HTTPException) as exc:
        service.create_reservation(_payload(ab.trip_id, 3))

    assert exc.value.status_code == 409
    assert exc.value.detail == "not_enough_seats"
    assert seats_by_segment(db_session, run)["AB"] == 2
    assert db_session.query(Reservation).count() == 1


def test_missing_trip_returns_404(db_session: Session, ctx: CompanyContext) -> None:
    with pytest.raises(HTTPException) as exc:
        ReservationService(db_session, ctx).create_reservation(_payload(12345, 1))

    assert exc.value.status_code == 404
    assert exc.value.detail == "trip_not_found"


def test_cancel_releases_seats_once(db_session: Session, ctx: CompanyContext, run: int) -> None:
    ac = segment_trip(db_session, run, "A", "C")
    service = ReservationService(db_session, ctx)
    reservation = service.create_reservation(_payload(ac.trip_id, 3))

    detail = cancel_reservation(reservation_id=reservation.reservation_id, service=service)

    assert detail.status == "canceled"
    assert set(seats_by_segment(db_session, run).values()) == {10}

    with pytest.raises(HTTPException) as exc:
        service.cancel_reservation(reservation.reservation_id)
    assert exc.value.detail == "reservation_already_canceled"


def test_delete_releases_confirmed_seats(db_session: Session, ctx: CompanyContext, run: int) -> None:
    service = ReservationService(db_session, ctx)
    reservation = service.create_reservation(_payload(run, 2))

    service.delete_reservation(reservation.reservation_id)

    assert set(seats_by_segment(db_session, run).values()) == {10}
    assert db_session.get(Reservation, reservation.reservation_id) is None


def test_delete_canceled_reservation_does_not_release_again(
    db_session: Session, ctx: CompanyContext, run: int
) -> None:
    service = ReservationService(db_session, ctx)
    keep = service.create_reservation(_payload(run, 1))
    gone = service.create_reservation(_payload(run, 2))
    service.cancel_reservation(gone.reservation_id)

    service.delete_reservation(gone.reservation_id)

    assert set(seats_by_segment(db_session, run).values()) == {9}
    assert db_session.get(Reservation, keep.reservation_id) is not None


def test_replacing_passengers_applies_count_difference(db_session: Session, ctx: CompanyContext, run: int) -> None:
    cd = segment_trip(db_session, run, "C", "D")
    service = ReservationService(db_session, ctx)
    reservation = service.create_reservation(_payload(cd.trip_id, 2))

    grown = service.replace_passengers(reservation.reservation_id, ReservationPassengersUpdate(passengers=_passengers(5)))
    assert grown.seat_count == 5
    assert seats_by_segment(db_session, run)["CD"] == 5

    shrunk = service.replace_passengers(reservation.reservation_id, ReservationPassengersUpdate(passengers=_passengers(1)))
    assert shrunk.seat_count == 1
    seats = seats_by_segment(db_session, run)
    assert seats["CD"] == 9
    assert seats["AD"] == 9
    assert seats["AB"] == 10


def test_mark_paid_settles_balance(db_session: Session, ctx: CompanyContext, run: int) -> None:
    service = ReservationService(db_session, ctx)
    reservation = service.create_reservation(_payload(run, 1, advance_amount=20))

    detail = service.mark_paid(reservation.reservation_id)

    assert detail.payment_status == "paid"
    assert detail.advance_amount == detail.total_amount


def test_payload_validation() -> None:
    with pytest.raises(ValidationError):
        _payload(1, 2, num_passengers=3)
    with pytest.raises(ValidationError):
        _payload(1, 1, advance_amount=500)
    with pytest.raises(ValidationError):
        _payload(1, 1, passengers=[])


def test_company_scoping_hides_other_reservations(db_session: Session, run: int) -> None:
    ReservationService(db_session, CompanyContext()).create_reservation(_payload(run, 1))

    listed = ReservationService(db_session, CompanyContext(company_id="otra")).list_reservations(None, None, 20, 0)

    assert listed.items == []
