from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.orm import Session

from app.db.models import Trip
from app.tasks.repair_seat_counters import repair_seat_counters

from factories import create_route, publish_run


def _drift(session: Session, trip_id: int, seats: int) -> None:
    # Rows written before the bounds check existed
    session.execute(text("PRAGMA ignore_check_constraints = ON"))
    session.execute(
        text("UPDATE trips SET available_seats = :seats WHERE trip_id = :trip_id"),
        {"seats": seats, "trip_id": trip_id},
    )
    session.commit()
    session.execute(text("PRAGMA ignore_check_constraints = OFF"))


def test_repair_clamps_out_of_bounds_rows(db_session: Session) -> None:
    route = create_route(db_session)
    [main_id] = publish_run(db_session, route, capacity=10)
    sub_id = db_session.get(Trip, main_id).sub_trips[0].trip_id
    _drift(db_session, main_id, -3)
    _drift(db_session, sub_id, 14)

    fixed = repair_seat_counters(db_session)

    db_session.expire_all()
    assert fixed == 2
    assert db_session.get(Trip, main_id).available_seats == 0
    assert db_session.get(Trip, sub_id).available_seats == 10
    assert repair_seat_counters(db_session) == 0


def test_dry_run_changes_nothing(db_session: Session) -> None:
    route = create_route(db_session)
    [main_id] = publish_run(db_session, route, capacity=10)
    _drift(db_session, main_id, 12)

    assert repair_seat_counters(db_session, dry_run=True) == 1

    db_session.expire_all()
    assert db_session.get(Trip, main_id).available_seats == 12
