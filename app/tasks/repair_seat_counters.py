"""Clamp trip seat counters that drifted outside ``[0, capacity]``."""

from __future__ import annotations

import argparse
import logging

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from app.db.models.trip import Trip
from app.db.session import SessionLocal
from app.services.seat_propagation import clamp_seats


logger = logging.getLogger(__name__)


def repair_seat_counters(db: Session, *, dry_run: bool = False) -> int:
    query = (
        select(Trip)
        .where(or_(Trip.available_seats < 0, Trip.available_seats > Trip.capacity))
        .order_by(Trip.trip_id)
    )
    fixed = 0
    for trip in db.scalars(query):
        repaired = clamp_seats(trip.available_seats, trip.capacity)
        logger.info(
            "Trip %s: available_seats %s -> %s (capacity %s)",
            trip.trip_id,
            trip.available_seats,
            repaired,
            trip.capacity,
        )
        if not dry_run:
            trip.available_seats = repaired
        fixed += 1
    if dry_run:
        db.rollback()
    else:
        db.commit()
    return fixed


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Repair out-of-bounds trip seat counters")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only report the rows that would change",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))
    db = SessionLocal()
    try:
        fixed = repair_seat_counters(db, dry_run=args.dry_run)
        logger.info("Repair complete: %s trips %s", fixed, "need fixing" if args.dry_run else "fixed")
    finally:
        db.close()


if __name__ == "__main__":
    main()
