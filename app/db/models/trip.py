from __future__ import annotations

from datetime import date, datetime
from typing import Optional

import sqlalchemy as sa
from sqlalchemy import (
    TIMESTAMP,
    Boolean,
    CheckConstraint,
    Date,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import BIGINT, Base


TripVisibilityEnum = Enum("published", "hidden", "cancelled", name="trip_visibility")


class Trip(Base):
    __tablename__ = "trips"

    trip_id: Mapped[int] = mapped_column(BIGINT, primary_key=True, autoincrement=True)
    route_id: Mapped[int] = mapped_column(BIGINT, ForeignKey("routes.route_id"), nullable=False)
    company_id: Mapped[str | None] = mapped_column(String(64))
    capacity: Mapped[int] = mapped_column(Integer, nullable=False)
    available_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[float] = mapped_column(Float, nullable=False, server_default="0")
    departure_date: Mapped[date] = mapped_column(Date, nullable=False)
    # "H:MM AM/PM" with an optional " +Nd" day suffix
    departure_time: Mapped[str | None] = mapped_column(String(24))
    arrival_time: Mapped[str | None] = mapped_column(String(24))
    vehicle_id: Mapped[int | None] = mapped_column(BIGINT)
    driver_id: Mapped[int | None] = mapped_column(BIGINT)
    visibility: Mapped[str] = mapped_column(TripVisibilityEnum, nullable=False, server_default="published")
    is_sub_trip: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=sa.false())
    parent_trip_id: Mapped[int | None] = mapped_column(
        BIGINT,
        ForeignKey("trips.trip_id", ondelete="CASCADE"),
    )
    segment_origin: Mapped[str | None] = mapped_column(String(255))
    segment_destination: Mapped[str | None] = mapped_column(String(255))
    # Price/time table of the whole run, kept on the main trip only
    segment_prices: Mapped[list | None] = mapped_column(JSON)
    created_at: Mapped[datetime | None] = mapped_column(TIMESTAMP, server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    route: Mapped["Route"] = relationship(back_populates="trips")
    parent: Mapped[Optional["Trip"]] = relationship(
        back_populates="sub_trips",
        remote_side="Trip.trip_id",
    )
    sub_trips: Mapped[list["Trip"]] = relationship(
        back_populates="parent",
        cascade="all, delete-orphan",
        order_by="Trip.trip_id",
    )
    reservations: Mapped[list["Reservation"]] = relationship(
        back_populates="trip",
        cascade="all, delete-orphan",
    )
    packages: Mapped[list["Package"]] = relationship(
        back_populates="trip",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        CheckConstraint(
            "available_seats >= 0 AND available_seats <= capacity",
            name="ck_trips_available_seats_bounds",
        ),
        Index("ix_trips_route_date", "route_id", "departure_date", "is_sub_trip"),
        Index("ix_trips_parent", "parent_trip_id"),
        Index("ix_trips_company_date", "company_id", "departure_date"),
    )

    @property
    def origin(self) -> str | None:
        if self.is_sub_trip:
            return self.segment_origin
        return self.route.origin if self.route else None

    @property
    def destination(self) -> str | None:
        if self.is_sub_trip:
            return self.segment_destination
        return self.route.destination if self.route else None


__all__ = ["Trip", "TripVisibilityEnum"]
