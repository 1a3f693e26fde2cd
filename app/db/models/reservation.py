from __future__ import annotations

from datetime import datetime

from sqlalchemy import TIMESTAMP, Enum, Float, ForeignKey, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import BIGINT, Base


PaymentMethodEnum = Enum("cash", "transfer", name="payment_method")
PaymentStatusEnum = Enum("pending", "paid", "cancelled", name="payment_status")
ReservationStatusEnum = Enum("confirmed", "canceled", name="reservation_status")


class Reservation(Base):
    __tablename__ = "reservations"

    reservation_id: Mapped[int] = mapped_column(BIGINT, primary_key=True, autoincrement=True)
    trip_id: Mapped[int] = mapped_column(BIGINT, ForeignKey("trips.trip_id", ondelete="CASCADE"), nullable=False)
    company_id: Mapped[str | None] = mapped_column(String(64))
    phone: Mapped[str] = mapped_column(String(32))
    email: Mapped[str | None] = mapped_column(String(255))
    notes: Mapped[str | None] = mapped_column(Text)
    total_amount: Mapped[float] = mapped_column(Float, nullable=False)
    advance_amount: Mapped[float] = mapped_column(Float, nullable=False, server_default="0")
    payment_method: Mapped[str] = mapped_column(PaymentMethodEnum, nullable=False, server_default="cash")
    payment_status: Mapped[str] = mapped_column(PaymentStatusEnum, nullable=False, server_default="pending")
    status: Mapped[str] = mapped_column(ReservationStatusEnum, nullable=False, server_default="confirmed")
    created_by: Mapped[int | None] = mapped_column(BIGINT)
    marked_as_paid_at: Mapped[datetime | None] = mapped_column(TIMESTAMP)
    created_at: Mapped[datetime | None] = mapped_column(TIMESTAMP, server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    trip: Mapped["Trip"] = relationship(back_populates="reservations")
    passengers: Mapped[list["Passenger"]] = relationship(
        back_populates="reservation",
        cascade="all, delete-orphan",
        order_by="Passenger.passenger_id",
    )

    __table_args__ = (
        Index("ix_reservations_trip_status", "trip_id", "status"),
        Index("ix_reservations_company_created", "company_id", "created_at"),
    )

    @property
    def seat_count(self) -> int:
        return len(self.passengers)


class Passenger(Base):
    __tablename__ = "passengers"

    passenger_id: Mapped[int] = mapped_column(BIGINT, primary_key=True, autoincrement=True)
    reservation_id: Mapped[int] = mapped_column(
        BIGINT,
        ForeignKey("reservations.reservation_id", ondelete="CASCADE"),
        nullable=False,
    )
    first_name: Mapped[str] = mapped_column(String(120))
    last_name: Mapped[str] = mapped_column(String(120))

    reservation: Mapped["Reservation"] = relationship(back_populates="passengers")

    __table_args__ = (Index("ix_passengers_reservation_id", "reservation_id"),)


__all__ = ["Reservation", "Passenger"]
