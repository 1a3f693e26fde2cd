from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import TIMESTAMP, Boolean, Enum, Float, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.models.reservation import PaymentMethodEnum
from app.db.base import BIGINT


DeliveryStatusEnum = Enum("pending", "delivered", name="package_delivery_status")


class Package(Base):
    __tablename__ = "packages"

    package_id: Mapped[int] = mapped_column(BIGINT, primary_key=True, autoincrement=True)
    trip_id: Mapped[int] = mapped_column(BIGINT, ForeignKey("trips.trip_id", ondelete="CASCADE"), nullable=False)
    company_id: Mapped[str | None] = mapped_column(String(64))
    sender_name: Mapped[str] = mapped_column(String(120))
    sender_last_name: Mapped[str] = mapped_column(String(120))
    sender_phone: Mapped[str] = mapped_column(String(32))
    recipient_name: Mapped[str] = mapped_column(String(120))
    recipient_last_name: Mapped[str] = mapped_column(String(120))
    recipient_phone: Mapped[str] = mapped_column(String(32))
    description: Mapped[str] = mapped_column(Text)
    price: Mapped[float] = mapped_column(Float, nullable=False)
    uses_seats: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=sa.false())
    seats_quantity: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    is_paid: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default=sa.false())
    payment_method: Mapped[str | None] = mapped_column(PaymentMethodEnum)
    delivery_status: Mapped[str] = mapped_column(DeliveryStatusEnum, nullable=False, server_default="pending")
    delivered_at: Mapped[datetime | None] = mapped_column(TIMESTAMP)
    created_by: Mapped[int | None] = mapped_column(BIGINT)
    created_at: Mapped[datetime | None] = mapped_column(TIMESTAMP, server_default=func.now())
    updated_at: Mapped[datetime | None] = mapped_column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    trip: Mapped["Trip"] = relationship(back_populates="packages")

    __table_args__ = (Index("ix_packages_trip_id", "trip_id"),)

    @property
    def seat_count(self) -> int:
        return self.seats_quantity if self.uses_seats else 0


__all__ = ["Package", "DeliveryStatusEnum"]
