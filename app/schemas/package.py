from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, constr, model_validator

from app.schemas.reservation import PaymentMethod


class PackageCreate(BaseModel):
    trip_id: int
    sender_name: constr(strip_whitespace=True, min_length=1, max_length=120)  # type: ignore[valid-type]
    sender_last_name: constr(strip_whitespace=True, min_length=1, max_length=120)  # type: ignore[valid-type]
    sender_phone: constr(strip_whitespace=True, min_length=1, max_length=32)  # type: ignore[valid-type]
    recipient_name: constr(strip_whitespace=True, min_length=1, max_length=120)  # type: ignore[valid-type]
    recipient_last_name: constr(strip_whitespace=True, min_length=1, max_length=120)  # type: ignore[valid-type]
    recipient_phone: constr(strip_whitespace=True, min_length=1, max_length=32)  # type: ignore[valid-type]
    description: constr(strip_whitespace=True, min_length=1)  # type: ignore[valid-type]
    price: float = Field(..., ge=0)
    uses_seats: bool = False
    seats_quantity: int = Field(0, ge=0)
    is_paid: bool = False
    payment_method: PaymentMethod | None = None
    created_by: int | None = None

    @model_validator(mode="after")
    def _validate_seats(self) -> "PackageCreate":
        if self.uses_seats and self.seats_quantity < 1:
            raise ValueError("seats_quantity_required")
        if not self.uses_seats:
            self.seats_quantity = 0
        return self


class PackageSeatsUpdate(BaseModel):
    uses_seats: bool
    seats_quantity: int = Field(0, ge=0)

    @model_validator(mode="after")
    def _validate_seats(self) -> "PackageSeatsUpdate":
        if self.uses_seats and self.seats_quantity < 1:
            raise ValueError("seats_quantity_required")
        return self


class PackagePaymentUpdate(BaseModel):
    payment_method: PaymentMethod


class PackageDetail(BaseModel):
    package_id: int
    trip_id: int
    company_id: str | None = None
    sender_name: str
    sender_last_name: str
    sender_phone: str
    recipient_name: str
    recipient_last_name: str
    recipient_phone: str
    description: str
    price: float
    uses_seats: bool
    seats_quantity: int
    is_paid: bool
    payment_method: PaymentMethod | None = None
    delivery_status: Literal["pending", "delivered"]
    delivered_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class PackageListResponse(BaseModel):
    items: list[PackageDetail]
    next_offset: int | None = None
    has_more: bool = False
