from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, constr, model_validator

PaymentMethod = Literal["cash", "transfer"]
PaymentStatus = Literal["pending", "paid", "cancelled"]
ReservationStatus = Literal["confirmed", "canceled"]


class PassengerInput(BaseModel):
    first_name: constr(strip_whitespace=True, min_length=1, max_length=120)  # type: ignore[valid-type]
    last_name: constr(strip_whitespace=True, min_length=1, max_length=120)  # type: ignore[valid-type]


class PassengerOutput(PassengerInput):
    passenger_id: int


class ReservationCreate(BaseModel):
    trip_id: int
    num_passengers: int | None = Field(None, ge=1)
    passengers: list[PassengerInput] = Field(..., min_length=1)
    phone: constr(strip_whitespace=True, min_length=1, max_length=32)  # type: ignore[valid-type]
    email: constr(strip_whitespace=True, max_length=255) | None = None  # type: ignore[valid-type]
    notes: str | None = None
    total_amount: float = Field(..., ge=0)
    payment_method: PaymentMethod = "cash"
    payment_status: Literal["pending", "paid"] = "pending"
    advance_amount: float = Field(0, ge=0)
    created_by: int | None = None

    @model_validator(mode="after")
    def _validate_amounts(self) -> "ReservationCreate":
        if self.num_passengers is not None and self.num_passengers != len(self.passengers):
            raise ValueError("passenger_count_mismatch")
        if self.advance_amount > self.total_amount:
            raise ValueError("advance_exceeds_total")
        if self.advance_amount and self.advance_amount == self.total_amount and self.payment_status != "paid":
            raise ValueError("full_advance_requires_paid_status")
        return self


class ReservationPassengersUpdate(BaseModel):
    passengers: list[PassengerInput] = Field(..., min_length=1)


class ReservationDetail(BaseModel):
    reservation_id: int
    trip_id: int
    company_id: str | None = None
    phone: str
    email: str | None = None
    notes: str | None = None
    total_amount: float
    advance_amount: float
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    status: ReservationStatus
    seat_count: int
    passengers: list[PassengerOutput] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ReservationListResponse(BaseModel):
    items: list[ReservationDetail]
    next_offset: int | None = None
    has_more: bool = False
