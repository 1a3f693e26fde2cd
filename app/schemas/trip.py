from __future__ import annotations

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field

from app.schemas.segment import SegmentPrice, StopTime

TripVisibility = Literal["published", "hidden", "cancelled"]


class TripPublishRequest(BaseModel):
    route_id: int = Field(..., ge=1)
    start_date: date
    end_date: date
    capacity: int = Field(..., ge=1)
    price: float | None = Field(None, ge=0)
    segment_prices: list[SegmentPrice] = Field(default_factory=list)
    stop_times: list[StopTime] | None = None
    vehicle_id: int | None = None
    driver_id: int | None = None
    visibility: TripVisibility = "published"


class TripUpdate(BaseModel):
    capacity: int | None = Field(None, ge=1)
    price: float | None = Field(None, ge=0)
    departure_time: str | None = None
    arrival_time: str | None = None
    segment_prices: list[SegmentPrice] | None = None
    stop_times: list[StopTime] | None = None
    vehicle_id: int | None = None
    driver_id: int | None = None
    visibility: TripVisibility | None = None


class SubTripOutput(BaseModel):
    trip_id: int
    origin: str | None = None
    destination: str | None = None
    price: float
    capacity: int
    available_seats: int
    departure_time: str | None = None
    arrival_time: str | None = None


class TripDetail(BaseModel):
    trip_id: int
    route_id: int
    company_id: str | None = None
    is_sub_trip: bool
    parent_trip_id: int | None = None
    origin: str | None = None
    destination: str | None = None
    departure_date: date
    departure_time: str | None = None
    arrival_time: str | None = None
    capacity: int
    available_seats: int
    price: float
    vehicle_id: int | None = None
    driver_id: int | None = None
    visibility: TripVisibility
    segment_prices: list[SegmentPrice] = Field(default_factory=list)
    sub_trips: list[SubTripOutput] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TripListItem(BaseModel):
    trip_id: int
    route_id: int
    is_sub_trip: bool
    parent_trip_id: int | None = None
    origin: str | None = None
    destination: str | None = None
    departure_date: date
    departure_time: str | None = None
    arrival_time: str | None = None
    price: float
    capacity: int
    available_seats: int
    visibility: TripVisibility


class TripListResponse(BaseModel):
    items: list[TripListItem]
    next_offset: int | None = None
    has_more: bool = False


class TripPublishResponse(BaseModel):
    items: list[TripDetail]
