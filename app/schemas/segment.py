from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class StopTime(BaseModel):
    hour: int = Field(..., ge=1, le=12)
    minute: int = Field(..., ge=0, le=59)
    ampm: Literal["AM", "PM"]
    location: str


class SegmentPrice(BaseModel):
    origin: str
    destination: str
    price: float = Field(0, ge=0)
    departure_time: str | None = None
    arrival_time: str | None = None


class CityPairSummary(BaseModel):
    origin_city: str
    destination_city: str
    price: float
    segment_count: int


class CityPairPriceRequest(BaseModel):
    segments: list[SegmentPrice]
    origin_city: str
    destination_city: str
    price: float = Field(..., ge=0)


class CityPairPriceResponse(BaseModel):
    segments: list[SegmentPrice]
    city_pairs: list[CityPairSummary]
