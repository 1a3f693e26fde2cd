from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, constr, model_validator


class RouteBase(BaseModel):
    name: constr(strip_whitespace=True, min_length=1, max_length=200)  # type: ignore[valid-type]
    origin: constr(strip_whitespace=True, min_length=1, max_length=255)  # type: ignore[valid-type]
    destination: constr(strip_whitespace=True, min_length=1, max_length=255)  # type: ignore[valid-type]
    stops: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _validate_stops(self) -> "RouteBase":
        self.stops = [stop.strip() for stop in self.stops if stop and stop.strip()]
        if self.origin == self.destination:
            raise ValueError("route_origin_equals_destination")
        if self.origin in self.stops or self.destination in self.stops:
            raise ValueError("route_stop_repeats_endpoint")
        if len(set(self.stops)) != len(self.stops):
            raise ValueError("route_stop_duplicated")
        return self


class RouteCreate(RouteBase):
    pass


class RouteUpdate(RouteBase):
    pass


class RouteDetail(BaseModel):
    route_id: int
    name: str
    origin: str
    destination: str
    stops: list[str] = Field(default_factory=list)
    company_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class RouteListResponse(BaseModel):
    items: list[RouteDetail]
    next_offset: int | None = None
    has_more: bool = False


class SegmentOutput(BaseModel):
    origin: str
    destination: str


class RouteSegmentsResponse(BaseModel):
    route_id: int
    points: list[str]
    segments: list[SegmentOutput]
