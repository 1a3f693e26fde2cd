"""Enumerate the purchasable origin/destination segments of a route."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol, Sequence

from app.core.config import settings

logger = logging.getLogger(__name__)


class RouteLike(Protocol):
    origin: str
    destination: str
    stops: Sequence[str] | None


@dataclass(frozen=True, slots=True)
class Segment:
    origin: str
    destination: str

    @property
    def key(self) -> str:
        return f"{self.origin}->{self.destination}"


@dataclass(frozen=True, slots=True)
class RouteTopology:
    origin: str
    destination: str
    stops: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_route(cls, route: RouteLike) -> "RouteTopology":
        return cls(origin=route.origin, destination=route.destination, stops=tuple(route.stops or ()))

    @property
    def all_points(self) -> list[str]:
        return [self.origin, *self.stops, self.destination]

    def index_of(self, location: str) -> int | None:
        try:
            return self.all_points.index(location)
        except ValueError:
            return None


def city_of(location: str, separator: str | None = None) -> str:
    """City part of a ``"City - Terminal"`` location (the whole string without a separator)."""
    if not location:
        return ""
    sep = separator or settings.location_separator
    return location.split(sep, 1)[0]


def is_same_city(location1: str, location2: str, separator: str | None = None) -> bool:
    return city_of(location1, separator) == city_of(location2, separator)


def generate_segments(route: RouteLike | RouteTopology) -> list[Segment]:
    """Every origin/destination pair along the route, skipping same-city pairs.

    Ordered by origin position, then destination position. A route whose
    points all sit in one city still yields its direct origin/destination
    pair so that something can be sold on it.
    """
    topology = route if isinstance(route, RouteTopology) else RouteTopology.from_route(route)
    points = topology.all_points

    segments: list[Segment] = []
    for i in range(len(points) - 1):
        for j in range(i + 1, len(points)):
            if is_same_city(points[i], points[j]):
                continue
            segments.append(Segment(origin=points[i], destination=points[j]))

    if not segments:
        logger.info(
            "Route %s -> %s has no inter-city pairs; falling back to the direct segment",
            topology.origin,
            topology.destination,
        )
        segments.append(Segment(origin=topology.origin, destination=topology.destination))
    return segments
