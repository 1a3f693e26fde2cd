from __future__ import annotations

import logging
from dataclasses import dataclass

from app.services.route_segments import RouteTopology

logger = logging.getLogger(__name__)


class TopologyMismatchError(Exception):
    """Raised when a segment endpoint is not one of the route's points."""

    def __init__(self, code: str, detail: str | None = None) -> None:
        self.code = code
        self.detail = detail or code
        super().__init__(self.detail)


@dataclass(frozen=True, slots=True)
class SegmentRange:
    """Half-open range of point positions ``[origin_idx, destination_idx)``."""

    origin_idx: int
    destination_idx: int


def overlaps(a: SegmentRange, b: SegmentRange) -> bool:
    # Sharing a single boundary point is not an overlap
    return a.origin_idx < b.destination_idx and a.destination_idx > b.origin_idx


def full_range(topology: RouteTopology) -> SegmentRange:
    return SegmentRange(0, len(topology.all_points) - 1)


def locate_segment(topology: RouteTopology, origin: str | None, destination: str | None) -> SegmentRange:
    points = topology.all_points
    if origin is None or destination is None:
        raise TopologyMismatchError("segment_endpoint_missing", f"{origin!r} -> {destination!r}")
    try:
        origin_idx = points.index(origin)
        destination_idx = points.index(destination)
    except ValueError as exc:
        raise TopologyMismatchError(
            "segment_not_on_route",
            f"{origin} -> {destination} not found in {' | '.join(points)}",
        ) from exc
    if origin_idx >= destination_idx:
        raise TopologyMismatchError("segment_reversed", f"{origin} -> {destination}")
    return SegmentRange(origin_idx, destination_idx)


def resolve_segment(topology: RouteTopology, origin: str | None, destination: str | None) -> SegmentRange | None:
    try:
        return locate_segment(topology, origin, destination)
    except TopologyMismatchError as exc:
        logger.warning("Cannot place segment on route: %s (%s)", exc.detail, exc.code)
        return None


def segments_overlap(
    topology: RouteTopology,
    a: tuple[str | None, str | None],
    b: tuple[str | None, str | None],
) -> bool:
    """Overlap check by location names; unknown locations never overlap."""
    range_a = resolve_segment(topology, *a)
    range_b = resolve_segment(topology, *b)
    if range_a is None or range_b is None:
        return False
    return overlaps(range_a, range_b)
