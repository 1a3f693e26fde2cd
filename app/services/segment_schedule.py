"""Price and time reconciliation for the segments of a published run.

Times are wall-clock strings in ``"H:MM AM/PM"`` form. A stop reached on a
later calendar day than the run's departure carries a ``" +Nd"`` suffix; the
trip row itself always keeps the service date.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Iterable, Sequence

from app.core.config import settings
from app.schemas.segment import CityPairSummary, SegmentPrice, StopTime
from app.services.route_segments import RouteTopology, city_of, generate_segments

logger = logging.getLogger(__name__)

MINUTES_PER_DAY = 24 * 60

_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])(?:\s*\+(\d+)d)?\s*$")


def to_24h(hour: int, minute: int, ampm: str) -> float:
    """Hour of day as a float, ``12:00 AM`` -> 0.0, ``1:30 PM`` -> 13.5."""
    value = hour
    if ampm == "PM" and hour < 12:
        value += 12
    if ampm == "AM" and hour == 12:
        value = 0
    return value + minute / 60


def format_time(hour: int, minute: int, ampm: str, day_offset: int = 0) -> str:
    text = f"{hour}:{minute:02d} {ampm}"
    if day_offset > 0:
        text += f" +{day_offset}d"
    return text


def format_stop_time(stop: StopTime, day_offset: int = 0) -> str:
    return format_time(stop.hour, stop.minute, stop.ampm, day_offset)


def parse_time(value: str) -> tuple[int, int, str, int]:
    """Split ``"H:MM AM [+Nd]"`` into ``(hour, minute, ampm, day_offset)``."""
    match = _TIME_RE.match(value or "")
    if not match:
        raise ValueError(f"invalid_time_format: {value!r}")
    hour, minute, ampm, days = match.groups()
    return int(hour), int(minute), ampm.upper(), int(days or 0)


def minutes_to_time(total_minutes: float) -> str:
    day_offset = int(total_minutes // MINUTES_PER_DAY)
    hour24 = int(total_minutes // 60) % 24
    minute = int(total_minutes % 60)
    ampm = "PM" if hour24 >= 12 else "AM"
    hour = hour24 - 12 if hour24 > 12 else (12 if hour24 == 0 else hour24)
    return format_time(hour, minute, ampm, day_offset)


def stop_day_offsets(stop_times: Sequence[StopTime]) -> list[int]:
    """Day offset of each stop in order, counting a new day whenever the clock goes backwards."""
    days: list[int] = []
    day = 0
    previous: float | None = None
    for stop in stop_times:
        current = to_24h(stop.hour, stop.minute, stop.ampm)
        if previous is not None and current < previous:
            day += 1
        days.append(day)
        previous = current
    return days


def compute_day_offsets(stop_times: Sequence[StopTime]) -> dict[str, int]:
    offsets: dict[str, int] = {}
    for stop, day in zip(stop_times, stop_day_offsets(stop_times)):
        offsets.setdefault(stop.location, day)
    return offsets


def dedupe_segments(segments: Iterable[SegmentPrice]) -> list[SegmentPrice]:
    seen: set[tuple[str, str]] = set()
    unique: list[SegmentPrice] = []
    for segment in segments:
        key = (segment.origin, segment.destination)
        if key in seen:
            continue
        seen.add(key)
        unique.append(segment)
    return unique


def reconcile_stop_times_to_segments(
    stop_times: Sequence[StopTime],
    segments: Sequence[SegmentPrice],
) -> list[SegmentPrice]:
    """Copy each segment with departure/arrival taken from its endpoint stop times.

    Segments with an endpoint that has no stop time keep their current times.
    """
    offsets = compute_day_offsets(stop_times)
    by_location: dict[str, StopTime] = {}
    for stop in stop_times:
        by_location.setdefault(stop.location, stop)

    reconciled: list[SegmentPrice] = []
    for segment in dedupe_segments(segments):
        origin_stop = by_location.get(segment.origin)
        destination_stop = by_location.get(segment.destination)
        if origin_stop is None or destination_stop is None:
            reconciled.append(segment.model_copy())
            continue
        reconciled.append(
            segment.model_copy(
                update={
                    "departure_time": format_stop_time(origin_stop, offsets[segment.origin]),
                    "arrival_time": format_stop_time(destination_stop, offsets[segment.destination]),
                }
            )
        )
    return reconciled


def apply_city_pair_price(
    segments: Sequence[SegmentPrice],
    origin_city: str,
    destination_city: str,
    price: float,
) -> list[SegmentPrice]:
    """Set ``price`` on every segment running between the two cities, any terminal."""
    updated: list[SegmentPrice] = []
    matched = 0
    for segment in segments:
        if city_of(segment.origin) == origin_city and city_of(segment.destination) == destination_city:
            updated.append(segment.model_copy(update={"price": price}))
            matched += 1
        else:
            updated.append(segment.model_copy())
    if not matched:
        logger.info("No segment runs %s -> %s; prices unchanged", origin_city, destination_city)
    return updated


def group_segments_by_city(segments: Sequence[SegmentPrice]) -> list[CityPairSummary]:
    groups: dict[tuple[str, str], list[SegmentPrice]] = {}
    for segment in segments:
        key = (city_of(segment.origin), city_of(segment.destination))
        groups.setdefault(key, []).append(segment)
    return [
        CityPairSummary(
            origin_city=origin_city,
            destination_city=destination_city,
            price=members[0].price,
            segment_count=len(members),
        )
        for (origin_city, destination_city), members in groups.items()
    ]


def proportional_segment_price(
    origin: str,
    destination: str,
    all_points: Sequence[str],
    total_price: float,
) -> float:
    """Share of ``total_price`` by number of route edges covered, never below the minimum ratio."""
    step = settings.price_rounding_step
    total_edges = len(all_points) - 1
    try:
        origin_idx = list(all_points).index(origin)
        destination_idx = list(all_points).index(destination)
    except ValueError:
        logger.warning("Location not on route: %s or %s", origin, destination)
        return float(math.floor(total_price / 2 + 0.5))

    covered = destination_idx - origin_idx
    if covered <= 0 or total_edges <= 0:
        logger.warning("Invalid segment span for %s -> %s", origin, destination)
        return float(math.floor(total_price / 4 + 0.5))

    ratio = max(covered / total_edges, settings.min_segment_price_ratio)
    exact = ratio * total_price
    # Half up, like the fare tables the operators print
    return float(math.floor(exact / step + 0.5) * step)


def proportional_segment_times(
    segments: Sequence[SegmentPrice],
    all_points: Sequence[str],
    departure_time: str,
    arrival_time: str,
) -> list[SegmentPrice]:
    """Spread the run's duration evenly over the route edges and time every segment from it."""
    dep_hour, dep_minute, dep_ampm, _ = parse_time(departure_time)
    arr_hour, arr_minute, arr_ampm, _ = parse_time(arrival_time)
    departure_minutes = to_24h(dep_hour, dep_minute, dep_ampm) * 60
    arrival_minutes = to_24h(arr_hour, arr_minute, arr_ampm) * 60
    if arrival_minutes < departure_minutes:
        arrival_minutes += MINUTES_PER_DAY

    points = list(all_points)
    total_edges = max(len(points) - 1, 1)
    per_edge = (arrival_minutes - departure_minutes) / total_edges
    route_key = (points[0], points[-1]) if points else None

    timed: list[SegmentPrice] = []
    for segment in segments:
        if (segment.origin, segment.destination) == route_key:
            timed.append(segment.model_copy(update={"departure_time": departure_time, "arrival_time": arrival_time}))
            continue
        if segment.origin not in points or segment.destination not in points:
            timed.append(segment.model_copy())
            continue
        start = departure_minutes + points.index(segment.origin) * per_edge
        end = departure_minutes + points.index(segment.destination) * per_edge
        timed.append(
            segment.model_copy(
                update={
                    "departure_time": minutes_to_time(start),
                    "arrival_time": minutes_to_time(end),
                }
            )
        )
    return timed


def main_times_from_stop_times(stop_times: Sequence[StopTime] | None) -> tuple[str, str]:
    if not stop_times:
        return settings.default_departure_time, settings.default_arrival_time
    days = stop_day_offsets(stop_times)
    return format_stop_time(stop_times[0], days[0]), format_stop_time(stop_times[-1], days[-1])


def build_segment_table(
    topology: RouteTopology,
    total_price: float | None,
    segment_prices: Sequence[SegmentPrice] = (),
    stop_times: Sequence[StopTime] | None = None,
) -> list[SegmentPrice]:
    """Price and time every generated segment of a route.

    Explicit ``segment_prices`` win; missing prices fall back to a proportional
    share of ``total_price``. Stop times, when supplied, set the segment times;
    segments they leave untimed get the run duration spread over the route.
    """
    explicit = {(sp.origin, sp.destination): sp for sp in dedupe_segments(segment_prices)}
    points = topology.all_points
    route_key = (topology.origin, topology.destination)
    main_entry = explicit.get(route_key)

    if total_price is None:
        total_price = main_entry.price if main_entry else 0.0

    table: list[SegmentPrice] = []
    for segment in generate_segments(topology):
        given = explicit.get((segment.origin, segment.destination))
        if given is not None:
            table.append(given.model_copy())
            continue
        if (segment.origin, segment.destination) == route_key:
            price = float(total_price)
        else:
            price = proportional_segment_price(segment.origin, segment.destination, points, total_price)
        table.append(SegmentPrice(origin=segment.origin, destination=segment.destination, price=price))

    unknown = set(explicit) - {(sp.origin, sp.destination) for sp in table}
    if unknown:
        logger.warning("Ignoring prices for segments not on route: %s", sorted(unknown))

    if stop_times:
        table = reconcile_stop_times_to_segments(stop_times, table)
        # Segments touching an untimed stop are spread between the first and last stop times
        departure, arrival = main_times_from_stop_times(stop_times)
    else:
        departure = (main_entry.departure_time if main_entry else None) or settings.default_departure_time
        arrival = (main_entry.arrival_time if main_entry else None) or settings.default_arrival_time
    missing_times = [sp for sp in table if not sp.departure_time or not sp.arrival_time]
    if not missing_times:
        return table
    timed = {
        (sp.origin, sp.destination): sp
        for sp in proportional_segment_times(missing_times, points, departure, arrival)
    }
    return [timed.get((sp.origin, sp.destination), sp) for sp in table]
