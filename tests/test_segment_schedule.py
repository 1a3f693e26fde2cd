from __future__ import annotations

import pytest

from app.schemas.segment import SegmentPrice, StopTime
from app.services.route_segments import RouteTopology
from app.services.segment_schedule import (
    apply_city_pair_price,
    build_segment_table,
    compute_day_offsets,
    format_time,
    group_segments_by_city,
    main_times_from_stop_times,
    parse_time,
    proportional_segment_price,
    proportional_segment_times,
    reconcile_stop_times_to_segments,
    to_24h,
)


def _stop(hour: int, minute: int, ampm: str, location: str) -> StopTime:
    return StopTime(hour=hour, minute=minute, ampm=ampm, location=location)


def _times(segments):
    return {(s.origin, s.destination): (s.departure_time, s.arrival_time) for s in segments}


def test_to_24h_edges():
    assert to_24h(12, 0, "AM") == 0
    assert to_24h(12, 30, "PM") == 12.5
    assert to_24h(1, 15, "PM") == 13.25


def test_format_time_adds_suffix_only_after_first_day():
    assert format_time(8, 5, "AM") == "8:05 AM"
    assert format_time(2, 0, "AM", 1) == "2:00 AM +1d"


def test_parse_time_accepts_padded_and_suffixed():
    assert parse_time("08:00 AM") == (8, 0, "AM", 0)
    assert parse_time("2:00 am +1d") == (2, 0, "AM", 1)
    with pytest.raises(ValueError):
        parse_time("25 o'clock")


def test_day_rollover_across_midnight():
    stop_times = [
        _stop(8, 0, "AM", "A"),
        _stop(11, 30, "PM", "B"),
        _stop(2, 0, "AM", "C"),
    ]
    segments = [
        SegmentPrice(origin="A", destination="B", price=100),
        SegmentPrice(origin="B", destination="C", price=50),
        SegmentPrice(origin="A", destination="C", price=140),
    ]

    assert compute_day_offsets(stop_times) == {"A": 0, "B": 0, "C": 1}

    reconciled = reconcile_stop_times_to_segments(stop_times, segments)

    assert _times(reconciled) == {
        ("A", "B"): ("8:00 AM", "11:30 PM"),
        ("B", "C"): ("11:30 PM", "2:00 AM +1d"),
        ("A", "C"): ("8:00 AM", "2:00 AM +1d"),
    }
    assert [s.price for s in reconciled] == [100, 50, 140]


def test_equal_consecutive_times_stay_on_same_day():
    stop_times = [_stop(9, 0, "PM", "A"), _stop(9, 0, "PM", "B")]

    assert compute_day_offsets(stop_times) == {"A": 0, "B": 0}


def test_segments_without_stop_times_keep_their_times():
    stop_times = [_stop(7, 0, "AM", "A"), _stop(9, 0, "AM", "B")]
    segments = [
        SegmentPrice(origin="A", destination="B"),
        SegmentPrice(origin="B", destination="C", departure_time="9:10 AM", arrival_time="10:00 AM"),
    ]

    reconciled = reconcile_stop_times_to_segments(stop_times, segments)

    assert _times(reconciled)[("B", "C")] == ("9:10 AM", "10:00 AM")
    assert _times(reconciled)[("A", "B")] == ("7:00 AM", "9:00 AM")
    assert segments[0].departure_time is None


def test_reconcile_keeps_first_duplicate():
    segments = [
        SegmentPrice(origin="A", destination="B", price=10),
        SegmentPrice(origin="A", destination="B", price=99),
    ]

    reconciled = reconcile_stop_times_to_segments([], segments)

    assert len(reconciled) == 1
    assert reconciled[0].price == 10


def test_city_pair_price_fans_out_to_every_terminal_pair():
    segments = [
        SegmentPrice(origin="Acapulco - Centro", destination="CDMX - Norte", price=200),
        SegmentPrice(origin="Acapulco - Costera", destination="CDMX - Norte", price=210),
        SegmentPrice(origin="Acapulco - Centro", destination="CDMX - Sur", price=190),
        SegmentPrice(origin="Acapulco - Centro", destination="Chilpancingo", price=80),
    ]

    updated = apply_city_pair_price(segments, "Acapulco", "CDMX", 250)

    assert [s.price for s in updated] == [250, 250, 250, 80]
    assert [s.price for s in segments] == [200, 210, 190, 80]

    summary = {(c.origin_city, c.destination_city): c for c in group_segments_by_city(updated)}
    assert summary[("Acapulco", "CDMX")].price == 250
    assert summary[("Acapulco", "CDMX")].segment_count == 3
    assert summary[("Acapulco", "Chilpancingo")].segment_count == 1


def test_group_segments_by_city_keeps_first_seen_order():
    segments = [
        SegmentPrice(origin="B - 1", destination="C - 1"),
        SegmentPrice(origin="A - 1", destination="C - 1"),
        SegmentPrice(origin="B - 2", destination="C - 2"),
    ]

    pairs = [(c.origin_city, c.destination_city) for c in group_segments_by_city(segments)]

    assert pairs == [("B", "C"), ("A", "C")]


def test_proportional_price_by_edges_covered():
    points = ["A", "B", "C", "D"]

    assert proportional_segment_price("A", "D", points, 900) == 900
    assert proportional_segment_price("A", "C", points, 900) == 600
    # 1/3 of 1000 is 333.3, nearest 25 is 325
    assert proportional_segment_price("A", "B", points, 1000) == 325


def test_proportional_price_has_floor_and_rounds_half_up():
    points = ["A", "B", "C", "D", "E", "F"]
    # 1/5 of the route is lifted to the 25% floor
    assert proportional_segment_price("A", "B", points, 200) == 50
    # 12.5 sits exactly between 0 and 25
    assert proportional_segment_price("A", "B", ["A", "B", "C"], 25) == 25


def test_proportional_price_for_unknown_or_reversed_segments():
    points = ["A", "B", "C"]

    assert proportional_segment_price("A", "Z", points, 300) == 150
    assert proportional_segment_price("C", "A", points, 300) == 75


def test_proportional_times_wrap_past_midnight():
    segments = [
        SegmentPrice(origin="A", destination="B"),
        SegmentPrice(origin="B", destination="C"),
        SegmentPrice(origin="A", destination="C"),
    ]

    timed = proportional_segment_times(segments, ["A", "B", "C"], "10:00 PM", "2:00 AM")

    assert _times(timed) == {
        ("A", "B"): ("10:00 PM", "12:00 AM +1d"),
        ("B", "C"): ("12:00 AM +1d", "2:00 AM +1d"),
        ("A", "C"): ("10:00 PM", "2:00 AM"),
    }


def test_main_times_default_and_from_stops():
    assert main_times_from_stop_times(None) == ("12:00 PM", "1:00 PM")
    stops = [_stop(10, 0, "PM", "A"), _stop(3, 45, "AM", "B")]
    assert main_times_from_stop_times(stops) == ("10:00 PM", "3:45 AM +1d")


def test_build_segment_table_prefers_explicit_prices():
    topology = RouteTopology(origin="A", destination="D", stops=("B", "C"))
    explicit = [SegmentPrice(origin="B", destination="C", price=120)]

    table = build_segment_table(topology, 900, explicit)

    prices = {(s.origin, s.destination): s.price for s in table}
    assert len(table) == 6
    assert prices[("B", "C")] == 120
    assert prices[("A", "D")] == 900
    assert prices[("A", "B")] == 300
    assert all(s.departure_time and s.arrival_time for s in table)


def test_build_segment_table_uses_stop_times():
    topology = RouteTopology(origin="A", destination="C", stops=("B",))
    stops = [_stop(8, 0, "AM", "A"), _stop(11, 30, "PM", "B"), _stop(2, 0, "AM", "C")]

    table = build_segment_table(topology, 300, stop_times=stops)

    assert _times(table)[("A", "C")] == ("8:00 AM", "2:00 AM +1d")


def test_build_segment_table_spreads_segments_missing_stop_times():
    topology = RouteTopology(origin="A", destination="D", stops=("B", "C"))
    stops = [_stop(8, 0, "AM", "A"), _stop(11, 0, "AM", "D")]

    times = _times(build_segment_table(topology, 300, stop_times=stops))

    assert times[("A", "D")] == ("8:00 AM", "11:00 AM")
    assert times[("A", "B")] == ("8:00 AM", "9:00 AM")
    assert times[("B", "C")] == ("9:00 AM", "10:00 AM")
    assert times[("B", "D")] == ("9:00 AM", "11:00 AM")
    assert all(departure and arrival for departure, arrival in times.values())
