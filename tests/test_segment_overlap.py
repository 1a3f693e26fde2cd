from __future__ import annotations

import logging

import pytest

from app.services.route_segments import RouteTopology
from app.services.segment_overlap import (
    SegmentRange,
    TopologyMismatchError,
    full_range,
    locate_segment,
    overlaps,
    resolve_segment,
    segments_overlap,
)

TOPOLOGY = RouteTopology(origin="A", destination="D", stops=("B", "C"))


def test_adjacent_segments_do_not_overlap():
    assert not overlaps(SegmentRange(0, 1), SegmentRange(1, 2))
    assert not overlaps(SegmentRange(1, 2), SegmentRange(0, 1))


def test_partial_overlap():
    assert overlaps(SegmentRange(0, 2), SegmentRange(1, 3))


def test_overlap_is_symmetric():
    ranges = [SegmentRange(i, j) for i in range(4) for j in range(i + 1, 4)]
    for a in ranges:
        for b in ranges:
            assert overlaps(a, b) == overlaps(b, a)


def test_full_range_overlaps_every_segment():
    whole = full_range(TOPOLOGY)

    assert whole == SegmentRange(0, 3)
    assert all(
        overlaps(whole, SegmentRange(i, j)) for i in range(4) for j in range(i + 1, 4)
    )


def test_locate_segment_by_name():
    assert locate_segment(TOPOLOGY, "B", "D") == SegmentRange(1, 3)


@pytest.mark.parametrize(
    ("origin", "destination", "code"),
    [
        ("B", "Z", "segment_not_on_route"),
        (None, "C", "segment_endpoint_missing"),
        ("C", "B", "segment_reversed"),
    ],
)
def test_locate_segment_rejects_unknown_topology(origin, destination, code):
    with pytest.raises(TopologyMismatchError) as exc:
        locate_segment(TOPOLOGY, origin, destination)

    assert exc.value.code == code


def test_unresolvable_segment_never_overlaps(caplog):
    with caplog.at_level(logging.WARNING, logger="app.services.segment_overlap"):
        assert resolve_segment(TOPOLOGY, "B", "Z") is None
        assert not segments_overlap(TOPOLOGY, ("A", "C"), ("B", "Z"))

    assert "segment_not_on_route" in caplog.text


def test_segments_overlap_by_name():
    assert segments_overlap(TOPOLOGY, ("B", "C"), ("A", "C"))
    assert segments_overlap(TOPOLOGY, ("B", "C"), ("B", "D"))
    assert not segments_overlap(TOPOLOGY, ("B", "C"), ("A", "B"))
    assert not segments_overlap(TOPOLOGY, ("B", "C"), ("C", "D"))
