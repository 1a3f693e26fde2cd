from __future__ import annotations

from itertools import combinations
from types import SimpleNamespace

from app.services.route_segments import RouteTopology, city_of, generate_segments, is_same_city


def _pairs(segments):
    return [(segment.origin, segment.destination) for segment in segments]


def test_all_forward_pairs_in_route_order():
    route = SimpleNamespace(origin="A", destination="D", stops=["B", "C"])

    segments = generate_segments(route)

    assert _pairs(segments) == [
        ("A", "B"),
        ("A", "C"),
        ("A", "D"),
        ("B", "C"),
        ("B", "D"),
        ("C", "D"),
    ]


def test_same_city_pairs_are_skipped():
    topology = RouteTopology(
        origin="Acapulco - Terminal Centro",
        destination="Tijuana - Central",
        stops=("Acapulco - Costera", "Chilpancingo - Sur"),
    )

    pairs = _pairs(generate_segments(topology))

    assert ("Acapulco - Terminal Centro", "Acapulco - Costera") not in pairs
    assert pairs == [
        ("Acapulco - Terminal Centro", "Chilpancingo - Sur"),
        ("Acapulco - Terminal Centro", "Tijuana - Central"),
        ("Acapulco - Costera", "Chilpancingo - Sur"),
        ("Acapulco - Costera", "Tijuana - Central"),
        ("Chilpancingo - Sur", "Tijuana - Central"),
    ]


def test_every_inter_city_pair_is_generated():
    topology = RouteTopology(
        origin="Puebla - CAPU",
        destination="Oaxaca - ADO",
        stops=("Puebla - Norte", "Tehuacan - Centro", "Oaxaca - Sur"),
    )
    points = topology.all_points
    expected = {
        (points[i], points[j])
        for i, j in combinations(range(len(points)), 2)
        if city_of(points[i]) != city_of(points[j])
    }

    assert set(_pairs(generate_segments(topology))) == expected


def test_single_city_route_falls_back_to_direct_segment():
    topology = RouteTopology(
        origin="Monterrey - Norte",
        destination="Monterrey - Sur",
        stops=("Monterrey - Centro",),
    )

    segments = generate_segments(topology)

    assert _pairs(segments) == [("Monterrey - Norte", "Monterrey - Sur")]


def test_route_without_stops():
    route = SimpleNamespace(origin="A", destination="B", stops=None)

    assert _pairs(generate_segments(route)) == [("A", "B")]


def test_city_of_takes_raw_prefix_before_separator():
    assert city_of("Guadalajara") == "Guadalajara"
    assert city_of("Gdl  - Centro") == "Gdl "
    assert not is_same_city("Gdl - Centro", "Gdl  - Norte")
    assert city_of("Leon - Central - Anden 4") == "Leon"
    assert city_of("") == ""
    assert city_of("Leon/Central", separator="/") == "Leon"


def test_city_comparison_is_case_sensitive():
    assert is_same_city("Leon - Central", "Leon - Norte")
    assert not is_same_city("Leon - Central", "leon - Norte")
