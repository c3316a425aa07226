from __future__ import annotations

import math

import pytest

from vigil_hazards.geo.calculations import (
    bearing_degrees,
    bounding_radius_meters,
    centroid,
    filter_within_radius,
    haversine_meters,
)


def test_haversine_symmetric_and_zero() -> None:
    a = (18.0, -76.8)
    b = (18.05, -76.85)
    assert haversine_meters(*a, *b) == pytest.approx(haversine_meters(*b, *a))
    assert haversine_meters(*a, *a) == 0.0


def test_haversine_one_degree_latitude_in_meters() -> None:
    expected = 6_371_000.0 * math.pi / 180
    assert haversine_meters(0.0, 0.0, 1.0, 0.0) == pytest.approx(expected, rel=1e-9)


def test_nearby_reports_are_meters_apart() -> None:
    distance = haversine_meters(18.0, -76.8, 18.0001, -76.8001)
    assert 10 < distance < 20


def test_centroid_mean_and_empty() -> None:
    assert centroid([(10.0, 20.0), (20.0, 40.0)]) == pytest.approx((15.0, 30.0))
    assert centroid([]) == (0.0, 0.0)


def test_bearing_cardinal_directions() -> None:
    assert bearing_degrees(0.0, 0.0, 1.0, 0.0) == pytest.approx(0.0)
    assert bearing_degrees(0.0, 0.0, 0.0, 1.0) == pytest.approx(90.0)
    assert bearing_degrees(0.0, 0.0, -1.0, 0.0) == pytest.approx(180.0)
    assert bearing_degrees(0.0, 0.0, 0.0, -1.0) == pytest.approx(270.0)


def test_bounding_radius_applies_margin() -> None:
    center = (0.0, 0.0)
    far = (1.0, 0.0)
    expected = haversine_meters(0.0, 0.0, 1.0, 0.0) * 1.2
    assert bounding_radius_meters(center, [(0.5, 0.0), far]) == pytest.approx(expected)
    assert bounding_radius_meters(center, []) == 0.0


def test_filter_within_radius_sorted_by_distance() -> None:
    items = [
        {"name": "far", "pos": (18.05, -76.85)},
        {"name": "near", "pos": (18.0001, -76.8)},
        {"name": "center", "pos": (18.0, -76.8)},
    ]
    matched = filter_within_radius(items, (18.0, -76.8), 1000, position=lambda item: item["pos"])
    assert [item["name"] for item, _ in matched] == ["center", "near"]
    assert matched[0][1] == 0.0
    assert matched[1][1] < 1000
