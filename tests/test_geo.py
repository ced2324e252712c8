import math

import pytest

from sitevote.geo import (
    Bounds,
    bounds_for_zoom,
    centroid,
    haversine_miles,
    valid_coordinates,
)


def test_haversine_one_degree_of_longitude_at_equator():
    dist = haversine_miles(0.0, 0.0, 0.0, 1.0)
    assert dist == pytest.approx(69.09, abs=0.01)


def test_haversine_austin_to_dallas():
    dist = haversine_miles(30.2672, -97.7431, 32.7767, -96.7970)
    assert 170 < dist < 195
    assert haversine_miles(32.7767, -96.7970, 30.2672, -97.7431) == pytest.approx(dist)


def test_haversine_zero_for_same_point():
    assert haversine_miles(40.0, -75.0, 40.0, -75.0) == 0.0


def test_valid_coordinates_rejects_missing_and_out_of_range():
    assert valid_coordinates(30.0, -97.0)
    assert valid_coordinates("30.0", "-97.0")
    assert not valid_coordinates(None, -97.0)
    assert not valid_coordinates(91.0, 0.0)
    assert not valid_coordinates(0.0, -181.0)
    assert not valid_coordinates(float("nan"), 0.0)
    assert not valid_coordinates("north", 0.0)


def test_bounds_contains_simple_box():
    box = Bounds(north=31.0, south=30.0, east=-97.0, west=-98.0)
    assert box.contains(30.5, -97.5)
    assert box.contains(31.0, -98.0)
    assert not box.contains(31.5, -97.5)
    assert not box.contains(30.5, -96.5)


def test_bounds_contains_across_antimeridian():
    box = Bounds(north=10.0, south=-10.0, east=-170.0, west=170.0)
    assert box.contains(0.0, 175.0)
    assert box.contains(0.0, -175.0)
    assert not box.contains(0.0, 0.0)


def test_centroid_is_arithmetic_mean():
    lat, lon = centroid([(30.0, -97.0), (32.0, -95.0)])
    assert lat == pytest.approx(31.0)
    assert lon == pytest.approx(-96.0)


def test_centroid_of_nothing_raises():
    with pytest.raises(ValueError):
        centroid([])


def test_bounds_for_zoom_contains_center_and_shrinks_with_zoom():
    wide = bounds_for_zoom(30.2672, -97.7431, 6)
    narrow = bounds_for_zoom(30.2672, -97.7431, 12)
    assert wide.contains(30.2672, -97.7431)
    assert narrow.contains(30.2672, -97.7431)
    assert (narrow.east - narrow.west) < (wide.east - wide.west)
    assert (narrow.north - narrow.south) < (wide.north - wide.south)


def test_bounds_for_zoom_zero_spans_every_longitude():
    box = bounds_for_zoom(0.0, 0.0, 0)
    assert box.west == -180.0
    assert box.east == 180.0
    assert not math.isnan(box.north)
