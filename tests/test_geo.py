"""Tests for distance helpers."""

import pytest

from storm_intel.geo import annotate_distances, event_distance, filter_by_distance, haversine_miles
from storm_intel.models import InvalidInputError, WeatherEvent


@pytest.mark.unit
def test_haversine_zero_distance():
    assert haversine_miles(32.7767, -96.797, 32.7767, -96.797) == 0.0


@pytest.mark.unit
def test_haversine_dallas_to_fort_worth():
    distance = haversine_miles(32.7767, -96.7970, 32.7555, -97.3308)
    assert 30.5 < distance < 32.0


@pytest.mark.unit
def test_haversine_one_degree_latitude():
    assert haversine_miles(0, 0, 1, 0) == pytest.approx(69.09, abs=0.05)


@pytest.mark.unit
def test_event_distance_prefers_recorded_distance():
    event = WeatherEvent('x', '2024-01-01', 33.5, -97.0, magnitude=1.0, distance_miles=0.3)
    assert event_distance(event, 32.7767, -96.797) == 0.3


@pytest.mark.unit
def test_annotate_distances():
    events = [WeatherEvent('x', '2024-01-01', 1.0, 0.0, magnitude=1.0)]
    annotated = annotate_distances(events, 0.0, 0.0)
    assert annotated[0].distance_miles == pytest.approx(69.09, abs=0.05)
    assert events[0].distance_miles is None


@pytest.mark.unit
def test_filter_by_distance():
    near = WeatherEvent('near', '2024-01-01', 0.01, 0.0, magnitude=1.0)
    far = WeatherEvent('far', '2024-01-01', 1.0, 0.0, magnitude=1.0)
    kept = filter_by_distance([near, far], 0.0, 0.0, 10)
    assert [e.event_id for e in kept] == ['near']


@pytest.mark.unit
def test_filter_rejects_bad_origin():
    with pytest.raises(InvalidInputError):
        filter_by_distance([], 120.0, 0.0, 10)
