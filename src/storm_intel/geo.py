"""Distance helpers for correlating storm events with a property."""

import math
from typing import Iterable, List

from .models import WeatherEvent, validate_coordinates

EARTH_RADIUS_MILES = 3959.0


def haversine_miles(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate great-circle distance in miles using the Haversine formula."""
    lat1, lon1, lat2, lon2 = map(math.radians, [lat1, lon1, lat2, lon2])

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_MILES * c


def event_distance(event: WeatherEvent, lat: float, lon: float) -> float:
    """Distance from the property, preferring the distance recorded on the event."""
    if event.distance_miles is not None:
        return event.distance_miles
    return haversine_miles(lat, lon, event.latitude, event.longitude)


def annotate_distances(events: Iterable[WeatherEvent], lat: float, lon: float) -> List[WeatherEvent]:
    """Return copies of events with distance_miles computed from (lat, lon)."""
    lat, lon = validate_coordinates(lat, lon)
    return [
        event.with_distance(haversine_miles(lat, lon, event.latitude, event.longitude))
        for event in events
    ]


def filter_by_distance(events: Iterable[WeatherEvent], lat: float, lon: float,
                       max_distance_miles: float) -> List[WeatherEvent]:
    """Keep events within max_distance_miles of (lat, lon)."""
    lat, lon = validate_coordinates(lat, lon)
    return [e for e in events if event_distance(e, lat, lon) <= max_distance_miles]
