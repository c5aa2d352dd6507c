"""Static city/country to coordinate lookup.

The map only needs a point per location group, so a fixed table stands in
for a geocoding service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import NamedTuple


class Coordinates(NamedTuple):
    """A latitude/longitude pair in degrees."""

    lat: float
    lng: float


LOCATION_TABLE: dict[str, Coordinates] = {
    "Paris, France": Coordinates(48.8566, 2.3522),
    "London, United Kingdom": Coordinates(51.5074, -0.1278),
    "New York, United States": Coordinates(40.7128, -74.006),
    "Tokyo, Japan": Coordinates(35.6762, 139.6503),
    "Sydney, Australia": Coordinates(-33.8688, 151.2093),
    "Rome, Italy": Coordinates(41.9028, 12.4964),
    "Barcelona, Spain": Coordinates(41.3851, 2.1734),
    "Hawaii, United States": Coordinates(21.3099, -157.8581),
    "Santorini, Greece": Coordinates(36.3932, 25.4615),
    "Bali, Indonesia": Coordinates(-8.3405, 115.092),
    "Dubai, United Arab Emirates": Coordinates(25.2048, 55.2708),
    "Mumbai, India": Coordinates(19.076, 72.8777),
    "Berlin, Germany": Coordinates(52.52, 13.405),
    "Amsterdam, Netherlands": Coordinates(52.3676, 4.9041),
    "Prague, Czech Republic": Coordinates(50.0755, 14.4378),
    "Vienna, Austria": Coordinates(48.2082, 16.3738),
    "Budapest, Hungary": Coordinates(47.4979, 19.0402),
    "Stockholm, Sweden": Coordinates(59.3293, 18.0686),
    "Copenhagen, Denmark": Coordinates(55.6761, 12.5683),
    "Oslo, Norway": Coordinates(59.9139, 10.7522),
    "Shanghai, China": Coordinates(31.2304, 121.4737),
    "Changzhou, China": Coordinates(31.7727, 119.954),
    "Bologna, Italy": Coordinates(44.4949, 11.3426),
    "Tuscany, Italy": Coordinates(43.7696, 11.2558),
}


@lru_cache(maxsize=512)
def get_coordinates(city: str, country: str) -> Coordinates | None:
    """Resolve a city and country to coordinates.

    Args:
        city: City name, matched exactly.
        country: Country name, matched exactly.

    Returns:
        Coordinates, or None if the pair is not in the table.
    """
    return LOCATION_TABLE.get(f"{city}, {country}")
