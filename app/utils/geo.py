"""Geographic helpers."""

import math

EARTH_RADIUS_METERS = 6_371_000

# Bounding box around the island of Jamaica
JAMAICA_BOUNDS = {
    "north": 18.7,
    "south": 17.5,
    "east": -76.0,
    "west": -78.5,
}


def haversine_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance between two points in metres."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_METERS * math.asin(math.sqrt(a))


def within_jamaica(lat: float, lng: float) -> bool:
    return (
        JAMAICA_BOUNDS["south"] <= lat <= JAMAICA_BOUNDS["north"]
        and JAMAICA_BOUNDS["west"] <= lng <= JAMAICA_BOUNDS["east"]
    )
