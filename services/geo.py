"""Great-circle distance helpers"""

from math import radians, cos, sin, asin, sqrt

# Radius of earth in kilometers
EARTH_RADIUS_KM = 6371


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate distance between two coordinates in kilometers using Haversine formula"""
    lat1, lon1, lat2, lon2 = radians(lat1), radians(lon1), radians(lat2), radians(lon2)

    dlat = lat2 - lat1
    dlon = lon2 - lon1
    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    # Guard against rounding pushing a just past 1 for antipodal points
    c = 2 * asin(sqrt(min(1.0, a)))

    return c * EARTH_RADIUS_KM
