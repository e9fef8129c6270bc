"""
Distance calculation using the Haversine formula.

Assumption
----------
The sandbox authority prices rides on great-circle (Haversine) distance
instead of a real routing engine so it runs locally without external API
keys.  A production authority returns actual road distances; the client
never computes distance itself.

Complexity: O(1) per call.
"""

import math

EARTH_RADIUS_KM = 6_371.0


def haversine_km(
    lat1: float, lng1: float, lat2: float, lng2: float
) -> float:
    """Return the great-circle distance in **km** between two points."""
    lat1_r, lat2_r = math.radians(lat1), math.radians(lat2)
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)

    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1_r) * math.cos(lat2_r) * math.sin(dlng / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def travel_minutes(distance_km: float, average_speed_kmh: float) -> float:
    """Drive time at a constant average speed, in minutes."""
    if average_speed_kmh <= 0:
        raise ValueError("average_speed_kmh must be positive")
    return distance_km / average_speed_kmh * 60
