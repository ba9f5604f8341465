"""
Great-circle distance helpers.

Used to measure how far a confirming donor is from the requesting hospital.
"""
import math

EARTH_RADIUS_KM = 6371


def haversine_km(lat1, lon1, lat2, lon2):
    """
    Distance in kilometers between two latitude/longitude pairs.

    This is "as the crow flies" distance, not road distance.
    """
    lat1, lon1, lat2, lon2 = map(math.radians, [lat1, lon1, lat2, lon2])

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def within_geofence(lat, lng, center, radius_km):
    """Return (inside, distance_km) for a point against a circular fence"""
    distance = haversine_km(center[0], center[1], lat, lng)
    return distance <= radius_km, distance
