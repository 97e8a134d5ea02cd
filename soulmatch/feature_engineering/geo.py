"""Great-circle distance between profile locations."""

from typing import Optional

import numpy as np

from ..profiles.schema import Location

EARTH_RADIUS_KM = 6371.0


def haversine_km(a: Location, b: Location) -> float:
    """Haversine distance in kilometres."""
    lat1, lon1, lat2, lon2 = np.radians([a.latitude, a.longitude, b.latitude, b.longitude])
    dlat = lat2 - lat1
    dlon = lon2 - lon1
    h = np.sin(dlat / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(dlon / 2) ** 2
    return float(2 * EARTH_RADIUS_KM * np.arcsin(np.sqrt(np.clip(h, 0.0, 1.0))))


def distance_between(a: Optional[Location], b: Optional[Location]) -> Optional[float]:
    """Distance in km, or None when either side has no location."""
    if a is None or b is None:
        return None
    return haversine_km(a, b)
