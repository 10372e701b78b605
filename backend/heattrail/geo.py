"""Geospatial helpers."""

import math

EARTH_RADIUS_M = 6_371_000.0


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two lat/lon points.

    The intermediate term is clamped to [0, 1] so antipodal and
    meridian-crossing pairs never produce NaN or a negative distance.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    a = min(1.0, max(0.0, a))
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return EARTH_RADIUS_M * c


def coord_key(lat: float, lon: float, precision: int) -> str:
    """Build a stable bucket key by rounding coordinates to fixed decimals."""
    # Adding 0.0 folds negative zero into zero so both sides share one key.
    lat = round(lat, precision) + 0.0
    lon = round(lon, precision) + 0.0
    return f"{lat:.{precision}f},{lon:.{precision}f}"


def parse_coord_key(key: str) -> tuple[float, float]:
    """Inverse of coord_key."""
    lat_text, lon_text = key.split(",", 1)
    return float(lat_text), float(lon_text)


def is_valid_coordinate(lat: float, lon: float) -> bool:
    """Check latitude/longitude ranges (NaN is never valid)."""
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0
