"""Point helpers.

Stored points are GeoJSON ``{"type": "Point", "coordinates": [lng, lat]}``.
Everything returned to clients is ``{"lat": ..., "lng": ...}``.
"""
from numbers import Real
from app.config import FALLBACK_LATITUDE, FALLBACK_LONGITUDE
from app.exceptions import InvalidInputError


def validate_point(point) -> list:
    """Return ``point`` as ``[lng, lat]`` floats or raise InvalidInputError."""
    if not isinstance(point, (list, tuple)) or len(point) != 2:
        raise InvalidInputError("Coordinates must contain exactly 2 numbers [longitude, latitude]")

    for value in point:
        if isinstance(value, bool) or not isinstance(value, Real):
            raise InvalidInputError("Coordinates must be numbers")

    lng, lat = float(point[0]), float(point[1])
    if not -180 <= lng <= 180:
        raise InvalidInputError("Longitude must be between -180 and 180")
    if not -90 <= lat <= 90:
        raise InvalidInputError("Latitude must be between -90 and 90")
    return [lng, lat]


def to_geojson_point(point) -> dict:
    return {"type": "Point", "coordinates": validate_point(point)}


def point_to_lat_lng(geo_point) -> dict | None:
    if not geo_point or not geo_point.get("coordinates"):
        return None
    lng, lat = geo_point["coordinates"]
    return {"lat": lat, "lng": lng}


def fallback_location() -> dict:
    return {"lat": FALLBACK_LATITUDE, "lng": FALLBACK_LONGITUDE}
