# ABOUTME: Latitude/longitude range checks shared by the suggestion normalizer and weather service.
# ABOUTME: Non-numeric values (including booleans) are never valid coordinates.

import math

LATITUDE_RANGE = (-90.0, 90.0)
LONGITUDE_RANGE = (-180.0, 180.0)


def _in_range(value, bounds: tuple[float, float]) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    if not math.isfinite(value):
        return False
    low, high = bounds
    return low <= value <= high


def valid_latitude(value) -> bool:
    return _in_range(value, LATITUDE_RANGE)


def valid_longitude(value) -> bool:
    return _in_range(value, LONGITUDE_RANGE)


def coordinate_errors(latitude, longitude) -> list[str]:
    """Human-readable problems with a coordinate pair; empty when both are valid."""
    errors = []
    if not valid_latitude(latitude):
        errors.append(f"latitude must be a number between -90 and 90, got {latitude!r}")
    if not valid_longitude(longitude):
        errors.append(f"longitude must be a number between -180 and 180, got {longitude!r}")
    return errors
