"""Shape checks for incoming coordinates.

Values arrive either as query-string text or as JSON scalars. Zero is a real
coordinate (equator, prime meridian), so presence is tested explicitly rather
than through truthiness.
"""
import math
import numbers
import re
from collections.abc import Mapping
from typing import Any

from .schemas import Coordinate

COORDINATE_MIN = -180.0
COORDINATE_MAX = 180.0

_DECIMAL_RE = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?\s*$")


class InvalidCoordinateError(ValueError):
    pass


def parse_number(value: Any) -> float | None:
    """Return ``value`` as a finite float, or None when it is not one."""
    if isinstance(value, bool):
        return None
    if not isinstance(value, numbers.Real) and not (
        isinstance(value, str) and _DECIMAL_RE.match(value)
    ):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    return number if math.isfinite(number) else None


def _in_range(number: float) -> bool:
    return COORDINATE_MIN <= number <= COORDINATE_MAX


def is_coordinate(obj: Any) -> bool:
    if not isinstance(obj, Mapping):
        return False

    lat, lon = obj.get("lat"), obj.get("lon")
    if lat is None or lon is None or lat == "" or lon == "":
        return False

    lat_f, lon_f = parse_number(lat), parse_number(lon)
    if lat_f is None or lon_f is None:
        return False

    return _in_range(lat_f) and _in_range(lon_f)


def to_coordinate(obj: Any) -> Coordinate:
    if not is_coordinate(obj):
        raise InvalidCoordinateError(f"not a valid coordinate: {obj!r}")
    return Coordinate(lat=parse_number(obj["lat"]), lon=parse_number(obj["lon"]))
