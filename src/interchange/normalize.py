"""Field normalization shared by the import parsers"""

import math
from typing import Any, Dict, Iterable, Optional, Tuple

from core.models import VALID_BANDS, VALID_ROLES

from .errors import InvalidEnumError, MalformedProjectError


def normalize_role(role: Any, default: str = "sensor") -> str:
    """Lowercase a role string and check it against VALID_ROLES.

    Raises:
        InvalidEnumError: role is not recognised
    """
    normalized = str(role or default).lower()
    if normalized not in VALID_ROLES:
        raise InvalidEnumError("role", role)
    return normalized


def normalize_band(band: Any, fallback: str = "2.4") -> str:
    """Stringify a band (900 -> "900") and check it against VALID_BANDS.

    Raises:
        InvalidEnumError: band is not recognised
    """
    value = fallback if band is None else band
    normalized = str(value)
    if normalized not in VALID_BANDS:
        raise InvalidEnumError("band", band)
    return normalized


def first_present(data: dict, *keys: str, default=None):
    """Value of the first key that is present and not None."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


def check_number(value: Any, name: str, owner: Optional[str] = None):
    """Pass through None or a finite int/float.

    Raises:
        MalformedProjectError: value is a string, bool or any other non-number
    """
    if value is None:
        return None
    if (isinstance(value, bool) or not isinstance(value, (int, float))
            or not math.isfinite(value)):
        where = f" on {owner}" if owner else ""
        raise MalformedProjectError(f"Field '{name}'{where} must be a number, got {value!r}.")
    return value


def number_field(data: dict, *keys: str, default=None, owner: Optional[str] = None):
    """first_present() for numeric fields, checked with check_number()."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return check_number(value, key, owner)
    return default


def first_truthy(data: dict, *keys: str, default=None):
    for key in keys:
        value = data.get(key)
        if value:
            return value
    return default


def split_extras(data: dict, known: Iterable[str]) -> Dict[str, Any]:
    """Keys of data that are not in known, for lossless round-trip."""
    known = set(known)
    return {key: value for key, value in data.items() if key not in known}


def parse_version(version: Any) -> Optional[float]:
    """Leading numeric part of a version string ("1.5.2" -> 1.5).

    Returns None when no number can be read.
    """
    if version is None:
        return None
    text = str(version).strip()
    number = ""
    seen_dot = False
    for char in text:
        if char.isdigit():
            number += char
        elif char == "." and not seen_dot and number:
            number += char
            seen_dot = True
        else:
            break
    number = number.rstrip(".")
    return float(number) if number else None


def split_lat_lng(data: dict, owner: Optional[str] = None) -> Tuple[Optional[float], Optional[float]]:
    lat = number_field(data, "lat", "latitude", owner=owner)
    lng = number_field(data, "lon", "lng", "longitude", owner=owner)
    return lat, lng
