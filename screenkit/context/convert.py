"""Conversion of context values to declared simple types."""

from datetime import date, datetime, time, tzinfo
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import TypeAdapter, ValidationError

from ..errors import ConversionError


_ADAPTERS: Dict[str, TypeAdapter] = {
    "BigDecimal": TypeAdapter(Decimal),
    "Double": TypeAdapter(float),
    "Float": TypeAdapter(float),
    "Long": TypeAdapter(int),
    "Integer": TypeAdapter(int),
    "Boolean": TypeAdapter(bool),
    "Date": TypeAdapter(date),
    "Time": TypeAdapter(time),
    "Timestamp": TypeAdapter(datetime),
    "List": TypeAdapter(list),
    "Set": TypeAdapter(set),
    "Map": TypeAdapter(dict),
}

_STRING_TYPES = {"String", "PlainString"}
_COLLECTION_TYPES = {"List", "Set"}
_PACKAGE_PREFIXES = ("java.lang.", "java.math.", "java.sql.", "java.util.")


def normalize_type_name(type_name: str) -> str:
    """Strip legacy package prefixes: ``java.math.BigDecimal`` -> ``BigDecimal``."""
    type_name = type_name.strip()
    for prefix in _PACKAGE_PREFIXES:
        if type_name.startswith(prefix):
            return type_name[len(prefix):]
    return type_name


def is_empty(value: Any) -> bool:
    """True for None, empty strings and empty collections."""
    if value is None:
        return True
    if isinstance(value, (str, bytes, list, tuple, set, dict)):
        return len(value) == 0
    return False


def simple_type_convert(
    value: Any,
    type_name: str,
    time_zone: Optional[tzinfo] = None,
    locale: Optional[str] = None,
) -> Any:
    """Convert ``value`` to the named simple type.

    Args:
        value: Value to convert
        type_name: Declared type (String, BigDecimal, Long, Timestamp, ...)
        time_zone: Applied to naive timestamps
        locale: Reserved for locale-aware parsing

    Returns:
        Converted value; None and empty strings convert to None for
        non-string types

    Raises:
        ConversionError: If the type is unknown or the value does not fit
    """
    name = normalize_type_name(type_name)
    if value is None or name == "Object":
        return value
    if name in _STRING_TYPES:
        if isinstance(value, (datetime, date, time)):
            return value.isoformat()
        return str(value)
    if isinstance(value, str) and not value.strip():
        return None

    adapter = _ADAPTERS.get(name)
    if adapter is None:
        raise ConversionError(f"Conversion to type [{type_name}] is not supported")

    if name in _COLLECTION_TYPES and isinstance(value, str):
        value = [item.strip() for item in value.strip().strip("[]").split(",") if item.strip()]

    try:
        converted = adapter.validate_python(value)
    except ValidationError as e:
        errors = "; ".join(error["msg"] for error in e.errors())
        raise ConversionError(
            f"Could not convert [{value}] to type [{type_name}]: {errors}"
        ) from e

    if name == "Timestamp" and time_zone is not None and converted.tzinfo is None:
        converted = converted.replace(tzinfo=time_zone)
    return converted
