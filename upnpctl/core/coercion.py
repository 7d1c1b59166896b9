"""Conversion between argument text and values of UPnP state-variable data types."""

from __future__ import annotations

import base64
import binascii
import re
from collections.abc import Callable
from datetime import date, datetime, time
from typing import Any

from upnpctl.core.errors import CoercionError

_INTEGER_RANGES: dict[str, tuple[int, int] | None] = {
    "ui1": (0, 2**8 - 1),
    "ui2": (0, 2**16 - 1),
    "ui4": (0, 2**32 - 1),
    "ui8": (0, 2**64 - 1),
    "i1": (-(2**7), 2**7 - 1),
    "i2": (-(2**15), 2**15 - 1),
    "i4": (-(2**31), 2**31 - 1),
    "i8": (-(2**63), 2**63 - 1),
    "int": None,
}
_FLOAT_TYPES = frozenset({"r4", "r8", "number", "float", "fixed.14.4"})
_TRUE_WORDS = frozenset({"1", "true", "yes"})
_FALSE_WORDS = frozenset({"0", "false", "no"})
_INTEGER_TEXT = re.compile(r"-?[0-9]+")
_FLOAT_TEXT = re.compile(r"-?([0-9]+(\.[0-9]*)?|\.[0-9]+)([eE][-+]?[0-9]+)?")


def _to_int(text: str, declared_type: str, context: str) -> int:
    stripped = text.strip()
    if not _INTEGER_TEXT.fullmatch(stripped):
        raise CoercionError(f"{context}: '{text}' is not a valid {declared_type} integer")
    value = int(stripped, 10)
    bounds = _INTEGER_RANGES[declared_type]
    if bounds is not None and not bounds[0] <= value <= bounds[1]:
        raise CoercionError(
            f"{context}: {value} is out of range for {declared_type} ({bounds[0]}..{bounds[1]})"
        )
    return value


def _to_float(text: str, declared_type: str, context: str) -> float:
    stripped = text.strip()
    if not _FLOAT_TEXT.fullmatch(stripped):
        raise CoercionError(f"{context}: '{text}' is not a valid {declared_type} number")
    return float(stripped)


def _to_bool(text: str, context: str) -> bool:
    lowered = text.strip().lower()
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False
    raise CoercionError(f"{context}: '{text}' is not a boolean (use 1/0, true/false, yes/no)")


def _to_char(text: str, context: str) -> str:
    if len(text) != 1:
        raise CoercionError(f"{context}: char value must be exactly one character, got '{text}'")
    return text


_TEMPORAL_PARSERS: dict[str, Callable[[str], Any]] = {
    "date": date.fromisoformat,
    "dateTime": datetime.fromisoformat,
    "dateTime.tz": datetime.fromisoformat,
    "time": time.fromisoformat,
    "time.tz": time.fromisoformat,
}


def _to_temporal(text: str, declared_type: str, context: str) -> Any:
    try:
        return _TEMPORAL_PARSERS[declared_type](text.strip())
    except ValueError as exc:
        raise CoercionError(f"{context}: '{text}' is not an ISO 8601 {declared_type}") from exc


def _to_bytes(text: str, declared_type: str, context: str) -> bytes:
    try:
        if declared_type == "bin.hex":
            return bytes.fromhex(text.strip())
        return base64.b64decode(text.strip(), validate=True)
    except (ValueError, binascii.Error) as exc:
        raise CoercionError(f"{context}: '{text}' is not valid {declared_type} data") from exc


def coerce_value(text: str, declared_type: str, *, context: str) -> Any:
    """Convert user-supplied text into a value of `declared_type`.

    Unknown data types are passed through as strings.
    """
    if declared_type in _INTEGER_RANGES:
        return _to_int(text, declared_type, context)
    if declared_type in _FLOAT_TYPES:
        return _to_float(text, declared_type, context)
    if declared_type == "boolean":
        return _to_bool(text, context)
    if declared_type == "char":
        return _to_char(text, context)
    if declared_type in _TEMPORAL_PARSERS:
        return _to_temporal(text, declared_type, context)
    if declared_type in ("bin.base64", "bin.hex"):
        return _to_bytes(text, declared_type, context)
    return text


def format_value(value: Any, declared_type: str = "string") -> str:
    """Canonical string form of an argument value, as printed and compared."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return repr(value)
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        if declared_type == "bin.base64":
            return base64.b64encode(bytes(value)).decode("ascii")
        return bytes(value).hex()
    return str(value)


def wire_value(value: Any, declared_type: str = "string") -> str:
    """Text form of an argument value as sent in a SOAP request."""
    if isinstance(value, bool):
        return "1" if value else "0"
    return format_value(value, declared_type)
