"""
Duration expressions such as ``300ms``, ``2m`` or ``1h15m30.5s``.

Grammar: an optional sign followed by one or more ``<number><unit>``
segments. Numbers may carry a decimal fraction. Valid units are ``ns``,
``us`` (also ``µs``/``μs``), ``ms``, ``s``, ``m`` and ``h``. The bare
string ``"0"`` is the only unit-less value accepted.
"""

from __future__ import annotations

import datetime as dt
import re


_UNIT_MICROSECONDS: dict[str, float] = {
    "ns": 1e-3,
    "us": 1.0,
    "µs": 1.0,  # micro sign
    "μs": 1.0,  # greek mu
    "ms": 1e3,
    "s": 1e6,
    "m": 60e6,
    "h": 3600e6,
}

# Durations are bounded like a signed 64-bit nanosecond count.
_MAX_MICROSECONDS = (2**63 - 1) / 1000

# "ms" must be tried before "m" and "s".
_UNITS = "ns|us|µs|μs|ms|s|m|h"
_SEGMENT = re.compile(rf"([0-9]+\.?[0-9]*|\.[0-9]+)({_UNITS})")
_EXPRESSION = re.compile(rf"[-+]?(?:(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:{_UNITS}))+")


class DurationParseError(ValueError):
    """Raised when a string is not a valid duration expression."""


def parse_duration(value: str) -> dt.timedelta:
    """Parse a duration expression into a ``timedelta``.

    Precision below one microsecond is rounded away.

    Raises
    ------
    DurationParseError
        If ``value`` is empty, has a missing or unknown unit, contains
        anything other than duration segments, or exceeds the range of a
        signed 64-bit nanosecond count.
    """
    if value in ("0", "+0", "-0"):
        return dt.timedelta(0)
    if not _EXPRESSION.fullmatch(value):
        raise DurationParseError(f"invalid duration {value!r}")

    sign = -1 if value.startswith("-") else 1
    body = value.lstrip("+-")

    total = 0.0
    for number, unit in _SEGMENT.findall(body):
        total += float(number) * _UNIT_MICROSECONDS[unit]
    if total > _MAX_MICROSECONDS:
        raise DurationParseError(f"duration {value!r} out of range")
    return dt.timedelta(microseconds=sign * total)
