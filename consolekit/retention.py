"""Retention periods and the human-readable durations they are written as.

Durations are integer nanoseconds.
"""

from __future__ import annotations

from dataclasses import dataclass

_NANOS_PER_SEC = 1_000_000_000
_MAX_NANOS = ((1 << 64) - 1) * _NANOS_PER_SEC + (_NANOS_PER_SEC - 1)

_UNITS: dict[str, int] = {}
for _names, _nanos in (
    (("nanos", "nsec", "ns"), 1),
    (("usec", "us", "µs"), 1_000),
    (("millis", "msec", "ms"), 1_000_000),
    (("seconds", "second", "secs", "sec", "s"), _NANOS_PER_SEC),
    (("minutes", "minute", "mins", "min", "m"), 60 * _NANOS_PER_SEC),
    (("hours", "hour", "hrs", "hr", "h"), 3_600 * _NANOS_PER_SEC),
    (("days", "day", "d"), 86_400 * _NANOS_PER_SEC),
    (("weeks", "week", "wks", "wk", "w"), 604_800 * _NANOS_PER_SEC),
    (("months", "month", "M"), 2_630_016 * _NANOS_PER_SEC),
    (("years", "year", "yrs", "yr", "y"), 31_557_600 * _NANOS_PER_SEC),
):
    for _name in _names:
        _UNITS[_name] = _nanos

_DIGITS = "0123456789"


class DurationError(ValueError):
    """Raised when a duration string cannot be parsed."""


def parse_duration(text: str) -> int:
    """Parse a duration such as ``5days 2min 2s`` into nanoseconds."""
    total = 0
    pos = 0
    length = len(text)
    seen_any = False
    while True:
        while pos < length and text[pos].isspace():
            pos += 1
        if pos >= length:
            break
        start = pos
        while pos < length and text[pos] in _DIGITS:
            pos += 1
        if start == pos:
            if text[pos].isalpha():
                raise DurationError(f"expected number at {pos}")
            raise DurationError(f"invalid character at {pos}")
        number = int(text[start:pos])
        unit_start = pos
        while pos < length:
            char = text[pos]
            if char in _DIGITS or char.isspace() or char == "+":
                break
            if not (char.isascii() and char.isalpha()) and char != "µ":
                raise DurationError(f"invalid character at {pos}")
            pos += 1
        unit = text[unit_start:pos]
        if not unit:
            raise DurationError(f"time unit needed, for example {number}sec or {number}ms")
        multiplier = _UNITS.get(unit)
        if multiplier is None:
            raise DurationError(
                f"unknown time unit {unit!r}, supported units: ns, us, ms, sec, min, "
                "hours, days, weeks, months, years (and few variations)"
            )
        total += number * multiplier
        if total > _MAX_NANOS:
            raise DurationError("number is too large")
        seen_any = True
        if pos < length and text[pos] == "+":
            pos += 1
    if not seen_any:
        raise DurationError("value was empty")
    return total


def format_duration(duration: int) -> str:
    """Format nanoseconds the way the console displays durations (``6s``, ``1.5s``, ``500ms``)."""
    secs, nanos = divmod(duration, _NANOS_PER_SEC)
    if secs:
        integer, fraction, digits, suffix = secs, nanos, 9, "s"
    elif nanos >= 1_000_000:
        integer, fraction, digits, suffix = nanos // 1_000_000, nanos % 1_000_000, 6, "ms"
    elif nanos >= 1_000:
        integer, fraction, digits, suffix = nanos // 1_000, nanos % 1_000, 3, "µs"
    else:
        return f"{nanos}ns"
    fractional = f"{fraction:0{digits}d}".rstrip("0")
    if fractional:
        return f"{integer}.{fractional}{suffix}"
    return f"{integer}{suffix}"


@dataclass(frozen=True)
class RetainFor:
    """How long closed tasks and dropped resources stay visible; ``None`` keeps them forever."""

    duration: int | None = 6 * _NANOS_PER_SEC

    def __str__(self) -> str:
        if self.duration is None:
            return ""
        return format_duration(self.duration)


def parse_retain_for(text: str) -> RetainFor:
    """Parse a retention period: a duration, or ``none`` to keep everything."""
    if text.lower() == "none":
        return RetainFor(None)
    return RetainFor(parse_duration(text))