"""Duration parsing for configuration values such as ``recheck_delay``."""

import re

UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
}

_HUMAN_PART = re.compile(r"(\d+)\s*([smhd])")
_ISO_PATTERN = re.compile(r"^P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+(?:\.\d+)?)S)?)?$")


class DurationParseError(ValueError):
    """Raised when a duration string cannot be parsed."""

    pass


def parse_duration(duration_str: str) -> int:
    """
    Parse a duration string to whole seconds.

    Accepts human-readable values ("5s", "1m30s", "1h") and ISO-8601
    durations ("PT5S", "PT1M30S").

    Raises:
        DurationParseError: If the string is empty, malformed or zero

    Examples:
        >>> parse_duration("5s")
        5
        >>> parse_duration("PT1M30S")
        90
    """
    value = (duration_str or "").strip()
    if not value:
        raise DurationParseError("Duration string cannot be empty")

    if value.upper().startswith("P"):
        seconds = _parse_iso8601(value.upper())
    else:
        seconds = _parse_human_readable(value.lower())

    if seconds == 0:
        raise DurationParseError(f"Duration cannot be zero: '{duration_str}'")
    return seconds


def _parse_iso8601(value: str) -> int:
    match = _ISO_PATTERN.match(value)
    if not match or value in ("P", "PT"):
        raise DurationParseError(
            f"Invalid ISO-8601 duration format: '{value}'. "
            "Expected format like 'PT5S', 'PT1M30S' or 'PT1H'"
        )

    days, hours, minutes, seconds = match.groups()
    total = int(days or 0) * UNIT_SECONDS["d"]
    total += int(hours or 0) * UNIT_SECONDS["h"]
    total += int(minutes or 0) * UNIT_SECONDS["m"]
    total += int(float(seconds or 0))
    return total


def _parse_human_readable(value: str) -> int:
    parts = _HUMAN_PART.findall(value)
    if not parts:
        raise DurationParseError(
            f"Invalid duration format: '{value}'. "
            "Expected format like '5s', '30s', '1m' or combinations like '1m30s'"
        )

    # Reject leftovers such as "5x" or "5s!"
    if "".join(f"{num}{unit}" for num, unit in parts) != re.sub(r"\s+", "", value):
        raise DurationParseError(
            f"Invalid characters in duration: '{value}'. "
            "Use only digits and units: s (seconds), m (minutes), h (hours), d (days)"
        )

    return sum(int(num) * UNIT_SECONDS[unit] for num, unit in parts)


def validate_duration_range(
    duration_seconds: int,
    min_seconds: int = 1,
    max_seconds: int = 3600,
    label: str = "Duration",
) -> None:
    """
    Check that a duration lies within ``[min_seconds, max_seconds]``.

    Raises:
        DurationParseError: If duration is outside the valid range
    """
    if duration_seconds < min_seconds:
        raise DurationParseError(
            f"{label} too short: {format_duration(duration_seconds)}. "
            f"Minimum is {format_duration(min_seconds)}."
        )
    if duration_seconds > max_seconds:
        raise DurationParseError(
            f"{label} too long: {format_duration(duration_seconds)}. "
            f"Maximum is {format_duration(max_seconds)}."
        )


def format_duration(seconds: int) -> str:
    """Render seconds in the largest whole unit, e.g. "5 seconds" or "1 hour"."""
    for unit, name in (("d", "day"), ("h", "hour"), ("m", "minute")):
        size = UNIT_SECONDS[unit]
        if seconds >= size and seconds % size == 0:
            count = seconds // size
            return f"{count} {name}{'s' if count != 1 else ''}"
    return f"{seconds} second{'s' if seconds != 1 else ''}"
