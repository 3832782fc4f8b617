"""Transcript timestamp parsing and rounding helpers."""

import math
import re

_LEADING_INTEGER = re.compile(r"\s*([+-]?[0-9]+)")

# Longer digit runs are not real offsets
_MAX_DIGITS = 15


def parse_int_prefix(part: str) -> int:
    """Read the leading integer of a string the way parseInt does, 0 if none."""
    match = _LEADING_INTEGER.match(part)
    if not match or len(match.group(1).lstrip("+-")) > _MAX_DIGITS:
        return 0
    return int(match.group(1))


def parse_timestamp(timestamp: str | None) -> int | None:
    """Convert a "MM:SS" or "HH:MM:SS" timestamp to seconds.

    Each colon-separated part is read as an integer; parts that are not
    numeric count as zero.

    Args:
        timestamp: Timestamp text as produced by the transcriber.

    Returns:
        int | None: Offset in seconds, or None if the timestamp is empty or
        does not have two or three parts.
    """
    if not timestamp:
        return None

    parts = str(timestamp).split(":")
    if len(parts) == 2:
        minutes, seconds = (parse_int_prefix(part) for part in parts)
        return minutes * 60 + seconds
    if len(parts) == 3:
        hours, minutes, seconds = (parse_int_prefix(part) for part in parts)
        return hours * 3600 + minutes * 60 + seconds
    return None


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (2.5 -> 3, -2.5 -> -2).

    Infinite and NaN values round to 0.
    """
    if isinstance(value, int):
        return value
    if not math.isfinite(value):
        return 0
    return math.floor(value + 0.5)
