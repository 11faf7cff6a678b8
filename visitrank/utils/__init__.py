"""Shared utility helpers used across services and routers."""

import math


def round_half_up(v: float) -> int:
    """Round to the nearest integer, .5 away from zero (display rounding).

    Python's round() is banker's rounding; the console always showed 62.5 as 63.
    """
    if v is None:
        return 0
    if v < 0:
        return -math.floor(-v + 0.5)
    return math.floor(v + 0.5)


def clamp(v: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, v))


def truncate(text: str | None, limit: int, fallback: str) -> str:
    """First `limit` characters of text, or fallback when empty."""
    if not text:
        return fallback
    return text[:limit]
