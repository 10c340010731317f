"""Percentage helpers for upload and download indicators."""
from typing import Optional


def percent_of(done: int, total: int) -> Optional[float]:
    """Return ``done`` as a percentage of ``total`` (2 decimals, clamped to 0..100).

    ``None`` when the total is unknown (zero or negative).
    """
    if total is None or total <= 0:
        return None
    value = round(done * 100 / total, 2)
    return min(100.0, max(0.0, value))
