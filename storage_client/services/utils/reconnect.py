"""Delay policy for push channel reconnects."""
from __future__ import annotations

from dataclasses import dataclass


@dataclass
class FixedDelay:
    """Same delay before every attempt: no growth, no attempt cap."""

    delay: float = 1.0

    def __post_init__(self) -> None:
        if self.delay < 0:
            raise ValueError("delay must not be negative")
        self._attempt = 0

    @property
    def attempts(self) -> int:
        return self._attempt

    def reset(self) -> None:
        self._attempt = 0

    def next_delay(self) -> float:
        self._attempt += 1
        return self.delay
