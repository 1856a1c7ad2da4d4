"""Microsecond-resolution points in time."""

from __future__ import annotations

import time
from dataclasses import dataclass

MICROSECONDS_PER_SECOND = 1_000_000


@dataclass(frozen=True, order=True)
class Timestamp:
    """A point in time, held as microseconds since the Unix epoch."""

    micro_seconds_since_epoch: int = 0

    def to_string(self) -> str:
        """Format as local time, ``YYYY/MM/DD hh:mm:ss``."""
        whole = abs(self.micro_seconds_since_epoch) // MICROSECONDS_PER_SECOND
        seconds = whole if self.micro_seconds_since_epoch >= 0 else -whole
        tm = time.localtime(seconds)
        return (
            f"{tm.tm_year:4d}/{tm.tm_mon:02d}/{tm.tm_mday:02d} "
            f"{tm.tm_hour:02d}:{tm.tm_min:02d}:{tm.tm_sec:02d}"
        )

    @classmethod
    def now(cls) -> Timestamp:
        """Return the current time."""
        return cls(time.time_ns() // 1_000)

    def __str__(self) -> str:
        return self.to_string()