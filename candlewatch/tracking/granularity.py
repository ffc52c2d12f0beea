"""Bucket duration policy."""

from dataclasses import dataclass
from typing import Optional, Tuple

from ..sources.base import Granularity


@dataclass(frozen=True)
class GranularityPolicy:
    """Fixed bucket duration applied uniformly to all symbols.

    Timestamps are integer epoch seconds. The policy never looks at the
    wall clock; it only judges timestamps relative to each other.
    """

    duration: int

    def __post_init__(self):
        if self.duration <= 0:
            raise ValueError(f"Granularity duration must be positive, got {self.duration}")

    @classmethod
    def from_granularity(cls, granularity: Granularity) -> "GranularityPolicy":
        return cls(duration=granularity.seconds)

    def is_aligned(self, start: int) -> bool:
        return start % self.duration == 0

    def buckets_between(self, earlier: int, later: int) -> int:
        """Number of bucket steps from ``earlier`` to ``later``."""
        return (later - earlier) // self.duration

    def is_gap(self, current_start: int, new_start: int) -> bool:
        """True when ``new_start`` skips at least one bucket after ``current_start``."""
        return new_start - current_start > self.duration

    def skipped_interval(self, current_start: int, new_start: int) -> Optional[Tuple[int, int]]:
        """Inclusive range of bucket starts missed between two buckets, if any."""
        if not self.is_gap(current_start, new_start):
            return None
        return current_start + self.duration, new_start - self.duration
