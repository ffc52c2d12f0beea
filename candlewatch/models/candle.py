"""Canonical candle model."""

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum


class CandleStatus(str, Enum):
    """Lifecycle status of a candle."""

    FORMING = "forming"
    EJECTED = "ejected"


@dataclass
class Candle:
    """OHLCV candle for one symbol over one bucket.

    A candle is mutable while FORMING. Once EJECTED any attribute
    assignment raises AttributeError.
    """

    symbol: str
    start: int
    open: float
    high: float
    low: float
    close: float
    volume: float
    update_count: int = 1
    status: CandleStatus = CandleStatus.FORMING

    def __setattr__(self, name, value):
        if getattr(self, "status", None) is CandleStatus.EJECTED:
            raise AttributeError(
                f"Candle {self.symbol}@{self.start} is ejected and cannot be modified"
            )
        super().__setattr__(name, value)

    @property
    def is_ejected(self) -> bool:
        return self.status is CandleStatus.EJECTED

    @property
    def start_time(self) -> datetime:
        """Bucket start as a UTC datetime."""
        return datetime.fromtimestamp(self.start, tz=timezone.utc)

    def ejected(self) -> "Candle":
        """Return an immutable EJECTED copy of this candle."""
        return replace(self, status=CandleStatus.EJECTED)

    def snapshot(self) -> "Candle":
        """Return a detached copy with the same status."""
        return replace(self)

    def to_dict(self) -> dict:
        """Fields handed to downstream collaborators."""
        return {
            "symbol": self.symbol,
            "start": self.start,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "volume": self.volume,
        }
