"""Exceptions raised by the candle tracking core."""


class CandleTrackingError(Exception):
    """Base exception for candle tracking errors."""

    pass


class MisalignedTimestamp(CandleTrackingError):
    """Update start is not aligned to the configured granularity."""

    def __init__(self, symbol: str, start: int, duration: int):
        self.symbol = symbol
        self.start = start
        self.duration = duration
        super().__init__(
            f"{symbol}: start {start} is not aligned to a {duration}s bucket"
        )


class LateUpdate(CandleTrackingError):
    """Update belongs to a bucket older than the one being tracked."""

    def __init__(self, symbol: str, start: int, current_start: int):
        self.symbol = symbol
        self.start = start
        self.current_start = current_start
        super().__init__(
            f"{symbol}: update for {start} is behind current bucket {current_start}"
        )


class UnknownSymbolOverflow(CandleTrackingError):
    """Registry would grow beyond its configured bound."""

    def __init__(self, symbol: str, limit: int):
        self.symbol = symbol
        self.limit = limit
        super().__init__(
            f"Cannot track {symbol}: registry is full ({limit} symbols)"
        )
