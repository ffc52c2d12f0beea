"""Base classes for feed sources."""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, List

from ..models.update import CandleUpdate


class FeedError(Exception):
    """Base exception for feed-related errors."""

    pass


def normalize_symbol(symbol_str: str) -> str:
    """Normalize a product identifier.

    Handles different symbol formats:
    - "btc-usd" -> "BTC-USD"
    - " ETH-USDC " -> "ETH-USDC"

    Args:
        symbol_str: Symbol string in various formats

    Returns:
        Upper-cased product identifier

    Raises:
        ValueError: If symbol string cannot be parsed
    """
    symbol_str = symbol_str.strip().upper()
    if not symbol_str:
        raise ValueError("Symbol must not be empty")

    if "-" in symbol_str:
        parts = symbol_str.split("-")
        if len(parts) != 2 or not all(parts):
            raise ValueError(
                f"Invalid symbol format. Expected 'BASE-QUOTE' (e.g., 'ETH-USDC'). "
                f"Got: {symbol_str}"
            )
    return symbol_str


class Granularity(str, Enum):
    """Exchange-agnostic granularity enumeration."""

    ONE_MINUTE = "1m"
    FIVE_MINUTE = "5m"
    FIFTEEN_MINUTE = "15m"
    ONE_HOUR = "1h"
    FOUR_HOUR = "4h"
    ONE_DAY = "1d"

    @property
    def seconds(self) -> int:
        """Bucket duration in seconds."""
        return {
            "1m": 60,
            "5m": 300,
            "15m": 900,
            "1h": 3600,
            "4h": 14400,
            "1d": 86400,
        }[self.value]


UpdateHandler = Callable[[List[CandleUpdate]], None]


class FeedSource(ABC):
    """Base class for live candle feeds."""

    @abstractmethod
    def run(self, handler: UpdateHandler) -> None:
        """Deliver batches of updates to ``handler`` until closed.

        Args:
            handler: Callback receiving each decoded batch, oldest first

        Raises:
            FeedError: If the feed cannot be established
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Stop delivering updates."""
        pass
