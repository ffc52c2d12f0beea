"""Per-symbol candle lifecycle tracking."""

import logging
import threading
from enum import Enum
from typing import Callable, Optional, Union

from ..models.candle import Candle
from ..models.update import CandleUpdate
from .errors import LateUpdate

logger = logging.getLogger(__name__)

VolumeFold = Callable[[float, float], float]


class VolumeMode(str, Enum):
    """How repeated same-bucket updates report volume."""

    SNAPSHOT = "snapshot"  # each update carries the bucket total so far
    CUMULATIVE = "cumulative"  # each update carries an increment

    @property
    def fold(self) -> VolumeFold:
        if self is VolumeMode.CUMULATIVE:
            return lambda current, incoming: current + incoming
        return lambda current, incoming: incoming


class CandleTracker:
    """State machine holding at most one forming candle for a symbol.

    Not safe for concurrent mutation. Callers serialize access through
    ``lock`` (the StreamReconciler does this).
    """

    def __init__(self, symbol: str, volume_mode: Union[VolumeMode, VolumeFold] = VolumeMode.SNAPSHOT):
        """Initialize tracker.

        Args:
            symbol: Normalized symbol this tracker owns
            volume_mode: VolumeMode or a custom fold ``(current, incoming) -> volume``
        """
        self.symbol = symbol
        self.lock = threading.Lock()
        self._fold = volume_mode.fold if isinstance(volume_mode, VolumeMode) else volume_mode
        self._current: Optional[Candle] = None
        self._last_update: Optional[CandleUpdate] = None

    @property
    def current_start(self) -> Optional[int]:
        return self._current.start if self._current else None

    @property
    def last_update(self) -> Optional[CandleUpdate]:
        """Last update folded into the forming candle."""
        return self._last_update

    def peek(self) -> Optional[Candle]:
        """Copy of the forming candle, if any."""
        return self._current.snapshot() if self._current else None

    def apply(self, update: CandleUpdate) -> Optional[Candle]:
        """Fold an update into tracker state.

        Args:
            update: Update for this tracker's symbol

        Returns:
            The ejected candle when the update starts a newer bucket, else None

        Raises:
            LateUpdate: If the update is older than the forming bucket
        """
        if update.symbol != self.symbol:
            raise ValueError(f"Update for {update.symbol} routed to tracker for {self.symbol}")

        current = self._current
        if current is not None and update.start < current.start:
            raise LateUpdate(self.symbol, update.start, current.start)

        if current is not None and update.start == current.start:
            current.close = update.price
            current.high = max(current.high, update.price)
            current.low = min(current.low, update.price)
            current.volume = self._fold(current.volume, update.volume)
            current.update_count += 1
            self._last_update = update
            return None

        ejected = current.ejected() if current is not None else None
        self._current = Candle(
            symbol=self.symbol,
            start=update.start,
            open=update.price,
            high=update.price,
            low=update.price,
            close=update.price,
            volume=update.volume,
        )
        self._last_update = update
        if ejected is not None:
            logger.debug(f"{self.symbol}: bucket {ejected.start} superseded by {update.start}")
        return ejected
