"""Symbol to tracker registry."""

import logging
import threading
from typing import Dict, List, Optional, Union

from .errors import UnknownSymbolOverflow
from .tracker import CandleTracker, VolumeFold, VolumeMode

logger = logging.getLogger(__name__)


class SymbolRegistry:
    """Owns one CandleTracker per symbol, created on first sighting.

    Only creation takes the registry lock; lookups of known symbols are
    plain dict reads.
    """

    def __init__(
        self,
        volume_mode: Union[VolumeMode, VolumeFold] = VolumeMode.SNAPSHOT,
        max_symbols: Optional[int] = None,
    ):
        if max_symbols is not None and max_symbols <= 0:
            raise ValueError("max_symbols must be positive")
        self.volume_mode = volume_mode
        self.max_symbols = max_symbols
        self._trackers: Dict[str, CandleTracker] = {}
        self._lock = threading.Lock()

    def get(self, symbol: str) -> Optional[CandleTracker]:
        return self._trackers.get(symbol)

    def get_or_create(self, symbol: str) -> CandleTracker:
        """Return the tracker for ``symbol``, creating it if needed.

        Raises:
            UnknownSymbolOverflow: If creating it would exceed ``max_symbols``
        """
        tracker = self._trackers.get(symbol)
        if tracker is not None:
            return tracker

        with self._lock:
            tracker = self._trackers.get(symbol)
            if tracker is None:
                if self.max_symbols is not None and len(self._trackers) >= self.max_symbols:
                    raise UnknownSymbolOverflow(symbol, self.max_symbols)
                tracker = CandleTracker(symbol, self.volume_mode)
                self._trackers[symbol] = tracker
                logger.debug(f"Tracking new symbol {symbol} ({len(self._trackers)} total)")
            return tracker

    def symbols(self) -> List[str]:
        return list(self._trackers)

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._trackers

    def __len__(self) -> int:
        return len(self._trackers)
