"""Real-time ingestion service feeding live candle updates through the reconciler."""

import logging
from typing import List

from ..models.candle import Candle
from ..models.update import CandleUpdate
from ..tracking.errors import UnknownSymbolOverflow
from ..tracking.reconciler import StreamReconciler

logger = logging.getLogger(__name__)


class RealtimeIngestor:
    """Real-time ingestor that turns feed batches into finished candles."""

    def __init__(self, reconciler: StreamReconciler):
        """Initialize real-time ingestor.

        Args:
            reconciler: Reconciler that classifies, tracks and emits
        """
        self.reconciler = reconciler
        self.processed = 0
        self.ejected = 0
        self.failed = 0

    def handle_updates(self, updates: List[CandleUpdate]) -> List[Candle]:
        """Process one feed batch, oldest update first.

        Args:
            updates: Decoded updates from the feed

        Returns:
            Candles ejected while processing the batch

        Raises:
            UnknownSymbolOverflow: If the registry bound is exceeded
        """
        finished = []
        for update in updates:
            self.processed += 1
            try:
                result = self.reconciler.process(update)
            except UnknownSymbolOverflow:
                raise
            except Exception as e:
                # Contained per update; only overflow reaches the caller
                self.failed += 1
                logger.error(
                    f"Failed to process update for {update.symbol} at {update.start}: {e}",
                    exc_info=True,
                )
                continue

            if result.ejected is None:
                continue

            self.ejected += 1
            finished.append(result.ejected)
            logger.info(
                f"{self.processed} {result.ejected.symbol:>10} "
                f"({result.ejected.start}): finished candle."
            )
        return finished
