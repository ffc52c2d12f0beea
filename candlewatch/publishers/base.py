"""Emitter interface and in-process sinks for ejected candles."""

import logging
import queue
import threading
from abc import ABC, abstractmethod
from typing import Optional

from ..models.candle import Candle

logger = logging.getLogger(__name__)


class Emitter(ABC):
    """Receives ejected candles in emission order."""

    @abstractmethod
    def emit(self, candle: Candle) -> None:
        """Hand off one ejected candle.

        Args:
            candle: Candle with status EJECTED
        """
        pass

    def close(self) -> None:
        """Release resources; pending hand-offs are flushed."""
        pass


class LoggingEmitter(Emitter):
    """Counts emitted candles and logs their OHLCV values at DEBUG."""

    def __init__(self):
        self.emitted = 0

    def emit(self, candle: Candle) -> None:
        self.emitted += 1
        logger.debug(
            f"Emitted {candle.symbol}@{candle.start} "
            f"O:{candle.open} H:{candle.high} L:{candle.low} "
            f"C:{candle.close} V:{candle.volume}"
        )


class QueueEmitter(Emitter):
    """Bounded hand-off to a downstream emitter drained by a worker thread.

    ``emit`` blocks only while the queue is full. Candles reach the
    downstream emitter in the order they were emitted.
    """

    _STOP = object()

    def __init__(self, downstream: Emitter, maxsize: int = 1000):
        """Initialize queue emitter.

        Args:
            downstream: Emitter that receives candles on the worker thread
            maxsize: Queue capacity before ``emit`` applies backpressure
        """
        self.downstream = downstream
        self._queue: "queue.Queue" = queue.Queue(maxsize=maxsize)
        self._closed = False
        self._lock = threading.Lock()
        self._worker = threading.Thread(target=self._drain, name="candle-emitter", daemon=True)
        self._worker.start()

    def emit(self, candle: Candle) -> None:
        # Check and put are atomic with close, so nothing lands behind the stop marker
        with self._lock:
            if self._closed:
                raise RuntimeError("QueueEmitter is closed")
            self._queue.put(candle)

    def pending(self) -> int:
        return self._queue.qsize()

    def _drain(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is self._STOP:
                    self._close_downstream()
                    return
                self.downstream.emit(item)
            except Exception as e:
                logger.error(
                    f"Downstream emitter failed for {item.symbol}@{item.start}: {e}",
                    exc_info=True,
                )
            finally:
                self._queue.task_done()

    def _close_downstream(self) -> None:
        try:
            self.downstream.close()
        except Exception as e:
            logger.error(f"Failed to close downstream emitter: {e}", exc_info=True)

    def close(self, timeout: Optional[float] = None) -> None:
        """Stop accepting candles and wait for the worker to drain.

        The worker closes the downstream emitter once every pending candle
        has been delivered, even when ``timeout`` expires first.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(self._STOP)
        self._worker.join(timeout)
        if self._worker.is_alive():
            logger.warning(
                f"Emitter still draining {self.pending()} candle(s) after {timeout}s; "
                f"downstream closes when done"
            )
