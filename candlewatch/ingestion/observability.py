"""Anomaly observers."""

import logging
import threading
from abc import ABC, abstractmethod
from collections import Counter
from typing import Dict

from ..models.results import Anomaly, AnomalyKind

logger = logging.getLogger(__name__)


class AnomalyObserver(ABC):
    """Receives advisory anomaly signals."""

    @abstractmethod
    def observe(self, anomaly: Anomaly) -> None:
        pass


class LoggingAnomalyObserver(AnomalyObserver):
    """Logs anomalies and counts them per kind."""

    def __init__(self):
        self._counts: Counter = Counter()
        self._lock = threading.Lock()

    def observe(self, anomaly: Anomaly) -> None:
        with self._lock:
            self._counts[anomaly.kind] += 1

        if anomaly.kind is AnomalyKind.GAP:
            first, last = anomaly.skipped
            logger.info(
                f"Gap for {anomaly.symbol} at {anomaly.start}: "
                f"missed buckets {first}..{last}"
            )
        elif anomaly.kind is AnomalyKind.DUPLICATE:
            logger.debug(f"Duplicate update for {anomaly.symbol} at {anomaly.start}")
        else:
            logger.warning(
                f"{anomaly.kind.value.capitalize()} update for {anomaly.symbol} "
                f"at {anomaly.start}: {anomaly.detail}"
            )

    @property
    def counts(self) -> Dict[AnomalyKind, int]:
        with self._lock:
            return dict(self._counts)
