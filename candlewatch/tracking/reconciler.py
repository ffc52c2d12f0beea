"""Stream reconciliation in front of the symbol registry."""

import logging
from typing import Iterable, List, Optional

from ..ingestion.observability import AnomalyObserver
from ..models.candle import Candle
from ..models.results import Anomaly, AnomalyKind, ReconcileResult, UpdateClass
from ..models.update import CandleUpdate
from ..publishers.base import Emitter
from .errors import LateUpdate, MisalignedTimestamp
from .granularity import GranularityPolicy
from .registry import SymbolRegistry
from .tracker import CandleTracker

logger = logging.getLogger(__name__)


class StreamReconciler:
    """Classifies updates and routes them to per-symbol trackers.

    Each update is classified, applied and (when it ejects a candle)
    emitted while holding its tracker's lock, so a symbol's ejections
    reach the emitter in strictly increasing start order. Different
    symbols only share the registry's creation lock.
    """

    def __init__(
        self,
        registry: SymbolRegistry,
        policy: GranularityPolicy,
        emitter: Emitter,
        observer: Optional[AnomalyObserver] = None,
        drop_duplicates: bool = False,
    ):
        """Initialize reconciler.

        Args:
            registry: Owner of the per-symbol trackers
            policy: Bucket duration used for alignment and gap checks
            emitter: Receives every ejected candle
            observer: Optional receiver of anomaly signals
            drop_duplicates: Skip identical same-bucket replays instead of folding them
        """
        self.registry = registry
        self.policy = policy
        self.emitter = emitter
        self.observer = observer
        self.drop_duplicates = drop_duplicates

    def classify(self, update: CandleUpdate) -> UpdateClass:
        """Classify an update against its symbol's tracked bucket.

        Does not mutate any state.

        Raises:
            MisalignedTimestamp: If the update start is not bucket-aligned
        """
        self._check_alignment(update)
        return self._classify_against(self.registry.get(update.symbol), update)

    def process(self, update: CandleUpdate) -> ReconcileResult:
        """Classify, apply and emit for a single update.

        Raises:
            UnknownSymbolOverflow: If a new symbol exceeds the registry bound
        """
        try:
            self._check_alignment(update)
        except MisalignedTimestamp as e:
            anomaly = Anomaly(AnomalyKind.MISALIGNED, update.symbol, update.start, str(e))
            self._signal(anomaly)
            return ReconcileResult(update=update, classification=None, anomalies=[anomaly])

        tracker = self.registry.get_or_create(update.symbol)
        result = ReconcileResult(update=update, classification=None)
        try:
            with tracker.lock:
                self._apply(tracker, update, result)
        finally:
            # Signals collected before a failing emit are still delivered
            for anomaly in result.anomalies:
                self._signal(anomaly)
        return result

    def process_many(self, updates: Iterable[CandleUpdate]) -> List[Candle]:
        """Process updates in order and return the ejected candles."""
        ejected = []
        for update in updates:
            result = self.process(update)
            if result.ejected is not None:
                ejected.append(result.ejected)
        return ejected

    def _apply(
        self, tracker: CandleTracker, update: CandleUpdate, result: ReconcileResult
    ) -> None:
        classification = self._classify_against(tracker, update)
        result.classification = classification

        if classification is UpdateClass.LATE:
            try:
                tracker.apply(update)
            except LateUpdate as e:
                result.anomalies.append(
                    Anomaly(AnomalyKind.LATE, update.symbol, update.start, str(e))
                )
            return

        if classification is UpdateClass.DUPLICATE:
            result.anomalies.append(
                Anomaly(
                    AnomalyKind.DUPLICATE,
                    update.symbol,
                    update.start,
                    "identical to last applied update",
                )
            )
            if self.drop_duplicates:
                result.dropped = True
                return

        if classification is UpdateClass.GAP:
            skipped = self.policy.skipped_interval(tracker.current_start, update.start)
            result.anomalies.append(
                Anomaly(
                    AnomalyKind.GAP,
                    update.symbol,
                    update.start,
                    f"{self.policy.buckets_between(tracker.current_start, update.start) - 1} "
                    f"bucket(s) missed after {tracker.current_start}",
                    skipped=skipped,
                )
            )

        result.ejected = tracker.apply(update)
        if result.ejected is not None:
            self.emitter.emit(result.ejected)

    def _classify_against(
        self, tracker: Optional[CandleTracker], update: CandleUpdate
    ) -> UpdateClass:
        current_start = tracker.current_start if tracker is not None else None
        if current_start is None:
            return UpdateClass.IN_ORDER
        if update.start < current_start:
            return UpdateClass.LATE
        if update.start == current_start:
            if tracker.last_update == update:
                return UpdateClass.DUPLICATE
            return UpdateClass.IN_ORDER
        if self.policy.is_gap(current_start, update.start):
            return UpdateClass.GAP
        return UpdateClass.IN_ORDER

    def _check_alignment(self, update: CandleUpdate) -> None:
        if not self.policy.is_aligned(update.start):
            raise MisalignedTimestamp(update.symbol, update.start, self.policy.duration)

    def _signal(self, anomaly: Anomaly) -> None:
        if self.observer is None:
            return
        try:
            self.observer.observe(anomaly)
        except Exception as e:
            logger.error(f"Anomaly observer failed for {anomaly}: {e}", exc_info=True)
