"""Result models for reconciliation operations."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from .candle import Candle
from .update import CandleUpdate


class UpdateClass(str, Enum):
    """Classification of an update relative to the tracked bucket."""

    IN_ORDER = "in_order"
    DUPLICATE = "duplicate"
    LATE = "late"
    GAP = "gap"


class AnomalyKind(str, Enum):
    """Kinds of non-fatal anomaly signals."""

    MISALIGNED = "misaligned"
    LATE = "late"
    GAP = "gap"
    DUPLICATE = "duplicate"


@dataclass(frozen=True)
class Anomaly:
    """Advisory signal raised for an update that deviates from forward progression."""

    kind: AnomalyKind
    symbol: str
    start: int
    detail: str = ""
    skipped: Optional[Tuple[int, int]] = None  # inclusive [first, last] missed bucket starts


@dataclass
class ReconcileResult:
    """Outcome of processing one update."""

    update: CandleUpdate
    classification: Optional[UpdateClass]  # None when the update was rejected
    ejected: Optional[Candle] = None
    anomalies: List[Anomaly] = field(default_factory=list)
    dropped: bool = False  # duplicate short-circuited by policy

    @property
    def rejected(self) -> bool:
        return self.classification is None

    @property
    def applied(self) -> bool:
        """Whether the update was folded into tracker state."""
        if self.classification is UpdateClass.DUPLICATE:
            return not self.dropped
        return self.classification in (UpdateClass.IN_ORDER, UpdateClass.GAP)
