"""Shared test fixtures and utilities."""

import json
from typing import List
from unittest.mock import MagicMock

import pytest

from candlewatch.ingestion.observability import AnomalyObserver
from candlewatch.models.candle import Candle
from candlewatch.models.results import Anomaly
from candlewatch.models.update import CandleUpdate
from candlewatch.publishers.base import Emitter
from candlewatch.tracking.granularity import GranularityPolicy
from candlewatch.tracking.reconciler import StreamReconciler
from candlewatch.tracking.registry import SymbolRegistry
from candlewatch.tracking.tracker import VolumeMode


class CollectingEmitter(Emitter):
    """Emitter that keeps every candle it receives."""

    def __init__(self):
        self.candles: List[Candle] = []
        self.closed = False

    def emit(self, candle: Candle) -> None:
        self.candles.append(candle)

    def close(self) -> None:
        self.closed = True

    def starts(self, symbol: str) -> List[int]:
        return [c.start for c in self.candles if c.symbol == symbol]


class RecordingObserver(AnomalyObserver):
    """Observer that keeps every anomaly it receives."""

    def __init__(self):
        self.anomalies: List[Anomaly] = []

    def observe(self, anomaly: Anomaly) -> None:
        self.anomalies.append(anomaly)

    def kinds(self) -> list:
        return [a.kind for a in self.anomalies]


def make_update(symbol: str, start: int, price: float, volume: float = 1.0) -> CandleUpdate:
    """Helper to create a candle update."""
    return CandleUpdate(symbol=symbol, start=start, price=price, volume=volume)


def make_candles_message(candles: list[tuple], event_type: str = "update") -> str:
    """Helper to create a Coinbase candles channel message.

    Args:
        candles: List of tuples (product_id, start, open, high, low, close, volume)
        event_type: Event type ("snapshot" or "update")

    Returns:
        JSON message text
    """
    return json.dumps(
        {
            "channel": "candles",
            "client_id": "",
            "timestamp": "2025-01-01T12:00:00.000000000Z",
            "sequence_num": 0,
            "events": [
                {
                    "type": event_type,
                    "candles": [
                        {
                            "product_id": product_id,
                            "start": str(start),
                            "open": str(open_price),
                            "high": str(high),
                            "low": str(low),
                            "close": str(close),
                            "volume": str(volume),
                        }
                        for product_id, start, open_price, high, low, close, volume in candles
                    ],
                }
            ],
        }
    )


@pytest.fixture
def update():
    """Factory for candle updates."""
    return make_update


@pytest.fixture
def candles_message():
    """Factory for Coinbase candles channel messages."""
    return make_candles_message


@pytest.fixture
def policy():
    """Five-unit buckets, matching the scenario timestamps."""
    return GranularityPolicy(duration=5)


@pytest.fixture
def emitter():
    return CollectingEmitter()


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def make_reconciler(policy, emitter, observer):
    """Factory for reconcilers sharing the emitter and observer fixtures."""

    def _make(
        volume_mode: VolumeMode = VolumeMode.SNAPSHOT,
        drop_duplicates: bool = False,
        max_symbols=None,
    ) -> StreamReconciler:
        return StreamReconciler(
            registry=SymbolRegistry(volume_mode=volume_mode, max_symbols=max_symbols),
            policy=policy,
            emitter=emitter,
            observer=observer,
            drop_duplicates=drop_duplicates,
        )

    return _make


@pytest.fixture
def reconciler(make_reconciler):
    return make_reconciler()


@pytest.fixture
def mock_ws_client():
    """Create a mock Coinbase WSClient and a factory returning it."""
    client = MagicMock()
    factory = MagicMock(return_value=client)
    return client, factory
