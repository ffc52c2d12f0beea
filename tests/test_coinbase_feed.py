"""Tests for the Coinbase candle feed adapter."""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from requests.exceptions import HTTPError

from candlewatch.sources.base import FeedError
from candlewatch.sources.coinbase import (
    CoinbaseCandleFeed,
    list_products,
    parse_candles_message,
)
from candlewatch.tracking.errors import UnknownSymbolOverflow


class TestParseCandlesMessage:
    def test_parses_all_candles_oldest_first(self, candles_message):
        raw = candles_message(
            [
                ("ETH-USD", 1688998500, "1867.72", "1867.72", "1867.24", "1867.24", "14.2"),
                ("BTC-USD", 1688998200, "30000", "30010", "29990", "30005", "1.5"),
            ]
        )

        updates = parse_candles_message(raw)

        assert [(u.symbol, u.start) for u in updates] == [
            ("BTC-USD", 1688998200),
            ("ETH-USD", 1688998500),
        ]
        assert updates[0].price == 30005.0
        assert updates[0].volume == 1.5
        assert updates[1].price == 1867.24

    def test_ignores_other_channels(self):
        raw = json.dumps({"channel": "heartbeats", "events": [{"heartbeat_counter": 3}]})
        assert parse_candles_message(raw) == []

    def test_ignores_empty_events(self):
        assert parse_candles_message(json.dumps({"channel": "candles", "events": []})) == []

    def test_error_message_and_bad_json(self):
        assert parse_candles_message(json.dumps({"type": "error", "message": "boom"})) == []
        assert parse_candles_message("{not json") == []

    def test_skips_malformed_entries(self, candles_message):
        message = json.loads(
            candles_message([("BTC-USD", 300, "1", "1", "1", "1", "1")])
        )
        message["events"][0]["candles"].extend(
            [
                {"product_id": "ETH-USD", "start": "300"},
                {"product_id": "ETH-USD", "start": "abc", "close": "1"},
                {"product_id": "ETH-USD", "start": "300", "close": "-4", "volume": "1"},
            ]
        )

        updates = parse_candles_message(json.dumps(message))

        assert [u.symbol for u in updates] == ["BTC-USD"]


class TestListProducts:
    def test_filters_by_quote_currency(self):
        rest_client = MagicMock()
        rest_client.get_public_products.return_value = SimpleNamespace(
            products=[
                SimpleNamespace(product_id="BTC-USD", quote_currency_id="USD"),
                SimpleNamespace(product_id="ETH-USDC", quote_currency_id="USDC"),
                {"product_id": "sol-usd", "quote_currency_id": "usd"},
            ]
        )

        assert list_products(rest_client, "usd") == ["BTC-USD", "SOL-USD"]

    def test_http_error_raises_feed_error(self):
        rest_client = MagicMock()
        error_response = MagicMock()
        error_response.status_code = 429
        rest_client.get_public_products.side_effect = HTTPError(
            "429 Too Many Requests", response=error_response
        )

        with pytest.raises(FeedError):
            list_products(rest_client)


class TestCoinbaseCandleFeed:
    def test_run_subscribes_and_forwards_updates(self, mock_ws_client, candles_message):
        client, factory = mock_ws_client
        feed = CoinbaseCandleFeed(["btc-usd"], ws_client_factory=factory)
        received = []

        def run_forever():
            on_message = factory.call_args.kwargs["on_message"]
            on_message(candles_message([("BTC-USD", 300, "1", "2", "1", "2", "3")]))
            on_message(json.dumps({"channel": "heartbeats", "events": []}))

        client.run_forever_with_exception_check.side_effect = run_forever

        feed.run(received.append)

        client.open.assert_called_once()
        client.subscribe.assert_any_call(product_ids=["BTC-USD"], channels=["candles"])
        client.subscribe.assert_any_call(product_ids=[], channels=["heartbeats"])
        assert len(received) == 1
        assert received[0][0].price == 2.0

    def test_handler_failure_is_reraised(self, mock_ws_client, candles_message):
        client, factory = mock_ws_client
        feed = CoinbaseCandleFeed(["BTC-USD"], ws_client_factory=factory)

        def handler(updates):
            raise UnknownSymbolOverflow("BTC-USD", 0)

        def run_forever():
            on_message = factory.call_args.kwargs["on_message"]
            on_message(candles_message([("BTC-USD", 300, "1", "2", "1", "2", "3")]))

        client.run_forever_with_exception_check.side_effect = run_forever

        with pytest.raises(UnknownSymbolOverflow):
            feed.run(handler)

    def test_connection_failure_raises_feed_error(self, mock_ws_client):
        client, factory = mock_ws_client
        client.open.side_effect = ConnectionError("refused")
        feed = CoinbaseCandleFeed(["BTC-USD"], ws_client_factory=factory)

        with pytest.raises(FeedError):
            feed.run(lambda updates: None)

    def test_close_is_idempotent(self, mock_ws_client):
        client, factory = mock_ws_client
        client.run_forever_with_exception_check.return_value = None
        feed = CoinbaseCandleFeed(["BTC-USD"], ws_client_factory=factory)
        feed.run(lambda updates: None)

        feed.close()
        feed.close()

        client.close.assert_called_once()

    def test_requires_products(self):
        with pytest.raises(ValueError):
            CoinbaseCandleFeed([])
