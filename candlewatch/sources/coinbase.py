"""Coinbase Advanced Trade candle feed adapter."""

import json
import logging
from decimal import Decimal
from typing import Any, List, Optional

from coinbase.rest import RESTClient
from coinbase.websocket import WSClient
from pydantic import ValidationError

from ..models.update import CandleUpdate
from .base import FeedError, FeedSource, UpdateHandler, normalize_symbol

logger = logging.getLogger(__name__)

CANDLES_CHANNEL = "candles"
HEARTBEATS_CHANNEL = "heartbeats"


def _field(obj: Any, name: str) -> Any:
    """Read a field from an SDK response object or a plain dict."""
    if isinstance(obj, dict):
        return obj.get(name)
    return getattr(obj, name, None)


def parse_candles_message(raw: str) -> List[CandleUpdate]:
    """Parse a websocket message into candle updates.

    Non-candle messages and empty events yield an empty list. Entries that
    fail validation are logged and skipped.

    Args:
        raw: JSON message text as delivered by the websocket

    Returns:
        Updates sorted oldest to newest
    """
    try:
        message = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON from feed: {e}")
        return []

    if message.get("type") == "error":
        logger.error(f"Feed error message: {message.get('message', message)}")
        return []

    if message.get("channel") != CANDLES_CHANNEL:
        return []

    updates = []
    for event in message.get("events") or []:
        for candle_data in event.get("candles") or []:
            try:
                updates.append(
                    CandleUpdate(
                        symbol=candle_data["product_id"],
                        start=int(candle_data["start"]),
                        price=float(Decimal(str(candle_data["close"]))),
                        volume=float(Decimal(str(candle_data.get("volume", "0")))),
                    )
                )
            except (KeyError, ValueError, ArithmeticError, ValidationError) as e:
                logger.warning(f"Skipping malformed candle {candle_data}: {e}")

    updates.sort(key=lambda u: u.start)
    return updates


def list_products(rest_client: RESTClient, quote_currency: str = "USD") -> List[str]:
    """List product ids quoted in ``quote_currency``.

    Args:
        rest_client: Coinbase REST client
        quote_currency: Quote currency filter (e.g., "USD")

    Returns:
        Normalized product ids (e.g., ["BTC-USD", "ETH-USD"])

    Raises:
        FeedError: If the product listing cannot be fetched
    """
    logger.info(f"Getting '*-{quote_currency}' products.")
    try:
        response = rest_client.get_public_products()
    except Exception as e:
        logger.error(f"Unable to get products: {e}")
        raise FeedError(f"Unable to get products: {e}") from e

    quote_currency = quote_currency.upper()
    products = []
    for product in _field(response, "products") or []:
        if (_field(product, "quote_currency_id") or "").upper() != quote_currency:
            continue
        product_id = _field(product, "product_id")
        if product_id:
            products.append(normalize_symbol(product_id))

    logger.info(f"Obtained {len(products)} products.")
    return products


class CoinbaseCandleFeed(FeedSource):
    """Live candles for a set of products from the Coinbase websocket."""

    def __init__(
        self,
        products: List[str],
        api_key: Optional[str] = None,
        api_secret: Optional[str] = None,
        ws_client_factory=WSClient,
    ):
        """Initialize Coinbase candle feed.

        Args:
            products: Product ids to subscribe to
            api_key: Coinbase API key
            api_secret: Coinbase API secret (private key in PEM format)
            ws_client_factory: Optional websocket client factory for testing
        """
        if not products:
            raise ValueError("At least one product is required")
        self.products = [normalize_symbol(p) for p in products]
        self.api_key = api_key
        self.api_secret = api_secret
        self._ws_client_factory = ws_client_factory
        self._client = None
        self._handler: Optional[UpdateHandler] = None
        self._failure: Optional[Exception] = None

    def _on_message(self, raw: str) -> None:
        updates = parse_candles_message(raw)
        if not updates or self._handler is None:
            return
        try:
            self._handler(updates)
        except Exception as e:
            # Surfaces through run_forever_with_exception_check; run() re-raises it
            logger.error(f"Update handler failed: {e}", exc_info=True)
            self._failure = e
            raise

    def run(self, handler: UpdateHandler) -> None:
        """Subscribe and deliver updates until the connection closes.

        Raises:
            FeedError: If the websocket fails
            Exception: Whatever the handler raised, unchanged
        """
        self._handler = handler
        self._failure = None
        try:
            self._client = self._ws_client_factory(
                api_key=self.api_key,
                api_secret=self.api_secret,
                on_message=self._on_message,
                retry=True,
            )
            self._client.open()
            self._client.subscribe(product_ids=[], channels=[HEARTBEATS_CHANNEL])
            self._client.subscribe(product_ids=self.products, channels=[CANDLES_CHANNEL])
            logger.info(f"Subscribed to candles for {len(self.products)} products")
            self._client.run_forever_with_exception_check()
        except Exception as e:
            if self._failure is not None:
                raise self._failure
            logger.error(f"Websocket feed failed: {e}", exc_info=True)
            raise FeedError(f"Websocket feed failed: {e}") from e

        if self._failure is not None:
            raise self._failure

    def close(self) -> None:
        """Close the websocket connection if open."""
        if self._client is None:
            return
        try:
            self._client.close()
        except Exception as e:
            logger.warning(f"Error closing websocket: {e}")
        finally:
            self._client = None
