"""Pub/Sub emitter for ejected candles."""

import json
import logging

from google.cloud import pubsub_v1
from google.cloud.pubsub_v1 import types

from ..models.candle import Candle
from .base import Emitter

logger = logging.getLogger(__name__)


class PubSubEmitter(Emitter):
    """Emitter sending finished candles to GCP Pub/Sub."""

    def __init__(self, project_id: str, granularity: str = "5m", publish_timeout: float = 30.0):
        """Initialize Pub/Sub emitter.

        Args:
            project_id: GCP project ID
            granularity: Candle granularity label (e.g., "5m")
            publish_timeout: Seconds to wait for each publish to be acknowledged
        """
        self.project_id = project_id
        self.granularity = granularity
        self.publish_timeout = publish_timeout
        # Enable message ordering to support ordering keys
        publisher_options = types.PublisherOptions(enable_message_ordering=True)
        self.publisher = pubsub_v1.PublisherClient(publisher_options=publisher_options)

    def _get_topic_name(self, symbol: str) -> str:
        """Get Pub/Sub topic name for a symbol.

        Args:
            symbol: Trading symbol (e.g., "BTC-USD")

        Returns:
            Topic name (e.g., "candlewatch-candles-btc-usd-5m")
        """
        return f"candlewatch-candles-{symbol.lower()}-{self.granularity}"

    def _candle_to_message(self, candle: Candle) -> dict:
        """Convert candle to Pub/Sub message format."""
        message = candle.to_dict()
        message["timestamp"] = candle.start_time.isoformat()
        message["granularity"] = self.granularity
        return message

    def emit(self, candle: Candle) -> None:
        self.publish_candle(candle)

    def publish_candle(self, candle: Candle) -> str | None:
        """Publish a candle to Pub/Sub.

        Args:
            candle: Ejected candle to publish

        Returns:
            Message ID if successful, None otherwise
        """
        topic_name = self._get_topic_name(candle.symbol)
        topic_path = self.publisher.topic_path(self.project_id, topic_name)
        ordering_key = candle.symbol.lower()
        try:
            message_json = json.dumps(self._candle_to_message(candle))

            # Ordering key keeps each symbol's candles in order
            future = self.publisher.publish(
                topic_path,
                message_json.encode("utf-8"),
                ordering_key=ordering_key,
            )

            message_id = future.result(timeout=self.publish_timeout)
            logger.info(
                f"📤 Published candle to {topic_name}: {candle.symbol} @ {candle.start_time} "
                f"(message_id: {message_id})"
            )
            return message_id

        except Exception as e:
            logger.error(f"Failed to publish candle for {candle.symbol}: {e}", exc_info=True)
            # A failed publish pauses its ordering key until resumed
            self.publisher.resume_publish(topic_path, ordering_key)
            return None

    def close(self) -> None:
        """Flush outstanding messages."""
        try:
            self.publisher.stop()
        except Exception as e:
            logger.warning(f"Error stopping Pub/Sub publisher: {e}")
