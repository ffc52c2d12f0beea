"""Live Coinbase candle watcher.

Subscribes to the candles channel and emits each candle once it is
superseded by a newer bucket for the same product.
"""

import logging
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load .env file if it exists
env_path = Path.cwd() / ".env"
if env_path.exists():
    load_dotenv(env_path)

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)

# Imports after logging setup (required for proper logging configuration)
from coinbase.rest import RESTClient  # noqa: E402

from candlewatch.config import SystemConfig, TrackerConfig  # noqa: E402
from candlewatch.ingestion.observability import LoggingAnomalyObserver  # noqa: E402
from candlewatch.ingestion.realtime_ingestor import RealtimeIngestor  # noqa: E402
from candlewatch.publishers.base import Emitter, LoggingEmitter, QueueEmitter  # noqa: E402
from candlewatch.sources.coinbase import CoinbaseCandleFeed, list_products  # noqa: E402
from candlewatch.tracking.errors import UnknownSymbolOverflow  # noqa: E402
from candlewatch.tracking.granularity import GranularityPolicy  # noqa: E402
from candlewatch.tracking.reconciler import StreamReconciler  # noqa: E402
from candlewatch.tracking.registry import SymbolRegistry  # noqa: E402


def build_emitter(tracker_config: TrackerConfig) -> Emitter:
    """Create the downstream emitter wrapped in a bounded hand-off queue."""
    if tracker_config.pubsub_project_id:
        from candlewatch.publishers.pubsub_emitter import PubSubEmitter

        downstream: Emitter = PubSubEmitter(
            project_id=tracker_config.pubsub_project_id,
            granularity=tracker_config.granularity.value,
        )
        logger.info(f"   - Emitter: Pub/Sub ({tracker_config.pubsub_project_id})")
    else:
        downstream = LoggingEmitter()
        logger.info("   - Emitter: log")
    return QueueEmitter(downstream, maxsize=tracker_config.emit_queue_size)


def build_reconciler(
    tracker_config: TrackerConfig, emitter: Emitter, observer: LoggingAnomalyObserver
) -> StreamReconciler:
    """Wire the registry, policy and emitter together."""
    registry = SymbolRegistry(
        volume_mode=tracker_config.volume_mode,
        max_symbols=tracker_config.max_symbols,
    )
    return StreamReconciler(
        registry=registry,
        policy=GranularityPolicy.from_granularity(tracker_config.granularity),
        emitter=emitter,
        observer=observer,
        drop_duplicates=tracker_config.drop_duplicates,
    )


def main():
    """Main entry point for the candle watcher."""
    logger.info("🚀 Starting Coinbase candle watcher...")
    exit_code = 0
    feed = None
    emitter = None

    try:
        system_config = SystemConfig.from_env()
        system_config.validate()
        tracker_config = TrackerConfig.from_env()
        tracker_config.validate()
        logger.info("✅ Configuration loaded")
        logger.info(f"   - Coinbase Environment: {system_config.coinbase_environment}")
        logger.info(f"   - Authenticated: {system_config.authenticated}")
        logger.info(f"   - Granularity: {tracker_config.granularity.value}")
        logger.info(f"   - Volume mode: {tracker_config.volume_mode.value}")

        products = tracker_config.products
        if not products:
            if system_config.authenticated:
                rest_client = RESTClient(
                    api_key=system_config.coinbase_api_key,
                    api_secret=system_config.coinbase_api_secret,
                )
            else:
                rest_client = RESTClient()
            products = list_products(rest_client, tracker_config.quote_currency)
        if not products:
            raise ValueError("No products to watch. Set COINBASE_PRODUCTS or COINBASE_QUOTE_CURRENCY.")
        logger.info(f"   - Products: {len(products)}")

        emitter = build_emitter(tracker_config)
        observer = LoggingAnomalyObserver()
        ingestor = RealtimeIngestor(build_reconciler(tracker_config, emitter, observer))

        feed = CoinbaseCandleFeed(
            products,
            api_key=system_config.coinbase_api_key or None,
            api_secret=system_config.coinbase_api_secret or None,
        )

        def signal_handler(sig, frame):
            """Handle shutdown signals gracefully."""
            logger.info("\n🛑 Shutting down...")
            feed.close()

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        logger.info("📡 Watching candles. Press Ctrl+C to stop\n")
        feed.run(ingestor.handle_updates)

        logger.info(
            f"Processed {ingestor.processed} updates, finished {ingestor.ejected} candles, "
            f"anomalies: {observer.counts}"
        )

    except KeyboardInterrupt:
        logger.info("Shutting down...")
    except UnknownSymbolOverflow as e:
        logger.error(f"Symbol registry exhausted: {e}")
        exit_code = 2
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        exit_code = 1
    finally:
        if feed is not None:
            feed.close()
        if emitter is not None:
            emitter.close()
        logger.info("✅ Service stopped")

    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()
