"""Configuration management."""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from .sources.base import Granularity, normalize_symbol
from .tracking.tracker import VolumeMode


@dataclass
class SystemConfig:
    """Coinbase credentials from a CDP API key file.

    The candles channel is public, so credentials are optional. When no
    key file is configured or found, the feed runs unauthenticated.
    """

    coinbase_api_key: str = ""
    coinbase_api_secret: str = ""
    coinbase_environment: str = "live"

    @property
    def authenticated(self) -> bool:
        return bool(self.coinbase_api_key and self.coinbase_api_secret)

    @classmethod
    def from_env(cls) -> "SystemConfig":
        """Load configuration from a CDP API key file, if any.

        An explicitly configured key file that is missing or invalid is an error.
        """
        environment = os.getenv("COINBASE_ENVIRONMENT", "live")
        cdp_key_file = os.getenv("COINBASE_CDP_KEY_FILE", "")

        # If not specified, look for cdp_api_key-*.json files in current directory
        if not cdp_key_file:
            cdp_files = list(Path.cwd().glob("cdp_api_key-*.json"))
            if not cdp_files:
                return cls(coinbase_environment=environment)
            # Use the most recent one found
            cdp_key_file = str(sorted(cdp_files, key=lambda p: p.stat().st_mtime, reverse=True)[0])

        if not Path(cdp_key_file).exists():
            raise ValueError(
                f"CDP API key file not found: {cdp_key_file}\n"
                f"  - Verify the file path is correct\n"
                f"  - Or set COINBASE_CDP_KEY_FILE to the correct path"
            )

        try:
            with open(cdp_key_file) as f:
                cdp_data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(
                f"Invalid JSON in CDP API key file {cdp_key_file}: {e}\n"
                f"  - Please verify the file is valid JSON"
            ) from e

        api_key_name = cdp_data.get("name", "")
        api_secret = cdp_data.get("privateKey", "")

        if not api_key_name:
            raise ValueError(
                f"Missing 'name' field in CDP API key file {cdp_key_file}\n"
                f"  - The file must contain a 'name' field with the API key name"
            )

        if not api_secret:
            raise ValueError(
                f"Missing 'privateKey' field in CDP API key file {cdp_key_file}\n"
                f"  - The file must contain a 'privateKey' field with the EC private key"
            )

        return cls(
            coinbase_api_key=api_key_name,
            coinbase_api_secret=api_secret,
            coinbase_environment=environment,
        )

    def validate(self) -> None:
        """Validate configuration."""
        if bool(self.coinbase_api_key) != bool(self.coinbase_api_secret):
            raise ValueError("COINBASE API key and secret must be provided together")
        if self.coinbase_environment not in ["sandbox", "live"]:
            raise ValueError("COINBASE_ENVIRONMENT must be 'sandbox' or 'live'")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    if value.lower() in ("1", "true", "yes", "on"):
        return True
    if value.lower() in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


@dataclass
class TrackerConfig:
    """Candle tracking configuration from environment variables."""

    granularity: Granularity = Granularity.FIVE_MINUTE
    volume_mode: VolumeMode = VolumeMode.SNAPSHOT
    drop_duplicates: bool = False
    max_symbols: Optional[int] = None
    products: List[str] = field(default_factory=list)
    quote_currency: str = "USD"
    pubsub_project_id: Optional[str] = None
    emit_queue_size: int = 1000

    @classmethod
    def from_env(cls) -> "TrackerConfig":
        """Load tracking configuration.

        Reads:
        - CANDLE_GRANULARITY (default: 5m)
        - CANDLE_VOLUME_MODE: snapshot or cumulative (default: snapshot)
        - CANDLE_DROP_DUPLICATES (default: false)
        - CANDLE_MAX_SYMBOLS (optional)
        - COINBASE_PRODUCTS: comma-separated product ids (optional)
        - COINBASE_QUOTE_CURRENCY (default: USD)
        - PUBSUB_PROJECT_ID (optional)
        - EMIT_QUEUE_SIZE (default: 1000)
        """
        granularity_str = os.getenv("CANDLE_GRANULARITY", "5m")
        try:
            granularity = Granularity(granularity_str)
        except ValueError as e:
            raise ValueError(
                f"Unsupported CANDLE_GRANULARITY: {granularity_str}\n"
                f"  - Expected one of: {', '.join(g.value for g in Granularity)}"
            ) from e

        volume_mode_str = os.getenv("CANDLE_VOLUME_MODE", "snapshot").lower()
        try:
            volume_mode = VolumeMode(volume_mode_str)
        except ValueError as e:
            raise ValueError(
                f"Unsupported CANDLE_VOLUME_MODE: {volume_mode_str}\n"
                f"  - Expected 'snapshot' or 'cumulative'"
            ) from e

        max_symbols_str = os.getenv("CANDLE_MAX_SYMBOLS", "")
        try:
            max_symbols = int(max_symbols_str) if max_symbols_str else None
            emit_queue_size = int(os.getenv("EMIT_QUEUE_SIZE", "1000"))
        except ValueError as e:
            raise ValueError(f"CANDLE_MAX_SYMBOLS and EMIT_QUEUE_SIZE must be integers: {e}") from e

        products_str = os.getenv("COINBASE_PRODUCTS", "")
        products = [normalize_symbol(p) for p in products_str.split(",") if p.strip()]

        return cls(
            granularity=granularity,
            volume_mode=volume_mode,
            drop_duplicates=_env_bool("CANDLE_DROP_DUPLICATES", False),
            max_symbols=max_symbols,
            products=products,
            quote_currency=os.getenv("COINBASE_QUOTE_CURRENCY", "USD").strip().upper(),
            pubsub_project_id=os.getenv("PUBSUB_PROJECT_ID") or None,
            emit_queue_size=emit_queue_size,
        )

    def validate(self) -> None:
        """Validate configuration."""
        if self.max_symbols is not None and self.max_symbols <= 0:
            raise ValueError("CANDLE_MAX_SYMBOLS must be positive")
        if self.emit_queue_size <= 0:
            raise ValueError("EMIT_QUEUE_SIZE must be positive")
        if not self.quote_currency:
            raise ValueError("COINBASE_QUOTE_CURRENCY must not be empty")
        if self.max_symbols is not None and len(self.products) > self.max_symbols:
            raise ValueError(
                f"{len(self.products)} products configured but CANDLE_MAX_SYMBOLS is {self.max_symbols}"
            )
