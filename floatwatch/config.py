"""
Configuration management for floatwatch.
Loads settings from environment variables and provides defaults.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
from dotenv import load_dotenv
from loguru import logger

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


@dataclass
class APIConfig:
    """Marketplace and float API endpoints."""
    market_host: str = field(
        default_factory=lambda: os.getenv("MARKET_HOST", "https://steamcommunity.com")
    )
    float_api_host: str = field(
        default_factory=lambda: os.getenv("FLOAT_API_HOST", "https://api.csfloat.com")
    )
    image_host: str = field(
        default_factory=lambda: os.getenv(
            "IMAGE_HOST", "https://community.cloudflare.steamstatic.com/economy/image"
        )
    )
    app_id: int = field(
        default_factory=lambda: int(os.getenv("APP_ID", "730"))
    )
    currency: int = field(
        default_factory=lambda: int(os.getenv("CURRENCY", "1"))  # 1 = USD
    )
    request_timeout: float = field(
        default_factory=lambda: float(os.getenv("REQUEST_TIMEOUT", "15"))
    )
    user_agent: str = field(
        default_factory=lambda: os.getenv(
            "USER_AGENT",
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
            "(KHTML, like Gecko) Chrome/124.0 Safari/537.36",
        )
    )

    # Steam starts answering 429 somewhere above ~20 requests/minute per IP
    requests_per_minute: int = field(
        default_factory=lambda: int(os.getenv("REQUESTS_PER_MINUTE", "20"))
    )


@dataclass
class ProxyConfig:
    """Outbound proxy pool configuration."""
    enabled: bool = field(
        default_factory=lambda: _env_bool("PROXY_ENABLED", "false")
    )
    # Comma-separated host:port or full proxy URLs
    proxy_list: str = field(
        default_factory=lambda: os.getenv("PROXY_LIST", "")
    )

    def get_addresses(self) -> List[str]:
        """Parse proxy addresses from comma-separated string."""
        if not self.proxy_list:
            return []
        return [p.strip() for p in self.proxy_list.split(",") if p.strip()]

    def set_addresses(self, addresses: List[str]):
        self.proxy_list = ",".join(a.strip() for a in addresses if a.strip())


@dataclass
class MonitoringConfig:
    """Per-item polling configuration."""
    poll_interval: float = field(
        default_factory=lambda: float(os.getenv("POLL_INTERVAL", "10"))
    )
    poll_jitter: float = field(
        default_factory=lambda: float(os.getenv("POLL_JITTER", "2"))  # ± seconds
    )
    max_consecutive_errors: int = field(
        default_factory=lambda: int(os.getenv("MAX_CONSECUTIVE_ERRORS", "5"))
    )
    # max: float <= target, min: float >= target, near: |float - target| <= tolerance
    match_float_mode: str = field(
        default_factory=lambda: os.getenv("MATCH_FLOAT_MODE", "max")
    )
    float_tolerance: float = field(
        default_factory=lambda: float(os.getenv("FLOAT_TOLERANCE", "0.01"))
    )
    # lte: price <= target, eq: price == target
    match_price_mode: str = field(
        default_factory=lambda: os.getenv("MATCH_PRICE_MODE", "lte")
    )
    log_level: str = field(
        default_factory=lambda: os.getenv("LOG_LEVEL", "INFO")
    )


@dataclass
class StorageConfig:
    """Locations of the JSON files and the image cache."""
    watchlist_path: Path = field(
        default_factory=lambda: Path(os.getenv("WATCHLIST_PATH", "data/watchlist.json"))
    )
    settings_path: Path = field(
        default_factory=lambda: Path(os.getenv("SETTINGS_PATH", "data/settings.json"))
    )
    image_cache_dir: Path = field(
        default_factory=lambda: Path(os.getenv("IMAGE_CACHE_DIR", "data/images"))
    )


@dataclass
class NotificationConfig:
    """Notification configuration."""
    telegram_bot_token: Optional[str] = field(
        default_factory=lambda: os.getenv("TELEGRAM_BOT_TOKEN") or None
    )
    telegram_chat_id: Optional[str] = field(
        default_factory=lambda: os.getenv("TELEGRAM_CHAT_ID") or None
    )

    @property
    def telegram_enabled(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)


@dataclass
class Config:
    """Main configuration container."""
    api: APIConfig = field(default_factory=APIConfig)
    proxy: ProxyConfig = field(default_factory=ProxyConfig)
    monitoring: MonitoringConfig = field(default_factory=MonitoringConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    notification: NotificationConfig = field(default_factory=NotificationConfig)

    def validate(self) -> bool:
        """Validate all configuration."""
        if self.monitoring.poll_interval <= 0:
            logger.error("POLL_INTERVAL must be positive")
            return False
        if self.monitoring.max_consecutive_errors < 1:
            logger.error("MAX_CONSECUTIVE_ERRORS must be at least 1")
            return False
        if self.monitoring.match_float_mode not in ("max", "min", "near"):
            logger.error(f"Unknown MATCH_FLOAT_MODE: {self.monitoring.match_float_mode}")
            return False
        if self.monitoring.match_price_mode not in ("lte", "eq"):
            logger.error(f"Unknown MATCH_PRICE_MODE: {self.monitoring.match_price_mode}")
            return False
        if self.proxy.enabled and not self.proxy.get_addresses():
            logger.error("PROXY_ENABLED is set but PROXY_LIST is empty")
            return False
        return True

    def log_config(self):
        """Log current configuration (hiding sensitive data)."""
        logger.info("=" * 60)
        logger.info("floatwatch configuration")
        logger.info("=" * 60)

        logger.info("\n[Marketplace]")
        logger.info(f"  Market Host: {self.api.market_host}")
        logger.info(f"  Float API: {self.api.float_api_host}")
        logger.info(f"  Request Timeout: {self.api.request_timeout}s")
        logger.info(f"  Requests/min per identity: {self.api.requests_per_minute}")

        logger.info("\n[Proxies]")
        logger.info(f"  Enabled: {self.proxy.enabled}")
        logger.info(f"  Pool Size: {len(self.proxy.get_addresses())}")

        logger.info("\n[Monitoring]")
        logger.info(f"  Poll Interval: {self.monitoring.poll_interval}s (±{self.monitoring.poll_jitter}s)")
        logger.info(f"  Max Consecutive Errors: {self.monitoring.max_consecutive_errors}")
        logger.info(f"  Float Match: {self.monitoring.match_float_mode} (tolerance {self.monitoring.float_tolerance})")
        logger.info(f"  Price Match: {self.monitoring.match_price_mode}")

        logger.info("\n[Notifications]")
        logger.info(f"  Telegram: {self.notification.telegram_enabled}")

        logger.info("=" * 60)
