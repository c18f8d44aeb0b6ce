"""
Worker settings persisted as JSON.

The file holds what a user edits between sessions (proxy list, proxy
switch, poll pacing). It is layered over the environment configuration
at start and is read-only afterwards.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

from loguru import logger

from floatwatch.config import Config


def _as_bool(value: Any) -> bool:
    """JSON true/false, or the strings a hand-edited file may hold."""
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes", "on")
    return bool(value)


@dataclass
class WorkerSettings:
    """User-editable monitoring settings."""
    proxy_enabled: bool = False
    proxy_addresses: List[str] = field(default_factory=list)
    poll_interval: float = 10.0
    max_consecutive_errors: int = 5

    @classmethod
    def from_config(cls, config: Config) -> "WorkerSettings":
        return cls(
            proxy_enabled=config.proxy.enabled,
            proxy_addresses=config.proxy.get_addresses(),
            poll_interval=config.monitoring.poll_interval,
            max_consecutive_errors=config.monitoring.max_consecutive_errors,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "proxy": {
                "enabled": self.proxy_enabled,
                "addresses": list(self.proxy_addresses),
            },
            "worker": {
                "poll_interval": self.poll_interval,
                "max_consecutive_errors": self.max_consecutive_errors,
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any], defaults: "WorkerSettings") -> "WorkerSettings":
        """Missing keys fall back to the given defaults."""
        proxy = data.get("proxy", {}) or {}
        worker = data.get("worker", {}) or {}
        return cls(
            proxy_enabled=_as_bool(proxy.get("enabled", defaults.proxy_enabled)),
            proxy_addresses=[str(a) for a in proxy.get("addresses", defaults.proxy_addresses)],
            poll_interval=float(worker.get("poll_interval", defaults.poll_interval)),
            max_consecutive_errors=int(
                worker.get("max_consecutive_errors", defaults.max_consecutive_errors)
            ),
        )


def save_settings(path: Path, settings: WorkerSettings):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(settings.to_dict(), indent=2), encoding="utf-8")
    logger.debug(f"Settings saved to {path}")


def load_settings(path: Path, config: Config) -> WorkerSettings:
    """
    Read the settings file, creating it from the current config if it does not exist.
    """
    path = Path(path)
    defaults = WorkerSettings.from_config(config)

    if not path.exists():
        logger.info(f"No settings at {path}, writing defaults")
        save_settings(path, defaults)
        return defaults

    data = json.loads(path.read_text(encoding="utf-8") or "{}")
    return WorkerSettings.from_dict(data, defaults)


def apply_settings(config: Config, settings: WorkerSettings) -> Config:
    """Overlay worker settings onto the configuration."""
    config.proxy.enabled = settings.proxy_enabled
    config.proxy.set_addresses(settings.proxy_addresses)
    config.monitoring.poll_interval = settings.poll_interval
    config.monitoring.max_consecutive_errors = settings.max_consecutive_errors
    return config
