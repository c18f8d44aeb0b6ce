"""
Monitor Supervisor.

Owns the active-monitors map (one monitor per item label), wires each
monitor to the shared proxy pool, and relays terminal events outward.
"""

import asyncio
import inspect
import threading
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional

from loguru import logger

from floatwatch.api.proxy_pool import ProxyPool
from floatwatch.config import Config
from floatwatch.errors import NoProxyAvailable
from floatwatch.models import MonitorEvent, MonitorStatus, WatchedItem
from .matching import Predicate
from .monitor import Monitor, StatusCallback


class MonitorSupervisor:
    """
    Starts and stops per-item monitors.
    The map is guarded by a lock that is never held across an await.
    """

    def __init__(
        self,
        client,
        config: Config,
        proxy_pool: Optional[ProxyPool] = None,
        notifier=None,
        predicate: Optional[Predicate] = None,
        on_status: Optional[StatusCallback] = None,
        on_event: Optional[Callable[[MonitorEvent], Any]] = None,
    ):
        """
        Initialize supervisor.

        Args:
            client: Listing client shared by all monitors
            config: Application configuration
            proxy_pool: Pool to lease from; built from config when proxies are enabled
            notifier: Optional NotificationService for terminal events
            predicate: Optional match predicate override
            on_status: Status-text callback forwarded to every monitor
            on_event: Called once per terminal MonitorEvent
        """
        self.client = client
        self.config = config
        self.notifier = notifier
        self.predicate = predicate
        self.on_status = on_status
        self.on_event = on_event

        if config.proxy.enabled:
            self.proxy_pool = proxy_pool or ProxyPool.from_addresses(config.proxy.get_addresses())
        else:
            self.proxy_pool = None

        self._monitors: Dict[str, Monitor] = {}
        self._lock = threading.Lock()

        # History
        self.events: List[MonitorEvent] = []
        self._started = 0
        self._start_failures = 0

    # =========================================
    # Starting
    # =========================================

    def start(self, item: WatchedItem) -> Optional[Monitor]:
        """
        Start monitoring an item.

        Returns:
            The new Monitor, or None if one is already active for the label

        Raises:
            NoProxyAvailable: proxies are enabled and all are leased
        """
        with self._lock:
            if item.label in self._monitors:
                logger.debug(f"Monitor for {item.label} already active")
                return None

            monitor = Monitor(
                item=item,
                client=self.client,
                monitoring=self.config.monitoring,
                proxy_pool=self.proxy_pool,
                predicate=self.predicate,
                on_status=self.on_status,
                on_terminal=self._handle_terminal,
            )
            self._monitors[item.label] = monitor

        # Started outside the lock so status callbacks may query the supervisor
        try:
            monitor.start()
        except Exception:
            with self._lock:
                self._monitors.pop(item.label, None)
            raise

        self._started += 1
        return monitor

    def start_all(self, items: Iterable[WatchedItem]) -> List[Monitor]:
        """
        Start a monitor for every item.
        A start failure is reported for that item only; the rest still start.
        """
        started = []
        for item in items:
            try:
                monitor = self.start(item)
            except NoProxyAvailable as e:
                self._start_failures += 1
                logger.error(f"[{item.label}] Cannot start: {e}")
                event = MonitorEvent(
                    label=item.label,
                    status=MonitorStatus.FAILED,
                    reason=str(e),
                )
                self.events.append(event)
                if self.on_status:
                    self.on_status(item.label, MonitorStatus.FAILED, str(e))
                continue

            if monitor:
                started.append(monitor)

        logger.info(f"Started {len(started)} monitors ({self.active_count} active)")
        return started

    # =========================================
    # Terminal handling
    # =========================================

    def on_monitor_terminal(self, label: str):
        """Forget a monitor that reached a terminal state (its proxy is already released)."""
        with self._lock:
            self._monitors.pop(label, None)

    async def _handle_terminal(self, event: MonitorEvent):
        self.on_monitor_terminal(event.label)
        self.events.append(event)

        if self.on_event:
            try:
                if inspect.iscoroutinefunction(self.on_event):
                    await self.on_event(event)
                else:
                    self.on_event(event)
            except Exception as e:
                logger.error(f"Event callback error: {e}")

        if self.notifier:
            await self.notifier.send_event(event)

    # =========================================
    # Stopping
    # =========================================

    def stop(self, label: str) -> bool:
        """Request a stop for one item. Returns False if it was not active."""
        with self._lock:
            monitor = self._monitors.get(label)
        if monitor is None:
            return False
        monitor.stop()
        return True

    async def stop_all(self):
        """Stop every monitor and wait until all of them are terminal."""
        monitors = self.active_monitors()
        if not monitors:
            return

        logger.info(f"Stopping {len(monitors)} monitors...")
        for monitor in monitors:
            monitor.stop()

        await asyncio.gather(*(monitor.wait() for monitor in monitors))
        logger.info("All monitors stopped")

    async def wait_all(self):
        """Wait until no monitor is active."""
        while True:
            monitors = self.active_monitors()
            if not monitors:
                return
            await asyncio.gather(*(monitor.wait() for monitor in monitors))

    # =========================================
    # Introspection
    # =========================================

    def active_monitors(self) -> List[Monitor]:
        with self._lock:
            return list(self._monitors.values())

    def active_labels(self) -> List[str]:
        with self._lock:
            return list(self._monitors.keys())

    def is_active(self, label: str) -> bool:
        with self._lock:
            return label in self._monitors

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._monitors)

    def get_stats(self) -> Dict[str, Any]:
        """Get supervisor statistics."""
        by_status: Dict[str, int] = {}
        for event in self.events:
            by_status[event.status.value] = by_status.get(event.status.value, 0) + 1

        return {
            "active": self.active_count,
            "started": self._started,
            "start_failures": self._start_failures,
            "terminal": by_status,
            "proxies_enabled": self.proxy_pool is not None,
            "proxies_free": self.proxy_pool.available if self.proxy_pool else None,
            "at": datetime.now().isoformat(),
        }
