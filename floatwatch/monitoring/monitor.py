"""
Per-item Monitor.

State machine: IDLE -> POLLING -> {MATCHED, FAILED, STOPPED}.

A monitor leases at most one proxy for its whole life, polls the listing
client until the target is met or the listing is gone, and releases the
proxy exactly once before announcing its terminal state.
"""

import asyncio
import inspect
import random
from typing import Any, Callable, Optional

from loguru import logger

from floatwatch.api.proxy_pool import ProxyPool
from floatwatch.config import MonitoringConfig
from floatwatch.errors import NotFound, UpstreamError
from floatwatch.models import (
    ListingSnapshot,
    MonitorEvent,
    MonitorStatus,
    ProxyIdentity,
    WatchedItem,
)
from .matching import MatchPredicate, Predicate

REASON_NOT_FOUND = "listing no longer available"
REASON_TOO_MANY_ERRORS = "too many consecutive upstream errors"

StatusCallback = Callable[[str, MonitorStatus, str], Any]
TerminalCallback = Callable[[MonitorEvent], Any]


class Monitor:
    """
    Polls one watched item until it matches, fails or is stopped.
    """

    def __init__(
        self,
        item: WatchedItem,
        client,
        monitoring: MonitoringConfig,
        proxy_pool: Optional[ProxyPool] = None,
        predicate: Optional[Predicate] = None,
        on_status: Optional[StatusCallback] = None,
        on_terminal: Optional[TerminalCallback] = None,
    ):
        """
        Initialize monitor.

        Args:
            item: The watched item
            client: Anything with an async poll(item, proxy) -> ListingSnapshot
            monitoring: Poll interval, jitter and error threshold
            proxy_pool: Pool to lease from; None runs on the direct connection
            predicate: Match test, defaults to the configured MatchPredicate
            on_status: Called with (label, status, text) on every transition
            on_terminal: Called once with the terminal MonitorEvent
        """
        self.item = item
        self.client = client
        self.poll_interval = monitoring.poll_interval
        self.poll_jitter = monitoring.poll_jitter
        self.max_consecutive_errors = monitoring.max_consecutive_errors
        self.proxy_pool = proxy_pool
        self.predicate = predicate or MatchPredicate.from_config(monitoring)
        self.on_status = on_status
        self.on_terminal = on_terminal

        # State
        self.status = MonitorStatus.IDLE
        self.proxy: Optional[ProxyIdentity] = None
        self.reason: Optional[str] = None
        self.last_snapshot: Optional[ListingSnapshot] = None
        self._proxy_released = False
        self._terminal_emitted = False
        self._stop_event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._terminal_task: Optional[asyncio.Task] = None

        # Stats
        self.polls = 0
        self.consecutive_errors = 0

    @property
    def label(self) -> str:
        return self.item.label

    @property
    def is_active(self) -> bool:
        return not self.status.is_terminal

    # =========================================
    # Lifecycle
    # =========================================

    def start(self) -> asyncio.Task:
        """
        Lease a proxy (when a pool is given) and start polling.

        Raises:
            NoProxyAvailable: the pool is exhausted; the monitor never polls
        """
        if self.status is not MonitorStatus.IDLE:
            raise RuntimeError(f"Monitor for {self.label} already started")

        if self.proxy_pool is not None:
            self.proxy = self.proxy_pool.try_lease()

        try:
            self._task = asyncio.create_task(self._run(), name=f"monitor:{self.label}")
            self._task.add_done_callback(self._on_task_done)
        except RuntimeError:
            self._release_proxy()
            raise

        via = f"via {self.proxy}" if self.proxy else "direct"
        self._set_status(MonitorStatus.POLLING, f"Watching ({via})")
        return self._task

    def stop(self):
        """Request a stop; honoured after the in-flight poll, never mid-request."""
        if self.is_active:
            logger.debug(f"[{self.label}] Stop requested")
        self._stop_event.set()

    async def wait(self) -> MonitorStatus:
        """Wait for the monitor to reach a terminal state."""
        if self._task is not None:
            await asyncio.wait([self._task])
        if self._terminal_task is not None:
            await asyncio.wait([self._terminal_task])
        return self.status

    # =========================================
    # Poll loop
    # =========================================

    async def _run(self):
        try:
            await self._poll_loop()
        except asyncio.CancelledError:
            self._set_status(MonitorStatus.STOPPED, "Cancelled", reason="cancelled")
            raise
        except Exception as e:
            logger.exception(f"[{self.label}] Monitor crashed")
            self._set_status(MonitorStatus.FAILED, f"Crashed: {e}", reason=f"internal error: {e}")
        finally:
            self._release_proxy()
            await self._emit_terminal()

    async def _poll_loop(self):
        while not self._stop_event.is_set():
            self.polls += 1

            try:
                snapshot = await self.client.poll(self.item, self.proxy)
            except NotFound as e:
                logger.info(f"[{self.label}] {e}")
                self._set_status(MonitorStatus.FAILED, "Listing no longer available", reason=REASON_NOT_FOUND)
                return
            except Exception as e:
                if not self._record_error(e):
                    return
            else:
                self.consecutive_errors = 0
                self.last_snapshot = snapshot

                if self.predicate(self.item, snapshot):
                    logger.success(f"[{self.label}] MATCH: {snapshot}")
                    self._set_status(MonitorStatus.MATCHED, f"Matched {snapshot}")
                    return

                self._set_status(MonitorStatus.POLLING, f"Cheapest {snapshot}, still watching")

            await self._sleep_interval()

        self._set_status(MonitorStatus.STOPPED, "Stopped", reason="stopped by user")

    def _record_error(self, error: Exception) -> bool:
        """Count a transient failure. Returns False once the threshold is hit."""
        self.consecutive_errors += 1
        if not isinstance(error, UpstreamError):
            logger.debug(f"[{self.label}] Unclassified poll error {type(error).__name__}")

        logger.warning(
            f"[{self.label}] Upstream error "
            f"({self.consecutive_errors}/{self.max_consecutive_errors}): {error}"
        )

        if self.consecutive_errors >= self.max_consecutive_errors:
            self._set_status(
                MonitorStatus.FAILED,
                f"Giving up after {self.consecutive_errors} errors",
                reason=REASON_TOO_MANY_ERRORS,
            )
            return False

        self._set_status(
            MonitorStatus.POLLING,
            f"Retrying after error {self.consecutive_errors}/{self.max_consecutive_errors}",
        )
        return True

    async def _sleep_interval(self):
        """Inter-poll delay that ends early on a stop request."""
        delay = self.poll_interval
        if self.poll_jitter:
            delay += random.uniform(-self.poll_jitter, self.poll_jitter)
        delay = max(0.0, delay)

        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass

    # =========================================
    # Side effects
    # =========================================

    def _set_status(self, status: MonitorStatus, text: str, reason: Optional[str] = None):
        self.status = status
        if reason is not None:
            self.reason = reason

        logger.info(f"[{self.label}] {status.value}: {text}")

        if self.on_status:
            try:
                self.on_status(self.label, status, text)
            except Exception as e:
                logger.error(f"[{self.label}] Status callback error: {e}")

    def _release_proxy(self):
        if self.proxy is None or self._proxy_released:
            return
        self._proxy_released = True
        self.proxy_pool.release(self.proxy)

    def _terminal_event(self) -> Optional[MonitorEvent]:
        """Build the terminal event the first time only."""
        if self._terminal_emitted:
            return None
        self._terminal_emitted = True
        return MonitorEvent(
            label=self.label,
            status=self.status,
            reason=self.reason,
            snapshot=self.last_snapshot if self.status is MonitorStatus.MATCHED else None,
        )

    async def _emit_terminal(self):
        event = self._terminal_event()
        if event is None or not self.on_terminal:
            return

        try:
            if inspect.iscoroutinefunction(self.on_terminal):
                await self.on_terminal(event)
            else:
                self.on_terminal(event)
        except Exception as e:
            logger.error(f"[{self.label}] Terminal callback error: {e}")

    def _on_task_done(self, task: asyncio.Task):
        # A task cancelled before its first step never enters _run's finally
        if self._terminal_emitted:
            return
        if self.is_active:
            self._set_status(MonitorStatus.STOPPED, "Cancelled", reason="cancelled")
        self._release_proxy()

        if inspect.iscoroutinefunction(self.on_terminal):
            self._terminal_task = asyncio.ensure_future(self._emit_terminal())
            return

        event = self._terminal_event()
        if self.on_terminal:
            try:
                self.on_terminal(event)
            except Exception as e:
                logger.error(f"[{self.label}] Terminal callback error: {e}")
