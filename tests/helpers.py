"""Stubs shared by the test modules."""

import asyncio
from decimal import Decimal
from typing import List, Optional

from floatwatch.api.proxy_pool import ProxyPool
from floatwatch.config import Config, MonitoringConfig, ProxyConfig
from floatwatch.models import ItemMetadata, ListingSnapshot, ProxyIdentity, WatchedItem

REDLINE = "AK-47 | Redline (Field-Tested)"


def make_item(label: str = REDLINE, target_float: float = 0.18, target_price: str = "12.00") -> WatchedItem:
    return WatchedItem(label=label, target_float=target_float, target_price=Decimal(target_price))


def snapshot(float_value: float, price: str) -> ListingSnapshot:
    return ListingSnapshot(float_value=float_value, price=Decimal(price), title=REDLINE)


def monitoring_config(max_errors: int = 3, interval: float = 0.0) -> MonitoringConfig:
    return MonitoringConfig(
        poll_interval=interval,
        poll_jitter=0.0,
        max_consecutive_errors=max_errors,
        match_float_mode="max",
        float_tolerance=0.0,
        match_price_mode="lte",
    )


def make_config(proxies: Optional[List[str]] = None, max_errors: int = 3, interval: float = 0.0) -> Config:
    return Config(
        proxy=ProxyConfig(enabled=proxies is not None, proxy_list=",".join(proxies or [])),
        monitoring=monitoring_config(max_errors=max_errors, interval=interval),
    )


class ScriptedClient:
    """
    Listing client stub returning scripted results in order.
    The last result repeats once the script runs out. Exceptions are raised.
    """

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    async def poll(self, item: WatchedItem, proxy: Optional[ProxyIdentity] = None) -> ListingSnapshot:
        self.calls.append((item.label, proxy))
        await asyncio.sleep(0)
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, BaseException):
            raise result
        return result


class GatedClient:
    """Listing client stub whose poll blocks until the test opens the gate."""

    def __init__(self, result: ListingSnapshot):
        self.result = result
        self.entered = asyncio.Event()
        self.gate = asyncio.Event()
        self.calls = []
        self.completed = 0

    async def poll(self, item: WatchedItem, proxy: Optional[ProxyIdentity] = None) -> ListingSnapshot:
        self.calls.append((item.label, proxy))
        self.entered.set()
        await self.gate.wait()
        self.completed += 1
        return self.result


class CountingPool(ProxyPool):
    """ProxyPool that records every release call."""

    def __init__(self, proxies=()):
        super().__init__(proxies)
        self.release_calls = []

    @classmethod
    def of(cls, *addresses: str) -> "CountingPool":
        return cls([ProxyIdentity(address=a) for a in addresses])

    def release(self, proxy: ProxyIdentity):
        self.release_calls.append(proxy.address)
        super().release(proxy)


class FakeResolver:
    """Stands in for ListingClient during registration."""

    def __init__(self, metadata: ItemMetadata, image: bytes = b"\x89PNG fake"):
        self.metadata = metadata
        self.image = image
        self.resolved = []
        self.images_fetched = []

    async def resolve(self, link: str) -> ItemMetadata:
        self.resolved.append(link)
        return self.metadata

    async def fetch_image(self, image_ref: str) -> bytes:
        self.images_fetched.append(image_ref)
        return self.image
