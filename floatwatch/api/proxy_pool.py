"""
Proxy Pool.

Holds a fixed set of proxy identities and hands each one to at most one
monitor at a time. Leasing is a point-in-time check and never blocks.
"""

import threading
from typing import Dict, Iterable, List

from loguru import logger

from floatwatch.errors import NoProxyAvailable
from floatwatch.models import ProxyIdentity


class ProxyPool:
    """
    Lease/release bookkeeping for outbound proxies.
    One lock guards every is_leased flag.
    """

    def __init__(self, proxies: Iterable[ProxyIdentity] = ()):
        self._proxies: List[ProxyIdentity] = list(proxies)
        self._lock = threading.Lock()

    @classmethod
    def from_addresses(cls, addresses: Iterable[str]) -> "ProxyPool":
        """Build a pool from configured addresses, dropping blanks and duplicates."""
        seen = set()
        proxies = []
        for address in addresses:
            address = address.strip()
            if not address or address in seen:
                continue
            seen.add(address)
            proxies.append(ProxyIdentity(address=address))
        logger.debug(f"Proxy pool loaded with {len(proxies)} identities")
        return cls(proxies)

    def try_lease(self) -> ProxyIdentity:
        """
        Lease the first free proxy.

        Returns:
            The leased identity

        Raises:
            NoProxyAvailable: every proxy is already leased
        """
        with self._lock:
            for proxy in self._proxies:
                if not proxy.is_leased:
                    proxy.is_leased = True
                    logger.debug(f"Leased proxy {proxy}")
                    return proxy
        raise NoProxyAvailable(
            f"Could not find an unused proxy ({len(self._proxies)} configured, all leased)"
        )

    def release(self, proxy: ProxyIdentity):
        """Return a proxy to the pool. Releasing a free proxy is a no-op."""
        with self._lock:
            if not proxy.is_leased:
                return
            proxy.is_leased = False
        logger.debug(f"Released proxy {proxy}")

    @property
    def size(self) -> int:
        return len(self._proxies)

    @property
    def available(self) -> int:
        with self._lock:
            return sum(1 for p in self._proxies if not p.is_leased)

    @property
    def leased(self) -> int:
        return self.size - self.available

    def snapshot(self) -> List[Dict[str, object]]:
        """Point-in-time view of the pool for display."""
        with self._lock:
            return [{"address": p.address, "leased": p.is_leased} for p in self._proxies]

    def __len__(self) -> int:
        return len(self._proxies)
