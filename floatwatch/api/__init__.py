"""Marketplace access: listing client, proxy pool and rate limiting."""

from .listing_client import ListingClient, rarity_color
from .proxy_pool import ProxyPool
from .rate_limiter import IdentityRateLimiter, SlidingWindowLimiter

__all__ = [
    "ListingClient",
    "ProxyPool",
    "IdentityRateLimiter",
    "SlidingWindowLimiter",
    "rarity_color",
]
