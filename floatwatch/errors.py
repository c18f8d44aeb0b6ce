"""
Error taxonomy.

Transport and parsing failures are re-classified into these types at the
listing client boundary; nothing above it sees aiohttp exceptions.
"""

from typing import Optional


class FloatWatchError(Exception):
    """Base class for all floatwatch errors."""


class InvalidReference(FloatWatchError):
    """The pasted link does not look like a marketplace link."""


class InvalidInput(FloatWatchError):
    """A float or price typed by the user could not be parsed."""


class UpstreamError(FloatWatchError):
    """Transient marketplace failure: network, timeout, 5xx, rate limit or bad payload."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class NotFound(FloatWatchError):
    """The listing is gone (sold or removed)."""


class NoProxyAvailable(FloatWatchError):
    """Every proxy in the pool is already leased."""


class DuplicateItem(FloatWatchError):
    """An item with the same label is already on the watchlist."""

    def __init__(self, label: str):
        super().__init__(f"Item '{label}' already exists")
        self.label = label
