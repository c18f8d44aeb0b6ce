"""Local persistence: watchlist, worker settings and item images."""

from .image_cache import ImageCache
from .settings import WorkerSettings, apply_settings, load_settings, save_settings
from .watchlist import WatchlistStore

__all__ = [
    "ImageCache",
    "WatchlistStore",
    "WorkerSettings",
    "apply_settings",
    "load_settings",
    "save_settings",
]
