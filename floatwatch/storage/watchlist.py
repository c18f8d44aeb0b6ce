"""
Watchlist Store.

Ordered, label-unique collection of watched items persisted as a JSON list.
"""

import json
import threading
from pathlib import Path
from typing import Dict, List, Optional

from loguru import logger

from floatwatch.models import WatchedItem


class WatchlistStore:
    """
    JSON-backed watchlist.
    Insertion order is preserved; a second item with an existing label is rejected.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._items: Dict[str, WatchedItem] = {}
        self._lock = threading.Lock()

    @property
    def is_created(self) -> bool:
        return self.path.exists()

    def add(self, item: WatchedItem) -> bool:
        """Append an item. Returns False if its label is already present."""
        with self._lock:
            if item.label in self._items:
                return False
            self._items[item.label] = item
        logger.debug(f"Watchlist: added {item.label}")
        return True

    def remove(self, label: str) -> bool:
        """Remove an item by label. Returns False if it was not present."""
        with self._lock:
            removed = self._items.pop(label, None)
        if removed:
            logger.debug(f"Watchlist: removed {label}")
        return removed is not None

    def get(self, label: str) -> Optional[WatchedItem]:
        with self._lock:
            return self._items.get(label)

    def contains(self, label: str) -> bool:
        with self._lock:
            return label in self._items

    def all(self) -> List[WatchedItem]:
        """Items in insertion order."""
        with self._lock:
            return list(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self.all())

    def persist(self):
        """Write the watchlist to its JSON file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = [item.to_dict() for item in self.all()]
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, indent=2), encoding="utf-8")
        tmp.replace(self.path)
        logger.debug(f"Watchlist saved ({len(data)} items) to {self.path}")

    def load(self) -> List[WatchedItem]:
        """
        Read the watchlist file, creating an empty one if it does not exist.
        Later duplicates of a label are dropped.
        """
        if not self.is_created:
            logger.info(f"No watchlist at {self.path}, creating an empty one")
            with self._lock:
                self._items = {}
            self.persist()
            return []

        raw = json.loads(self.path.read_text(encoding="utf-8") or "[]")
        if not isinstance(raw, list):
            raise ValueError(f"{self.path} does not contain a JSON list")

        items: Dict[str, WatchedItem] = {}
        for entry in raw:
            item = WatchedItem.from_dict(entry)
            if item.label in items:
                logger.warning(f"Watchlist: dropping duplicate entry {item.label}")
                continue
            items[item.label] = item

        with self._lock:
            self._items = items

        logger.debug(f"Watchlist loaded ({len(items)} items) from {self.path}")
        return list(items.values())
