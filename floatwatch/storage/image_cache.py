"""
Image Cache.

Item pictures on disk, keyed by item label, so an item seen in an earlier
session is never downloaded again.
"""

import hashlib
import re
from pathlib import Path
from typing import Optional

from loguru import logger


class ImageCache:
    """Directory of item images, one file per label."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, label: str) -> Path:
        """File path for a label: readable slug plus a short hash to keep names unique."""
        slug = re.sub(r"[^A-Za-z0-9]+", "_", label).strip("_")[:80] or "item"
        digest = hashlib.sha1(label.encode("utf-8")).hexdigest()[:10]
        return self.directory / f"{slug}-{digest}.png"

    def contains(self, label: str) -> bool:
        return self.path_for(label).exists()

    def add(self, label: str, image: bytes):
        path = self.path_for(label)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(image)
        logger.debug(f"Cached image for {label} ({len(image)} bytes)")

    def get(self, label: str) -> Optional[bytes]:
        path = self.path_for(label)
        if not path.exists():
            return None
        return path.read_bytes()
