"""
Core data types shared by the client, the monitors and the stores.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional


class MonitorStatus(Enum):
    """Lifecycle states of a per-item monitor."""
    IDLE = "idle"
    POLLING = "polling"
    MATCHED = "matched"
    FAILED = "failed"
    STOPPED = "stopped"

    @property
    def is_terminal(self) -> bool:
        return self in (MonitorStatus.MATCHED, MonitorStatus.FAILED, MonitorStatus.STOPPED)


@dataclass(frozen=True)
class WatchedItem:
    """
    A watchlist entry: the item's market name plus the float/price target.

    Two entries with the same label are the same item, whatever their targets.
    """
    label: str
    target_float: float = field(compare=False)
    target_price: Decimal = field(compare=False)
    rarity_color: str = field(default="#b0c3d9", compare=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "label": self.label,
            "target_float": self.target_float,
            "target_price": str(self.target_price),
            "rarity_color": self.rarity_color,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WatchedItem":
        return cls(
            label=data["label"],
            target_float=float(data["target_float"]),
            target_price=Decimal(str(data["target_price"])),
            rarity_color=data.get("rarity_color", "#b0c3d9"),
        )

    def __str__(self) -> str:
        return f"{self.label} (float {self.target_float}, ${self.target_price})"


@dataclass(frozen=True)
class ItemMetadata:
    """Result of resolving a pasted link."""
    label: str
    rarity: str
    image_ref: str


@dataclass
class ProxyIdentity:
    """An outbound proxy and its lease flag."""
    address: str
    is_leased: bool = False

    @property
    def url(self) -> str:
        """Proxy URL usable by aiohttp."""
        if "://" in self.address:
            return self.address
        return f"http://{self.address}"

    def __str__(self) -> str:
        return self.address


@dataclass(frozen=True)
class ListingSnapshot:
    """One observation of an item's cheapest live listing."""
    float_value: float
    price: Decimal
    title: str = ""
    image_ref: str = ""
    rarity: str = ""
    listing_id: str = ""

    def __str__(self) -> str:
        return f"float {self.float_value:.10f} @ ${self.price}"


@dataclass
class MonitorEvent:
    """Terminal-state notification emitted once per monitor lifecycle."""
    label: str
    status: MonitorStatus
    reason: Optional[str] = None
    snapshot: Optional[ListingSnapshot] = None
    at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "status": self.status.value,
            "reason": self.reason,
            "float": self.snapshot.float_value if self.snapshot else None,
            "price": str(self.snapshot.price) if self.snapshot else None,
            "at": self.at.isoformat(),
        }

    def __str__(self) -> str:
        text = f"[{self.status.value.upper()}] {self.label}"
        if self.snapshot:
            text += f" | {self.snapshot}"
        if self.reason:
            text += f" | {self.reason}"
        return text
