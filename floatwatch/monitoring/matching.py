"""
Match predicates: decide whether a listing snapshot satisfies an item's target.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Callable

from floatwatch.config import MonitoringConfig
from floatwatch.models import ListingSnapshot, WatchedItem

Predicate = Callable[[WatchedItem, ListingSnapshot], bool]

FLOAT_MODES = ("max", "min", "near")
PRICE_MODES = ("lte", "eq")


@dataclass(frozen=True)
class MatchPredicate:
    """
    Configurable float/price comparison.

    float_mode:
        max  - snapshot float <= target float (low-float hunting)
        min  - snapshot float >= target float (high-float hunting)
        near - |snapshot float - target float| <= tolerance
    price_mode:
        lte  - snapshot price <= target price
        eq   - snapshot price == target price
    """
    float_mode: str = "max"
    float_tolerance: float = 0.0
    price_mode: str = "lte"

    def __post_init__(self):
        if self.float_mode not in FLOAT_MODES:
            raise ValueError(f"Unknown float mode: {self.float_mode}")
        if self.price_mode not in PRICE_MODES:
            raise ValueError(f"Unknown price mode: {self.price_mode}")
        if self.float_tolerance < 0:
            raise ValueError("Float tolerance cannot be negative")

    @classmethod
    def from_config(cls, monitoring: MonitoringConfig) -> "MatchPredicate":
        return cls(
            float_mode=monitoring.match_float_mode,
            float_tolerance=monitoring.float_tolerance,
            price_mode=monitoring.match_price_mode,
        )

    def float_matches(self, target: float, value: float) -> bool:
        if self.float_mode == "max":
            return value <= target
        if self.float_mode == "min":
            return value >= target
        return abs(value - target) <= self.float_tolerance

    def price_matches(self, target: Decimal, value: Decimal) -> bool:
        if self.price_mode == "eq":
            return value == target
        return value <= target

    def __call__(self, item: WatchedItem, snapshot: ListingSnapshot) -> bool:
        return (
            self.float_matches(item.target_float, snapshot.float_value)
            and self.price_matches(item.target_price, snapshot.price)
        )
