"""Per-item monitoring: match predicates, monitors and their supervisor."""

from .matching import MatchPredicate
from .monitor import Monitor
from .supervisor import MonitorSupervisor

__all__ = [
    "MatchPredicate",
    "Monitor",
    "MonitorSupervisor",
]
