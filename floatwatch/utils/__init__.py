"""Utility modules for floatwatch."""

from .notifications import NotificationService
from .parsing import parse_float, parse_link, parse_price

__all__ = ["NotificationService", "parse_float", "parse_link", "parse_price"]
