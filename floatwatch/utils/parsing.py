"""Parsing of the values a user types when adding an item."""

from decimal import Decimal, InvalidOperation

from floatwatch.errors import InvalidInput, InvalidReference


def parse_link(text: str) -> str:
    link = (text or "").strip()
    if not link:
        raise InvalidReference("Link is empty")
    return link


def parse_float(text: str) -> float:
    """A wear value between 0 and 1. Accepts a comma as decimal separator."""
    try:
        value = float(str(text).strip().replace(",", "."))
    except ValueError as e:
        raise InvalidInput(f"Not a float value: {text!r}") from e
    if not 0.0 <= value <= 1.0:
        raise InvalidInput(f"Float must be between 0 and 1, got {value}")
    return value


def parse_price(text: str) -> Decimal:
    """A non-negative price rounded to cents; "$" and spaces are ignored."""
    cleaned = str(text).strip().replace("$", "").replace(" ", "").replace(",", ".")
    try:
        value = Decimal(cleaned)
    except InvalidOperation as e:
        raise InvalidInput(f"Not a price: {text!r}") from e
    if not value.is_finite() or value < 0:
        raise InvalidInput(f"Price must be a non-negative amount, got {text!r}")
    return value.quantize(Decimal("0.01"))
