"""floatwatch: watch Steam market listings for a target float and price."""

__version__ = "0.1.0"
