"""Kasebyar - multi-currency point-of-sale and inventory settlement core."""

__version__ = "1.0.0"
