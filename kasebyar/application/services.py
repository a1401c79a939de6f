"""
Service factory functions for dependency injection.

Wires infrastructure implementations to the coordinator. API handlers and
the CLI import from here rather than constructing services themselves.
"""

from typing import TYPE_CHECKING

from kasebyar.application.use_cases.point_of_sale import PointOfSale
from kasebyar.core.services import CurrencyConverter

if TYPE_CHECKING:
    from kasebyar.core.interfaces import IActivitySink, IPosStore


# Singleton service instances
_point_of_sale: PointOfSale | None = None
_currency_converter: CurrencyConverter | None = None


def get_currency_converter() -> CurrencyConverter:
    """Get or create the converter built from the configured currencies."""
    global _currency_converter

    if _currency_converter is None:
        _currency_converter = CurrencyConverter()
    return _currency_converter


def get_point_of_sale(
    store: "IPosStore | None" = None,
    activity_sink: "IActivitySink | None" = None,
) -> PointOfSale:
    """
    Get or create the PointOfSale coordinator.

    The SQLite store and activity sink are resolved lazily on first use
    unless overrides are given; overrides always build a fresh instance.

    Args:
        store: Optional persistence override
        activity_sink: Optional activity log override

    Returns:
        Configured PointOfSale
    """
    global _point_of_sale

    if store is not None or activity_sink is not None:
        return PointOfSale(
            store=store, activity_sink=activity_sink, converter=get_currency_converter()
        )

    if _point_of_sale is None:
        _point_of_sale = PointOfSale(converter=get_currency_converter())
    return _point_of_sale


def reset_services() -> None:
    """
    Reset all singleton service instances.

    Useful for testing or when configuration changes.
    """
    global _point_of_sale
    global _currency_converter

    _point_of_sale = None
    _currency_converter = None


__all__ = [
    "get_currency_converter",
    "get_point_of_sale",
    "reset_services",
]
