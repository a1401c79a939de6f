"""Application use cases."""

from kasebyar.application.use_cases.point_of_sale import PointOfSale

__all__ = ["PointOfSale"]
