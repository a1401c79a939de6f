"""
Dependency injection container for FastAPI.

Provides service instances to route handlers.
"""

from functools import lru_cache

from kasebyar.application.services import get_point_of_sale
from kasebyar.application.use_cases import PointOfSale
from kasebyar.config import Settings, get_settings


@lru_cache
def get_app_settings() -> Settings:
    """Get cached application settings."""
    return get_settings()


def get_pos() -> PointOfSale:
    """Get the point-of-sale coordinator."""
    return get_point_of_sale()
