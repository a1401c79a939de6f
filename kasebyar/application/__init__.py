"""
Application layer - the coordinator, DTOs, and service factories.

This layer orchestrates business logic by:
1. Defining request/response DTOs for API contracts
2. Holding the PointOfSale coordinator that owns the snapshot and cart
3. Providing factory functions for dependency injection

The coordinator is the only entry point for API handlers.
"""

from kasebyar.application.dto.responses import HealthResponse, OperationResult
from kasebyar.application.services import get_point_of_sale, reset_services
from kasebyar.application.use_cases.point_of_sale import PointOfSale

__all__ = [
    "HealthResponse",
    "OperationResult",
    "PointOfSale",
    "get_point_of_sale",
    "reset_services",
]
