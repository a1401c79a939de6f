"""API middleware."""

from kasebyar.api.middleware.error_handler import ErrorHandlerMiddleware, raise_for_result
from kasebyar.api.middleware.logging import LoggingMiddleware

__all__ = ["LoggingMiddleware", "ErrorHandlerMiddleware", "raise_for_result"]
