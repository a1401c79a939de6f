"""Core interfaces (ports) for dependency injection."""

from kasebyar.core.interfaces.activity_sink import IActivitySink
from kasebyar.core.interfaces.pos_store import IPosStore

__all__ = ["IActivitySink", "IPosStore"]
