"""Abstract interface for the activity log."""

from abc import ABC, abstractmethod

from kasebyar.core.entities.activity import ActivityLog


class IActivitySink(ABC):
    """Receives human-readable activity lines after successful operations."""

    @abstractmethod
    async def record(self, activity: ActivityLog) -> None:
        """Store one activity line."""
        pass

    @abstractmethod
    async def list_recent(self, limit: int = 50) -> list[ActivityLog]:
        """Most recent activity first."""
        pass
