"""SQLite implementation of the activity log."""

from datetime import datetime

import aiosqlite

from kasebyar.config import get_logger
from kasebyar.core.entities.activity import ActivityLog
from kasebyar.core.interfaces.activity_sink import IActivitySink
from kasebyar.infrastructure.storage.sqlite.connection import get_connection, get_transaction

logger = get_logger(__name__)


class SQLiteActivitySink(IActivitySink):
    """Appends activity lines to the activity_log table."""

    async def record(self, activity: ActivityLog) -> None:
        async with get_transaction() as conn:
            await conn.execute(
                """
                INSERT INTO activity_log (id, type, description, timestamp, user, ref_id, ref_type)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    activity.id,
                    activity.type.value,
                    activity.description,
                    activity.timestamp.isoformat(),
                    activity.user,
                    activity.ref_id,
                    activity.ref_type,
                ),
            )
        logger.debug("activity_recorded", activity_id=activity.id, type=activity.type.value)

    async def list_recent(self, limit: int = 50) -> list[ActivityLog]:
        async with get_connection() as conn:
            cursor = await conn.execute(
                "SELECT * FROM activity_log ORDER BY seq DESC LIMIT ?", (limit,)
            )
            return [self._row_to_activity(row) for row in await cursor.fetchall()]

    @staticmethod
    def _row_to_activity(row: aiosqlite.Row) -> ActivityLog:
        return ActivityLog(
            id=row["id"],
            type=row["type"],
            description=row["description"],
            timestamp=datetime.fromisoformat(row["timestamp"]),
            user=row["user"],
            ref_id=row["ref_id"],
            ref_type=row["ref_type"],
        )
