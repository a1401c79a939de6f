"""Activity log endpoint."""

from fastapi import APIRouter, Depends, Query

from kasebyar.api.dependencies import get_pos
from kasebyar.application.use_cases import PointOfSale
from kasebyar.core.entities import ActivityLog

router = APIRouter(prefix="/api/activity", tags=["activity"])


@router.get("", response_model=list[ActivityLog])
async def list_activity(
    limit: int = Query(default=50, ge=1, le=500),
    pos: PointOfSale = Depends(get_pos),
) -> list[ActivityLog]:
    """Most recent activity first."""
    return await pos.recent_activity(limit)
