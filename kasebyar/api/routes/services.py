"""Service catalogue endpoints."""

from fastapi import APIRouter, Depends, status

from kasebyar.api.dependencies import get_pos
from kasebyar.api.middleware.error_handler import raise_for_result
from kasebyar.application.dto.responses import ErrorResponse, OperationResult
from kasebyar.application.use_cases import PointOfSale
from kasebyar.core.entities import Service, ServiceDraft

router = APIRouter(prefix="/api/services", tags=["services"])


@router.get("", response_model=list[Service])
async def list_services(pos: PointOfSale = Depends(get_pos)) -> list[Service]:
    return pos.state.services


@router.post(
    "",
    response_model=OperationResult,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_service(
    draft: ServiceDraft,
    pos: PointOfSale = Depends(get_pos),
) -> OperationResult:
    """Add a service that can be sold without stock."""
    return raise_for_result(await pos.add_service(draft))


@router.delete("/{service_id}", response_model=OperationResult, responses={404: {"model": ErrorResponse}})
async def delete_service(service_id: str, pos: PointOfSale = Depends(get_pos)) -> OperationResult:
    return raise_for_result(await pos.delete_service(service_id))
