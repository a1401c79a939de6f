"""In-transit shipment endpoints."""

from fastapi import APIRouter, Depends, status

from kasebyar.api.dependencies import get_pos
from kasebyar.api.middleware.error_handler import raise_for_result
from kasebyar.application.dto.responses import ErrorResponse, OperationResult
from kasebyar.application.use_cases import PointOfSale
from kasebyar.core.entities import (
    InTransitDraft,
    InTransitInvoice,
    InTransitStatus,
    MovementDraft,
    PaymentDraft,
)
from kasebyar.core.exceptions import InvoiceNotFoundError

router = APIRouter(prefix="/api/in-transit", tags=["in-transit"])

ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@router.get("", response_model=list[InTransitInvoice])
async def list_shipments(
    status_filter: InTransitStatus | None = None,
    pos: PointOfSale = Depends(get_pos),
) -> list[InTransitInvoice]:
    """List shipments, optionally only active or closed ones."""
    return [
        i for i in pos.state.in_transit_invoices if status_filter is None or i.status == status_filter
    ]


@router.post("", response_model=OperationResult, status_code=status.HTTP_201_CREATED, responses=ERRORS)
async def create_shipment(
    draft: InTransitDraft,
    pos: PointOfSale = Depends(get_pos),
) -> OperationResult:
    """Record a supplier order with every unit still at the factory."""
    return raise_for_result(await pos.create_in_transit(draft))


@router.get("/{invoice_id}", response_model=InTransitInvoice, responses={404: {"model": ErrorResponse}})
async def get_shipment(invoice_id: str, pos: PointOfSale = Depends(get_pos)) -> InTransitInvoice:
    invoice = pos.state.in_transit_invoice(invoice_id)
    if invoice is None:
        raise InvoiceNotFoundError(invoice_id)
    return invoice


@router.put("/{invoice_id}", response_model=OperationResult, responses=ERRORS)
async def edit_shipment(
    invoice_id: str,
    draft: InTransitDraft,
    pos: PointOfSale = Depends(get_pos),
) -> OperationResult:
    return raise_for_result(await pos.update_in_transit(invoice_id, draft))


@router.delete("/{invoice_id}", response_model=OperationResult, responses=ERRORS)
async def delete_shipment(invoice_id: str, pos: PointOfSale = Depends(get_pos)) -> OperationResult:
    return raise_for_result(await pos.delete_in_transit(invoice_id))


@router.post("/{invoice_id}/movements", response_model=OperationResult, responses=ERRORS)
async def move_units(
    invoice_id: str,
    draft: MovementDraft,
    pos: PointOfSale = Depends(get_pos),
) -> OperationResult:
    """Advance units between stages; received units are settled as a purchase."""
    return raise_for_result(await pos.move_in_transit(invoice_id, draft))


@router.post(
    "/{invoice_id}/payments",
    response_model=OperationResult,
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
)
async def pay_shipment(
    invoice_id: str,
    draft: PaymentDraft,
    pos: PointOfSale = Depends(get_pos),
) -> OperationResult:
    return raise_for_result(await pos.pay_in_transit(invoice_id, draft))


@router.post("/{invoice_id}/archive", response_model=OperationResult, responses=ERRORS)
async def archive_shipment(invoice_id: str, pos: PointOfSale = Depends(get_pos)) -> OperationResult:
    """Close a shipment early."""
    return raise_for_result(await pos.archive_in_transit(invoice_id))
