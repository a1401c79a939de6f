"""Purchase endpoints."""

from fastapi import APIRouter, Depends, status

from kasebyar.api.dependencies import get_pos
from kasebyar.api.middleware.error_handler import raise_for_result
from kasebyar.application.dto.requests import PurchaseReturnRequest
from kasebyar.application.dto.responses import ErrorResponse, OperationResult
from kasebyar.application.use_cases import PointOfSale
from kasebyar.core.entities import PurchaseDraft, PurchaseInvoice
from kasebyar.core.exceptions import InvoiceNotFoundError

router = APIRouter(prefix="/api/purchases", tags=["purchases"])

ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@router.get("", response_model=list[PurchaseInvoice])
async def list_purchases(
    supplier_id: str | None = None,
    pos: PointOfSale = Depends(get_pos),
) -> list[PurchaseInvoice]:
    """List purchase and purchase-return invoices, newest first."""
    invoices = [
        i for i in pos.state.purchase_invoices if supplier_id is None or i.supplier_id == supplier_id
    ]
    return sorted(invoices, key=lambda i: i.timestamp, reverse=True)


@router.post("", response_model=OperationResult, status_code=status.HTTP_201_CREATED, responses=ERRORS)
async def create_purchase(
    draft: PurchaseDraft,
    pos: PointOfSale = Depends(get_pos),
) -> OperationResult:
    """Receive stock from a supplier; each line becomes a new batch."""
    return raise_for_result(await pos.create_purchase(draft))


@router.get("/{invoice_id}", response_model=PurchaseInvoice, responses={404: {"model": ErrorResponse}})
async def get_purchase(invoice_id: str, pos: PointOfSale = Depends(get_pos)) -> PurchaseInvoice:
    invoice = pos.state.purchase_invoice(invoice_id)
    if invoice is None:
        raise InvoiceNotFoundError(invoice_id)
    return invoice


@router.put("/{invoice_id}", response_model=OperationResult, responses=ERRORS)
async def edit_purchase(
    invoice_id: str,
    draft: PurchaseDraft,
    pos: PointOfSale = Depends(get_pos),
) -> OperationResult:
    return raise_for_result(await pos.update_purchase(invoice_id, draft))


@router.post(
    "/{invoice_id}/returns",
    response_model=OperationResult,
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
)
async def return_purchase(
    invoice_id: str,
    request: PurchaseReturnRequest,
    pos: PointOfSale = Depends(get_pos),
) -> OperationResult:
    """Send units of named lots back to the supplier."""
    return raise_for_result(await pos.return_purchase(invoice_id, request.items))
