"""
Sales endpoints.

Two ways to sell: build the terminal's server-side cart line by line and
check it out, or post a complete sale draft in one request.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, status

from kasebyar.api.dependencies import get_pos
from kasebyar.api.middleware.error_handler import raise_for_result
from kasebyar.application.dto.requests import (
    CartItemRequest,
    CartPriceRequest,
    CartQuantityRequest,
    CheckoutRequest,
    CustomerNameRequest,
    SaleReturnRequest,
    ServiceItemRequest,
)
from kasebyar.application.dto.responses import ErrorResponse, OperationResult, ProfitSummaryResponse
from kasebyar.application.use_cases import PointOfSale
from kasebyar.core.entities import SaleDraft, SaleInvoice, SaleType
from kasebyar.core.exceptions import InvoiceNotFoundError

router = APIRouter(prefix="/api/sales", tags=["sales"])

ERRORS = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
}


@router.get("", response_model=list[SaleInvoice])
async def list_sales(
    sale_type: SaleType | None = None,
    customer_id: str | None = None,
    pos: PointOfSale = Depends(get_pos),
) -> list[SaleInvoice]:
    """List sale and return invoices, newest first."""
    invoices = [
        i
        for i in pos.state.sale_invoices
        if (sale_type is None or i.type == sale_type)
        and (customer_id is None or i.customer_id == customer_id)
    ]
    return sorted(invoices, key=lambda i: i.timestamp, reverse=True)


@router.post("", response_model=OperationResult, status_code=status.HTTP_201_CREATED, responses=ERRORS)
async def checkout(
    draft: SaleDraft,
    pos: PointOfSale = Depends(get_pos),
) -> OperationResult:
    """Settle a complete sale draft."""
    return raise_for_result(await pos.checkout(draft))


@router.get("/profit", response_model=ProfitSummaryResponse)
async def get_profit(
    start: datetime | None = None,
    end: datetime | None = None,
    pos: PointOfSale = Depends(get_pos),
) -> ProfitSummaryResponse:
    """Revenue, cost and profit in base currency, returns subtracted."""
    return pos.profit_summary(start, end)


# Cart


@router.get("/cart", response_model=OperationResult)
async def get_cart(pos: PointOfSale = Depends(get_pos)) -> OperationResult:
    return OperationResult.ok(
        f"Editing {pos.editing_sale_id}" if pos.editing_sale_id else "Cart", list(pos.cart)
    )


@router.post("/cart/items", response_model=OperationResult, responses=ERRORS)
async def add_cart_item(
    request: CartItemRequest,
    pos: PointOfSale = Depends(get_pos),
) -> OperationResult:
    return raise_for_result(pos.add_to_cart(request.product_id, request.quantity))


@router.post("/cart/services", response_model=OperationResult, responses=ERRORS)
async def add_cart_service(
    request: ServiceItemRequest,
    pos: PointOfSale = Depends(get_pos),
) -> OperationResult:
    return raise_for_result(pos.add_service_to_cart(request.service_id, request.quantity))


@router.put("/cart/items/{item_id}/quantity", response_model=OperationResult, responses=ERRORS)
async def set_cart_quantity(
    item_id: str,
    request: CartQuantityRequest,
    pos: PointOfSale = Depends(get_pos),
) -> OperationResult:
    return raise_for_result(pos.update_cart_quantity(item_id, request.quantity))


@router.put("/cart/items/{item_id}/price", response_model=OperationResult, responses=ERRORS)
async def set_cart_price(
    item_id: str,
    request: CartPriceRequest,
    pos: PointOfSale = Depends(get_pos),
) -> OperationResult:
    return raise_for_result(pos.set_final_price(item_id, request.final_price))


@router.delete("/cart/items/{item_id}", response_model=OperationResult)
async def remove_cart_item(item_id: str, pos: PointOfSale = Depends(get_pos)) -> OperationResult:
    return pos.remove_from_cart(item_id)


@router.delete("/cart", response_model=OperationResult)
async def clear_cart(pos: PointOfSale = Depends(get_pos)) -> OperationResult:
    """Empty the cart and abandon any sale edit."""
    pos.clear_cart()
    return OperationResult.ok("Cart cleared", [])


@router.post(
    "/cart/checkout",
    response_model=OperationResult,
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
)
async def checkout_cart(
    request: CheckoutRequest,
    pos: PointOfSale = Depends(get_pos),
) -> OperationResult:
    """Settle the cart, as a new sale or as the edit begun with /{invoice_id}/edit."""
    return raise_for_result(
        await pos.complete_sale(
            customer_id=request.customer_id,
            currency=request.currency,
            exchange_rate=request.exchange_rate,
            cashier=request.cashier,
            customer_name=request.customer_name,
        )
    )


# Invoices


@router.get("/{invoice_id}", response_model=SaleInvoice, responses={404: {"model": ErrorResponse}})
async def get_sale(invoice_id: str, pos: PointOfSale = Depends(get_pos)) -> SaleInvoice:
    invoice = pos.state.sale_invoice(invoice_id)
    if invoice is None:
        raise InvoiceNotFoundError(invoice_id)
    return invoice


@router.put("/{invoice_id}", response_model=OperationResult, responses=ERRORS)
async def edit_sale(
    invoice_id: str,
    draft: SaleDraft,
    pos: PointOfSale = Depends(get_pos),
) -> OperationResult:
    """Replace a sale's contents. The invoice keeps its id and timestamp."""
    return raise_for_result(await pos.checkout(draft, editing_invoice_id=invoice_id))


@router.put("/{invoice_id}/customer-name", response_model=OperationResult, responses=ERRORS)
async def set_customer_name(
    invoice_id: str,
    request: CustomerNameRequest,
    pos: PointOfSale = Depends(get_pos),
) -> OperationResult:
    """Name the walk-in buyer of a sale made without a customer account."""
    return raise_for_result(await pos.set_invoice_transient_customer(invoice_id, request.customer_name))


@router.post("/{invoice_id}/edit", response_model=OperationResult, responses=ERRORS)
async def begin_edit(invoice_id: str, pos: PointOfSale = Depends(get_pos)) -> OperationResult:
    """Load a sale into the cart for editing."""
    return raise_for_result(pos.begin_sale_edit(invoice_id))


@router.post(
    "/{invoice_id}/returns",
    response_model=OperationResult,
    status_code=status.HTTP_201_CREATED,
    responses=ERRORS,
)
async def return_sale(
    invoice_id: str,
    request: SaleReturnRequest,
    pos: PointOfSale = Depends(get_pos),
) -> OperationResult:
    """Return units from a sale as a new return invoice."""
    return raise_for_result(
        await pos.return_sale(invoice_id, request.items, cashier=request.cashier or None)
    )
