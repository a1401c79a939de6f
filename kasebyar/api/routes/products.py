"""Product catalogue endpoints."""

from fastapi import APIRouter, Depends, status

from kasebyar.api.dependencies import get_pos
from kasebyar.api.middleware.error_handler import raise_for_result
from kasebyar.application.dto.responses import AlertsResponse, ErrorResponse, OperationResult
from kasebyar.application.use_cases import PointOfSale
from kasebyar.core.entities import Product, ProductDraft, ProductUpdate
from kasebyar.core.exceptions import ProductNotFoundError

router = APIRouter(prefix="/api/products", tags=["products"])


@router.get("", response_model=list[Product])
async def list_products(
    search: str | None = None,
    include_inactive: bool = False,
    pos: PointOfSale = Depends(get_pos),
) -> list[Product]:
    """List products with their batches, optionally filtered by name or barcode."""
    products = pos.state.products if include_inactive else pos.state.active_products
    if search:
        needle = search.lower()
        products = [
            p for p in products if needle in p.name.lower() or (p.barcode and needle in p.barcode.lower())
        ]
    return products


@router.post(
    "",
    response_model=OperationResult,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_product(
    draft: ProductDraft,
    pos: PointOfSale = Depends(get_pos),
) -> OperationResult:
    """Add a product to the catalogue, with an opening batch when ``first_batch`` is set."""
    return raise_for_result(await pos.add_product(draft))


@router.get("/alerts", response_model=AlertsResponse)
async def get_alerts(pos: PointOfSale = Depends(get_pos)) -> AlertsResponse:
    """Low-stock products and batches nearing expiry."""
    return pos.alerts()


@router.get("/{product_id}", response_model=Product, responses={404: {"model": ErrorResponse}})
async def get_product(product_id: str, pos: PointOfSale = Depends(get_pos)) -> Product:
    product = pos.state.product(product_id)
    if product is None:
        raise ProductNotFoundError(product_id)
    return product


@router.put(
    "/{product_id}",
    response_model=OperationResult,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_product(
    product_id: str,
    update: ProductUpdate,
    pos: PointOfSale = Depends(get_pos),
) -> OperationResult:
    """Change name, price, barcode, manufacturer or package size."""
    return raise_for_result(await pos.update_product(product_id, update))


@router.delete("/{product_id}", response_model=OperationResult, responses={404: {"model": ErrorResponse}})
async def delete_product(product_id: str, pos: PointOfSale = Depends(get_pos)) -> OperationResult:
    """Hide a product from the catalogue. Invoices and batches that reference it are kept."""
    return raise_for_result(await pos.delete_product(product_id))
