"""API route modules."""

from kasebyar.api.routes.accounting import router as accounting_router
from kasebyar.api.routes.activity import router as activity_router
from kasebyar.api.routes.health import router as health_router
from kasebyar.api.routes.in_transit import router as in_transit_router
from kasebyar.api.routes.parties import router as parties_router
from kasebyar.api.routes.products import router as products_router
from kasebyar.api.routes.purchases import router as purchases_router
from kasebyar.api.routes.sales import router as sales_router
from kasebyar.api.routes.services import router as services_router

__all__ = [
    "accounting_router",
    "activity_router",
    "health_router",
    "in_transit_router",
    "parties_router",
    "products_router",
    "purchases_router",
    "sales_router",
    "services_router",
]
