"""Stock alerts and profit summaries over a snapshot."""

import calendar
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime

from kasebyar.core.entities.accounting import Expense
from kasebyar.core.entities.product import Product
from kasebyar.core.entities.sale import SaleInvoice


@dataclass
class StockAlert:
    """A product at or below the low-stock threshold."""

    product_id: str
    product_name: str
    stock: int


@dataclass
class ExpiryAlert:
    """A batch with stock that expires within the alert window."""

    product_id: str
    product_name: str
    batch_id: str
    lot_number: str
    stock: int
    expiry_date: date
    expired: bool


@dataclass
class ProfitSummary:
    """Sales net of returns, and expenses, in base currency."""

    revenue: float = 0.0
    cost: float = 0.0
    expenses: float = 0.0
    invoices: int = 0
    returns: int = 0
    by_product: dict[str, float] = field(default_factory=dict)

    @property
    def profit(self) -> float:
        return self.revenue - self.cost

    @property
    def net_profit(self) -> float:
        return self.profit - self.expenses


def _add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    year, month = day.year + month_index // 12, month_index % 12 + 1
    return date(year, month, min(day.day, calendar.monthrange(year, month)[1]))


def low_stock(products: list[Product], threshold: int) -> list[StockAlert]:
    return [
        StockAlert(product_id=p.id, product_name=p.name, stock=p.stock)
        for p in products
        if p.active and p.stock <= threshold
    ]


def expiring_batches(
    products: list[Product], months: int, today: date | None = None
) -> list[ExpiryAlert]:
    """Batches in stock that expire within ``months`` of ``today``, soonest first."""
    today = today or date.today()
    horizon = _add_months(today, months)
    alerts = []
    for product in products:
        for batch in product.batches:
            if batch.stock <= 0 or batch.expiry_date is None:
                continue
            if batch.expiry_date <= horizon:
                alerts.append(
                    ExpiryAlert(
                        product_id=product.id,
                        product_name=product.name,
                        batch_id=batch.id,
                        lot_number=batch.lot_number,
                        stock=batch.stock,
                        expiry_date=batch.expiry_date,
                        expired=batch.expiry_date < today,
                    )
                )
    return sorted(alerts, key=lambda a: a.expiry_date)


def _in_window(moment: datetime, start: datetime | None, end: datetime | None) -> bool:
    return not (start and moment < start) and not (end and moment > end)


def inventory_value(products: list[Product]) -> float:
    """Stock on hand at landed cost across the catalogue."""
    return sum(p.stock_value for p in products)


def profit_summary(
    invoices: list[SaleInvoice],
    start: datetime | None = None,
    end: datetime | None = None,
    expenses: Iterable[Expense] = (),
) -> ProfitSummary:
    """Revenue and cost of goods sold, returns subtracted, plus expenses in the window."""
    summary = ProfitSummary(
        expenses=sum(e.base_amount for e in expenses if _in_window(e.date, start, end))
    )
    for invoice in invoices:
        if not _in_window(invoice.timestamp, start, end):
            continue
        sign = -1 if invoice.is_return else 1
        if invoice.is_return:
            summary.returns += 1
        else:
            summary.invoices += 1
        summary.revenue += sign * invoice.total_amount_base
        summary.cost += sign * invoice.total_cost
        for line in invoice.items:
            summary.by_product[line.item_id] = (
                summary.by_product.get(line.item_id, 0.0) + sign * line.profit
            )
    return summary
