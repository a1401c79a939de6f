"""
Point-of-sale coordinator.

Owns the in-memory snapshot, the cart and the editing state. Every
mutating operation validates its input, runs through the settlement engine
or logistics tracker, reloads the snapshot from the store and reports the
outcome as an ``OperationResult`` instead of raising.
"""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import date, datetime
from typing import Any
from uuid import uuid4

from kasebyar.application.dto.responses import (
    AlertsResponse,
    BalanceCheckResponse,
    ExpiryAlertResponse,
    OperationResult,
    ProfitSummaryResponse,
    StockAlertResponse,
)
from kasebyar.config import get_logger, get_settings, operation_context
from kasebyar.core.entities.accounting import Expense
from kasebyar.core.entities.activity import ActivityLog, ActivityType
from kasebyar.core.entities.currency import Currency
from kasebyar.core.entities.drafts import (
    ExpenseDraft,
    InTransitDraft,
    MovementDraft,
    PartyDraft,
    PaymentDraft,
    ProductDraft,
    ProductUpdate,
    PurchaseDraft,
    PurchaseReturnLineDraft,
    SaleDraft,
    SaleLineDraft,
    SaleReturnLineDraft,
    ServiceDraft,
)
from kasebyar.core.entities.party import Party, PartyType
from kasebyar.core.entities.product import Product, Service
from kasebyar.core.entities.sale import LineKind, SaleInvoice
from kasebyar.core.entities.state import AppState
from kasebyar.core.exceptions import (
    ConfigurationError,
    EmptyCartError,
    InsufficientStockError,
    InvoiceNotFoundError,
    OperationInProgressError,
    PartyNotFoundError,
    PosError,
    ProductNotFoundError,
    RecordNotFoundError,
    ValidationError,
)
from kasebyar.core.interfaces.activity_sink import IActivitySink
from kasebyar.core.interfaces.pos_store import IPosStore
from kasebyar.core.services.currency_converter import CurrencyConverter
from kasebyar.core.services.logistics_tracker import LogisticsTracker
from kasebyar.core.services.party_ledger import verify_balances
from kasebyar.core.services.reports import (
    expiring_batches,
    inventory_value,
    low_stock,
    profit_summary,
)
from kasebyar.core.services.settlement_engine import SettlementEngine

logger = get_logger(__name__)

ActivityBuilder = Callable[[Any], ActivityLog | None]

PAYMENT_ACTIVITY = {
    PartyType.CUSTOMER: ActivityType.SALE,
    PartyType.SUPPLIER: ActivityType.PURCHASE,
    PartyType.EMPLOYEE: ActivityType.PAYROLL,
    PartyType.DEPOSIT_HOLDER: ActivityType.DEPOSIT,
}


class PointOfSale:
    """Coordinates the cart, settlement, logistics and the snapshot they share."""

    def __init__(
        self,
        store: IPosStore | None = None,
        activity_sink: IActivitySink | None = None,
        converter: CurrencyConverter | None = None,
    ):
        self._store = store
        self._activity_sink = activity_sink
        self.converter = converter or CurrencyConverter()
        self.state = AppState()
        self.cart: list[SaleLineDraft] = []
        self.editing_sale_id: str | None = None
        self._engine: SettlementEngine | None = None
        self._tracker: LogisticsTracker | None = None
        self._in_flight: set[str] = set()
        self._background: set[asyncio.Task] = set()

    async def _get_store(self) -> IPosStore:
        if self._store is None:
            from kasebyar.infrastructure.storage.sqlite import get_pos_store

            self._store = await get_pos_store()
        return self._store

    async def _get_activity_sink(self) -> IActivitySink:
        if self._activity_sink is None:
            from kasebyar.infrastructure.storage.sqlite import get_activity_sink

            self._activity_sink = await get_activity_sink()
        return self._activity_sink

    async def _get_engine(self) -> SettlementEngine:
        if self._engine is None:
            self._engine = SettlementEngine(await self._get_store(), self.converter)
        return self._engine

    async def _get_tracker(self) -> LogisticsTracker:
        if self._tracker is None:
            self._tracker = LogisticsTracker(await self._get_store(), await self._get_engine())
        return self._tracker

    @property
    def cashier(self) -> str:
        return get_settings().store.default_cashier

    # ---------------------------------------------------------------- snapshot

    async def refresh(self) -> AppState:
        """Reload the full snapshot from the store."""
        store = await self._get_store()
        products, services, parties, transactions, invoices, expenses = await asyncio.gather(
            store.get_products(),
            store.get_services(),
            store.get_entities(),
            store.get_transactions(),
            store.get_invoices(),
            store.get_expenses(),
        )
        self.state = AppState(
            products=products,
            services=services,
            parties=parties,
            transactions=transactions,
            sale_invoices=invoices.sales,
            purchase_invoices=invoices.purchases,
            in_transit_invoices=invoices.in_transit,
            expenses=expenses,
        )
        logger.debug(
            "snapshot_refreshed",
            products=len(products),
            parties=len(parties),
            transactions=len(transactions),
        )
        return self.state

    # ---------------------------------------------------------------- plumbing

    @asynccontextmanager
    async def _guard(self, *entity_ids: str | None) -> AsyncIterator[None]:
        keys = {key for key in entity_ids if key}
        busy = keys & self._in_flight
        if busy:
            raise OperationInProgressError(sorted(busy)[0])
        self._in_flight |= keys
        try:
            yield
        finally:
            self._in_flight -= keys

    async def _run(
        self,
        operation: str,
        entity_ids: list[str | None],
        action: Callable[[], Awaitable[Any]],
        message: Callable[[Any], str],
        activity: ActivityBuilder | None = None,
    ) -> OperationResult:
        with operation_context(operation):
            try:
                async with self._guard(*entity_ids):
                    payload = await action()
                    await self.refresh()
            except ConfigurationError:
                raise
            except PosError as e:
                logger.warning("operation_rejected", error_code=e.code, error=e.message)
                return OperationResult.fail(e)

        if activity is not None:
            entry = activity(payload)
            if entry is not None:
                self._record_activity(entry)
        return OperationResult.ok(message(payload), payload)

    def _record_activity(self, entry: ActivityLog) -> None:
        task = asyncio.create_task(self._write_activity(entry))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _write_activity(self, entry: ActivityLog) -> None:
        try:
            sink = await self._get_activity_sink()
            await sink.record(entry)
        except Exception as e:
            # Activity is best effort; the operation already committed
            logger.warning("activity_log_failed", activity_type=entry.type.value, error=str(e))

    async def drain_activity(self) -> None:
        """Wait for pending activity writes."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    def _activity(
        self, type_: ActivityType, description: str, ref_id: str | None = None, ref_type: str | None = None
    ) -> ActivityLog:
        return ActivityLog(
            type=type_,
            description=description,
            user=self.cashier,
            ref_id=ref_id,
            ref_type=ref_type,
        )

    # -------------------------------------------------------------------- cart

    def _cart_quantity(self, product_id: str) -> int:
        return sum(
            line.quantity
            for line in self.cart
            if line.kind == LineKind.PRODUCT and line.item_id == product_id
        )

    def _available_for_cart(self, product: Product) -> int:
        """Stock on hand, plus the units the sale being edited already holds."""
        available = product.stock
        if self.editing_sale_id:
            invoice = self.state.sale_invoice(self.editing_sale_id)
            if invoice is not None:
                available += sum(
                    line.quantity
                    for line in invoice.items
                    if line.is_product and line.item_id == product.id
                )
        return available

    def add_to_cart(self, product_id: str, quantity: int = 1) -> OperationResult:
        """Add units of a product, merging with an existing line."""
        try:
            product = self.state.product(product_id)
            if product is None or not product.active:
                raise ProductNotFoundError(product_id)
            wanted = self._cart_quantity(product_id) + quantity
            if quantity <= 0:
                raise ValidationError("quantity", "Quantity must be positive", quantity)
            available = self._available_for_cart(product)
            if wanted > available:
                raise InsufficientStockError(product_id, wanted, available)
        except PosError as e:
            return OperationResult.fail(e)

        for i, line in enumerate(self.cart):
            if line.kind == LineKind.PRODUCT and line.item_id == product_id:
                self.cart[i] = line.model_copy(update={"quantity": line.quantity + quantity})
                break
        else:
            self.cart.append(
                SaleLineDraft(
                    item_id=product.id,
                    name=product.name,
                    quantity=quantity,
                    unit_price=product.sale_price,
                )
            )
        return OperationResult.ok(f"{product.name} added to cart", list(self.cart))

    def add_service_to_cart(self, service_id: str, quantity: int = 1) -> OperationResult:
        """Add a catalogue service at its list price. Services carry no stock."""
        service = self.state.service(service_id)
        if service is None:
            return OperationResult.fail(RecordNotFoundError("service", service_id))
        if quantity <= 0:
            return OperationResult.fail(ValidationError("quantity", "Quantity must be positive", quantity))

        for i, line in enumerate(self.cart):
            if line.kind == LineKind.SERVICE and line.item_id == service_id:
                self.cart[i] = line.model_copy(update={"quantity": line.quantity + quantity})
                break
        else:
            self.cart.append(
                SaleLineDraft(
                    kind=LineKind.SERVICE,
                    item_id=service.id,
                    name=service.name,
                    quantity=quantity,
                    unit_price=service.price,
                )
            )
        return OperationResult.ok(f"{service.name} added to cart", list(self.cart))

    def update_cart_quantity(self, item_id: str, quantity: int) -> OperationResult:
        """Set a line's quantity; zero or less removes the line."""
        if quantity <= 0:
            return self.remove_from_cart(item_id)
        line = next((l for l in self.cart if l.item_id == item_id), None)
        if line is None:
            return OperationResult.fail(ValidationError("item_id", "Item is not in the cart", item_id))
        if line.kind == LineKind.PRODUCT:
            product = self.state.product(item_id)
            available = self._available_for_cart(product) if product else 0
            if quantity > available:
                return OperationResult.fail(InsufficientStockError(item_id, quantity, available))
        self.cart = [
            l.model_copy(update={"quantity": quantity}) if l.item_id == item_id else l
            for l in self.cart
        ]
        return OperationResult.ok("Cart updated", list(self.cart))

    def set_final_price(self, item_id: str, final_price: float | None) -> OperationResult:
        """Apply a discounted unit price to a line, or clear it with None."""
        if final_price is not None and final_price < 0:
            return OperationResult.fail(
                ValidationError("final_price", "Price cannot be negative", final_price)
            )
        if not any(l.item_id == item_id for l in self.cart):
            return OperationResult.fail(ValidationError("item_id", "Item is not in the cart", item_id))
        self.cart = [
            l.model_copy(update={"final_price": final_price}) if l.item_id == item_id else l
            for l in self.cart
        ]
        return OperationResult.ok("Price updated", list(self.cart))

    def remove_from_cart(self, item_id: str) -> OperationResult:
        self.cart = [l for l in self.cart if l.item_id != item_id]
        return OperationResult.ok("Item removed", list(self.cart))

    def clear_cart(self) -> None:
        self.cart = []
        self.editing_sale_id = None

    def begin_sale_edit(self, invoice_id: str) -> OperationResult:
        """Load an existing sale into the cart for editing."""
        invoice = self.state.sale_invoice(invoice_id)
        if invoice is None or invoice.is_return:
            return OperationResult.fail(InvoiceNotFoundError(invoice_id))
        if self.state.returns_for_sale(invoice.id):
            return OperationResult.fail(
                ValidationError("invoice_id", "Invoice has returns and can no longer be edited", invoice.id)
            )
        self.cart = [
            SaleLineDraft(
                kind=line.kind,
                item_id=line.item_id,
                name=line.name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                final_price=line.final_price,
            )
            for line in invoice.items
        ]
        self.editing_sale_id = invoice.id
        return OperationResult.ok(f"Editing {invoice.id}", invoice)

    def cancel_sale_edit(self) -> None:
        self.clear_cart()

    # ------------------------------------------------------------------- sales

    async def complete_sale(
        self,
        customer_id: str | None = None,
        currency: Currency = Currency.AFN,
        exchange_rate: float = 1.0,
        cashier: str | None = None,
        customer_name: str | None = None,
    ) -> OperationResult:
        """Settle the cart. Clears the cart and editing state on success."""
        if not self.cart:
            return OperationResult.fail(EmptyCartError())
        draft = SaleDraft(
            items=list(self.cart),
            customer_id=customer_id,
            customer_name=customer_name,
            currency=currency,
            exchange_rate=exchange_rate,
            cashier=cashier or self.cashier,
        )
        result = await self.checkout(draft, editing_invoice_id=self.editing_sale_id)
        if result.success:
            self.clear_cart()
        return result

    async def checkout(
        self, draft: SaleDraft, editing_invoice_id: str | None = None
    ) -> OperationResult:
        """Settle a sale draft directly, bypassing the cart."""
        engine = await self._get_engine()
        original = self.state.sale_invoice(editing_invoice_id) if editing_invoice_id else None
        return await self._run(
            "complete_sale",
            [editing_invoice_id or "cart", draft.customer_id, original.customer_id if original else None],
            lambda: engine.complete_sale(self.state, draft, editing_invoice_id),
            lambda inv: f"Sale {inv.id} {'updated' if editing_invoice_id else 'completed'}",
            lambda inv: self._activity(
                ActivityType.SALE,
                f"{'Edited' if editing_invoice_id else 'Completed'} sale {inv.id}: "
                f"{inv.total_amount:.2f} {inv.currency.value}",
                inv.id,
                "sale",
            ),
        )

    async def return_sale(
        self, invoice_id: str, items: list[SaleReturnLineDraft], cashier: str | None = None
    ) -> OperationResult:
        engine = await self._get_engine()
        original = self.state.sale_invoice(invoice_id)
        return await self._run(
            "return_sale",
            [invoice_id, original.customer_id if original else None],
            lambda: engine.return_sale(self.state, invoice_id, items, cashier or self.cashier),
            lambda inv: f"Return {inv.id} recorded for {invoice_id}",
            lambda inv: self._activity(
                ActivityType.SALE,
                f"Returned {sum(l.quantity for l in inv.items)} item(s) from {invoice_id}",
                inv.id,
                "sale_return",
            ),
        )

    async def set_invoice_transient_customer(self, invoice_id: str, customer_name: str) -> OperationResult:
        """Name the walk-in buyer of a sale that is not on a customer account."""
        store = await self._get_store()

        async def action() -> SaleInvoice:
            invoice = self.state.sale_invoice(invoice_id)
            if invoice is None or invoice.is_return:
                raise InvoiceNotFoundError(invoice_id)
            if invoice.customer_id:
                raise ValidationError(
                    "invoice_id", "Sale is on a customer account; edit the sale to change it", invoice_id
                )
            name = customer_name.strip()
            if not name:
                raise ValidationError("customer_name", "Name cannot be empty")
            await store.set_sale_customer_name(invoice.id, name)
            return invoice.model_copy(update={"customer_name": name})

        return await self._run(
            "set_invoice_customer_name",
            [invoice_id],
            action,
            lambda inv: f"Sale {inv.id} assigned to {inv.customer_name}",
        )

    # --------------------------------------------------------------- catalogue

    async def add_product(self, draft: ProductDraft) -> OperationResult:
        """Add a product, stocked with ``draft.first_batch`` when given."""
        engine = await self._get_engine()
        return await self._run(
            "add_product",
            [draft.id],
            lambda: engine.open_product(self.state, draft),
            lambda p: f"Product {p.name} added",
            lambda p: self._activity(
                ActivityType.INVENTORY,
                f"Added product {p.name}" + (f" with {p.stock} in stock" if p.stock else ""),
                p.id,
                "product",
            ),
        )

    def _active_product(self, product_id: str) -> Product:
        product = self.state.product(product_id)
        if product is None or not product.active:
            raise ProductNotFoundError(product_id)
        return product

    async def update_product(self, product_id: str, update: ProductUpdate) -> OperationResult:
        """Change catalogue fields. Batches and stock only move through invoices."""
        store = await self._get_store()

        async def action() -> Product:
            product = self._active_product(product_id)
            changes = update.model_dump(exclude_unset=True)
            # name and sale_price cannot be cleared, only replaced
            for required in ("name", "sale_price"):
                if changes.get(required, "") is None:
                    del changes[required]
            if "name" in changes:
                changes["name"] = changes["name"].strip()
                if not changes["name"]:
                    raise ValidationError("name", "Name cannot be empty")
            return await store.update_product(product.model_copy(update=changes))

        return await self._run(
            "update_product",
            [product_id],
            action,
            lambda p: f"Product {p.name} updated",
            lambda p: self._activity(ActivityType.INVENTORY, f"Edited product {p.name}", p.id, "product"),
        )

    async def delete_product(self, product_id: str) -> OperationResult:
        """Remove a product from the catalogue; its history and batches stay on file."""
        store = await self._get_store()

        async def action() -> Product:
            product = self._active_product(product_id)
            await store.deactivate_product(product.id)
            return product

        return await self._run(
            "delete_product",
            [product_id],
            action,
            lambda p: f"Product {p.name} deleted",
            lambda p: self._activity(ActivityType.INVENTORY, f"Deleted product {p.name}", p.id, "product"),
        )

    async def add_service(self, draft: ServiceDraft) -> OperationResult:
        store = await self._get_store()

        async def action() -> Service:
            service_id = draft.id or uuid4().hex
            if self.state.service(service_id) is not None:
                raise ValidationError("id", "A service with this id already exists", service_id)
            return await store.add_service(
                Service(id=service_id, name=draft.name.strip(), price=draft.price)
            )

        return await self._run(
            "add_service", [draft.id], action, lambda s: f"Service {s.name} added"
        )

    async def delete_service(self, service_id: str) -> OperationResult:
        """Drop a service from the catalogue. Sold lines keep their name and price."""
        store = await self._get_store()

        async def action() -> Service:
            service = self.state.service(service_id)
            if service is None:
                raise RecordNotFoundError("service", service_id)
            await store.delete_service(service.id)
            return service

        return await self._run(
            "delete_service", [service_id], action, lambda s: f"Service {s.name} deleted"
        )

    async def add_party(self, draft: PartyDraft) -> OperationResult:
        engine = await self._get_engine()
        return await self._run(
            "add_party",
            [draft.id],
            lambda: engine.open_party(self.state, draft),
            lambda p: f"{p.party_type.value.replace('_', ' ').capitalize()} {p.name} added",
        )

    async def delete_party(self, party_id: str) -> OperationResult:
        """Remove a customer, supplier, employee or deposit holder whose account is settled."""
        store = await self._get_store()

        async def action() -> Party:
            party = self.state.party(party_id)
            if party is None or not party.active:
                raise PartyNotFoundError(party_id)
            if not party.is_settled:
                raise ValidationError(
                    "party_id", "Only parties with a zero balance can be deleted", party_id
                )
            await store.deactivate_party(party.id)
            return party

        return await self._run(
            "delete_party",
            [party_id],
            action,
            lambda p: f"{p.party_type.value.replace('_', ' ').capitalize()} {p.name} deleted",
        )

    # --------------------------------------------------------------- purchases

    async def create_purchase(self, draft: PurchaseDraft) -> OperationResult:
        engine = await self._get_engine()
        return await self._run(
            "create_purchase",
            [draft.supplier_id],
            lambda: engine.create_purchase(self.state, draft),
            lambda inv: f"Purchase {inv.id} recorded",
            lambda inv: self._activity(
                ActivityType.PURCHASE,
                f"Purchase {inv.id}: {inv.total_amount:.2f} {inv.currency.value}",
                inv.id,
                "purchase",
            ),
        )

    async def update_purchase(self, invoice_id: str, draft: PurchaseDraft) -> OperationResult:
        engine = await self._get_engine()
        original = self.state.purchase_invoice(invoice_id)
        return await self._run(
            "update_purchase",
            [invoice_id, draft.supplier_id, original.supplier_id if original else None],
            lambda: engine.update_purchase(self.state, invoice_id, draft),
            lambda inv: f"Purchase {inv.id} updated",
            lambda inv: self._activity(ActivityType.PURCHASE, f"Edited purchase {inv.id}", inv.id, "purchase"),
        )

    async def return_purchase(
        self, invoice_id: str, items: list[PurchaseReturnLineDraft]
    ) -> OperationResult:
        engine = await self._get_engine()
        original = self.state.purchase_invoice(invoice_id)
        return await self._run(
            "return_purchase",
            [invoice_id, original.supplier_id if original else None],
            lambda: engine.return_purchase(self.state, invoice_id, items),
            lambda inv: f"Return {inv.id} recorded for {invoice_id}",
            lambda inv: self._activity(
                ActivityType.PURCHASE, f"Returned stock from purchase {invoice_id}", inv.id, "purchase_return"
            ),
        )

    # ---------------------------------------------------------------- payments

    async def record_payment(self, draft: PaymentDraft) -> OperationResult:
        engine = await self._get_engine()
        activity_type = PAYMENT_ACTIVITY[draft.party_type]
        return await self._run(
            "record_payment",
            [draft.party_id],
            lambda: engine.record_payment(self.state, draft),
            lambda txn: f"{txn.type.value.replace('_', ' ').capitalize()} of {txn.amount:.2f} {txn.currency.value} recorded",
            lambda txn: self._activity(
                activity_type,
                f"{txn.type.value.replace('_', ' ').capitalize()} {txn.amount:.2f} {txn.currency.value} ({draft.party_id})",
                txn.id,
                "transaction",
            ),
        )

    # -------------------------------------------------------------- accounting

    async def add_expense(self, draft: ExpenseDraft) -> OperationResult:
        engine = await self._get_engine()
        categories = get_settings().store.expense_categories
        return await self._run(
            "add_expense",
            [],
            lambda: engine.record_expense(draft, categories),
            lambda e: f"Expense of {e.amount:.2f} {e.currency.value} recorded",
        )

    async def delete_expense(self, expense_id: str) -> OperationResult:
        store = await self._get_store()

        async def action() -> Expense:
            expense = self.state.expense(expense_id)
            if expense is None:
                raise RecordNotFoundError("expense", expense_id)
            await store.delete_expense(expense.id)
            return expense

        return await self._run(
            "delete_expense", [expense_id], action, lambda e: f"Expense {e.id} deleted"
        )

    async def pay_salaries(self, period: str | None = None) -> OperationResult:
        """
        Pay every salaried employee for ``period`` (YYYY-MM, current month by default).

        Outstanding advances are deducted from each salary first; the
        remainder is booked as a salary expense. A period can be paid once.
        """
        engine = await self._get_engine()
        period = period or datetime.now().strftime("%Y-%m")
        employee_ids = [e.id for e in self.state.employees()]
        return await self._run(
            "pay_salaries",
            [f"payroll:{period}", *employee_ids],
            lambda: engine.run_payroll(self.state, period),
            lambda run: f"Salaries for {run.period} paid to {len(run.payslips)} employee(s)",
            lambda run: self._activity(
                ActivityType.PAYROLL,
                f"Payroll {run.period}: {run.total_paid:.2f} paid, "
                f"{run.total_salary - run.total_paid:.2f} settled against advances",
                run.period,
                "payroll",
            ),
        )

    # -------------------------------------------------------------- in-transit

    async def create_in_transit(self, draft: InTransitDraft) -> OperationResult:
        tracker = await self._get_tracker()
        return await self._run(
            "create_in_transit",
            [draft.supplier_id],
            lambda: tracker.create(self.state, draft),
            lambda inv: f"Shipment {inv.id} created",
            lambda inv: self._activity(ActivityType.PURCHASE, f"Shipment {inv.id} ordered", inv.id, "in_transit"),
        )

    async def update_in_transit(self, invoice_id: str, draft: InTransitDraft) -> OperationResult:
        tracker = await self._get_tracker()
        return await self._run(
            "update_in_transit",
            [invoice_id],
            lambda: tracker.update(self.state, invoice_id, draft),
            lambda inv: f"Shipment {inv.id} updated",
        )

    async def delete_in_transit(self, invoice_id: str) -> OperationResult:
        tracker = await self._get_tracker()
        return await self._run(
            "delete_in_transit",
            [invoice_id],
            lambda: tracker.delete(self.state, invoice_id),
            lambda _: f"Shipment {invoice_id} deleted",
            lambda _: self._activity(ActivityType.PURCHASE, f"Deleted shipment {invoice_id}", invoice_id, "in_transit"),
        )

    async def move_in_transit(self, invoice_id: str, draft: MovementDraft) -> OperationResult:
        tracker = await self._get_tracker()
        shipment = self.state.in_transit_invoice(invoice_id)

        async def action() -> dict:
            updated, purchase = await tracker.move_items(self.state, invoice_id, draft)
            return {"in_transit": updated, "purchase": purchase}

        return await self._run(
            "move_in_transit",
            [invoice_id, shipment.supplier_id if shipment else None],
            action,
            lambda r: f"Shipment {invoice_id} updated"
            + (f"; received as {r['purchase'].id}" if r["purchase"] else ""),
            lambda r: self._activity(
                ActivityType.INVENTORY,
                f"Moved units on shipment {invoice_id}" + (f" (received {r['purchase'].id})" if r["purchase"] else ""),
                invoice_id,
                "in_transit",
            ),
        )

    async def archive_in_transit(self, invoice_id: str) -> OperationResult:
        tracker = await self._get_tracker()
        return await self._run(
            "archive_in_transit",
            [invoice_id],
            lambda: tracker.archive(self.state, invoice_id),
            lambda inv: f"Shipment {inv.id} archived",
        )

    async def pay_in_transit(self, invoice_id: str, draft: PaymentDraft) -> OperationResult:
        tracker = await self._get_tracker()

        async def action() -> dict:
            txn, updated = await tracker.add_payment(self.state, invoice_id, draft)
            return {"transaction": txn, "in_transit": updated}

        return await self._run(
            "pay_in_transit",
            [invoice_id, draft.party_id],
            action,
            lambda r: f"Payment recorded on shipment {invoice_id}",
            lambda r: self._activity(
                ActivityType.PURCHASE,
                f"Paid {draft.amount:.2f} {draft.currency.value} on shipment {invoice_id}",
                r["transaction"].id,
                "transaction",
            ),
        )

    # ----------------------------------------------------------------- reports

    def alerts(self, today: date | None = None) -> AlertsResponse:
        """Low-stock products and batches nearing expiry."""
        store = get_settings().store
        return AlertsResponse(
            low_stock=[
                StockAlertResponse(**asdict(a))
                for a in low_stock(self.state.active_products, store.low_stock_threshold)
            ],
            expiring=[
                ExpiryAlertResponse(**asdict(a))
                for a in expiring_batches(self.state.active_products, store.expiry_threshold_months, today)
            ],
        )

    def profit_summary(
        self, start: datetime | None = None, end: datetime | None = None
    ) -> ProfitSummaryResponse:
        summary = profit_summary(self.state.sale_invoices, start, end, self.state.expenses)
        return ProfitSummaryResponse(
            revenue=summary.revenue,
            cost=summary.cost,
            profit=summary.profit,
            expenses=summary.expenses,
            net_profit=summary.net_profit,
            inventory_value=inventory_value(self.state.active_products),
            invoices=summary.invoices,
            returns=summary.returns,
        )

    def verify_balances(self) -> BalanceCheckResponse:
        """Compare stored balances with a replay of the transaction ledger."""
        mismatched = verify_balances(self.state.parties, self.state.transactions)
        return BalanceCheckResponse(consistent=not mismatched, mismatched_party_ids=mismatched)

    async def recent_activity(self, limit: int = 50) -> list[ActivityLog]:
        sink = await self._get_activity_sink()
        return await sink.list_recent(limit)
