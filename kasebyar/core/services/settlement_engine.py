"""
Invoice settlement engine.

Turns drafts into persisted invoices. Each operation simulates its batch
and balance effects on scratch ledgers built from the snapshot, then hands
the complete result to the store in a single call, so a failure at any step
leaves both the snapshot and the database untouched.
"""

import re
from collections import defaultdict
from collections.abc import Collection
from datetime import datetime
from uuid import uuid4

from kasebyar.config import get_logger
from kasebyar.core.entities.accounting import SALARY_CATEGORY, Expense, Payslip, PayrollRun
from kasebyar.core.entities.changes import StoreChanges
from kasebyar.core.entities.currency import Currency
from kasebyar.core.entities.drafts import (
    ExpenseDraft,
    PartyDraft,
    PaymentDraft,
    ProductDraft,
    PurchaseDraft,
    PurchaseReturnLineDraft,
    SaleDraft,
    SaleLineDraft,
    SaleReturnLineDraft,
)
from kasebyar.core.entities.ledger import (
    TRANSACTION_DIRECTION,
    LedgerTransaction,
    TransactionType,
)
from kasebyar.core.entities.party import BalanceUpdate, Party, PartyType
from kasebyar.core.entities.product import BatchDeduction, Product
from kasebyar.core.entities.purchase import PurchaseInvoice, PurchaseLine, PurchaseType
from kasebyar.core.entities.sale import LineKind, SaleInvoice, SaleLine, SaleType
from kasebyar.core.entities.state import AppState
from kasebyar.core.exceptions import (
    DuplicateLotError,
    EmptyCartError,
    InvoiceNotFoundError,
    OverReturnError,
    PartyNotFoundError,
    ProductNotFoundError,
    PurchaseEditConflictError,
    ValidationError,
)
from kasebyar.core.interfaces.pos_store import IPosStore
from kasebyar.core.services.batch_ledger import BatchLedger
from kasebyar.core.services.currency_converter import CurrencyConverter
from kasebyar.core.services.numbering import (
    PURCHASE_PREFIX,
    PURCHASE_RETURN_PREFIX,
    SALE_PREFIX,
    SALE_RETURN_PREFIX,
    next_id,
    payroll_reference,
)
from kasebyar.core.services.party_ledger import PartyLedger

logger = get_logger(__name__)

# Which standalone postings each party type accepts
PAYMENT_KINDS: dict[PartyType, set[TransactionType]] = {
    PartyType.CUSTOMER: {TransactionType.PAYMENT},
    PartyType.SUPPLIER: {TransactionType.PAYMENT},
    PartyType.EMPLOYEE: {TransactionType.ADVANCE, TransactionType.SALARY_PAYMENT},
    PartyType.DEPOSIT_HOLDER: {TransactionType.DEPOSIT, TransactionType.WITHDRAWAL},
}

# Party types whose positive balance means they owe the store
DEBTOR_TYPES = {PartyType.CUSTOMER, PartyType.EMPLOYEE}

PAYROLL_PERIOD = re.compile(r"\d{4}-(0[1-9]|1[0-2])")


class SettlementEngine:
    """
    Sale, purchase, return and payment settlement.

    The engine never mutates the ``AppState`` it is given; the caller
    reloads a fresh snapshot after each successful operation.
    """

    def __init__(self, store: IPosStore, converter: CurrencyConverter | None = None) -> None:
        self.store = store
        self.converter = converter or CurrencyConverter()

    # ------------------------------------------------------------------ helpers

    @staticmethod
    def _post(
        parties: PartyLedger,
        party_id: str,
        type_: TransactionType,
        amount: float,
        currency: Currency,
        rate: float,
        base_amount: float,
        description: str = "",
        invoice_id: str | None = None,
        direction: int | None = None,
        when: datetime | None = None,
    ) -> LedgerTransaction:
        party = parties.party(party_id)
        txn = LedgerTransaction(
            id=uuid4().hex,
            party_id=party.id,
            party_type=party.party_type,
            type=type_,
            direction=direction if direction is not None else TRANSACTION_DIRECTION[type_],
            amount=amount,
            currency=currency,
            exchange_rate=rate,
            base_amount=base_amount,
            date=when or datetime.now(),
            description=description,
            invoice_id=invoice_id,
        )
        parties.post(txn)
        return txn

    @staticmethod
    def _require_party(state: AppState, party_id: str, party_type: PartyType) -> Party:
        party = state.party(party_id, party_type)
        if party is None or not party.active:
            raise PartyNotFoundError(party_id, party_type.value)
        return party

    # -------------------------------------------------------------------- sales

    @staticmethod
    def _walk_in_name(draft: SaleDraft, original: SaleInvoice | None) -> str | None:
        """Name of a buyer without an account; an edit keeps the one already set."""
        if draft.customer_id:
            return None
        name = (draft.customer_name or "").strip()
        if name:
            return name
        return original.customer_name if original else None

    def _build_sale_line(
        self, state: AppState, ledger: BatchLedger, draft: SaleLineDraft
    ) -> SaleLine:
        if draft.kind == LineKind.SERVICE:
            if draft.unit_price is None:
                raise ValidationError("unit_price", "Service lines need a price", draft.item_id)
            return SaleLine(
                kind=LineKind.SERVICE,
                item_id=draft.item_id,
                name=draft.name or draft.item_id,
                quantity=draft.quantity,
                unit_price=draft.unit_price,
                final_price=draft.final_price,
            )

        product = state.product(draft.item_id)
        if product is None:
            raise ProductNotFoundError(draft.item_id)
        deductions = ledger.deduct_fifo(product.id, draft.quantity)
        return SaleLine(
            kind=LineKind.PRODUCT,
            item_id=product.id,
            name=draft.name or product.name,
            quantity=draft.quantity,
            unit_price=product.sale_price if draft.unit_price is None else draft.unit_price,
            final_price=draft.final_price,
            batch_deductions=deductions,
        )

    async def complete_sale(
        self,
        state: AppState,
        draft: SaleDraft,
        editing_invoice_id: str | None = None,
        now: datetime | None = None,
    ) -> SaleInvoice:
        """
        Settle a cart as a new sale, or as a replacement of an existing one.

        Editing restores the old invoice's deductions and reverses its
        customer posting before the new contents are applied, so an edit to
        identical contents is a no-op on stock and balances.
        """
        if not draft.items:
            raise EmptyCartError()
        rate = self.converter.effective_rate(draft.currency, draft.exchange_rate)
        if draft.customer_id:
            self._require_party(state, draft.customer_id, PartyType.CUSTOMER)

        ledger = BatchLedger(state.products)
        parties = PartyLedger(state.parties)
        transactions: list[LedgerTransaction] = []
        now = now or datetime.now()

        original: SaleInvoice | None = None
        if editing_invoice_id:
            original = state.sale_invoice(editing_invoice_id)
            if original is None or original.is_return:
                raise InvoiceNotFoundError(editing_invoice_id)
            if state.returns_for_sale(original.id):
                raise ValidationError(
                    "invoice_id", "Invoice has returns and can no longer be edited", original.id
                )
            for line in original.items:
                if line.is_product:
                    ledger.restore(line.batch_deductions, line.item_id)
            if original.customer_id:
                transactions.append(
                    self._post(
                        parties,
                        original.customer_id,
                        TransactionType.SALE_REVERSAL,
                        original.total_amount,
                        original.currency,
                        original.exchange_rate,
                        original.total_amount_base,
                        description=f"Edit of sale {original.id}",
                        invoice_id=original.id,
                        when=now,
                    )
                )

        lines = [self._build_sale_line(state, ledger, item) for item in draft.items]

        subtotal_base = sum(line.list_total for line in lines)
        total_base = sum(line.line_total for line in lines)

        def to_tx(amount: float) -> float:
            return self.converter.to_transactional(amount, draft.currency, rate)

        invoice = SaleInvoice(
            id=original.id if original else next_id(SALE_PREFIX, [i.id for i in state.sale_invoices]),
            type=SaleType.SALE,
            items=lines,
            subtotal=to_tx(subtotal_base),
            total_discount=to_tx(subtotal_base - total_base),
            total_amount=to_tx(total_base),
            total_amount_base=total_base,
            timestamp=original.timestamp if original else now,
            cashier=draft.cashier,
            customer_id=draft.customer_id,
            customer_name=self._walk_in_name(draft, original),
            currency=draft.currency,
            exchange_rate=rate,
        )

        if invoice.customer_id:
            transactions.append(
                self._post(
                    parties,
                    invoice.customer_id,
                    TransactionType.CREDIT_SALE,
                    invoice.total_amount,
                    invoice.currency,
                    rate,
                    total_base,
                    description=f"Sale {invoice.id}",
                    invoice_id=invoice.id,
                    when=now,
                )
            )

        changes = StoreChanges(
            stock_updates=ledger.stock_updates(),
            balance_updates=parties.balance_updates(),
            transactions=transactions,
        )
        if original:
            saved = await self.store.update_sale(original.id, invoice, changes)
        else:
            saved = await self.store.create_sale(invoice, changes)

        logger.info(
            "sale_completed",
            invoice_id=invoice.id,
            edited=original is not None,
            lines=len(lines),
            total=invoice.total_amount,
            currency=invoice.currency.value,
        )
        return saved

    @staticmethod
    def _returnable_deductions(
        sold_lines: list[SaleLine],
        previous_returns: list[SaleInvoice],
        item_id: str,
        quantity: int,
    ) -> list[BatchDeduction]:
        """Deductions to restore, oldest first, skipping what earlier returns restored."""
        already: dict[str, int] = defaultdict(int)
        for ret in previous_returns:
            for line in ret.items:
                if line.item_id == item_id:
                    for d in line.batch_deductions:
                        already[d.batch_id] += d.quantity

        restore: list[BatchDeduction] = []
        remaining = quantity
        for line in sold_lines:
            for d in line.batch_deductions:
                if remaining == 0:
                    return restore
                left = d.quantity - already[d.batch_id]
                if left <= 0:
                    already[d.batch_id] = -left
                    continue
                already[d.batch_id] = 0
                take = min(left, remaining)
                restore.append(
                    BatchDeduction(batch_id=d.batch_id, quantity=take, unit_cost=d.unit_cost)
                )
                remaining -= take
        return restore

    async def return_sale(
        self,
        state: AppState,
        original_invoice_id: str,
        lines: list[SaleReturnLineDraft],
        cashier: str = "",
        now: datetime | None = None,
    ) -> SaleInvoice:
        """Return part of a sale. The original invoice is never modified."""
        if not lines:
            raise EmptyCartError()
        original = state.sale_invoice(original_invoice_id)
        if original is None or original.is_return:
            raise InvoiceNotFoundError(original_invoice_id)

        previous = state.returns_for_sale(original.id)
        ledger = BatchLedger(state.products)
        parties = PartyLedger(state.parties)
        now = now or datetime.now()

        requested: dict[str, int] = defaultdict(int)
        for line in lines:
            requested[line.item_id] += line.quantity

        return_lines: list[SaleLine] = []
        for item_id, quantity in requested.items():
            sold_lines = [line for line in original.items if line.item_id == item_id]
            if not sold_lines:
                raise ValidationError(
                    "item_id", f"{item_id} is not on invoice {original.id}", item_id
                )
            sold = sum(line.quantity for line in sold_lines)
            returned = sum(
                line.quantity for ret in previous for line in ret.items if line.item_id == item_id
            )
            returnable = sold - returned
            if quantity > returnable:
                raise OverReturnError(original.id, item_id, quantity, returnable)

            template = sold_lines[0]
            deductions: list[BatchDeduction] = []
            if template.is_product:
                deductions = self._returnable_deductions(sold_lines, previous, item_id, quantity)
                ledger.restore(deductions, item_id)

            return_lines.append(
                SaleLine(
                    kind=template.kind,
                    item_id=item_id,
                    name=template.name,
                    quantity=quantity,
                    unit_price=sum(line.list_total for line in sold_lines) / sold,
                    final_price=sum(line.line_total for line in sold_lines) / sold,
                    batch_deductions=deductions,
                )
            )

        subtotal_base = sum(line.list_total for line in return_lines)
        total_base = sum(line.line_total for line in return_lines)

        def to_tx(amount: float) -> float:
            return self.converter.to_transactional(amount, original.currency, original.exchange_rate)

        invoice = SaleInvoice(
            id=next_id(SALE_RETURN_PREFIX, [i.id for i in state.sale_invoices]),
            type=SaleType.RETURN,
            original_invoice_id=original.id,
            items=return_lines,
            subtotal=to_tx(subtotal_base),
            total_discount=to_tx(subtotal_base - total_base),
            total_amount=to_tx(total_base),
            total_amount_base=total_base,
            timestamp=now,
            cashier=cashier,
            customer_id=original.customer_id,
            currency=original.currency,
            exchange_rate=original.exchange_rate,
        )

        transactions = []
        if original.customer_id:
            transactions.append(
                self._post(
                    parties,
                    original.customer_id,
                    TransactionType.SALE_RETURN,
                    invoice.total_amount,
                    invoice.currency,
                    invoice.exchange_rate,
                    total_base,
                    description=f"Return {invoice.id} of sale {original.id}",
                    invoice_id=invoice.id,
                    when=now,
                )
            )

        changes = StoreChanges(
            stock_updates=ledger.stock_updates(),
            balance_updates=parties.balance_updates(),
            transactions=transactions,
        )
        saved = await self.store.create_sale_return(invoice, changes)
        logger.info(
            "sale_returned",
            invoice_id=invoice.id,
            original_invoice_id=original.id,
            total=invoice.total_amount,
        )
        return saved

    # ---------------------------------------------------------------- purchases

    def _check_purchase_draft(self, state: AppState, draft: PurchaseDraft) -> float:
        if not draft.items:
            raise ValidationError("items", "Purchase has no items")
        rate = self.converter.effective_rate(draft.currency, draft.exchange_rate)
        self._require_party(state, draft.supplier_id, PartyType.SUPPLIER)
        seen: set[str] = set()
        for line in draft.items:
            lot = line.lot_number.strip()
            if lot in seen:
                raise DuplicateLotError(lot)
            seen.add(lot)
            if state.product(line.product_id) is None:
                raise ProductNotFoundError(line.product_id)
        return rate

    def _landed_cost(self, draft: PurchaseDraft, rate: float) -> float:
        """Additional cost per unit, in base currency."""
        units = sum(line.quantity for line in draft.items)
        if not units or not draft.additional_cost:
            return 0.0
        return self.converter.to_base(draft.additional_cost, draft.currency, rate) / units

    def _purchase_lines(self, state: AppState, draft: PurchaseDraft) -> list[PurchaseLine]:
        return [
            PurchaseLine(
                product_id=line.product_id,
                product_name=state.product(line.product_id).name,
                quantity=line.quantity,
                purchase_price=line.purchase_price,
                lot_number=line.lot_number.strip(),
                expiry_date=line.expiry_date,
                received_qty=line.quantity,
            )
            for line in draft.items
        ]

    def prepare_purchase(
        self,
        state: AppState,
        draft: PurchaseDraft,
        source_in_transit_id: str | None = None,
        now: datetime | None = None,
    ) -> tuple[PurchaseInvoice, StoreChanges]:
        """
        Build a purchase invoice and its write set without persisting it.

        Each line becomes a new batch at its landed base-currency unit cost;
        the supplier is credited the invoice total. Additional cost is
        capitalized into batch cost only. A later receipt from the same
        shipment lot tops up the batch the first receipt created, at the
        weighted average cost.
        """
        rate = self._check_purchase_draft(state, draft)
        ledger = BatchLedger(
            state.products, reserved_lots=state.in_transit_lots(exclude_invoice_id=source_in_transit_id)
        )
        parties = PartyLedger(state.parties)
        when = draft.timestamp or now or datetime.now()
        extra = self._landed_cost(draft, rate)
        shipment = state.in_transit_invoice(source_in_transit_id) if source_in_transit_id else None
        shipment_lots = {line.lot_number for line in shipment.items} if shipment else set()

        for line in draft.items:
            lot = line.lot_number.strip()
            unit_cost = self.converter.to_base(line.purchase_price, draft.currency, rate) + extra
            existing = ledger.find_lot(line.product_id, lot) if lot in shipment_lots else None
            if existing is not None:
                held = max(existing.stock, 0)
                ledger.adjust_lot(
                    line.product_id,
                    lot,
                    line.quantity,
                    unit_cost=(held * existing.purchase_price + line.quantity * unit_cost)
                    / (held + line.quantity),
                    expiry_date=line.expiry_date,
                )
                continue
            ledger.append_batch(
                line.product_id,
                lot,
                line.quantity,
                unit_cost,
                purchase_date=when,
                expiry_date=line.expiry_date,
            )

        items = self._purchase_lines(state, draft)
        total = sum(line.line_total for line in items)
        total_base = self.converter.to_base(total, draft.currency, rate)
        invoice = PurchaseInvoice(
            id=next_id(PURCHASE_PREFIX, [i.id for i in state.purchase_invoices]),
            type=PurchaseType.PURCHASE,
            supplier_id=draft.supplier_id,
            invoice_number=draft.invoice_number,
            items=items,
            total_amount=total,
            total_amount_base=total_base,
            additional_cost=draft.additional_cost,
            timestamp=when,
            currency=draft.currency,
            exchange_rate=rate,
            source_in_transit_id=source_in_transit_id,
        )
        txn = self._post(
            parties,
            draft.supplier_id,
            TransactionType.PURCHASE,
            total,
            draft.currency,
            rate,
            total_base,
            description=f"Purchase {invoice.id}"
            + (f" ({draft.invoice_number})" if draft.invoice_number else ""),
            invoice_id=invoice.id,
            when=when,
        )
        changes = StoreChanges(
            stock_updates=ledger.stock_updates(),
            new_batches=ledger.new_batches(),
            balance_updates=parties.balance_updates(),
            transactions=[txn],
        )
        return invoice, changes

    async def create_purchase(
        self, state: AppState, draft: PurchaseDraft, now: datetime | None = None
    ) -> PurchaseInvoice:
        invoice, changes = self.prepare_purchase(state, draft, now=now)
        saved = await self.store.create_purchase(invoice, changes)
        logger.info(
            "purchase_created",
            invoice_id=invoice.id,
            supplier_id=invoice.supplier_id,
            total=invoice.total_amount,
            currency=invoice.currency.value,
            batches=len(changes.new_batches),
        )
        return saved

    async def update_purchase(
        self,
        state: AppState,
        invoice_id: str,
        draft: PurchaseDraft,
        now: datetime | None = None,
    ) -> PurchaseInvoice:
        """
        Replace a purchase's contents.

        Old lots give back their received quantity, then new lines land on
        the same lot or a new batch. If units from an old lot were already
        sold so the lot would end below zero, the edit is refused.
        """
        original = state.purchase_invoice(invoice_id)
        if original is None or original.is_return:
            raise InvoiceNotFoundError(invoice_id)
        if state.returns_for_purchase(original.id):
            raise ValidationError(
                "invoice_id", "Purchase has returns and can no longer be edited", original.id
            )
        if original.source_in_transit_id:
            raise ValidationError(
                "invoice_id",
                f"Purchase was received from shipment {original.source_in_transit_id} and cannot be edited",
                original.id,
            )
        rate = self._check_purchase_draft(state, draft)

        ledger = BatchLedger(state.products, reserved_lots=state.in_transit_lots())
        parties = PartyLedger(state.parties)
        now = now or datetime.now()
        when = draft.timestamp or original.timestamp
        extra = self._landed_cost(draft, rate)

        old_lots = {(line.product_id, line.lot_number) for line in original.items}
        for line in original.items:
            ledger.adjust_lot(line.product_id, line.lot_number, -line.received_qty)

        for line in draft.items:
            lot = line.lot_number.strip()
            unit_cost = self.converter.to_base(line.purchase_price, draft.currency, rate) + extra
            if (line.product_id, lot) in old_lots and ledger.find_lot(line.product_id, lot):
                ledger.adjust_lot(
                    line.product_id, lot, line.quantity, unit_cost=unit_cost, expiry_date=line.expiry_date
                )
            else:
                ledger.append_batch(
                    line.product_id,
                    lot,
                    line.quantity,
                    unit_cost,
                    purchase_date=when,
                    expiry_date=line.expiry_date,
                )

        negative = ledger.negative_batches()
        if negative:
            batch, started = negative[0]
            raise PurchaseEditConflictError(
                original.id, batch.lot_number, available=started, required=started - batch.stock
            )

        transactions = [
            self._post(
                parties,
                original.supplier_id,
                TransactionType.PURCHASE_REVERSAL,
                original.total_amount,
                original.currency,
                original.exchange_rate,
                original.total_amount_base,
                description=f"Edit of purchase {original.id}",
                invoice_id=original.id,
                when=now,
            )
        ]

        items = self._purchase_lines(state, draft)
        total = sum(line.line_total for line in items)
        total_base = self.converter.to_base(total, draft.currency, rate)
        invoice = PurchaseInvoice(
            id=original.id,
            type=PurchaseType.PURCHASE,
            supplier_id=draft.supplier_id,
            invoice_number=draft.invoice_number,
            items=items,
            total_amount=total,
            total_amount_base=total_base,
            additional_cost=draft.additional_cost,
            timestamp=when,
            currency=draft.currency,
            exchange_rate=rate,
        )
        transactions.append(
            self._post(
                parties,
                draft.supplier_id,
                TransactionType.PURCHASE,
                total,
                draft.currency,
                rate,
                total_base,
                description=f"Purchase {invoice.id} (edited)",
                invoice_id=invoice.id,
                when=now,
            )
        )

        changes = StoreChanges(
            stock_updates=ledger.stock_updates(),
            new_batches=ledger.new_batches(),
            balance_updates=parties.balance_updates(),
            transactions=transactions,
        )
        saved = await self.store.update_purchase(original.id, invoice, changes)
        logger.info(
            "purchase_updated",
            invoice_id=invoice.id,
            supplier_id=invoice.supplier_id,
            total=invoice.total_amount,
        )
        return saved

    async def return_purchase(
        self,
        state: AppState,
        original_invoice_id: str,
        lines: list[PurchaseReturnLineDraft],
        now: datetime | None = None,
    ) -> PurchaseInvoice:
        """Send units of named lots back to the supplier."""
        if not lines:
            raise ValidationError("items", "Return has no items")
        original = state.purchase_invoice(original_invoice_id)
        if original is None or original.is_return:
            raise InvoiceNotFoundError(original_invoice_id)

        previous = state.returns_for_purchase(original.id)
        ledger = BatchLedger(state.products)
        parties = PartyLedger(state.parties)
        now = now or datetime.now()

        requested: dict[tuple[str, str], int] = defaultdict(int)
        for line in lines:
            requested[(line.product_id, line.lot_number.strip())] += line.quantity

        items: list[PurchaseLine] = []
        for (product_id, lot), quantity in requested.items():
            bought = next(
                (l for l in original.items if l.product_id == product_id and l.lot_number == lot),
                None,
            )
            if bought is None:
                raise ValidationError(
                    "lot_number", f"Lot {lot} of {product_id} is not on purchase {original.id}", lot
                )
            returned = sum(
                l.quantity
                for ret in previous
                for l in ret.items
                if l.product_id == product_id and l.lot_number == lot
            )
            returnable = bought.received_qty - returned
            if quantity > returnable:
                raise OverReturnError(original.id, f"{product_id}/{lot}", quantity, returnable)
            ledger.deduct_lot(product_id, lot, quantity)
            items.append(
                PurchaseLine(
                    product_id=product_id,
                    product_name=bought.product_name,
                    quantity=quantity,
                    purchase_price=bought.purchase_price,
                    lot_number=lot,
                    expiry_date=bought.expiry_date,
                    received_qty=quantity,
                )
            )

        total = sum(line.line_total for line in items)
        total_base = self.converter.to_base(total, original.currency, original.exchange_rate)
        invoice = PurchaseInvoice(
            id=next_id(PURCHASE_RETURN_PREFIX, [i.id for i in state.purchase_invoices]),
            type=PurchaseType.RETURN,
            original_invoice_id=original.id,
            supplier_id=original.supplier_id,
            invoice_number=original.invoice_number,
            items=items,
            total_amount=total,
            total_amount_base=total_base,
            timestamp=now,
            currency=original.currency,
            exchange_rate=original.exchange_rate,
        )
        txn = self._post(
            parties,
            original.supplier_id,
            TransactionType.PURCHASE_RETURN,
            total,
            original.currency,
            original.exchange_rate,
            total_base,
            description=f"Return {invoice.id} of purchase {original.id}",
            invoice_id=invoice.id,
            when=now,
        )
        changes = StoreChanges(
            stock_updates=ledger.stock_updates(),
            balance_updates=parties.balance_updates(),
            transactions=[txn],
        )
        saved = await self.store.create_purchase_return(invoice, changes)
        logger.info(
            "purchase_returned",
            invoice_id=invoice.id,
            original_invoice_id=original.id,
            total=total,
        )
        return saved

    # ----------------------------------------------------------------- payments

    def prepare_payment(
        self, state: AppState, draft: PaymentDraft, invoice_id: str | None = None
    ) -> tuple[LedgerTransaction, BalanceUpdate]:
        """Build a standalone posting and the party's resulting balances."""
        rate = self.converter.effective_rate(draft.currency, draft.exchange_rate)
        party = self._require_party(state, draft.party_id, draft.party_type)
        if draft.kind not in PAYMENT_KINDS[party.party_type]:
            raise ValidationError(
                "kind",
                f"{draft.kind.value} is not allowed for a {party.party_type.value}",
                draft.kind.value,
            )
        if draft.kind == TransactionType.WITHDRAWAL:
            held = party.balances.bucket(draft.currency)
            if draft.amount > held:
                raise ValidationError(
                    "amount", f"Withdrawal exceeds the {held} {draft.currency.value} on deposit", draft.amount
                )

        parties = PartyLedger(state.parties)
        txn = self._post(
            parties,
            party.id,
            draft.kind,
            draft.amount,
            draft.currency,
            rate,
            self.converter.to_base(draft.amount, draft.currency, rate),
            description=draft.description or draft.kind.value.replace("_", " ").capitalize(),
            invoice_id=invoice_id,
        )
        return txn, parties.balance_updates()[0]

    async def record_payment(self, state: AppState, draft: PaymentDraft) -> LedgerTransaction:
        txn, update = self.prepare_payment(state, draft)
        saved = await self.store.process_payment(update, txn)
        logger.info(
            "payment_recorded",
            party_id=txn.party_id,
            kind=txn.type.value,
            amount=txn.amount,
            currency=txn.currency.value,
        )
        return saved

    async def open_party(self, state: AppState, draft: PartyDraft) -> Party:
        """Create a party, posting any opening balance through the ledger."""
        party_id = draft.id or uuid4().hex
        if state.party(party_id) is not None:
            raise ValidationError("id", "A party with this id already exists", party_id)
        party = Party(
            id=party_id,
            name=draft.name.strip(),
            party_type=draft.party_type,
            phone=draft.phone,
            address=draft.address,
            contact_person=draft.contact_person,
        )
        if draft.party_type == PartyType.EMPLOYEE:
            party = party.model_copy(
                update={"position": draft.position, "monthly_salary": draft.monthly_salary}
            )

        txn = None
        if draft.opening_balance > 0:
            rate = self.converter.effective_rate(draft.opening_currency, draft.opening_rate)
            owes_store = draft.opening_side == "debtor"
            direction = 1 if owes_store == (draft.party_type in DEBTOR_TYPES) else -1
            parties = PartyLedger([party])
            txn = self._post(
                parties,
                party.id,
                TransactionType.OPENING_BALANCE,
                draft.opening_balance,
                draft.opening_currency,
                rate,
                self.converter.to_base(draft.opening_balance, draft.opening_currency, rate),
                description=f"Opening balance ({draft.opening_side})",
                direction=direction,
            )
            party = party.model_copy(update={"balances": parties.balances(party.id)})

        saved = await self.store.add_party(party, txn)
        logger.info(
            "party_opened",
            party_id=party.id,
            party_type=party.party_type.value,
            opening_total=party.balances.total,
        )
        return saved

    async def open_product(self, state: AppState, draft: ProductDraft) -> Product:
        """Create a product, optionally stocked with a first batch."""
        product_id = draft.id or uuid4().hex
        if state.product(product_id) is not None:
            raise ValidationError("id", "A product with this id already exists", product_id)
        product = Product(
            id=product_id,
            name=draft.name.strip(),
            sale_price=draft.sale_price,
            barcode=draft.barcode,
            manufacturer=draft.manufacturer,
            items_per_package=draft.items_per_package,
        )

        opening = draft.first_batch
        if opening is not None:
            ledger = BatchLedger([*state.products, product], state.in_transit_lots())
            ledger.append_batch(
                product.id,
                opening.lot_number,
                opening.quantity,
                opening.purchase_price,
                opening.purchase_date,
                opening.expiry_date,
            )
            product = product.model_copy(update={"batches": ledger.batches(product.id)})

        saved = await self.store.add_product(product)
        logger.info("product_opened", product_id=product.id, opening_stock=product.stock)
        return saved

    # ---------------------------------------------------------------- accounting

    async def record_expense(
        self, draft: ExpenseDraft, categories: Collection[str] = ()
    ) -> Expense:
        """Book an expense. ``categories`` restricts the category when given."""
        category = draft.category.strip().lower()
        if categories and category not in categories:
            raise ValidationError(
                "category", f"Unknown expense category; expected one of {', '.join(categories)}", category
            )
        rate = self.converter.effective_rate(draft.currency, draft.exchange_rate)
        expense = Expense(
            id=uuid4().hex,
            category=category,
            description=draft.description.strip(),
            amount=draft.amount,
            currency=draft.currency,
            exchange_rate=rate,
            base_amount=self.converter.to_base(draft.amount, draft.currency, rate),
            date=draft.date or datetime.now(),
        )
        saved = await self.store.add_expense(expense)
        logger.info(
            "expense_recorded",
            expense_id=expense.id,
            category=category,
            amount=expense.amount,
            currency=expense.currency.value,
        )
        return saved

    def prepare_payroll(
        self, state: AppState, period: str, now: datetime | None = None
    ) -> tuple[PayrollRun, StoreChanges]:
        """
        Work out one month's salaries for every active salaried employee.

        An employee's positive balance is advances already paid out; the run
        settles as much of it as the salary covers with a base-currency
        ``salary_payment`` posting. Advances beyond the salary carry over to
        the next month. The rest of the salary is paid out and booked as a
        salary expense.
        """
        if not PAYROLL_PERIOD.fullmatch(period):
            raise ValidationError("period", "Payroll period must look like YYYY-MM", period)
        reference = payroll_reference(period)
        already_paid = any(e.payroll_period == period for e in state.expenses) or any(
            t.invoice_id == reference for t in state.transactions
        )
        if already_paid:
            raise ValidationError("period", f"Salaries for {period} have already been paid", period)
        employees = [e for e in state.employees() if e.monthly_salary > 0]
        if not employees:
            raise ValidationError("employees", "No active employee has a monthly salary")

        base = self.converter.base_currency
        parties = PartyLedger(state.parties)
        now = now or datetime.now()
        run = PayrollRun(period=period)
        for employee in employees:
            outstanding = max(employee.balances.total, 0.0)
            settled = min(outstanding, employee.monthly_salary)
            net = employee.monthly_salary - settled
            if settled > 0:
                run.transactions.append(
                    self._post(
                        parties,
                        employee.id,
                        TransactionType.SALARY_PAYMENT,
                        settled,
                        base,
                        1.0,
                        settled,
                        description=f"Salary {period}: advances settled",
                        invoice_id=reference,
                        when=now,
                    )
                )
            if net > 0:
                run.expenses.append(
                    Expense(
                        id=uuid4().hex,
                        category=SALARY_CATEGORY,
                        description=f"Salary {period}: {employee.name}",
                        amount=net,
                        currency=base,
                        exchange_rate=1.0,
                        base_amount=net,
                        date=now,
                        payroll_period=period,
                    )
                )
            run.payslips.append(
                Payslip(
                    employee_id=employee.id,
                    employee_name=employee.name,
                    salary=employee.monthly_salary,
                    advances_settled=settled,
                    net_paid=net,
                )
            )

        changes = StoreChanges(balance_updates=parties.balance_updates(), transactions=run.transactions)
        return run, changes

    async def run_payroll(
        self, state: AppState, period: str, now: datetime | None = None
    ) -> PayrollRun:
        run, changes = self.prepare_payroll(state, period, now)
        await self.store.process_payroll(changes, run.expenses)
        logger.info(
            "payroll_paid",
            period=period,
            employees=len(run.payslips),
            total_salary=run.total_salary,
            total_paid=run.total_paid,
        )
        return run
