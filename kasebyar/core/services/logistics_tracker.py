"""
Logistics stage tracking for supplier orders.

An in-transit invoice records units that are paid for or ordered but not
yet on the shelf. Units move at_factory -> in_transit -> received; every
receipt is settled as its own purchase invoice linked back to the
shipment, and the shipment closes once every unit is received.
"""

from datetime import datetime

from kasebyar.config import get_logger
from kasebyar.core.entities.drafts import (
    InTransitDraft,
    MovementDraft,
    PaymentDraft,
    PurchaseDraft,
    PurchaseLineDraft,
)
from kasebyar.core.entities.ledger import LedgerTransaction, TransactionType
from kasebyar.core.entities.party import PartyType
from kasebyar.core.entities.purchase import (
    InTransitInvoice,
    InTransitStatus,
    PurchaseInvoice,
    PurchaseLine,
)
from kasebyar.core.entities.state import AppState
from kasebyar.core.exceptions import (
    DuplicateLotError,
    InvoiceNotFoundError,
    PartyNotFoundError,
    ProductNotFoundError,
    ValidationError,
)
from kasebyar.core.interfaces.pos_store import IPosStore
from kasebyar.core.services.batch_ledger import BatchLedger
from kasebyar.core.services.numbering import IN_TRANSIT_PREFIX, next_id
from kasebyar.core.services.settlement_engine import SettlementEngine

logger = get_logger(__name__)


class LogisticsTracker:
    """Create, edit, move, pay and close in-transit invoices."""

    def __init__(self, store: IPosStore, engine: SettlementEngine) -> None:
        self.store = store
        self.engine = engine

    @property
    def converter(self):
        return self.engine.converter

    @staticmethod
    def _require(state: AppState, invoice_id: str) -> InTransitInvoice:
        invoice = state.in_transit_invoice(invoice_id)
        if invoice is None:
            raise InvoiceNotFoundError(invoice_id)
        return invoice

    def _build_lines(
        self, state: AppState, draft: InTransitDraft, exclude_invoice_id: str | None = None
    ) -> tuple[list[PurchaseLine], float]:
        if not draft.items:
            raise ValidationError("items", "Shipment has no items")
        rate = self.converter.effective_rate(draft.currency, draft.exchange_rate)
        if state.party(draft.supplier_id, PartyType.SUPPLIER) is None:
            raise PartyNotFoundError(draft.supplier_id, PartyType.SUPPLIER.value)

        ledger = BatchLedger(
            state.products, reserved_lots=state.in_transit_lots(exclude_invoice_id=exclude_invoice_id)
        )
        seen: set[str] = set()
        lines = []
        for item in draft.items:
            product = state.product(item.product_id)
            if product is None:
                raise ProductNotFoundError(item.product_id)
            lot = item.lot_number.strip()
            if lot in seen or ledger.lot_exists(lot):
                raise DuplicateLotError(lot)
            seen.add(lot)
            lines.append(
                PurchaseLine(
                    product_id=product.id,
                    product_name=product.name,
                    quantity=item.quantity,
                    purchase_price=item.purchase_price,
                    lot_number=lot,
                    expiry_date=item.expiry_date,
                    at_factory_qty=item.quantity,
                )
            )
        return lines, rate

    async def create(
        self, state: AppState, draft: InTransitDraft, now: datetime | None = None
    ) -> InTransitInvoice:
        """Record a supplier order with every unit still at the factory."""
        lines, rate = self._build_lines(state, draft)
        invoice = InTransitInvoice(
            id=next_id(IN_TRANSIT_PREFIX, [i.id for i in state.in_transit_invoices]),
            supplier_id=draft.supplier_id,
            invoice_number=draft.invoice_number,
            items=lines,
            total_amount=sum(line.line_total for line in lines),
            currency=draft.currency,
            exchange_rate=rate,
            timestamp=now or datetime.now(),
            expected_arrival_date=draft.expected_arrival_date,
            description=draft.description,
        )
        saved = await self.store.create_in_transit(invoice)
        logger.info(
            "in_transit_created",
            invoice_id=invoice.id,
            supplier_id=invoice.supplier_id,
            units=sum(line.quantity for line in lines),
        )
        return saved

    async def update(
        self, state: AppState, invoice_id: str, draft: InTransitDraft
    ) -> InTransitInvoice:
        """Replace a shipment's contents. Only allowed before anything has moved."""
        existing = self._require(state, invoice_id)
        if existing.status == InTransitStatus.CLOSED:
            raise ValidationError("status", "Shipment is closed", existing.id)
        if existing.has_movement:
            raise ValidationError(
                "items", "Units have already left the factory; the shipment can no longer be edited", existing.id
            )
        lines, rate = self._build_lines(state, draft, exclude_invoice_id=existing.id)
        invoice = existing.model_copy(
            update={
                "supplier_id": draft.supplier_id,
                "invoice_number": draft.invoice_number,
                "items": lines,
                "total_amount": sum(line.line_total for line in lines),
                "currency": draft.currency,
                "exchange_rate": rate,
                "expected_arrival_date": draft.expected_arrival_date,
                "description": draft.description,
            }
        )
        saved = await self.store.update_in_transit(invoice)
        logger.info("in_transit_updated", invoice_id=invoice.id)
        return saved

    async def delete(self, state: AppState, invoice_id: str) -> bool:
        """Drop a shipment nothing has been received from."""
        existing = self._require(state, invoice_id)
        if existing.has_received:
            raise ValidationError(
                "invoice_id", "Units were already received; the shipment cannot be deleted", existing.id
            )
        deleted = await self.store.delete_in_transit(existing.id)
        logger.info("in_transit_deleted", invoice_id=existing.id)
        return deleted

    async def move_items(
        self,
        state: AppState,
        invoice_id: str,
        draft: MovementDraft,
        now: datetime | None = None,
    ) -> tuple[InTransitInvoice, PurchaseInvoice | None]:
        """
        Advance units through the stages.

        Requests are clamped to what each stage holds. Received units are
        settled as a purchase in the same store call as the shipment update.
        """
        invoice = self._require(state, invoice_id)
        if invoice.status == InTransitStatus.CLOSED:
            raise ValidationError("status", "Shipment is closed", invoice.id)

        lines = [line.model_copy() for line in invoice.items]
        received: list[PurchaseLineDraft] = []
        moved = 0
        for movement in draft.movements:
            line = next(
                (
                    l
                    for l in lines
                    if l.product_id == movement.product_id and l.lot_number == movement.lot_number
                ),
                None,
            )
            if line is None:
                raise ValidationError(
                    "movements",
                    f"Lot {movement.lot_number} of {movement.product_id} is not on shipment {invoice.id}",
                )
            to_transit = min(movement.to_transit, line.at_factory_qty)
            to_received = min(movement.to_received, line.in_transit_qty + to_transit)
            line.at_factory_qty -= to_transit
            line.in_transit_qty += to_transit - to_received
            line.received_qty += to_received
            moved += to_transit + to_received
            if to_received:
                received.append(
                    PurchaseLineDraft(
                        product_id=line.product_id,
                        quantity=to_received,
                        purchase_price=line.purchase_price,
                        lot_number=(movement.received_lot or line.lot_number).strip(),
                        expiry_date=movement.expiry_date or line.expiry_date,
                    )
                )

        if moved == 0:
            raise ValidationError("movements", "Nothing to move", invoice.id)

        updated = invoice.model_copy(update={"items": lines})
        if updated.is_fully_received:
            updated.status = InTransitStatus.CLOSED

        purchase = None
        if received:
            purchase_draft = PurchaseDraft(
                supplier_id=invoice.supplier_id,
                invoice_number=invoice.invoice_number,
                items=received,
                currency=invoice.currency,
                exchange_rate=invoice.exchange_rate,
                additional_cost=draft.additional_cost,
                timestamp=now or datetime.now(),
            )
            purchase, changes = self.engine.prepare_purchase(
                state, purchase_draft, source_in_transit_id=invoice.id
            )
            purchase = await self.store.create_purchase(purchase, changes, in_transit_update=updated)
        else:
            await self.store.update_in_transit(updated)

        logger.info(
            "in_transit_moved",
            invoice_id=invoice.id,
            moved=moved,
            received=sum(line.quantity for line in received),
            purchase_id=purchase.id if purchase else None,
            status=updated.status.value,
        )
        return updated, purchase

    async def archive(self, state: AppState, invoice_id: str) -> InTransitInvoice:
        """Close a shipment early; remaining units are written off the order."""
        invoice = self._require(state, invoice_id)
        if invoice.status == InTransitStatus.CLOSED:
            raise ValidationError("status", "Shipment is already closed", invoice.id)
        archived = invoice.model_copy(update={"status": InTransitStatus.CLOSED})
        saved = await self.store.update_in_transit(archived)
        logger.info("in_transit_archived", invoice_id=invoice.id)
        return saved

    async def add_payment(
        self, state: AppState, invoice_id: str, draft: PaymentDraft
    ) -> tuple[LedgerTransaction, InTransitInvoice]:
        """Pay the supplier against a shipment; ``paid_amount`` grows in the shipment's currency."""
        invoice = self._require(state, invoice_id)
        if draft.party_id != invoice.supplier_id or draft.party_type != PartyType.SUPPLIER:
            raise ValidationError("party_id", "Payment must go to the shipment's supplier", draft.party_id)
        if draft.kind != TransactionType.PAYMENT:
            raise ValidationError("kind", "Only payments can be made against a shipment", draft.kind.value)

        txn, update = self.engine.prepare_payment(state, draft, invoice_id=invoice.id)
        paid = self.converter.between(
            draft.amount, draft.currency, txn.exchange_rate, invoice.currency, invoice.exchange_rate
        )
        updated = invoice.model_copy(update={"paid_amount": invoice.paid_amount + paid})
        saved = await self.store.process_payment(update, txn, in_transit_update=updated)
        logger.info(
            "in_transit_paid",
            invoice_id=invoice.id,
            amount=draft.amount,
            currency=draft.currency.value,
            paid_amount=updated.paid_amount,
        )
        return saved, updated
