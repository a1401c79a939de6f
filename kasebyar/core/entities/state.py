"""Read-only snapshot of everything the settlement engine works against."""

from pydantic import BaseModel, Field

from kasebyar.core.entities.accounting import Expense
from kasebyar.core.entities.ledger import LedgerTransaction
from kasebyar.core.entities.party import Party, PartyType
from kasebyar.core.entities.product import Product, Service
from kasebyar.core.entities.purchase import InTransitInvoice, InTransitStatus, PurchaseInvoice
from kasebyar.core.entities.sale import SaleInvoice


class InvoiceBundle(BaseModel):
    """All invoices grouped by kind, as the store hands them back."""

    sales: list[SaleInvoice] = Field(default_factory=list)
    purchases: list[PurchaseInvoice] = Field(default_factory=list)
    in_transit: list[InTransitInvoice] = Field(default_factory=list)


class AppState(BaseModel):
    """
    Snapshot of the catalogue, parties, invoices, ledger and expenses.

    Engine operations never mutate it; they work on scoped copies and the
    coordinator reloads a fresh snapshot after each committed write.
    Deleted products and parties stay in the snapshot with ``active``
    cleared.
    """

    products: list[Product] = Field(default_factory=list)
    services: list[Service] = Field(default_factory=list)
    parties: list[Party] = Field(default_factory=list)
    transactions: list[LedgerTransaction] = Field(default_factory=list)
    sale_invoices: list[SaleInvoice] = Field(default_factory=list)
    purchase_invoices: list[PurchaseInvoice] = Field(default_factory=list)
    in_transit_invoices: list[InTransitInvoice] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)

    @property
    def active_products(self) -> list[Product]:
        return [p for p in self.products if p.active]

    @property
    def active_parties(self) -> list[Party]:
        return [p for p in self.parties if p.active]

    def product(self, product_id: str) -> Product | None:
        return next((p for p in self.products if p.id == product_id), None)

    def service(self, service_id: str) -> Service | None:
        return next((s for s in self.services if s.id == service_id), None)

    def party(self, party_id: str, party_type: PartyType | None = None) -> Party | None:
        for party in self.parties:
            if party.id == party_id and (party_type is None or party.party_type == party_type):
                return party
        return None

    def employees(self) -> list[Party]:
        return [p for p in self.active_parties if p.party_type == PartyType.EMPLOYEE]

    def expense(self, expense_id: str) -> Expense | None:
        return next((e for e in self.expenses if e.id == expense_id), None)

    def sale_invoice(self, invoice_id: str) -> SaleInvoice | None:
        return next((i for i in self.sale_invoices if i.id == invoice_id), None)

    def purchase_invoice(self, invoice_id: str) -> PurchaseInvoice | None:
        return next((i for i in self.purchase_invoices if i.id == invoice_id), None)

    def in_transit_invoice(self, invoice_id: str) -> InTransitInvoice | None:
        return next((i for i in self.in_transit_invoices if i.id == invoice_id), None)

    def returns_for_sale(self, invoice_id: str) -> list[SaleInvoice]:
        return [i for i in self.sale_invoices if i.is_return and i.original_invoice_id == invoice_id]

    def returns_for_purchase(self, invoice_id: str) -> list[PurchaseInvoice]:
        return [
            i for i in self.purchase_invoices if i.is_return and i.original_invoice_id == invoice_id
        ]

    def party_transactions(self, party_id: str) -> list[LedgerTransaction]:
        return [t for t in self.transactions if t.party_id == party_id]

    def in_transit_lots(self, exclude_invoice_id: str | None = None) -> set[str]:
        """Lots reserved by active in-transit lines that are not yet in stock."""
        lots: set[str] = set()
        for invoice in self.in_transit_invoices:
            if invoice.id == exclude_invoice_id or invoice.status == InTransitStatus.CLOSED:
                continue
            for line in invoice.items:
                if line.received_qty < line.quantity:
                    lots.add(line.lot_number)
        return lots
