"""Abstract interface for POS persistence."""

from abc import ABC, abstractmethod

from kasebyar.core.entities.accounting import Expense
from kasebyar.core.entities.changes import StoreChanges
from kasebyar.core.entities.ledger import LedgerTransaction
from kasebyar.core.entities.party import BalanceUpdate, Party
from kasebyar.core.entities.product import Product, Service
from kasebyar.core.entities.purchase import InTransitInvoice, PurchaseInvoice
from kasebyar.core.entities.sale import SaleInvoice
from kasebyar.core.entities.state import InvoiceBundle


class IPosStore(ABC):
    """
    Interface for catalogue, invoice and ledger persistence.

    Every write method applies its whole payload atomically: either all of
    it is committed or none of it is.
    """

    # Reads

    @abstractmethod
    async def get_products(self) -> list[Product]:
        """Get all products with their batches."""
        pass

    @abstractmethod
    async def get_entities(self) -> list[Party]:
        """Get all parties with their balances."""
        pass

    @abstractmethod
    async def get_transactions(self) -> list[LedgerTransaction]:
        """Get the full party ledger in posting order."""
        pass

    @abstractmethod
    async def get_invoices(self) -> InvoiceBundle:
        """Get sale, purchase and in-transit invoices."""
        pass

    @abstractmethod
    async def get_services(self) -> list[Service]:
        """Get the service catalogue."""
        pass

    @abstractmethod
    async def get_expenses(self) -> list[Expense]:
        """Get all expenses, oldest first."""
        pass

    # Catalogue

    @abstractmethod
    async def add_product(self, product: Product) -> Product:
        """Create a product together with any initial batches."""
        pass

    @abstractmethod
    async def add_party(
        self, party: Party, transaction: LedgerTransaction | None = None
    ) -> Party:
        """Create a party, optionally posting its opening balance."""
        pass

    @abstractmethod
    async def update_product(self, product: Product) -> Product:
        """Overwrite a product's catalogue fields. Batches are left alone."""
        pass

    @abstractmethod
    async def deactivate_product(self, product_id: str) -> bool:
        """Soft-delete a product."""
        pass

    @abstractmethod
    async def deactivate_party(self, party_id: str) -> bool:
        """Soft-delete a party."""
        pass

    @abstractmethod
    async def add_service(self, service: Service) -> Service:
        pass

    @abstractmethod
    async def delete_service(self, service_id: str) -> bool:
        pass

    # Sales

    @abstractmethod
    async def create_sale(self, invoice: SaleInvoice, changes: StoreChanges) -> SaleInvoice:
        """Persist a new sale with its stock and balance changes."""
        pass

    @abstractmethod
    async def update_sale(
        self, invoice_id: str, invoice: SaleInvoice, changes: StoreChanges
    ) -> SaleInvoice:
        """Replace an existing sale with its recomputed version."""
        pass

    @abstractmethod
    async def create_sale_return(
        self, invoice: SaleInvoice, changes: StoreChanges
    ) -> SaleInvoice:
        """Persist a sale return."""
        pass

    @abstractmethod
    async def set_sale_customer_name(self, invoice_id: str, customer_name: str) -> bool:
        """Record the walk-in buyer's name on a sale."""
        pass

    # Purchases

    @abstractmethod
    async def create_purchase(
        self,
        invoice: PurchaseInvoice,
        changes: StoreChanges,
        in_transit_update: InTransitInvoice | None = None,
    ) -> PurchaseInvoice:
        """Persist a purchase, optionally together with its source shipment's new state."""
        pass

    @abstractmethod
    async def update_purchase(
        self, invoice_id: str, invoice: PurchaseInvoice, changes: StoreChanges
    ) -> PurchaseInvoice:
        """Replace an existing purchase with its recomputed version."""
        pass

    @abstractmethod
    async def create_purchase_return(
        self, invoice: PurchaseInvoice, changes: StoreChanges
    ) -> PurchaseInvoice:
        """Persist a purchase return."""
        pass

    # In-transit

    @abstractmethod
    async def create_in_transit(self, invoice: InTransitInvoice) -> InTransitInvoice:
        pass

    @abstractmethod
    async def update_in_transit(self, invoice: InTransitInvoice) -> InTransitInvoice:
        pass

    @abstractmethod
    async def delete_in_transit(self, invoice_id: str) -> bool:
        pass

    # Payments

    @abstractmethod
    async def process_payment(
        self,
        balance_update: BalanceUpdate,
        transaction: LedgerTransaction,
        in_transit_update: InTransitInvoice | None = None,
    ) -> LedgerTransaction:
        """Post a standalone payment, deposit or advance."""
        pass

    # Accounting

    @abstractmethod
    async def add_expense(self, expense: Expense) -> Expense:
        pass

    @abstractmethod
    async def delete_expense(self, expense_id: str) -> bool:
        pass

    @abstractmethod
    async def process_payroll(self, changes: StoreChanges, expenses: list[Expense]) -> None:
        """Post a payroll run's settlements and book its salary expenses together."""
        pass
