"""Core domain entities."""

from kasebyar.core.entities.accounting import SALARY_CATEGORY, Expense, Payslip, PayrollRun
from kasebyar.core.entities.activity import ActivityLog, ActivityType
from kasebyar.core.entities.changes import StoreChanges
from kasebyar.core.entities.currency import ConversionMethod, Currency
from kasebyar.core.entities.drafts import (
    ExpenseDraft,
    InTransitDraft,
    MovementDraft,
    OpeningBatchDraft,
    PartyDraft,
    PaymentDraft,
    ProductDraft,
    ProductUpdate,
    PurchaseDraft,
    PurchaseLineDraft,
    PurchaseReturnLineDraft,
    SaleDraft,
    SaleLineDraft,
    SaleReturnLineDraft,
    ServiceDraft,
    StageMovement,
)
from kasebyar.core.entities.ledger import (
    TRANSACTION_DIRECTION,
    LedgerTransaction,
    TransactionType,
)
from kasebyar.core.entities.party import (
    BalanceUpdate,
    Party,
    PartyBalances,
    PartyType,
)
from kasebyar.core.entities.product import (
    BatchChange,
    BatchDeduction,
    Product,
    ProductBatch,
    Service,
)
from kasebyar.core.entities.purchase import (
    InTransitInvoice,
    InTransitStatus,
    PurchaseInvoice,
    PurchaseLine,
    PurchaseType,
)
from kasebyar.core.entities.sale import LineKind, SaleInvoice, SaleLine, SaleType
from kasebyar.core.entities.state import AppState, InvoiceBundle

__all__ = [
    # Currency
    "Currency",
    "ConversionMethod",
    # Catalogue
    "Product",
    "ProductBatch",
    "BatchDeduction",
    "BatchChange",
    "Service",
    # Sales
    "SaleInvoice",
    "SaleLine",
    "SaleType",
    "LineKind",
    # Purchases
    "PurchaseInvoice",
    "PurchaseLine",
    "PurchaseType",
    "InTransitInvoice",
    "InTransitStatus",
    # Parties
    "Party",
    "PartyType",
    "PartyBalances",
    "BalanceUpdate",
    "LedgerTransaction",
    "TransactionType",
    "TRANSACTION_DIRECTION",
    # Accounting
    "Expense",
    "Payslip",
    "PayrollRun",
    "SALARY_CATEGORY",
    # Activity
    "ActivityLog",
    "ActivityType",
    # Snapshot
    "AppState",
    "InvoiceBundle",
    "StoreChanges",
    # Drafts
    "SaleDraft",
    "SaleLineDraft",
    "SaleReturnLineDraft",
    "PurchaseDraft",
    "PurchaseLineDraft",
    "PurchaseReturnLineDraft",
    "InTransitDraft",
    "MovementDraft",
    "StageMovement",
    "PaymentDraft",
    "PartyDraft",
    "ProductDraft",
    "ProductUpdate",
    "OpeningBatchDraft",
    "ServiceDraft",
    "ExpenseDraft",
]
