"""Party ledger transaction entities."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from kasebyar.core.entities.currency import Currency
from kasebyar.core.entities.party import PartyType


class TransactionType(str, Enum):
    """Kinds of ledger postings."""

    OPENING_BALANCE = "opening_balance"
    CREDIT_SALE = "credit_sale"
    SALE_REVERSAL = "sale_reversal"
    SALE_RETURN = "sale_return"
    PURCHASE = "purchase"
    PURCHASE_REVERSAL = "purchase_reversal"
    PURCHASE_RETURN = "purchase_return"
    PAYMENT = "payment"
    ADVANCE = "advance"
    SALARY_PAYMENT = "salary_payment"
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


# +1 raises the party balance, -1 lowers it. Opening balances carry their own.
TRANSACTION_DIRECTION: dict[TransactionType, int] = {
    TransactionType.CREDIT_SALE: 1,
    TransactionType.SALE_REVERSAL: -1,
    TransactionType.SALE_RETURN: -1,
    TransactionType.PURCHASE: 1,
    TransactionType.PURCHASE_REVERSAL: -1,
    TransactionType.PURCHASE_RETURN: -1,
    TransactionType.PAYMENT: -1,
    TransactionType.ADVANCE: 1,
    TransactionType.SALARY_PAYMENT: -1,
    TransactionType.DEPOSIT: 1,
    TransactionType.WITHDRAWAL: -1,
}


class LedgerTransaction(BaseModel):
    """An immutable, append-only balance movement for one party."""

    id: str
    party_id: str
    party_type: PartyType
    type: TransactionType
    direction: int = 1
    amount: float = Field(ge=0)  # own currency
    currency: Currency = Currency.AFN
    exchange_rate: float = 1.0
    base_amount: float = Field(ge=0)
    date: datetime = Field(default_factory=datetime.now)
    description: str = ""
    invoice_id: str | None = None

    @field_validator("direction")
    @classmethod
    def check_direction(cls, v: int) -> int:
        if v not in (1, -1):
            raise ValueError("direction must be 1 or -1")
        return v

    @property
    def signed_amount(self) -> float:
        return self.direction * self.amount

    @property
    def signed_base_amount(self) -> float:
        return self.direction * self.base_amount
