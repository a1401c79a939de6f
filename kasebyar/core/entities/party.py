"""Party (customer, supplier, employee, deposit holder) entities."""

from enum import Enum

from pydantic import BaseModel, Field

from kasebyar.core.entities.currency import Currency


class PartyType(str, Enum):
    """Who the store keeps a running balance with."""

    CUSTOMER = "customer"
    SUPPLIER = "supplier"
    EMPLOYEE = "employee"
    DEPOSIT_HOLDER = "deposit_holder"


class PartyBalances(BaseModel):
    """
    Per-currency buckets plus the authoritative base-currency total.

    Positive means the party owes the store (customers, employees) or the
    store owes the party (suppliers, deposit holders).
    """

    afn: float = 0.0
    usd: float = 0.0
    irt: float = 0.0
    total: float = 0.0

    def bucket(self, currency: Currency | str) -> float:
        return getattr(self, Currency(currency).value.lower())

    def with_delta(self, currency: Currency | str, amount: float, base_amount: float) -> "PartyBalances":
        """Return new balances with ``amount`` on one bucket and ``base_amount`` on the total."""
        field = Currency(currency).value.lower()
        return self.model_copy(
            update={field: getattr(self, field) + amount, "total": self.total + base_amount}
        )


class Party(BaseModel):
    """
    A counterparty with running balances.

    ``position`` and ``monthly_salary`` only mean something for employees.
    Deleted parties stay on file with ``active`` cleared so their ledger
    history keeps resolving.
    """

    id: str
    name: str
    party_type: PartyType
    phone: str | None = None
    address: str | None = None
    contact_person: str | None = None
    position: str | None = None
    monthly_salary: float = Field(default=0.0, ge=0)  # base currency
    active: bool = True
    balances: PartyBalances = Field(default_factory=PartyBalances)

    @property
    def is_settled(self) -> bool:
        """True when every bucket and the total are zero."""
        b = self.balances
        return all(abs(v) < 1e-9 for v in (b.afn, b.usd, b.irt, b.total))


class BalanceUpdate(BaseModel):
    """Absolute post-operation balances of one party."""

    party_id: str
    party_type: PartyType
    balances: PartyBalances
