"""Write sets the engine hands to the persistence collaborator."""

from pydantic import BaseModel, Field

from kasebyar.core.entities.ledger import LedgerTransaction
from kasebyar.core.entities.party import BalanceUpdate
from kasebyar.core.entities.product import BatchChange


class StoreChanges(BaseModel):
    """
    Everything one operation changes besides the invoice itself.

    Stock and balances are absolute values computed from the snapshot;
    transactions are appended.
    """

    stock_updates: list[BatchChange] = Field(default_factory=list)
    new_batches: list[BatchChange] = Field(default_factory=list)
    balance_updates: list[BalanceUpdate] = Field(default_factory=list)
    transactions: list[LedgerTransaction] = Field(default_factory=list)

    def merge(self, other: "StoreChanges") -> "StoreChanges":
        return StoreChanges(
            stock_updates=self.stock_updates + other.stock_updates,
            new_batches=self.new_batches + other.new_batches,
            balance_updates=self.balance_updates + other.balance_updates,
            transactions=self.transactions + other.transactions,
        )
