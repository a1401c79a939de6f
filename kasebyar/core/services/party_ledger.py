"""
Party balance ledger.

Balances move only through ledger transactions: each posting shifts one
currency bucket by its own-currency amount and the base total by the base
amount captured at posting time. The total is authoritative; buckets are
informational and may drift from total under rate changes.
"""

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass

from kasebyar.config import get_logger
from kasebyar.core.entities.currency import Currency
from kasebyar.core.entities.ledger import LedgerTransaction
from kasebyar.core.entities.party import BalanceUpdate, Party, PartyBalances
from kasebyar.core.exceptions import PartyNotFoundError

logger = get_logger(__name__)

# Rounding noise tolerated when comparing stored and recomputed balances
BALANCE_TOLERANCE = 1e-6


@dataclass(frozen=True)
class Posting:
    """A signed balance movement for one party."""

    party_id: str
    currency: Currency
    amount: float
    base_amount: float


class PartyLedger:
    """Scratch balances for one settlement operation."""

    def __init__(self, parties: Iterable[Party]) -> None:
        self._source: dict[str, Party] = {p.id: p for p in parties}
        self._working: dict[str, PartyBalances] = {}

    def party(self, party_id: str) -> Party:
        party = self._source.get(party_id)
        if party is None:
            raise PartyNotFoundError(party_id)
        return party

    def balances(self, party_id: str) -> PartyBalances:
        if party_id in self._working:
            return self._working[party_id]
        return self.party(party_id).balances

    def apply_delta(
        self, party_id: str, currency: Currency | str, amount: float, base_amount: float
    ) -> PartyBalances:
        updated = self.balances(party_id).with_delta(currency, amount, base_amount)
        self._working[party_id] = updated
        return updated

    def apply(self, posting: Posting) -> PartyBalances:
        return self.apply_delta(posting.party_id, posting.currency, posting.amount, posting.base_amount)

    def revert(self, posting: Posting) -> PartyBalances:
        return self.apply_delta(
            posting.party_id, posting.currency, -posting.amount, -posting.base_amount
        )

    def post(self, transaction: LedgerTransaction) -> PartyBalances:
        """Apply a ledger transaction's signed amounts."""
        return self.apply(
            Posting(
                party_id=transaction.party_id,
                currency=transaction.currency,
                amount=transaction.signed_amount,
                base_amount=transaction.signed_base_amount,
            )
        )

    def balance_updates(self) -> list[BalanceUpdate]:
        return [
            BalanceUpdate(
                party_id=party_id,
                party_type=self._source[party_id].party_type,
                balances=balances,
            )
            for party_id, balances in self._working.items()
        ]


def recompute_balances(transactions: Iterable[LedgerTransaction]) -> dict[str, PartyBalances]:
    """Rebuild every party's balances from its ledger history."""
    totals: dict[str, PartyBalances] = defaultdict(PartyBalances)
    for txn in transactions:
        totals[txn.party_id] = totals[txn.party_id].with_delta(
            txn.currency, txn.signed_amount, txn.signed_base_amount
        )
    return dict(totals)


def verify_balances(
    parties: Iterable[Party], transactions: Iterable[LedgerTransaction]
) -> list[str]:
    """Ids of parties whose stored balances disagree with their ledger."""
    expected = recompute_balances(transactions)
    mismatched = []
    for party in parties:
        want = expected.get(party.id, PartyBalances())
        have = party.balances
        if any(
            abs(getattr(have, field) - getattr(want, field)) > BALANCE_TOLERANCE
            for field in ("afn", "usd", "irt", "total")
        ):
            logger.warning(
                "balance_mismatch",
                party_id=party.id,
                stored_total=have.total,
                ledger_total=want.total,
            )
            mismatched.append(party.id)
    return mismatched
