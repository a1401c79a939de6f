"""
Core business services.

Pure domain logic. The only infrastructure these services see is the
store interface injected into the engine and tracker.
"""

from kasebyar.core.services.batch_ledger import BatchLedger
from kasebyar.core.services.currency_converter import CurrencyConverter, convert
from kasebyar.core.services.logistics_tracker import LogisticsTracker
from kasebyar.core.services.numbering import next_id
from kasebyar.core.services.party_ledger import (
    PartyLedger,
    Posting,
    recompute_balances,
    verify_balances,
)
from kasebyar.core.services.reports import (
    expiring_batches,
    inventory_value,
    low_stock,
    profit_summary,
)
from kasebyar.core.services.settlement_engine import SettlementEngine

__all__ = [
    "BatchLedger",
    "CurrencyConverter",
    "convert",
    "LogisticsTracker",
    "next_id",
    "PartyLedger",
    "Posting",
    "recompute_balances",
    "verify_balances",
    "expiring_batches",
    "inventory_value",
    "low_stock",
    "profit_summary",
    "SettlementEngine",
]
