"""Currency domain entities."""

from enum import Enum


class Currency(str, Enum):
    """Currencies the store trades in."""

    AFN = "AFN"
    USD = "USD"
    IRT = "IRT"


class ConversionMethod(str, Enum):
    """How a transactional amount becomes a base amount."""

    MULTIPLY = "multiply"  # base = amount * rate
    DIVIDE = "divide"  # base = amount / rate
