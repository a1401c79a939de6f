"""Sequential invoice and record numbering."""

import re
from collections.abc import Iterable

SALE_PREFIX = "F"
SALE_RETURN_PREFIX = "R"
PURCHASE_PREFIX = "P"
PURCHASE_RETURN_PREFIX = "PR"
IN_TRANSIT_PREFIX = "T"


def next_id(prefix: str, existing_ids: Iterable[str]) -> str:
    """
    Next id for ``prefix`` after the highest existing ``{prefix}{n}``.

    Ids of other prefixes are ignored, so "PR3" never bumps the "P" sequence.
    """
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
    highest = 0
    for existing in existing_ids:
        match = pattern.match(existing or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{prefix}{highest + 1}"


def payroll_reference(period: str) -> str:
    """Reference carried by the ledger postings of one month's payroll run."""
    return f"SAL-{period}"
