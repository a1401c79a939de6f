"""Customer, supplier, employee and deposit-holder endpoints."""

from fastapi import APIRouter, Depends, status

from kasebyar.api.dependencies import get_pos
from kasebyar.api.middleware.error_handler import raise_for_result
from kasebyar.application.dto.responses import BalanceCheckResponse, ErrorResponse, OperationResult
from kasebyar.application.use_cases import PointOfSale
from kasebyar.core.entities import LedgerTransaction, Party, PartyDraft, PartyType, PaymentDraft
from kasebyar.core.exceptions import PartyNotFoundError

router = APIRouter(prefix="/api/parties", tags=["parties"])


@router.get("", response_model=list[Party])
async def list_parties(
    party_type: PartyType | None = None,
    include_inactive: bool = False,
    pos: PointOfSale = Depends(get_pos),
) -> list[Party]:
    """List parties with their per-currency balances."""
    parties = pos.state.parties if include_inactive else pos.state.active_parties
    if party_type is None:
        return parties
    return [p for p in parties if p.party_type == party_type]


@router.post(
    "",
    response_model=OperationResult,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_party(
    draft: PartyDraft,
    pos: PointOfSale = Depends(get_pos),
) -> OperationResult:
    """Create a party; an opening balance is posted to its ledger."""
    return raise_for_result(await pos.add_party(draft))


@router.post(
    "/payments",
    response_model=OperationResult,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def record_payment(
    draft: PaymentDraft,
    pos: PointOfSale = Depends(get_pos),
) -> OperationResult:
    """Record a payment, advance, salary, deposit or withdrawal."""
    return raise_for_result(await pos.record_payment(draft))


@router.get("/balance-check", response_model=BalanceCheckResponse)
async def check_balances(pos: PointOfSale = Depends(get_pos)) -> BalanceCheckResponse:
    """Replay the transaction ledger and report parties whose balances disagree."""
    return pos.verify_balances()


@router.get(
    "/{party_id}/transactions",
    response_model=list[LedgerTransaction],
    responses={404: {"model": ErrorResponse}},
)
async def list_party_transactions(
    party_id: str,
    pos: PointOfSale = Depends(get_pos),
) -> list[LedgerTransaction]:
    """A party's postings, oldest first."""
    if pos.state.party(party_id) is None:
        raise PartyNotFoundError(party_id)
    return pos.state.party_transactions(party_id)


@router.delete(
    "/{party_id}",
    response_model=OperationResult,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def delete_party(party_id: str, pos: PointOfSale = Depends(get_pos)) -> OperationResult:
    """Remove a party whose balances are all zero."""
    return raise_for_result(await pos.delete_party(party_id))
