"""
Accounting endpoints.

Expenses are booked in any currency and reported in base currency.
Payroll pays every salaried employee for a month, settling outstanding
advances first.
"""

from datetime import datetime

from fastapi import APIRouter, Depends, status

from kasebyar.api.dependencies import get_pos
from kasebyar.api.middleware.error_handler import raise_for_result
from kasebyar.application.dto.requests import PayrollRequest
from kasebyar.application.dto.responses import ErrorResponse, OperationResult
from kasebyar.application.use_cases import PointOfSale
from kasebyar.core.entities import Expense, ExpenseDraft

router = APIRouter(prefix="/api/accounting", tags=["accounting"])


@router.get("/expenses", response_model=list[Expense])
async def list_expenses(
    category: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    pos: PointOfSale = Depends(get_pos),
) -> list[Expense]:
    """Expenses, newest first."""
    expenses = [
        e
        for e in pos.state.expenses
        if (category is None or e.category == category.lower())
        and (start is None or e.date >= start)
        and (end is None or e.date <= end)
    ]
    return sorted(expenses, key=lambda e: e.date, reverse=True)


@router.post(
    "/expenses",
    response_model=OperationResult,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_expense(
    draft: ExpenseDraft,
    pos: PointOfSale = Depends(get_pos),
) -> OperationResult:
    return raise_for_result(await pos.add_expense(draft))


@router.delete("/expenses/{expense_id}", response_model=OperationResult, responses={404: {"model": ErrorResponse}})
async def delete_expense(expense_id: str, pos: PointOfSale = Depends(get_pos)) -> OperationResult:
    return raise_for_result(await pos.delete_expense(expense_id))


@router.post(
    "/payroll",
    response_model=OperationResult,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
async def run_payroll(
    request: PayrollRequest,
    pos: PointOfSale = Depends(get_pos),
) -> OperationResult:
    """Pay the month's salaries. Each month can be paid once."""
    return raise_for_result(await pos.pay_salaries(request.period))
