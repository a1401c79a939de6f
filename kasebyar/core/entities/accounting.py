"""Expense and payroll entities."""

from datetime import datetime

from pydantic import BaseModel, Field

from kasebyar.core.entities.currency import Currency
from kasebyar.core.entities.ledger import LedgerTransaction

SALARY_CATEGORY = "salary"


class Expense(BaseModel):
    """Money the store spent outside of purchases."""

    id: str
    category: str
    description: str = ""
    amount: float = Field(gt=0)  # own currency
    currency: Currency = Currency.AFN
    exchange_rate: float = 1.0
    base_amount: float = Field(ge=0)
    date: datetime = Field(default_factory=datetime.now)
    payroll_period: str | None = None  # set on salary expenses booked by a payroll run


class Payslip(BaseModel):
    """One employee's share of a payroll run, base currency."""

    employee_id: str
    employee_name: str
    salary: float
    advances_settled: float = 0.0
    net_paid: float = 0.0


class PayrollRun(BaseModel):
    """
    Result of paying a month's salaries.

    Advances are settled out of the salary through ``salary_payment``
    postings; whatever is left is paid out and booked as a salary expense.
    """

    period: str  # YYYY-MM
    payslips: list[Payslip] = Field(default_factory=list)
    transactions: list[LedgerTransaction] = Field(default_factory=list)
    expenses: list[Expense] = Field(default_factory=list)

    @property
    def total_salary(self) -> float:
        return sum(p.salary for p in self.payslips)

    @property
    def total_paid(self) -> float:
        return sum(p.net_paid for p in self.payslips)
