"""Loan models: contract terms, accrual results and the persisted record."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from loanbook.models.enums import LoanStatus

DAYS_PER_MONTH = 30  # Commercial month used for pro-rating


@dataclass(frozen=True)
class LoanTerms:
    """Commercial terms fed to the accrual calculator."""

    principal: Decimal
    monthly_interest_rate: Decimal  # Percent per 30-day month (5 = 5%)
    start_date: date
    end_date: date  # Due date while active, payment date once paid
    status: LoanStatus = LoanStatus.ACTIVE


@dataclass(frozen=True)
class Duration:
    """Whole commercial months plus leftover days. Display only."""

    months: int
    extra_days: int

    @property
    def total_days(self) -> int:
        return self.months * DAYS_PER_MONTH + self.extra_days

    @property
    def label(self) -> str:
        """Human readable duration, e.g. ``2 mês(es) e 5 dia(s)``."""
        if self.months == 0:
            return f"{self.extra_days} dia(s)"
        if self.extra_days == 0:
            return f"{self.months} mês(es)"
        return f"{self.months} mês(es) e {self.extra_days} dia(s)"


@dataclass(frozen=True)
class LoanAccrualResult:
    """Day count and currency figures for one loan."""

    total_days: int
    daily_rate: Decimal  # Percent per day
    interest_amount: Decimal
    total_payable: Decimal
    is_overdue: bool = False

    @property
    def duration(self) -> Duration:
        return Duration(
            months=self.total_days // DAYS_PER_MONTH,
            extra_days=self.total_days % DAYS_PER_MONTH,
        )


@dataclass
class Loan:
    """Private loan record (emprestimo).

    ``contracted_*`` fields follow the current terms of an active loan.
    ``final_*`` fields are written once when the loan is marked as paid
    and are authoritative from then on.
    """

    loan_id: str
    borrower_name: str
    principal: Decimal
    monthly_interest_rate: Decimal
    start_date: date
    due_date: date
    status: LoanStatus
    contracted_days: int
    contracted_interest: Decimal
    display_id: str = ""
    payment_date: date | None = None
    final_total_days: int | None = None
    final_interest_amount: Decimal | None = None
    final_total_paid: Decimal | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_paid(self) -> bool:
        return self.status == LoanStatus.PAID

    @property
    def terms(self) -> LoanTerms:
        """Contract terms measured against the due date."""
        return LoanTerms(
            principal=self.principal,
            monthly_interest_rate=self.monthly_interest_rate,
            start_date=self.start_date,
            end_date=self.due_date,
            status=self.status,
        )
