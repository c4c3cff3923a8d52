"""Loan accrual calculator.

Single source for every day-count and interest figure shown for a loan.
Interest is simple and pro-rated over a fixed 30-day commercial month::

    daily_rate = monthly_rate / 30
    interest   = principal * (daily_rate / 100) * total_days

``total_days`` is the calendar difference between start and end date,
clamped to at least one day so that equal or inverted dates still accrue
a day of interest instead of failing.

Active loans are recomputed from their current terms on every read. Paid
loans carry frozen ``final_*`` figures written once by :func:`close_loan`
and those figures are returned verbatim by :func:`loan_figures`.

All functions are pure: no I/O, no clock reads, no shared state. Callers
pass ``today`` explicitly.
"""

from dataclasses import replace
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from loanbook.exceptions import InvalidEntityStateError, InvalidTermsError
from loanbook.models.enums import LoanStatus
from loanbook.models.loan import (
    DAYS_PER_MONTH,
    Duration,
    Loan,
    LoanAccrualResult,
    LoanTerms,
)

MIN_TOTAL_DAYS = 1
_PERCENT = 100
CENTS = Decimal("0.01")


def to_decimal(value: Any, field_name: str = "value") -> Decimal:
    """Coerce a numeric input to ``Decimal``.

    Floats go through ``str`` so ``0.1`` stays ``Decimal("0.1")``.

    Raises
    ------
    InvalidTermsError
        If the value is not a finite number.
    """
    if isinstance(value, bool):
        raise InvalidTermsError(f"{field_name} must be a number, got {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, float):
        result = Decimal(str(value))
    else:
        try:
            result = Decimal(value)
        except (InvalidOperation, TypeError, ValueError) as e:
            raise InvalidTermsError(f"{field_name} must be a number, got {value!r}") from e
    if not result.is_finite():
        raise InvalidTermsError(f"{field_name} must be finite, got {value!r}")
    return result


def as_calendar_date(value: date | datetime | str) -> date:
    """Drop any time component so day differences never shift.

    Accepts ``date``, ``datetime`` and ISO strings (``YYYY-MM-DD`` or a
    full ISO timestamp).
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value[:10])
    raise TypeError(f"Expected date, datetime or ISO string, got {type(value).__name__}")


def validate_terms(principal: Any, monthly_rate: Any) -> tuple[Decimal, Decimal]:
    """Check commercial terms and return them as decimals.

    Raises
    ------
    InvalidTermsError
        If ``principal <= 0`` or ``monthly_rate < 0``.
    """
    principal = to_decimal(principal, "principal")
    monthly_rate = to_decimal(monthly_rate, "monthly_rate")
    if principal <= 0:
        raise InvalidTermsError(f"principal must be > 0, got {principal}")
    if monthly_rate < 0:
        raise InvalidTermsError(f"monthly_rate must be >= 0, got {monthly_rate}")
    return principal, monthly_rate


def elapsed_days(start_date: date | datetime | str, end_date: date | datetime | str) -> int:
    """Calendar days from start to end, clamped to ``MIN_TOTAL_DAYS``."""
    days = (as_calendar_date(end_date) - as_calendar_date(start_date)).days
    return max(days, MIN_TOTAL_DAYS)


def split_duration(total_days: int) -> Duration:
    """Break a day count into 30-day months and leftover days."""
    return Duration(months=total_days // DAYS_PER_MONTH, extra_days=total_days % DAYS_PER_MONTH)


def compute_accrual(
    principal: Any,
    monthly_rate: Any,
    start_date: date | datetime | str,
    end_date: date | datetime | str,
) -> LoanAccrualResult:
    """Compute days, interest and total payable between two dates.

    Parameters
    ----------
    principal : Decimal | int | float | str
        Amount lent, must be > 0.
    monthly_rate : Decimal | int | float | str
        Percent per 30-day month, must be >= 0.
    start_date, end_date : date | datetime | str
        Accrual window. Inverted or equal dates accrue one day.

    Returns
    -------
    LoanAccrualResult
        Figures with ``is_overdue`` left False; see :func:`is_overdue`.

    Raises
    ------
    InvalidTermsError
        If the terms are invalid.
    """
    principal, monthly_rate = validate_terms(principal, monthly_rate)
    total_days = elapsed_days(start_date, end_date)

    # Same value as principal * (daily_rate / 100) * days, divided once so
    # whole-cent results come out exact.
    interest = principal * monthly_rate * total_days / (DAYS_PER_MONTH * _PERCENT)

    return LoanAccrualResult(
        total_days=total_days,
        daily_rate=monthly_rate / DAYS_PER_MONTH,
        interest_amount=interest,
        total_payable=principal + interest,
    )


def is_overdue(
    status: LoanStatus | str,
    due_date: date | datetime | str,
    today: date | datetime | str,
) -> bool:
    """Whether an active loan is strictly past its due date.

    A loan due today is not overdue. Paid loans are never overdue.
    """
    if LoanStatus(status) != LoanStatus.ACTIVE:
        return False
    return as_calendar_date(today) > as_calendar_date(due_date)


def days_until_due(due_date: date | datetime | str, today: date | datetime | str) -> int:
    """Signed day count to the due date; negative once past due."""
    return (as_calendar_date(due_date) - as_calendar_date(today)).days


def finalize_loan(terms: LoanTerms, payment_date: date | datetime | str) -> LoanAccrualResult:
    """Figures to freeze when payment is confirmed.

    The payment date replaces the due date as end of the accrual window.
    """
    return compute_accrual(
        terms.principal,
        terms.monthly_interest_rate,
        terms.start_date,
        payment_date,
    )


def contract_loan(loan: Loan) -> Loan:
    """Re-derive contracted figures from the loan's current terms.

    Raises
    ------
    InvalidEntityStateError
        If the loan is already paid.
    """
    if loan.is_paid:
        raise InvalidEntityStateError(f"Loan {loan.loan_id} is paid; its terms are frozen")

    result = compute_accrual(loan.principal, loan.monthly_interest_rate, loan.start_date, loan.due_date)
    return replace(
        loan,
        principal=to_decimal(loan.principal, "principal"),
        monthly_interest_rate=to_decimal(loan.monthly_interest_rate, "monthly_rate"),
        contracted_days=result.total_days,
        contracted_interest=result.interest_amount,
    )


def close_loan(loan: Loan, payment_date: date | datetime | str) -> Loan:
    """Return the paid version of an active loan with frozen final figures.

    Raises
    ------
    InvalidEntityStateError
        If the loan is already paid.
    """
    if loan.is_paid:
        raise InvalidEntityStateError(f"Loan {loan.loan_id} is already paid")

    paid_on = as_calendar_date(payment_date)
    result = finalize_loan(loan.terms, paid_on)
    return replace(
        loan,
        status=LoanStatus.PAID,
        payment_date=paid_on,
        final_total_days=result.total_days,
        final_interest_amount=result.interest_amount,
        final_total_paid=result.total_payable,
    )


def _frozen_figures(loan: Loan) -> LoanAccrualResult:
    if loan.final_total_days is None or loan.final_interest_amount is None:
        raise InvalidEntityStateError(f"Paid loan {loan.loan_id} has no final figures")

    interest = loan.final_interest_amount
    total_paid = loan.final_total_paid
    if total_paid is None:
        total_paid = loan.principal + interest

    return LoanAccrualResult(
        total_days=loan.final_total_days,
        daily_rate=to_decimal(loan.monthly_interest_rate) / DAYS_PER_MONTH,
        interest_amount=interest,
        total_payable=total_paid,
        is_overdue=False,
    )


def loan_figures(loan: Loan, today: date | datetime | str) -> LoanAccrualResult:
    """Figures to display for a loan.

    Paid loans return the stored final figures and are never recomputed.
    Active loans are measured start to due date, with the overdue flag
    evaluated against ``today``.
    """
    if loan.is_paid:
        return _frozen_figures(loan)

    result = compute_accrual(loan.principal, loan.monthly_interest_rate, loan.start_date, loan.due_date)
    return replace(result, is_overdue=is_overdue(loan.status, loan.due_date, today))


def accrued_to_date(loan: Loan, today: date | datetime | str) -> LoanAccrualResult:
    """Live estimate of what an active loan has accrued up to ``today``.

    Paid loans return their frozen final figures.
    """
    if loan.is_paid:
        return _frozen_figures(loan)

    result = compute_accrual(loan.principal, loan.monthly_interest_rate, loan.start_date, today)
    return replace(result, is_overdue=is_overdue(loan.status, loan.due_date, today))


def round_money(value: Decimal) -> Decimal:
    """Round to cents for presentation; never feed the result back into accrual."""
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)
