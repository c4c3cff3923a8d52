"""Repository interface shared by the in-memory and PostgreSQL stores."""

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Protocol

from loanbook.accrual import as_calendar_date, contract_loan, to_decimal, validate_terms
from loanbook.exceptions import InvalidEntityStateError, InvalidTermsError
from loanbook.models import (
    Expense,
    Loan,
    LoanStatus,
    Property,
    RentPayment,
)


class PortfolioRepository(Protocol):
    """Persistence boundary for loans and rental properties.

    Reports and scripts receive an implementation explicitly; the accrual
    calculator never touches it.
    """

    def add_loan(
        self,
        borrower_name: str,
        principal: Any,
        monthly_interest_rate: Any,
        start_date: date | str,
        due_date: date | str,
    ) -> Loan: ...

    def get_loan(self, loan_id: str) -> Loan: ...

    def list_loans(self, status: LoanStatus | None = None) -> list[Loan]: ...

    def update_loan_terms(
        self,
        loan_id: str,
        *,
        borrower_name: str | None = None,
        principal: Any = None,
        monthly_interest_rate: Any = None,
        start_date: date | str | None = None,
        due_date: date | str | None = None,
    ) -> Loan: ...

    def mark_loan_paid(self, loan_id: str, payment_date: date | str | None = None) -> Loan: ...

    def delete_loan(self, loan_id: str) -> None: ...

    def add_property(
        self,
        name: str,
        rent_amount: Any,
        payment_day: int = 10,
        active: bool = True,
    ) -> Property: ...

    def get_property(self, property_id: str) -> Property: ...

    def list_properties(self) -> list[Property]: ...

    def update_property(
        self,
        property_id: str,
        *,
        name: str | None = None,
        rent_amount: Any = None,
        payment_day: int | None = None,
        active: bool | None = None,
    ) -> Property: ...

    def delete_property(self, property_id: str) -> None: ...

    def receive_rent_payment(
        self, property_id: str, payment_date: date | str | None = None
    ) -> RentPayment: ...

    def list_rent_payments(self, property_id: str | None = None) -> list[RentPayment]: ...

    def add_expense(
        self,
        property_id: str,
        reference_month: date | str,
        description: str,
        amount: Any,
        category: str | None = None,
    ) -> Expense: ...

    def delete_expense(self, expense_id: str) -> None: ...

    def list_expenses(self, property_id: str | None = None) -> list[Expense]: ...

    def summary(self) -> dict[str, int]: ...


def draft_loan(
    loan_id: str,
    borrower_name: str,
    principal: Any,
    monthly_interest_rate: Any,
    start_date: date | str,
    due_date: date | str,
    display_id: str = "",
) -> Loan:
    """Build a new active loan with contracted figures derived.

    Raises
    ------
    InvalidTermsError
        If the terms are invalid; nothing should be persisted then.
    """
    principal, monthly_interest_rate = validate_terms(principal, monthly_interest_rate)
    now = datetime.now()
    loan = Loan(
        loan_id=loan_id,
        borrower_name=borrower_name,
        principal=principal,
        monthly_interest_rate=monthly_interest_rate,
        start_date=as_calendar_date(start_date),
        due_date=as_calendar_date(due_date),
        status=LoanStatus.ACTIVE,
        contracted_days=0,
        contracted_interest=Decimal("0"),
        display_id=display_id,
        created_at=now,
        updated_at=now,
    )
    return contract_loan(loan)


def revise_loan(loan: Loan, **changes: Any) -> Loan:
    """Apply term edits to an active loan and re-derive contracted figures.

    ``None`` values mean "unchanged".

    Raises
    ------
    InvalidEntityStateError
        If the loan is already paid.
    InvalidTermsError
        If the edited terms are invalid.
    """
    if loan.is_paid:
        raise InvalidEntityStateError(f"Loan {loan.loan_id} is paid and can no longer be edited")

    updates = {key: value for key, value in changes.items() if value is not None}
    for key in ("start_date", "due_date"):
        if key in updates:
            updates[key] = as_calendar_date(updates[key])

    revised = replace(loan, **updates, updated_at=datetime.now())
    validate_terms(revised.principal, revised.monthly_interest_rate)
    return contract_loan(revised)


def validate_rent(rent_amount: Any, payment_day: int) -> Decimal:
    """Check rental terms and return the rent as a decimal."""
    rent = to_decimal(rent_amount, "rent_amount")
    if rent < 0:
        raise InvalidTermsError(f"rent_amount must be >= 0, got {rent}")
    if not 1 <= payment_day <= 31:
        raise InvalidTermsError(f"payment_day must be between 1 and 31, got {payment_day}")
    return rent


def validate_expense_amount(amount: Any) -> Decimal:
    """Check an expense amount and return it as a decimal."""
    value = to_decimal(amount, "amount")
    if value <= 0:
        raise InvalidTermsError(f"expense amount must be > 0, got {value}")
    return value
