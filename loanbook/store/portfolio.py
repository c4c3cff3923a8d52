"""In-memory portfolio store with referential integrity."""

import logging
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Any, Callable

from loanbook.accrual import as_calendar_date, close_loan
from loanbook.config import ReportConfig
from loanbook.dates import month_start
from loanbook.exceptions import EntityNotFoundError
from loanbook.models import (
    Expense,
    Loan,
    LoanStatus,
    Property,
    RentPayment,
    RentPaymentStatus,
)
from loanbook.store.base import (
    draft_loan,
    revise_loan,
    validate_expense_amount,
    validate_rent,
)

logger = logging.getLogger(__name__)


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class PortfolioStore:
    """In-memory store for loans, properties, rent payments and expenses.

    Loan finalization is serialized by a lock so a loan is marked as paid
    at most once even with concurrent callers.
    """

    clock: Callable[[], date] = field(default_factory=lambda: ReportConfig().today)

    # Primary entities
    loans: dict[str, Loan] = field(default_factory=dict)
    properties: dict[str, Property] = field(default_factory=dict)
    rent_payments: dict[str, RentPayment] = field(default_factory=dict)
    expenses: dict[str, Expense] = field(default_factory=dict)

    # Relationship indexes
    _property_payments: dict[str, list[str]] = field(default_factory=dict)
    _property_expenses: dict[str, list[str]] = field(default_factory=dict)

    _loan_sequence: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    # Loans
    def add_loan(
        self,
        borrower_name: str,
        principal: Any,
        monthly_interest_rate: Any,
        start_date: date | str,
        due_date: date | str,
    ) -> Loan:
        """Validate terms, derive contracted figures and store a new loan."""
        with self._lock:
            loan = draft_loan(
                loan_id=_new_id(),
                borrower_name=borrower_name,
                principal=principal,
                monthly_interest_rate=monthly_interest_rate,
                start_date=start_date,
                due_date=due_date,
                display_id=f"EMP-{self._loan_sequence + 1:04d}",
            )
            self._loan_sequence += 1
            self.loans[loan.loan_id] = loan

        logger.info(
            "Loan %s created for %s: %s at %s%% over %d days",
            loan.display_id, loan.borrower_name, loan.principal,
            loan.monthly_interest_rate, loan.contracted_days,
        )
        return loan

    def get_loan(self, loan_id: str) -> Loan:
        """Get a loan by ID."""
        try:
            return self.loans[loan_id]
        except KeyError:
            raise EntityNotFoundError(f"Loan {loan_id} not found") from None

    def list_loans(self, status: LoanStatus | None = None) -> list[Loan]:
        """All loans in creation order, optionally filtered by status."""
        loans = list(self.loans.values())
        if status is None:
            return loans
        return [loan for loan in loans if loan.status == LoanStatus(status)]

    def update_loan_terms(
        self,
        loan_id: str,
        *,
        borrower_name: str | None = None,
        principal: Any = None,
        monthly_interest_rate: Any = None,
        start_date: date | str | None = None,
        due_date: date | str | None = None,
    ) -> Loan:
        """Edit an active loan; contracted figures follow the new terms."""
        with self._lock:
            loan = revise_loan(
                self.get_loan(loan_id),
                borrower_name=borrower_name,
                principal=principal,
                monthly_interest_rate=monthly_interest_rate,
                start_date=start_date,
                due_date=due_date,
            )
            self.loans[loan_id] = loan

        logger.info("Loan %s terms updated: %d days contracted", loan.display_id, loan.contracted_days)
        return loan

    def mark_loan_paid(self, loan_id: str, payment_date: date | str | None = None) -> Loan:
        """Freeze the final figures of an active loan.

        Raises
        ------
        EntityNotFoundError
            If the loan does not exist.
        InvalidEntityStateError
            If the loan was already paid.
        """
        paid_on = as_calendar_date(payment_date) if payment_date is not None else self.clock()
        with self._lock:
            loan = close_loan(self.get_loan(loan_id), paid_on)
            loan = replace(loan, updated_at=datetime.now())
            self.loans[loan_id] = loan

        logger.info(
            "Loan %s paid on %s: %s interest over %d days",
            loan.display_id, loan.payment_date, loan.final_interest_amount, loan.final_total_days,
        )
        return loan

    def delete_loan(self, loan_id: str) -> None:
        """Delete a loan regardless of its status."""
        with self._lock:
            loan = self.get_loan(loan_id)
            del self.loans[loan_id]
        logger.info("Loan %s deleted (%s)", loan.display_id, loan.status.value)

    # Properties
    def add_property(
        self,
        name: str,
        rent_amount: Any,
        payment_day: int = 10,
        active: bool = True,
    ) -> Property:
        """Add a rental property."""
        rent = validate_rent(rent_amount, payment_day)
        now = datetime.now()
        prop = Property(
            property_id=_new_id(),
            name=name,
            rent_amount=rent,
            active=active,
            payment_day=payment_day,
            created_at=now,
            updated_at=now,
        )
        self.properties[prop.property_id] = prop
        self._property_payments[prop.property_id] = []
        self._property_expenses[prop.property_id] = []
        logger.info("Property %s added with rent %s", prop.name, prop.rent_amount)
        return prop

    def get_property(self, property_id: str) -> Property:
        """Get a property by ID."""
        try:
            return self.properties[property_id]
        except KeyError:
            raise EntityNotFoundError(f"Property {property_id} not found") from None

    def list_properties(self) -> list[Property]:
        """All properties in creation order."""
        return list(self.properties.values())

    def update_property(
        self,
        property_id: str,
        *,
        name: str | None = None,
        rent_amount: Any = None,
        payment_day: int | None = None,
        active: bool | None = None,
    ) -> Property:
        """Edit a property; ``None`` leaves a field unchanged."""
        prop = self.get_property(property_id)
        updates: dict[str, Any] = {}
        if name is not None:
            updates["name"] = name
        if active is not None:
            updates["active"] = active
        if payment_day is not None:
            updates["payment_day"] = payment_day
        if rent_amount is not None or payment_day is not None:
            updates["rent_amount"] = validate_rent(
                rent_amount if rent_amount is not None else prop.rent_amount,
                payment_day if payment_day is not None else prop.payment_day,
            )

        prop = replace(prop, **updates, updated_at=datetime.now())
        self.properties[property_id] = prop
        return prop

    def delete_property(self, property_id: str) -> None:
        """Delete a property together with its payments and expenses."""
        prop = self.get_property(property_id)
        for payment_id in self._property_payments.pop(property_id, []):
            self.rent_payments.pop(payment_id, None)
        for expense_id in self._property_expenses.pop(property_id, []):
            self.expenses.pop(expense_id, None)
        del self.properties[property_id]
        logger.info("Property %s deleted", prop.name)

    # Rent payments
    def receive_rent_payment(
        self, property_id: str, payment_date: date | str | None = None
    ) -> RentPayment:
        """Record the rent of the payment date's month as received.

        The amount paid is a snapshot of the current rent. A month that is
        already paid is left untouched.
        """
        prop = self.get_property(property_id)
        paid_on = as_calendar_date(payment_date) if payment_date is not None else self.clock()
        reference_month = month_start(paid_on)

        existing = self._find_rent_payment(property_id, reference_month)
        if existing is not None and existing.status == RentPaymentStatus.PAID:
            logger.warning("Rent for %s already paid for %s", prop.name, reference_month)
            return existing

        if existing is not None:
            payment = replace(
                existing,
                status=RentPaymentStatus.PAID,
                paid_on=paid_on,
                amount_paid=prop.rent_amount,
            )
        else:
            payment = RentPayment(
                payment_id=_new_id(),
                property_id=property_id,
                reference_month=reference_month,
                status=RentPaymentStatus.PAID,
                paid_on=paid_on,
                amount_paid=prop.rent_amount,
                created_at=datetime.now(),
            )
            self._property_payments[property_id].append(payment.payment_id)

        self.rent_payments[payment.payment_id] = payment
        logger.info("Rent for %s received for %s", prop.name, reference_month)
        return payment

    def add_rent_payment(self, payment: RentPayment) -> None:
        """Store an existing rent payment record (e.g. a pending month)."""
        self.get_property(payment.property_id)
        self.rent_payments[payment.payment_id] = payment
        self._property_payments[payment.property_id].append(payment.payment_id)

    def list_rent_payments(self, property_id: str | None = None) -> list[RentPayment]:
        """Rent payments, optionally for one property."""
        if property_id is None:
            return list(self.rent_payments.values())
        return [self.rent_payments[pid] for pid in self._property_payments.get(property_id, [])]

    def _find_rent_payment(self, property_id: str, reference_month: date) -> RentPayment | None:
        for payment in self.list_rent_payments(property_id):
            if payment.reference_month == reference_month:
                return payment
        return None

    # Expenses
    def add_expense(
        self,
        property_id: str,
        reference_month: date | str,
        description: str,
        amount: Any,
        category: str | None = None,
    ) -> Expense:
        """Book an expense against a property and month."""
        self.get_property(property_id)
        expense = Expense(
            expense_id=_new_id(),
            property_id=property_id,
            reference_month=month_start(reference_month),
            description=description,
            amount=validate_expense_amount(amount),
            category=category,
            created_at=datetime.now(),
        )
        self.expenses[expense.expense_id] = expense
        self._property_expenses[property_id].append(expense.expense_id)
        return expense

    def delete_expense(self, expense_id: str) -> None:
        """Delete an expense."""
        try:
            expense = self.expenses.pop(expense_id)
        except KeyError:
            raise EntityNotFoundError(f"Expense {expense_id} not found") from None
        self._property_expenses[expense.property_id].remove(expense_id)

    def list_expenses(self, property_id: str | None = None) -> list[Expense]:
        """Expenses, optionally for one property."""
        if property_id is None:
            return list(self.expenses.values())
        return [self.expenses[eid] for eid in self._property_expenses.get(property_id, [])]

    def summary(self) -> dict[str, int]:
        """Return summary counts of all entities."""
        return {
            "loans": len(self.loans),
            "active_loans": sum(1 for loan in self.loans.values() if not loan.is_paid),
            "paid_loans": sum(1 for loan in self.loans.values() if loan.is_paid),
            "properties": len(self.properties),
            "rent_payments": len(self.rent_payments),
            "expenses": len(self.expenses),
        }
