"""Row records for spreadsheet views of loans and rentals.

Rows carry plain values; laying them out in a file format is left to
the consumer.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from loanbook.accrual import as_calendar_date, loan_figures, round_money
from loanbook.models import RentPaymentStatus
from loanbook.store.base import PortfolioRepository

LOAN_STATUS_PAID = "Recebido"
LOAN_STATUS_ACTIVE = "Ativo"
LOAN_STATUS_OVERDUE = "Atrasado"

RENT_STATUS_PAID = "Pago"
RENT_STATUS_PENDING = "Pendente"


@dataclass(frozen=True)
class LoanRow:
    display_id: str
    client: str
    principal: Decimal
    monthly_rate: Decimal
    days: int
    duration: str
    interest: Decimal
    total: Decimal
    status: str
    start_date: date
    due_date: date
    paid_date: date | None


@dataclass(frozen=True)
class RentalRow:
    property_name: str
    reference_month: date
    rent_value: Decimal
    status: str
    paid_date: date | None
    expenses: Decimal
    net_profit: Decimal


def loan_rows(
    repo: PortfolioRepository,
    today: date,
    active_only: bool = False,
) -> list[LoanRow]:
    """One row per loan with the same figures the detail views show.

    ``active_only`` keeps unpaid loans, overdue ones included.
    """
    today = as_calendar_date(today)
    rows = []
    for loan in repo.list_loans():
        if active_only and loan.is_paid:
            continue

        figures = loan_figures(loan, today)
        if loan.is_paid:
            status = LOAN_STATUS_PAID
        elif figures.is_overdue:
            status = LOAN_STATUS_OVERDUE
        else:
            status = LOAN_STATUS_ACTIVE

        rows.append(LoanRow(
            display_id=loan.display_id,
            client=loan.borrower_name,
            principal=round_money(loan.principal),
            monthly_rate=loan.monthly_interest_rate,
            days=figures.total_days,
            duration=figures.duration.label,
            interest=round_money(figures.interest_amount),
            total=round_money(figures.total_payable),
            status=status,
            start_date=loan.start_date,
            due_date=loan.due_date,
            paid_date=loan.payment_date,
        ))
    return rows


def rental_rows(repo: PortfolioRepository) -> list[RentalRow]:
    """One row per property and month with any payment or expense.

    Months are listed newest first. Rent counts only once paid.
    """
    properties = repo.list_properties()
    property_ids = {prop.property_id for prop in properties}
    payments = [p for p in repo.list_rent_payments() if p.property_id in property_ids]
    expenses = [e for e in repo.list_expenses() if e.property_id in property_ids]

    months = {p.reference_month for p in payments} | {e.reference_month for e in expenses}

    rows = []
    for month in sorted(months, reverse=True):
        for prop in properties:
            month_payments = [
                p for p in payments
                if p.property_id == prop.property_id and p.reference_month == month
            ]
            month_expenses = [
                e for e in expenses
                if e.property_id == prop.property_id and e.reference_month == month
            ]
            if not month_payments and not month_expenses:
                continue

            paid = next((p for p in month_payments if p.status == RentPaymentStatus.PAID), None)
            if paid is not None:
                rent = paid.amount_paid if paid.amount_paid is not None else prop.rent_amount
            else:
                rent = Decimal("0")
            total_expenses = sum((e.amount for e in month_expenses), Decimal("0"))

            rows.append(RentalRow(
                property_name=prop.name,
                reference_month=month,
                rent_value=round_money(rent),
                status=RENT_STATUS_PAID if paid is not None else RENT_STATUS_PENDING,
                paid_date=paid.paid_on if paid is not None else None,
                expenses=round_money(total_expenses),
                net_profit=round_money(rent - total_expenses),
            ))
    return rows
