"""Monthly dashboard figures and due-date alerts."""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from loanbook.accrual import as_calendar_date, days_until_due, loan_figures, round_money
from loanbook.dates import due_date_in_month, month_start, next_month
from loanbook.models import AlertLevel, LoanStatus, Property, RentPaymentStatus
from loanbook.store.base import PortfolioRepository

logger = logging.getLogger(__name__)

# Alert ordering: higher scores are shown first
RENT_OVERDUE_SCORE = 100
LOAN_OVERDUE_SCORE = 90
RENT_DUE_SOON_SCORE = 50
RENT_NEXT_MONTH_SCORE = 45
LOAN_DUE_SOON_SCORE = 40


@dataclass(frozen=True)
class Alert:
    """Dashboard alert for an upcoming or missed due date."""

    alert_id: str
    level: AlertLevel
    title: str
    subtitle: str
    target_id: str  # Loan or property the alert points to
    sort_score: int


@dataclass
class DashboardSummary:
    """Figures for the calendar month containing the reference date."""

    reference_month: date
    rental_revenue: Decimal = Decimal("0")
    rental_expenses: Decimal = Decimal("0")
    loan_revenue: Decimal = Decimal("0")
    realized_interest: Decimal = Decimal("0")
    projected_interest: Decimal = Decimal("0")
    pending_rentals: int = 0
    alerts: list[Alert] = field(default_factory=list)

    @property
    def rental_net_profit(self) -> Decimal:
        return self.rental_revenue - self.rental_expenses

    @property
    def total_loan_interest(self) -> Decimal:
        """Interest realized this month plus interest contracted to fall due."""
        return self.realized_interest + self.projected_interest

    @property
    def total_net_profit(self) -> Decimal:
        return self.rental_net_profit + self.total_loan_interest

    def totals(self) -> dict[str, Decimal]:
        """All monetary figures rounded to cents."""
        return {
            "rental_revenue": round_money(self.rental_revenue),
            "rental_expenses": round_money(self.rental_expenses),
            "rental_net_profit": round_money(self.rental_net_profit),
            "loan_revenue": round_money(self.loan_revenue),
            "realized_interest": round_money(self.realized_interest),
            "projected_interest": round_money(self.projected_interest),
            "total_loan_interest": round_money(self.total_loan_interest),
            "total_net_profit": round_money(self.total_net_profit),
        }


def _same_month(value: date | None, reference_month: date) -> bool:
    return value is not None and month_start(value) == reference_month


def _days_label(days: int) -> str:
    if days == 0:
        return "vence hoje"
    if days == 1:
        return "vence em 1 dia"
    return f"vence em {days} dias"


def build_dashboard(
    repo: PortfolioRepository,
    today: date,
    alert_window_days: int = 3,
) -> DashboardSummary:
    """Aggregate rental and loan figures for the month containing ``today``.

    Parameters
    ----------
    repo : PortfolioRepository
        Source of loans, properties, payments and expenses.
    today : date
        Reference date; also decides overdue and due-soon alerts.
    alert_window_days : int
        Days ahead of a due date that trigger a warning.

    Returns
    -------
    DashboardSummary
        Monthly figures with alerts sorted most urgent first.
    """
    today = as_calendar_date(today)
    reference_month = month_start(today)
    summary = DashboardSummary(reference_month=reference_month)

    properties = {prop.property_id: prop for prop in repo.list_properties()}
    payments = [p for p in repo.list_rent_payments() if p.property_id in properties]
    expenses = [e for e in repo.list_expenses() if e.property_id in properties]

    # Rentals
    for payment in payments:
        if payment.status == RentPaymentStatus.PAID and payment.reference_month == reference_month:
            amount = payment.amount_paid
            if amount is None:
                amount = properties[payment.property_id].rent_amount
            summary.rental_revenue += amount

    for expense in expenses:
        if expense.reference_month == reference_month:
            summary.rental_expenses += expense.amount

    paid_months = {
        (p.property_id, p.reference_month) for p in payments if p.status == RentPaymentStatus.PAID
    }
    for prop in properties.values():
        if not prop.active:
            continue
        is_paid = (prop.property_id, reference_month) in paid_months
        if not is_paid:
            summary.pending_rentals += 1
        alert = _rent_alert(prop, today, reference_month, is_paid, alert_window_days)
        if alert is not None:
            summary.alerts.append(alert)

    # Loans
    for loan in repo.list_loans():
        figures = loan_figures(loan, today)
        if loan.status == LoanStatus.PAID:
            if _same_month(loan.payment_date, reference_month):
                summary.loan_revenue += figures.total_payable
                summary.realized_interest += figures.interest_amount
            continue

        if _same_month(loan.due_date, reference_month):
            summary.projected_interest += figures.interest_amount

        days = days_until_due(loan.due_date, today)
        if days < 0:
            summary.alerts.append(Alert(
                alert_id=f"loan-{loan.loan_id}",
                level=AlertLevel.DANGER,
                title="Empréstimo Atrasado",
                subtitle=loan.borrower_name,
                target_id=loan.loan_id,
                sort_score=LOAN_OVERDUE_SCORE,
            ))
        elif days <= alert_window_days:
            summary.alerts.append(Alert(
                alert_id=f"loan-{loan.loan_id}",
                level=AlertLevel.WARNING,
                title="Vence Hoje" if days == 0 else "Empréstimo Vencendo",
                subtitle=f"{loan.borrower_name} - {loan.due_date:%d/%m/%Y}",
                target_id=loan.loan_id,
                sort_score=LOAN_DUE_SOON_SCORE,
            ))

    summary.alerts.sort(key=lambda a: a.sort_score, reverse=True)
    logger.debug(
        "Dashboard for %s: %d alerts, %d pending rentals",
        reference_month, len(summary.alerts), summary.pending_rentals,
    )
    return summary


def _rent_alert(
    prop: Property,
    today: date,
    reference_month: date,
    is_paid: bool,
    alert_window_days: int,
) -> Alert | None:
    if not is_paid:
        due = due_date_in_month(prop.payment_day, reference_month)
        days = (due - today).days
        if days < 0:
            return Alert(
                alert_id=f"prop-{prop.property_id}",
                level=AlertLevel.DANGER,
                title="Aluguel Vencido",
                subtitle=f"{prop.name} - Venceu em {due:%d/%m/%Y}",
                target_id=prop.property_id,
                sort_score=RENT_OVERDUE_SCORE,
            )
        if days <= alert_window_days:
            return Alert(
                alert_id=f"prop-{prop.property_id}",
                level=AlertLevel.WARNING,
                title="Vence Hoje" if days == 0 else "Próximo do Vencimento",
                subtitle=f"{prop.name} {due:%d/%m} ({_days_label(days)})",
                target_id=prop.property_id,
                sort_score=RENT_DUE_SOON_SCORE,
            )
        return None

    # Current month settled: look ahead to next month's due date
    due = due_date_in_month(prop.payment_day, next_month(reference_month))
    days = (due - today).days
    if 0 <= days <= alert_window_days:
        return Alert(
            alert_id=f"prop-{prop.property_id}-next",
            level=AlertLevel.WARNING,
            title="Próximo Vencimento",
            subtitle=f"{prop.name} {due:%d/%m} ({_days_label(days)})",
            target_id=prop.property_id,
            sort_score=RENT_NEXT_MONTH_SCORE,
        )
    return None
