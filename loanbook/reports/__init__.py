"""Dashboard and spreadsheet views over a portfolio repository."""

from loanbook.reports.dashboard import Alert, DashboardSummary, build_dashboard
from loanbook.reports.spreadsheet import LoanRow, RentalRow, loan_rows, rental_rows

__all__ = [
    "Alert",
    "DashboardSummary",
    "LoanRow",
    "RentalRow",
    "build_dashboard",
    "loan_rows",
    "rental_rows",
]
