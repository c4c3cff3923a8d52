"""Domain models for loans and rental properties."""

from loanbook.models.enums import AlertLevel, LoanStatus, RentPaymentStatus
from loanbook.models.loan import (
    DAYS_PER_MONTH,
    Duration,
    Loan,
    LoanAccrualResult,
    LoanTerms,
)
from loanbook.models.property import Expense, Property, RentPayment

__all__ = [
    "DAYS_PER_MONTH",
    "AlertLevel",
    "Duration",
    "Expense",
    "Loan",
    "LoanAccrualResult",
    "LoanStatus",
    "LoanTerms",
    "Property",
    "RentPayment",
    "RentPaymentStatus",
]
