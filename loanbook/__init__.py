"""Loan accrual and rental portfolio tracking."""

__version__ = "0.1.0"
