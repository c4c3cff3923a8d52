"""Rental property models."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from loanbook.models.enums import RentPaymentStatus


@dataclass
class Property:
    """Rented real estate unit (imovel)."""

    property_id: str
    name: str
    rent_amount: Decimal
    active: bool = True
    payment_day: int = 10  # Day of month rent is due (1-31)
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class RentPayment:
    """Rent received for one property and month."""

    payment_id: str
    property_id: str
    reference_month: date  # Always the first day of the month
    status: RentPaymentStatus
    paid_on: date | None = None
    amount_paid: Decimal | None = None  # Rent snapshot at payment time
    created_at: datetime | None = None


@dataclass
class Expense:
    """Property expense booked against a month."""

    expense_id: str
    property_id: str
    reference_month: date
    description: str
    amount: Decimal
    category: str | None = None
    created_at: datetime | None = None
