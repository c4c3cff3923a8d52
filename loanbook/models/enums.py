"""Enumeration types for portfolio entities."""

from enum import Enum


class LoanStatus(str, Enum):
    ACTIVE = "active"
    PAID = "paid"


class RentPaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"


class AlertLevel(str, Enum):
    WARNING = "warning"
    DANGER = "danger"
