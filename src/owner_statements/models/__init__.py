"""Data models for reservations, expenses, property rules, and statements."""

from owner_statements.models.expense import DuplicateWarning, Expense
from owner_statements.models.listing import (
    CoHostingRule,
    OwnerProfile,
    PropertyRuleProfile,
    ProrationRule,
)
from owner_statements.models.reservation import Reservation, ReservationStatus
from owner_statements.models.statement import (
    CalculationType,
    CleaningMismatchWarning,
    PayoutWeek,
    ReservationLine,
    Statement,
    StatementPeriod,
    StatementTotals,
)

__all__ = [
    "Reservation",
    "ReservationStatus",
    "Expense",
    "DuplicateWarning",
    "PropertyRuleProfile",
    "CoHostingRule",
    "ProrationRule",
    "OwnerProfile",
    "CalculationType",
    "CleaningMismatchWarning",
    "PayoutWeek",
    "ReservationLine",
    "Statement",
    "StatementPeriod",
    "StatementTotals",
]
