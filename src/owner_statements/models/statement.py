"""Statement output models: periods, per-reservation lines, warnings, totals."""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional

from owner_statements.errors import InvalidCalculationTypeError, InvalidPayoutWeekError, ValidationError
from owner_statements.models.expense import DuplicateWarning, Expense
from owner_statements.models.reservation import Reservation
from owner_statements.utils.decimal_utils import ZERO

TUESDAY = 1
MONDAY = 0


class CalculationType(Enum):
    """How reservations are assigned to a statement period."""

    CHECKOUT = "checkout"  # Reservations checking out inside the period
    CALENDAR = "calendar"  # Overlapping reservations, prorated upstream

    @classmethod
    def parse(cls, value: object) -> "CalculationType":
        """Parse a calculation type string.

        Raises:
            InvalidCalculationTypeError: If the value is not a known type.
        """
        if isinstance(value, CalculationType):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidCalculationTypeError(
                f"Unknown calculation type '{value}'",
                value=value,
                valid_values=[t.value for t in cls],
            ) from None


def is_payout_week_shape(start: date, end: date) -> bool:
    """Tuesday start, Monday end, exactly six days apart."""
    return (
        start.weekday() == TUESDAY
        and end.weekday() == MONDAY
        and end == start + timedelta(days=6)
    )


@dataclass(frozen=True)
class PayoutWeek:
    """A Tuesday-to-Monday settlement window."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if not is_payout_week_shape(self.start, self.end):
            raise InvalidPayoutWeekError(
                f"{self.start}..{self.end} is not a Tuesday-Monday payout week",
                value=(self.start, self.end),
            )

    def contains(self, d: date) -> bool:
        return self.start <= d <= self.end

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


@dataclass(frozen=True)
class StatementPeriod:
    """An arbitrary inclusive statement window."""

    start: date
    end: date
    calculation_type: CalculationType = CalculationType.CHECKOUT

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValidationError(
                f"Statement period start {self.start} is after end {self.end}",
                value=(self.start, self.end),
            )

    @property
    def display(self) -> str:
        return f"{self.start.isoformat()} to {self.end.isoformat()}"

    def contains(self, d: date) -> bool:
        return self.start <= d <= self.end


@dataclass(frozen=True)
class ReservationLine:
    """A reservation annotated with every rule adjustment applied to it.

    Amounts are unrounded; rounding happens on the statement totals.

    Attributes:
        reservation: Derived reservation copy (source record untouched).
        original_revenue: Revenue before co-hosting and proration.
        revenue: Revenue after co-hosting and proration.
        co_hosting_applied: Whether the co-hosting split changed revenue.
        is_prorated: Whether long-stay proration applied.
        proration_reason: Explanation when prorated.
        commission_rate: Effective PM commission percent.
        commission: Commission at the effective rate (reported even when waived).
        commission_deducted: Commission actually deducted (0 when waived).
        waiver_active: Whether a commission waiver covered this statement.
        tax_added: Tax passed through to the owner (0 when not passed).
        is_cohost_airbnb: Airbnb booking on a co-hosted-on-Airbnb property.
        cleaning_pass_through: Reverse-engineered cleaning cost deducted.
        gross_payout: This reservation's contribution to the owner payout.
    """

    reservation: Reservation
    original_revenue: Decimal
    revenue: Decimal
    commission_rate: Decimal
    commission: Decimal
    commission_deducted: Decimal
    gross_payout: Decimal
    co_hosting_applied: bool = False
    is_prorated: bool = False
    proration_reason: Optional[str] = None
    waiver_active: bool = False
    tax_added: Decimal = ZERO
    is_cohost_airbnb: bool = False
    cleaning_pass_through: Decimal = ZERO

    @property
    def counts_toward_revenue(self) -> bool:
        """Co-hosted Airbnb revenue is paid to the owner directly."""
        return not self.is_cohost_airbnb

    def to_dict(self) -> dict[str, object]:
        data = self.reservation.to_dict()
        data.update({
            "original_revenue": str(self.original_revenue),
            "revenue": str(self.revenue),
            "co_hosting_applied": self.co_hosting_applied,
            "is_prorated": self.is_prorated,
            "proration_reason": self.proration_reason,
            "commission_rate": str(self.commission_rate),
            "commission": str(self.commission),
            "commission_deducted": str(self.commission_deducted),
            "waiver_active": self.waiver_active,
            "tax_added": str(self.tax_added),
            "is_cohost_airbnb": self.is_cohost_airbnb,
            "cleaning_pass_through": str(self.cleaning_pass_through),
            "gross_payout": str(self.gross_payout),
        })
        return data


@dataclass(frozen=True)
class CleaningMismatchWarning:
    """Pass-through reservations and cleaning expenses do not line up.

    Informational only; the statement is still produced.
    """

    reservation_count: int
    cleaning_expense_count: int
    type: str = "cleaning_mismatch"

    @property
    def difference(self) -> int:
        """Reservations minus cleaning expenses."""
        return self.reservation_count - self.cleaning_expense_count

    @property
    def message(self) -> str:
        return (
            f"Cleaning expense count ({self.cleaning_expense_count}) does not match "
            f"reservation count ({self.reservation_count})"
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "type": self.type,
            "message": self.message,
            "reservation_count": self.reservation_count,
            "cleaning_expense_count": self.cleaning_expense_count,
            "difference": self.difference,
        }


@dataclass(frozen=True)
class StatementTotals:
    """Statement totals, rounded to cents."""

    total_revenue: Decimal
    total_expenses: Decimal
    total_upsells: Decimal
    pm_commission: Decimal
    pm_percentage: Decimal
    tech_fees: Decimal
    insurance_fees: Decimal
    total_cleaning_fee: Decimal
    owner_payout: Decimal
    property_count: int
    adjustments: Decimal = ZERO

    def to_dict(self) -> dict[str, object]:
        return {
            "total_revenue": str(self.total_revenue),
            "total_expenses": str(self.total_expenses),
            "total_upsells": str(self.total_upsells),
            "pm_commission": str(self.pm_commission),
            "pm_percentage": str(self.pm_percentage),
            "tech_fees": str(self.tech_fees),
            "insurance_fees": str(self.insurance_fees),
            "total_cleaning_fee": str(self.total_cleaning_fee),
            "owner_payout": str(self.owner_payout),
            "property_count": self.property_count,
            "adjustments": str(self.adjustments),
        }


@dataclass(frozen=True)
class Statement:
    """A computed owner statement.

    Statements are never updated; recalculation produces a new one.
    """

    period: StatementPeriod
    property_ids: tuple[int, ...]
    reservations: tuple[ReservationLine, ...]
    expenses: tuple[Expense, ...]
    totals: StatementTotals
    ll_cover_expenses: tuple[Expense, ...] = ()
    pass_through_expenses: tuple[Expense, ...] = ()
    duplicate_warnings: tuple[DuplicateWarning, ...] = ()
    cleaning_mismatch_warning: Optional[CleaningMismatchWarning] = None
    internal_notes: Optional[str] = None
    fee_schedule: str = "flat"

    @property
    def owner_payout(self) -> Decimal:
        return self.totals.owner_payout

    @property
    def has_warnings(self) -> bool:
        return bool(self.duplicate_warnings or self.cleaning_mismatch_warning)

    def to_dict(self) -> dict[str, object]:
        """JSON-ready export for persistence and rendering."""
        return {
            "period": {
                "start": self.period.start.isoformat(),
                "end": self.period.end.isoformat(),
                "calculation_type": self.period.calculation_type.value,
            },
            "property_ids": list(self.property_ids),
            "reservations": [line.to_dict() for line in self.reservations],
            "expenses": [e.to_dict() for e in self.expenses],
            "ll_cover_expenses": [e.to_dict() for e in self.ll_cover_expenses],
            "pass_through_expenses": [e.to_dict() for e in self.pass_through_expenses],
            "duplicate_warnings": [w.to_dict() for w in self.duplicate_warnings],
            "cleaning_mismatch_warning": (
                self.cleaning_mismatch_warning.to_dict() if self.cleaning_mismatch_warning else None
            ),
            "totals": self.totals.to_dict(),
            "internal_notes": self.internal_notes,
            "fee_schedule": self.fee_schedule,
        }
