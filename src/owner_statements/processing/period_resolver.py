"""Statement period resolution: payout weeks and frequency-based windows."""

from datetime import date, timedelta
from enum import Enum
from typing import Optional

from owner_statements.errors import ValidationError
from owner_statements.models.reservation import Reservation
from owner_statements.models.statement import (
    TUESDAY,
    CalculationType,
    PayoutWeek,
    StatementPeriod,
    is_payout_week_shape,
)
from owner_statements.utils.date_utils import parse_iso_date
from owner_statements.utils.logging_config import get_logger

logger = get_logger(__name__)


class Frequency(Enum):
    """Statement frequency tags used by owner schedules."""

    WEEKLY = "weekly"
    BI_WEEKLY = "bi-weekly"
    MONTHLY = "monthly"

    @classmethod
    def parse(cls, value: object) -> "Frequency":
        """Parse a frequency tag ("WEEKLY", "BI-WEEKLY A", "biweekly", "monthly").

        Raises:
            ValidationError: If the tag is unknown.
        """
        if isinstance(value, Frequency):
            return value
        text = str(value or "").strip().lower().replace("_", "-")
        # The A/B suffix only picks which Monday the email goes out on
        if text.startswith("bi-weekly") or text.startswith("biweekly"):
            return cls.BI_WEEKLY
        try:
            return cls(text)
        except ValueError:
            raise ValidationError(
                f"Unknown statement frequency '{value}'",
                value=value,
                valid_values=[f.value for f in cls],
            ) from None


def resolve_payout_week(reference: date) -> PayoutWeek:
    """Return the Tuesday-Monday payout week containing ``reference``.

    Tuesday through Saturday resolve to this week's Tuesday; Sunday and
    Monday belong to the week that started the previous Tuesday.

    Args:
        reference: Any calendar date.

    Returns:
        The payout week.
    """
    # weekday(): Monday=0, Tuesday=1, ... Sunday=6
    offset = (reference.weekday() - TUESDAY) % 7
    start = reference - timedelta(days=offset)
    return PayoutWeek(start=start, end=start + timedelta(days=6))


def is_valid_payout_week(start: object, end: object) -> bool:
    """Check that a window is a Tuesday-to-Monday payout week.

    Args:
        start: Window start (date or ISO string).
        end: Window end (date or ISO string).

    Returns:
        True only for a Tuesday start and the Monday six days later.
    """
    return is_payout_week_shape(
        parse_iso_date(start, "start date"),
        parse_iso_date(end, "end date"),
    )


def get_current_payout_week(today: Optional[date] = None) -> PayoutWeek:
    """Payout week containing today."""
    return resolve_payout_week(today or date.today())


def get_previous_payout_week(today: Optional[date] = None) -> PayoutWeek:
    """Payout week containing the date one week ago."""
    return resolve_payout_week((today or date.today()) - timedelta(days=7))


def should_include_reservation_in_week(reservation: Reservation, week: PayoutWeek) -> bool:
    """A reservation belongs to the week in which it checks out (inclusive)."""
    return week.start <= reservation.check_out <= week.end


def validate_period(
    start: object,
    end: object,
    calculation_type: object = CalculationType.CHECKOUT,
) -> StatementPeriod:
    """Build a statement period from arbitrary start and end dates.

    Calendar and checkout statements may start on any weekday; the only
    constraint is ``start <= end``.

    Raises:
        InvalidDateError: If a date string is malformed.
        ValidationError: If start is after end.
        InvalidCalculationTypeError: For an unknown calculation type.
    """
    return StatementPeriod(
        start=parse_iso_date(start, "start date"),
        end=parse_iso_date(end, "end date"),
        calculation_type=CalculationType.parse(calculation_type),
    )


def statement_period_for_frequency(
    frequency: object,
    today: Optional[date] = None,
    calculation_type: object = CalculationType.CHECKOUT,
) -> StatementPeriod:
    """Window covered by a scheduled statement sent on ``today``.

    - weekly: the Monday-Sunday week ending on the most recent Sunday
    - bi-weekly: the fourteen days ending on that Sunday
    - monthly: the previous calendar month

    Args:
        frequency: Frequency enum or tag string.
        today: Send date (defaults to the current date).
        calculation_type: Calculation type for the resulting period.

    Returns:
        The statement period.
    """
    freq = Frequency.parse(frequency)
    today = today or date.today()

    if freq is Frequency.MONTHLY:
        end = today.replace(day=1) - timedelta(days=1)
        start = end.replace(day=1)
    else:
        # Sunday is weekday 6; a Sunday send date closes on itself
        days_since_sunday = (today.weekday() + 1) % 7
        end = today - timedelta(days=days_since_sunday)
        span = 6 if freq is Frequency.WEEKLY else 13
        start = end - timedelta(days=span)

    logger.debug(f"Resolved {freq.value} statement period {start}..{end} for {today}")
    return StatementPeriod(start=start, end=end, calculation_type=CalculationType.parse(calculation_type))
