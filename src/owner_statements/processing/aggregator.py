"""Statement totals from rule-adjusted reservations and classified expenses."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Sequence

from owner_statements.models.expense import Expense
from owner_statements.models.listing import DEFAULT_PM_PERCENTAGE, PropertyRuleProfile
from owner_statements.models.statement import CleaningMismatchWarning, ReservationLine
from owner_statements.processing.expense_classifier import ExpenseClassification, is_cleaning_expense
from owner_statements.processing.fee_schedules import FeeSchedule, FlatFeeSchedule
from owner_statements.utils.decimal_utils import HUNDRED, ZERO, sum_amounts
from owner_statements.utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class AggregateTotals:
    """Unrounded statement totals."""

    total_revenue: Decimal
    total_expenses: Decimal
    total_upsells: Decimal
    pm_commission: Decimal
    pm_percentage: Decimal
    tech_fees: Decimal
    insurance_fees: Decimal
    total_cleaning_fee: Decimal
    gross_payout: Decimal
    owner_payout: Decimal
    property_count: int


def aggregate(
    lines: Sequence[ReservationLine],
    classification: ExpenseClassification,
    property_ids: Sequence[int],
    listing_info: Mapping[int, PropertyRuleProfile],
    fee_schedule: Optional[FeeSchedule] = None,
) -> AggregateTotals:
    """Sum reservation lines and expenses into statement totals.

    Revenue and commission leave out co-hosted Airbnb bookings. Commission
    is reported at the effective rate even when waived; only the per-line
    gross payouts reflect the waiver. The owner payout is not floored.

    Args:
        lines: Rule-adjusted reservation lines.
        classification: Classified expenses.
        property_ids: Properties covered by the statement.
        listing_info: Rule profiles keyed by property id.
        fee_schedule: Tech/insurance fee strategy (flat by default).

    Returns:
        Unrounded totals.
    """
    schedule = fee_schedule or FlatFeeSchedule()

    counted = [line for line in lines if line.counts_toward_revenue]
    total_revenue = sum_amounts(line.revenue for line in counted)
    pm_commission = sum_amounts(line.commission for line in counted)
    pm_percentage = pm_commission / total_revenue * HUNDRED if total_revenue > 0 else DEFAULT_PM_PERCENTAGE

    tech_fees, insurance_fees = schedule.totals(property_ids, listing_info)
    total_cleaning_fee = sum_amounts(line.cleaning_pass_through for line in lines)

    gross_payout = sum_amounts(line.gross_payout for line in lines)
    owner_payout = gross_payout + classification.total_upsells - classification.total_expenses

    logger.info(
        f"Aggregated {len(lines)} reservations: revenue={total_revenue}, "
        f"commission={pm_commission}, payout={owner_payout}"
    )
    return AggregateTotals(
        total_revenue=total_revenue,
        total_expenses=classification.total_expenses,
        total_upsells=classification.total_upsells,
        pm_commission=pm_commission,
        pm_percentage=pm_percentage,
        tech_fees=tech_fees,
        insurance_fees=insurance_fees,
        total_cleaning_fee=total_cleaning_fee,
        gross_payout=gross_payout,
        owner_payout=owner_payout,
        property_count=len(property_ids),
    )


def check_cleaning_mismatch(
    lines: Iterable[ReservationLine],
    expenses: Iterable[Expense],
    property_ids: Iterable[int],
    listing_info: Mapping[int, PropertyRuleProfile],
) -> Optional[CleaningMismatchWarning]:
    """Compare pass-through reservations with recorded cleaning expenses.

    Only properties with cleaning pass-through are considered. ``expenses``
    should include the cleaning costs skipped during classification, since
    those are the ones expected to match the reservations.

    Returns:
        A warning when counts differ and there is at least one reservation.
    """
    pass_through = {
        int(pid)
        for pid in property_ids
        if listing_info.get(int(pid)) is not None and listing_info[int(pid)].cleaning_fee_pass_through
    }
    if not pass_through:
        return None

    reservation_count = sum(1 for line in lines if line.reservation.property_id in pass_through)
    cleaning_count = sum(
        1 for exp in expenses if exp.property_id in pass_through and is_cleaning_expense(exp)
    )

    if reservation_count == 0 or reservation_count == cleaning_count:
        return None

    warning = CleaningMismatchWarning(reservation_count=reservation_count, cleaning_expense_count=cleaning_count)
    logger.warning(warning.message)
    return warning
