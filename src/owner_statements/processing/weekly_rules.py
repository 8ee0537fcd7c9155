"""Legacy weekly statement for a single property and payout week.

Differs from the unified calculation in a few places:

- Commission is charged once on the week's total revenue.
- Tech and insurance fees are amortized monthly amounts.
- Revenue is the gross amount, not client revenue.
- Expenses are summed by signed amount.
- The owner payout is floored at zero.
"""

from decimal import Decimal
from typing import Iterable, Optional

from owner_statements.models.expense import Expense
from owner_statements.models.listing import OwnerProfile, PropertyRuleProfile
from owner_statements.models.reservation import Reservation
from owner_statements.models.statement import (
    CalculationType,
    PayoutWeek,
    ReservationLine,
    Statement,
    StatementPeriod,
    StatementTotals,
)
from owner_statements.processing.fee_schedules import AmortizedMonthlyFeeSchedule
from owner_statements.processing.period_resolver import should_include_reservation_in_week
from owner_statements.processing.rule_pipeline import apply_co_hosting, apply_proration, effective_pm_fee
from owner_statements.processing.statement_assembler import build_internal_notes
from owner_statements.utils.decimal_utils import ZERO, percent_of, round_money, sum_amounts
from owner_statements.utils.logging_config import get_logger

logger = get_logger(__name__)


def calculate_weekly_payout(
    total_revenue: Decimal,
    total_expenses: Decimal,
    pm_commission: Decimal,
    tech_fees: Decimal,
    insurance_fees: Decimal,
    adjustments: Decimal = ZERO,
) -> Decimal:
    """Owner payout for a weekly statement, rounded and never negative."""
    payout = total_revenue - total_expenses - pm_commission - tech_fees - insurance_fees - adjustments
    return max(ZERO, round_money(payout))


def _weekly_line(reservation: Reservation, profile: PropertyRuleProfile, rate: Decimal) -> ReservationLine:
    original = reservation.gross_amount
    revenue, co_hosted = apply_co_hosting(original, profile.co_hosting)
    revenue, prorated, reason = apply_proration(revenue, reservation.nights or 0, profile.proration)
    if prorated:
        revenue = round_money(revenue)
    commission = percent_of(revenue, rate)
    return ReservationLine(
        reservation=reservation,
        original_revenue=original,
        revenue=revenue,
        commission_rate=rate,
        commission=commission,
        commission_deducted=commission,
        gross_payout=revenue - commission,
        co_hosting_applied=co_hosted,
        is_prorated=prorated,
        proration_reason=reason,
    )


def generate_weekly_statement(
    reservations: Iterable[Reservation],
    expenses: Iterable[Expense],
    profile: PropertyRuleProfile,
    owner: Optional[OwnerProfile],
    payout_week: PayoutWeek,
    fee_schedule: Optional[AmortizedMonthlyFeeSchedule] = None,
    adjustments: Decimal = ZERO,
) -> Statement:
    """Compute the weekly statement for one property.

    Reservations are included when they check out inside the payout week
    and have not been settled by an earlier weekly statement. Expenses
    dated inside the week count when they belong to the property or are
    unassigned.

    Args:
        reservations: Candidate reservations.
        expenses: Candidate expenses.
        profile: Property rule profile.
        owner: Owner profile (fee switches and default commission).
        payout_week: Tuesday-Monday week being settled.
        fee_schedule: Amortized fee schedule; built from ``owner`` when omitted.
        adjustments: Manual adjustments deducted from the payout.

    Returns:
        Statement with ``fee_schedule == "amortized"``.
    """
    schedule = fee_schedule or AmortizedMonthlyFeeSchedule(owner=owner)
    owner_default = owner.default_pm_percentage if owner else None
    # The legacy rate lookup does not look at booking dates
    rate = effective_pm_fee(profile, None, owner_default)

    lines = []
    for res in reservations:
        if res.property_id != profile.property_id:
            continue
        if not should_include_reservation_in_week(res, payout_week):
            continue
        if res.is_processed:
            logger.debug(f"Skipping already processed reservation {res.id}")
            continue
        lines.append(_weekly_line(res, profile, rate))

    week_expenses = [
        exp
        for exp in expenses
        if payout_week.contains(exp.date) and exp.property_id in (None, profile.property_id)
    ]

    total_revenue = round_money(sum_amounts(line.revenue for line in lines))
    total_expenses = round_money(sum_amounts(exp.amount for exp in week_expenses))
    pm_commission = round_money(percent_of(total_revenue, rate))
    tech_fees = schedule.tech_fee(profile)
    insurance_fees = schedule.insurance_fee(profile)
    owner_payout = calculate_weekly_payout(
        total_revenue, total_expenses, pm_commission, tech_fees, insurance_fees, adjustments
    )

    logger.info(
        f"Weekly statement for property {profile.property_id} "
        f"({payout_week.start}..{payout_week.end}): {len(lines)} reservations, "
        f"revenue={total_revenue}, payout={owner_payout}"
    )

    totals = StatementTotals(
        total_revenue=total_revenue,
        total_expenses=total_expenses,
        total_upsells=ZERO,
        pm_commission=pm_commission,
        pm_percentage=rate,
        tech_fees=tech_fees,
        insurance_fees=insurance_fees,
        total_cleaning_fee=ZERO,
        owner_payout=owner_payout,
        property_count=1,
        adjustments=round_money(adjustments),
    )
    return Statement(
        period=StatementPeriod(payout_week.start, payout_week.end, CalculationType.CHECKOUT),
        property_ids=(profile.property_id,),
        reservations=tuple(lines),
        expenses=tuple(week_expenses),
        totals=totals,
        internal_notes=build_internal_notes([profile]),
        fee_schedule=schedule.name,
    )
