"""Per-reservation financial rules.

Rules run in a fixed order, each consuming the previous result:

1. Co-hosting split
2. Long-stay proration
3. Effective commission rate
4. Commission waiver
5. Tax pass-through
6. Co-host-on-Airbnb exclusion
7. Cleaning-fee pass-through

The source reservation is never modified; each result is a derived
``ReservationLine``.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Mapping, Optional

from owner_statements.errors import MissingPropertyProfileError
from owner_statements.models.listing import (
    DEFAULT_PM_PERCENTAGE,
    CoHostingRule,
    PropertyRuleProfile,
    ProrationRule,
)
from owner_statements.models.reservation import Reservation
from owner_statements.models.statement import CalculationType, ReservationLine
from owner_statements.utils.decimal_utils import HUNDRED, ZERO, ceil_to_multiple, percent_of
from owner_statements.utils.logging_config import get_logger

logger = get_logger(__name__)

CLEANING_ROUNDING_STEP = Decimal("5")


def apply_co_hosting(revenue: Decimal, rule: Optional[CoHostingRule]) -> tuple[Decimal, bool]:
    """Apply a co-hosting split to revenue.

    Args:
        revenue: Revenue before the split.
        rule: Co-hosting rule, or None.

    Returns:
        Tuple of (adjusted revenue floored at zero, whether the rule applied).
    """
    if rule is None or not rule.enabled:
        return revenue, False

    adjusted = revenue
    if rule.percentage:
        adjusted = percent_of(adjusted, rule.percentage)
    if rule.fixed_fee:
        adjusted -= rule.fixed_fee
    return max(ZERO, adjusted), True


def apply_proration(
    revenue: Decimal,
    nights: int,
    rule: Optional[ProrationRule],
) -> tuple[Decimal, bool, Optional[str]]:
    """Apply long-stay proration.

    Stays of at least ``rule.min_nights`` nights keep ``rule.percentage``
    percent of revenue, capped at ``rule.max_amount``.

    Returns:
        Tuple of (revenue, is_prorated, reason).
    """
    if rule is None or not rule.enabled or nights < rule.min_nights:
        return revenue, False, None

    prorated = revenue
    if rule.percentage:
        prorated = percent_of(prorated, rule.percentage)
    if rule.max_amount and prorated > rule.max_amount:
        prorated = rule.max_amount

    pct = rule.percentage or HUNDRED
    reason = f"Long stay ({nights} nights) - {pct}% applied"
    return prorated, True, reason


def effective_pm_fee(
    profile: PropertyRuleProfile,
    created_at: Optional[datetime],
    owner_default: Optional[Decimal] = None,
) -> Decimal:
    """Resolve the commission percent for one reservation.

    The property's rate applies, falling back to the owner default and then
    15%. When a new fee schedule is enabled with both a start date and a
    percentage, bookings created on or after the start date use the new rate.
    Bookings without a creation timestamp keep the base rate.

    Args:
        profile: Property rule profile.
        created_at: Booking creation timestamp.
        owner_default: Owner-level default percent.

    Returns:
        Commission percent.
    """
    base = profile.pm_fee_percentage
    if base is None:
        base = owner_default if owner_default is not None else DEFAULT_PM_PERCENTAGE

    if (
        not profile.new_pm_fee_enabled
        or profile.new_pm_fee_start_date is None
        or profile.new_pm_fee_percentage is None
        or created_at is None
    ):
        return base

    return profile.new_pm_fee_percentage if created_at >= profile.new_pm_fee_start_date else base


def is_waiver_active(profile: PropertyRuleProfile, period_end: date) -> bool:
    """Whether a commission waiver covers a statement ending on ``period_end``.

    The expiry date is inclusive: a statement ending on the expiry day is
    still waived.
    """
    if not profile.waive_commission:
        return False
    if profile.waive_commission_until is None:
        return True
    return period_end <= profile.waive_commission_until


def should_add_tax(profile: PropertyRuleProfile, reservation: Reservation) -> bool:
    """Tax passes through unless disregarded, or remitted by Airbnb.

    Airbnb bookings pass tax only when ``airbnb_pass_through_tax`` is set.
    """
    if profile.disregard_tax:
        return False
    return not reservation.is_airbnb or profile.airbnb_pass_through_tax


def reverse_cleaning_fee(guest_paid: Decimal, commission_rate: Decimal) -> Decimal:
    """Back the commission markup out of a guest-paid cleaning fee.

    The result is rounded up to the next $5, e.g. $173 at 15% gives
    173 / 1.15 = 150.43, rounded up to $155.
    """
    if guest_paid <= 0:
        return ZERO
    base = guest_paid / (1 + commission_rate / HUNDRED)
    return ceil_to_multiple(base, CLEANING_ROUNDING_STEP)


class RulePipeline:
    """Applies property rules to the reservations of one statement."""

    def __init__(
        self,
        listing_info: Mapping[int, PropertyRuleProfile],
        period_end: date,
        calculation_type: object = CalculationType.CHECKOUT,
        owner_default_pm: Optional[Decimal] = None,
    ):
        """Initialize pipeline.

        Args:
            listing_info: Rule profiles keyed by property id.
            period_end: Last day of the statement period.
            calculation_type: ``checkout`` or ``calendar``.
            owner_default_pm: Owner-level default commission percent.
        """
        self.listing_info = listing_info
        self.period_end = period_end
        self.calculation_type = CalculationType.parse(calculation_type)
        self.owner_default_pm = owner_default_pm

    def profile_for(self, reservation: Reservation) -> PropertyRuleProfile:
        try:
            return self.listing_info[reservation.property_id]
        except KeyError:
            raise MissingPropertyProfileError(reservation.property_id) from None

    def apply(self, reservation: Reservation) -> ReservationLine:
        """Run every rule for one reservation.

        Args:
            reservation: Reservation already selected for the statement.

        Returns:
            Annotated line carrying this reservation's gross payout.

        Raises:
            MissingPropertyProfileError: If the property has no rule profile.
        """
        profile = self.profile_for(reservation)
        original_revenue = reservation.revenue_base

        revenue, co_hosted = apply_co_hosting(original_revenue, profile.co_hosting)
        revenue, prorated, reason = apply_proration(revenue, reservation.nights or 0, profile.proration)

        rate = effective_pm_fee(profile, reservation.created_at, self.owner_default_pm)
        commission = percent_of(revenue, rate)

        waived = is_waiver_active(profile, self.period_end)
        deducted = ZERO if waived else commission

        add_tax = should_add_tax(profile, reservation)
        tax = reservation.tax_base if add_tax else ZERO

        cohost_airbnb = reservation.is_airbnb and profile.is_cohost_on_airbnb

        cleaning = self._cleaning_pass_through(reservation, profile, rate)

        if cohost_airbnb:
            # Airbnb pays the owner directly; only the PM cut flows through here
            gross = ZERO - deducted - cleaning
            tax = ZERO
        else:
            gross = revenue - deducted + tax - cleaning

        derived = reservation
        if revenue != original_revenue:
            derived = reservation.with_changes(
                client_revenue=revenue if reservation.has_detailed_finance else reservation.client_revenue,
                gross_amount=reservation.gross_amount if reservation.has_detailed_finance else revenue,
            )

        logger.debug(
            f"Reservation {reservation.id}: revenue {original_revenue} -> {revenue}, "
            f"rate {rate}%, waived={waived}, tax={tax}, cleaning={cleaning}, gross={gross}"
        )
        return ReservationLine(
            reservation=derived,
            original_revenue=original_revenue,
            revenue=revenue,
            commission_rate=rate,
            commission=commission,
            commission_deducted=deducted,
            gross_payout=gross,
            co_hosting_applied=co_hosted,
            is_prorated=prorated,
            proration_reason=reason,
            waiver_active=waived,
            tax_added=tax,
            is_cohost_airbnb=cohost_airbnb,
            cleaning_pass_through=cleaning,
        )

    def apply_all(self, reservations: list[Reservation]) -> list[ReservationLine]:
        lines = [self.apply(res) for res in reservations]
        logger.info(f"Applied property rules to {len(lines)} reservations")
        return lines

    def _cleaning_pass_through(
        self,
        reservation: Reservation,
        profile: PropertyRuleProfile,
        rate: Decimal,
    ) -> Decimal:
        if not profile.cleaning_fee_pass_through:
            return ZERO
        # In calendar mode the cleaning happens at checkout, possibly after this window
        if self.calculation_type is CalculationType.CALENDAR and reservation.check_out > self.period_end:
            return ZERO

        guest_paid = reservation.cleaning_fee
        if guest_paid is None:
            guest_paid = profile.cleaning_fee if profile.cleaning_fee is not None else ZERO
        return reverse_cleaning_fee(guest_paid, rate)
