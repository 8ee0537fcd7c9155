"""Reservation selection for a statement period."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable

from owner_statements.models.reservation import Reservation
from owner_statements.models.statement import CalculationType
from owner_statements.utils.date_utils import days_between
from owner_statements.utils.logging_config import get_logger

logger = get_logger(__name__)

# Monetary fields scaled by calendar proration. The cleaning fee is charged
# whole in the statement holding the checkout, so it is left unscaled.
PRORATED_FIELDS = (
    "base_rate",
    "platform_fees",
    "client_revenue",
    "client_tax_responsibility",
    "client_payout",
    "gross_amount",
)


@dataclass(frozen=True)
class ProrationFactor:
    """Share of a stay that falls inside a calendar statement window."""

    factor: Decimal
    days_in_period: int
    total_days: int


def filter_reservations(
    reservations: Iterable[Reservation],
    property_ids: Iterable[int],
    period_start: date,
    period_end: date,
    calculation_type: object = CalculationType.CHECKOUT,
) -> list[Reservation]:
    """Select the reservations that belong to a statement.

    A reservation is kept when its property is in ``property_ids``, its
    status is confirmed (legacy ``accepted`` included), and, for checkout
    statements, it checks out inside the inclusive period. Calendar
    statements receive reservations already constrained and prorated
    upstream, so no date check is applied.

    Args:
        reservations: Candidate reservations.
        property_ids: Properties covered by the statement.
        period_start: First day of the period.
        period_end: Last day of the period.
        calculation_type: ``checkout`` or ``calendar``.

    Returns:
        Kept reservations, sorted by check-in (input order breaks ties).
    """
    calc_type = CalculationType.parse(calculation_type)
    targets = {int(pid) for pid in property_ids}
    candidates = list(reservations)

    kept = []
    for res in candidates:
        if res.property_id not in targets:
            continue
        if calc_type is CalculationType.CHECKOUT and not period_start <= res.check_out <= period_end:
            continue
        if not res.status.is_financial:
            logger.debug(f"Skipping reservation {res.id} with status {res.status.value}")
            continue
        kept.append(res)

    # sorted() is stable, so equal check-in dates keep their input order
    kept = sorted(kept, key=lambda r: r.check_in)
    logger.info(
        f"Selected {len(kept)} of {len(candidates)} reservations "
        f"({calc_type.value}, {period_start}..{period_end})"
    )
    return kept


def calculate_proration(reservation: Reservation, period_start: date, period_end: date) -> ProrationFactor:
    """Compute the share of a stay that overlaps a calendar window.

    Overlap runs from the later of check-in and period start to the earlier
    of check-out and period end. Days are floored at 0 and the total at 1.

    Args:
        reservation: The overlapping reservation.
        period_start: First day of the window.
        period_end: Last day of the window.

    Returns:
        Proration factor with its day counts.
    """
    overlap_start = max(reservation.check_in, period_start)
    overlap_end = min(reservation.check_out, period_end)

    total_days = max(1, days_between(reservation.check_in, reservation.check_out))
    days_in_period = max(0, days_between(overlap_start, overlap_end))

    return ProrationFactor(
        factor=Decimal(days_in_period) / Decimal(total_days),
        days_in_period=days_in_period,
        total_days=total_days,
    )


def prorate_for_calendar(
    reservations: Iterable[Reservation],
    period_start: date,
    period_end: date,
) -> list[Reservation]:
    """Scale overlapping reservations to the part of the stay inside the window.

    This is the pre-processing a calendar statement expects before
    ``filter_reservations``. Source records are left untouched.

    Returns:
        Derived reservation copies with scaled amounts and proration notes.
    """
    prorated = []
    for res in reservations:
        proration = calculate_proration(res, period_start, period_end)
        changes: dict[str, object] = {
            name: getattr(res, name) * proration.factor
            for name in PRORATED_FIELDS
            if getattr(res, name) is not None
        }
        changes.update(
            proration_factor=proration.factor,
            proration_days=proration.days_in_period,
            total_days=proration.total_days,
            proration_note=f"{proration.days_in_period}/{proration.total_days} days in period",
        )
        logger.debug(
            f"Proration for reservation {res.id}: "
            f"{proration.days_in_period}/{proration.total_days} days"
        )
        prorated.append(res.with_changes(**changes))

    logger.info(f"Applied calendar proration to {len(prorated)} reservations")
    return prorated
