"""Build immutable statements from computed totals."""

from typing import Iterable, Mapping, Optional, Sequence

from owner_statements.models.expense import DuplicateWarning
from owner_statements.models.listing import PropertyRuleProfile
from owner_statements.models.statement import (
    CleaningMismatchWarning,
    ReservationLine,
    Statement,
    StatementPeriod,
    StatementTotals,
)
from owner_statements.processing.aggregator import AggregateTotals
from owner_statements.processing.expense_classifier import ExpenseClassification
from owner_statements.utils.decimal_utils import round_money


def build_internal_notes(profiles: Iterable[PropertyRuleProfile]) -> Optional[str]:
    """Join property notes into ``[label]: notes`` blocks.

    Returns:
        Notes separated by blank lines, or None when no property has notes.
    """
    blocks = [f"[{p.label}]: {p.internal_notes}" for p in profiles if p.internal_notes]
    return "\n\n".join(blocks) if blocks else None


def round_totals(totals: AggregateTotals) -> StatementTotals:
    """Round every monetary total to cents (half-up)."""
    return StatementTotals(
        total_revenue=round_money(totals.total_revenue),
        total_expenses=round_money(totals.total_expenses),
        total_upsells=round_money(totals.total_upsells),
        pm_commission=round_money(totals.pm_commission),
        pm_percentage=round_money(totals.pm_percentage),
        tech_fees=round_money(totals.tech_fees),
        insurance_fees=round_money(totals.insurance_fees),
        total_cleaning_fee=round_money(totals.total_cleaning_fee),
        owner_payout=round_money(totals.owner_payout),
        property_count=totals.property_count,
    )


def assemble_statement(
    period: StatementPeriod,
    property_ids: Sequence[int],
    lines: Sequence[ReservationLine],
    classification: ExpenseClassification,
    totals: AggregateTotals,
    listing_info: Mapping[int, PropertyRuleProfile],
    duplicate_warnings: Iterable[DuplicateWarning] = (),
    cleaning_mismatch_warning: Optional[CleaningMismatchWarning] = None,
    fee_schedule: str = "flat",
) -> Statement:
    """Assemble the final statement.

    Pure function: inputs are not modified and rounding happens only here.

    Args:
        period: Statement period.
        property_ids: Properties covered.
        lines: Rule-adjusted reservation lines.
        classification: Classified expenses.
        totals: Unrounded totals.
        listing_info: Rule profiles, used for the internal notes snapshot.
        duplicate_warnings: Probable duplicates found upstream.
        cleaning_mismatch_warning: Cleaning count warning, if any.
        fee_schedule: Name of the fee schedule used.

    Returns:
        Frozen statement.
    """
    profiles = [listing_info[int(pid)] for pid in property_ids if int(pid) in listing_info]
    return Statement(
        period=period,
        property_ids=tuple(int(pid) for pid in property_ids),
        reservations=tuple(lines),
        expenses=tuple(classification.filtered_expenses),
        totals=round_totals(totals),
        ll_cover_expenses=tuple(classification.ll_cover_expenses),
        pass_through_expenses=tuple(classification.pass_through_expenses),
        duplicate_warnings=tuple(duplicate_warnings),
        cleaning_mismatch_warning=cleaning_mismatch_warning,
        internal_notes=build_internal_notes(profiles),
        fee_schedule=fee_schedule,
    )
