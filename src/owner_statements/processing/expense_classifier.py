"""Expense classification and cross-source duplicate detection."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Iterable, Mapping, Optional

from owner_statements.models.expense import DuplicateWarning, Expense
from owner_statements.models.listing import PropertyRuleProfile
from owner_statements.utils.date_utils import is_date_in_range
from owner_statements.utils.decimal_utils import CENTS, ZERO
from owner_statements.utils.logging_config import get_logger

logger = get_logger(__name__)

LL_COVER_MARKERS = ("ll cover", "llcover")
CLEANING_MARKER = "cleaning"
SUPPLIES_MARKER = "supplies"
UPSELL_TAG = "upsell"


@dataclass
class ExpenseClassification:
    """Result of a single classification pass over an expense list.

    Attributes:
        filtered_expenses: Expenses that count toward the statement.
        ll_cover_expenses: Landlord-cover expenses, listed but not totalled.
        pass_through_expenses: Cleaning/supplies costs skipped because the
            property passes cleaning through to guests.
        total_expenses: Sum of absolute cost amounts.
        total_upsells: Signed sum of upsell amounts.
    """

    filtered_expenses: list[Expense] = field(default_factory=list)
    ll_cover_expenses: list[Expense] = field(default_factory=list)
    pass_through_expenses: list[Expense] = field(default_factory=list)
    total_expenses: Decimal = ZERO
    total_upsells: Decimal = ZERO


def _lower(value: Optional[str]) -> str:
    return (value or "").lower()


def is_ll_cover_expense(expense: Expense) -> bool:
    """Landlord-cover expense: flagged by the source, or tagged in its text fields."""
    if expense.ll_cover:
        return True
    fields = (_lower(expense.description), _lower(expense.vendor), _lower(expense.category))
    return any(marker in text for text in fields for marker in LL_COVER_MARKERS)


def is_cleaning_or_supplies_expense(expense: Expense) -> bool:
    """Category, type or description mentions cleaning or supplies."""
    fields = (_lower(expense.category), _lower(expense.type), _lower(expense.description))
    return any(marker in text for text in fields for marker in (CLEANING_MARKER, SUPPLIES_MARKER))


def is_cleaning_expense(expense: Expense) -> bool:
    """Category, type or description mentions cleaning."""
    fields = (_lower(expense.category), _lower(expense.type), _lower(expense.description))
    return any(CLEANING_MARKER in text for text in fields)


def is_upsell(expense: Expense) -> bool:
    """Positive amounts are credits; an explicit upsell tag counts regardless of sign."""
    return (
        expense.amount > 0
        or _lower(expense.type) == UPSELL_TAG
        or _lower(expense.category) == UPSELL_TAG
    )


def _has_cleaning_pass_through(
    property_id: Optional[int],
    listing_info: Mapping[int, PropertyRuleProfile],
) -> bool:
    if property_id is None:
        return False
    profile = listing_info.get(property_id)
    return bool(profile and profile.cleaning_fee_pass_through)


def classify_expenses(
    expenses: Iterable[Expense],
    property_ids: Iterable[int],
    period_start: date,
    period_end: date,
    listing_info: Mapping[int, PropertyRuleProfile],
) -> ExpenseClassification:
    """Split expenses into counted, landlord-cover and pass-through groups.

    Each expense goes through these checks in order:

    1. Dropped when assigned to a property outside ``property_ids``.
       Unassigned expenses (no property) are kept.
    2. Dropped when dated outside the inclusive period.
    3. Landlord-cover expenses are listed separately and not totalled.
    4. Cleaning/supplies expenses of pass-through properties are skipped.
    5. Everything else counts: upsells add their signed amount to
       ``total_upsells``, costs add their absolute amount to ``total_expenses``.

    Args:
        expenses: Expenses from every source.
        property_ids: Properties covered by the statement.
        period_start: First day of the period.
        period_end: Last day of the period.
        listing_info: Rule profiles keyed by property id.

    Returns:
        Classification with unrounded totals.
    """
    targets = {int(pid) for pid in property_ids}
    result = ExpenseClassification()
    seen = 0

    for expense in expenses:
        seen += 1
        if expense.property_id is not None and expense.property_id not in targets:
            continue
        if not is_date_in_range(expense.date, period_start, period_end):
            continue

        if is_ll_cover_expense(expense):
            logger.debug(f"LL cover expense {expense.id}: {expense.description[:40]}")
            result.ll_cover_expenses.append(expense)
            continue

        if is_cleaning_or_supplies_expense(expense) and _has_cleaning_pass_through(
            expense.property_id, listing_info
        ):
            logger.debug(f"Pass-through cleaning/supplies expense {expense.id} skipped")
            result.pass_through_expenses.append(expense)
            continue

        result.filtered_expenses.append(expense)
        if is_upsell(expense):
            result.total_upsells += expense.amount
        else:
            result.total_expenses += abs(expense.amount)

    logger.info(
        f"Classified {seen} expenses: {len(result.filtered_expenses)} counted, "
        f"{len(result.ll_cover_expenses)} LL cover, "
        f"{len(result.pass_through_expenses)} pass-through"
    )
    return result


class ExpenseDeduplicator:
    """Flags probable duplicates between two expense sources.

    A pair is a probable duplicate when:
    - Amounts agree within one cent
    - Dates are at most ``date_tolerance_days`` apart
    - One description contains the other (case-insensitive)

    A record is never compared against itself (same source and id).
    Duplicates are reported for manual review, never removed.
    """

    def __init__(self, amount_tolerance: Decimal = CENTS, date_tolerance_days: int = 1):
        """Initialize deduplicator.

        Args:
            amount_tolerance: Max absolute amount difference.
            date_tolerance_days: Max date difference in days.
        """
        self.amount_tolerance = amount_tolerance
        self.date_tolerance_days = date_tolerance_days

    def detect_duplicates(
        self,
        first: Iterable[Expense],
        second: Iterable[Expense],
    ) -> list[DuplicateWarning]:
        """Compare every expense in ``first`` with every expense in ``second``.

        Args:
            first: Expenses from one source (e.g. accounting).
            second: Expenses from another source (e.g. uploads).

        Returns:
            One warning per matching pair, in input order.
        """
        second_list = list(second)
        warnings = []
        for exp1 in first:
            for exp2 in second_list:
                if self._are_duplicates(exp1, exp2):
                    logger.debug(
                        f"Potential duplicate: {exp1.description!r} ({exp1.source}) vs "
                        f"{exp2.description!r} ({exp2.source})"
                    )
                    warnings.append(DuplicateWarning(expense1=exp1, expense2=exp2, confidence="high"))

        logger.info(f"Found {len(warnings)} potential duplicate expenses")
        return warnings

    def _are_duplicates(self, exp1: Expense, exp2: Expense) -> bool:
        if exp1.source == exp2.source and exp1.id == exp2.id:
            return False

        if abs(exp1.amount - exp2.amount) > self.amount_tolerance:
            return False

        if abs((exp1.date - exp2.date).days) > self.date_tolerance_days:
            return False

        desc1 = exp1.description.lower().strip()
        desc2 = exp2.description.lower().strip()
        return desc1 in desc2 or desc2 in desc1


def detect_duplicates(
    first: Iterable[Expense],
    second: Iterable[Expense],
    date_tolerance_days: int = 1,
) -> list[DuplicateWarning]:
    """Convenience function to flag duplicates between two expense sources.

    Args:
        first: Expenses from one source.
        second: Expenses from another source.
        date_tolerance_days: Max date difference in days.

    Returns:
        Duplicate warnings for manual review.
    """
    return ExpenseDeduplicator(date_tolerance_days=date_tolerance_days).detect_duplicates(first, second)
