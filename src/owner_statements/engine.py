"""Statement calculation entry point.

One call takes a fixed input snapshot and returns one statement. Nothing
is shared between calls, so independent calculations can run in parallel.
"""

from typing import Iterable, Mapping, Optional

from owner_statements.config import Config
from owner_statements.errors import MissingPropertyProfileError, ValidationError
from owner_statements.models.expense import DuplicateWarning, Expense
from owner_statements.models.listing import PropertyRuleProfile
from owner_statements.models.reservation import Reservation
from owner_statements.models.statement import Statement
from owner_statements.processing.aggregator import aggregate, check_cleaning_mismatch
from owner_statements.processing.expense_classifier import classify_expenses
from owner_statements.processing.fee_schedules import FeeSchedule
from owner_statements.processing.period_resolver import validate_period
from owner_statements.processing.reservation_filter import filter_reservations
from owner_statements.processing.rule_pipeline import RulePipeline
from owner_statements.processing.statement_assembler import assemble_statement
from owner_statements.utils.logging_config import LogContext, get_logger

logger = get_logger(__name__)


class StatementEngine:
    """Computes owner statements.

    Stages:
    1. Validate the period and property profiles
    2. Select reservations
    3. Classify expenses
    4. Apply per-reservation rules
    5. Aggregate totals and check cleaning counts
    6. Assemble the statement

    Any error aborts the whole calculation; no partial statement is returned.
    """

    def __init__(self, settings: Optional[Config] = None, fee_schedule: Optional[FeeSchedule] = None):
        """Initialize engine.

        Args:
            settings: Application configuration (defaults when omitted).
            fee_schedule: Fee schedule overriding the configured one.
        """
        self.settings = settings or Config()
        self.fee_schedule = fee_schedule or self.settings.fees.build_schedule()

    def calculate(
        self,
        reservations: Iterable[Reservation],
        expenses: Iterable[Expense],
        listing_info: Mapping[int, PropertyRuleProfile],
        property_ids: Iterable[int],
        start_date: object,
        end_date: object,
        calculation_type: object = "checkout",
        duplicate_warnings: Iterable[DuplicateWarning] = (),
    ) -> Statement:
        """Calculate a statement for a set of properties and a period.

        Args:
            reservations: Normalized reservations (calendar mode expects
                them already prorated).
            expenses: Normalized expenses from every source.
            listing_info: Rule profiles keyed by property id.
            property_ids: Properties covered by the statement.
            start_date: First day (date or ISO string).
            end_date: Last day (date or ISO string).
            calculation_type: ``checkout`` or ``calendar``.
            duplicate_warnings: Duplicates found while loading expenses.

        Returns:
            The computed statement. The owner payout may be negative.

        Raises:
            ValidationError: For malformed dates, an empty property list,
                or an unknown calculation type.
            MissingPropertyProfileError: If a property has no rule profile.
        """
        period = validate_period(start_date, end_date, calculation_type)
        targets = self._validate_properties(property_ids, listing_info)

        with LogContext(logger, "statement calculation", period=period.display, properties=targets):
            selected = filter_reservations(reservations, targets, period.start, period.end, period.calculation_type)
            classification = classify_expenses(expenses, targets, period.start, period.end, listing_info)

            pipeline = RulePipeline(
                listing_info,
                period.end,
                period.calculation_type,
                owner_default_pm=self.settings.defaults.pm_percentage,
            )
            lines = pipeline.apply_all(selected)

            totals = aggregate(lines, classification, targets, listing_info, self.fee_schedule)
            mismatch = check_cleaning_mismatch(
                lines,
                classification.filtered_expenses + classification.pass_through_expenses,
                targets,
                listing_info,
            )

            statement = assemble_statement(
                period=period,
                property_ids=targets,
                lines=lines,
                classification=classification,
                totals=totals,
                listing_info=listing_info,
                duplicate_warnings=duplicate_warnings,
                cleaning_mismatch_warning=mismatch,
                fee_schedule=self.fee_schedule.name,
            )

        logger.info(
            f"Statement {period.display} for properties {targets}: "
            f"payout={statement.owner_payout}"
        )
        return statement

    def _validate_properties(
        self,
        property_ids: Iterable[int],
        listing_info: Mapping[int, PropertyRuleProfile],
    ) -> list[int]:
        try:
            targets = [int(pid) for pid in property_ids]
        except (TypeError, ValueError) as e:
            raise ValidationError(f"Property ids must be integers: {e}") from e
        if not targets:
            raise ValidationError("At least one property id is required")

        for pid in targets:
            if pid not in listing_info:
                raise MissingPropertyProfileError(pid)
        return targets


def calculate_statement(
    reservations: Iterable[Reservation],
    expenses: Iterable[Expense],
    listing_info: Mapping[int, PropertyRuleProfile],
    property_ids: Iterable[int],
    start_date: object,
    end_date: object,
    calculation_type: object = "checkout",
    duplicate_warnings: Iterable[DuplicateWarning] = (),
    settings: Optional[Config] = None,
) -> Statement:
    """Convenience function to calculate a statement.

    Args:
        reservations: Normalized reservations.
        expenses: Normalized expenses.
        listing_info: Rule profiles keyed by property id.
        property_ids: Properties covered by the statement.
        start_date: First day of the period.
        end_date: Last day of the period.
        calculation_type: ``checkout`` or ``calendar``.
        duplicate_warnings: Duplicates found while loading expenses.
        settings: Application configuration.

    Returns:
        The computed statement.
    """
    engine = StatementEngine(settings)
    return engine.calculate(
        reservations,
        expenses,
        listing_info,
        property_ids,
        start_date,
        end_date,
        calculation_type,
        duplicate_warnings,
    )
