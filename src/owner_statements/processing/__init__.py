"""Statement calculation pipeline components."""

from owner_statements.processing.period_resolver import (
    Frequency,
    resolve_payout_week,
    statement_period_for_frequency,
    validate_period,
)
from owner_statements.processing.reservation_filter import (
    filter_reservations,
    prorate_for_calendar,
)
from owner_statements.processing.expense_classifier import (
    ExpenseClassification,
    ExpenseDeduplicator,
    classify_expenses,
    detect_duplicates,
)
from owner_statements.processing.rule_pipeline import RulePipeline
from owner_statements.processing.fee_schedules import (
    AmortizedMonthlyFeeSchedule,
    FlatFeeSchedule,
)
from owner_statements.processing.aggregator import (
    aggregate,
    check_cleaning_mismatch,
)
from owner_statements.processing.statement_assembler import assemble_statement
from owner_statements.processing.weekly_rules import generate_weekly_statement
from owner_statements.processing.guardrail import (
    GuardrailResult,
    check_send_guardrail,
)

__all__ = [
    "Frequency",
    "resolve_payout_week",
    "statement_period_for_frequency",
    "validate_period",
    "filter_reservations",
    "prorate_for_calendar",
    "ExpenseClassification",
    "ExpenseDeduplicator",
    "classify_expenses",
    "detect_duplicates",
    "RulePipeline",
    "AmortizedMonthlyFeeSchedule",
    "FlatFeeSchedule",
    "aggregate",
    "check_cleaning_mismatch",
    "assemble_statement",
    "generate_weekly_statement",
    "GuardrailResult",
    "check_send_guardrail",
]
