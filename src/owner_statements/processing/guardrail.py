"""Delivery guardrail deciding whether a statement may be emailed."""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from owner_statements.models.statement import Statement
from owner_statements.utils.decimal_utils import ZERO, format_currency
from owner_statements.utils.logging_config import get_logger

logger = get_logger(__name__)


class GuardrailReason(Enum):
    ZERO_ACTIVITY = "ZERO_ACTIVITY"
    NEGATIVE_BALANCE = "NEGATIVE_BALANCE"
    POSITIVE_BALANCE = "POSITIVE_BALANCE"


@dataclass(frozen=True)
class GuardrailResult:
    """Send verdict for one statement.

    Attributes:
        can_send: Whether the statement may be delivered.
        reason: Why.
        message: Human-readable explanation.
        owner_payout: Payout the verdict was based on.
        total_revenue: Revenue the verdict was based on.
        flagged_for_review: Whether someone has to look at it.
    """

    can_send: bool
    reason: GuardrailReason
    message: str
    owner_payout: Decimal
    total_revenue: Decimal
    flagged_for_review: bool = False

    def to_dict(self) -> dict[str, object]:
        return {
            "can_send": self.can_send,
            "reason": self.reason.value,
            "message": self.message,
            "owner_payout": str(self.owner_payout),
            "total_revenue": str(self.total_revenue),
            "flagged_for_review": self.flagged_for_review,
        }


def check_send_guardrail(statement: Statement) -> GuardrailResult:
    """Decide whether a computed statement can be sent to the owner.

    Statements with no activity are held back quietly. Negative balances
    are blocked and flagged for manual review; a negative payout is a valid
    result, not a calculation error.
    """
    payout = statement.totals.owner_payout
    revenue = statement.totals.total_revenue

    if revenue == ZERO and payout == ZERO:
        result = GuardrailResult(
            can_send=False,
            reason=GuardrailReason.ZERO_ACTIVITY,
            message="No revenue and no payout for this period",
            owner_payout=payout,
            total_revenue=revenue,
        )
    elif payout < ZERO:
        result = GuardrailResult(
            can_send=False,
            reason=GuardrailReason.NEGATIVE_BALANCE,
            message=f"Owner payout is negative ({format_currency(payout)}); manual review required",
            owner_payout=payout,
            total_revenue=revenue,
            flagged_for_review=True,
        )
    else:
        result = GuardrailResult(
            can_send=True,
            reason=GuardrailReason.POSITIVE_BALANCE,
            message=f"Owner payout {format_currency(payout)}",
            owner_payout=payout,
            total_revenue=revenue,
        )

    logger.info(f"Guardrail for {statement.period.display}: {result.reason.value}")
    return result
