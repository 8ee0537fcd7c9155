"""Tech and insurance fee schedules.

Two conventions are in use:

- Flat: a fixed amount per property per statement ($50 tech, $25 insurance).
- Amortized: a monthly per-property amount spread over 4.33 weeks, used by
  weekly statements. Each fee can be switched off per owner.
"""

from decimal import Decimal
from typing import Iterable, Mapping, Optional

from owner_statements.models.listing import OwnerProfile, PropertyRuleProfile
from owner_statements.utils.decimal_utils import ZERO, round_money
from owner_statements.utils.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TECH_FEE = Decimal("50")
DEFAULT_INSURANCE_FEE = Decimal("25")
WEEKS_PER_MONTH = Decimal("4.33")


class FeeSchedule:
    """Base class for fee schedules."""

    name = "base"

    def tech_fee(self, profile: Optional[PropertyRuleProfile]) -> Decimal:
        raise NotImplementedError

    def insurance_fee(self, profile: Optional[PropertyRuleProfile]) -> Decimal:
        raise NotImplementedError

    def totals(
        self,
        property_ids: Iterable[int],
        listing_info: Mapping[int, PropertyRuleProfile],
    ) -> tuple[Decimal, Decimal]:
        """Sum the fees for every property on a statement.

        Returns:
            Tuple of (tech fees, insurance fees).
        """
        tech = ZERO
        insurance = ZERO
        for pid in property_ids:
            profile = listing_info.get(int(pid))
            tech += self.tech_fee(profile)
            insurance += self.insurance_fee(profile)
        logger.debug(f"{self.name} fee schedule: tech={tech}, insurance={insurance}")
        return tech, insurance


class FlatFeeSchedule(FeeSchedule):
    """Fixed fees per property per statement."""

    name = "flat"

    def __init__(self, tech_fee: Decimal = DEFAULT_TECH_FEE, insurance_fee: Decimal = DEFAULT_INSURANCE_FEE):
        self._tech_fee = Decimal(tech_fee)
        self._insurance_fee = Decimal(insurance_fee)

    def tech_fee(self, profile: Optional[PropertyRuleProfile]) -> Decimal:
        return self._tech_fee

    def insurance_fee(self, profile: Optional[PropertyRuleProfile]) -> Decimal:
        return self._insurance_fee


class AmortizedMonthlyFeeSchedule(FeeSchedule):
    """Monthly per-property fees spread over the weeks of a month.

    A property's own ``tech_fee_amount`` / ``insurance_fee_amount`` overrides
    the configured monthly default. Fees are zero when the owner has them
    disabled.
    """

    name = "amortized"

    def __init__(
        self,
        owner: Optional[OwnerProfile] = None,
        monthly_tech_fee: Decimal = DEFAULT_TECH_FEE,
        monthly_insurance_fee: Decimal = DEFAULT_INSURANCE_FEE,
        weeks_per_month: Decimal = WEEKS_PER_MONTH,
    ):
        """Initialize schedule.

        Args:
            owner: Owner whose fee switches apply (None = both enabled).
            monthly_tech_fee: Default monthly tech fee per property.
            monthly_insurance_fee: Default monthly insurance fee per property.
            weeks_per_month: Divisor turning monthly amounts into weekly ones.
        """
        if Decimal(weeks_per_month) <= 0:
            raise ValueError(f"weeks_per_month must be positive, got {weeks_per_month}")
        self.owner = owner
        self.monthly_tech_fee = Decimal(monthly_tech_fee)
        self.monthly_insurance_fee = Decimal(monthly_insurance_fee)
        self.weeks_per_month = Decimal(weeks_per_month)

    def tech_fee(self, profile: Optional[PropertyRuleProfile]) -> Decimal:
        if self.owner is not None and not self.owner.tech_fee_enabled:
            return ZERO
        monthly = profile.tech_fee_amount if profile and profile.tech_fee_amount is not None else self.monthly_tech_fee
        return round_money(monthly / self.weeks_per_month)

    def insurance_fee(self, profile: Optional[PropertyRuleProfile]) -> Decimal:
        if self.owner is not None and not self.owner.insurance_fee_enabled:
            return ZERO
        monthly = (
            profile.insurance_fee_amount
            if profile and profile.insurance_fee_amount is not None
            else self.monthly_insurance_fee
        )
        return round_money(monthly / self.weeks_per_month)
