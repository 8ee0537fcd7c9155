"""Property rule profiles ("listing info") and owner profiles."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from owner_statements.errors import ValidationError
from owner_statements.models.base import first_present, parse_bool
from owner_statements.utils.date_utils import parse_date, parse_datetime
from owner_statements.utils.decimal_utils import HUNDRED, ZERO, optional_decimal

DEFAULT_PM_PERCENTAGE = Decimal("15")
DEFAULT_MIN_NIGHTS_FOR_PRORATION = 28


def _check_percentage(name: str, value: Optional[Decimal], property_id: object) -> None:
    if value is not None and not ZERO <= value <= HUNDRED:
        raise ValidationError(
            f"Property {property_id}: {name} must be between 0 and 100, got {value}",
            value=value,
        )


@dataclass(frozen=True)
class CoHostingRule:
    """Revenue split with another management entity.

    Attributes:
        enabled: Whether the split applies.
        percentage: Share of revenue kept, in percent (None or 0 = no split).
        fixed_fee: Flat amount deducted after the split (None or 0 = none).
    """

    enabled: bool = False
    percentage: Optional[Decimal] = None
    fixed_fee: Optional[Decimal] = None

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "CoHostingRule":
        return cls(
            enabled=parse_bool(data.get("enabled")),
            percentage=optional_decimal(data.get("percentage")),
            fixed_fee=optional_decimal(first_present(data, "fixed_fee", "fixedFee")),
        )


@dataclass(frozen=True)
class ProrationRule:
    """Long-stay revenue proration.

    Attributes:
        enabled: Whether long stays are prorated.
        min_nights: Minimum nights for a stay to qualify.
        percentage: Share of revenue kept, in percent (None or 0 = unchanged).
        max_amount: Cap on the prorated amount (None or 0 = uncapped).
    """

    enabled: bool = False
    min_nights: int = DEFAULT_MIN_NIGHTS_FOR_PRORATION
    percentage: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "ProrationRule":
        min_nights = first_present(data, "min_nights", "minNightsForProration")
        return cls(
            enabled=parse_bool(first_present(data, "enabled", "prorationEnabled")),
            # 0 falls back to the default, as the legacy settings screen stored 0 for "unset"
            min_nights=int(min_nights) if min_nights else DEFAULT_MIN_NIGHTS_FOR_PRORATION,  # type: ignore[call-overload]
            percentage=optional_decimal(first_present(data, "percentage", "prorationPercentage")),
            max_amount=optional_decimal(first_present(data, "max_amount", "maxProratedAmount")),
        )


@dataclass(frozen=True)
class PropertyRuleProfile:
    """Per-property financial configuration consumed by the rule pipeline.

    Attributes:
        property_id: Listing identifier.
        name: Listing name from the booking source.
        display_name: Custom display name.
        nickname: Short internal name.
        pm_fee_percentage: PM commission percent (None = owner default).
        new_pm_fee_enabled: Whether a new fee schedule is configured.
        new_pm_fee_percentage: Commission percent under the new schedule.
        new_pm_fee_start_date: Bookings created on or after this apply the new rate.
        co_hosting: Co-hosting split, if any.
        proration: Long-stay proration rule, if any.
        disregard_tax: Never pass tax through to the owner.
        airbnb_pass_through_tax: Pass Airbnb tax through (Airbnb does not remit it).
        cleaning_fee_pass_through: Owner pays the guest cleaning fee instead
            of actual cleaning expenses.
        cleaning_fee: Default guest cleaning fee when a booking has none.
        waive_commission: PM commission waived.
        waive_commission_until: Last day of the waiver (inclusive); None = indefinite.
        is_cohost_on_airbnb: Airbnb pays the owner directly.
        tech_fee_amount: Legacy monthly tech fee override.
        insurance_fee_amount: Legacy monthly insurance fee override.
        internal_notes: Notes snapshotted onto statements.
    """

    property_id: int
    name: str = ""
    display_name: Optional[str] = None
    nickname: Optional[str] = None

    pm_fee_percentage: Optional[Decimal] = DEFAULT_PM_PERCENTAGE
    new_pm_fee_enabled: bool = False
    new_pm_fee_percentage: Optional[Decimal] = None
    new_pm_fee_start_date: Optional[datetime] = None

    co_hosting: Optional[CoHostingRule] = None
    proration: Optional[ProrationRule] = None

    disregard_tax: bool = False
    airbnb_pass_through_tax: bool = False
    cleaning_fee_pass_through: bool = False
    cleaning_fee: Optional[Decimal] = None

    waive_commission: bool = False
    waive_commission_until: Optional[date] = None
    is_cohost_on_airbnb: bool = False

    tech_fee_amount: Optional[Decimal] = None
    insurance_fee_amount: Optional[Decimal] = None
    internal_notes: Optional[str] = None

    def __post_init__(self) -> None:
        _check_percentage("pm_fee_percentage", self.pm_fee_percentage, self.property_id)
        _check_percentage("new_pm_fee_percentage", self.new_pm_fee_percentage, self.property_id)

    @property
    def label(self) -> str:
        """Name shown on statements."""
        return self.nickname or self.display_name or self.name or str(self.property_id)

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "PropertyRuleProfile":
        """Create a profile from configuration storage or listings.yaml.

        Raises:
            ValidationError: If the id is missing or a percentage is invalid.
        """
        property_id = first_present(data, "property_id", "id")
        if property_id is None:
            raise ValidationError("Listing profile requires an id")

        co_hosting_data = first_present(data, "co_hosting", "coHosting")
        proration_data = first_present(data, "proration", "specialRules")
        waive_until = first_present(data, "waive_commission_until", "waiveCommissionUntil")

        pm_fee = optional_decimal(first_present(data, "pm_fee_percentage", "pmFeePercentage", "pmPercentage"))
        return cls(
            property_id=int(property_id),  # type: ignore[call-overload]
            name=str(data.get("name", "")),
            display_name=first_present(data, "display_name", "displayName"),  # type: ignore[arg-type]
            nickname=data.get("nickname"),  # type: ignore[arg-type]
            pm_fee_percentage=pm_fee,
            new_pm_fee_enabled=parse_bool(first_present(data, "new_pm_fee_enabled", "newPmFeeEnabled")),
            new_pm_fee_percentage=optional_decimal(
                first_present(data, "new_pm_fee_percentage", "newPmFeePercentage")
            ),
            new_pm_fee_start_date=parse_datetime(first_present(data, "new_pm_fee_start_date", "newPmFeeStartDate")),
            co_hosting=CoHostingRule.from_dict(co_hosting_data) if isinstance(co_hosting_data, dict) else None,
            proration=ProrationRule.from_dict(proration_data) if isinstance(proration_data, dict) else None,
            disregard_tax=parse_bool(first_present(data, "disregard_tax", "disregardTax")),
            airbnb_pass_through_tax=parse_bool(first_present(data, "airbnb_pass_through_tax", "airbnbPassThroughTax")),
            cleaning_fee_pass_through=parse_bool(
                first_present(data, "cleaning_fee_pass_through", "cleaningFeePassThrough")
            ),
            cleaning_fee=optional_decimal(first_present(data, "cleaning_fee", "cleaningFee")),
            waive_commission=parse_bool(first_present(data, "waive_commission", "waiveCommission")),
            waive_commission_until=parse_date(waive_until) if waive_until else None,
            is_cohost_on_airbnb=parse_bool(first_present(data, "is_cohost_on_airbnb", "isCohostOnAirbnb")),
            tech_fee_amount=optional_decimal(first_present(data, "tech_fee_amount", "techFeeAmount")),
            insurance_fee_amount=optional_decimal(first_present(data, "insurance_fee_amount", "insuranceFeeAmount")),
            internal_notes=first_present(data, "internal_notes", "internalNotes"),  # type: ignore[arg-type]
        )

    def __repr__(self) -> str:
        return f"PropertyRuleProfile(id={self.property_id}, label={self.label!r})"


@dataclass(frozen=True)
class OwnerProfile:
    """Owner-level defaults used by the legacy weekly statement.

    Attributes:
        id: Owner identifier.
        name: Owner name.
        default_pm_percentage: Commission percent when a property sets none.
        tech_fee_enabled: Whether tech fees are charged.
        insurance_fee_enabled: Whether insurance fees are charged.
    """

    id: str
    name: str = ""
    default_pm_percentage: Optional[Decimal] = None
    tech_fee_enabled: bool = True
    insurance_fee_enabled: bool = True

    def __post_init__(self) -> None:
        _check_percentage("default_pm_percentage", self.default_pm_percentage, self.id)

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "OwnerProfile":
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", "")),
            default_pm_percentage=optional_decimal(
                first_present(data, "default_pm_percentage", "defaultPmPercentage")
            ),
            tech_fee_enabled=parse_bool(first_present(data, "tech_fee_enabled", "techFeeEnabled"), True),
            insurance_fee_enabled=parse_bool(
                first_present(data, "insurance_fee_enabled", "insuranceFeeEnabled"), True
            ),
        )
