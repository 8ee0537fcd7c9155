"""Tests for the per-reservation rule pipeline."""

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Optional

import pytest

from owner_statements.errors import MissingPropertyProfileError
from owner_statements.models.listing import CoHostingRule, PropertyRuleProfile, ProrationRule
from owner_statements.models.reservation import Reservation
from owner_statements.processing.rule_pipeline import (
    RulePipeline,
    apply_co_hosting,
    apply_proration,
    effective_pm_fee,
    is_waiver_active,
    reverse_cleaning_fee,
    should_add_tax,
)

PERIOD_END = date(2024, 6, 10)


def create_reservation(
    client_revenue: str = "1000",
    tax: str = "80",
    source: str = "VRBO",
    nights: int = 3,
    check_out: date = date(2024, 6, 10),
    cleaning_fee: Optional[str] = None,
    created_at: Optional[datetime] = None,
    property_id: int = 101,
) -> Reservation:
    """Helper to create a Reservation for testing."""
    return Reservation(
        id="R-1",
        property_id=property_id,
        check_in=check_out - timedelta(days=nights),
        check_out=check_out,
        source=source,
        client_revenue=Decimal(client_revenue),
        client_tax_responsibility=Decimal(tax),
        cleaning_fee=Decimal(cleaning_fee) if cleaning_fee is not None else None,
        created_at=created_at,
    )


def create_pipeline(profile: PropertyRuleProfile, calculation_type: str = "checkout") -> RulePipeline:
    """Helper to create a pipeline for a single property."""
    return RulePipeline({profile.property_id: profile}, PERIOD_END, calculation_type)


class TestReverseCleaningFee:
    """Tests for reverse_cleaning_fee."""

    def test_guest_fee_173_at_15_percent(self) -> None:
        """Test the documented example: 173 / 1.15 = 150.43, rounded up to 155."""
        assert reverse_cleaning_fee(Decimal("173"), Decimal("15")) == Decimal("155")

    def test_exact_multiple_not_rounded_up(self) -> None:
        """Test that an exact multiple of 5 stays put."""
        assert reverse_cleaning_fee(Decimal("115"), Decimal("15")) == Decimal("100")

    def test_zero_fee(self) -> None:
        """Test that no guest fee means no deduction."""
        assert reverse_cleaning_fee(Decimal("0"), Decimal("15")) == Decimal("0")

    def test_result_is_plain_whole_dollars(self) -> None:
        """Test that the rounded fee renders without an exponent."""
        assert str(reverse_cleaning_fee(Decimal("115"), Decimal("15"))) == "100"
        assert str(reverse_cleaning_fee(Decimal("173"), Decimal("15"))) == "155"


class TestCoHostingAndProration:
    """Tests for revenue adjustments."""

    def test_co_hosting_split_and_fixed_fee(self) -> None:
        """Test percentage split followed by fixed fee."""
        rule = CoHostingRule(enabled=True, percentage=Decimal("50"), fixed_fee=Decimal("100"))
        assert apply_co_hosting(Decimal("1000"), rule) == (Decimal("400"), True)

    def test_co_hosting_floored_at_zero(self) -> None:
        """Test that a large fixed fee cannot produce negative revenue."""
        rule = CoHostingRule(enabled=True, percentage=Decimal("50"), fixed_fee=Decimal("600"))
        assert apply_co_hosting(Decimal("1000"), rule) == (Decimal("0"), True)

    def test_co_hosting_disabled(self) -> None:
        """Test that a disabled rule leaves revenue unchanged."""
        rule = CoHostingRule(enabled=False, percentage=Decimal("50"))
        assert apply_co_hosting(Decimal("1000"), rule) == (Decimal("1000"), False)

    def test_co_hosting_zero_values_are_unset(self) -> None:
        """Test that a stored 0 percentage or fee leaves revenue unchanged."""
        rule = CoHostingRule.from_dict({"enabled": True, "percentage": 0, "fixedFee": 0})
        assert apply_co_hosting(Decimal("1000"), rule) == (Decimal("1000"), True)

    def test_proration_threshold(self) -> None:
        """Test that 27 nights is not prorated and 28 nights is."""
        rule = ProrationRule(enabled=True, min_nights=28, percentage=Decimal("80"))

        revenue, prorated, reason = apply_proration(Decimal("2800"), 27, rule)
        assert not prorated
        assert revenue == Decimal("2800")
        assert reason is None

        revenue, prorated, reason = apply_proration(Decimal("2800"), 28, rule)
        assert prorated
        assert revenue == Decimal("2240")
        assert reason == "Long stay (28 nights) - 80% applied"

    def test_proration_cap(self) -> None:
        """Test that the prorated amount is capped."""
        rule = ProrationRule(enabled=True, percentage=Decimal("80"), max_amount=Decimal("2000"))
        revenue, prorated, _ = apply_proration(Decimal("2800"), 30, rule)
        assert prorated
        assert revenue == Decimal("2000")

    def test_proration_zero_cap_is_uncapped(self) -> None:
        """Test that a stored 0 cap does not wipe out revenue."""
        rule = ProrationRule.from_dict({"prorationEnabled": True, "prorationPercentage": 80, "maxProratedAmount": 0})
        revenue, prorated, _ = apply_proration(Decimal("3000"), 30, rule)
        assert prorated
        assert revenue == Decimal("2400")

    def test_proration_zero_percentage_keeps_revenue(self) -> None:
        """Test that a stored 0 percentage keeps full revenue."""
        rule = ProrationRule(enabled=True, percentage=Decimal("0"))
        revenue, prorated, reason = apply_proration(Decimal("3000"), 30, rule)
        assert revenue == Decimal("3000")
        assert reason == "Long stay (30 nights) - 100% applied"

    def test_pipeline_proration_by_nights(self) -> None:
        """Test the threshold through the full pipeline."""
        profile = PropertyRuleProfile(
            property_id=101,
            proration=ProrationRule(enabled=True, min_nights=28, percentage=Decimal("80")),
        )
        pipeline = create_pipeline(profile)
        assert not pipeline.apply(create_reservation(client_revenue="2800", nights=27)).is_prorated
        line = pipeline.apply(create_reservation(client_revenue="2800", nights=28))
        assert line.is_prorated
        assert line.revenue == Decimal("2240")
        assert line.original_revenue == Decimal("2800")


class TestEffectivePmFee:
    """Tests for commission rate resolution."""

    def test_new_schedule_applies_from_start(self) -> None:
        """Test that bookings created on or after the start use the new rate."""
        profile = PropertyRuleProfile(
            property_id=101,
            pm_fee_percentage=Decimal("15"),
            new_pm_fee_enabled=True,
            new_pm_fee_percentage=Decimal("20"),
            new_pm_fee_start_date=datetime(2024, 3, 1),
        )
        assert effective_pm_fee(profile, datetime(2024, 2, 28, 23, 59)) == Decimal("15")
        assert effective_pm_fee(profile, datetime(2024, 3, 1)) == Decimal("20")
        assert effective_pm_fee(profile, None) == Decimal("15")

    def test_new_schedule_requires_percentage(self) -> None:
        """Test that an incomplete new schedule is ignored."""
        profile = PropertyRuleProfile(
            property_id=101,
            new_pm_fee_enabled=True,
            new_pm_fee_start_date=datetime(2024, 3, 1),
        )
        assert effective_pm_fee(profile, datetime(2024, 6, 1)) == Decimal("15")

    def test_fallbacks_when_unset(self) -> None:
        """Test owner default then 15%."""
        profile = PropertyRuleProfile(property_id=101, pm_fee_percentage=None)
        assert effective_pm_fee(profile, None, Decimal("12")) == Decimal("12")
        assert effective_pm_fee(profile, None) == Decimal("15")


class TestWaiverAndTax:
    """Tests for commission waivers and tax pass-through."""

    def test_waiver_inclusive_expiry(self) -> None:
        """Test that a statement ending on the expiry day is still waived."""
        profile = PropertyRuleProfile(
            property_id=101, waive_commission=True, waive_commission_until=date(2024, 1, 31)
        )
        assert is_waiver_active(profile, date(2024, 1, 31))
        assert not is_waiver_active(profile, date(2024, 2, 1))

    def test_indefinite_and_disabled_waiver(self) -> None:
        """Test waivers without expiry and without the flag."""
        assert is_waiver_active(PropertyRuleProfile(property_id=101, waive_commission=True), PERIOD_END)
        profile = PropertyRuleProfile(property_id=101, waive_commission_until=date(2030, 1, 1))
        assert not is_waiver_active(profile, PERIOD_END)

    def test_tax_rules(self) -> None:
        """Test Airbnb remittance and the disregard flag."""
        standard = PropertyRuleProfile(property_id=101)
        airbnb_pass = PropertyRuleProfile(property_id=101, airbnb_pass_through_tax=True)
        disregard = PropertyRuleProfile(property_id=101, disregard_tax=True, airbnb_pass_through_tax=True)

        assert should_add_tax(standard, create_reservation(source="VRBO"))
        assert not should_add_tax(standard, create_reservation(source="Airbnb"))
        assert should_add_tax(airbnb_pass, create_reservation(source="airbnb"))
        assert not should_add_tax(disregard, create_reservation(source="Direct"))


class TestRulePipeline:
    """Tests for RulePipeline.apply."""

    def test_standard_reservation(self) -> None:
        """Test 1000 revenue at 15% with 80 tax gives a 930 contribution."""
        line = create_pipeline(PropertyRuleProfile(property_id=101)).apply(create_reservation())
        assert line.commission == Decimal("150")
        assert line.commission_deducted == Decimal("150")
        assert line.tax_added == Decimal("80")
        assert line.gross_payout == Decimal("930")
        assert line.counts_toward_revenue

    def test_waiver_reports_rate_but_deducts_nothing(self) -> None:
        """Test that a waived commission is still reported."""
        profile = PropertyRuleProfile(property_id=101, waive_commission=True)
        line = create_pipeline(profile).apply(create_reservation())
        assert line.waiver_active
        assert line.commission == Decimal("150")
        assert line.commission_deducted == Decimal("0")
        assert line.gross_payout == Decimal("1080")

    def test_airbnb_without_tax_pass_through(self) -> None:
        """Test that Airbnb tax is not added by default."""
        line = create_pipeline(PropertyRuleProfile(property_id=101)).apply(create_reservation(source="Airbnb"))
        assert line.gross_payout == Decimal("850")

    def test_cohost_on_airbnb(self) -> None:
        """Test that co-hosted Airbnb revenue is excluded and commission deducted."""
        profile = PropertyRuleProfile(property_id=101, is_cohost_on_airbnb=True, airbnb_pass_through_tax=True)
        line = create_pipeline(profile).apply(create_reservation(client_revenue="600", source="Airbnb"))
        assert line.is_cohost_airbnb
        assert not line.counts_toward_revenue
        assert line.gross_payout == Decimal("-90")
        assert line.tax_added == Decimal("0")

    def test_cohost_on_airbnb_with_waiver(self) -> None:
        """Test that a waived co-hosted booking contributes nothing."""
        profile = PropertyRuleProfile(property_id=101, is_cohost_on_airbnb=True, waive_commission=True)
        line = create_pipeline(profile).apply(create_reservation(client_revenue="600", source="Airbnb"))
        assert line.gross_payout == Decimal("0")

    def test_cohost_flag_ignored_for_other_channels(self) -> None:
        """Test that only Airbnb bookings use the co-host formula."""
        profile = PropertyRuleProfile(property_id=101, is_cohost_on_airbnb=True)
        line = create_pipeline(profile).apply(create_reservation(source="VRBO"))
        assert not line.is_cohost_airbnb
        assert line.gross_payout == Decimal("930")

    def test_cleaning_pass_through_deducted(self) -> None:
        """Test the reverse-engineered cleaning deduction."""
        profile = PropertyRuleProfile(property_id=101, cleaning_fee_pass_through=True)
        line = create_pipeline(profile).apply(create_reservation(cleaning_fee="173"))
        assert line.cleaning_pass_through == Decimal("155")
        assert line.gross_payout == Decimal("775")

    def test_cleaning_falls_back_to_listing_fee(self) -> None:
        """Test the listing cleaning fee when the booking has none."""
        profile = PropertyRuleProfile(
            property_id=101, cleaning_fee_pass_through=True, cleaning_fee=Decimal("115")
        )
        line = create_pipeline(profile).apply(create_reservation())
        assert line.cleaning_pass_through == Decimal("100")

    def test_calendar_mode_skips_cleaning_after_period(self) -> None:
        """Test that cleaning is charged in the period containing checkout."""
        profile = PropertyRuleProfile(property_id=101, cleaning_fee_pass_through=True)
        pipeline = create_pipeline(profile, "calendar")
        later = pipeline.apply(create_reservation(cleaning_fee="173", check_out=date(2024, 6, 12)))
        inside = pipeline.apply(create_reservation(cleaning_fee="173", check_out=PERIOD_END))
        assert later.cleaning_pass_through == Decimal("0")
        assert inside.cleaning_pass_through == Decimal("155")

    def test_checkout_mode_ignores_boundary_for_cleaning(self) -> None:
        """Test that checkout mode always charges cleaning."""
        profile = PropertyRuleProfile(property_id=101, cleaning_fee_pass_through=True)
        line = create_pipeline(profile).apply(create_reservation(cleaning_fee="173", check_out=date(2024, 6, 12)))
        assert line.cleaning_pass_through == Decimal("155")

    def test_source_reservation_not_modified(self) -> None:
        """Test that co-hosting produces a derived copy."""
        profile = PropertyRuleProfile(
            property_id=101, co_hosting=CoHostingRule(enabled=True, percentage=Decimal("50"))
        )
        res = create_reservation()
        line = create_pipeline(profile).apply(res)
        assert line.co_hosting_applied
        assert line.revenue == Decimal("500")
        assert line.reservation.client_revenue == Decimal("500")
        assert res.client_revenue == Decimal("1000")

    def test_missing_profile_raises(self) -> None:
        """Test that an unknown property fails loudly."""
        pipeline = create_pipeline(PropertyRuleProfile(property_id=101))
        with pytest.raises(MissingPropertyProfileError, match="property 202") as exc_info:
            pipeline.apply(create_reservation(property_id=202))
        assert exc_info.value.property_id == 202
