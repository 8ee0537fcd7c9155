"""End-to-end tests for the statement engine."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import pytest

from owner_statements.config import Config, DefaultsConfig, FeeConfig
from owner_statements.engine import StatementEngine, calculate_statement
from owner_statements.errors import (
    InvalidCalculationTypeError,
    InvalidDateError,
    MissingPropertyProfileError,
    ValidationError,
)
from owner_statements.models.expense import DuplicateWarning, Expense
from owner_statements.models.listing import CoHostingRule, PropertyRuleProfile
from owner_statements.models.reservation import Reservation, ReservationStatus
from owner_statements.processing.reservation_filter import prorate_for_calendar


def create_reservation(
    res_id: str = "R-1",
    property_id: int = 101,
    check_in: date = date(2024, 6, 7),
    check_out: date = date(2024, 6, 10),
    revenue: str = "1000",
    tax: str = "80",
    source: str = "VRBO",
    status: ReservationStatus = ReservationStatus.CONFIRMED,
    cleaning_fee: Optional[str] = None,
) -> Reservation:
    """Helper to create a Reservation for testing."""
    return Reservation(
        id=res_id,
        property_id=property_id,
        check_in=check_in,
        check_out=check_out,
        source=source,
        status=status,
        client_revenue=Decimal(revenue),
        client_tax_responsibility=Decimal(tax),
        cleaning_fee=Decimal(cleaning_fee) if cleaning_fee is not None else None,
        created_at=datetime(2024, 5, 1, 12, 0),
    )


def create_expense(
    expense_id: str,
    amount: str,
    description: str = "Repair",
    category: str = "Maintenance",
    property_id: int = 101,
    source: str = "quickbooks",
) -> Expense:
    """Helper to create an Expense for testing."""
    return Expense(
        id=expense_id,
        date=date(2024, 6, 6),
        amount=Decimal(amount),
        description=description,
        category=category,
        property_id=property_id,
        source=source,
    )


@pytest.fixture
def listing_info() -> dict[int, PropertyRuleProfile]:
    """Standard and pass-through properties."""
    return {
        101: PropertyRuleProfile(property_id=101, nickname="Lakeside", internal_notes="Lockbox 4411"),
        102: PropertyRuleProfile(
            property_id=102,
            pm_fee_percentage=Decimal("20"),
            cleaning_fee_pass_through=True,
            cleaning_fee=Decimal("173"),
        ),
    }


class TestCalculateStatement:
    """Tests for calculate_statement."""

    def test_single_reservation(self, listing_info: dict[int, PropertyRuleProfile]) -> None:
        """Test the basic $1000 / 15% / $80 tax statement."""
        statement = calculate_statement(
            [create_reservation()], [], listing_info, [101], "2024-06-04", "2024-06-10"
        )

        totals = statement.totals
        assert totals.total_revenue == Decimal("1000.00")
        assert totals.pm_commission == Decimal("150.00")
        assert totals.pm_percentage == Decimal("15.00")
        assert totals.tech_fees == Decimal("50.00")
        assert totals.insurance_fees == Decimal("25.00")
        assert statement.owner_payout == Decimal("930.00")
        assert statement.fee_schedule == "flat"
        assert statement.internal_notes == "[Lakeside]: Lockbox 4411"

    def test_expenses_and_upsells(self, listing_info: dict[int, PropertyRuleProfile]) -> None:
        """Test that costs reduce and upsells increase the payout."""
        expenses = [
            create_expense("E-1", "-120"),
            create_expense("E-2", "45", description="Early check-in", category="Upsell"),
            create_expense("E-3", "-500", description="Roof - LL Cover"),
        ]
        statement = calculate_statement(
            [create_reservation()], expenses, listing_info, [101], date(2024, 6, 4), date(2024, 6, 10)
        )
        assert statement.totals.total_expenses == Decimal("120.00")
        assert statement.totals.total_upsells == Decimal("45.00")
        assert statement.owner_payout == Decimal("855.00")
        assert [e.id for e in statement.ll_cover_expenses] == ["E-3"]

    def test_negative_payout_is_returned(self, listing_info: dict[int, PropertyRuleProfile]) -> None:
        """Test that a period with only costs yields a negative payout."""
        statement = calculate_statement(
            [], [create_expense("E-1", "-300")], listing_info, [101], "2024-06-04", "2024-06-10"
        )
        assert statement.owner_payout == Decimal("-300.00")
        assert statement.totals.pm_percentage == Decimal("15.00")

    def test_pass_through_property(self, listing_info: dict[int, PropertyRuleProfile]) -> None:
        """Test cleaning pass-through and the mismatch warning across two properties."""
        reservations = [
            create_reservation("R-1"),
            create_reservation("R-2", property_id=102, revenue="500", tax="0"),
        ]
        expenses = [
            create_expense("E-1", "-150", description="Turnover cleaning", category="Cleaning", property_id=102),
            create_expense("E-2", "-150", description="Turnover cleaning", category="Cleaning", property_id=102),
        ]
        statement = calculate_statement(reservations, expenses, listing_info, [101, 102], "2024-06-04", "2024-06-10")

        # 173 / 1.20 = 144.17, rounded up to 145
        assert statement.totals.total_cleaning_fee == Decimal("145.00")
        assert statement.totals.total_expenses == Decimal("0.00")
        assert statement.totals.tech_fees == Decimal("100.00")
        assert statement.totals.property_count == 2
        assert statement.owner_payout == Decimal("930") + Decimal("500") - Decimal("100") - Decimal("145")
        assert statement.cleaning_mismatch_warning is not None
        assert statement.cleaning_mismatch_warning.difference == -1
        assert len(statement.pass_through_expenses) == 2
        assert [e["id"] for e in statement.to_dict()["pass_through_expenses"]] == ["E-1", "E-2"]
        assert statement.to_dict()["reservations"][1]["cleaning_pass_through"] == "145"

    def test_co_hosting_reduces_revenue(self) -> None:
        """Test that totals use the revenue after the co-hosting split."""
        listing_info = {
            101: PropertyRuleProfile(
                property_id=101,
                co_hosting=CoHostingRule(enabled=True, percentage=Decimal("50"), fixed_fee=Decimal("100")),
            )
        }
        statement = calculate_statement([create_reservation()], [], listing_info, [101], "2024-06-04", "2024-06-10")
        assert statement.totals.total_revenue == Decimal("400.00")
        assert statement.totals.pm_commission == Decimal("60.00")
        assert statement.reservations[0].original_revenue == Decimal("1000")

    def test_duplicate_warnings_attached(self, listing_info: dict[int, PropertyRuleProfile]) -> None:
        """Test that upstream duplicate warnings are carried, not removed."""
        first = create_expense("E-1", "-120", source="quickbooks")
        second = create_expense("U-1", "-120", source="upload")
        warning = DuplicateWarning(first, second)
        statement = calculate_statement(
            [], [first, second], listing_info, [101], "2024-06-04", "2024-06-10",
            duplicate_warnings=[warning],
        )
        assert statement.duplicate_warnings == (warning,)
        assert statement.totals.total_expenses == Decimal("240.00")
        assert statement.has_warnings

    def test_calendar_mode(self, listing_info: dict[int, PropertyRuleProfile]) -> None:
        """Test prorated input spanning the period end."""
        reservation = create_reservation(check_in=date(2024, 6, 8), check_out=date(2024, 6, 12), tax="0")
        prorated = prorate_for_calendar([reservation], date(2024, 6, 4), date(2024, 6, 10))

        statement = calculate_statement(prorated, [], listing_info, [101], "2024-06-04", "2024-06-10", "calendar")

        assert statement.period.calculation_type.value == "calendar"
        assert statement.totals.total_revenue == Decimal("500.00")
        assert statement.reservations[0].reservation.proration_note == "2/4 days in period"

    def test_calendar_cleaning_charged_once_in_full(self) -> None:
        """Test a stay split across two calendar statements pays the full cleaning fee at checkout."""
        listing_info = {101: PropertyRuleProfile(property_id=101, cleaning_fee_pass_through=True)}
        reservation = create_reservation(
            check_in=date(2024, 5, 28), check_out=date(2024, 6, 3), tax="0", cleaning_fee="173"
        )

        cleaning = []
        for start, end in [(date(2024, 5, 1), date(2024, 5, 31)), (date(2024, 6, 1), date(2024, 6, 30))]:
            prorated = prorate_for_calendar([reservation], start, end)
            statement = calculate_statement(prorated, [], listing_info, [101], start, end, "calendar")
            cleaning.append(statement.totals.total_cleaning_fee)

        # 173 / 1.15 = 150.43, rounded up to 155, all in the checkout month
        assert cleaning == [Decimal("0.00"), Decimal("155.00")]
        assert sum(cleaning) == Decimal("155")

    def test_idempotent(self, listing_info: dict[int, PropertyRuleProfile]) -> None:
        """Test that the same inputs produce identical statements."""
        reservations = [create_reservation()]
        expenses = [create_expense("E-1", "-120")]
        first = calculate_statement(reservations, expenses, listing_info, [101], "2024-06-04", "2024-06-10")
        second = calculate_statement(reservations, expenses, listing_info, [101], "2024-06-04", "2024-06-10")
        assert first.to_dict() == second.to_dict()
        assert reservations[0].client_revenue == Decimal("1000")


class TestStatementEngine:
    """Tests for StatementEngine configuration and validation."""

    def test_amortized_schedule_from_settings(self, listing_info: dict[int, PropertyRuleProfile]) -> None:
        """Test that the configured fee schedule is used."""
        settings = Config(fees=FeeConfig(schedule="amortized"))
        statement = StatementEngine(settings).calculate(
            [create_reservation()], [], listing_info, [101], "2024-06-04", "2024-06-10"
        )
        assert statement.fee_schedule == "amortized"
        assert statement.totals.tech_fees == Decimal("11.55")

    def test_owner_default_percentage(self) -> None:
        """Test the configured default rate for properties without one."""
        listing_info = {101: PropertyRuleProfile(property_id=101, pm_fee_percentage=None)}
        settings = Config(defaults=DefaultsConfig(pm_percentage=Decimal("18")))
        statement = StatementEngine(settings).calculate(
            [create_reservation()], [], listing_info, [101], "2024-06-04", "2024-06-10"
        )
        assert statement.totals.pm_commission == Decimal("180.00")

    def test_missing_profile(self, listing_info: dict[int, PropertyRuleProfile]) -> None:
        """Test that an unconfigured property aborts the calculation."""
        with pytest.raises(MissingPropertyProfileError, match="property 999"):
            calculate_statement([], [], listing_info, [101, 999], "2024-06-04", "2024-06-10")

    def test_empty_property_list(self, listing_info: dict[int, PropertyRuleProfile]) -> None:
        """Test that at least one property is required."""
        with pytest.raises(ValidationError, match="At least one property"):
            calculate_statement([], [], listing_info, [], "2024-06-04", "2024-06-10")

    def test_malformed_date(self, listing_info: dict[int, PropertyRuleProfile]) -> None:
        """Test that non-ISO dates are rejected."""
        with pytest.raises(InvalidDateError, match="start date"):
            calculate_statement([], [], listing_info, [101], "06/04/2024", "2024-06-10")

    def test_start_after_end(self, listing_info: dict[int, PropertyRuleProfile]) -> None:
        """Test that reversed periods are rejected."""
        with pytest.raises(ValidationError, match="after end"):
            calculate_statement([], [], listing_info, [101], "2024-06-10", "2024-06-04")

    def test_unknown_calculation_type(self, listing_info: dict[int, PropertyRuleProfile]) -> None:
        """Test that only checkout and calendar are accepted."""
        with pytest.raises(InvalidCalculationTypeError, match="valid values: checkout, calendar"):
            calculate_statement([], [], listing_info, [101], "2024-06-04", "2024-06-10", "weekly")
