"""Tests for configuration and snapshot loading."""

from decimal import Decimal
from pathlib import Path

import pytest

from owner_statements.config import (
    ConfigError,
    FeeConfig,
    SnapshotLoader,
    load_config,
    load_listing_profiles,
    load_owners,
    load_snapshot,
    load_yaml_file,
)
from owner_statements.processing.fee_schedules import AmortizedMonthlyFeeSchedule, FlatFeeSchedule
from owner_statements.utils.cache import TTLCache

SNAPSHOT_YAML = """
listings:
  - id: 101
    nickname: Lakeside
    pm_fee_percentage: 15
owners:
  - id: owner-1
    name: Pat Owner
    default_pm_percentage: 12
    properties: [101]
reservations:
  - id: R-1
    property_id: 101
    check_in: "2024-06-07"
    check_out: "2024-06-10"
    client_revenue: 1000
expenses:
  - id: E-1
    date: "2024-06-05"
    amount: -120
    description: Plumbing
    property_id: 101
"""


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def snapshot_file(tmp_path: Path) -> Path:
    """Write a small snapshot file."""
    path = tmp_path / "snapshot.yaml"
    path.write_text(SNAPSHOT_YAML)
    return path


class TestLoadConfig:
    """Tests for settings loading."""

    def test_missing_settings_uses_defaults(self, tmp_path: Path) -> None:
        """Test defaults when no settings file exists."""
        config = load_config(config_dir=tmp_path, environ={})
        assert config.fees.schedule == "flat"
        assert config.fees.tech_fee == Decimal("50")
        assert config.defaults.pm_percentage == Decimal("15")
        assert config.defaults.expense_category == "General"

    def test_settings_file(self, tmp_path: Path) -> None:
        """Test that settings.yaml sections are read."""
        (tmp_path / "settings.yaml").write_text(
            "fees:\n"
            "  schedule: amortized\n"
            "  tech_fee: 60\n"
            "  weeks_per_month: 4\n"
            "defaults:\n"
            "  pm_percentage: 18\n"
            "logging:\n"
            "  level: DEBUG\n"
            "  file: statements.log\n"
        )
        config = load_config(config_dir=tmp_path, environ={})
        assert config.fees.schedule == "amortized"
        assert config.fees.tech_fee == Decimal("60")
        assert config.fees.insurance_fee == Decimal("25")
        assert config.defaults.pm_percentage == Decimal("18")
        assert config.logging.level == "DEBUG"
        assert config.logging.file == "statements.log"

        schedule = config.fees.build_schedule()
        assert isinstance(schedule, AmortizedMonthlyFeeSchedule)
        assert schedule.tech_fee(None) == Decimal("15.00")

    def test_env_overrides(self, tmp_path: Path) -> None:
        """Test DEFAULT_TECH_FEE and DEFAULT_INSURANCE_FEE."""
        config = load_config(
            config_dir=tmp_path,
            environ={"DEFAULT_TECH_FEE": "40", "DEFAULT_INSURANCE_FEE": " 20.5 "},
        )
        assert config.fees.tech_fee == Decimal("40")
        assert config.fees.insurance_fee == Decimal("20.5")
        assert isinstance(config.fees.build_schedule(), FlatFeeSchedule)

    def test_bad_env_override(self, tmp_path: Path) -> None:
        """Test that non-numeric overrides are rejected."""
        with pytest.raises(ConfigError, match="DEFAULT_TECH_FEE"):
            load_config(config_dir=tmp_path, environ={"DEFAULT_TECH_FEE": "fifty"})

    def test_unknown_fee_schedule(self) -> None:
        """Test that only known schedules are accepted."""
        with pytest.raises(ConfigError, match="Unknown fee schedule 'monthly'"):
            FeeConfig.from_dict({"schedule": "monthly"})

    def test_non_numeric_fee(self) -> None:
        """Test that fee amounts must be numbers."""
        with pytest.raises(ConfigError, match="'tech_fee' must be a number"):
            FeeConfig.from_dict({"tech_fee": "lots"})

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        """Test that malformed YAML raises ConfigError."""
        path = tmp_path / "settings.yaml"
        path.write_text("fees: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_yaml_file(path)

    def test_non_mapping_yaml(self, tmp_path: Path) -> None:
        """Test that a top-level list is rejected."""
        path = tmp_path / "settings.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="must contain a mapping"):
            load_yaml_file(path)

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test FileNotFoundError for an explicit missing path."""
        with pytest.raises(FileNotFoundError):
            load_yaml_file(tmp_path / "nope.yaml")


class TestListingsAndOwners:
    """Tests for listings.yaml parsing."""

    def test_dict_format(self, tmp_path: Path) -> None:
        """Test listings keyed by property id."""
        path = tmp_path / "listings.yaml"
        path.write_text(
            "listings:\n"
            "  101:\n"
            "    nickname: Lakeside\n"
            "  102:\n"
            "    cleaning_fee_pass_through: true\n"
        )
        profiles = load_listing_profiles(path)
        assert sorted(profiles) == [101, 102]
        assert profiles[101].label == "Lakeside"
        assert profiles[102].cleaning_fee_pass_through

    def test_invalid_listing(self, tmp_path: Path) -> None:
        """Test that an invalid profile is reported with the file name."""
        path = tmp_path / "listings.yaml"
        path.write_text("listings:\n  - id: 101\n    pm_fee_percentage: 120\n")
        with pytest.raises(ConfigError, match="Invalid listing"):
            load_listing_profiles(path)

    def test_owners(self, snapshot_file: Path) -> None:
        """Test owner profiles and the property mapping."""
        owners, property_owners = load_owners(snapshot_file)
        assert owners["owner-1"].default_pm_percentage == Decimal("12")
        assert property_owners == {101: "owner-1"}


class TestSnapshotLoader:
    """Tests for snapshot loading and caching."""

    def test_load_snapshot(self, snapshot_file: Path) -> None:
        """Test that every record type is parsed."""
        snapshot = load_snapshot(snapshot_file)
        assert [r.id for r in snapshot.reservations] == ["R-1"]
        assert snapshot.expenses[0].amount == Decimal("-120")
        assert snapshot.listings[101].label == "Lakeside"
        owner = snapshot.owner_for(101)
        assert owner is not None
        assert owner.name == "Pat Owner"
        assert snapshot.owner_for(999) is None

    def test_invalid_record(self, tmp_path: Path) -> None:
        """Test that malformed records raise ConfigError."""
        path = tmp_path / "snapshot.yaml"
        path.write_text("expenses:\n  - id: E-1\n    amount: -5\n")
        with pytest.raises(ConfigError, match="Invalid record"):
            load_snapshot(path)

    def test_cached_until_expiry(self, snapshot_file: Path) -> None:
        """Test that the parsed file is reused within the TTL."""
        clock = FakeClock()
        loader = SnapshotLoader(ttl_seconds=60, clock=clock)

        first = loader.load(snapshot_file)
        snapshot_file.write_text("reservations: []\n")
        assert loader.load(snapshot_file) is first

        clock.now = 61
        reloaded = loader.load(snapshot_file)
        assert reloaded is not first
        assert reloaded.reservations == []

    def test_invalidate(self, snapshot_file: Path) -> None:
        """Test explicit invalidation."""
        loader = SnapshotLoader(clock=FakeClock())
        first = loader.load(snapshot_file)
        loader.invalidate(snapshot_file)
        assert loader.load(snapshot_file) is not first
        loader.clear()
        assert len(loader.cache) == 0


class TestTTLCache:
    """Tests for TTLCache."""

    def test_get_set_expire(self) -> None:
        """Test entry lifetime."""
        clock = FakeClock()
        cache: TTLCache[str] = TTLCache(10, clock)
        cache.set("a", "value")
        clock.now = 9.9
        assert cache.get("a") == "value"
        clock.now = 10
        assert cache.get("a") is None
        assert len(cache) == 0

    def test_get_or_load_calls_loader_once(self) -> None:
        """Test that the loader only runs on a miss."""
        calls = []
        cache: TTLCache[int] = TTLCache(10, FakeClock())

        def loader() -> int:
            calls.append(1)
            return 42

        assert cache.get_or_load("k", loader) == 42
        assert cache.get_or_load("k", loader) == 42
        assert len(calls) == 1

    def test_rejects_non_positive_ttl(self) -> None:
        """Test TTL validation."""
        with pytest.raises(ValueError, match="ttl_seconds"):
            TTLCache(0)
