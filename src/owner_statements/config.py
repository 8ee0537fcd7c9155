"""Configuration loading and validation for the statement engine."""

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Callable, Optional

import yaml

from owner_statements.models.expense import DEFAULT_EXPENSE_CATEGORY, Expense
from owner_statements.models.listing import DEFAULT_PM_PERCENTAGE, OwnerProfile, PropertyRuleProfile
from owner_statements.models.reservation import Reservation
from owner_statements.processing.fee_schedules import (
    DEFAULT_INSURANCE_FEE,
    DEFAULT_TECH_FEE,
    WEEKS_PER_MONTH,
    AmortizedMonthlyFeeSchedule,
    FeeSchedule,
    FlatFeeSchedule,
)
from owner_statements.utils.cache import TTLCache
from owner_statements.utils.logging_config import DEFAULT_LOG_FILE, get_logger

logger = get_logger(__name__)

FEE_SCHEDULES = ("flat", "amortized")

# Seconds a parsed file stays cached
DEFAULT_CACHE_TTL = 300.0


class ConfigError(Exception):
    """Exception raised for configuration errors."""

    pass


def _decimal_setting(data: dict[str, object], key: str, default: Decimal) -> Decimal:
    if key not in data or data[key] is None:
        return default
    try:
        return Decimal(str(data[key]))
    except InvalidOperation:
        raise ConfigError(f"'{key}' must be a number, got {data[key]!r}") from None


@dataclass
class FeeConfig:
    """Tech and insurance fee settings.

    Attributes:
        schedule: Fee schedule name (flat or amortized).
        tech_fee: Tech fee per property (per statement for flat, per month
            for amortized).
        insurance_fee: Insurance fee per property.
        weeks_per_month: Divisor for amortized monthly fees.
    """

    schedule: str = "flat"
    tech_fee: Decimal = DEFAULT_TECH_FEE
    insurance_fee: Decimal = DEFAULT_INSURANCE_FEE
    weeks_per_month: Decimal = WEEKS_PER_MONTH

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "FeeConfig":
        """Create from dictionary."""
        schedule = str(data.get("schedule", "flat")).lower()
        if schedule not in FEE_SCHEDULES:
            raise ConfigError(f"Unknown fee schedule '{schedule}' (expected one of {', '.join(FEE_SCHEDULES)})")
        return cls(
            schedule=schedule,
            tech_fee=_decimal_setting(data, "tech_fee", DEFAULT_TECH_FEE),
            insurance_fee=_decimal_setting(data, "insurance_fee", DEFAULT_INSURANCE_FEE),
            weeks_per_month=_decimal_setting(data, "weeks_per_month", WEEKS_PER_MONTH),
        )

    def build_schedule(self, owner: Optional[OwnerProfile] = None) -> FeeSchedule:
        """Instantiate the configured fee schedule."""
        if self.schedule == "amortized":
            return AmortizedMonthlyFeeSchedule(
                owner=owner,
                monthly_tech_fee=self.tech_fee,
                monthly_insurance_fee=self.insurance_fee,
                weeks_per_month=self.weeks_per_month,
            )
        return FlatFeeSchedule(tech_fee=self.tech_fee, insurance_fee=self.insurance_fee)


@dataclass
class DefaultsConfig:
    """Fallbacks for optional profile and expense fields.

    Attributes:
        pm_percentage: Commission percent when a property sets none.
        expense_category: Category label for uncategorized expenses.
    """

    pm_percentage: Decimal = DEFAULT_PM_PERCENTAGE
    expense_category: str = DEFAULT_EXPENSE_CATEGORY

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "DefaultsConfig":
        """Create from dictionary."""
        return cls(
            pm_percentage=_decimal_setting(data, "pm_percentage", DEFAULT_PM_PERCENTAGE),
            expense_category=str(data.get("expense_category", DEFAULT_EXPENSE_CATEGORY)),
        )


@dataclass
class LoggingConfig:
    """Configuration for logging.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Path to log file.
    """

    level: str = "INFO"
    file: str = DEFAULT_LOG_FILE

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "LoggingConfig":
        """Create from dictionary."""
        return cls(
            level=str(data.get("level", "INFO")),
            file=str(data.get("file", DEFAULT_LOG_FILE)),
        )


@dataclass
class Config:
    """Main configuration container."""

    fees: FeeConfig = field(default_factory=FeeConfig)
    defaults: DefaultsConfig = field(default_factory=DefaultsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


@dataclass
class Snapshot:
    """One fixed set of calculation inputs.

    Attributes:
        reservations: Normalized reservations.
        expenses: Normalized expenses.
        listings: Rule profiles keyed by property id.
        owners: Owner profiles keyed by owner id.
        property_owners: Owner id keyed by property id.
    """

    reservations: list[Reservation] = field(default_factory=list)
    expenses: list[Expense] = field(default_factory=list)
    listings: dict[int, PropertyRuleProfile] = field(default_factory=dict)
    owners: dict[str, OwnerProfile] = field(default_factory=dict)
    property_owners: dict[int, str] = field(default_factory=dict)

    def owner_for(self, property_id: int) -> Optional[OwnerProfile]:
        owner_id = self.property_owners.get(property_id)
        return self.owners.get(owner_id) if owner_id is not None else None


def load_yaml_file(path: Path) -> dict[str, object]:
    """Load a YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML content.

    Raises:
        FileNotFoundError: If file doesn't exist.
        ConfigError: If the file is not a YAML mapping.
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as f:
        try:
            content = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if content is None:
        return {}
    if not isinstance(content, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(content).__name__}")
    return content


def _section(data: dict[str, object], name: str) -> dict[str, object]:
    section = data.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' must be a mapping, got {type(section).__name__}")
    return section


def load_settings(path: Path) -> tuple[FeeConfig, DefaultsConfig, LoggingConfig]:
    """Load settings from settings.yaml.

    Args:
        path: Path to settings.yaml.

    Returns:
        Tuple of (FeeConfig, DefaultsConfig, LoggingConfig).
    """
    data = load_yaml_file(path)
    return (
        FeeConfig.from_dict(_section(data, "fees")),
        DefaultsConfig.from_dict(_section(data, "defaults")),
        LoggingConfig.from_dict(_section(data, "logging")),
    )


def apply_env_overrides(config: Config, environ: Optional[dict[str, str]] = None) -> Config:
    """Apply DEFAULT_TECH_FEE / DEFAULT_INSURANCE_FEE from the environment.

    Args:
        config: Configuration to update in place.
        environ: Environment mapping (defaults to ``os.environ``).

    Returns:
        The same config.
    """
    env = os.environ if environ is None else environ
    for var, attr in (("DEFAULT_TECH_FEE", "tech_fee"), ("DEFAULT_INSURANCE_FEE", "insurance_fee")):
        raw = env.get(var)
        if raw is None or not raw.strip():
            continue
        try:
            setattr(config.fees, attr, Decimal(raw.strip()))
        except InvalidOperation:
            raise ConfigError(f"{var} must be a number, got {raw!r}") from None
        logger.debug(f"Fee override from {var}: {raw}")
    return config


def load_config(
    settings_path: Optional[Path] = None,
    config_dir: Optional[Path] = None,
    environ: Optional[dict[str, str]] = None,
) -> Config:
    """Load configuration from settings.yaml plus environment overrides.

    A missing settings file is not an error; defaults are used.

    Args:
        settings_path: Path to settings.yaml (or None to use default).
        config_dir: Base config directory (default: ./config).
        environ: Environment mapping for overrides.

    Returns:
        Complete Config object.
    """
    if config_dir is None:
        config_dir = Path("config")
    if settings_path is None:
        settings_path = config_dir / "settings.yaml"

    config = Config()
    if settings_path.exists():
        config.fees, config.defaults, config.logging = load_settings(settings_path)
        logger.info(f"Loaded settings from {settings_path}")
    else:
        logger.info(f"No settings file at {settings_path}, using defaults")

    return apply_env_overrides(config, environ)


def _listing_entries(data: dict[str, object], path: Path) -> list[dict[str, object]]:
    listings = data.get("listings")
    if listings is None:
        return []
    if isinstance(listings, dict):
        # Dict format: listings: {id: {...}}
        return [{**entry, "id": pid} for pid, entry in listings.items()]  # type: ignore[dict-item]
    if isinstance(listings, list):
        return listings
    raise ConfigError(f"'listings' in {path} must be a list or mapping, got {type(listings).__name__}")


def parse_listing_profiles(data: dict[str, object], path: Path) -> dict[int, PropertyRuleProfile]:
    profiles: dict[int, PropertyRuleProfile] = {}
    for entry in _listing_entries(data, path):
        try:
            profile = PropertyRuleProfile.from_dict(entry)
        except ValueError as e:
            raise ConfigError(f"Invalid listing in {path}: {e}") from e
        profiles[profile.property_id] = profile
    return profiles


def load_listing_profiles(path: Path) -> dict[int, PropertyRuleProfile]:
    """Load property rule profiles from listings.yaml.

    Args:
        path: Path to listings.yaml.

    Returns:
        Profiles keyed by property id.
    """
    profiles = parse_listing_profiles(load_yaml_file(path), path)
    logger.info(f"Loaded {len(profiles)} listing profiles from {path}")
    return profiles


def parse_owners(data: dict[str, object], path: Path) -> tuple[dict[str, OwnerProfile], dict[int, str]]:
    owners: dict[str, OwnerProfile] = {}
    property_owners: dict[int, str] = {}
    owner_list = data.get("owners")
    if owner_list is None:
        return owners, property_owners
    if not isinstance(owner_list, list):
        raise ConfigError(f"'owners' in {path} must be a list, got {type(owner_list).__name__}")

    for entry in owner_list:
        try:
            owner = OwnerProfile.from_dict(entry)
        except ValueError as e:
            raise ConfigError(f"Invalid owner in {path}: {e}") from e
        owners[owner.id] = owner
        for pid in entry.get("properties", []) or []:
            property_owners[int(pid)] = owner.id
    return owners, property_owners


def load_owners(path: Path) -> tuple[dict[str, OwnerProfile], dict[int, str]]:
    """Load owner profiles from listings.yaml.

    Args:
        path: Path to listings.yaml.

    Returns:
        Tuple of (owners keyed by id, owner id keyed by property id).
    """
    return parse_owners(load_yaml_file(path), path)


def parse_snapshot(data: dict[str, object], path: Path) -> Snapshot:
    """Build a Snapshot from parsed YAML content.

    Raises:
        ConfigError: If a record is malformed.
    """
    snapshot = Snapshot()
    try:
        snapshot.reservations = [Reservation.from_dict(r) for r in data.get("reservations") or []]  # type: ignore[union-attr]
        snapshot.expenses = [Expense.from_dict(e) for e in data.get("expenses") or []]  # type: ignore[union-attr]
    except ValueError as e:
        raise ConfigError(f"Invalid record in {path}: {e}") from e
    snapshot.listings = parse_listing_profiles(data, path)
    snapshot.owners, snapshot.property_owners = parse_owners(data, path)
    return snapshot


class SnapshotLoader:
    """Loads input snapshots, keeping parsed files for a limited time.

    Args:
        ttl_seconds: How long a parsed file is reused.
        clock: Monotonic clock for the cache; injectable for tests.
    """

    def __init__(self, ttl_seconds: float = DEFAULT_CACHE_TTL, clock: Optional[Callable[[], float]] = None):
        self.cache: TTLCache[Snapshot] = (
            TTLCache(ttl_seconds, clock) if clock is not None else TTLCache(ttl_seconds)
        )

    def load(self, path: Path) -> Snapshot:
        """Return the snapshot at ``path``, parsing it on a cache miss."""
        key = str(Path(path).resolve())
        return self.cache.get_or_load(key, lambda: self._parse(Path(path)))

    def invalidate(self, path: Path) -> None:
        self.cache.invalidate(str(Path(path).resolve()))

    def clear(self) -> None:
        self.cache.clear()

    def _parse(self, path: Path) -> Snapshot:
        snapshot = parse_snapshot(load_yaml_file(path), path)
        logger.info(
            f"Loaded snapshot {path}: {len(snapshot.reservations)} reservations, "
            f"{len(snapshot.expenses)} expenses, {len(snapshot.listings)} listings"
        )
        return snapshot


def load_snapshot(path: Path, loader: Optional[SnapshotLoader] = None) -> Snapshot:
    """Load an input snapshot (reservations, expenses, listings, owners).

    Args:
        path: Path to the snapshot YAML file.
        loader: Loader whose cache should be used; a fresh one when omitted.

    Returns:
        Parsed snapshot.
    """
    return (loader or SnapshotLoader()).load(path)
