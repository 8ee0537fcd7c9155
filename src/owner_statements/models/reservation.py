"""Reservation data model for bookings fetched from the booking source."""

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from owner_statements.errors import ValidationError
from owner_statements.models.base import first_present, optional_int, parse_bool
from owner_statements.utils.date_utils import parse_date, parse_datetime
from owner_statements.utils.decimal_utils import ZERO, optional_decimal, safe_decimal


class ReservationStatus(Enum):
    """Booking status as reported by the booking source."""

    NEW = "new"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    INQUIRY = "inquiry"
    EXPIRED = "expired"
    DECLINED = "declined"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: object) -> "ReservationStatus":
        """Parse a status string.

        Legacy ``accepted`` is normalized to ``confirmed``; anything not
        recognised becomes ``unknown``.
        """
        if isinstance(value, ReservationStatus):
            return value
        text = str(value or "").strip().lower()
        if text == "accepted":
            return cls.CONFIRMED
        try:
            return cls(text)
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_financial(self) -> bool:
        """Whether reservations in this status count toward statement totals."""
        return self is ReservationStatus.CONFIRMED


@dataclass(frozen=True)
class Reservation:
    """A booking for a property.

    Reservations are never mutated once created; rule adjustments produce
    derived copies via ``with_changes``.

    Attributes:
        id: Booking identifier from the booking source.
        property_id: Listing the booking belongs to.
        check_in: Arrival date.
        check_out: Departure date (>= check_in).
        nights: Night count; computed from the dates when omitted.
        source: Booking channel name (e.g. "Airbnb", "VRBO", "Direct").
        status: Booking status.
        guest_name: Guest display name.
        base_rate: Nightly-rate subtotal.
        cleaning_fee: Guest-paid cleaning fee, or None when unknown.
        platform_fees: Channel fees withheld from the payout.
        client_tax_responsibility: Tax amount the owner is responsible for.
        client_revenue: Owner-facing revenue (itemized bookings).
        client_payout: Amount paid out by the channel.
        gross_amount: Total amount used when itemized finance is missing.
        has_detailed_finance: Whether the itemized fields are populated.
        created_at: Booking creation timestamp.
        is_processed: Already settled in an earlier legacy weekly statement.
        proration_factor: Share of the stay inside a calendar statement window.
        proration_days: Nights of the stay inside the window.
        total_days: Total nights used for calendar proration.
        proration_note: Human-readable calendar proration summary.
    """

    id: str
    property_id: int
    check_in: date
    check_out: date
    nights: Optional[int] = None
    source: str = ""
    status: ReservationStatus = ReservationStatus.CONFIRMED
    guest_name: str = ""

    base_rate: Decimal = ZERO
    cleaning_fee: Optional[Decimal] = None
    platform_fees: Decimal = ZERO
    client_tax_responsibility: Decimal = ZERO
    client_revenue: Decimal = ZERO
    client_payout: Decimal = ZERO
    gross_amount: Decimal = ZERO
    has_detailed_finance: bool = True

    created_at: Optional[datetime] = None
    is_processed: bool = False

    proration_factor: Optional[Decimal] = None
    proration_days: Optional[int] = None
    total_days: Optional[int] = None
    proration_note: Optional[str] = None

    def __post_init__(self) -> None:
        if self.check_out < self.check_in:
            raise ValidationError(
                f"Reservation {self.id}: check-out {self.check_out} is before check-in {self.check_in}",
                value=self.check_out,
            )
        stay_length = (self.check_out - self.check_in).days
        if self.nights is None:
            object.__setattr__(self, "nights", stay_length)
        elif self.nights != stay_length:
            raise ValidationError(
                f"Reservation {self.id}: nights={self.nights} does not match "
                f"the {stay_length}-day stay",
                value=self.nights,
            )

    @property
    def revenue_base(self) -> Decimal:
        """Revenue before rule adjustments."""
        return self.client_revenue if self.has_detailed_finance else self.gross_amount

    @property
    def tax_base(self) -> Decimal:
        """Tax amount available for pass-through (0 without itemized finance)."""
        return self.client_tax_responsibility if self.has_detailed_finance else ZERO

    @property
    def is_airbnb(self) -> bool:
        return "airbnb" in (self.source or "").lower()

    def with_changes(self, **changes: object) -> "Reservation":
        """Return a derived copy with the given fields replaced."""
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "Reservation":
        """Create a Reservation from a booking-source record.

        Accepts snake_case keys as well as the camelCase keys used by the
        booking-source integration (``checkInDate``, ``clientRevenue``, ...).

        Raises:
            ValidationError: If required fields are missing or inconsistent.
        """
        res_id = first_present(data, "id", "reservation_id", "reservationId", "hostifyId")
        property_id = optional_int(first_present(data, "property_id", "propertyId", "listingId"))
        check_in_raw = first_present(data, "check_in", "checkInDate", "arrivalDate")
        check_out_raw = first_present(data, "check_out", "checkOutDate", "departureDate")
        if res_id is None or property_id is None or check_in_raw is None or check_out_raw is None:
            raise ValidationError(
                "Reservation record requires id, property_id, check_in and check_out",
                value=data.get("id"),
            )

        has_detailed = parse_bool(first_present(data, "has_detailed_finance", "hasDetailedFinance"), True)
        nights_raw = first_present(data, "nights")
        factor = optional_decimal(first_present(data, "proration_factor", "prorationFactor"))

        return cls(
            id=str(res_id),
            property_id=property_id,
            check_in=parse_date(check_in_raw),
            check_out=parse_date(check_out_raw),
            nights=int(nights_raw) if nights_raw is not None else None,  # type: ignore[call-overload]
            source=str(first_present(data, "source", "channel", default="")),
            status=ReservationStatus.parse(first_present(data, "status", default="confirmed")),
            guest_name=str(first_present(data, "guest_name", "guestName", default="")),
            base_rate=safe_decimal(first_present(data, "base_rate", "baseRate")),
            cleaning_fee=optional_decimal(first_present(data, "cleaning_fee", "cleaningFee")),
            platform_fees=safe_decimal(first_present(data, "platform_fees", "platformFees")),
            client_tax_responsibility=safe_decimal(
                first_present(data, "client_tax_responsibility", "clientTaxResponsibility", "tax")
            ),
            client_revenue=safe_decimal(first_present(data, "client_revenue", "clientRevenue")),
            client_payout=safe_decimal(first_present(data, "client_payout", "clientPayout")),
            gross_amount=safe_decimal(first_present(data, "gross_amount", "grossAmount")),
            has_detailed_finance=has_detailed,
            created_at=parse_datetime(first_present(data, "created_at", "createdAt")),
            is_processed=parse_bool(first_present(data, "is_processed", "isProcessed")),
            proration_factor=factor,
            proration_days=optional_int(first_present(data, "proration_days", "prorationDays")),
            total_days=optional_int(first_present(data, "total_days", "totalDays")),
            proration_note=first_present(data, "proration_note", "prorationNote"),  # type: ignore[arg-type]
        )

    def to_dict(self) -> dict[str, object]:
        """Serialize for statement persistence (ISO dates, string amounts)."""
        return {
            "id": self.id,
            "property_id": self.property_id,
            "check_in": self.check_in.isoformat(),
            "check_out": self.check_out.isoformat(),
            "nights": self.nights,
            "source": self.source,
            "status": self.status.value,
            "guest_name": self.guest_name,
            "base_rate": str(self.base_rate),
            "cleaning_fee": str(self.cleaning_fee) if self.cleaning_fee is not None else None,
            "platform_fees": str(self.platform_fees),
            "client_tax_responsibility": str(self.client_tax_responsibility),
            "client_revenue": str(self.client_revenue),
            "client_payout": str(self.client_payout),
            "gross_amount": str(self.gross_amount),
            "has_detailed_finance": self.has_detailed_finance,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "proration_note": self.proration_note,
        }

    def __repr__(self) -> str:
        return (
            f"Reservation(id={self.id!r}, property={self.property_id}, "
            f"{self.check_in}..{self.check_out}, source={self.source!r}, "
            f"status={self.status.value})"
        )
