"""Expense data models."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from owner_statements.errors import ValidationError
from owner_statements.models.base import first_present, optional_int, parse_bool
from owner_statements.utils.date_utils import parse_date
from owner_statements.utils.decimal_utils import parse_amount

DEFAULT_EXPENSE_CATEGORY = "General"


@dataclass(frozen=True)
class Expense:
    """A dated monetary entry charged to, or credited to, an owner.

    Attributes:
        id: Identifier from the expense source.
        date: Date the expense was incurred.
        amount: Signed amount (negative = cost, positive = upsell/credit).
        description: Free-text description.
        vendor: Vendor or contractor name.
        category: Free-text category ("General" when not supplied).
        type: Free-text type ("expense", "upsell", ...).
        property_id: Owning property, or None for unassigned/shared.
        source: Originating system ("securestay", "upload", "quickbooks", ...).
        ll_cover: Explicit landlord-cover flag set by the expense source.
        upload_file: File the record was uploaded from, if any.
    """

    id: str
    date: date
    amount: Decimal
    description: str = ""
    vendor: Optional[str] = None
    category: str = DEFAULT_EXPENSE_CATEGORY
    type: str = "expense"
    property_id: Optional[int] = None
    source: str = ""
    ll_cover: bool = False
    upload_file: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "Expense":
        """Create an Expense from an accounting or upload record.

        Raises:
            ValidationError: If the date or amount is missing.
        """
        raw_date = first_present(data, "date", "expense_date", "expenseDate")
        raw_amount = first_present(data, "amount")
        if raw_date is None or raw_amount is None:
            raise ValidationError(
                "Expense record requires date and amount", value=data.get("id")
            )

        try:
            amount = parse_amount(raw_amount)
        except ValueError as e:
            raise ValidationError(str(e), value=raw_amount) from e

        category = first_present(data, "category")
        vendor = first_present(data, "vendor")
        return cls(
            id=str(first_present(data, "id", default="")),
            date=parse_date(raw_date),
            amount=amount,
            description=str(first_present(data, "description", default="")).strip(),
            vendor=str(vendor).strip() if vendor else None,
            category=str(category).strip() if category else DEFAULT_EXPENSE_CATEGORY,
            type=str(first_present(data, "type", default="expense")),
            property_id=optional_int(first_present(data, "property_id", "propertyId")),
            source=str(first_present(data, "source", default="")),
            ll_cover=parse_bool(first_present(data, "ll_cover", "llCover")),
            upload_file=first_present(data, "upload_file", "uploadFile", "uploadedFile"),  # type: ignore[arg-type]
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "amount": str(self.amount),
            "description": self.description,
            "vendor": self.vendor,
            "category": self.category,
            "type": self.type,
            "property_id": self.property_id,
            "source": self.source,
            "ll_cover": self.ll_cover,
        }

    def __repr__(self) -> str:
        return (
            f"Expense(date={self.date}, "
            f"description={self.description[:30]!r}, "
            f"amount={self.amount}, property={self.property_id})"
        )


@dataclass(frozen=True)
class DuplicateWarning:
    """A probable duplicate pair found across two expense sources.

    Duplicates are flagged for manual review and never removed.
    """

    expense1: Expense
    expense2: Expense
    confidence: str = "high"

    def to_dict(self) -> dict[str, object]:
        return {
            "expense1": self.expense1.to_dict(),
            "expense2": self.expense2.to_dict(),
            "confidence": self.confidence,
        }
