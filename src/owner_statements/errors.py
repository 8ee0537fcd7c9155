"""Exception types raised by the statement engine.

Calculation failures abort statement generation; data-quality findings
(duplicate expenses, cleaning mismatches) are never raised and are attached
to the statement instead.
"""

from typing import Iterable, Optional


class StatementError(Exception):
    """Base class for all statement engine errors."""

    pass


class ValidationError(StatementError, ValueError):
    """Raised when an input value is outside its valid set.

    Attributes:
        value: The offending value.
        valid_values: The accepted values, when the set is enumerable.
    """

    def __init__(
        self,
        message: str,
        value: object = None,
        valid_values: Optional[Iterable[object]] = None,
    ):
        self.value = value
        self.valid_values = tuple(valid_values) if valid_values is not None else ()
        if self.valid_values:
            allowed = ", ".join(str(v) for v in self.valid_values)
            message = f"{message} (valid values: {allowed})"
        super().__init__(message)


class InvalidDateError(ValidationError):
    """Raised when a date string cannot be parsed."""

    pass


class InvalidPayoutWeekError(ValidationError):
    """Raised when a window is not a Tuesday-to-Monday payout week."""

    pass


class InvalidCalculationTypeError(ValidationError):
    """Raised for a calculation type other than checkout or calendar."""

    pass


class MissingPropertyProfileError(StatementError, KeyError):
    """Raised when a property in the statement has no rule profile."""

    def __init__(self, property_id: int):
        self.property_id = property_id
        super().__init__(f"No rule profile configured for property {property_id}")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0])
