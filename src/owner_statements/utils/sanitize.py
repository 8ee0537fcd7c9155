"""Sanitization of free-text statement fields before they reach spreadsheets."""

from typing import Optional


# Leading characters that spreadsheet applications treat as a formula.
# Expense descriptions and vendor names come from uploaded files and
# third-party APIs, so they are untrusted.
_FORMULA_CHARS = ("=", "+", "-", "@", "\t", "\r", "\n", "|")


def sanitize_cell(value: Optional[str]) -> Optional[str]:
    """Neutralize spreadsheet formula injection in a text cell.

    Values starting with a formula-triggering character are prefixed with a
    single quote, the OWASP-recommended mitigation for CSV injection.

    Args:
        value: Cell text, or None.

    Returns:
        Safe cell text, or None if input was None.
    """
    if not value:
        return value

    if value.startswith(_FORMULA_CHARS):
        return "'" + value

    return value


def sanitize_row(values: list[object]) -> list[object]:
    """Sanitize every string in a row, leaving numbers and dates untouched."""
    return [sanitize_cell(v) if isinstance(v, str) else v for v in values]
