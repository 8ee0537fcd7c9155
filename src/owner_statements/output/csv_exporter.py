"""CSV exporter for owner statements."""

import csv
from decimal import Decimal
from pathlib import Path

from owner_statements.models.statement import Statement
from owner_statements.utils.decimal_utils import round_money
from owner_statements.utils.logging_config import get_logger
from owner_statements.utils.sanitize import sanitize_row

logger = get_logger(__name__)

RESERVATION_HEADERS = [
    "Reservation ID", "Property", "Guest", "Source", "Check-in", "Check-out", "Nights",
    "Original Revenue", "Revenue", "PM %", "Commission", "Commission Deducted",
    "Tax Added", "Cleaning Pass-through", "Gross Payout", "Notes",
]

EXPENSE_HEADERS = ["Date", "Property", "Description", "Vendor", "Category", "Type", "Amount", "Group"]


def _money(amount: Decimal) -> Decimal:
    # Decimals pass through sanitize_row untouched, so negatives are not quoted
    return round_money(amount)


class CSVExporter:
    """Exports a statement to CSV files.

    Creates three files in the output directory:
    - statement_summary.csv
    - statement_reservations.csv
    - statement_expenses.csv
    """

    def export(self, base_path: Path, statement: Statement) -> list[Path]:
        """Export a statement to CSV files.

        Args:
            base_path: Base path for output (e.g., ./output/statement.csv).
                       Files are written next to it.
            statement: Statement to export.

        Returns:
            List of paths to created CSV files.
        """
        base_dir = base_path.parent
        base_dir.mkdir(parents=True, exist_ok=True)

        created_files = [
            self._export_summary(base_dir, statement),
            self._export_reservations(base_dir, statement),
            self._export_expenses(base_dir, statement),
        ]
        logger.info(f"Exported {len(created_files)} CSV files")
        return created_files

    def _export_summary(self, base_dir: Path, statement: Statement) -> Path:
        output_path = base_dir / "statement_summary.csv"
        totals = statement.totals

        with open(output_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(["STATEMENT SUMMARY", ""])
            writer.writerow(["Period", statement.period.display])
            writer.writerow(["Calculation", statement.period.calculation_type.value])
            writer.writerow(["Properties", ", ".join(str(p) for p in statement.property_ids)])
            writer.writerow([])

            writer.writerow(["Total Revenue", _money(totals.total_revenue)])
            writer.writerow(["PM Commission", _money(totals.pm_commission)])
            writer.writerow(["PM %", _money(totals.pm_percentage)])
            writer.writerow(["Total Expenses", _money(totals.total_expenses)])
            writer.writerow(["Total Upsells", _money(totals.total_upsells)])
            writer.writerow(["Cleaning Pass-through", _money(totals.total_cleaning_fee)])
            writer.writerow(["Tech Fees", _money(totals.tech_fees)])
            writer.writerow(["Insurance Fees", _money(totals.insurance_fees)])
            writer.writerow(["Owner Payout", _money(totals.owner_payout)])

            if statement.has_warnings:
                writer.writerow([])
                writer.writerow(["WARNINGS", ""])
                if statement.cleaning_mismatch_warning:
                    writer.writerow(["Cleaning mismatch", statement.cleaning_mismatch_warning.message])
                for dup in statement.duplicate_warnings:
                    writer.writerow(sanitize_row([
                        "Possible duplicate",
                        f"{dup.expense1.description} ({dup.expense1.source}) / "
                        f"{dup.expense2.description} ({dup.expense2.source})",
                    ]))

        logger.debug(f"Wrote {output_path}")
        return output_path

    def _export_reservations(self, base_dir: Path, statement: Statement) -> Path:
        output_path = base_dir / "statement_reservations.csv"

        with open(output_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(RESERVATION_HEADERS)
            for line in statement.reservations:
                res = line.reservation
                notes = [n for n in (line.proration_reason, res.proration_note) if n]
                if line.waiver_active:
                    notes.append("Commission waived")
                if line.is_cohost_airbnb:
                    notes.append("Co-host on Airbnb")
                writer.writerow(sanitize_row([
                    res.id,
                    res.property_id,
                    res.guest_name,
                    res.source,
                    res.check_in.isoformat(),
                    res.check_out.isoformat(),
                    res.nights,
                    _money(line.original_revenue),
                    _money(line.revenue),
                    _money(line.commission_rate),
                    _money(line.commission),
                    _money(line.commission_deducted),
                    _money(line.tax_added),
                    _money(line.cleaning_pass_through),
                    _money(line.gross_payout),
                    "; ".join(notes),
                ]))

        logger.debug(f"Wrote {output_path} ({len(statement.reservations)} rows)")
        return output_path

    def _export_expenses(self, base_dir: Path, statement: Statement) -> Path:
        output_path = base_dir / "statement_expenses.csv"
        groups = (
            ("Counted", statement.expenses),
            ("LL Cover", statement.ll_cover_expenses),
            ("Pass-through", statement.pass_through_expenses),
        )

        with open(output_path, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(EXPENSE_HEADERS)
            for group, expenses in groups:
                for exp in sorted(expenses, key=lambda e: (e.date, e.description)):
                    writer.writerow(sanitize_row([
                        exp.date.isoformat(),
                        exp.property_id if exp.property_id is not None else "",
                        exp.description,
                        exp.vendor or "",
                        exp.category,
                        exp.type,
                        _money(exp.amount),
                        group,
                    ]))

        logger.debug(f"Wrote {output_path}")
        return output_path
