"""Excel workbook writer for owner statements."""

from decimal import Decimal
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from owner_statements.models.expense import Expense
from owner_statements.models.statement import Statement
from owner_statements.utils.logging_config import get_logger
from owner_statements.utils.sanitize import sanitize_cell

logger = get_logger(__name__)

MONEY_FORMAT = '"$"#,##0.00;[Red]-"$"#,##0.00'


class ExcelWriter:
    """Writes a statement to a multi-sheet Excel workbook.

    Generates sheets:
    - Summary
    - Reservations
    - Expenses
    - Warnings
    """

    def __init__(self) -> None:
        # Style definitions
        self.header_font = Font(bold=True, color="FFFFFF")
        self.header_fill = PatternFill(
            start_color="4472C4", end_color="4472C4", fill_type="solid"
        )
        self.money_positive = Font(color="006600")  # Dark green
        self.money_negative = Font(color="CC0000")  # Dark red
        self.right_aligned = Alignment(horizontal="right")
        self.thin_border = Border(
            left=Side(style="thin"),
            right=Side(style="thin"),
            top=Side(style="thin"),
            bottom=Side(style="thin"),
        )

    def write(self, output_path: Path, statement: Statement) -> None:
        """Write a statement to an Excel workbook.

        Args:
            output_path: Path for output file.
            statement: Statement to write.
        """
        logger.info(f"Writing Excel workbook to {output_path}")

        wb = Workbook()
        # Remove default sheet
        if wb.active:
            wb.remove(wb.active)

        self._create_summary(wb, statement)
        self._create_reservations_sheet(wb, statement)
        self._create_expenses_sheet(wb, statement)
        self._create_warnings_sheet(wb, statement)

        output_path.parent.mkdir(parents=True, exist_ok=True)
        wb.save(output_path)
        logger.info(f"Excel workbook saved: {output_path}")

    def _write_headers(self, ws: Worksheet, headers: list[str]) -> None:
        for col, header in enumerate(headers, 1):
            cell = ws.cell(row=1, column=col, value=header)
            cell.font = self.header_font
            cell.fill = self.header_fill
            cell.border = self.thin_border
        ws.freeze_panes = "A2"

    def _money_cell(self, ws: Worksheet, row: int, col: int, amount: Decimal) -> None:
        cell = ws.cell(row=row, column=col, value=float(amount))
        cell.number_format = MONEY_FORMAT
        cell.alignment = self.right_aligned
        if amount < 0:
            cell.font = self.money_negative
        elif amount > 0:
            cell.font = self.money_positive

    def _set_widths(self, ws: Worksheet, widths: list[int]) -> None:
        for col, width in enumerate(widths, 1):
            ws.column_dimensions[get_column_letter(col)].width = width

    def _create_summary(self, wb: Workbook, statement: Statement) -> None:
        ws = wb.create_sheet("Summary")
        totals = statement.totals

        ws.cell(row=1, column=1, value="OWNER STATEMENT").font = Font(bold=True, size=14)
        ws.cell(row=2, column=1, value="Period")
        ws.cell(row=2, column=2, value=statement.period.display)
        ws.cell(row=3, column=1, value="Calculation")
        ws.cell(row=3, column=2, value=statement.period.calculation_type.value)
        ws.cell(row=4, column=1, value="Properties")
        ws.cell(row=4, column=2, value=", ".join(str(p) for p in statement.property_ids))
        ws.cell(row=5, column=1, value="Fee schedule")
        ws.cell(row=5, column=2, value=statement.fee_schedule)

        rows = [
            ("Total Revenue", totals.total_revenue),
            ("PM Commission", totals.pm_commission),
            ("Total Expenses", totals.total_expenses),
            ("Total Upsells", totals.total_upsells),
            ("Cleaning Pass-through", totals.total_cleaning_fee),
            ("Tech Fees", totals.tech_fees),
            ("Insurance Fees", totals.insurance_fees),
        ]
        row = 7
        for label, amount in rows:
            ws.cell(row=row, column=1, value=label)
            self._money_cell(ws, row, 2, amount)
            row += 1

        ws.cell(row=row, column=1, value="PM %")
        ws.cell(row=row, column=2, value=float(totals.pm_percentage)).alignment = self.right_aligned
        row += 2

        ws.cell(row=row, column=1, value="Owner Payout").font = Font(bold=True)
        self._money_cell(ws, row, 2, totals.owner_payout)
        ws.cell(row=row, column=2).font = Font(
            bold=True, color="CC0000" if totals.owner_payout < 0 else "006600"
        )

        if statement.internal_notes:
            row += 2
            ws.cell(row=row, column=1, value="Internal Notes").font = Font(bold=True)
            ws.cell(row=row + 1, column=1, value=sanitize_cell(statement.internal_notes))
            ws.cell(row=row + 1, column=1).alignment = Alignment(wrap_text=True, vertical="top")

        self._set_widths(ws, [24, 40])

    def _create_reservations_sheet(self, wb: Workbook, statement: Statement) -> None:
        ws = wb.create_sheet("Reservations")
        headers = [
            "Reservation ID", "Property", "Guest", "Source", "Check-in", "Check-out", "Nights",
            "Revenue", "PM %", "Commission", "Tax Added", "Cleaning", "Gross Payout", "Notes",
        ]
        self._write_headers(ws, headers)

        for row, line in enumerate(statement.reservations, 2):
            res = line.reservation
            ws.cell(row=row, column=1, value=res.id)
            ws.cell(row=row, column=2, value=res.property_id)
            ws.cell(row=row, column=3, value=sanitize_cell(res.guest_name))
            ws.cell(row=row, column=4, value=sanitize_cell(res.source))
            ws.cell(row=row, column=5, value=res.check_in).number_format = "YYYY-MM-DD"
            ws.cell(row=row, column=6, value=res.check_out).number_format = "YYYY-MM-DD"
            ws.cell(row=row, column=7, value=res.nights)
            self._money_cell(ws, row, 8, line.revenue)
            ws.cell(row=row, column=9, value=float(line.commission_rate))
            self._money_cell(ws, row, 10, line.commission_deducted)
            self._money_cell(ws, row, 11, line.tax_added)
            self._money_cell(ws, row, 12, line.cleaning_pass_through)
            self._money_cell(ws, row, 13, line.gross_payout)

            notes = [n for n in (line.proration_reason, res.proration_note) if n]
            if line.waiver_active:
                notes.append("Commission waived")
            if line.is_cohost_airbnb:
                notes.append("Co-host on Airbnb")
            ws.cell(row=row, column=14, value=sanitize_cell("; ".join(notes)))

        self._set_widths(ws, [16, 10, 22, 12, 12, 12, 8, 12, 8, 12, 12, 12, 14, 40])
        logger.debug(f"Created Reservations sheet with {len(statement.reservations)} rows")

    def _create_expenses_sheet(self, wb: Workbook, statement: Statement) -> None:
        ws = wb.create_sheet("Expenses")
        self._write_headers(ws, ["Date", "Property", "Description", "Vendor", "Category", "Type", "Amount", "Group"])

        groups: list[tuple[str, tuple[Expense, ...]]] = [
            ("Counted", statement.expenses),
            ("LL Cover", statement.ll_cover_expenses),
            ("Pass-through", statement.pass_through_expenses),
        ]
        row = 2
        for group, expenses in groups:
            for exp in sorted(expenses, key=lambda e: (e.date, e.description)):
                ws.cell(row=row, column=1, value=exp.date).number_format = "YYYY-MM-DD"
                ws.cell(row=row, column=2, value=exp.property_id)
                ws.cell(row=row, column=3, value=sanitize_cell(exp.description))
                ws.cell(row=row, column=4, value=sanitize_cell(exp.vendor))
                ws.cell(row=row, column=5, value=sanitize_cell(exp.category))
                ws.cell(row=row, column=6, value=sanitize_cell(exp.type))
                self._money_cell(ws, row, 7, exp.amount)
                ws.cell(row=row, column=8, value=group)
                row += 1

        self._set_widths(ws, [12, 10, 40, 20, 16, 12, 12, 14])
        logger.debug(f"Created Expenses sheet with {row - 2} rows")

    def _create_warnings_sheet(self, wb: Workbook, statement: Statement) -> None:
        ws = wb.create_sheet("Warnings")
        self._write_headers(ws, ["Type", "Details"])

        row = 2
        mismatch = statement.cleaning_mismatch_warning
        if mismatch:
            ws.cell(row=row, column=1, value=mismatch.type)
            ws.cell(row=row, column=2, value=f"{mismatch.message} (difference {mismatch.difference})")
            row += 1

        for dup in statement.duplicate_warnings:
            ws.cell(row=row, column=1, value=f"possible_duplicate ({dup.confidence})")
            details = (
                f"{dup.expense1.date} {dup.expense1.description} {dup.expense1.amount} ({dup.expense1.source}) / "
                f"{dup.expense2.date} {dup.expense2.description} {dup.expense2.amount} ({dup.expense2.source})"
            )
            ws.cell(row=row, column=2, value=sanitize_cell(details))
            row += 1

        if row == 2:
            ws.cell(row=2, column=1, value="No warnings")

        self._set_widths(ws, [28, 100])
