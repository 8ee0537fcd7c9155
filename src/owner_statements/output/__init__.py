"""Output generation for statement exports."""

from owner_statements.output.csv_exporter import CSVExporter
from owner_statements.output.excel_writer import ExcelWriter

__all__ = ["CSVExporter", "ExcelWriter"]
