"""Command-line interface for the owner statement engine."""

import argparse
import sys
from datetime import date
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from owner_statements import __version__
from owner_statements.config import Config, ConfigError, Snapshot, load_config, load_snapshot
from owner_statements.engine import StatementEngine
from owner_statements.errors import StatementError
from owner_statements.models.statement import CalculationType, Statement
from owner_statements.output import CSVExporter, ExcelWriter
from owner_statements.processing.expense_classifier import detect_duplicates
from owner_statements.processing.guardrail import GuardrailResult, check_send_guardrail
from owner_statements.processing.period_resolver import (
    get_previous_payout_week,
    resolve_payout_week,
    statement_period_for_frequency,
)
from owner_statements.processing.reservation_filter import prorate_for_calendar
from owner_statements.processing.weekly_rules import generate_weekly_statement
from owner_statements.utils.date_utils import parse_iso_date
from owner_statements.utils.decimal_utils import format_currency
from owner_statements.utils.logging_config import get_logger, setup_logging

# Load environment variables from .env file (if it exists)
load_dotenv()

console = Console()
logger = get_logger(__name__)

UPLOAD_SOURCE = "upload"


def _iso_date(value: str) -> date:
    try:
        return parse_iso_date(value, "date")
    except StatementError as e:
        raise argparse.ArgumentTypeError(str(e)) from None


def create_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="owner-statements",
        description="Calculate owner payout statements for short-term rental properties",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s calculate -i snapshot.yaml -p 101 102 --start 2024-06-04 --end 2024-06-10
  %(prog)s calculate -i snapshot.yaml -p 101 --frequency monthly --type calendar -o june.xlsx
  %(prog)s payout-week --date 2024-06-09
  %(prog)s weekly -i snapshot.yaml -p 101 --date 2024-06-09
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG)",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=Path("config"),
        help="Configuration directory (default: ./config)",
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to settings.yaml")

    subparsers = parser.add_subparsers(dest="command", required=True)

    calc = subparsers.add_parser("calculate", help="Calculate a statement for a period")
    calc.add_argument("-i", "--input", type=Path, required=True, help="Input snapshot YAML")
    calc.add_argument("-p", "--property", type=int, nargs="+", required=True, dest="properties",
                      help="Property ids covered by the statement")
    calc.add_argument("--start", type=_iso_date, help="Period start (YYYY-MM-DD)")
    calc.add_argument("--end", type=_iso_date, help="Period end (YYYY-MM-DD)")
    calc.add_argument("--frequency", help="Derive the period from a schedule (weekly, bi-weekly, monthly)")
    calc.add_argument("--today", type=_iso_date, default=None, help="Send date used with --frequency")
    calc.add_argument("--type", default="checkout", choices=[t.value for t in CalculationType],
                      help="Calculation type (default: checkout)")
    calc.add_argument("-o", "--output", type=Path, default=None, help="Write the statement (.xlsx or .csv)")

    week = subparsers.add_parser("payout-week", help="Show the payout week for a date")
    week.add_argument("--date", type=_iso_date, default=None, help="Reference date (default: today)")
    week.add_argument("--previous", action="store_true", help="Show the previous payout week")

    weekly = subparsers.add_parser("weekly", help="Legacy weekly statement for one property")
    weekly.add_argument("-i", "--input", type=Path, required=True, help="Input snapshot YAML")
    weekly.add_argument("-p", "--property", type=int, required=True, dest="property_id", help="Property id")
    weekly.add_argument("--date", type=_iso_date, default=None,
                        help="Any date in the payout week (default: previous week)")
    weekly.add_argument("-o", "--output", type=Path, default=None, help="Write the statement (.xlsx or .csv)")

    return parser


def get_log_level(verbosity: int) -> str:
    """Convert verbosity count to log level."""
    if verbosity >= 2:
        return "DEBUG"
    elif verbosity >= 1:
        return "INFO"
    else:
        return "WARNING"


def validate_output_path(path: Path, base_dir: Optional[Path] = None) -> Path:
    """Validate that output path is within allowed directory.

    Args:
        path: The path to validate.
        base_dir: Base directory to constrain paths within (default: cwd).

    Returns:
        The resolved, validated path.

    Raises:
        ValueError: If the path escapes the allowed directory.
    """
    if base_dir is None:
        base_dir = Path.cwd()

    resolved_base = base_dir.resolve()
    resolved_path = (base_dir / path).resolve()
    try:
        resolved_path.relative_to(resolved_base)
    except ValueError:
        raise ValueError(
            f"Invalid path: '{path}' escapes the allowed directory. "
            f"Paths must be within '{resolved_base}'"
        ) from None
    return resolved_path


def display_statement(statement: Statement) -> None:
    """Print statement totals and warnings."""
    totals = statement.totals
    table = Table(title=f"Statement {statement.period.display} ({statement.period.calculation_type.value})")
    table.add_column("Item")
    table.add_column("Amount", justify="right")
    table.add_row("Reservations", str(len(statement.reservations)))
    table.add_row("Total revenue", format_currency(totals.total_revenue))
    table.add_row(f"PM commission ({totals.pm_percentage}%)", format_currency(totals.pm_commission))
    table.add_row("Expenses", format_currency(totals.total_expenses))
    table.add_row("Upsells", format_currency(totals.total_upsells))
    table.add_row("Cleaning pass-through", format_currency(totals.total_cleaning_fee))
    table.add_row("Tech fees", format_currency(totals.tech_fees))
    table.add_row("Insurance fees", format_currency(totals.insurance_fees))
    table.add_row("[bold]Owner payout[/bold]", f"[bold]{format_currency(totals.owner_payout)}[/bold]")
    console.print(table)

    if statement.cleaning_mismatch_warning:
        console.print(f"[yellow]Warning: {statement.cleaning_mismatch_warning.message}[/yellow]")
    if statement.duplicate_warnings:
        console.print(f"[yellow]Warning: {len(statement.duplicate_warnings)} possible duplicate expenses[/yellow]")


def display_guardrail(result: GuardrailResult) -> None:
    color = "green" if result.can_send else ("red" if result.flagged_for_review else "yellow")
    verdict = "can send" if result.can_send else "do not send"
    console.print(f"[{color}]Delivery: {verdict} ({result.reason.value}) - {result.message}[/{color}]")


def write_output(path: Path, statement: Statement) -> None:
    """Write a statement as a workbook or as CSV files."""
    output = validate_output_path(path)
    if output.suffix.lower() == ".csv":
        files = CSVExporter().export(output, statement)
        console.print(f"[green]Wrote {len(files)} CSV files to {output.parent}[/green]")
    else:
        ExcelWriter().write(output, statement)
        console.print(f"[green]Wrote {output}[/green]")


def _find_duplicates(snapshot: Snapshot) -> list:
    uploaded = [e for e in snapshot.expenses if e.source == UPLOAD_SOURCE]
    others = [e for e in snapshot.expenses if e.source != UPLOAD_SOURCE]
    if not uploaded or not others:
        return []
    return detect_duplicates(others, uploaded)


def run_calculate(args: argparse.Namespace, config: Config) -> int:
    if args.frequency:
        period = statement_period_for_frequency(args.frequency, args.today, args.type)
        start, end = period.start, period.end
    elif args.start and args.end:
        start, end = args.start, args.end
    else:
        console.print("[red]Error: provide --start and --end, or --frequency[/red]")
        return 1

    snapshot = load_snapshot(args.input)
    reservations = snapshot.reservations
    if args.type == CalculationType.CALENDAR.value:
        overlapping = [r for r in reservations if r.check_in <= end and r.check_out > start]
        reservations = prorate_for_calendar(overlapping, start, end)

    engine = StatementEngine(config)
    statement = engine.calculate(
        reservations,
        snapshot.expenses,
        snapshot.listings,
        args.properties,
        start,
        end,
        args.type,
        duplicate_warnings=_find_duplicates(snapshot),
    )
    display_statement(statement)
    display_guardrail(check_send_guardrail(statement))

    if args.output:
        write_output(args.output, statement)
    return 0


def run_payout_week(args: argparse.Namespace) -> int:
    week = get_previous_payout_week(args.date) if args.previous else resolve_payout_week(args.date or date.today())
    console.print(f"Payout week: {week.start.isoformat()} (Tue) to {week.end.isoformat()} (Mon)")
    return 0


def run_weekly(args: argparse.Namespace, config: Config) -> int:
    snapshot = load_snapshot(args.input)
    profile = snapshot.listings.get(args.property_id)
    if profile is None:
        console.print(f"[red]Error: no listing profile for property {args.property_id}[/red]")
        return 1

    week = resolve_payout_week(args.date) if args.date else get_previous_payout_week()
    owner = snapshot.owner_for(args.property_id)
    statement = generate_weekly_statement(
        snapshot.reservations,
        snapshot.expenses,
        profile,
        owner,
        week,
        fee_schedule=config.fees.build_schedule(owner) if config.fees.schedule == "amortized" else None,
    )
    display_statement(statement)
    display_guardrail(check_send_guardrail(statement))

    if args.output:
        write_output(args.output, statement)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the CLI.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(settings_path=args.config, config_dir=args.config_dir)
    except (ConfigError, FileNotFoundError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1

    setup_logging(
        level=config.logging.level,
        log_file=config.logging.file,
        console_level=get_log_level(args.verbose) if args.verbose else None,
    )

    try:
        if args.command == "calculate":
            return run_calculate(args, config)
        if args.command == "payout-week":
            return run_payout_week(args)
        return run_weekly(args, config)
    except (StatementError, ConfigError, FileNotFoundError) as e:
        logger.error(f"{args.command} failed: {e}")
        console.print(f"[red]Error: {e}[/red]")
        return 1
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        return 1


if __name__ == "__main__":
    sys.exit(main())
