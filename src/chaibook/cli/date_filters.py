"""CLI helpers for date and amount option parsing."""

from datetime import date
from decimal import Decimal

import click

from chaibook.utils.amount_parser import parse_amount
from chaibook.utils.date_parser import get_date_range, parse_date

PERIOD_FLAGS = ("this-week", "this-month", "last-week", "last-month")


def period_options(command):
    """Attach --this-week/--this-month/--last-week/--last-month flags."""
    for period in reversed(PERIOD_FLAGS):
        command = click.option(
            f"--{period}",
            period.replace("-", "_"),
            is_flag=True,
            help=f"Filter to {period.replace('-', ' ')}",
        )(command)
    return command


def resolve_cli_date_range(
    ctx,
    *,
    start_date: str | None,
    end_date: str | None,
    period_flags: dict[str, bool],
    default_range: tuple[date, date] | None = None,
) -> tuple[date | None, date | None]:
    """Resolve CLI date range from period flags or explicit dates."""
    period_count = sum(1 for is_set in period_flags.values() if is_set)

    if period_count > 1:
        click.echo(
            "Error: Only one period option (--this-week, --this-month, --last-week, --last-month) can be specified at a time.",
            err=True,
        )
        ctx.exit(1)

    if period_count > 0 and (start_date or end_date):
        click.echo(
            "Error: Period options (--this-week, --this-month, etc.) cannot be combined with --start-date or --end-date.",
            err=True,
        )
        ctx.exit(1)

    start = None
    end = None

    if period_count == 1:
        for period, is_set in period_flags.items():
            if is_set:
                start, end = get_date_range(period)
                break
    else:
        if start_date:
            start = parse_cli_date(ctx, start_date, label="start date")
        if end_date:
            end = parse_cli_date(ctx, end_date, label="end date")

        if start is None and end is None and default_range is not None:
            start, end = default_range

    return start, end


def parse_cli_date(ctx, value: str, label: str = "date") -> date:
    """Parse a date option or exit with an error."""
    try:
        return parse_date(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)


def parse_cli_amount(ctx, value: str, label: str = "amount") -> Decimal:
    """Parse an amount option or exit with an error."""
    try:
        return parse_amount(value)
    except ValueError as e:
        click.echo(f"Error: Invalid {label}: {e}", err=True)
        ctx.exit(1)
