"""Export command."""

import sys

import click

from chaibook.cli.date_filters import period_options, resolve_cli_date_range
from chaibook.domain.report import ReportService


@click.command("export")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'this month')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@period_options
@click.option(
    "--output",
    type=click.Path(dir_okay=False, writable=True),
    help="CSV file to write (default: stdout)",
)
@click.pass_context
def export(
    ctx,
    start_date: str | None,
    end_date: str | None,
    this_week: bool,
    this_month: bool,
    last_week: bool,
    last_month: bool,
    output: str | None,
) -> None:
    """Export daily entries as CSV.

    Examples:
        chaibook export --this-month
        chaibook export --start-date 2024-06-01 --end-date 2024-06-30 --output june.csv
    """
    service = ReportService(ctx.obj["db"])
    start, end = resolve_cli_date_range(
        ctx,
        start_date=start_date,
        end_date=end_date,
        period_flags={
            "this-week": this_week,
            "this-month": this_month,
            "last-week": last_week,
            "last-month": last_month,
        },
    )

    if output is None:
        service.export_cash_flow_csv(start, end, sys.stdout)
        return

    with open(output, "w", newline="", encoding="utf-8") as f:
        rows = service.export_cash_flow_csv(start, end, f)
    click.echo(f"Exported {rows} daily entries to {output}")


def register_commands(cli):
    """Register export command with main CLI."""
    cli.add_command(export)
