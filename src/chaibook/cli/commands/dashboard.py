"""Dashboard command."""

import click

from chaibook.cli.date_filters import parse_cli_date
from chaibook.domain.dashboard import DashboardService
from chaibook.domain.stock import StockService
from chaibook.utils.amount_parser import format_amount


@click.command("dashboard")
@click.option("--date", "date_str", default="today", show_default=True, help="Reference day")
@click.pass_context
def dashboard(ctx, date_str: str) -> None:
    """Show today's figures and weekly, monthly and overall totals."""
    db = ctx.obj["db"]
    today = parse_cli_date(ctx, date_str)
    stats = DashboardService(db, cache=ctx.obj.get("cache")).get_stats(today)

    click.echo(f"\nToday ({today}):")
    click.echo("-" * 60)
    figures = stats["today"]
    if figures is None:
        click.echo("No daily entry yet.")
    else:
        for label, key in (
            ("Sales", "sales"),
            ("Expenses", "expenses"),
            ("Profit", "profit"),
            ("Cash sales", "cash_sales"),
            ("Online sales", "online_sales"),
            ("Closing cash", "closing_cash"),
            ("Expected closing cash", "expected_closing_cash"),
        ):
            click.echo(f"{label:<30} {format_amount(figures[key]):>20}")
        if figures["cash_mismatch"]:
            click.echo(f"Cash mismatch: {format_amount(figures['cash_difference'])}")

    click.echo(f"\n{'Period':<12} {'Sales':>14} {'Expenses':>14} {'Profit':>14}")
    click.echo("-" * 60)
    for label, key in (("This week", "weekly"), ("This month", "monthly"), ("Overall", "overall")):
        window = stats[key]
        click.echo(
            f"{label:<12} {format_amount(window['sales']):>14} "
            f"{format_amount(window['expenses']):>14} {format_amount(window['profit']):>14}"
        )

    alerts = StockService(
        db,
        cache=ctx.obj.get("cache"),
        expiry_warning_days=ctx.obj["settings"].expiry_warning_days,
    ).get_alerts(today)
    if alerts:
        click.echo(f"\nStock alerts: {len(alerts)} (see 'chaibook stock alerts')")


def register_commands(cli):
    """Register dashboard command with main CLI."""
    cli.add_command(dashboard)
