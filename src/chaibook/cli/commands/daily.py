"""Daily cash flow commands."""

import click

from chaibook.cli.date_filters import (
    parse_cli_amount,
    parse_cli_date,
    period_options,
    resolve_cli_date_range,
)
from chaibook.cli.error_handling import handle_domain_error
from chaibook.domain.cash_flow import CashFlowService
from chaibook.domain.entities import CashFlowEntry
from chaibook.utils.amount_parser import format_amount


@click.group()
def daily_group():
    """Reconcile daily cash."""
    pass


def _show_entry(entry: CashFlowEntry) -> None:
    rows = [
        ("Opening cash", entry.opening_cash),
        ("Cash sales", entry.cash_sales),
        ("Online sales", entry.online_sales),
        ("Cash expenses", entry.cash_expenses),
        ("Online expenses", entry.online_expenses),
        ("Total expenses", entry.total_expenses),
        ("Expected closing cash", entry.expected_closing_cash),
        ("Closing cash", entry.closing_cash),
        ("Daily sales", entry.daily_sales),
        ("Daily profit", entry.daily_profit),
    ]
    click.echo(f"\nDaily entry for {entry.date}:")
    click.echo("-" * 50)
    for label, value in rows:
        click.echo(f"{label:<30} {format_amount(value):>18}")
    click.echo("-" * 50)
    if entry.cash_mismatch:
        click.echo(f"Cash mismatch: {format_amount(entry.cash_difference)}")
    else:
        click.echo("Cash matches")
    if entry.notes:
        click.echo(f"Notes: {entry.notes}")


@daily_group.command("save")
@click.option("--date", "date_str", default="today", show_default=True, help="Day being reconciled")
@click.option("--cash-sales", required=True, help="Cash takings")
@click.option("--online-sales", required=True, help="Online takings")
@click.option("--closing-cash", required=True, help="Cash counted at close")
@click.option("--opening-cash", help="Cash at open (defaults to the previous day's closing cash)")
@click.option("--notes", help="Notes")
@click.pass_context
def save_entry(
    ctx,
    date_str: str,
    cash_sales: str,
    online_sales: str,
    closing_cash: str,
    opening_cash: str | None,
    notes: str | None,
) -> None:
    """Save a day's sales and closing cash.

    Expense totals come from the recorded expenses; sales, profit and the
    expected closing cash are derived.

    Examples:
        chaibook daily save --cash-sales 2400 --online-sales 800 --closing-cash 3100
        chaibook daily save --date 2024-06-01 --opening-cash 500 --cash-sales 200 --online-sales 0 --closing-cash 100
    """
    service = CashFlowService(ctx.obj["db"], cache=ctx.obj.get("cache"))
    entry_date = parse_cli_date(ctx, date_str)
    amounts = {
        "cash_sales": parse_cli_amount(ctx, cash_sales, label="cash sales"),
        "online_sales": parse_cli_amount(ctx, online_sales, label="online sales"),
        "closing_cash": parse_cli_amount(ctx, closing_cash, label="closing cash"),
    }
    if opening_cash is not None:
        amounts["opening_cash"] = parse_cli_amount(ctx, opening_cash, label="opening cash")

    try:
        entry = service.save_daily_entry(entry_date, notes=notes, **amounts)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Saved daily entry for {entry_date}")
    _show_entry(entry)


@daily_group.command("show")
@click.argument("date_str", metavar="DATE", default="today")
@click.pass_context
def show_entry(ctx, date_str: str) -> None:
    """Show the entry for a day (default: today)."""
    service = CashFlowService(ctx.obj["db"], cache=ctx.obj.get("cache"))
    entry_date = parse_cli_date(ctx, date_str)

    try:
        entry = service.require_entry(entry_date)
    except ValueError as e:
        handle_domain_error(ctx, e)

    _show_entry(entry)


@daily_group.command("list")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'this month')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@period_options
@click.pass_context
def list_entries(
    ctx,
    start_date: str | None,
    end_date: str | None,
    this_week: bool,
    this_month: bool,
    last_week: bool,
    last_month: bool,
) -> None:
    """List daily entries, newest first."""
    service = CashFlowService(ctx.obj["db"], cache=ctx.obj.get("cache"))
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

    entries = service.list_entries(start_date=start, end_date=end)
    if not entries:
        click.echo("No daily entries found.")
        return

    click.echo(f"{'Date':<10}  {'Sales':>12}  {'Expenses':>12}  {'Profit':>12}  {'Closing':>12}  Cash")
    click.echo("-" * 80)
    for entry in entries:
        status = "mismatch" if entry.cash_mismatch else "ok"
        click.echo(
            f"{entry.date.isoformat():<10}  {format_amount(entry.daily_sales):>12}  "
            f"{format_amount(entry.total_expenses):>12}  {format_amount(entry.daily_profit):>12}  "
            f"{format_amount(entry.closing_cash):>12}  {status}"
        )


@daily_group.command("delete")
@click.argument("date_str", metavar="DATE")
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt")
@click.pass_context
def delete_entry(ctx, date_str: str, yes: bool) -> None:
    """Delete a day's entry. The day's expenses are kept."""
    service = CashFlowService(ctx.obj["db"], cache=ctx.obj.get("cache"))
    entry_date = parse_cli_date(ctx, date_str)

    if not yes and not click.confirm(f"Delete the daily entry for {entry_date}?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_daily_entry(entry_date)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Deleted daily entry for {entry_date}")


@daily_group.command("recompute")
@click.argument("date_str", metavar="DATE", default="today")
@click.pass_context
def recompute_entry(ctx, date_str: str) -> None:
    """Re-derive a day's expense totals from its expenses."""
    service = CashFlowService(ctx.obj["db"], cache=ctx.obj.get("cache"))
    entry_date = parse_cli_date(ctx, date_str)

    try:
        entry = service.recompute_expenses(entry_date)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Recomputed {entry_date}: expenses {format_amount(entry.total_expenses)}")


@daily_group.command("suggest-opening")
@click.argument("date_str", metavar="DATE", default="today")
@click.pass_context
def suggest_opening(ctx, date_str: str) -> None:
    """Show the opening cash carried from the previous entry."""
    service = CashFlowService(ctx.obj["db"], cache=ctx.obj.get("cache"))
    entry_date = parse_cli_date(ctx, date_str)
    click.echo(format_amount(service.suggest_opening_cash(entry_date)))


def register_commands(cli):
    """Register daily commands with main CLI."""
    cli.add_command(daily_group, name="daily")
