"""Expense commands."""

import click

from chaibook.cli.date_filters import (
    parse_cli_amount,
    parse_cli_date,
    period_options,
    resolve_cli_date_range,
)
from chaibook.cli.error_handling import handle_domain_error
from chaibook.domain.employee import EmployeeService
from chaibook.domain.entities import PaymentMethod
from chaibook.domain.expense import ExpenseService
from chaibook.utils.amount_parser import format_amount

METHOD_CHOICE = click.Choice([m.value for m in PaymentMethod], case_sensitive=False)


def build_expense_service(ctx) -> ExpenseService:
    """Wire an expense service with the configured salary match window."""
    db = ctx.obj["db"]
    settings = ctx.obj["settings"]
    cache = ctx.obj.get("cache")
    employees = EmployeeService(
        db, cache=cache, match_window_ms=settings.salary_match_window_ms
    )
    return ExpenseService(db, cash_flow=employees.cash_flow, employees=employees, cache=cache)


def _method(value: str) -> PaymentMethod:
    return PaymentMethod(value.capitalize())


@click.group()
def expense_group():
    """Record and review expenses."""
    pass


@expense_group.command("add")
@click.option("--date", "date_str", default="today", show_default=True, help="Expense date (YYYY-MM-DD or 'today', 'yesterday')")
@click.option("--type", "expense_type", required=True, help="Expense type (e.g., Milk, Rent, Sugar)")
@click.option("--amount", required=True, help="Amount spent (e.g., 120 or ₹1,250.50)")
@click.option("--method", required=True, type=METHOD_CHOICE, help="Payment method")
@click.option("--vendor", help="Vendor name")
@click.option("--notes", help="Notes")
@click.pass_context
def add_expense(
    ctx,
    date_str: str,
    expense_type: str,
    amount: str,
    method: str,
    vendor: str | None,
    notes: str | None,
) -> None:
    """Add an expense and refresh that day's totals.

    Examples:
        chaibook expense add --type Milk --amount 120 --method Cash
        chaibook expense add --date 2024-06-01 --type Rent --amount 15000 --method Online
    """
    service = build_expense_service(ctx)
    expense_date = parse_cli_date(ctx, date_str)
    value = parse_cli_amount(ctx, amount)

    try:
        expense_id = service.add_expense(
            date=expense_date,
            expense_type=expense_type,
            amount=value,
            payment_method=_method(method),
            vendor_name=vendor,
            notes=notes,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Added expense {expense_id}: {expense_type} {format_amount(value)} on {expense_date}")


@expense_group.command("list")
@click.option("--start-date", help="Start date (YYYY-MM-DD or relative like 'this month')")
@click.option("--end-date", help="End date (YYYY-MM-DD or relative like 'today')")
@period_options
@click.pass_context
def list_expenses(
    ctx,
    start_date: str | None,
    end_date: str | None,
    this_week: bool,
    this_month: bool,
    last_week: bool,
    last_month: bool,
) -> None:
    """List expenses, newest first."""
    service = build_expense_service(ctx)
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

    expenses = service.list_expenses(start_date=start, end_date=end)
    if not expenses:
        click.echo("No expenses found.")
        return

    click.echo(f"{'ID':>5}  {'Date':<10}  {'Type':<16}  {'Method':<7}  {'Amount':>12}  Vendor")
    click.echo("-" * 80)
    for e in expenses:
        marker = " (salary)" if e.is_salary_payment else ""
        click.echo(
            f"{e.id:>5}  {e.date.isoformat():<10}  {e.expense_type:<16}  "
            f"{e.payment_method.value:<7}  {format_amount(e.amount):>12}  "
            f"{e.vendor_name or ''}{marker}"
        )


@expense_group.command("update")
@click.argument("expense_id", type=int)
@click.option("--date", "date_str", help="New expense date")
@click.option("--type", "expense_type", help="New expense type")
@click.option("--amount", help="New amount")
@click.option("--method", type=METHOD_CHOICE, help="New payment method")
@click.option("--vendor", help="New vendor name (empty string clears it)")
@click.option("--notes", help="New notes (empty string clears them)")
@click.pass_context
def update_expense(
    ctx,
    expense_id: int,
    date_str: str | None,
    expense_type: str | None,
    amount: str | None,
    method: str | None,
    vendor: str | None,
    notes: str | None,
) -> None:
    """Update an expense. Only the given fields change.

    Salary expenses only accept type, vendor and notes changes.

    Examples:
        chaibook expense update 4 --amount 140
        chaibook expense update 4 --date yesterday --method Online
    """
    service = build_expense_service(ctx)
    expense_date = parse_cli_date(ctx, date_str) if date_str is not None else None
    value = parse_cli_amount(ctx, amount) if amount is not None else None

    try:
        service.update_expense(
            expense_id,
            date=expense_date,
            expense_type=expense_type,
            amount=value,
            payment_method=_method(method) if method else None,
            vendor_name=vendor,
            notes=notes,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Updated expense {expense_id}")


@expense_group.command("delete")
@click.argument("expense_id", type=int)
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt")
@click.pass_context
def delete_expense(ctx, expense_id: int, yes: bool) -> None:
    """Delete an expense.

    Deleting a salary expense also removes its salary payment and reverses
    any advance it recorded.
    """
    service = build_expense_service(ctx)
    expense = service.get_expense(expense_id)
    if expense is None:
        click.echo(f"Error: Expense {expense_id} not found", err=True)
        ctx.exit(1)

    prompt = f"Delete expense {expense_id} ({expense.expense_type} {format_amount(expense.amount)} on {expense.date})?"
    if not yes and not click.confirm(prompt):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_expense(expense_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Deleted expense {expense_id}")


@expense_group.command("stats")
@click.option("--date", "date_str", default="today", show_default=True, help="Reference day")
@click.pass_context
def expense_stats(ctx, date_str: str) -> None:
    """Show expense totals for the day, week, month and overall."""
    service = build_expense_service(ctx)
    today = parse_cli_date(ctx, date_str)
    stats = service.get_expense_stats(today=today)

    click.echo(f"\nExpenses as of {today}:")
    click.echo("-" * 60)
    click.echo(f"{'Period':<12} {'Cash':>14} {'Online':>14} {'Total':>14}")
    click.echo("-" * 60)
    for label, key in (("Today", "today"), ("This week", "weekly"), ("This month", "monthly"), ("Overall", "overall")):
        window = stats[key]
        click.echo(
            f"{label:<12} {format_amount(window['cash']):>14} "
            f"{format_amount(window['online']):>14} {format_amount(window['total']):>14}"
        )

    if stats["by_type"]:
        click.echo("\nBy type:")
        for expense_type, total in stats["by_type"]:
            click.echo(f"    {expense_type:<30} {format_amount(total):>14}")


def register_commands(cli):
    """Register expense commands with main CLI."""
    cli.add_command(expense_group, name="expense")
