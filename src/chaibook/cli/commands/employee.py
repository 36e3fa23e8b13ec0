"""Employee and salary commands."""

import calendar
from datetime import date

import click

from chaibook.cli.date_filters import parse_cli_amount
from chaibook.cli.error_handling import handle_domain_error
from chaibook.domain.employee import EmployeeService
from chaibook.domain.entities import PaymentMethod, PaymentType
from chaibook.utils.amount_parser import format_amount


def build_employee_service(ctx) -> EmployeeService:
    return EmployeeService(
        ctx.obj["db"],
        cache=ctx.obj.get("cache"),
        match_window_ms=ctx.obj["settings"].salary_match_window_ms,
    )


@click.group()
def employee_group():
    """Manage employees and salary payments."""
    pass


@employee_group.command("add")
@click.argument("name", metavar="NAME")
@click.option("--role", required=True, help="Role (e.g., Helper, Tea Master)")
@click.option("--salary", required=True, help="Monthly salary")
@click.pass_context
def add_employee(ctx, name: str, role: str, salary: str) -> None:
    """Add an employee.

    Examples:
        chaibook employee add "Ravi" --role Helper --salary 9000
    """
    service = build_employee_service(ctx)
    monthly_salary = parse_cli_amount(ctx, salary, label="salary")

    try:
        employee_id = service.add_employee(name=name, role=role, monthly_salary=monthly_salary)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Added employee '{name}' (ID: {employee_id})")


@employee_group.command("list")
@click.option("--active-only", is_flag=True, help="Hide inactive employees")
@click.pass_context
def list_employees(ctx, active_only: bool) -> None:
    """List employees."""
    service = build_employee_service(ctx)
    employees = service.list_employees(include_inactive=not active_only)
    if not employees:
        click.echo("No employees found.")
        return

    click.echo("\nEmployees:")
    click.echo("-" * 80)
    for emp in employees:
        status = "" if emp.is_active else " (inactive)"
        click.echo(
            f"ID: {emp.id:3d} | {emp.name:20s} | {emp.role:12s} | "
            f"Salary: {format_amount(emp.monthly_salary)} | "
            f"Advance: {format_amount(emp.advance_given)}{status}"
        )


@employee_group.command("update")
@click.argument("employee_id", type=int)
@click.option("--name", help="New name")
@click.option("--role", help="New role")
@click.option("--salary", help="New monthly salary")
@click.pass_context
def update_employee(ctx, employee_id: int, name: str | None, role: str | None, salary: str | None) -> None:
    """Update an employee's details."""
    service = build_employee_service(ctx)
    monthly_salary = parse_cli_amount(ctx, salary, label="salary") if salary is not None else None

    try:
        service.update_employee(employee_id, name=name, role=role, monthly_salary=monthly_salary)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Updated employee {employee_id}")


@employee_group.command("deactivate")
@click.argument("employee_id", type=int)
@click.pass_context
def deactivate_employee(ctx, employee_id: int) -> None:
    """Mark an employee inactive. Payment history is kept."""
    service = build_employee_service(ctx)
    try:
        service.deactivate_employee(employee_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deactivated employee {employee_id}")


@employee_group.command("reactivate")
@click.argument("employee_id", type=int)
@click.pass_context
def reactivate_employee(ctx, employee_id: int) -> None:
    """Mark an inactive employee active again."""
    service = build_employee_service(ctx)
    try:
        service.reactivate_employee(employee_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Reactivated employee {employee_id}")


@employee_group.command("pay")
@click.argument("employee_id", type=int)
@click.option("--amount", required=True, help="Amount paid")
@click.option(
    "--type",
    "payment_type",
    type=click.Choice([t.value for t in PaymentType], case_sensitive=False),
    default=PaymentType.SALARY.value,
    show_default=True,
    help="Salary or Advance",
)
@click.option(
    "--method",
    type=click.Choice([m.value for m in PaymentMethod], case_sensitive=False),
    required=True,
    help="Payment method",
)
@click.option("--month", help="Month the payment is for (default: current month)")
@click.option("--year", type=int, help="Year the payment is for (default: current year)")
@click.option("--notes", help="Notes")
@click.pass_context
def pay_employee(
    ctx,
    employee_id: int,
    amount: str,
    payment_type: str,
    method: str,
    month: str | None,
    year: int | None,
    notes: str | None,
) -> None:
    """Pay a salary or advance.

    The payment is also recorded as today's "Salary" expense. Advances add
    to the employee's advance balance.

    Examples:
        chaibook employee pay 1 --amount 9000 --method Online
        chaibook employee pay 1 --amount 2000 --type Advance --method Cash
    """
    service = build_employee_service(ctx)
    value = parse_cli_amount(ctx, amount)
    today = date.today()

    try:
        payment_id, expense_id = service.pay_salary(
            employee_id=employee_id,
            amount=value,
            payment_type=PaymentType(payment_type.capitalize()),
            payment_method=PaymentMethod(method.capitalize()),
            month=month or calendar.month_name[today.month],
            year=year or today.year,
            notes=notes,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(
        f"Paid {format_amount(value)} to employee {employee_id} "
        f"(payment {payment_id}, expense {expense_id})"
    )


@employee_group.command("payments")
@click.option("--employee", "employee_id", type=int, help="Only this employee's payments")
@click.option("--month", help="Filter by month name")
@click.option("--year", type=int, help="Filter by year")
@click.pass_context
def list_payments(ctx, employee_id: int | None, month: str | None, year: int | None) -> None:
    """List salary payments, newest first."""
    service = build_employee_service(ctx)
    payments = service.list_salary_payments(employee_id=employee_id, month=month, year=year)
    if not payments:
        click.echo("No salary payments found.")
        return

    names = {emp.id: emp.name for emp in service.list_employees()}
    click.echo("\nSalary payments:")
    click.echo("-" * 80)
    for p in payments:
        click.echo(
            f"ID: {p.id:3d} | {names.get(p.employee_id, p.employee_id)!s:20s} | "
            f"{p.payment_type.value:8s} | {p.payment_method.value:7s} | "
            f"{format_amount(p.amount):>12} | {p.month} {p.year}"
        )


def register_commands(cli):
    """Register employee commands with main CLI."""
    cli.add_command(employee_group, name="employee")
