"""Supplier commands."""

import click

from chaibook.cli.error_handling import handle_domain_error
from chaibook.domain.supplier import SupplierService


def build_supplier_service(ctx) -> SupplierService:
    return SupplierService(ctx.obj["db"], cache=ctx.obj.get("cache"))


@click.group()
def supplier_group():
    """Manage the suppliers stock is bought from."""
    pass


@supplier_group.command("add")
@click.argument("name", metavar="NAME")
@click.option("--contact", "contact_person", help="Contact person")
@click.option("--phone", help="Phone number")
@click.option("--email", help="Email address")
@click.option("--address", help="Postal address")
@click.option("--notes", help="Notes")
@click.pass_context
def add_supplier(
    ctx,
    name: str,
    contact_person: str | None,
    phone: str | None,
    email: str | None,
    address: str | None,
    notes: str | None,
) -> None:
    """Add a supplier.

    Examples:
        chaibook supplier add "Amul Dairy" --contact "Mr. Shah" --phone 98250 12345
    """
    service = build_supplier_service(ctx)
    try:
        supplier_id = service.add_supplier(
            name,
            contact_person=contact_person,
            phone=phone,
            email=email,
            address=address,
            notes=notes,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Added supplier '{name.strip()}' (ID: {supplier_id})")


@supplier_group.command("list")
@click.option("--active-only", is_flag=True, help="Hide inactive suppliers")
@click.pass_context
def list_suppliers(ctx, active_only: bool) -> None:
    """List suppliers."""
    service = build_supplier_service(ctx)
    suppliers = service.list_suppliers(include_inactive=not active_only)
    if not suppliers:
        click.echo("No suppliers found.")
        return

    click.echo("\nSuppliers:")
    click.echo("-" * 80)
    for s in suppliers:
        status = "" if s.is_active else " (inactive)"
        click.echo(
            f"ID: {s.id:3d} | {s.name:24s} | {s.contact_person or '-':16s} | "
            f"{s.phone or '-'}{status}"
        )


@supplier_group.command("show")
@click.argument("supplier_id", type=int)
@click.pass_context
def show_supplier(ctx, supplier_id: int) -> None:
    """Show a supplier's details and the stock items they supply."""
    service = build_supplier_service(ctx)
    try:
        supplier = service.require_supplier(supplier_id)
        items = service.list_supplied_items(supplier_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    status = "" if supplier.is_active else " (inactive)"
    click.echo(f"\n{supplier.name}{status}")
    click.echo("-" * 50)
    for label, value in (
        ("Contact", supplier.contact_person),
        ("Phone", supplier.phone),
        ("Email", supplier.email),
        ("Address", supplier.address),
        ("Notes", supplier.notes),
    ):
        if value:
            click.echo(f"{label:<20} {value}")

    if items:
        click.echo("\nSupplies:")
        for item in items:
            click.echo(f"    {item.id:>4}  {item.product_name} ({item.category})")
    else:
        click.echo("\nNo stock items linked.")


@supplier_group.command("update")
@click.argument("supplier_id", type=int)
@click.option("--name", help="New name")
@click.option("--contact", "contact_person", help="New contact person ('' clears)")
@click.option("--phone", help="New phone number ('' clears)")
@click.option("--email", help="New email address ('' clears)")
@click.option("--address", help="New address ('' clears)")
@click.option("--notes", help="New notes ('' clears)")
@click.pass_context
def update_supplier(ctx, supplier_id: int, **options: str | None) -> None:
    """Update a supplier's details."""
    service = build_supplier_service(ctx)
    fields = {key: value for key, value in options.items() if value is not None}

    try:
        service.update_supplier(supplier_id, **fields)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Updated supplier {supplier_id}")


@supplier_group.command("deactivate")
@click.argument("supplier_id", type=int)
@click.pass_context
def deactivate_supplier(ctx, supplier_id: int) -> None:
    """Mark a supplier inactive. Existing stock links are kept."""
    service = build_supplier_service(ctx)
    try:
        service.deactivate_supplier(supplier_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Deactivated supplier {supplier_id}")


@supplier_group.command("reactivate")
@click.argument("supplier_id", type=int)
@click.pass_context
def reactivate_supplier(ctx, supplier_id: int) -> None:
    """Mark an inactive supplier active again."""
    service = build_supplier_service(ctx)
    try:
        service.reactivate_supplier(supplier_id)
    except ValueError as e:
        handle_domain_error(ctx, e)
    click.echo(f"Reactivated supplier {supplier_id}")


def register_commands(cli):
    """Register supplier commands with main CLI."""
    cli.add_command(supplier_group, name="supplier")
