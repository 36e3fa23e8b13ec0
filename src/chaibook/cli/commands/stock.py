"""Stock commands."""

import click

from chaibook.cli.date_filters import parse_cli_amount, parse_cli_date
from chaibook.cli.error_handling import handle_domain_error
from chaibook.domain.entities import StockTransactionType, UsagePeriod
from chaibook.domain.stock import StockService
from chaibook.domain.stock_analytics import StockAnalyticsService
from chaibook.utils.amount_parser import format_amount

PERIOD_CHOICE = click.Choice([p.value for p in UsagePeriod])


def build_stock_service(ctx) -> StockService:
    return StockService(
        ctx.obj["db"],
        cache=ctx.obj.get("cache"),
        expiry_warning_days=ctx.obj["settings"].expiry_warning_days,
    )


@click.group()
def stock_group():
    """Track stock levels, movements and usage."""
    pass


@stock_group.command("add")
@click.argument("product_name", metavar="PRODUCT_NAME")
@click.option("--category", required=True, help="Category (e.g., Tea, Dairy, Snacks)")
@click.option("--unit", required=True, help="Unit of measure (e.g., kg, litre, pcs)")
@click.option("--opening", default="0", show_default=True, help="Opening quantity")
@click.option("--purchase-price", required=True, help="Purchase price per unit")
@click.option("--selling-price", default="0", show_default=True, help="Selling price per unit")
@click.option("--threshold", default="10", show_default=True, help="Low stock threshold")
@click.option("--vendor", help="Vendor name")
@click.option("--expiry", help="Expiry date")
@click.option("--supplier", "supplier_id", type=int, help="Supplier ID")
@click.pass_context
def add_stock(
    ctx,
    product_name: str,
    category: str,
    unit: str,
    opening: str,
    purchase_price: str,
    selling_price: str,
    threshold: str,
    vendor: str | None,
    expiry: str | None,
    supplier_id: int | None,
) -> None:
    """Add a stock item.

    Examples:
        chaibook stock add "Assam CTC" --category Tea --unit kg --opening 10 --purchase-price 420
        chaibook stock add "Milk" --category Dairy --unit litre --purchase-price 56 --expiry tomorrow
    """
    service = build_stock_service(ctx)
    values = {
        "opening_stock": parse_cli_amount(ctx, opening, label="opening quantity"),
        "purchase_price": parse_cli_amount(ctx, purchase_price, label="purchase price"),
        "selling_price": parse_cli_amount(ctx, selling_price, label="selling price"),
        "low_stock_threshold": parse_cli_amount(ctx, threshold, label="threshold"),
    }
    expiry_date = parse_cli_date(ctx, expiry, label="expiry date") if expiry else None

    try:
        stock_id = service.add_stock(
            product_name=product_name,
            category=category,
            unit=unit,
            vendor=vendor,
            expiry_date=expiry_date,
            supplier_id=supplier_id,
            **values,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Added stock item '{product_name}' (ID: {stock_id})")


@stock_group.command("list")
@click.pass_context
def list_stock(ctx) -> None:
    """List stock items by category."""
    service = build_stock_service(ctx)
    items = service.list_stock()
    if not items:
        click.echo("No stock items found.")
        return

    click.echo(f"{'ID':>4}  {'Product':<24} {'Category':<12} {'Closing':>10} {'Unit':<6} {'Purchased':>10} {'Used':>10}")
    click.echo("-" * 84)
    for item in items:
        low = "  LOW" if service.is_low(item) else ""
        click.echo(
            f"{item.id:>4}  {item.product_name:<24} {item.category:<12} "
            f"{item.closing_stock:>10} {item.unit:<6} {item.purchased_qty:>10} "
            f"{item.used_sold_qty:>10}{low}"
        )


@stock_group.command("show")
@click.argument("stock_id", type=int)
@click.option("--limit", default=10, show_default=True, help="Number of recent transactions")
@click.pass_context
def show_stock(ctx, stock_id: int, limit: int) -> None:
    """Show a stock item with its recent transactions."""
    service = build_stock_service(ctx)
    try:
        item = service.require_stock(stock_id)
        transactions = service.list_transactions(stock_id, limit=limit)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"\n{item.product_name} ({item.category})")
    click.echo("-" * 50)
    click.echo(f"{'Opening':<20} {item.opening_stock} {item.unit}")
    click.echo(f"{'Purchased':<20} {item.purchased_qty} {item.unit}")
    click.echo(f"{'Used/sold':<20} {item.used_sold_qty} {item.unit}")
    click.echo(f"{'Closing':<20} {item.closing_stock} {item.unit}")
    click.echo(f"{'Purchase price':<20} {format_amount(item.purchase_price)}")
    click.echo(f"{'Selling price':<20} {format_amount(item.selling_price)}")
    if item.vendor:
        click.echo(f"{'Vendor':<20} {item.vendor}")
    if item.supplier_id is not None:
        supplier = service.supplier_of(item)
        name = supplier.name if supplier is not None else f"#{item.supplier_id}"
        click.echo(f"{'Supplier':<20} {name}")
    if item.expiry_date:
        click.echo(f"{'Expiry':<20} {item.expiry_date}")

    if transactions:
        click.echo("\nRecent transactions:")
        for tx in transactions:
            click.echo(
                f"    {tx.created_at:%Y-%m-%d %H:%M}  {tx.transaction_type.value:<8} "
                f"{tx.quantity:>10}  {tx.notes or ''}"
            )


def _move_stock(ctx, stock_id: int, quantity: str, notes: str | None, transaction_type: StockTransactionType) -> None:
    service = build_stock_service(ctx)
    value = parse_cli_amount(ctx, quantity, label="quantity")

    try:
        item = service.update_stock(stock_id, transaction_type, value, notes=notes)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(
        f"Recorded {transaction_type.value} of {value} {item.unit} for '{item.product_name}'. "
        f"Closing stock: {item.closing_stock} {item.unit}"
    )
    if item.closing_stock < 0:
        click.echo("Warning: closing stock is negative", err=True)


@stock_group.command("purchase")
@click.argument("stock_id", type=int)
@click.argument("quantity")
@click.option("--notes", help="Notes")
@click.pass_context
def purchase_stock(ctx, stock_id: int, quantity: str, notes: str | None) -> None:
    """Record a purchase of QUANTITY units."""
    _move_stock(ctx, stock_id, quantity, notes, StockTransactionType.PURCHASE)


@stock_group.command("use")
@click.argument("stock_id", type=int)
@click.argument("quantity")
@click.option("--notes", help="Notes")
@click.pass_context
def use_stock(ctx, stock_id: int, quantity: str, notes: str | None) -> None:
    """Record use or sale of QUANTITY units."""
    _move_stock(ctx, stock_id, quantity, notes, StockTransactionType.USE)


@stock_group.command("edit")
@click.argument("stock_id", type=int)
@click.option("--name", "product_name", help="New product name")
@click.option("--category", help="New category")
@click.option("--unit", help="New unit")
@click.option("--opening", help="New opening quantity")
@click.option("--purchase-price", help="New purchase price")
@click.option("--selling-price", help="New selling price")
@click.option("--threshold", help="New low stock threshold")
@click.option("--vendor", help="New vendor")
@click.option("--expiry", help="New expiry date")
@click.option("--supplier", "supplier_id", type=int, help="Link to supplier ID")
@click.option("--no-supplier", is_flag=True, help="Remove the supplier link")
@click.pass_context
def edit_stock(
    ctx,
    stock_id: int,
    product_name: str | None,
    category: str | None,
    unit: str | None,
    opening: str | None,
    purchase_price: str | None,
    selling_price: str | None,
    threshold: str | None,
    vendor: str | None,
    expiry: str | None,
    supplier_id: int | None,
    no_supplier: bool,
) -> None:
    """Edit a stock item's details."""
    service = build_stock_service(ctx)
    if supplier_id is not None and no_supplier:
        click.echo("Error: --supplier and --no-supplier cannot be combined", err=True)
        ctx.exit(1)
    fields = {
        key: value
        for key, value in (
            ("product_name", product_name),
            ("category", category),
            ("unit", unit),
            ("vendor", vendor),
        )
        if value is not None
    }
    for key, raw in (
        ("opening_stock", opening),
        ("purchase_price", purchase_price),
        ("selling_price", selling_price),
        ("low_stock_threshold", threshold),
    ):
        if raw is not None:
            fields[key] = parse_cli_amount(ctx, raw, label=key.replace("_", " "))
    if expiry is not None:
        fields["expiry_date"] = parse_cli_date(ctx, expiry, label="expiry date")
    if supplier_id is not None:
        fields["supplier_id"] = supplier_id
    elif no_supplier:
        fields["supplier_id"] = None

    try:
        item = service.edit_stock(stock_id, **fields)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Updated stock item {stock_id}. Closing stock: {item.closing_stock} {item.unit}")


@stock_group.command("delete")
@click.argument("stock_id", type=int)
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt")
@click.pass_context
def delete_stock(ctx, stock_id: int, yes: bool) -> None:
    """Delete a stock item and its transaction history."""
    service = build_stock_service(ctx)
    item = service.get_stock(stock_id)
    if item is None:
        click.echo(f"Error: Stock item {stock_id} not found", err=True)
        ctx.exit(1)

    if not yes and not click.confirm(f"Delete '{item.product_name}' and its history?"):
        click.echo("Deletion cancelled.")
        return

    try:
        removed = service.delete_stock(stock_id)
    except ValueError as e:
        handle_domain_error(ctx, e)

    click.echo(f"Deleted '{item.product_name}' ({removed} transactions removed)")


@stock_group.command("alerts")
@click.option("--date", "date_str", default="today", show_default=True, help="Reference day")
@click.pass_context
def stock_alerts(ctx, date_str: str) -> None:
    """Show low stock and expiry alerts."""
    service = build_stock_service(ctx)
    alerts = service.get_alerts(parse_cli_date(ctx, date_str))
    if not alerts:
        click.echo("No stock alerts.")
        return
    for alert in alerts:
        click.echo(f"[{alert.alert_type.value}] {alert.message}")


@stock_group.command("check-expiry")
@click.option("--date", "date_str", default="today", show_default=True, help="Reference day")
@click.pass_context
def check_expiry(ctx, date_str: str) -> None:
    """Run the expiry check (for cron or another scheduler)."""
    service = build_stock_service(ctx)
    alerts = service.run_expiry_check(parse_cli_date(ctx, date_str))
    if not alerts:
        click.echo("No items expiring soon.")
        return
    for alert in alerts:
        click.echo(alert.message)


@stock_group.command("valuation")
@click.pass_context
def stock_valuation(ctx) -> None:
    """Value closing stock at purchase and selling prices."""
    service = build_stock_service(ctx)
    valuation = service.get_valuation()

    click.echo("\nStock valuation:")
    click.echo("-" * 60)
    click.echo(f"{'Category':<20} {'Items':>6} {'Purchase value':>15} {'Selling value':>15}")
    click.echo("-" * 60)
    for category, bucket in sorted(valuation["by_category"].items()):
        click.echo(
            f"{category:<20} {bucket['items']:>6} {format_amount(bucket['purchase_value']):>15} "
            f"{format_amount(bucket['selling_value']):>15}"
        )
    click.echo("-" * 60)
    click.echo(f"{'Purchase value':<30} {format_amount(valuation['total_purchase_value']):>20}")
    click.echo(f"{'Selling value':<30} {format_amount(valuation['total_selling_value']):>20}")
    click.echo(f"{'Potential profit':<30} {format_amount(valuation['potential_profit']):>20}")
    click.echo(f"{'Margin':<30} {str(valuation['profit_margin']) + '%':>20}")


@stock_group.command("usage")
@click.option("--period", type=PERIOD_CHOICE, default=UsagePeriod.TODAY.value, show_default=True)
@click.pass_context
def usage(ctx, period: str) -> None:
    """Show usage per product for a period."""
    analytics = StockAnalyticsService(ctx.obj["db"], cache=ctx.obj.get("cache"))
    rows = analytics.usage_stats(UsagePeriod(period))
    if not rows:
        click.echo("No stock movements in this period.")
        return

    click.echo(f"{'Product':<24} {'Used':>10} {'Purchased':>10} {'Moves':>6} {'Cost':>14}")
    click.echo("-" * 70)
    for row in rows:
        click.echo(
            f"{row.product_name:<24} {row.total_used:>10} {row.total_purchased:>10} "
            f"{row.transaction_count:>6} {format_amount(row.cost):>14}"
        )


@stock_group.command("category-usage")
@click.option("--period", type=PERIOD_CHOICE, default=UsagePeriod.MONTH.value, show_default=True)
@click.pass_context
def category_usage(ctx, period: str) -> None:
    """Show used quantity and cost per category."""
    analytics = StockAnalyticsService(ctx.obj["db"], cache=ctx.obj.get("cache"))
    categories = analytics.category_usage(UsagePeriod(period))
    if not categories:
        click.echo("No usage in this period.")
        return
    for category, totals in sorted(categories.items()):
        click.echo(f"{category:<20} {totals['quantity']:>10} {format_amount(totals['cost']):>14}")


@stock_group.command("trend")
@click.argument("stock_id", type=int)
@click.option("--days", default=7, show_default=True, type=click.IntRange(min=1))
@click.pass_context
def usage_trend(ctx, stock_id: int, days: int) -> None:
    """Show daily use of one item over recent days."""
    analytics = StockAnalyticsService(ctx.obj["db"], cache=ctx.obj.get("cache"))
    try:
        trend = analytics.product_usage_trend(stock_id, days=days)
    except ValueError as e:
        handle_domain_error(ctx, e)
    for day, quantity in trend:
        click.echo(f"{day.isoformat()}  {quantity}")


@stock_group.command("summary")
@click.pass_context
def usage_summary(ctx) -> None:
    """Show usage today, this week, this month and overall per product."""
    analytics = StockAnalyticsService(ctx.obj["db"], cache=ctx.obj.get("cache"))
    summaries = analytics.product_usage_summary()
    if not summaries:
        click.echo("No usage recorded yet.")
        return

    click.echo(f"{'Product':<24} {'Today':>8} {'Week':>8} {'Month':>8} {'Overall':>9} {'Avg/day':>8} {'Cost':>14}")
    click.echo("-" * 86)
    for s in summaries:
        click.echo(
            f"{s.product_name:<24} {s.today_used:>8} {s.week_used:>8} {s.month_used:>8} "
            f"{s.overall_used:>9} {s.average_daily:>8} {format_amount(s.total_cost):>14}"
        )


def register_commands(cli):
    """Register stock commands with main CLI."""
    cli.add_command(stock_group, name="stock")
