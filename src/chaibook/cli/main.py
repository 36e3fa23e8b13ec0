"""Main CLI entry point."""

import click

from chaibook.config.logging import configure_logging
from chaibook.config.settings import get_settings
from chaibook.database.factories import create_database
from chaibook.domain.cache import QueryCache, attach
from chaibook.domain.errors import StorageError

# Import and register all commands at module level
from chaibook.cli.commands import (
    daily,
    dashboard,
    employee,
    expense,
    export,
    stock,
    supplier,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to the store file (overrides CHAIBOOK_DB_PATH environment variable)",
    envvar="CHAIBOOK_DB_PATH",
)
@click.option(
    "--backend",
    type=click.Choice(["sql", "document"]),
    help="Storage backend (overrides CHAIBOOK_BACKEND environment variable)",
    envvar="CHAIBOOK_BACKEND",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level for messages written to stderr",
)
@click.pass_context
def cli(ctx, db_path: str | None, backend: str | None, log_level: str | None):
    """Chaibook - bookkeeping for a small tea shop.

    Record daily cash flow, expenses, salaries and advances, stock
    movements and suppliers.
    """
    ctx.ensure_object(dict)

    # Initialize the store only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        settings = get_settings()
        configure_logging(level=log_level.upper() if log_level else None)
        try:
            db = create_database(settings, db_path=db_path, backend=backend)
            db.connect()
            db.initialize_schema()
        except StorageError as e:
            click.echo(f"Error: {e}", err=True)
            ctx.exit(1)
        ctx.call_on_close(db.disconnect)
        cache = QueryCache()
        ctx.call_on_close(attach(cache, db))
        ctx.obj["db"] = db
        ctx.obj["cache"] = cache
        ctx.obj["settings"] = settings


# Register all commands
expense.register_commands(cli)
daily.register_commands(cli)
employee.register_commands(cli)
stock.register_commands(cli)
supplier.register_commands(cli)
dashboard.register_commands(cli)
export.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
