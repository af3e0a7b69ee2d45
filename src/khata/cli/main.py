"""Main CLI entry point."""

import click
from click.core import ParameterSource

from khata.cli.error_handling import handle_domain_error
from khata.config import configure_logging, load_settings
from khata.database.factories import create_database

# Import and register all commands at module level
from khata.cli.commands import (
    agreement,
    categories,
    chit,
    customer,
    entity,
    invoice,
    ledger,
    product,
    report,
    txn,
)


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides KHATA_DB_PATH environment variable)",
    envvar="KHATA_DB_PATH",
)
@click.pass_context
def cli(ctx, db_path: str | None):
    """Khata - bookkeeping for small businesses.

    Record sales, purchases, payments, loans and chit funds in one
    transaction log, and read cash and bank books, party ledgers and
    reports straight from it.
    """
    ctx.ensure_object(dict)
    settings = load_settings()
    try:
        configure_logging(settings.log_level)
    except ValueError as e:
        handle_domain_error(ctx, e)
    ctx.obj["settings"] = settings

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        # A configured database URL wins over a path taken from the environment
        if settings.database_url and ctx.get_parameter_source("db_path") != ParameterSource.COMMANDLINE:
            db_path = None
        db = create_database(database_url=settings.database_url, database_path=db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
customer.register_commands(cli)
entity.register_commands(cli)
product.register_commands(cli)
txn.register_commands(cli)
ledger.register_commands(cli)
agreement.register_commands(cli)
invoice.register_commands(cli)
chit.register_commands(cli)
report.register_commands(cli)
categories.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
