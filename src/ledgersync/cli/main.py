"""Main CLI entry point."""

import logging

import click
from ledgersync.cli.error_handling import handle_domain_error
from ledgersync.config import Settings
from ledgersync.database.factories import create_sqlite_database
from ledgersync.domain.errors import ConfigurationError

# Import and register all commands at module level
from ledgersync.cli.commands import (
    account,
    balance,
    import_cmd,
    init_categories,
    linkage,
    mapping,
    sync,
    transaction,
)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@click.group()
@click.option(
    "--db-path",
    type=click.Path(),
    help="Path to database file (overrides LEDGERSYNC_DB_PATH environment variable)",
    envvar="LEDGERSYNC_DB_PATH",
)
@click.option("--verbose", "-v", is_flag=True, help="Log sync progress to stderr")
@click.pass_context
def cli(ctx, db_path: str | None, verbose: bool):
    """Ledgersync - personal ledger with bank sync and CSV import.

    Pulls transactions from linked institutions, imports bank statements and
    merges both into one deduplicated, categorized ledger.
    """
    ctx.ensure_object(dict)
    if "settings" not in ctx.obj:
        try:
            ctx.obj["settings"] = Settings.from_env()
        except ConfigurationError as e:
            handle_domain_error(ctx, e)
    settings = ctx.obj["settings"]
    configure_logging("INFO" if verbose else settings.log_level)

    # Initialize database connection only when actually running a command
    # (not when showing help)
    if ctx.invoked_subcommand is not None:
        db = create_sqlite_database(database_path=db_path or settings.db_path)
        db.connect()
        db.initialize_schema()
        ctx.obj["db"] = db
        ctx.call_on_close(db.disconnect)


# Register all commands
account.register_commands(cli)
balance.register_commands(cli)
import_cmd.register_commands(cli)
init_categories.register_commands(cli)
linkage.register_commands(cli)
mapping.register_commands(cli)
sync.register_commands(cli)
transaction.register_commands(cli)


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
