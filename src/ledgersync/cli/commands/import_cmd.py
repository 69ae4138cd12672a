"""CSV import command."""

import click
from ledgersync.cli.error_handling import handle_domain_error, resolve_account_or_exit
from ledgersync.domain.account import AccountService
from ledgersync.domain.csv_import import BatchImportService
from ledgersync.domain.errors import DomainError


@click.command("import")
@click.argument("csv_file", type=click.Path(exists=True))
@click.option("--account", required=True, help="Account name or ID to import into")
@click.option("--institution", help="Institution whose saved column mapping to use")
@click.pass_context
def import_csv(ctx, csv_file: str, account: str, institution: str | None):
    """Import transactions from a CSV file.

    Rows already in the ledger are skipped, so re-importing a file is safe.
    Without a saved mapping the file needs date, amount and description columns.
    """
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)
    service = BatchImportService(db)

    try:
        result = service.import_csv(csv_file, account_id, institution=institution)
    except (DomainError, FileNotFoundError) as e:
        handle_domain_error(ctx, e)
        return

    click.echo("\nImport complete:")
    click.echo(f"  Imported: {result.imported} transactions")
    click.echo(f"  Skipped: {result.duplicates} duplicates")
    if result.errors:
        click.echo(f"  Errors: {len(result.errors)}")
        for error in result.errors:
            click.echo(f"    {error}", err=True)


def register_commands(cli):
    """Register import command with main CLI."""
    cli.add_command(import_csv)
