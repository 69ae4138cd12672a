"""CSV column mapping commands."""

import click
from ledgersync.cli.error_handling import handle_domain_error, resolve_account_or_exit
from ledgersync.domain.account import AccountService
from ledgersync.domain.column_mapping import ColumnMappingService
from ledgersync.domain.errors import DomainError


@click.group()
def mapping_group():
    """Manage saved CSV column mappings."""
    pass


@mapping_group.command("save")
@click.argument("institution")
@click.option("--date-column", required=True, help="Header of the date column")
@click.option("--description-column", required=True, help="Header of the description column")
@click.option("--amount-column", help="Header of the signed amount column")
@click.option("--debit-column", help="Header of the outflow column (use with --credit-column)")
@click.option("--credit-column", help="Header of the inflow column (use with --debit-column)")
@click.option("--account", help="Restrict the mapping to one account (name or ID)")
@click.pass_context
def save_mapping(
    ctx,
    institution: str,
    date_column: str,
    description_column: str,
    amount_column: str | None,
    debit_column: str | None,
    credit_column: str | None,
    account: str | None,
):
    """Save how an institution's CSV exports are laid out.

    Saving again for the same institution and account replaces the mapping.

    Examples:
        ledgersync mapping save Chase --date-column "Posting Date" \\
            --description-column Description --amount-column Amount
        ledgersync mapping save "Capital One" --date-column "Transaction Date" \\
            --description-column Description --debit-column Debit --credit-column Credit
    """
    db = ctx.obj["db"]
    service = ColumnMappingService(db)

    account_id = None
    if account is not None:
        account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    try:
        mapping = service.save_mapping(
            institution=institution,
            date_column=date_column,
            description_column=description_column,
            amount_column=amount_column,
            account_id=account_id,
            debit_column=debit_column,
            credit_column=credit_column,
        )
        click.echo(f"Saved mapping {mapping.id} for '{mapping.institution}'")
    except DomainError as e:
        handle_domain_error(ctx, e)


@mapping_group.command("list")
@click.option("--institution", help="Only show mappings for this institution")
@click.pass_context
def list_mappings(ctx, institution: str | None):
    """List saved mappings."""
    service = ColumnMappingService(ctx.obj["db"])

    mappings = service.list_mappings(institution=institution)
    if not mappings:
        click.echo("No mappings found.")
        return

    for m in mappings:
        if m.is_debit_credit:
            amount = f"debit={m.debit_column}, credit={m.credit_column}"
        else:
            amount = f"amount={m.amount_column}"
        scope = f"account {m.account_id}" if m.account_id else "all accounts"
        click.echo(
            f"ID: {m.id:3d} | {m.institution:15s} | {scope:12s} | "
            f"date={m.date_column}, description={m.description_column}, {amount}"
        )


def register_commands(cli):
    """Register mapping commands with main CLI."""
    cli.add_command(mapping_group, name="mapping")
