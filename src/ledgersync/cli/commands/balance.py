"""Balance snapshot commands."""

import click
from ledgersync.cli.error_handling import handle_domain_error, resolve_account_or_exit
from ledgersync.domain.account import AccountService
from ledgersync.domain.errors import DomainError
from ledgersync.domain.idempotency import upsert_balance
from ledgersync.domain.ledger import LedgerReader
from ledgersync.utils.amount_parser import parse_amount
from ledgersync.utils.date_parser import parse_date


@click.group()
def balance_group():
    """Record and view account balances."""
    pass


@balance_group.command("set")
@click.argument("account")
@click.argument("amount")
@click.option("--date", "on_date", default="today", show_default=True, help="Balance date")
@click.pass_context
def set_balance(ctx, account: str, amount: str, on_date: str):
    """Record an account's balance for a day, replacing any earlier value.

    Examples:
        ledgersync balance set "Chase Checking" 2,450.10
        ledgersync balance set Amex 812.33 --date 2024-03-31
    """
    db = ctx.obj["db"]
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    try:
        balance_date = parse_date(on_date)
        balance_amount = parse_amount(amount)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    try:
        balance = upsert_balance(db, account_id, balance_date, balance_amount, source="manual")
        click.echo(f"Balance for {balance.date}: ${balance.amount:,.2f}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@balance_group.command("list")
@click.option("--account", help="Account name or ID")
@click.option("--limit", type=int, default=30, show_default=True, help="Number of balances to show")
@click.pass_context
def list_balances(ctx, account: str | None, limit: int):
    """List balances, newest first."""
    db = ctx.obj["db"]
    reader = LedgerReader(db)

    account_id = None
    if account is not None:
        account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    balances = reader.list_balances(account_id=account_id, limit=limit)
    if not balances:
        click.echo("No balances found.")
        return

    accounts = {acc.id: acc.name for acc in reader.list_accounts()}
    for bal in balances:
        click.echo(
            f"{str(bal.date):<12} {accounts.get(bal.account_id, 'Unknown'):<20} "
            f"${bal.amount:>12,.2f}  ({bal.source})"
        )


def register_commands(cli):
    """Register balance commands with main CLI."""
    cli.add_command(balance_group, name="balance")
