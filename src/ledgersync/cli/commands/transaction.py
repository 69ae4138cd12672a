"""Transaction management commands."""

import click
from ledgersync.cli.error_handling import handle_domain_error, resolve_account_or_exit
from ledgersync.domain.account import AccountService
from ledgersync.domain.category import CategoryService
from ledgersync.domain.entities import TRANSACTION_SOURCES, TRANSACTION_TYPES
from ledgersync.domain.errors import DomainError
from ledgersync.domain.ledger import LedgerReader
from ledgersync.domain.transaction import TransactionService
from ledgersync.utils.amount_parser import parse_amount
from ledgersync.utils.date_parser import parse_date


@click.group()
def transaction_group():
    """Manage transactions."""
    pass


def _category_id_or_exit(ctx: click.Context, category_service: CategoryService, name: str) -> int:
    category = category_service.get_category_by_name(name)
    if category is None:
        click.echo(f"Error: Category '{name}' not found", err=True)
        ctx.exit(1)
    return category.id


@transaction_group.command("add")
@click.option("--account", required=True, help="Account name or ID")
@click.option("--date", "txn_date", default="today", show_default=True, help="Transaction date")
@click.option("--amount", required=True, help="Signed amount, outflows negative (e.g. -12.50)")
@click.option("--description", required=True, help="Transaction description")
@click.option("--category", help="Category name (classified from the description if omitted)")
@click.option("--type", "txn_type", type=click.Choice(TRANSACTION_TYPES), help="Transaction type")
@click.option("--notes", help="Notes")
@click.pass_context
def add_transaction(
    ctx,
    account: str,
    txn_date: str,
    amount: str,
    description: str,
    category: str | None,
    txn_type: str | None,
    notes: str | None,
):
    """Add a manual transaction.

    Examples:
        ledgersync transaction add --account Chase --amount -4.50 --description "Starbucks"
    """
    db = ctx.obj["db"]
    service = TransactionService(db)
    account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    try:
        parsed_date = parse_date(txn_date)
        parsed_amount = parse_amount(amount)
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    category_id = None
    if category is not None:
        category_id = _category_id_or_exit(ctx, CategoryService(db), category)

    try:
        transaction_id = service.create_manual_transaction(
            account_id=account_id,
            date=parsed_date,
            amount=parsed_amount,
            description=description,
            category_id=category_id,
            type=txn_type,
            notes=notes,
        )
        click.echo(f"Created transaction {transaction_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@transaction_group.command("update")
@click.argument("transaction_id", type=int)
@click.option("--date", "txn_date", help="Transaction date")
@click.option("--amount", help="Signed amount")
@click.option("--description", help="Transaction description")
@click.option("--category", help="Category name, or empty string to clear")
@click.option("--type", "txn_type", type=click.Choice(TRANSACTION_TYPES), help="Transaction type")
@click.option("--notes", help="Notes")
@click.pass_context
def update_transaction(
    ctx,
    transaction_id: int,
    txn_date: str | None,
    amount: str | None,
    description: str | None,
    category: str | None,
    txn_type: str | None,
    notes: str | None,
) -> None:
    """Edit a transaction.

    Updates only the fields that are provided. Edited transactions keep their
    category when the bank later reports a change. Use --category "" to clear.

    Examples:
        ledgersync transaction update 7 --category Groceries
        ledgersync transaction update 7 --category ""
    """
    db = ctx.obj["db"]
    service = TransactionService(db)

    try:
        parsed_date = parse_date(txn_date) if txn_date is not None else None
        parsed_amount = parse_amount(amount) if amount is not None else None
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    category_id = None
    clear_category = False
    if category is not None:
        if category == "":
            clear_category = True
        else:
            category_id = _category_id_or_exit(ctx, CategoryService(db), category)

    try:
        service.update_transaction(
            transaction_id=transaction_id,
            date=parsed_date,
            amount=parsed_amount,
            description=description,
            category_id=category_id,
            type=txn_type,
            notes=notes,
            clear_category=clear_category,
        )
        click.echo(f"Updated transaction {transaction_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@transaction_group.command("list")
@click.option("--start-date", help="Start date")
@click.option("--end-date", help="End date")
@click.option("--account", help="Account name or ID")
@click.option("--category", help="Category name")
@click.option("--uncategorized", is_flag=True, help="Show only uncategorized transactions")
@click.option("--source", type=click.Choice(TRANSACTION_SOURCES), help="Only rows from this source")
@click.option("--search", help="Text to look for in description or notes")
@click.option("--limit", type=int, help="Maximum number of rows")
@click.pass_context
def list_transactions(
    ctx,
    start_date: str | None,
    end_date: str | None,
    account: str | None,
    category: str | None,
    uncategorized: bool,
    source: str | None,
    search: str | None,
    limit: int | None,
):
    """View transactions, newest first."""
    db = ctx.obj["db"]
    reader = LedgerReader(db)
    category_service = CategoryService(db)

    try:
        start = parse_date(start_date) if start_date else None
        end = parse_date(end_date) if end_date else None
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    account_id = None
    if account:
        account_id = resolve_account_or_exit(ctx, AccountService(db), account)

    category_id = None
    if category:
        category_id = _category_id_or_exit(ctx, category_service, category)

    try:
        transactions = reader.list_transactions(
            start_date=start,
            end_date=end,
            account_id=account_id,
            category_id=category_id,
            uncategorized=uncategorized,
            source=source,
            search=search,
            limit=limit,
        )
    except ValueError as e:
        handle_domain_error(ctx, e)
        return

    if not transactions:
        click.echo("No transactions found.")
        return

    accounts = {acc.id: acc.name for acc in reader.list_accounts()}
    categories = {c.id: c.name for c in category_service.list_categories()}

    click.echo(f"\nFound {len(transactions)} transaction(s):")
    click.echo("-" * 110)
    click.echo(
        f"{'ID':<6} {'Date':<12} {'Amount':>12} {'Account':<20} {'Category':<18} {'Source':<9} {'Description':<30}"
    )
    click.echo("-" * 110)

    for txn in transactions:
        description = (txn.description or "")[:30]
        if txn.is_pending:
            description = f"[pending] {description}"[:30]
        click.echo(
            f"{txn.id:<6} {str(txn.date):<12} {f'${txn.amount:,.2f}':>12} "
            f"{accounts.get(txn.account_id, 'Unknown')[:20]:<20} "
            f"{categories.get(txn.category_id, '')[:18]:<18} {txn.source:<9} {description:<30}"
        )

    total_expenses = sum(txn.amount for txn in transactions if txn.amount < 0)
    total_income = sum(txn.amount for txn in transactions if txn.amount > 0)
    click.echo("-" * 110)
    click.echo(
        f"{'TOTAL':<6} Expenses: ${abs(total_expenses):,.2f} | "
        f"Income: ${total_income:,.2f} | Count: {len(transactions)}"
    )


@transaction_group.command("delete")
@click.argument("transaction_id", type=int)
@click.option("--yes", is_flag=True, help="Don't ask for confirmation")
@click.pass_context
def delete_transaction(ctx, transaction_id: int, yes: bool) -> None:
    """Delete a transaction.

    Examples:
        ledgersync transaction delete 1
    """
    db = ctx.obj["db"]
    service = TransactionService(db)

    txn = service.get_transaction(transaction_id)
    if txn is None:
        click.echo(f"Error: Transaction {transaction_id} not found", err=True)
        ctx.exit(1)

    if not yes and not click.confirm(f"Are you sure you want to delete transaction {transaction_id}?"):
        click.echo("Deletion cancelled.")
        return

    try:
        service.delete_transaction(transaction_id)
        click.echo(f"Deleted transaction {transaction_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli: click.Group) -> None:
    """Register transaction commands with main CLI."""
    cli.add_command(transaction_group, name="transaction")
