"""CLI error handling helpers."""

import click

from ledgersync.domain.account import AccountService
from ledgersync.domain.errors import DomainError


def handle_domain_error(ctx: click.Context, error: DomainError | ValueError | OSError) -> None:
    """Render a domain error and exit with failure."""
    click.echo(f"Error: {error}", err=True)
    ctx.exit(1)


def resolve_account_or_exit(ctx: click.Context, account_service: AccountService, account: str | int) -> int:
    """Resolve account name or ID, or exit with a CLI error."""
    try:
        return account_service.resolve(account)
    except ValueError as exc:
        handle_domain_error(ctx, exc)
