"""Provider linkage commands."""

import click
from ledgersync.cli.error_handling import handle_domain_error
from ledgersync.domain.entities import ACCOUNT_TYPES
from ledgersync.domain.errors import DomainError
from ledgersync.domain.linkage import ConnectionRegistry


@click.group()
def linkage_group():
    """Manage institution linkages."""
    pass


@linkage_group.command("register")
@click.argument("item_id")
@click.option(
    "--access-token",
    prompt=True,
    hide_input=True,
    envvar="LEDGERSYNC_ACCESS_TOKEN",
    help="Access token from the provider's token exchange",
)
@click.option("--institution", help="Institution name")
@click.pass_context
def register_linkage(ctx, item_id: str, access_token: str, institution: str | None):
    """Record a completed token exchange.

    Examples:
        ledgersync linkage register item-123 --institution Chase
    """
    registry = ConnectionRegistry(ctx.obj["db"])
    try:
        linkage = registry.register(item_id, access_token, institution)
        click.echo(f"Registered linkage {linkage.id} for '{linkage.institution_name or item_id}'")
    except DomainError as e:
        handle_domain_error(ctx, e)


@linkage_group.command("list")
@click.pass_context
def list_linkages(ctx):
    """List linkages and their sync status."""
    registry = ConnectionRegistry(ctx.obj["db"])

    linkages = registry.list_linkages()
    if not linkages:
        click.echo("No linkages found.")
        return

    click.echo("\nLinkages:")
    click.echo("-" * 90)
    for linkage in linkages:
        last = linkage.last_synced_at.strftime("%Y-%m-%d %H:%M") if linkage.last_synced_at else "never"
        click.echo(
            f"ID: {linkage.id:3d} | {(linkage.institution_name or linkage.item_id):20s} | "
            f"{linkage.status:8s} | last sync: {last}"
        )
        if linkage.error_message:
            click.echo(f"       {linkage.error_message}")


@linkage_group.command("revoke")
@click.argument("linkage_id", type=int)
@click.pass_context
def revoke_linkage(ctx, linkage_id: int):
    """Disconnect a linkage. Its accounts and transactions are kept."""
    registry = ConnectionRegistry(ctx.obj["db"])
    try:
        registry.revoke(linkage_id)
        click.echo(f"Revoked linkage {linkage_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


@linkage_group.command("link-account")
@click.argument("linkage_id", type=int)
@click.argument("external_account_id")
@click.argument("name")
@click.option(
    "--type",
    "account_type",
    type=click.Choice(ACCOUNT_TYPES),
    default="checking",
    show_default=True,
    help="Account type",
)
@click.pass_context
def link_account(ctx, linkage_id: int, external_account_id: str, name: str, account_type: str):
    """Bind a provider account to a local account.

    Examples:
        ledgersync linkage link-account 1 acc-9f3 "Chase Checking"
    """
    registry = ConnectionRegistry(ctx.obj["db"])
    try:
        account = registry.link_account(linkage_id, external_account_id, name, account_type)
        click.echo(f"Linked '{account.name}' (ID: {account.id}) to linkage {linkage_id}")
    except DomainError as e:
        handle_domain_error(ctx, e)


def register_commands(cli):
    """Register linkage commands with main CLI."""
    cli.add_command(linkage_group, name="linkage")
