"""Sync commands."""

import click
from ledgersync.cli.error_handling import handle_domain_error
from ledgersync.domain.category import CategoryService
from ledgersync.domain.entities import SyncResult
from ledgersync.domain.errors import DomainError
from ledgersync.domain.ledger import LedgerReader
from ledgersync.domain.orchestrator import SyncOrchestrator
from ledgersync.domain.reconciliation import ReconciliationEngine
from ledgersync.domain.sync import SyncController
from ledgersync.providers.plaid import plaid_provider_factory


def build_orchestrator(ctx: click.Context) -> SyncOrchestrator:
    """Wire the sync stack for this invocation.

    A provider factory placed in ctx.obj wins over the Plaid one.
    """
    db = ctx.obj["db"]
    provider_factory = ctx.obj.get("provider_factory")
    if provider_factory is None:
        provider_factory = plaid_provider_factory(ctx.obj["settings"])

    engine = ReconciliationEngine(db, CategoryService(db).load_matcher())
    return SyncOrchestrator(db, SyncController(db, engine, provider_factory))


def _echo_result(result: SyncResult) -> None:
    name = result.institution_name or f"linkage {result.linkage_id}"
    if result.ok:
        status = "cancelled" if result.cancelled else "ok"
        click.echo(
            f"{name}: {status} (+{result.added} added, ~{result.modified} modified, -{result.removed} removed)"
        )
    else:
        click.echo(f"{name}: failed: {result.error}", err=True)
        if result.added or result.modified or result.removed:
            click.echo(
                f"  applied before failure: +{result.added} ~{result.modified} -{result.removed}",
                err=True,
            )
    for error in result.errors:
        click.echo(f"  rejected {error}", err=True)


@click.command("sync")
@click.argument("linkage_id", type=int, required=False)
@click.option("--all", "sync_all", is_flag=True, help="Sync every active linkage")
@click.pass_context
def sync(ctx, linkage_id: int | None, sync_all: bool):
    """Pull new, changed and removed transactions from linked institutions.

    Examples:
        ledgersync sync --all
        ledgersync sync 3
    """
    if (linkage_id is None) == (not sync_all):
        click.echo("Error: Give either LINKAGE_ID or --all", err=True)
        ctx.exit(1)

    try:
        orchestrator = build_orchestrator(ctx)
        if sync_all:
            results = orchestrator.sync_all()
        else:
            results = [orchestrator.sync_linkage(linkage_id)]
    except DomainError as e:
        handle_domain_error(ctx, e)
        return

    if not results:
        click.echo("No active linkages to sync.")
        return

    for result in results:
        _echo_result(result)

    if any(not result.ok for result in results):
        ctx.exit(1)


@click.command("sync-log")
@click.option("--limit", type=int, default=20, show_default=True, help="Number of entries to show")
@click.option("--linkage", "linkage_id", type=int, help="Only show runs for this linkage")
@click.pass_context
def sync_log(ctx, limit: int, linkage_id: int | None):
    """Show recent sync runs."""
    reader = LedgerReader(ctx.obj["db"])

    entries = reader.recent_sync_log(limit=limit, linkage_id=linkage_id)
    if not entries:
        click.echo("No sync runs recorded.")
        return

    click.echo(f"{'When':<17} {'Institution':<20} {'Status':<8} {'Added':>6} {'Mod':>6} {'Rem':>6}  Message")
    click.echo("-" * 90)
    for entry in entries:
        click.echo(
            f"{entry.created_at.strftime('%Y-%m-%d %H:%M'):<17} "
            f"{(entry.institution_name or str(entry.linkage_id))[:20]:<20} "
            f"{entry.status:<8} {entry.added:>6} {entry.modified:>6} {entry.removed:>6}  "
            f"{entry.error_message or ''}"
        )


def register_commands(cli):
    """Register sync commands with main CLI."""
    cli.add_command(sync)
    cli.add_command(sync_log)
