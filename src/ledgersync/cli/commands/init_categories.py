"""Seed the default category rules."""

import click
from ledgersync.domain.category import CategoryService


@click.command("init-categories")
@click.pass_context
def init_categories(ctx):
    """Create the default categories and their keyword rules.

    Existing categories are left untouched, so this is safe to re-run.
    """
    db = ctx.obj["db"]
    service = CategoryService(db)

    created = service.seed_defaults()
    if created == 0:
        click.echo("Default categories already exist.")
    else:
        click.echo(f"Successfully created {created} categories.")


def register_commands(cli):
    """Register init-categories command with main CLI."""
    cli.add_command(init_categories)
