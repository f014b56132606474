"""drivemigrate CLI tool."""

import asyncio
import logging
import sys

import click

from drivemigrate.core.client import open_resources
from drivemigrate.core.exceptions import MigrationError
from drivemigrate.core.settings import LOG_LEVELS, load_settings
from drivemigrate.migrations.base import RuleSelection
from drivemigrate.migrations.runner import MigrationRunner, all_rules

EXIT_STARTUP_FAILURE = 2


@click.group()
def cli():
    """drivemigrate - migrate File-Service, Permission-Service and Search-Service data."""
    pass


@cli.command()
@click.option("--enable", "enable", multiple=True, help="Run a rule that is off by default")
@click.option("--disable", "disable", multiple=True, help="Skip a rule that is on by default")
@click.option(
    "--resync-after-backfill",
    is_flag=True,
    help="Start the search resync only after the file migration finished",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Logging level (default: MIGRATION_LOG_LEVEL or INFO)",
)
def run(enable, disable, resync_after_backfill, log_level):
    """Run the migration.

    Examples:
        # Run every default rule, as the live services expect
        drivemigrate run

        # Also renumber the write role
        drivemigrate run --enable permission.write-role

        # Resync search only once the float flag is backfilled
        drivemigrate run --resync-after-backfill
    """
    try:
        settings = load_settings()
    except MigrationError as e:
        click.echo(f"❌ {e}")
        sys.exit(EXIT_STARTUP_FAILURE)

    logging.basicConfig(
        level=(log_level or settings.migration_log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    resync_after_backfill = resync_after_backfill or settings.resync_after_backfill

    async def _run():
        selection = RuleSelection(
            enable=set(settings.enabled_rules) | set(enable),
            disable=set(settings.disabled_rules) | set(disable),
        )
        selection.validate(all_rules())

        async with open_resources(settings) as resources:
            runner = MigrationRunner.from_resources(
                resources,
                selection=selection,
                resync_after_backfill=resync_after_backfill,
            )
            return await runner.run()

    try:
        report = asyncio.run(_run())
    except MigrationError as e:
        click.echo(f"❌ {e}")
        sys.exit(EXIT_STARTUP_FAILURE)

    for line in report.lines():
        click.echo(line)

    click.echo("Migration done")
    sys.exit(report.exit_code)


@cli.command()
def rules():
    """List migration rules."""
    click.echo("\n📋 Migration rules:\n")
    for rule in all_rules():
        state = "on " if rule.enabled_by_default else "off"
        rerun = "" if rule.rerunnable else "  (run-once)"
        click.echo(f"  [{state}] {rule.name}: {rule.description}{rerun}")


@cli.command()
def version():
    """Show drivemigrate version."""
    from drivemigrate import __version__

    click.echo(f"drivemigrate version: {__version__}")


if __name__ == "__main__":
    cli()
