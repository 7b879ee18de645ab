"""Root CLI group — entry point for all Squeeze commands."""

from __future__ import annotations

from typing import Any

import click

from squeeze import __version__
from squeeze.core.exceptions import SqueezeError
from squeeze.core.log import configure_logging, get_logger
from squeeze.output.formatter import DEFAULT_DATE_FORMAT, OutputFormatter

logger = get_logger(__name__)


class SqueezeContext:
    """Shared context passed through Click commands."""

    def __init__(self, json_mode: bool = False, date_format: str = DEFAULT_DATE_FORMAT) -> None:
        self.json_mode = json_mode
        self.formatter = OutputFormatter(json_mode=json_mode, date_format=date_format)
        self._db = None

    def get_db(self):
        """Lazy-load the database connection, applying any pending migrations."""
        if self._db is None:
            from squeeze.core.database import DatabaseConnection
            from squeeze.core.migrations import initialize_database

            self._db = DatabaseConnection()
            self._db.connect()
            initialize_database(self._db)
        return self._db

    def close(self) -> None:
        """Close the database connection."""
        if self._db is not None:
            self._db.close()
            self._db = None


pass_context = click.make_pass_decorator(SqueezeContext, ensure=True)


class JsonGroup(click.Group):
    """Click group that reports ``SqueezeError`` as a clean message and exit code 1."""

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except SqueezeError as e:
            obj = ctx.find_object(SqueezeContext)
            formatter = obj.formatter if obj is not None else OutputFormatter()
            logger.debug("Command failed", exc_info=True)
            if formatter.json_mode:
                formatter.json_error(str(e))
            else:
                formatter.error(str(e))
            ctx.exit(1)


@click.group(cls=JsonGroup, invoke_without_command=True)
@click.option("--json", "json_mode", is_flag=True, help="Output JSON for agent consumption.")
@click.option("--verbose", "-v", count=True, help="Log more (-v info, -vv debug) to stderr.")
@click.version_option(__version__, prog_name="Squeeze")
@click.pass_context
def cli(ctx: click.Context, json_mode: bool, verbose: int) -> None:
    """Squeeze — track subscriptions, renewals and what they really cost.

    Run without a subcommand to see the dashboard.
    """
    from squeeze.core.config import load_config

    config = load_config()
    level = {0: config["general"].get("log_level", "WARNING"), 1: "INFO"}.get(verbose, "DEBUG")
    configure_logging(level)

    ctx.obj = SqueezeContext(
        json_mode=json_mode,
        date_format=config["display"].get("date_format", DEFAULT_DATE_FORMAT),
    )

    if ctx.invoked_subcommand is None:
        from squeeze.cli.dashboard import dashboard
        ctx.invoke(dashboard)


# ── Register subcommands ──────────────────────────────────────────

from squeeze.cli.subscriptions_cmd import subscriptions
cli.add_command(subscriptions)

from squeeze.cli.usage import usage
cli.add_command(usage)

from squeeze.cli.insights import insights
cli.add_command(insights)

from squeeze.cli.alerts import alerts
cli.add_command(alerts)

from squeeze.cli.payments import payments
cli.add_command(payments)

from squeeze.cli.settings_cmd import settings
cli.add_command(settings)

from squeeze.cli.export import export
cli.add_command(export)

from squeeze.cli.import_cmd import import_group
cli.add_command(import_group, "import")

from squeeze.cli.data import data
cli.add_command(data)

from squeeze.cli.config_cmd import config as config_group
cli.add_command(config_group)

from squeeze.cli.dashboard import dashboard
cli.add_command(dashboard)

from squeeze.cli.seed import seed_cmd
cli.add_command(seed_cmd, "seed")
