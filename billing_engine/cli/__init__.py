"""Billing Engine CLI.

This module provides a command-line interface for the billing engine.
It includes commands for the project, user and task billing views and for
adjusting billable hours.
"""

from pathlib import Path
from typing import Optional

import click
from pydantic import ValidationError

from billing_engine import __version__
from billing_engine.cli.commands.adjust import adjust, set_project_total
from billing_engine.cli.commands.views import project_view, task_view, user_view
from billing_engine.cli.error_handlers import ConfigurationError, handle_cli_error
from billing_engine.cli.utils.context import CLIContext
from billing_engine.config.logging_config import LoggingConfig, configure_logging
from billing_engine.config.settings import get_config, reload_config


@click.group(help="Billing Engine CLI - Billable hours per project, user and task")
@click.version_option(version=__version__)
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory with the CSV dataset (defaults to BILLING_DATA_DIR)",
)
@click.option(
    "--adjustments-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="JSON file storing adjustments (defaults to BILLING_ADJUSTMENTS_FILE)",
)
@click.option(
    "--env-file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Load settings from this .env file",
)
@click.option(
    "--log-format",
    type=click.Choice(["standard", "json"]),
    default=None,
    help="Log output format (defaults to LOG_FORMAT)",
)
@click.option("--debug", is_flag=True, help="Verbose logging and full stack traces")
@click.pass_context
def cli(
    ctx: click.Context,
    data_dir: Optional[Path],
    adjustments_file: Optional[Path],
    env_file: Optional[str],
    log_format: Optional[str],
    debug: bool,
):
    """Billing Engine CLI main entry point."""
    try:
        settings = reload_config(env_file) if env_file else get_config()
        logging_config = LoggingConfig.from_settings(settings, log_format=log_format)
    except ValidationError as e:
        ctx.exit(handle_cli_error(e, debug))
    except ValueError as e:
        ctx.exit(handle_cli_error(ConfigurationError(str(e)), debug))

    if debug:
        logging_config.log_level = "DEBUG"
    configure_logging(logging_config)

    ctx.obj = CLIContext(
        settings=settings,
        data_dir=data_dir or settings.data_dir,
        adjustments_file=adjustments_file or settings.adjustments_file,
        debug=debug or settings.debug,
    )


# Register commands
cli.add_command(project_view)
cli.add_command(user_view)
cli.add_command(task_view)
cli.add_command(adjust)
cli.add_command(set_project_total)


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
