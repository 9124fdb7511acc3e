"""Error handling for CLI commands."""

import sys
import traceback
from typing import Optional

import click
from pydantic import ValidationError

from billing_engine.cli.utils.formatters import format_error, format_warning
from billing_engine.exceptions import (
    BillingEngineError,
    DatasetError,
    InvalidAdjustmentError,
    NoEligibleResourcesError,
    NotFoundError,
    PersistenceError,
)


class CLIError(Exception):
    """Base exception for CLI errors with user-friendly messages."""

    def __init__(self, message: str, recovery_hint: Optional[str] = None):
        """
        Initialize CLI error.

        Args:
            message: Error message to display
            recovery_hint: Optional hint for recovering from the error
        """
        self.message = message
        self.recovery_hint = recovery_hint
        super().__init__(message)


class ConfigurationError(CLIError):
    """Error related to configuration issues."""


# Engine error -> (label, exit code); first matching class wins
_ENGINE_ERRORS = [
    (DatasetError, "Dataset Error", 2),
    (NotFoundError, "Not Found", 3),
    (InvalidAdjustmentError, "Invalid Adjustment", 4),
    (NoEligibleResourcesError, "No Eligible Resources", 5),
    (PersistenceError, "Persistence Error", 6),
    (BillingEngineError, "Billing Engine Error", 7),
]


def _echo_error(label: str, message: str, hint: Optional[str]) -> None:
    click.echo(format_error(f"{label}: {message}"), err=True)
    if hint:
        click.echo(format_warning(f"Hint: {hint}"), err=True)


def handle_cli_error(error: Exception, debug: bool = False) -> int:
    """
    Report an error to the user and choose an exit code.

    Exit codes:
        1: configuration error
        2: dataset error
        3: not found
        4: invalid adjustment
        5: no eligible resources
        6: persistence failure
        7: other engine error
        130: cancelled by the user
        255: unexpected error

    Args:
        error: The exception that occurred
        debug: Whether to show the full stack trace for unexpected errors

    Returns:
        Exit code
    """
    if isinstance(error, ConfigurationError):
        _echo_error("Configuration Error", error.message, error.recovery_hint)
        return 1

    if isinstance(error, ValidationError):
        _echo_error(
            "Configuration Error",
            str(error),
            "Check the BILLING_* variables in your environment or .env file",
        )
        return 1

    if isinstance(error, BillingEngineError):
        for error_class, label, exit_code in _ENGINE_ERRORS:
            if isinstance(error, error_class):
                _echo_error(label, error.message, error.recovery_hint)
                return exit_code

    if isinstance(error, click.Abort):
        click.echo(format_warning("\nOperation cancelled by user"), err=True)
        return 130

    click.echo(format_error(f"Unexpected Error: {type(error).__name__}"), err=True)
    click.echo(str(error), err=True)
    if debug:
        click.echo("\nFull stack trace:", err=True)
        click.echo(traceback.format_exc(), err=True)
    else:
        click.echo(format_warning("\nRun with --debug flag for full stack trace"), err=True)
    return 255


def with_error_handling(debug: bool = False):
    """
    Context manager that turns exceptions into a reported error and exit code.

    click's own exceptions (usage errors, ctx.exit) pass through untouched.

    Example:
        @click.command()
        @click.pass_obj
        def my_command(obj):
            with with_error_handling(obj.debug):
                ...
    """

    class ErrorHandler:
        def __init__(self, show_debug: bool):
            self.show_debug = show_debug

        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            if exc_val is None or isinstance(exc_val, (click.exceptions.Exit, click.ClickException)):
                return False
            sys.exit(handle_cli_error(exc_val, self.show_debug))

    return ErrorHandler(debug)
