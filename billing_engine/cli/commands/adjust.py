"""Billing adjustment commands."""

from decimal import Decimal
from typing import Optional

import click

from billing_engine.cli.error_handlers import with_error_handling
from billing_engine.cli.utils.context import CLIContext, resolve_period
from billing_engine.cli.utils.formatters import (
    format_hours,
    format_json,
    format_success,
    format_table,
    format_warning,
)

# Exit code when a project-level update leaves some resources unchanged
PARTIAL_UPDATE_EXIT_CODE = 8


def _parse_hours(ctx, param, value):
    if value is None:
        return None
    try:
        hours = Decimal(value)
    except ArithmeticError:
        raise click.BadParameter(f"Not a number: {value}")
    if not hours.is_finite():
        raise click.BadParameter(f"Not a number: {value}")
    return hours


@click.command(name="adjust")
@click.option("--user", "user_id", required=True, help="User id of the resource")
@click.option("--project", "project_id", required=True, help="Project id")
@click.option("--month", type=str, default=None, help="Billing month (YYYY-MM)")
@click.option("--start-date", type=str, default=None, help="First day (YYYY-MM-DD)")
@click.option("--end-date", type=str, default=None, help="Last day (YYYY-MM-DD)")
@click.option(
    "--billable-hours", required=True, callback=_parse_hours, help="New billable hours"
)
@click.option(
    "--total-hours",
    default=None,
    callback=_parse_hours,
    help="Worked hours to reconcile against (defaults to current billable hours)",
)
@click.option("--reason", type=str, default=None, help="Reason for the adjustment")
@click.option("--adjusted-by", type=str, default=None, help="Who makes the adjustment")
@click.option("--json", "as_json", is_flag=True, help="Print the raw result as JSON")
@click.pass_obj
def adjust(
    obj: CLIContext,
    user_id: str,
    project_id: str,
    month: Optional[str],
    start_date: Optional[str],
    end_date: Optional[str],
    billable_hours: Decimal,
    total_hours: Optional[Decimal],
    reason: Optional[str],
    adjusted_by: Optional[str],
    as_json: bool,
):
    """Set the billable hours of one user on one project for a period.

    Running the same command twice updates the same adjustment.

    Example:
        billing-engine adjust --user u-1 --project p-1 --month 2024-06 --billable-hours 30
    """
    start, end = resolve_period(month, start_date, end_date)

    with with_error_handling(obj.debug):
        result = obj.engine().apply_billing_adjustment(
            user_id,
            project_id,
            start,
            end,
            billable_hours,
            total_hours=total_hours,
            reason=reason,
            adjusted_by=adjusted_by,
        )

        if as_json:
            click.echo(format_json(result.to_dict()))
            return

        click.echo(
            format_success(
                f"Adjustment {result.adjustment_id} saved: "
                f"{format_hours(result.original_billable_hours)} -> "
                f"{format_hours(result.adjusted_billable_hours)} billable hours "
                f"({result.difference:+.2f})"
            )
        )


@click.command(name="set-project-total")
@click.option("--project", "project_id", required=True, help="Project id")
@click.option("--month", type=str, default=None, help="Billing month (YYYY-MM)")
@click.option("--start-date", type=str, default=None, help="First day (YYYY-MM-DD)")
@click.option("--end-date", type=str, default=None, help="Last day (YYYY-MM-DD)")
@click.option(
    "--billable-hours", required=True, callback=_parse_hours, help="New project billable total"
)
@click.option("--adjusted-by", type=str, default=None, help="Who makes the adjustment")
@click.option("--json", "as_json", is_flag=True, help="Print the raw result as JSON")
@click.pass_context
def set_project_total(
    ctx: click.Context,
    project_id: str,
    month: Optional[str],
    start_date: Optional[str],
    end_date: Optional[str],
    billable_hours: Decimal,
    adjusted_by: Optional[str],
    as_json: bool,
):
    """Redistribute a project's billable total over its resources.

    Exits with code 8 when some resources could not be adjusted.

    Example:
        billing-engine set-project-total --project p-1 --month 2024-06 --billable-hours 120
    """
    obj: CLIContext = ctx.obj
    start, end = resolve_period(month, start_date, end_date)

    with with_error_handling(obj.debug):
        result = obj.engine().update_project_billable_total(
            project_id, start, end, billable_hours, adjusted_by=adjusted_by
        )

        if as_json:
            click.echo(format_json(result.to_dict()))
        else:
            rows = [
                [
                    s.user_id,
                    format_hours(s.result.original_billable_hours),
                    format_hours(s.target_hours),
                    "updated",
                ]
                for s in result.succeeded
            ] + [[f.user_id, "-", format_hours(f.target_hours), f.error_code] for f in result.failed]
            click.echo(format_table(["User", "Original", "Target", "Status"], rows))
            click.echo()
            click.echo(
                format_success(
                    f"Project {project_id} set to {format_hours(result.target_billable_hours)} "
                    f"billable hours ({result.members_updated} resource(s) updated)"
                )
            )
            for failure in result.failed:
                click.echo(format_warning(f"{failure.user_id}: {failure.message}"))

    if not result.is_complete:
        ctx.exit(PARTIAL_UPDATE_EXIT_CODE)
