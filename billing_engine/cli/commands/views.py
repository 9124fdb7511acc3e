"""Billing view commands."""

from typing import Optional

import click

from billing_engine.aggregators.weekly_breakdown import generate_weekly_matrix
from billing_engine.cli.error_handlers import with_error_handling
from billing_engine.cli.utils.context import CLIContext, parse_date_input, resolve_period
from billing_engine.cli.utils.formatters import (
    format_hours,
    format_info,
    format_json,
    format_success,
    format_table,
)

_period_options = [
    click.option("--month", type=str, default=None, help="Month to report (YYYY-MM)"),
    click.option("--start-date", type=str, default=None, help="First day (YYYY-MM-DD)"),
    click.option("--end-date", type=str, default=None, help="Last day (YYYY-MM-DD)"),
    click.option(
        "--projects", type=str, default=None, help="Comma-separated project ids (optional)"
    ),
    click.option(
        "--clients", type=str, default=None, help="Comma-separated client ids (optional)"
    ),
    click.option(
        "--view",
        type=click.Choice(["weekly", "monthly", "custom"]),
        default="monthly",
        show_default=True,
        help="weekly adds a per-week breakdown for each resource",
    ),
    click.option("--json", "as_json", is_flag=True, help="Print the raw result as JSON"),
]


def period_options(func):
    for option in reversed(_period_options):
        func = option(func)
    return func


@click.command(name="project-view")
@period_options
@click.pass_obj
def project_view(
    obj: CLIContext,
    month: Optional[str],
    start_date: Optional[str],
    end_date: Optional[str],
    projects: Optional[str],
    clients: Optional[str],
    view: str,
    as_json: bool,
):
    """Show billable hours and amounts per project and resource.

    Example:
        billing-engine project-view --month 2024-06
        billing-engine project-view --start-date 2024-06-01 --end-date 2024-06-14 --view weekly
    """
    start, end = resolve_period(month, start_date, end_date)

    with with_error_handling(obj.debug):
        result = obj.engine().get_project_billing_view(
            start, end, project_ids=projects, client_ids=clients, view=view
        )

        if as_json:
            click.echo(format_json(result.to_dict()))
            return

        click.echo(format_info(f"Project billing from {start} to {end}"))
        rows = []
        for project in result.projects:
            rows.append(
                [
                    project.project_name,
                    project.client_name or "-",
                    "",
                    format_hours(project.total_hours),
                    format_hours(project.billable_hours),
                    format_hours(project.non_billable_hours),
                    "",
                    format_hours(project.total_amount),
                ]
            )
            for resource in project.resources:
                rows.append(
                    [
                        "",
                        "",
                        resource.user_name,
                        format_hours(resource.total_hours),
                        format_hours(resource.billable_hours),
                        format_hours(resource.non_billable_hours),
                        format_hours(resource.hourly_rate),
                        format_hours(resource.total_amount),
                    ]
                )
        click.echo(
            format_table(
                ["Project", "Client", "Resource", "Hours", "Billable", "Non-billable", "Rate", "Amount"],
                rows,
            )
        )

        if view == "weekly":
            matrix = generate_weekly_matrix(result.projects)
            if not matrix.empty:
                click.echo()
                click.echo(format_info("Billable hours per week (weeks start on Sunday)"))
                click.echo(matrix.to_string())

        summary = result.summary
        click.echo()
        click.echo(
            format_success(
                f"{summary.total_projects} project(s), "
                f"{format_hours(summary.total_billable_hours)} billable hours, "
                f"amount {format_hours(summary.total_amount)}"
            )
        )


@click.command(name="user-view")
@period_options
@click.option("--roles", type=str, default=None, help="Comma-separated roles (optional)")
@click.option("--search", type=str, default=None, help="Filter by user name (optional)")
@click.pass_obj
def user_view(
    obj: CLIContext,
    month: Optional[str],
    start_date: Optional[str],
    end_date: Optional[str],
    projects: Optional[str],
    clients: Optional[str],
    view: str,
    as_json: bool,
    roles: Optional[str],
    search: Optional[str],
):
    """Show billable hours and amounts per user.

    Example:
        billing-engine user-view --month 2024-06 --roles employee,lead --search jane
    """
    start, end = resolve_period(month, start_date, end_date)

    with with_error_handling(obj.debug):
        result = obj.engine().get_user_billing_view(
            start,
            end,
            project_ids=projects,
            client_ids=clients,
            roles=roles,
            search=search,
            view=view,
        )

        if as_json:
            click.echo(format_json(result.to_dict()))
            return

        click.echo(format_info(f"User billing from {start} to {end}"))
        rows = [
            [
                user.user_name,
                user.role,
                str(len(user.projects)),
                format_hours(user.total_hours),
                format_hours(user.billable_hours),
                format_hours(user.non_billable_hours),
                format_hours(user.total_amount),
            ]
            for user in result.users
        ]
        click.echo(
            format_table(
                ["User", "Role", "Projects", "Hours", "Billable", "Non-billable", "Amount"],
                rows,
            )
        )
        click.echo()
        click.echo(
            format_success(
                f"{result.summary.total_users} user(s), "
                f"{format_hours(result.summary.total_billable_hours)} billable hours, "
                f"amount {format_hours(result.summary.total_amount)}"
            )
        )


@click.command(name="task-view")
@click.option("--start-date", type=str, default=None, help="First day (YYYY-MM-DD)")
@click.option("--end-date", type=str, default=None, help="Last day (YYYY-MM-DD)")
@click.option("--projects", type=str, default=None, help="Comma-separated project ids")
@click.option("--tasks", type=str, default=None, help="Comma-separated task ids")
@click.option("--json", "as_json", is_flag=True, help="Print the raw result as JSON")
@click.pass_obj
def task_view(
    obj: CLIContext,
    start_date: Optional[str],
    end_date: Optional[str],
    projects: Optional[str],
    tasks: Optional[str],
    as_json: bool,
):
    """Show hours and amounts per task (entries grouped by description).

    Without dates, the last BILLING_TASK_VIEW_DEFAULT_DAYS days are shown.
    Billing adjustments are not applied in this view.

    Example:
        billing-engine task-view --start-date 2024-06-01 --end-date 2024-06-30
    """
    start = parse_date_input(start_date) if start_date else None
    end = parse_date_input(end_date) if end_date else None

    with with_error_handling(obj.debug):
        result = obj.engine().get_task_billing_view(
            start, end, project_ids=projects, task_ids=tasks
        )

        if as_json:
            click.echo(format_json(result.to_dict()))
            return

        click.echo(
            format_info(
                f"Task billing from {result.period.start_date} to {result.period.end_date}"
            )
        )
        rows = [
            [
                task.project_name,
                task.task_name,
                str(len(task.resources)),
                format_hours(task.total_hours),
                format_hours(task.billable_hours),
                format_hours(task.amount),
            ]
            for task in result.tasks
        ]
        click.echo(
            format_table(["Project", "Task", "Resources", "Hours", "Billable", "Amount"], rows)
        )
        click.echo()
        click.echo(
            format_success(
                f"{result.summary.total_tasks} task(s), "
                f"amount {format_hours(result.summary.total_amount)}"
            )
        )
