"""CLI commands."""

from billing_engine.cli.commands.adjust import adjust, set_project_total
from billing_engine.cli.commands.views import project_view, task_view, user_view

__all__ = ["adjust", "project_view", "set_project_total", "task_view", "user_view"]
