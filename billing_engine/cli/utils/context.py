"""Shared CLI state and option parsing."""

import datetime as dt
from calendar import monthrange
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

import click

from billing_engine.config.settings import BillingEngineConfig
from billing_engine.engine import BillingEngine
from billing_engine.readers.dataset_reader import DatasetReader


@dataclass
class CLIContext:
    """State shared by all commands of one invocation.

    The engine is built on first use so that ``--help`` never touches the
    dataset.
    """

    settings: BillingEngineConfig
    data_dir: Path
    adjustments_file: Path
    debug: bool = False
    _engine: Optional[BillingEngine] = field(default=None, repr=False)

    def engine(self) -> BillingEngine:
        if self._engine is None:
            dataset = DatasetReader(self.data_dir).load()
            settings = self.settings.model_copy(
                update={"data_dir": self.data_dir, "adjustments_file": self.adjustments_file}
            )
            self._engine = BillingEngine.from_config(settings, dataset.store, dataset.rates)
        return self._engine


def parse_date_input(date_str: str) -> dt.date:
    """Parse a date in YYYY-MM-DD format.

    Raises:
        click.BadParameter: If the format is invalid
    """
    try:
        return dt.datetime.strptime(date_str, "%Y-%m-%d").date()
    except ValueError:
        raise click.BadParameter(f"Invalid date: {date_str}. Expected YYYY-MM-DD")


def resolve_period(
    month: Optional[str], start_date: Optional[str], end_date: Optional[str]
) -> Tuple[dt.date, dt.date]:
    """Turn ``--month`` or ``--start-date/--end-date`` into an inclusive range.

    Example:
        >>> resolve_period("2024-02", None, None)
        (datetime.date(2024, 2, 1), datetime.date(2024, 2, 29))

    Raises:
        click.UsageError: If the options are missing or combined
    """
    if month is not None:
        if start_date is not None or end_date is not None:
            raise click.UsageError("Use either --month or --start-date/--end-date, not both")
        try:
            parsed = dt.datetime.strptime(month, "%Y-%m")
        except ValueError:
            raise click.BadParameter(f"Invalid month: {month}. Expected YYYY-MM")
        _, last_day = monthrange(parsed.year, parsed.month)
        return dt.date(parsed.year, parsed.month, 1), dt.date(parsed.year, parsed.month, last_day)

    if start_date is None or end_date is None:
        raise click.UsageError("Provide --month or both --start-date and --end-date")

    start = parse_date_input(start_date)
    end = parse_date_input(end_date)
    if start > end:
        raise click.UsageError("--start-date must be before or equal to --end-date")
    return start, end
