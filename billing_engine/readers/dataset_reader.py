"""CSV dataset reader for time-tracking exports.

This module loads a directory of CSV exports into an
InMemoryTimeTrackingStore plus the billing rate rules used by
RateTableResolver.

Expected files:
```
projects.csv       id, name, client_id
users.csv          id, full_name, first_name, last_name, email, role
timesheets.csv     id, user_id, status, week_start_date, week_end_date
time_entries.csv   id, timesheet_id, user_id, project_id, task_id, date, hours,
                   is_billable, billable_hours, description, deleted_at
clients.csv        id, name                                   (optional)
tasks.csv          id, project_id, name                       (optional)
billing_rates.csv  entity_type, entity_id, project_id, standard_rate,
                   effective_from, effective_to, is_active    (optional)
```
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Type, TypeVar, Union

import pandas as pd
from pydantic import BaseModel, ValidationError

from billing_engine.exceptions import DatasetError
from billing_engine.models.project import Client, Project, Task, User
from billing_engine.models.rate import BillingRate
from billing_engine.models.timesheet import TimeEntry, Timesheet
from billing_engine.services.time_tracking_store import InMemoryTimeTrackingStore

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass
class Dataset:
    """Loaded dataset.

    Attributes:
        store: Time-tracking store holding the loaded records
        rates: Billing rate rules (empty when billing_rates.csv is absent)
        skipped_rows: Number of rows per file that failed validation
    """

    store: InMemoryTimeTrackingStore
    rates: List[BillingRate] = field(default_factory=list)
    skipped_rows: Dict[str, int] = field(default_factory=dict)


class DatasetReader:
    """Reader for a directory of time-tracking CSV exports.

    Invalid rows are logged and skipped; a missing required file or an
    unreadable CSV raises DatasetError.

    Example:
        >>> dataset = DatasetReader("data/june").load()
        >>> dataset.store.get_project("p-1").name
        'Website'
    """

    REQUIRED_FILES = ("projects.csv", "users.csv", "timesheets.csv", "time_entries.csv")

    def __init__(self, data_dir: Union[str, Path]):
        self.data_dir = Path(data_dir)

    def load(self) -> Dataset:
        """Load every file of the dataset.

        Returns:
            Dataset with a populated store

        Raises:
            DatasetError: If the directory or a required file is missing, or
                a file cannot be parsed as CSV
        """
        if not self.data_dir.is_dir():
            raise DatasetError(
                f"Dataset directory not found: {self.data_dir}",
                recovery_hint="Pass --data-dir or set BILLING_DATA_DIR",
            )

        missing = [name for name in self.REQUIRED_FILES if not (self.data_dir / name).exists()]
        if missing:
            raise DatasetError(f"Dataset {self.data_dir} is missing: {', '.join(missing)}")

        skipped: Dict[str, int] = {}
        store = InMemoryTimeTrackingStore(
            projects=self._read_models("projects.csv", Project, skipped),
            clients=self._read_models("clients.csv", Client, skipped),
            users=self._read_models("users.csv", User, skipped),
            tasks=self._read_models("tasks.csv", Task, skipped),
            timesheets=self._read_models("timesheets.csv", Timesheet, skipped),
            entries=self._read_models("time_entries.csv", TimeEntry, skipped),
        )
        rates = self._read_models("billing_rates.csv", BillingRate, skipped)

        if skipped:
            logger.warning(f"Skipped invalid rows: {skipped}")
        logger.info(f"Loaded dataset from {self.data_dir} with {len(rates)} rate rules")
        return Dataset(store=store, rates=rates, skipped_rows=skipped)

    def _read_frame(self, file_name: str) -> pd.DataFrame:
        path = self.data_dir / file_name
        if not path.exists():
            logger.debug(f"Optional file not present: {path}")
            return pd.DataFrame()

        try:
            # Keep every cell as text; models do the type conversion
            df = pd.read_csv(path, dtype=str, keep_default_na=False)
        except pd.errors.EmptyDataError:
            return pd.DataFrame()
        except (pd.errors.ParserError, UnicodeDecodeError, OSError) as e:
            raise DatasetError(f"Cannot read {path}: {e}") from e

        df.columns = [str(c).strip() for c in df.columns]
        return df

    def _read_models(
        self, file_name: str, model: Type[ModelT], skipped: Dict[str, int]
    ) -> List[ModelT]:
        df = self._read_frame(file_name)
        if df.empty:
            return []

        known = set(model.model_fields)
        unknown = [c for c in df.columns if c not in known]
        if unknown:
            logger.debug(f"Ignoring columns {unknown} in {file_name}")

        records: List[ModelT] = []
        for index, row in df.iterrows():
            data = self._clean_row(row.to_dict(), known)
            try:
                records.append(model.model_validate(data))
            except ValidationError as e:
                skipped[file_name] = skipped.get(file_name, 0) + 1
                logger.warning(
                    f"Skipping row {index + 2} of {file_name}: "
                    f"{e.error_count()} validation error(s): {e.errors()[0]['msg']}"
                )

        logger.info(f"Read {len(records)} rows from {file_name}")
        return records

    @staticmethod
    def _clean_row(row: Dict[str, Any], known: set) -> Dict[str, Any]:
        """Keep model columns and drop blank cells so model defaults apply."""
        cleaned = {}
        for key, value in row.items():
            if key not in known:
                continue
            value = value.strip() if isinstance(value, str) else value
            if value == "":
                continue
            cleaned[key] = value
        return cleaned
