"""
Global pytest configuration and fixtures.
"""
import datetime as dt
import os
from decimal import Decimal
from pathlib import Path
from typing import Dict, Optional

import pytest

from billing_engine.config import BillingEngineConfig, reload_config
from billing_engine.config.logging_config import reset_logging
from billing_engine.models import (
    BillingRate,
    Client,
    Project,
    Task,
    TimeEntry,
    Timesheet,
    User,
)
from billing_engine.services.adjustment_store import InMemoryAdjustmentStore
from billing_engine.services.rate_resolver import RateTableResolver
from billing_engine.services.time_tracking_store import InMemoryTimeTrackingStore

TODAY = dt.date(2024, 6, 20)
JUNE_START = dt.date(2024, 6, 1)
JUNE_END = dt.date(2024, 6, 30)


@pytest.fixture(scope="session")
def test_env_vars() -> Dict[str, str]:
    """Test environment variables for configuration."""
    return {
        'ENVIRONMENT': 'testing',
        'DEBUG': 'false',
        'LOG_LEVEL': 'DEBUG',
        'BILLING_DEFAULT_RATE': '75',
        'BILLING_SYSTEM_ACTOR': 'billing-bot',
        'BILLING_TASK_VIEW_DEFAULT_DAYS': '90',
    }


@pytest.fixture
def mock_env(test_env_vars, monkeypatch):
    """Mock environment variables for testing."""
    for key, value in test_env_vars.items():
        monkeypatch.setenv(key, value)

    # Clear the global config to force reload with test values
    import billing_engine.config.settings
    billing_engine.config.settings._config = None

    yield test_env_vars

    billing_engine.config.settings._config = None


@pytest.fixture
def test_config(mock_env) -> BillingEngineConfig:
    """Test configuration instance."""
    return reload_config()


@pytest.fixture
def today():
    """Fixed clock for rate dates and default ranges."""
    return lambda: TODAY


@pytest.fixture
def sample_store() -> InMemoryTimeTrackingStore:
    """Time-tracking data for June 2024.

    - p-1 Website Redesign: u-1 (approved, 21h worked / 19h billable) and
      u-2 (frozen, 7.5h worked / 5h explicit billable)
    - p-2 Mobile App: u-2 (8h) and u-3 (4h, no task)
    - p-3 Internal Tools: no entries
    - u-4 only has a draft timesheet; one u-1 entry is soft-deleted
    """
    deleted = dt.datetime(2024, 6, 7, 12, 0, tzinfo=dt.timezone.utc)
    return InMemoryTimeTrackingStore(
        clients=[Client(id="c-1", name="Acme Corp")],
        projects=[
            Project(id="p-1", name="Website Redesign", client_id="c-1"),
            Project(id="p-2", name="Mobile App", client_id="c-1"),
            Project(id="p-3", name="Internal Tools"),
        ],
        users=[
            User(id="u-1", full_name="Jane Smith", role="employee"),
            User(id="u-2", first_name="Bob", last_name="Jones", role="lead"),
            User(id="u-3", full_name="Carol White", role="manager"),
            User(id="u-4", full_name="Dave Draft"),
        ],
        tasks=[
            Task(id="t-1", project_id="p-1", name="Frontend"),
            Task(id="t-2", project_id="p-1", name="Backend"),
            Task(id="t-3", project_id="p-2", name="API"),
        ],
        timesheets=[
            Timesheet(id="ts-1", user_id="u-1", status="approved",
                      week_start_date=dt.date(2024, 6, 3), week_end_date=dt.date(2024, 6, 9)),
            Timesheet(id="ts-2", user_id="u-2", status="frozen",
                      week_start_date=dt.date(2024, 6, 3), week_end_date=dt.date(2024, 6, 9)),
            Timesheet(id="ts-3", user_id="u-3", status="manager_approved",
                      week_start_date=dt.date(2024, 6, 3), week_end_date=dt.date(2024, 6, 9)),
            Timesheet(id="ts-4", user_id="u-4", status="draft",
                      week_start_date=dt.date(2024, 6, 3), week_end_date=dt.date(2024, 6, 9)),
            Timesheet(id="ts-5", user_id="u-1", status="management_approved",
                      week_start_date=dt.date(2024, 6, 10), week_end_date=dt.date(2024, 6, 16)),
        ],
        entries=[
            TimeEntry(id="e-1", timesheet_id="ts-1", user_id="u-1", project_id="p-1",
                      task_id="t-1", date=dt.date(2024, 6, 3), hours="8",
                      description="Homepage layout"),
            TimeEntry(id="e-2", timesheet_id="ts-1", user_id="u-1", project_id="p-1",
                      task_id="t-2", date=dt.date(2024, 6, 4), hours="6",
                      description="API integration"),
            TimeEntry(id="e-3", timesheet_id="ts-1", user_id="u-1", project_id="p-1",
                      task_id="t-1", date=dt.date(2024, 6, 5), hours="2", is_billable=False,
                      description="Homepage layout"),
            TimeEntry(id="e-4", timesheet_id="ts-2", user_id="u-2", project_id="p-1",
                      task_id="t-2", date=dt.date(2024, 6, 3), hours="7.5",
                      billable_hours="5", description="API integration"),
            TimeEntry(id="e-5", timesheet_id="ts-2", user_id="u-2", project_id="p-2",
                      task_id="t-3", date=dt.date(2024, 6, 4), hours="8",
                      description="Auth endpoints"),
            TimeEntry(id="e-6", timesheet_id="ts-3", user_id="u-3", project_id="p-2",
                      date=dt.date(2024, 6, 5), hours="4", description="Planning"),
            TimeEntry(id="e-7", timesheet_id="ts-4", user_id="u-4", project_id="p-1",
                      task_id="t-1", date=dt.date(2024, 6, 3), hours="8",
                      description="Homepage layout"),
            TimeEntry(id="e-8", timesheet_id="ts-5", user_id="u-1", project_id="p-1",
                      task_id="t-1", date=dt.date(2024, 6, 10), hours="5",
                      description="Homepage layout"),
            TimeEntry(id="e-9", timesheet_id="ts-1", user_id="u-1", project_id="p-1",
                      task_id="t-1", date=dt.date(2024, 6, 6), hours="3",
                      description="Homepage layout", deleted_at=deleted),
        ],
    )


@pytest.fixture
def sample_rates():
    """Rate rules: u-1 100, u-2 on p-2 120, client c-1 90, global 80."""
    effective = dt.date(2024, 1, 1)
    return [
        BillingRate(entity_type="global", standard_rate="80", effective_from=effective),
        BillingRate(entity_type="client", entity_id="c-1", standard_rate="90",
                    effective_from=effective),
        BillingRate(entity_type="user", entity_id="u-1", standard_rate="100",
                    effective_from=effective),
        BillingRate(entity_type="user", entity_id="u-2", project_id="p-2",
                    standard_rate="120", effective_from=effective),
    ]


@pytest.fixture
def rate_resolver(sample_rates) -> RateTableResolver:
    return RateTableResolver(sample_rates)


@pytest.fixture
def adjustment_store() -> InMemoryAdjustmentStore:
    return InMemoryAdjustmentStore()


@pytest.fixture
def june():
    """Inclusive June 2024 range."""
    return JUNE_START, JUNE_END


SAMPLE_CSV_FILES = {
    "clients.csv": """id,name
c-1,Acme Corp
""",
    "projects.csv": """id,name,client_id
p-1,Website Redesign,c-1
p-2,Mobile App,c-1
p-3,Internal Tools,
""",
    "users.csv": """id,full_name,first_name,last_name,email,role
u-1,Jane Smith,,,jane@example.com,employee
u-2,,Bob,Jones,,lead
u-3,Carol White,,,,manager
u-4,Dave Draft,,,,
""",
    "tasks.csv": """id,project_id,name
t-1,p-1,Frontend
t-2,p-1,Backend
t-3,p-2,API
""",
    "timesheets.csv": """id,user_id,status,week_start_date,week_end_date
ts-1,u-1,approved,2024-06-03,2024-06-09
ts-2,u-2,frozen,2024-06-03,2024-06-09
ts-3,u-3,manager_approved,2024-06-03,2024-06-09
ts-4,u-4,draft,2024-06-03,2024-06-09
ts-5,u-1,management_approved,2024-06-10,2024-06-16
""",
    "time_entries.csv": """id,timesheet_id,user_id,project_id,task_id,date,hours,is_billable,billable_hours,description,deleted_at
e-1,ts-1,u-1,p-1,t-1,2024-06-03,8,true,,Homepage layout,
e-2,ts-1,u-1,p-1,t-2,2024-06-04,6,true,,API integration,
e-3,ts-1,u-1,p-1,t-1,2024-06-05,2,false,,Homepage layout,
e-4,ts-2,u-2,p-1,t-2,2024-06-03,7.5,true,5,API integration,
e-5,ts-2,u-2,p-2,t-3,2024-06-04,8,true,,Auth endpoints,
e-6,ts-3,u-3,p-2,,2024-06-05,4,true,,Planning,
e-7,ts-4,u-4,p-1,t-1,2024-06-03,8,true,,Homepage layout,
e-8,ts-5,u-1,p-1,t-1,2024-06-10,5,true,,Homepage layout,
e-9,ts-1,u-1,p-1,t-1,2024-06-06,3,true,,Homepage layout,2024-06-07T12:00:00+00:00
""",
    "billing_rates.csv": """entity_type,entity_id,project_id,standard_rate,effective_from,effective_to,is_active
global,,,80,2024-01-01,,true
client,c-1,,90,2024-01-01,,true
user,u-1,,100,2024-01-01,,true
user,u-2,p-2,120,2024-01-01,,true
""",
}


def write_dataset(data_dir: Path, files: Optional[Dict[str, str]] = None) -> Path:
    """Write CSV exports into data_dir and return it."""
    data_dir.mkdir(parents=True, exist_ok=True)
    for name, content in (files or SAMPLE_CSV_FILES).items():
        (data_dir / name).write_text(content, encoding="utf-8")
    return data_dir


@pytest.fixture
def sample_data_dir(tmp_path) -> Path:
    """CSV exports of the sample_store and sample_rates data."""
    return write_dataset(tmp_path / "data")


@pytest.fixture(autouse=True)
def cleanup_logging():
    """Drop root handlers installed by CLI runs."""
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def cleanup_test_files():
    """Clean up any test files created during testing."""
    yield

    for file in ['coverage.xml', '.coverage']:
        if os.path.exists(file):
            os.remove(file)


def hours(value) -> Decimal:
    """Shorthand for Decimal literals in assertions."""
    return Decimal(str(value))


# Pytest configuration for different test types
def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
    config.addinivalue_line(
        "markers", "slow: mark test as slow (production-sized datasets)"
    )


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers based on location."""
    for item in items:
        if "tests/unit/" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
