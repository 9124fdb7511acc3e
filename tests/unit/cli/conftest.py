"""Fixtures for CLI tests."""

import pytest
from click.testing import CliRunner

from billing_engine.cli import cli


@pytest.fixture
def runner():
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def cli_env(mock_env, monkeypatch):
    """Test settings with log output limited to errors."""
    monkeypatch.setenv("LOG_LEVEL", "ERROR")
    monkeypatch.delenv("LOG_FORMAT", raising=False)
    monkeypatch.delenv("LOG_FILE", raising=False)
    monkeypatch.delenv("RATE_SERVICE_URL", raising=False)
    return mock_env


@pytest.fixture
def adjustments_file(tmp_path):
    return tmp_path / "state" / "adjustments.json"


@pytest.fixture
def invoke(runner, cli_env, sample_data_dir, adjustments_file):
    """Run the CLI against the sample dataset."""

    def _invoke(*args):
        return runner.invoke(
            cli,
            [
                "--data-dir",
                str(sample_data_dir),
                "--adjustments-file",
                str(adjustments_file),
                *args,
            ],
        )

    return _invoke
