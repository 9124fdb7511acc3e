"""
Fixtures for integration tests.

Integration tests run the whole stack: CSV dataset, DatasetReader,
BillingEngine.from_config and the JSON adjustment file.
"""

from pathlib import Path

import pytest

from billing_engine.config.settings import BillingEngineConfig
from billing_engine.engine import BillingEngine
from billing_engine.readers.dataset_reader import DatasetReader


@pytest.fixture
def integration_config(test_config, sample_data_dir, tmp_path) -> BillingEngineConfig:
    """Settings pointing at the sample dataset and a fresh adjustment file."""
    return test_config.model_copy(
        update={
            "data_dir": sample_data_dir,
            "adjustments_file": tmp_path / "state" / "billing_adjustments.json",
            "rate_service_url": None,
        }
    )


@pytest.fixture
def load_engine(integration_config):
    """Build a new engine from disk, as a fresh process would."""

    def _load(config: BillingEngineConfig = integration_config) -> BillingEngine:
        dataset = DatasetReader(Path(config.data_dir)).load()
        return BillingEngine.from_config(config, dataset.store, dataset.rates)

    return _load
