"""
Performance and consistency tests with production-sized data.

Tests system behaviour with realistic data volumes to ensure:
- Processing time stays within acceptable limits (pytest-benchmark)
- Totals stay exact across the project, user and task views
- Project-level updates keep the requested total at scale
"""

from decimal import Decimal

import pytest

from tests.integration.utils import generate_large_dataset


@pytest.fixture
def large_dataset(tmp_path, integration_config):
    data_dir = tmp_path / "large"
    totals = generate_large_dataset(data_dir)
    config = integration_config.model_copy(update={"data_dir": data_dir})
    return totals, config


@pytest.mark.integration
@pytest.mark.slow
class TestLargeDataset:
    """Test views over ~9000 time entries."""

    def test_views_are_consistent(self, load_engine, large_dataset):
        """Test that every view reports the generated totals."""
        totals, config = large_dataset
        engine = load_engine(config)
        period = (totals.start_date, totals.end_date)

        projects = engine.get_project_billing_view(*period)
        users = engine.get_user_billing_view(*period)
        tasks = engine.get_task_billing_view(*period)

        assert projects.summary.total_hours == totals.total_hours
        assert projects.summary.total_billable_hours == totals.billable_hours
        assert users.summary.total_hours == totals.total_hours
        assert users.summary.total_amount == projects.summary.total_amount
        assert tasks.summary.total_hours == totals.total_hours
        assert tasks.summary.total_billable_hours == totals.billable_hours
        assert engine.rate_resolver.fallback_count == 0

    def test_project_view_performance(self, benchmark, load_engine, large_dataset):
        """Benchmark the weekly project view (10 seconds max)."""
        totals, config = large_dataset
        engine = load_engine(config)

        view = benchmark(
            engine.get_project_billing_view, totals.start_date, totals.end_date, view="weekly"
        )

        assert view.summary.total_hours == totals.total_hours
        assert (
            benchmark.stats["mean"] < 10.0
        ), f"Project view took {benchmark.stats['mean']:.3f}s, expected < 10.000s"

    def test_project_total_update_at_scale(self, load_engine, large_dataset):
        """Test redistributing a project total over many resources."""
        totals, config = large_dataset
        engine = load_engine(config)
        period = (totals.start_date, totals.end_date)

        before = engine.get_project_billing_view(*period, project_ids="p-01").projects[0]
        target = before.billable_hours + Decimal("100.25")

        result = engine.update_project_billable_total("p-01", *period, billable_hours=target)
        after = engine.get_project_billing_view(*period, project_ids="p-01").projects[0]

        assert result.is_complete
        assert result.members_updated == len(before.resources)
        assert after.billable_hours == target
