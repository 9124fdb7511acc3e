"""
End-to-end billing integration tests.

These tests verify the complete data flow from reading the CSV dataset
through aggregation and rate resolution to stored adjustments that are
read back by a new engine instance.
"""

import json
from datetime import date
from decimal import Decimal

import pytest

from billing_engine.models.adjustment import AdjustmentKey

JUNE = (date(2024, 6, 1), date(2024, 6, 30))


@pytest.mark.integration
class TestEndToEndBilling:
    """Test the complete flow from dataset to adjusted views."""

    def test_views_from_dataset(self, load_engine):
        """Test that the CSV dataset produces the expected totals."""
        engine = load_engine()

        projects = engine.get_project_billing_view(*JUNE)
        users = engine.get_user_billing_view(*JUNE)
        tasks = engine.get_task_billing_view(*JUNE)

        assert projects.summary.total_billable_hours == Decimal("36")
        assert projects.summary.total_amount == Decimal("3670")
        assert users.summary.total_amount == projects.summary.total_amount
        assert tasks.summary.total_amount == Decimal("3895")
        assert engine.rate_resolver.fallback_count == 0

    def test_adjustments_survive_restart(self, load_engine, integration_config):
        """
        Test the adjustment workflow across engine instances.

        This test verifies:
        1. A single-resource adjustment is stored in the JSON file
        2. A project-level total is redistributed and stored
        3. A new engine reads both back and applies them to the views
        4. The task view keeps reporting unadjusted hours
        """
        engine = load_engine()
        engine.apply_billing_adjustment(
            "u-1", "p-1", *JUNE, billable_hours=10, reason="Capped by contract"
        )
        update = engine.update_project_billable_total("p-2", *JUNE, billable_hours=6)
        assert update.is_complete

        with open(integration_config.adjustments_file, "r", encoding="utf-8") as f:
            payload = json.load(f)
        assert payload["version"] == "1.0"
        assert len(payload["adjustments"]) == 3

        restarted = load_engine()
        projects = {p.project_id: p for p in restarted.get_project_billing_view(*JUNE).projects}

        jane = projects["p-1"].resources[0]
        assert jane.user_id == "u-1"
        assert jane.billable_hours == Decimal("10")
        assert jane.total_amount == Decimal("1000")
        assert projects["p-1"].billable_hours == Decimal("15")
        assert projects["p-2"].billable_hours == Decimal("6")
        assert sum(r.billable_hours for r in projects["p-2"].resources) == Decimal("6")

        users = {u.user_id: u for u in restarted.get_user_billing_view(*JUNE).users}
        assert users["u-1"].billable_hours == Decimal("10")
        assert users["u-1"].non_billable_hours == Decimal("11")

        tasks = restarted.get_task_billing_view(*JUNE)
        assert tasks.summary.total_amount == Decimal("3895")

        record = restarted.get_billing_adjustment("u-1", "p-1", *JUNE)
        assert record.reason == "Capped by contract"
        assert record.adjusted_by == "billing-bot"

    def test_adjustment_scoped_to_its_period(self, load_engine):
        """Test that a June adjustment only applies to queries within June."""
        engine = load_engine()
        engine.apply_billing_adjustment("u-1", "p-1", *JUNE, billable_hours=10)

        first_week = engine.get_project_billing_view(
            date(2024, 6, 2), date(2024, 6, 8), project_ids="p-1"
        ).projects[0]
        spring = engine.get_project_billing_view(
            date(2024, 5, 1), date(2024, 6, 30), project_ids="p-1"
        ).projects[0]

        assert first_week.resources[0].billable_hours == Decimal("10")
        assert spring.resources[0].billable_hours == Decimal("19")

    def test_soft_deleted_adjustment_reverts(self, load_engine):
        """Test that deleting an adjustment restores the aggregated hours."""
        engine = load_engine()
        engine.apply_billing_adjustment("u-1", "p-1", *JUNE, billable_hours=10)
        engine.adjustment_store.soft_delete(
            AdjustmentKey("u-1", "p-1", *JUNE), deleted_by="admin"
        )

        restarted = load_engine()
        website = restarted.get_project_billing_view(*JUNE, project_ids="p-1").projects[0]

        assert website.resources[0].billable_hours == Decimal("19")
        assert restarted.get_billing_adjustment("u-1", "p-1", *JUNE) is None

    def test_weekly_breakdown_matches_totals(self, load_engine):
        """Test that weekly rows add up to the resource totals."""
        view = load_engine().get_project_billing_view(*JUNE, view="weekly")

        for project in view.projects:
            for resource in project.resources:
                weeks = resource.weekly_breakdown
                assert sum(w.total_hours for w in weeks) == resource.total_hours
