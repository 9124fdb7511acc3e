"""Billing engine facade.

BillingEngine wires the time-tracking store, adjustment store and rate
resolver into the view and adjustment services and exposes the engine's
operations. Callers pass already validated and authorized parameters.
"""

import datetime as dt
import logging
from typing import Callable, Iterable, Optional, Union

from billing_engine.aggregators.time_entry_aggregator import IdFilter
from billing_engine.calculators.billing_calculator import (
    AdjustmentIntegrityResult,
    validate_adjustment_integrity,
)
from billing_engine.calculators.time_utils import Number
from billing_engine.config.settings import BillingEngineConfig
from billing_engine.models.adjustment import BillingAdjustment
from billing_engine.models.billing import (
    AdjustmentResult,
    BillingViewType,
    ProjectBillingView,
    ProjectTotalUpdateResult,
    TaskBillingView,
    UserBillingView,
)
from billing_engine.models.rate import BillingRate
from billing_engine.services.adjustment_store import (
    InMemoryAdjustmentStore,
    JsonFileAdjustmentStore,
)
from billing_engine.services.billing_adjustment_service import BillingAdjustmentService
from billing_engine.services.billing_view_service import BillingViewService
from billing_engine.services.rate_resolver import (
    FallbackRateResolver,
    HttpRateResolver,
    RateResolver,
    RateTableResolver,
)
from billing_engine.services.time_tracking_store import TimeTrackingStore
from billing_engine.utils.logging_utils import LogContext, log_function_call

logger = logging.getLogger(__name__)

ViewArg = Union[str, BillingViewType]


class BillingEngine:
    """
    Entry point for billing views and adjustments.

    Features:
    - Project, user and task billing views
    - Single-resource adjustments (reconciled or recorded directly)
    - Project-level billable totals redistributed over resources
    - Default-rate fallback whenever rate resolution fails

    Example:
        >>> engine = BillingEngine(store, InMemoryAdjustmentStore(), RateTableResolver(rates))
        >>> view = engine.get_project_billing_view(dt.date(2024, 6, 1), dt.date(2024, 6, 30))
        >>> view.summary.total_billable_hours
        Decimal('96.00')
    """

    def __init__(
        self,
        time_store: TimeTrackingStore,
        adjustment_store: InMemoryAdjustmentStore,
        rate_resolver: RateResolver,
        config: Optional[BillingEngineConfig] = None,
        today: Callable[[], dt.date] = dt.date.today,
    ):
        """
        Initialize the engine.

        Args:
            time_store: Read access to time-tracking data
            adjustment_store: Adjustment persistence
            rate_resolver: Rate lookup; wrapped with the default-rate fallback
                unless it already is one
            config: Engine settings (defaults are used when omitted)
            today: Clock used for rate dates and default ranges
        """
        self.config = config or BillingEngineConfig()
        self.time_store = time_store
        self.adjustment_store = adjustment_store

        if isinstance(rate_resolver, FallbackRateResolver):
            self.rate_resolver = rate_resolver
        else:
            self.rate_resolver = FallbackRateResolver(rate_resolver, self.config.default_rate)

        self.views = BillingViewService(
            time_store,
            adjustment_store,
            self.rate_resolver,
            today=today,
            task_view_default_days=self.config.task_view_default_days,
        )
        self.adjustments = BillingAdjustmentService(
            time_store,
            adjustment_store,
            self.views,
            default_reason=self.config.default_adjustment_reason,
            system_actor=self.config.system_actor,
        )

    @classmethod
    def from_config(
        cls,
        config: BillingEngineConfig,
        time_store: TimeTrackingStore,
        rates: Iterable[BillingRate] = (),
    ) -> "BillingEngine":
        """
        Build an engine from settings.

        Adjustments are stored in ``config.adjustments_file``. Rates come
        from the pricing service when ``RATE_SERVICE_URL`` is set, otherwise
        from the given rate rules.
        """
        adjustment_store = JsonFileAdjustmentStore(config.adjustments_file)

        resolver: RateResolver
        if config.rate_service_url:
            logger.info(f"Resolving rates through {config.rate_service_url}")
            resolver = HttpRateResolver(
                config.rate_service_url, timeout=config.rate_service_timeout
            )
        else:
            resolver = RateTableResolver(rates)
            logger.info(f"Resolving rates from {len(resolver)} rate rules")

        return cls(time_store, adjustment_store, resolver, config=config)

    @log_function_call
    def get_project_billing_view(
        self,
        start_date: dt.date,
        end_date: dt.date,
        project_ids: IdFilter = None,
        client_ids: IdFilter = None,
        view: ViewArg = BillingViewType.MONTHLY,
    ) -> ProjectBillingView:
        return self.views.get_project_view(start_date, end_date, project_ids, client_ids, view)

    @log_function_call
    def get_user_billing_view(
        self,
        start_date: dt.date,
        end_date: dt.date,
        project_ids: IdFilter = None,
        client_ids: IdFilter = None,
        roles: Union[None, str, Iterable[str]] = None,
        search: Optional[str] = None,
        view: ViewArg = BillingViewType.MONTHLY,
    ) -> UserBillingView:
        return self.views.get_user_view(
            start_date, end_date, project_ids, client_ids, roles=roles, search=search, view=view
        )

    @log_function_call
    def get_task_billing_view(
        self,
        start_date: Optional[dt.date] = None,
        end_date: Optional[dt.date] = None,
        project_ids: IdFilter = None,
        task_ids: IdFilter = None,
    ) -> TaskBillingView:
        return self.views.get_task_view(start_date, end_date, project_ids, task_ids)

    @log_function_call(include_args=True, level="INFO")
    def apply_billing_adjustment(
        self,
        user_id: str,
        project_id: str,
        start_date: dt.date,
        end_date: dt.date,
        billable_hours: Number,
        total_hours: Optional[Number] = None,
        reason: Optional[str] = None,
        adjusted_by: Optional[str] = None,
    ) -> AdjustmentResult:
        with LogContext(user_id=user_id, project_id=project_id):
            return self.adjustments.apply_adjustment(
                user_id,
                project_id,
                start_date,
                end_date,
                billable_hours,
                total_hours=total_hours,
                reason=reason,
                adjusted_by=adjusted_by,
            )

    @log_function_call(include_args=True, level="INFO")
    def update_project_billable_total(
        self,
        project_id: str,
        start_date: dt.date,
        end_date: dt.date,
        billable_hours: Number,
        adjusted_by: Optional[str] = None,
    ) -> ProjectTotalUpdateResult:
        with LogContext(project_id=project_id):
            return self.adjustments.update_project_billable_total(
                project_id, start_date, end_date, billable_hours, adjusted_by=adjusted_by
            )

    @log_function_call(include_args=True, level="INFO")
    def record_billing_adjustment(
        self,
        user_id: str,
        project_id: str,
        start_date: dt.date,
        end_date: dt.date,
        original_billable_hours: Number,
        adjusted_billable_hours: Number,
        reason: Optional[str] = None,
        adjusted_by: Optional[str] = None,
        timesheet_id: Optional[str] = None,
    ) -> AdjustmentResult:
        with LogContext(user_id=user_id, project_id=project_id):
            return self.adjustments.record_adjustment(
                user_id,
                project_id,
                start_date,
                end_date,
                original_billable_hours,
                adjusted_billable_hours,
                reason=reason,
                adjusted_by=adjusted_by,
                timesheet_id=timesheet_id,
            )

    def get_billing_adjustment(
        self, user_id: str, project_id: str, start_date: dt.date, end_date: dt.date
    ) -> Optional[BillingAdjustment]:
        return self.adjustments.get_adjustment(user_id, project_id, start_date, end_date)

    def validate_adjustment_integrity(
        self,
        worked_hours: Number,
        manager_adjustment: Number,
        base_billable_hours: Number,
        management_adjustment: Number,
        final_billable_hours: Number,
    ) -> AdjustmentIntegrityResult:
        return validate_adjustment_integrity(
            worked_hours,
            manager_adjustment,
            base_billable_hours,
            management_adjustment,
            final_billable_hours,
        )
