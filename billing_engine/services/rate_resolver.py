"""Effective hourly rate resolution.

The engine asks a RateResolver for the rate of a user on a project. Three
implementations are provided:
- RateTableResolver: resolves from BillingRate rules loaded with the dataset
- HttpRateResolver: asks a remote pricing service over HTTP
- FallbackRateResolver: wraps either and substitutes the configured default
  rate whenever resolution fails

Rate failures never reach callers of the billing views; the fallback is the
only place they are recovered.
"""

import logging
import socket
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional, Tuple

import requests

from billing_engine.calculators.time_utils import Number, to_decimal
from billing_engine.exceptions import RateNotFoundError, RateServiceUnavailableError
from billing_engine.models.rate import BillingRate, RateEntityType, RateQuery, RateResult

logger = logging.getLogger(__name__)

DEFAULT_RATE = Decimal("75")


class RateResolver(ABC):
    """Resolves the effective hourly rate for a rate query."""

    @abstractmethod
    def get_effective_rate(self, query: RateQuery) -> RateResult:
        """
        Resolve the effective rate.

        Raises:
            RateResolutionError: If no rate can be determined
        """


class RateTableResolver(RateResolver):
    """
    Resolve rates from BillingRate rules.

    Precedence (highest first):
    1. user rule scoped to the queried project
    2. user rule
    3. project rule
    4. client rule
    5. global rule

    Within one precedence level the rule with the latest effective_from
    wins. Only active rules effective on the query date are considered.

    Example:
        >>> resolver = RateTableResolver([
        ...     BillingRate(entity_type="global", standard_rate="80", effective_from=dt.date(2024, 1, 1)),
        ...     BillingRate(entity_type="user", entity_id="u-1", standard_rate="110", effective_from=dt.date(2024, 1, 1)),
        ... ])
        >>> resolver.get_effective_rate(RateQuery.for_date("u-1", "p-1", None, dt.date(2024, 6, 3), Decimal("8"))).effective_rate
        Decimal('110')
    """

    def __init__(self, rates: Iterable[BillingRate] = ()):
        self._rates: List[BillingRate] = list(rates)

    def add_rate(self, rate: BillingRate) -> None:
        self._rates.append(rate)

    def __len__(self) -> int:
        return len(self._rates)

    def _precedence(self, rate: BillingRate, query: RateQuery) -> Optional[int]:
        """Precedence level of a rule for the query, or None if it does not apply."""
        if rate.entity_type == RateEntityType.USER:
            if rate.entity_id != query.user_id:
                return None
            if rate.project_id is None:
                return 1
            return 0 if rate.project_id == query.project_id else None
        if rate.entity_type == RateEntityType.PROJECT:
            return 2 if rate.entity_id == query.project_id else None
        if rate.entity_type == RateEntityType.CLIENT:
            if query.client_id is None or rate.entity_id != query.client_id:
                return None
            return 3
        return 4

    def get_effective_rate(self, query: RateQuery) -> RateResult:
        candidates: List[Tuple[int, BillingRate]] = []
        for rate in self._rates:
            if not rate.is_effective_on(query.date):
                continue
            level = self._precedence(rate, query)
            if level is not None:
                candidates.append((level, rate))

        if not candidates:
            raise RateNotFoundError(
                f"No billing rate for user {query.user_id} on project "
                f"{query.project_id} effective {query.date}",
                recovery_hint="Add a global rate to billing_rates.csv",
            )

        # Lowest level first; latest effective_from within a level
        candidates.sort(key=lambda c: c[1].effective_from, reverse=True)
        candidates.sort(key=lambda c: c[0])
        level, rate = candidates[0]
        logger.debug(
            f"Resolved rate {rate.standard_rate} for user {query.user_id} on "
            f"project {query.project_id} from {rate.entity_type.value} rule"
        )
        return RateResult(effective_rate=rate.standard_rate)


class HttpRateResolver(RateResolver):
    """
    Resolve rates through a remote pricing service.

    The query is POSTed as JSON; the service must answer with a JSON object
    carrying ``effective_rate``.

    Example:
        >>> resolver = HttpRateResolver("https://pricing.internal/rates/effective", timeout=5)
    """

    def __init__(
        self,
        url: str,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the resolver.

        Args:
            url: Endpoint of the pricing service
            timeout: Request timeout in seconds
            session: Optional requests session (a new one is created if omitted)
        """
        self.url = url
        self.timeout = timeout
        self.session = session or requests.Session()

    def get_effective_rate(self, query: RateQuery) -> RateResult:
        payload = query.model_dump(mode="json")

        try:
            response = self.session.post(self.url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except (socket.timeout, requests.exceptions.Timeout) as e:
            raise RateServiceUnavailableError(f"Rate service timed out: {e}") from e
        except requests.exceptions.ConnectionError as e:
            raise RateServiceUnavailableError(f"Rate service unreachable: {e}") from e
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else "unknown"
            raise RateServiceUnavailableError(
                f"Rate service returned HTTP {status}"
            ) from e
        except (requests.exceptions.RequestException, ValueError) as e:
            raise RateServiceUnavailableError(f"Rate service request failed: {e}") from e

        if not isinstance(body, dict) or "effective_rate" not in body:
            raise RateServiceUnavailableError(
                "Rate service response is missing effective_rate"
            )

        try:
            return RateResult(effective_rate=body["effective_rate"])
        except ValueError as e:
            raise RateServiceUnavailableError(
                f"Rate service returned an invalid rate: {body['effective_rate']!r}"
            ) from e


class FallbackRateResolver(RateResolver):
    """
    Substitute a default rate whenever the wrapped resolver fails.

    Example:
        >>> resolver = FallbackRateResolver(RateTableResolver(), default_rate=75)
        >>> resolver.get_effective_rate(query).effective_rate
        Decimal('75')
    """

    def __init__(self, resolver: RateResolver, default_rate: Number = DEFAULT_RATE):
        self.resolver = resolver
        try:
            self.default_rate = to_decimal(default_rate)
        except (InvalidOperation, ValueError) as e:
            raise ValueError(f"Invalid default rate: {default_rate!r}") from e
        self.fallback_count = 0

    def get_effective_rate(self, query: RateQuery) -> RateResult:
        try:
            return self.resolver.get_effective_rate(query)
        except Exception as e:
            self.fallback_count += 1
            logger.warning(
                f"Rate resolution failed for user {query.user_id} on project "
                f"{query.project_id} ({type(e).__name__}: {e}); "
                f"using default rate {self.default_rate}"
            )
            return RateResult(effective_rate=self.default_rate)
