# Inventory Metrics - Monthly financial KPIs engine for inventory businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Monthly metrics orchestration.

One run computes and persists the metrics of a single business for one
closed calendar month:

1. validate the requested month (not open, not in the future, not before
   the business was created),
2. fetch the month's transactions, the month's expenses and the current
   warehouse stock concurrently,
3. drop transactions whose product no longer exists,
4. read the previous month's persisted ``closingStock`` as opening stock
   (0 when the previous month was never computed),
5. value the current stock at cost (closing stock),
6. compute the MetricSet,
7. sync it into the MetricStore.

Expected failures are returned, never raised: the caller always receives a
``MetricsRunResult``. When the sync only partially succeeds (or fails),
the computed metrics are still returned next to the sync error.
"""

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from .errors import ErrorCode, Result
from .formulas import (
    DEFAULT_DAYS_IN_PERIOD,
    calculate_all_metrics,
    calculate_closing_stock,
)
from .models import MONTHLY, Business, MetricSet
from .periods import (
    _today,
    month_period,
    parse_month,
    previous_month,
    validate_target_month,
)
from .sources import ExpenseSource, MetricStore, StockSource, TransactionSource
from .sync import SyncOutcome, sync_metrics

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetricsRunResult:
    """
    Result of one monthly run.

    Attributes
    ----------
    metrics:
        The computed MetricSet, or None when the run stopped before the
        calculation (validation, fetch error, unexpected failure).
    error:
        None on full success; otherwise the first error met (validation,
        collaborator error, or the aggregated sync error).
    sync:
        The sync outcome when a sync was attempted.
    detail:
        Optional human-readable explanation of the error.
    """

    metrics: Optional[MetricSet] = None
    error: Optional[ErrorCode] = None
    sync: Optional[SyncOutcome] = None
    detail: Optional[str] = None


@dataclass(frozen=True)
class BatchSummary:
    """Counters of a run over several businesses."""

    success_count: int = 0
    error_count: int = 0
    errors: list[tuple[str, str]] = field(default_factory=list)


def _stock_value(raw: Any) -> float:
    """Parse a persisted stock valuation, falling back to 0."""
    try:
        value = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        logger.warning("Unparsable persisted closingStock %r; using 0", raw)
        return 0.0
    if not value.is_finite():
        logger.warning("Non-finite persisted closingStock %r; using 0", raw)
        return 0.0
    return float(value)


class MonthlyMetricsOrchestrator:
    """
    Compute and persist the monthly metrics of a business.

    Parameters
    ----------
    transactions, expenses, stock:
        Read-only collaborators providing the inputs of a month.
    store:
        MetricStore used both to read the previous closing stock and to
        persist the new metrics.
    days_in_period:
        Period length used by daysOnHand.
    sync_workers:
        Number of concurrent metric writes during the sync.
    today:
        Callable returning today's date (injected in tests).
    """

    def __init__(
        self,
        transactions: TransactionSource,
        expenses: ExpenseSource,
        stock: StockSource,
        store: MetricStore,
        *,
        days_in_period: int = DEFAULT_DAYS_IN_PERIOD,
        sync_workers: int = 1,
        today: Optional[Callable[[], date]] = None,
    ) -> None:
        self.transactions = transactions
        self.expenses = expenses
        self.stock = stock
        self.store = store
        self.days_in_period = days_in_period
        self.sync_workers = sync_workers
        self._today = today

    def _current_date(self) -> date:
        return self._today() if self._today is not None else _today()

    # ------------------------------------------------------------------
    # Single run
    # ------------------------------------------------------------------

    def run(
        self,
        business_id: str,
        business_created_at: Any,
        target_month: Any,
        *,
        reset: bool = False,
    ) -> MetricsRunResult:
        """
        Compute and sync the metrics of ``business_id`` for ``target_month``.

        ``target_month`` may be any date in the month (date, datetime or
        ISO string). With ``reset``, the metrics already stored for the
        month are deleted before the new ones are written. Unexpected
        exceptions are logged and reported as FAILED_REQUEST with no metrics.
        """
        try:
            return self._run(
                business_id, business_created_at, target_month, reset=reset
            )
        except Exception as exc:  # noqa: BLE001
            logger.exception(
                "Metrics run failed for business %s, month %s",
                business_id,
                target_month,
            )
            return MetricsRunResult(error=ErrorCode.FAILED_REQUEST, detail=str(exc))

    def _run(
        self,
        business_id: str,
        business_created_at: Any,
        target_month: Any,
        reset: bool = False,
    ) -> MetricsRunResult:
        validated = validate_target_month(
            target_month, business_created_at, today=self._current_date()
        )
        if not validated.ok:
            logger.warning(
                "Rejected metrics run for business %s: %s",
                business_id,
                validated.detail,
            )
            return MetricsRunResult(error=validated.error, detail=validated.detail)

        period = month_period(validated.data)

        fetched = self._fetch_inputs(business_id, period.start, period.end)
        if not fetched.ok:
            return MetricsRunResult(error=fetched.error, detail=fetched.detail)
        transactions, expenses, items = fetched.data

        valid_transactions = [t for t in transactions if t.product is not None]
        dropped = len(transactions) - len(valid_transactions)
        if dropped:
            logger.warning(
                "Ignoring %d transaction(s) without product for business %s",
                dropped,
                business_id,
            )

        opening = self._opening_stock(business_id, period.start)
        if not opening.ok:
            return MetricsRunResult(error=opening.error, detail=opening.detail)

        closing_stock = calculate_closing_stock(items)

        metrics = calculate_all_metrics(
            valid_transactions,
            expenses,
            opening.data,
            closing_stock,
            days_in_period=self.days_in_period,
        )

        if reset:
            cleared = self.store.delete_for_period(business_id, MONTHLY, period.start)
            if not cleared.ok:
                return MetricsRunResult(error=cleared.error, detail=cleared.detail)
            logger.info(
                "Cleared %d stored metric(s) for business %s, month %s",
                cleared.data,
                business_id,
                period.label,
            )

        outcome = sync_metrics(
            self.store,
            business_id,
            period.start,
            metrics,
            max_workers=self.sync_workers,
        )

        if outcome.error is None:
            logger.info(
                "Computed metrics for business %s, month %s", business_id, period.label
            )
        else:
            logger.error(
                "Metrics for business %s, month %s synced with error %s",
                business_id,
                period.label,
                outcome.error,
            )

        return MetricsRunResult(metrics=metrics, error=outcome.error, sync=outcome)

    def _fetch_inputs(
        self, business_id: str, start: date, end: date
    ) -> Result[tuple[list, list, list]]:
        """Fetch transactions, expenses and stock concurrently."""
        with ThreadPoolExecutor(max_workers=3) as pool:
            futures = [
                pool.submit(self.transactions.get_by_interval, business_id, start, end),
                pool.submit(self.expenses.get_by_interval, business_id, start, end),
                pool.submit(self.stock.get_current_items, business_id),
            ]
            results = [f.result() for f in futures]

        for name, result in zip(("transactions", "expenses", "stock"), results):
            if result.error is not None:
                logger.error(
                    "Failed to fetch %s for business %s: %s",
                    name,
                    business_id,
                    result.error,
                )
                return Result.failure(result.error, result.detail)

        transactions, expenses, items = (r.data or [] for r in results)
        return Result.success((list(transactions), list(expenses), list(items)))

    def _opening_stock(self, business_id: str, month_start: date) -> Result[float]:
        """Previous month's closingStock, or 0 when it was never computed."""
        previous = self.store.get_by_name(
            business_id, "closingStock", MONTHLY, previous_month(month_start)
        )
        if previous.error is ErrorCode.NOT_FOUND:
            return Result.success(0.0)
        if previous.error is not None:
            logger.error(
                "Failed to read previous closing stock for business %s: %s",
                business_id,
                previous.error,
            )
            return Result.failure(previous.error, previous.detail)
        return Result.success(_stock_value(previous.data.value))

    # ------------------------------------------------------------------
    # Reads and batch runs
    # ------------------------------------------------------------------

    def get_monthly_metrics(
        self, business_id: str, month: Any
    ) -> Result[dict[str, float]]:
        """
        Return the persisted metrics of a month as a name -> number mapping.

        Values that are not numeric are left out. An invalid month yields
        BAD_REQUEST; store errors are passed through.
        """
        if not business_id:
            return Result.failure(ErrorCode.MISSING_INPUT, "business_id is required")
        try:
            first_day = parse_month(month) if isinstance(month, str) else month
            period = month_period(first_day)
        except (AttributeError, TypeError, ValueError) as exc:
            return Result.failure(ErrorCode.BAD_REQUEST, str(exc))

        stored = self.store.get_monthly(business_id, period.start)
        if not stored.ok:
            return Result.failure(stored.error, stored.detail)

        values: dict[str, float] = {}
        for metric in stored.data or []:
            try:
                values[metric.name] = float(metric.value)
            except (TypeError, ValueError):
                logger.debug("Skipping non-numeric metric %s", metric.name)
        return Result.success(values)

    def run_for_businesses(
        self,
        businesses: Iterable[Business],
        target_month: Any = None,
    ) -> Result[BatchSummary]:
        """
        Run every business for ``target_month``.

        ``target_month`` defaults to the previous calendar month (the
        current month is still open). A business whose run returns no
        metrics counts as an error; a partial sync still counts as a
        success.
        """
        month = target_month or previous_month(self._current_date())

        success_count = 0
        errors: list[tuple[str, str]] = []
        for business in businesses:
            result = self.run(business.id, business.created_at, month)
            if result.metrics is None:
                errors.append((business.id, str(result.error)))
                logger.error(
                    "Scheduled metrics failed for business %s: %s",
                    business.id,
                    result.error,
                )
            else:
                success_count += 1

        logger.info(
            "Scheduled metrics sync finished: %d succeeded, %d failed",
            success_count,
            len(errors),
        )
        return Result.success(
            BatchSummary(
                success_count=success_count,
                error_count=len(errors),
                errors=errors,
            )
        )
