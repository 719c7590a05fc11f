# Inventory Metrics - Monthly financial KPIs engine for inventory businesses
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Synchronization of a computed MetricSet into a MetricStore.

Each cataloged metric is persisted as its own keyed fact
(business, name, "monthly", period) through ``MetricStore.upsert``. The
protocol is best-effort:

- every value goes through ``normalize_metric_value()`` first; values that
  cannot be stored (None, NaN, infinity) are skipped,
- each write is isolated: an error result or an exception for one metric
  is recorded as a failure and does not prevent the other writes,
- writes may run concurrently, but the outcome is only produced once every
  attempted write has finished.

Outcome policy
--------------
- every attempted write succeeded   -> error = None
- some writes failed                -> error = PARTIAL_SUCCESS
- every attempted write failed      -> error = DATABASE_ERROR
- required inputs missing           -> error = MISSING_INPUT (nothing written)
"""

import json
import logging
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from .catalog import METRIC_CATALOG, MetricDescriptor, get_descriptor
from .errors import ErrorCode
from .models import MONTHLY, Metric
from .sources import MetricStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncSuccess:
    """A metric written to the store."""

    metric: str
    data: Optional[Metric]


@dataclass(frozen=True)
class SyncFailure:
    """A metric that could not be written, with the reason."""

    metric: str
    error: Any


@dataclass(frozen=True)
class SyncOutcome:
    """
    Aggregated result of one synchronization.

    ``successful`` and ``failed`` follow the catalog order. ``skipped``
    lists metrics whose value could not be normalized and were therefore
    not attempted.
    """

    successful: list[SyncSuccess] = field(default_factory=list)
    failed: list[SyncFailure] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    error: Optional[ErrorCode] = None

    @property
    def total(self) -> int:
        """Number of attempted writes."""
        return len(self.successful) + len(self.failed)

    @property
    def data(self) -> Optional["SyncOutcome"]:
        """The outcome itself, or None when nothing could be persisted."""
        if self.error in (ErrorCode.DATABASE_ERROR, ErrorCode.MISSING_INPUT):
            return None
        return self


def normalize_metric_value(value: Any) -> Optional[str]:
    """
    Convert a metric value into its stored string form.

    Returns None when the value must not be stored (None, NaN, infinity).

    - bool            -> "true" / "false"
    - int             -> decimal string ("12")
    - float / Decimal -> plain decimal string without exponent ("1000",
                         "0.67")
    - str             -> unchanged
    - anything else   -> JSON
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, (float, Decimal)):
        number = Decimal(str(value)) if isinstance(value, float) else value
        if not number.is_finite():
            return None
        if number == 0:
            return "0"
        return format(number.normalize(), "f")
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, default=str, sort_keys=True)
    except (TypeError, ValueError):
        return None


def _descriptors_for(metrics: Mapping[str, Any]) -> list[MetricDescriptor]:
    """
    Descriptors of the metrics present in ``metrics``.

    Cataloged metrics come first, in catalog order. Names unknown to the
    catalog (plain mappings built by callers) follow in mapping order; the
    data-quality report is never a metric.
    """
    descriptors = [d for d in METRIC_CATALOG if d.name in metrics]
    for name in metrics:
        if name == "dataQuality" or get_descriptor(name) is not None:
            continue
        descriptors.append(MetricDescriptor(name=str(name), label=str(name), unit=""))
    return descriptors


def _write_one(
    store: MetricStore,
    business_id: str,
    period: date,
    descriptor: MetricDescriptor,
    value: str,
) -> tuple[Optional[SyncSuccess], Optional[SyncFailure]]:
    metric = Metric(
        business_id=business_id,
        name=descriptor.name,
        period_type=MONTHLY,
        period=period,
        value=value,
    )
    try:
        result = store.upsert(metric)
        error, data = result.error, result.data
    except Exception as exc:  # noqa: BLE001
        logger.error("Exception syncing metric %s: %s", descriptor.name, exc)
        return None, SyncFailure(metric=descriptor.name, error=exc)

    if error is not None:
        logger.error("Failed to sync metric %s: %s", descriptor.name, error)
        return None, SyncFailure(metric=descriptor.name, error=error)

    return SyncSuccess(metric=descriptor.name, data=data), None


def sync_metrics(
    store: MetricStore,
    business_id: str,
    period: date,
    metrics: Optional[Mapping[str, Any]],
    *,
    max_workers: int = 1,
) -> SyncOutcome:
    """
    Persist every cataloged metric of ``metrics`` for a business and month.

    Args:
        store:
            MetricStore receiving one upsert per metric.
        business_id:
            Owner of the metrics.
        period:
            First day of the month the metrics describe.
        metrics:
            MetricSet (or any mapping of metric name -> value).
        max_workers:
            Number of concurrent writes. 1 writes sequentially.

    Returns:
        A SyncOutcome aggregating successes and failures.
    """
    if not business_id or period is None or metrics is None:
        logger.error("Invalid parameters provided for metrics sync")
        return SyncOutcome(error=ErrorCode.MISSING_INPUT)

    pending: list[tuple[MetricDescriptor, str]] = []
    skipped: list[str] = []
    for descriptor in _descriptors_for(metrics):
        stored = normalize_metric_value(descriptor.extract(metrics))
        if stored is None:
            logger.warning("Skipping invalid metric %s", descriptor.name)
            skipped.append(descriptor.name)
            continue
        pending.append((descriptor, stored))

    if max_workers > 1 and len(pending) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as pool:
            futures = [
                pool.submit(_write_one, store, business_id, period, d, v)
                for d, v in pending
            ]
            # Join every write; futures are read in catalog order.
            outcomes = [f.result() for f in futures]
    else:
        outcomes = [_write_one(store, business_id, period, d, v) for d, v in pending]

    successful = [ok for ok, _ in outcomes if ok is not None]
    failed = [ko for _, ko in outcomes if ko is not None]

    error: Optional[ErrorCode]
    if not failed:
        error = None
    elif successful:
        error = ErrorCode.PARTIAL_SUCCESS
    else:
        error = ErrorCode.DATABASE_ERROR

    logger.info(
        "Synced metrics for business %s, period %s: %d ok, %d failed, %d skipped",
        business_id,
        period.isoformat() if isinstance(period, date) else period,
        len(successful),
        len(failed),
        len(skipped),
    )

    return SyncOutcome(
        successful=successful,
        failed=failed,
        skipped=skipped,
        error=error,
    )

