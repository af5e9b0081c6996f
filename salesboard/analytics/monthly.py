from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Mapping, Sequence, Union

from salesboard.analytics.normalization import entry_timestamp, first_present, parse_decimal
from salesboard.models.records import Target, TargetType
from salesboard.schemas.performance import MonthBucket, PerformanceMode, PerformanceTotals


logger = logging.getLogger(__name__)

MONTHS_PER_YEAR = 12
ZERO = Decimal("0")
HUNDRED = Decimal("100")
PERFORMANCE_CAP = 100

Number = Union[Decimal, int, float]


def empty_buckets(year: int) -> List[MonthBucket]:
    return [MonthBucket(month=month, year=year) for month in range(1, MONTHS_PER_YEAR + 1)]


def _entry_amount(entry: Any) -> Decimal:
    if isinstance(entry, Mapping):
        value = parse_decimal(first_present(entry, ("amount", "salesAmount", "orderAmount")))
    else:
        value = parse_decimal(getattr(entry, "amount", None))
    if value is None or value < 0:
        return ZERO
    return value


def _entry_quantity(entry: Any) -> int:
    if isinstance(entry, Mapping):
        value = parse_decimal(first_present(entry, ("qty", "salesQty", "orderQty", "quantity")))
    else:
        raw = getattr(entry, "quantity", None)
        value = parse_decimal(raw if raw is not None else getattr(entry, "qty", None))
    if value is None or value < 0:
        return 0
    return int(value)


def aggregate_by_month(entries: Iterable[Any], year: int) -> List[MonthBucket]:
    """Sum entry amounts and quantities into 12 month buckets for ``year``.

    Accepts normalized entries, wire entries or raw mappings. Entries without
    a parsable date are skipped; entries from other years are ignored.
    """
    buckets = empty_buckets(year)
    skipped = 0
    for entry in entries:
        timestamp = entry_timestamp(entry)
        if timestamp is None:
            skipped += 1
            continue
        if timestamp.year != year:
            continue
        bucket = buckets[timestamp.month - 1]
        bucket.actual_amount += _entry_amount(entry)
        bucket.actual_qty += _entry_quantity(entry)
    if skipped:
        logger.warning("Skipped %d entries without a parsable date while aggregating %d", skipped, year)
    return buckets


def raw_performance(actual: Number, target: Number) -> int:
    target_value = Decimal(str(target))
    if target_value <= 0:
        return 0
    ratio = Decimal(str(actual)) / target_value * HUNDRED
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def capped_performance(actual: Number, target: Number) -> int:
    return min(raw_performance(actual, target), PERFORMANCE_CAP)


def performance_percent(actual: Number, target: Number, mode: PerformanceMode = PerformanceMode.RAW) -> int:
    if mode == PerformanceMode.CAPPED:
        return capped_performance(actual, target)
    return raw_performance(actual, target)


def merge_targets(
    buckets: Sequence[MonthBucket],
    targets: Iterable[Target],
    target_type: TargetType,
    year: int,
    mode: PerformanceMode = PerformanceMode.RAW,
) -> List[MonthBucket]:
    """Overlay matching targets onto copies of ``buckets``.

    Targets for the same month are summed. Every returned bucket carries a
    freshly computed ``performance_percent``.
    """
    merged = [bucket.model_copy() for bucket in buckets]
    by_month: Dict[int, MonthBucket] = {bucket.month: bucket for bucket in merged if bucket.year == year}
    for target in targets:
        if target.target_type != target_type or target.year != year:
            continue
        bucket = by_month.get(target.month)
        if bucket is None:
            continue
        bucket.target_amount += target.target_amount
        bucket.target_qty += target.target_qty
    for bucket in merged:
        bucket.performance_percent = performance_percent(bucket.actual_amount, bucket.target_amount, mode)
    return merged


def summarize_buckets(buckets: Sequence[MonthBucket], mode: PerformanceMode = PerformanceMode.RAW) -> PerformanceTotals:
    actual_amount = sum((bucket.actual_amount for bucket in buckets), ZERO)
    target_amount = sum((bucket.target_amount for bucket in buckets), ZERO)
    return PerformanceTotals(
        actual_amount=actual_amount,
        actual_qty=sum(bucket.actual_qty for bucket in buckets),
        target_amount=target_amount,
        target_qty=sum((bucket.target_qty for bucket in buckets), ZERO),
        performance_percent=performance_percent(actual_amount, target_amount, mode),
    )
