from __future__ import annotations

from typing import Any, Iterable, Optional, Set

from salesboard.analytics.normalization import entry_timestamp
from salesboard.shared.time import parse_timestamp, parse_year


def entry_year(item: Any) -> Optional[int]:
    timestamp = entry_timestamp(item)
    if timestamp is not None:
        return timestamp.year
    # Pre-aggregated performance rows carry year/month instead of a date.
    if isinstance(item, dict):
        return parse_year(item.get("year"))
    return parse_year(getattr(item, "year", None))


def target_year(item: Any) -> Optional[int]:
    if isinstance(item, dict):
        year = parse_year(item.get("year"))
        if year is None:
            timestamp = parse_timestamp(item.get("date"))
            year = timestamp.year if timestamp else None
        return year
    return parse_year(getattr(item, "year", None))


def years_of(items: Iterable[Any], extractor) -> Set[int]:
    years: Set[int] = set()
    for item in items:
        year = extractor(item)
        if year is not None:
            years.add(year)
    return years


def discover_years(sales: Iterable[Any], orders: Iterable[Any], targets: Iterable[Any]) -> Set[int]:
    return years_of(sales, entry_year) | years_of(orders, entry_year) | years_of(targets, target_year)
