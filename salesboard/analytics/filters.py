from __future__ import annotations

from typing import Any, Collection, Dict, Iterable, List, Optional, TypeVar

from salesboard.analytics.normalization import entry_timestamp, resolve_owner_ids
from salesboard.models.records import Target


T = TypeVar("T")


def filter_records_by_owner(records: Iterable[Dict[str, Any]], user_ids: Collection[str]) -> List[Dict[str, Any]]:
    wanted = {str(user_id) for user_id in user_ids if user_id}
    if not wanted:
        return []
    return [record for record in records if wanted.intersection(resolve_owner_ids(record))]


def filter_entries_by_year(entries: Iterable[T], year: Optional[int]) -> List[T]:
    if year is None:
        return list(entries)
    kept: List[T] = []
    for entry in entries:
        timestamp = entry_timestamp(entry)
        if timestamp is not None and timestamp.year == year:
            kept.append(entry)
    return kept


def filter_targets_by_year(targets: Iterable[Target], year: Optional[int]) -> List[Target]:
    if year is None:
        return list(targets)
    return [target for target in targets if target.year == year]
