from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Collection, List, Mapping, Optional, Sequence, Tuple, Union

from salesboard.analytics.comparison import normalize_comparison
from salesboard.analytics.fallback import DataSource, first_non_empty
from salesboard.analytics.filters import filter_entries_by_year, filter_records_by_owner, filter_targets_by_year
from salesboard.analytics.monthly import aggregate_by_month, merge_targets, summarize_buckets
from salesboard.analytics.normalization import coerce_records, first_present, normalize_entries, normalize_targets
from salesboard.analytics.years import discover_years
from salesboard.core.config import get_settings
from salesboard.core.errors import ShapeMismatch
from salesboard.core.session import Scope, SessionContext, narrow_scope
from salesboard.models.records import EntityKind, NormalizedEntry, Target, TargetType
from salesboard.repositories.dashboard_repository import DashboardRepository
from salesboard.schemas.performance import (
    AvailableYears,
    EmployeeComparison,
    EmployeeComparisonRow,
    OrderEntry,
    PerformanceMode,
    PerformanceSeries,
    SaleEntry,
    TargetEntry,
)
from salesboard.shared.time import utc_now


logger = logging.getLogger(__name__)

RawFetch = Callable[[], Awaitable[Any]]
OwnerIds = Callable[[], Awaitable[Collection[str]]]
WireEntry = Union[SaleEntry, OrderEntry]


def to_wire_entry(entry: NormalizedEntry) -> WireEntry:
    if entry.kind == EntityKind.SALE:
        return SaleEntry(
            id=entry.id,
            legacy_id=entry.id,
            client_id=entry.client_id,
            client_name=entry.client_name,
            sales_amount=entry.amount,
            amount=entry.amount,
            sales_qty=entry.quantity,
            qty=entry.quantity,
            date=entry.date,
            employee_id=entry.employee_id,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
        )
    return OrderEntry(
        id=entry.id,
        legacy_id=entry.id,
        client_id=entry.client_id,
        client_name=entry.client_name,
        order_amount=entry.amount,
        amount=entry.amount,
        order_qty=entry.quantity,
        qty=entry.quantity,
        sourcing_cost=entry.sourcing_cost,
        date=entry.date,
        employee_id=entry.employee_id,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
    )


def to_target_entry(target: Target) -> TargetEntry:
    return TargetEntry(
        id=target.id,
        employee_id=target.employee_id,
        employee_name=target.employee_name,
        target_type=target.target_type,
        target_amount=target.target_amount,
        target_qty=target.target_qty,
        month=target.month,
        year=target.year,
    )


def member_ids(payload: Any, keys: Sequence[str]) -> List[str]:
    """Ids of the team members listed in a team or employee payload."""
    if isinstance(payload, Mapping):
        nested = payload.get("data")
        if isinstance(nested, Mapping):
            payload = nested
        members = next((payload[key] for key in keys if isinstance(payload.get(key), list)), None)
        if members is None:
            return []
    elif isinstance(payload, list):
        members = payload
    elif payload is None:
        return []
    else:
        raise ShapeMismatch(f"Expected a team payload, got {type(payload).__name__}")

    ids: List[str] = []
    for member in members:
        if isinstance(member, Mapping):
            value = first_present(member, ("_id", "id"))
            if value is not None:
                ids.append(str(value))
        elif isinstance(member, (str, int)) and not isinstance(member, bool):
            ids.append(str(member))
    return ids


class PerformanceService:
    def __init__(self, repository: DashboardRepository, strict: Optional[bool] = None) -> None:
        self.repository = repository
        self.strict = get_settings().strict_normalization if strict is None else strict

    def effective_scope(self, session: SessionContext, requested: Optional[Scope] = None) -> Scope:
        return narrow_scope(session.resolve_role(), requested)

    async def fetch_entity(
        self,
        kind: EntityKind,
        scope: Scope,
        session: SessionContext,
        year: Optional[int] = None,
    ) -> List[NormalizedEntry]:
        user_id = self._identity(session)
        if user_id is None:
            return []
        sources = self._entity_sources(kind, scope, session, user_id, year)
        return await first_non_empty(sources, label=f"{kind.value}s/{scope.value}")

    async def fetch_targets(
        self,
        scope: Scope,
        session: SessionContext,
        year: Optional[int] = None,
    ) -> List[Target]:
        user_id = self._identity(session)
        if user_id is None:
            return []
        sources = self._target_sources(scope, session, user_id, year)
        return await first_non_empty(sources, label=f"targets/{scope.value}")

    async def resolve_team_members(self, session: SessionContext, manager_id: str) -> List[str]:
        repository = self.repository

        async def from_my_team() -> List[str]:
            return member_ids(await repository.get_my_team(session), ("members",))

        async def from_manager_team() -> List[str]:
            return member_ids(await repository.get_team_by_manager(session, manager_id), ("members", "employees"))

        async def from_manager_employees() -> List[str]:
            return member_ids(await repository.list_employees_by_manager(session, manager_id), ("employees", "data"))

        return await first_non_empty(
            [
                DataSource(name="teams/my-team", fetch=from_my_team),
                DataSource(name="teams/manager", fetch=from_manager_team),
                DataSource(name="employees/manager", fetch=from_manager_employees),
            ],
            label="team members",
        )

    async def list_entries(
        self,
        kind: EntityKind,
        session: SessionContext,
        year: Optional[int] = None,
        scope: Optional[Scope] = None,
    ) -> Tuple[List[WireEntry], Scope]:
        effective = self.effective_scope(session, scope)
        entries = await self.fetch_entity(kind, effective, session, year)
        entries = sorted(entries, key=lambda entry: entry.date, reverse=True)
        return [to_wire_entry(entry) for entry in entries], effective

    async def list_targets(
        self,
        session: SessionContext,
        year: Optional[int] = None,
        scope: Optional[Scope] = None,
    ) -> Tuple[List[TargetEntry], Scope]:
        effective = self.effective_scope(session, scope)
        targets = await self.fetch_targets(effective, session, year)
        targets = sorted(targets, key=lambda target: (target.year, target.month))
        return [to_target_entry(target) for target in targets], effective

    async def get_monthly_performance(
        self,
        kind: EntityKind,
        session: SessionContext,
        year: Optional[int] = None,
        scope: Optional[Scope] = None,
    ) -> Tuple[PerformanceSeries, Scope]:
        effective = self.effective_scope(session, scope)
        series_year = year or utc_now().year
        entries, targets = await asyncio.gather(
            self.fetch_entity(kind, effective, session, series_year),
            self.fetch_targets(effective, session, series_year),
        )
        buckets = aggregate_by_month(entries, series_year)
        merged = merge_targets(buckets, targets, TargetType.for_entity(kind), series_year, PerformanceMode.RAW)
        series = PerformanceSeries(
            entity=kind,
            year=series_year,
            mode=PerformanceMode.RAW,
            buckets=merged,
            totals=summarize_buckets(merged, PerformanceMode.RAW),
        )
        return series, effective

    async def get_available_years(
        self,
        session: SessionContext,
        scope: Optional[Scope] = None,
    ) -> Tuple[AvailableYears, Scope]:
        effective = self.effective_scope(session, scope)
        sales, orders, targets = await asyncio.gather(
            self.fetch_entity(EntityKind.SALE, effective, session),
            self.fetch_entity(EntityKind.ORDER, effective, session),
            self.fetch_targets(effective, session),
        )
        years = sorted(discover_years(sales, orders, targets), reverse=True)
        return AvailableYears(years=years), effective

    async def get_employee_comparison(
        self,
        kind: EntityKind,
        session: SessionContext,
        year: Optional[int] = None,
        month: Optional[int] = None,
    ) -> EmployeeComparison:
        if self._identity(session) is None:
            return EmployeeComparison(entity=kind, rows=[])
        params = {key: value for key, value in (("year", year), ("month", month)) if value}

        async def fetch() -> List[EmployeeComparisonRow]:
            payload = await self.repository.list_employee_comparison(kind, session, params or None)
            return normalize_comparison(payload, kind)

        rows = await first_non_empty(
            [DataSource(name=f"{kind.value}s/employee-performance", fetch=fetch)],
            label=f"{kind.value} comparison",
        )
        return EmployeeComparison(entity=kind, mode=PerformanceMode.CAPPED, rows=rows)

    def _identity(self, session: SessionContext) -> Optional[str]:
        if not session.has_token:
            logger.info("No session token; returning an empty result")
            return None
        user_id = session.resolve_user_id()
        if user_id is None:
            logger.warning("Session token does not identify a user; returning an empty result")
        return user_id

    def _entry_source(
        self,
        name: str,
        kind: EntityKind,
        fetch_raw: RawFetch,
        year: Optional[int],
        owners: Optional[OwnerIds] = None,
    ) -> DataSource[NormalizedEntry]:
        async def fetch() -> List[NormalizedEntry]:
            records = coerce_records(await fetch_raw())
            if owners is not None:
                records = filter_records_by_owner(records, await owners())
            entries = normalize_entries(records, kind, strict=self.strict)
            return filter_entries_by_year(entries, year)

        return DataSource(name=name, fetch=fetch)

    def _target_source(
        self,
        name: str,
        fetch_raw: RawFetch,
        year: Optional[int],
        owners: Optional[OwnerIds] = None,
    ) -> DataSource[Target]:
        async def fetch() -> List[Target]:
            records = coerce_records(await fetch_raw())
            if owners is not None:
                records = filter_records_by_owner(records, await owners())
            return filter_targets_by_year(normalize_targets(records, strict=self.strict), year)

        return DataSource(name=name, fetch=fetch)

    def _owner_filters(self, session: SessionContext, user_id: str) -> Tuple[OwnerIds, OwnerIds]:
        async def own_ids() -> Collection[str]:
            return [user_id]

        async def team_ids() -> Collection[str]:
            return await self.resolve_team_members(session, user_id)

        return own_ids, team_ids

    def _entity_sources(
        self,
        kind: EntityKind,
        scope: Scope,
        session: SessionContext,
        user_id: str,
        year: Optional[int],
    ) -> List[DataSource[NormalizedEntry]]:
        repository = self.repository
        collection = f"{kind.value}s"
        own_ids, team_ids = self._owner_filters(session, user_id)

        def list_all() -> Awaitable[Any]:
            return repository.list_entries(kind, session)

        if scope == Scope.SELF:
            return [
                self._entry_source(
                    f"{collection}/mine", kind, lambda: repository.list_my_entries(kind, session, year), year
                ),
                self._entry_source(f"{collection} by owner", kind, list_all, year, owners=own_ids),
            ]
        if scope == Scope.TEAM:
            return [
                self._entry_source(
                    f"{collection}/team-members-performance",
                    kind,
                    lambda: repository.list_team_entries(kind, session),
                    year,
                ),
                self._entry_source(f"{collection} by team member", kind, list_all, year, owners=team_ids),
            ]
        return [self._entry_source(collection, kind, list_all, year)]

    def _target_sources(
        self,
        scope: Scope,
        session: SessionContext,
        user_id: str,
        year: Optional[int],
    ) -> List[DataSource[Target]]:
        repository = self.repository
        own_ids, _ = self._owner_filters(session, user_id)

        if scope == Scope.SELF:
            return [
                self._target_source("targets/my-targets", lambda: repository.list_my_targets(session, year), year),
                self._target_source("sales/my-targets", lambda: repository.list_assigned_sales_targets(session), year),
                self._target_source("targets by owner", lambda: repository.list_targets(session), year, owners=own_ids),
            ]
        if scope == Scope.TEAM:
            return [
                self._target_source("targets/team-members", lambda: repository.list_team_member_targets(session), year),
                self._target_source("targets/team", lambda: repository.list_team_targets(session), year),
            ]
        return [self._target_source("targets", lambda: repository.list_targets(session), year)]
