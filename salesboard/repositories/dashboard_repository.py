from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from salesboard.core.api_client import DashboardApiClient
from salesboard.core.session import SessionContext
from salesboard.models.records import EntityKind


# Paths below each entity's root URL.
ENTITY_PATHS: Dict[EntityKind, Dict[str, str]] = {
    EntityKind.SALE: {
        "mine": "employee-sales",
        "team": "team-members-performance",
        "comparison": "all-employees-performance/monthly",
    },
    EntityKind.ORDER: {
        "mine": "employee-orders",
        "team": "team-members-performance",
        "comparison": "employees-order-performance",
    },
}


def _year_params(year: Optional[int]) -> Optional[Dict[str, Any]]:
    return {"year": year} if year else None


class DashboardRepository:
    def __init__(self, client: Optional[DashboardApiClient] = None) -> None:
        self.client = client or DashboardApiClient()
        self.settings = self.client.settings

    def entity_url(self, kind: EntityKind, endpoint: Optional[str] = None) -> str:
        root = self.settings.api_sales_url if kind == EntityKind.SALE else self.settings.api_orders_url
        return f"{root}/{ENTITY_PATHS[kind][endpoint]}" if endpoint else root

    def targets_url(self, path: str = "") -> str:
        return f"{self.settings.api_targets_url}/{path}" if path else self.settings.api_targets_url

    async def list_entries(
        self, kind: EntityKind, session: SessionContext, params: Optional[Mapping[str, Any]] = None
    ) -> Any:
        return await self.client.get_json(self.entity_url(kind), session, params)

    async def list_my_entries(self, kind: EntityKind, session: SessionContext, year: Optional[int] = None) -> Any:
        return await self.client.get_json(self.entity_url(kind, "mine"), session, _year_params(year))

    async def list_team_entries(
        self, kind: EntityKind, session: SessionContext, params: Optional[Mapping[str, Any]] = None
    ) -> Any:
        return await self.client.get_json(self.entity_url(kind, "team"), session, params)

    async def list_employee_comparison(
        self, kind: EntityKind, session: SessionContext, params: Optional[Mapping[str, Any]] = None
    ) -> Any:
        return await self.client.get_json(self.entity_url(kind, "comparison"), session, params)

    async def list_targets(self, session: SessionContext, params: Optional[Mapping[str, Any]] = None) -> Any:
        return await self.client.get_json(self.targets_url(), session, params)

    async def list_my_targets(self, session: SessionContext, year: Optional[int] = None) -> Any:
        return await self.client.get_json(self.targets_url("my-targets"), session, _year_params(year))

    async def list_assigned_sales_targets(self, session: SessionContext) -> Any:
        return await self.client.get_json(f"{self.settings.api_sales_url}/my-targets", session)

    async def list_team_member_targets(self, session: SessionContext) -> Any:
        return await self.client.get_json(self.targets_url("team-members"), session)

    async def list_team_targets(self, session: SessionContext) -> Any:
        return await self.client.get_json(self.targets_url("team"), session)

    async def get_my_team(self, session: SessionContext) -> Any:
        return await self.client.get_json(f"{self.settings.api_teams_url}/my-team", session)

    async def get_team_by_manager(self, session: SessionContext, manager_id: str) -> Any:
        return await self.client.get_json(f"{self.settings.api_teams_url}/manager/{manager_id}", session)

    async def list_employees_by_manager(self, session: SessionContext, manager_id: str) -> Any:
        return await self.client.get_json(f"employees/manager/{manager_id}", session)

    async def create_entry(self, kind: EntityKind, session: SessionContext, payload: Dict[str, Any]) -> Any:
        return await self.client.post_json(self.entity_url(kind), session, payload)

    async def create_sale_via_employee_endpoint(self, session: SessionContext, payload: Dict[str, Any]) -> Any:
        return await self.client.post_json(f"{self.settings.api_sales_url}/employee/create", session, payload)

    async def update_entry(
        self, kind: EntityKind, session: SessionContext, entry_id: str, payload: Dict[str, Any]
    ) -> Any:
        return await self.client.put_json(f"{self.entity_url(kind)}/{entry_id}", session, payload)

    async def delete_entry(self, kind: EntityKind, session: SessionContext, entry_id: str) -> Any:
        return await self.client.delete(f"{self.entity_url(kind)}/{entry_id}", session)

    async def create_target(self, session: SessionContext, payload: Dict[str, Any]) -> Any:
        return await self.client.post_json(self.targets_url(), session, payload)

    async def update_target(self, session: SessionContext, target_id: str, payload: Dict[str, Any]) -> Any:
        return await self.client.put_json(self.targets_url(f"team-members/{target_id}"), session, payload)

    async def delete_target(self, session: SessionContext, target_id: str) -> Any:
        return await self.client.delete(self.targets_url(f"team-members/{target_id}"), session)
