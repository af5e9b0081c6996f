from __future__ import annotations

import base64
import json
from typing import Any, Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

from salesboard.api.dependencies import get_performance_service, get_records_service
from salesboard.main import create_app
from salesboard.models.records import EntityKind
from salesboard.services.performance_service import PerformanceService
from salesboard.services.records_service import RecordsService


def encode_token(claims: Dict[str, Any]) -> str:
    segment = base64.urlsafe_b64encode(json.dumps(claims).encode("utf-8")).rstrip(b"=").decode("ascii")
    return f"eyJhbGciOiJIUzI1NiJ9.{segment}.signature"


class StubDashboardRepository:
    """In-memory stand-in for the remote API, keyed by endpoint name."""

    def __init__(self) -> None:
        self.payloads: Dict[str, Any] = {}
        self.failures: Dict[str, Exception] = {}
        self.calls: List[str] = []
        self.writes: List[Tuple[str, Optional[str], Optional[Dict[str, Any]]]] = []

    async def _read(self, name: str) -> Any:
        self.calls.append(name)
        if name in self.failures:
            raise self.failures[name]
        return self.payloads.get(name)

    async def _write(self, name: str, record_id: Optional[str] = None, payload: Optional[Dict[str, Any]] = None) -> Any:
        self.calls.append(name)
        self.writes.append((name, record_id, payload))
        if name in self.failures:
            raise self.failures[name]
        return {"data": {"_id": record_id or "new-1", **(payload or {})}}

    async def list_entries(self, kind: EntityKind, session, params=None) -> Any:
        return await self._read(f"{kind.value}s")

    async def list_my_entries(self, kind: EntityKind, session, year=None) -> Any:
        return await self._read(f"{kind.value}s/mine")

    async def list_team_entries(self, kind: EntityKind, session, params=None) -> Any:
        return await self._read(f"{kind.value}s/team")

    async def list_employee_comparison(self, kind: EntityKind, session, params=None) -> Any:
        return await self._read(f"{kind.value}s/comparison")

    async def list_targets(self, session, params=None) -> Any:
        return await self._read("targets")

    async def list_my_targets(self, session, year=None) -> Any:
        return await self._read("targets/mine")

    async def list_assigned_sales_targets(self, session) -> Any:
        return await self._read("sales/my-targets")

    async def list_team_member_targets(self, session) -> Any:
        return await self._read("targets/team-members")

    async def list_team_targets(self, session) -> Any:
        return await self._read("targets/team")

    async def get_my_team(self, session) -> Any:
        return await self._read("teams/my-team")

    async def get_team_by_manager(self, session, manager_id: str) -> Any:
        return await self._read("teams/manager")

    async def list_employees_by_manager(self, session, manager_id: str) -> Any:
        return await self._read("employees/manager")

    async def create_entry(self, kind: EntityKind, session, payload: Dict[str, Any]) -> Any:
        return await self._write(f"create {kind.value}", payload=payload)

    async def create_sale_via_employee_endpoint(self, session, payload: Dict[str, Any]) -> Any:
        return await self._write("create sale via employee", payload=payload)

    async def update_entry(self, kind: EntityKind, session, entry_id: str, payload: Dict[str, Any]) -> Any:
        return await self._write(f"update {kind.value}", entry_id, payload)

    async def delete_entry(self, kind: EntityKind, session, entry_id: str) -> Any:
        return await self._write(f"delete {kind.value}", entry_id)

    async def create_target(self, session, payload: Dict[str, Any]) -> Any:
        return await self._write("create target", payload=payload)

    async def update_target(self, session, target_id: str, payload: Dict[str, Any]) -> Any:
        return await self._write("update target", target_id, payload)

    async def delete_target(self, session, target_id: str) -> Any:
        return await self._write("delete target", target_id)


@pytest.fixture()
def make_token():
    return encode_token


@pytest.fixture()
def repository() -> StubDashboardRepository:
    return StubDashboardRepository()


@pytest.fixture()
def client(repository: StubDashboardRepository) -> TestClient:
    app = create_app()
    app.dependency_overrides[get_performance_service] = lambda: PerformanceService(repository=repository, strict=False)
    app.dependency_overrides[get_records_service] = lambda: RecordsService(repository=repository)
    return TestClient(app)
