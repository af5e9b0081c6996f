from __future__ import annotations

import asyncio
import json
from typing import List

import httpx
import pytest

from salesboard.core.api_client import DashboardApiClient
from salesboard.core.config import Settings
from salesboard.core.errors import ShapeMismatch
from salesboard.core.session import SessionContext
from salesboard.models.records import EntityKind
from salesboard.repositories.dashboard_repository import DashboardRepository


SESSION = SessionContext(token="header.payload.signature")


def _repository(handler, requests: List[httpx.Request]) -> DashboardRepository:
    def record(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return handler(request)

    settings = Settings(API_URL="http://api.test/api/")
    client = DashboardApiClient(settings=settings, transport=httpx.MockTransport(record))
    return DashboardRepository(client=client)


def _run(repository: DashboardRepository, call):
    async def scenario():
        try:
            return await call(repository)
        finally:
            await repository.client.aclose()

    return asyncio.run(scenario())


def test_reads_send_session_headers_and_year():
    requests: List[httpx.Request] = []
    repository = _repository(lambda request: httpx.Response(200, json=[{"_id": "s1"}]), requests)

    payload = _run(repository, lambda repo: repo.list_my_entries(EntityKind.SALE, SESSION, 2024))

    assert payload == [{"_id": "s1"}]
    request = requests[0]
    assert request.method == "GET"
    assert request.url.path == "/api/sales/employee-sales"
    assert request.url.params["year"] == "2024"
    assert request.headers["Authorization"] == "Bearer header.payload.signature"
    assert request.headers["Cache-Control"] == "no-cache"


@pytest.mark.parametrize(
    ("call", "path"),
    [
        (lambda repo: repo.list_team_entries(EntityKind.ORDER, SESSION), "/api/orders/team-members-performance"),
        (lambda repo: repo.list_employee_comparison(EntityKind.SALE, SESSION), "/api/sales/all-employees-performance/monthly"),
        (lambda repo: repo.list_employee_comparison(EntityKind.ORDER, SESSION), "/api/orders/employees-order-performance"),
        (lambda repo: repo.list_my_targets(SESSION), "/api/targets/my-targets"),
        (lambda repo: repo.list_assigned_sales_targets(SESSION), "/api/sales/my-targets"),
        (lambda repo: repo.list_team_member_targets(SESSION), "/api/targets/team-members"),
        (lambda repo: repo.list_team_targets(SESSION), "/api/targets/team"),
        (lambda repo: repo.get_my_team(SESSION), "/api/teams/my-team"),
        (lambda repo: repo.get_team_by_manager(SESSION, "m1"), "/api/teams/manager/m1"),
        (lambda repo: repo.list_employees_by_manager(SESSION, "m1"), "/api/employees/manager/m1"),
    ],
)
def test_read_endpoints(call, path):
    requests: List[httpx.Request] = []
    repository = _repository(lambda request: httpx.Response(200, json=[]), requests)
    _run(repository, call)
    assert requests[0].url.path == path


def test_empty_body_reads_as_none():
    repository = _repository(lambda request: httpx.Response(204), [])
    assert _run(repository, lambda repo: repo.list_targets(SESSION)) is None


def test_non_json_body_is_a_shape_mismatch():
    repository = _repository(lambda request: httpx.Response(200, text="<html>oops</html>"), [])
    with pytest.raises(ShapeMismatch):
        _run(repository, lambda repo: repo.list_entries(EntityKind.SALE, SESSION))


def test_error_status_raises():
    repository = _repository(lambda request: httpx.Response(500, json={"message": "boom"}), [])
    with pytest.raises(httpx.HTTPStatusError):
        _run(repository, lambda repo: repo.list_entries(EntityKind.ORDER, SESSION))


def test_create_posts_json_payload():
    requests: List[httpx.Request] = []
    repository = _repository(lambda request: httpx.Response(201, json={"_id": "new"}), requests)

    result = _run(repository, lambda repo: repo.create_entry(EntityKind.SALE, SESSION, {"clientId": "c1"}))

    assert result == {"_id": "new"}
    assert requests[0].method == "POST"
    assert requests[0].url.path == "/api/sales"
    assert json.loads(requests[0].content) == {"clientId": "c1"}


def test_target_writes_use_team_member_paths():
    requests: List[httpx.Request] = []
    repository = _repository(lambda request: httpx.Response(200, text="Deleted"), requests)

    async def writes(repo: DashboardRepository):
        await repo.update_target(SESSION, "t1", {"targetAmount": 1})
        return await repo.delete_target(SESSION, "t1")

    result = _run(repository, writes)

    assert result == {"success": True}
    assert [(request.method, request.url.path) for request in requests] == [
        ("PUT", "/api/targets/team-members/t1"),
        ("DELETE", "/api/targets/team-members/t1"),
    ]


def test_sale_fallback_create_endpoint():
    requests: List[httpx.Request] = []
    repository = _repository(lambda request: httpx.Response(200, json={"success": True}), requests)
    _run(repository, lambda repo: repo.create_sale_via_employee_endpoint(SESSION, {"clientId": "c1"}))
    assert requests[0].url.path == "/api/sales/employee/create"


def test_urls_are_built_from_configured_roots():
    repository = _repository(lambda request: httpx.Response(200, json=[]), [])
    settings = repository.settings

    assert repository.entity_url(EntityKind.SALE) == settings.api_sales_url == "http://api.test/api/sales"
    assert repository.entity_url(EntityKind.ORDER, "mine") == "http://api.test/api/orders/employee-orders"
    assert repository.targets_url("team") == f"{settings.api_targets_url}/team"
    asyncio.run(repository.client.aclose())
    assert repository.client.is_closed
