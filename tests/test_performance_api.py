from __future__ import annotations


EMPLOYEE = {"id": "emp-1", "role": "Employee"}
ADMIN = {"id": "admin-1", "role": "Admin"}


def _auth(make_token, claims) -> dict:
    return {"Authorization": f"Bearer {make_token(claims)}"}


def test_monthly_performance_series(client, repository, make_token):
    repository.payloads["sales/mine"] = [{"_id": "s1", "salesAmount": "750", "salesQty": 3, "date": "2024-02-14"}]
    repository.payloads["targets/mine"] = [{"_id": "t1", "targetType": "sale", "targetAmount": 1000, "month": 2, "year": 2024}]

    response = client.get(
        "/api/v1/performance/monthly",
        params={"entity": "sale", "year": 2024},
        headers=_auth(make_token, EMPLOYEE),
    )

    assert response.status_code == 200
    payload = response.json()
    buckets = payload["data"]["buckets"]
    assert len(buckets) == 12
    assert buckets[1]["actualAmount"] == 750.0
    assert buckets[1]["targetAmount"] == 1000.0
    assert buckets[1]["performancePercent"] == 75
    assert payload["data"]["mode"] == "raw"
    assert payload["data"]["totals"]["performancePercent"] == 75
    assert payload["meta"]["scope"] == "self"
    assert payload["meta"]["timeWindow"] == "2024"
    assert payload["meta"]["calculationVersion"] == "v1"


def test_monthly_performance_without_session_is_all_zero(client, repository):
    response = client.get("/api/v1/performance/monthly", params={"entity": "order", "year": 2024})

    assert response.status_code == 200
    buckets = response.json()["data"]["buckets"]
    assert all(bucket["actualAmount"] == 0 and bucket["performancePercent"] == 0 for bucket in buckets)
    assert repository.calls == []


def test_scope_query_cannot_widen_role(client, repository, make_token):
    repository.payloads["orders/mine"] = [{"_id": "o1", "orderAmount": 1, "date": "2024-01-01"}]

    response = client.get(
        "/api/v1/performance/monthly",
        params={"entity": "order", "year": 2024, "scope": "all"},
        headers=_auth(make_token, EMPLOYEE),
    )

    assert response.json()["meta"]["scope"] == "self"
    assert repository.calls[0] == "orders/mine"


def test_available_years(client, repository, make_token):
    repository.payloads["sales"] = [{"_id": "s1", "salesAmount": 1, "date": "2023-03-01"}]
    repository.payloads["orders"] = [{"_id": "o1", "orderAmount": 1, "date": "2024-03-01"}]
    repository.payloads["targets"] = [{"_id": "t1", "targetType": "order", "targetAmount": 1, "month": 1, "year": 2025}]

    response = client.get("/api/v1/performance/years", headers=_auth(make_token, ADMIN))

    assert response.status_code == 200
    assert response.json()["data"]["years"] == [2025, 2024, 2023]
    assert response.json()["meta"]["scope"] == "all"


def test_employee_comparison(client, repository, make_token):
    repository.payloads["orders/comparison"] = {
        "data": [{"employeeId": "e1", "employeeName": "Ana", "totalOrderAmount": 300, "targetAmount": 200}]
    }

    response = client.get(
        "/api/v1/performance/comparison",
        params={"entity": "order", "year": 2024, "month": 5},
        headers=_auth(make_token, ADMIN),
    )

    assert response.status_code == 200
    payload = response.json()
    row = payload["data"]["rows"][0]
    assert row["employeeName"] == "Ana"
    assert row["performancePercent"] == 100.0
    assert payload["data"]["mode"] == "capped"
    assert payload["meta"]["timeWindow"] == "2024-05"


def test_invalid_entity_is_a_validation_error(client):
    response = client.get("/api/v1/performance/monthly", params={"entity": "invoice"})
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "validation_error"
