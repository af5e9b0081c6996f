from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from salesboard.analytics.normalization import (
    UNKNOWN_CLIENT,
    coerce_records,
    normalize_entries,
    normalize_entry,
    normalize_target,
    normalize_targets,
    parse_target_type,
    period_timestamp,
    resolve_owner_ids,
)
from salesboard.core.errors import RecordParseError, ShapeMismatch
from salesboard.models.records import EntityKind, TargetType
from salesboard.shared.time import parse_timestamp


def test_coerce_records_unwraps_envelopes():
    assert coerce_records([{"_id": "a"}, "junk", {"_id": "b"}]) == [{"_id": "a"}, {"_id": "b"}]
    assert coerce_records({"data": [{"_id": "a"}]}) == [{"_id": "a"}]
    assert coerce_records({"_id": "single"}) == [{"_id": "single"}]
    assert coerce_records({"message": "No sales found"}) == []
    assert coerce_records(None) == []


def test_coerce_records_rejects_scalars():
    with pytest.raises(ShapeMismatch):
        coerce_records("not a payload")


@pytest.mark.parametrize(
    "raw",
    [
        {},
        {"salesAmount": "abc", "date": "not-a-date"},
        {"salesAmount": None, "salesQty": "-4", "clientId": 12},
        {"_id": "x", "client": {"name": ""}, "date": 1e30},
        {"_id": "early", "date": "0001-01-01T00:00:00+01:00"},
        {"_id": "late", "date": "9999-12-31T23:00:00-05:00"},
        {"_id": "year-only", "year": 99999, "month": 2},
    ],
)
def test_normalize_entry_never_raises_in_default_mode(raw):
    entry = normalize_entry(raw, EntityKind.SALE)
    assert entry.amount >= 0
    assert entry.quantity >= 0
    assert entry.client_name
    assert entry.date is not None


def test_normalize_sale_reads_canonical_fields():
    entry = normalize_entry(
        {
            "_id": "s1",
            "salesAmount": "250.5",
            "salesQty": "3",
            "date": "2024-03-05T10:00:00Z",
            "clientId": {"_id": "c1", "name": "Acme"},
            "employee": {"_id": "u1"},
        },
        EntityKind.SALE,
    )
    assert entry.id == "s1"
    assert entry.amount == Decimal("250.5")
    assert entry.quantity == 3
    assert entry.client_name == "Acme"
    assert entry.client_id == "c1"
    assert entry.employee_id == "u1"
    assert (entry.date.year, entry.date.month) == (2024, 3)


def test_normalize_order_uses_order_fields_and_defaults():
    entry = normalize_entry({"orderAmount": -10, "amount": 99, "orderQty": 2, "createdAt": "2023-07-01"}, EntityKind.ORDER)
    assert entry.id.startswith("temp-")
    assert entry.amount == Decimal("0")
    assert entry.quantity == 2
    assert entry.client_name == UNKNOWN_CLIENT
    assert entry.date.year == 2023


def test_strict_mode_rejects_missing_date():
    with pytest.raises(RecordParseError):
        normalize_entry({"_id": "s1", "salesAmount": 5}, EntityKind.SALE, strict=True)


def test_out_of_range_offsets_do_not_break_a_collection():
    payload = [
        {"_id": "early", "salesAmount": 1, "date": "0001-01-01T00:00:00+01:00"},
        {"_id": "late", "salesAmount": 2, "date": "9999-12-31T23:00:00-05:00"},
    ]
    assert [entry.id for entry in normalize_entries(payload, EntityKind.SALE)] == ["early", "late"]
    assert normalize_entries(payload, EntityKind.SALE, strict=True) == []


@pytest.mark.parametrize(
    "value",
    [
        "0001-01-01T00:00:00+01:00",
        "9999-12-31T23:00:00-05:00",
        datetime(1, 1, 1, tzinfo=timezone(timedelta(hours=1))),
    ],
)
def test_parse_timestamp_rejects_offsets_outside_the_calendar(value):
    assert parse_timestamp(value) is None


def test_rows_with_year_and_month_are_dated_to_the_period():
    entry = normalize_entry({"employeeId": "m1", "year": 2022, "month": 3, "totalSalesAmount": 40}, EntityKind.SALE)
    assert entry.date == datetime(2022, 3, 1, tzinfo=timezone.utc)
    assert entry.amount == Decimal("40")
    assert entry.employee_id == "m1"

    strict = normalize_entry({"_id": "r1", "salesAmount": 1, "year": "2021"}, EntityKind.SALE, strict=True)
    assert strict.date == datetime(2021, 1, 1, tzinfo=timezone.utc)


def test_period_timestamp_needs_a_usable_year():
    assert period_timestamp({"month": 3}) is None
    assert period_timestamp({"year": 10000}) is None
    assert period_timestamp({"year": 2020, "month": 13}) == datetime(2020, 1, 1, tzinfo=timezone.utc)


def test_strict_collection_skips_rejected_records():
    payload = [
        {"_id": "ok", "salesAmount": 5, "date": "2024-01-01"},
        {"_id": "bad", "salesAmount": "five", "date": "2024-01-01"},
    ]
    entries = normalize_entries(payload, EntityKind.SALE, strict=True)
    assert [entry.id for entry in entries] == ["ok"]


def test_resolve_owner_ids_checks_every_owner_field():
    assert resolve_owner_ids({"userId": "u1", "employee": {"id": "u2"}}) == ["u1", "u2"]
    assert resolve_owner_ids({"employeeId": 7}) == ["7"]
    assert resolve_owner_ids({"employee": None}) == []


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, TargetType.SALE),
        ("", TargetType.SALE),
        ("Sales", TargetType.SALE),
        ("ORDER", TargetType.ORDER),
        ("monthly-order-target", TargetType.ORDER),
        ("bonus", None),
        (3, None),
    ],
)
def test_parse_target_type(value, expected):
    assert parse_target_type(value) == expected


def test_normalize_target_falls_back_to_date_for_period():
    target = normalize_target({"_id": "t1", "type": "order", "amount": "400", "date": "2024-05-20"})
    assert target is not None
    assert target.target_type == TargetType.ORDER
    assert target.target_amount == Decimal("400")
    assert target.target_qty == Decimal("0")
    assert (target.month, target.year) == (5, 2024)


def test_normalize_targets_drops_unusable_records():
    payload = [
        {"_id": "keep", "targetType": "sale", "targetAmount": 100, "month": 2, "year": 2024},
        {"_id": "bad-type", "targetType": "bonus", "targetAmount": 100, "month": 2, "year": 2024},
        {"_id": "bad-month", "targetType": "sale", "targetAmount": 100, "month": 13, "year": 2024},
    ]
    assert [target.id for target in normalize_targets(payload)] == ["keep"]


def test_strict_target_requires_type():
    with pytest.raises(RecordParseError):
        normalize_target({"_id": "t1", "targetAmount": 1, "month": 1, "year": 2024}, strict=True)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ({"client": {"name": "Initech"}}, "Initech"),
        ({"client": "Globex"}, "Globex"),
        ({"clientName": "  ", "clientId": {"_id": "c2", "name": "Umbrella"}}, "Umbrella"),
        ({"clientId": "c3"}, UNKNOWN_CLIENT),
    ],
)
def test_client_name_shapes(raw, expected):
    assert normalize_entry(raw, EntityKind.SALE).client_name == expected
