from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from salesboard.core.errors import RecordParseError, ShapeMismatch
from salesboard.models.records import EntityKind, NormalizedEntry, Target, TargetType
from salesboard.shared.time import parse_month, parse_timestamp, parse_year, utc_now


logger = logging.getLogger(__name__)

UNKNOWN_CLIENT = "Unknown Client"
ZERO = Decimal("0")

AMOUNT_FIELDS: Dict[EntityKind, Tuple[str, ...]] = {
    EntityKind.SALE: ("salesAmount", "amount", "totalSalesAmount"),
    EntityKind.ORDER: ("orderAmount", "amount", "totalOrderAmount"),
}
QUANTITY_FIELDS: Dict[EntityKind, Tuple[str, ...]] = {
    EntityKind.SALE: ("salesQty", "qty", "totalSalesQty"),
    EntityKind.ORDER: ("orderQty", "qty", "totalOrderQty"),
}
DATE_FIELDS = ("date", "createdAt")
COLLECTION_KEYS = ("data", "records", "items", "results")
ERROR_ONLY_KEYS = {"message", "msg", "error", "success"}


def coerce_records(payload: Any) -> List[Dict[str, Any]]:
    """Turn an API payload into a list of record mappings.

    Arrays pass through, ``{"data": [...]}``-style envelopes are unwrapped and
    a bare object is treated as a single record.
    """
    if payload is None:
        return []
    if isinstance(payload, list):
        records = [dict(item) for item in payload if isinstance(item, Mapping)]
        if len(records) != len(payload):
            logger.warning("Dropped %d non-object items from payload", len(payload) - len(records))
        return records
    if isinstance(payload, Mapping):
        for key in COLLECTION_KEYS:
            nested = payload.get(key)
            if isinstance(nested, list):
                return coerce_records(nested)
        if not payload or set(payload.keys()) <= ERROR_ONLY_KEYS:
            return []
        return [dict(payload)]
    raise ShapeMismatch(f"Expected a list or object payload, got {type(payload).__name__}")


def parse_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        parsed = value
    elif isinstance(value, (int, float)):
        parsed = Decimal(str(value))
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            parsed = Decimal(text)
        except InvalidOperation:
            return None
    else:
        return None
    if not parsed.is_finite():
        return None
    return parsed


def first_present(raw: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is None or value == "":
            continue
        return value
    return None


def resolve_record_id(raw: Mapping[str, Any]) -> Optional[str]:
    value = first_present(raw, ("_id", "id"))
    return str(value) if value is not None else None


def synthesize_id() -> str:
    return f"temp-{uuid.uuid4().hex[:7]}"


def _nested_id(value: Any) -> Optional[str]:
    if isinstance(value, Mapping):
        nested = first_present(value, ("_id", "id"))
        return str(nested) if nested is not None else None
    return None


def resolve_owner_ids(raw: Mapping[str, Any]) -> List[str]:
    """Every identifier the record may carry for the user who owns it."""
    owners: List[str] = []
    for key in ("userId", "employeeId", "employee", "user"):
        value = raw.get(key)
        if isinstance(value, (str, int)) and not isinstance(value, bool) and str(value):
            owners.append(str(value))
        else:
            nested = _nested_id(value)
            if nested:
                owners.append(nested)
    return owners


def resolve_client_name(raw: Mapping[str, Any]) -> str:
    name = raw.get("clientName")
    if isinstance(name, str) and name.strip():
        return name
    client = raw.get("client")
    if isinstance(client, Mapping):
        nested = client.get("name")
        if isinstance(nested, str) and nested.strip():
            return nested
    elif isinstance(client, str) and client.strip():
        return client
    client_ref = raw.get("clientId")
    if isinstance(client_ref, Mapping):
        nested = client_ref.get("name")
        if isinstance(nested, str) and nested.strip():
            return nested
    return UNKNOWN_CLIENT


def resolve_client_id(raw: Mapping[str, Any]) -> str:
    client_ref = raw.get("clientId")
    if isinstance(client_ref, (str, int)) and not isinstance(client_ref, bool) and str(client_ref):
        return str(client_ref)
    return _nested_id(client_ref) or _nested_id(raw.get("client")) or ""


def _non_negative_amount(raw: Mapping[str, Any], keys: Sequence[str], strict: bool, label: str) -> Decimal:
    value = first_present(raw, keys)
    parsed = parse_decimal(value)
    if parsed is None:
        if strict:
            raise RecordParseError(f"{label} is missing or not numeric: {value!r}")
        return ZERO
    if parsed < 0:
        if strict:
            raise RecordParseError(f"{label} is negative: {value!r}")
        return ZERO
    return parsed


def _non_negative_int(raw: Mapping[str, Any], keys: Sequence[str], strict: bool, label: str) -> int:
    value = first_present(raw, keys)
    if value is None:
        return 0
    parsed = parse_decimal(value)
    if parsed is None or parsed < 0:
        if strict:
            raise RecordParseError(f"{label} is not a non-negative number: {value!r}")
        return 0
    return int(parsed)


def normalize_entry(raw: Mapping[str, Any], kind: EntityKind, strict: bool = False) -> NormalizedEntry:
    """Canonicalize one raw sale or order.

    In the default mode this never raises: absent or unparsable fields fall
    back to zero, ``"Unknown Client"`` or the current time. Rows without a
    date but with ``year``/``month`` are dated to the first of that month.
    With ``strict`` a :class:`RecordParseError` is raised instead of
    defaulting.
    """
    record_id = resolve_record_id(raw)
    if record_id is None:
        if strict:
            raise RecordParseError("Record has no id")
        record_id = synthesize_id()

    date_value = first_present(raw, DATE_FIELDS)
    timestamp = parse_timestamp(date_value) or period_timestamp(raw)
    if timestamp is None:
        if strict:
            raise RecordParseError(f"Record {record_id} has no parsable date: {date_value!r}")
        timestamp = utc_now()

    owners = resolve_owner_ids(raw)
    return NormalizedEntry(
        id=record_id,
        kind=kind,
        client_name=resolve_client_name(raw),
        client_id=resolve_client_id(raw),
        amount=_non_negative_amount(raw, AMOUNT_FIELDS[kind], strict, "amount"),
        quantity=_non_negative_int(raw, QUANTITY_FIELDS[kind], strict, "quantity"),
        date=timestamp,
        sourcing_cost=parse_decimal(raw.get("sourcingCost")) or ZERO,
        employee_id=owners[0] if owners else None,
        created_at=parse_timestamp(raw.get("createdAt")),
        updated_at=parse_timestamp(raw.get("updatedAt")),
    )


def normalize_entries(payload: Any, kind: EntityKind, strict: bool = False) -> List[NormalizedEntry]:
    try:
        records = coerce_records(payload)
    except ShapeMismatch as exc:
        logger.warning("Ignoring %s payload: %s", kind.value, exc)
        return []
    entries: List[NormalizedEntry] = []
    for raw in records:
        try:
            entries.append(normalize_entry(raw, kind, strict=strict))
        except RecordParseError as exc:
            logger.warning("Rejected %s record: %s", kind.value, exc)
    return entries


def parse_target_type(value: Any) -> Optional[TargetType]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return TargetType.SALE
    if not isinstance(value, str):
        return None
    normalized = value.strip().lower()
    if normalized in {"sale", "sales"}:
        return TargetType.SALE
    if normalized in {"order", "orders"}:
        return TargetType.ORDER
    if "sale" in normalized:
        return TargetType.SALE
    if "order" in normalized:
        return TargetType.ORDER
    return None


def _target_employee(raw: Mapping[str, Any]) -> Tuple[str, Optional[str]]:
    employee = raw.get("employee")
    name = raw.get("employeeName")
    if isinstance(employee, Mapping) and not name:
        name = employee.get("name")
    owners = resolve_owner_ids(raw)
    return (owners[0] if owners else ""), (name if isinstance(name, str) and name else None)


def normalize_target(raw: Mapping[str, Any], strict: bool = False) -> Optional[Target]:
    """Canonicalize one raw target; ``None`` means the record was dropped."""
    record_id = resolve_record_id(raw) or synthesize_id()

    raw_type = raw.get("targetType", raw.get("type"))
    if strict and (raw_type is None or raw_type == ""):
        raise RecordParseError(f"Target {record_id} has no target type")
    target_type = parse_target_type(raw_type)
    if target_type is None:
        if strict:
            raise RecordParseError(f"Target {record_id} has unknown type {raw_type!r}")
        logger.warning("Dropping target %s with unknown type %r", record_id, raw_type)
        return None

    fallback_date = parse_timestamp(raw.get("date"))
    raw_month = raw.get("month")
    if raw_month is None or raw_month == "":
        if fallback_date is not None:
            month: Optional[int] = fallback_date.month
        elif strict:
            raise RecordParseError(f"Target {record_id} has no month")
        else:
            month = utc_now().month
    else:
        month = parse_month(raw_month)
    if month is None:
        if strict:
            raise RecordParseError(f"Target {record_id} has invalid month {raw_month!r}")
        logger.warning("Dropping target %s with invalid month %r", record_id, raw_month)
        return None

    year = parse_year(raw.get("year"))
    if year is None:
        if fallback_date is not None:
            year = fallback_date.year
        elif strict:
            raise RecordParseError(f"Target {record_id} has no year")
        else:
            year = utc_now().year

    employee_id, employee_name = _target_employee(raw)
    return Target(
        id=record_id,
        employee_id=employee_id,
        employee_name=employee_name,
        target_type=target_type,
        target_amount=_non_negative_amount(raw, ("targetAmount", "amount"), strict, "targetAmount"),
        target_qty=_clamp_non_negative(parse_decimal(raw.get("targetQty"))),
        month=month,
        year=year,
    )


def _clamp_non_negative(value: Optional[Decimal]) -> Decimal:
    if value is None or value < 0:
        return ZERO
    return value


def normalize_targets(payload: Any, strict: bool = False) -> List[Target]:
    try:
        records = coerce_records(payload)
    except ShapeMismatch as exc:
        logger.warning("Ignoring target payload: %s", exc)
        return []
    targets: List[Target] = []
    for raw in records:
        try:
            target = normalize_target(raw, strict=strict)
        except RecordParseError as exc:
            logger.warning("Rejected target record: %s", exc)
            continue
        if target is not None:
            targets.append(target)
    return targets


def entry_timestamp(item: Any) -> Optional[datetime]:
    """Timestamp of a normalized entry, wire entry or raw mapping, if any."""
    if isinstance(item, Mapping):
        return parse_timestamp(first_present(item, DATE_FIELDS)) or period_timestamp(item)
    return parse_timestamp(getattr(item, "date", None))


def period_timestamp(raw: Mapping[str, Any]) -> Optional[datetime]:
    """First day (UTC) of the ``year``/``month`` a pre-aggregated row covers."""
    year = parse_year(raw.get("year"))
    if year is None:
        return None
    month = parse_month(raw.get("month")) or 1
    try:
        return datetime(year, month, 1, tzinfo=timezone.utc)
    except ValueError:
        return None
