from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, List, Mapping, Optional

from salesboard.analytics.normalization import (
    ZERO,
    coerce_records,
    first_present,
    parse_decimal,
    resolve_owner_ids,
)
from salesboard.models.records import EntityKind
from salesboard.schemas.performance import EmployeeComparisonRow


logger = logging.getLogger(__name__)

UNKNOWN_EMPLOYEE = "Unknown Employee"
CAP = Decimal("100")

ACTUAL_FIELDS = {
    EntityKind.SALE: ("totalSalesAmount", "salesAmount", "amount"),
    EntityKind.ORDER: ("totalOrderAmount", "orderAmount", "amount"),
}


def parse_percent_label(value: Any) -> Optional[Decimal]:
    if isinstance(value, str):
        value = value.strip().rstrip("%").strip()
    return parse_decimal(value)


def capped_percent(actual: Decimal, target: Decimal) -> Decimal:
    if target <= 0:
        return ZERO
    percent = min(actual / target * CAP, CAP)
    return percent.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _employee_name(raw: Mapping[str, Any]) -> str:
    name = raw.get("employeeName")
    employee = raw.get("employee")
    if not name and isinstance(employee, Mapping):
        name = employee.get("name")
    return name if isinstance(name, str) and name else UNKNOWN_EMPLOYEE


def normalize_comparison_row(raw: Mapping[str, Any], kind: EntityKind) -> EmployeeComparisonRow:
    owners = resolve_owner_ids(raw)
    employee_id = owners[0] if owners else str(first_present(raw, ("_id", "id")) or "")
    actual = parse_decimal(first_present(raw, ACTUAL_FIELDS[kind])) or ZERO
    target = parse_decimal(first_present(raw, ("targetAmount", "target"))) or ZERO
    actual = max(actual, ZERO)
    target = max(target, ZERO)

    server_percent = parse_percent_label(raw.get("performanceAmount"))
    if server_percent is not None:
        percent = min(max(server_percent, ZERO), CAP)
        label = str(raw["performanceAmount"]).strip()
    else:
        percent = capped_percent(actual, target)
        label = f"{percent:.2f}%"

    return EmployeeComparisonRow(
        employee_id=employee_id,
        employee_name=_employee_name(raw),
        actual_amount=actual,
        target_amount=target,
        performance_percent=float(percent),
        performance_label=label,
    )


def normalize_comparison(payload: Any, kind: EntityKind) -> List[EmployeeComparisonRow]:
    """Per-employee actual vs target rows with the percent capped at 100."""
    rows = [normalize_comparison_row(raw, kind) for raw in coerce_records(payload)]
    logger.debug("Normalized %d %s comparison rows", len(rows), kind.value)
    return rows
