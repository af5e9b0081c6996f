from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import Field

from salesboard.models.records import EntityKind, TargetType
from salesboard.shared.base import Amount, BaseSchema


class PerformanceMode(str, Enum):
    RAW = "raw"
    CAPPED = "capped"


class SaleEntry(BaseSchema):
    id: str
    legacy_id: Optional[str] = Field(default=None, alias="_id")
    client_id: str = ""
    client_name: str
    sales_amount: Amount
    amount: Amount
    sales_qty: int
    qty: int
    date: datetime
    employee_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class OrderEntry(BaseSchema):
    id: str
    legacy_id: Optional[str] = Field(default=None, alias="_id")
    client_id: str = ""
    client_name: str
    order_amount: Amount
    amount: Amount
    order_qty: int
    qty: int
    sourcing_cost: Amount = Decimal("0")
    date: datetime
    employee_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TargetEntry(BaseSchema):
    id: str
    employee_id: str
    employee_name: Optional[str] = None
    target_type: TargetType
    target_amount: Amount
    target_qty: Amount
    month: int
    year: int


class MonthBucket(BaseSchema):
    month: int = Field(ge=1, le=12)
    year: int
    actual_amount: Amount = Decimal("0")
    actual_qty: int = 0
    target_amount: Amount = Decimal("0")
    target_qty: Amount = Decimal("0")
    performance_percent: int = 0


class PerformanceTotals(BaseSchema):
    actual_amount: Amount
    actual_qty: int
    target_amount: Amount
    target_qty: Amount
    performance_percent: int


class PerformanceSeries(BaseSchema):
    entity: EntityKind
    year: int
    mode: PerformanceMode
    buckets: List[MonthBucket]
    totals: PerformanceTotals


class EmployeeComparisonRow(BaseSchema):
    employee_id: str
    employee_name: str
    actual_amount: Amount
    target_amount: Amount
    performance_percent: float
    performance_label: str


class EmployeeComparison(BaseSchema):
    entity: EntityKind
    mode: PerformanceMode = PerformanceMode.CAPPED
    rows: List[EmployeeComparisonRow]


class AvailableYears(BaseSchema):
    years: List[int]
