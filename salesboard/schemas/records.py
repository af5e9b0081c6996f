from __future__ import annotations

from datetime import date as date_type
from decimal import Decimal
from typing import Any, Dict, Optional

from pydantic import AliasChoices, Field

from salesboard.shared.base import BaseSchema


class SaleWriteRequest(BaseSchema):
    client_id: Optional[str] = None
    sales_amount: Decimal = Field(default=Decimal("0"), ge=0)
    sales_qty: int = Field(default=0, ge=0)
    sourcing_cost: Decimal = Field(default=Decimal("0"), ge=0)
    date: Optional[date_type] = None


class OrderWriteRequest(BaseSchema):
    client_id: Optional[str] = None
    order_amount: Decimal = Field(default=Decimal("0"), ge=0)
    order_qty: int = Field(default=0, ge=0)
    sourcing_cost: Decimal = Field(default=Decimal("0"), ge=0)
    date: Optional[date_type] = None


class TargetWriteRequest(BaseSchema):
    employee_id: Optional[str] = None
    target_type: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("targetType", "target_type", "type")
    )
    target_amount: Optional[Decimal] = Field(
        default=None, ge=0, validation_alias=AliasChoices("targetAmount", "target_amount", "amount")
    )
    target_qty: Optional[Decimal] = Field(default=None, ge=0)
    month: Optional[int] = Field(default=None, ge=1, le=12)
    year: Optional[int] = Field(default=None, ge=2000, le=2100)


class WriteResult(BaseSchema):
    success: bool = True
    record: Optional[Dict[str, Any]] = None
