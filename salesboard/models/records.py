from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class EntityKind(str, Enum):
    SALE = "sale"
    ORDER = "order"


class TargetType(str, Enum):
    SALE = "sale"
    ORDER = "order"

    @classmethod
    def for_entity(cls, kind: EntityKind) -> "TargetType":
        return cls.SALE if kind == EntityKind.SALE else cls.ORDER


class NormalizedEntry(BaseModel):
    id: str
    kind: EntityKind
    client_name: str = "Unknown Client"
    client_id: str = ""
    amount: Decimal = Field(default=Decimal("0"), ge=0)
    quantity: int = Field(default=0, ge=0)
    date: datetime
    sourcing_cost: Decimal = Decimal("0")
    employee_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Target(BaseModel):
    id: str
    employee_id: str = ""
    target_type: TargetType
    target_amount: Decimal = Field(default=Decimal("0"), ge=0)
    target_qty: Decimal = Field(default=Decimal("0"), ge=0)
    month: int = Field(ge=1, le=12)
    year: int = Field(gt=0)
    employee_name: Optional[str] = None
