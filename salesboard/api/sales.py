from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from salesboard.api.dependencies import get_performance_service, get_records_service, get_session_context
from salesboard.core.session import Scope, SessionContext
from salesboard.models.records import EntityKind
from salesboard.schemas.performance import SaleEntry
from salesboard.schemas.records import SaleWriteRequest, WriteResult
from salesboard.services.performance_service import PerformanceService
from salesboard.services.records_service import RecordsService
from salesboard.shared.response import ResponseEnvelope, build_meta, paginate_list, year_window


router = APIRouter(prefix="/sales", tags=["sales"])


@router.get("")
async def list_sales(
    year: Optional[int] = Query(default=None, ge=2000, le=2100),
    scope: Optional[Scope] = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1, le=500),
    session: SessionContext = Depends(get_session_context),
    service: PerformanceService = Depends(get_performance_service),
) -> ResponseEnvelope[List[SaleEntry]]:
    items, effective = await service.list_entries(EntityKind.SALE, session, year=year, scope=scope)
    page_items, pagination = paginate_list(items, page, page_size)
    return ResponseEnvelope(
        data=page_items,
        pagination=pagination,
        meta=build_meta(source="sales", time_window=year_window(year), scope=effective.value),
    )


@router.post("", status_code=201)
async def create_sale(
    request: SaleWriteRequest,
    session: SessionContext = Depends(get_session_context),
    service: RecordsService = Depends(get_records_service),
) -> ResponseEnvelope[WriteResult]:
    result = await service.add_sale(session, request)
    return ResponseEnvelope(data=result, meta=build_meta(source="sales", time_window="now"))


@router.put("/{sale_id}")
async def update_sale(
    sale_id: str,
    request: SaleWriteRequest,
    session: SessionContext = Depends(get_session_context),
    service: RecordsService = Depends(get_records_service),
) -> ResponseEnvelope[WriteResult]:
    result = await service.update_sale(session, sale_id, request)
    return ResponseEnvelope(data=result, meta=build_meta(source="sales", time_window="now"))


@router.delete("/{sale_id}")
async def delete_sale(
    sale_id: str,
    session: SessionContext = Depends(get_session_context),
    service: RecordsService = Depends(get_records_service),
) -> ResponseEnvelope[WriteResult]:
    result = await service.delete_sale(session, sale_id)
    return ResponseEnvelope(data=result, meta=build_meta(source="sales", time_window="now"))
