from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from salesboard.api.dependencies import get_performance_service, get_records_service, get_session_context
from salesboard.core.session import Scope, SessionContext
from salesboard.schemas.performance import TargetEntry
from salesboard.schemas.records import TargetWriteRequest, WriteResult
from salesboard.services.performance_service import PerformanceService
from salesboard.services.records_service import RecordsService
from salesboard.shared.response import ResponseEnvelope, build_meta, paginate_list, year_window


router = APIRouter(prefix="/targets", tags=["targets"])


@router.get("")
async def list_targets(
    year: Optional[int] = Query(default=None, ge=2000, le=2100),
    scope: Optional[Scope] = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=50, ge=1, le=500),
    session: SessionContext = Depends(get_session_context),
    service: PerformanceService = Depends(get_performance_service),
) -> ResponseEnvelope[List[TargetEntry]]:
    items, effective = await service.list_targets(session, year=year, scope=scope)
    page_items, pagination = paginate_list(items, page, page_size)
    return ResponseEnvelope(
        data=page_items,
        pagination=pagination,
        meta=build_meta(source="targets", time_window=year_window(year), scope=effective.value),
    )


@router.post("", status_code=201)
async def create_target(
    request: TargetWriteRequest,
    session: SessionContext = Depends(get_session_context),
    service: RecordsService = Depends(get_records_service),
) -> ResponseEnvelope[WriteResult]:
    result = await service.add_target(session, request)
    return ResponseEnvelope(data=result, meta=build_meta(source="targets", time_window="now"))


@router.put("/{target_id}")
async def update_target(
    target_id: str,
    request: TargetWriteRequest,
    session: SessionContext = Depends(get_session_context),
    service: RecordsService = Depends(get_records_service),
) -> ResponseEnvelope[WriteResult]:
    result = await service.update_target(session, target_id, request)
    return ResponseEnvelope(data=result, meta=build_meta(source="targets", time_window="now"))


@router.delete("/{target_id}")
async def delete_target(
    target_id: str,
    session: SessionContext = Depends(get_session_context),
    service: RecordsService = Depends(get_records_service),
) -> ResponseEnvelope[WriteResult]:
    result = await service.delete_target(session, target_id)
    return ResponseEnvelope(data=result, meta=build_meta(source="targets", time_window="now"))
