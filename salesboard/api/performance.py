from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from salesboard.api.dependencies import get_performance_service, get_session_context
from salesboard.core.session import Scope, SessionContext
from salesboard.models.records import EntityKind
from salesboard.schemas.performance import AvailableYears, EmployeeComparison, PerformanceSeries
from salesboard.services.performance_service import PerformanceService
from salesboard.shared.response import ResponseEnvelope, build_meta, year_window


router = APIRouter(prefix="/performance", tags=["performance"])


@router.get("/monthly")
async def monthly_performance(
    entity: EntityKind = Query(default=EntityKind.SALE),
    year: Optional[int] = Query(default=None, ge=2000, le=2100),
    scope: Optional[Scope] = Query(default=None),
    session: SessionContext = Depends(get_session_context),
    service: PerformanceService = Depends(get_performance_service),
) -> ResponseEnvelope[PerformanceSeries]:
    series, effective = await service.get_monthly_performance(entity, session, year=year, scope=scope)
    return ResponseEnvelope(
        data=series,
        meta=build_meta(
            source=f"{entity.value}s,targets",
            time_window=year_window(series.year),
            scope=effective.value,
        ),
    )


@router.get("/years")
async def available_years(
    scope: Optional[Scope] = Query(default=None),
    session: SessionContext = Depends(get_session_context),
    service: PerformanceService = Depends(get_performance_service),
) -> ResponseEnvelope[AvailableYears]:
    years, effective = await service.get_available_years(session, scope=scope)
    return ResponseEnvelope(
        data=years,
        meta=build_meta(source="sales,orders,targets", time_window="all", scope=effective.value),
    )


@router.get("/comparison")
async def employee_comparison(
    entity: EntityKind = Query(default=EntityKind.SALE),
    year: Optional[int] = Query(default=None, ge=2000, le=2100),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    session: SessionContext = Depends(get_session_context),
    service: PerformanceService = Depends(get_performance_service),
) -> ResponseEnvelope[EmployeeComparison]:
    comparison = await service.get_employee_comparison(entity, session, year=year, month=month)
    window = f"{year}-{month:02d}" if year and month else year_window(year)
    return ResponseEnvelope(
        data=comparison,
        meta=build_meta(source=f"{entity.value}s/employee-performance", time_window=window),
    )
