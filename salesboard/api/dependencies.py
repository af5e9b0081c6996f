from __future__ import annotations

from functools import lru_cache
from typing import Optional

from fastapi import Header

from salesboard.core.session import SessionContext
from salesboard.repositories.dashboard_repository import DashboardRepository
from salesboard.services.performance_service import PerformanceService
from salesboard.services.records_service import RecordsService


@lru_cache
def get_dashboard_repository() -> DashboardRepository:
    return DashboardRepository()


def get_performance_service() -> PerformanceService:
    return PerformanceService(repository=get_dashboard_repository())


def get_records_service() -> RecordsService:
    return RecordsService(repository=get_dashboard_repository())


def get_session_context(authorization: Optional[str] = Header(default=None)) -> SessionContext:
    return SessionContext.from_authorization(authorization)
