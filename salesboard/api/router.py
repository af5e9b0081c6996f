from __future__ import annotations

from fastapi import APIRouter

from salesboard.api.health import router as health_router
from salesboard.api.orders import router as orders_router
from salesboard.api.performance import router as performance_router
from salesboard.api.sales import router as sales_router
from salesboard.api.targets import router as targets_router


api_router = APIRouter()
api_router.include_router(health_router)
api_router.include_router(sales_router)
api_router.include_router(orders_router)
api_router.include_router(targets_router)
api_router.include_router(performance_router)
