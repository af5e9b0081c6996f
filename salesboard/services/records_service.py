from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Awaitable, Dict, Optional

import httpx

from salesboard.core.errors import (
    AuthorizationFailure,
    RemoteApiError,
    TransportFailure,
    ValidationFailure,
)
from salesboard.core.session import Role, SessionContext
from salesboard.models.records import EntityKind
from salesboard.repositories.dashboard_repository import DashboardRepository
from salesboard.schemas.records import OrderWriteRequest, SaleWriteRequest, TargetWriteRequest, WriteResult
from salesboard.shared.time import utc_now


logger = logging.getLogger(__name__)


def server_message(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        message = body.get("message") or body.get("error")
        if isinstance(message, str) and message:
            return message
    return None


def map_status_error(exc: httpx.HTTPStatusError, action: str) -> Exception:
    status = exc.response.status_code
    message = server_message(exc.response)
    if status == 400:
        return ValidationFailure(message or "Invalid data")
    if status == 401:
        return AuthorizationFailure()
    if status == 403:
        return AuthorizationFailure(f"You don't have permission to {action}", status_code=403)
    return RemoteApiError(message or f"Failed to {action}", upstream_status=status)


def _record_of(result: Any) -> Optional[Dict[str, Any]]:
    if isinstance(result, dict):
        nested = result.get("data")
        if isinstance(nested, dict):
            return nested
        return result
    return None


def _number(value: Optional[Decimal]) -> float:
    return float(value) if value is not None else 0.0


class RecordsService:
    def __init__(self, repository: DashboardRepository) -> None:
        self.repository = repository

    async def add_sale(self, session: SessionContext, request: SaleWriteRequest) -> WriteResult:
        user_id = self._require_user(session)
        if not request.client_id:
            raise ValidationFailure("Client ID is required")
        payload = self._entry_payload(EntityKind.SALE, request, user_id)
        return await self._write("add sales", self._create_sale(session, payload))

    async def update_sale(self, session: SessionContext, sale_id: str, request: SaleWriteRequest) -> WriteResult:
        user_id = self._require_user(session)
        payload = self._entry_payload(EntityKind.SALE, request, user_id)
        return await self._write(
            "update sales", self.repository.update_entry(EntityKind.SALE, session, sale_id, payload)
        )

    async def delete_sale(self, session: SessionContext, sale_id: str) -> WriteResult:
        self._require_user(session)
        return await self._write("delete sales", self.repository.delete_entry(EntityKind.SALE, session, sale_id))

    async def add_order(self, session: SessionContext, request: OrderWriteRequest) -> WriteResult:
        user_id = self._require_user(session)
        if not request.client_id:
            raise ValidationFailure("Client ID is required")
        payload = self._entry_payload(EntityKind.ORDER, request, user_id)
        return await self._write("add orders", self.repository.create_entry(EntityKind.ORDER, session, payload))

    async def update_order(self, session: SessionContext, order_id: str, request: OrderWriteRequest) -> WriteResult:
        user_id = self._require_user(session)
        payload = self._entry_payload(EntityKind.ORDER, request, user_id)
        return await self._write(
            "update orders", self.repository.update_entry(EntityKind.ORDER, session, order_id, payload)
        )

    async def delete_order(self, session: SessionContext, order_id: str) -> WriteResult:
        self._require_user(session)
        return await self._write("delete orders", self.repository.delete_entry(EntityKind.ORDER, session, order_id))

    async def add_target(self, session: SessionContext, request: TargetWriteRequest) -> WriteResult:
        self._validate_target(request)
        self._require_admin(session, "set targets")
        payload = self._target_payload(request)
        payload["targetQty"] = _number(request.target_qty if request.target_qty is not None else request.target_amount)
        payload["setBy"] = "admin"
        return await self._write("set targets", self.repository.create_target(session, payload))

    async def update_target(self, session: SessionContext, target_id: str, request: TargetWriteRequest) -> WriteResult:
        self._require_admin(session, "update targets")
        payload = self._target_payload(request)
        if request.target_qty is not None:
            payload["targetQty"] = _number(request.target_qty)
        payload["updatedBy"] = "admin"
        return await self._write("update targets", self.repository.update_target(session, target_id, payload))

    async def delete_target(self, session: SessionContext, target_id: str) -> WriteResult:
        self._require_admin(session, "delete targets")
        return await self._write("delete targets", self.repository.delete_target(session, target_id))

    async def _create_sale(self, session: SessionContext, payload: Dict[str, Any]) -> Any:
        try:
            return await self.repository.create_entry(EntityKind.SALE, session, payload)
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code != 404:
                raise
            logger.warning("Sales create endpoint not found; retrying via employee endpoint")
            return await self.repository.create_sale_via_employee_endpoint(session, payload)

    async def _write(self, action: str, call: Awaitable[Any]) -> WriteResult:
        try:
            result = await call
        except httpx.HTTPStatusError as exc:
            logger.error("Remote API rejected request to %s: %s", action, exc.response.status_code)
            raise map_status_error(exc, action) from exc
        except httpx.RequestError as exc:
            logger.error("Could not reach remote API to %s: %s", action, exc)
            raise TransportFailure() from exc
        return WriteResult(success=True, record=_record_of(result))

    def _require_user(self, session: SessionContext) -> str:
        if not session.has_token:
            raise AuthorizationFailure()
        user_id = session.resolve_user_id()
        if not user_id:
            raise AuthorizationFailure()
        return user_id

    def _require_admin(self, session: SessionContext, action: str) -> None:
        self._require_user(session)
        if session.resolve_role() != Role.ADMIN:
            raise AuthorizationFailure(f"Only administrators can {action}", status_code=403)

    def _validate_target(self, request: TargetWriteRequest) -> None:
        if not request.employee_id:
            raise ValidationFailure("Employee ID is required")
        if not request.target_type:
            raise ValidationFailure("Target type is required")
        if request.target_amount is None:
            raise ValidationFailure("Target amount is required")
        if not request.month:
            raise ValidationFailure("Month is required")
        if not request.year:
            raise ValidationFailure("Year is required")

    def _entry_payload(self, kind: EntityKind, request: Any, user_id: str) -> Dict[str, Any]:
        entry_date = request.date or utc_now().date()
        payload: Dict[str, Any] = {
            "clientId": request.client_id,
            "sourcingCost": _number(request.sourcing_cost),
            "date": entry_date.isoformat(),
            "employeeId": user_id,
            "userId": user_id,
            "employee": user_id,
            "createdBy": user_id,
        }
        if kind == EntityKind.SALE:
            payload["salesAmount"] = _number(request.sales_amount)
            payload["salesQty"] = request.sales_qty
        else:
            payload["orderAmount"] = _number(request.order_amount)
            payload["orderQty"] = request.order_qty
        return {key: value for key, value in payload.items() if value is not None}

    def _target_payload(self, request: TargetWriteRequest) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "employeeId": request.employee_id,
            "targetType": request.target_type,
            "targetAmount": _number(request.target_amount) if request.target_amount is not None else None,
            "month": request.month,
            "year": request.year,
        }
        return {key: value for key, value in payload.items() if value is not None}
