from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

import httpx

from salesboard.core.config import Settings, get_settings
from salesboard.core.errors import ShapeMismatch
from salesboard.core.session import SessionContext


class DashboardApiClient:
    """Thin async wrapper over the remote sales/orders/targets API."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.base_url = self.settings.api_base_url
        self._client = httpx.AsyncClient(
            timeout=self.settings.http_timeout_seconds,
            limits=httpx.Limits(max_keepalive_connections=20, max_connections=100),
            transport=transport,
        )

    def url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    async def get_json(
        self,
        path: str,
        session: SessionContext,
        params: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        response = await self._client.get(
            self.url(path), params=dict(params) if params else None, headers=session.auth_headers()
        )
        response.raise_for_status()
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ShapeMismatch(f"Non-JSON response from {path}") from exc

    async def post_json(self, path: str, session: SessionContext, payload: Dict[str, Any]) -> Any:
        headers = {**session.auth_headers(), "Content-Type": "application/json"}
        response = await self._client.post(self.url(path), json=payload, headers=headers)
        response.raise_for_status()
        return _write_result(response)

    async def put_json(self, path: str, session: SessionContext, payload: Dict[str, Any]) -> Any:
        headers = {**session.auth_headers(), "Content-Type": "application/json"}
        response = await self._client.put(self.url(path), json=payload, headers=headers)
        response.raise_for_status()
        return _write_result(response)

    async def delete(self, path: str, session: SessionContext) -> Any:
        response = await self._client.delete(self.url(path), headers=session.auth_headers())
        response.raise_for_status()
        return _write_result(response)

    @property
    def is_closed(self) -> bool:
        return self._client.is_closed

    async def aclose(self) -> None:
        await self._client.aclose()


def _write_result(response: httpx.Response) -> Any:
    if not response.content:
        return {"success": True}
    try:
        return response.json()
    except ValueError:
        # Some write endpoints answer 2xx with a plain-text body.
        return {"success": True}
