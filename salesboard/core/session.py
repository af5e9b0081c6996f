from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


logger = logging.getLogger(__name__)


class Role(str, Enum):
    ADMIN = "Admin"
    TEAM_MANAGER = "Team Manager"
    EMPLOYEE = "Employee"


class Scope(str, Enum):
    SELF = "self"
    TEAM = "team"
    ALL = "all"


_SCOPE_RANK = {Scope.SELF: 0, Scope.TEAM: 1, Scope.ALL: 2}


def parse_role(value: Any) -> Optional[Role]:
    if not isinstance(value, str):
        return None
    normalized = value.strip().lower().replace("_", " ").replace("-", " ")
    if normalized == "admin":
        return Role.ADMIN
    if normalized in {"team manager", "manager"}:
        return Role.TEAM_MANAGER
    if normalized == "employee":
        return Role.EMPLOYEE
    return None


def scope_for_role(role: Optional[Role]) -> Scope:
    if role == Role.ADMIN:
        return Scope.ALL
    if role == Role.TEAM_MANAGER:
        return Scope.TEAM
    return Scope.SELF


def narrow_scope(role: Optional[Role], requested: Optional[Scope]) -> Scope:
    allowed = scope_for_role(role)
    if requested is None:
        return allowed
    if _SCOPE_RANK[requested] > _SCOPE_RANK[allowed]:
        return allowed
    return requested


def decode_token_claims(token: str) -> Dict[str, Any]:
    """Read the payload segment of a JWT without verifying it.

    The remote API owns signature checks; the payload is only used to learn
    which user the token was issued to.
    """
    parts = token.split(".")
    if len(parts) < 2 or not parts[1]:
        raise ValueError("Token has no payload segment")
    segment = parts[1]
    padded = segment + "=" * (-len(segment) % 4)
    try:
        raw = base64.urlsafe_b64decode(padded.encode("ascii"))
        claims = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError) as exc:
        raise ValueError("Token payload is not valid base64 JSON") from exc
    if not isinstance(claims, dict):
        raise ValueError("Token payload is not an object")
    return claims


@dataclass
class SessionContext:
    token: Optional[str] = None
    user_id: Optional[str] = None
    role: Optional[Role] = None
    _claims: Optional[Dict[str, Any]] = field(default=None, repr=False)

    @classmethod
    def from_authorization(cls, authorization: Optional[str]) -> "SessionContext":
        if not authorization:
            return cls()
        value = authorization.strip()
        scheme, _, credentials = value.partition(" ")
        if scheme.lower() == "bearer":
            value = credentials.strip()
        return cls(token=value or None)

    @property
    def has_token(self) -> bool:
        return bool(self.token)

    def claims(self) -> Dict[str, Any]:
        if self._claims is None:
            if not self.token:
                raise ValueError("No authentication token")
            self._claims = decode_token_claims(self.token)
        return self._claims

    def resolve_user_id(self) -> Optional[str]:
        if self.user_id:
            return self.user_id
        if not self.token:
            return None
        try:
            claims = self.claims()
        except ValueError as exc:
            logger.warning("Could not decode session token: %s", exc)
            return None
        user_id = claims.get("id") or claims.get("userId") or claims.get("sub")
        if not user_id:
            return None
        # Cached on the session for later fetches.
        self.user_id = str(user_id)
        if self.role is None:
            self.role = parse_role(claims.get("role"))
        return self.user_id

    def resolve_role(self) -> Optional[Role]:
        if self.role is not None or not self.token:
            return self.role
        try:
            claims = self.claims()
        except ValueError:
            return None
        self.role = parse_role(claims.get("role"))
        return self.role

    def auth_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token}",
            "Cache-Control": "no-cache",
        }
