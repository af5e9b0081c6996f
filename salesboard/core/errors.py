from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None


class AppError(Exception):
    def __init__(self, code: str, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code


class ValidationFailure(AppError):
    def __init__(self, message: str = "Invalid data") -> None:
        super().__init__(code="validation_failure", message=message, status_code=400)


class AuthorizationFailure(AppError):
    def __init__(
        self,
        message: str = "Authentication error. Please log in again.",
        status_code: int = 401,
    ) -> None:
        code = "not_authorized" if status_code == 403 else "not_authenticated"
        super().__init__(code=code, message=message, status_code=status_code)


class TransportFailure(AppError):
    def __init__(self, message: str = "Could not connect to server") -> None:
        super().__init__(code="transport_failure", message=message, status_code=502)


class RemoteApiError(AppError):
    def __init__(self, message: str, upstream_status: Optional[int] = None) -> None:
        super().__init__(code="remote_api_error", message=message, status_code=502)
        self.upstream_status = upstream_status


class ShapeMismatch(Exception):
    """Raised when a remote payload is neither a list nor an object of records."""


class RecordParseError(ValueError):
    """Raised by strict normalization when a raw record cannot be parsed."""


class ErrorEnvelope(BaseModel):
    error: ErrorDetail


def app_error_handler(_: Request, exc: AppError) -> JSONResponse:
    envelope = ErrorEnvelope(error=ErrorDetail(code=exc.code, message=exc.message))
    return JSONResponse(status_code=exc.status_code, content=envelope.model_dump())


def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    envelope = ErrorEnvelope(
        error=ErrorDetail(
            code="validation_error",
            message="Validation error",
            details={"errors": exc.errors()},
        )
    )
    return JSONResponse(status_code=422, content=envelope.model_dump())
