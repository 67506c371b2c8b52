"""Error taxonomy surfaced by services and translated to JSON responses."""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class ApiError(HTTPException):
    """HTTP error with a short machine-readable reason and optional extra fields."""

    status_code_default: int = status.HTTP_400_BAD_REQUEST

    def __init__(
        self,
        detail: str,
        *,
        extra: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=self.status_code_default, detail=detail, headers=headers)
        self.extra = extra or {}


class InvalidPayload(ApiError):
    status_code_default = status.HTTP_400_BAD_REQUEST


class UnsupportedLabel(ApiError):
    status_code_default = status.HTTP_400_BAD_REQUEST


class InvalidOperation(ApiError):
    status_code_default = status.HTTP_400_BAD_REQUEST


class Unauthenticated(ApiError):
    status_code_default = status.HTTP_401_UNAUTHORIZED


class Forbidden(ApiError):
    status_code_default = status.HTTP_403_FORBIDDEN


class NotFound(ApiError):
    status_code_default = status.HTTP_404_NOT_FOUND


class Conflict(ApiError):
    status_code_default = status.HTTP_409_CONFLICT


class RateLimited(ApiError):
    status_code_default = status.HTTP_429_TOO_MANY_REQUESTS


class BatchWriteFailed(ApiError):
    """Raised after a multi-row write was rolled back."""

    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR


# Request paths mapped to the message used when body/query validation fails.
VALIDATION_MESSAGES: dict[str, str] = {
    "/settings/forecast-cutoff": "invalid body",
    "/workbook": "invalid query",
    "/dashboard": "invalid query",
    "/compare": "invalid query",
}
DEFAULT_VALIDATION_MESSAGE = "invalid payload"


def _validation_message(path: str) -> str:
    for suffix, message in VALIDATION_MESSAGES.items():
        if path.endswith(suffix):
            return message
    return DEFAULT_VALIDATION_MESSAGE


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    content: dict[str, Any] = {"error": exc.detail}
    if isinstance(exc, ApiError):
        content.update(exc.extra)
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": _validation_message(request.url.path)},
    )
