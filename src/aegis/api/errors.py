"""Error responses for the Aegis API.

Every error is rendered as a Result envelope:

    {"messages": [{"code": ..., "messageType": ..., "text": ..., "timestamp": ...}]}

Domain exceptions raised below the API layer (record store, upstream
clients, invalid coordinates) are translated by the handlers registered in
``register_exception_handlers``.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import Enum
from typing import cast

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.types import ExceptionHandler

from aegis.geo.point import InvalidPointError
from aegis.persistence.store import RecordStoreError
from aegis.upstream.base import UpstreamError

logger = logging.getLogger(__name__)


class MessageType(str, Enum):
    """Type of message in error response."""

    ERROR = "Error"
    WARNING = "Warning"
    INFO = "Info"
    EXCEPTION = "Exception"


class Message(BaseModel):
    """A single error message."""

    model_config = {"extra": "forbid", "populate_by_name": True}

    code: str
    message_type: MessageType = Field(alias="messageType")
    text: str
    timestamp: str | None = None


class Result(BaseModel):
    """Result wrapper for errors."""

    model_config = {"extra": "forbid"}

    messages: list[Message]


def _result(code: str, text: str, message_type: MessageType = MessageType.ERROR) -> Result:
    return Result(
        messages=[
            Message(
                code=code,
                messageType=message_type,
                text=text,
                timestamp=datetime.now(UTC).isoformat(),
            )
        ]
    )


class ApiError(HTTPException):
    """Base exception for API errors."""

    def __init__(
        self,
        status_code: int,
        code: str,
        text: str,
        message_type: MessageType = MessageType.ERROR,
        headers: dict[str, str] | None = None,
    ):
        self.code = code
        self.text = text
        self.message_type = message_type
        super().__init__(status_code=status_code, detail=text, headers=headers)

    def to_result(self) -> Result:
        """Convert to the Result envelope."""
        return _result(self.code, self.text, self.message_type)


class BadRequestError(ApiError):
    """Invalid request (400)."""

    def __init__(self, text: str):
        super().__init__(status_code=400, code="BadRequest", text=text)


class UnauthorizedError(ApiError):
    """Missing or unknown identity (401)."""

    def __init__(self, text: str = "Authentication required"):
        super().__init__(
            status_code=401,
            code="Unauthorized",
            text=text,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenError(ApiError):
    """Authenticated but not allowed (403)."""

    def __init__(self, text: str = "Insufficient permissions"):
        super().__init__(status_code=403, code="Forbidden", text=text)


class NotFoundError(ApiError):
    """Entity not found (404)."""

    def __init__(self, resource_type: str, identifier: str):
        super().__init__(
            status_code=404,
            code="NotFound",
            text=f"{resource_type} with identifier '{identifier}' not found",
        )


class TooManyRequestsError(ApiError):
    """Admission budget exhausted (429)."""

    def __init__(self, text: str, retry_after: int):
        super().__init__(
            status_code=429,
            code="TooManyRequests",
            text=text,
            headers={"Retry-After": str(retry_after)},
        )


class UpstreamUnavailableError(ApiError):
    """An upstream with no alternative failed (502)."""

    def __init__(self, text: str):
        super().__init__(status_code=502, code="UpstreamUnavailable", text=text)


class InternalServerError(ApiError):
    """Internal server error (500)."""

    def __init__(self, text: str = "An unexpected error occurred"):
        super().__init__(
            status_code=500,
            code="InternalServerError",
            text=text,
            message_type=MessageType.EXCEPTION,
        )


def _response(exc: ApiError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_result().model_dump(by_alias=True),
        headers=exc.headers,
    )


async def api_exception_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Exception handler for API errors."""
    return _response(exc)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Request body/query validation failures are client errors (400)."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        text = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        text = "Invalid request"
    return _response(BadRequestError(text))


async def invalid_point_handler(request: Request, exc: InvalidPointError) -> JSONResponse:
    """Missing or out-of-range coordinates (400)."""
    return _response(BadRequestError(str(exc)))


async def upstream_exception_handler(request: Request, exc: UpstreamError) -> JSONResponse:
    """Terminal upstream failure (502)."""
    logger.warning(f"Upstream failure on {request.url.path}: {exc}")
    return _response(UpstreamUnavailableError(str(exc)))


async def record_store_exception_handler(
    request: Request, exc: RecordStoreError
) -> JSONResponse:
    """Persistence failure (500)."""
    logger.error(f"Record store failure on {request.url.path}: {exc}")
    return _response(InternalServerError("Record store operation failed"))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Exception handler for unexpected errors."""
    logger.exception(f"Unhandled error on {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=_result(
            "InternalServerError", "An unexpected error occurred", MessageType.EXCEPTION
        ).model_dump(by_alias=True),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Wire every handler onto the application."""
    app.add_exception_handler(ApiError, cast(ExceptionHandler, api_exception_handler))
    app.add_exception_handler(
        RequestValidationError, cast(ExceptionHandler, validation_exception_handler)
    )
    app.add_exception_handler(InvalidPointError, cast(ExceptionHandler, invalid_point_handler))
    app.add_exception_handler(UpstreamError, cast(ExceptionHandler, upstream_exception_handler))
    app.add_exception_handler(
        RecordStoreError, cast(ExceptionHandler, record_store_exception_handler)
    )
    app.add_exception_handler(Exception, cast(ExceptionHandler, generic_exception_handler))
