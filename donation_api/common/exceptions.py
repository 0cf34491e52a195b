"""Custom exceptions and the ``{"ok": false, "error": ...}`` error handlers."""

from __future__ import annotations

import logging
import math
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from donation_api.common.constants import ValidationFailure

logger = logging.getLogger(__name__)


# ── Exception hierarchy ─────────────────────────────────────────────

class AppException(Exception):
    """Base for all application exceptions → ``ok: false`` JSON."""

    def __init__(
        self,
        status_code: int,
        error: str,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        self.status_code = status_code
        self.error = error
        self.headers = headers
        super().__init__(error)


class UnauthorizedException(AppException):
    """401 — shared secret missing or wrong."""

    def __init__(self) -> None:
        super().__init__(status_code=401, error="Unauthorized")


class RateLimitedException(AppException):
    """429 — too many requests for this key in the current window."""

    def __init__(self, retry_after_ms: int = 0) -> None:
        headers = None
        if retry_after_ms > 0:
            headers = {"Retry-After": str(math.ceil(retry_after_ms / 1000))}
        super().__init__(status_code=429, error="Rate limited", headers=headers)
        self.retry_after_ms = retry_after_ms


class BadRequestException(AppException):
    """400 — the request body could not be read."""

    def __init__(self, error: str = "Invalid JSON body") -> None:
        super().__init__(status_code=400, error=error)


class InvalidFieldException(AppException):
    """400 — a donation field failed validation."""

    def __init__(self, failure: ValidationFailure) -> None:
        super().__init__(status_code=400, error=failure.value)
        self.failure = failure


class PersistenceError(AppException):
    """500 — the datastore rejected the write or did not answer in time."""

    def __init__(self, error: str = "DB insert failed") -> None:
        super().__init__(status_code=500, error=error)


# ── FastAPI handlers ────────────────────────────────────────────────

def _error_response(
    status_code: int,
    error: str,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"ok": False, "error": error},
        headers=headers,
    )


async def _handle_app_exception(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    return _error_response(exc.status_code, exc.error, exc.headers)


async def _handle_http_exception(
    request: Request,
    exc: StarletteHTTPException,
) -> JSONResponse:
    return _error_response(
        exc.status_code,
        str(exc.detail),
        getattr(exc, "headers", None),
    )


async def _handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error_response(500, "Server error")


# ── Registration helper (called from main.py) ──────────────────────

def register_exception_handlers(app: FastAPI) -> None:
    """Attach all custom exception handlers to the FastAPI app."""
    app.add_exception_handler(AppException, _handle_app_exception)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, _handle_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _handle_unexpected)
