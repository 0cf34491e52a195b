"""Events router — donation telemetry intake from the browser extension.

POST /events/donation runs, in order: shared-secret check, body decode,
rate-limit gate, validation, persistence.
"""

import hmac
import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from donation_api.common.constants import API_SECRET_HEADER
from donation_api.common.exceptions import (
    BadRequestException,
    InvalidFieldException,
    RateLimitedException,
    UnauthorizedException,
)
from donation_api.common.rate_limit import (
    FixedWindowRateLimiter,
    get_rate_limiter,
    rate_limit_key,
)
from donation_api.config import Settings
from donation_api.database import get_db
from donation_api.events.schemas import ErrorResponse, OkResponse
from donation_api.events.service import DonationService
from donation_api.events.validation import Rejected, validate_donation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["events"])


# ── Dependencies ─────────────────────────────────────────────────────

async def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def require_api_secret(
    request: Request,
    settings: Settings = Depends(get_settings),
) -> None:
    """Reject the request unless it carries the configured shared secret."""
    if not settings.REQUIRE_API_SECRET:
        return
    provided = request.headers.get(API_SECRET_HEADER, "")
    if not hmac.compare_digest(provided.encode(), settings.API_SECRET.encode()):
        logger.warning("Rejected donation event with bad %s header", API_SECRET_HEADER)
        raise UnauthorizedException()


async def _read_json(request: Request) -> Any:
    body = await request.body()
    if not body.strip():
        return {}
    try:
        return json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise BadRequestException() from exc


# ── POST /events/donation ────────────────────────────────────────────

@router.post(
    "/donation",
    response_model=OkResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
    dependencies=[Depends(require_api_secret)],
)
async def receive_donation(
    request: Request,
    limiter: FixedWindowRateLimiter = Depends(get_rate_limiter),
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_db),
):
    """Accept one donation event and store it."""
    payload = await _read_json(request)

    key = rate_limit_key(payload, request)
    decision = limiter.check(key)
    if not decision.allowed:
        logger.info("Rate limited %s", key)
        raise RateLimitedException(decision.retry_after_ms)

    result = validate_donation(payload)
    if isinstance(result, Rejected):
        logger.info("Rejected donation event from %s: %s", key, result.failure.value)
        raise InvalidFieldException(result.failure)

    await DonationService.record(db, result.value, timeout=settings.DB_TIMEOUT_SECONDS)
    return OkResponse()
