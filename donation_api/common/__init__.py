"""Common module — shared utilities for the Donation Events API."""

from donation_api.common.constants import (
    API_SECRET_HEADER,
    MAX_AMOUNT,
    MAX_CHARITY_LENGTH,
    MAX_HOST_LENGTH,
    MAX_INSTALL_ID_LENGTH,
    ValidationFailure,
)
from donation_api.common.exceptions import (
    AppException,
    BadRequestException,
    InvalidFieldException,
    PersistenceError,
    RateLimitedException,
    UnauthorizedException,
    register_exception_handlers,
)
from donation_api.common.rate_limit import (
    FixedWindowRateLimiter,
    RateLimitDecision,
    RateLimitEntry,
    get_rate_limiter,
    rate_limit_key,
)

__all__ = [
    # Constants / Enums
    "API_SECRET_HEADER",
    "MAX_AMOUNT",
    "MAX_CHARITY_LENGTH",
    "MAX_HOST_LENGTH",
    "MAX_INSTALL_ID_LENGTH",
    "ValidationFailure",
    # Exceptions
    "AppException",
    "BadRequestException",
    "InvalidFieldException",
    "PersistenceError",
    "RateLimitedException",
    "UnauthorizedException",
    "register_exception_handlers",
    # Rate limiting
    "FixedWindowRateLimiter",
    "RateLimitDecision",
    "RateLimitEntry",
    "get_rate_limiter",
    "rate_limit_key",
]
