"""Donation payload validation.

Each field is parsed by an explicit step that returns ``Ok`` or ``Rejected``
instead of relying on loose coercion: an empty string is not an amount of 0
and ``true`` is not an amount of 1. Fields are checked in a fixed order and
the first failure wins.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Generic, Optional, TypeVar, Union

from dateutil import parser as date_parser

from donation_api.common.constants import (
    MAX_AMOUNT,
    MAX_CHARITY_LENGTH,
    MAX_HOST_LENGTH,
    MAX_INSTALL_ID_LENGTH,
    ValidationFailure,
)
from donation_api.events.schemas import DonationEvent

T = TypeVar("T")

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_NUMERIC_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_DIGITS_RE = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Rejected:
    failure: ValidationFailure


ParseResult = Union[Ok[T], Rejected]


# ── Field parsers ───────────────────────────────────────────────────

def _bounded_string(value: Any, max_length: int) -> bool:
    return isinstance(value, str) and 0 < len(value) <= max_length


def parse_amount(value: Any) -> ParseResult[Decimal]:
    """Parse a donation amount: finite, greater than 0, at most MAX_AMOUNT."""
    rejected = Rejected(ValidationFailure.INVALID_AMOUNT)

    if isinstance(value, bool):
        return rejected
    if isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, float):
        if not math.isfinite(value):
            return rejected
        amount = Decimal(str(value))
    elif isinstance(value, Decimal):
        amount = value
    elif isinstance(value, str):
        text = value.strip()
        if not _NUMERIC_RE.fullmatch(text):
            return rejected
        try:
            amount = Decimal(text)
        except InvalidOperation:
            return rejected
    else:
        return rejected

    if not amount.is_finite() or amount <= 0 or amount > MAX_AMOUNT:
        return rejected
    return Ok(amount)


def _from_epoch_ms(ms: int) -> datetime:
    return EPOCH + timedelta(milliseconds=ms)


def _parse_date_string(text: str, now: datetime) -> datetime:
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    default = now.astimezone(timezone.utc).replace(
        hour=0, minute=0, second=0, microsecond=0, tzinfo=None,
    )
    return date_parser.parse(text, default=default)


def parse_timestamp(value: Any, now: datetime) -> ParseResult[datetime]:
    """Parse an optional event time.

    Numbers and digit-only strings are epoch milliseconds. Any other string
    is a free-form date/time: ISO-8601 first, then dateutil's parser for
    forms like ``Tue, 14 Nov 2023 22:13:20 GMT`` or ``2023/11/14 22:13:20``.
    Naive values are taken as UTC and missing date parts come from ``now``.
    Missing values resolve to ``now``.
    """
    rejected = Rejected(ValidationFailure.INVALID_TIMESTAMP)

    if value is None or value == "":
        return Ok(now)
    if isinstance(value, bool):
        return rejected

    try:
        if isinstance(value, (int, float, Decimal)):
            if isinstance(value, float) and not math.isfinite(value):
                return rejected
            if isinstance(value, Decimal) and not value.is_finite():
                return rejected
            # Fractional milliseconds are truncated toward zero
            return Ok(_from_epoch_ms(int(value)))

        if isinstance(value, str):
            if _DIGITS_RE.fullmatch(value):
                return Ok(_from_epoch_ms(int(value)))
            parsed = _parse_date_string(value.strip(), now)
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=timezone.utc)
            return Ok(parsed.astimezone(timezone.utc))
    except (ValueError, OverflowError):
        return rejected

    return rejected


def to_iso8601(moment: datetime) -> str:
    """UTC ISO-8601 with millisecond precision and a ``Z`` suffix."""
    moment = moment.astimezone(timezone.utc)
    moment = moment.replace(microsecond=moment.microsecond // 1000 * 1000)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ── Payload validation ──────────────────────────────────────────────

def validate_donation(
    payload: Any,
    now: Optional[datetime] = None,
) -> Union[Ok[DonationEvent], Rejected]:
    """Validate a raw request body into a normalized ``DonationEvent``."""
    if not isinstance(payload, dict):
        return Rejected(ValidationFailure.MISSING_OR_INVALID_INSTALL_ID)

    install_id = payload.get("installId")
    if not _bounded_string(install_id, MAX_INSTALL_ID_LENGTH):
        return Rejected(ValidationFailure.MISSING_OR_INVALID_INSTALL_ID)

    host = payload.get("host")
    if not _bounded_string(host, MAX_HOST_LENGTH):
        return Rejected(ValidationFailure.MISSING_OR_INVALID_HOST)

    amount = parse_amount(payload.get("amount"))
    if isinstance(amount, Rejected):
        return amount

    charity = payload.get("charity")
    if not _bounded_string(charity, MAX_CHARITY_LENGTH):
        return Rejected(ValidationFailure.MISSING_OR_INVALID_CHARITY)

    event_time = parse_timestamp(
        payload.get("timestamp"),
        now or datetime.now(timezone.utc),
    )
    if isinstance(event_time, Rejected):
        return event_time

    try:
        normalized_time = to_iso8601(event_time.value)
    except OverflowError:
        return Rejected(ValidationFailure.INVALID_TIMESTAMP)

    return Ok(
        DonationEvent(
            install_id=install_id,
            amount=amount.value,
            charity=charity,
            host=host,
            event_time=normalized_time,
        )
    )
