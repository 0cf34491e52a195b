"""Enums and limits shared by the validator and the HTTP layer."""

from __future__ import annotations

import enum


# ── Field limits ────────────────────────────────────────────────────

MAX_INSTALL_ID_LENGTH = 200
MAX_CHARITY_LENGTH = 200
MAX_HOST_LENGTH = 300
MAX_AMOUNT = 1000

API_SECRET_HEADER = "x-api-secret"


# ── Validation failures ─────────────────────────────────────────────

class ValidationFailure(str, enum.Enum):
    """Why a donation payload was rejected; the value is the client message."""

    MISSING_OR_INVALID_INSTALL_ID = "installId required"
    MISSING_OR_INVALID_HOST = "host required"
    INVALID_AMOUNT = "amount invalid"
    MISSING_OR_INVALID_CHARITY = "charity required"
    INVALID_TIMESTAMP = "timestamp invalid"

    @property
    def field(self) -> str:
        return self.value.split(" ", 1)[0]
