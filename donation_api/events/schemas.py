"""Events Pydantic v2 schemas — normalized event and response bodies."""

from decimal import Decimal
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class DonationEvent(BaseModel):
    """A donation that passed validation, ready for the sink."""

    model_config = ConfigDict(frozen=True)

    install_id: str
    amount: Decimal
    charity: str
    host: str
    event_time: str

    def as_payload(self) -> Dict[str, Any]:
        """Render back into the wire shape accepted by the validator."""
        return {
            "installId": self.install_id,
            "amount": self.amount,
            "charity": self.charity,
            "host": self.host,
            "timestamp": self.event_time,
        }


class OkResponse(BaseModel):
    ok: bool = True


class ErrorResponse(BaseModel):
    ok: bool = False
    error: str
