"""Events module — donation telemetry model, validation, persistence and routes."""

from donation_api.events.models import Donation
from donation_api.events.schemas import DonationEvent

__all__ = ["Donation", "DonationEvent"]
