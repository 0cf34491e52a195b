"""Events service layer — writes validated donations to the datastore."""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from donation_api.common.exceptions import PersistenceError
from donation_api.events.models import Donation
from donation_api.events.schemas import DonationEvent

logger = logging.getLogger(__name__)


class DonationService:
    """Business logic for donation events."""

    @staticmethod
    async def _insert(db: AsyncSession, event: DonationEvent) -> Donation:
        donation = Donation(
            install_id=event.install_id,
            amount=event.amount,
            charity=event.charity,
            host=event.host,
            event_time=event.event_time,
        )
        db.add(donation)
        await db.commit()
        return donation

    @staticmethod
    async def record(
        db: AsyncSession,
        event: DonationEvent,
        timeout: float,
    ) -> Donation:
        """Insert one donation row, committing before returning.

        Raises PersistenceError if the datastore rejects the write or does
        not finish within ``timeout`` seconds. Nothing is retried.
        """
        try:
            return await asyncio.wait_for(
                DonationService._insert(db, event), timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.error(
                "Donation insert timed out after %.1fs (install=%s)",
                timeout, event.install_id,
            )
            await db.rollback()
            raise PersistenceError() from exc
        except SQLAlchemyError as exc:
            logger.exception("Donation insert failed (install=%s)", event.install_id)
            await db.rollback()
            raise PersistenceError() from exc
