"""Events ORM models: Donation.

SQLAlchemy 2.0 async-compatible models.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from donation_api.common.constants import (
    MAX_CHARITY_LENGTH,
    MAX_HOST_LENGTH,
    MAX_INSTALL_ID_LENGTH,
)
from donation_api.database import Base


class Donation(Base):
    """One donation event reported by an extension install."""

    __tablename__ = "donations"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    install_id: Mapped[str] = mapped_column(
        sa.String(MAX_INSTALL_ID_LENGTH), nullable=False, index=True,
    )
    amount: Mapped[Decimal] = mapped_column(sa.Numeric, nullable=False)
    charity: Mapped[str] = mapped_column(
        sa.String(MAX_CHARITY_LENGTH), nullable=False,
    )
    host: Mapped[str] = mapped_column(sa.String(MAX_HOST_LENGTH), nullable=False)
    # ISO-8601 UTC, e.g. 2023-11-14T22:13:20.000Z
    event_time: Mapped[str] = mapped_column(sa.String(40), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return (
            f"<Donation install={self.install_id} charity={self.charity} "
            f"amount={self.amount} at={self.event_time}>"
        )
