"""Per-date availability ledger rows."""
from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, Date, ForeignKey, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from staybook.db.base import Base
from staybook.models.mixins import TimestampMixin


class AvailabilityRecord(TimestampMixin, Base):
    """Bookability of one property on one calendar date.

    The composite primary key is what makes a claim race-safe: two writers
    inserting the same ``(property_id, date)`` cannot both succeed. A date
    with no row is available.
    """

    __tablename__ = "property_availability"

    property_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("properties.id", ondelete="CASCADE"), primary_key=True
    )
    date: Mapped[date] = mapped_column(Date(), primary_key=True)
    is_available: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_blocked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    price_override: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
