"""Read-only property snapshot owned by the listing service."""
from __future__ import annotations

import uuid
from decimal import Decimal

from sqlalchemy import Boolean, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from staybook.db.base import Base
from staybook.models.mixins import TimestampMixin


class Property(TimestampMixin, Base):
    """Pricing and occupancy attributes of a bookable property.

    Rows are written by the property collaborator; the booking engine only
    reads them.
    """

    __tablename__ = "properties"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    base_price_per_night: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    cleaning_fee: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    extra_guest_fee: Mapped[Decimal | None] = mapped_column(Numeric(10, 2))
    currency: Mapped[str] = mapped_column(String(10), nullable=False, default="USD")
    guest_count: Mapped[int] = mapped_column(Integer(), nullable=False)
    minimum_stay: Mapped[int] = mapped_column(Integer(), nullable=False, default=1)
    maximum_stay: Mapped[int | None] = mapped_column(Integer())
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
