"""Booking models."""
from __future__ import annotations

import enum
import uuid
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from staybook.db.base import Base
from staybook.models.mixins import TimestampMixin


class BookingStatus(str, enum.Enum):
    """Lifecycle states for bookings."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class PaymentStatus(str, enum.Enum):
    """Payment states recorded against a booking."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class Booking(TimestampMixin, Base):
    """A guest's claim on a property for a half-open range of nights."""

    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    property_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("properties.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    guest_id: Mapped[uuid.UUID] = mapped_column(nullable=False, index=True)
    check_in_date: Mapped[date] = mapped_column(Date(), nullable=False)
    check_out_date: Mapped[date] = mapped_column(Date(), nullable=False)
    guest_count: Mapped[int] = mapped_column(Integer(), nullable=False)
    adults: Mapped[int] = mapped_column(Integer(), nullable=False)
    children: Mapped[int] = mapped_column(Integer(), nullable=False, default=0)
    infants: Mapped[int] = mapped_column(Integer(), nullable=False, default=0)
    nights: Mapped[int] = mapped_column(Integer(), nullable=False)

    base_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    cleaning_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    service_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    taxes_and_fees: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    extra_guest_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(10), nullable=False)

    special_requests: Mapped[str | None] = mapped_column(Text())
    booking_status: Mapped[BookingStatus] = mapped_column(
        Enum(BookingStatus), default=BookingStatus.PENDING, nullable=False
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False
    )
    cancellation_reason: Mapped[str | None] = mapped_column(Text())
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    confirmed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    check_in_instructions: Mapped[str | None] = mapped_column(Text())
    access_code: Mapped[str | None] = mapped_column(String(50))

    version: Mapped[int] = mapped_column(Integer(), nullable=False)

    __mapper_args__ = {"version_id_col": version}

    listing: Mapped["Property"] = relationship("Property", lazy="joined", innerjoin=True)
