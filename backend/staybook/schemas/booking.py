"""Pydantic schemas for bookings."""
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from staybook.models.booking import BookingStatus, PaymentStatus


class BookingCreate(BaseModel):
    """Payload for reserving a stay."""

    property_id: uuid.UUID
    guest_id: uuid.UUID | None = None
    check_in_date: date
    check_out_date: date
    guest_count: int = Field(ge=1, le=100)
    adults: int = Field(ge=1, le=100)
    children: int = Field(default=0, ge=0)
    infants: int = Field(default=0, ge=0)
    special_requests: str | None = Field(default=None, max_length=1000)


class BookingUpdate(BaseModel):
    """Arrival details a guest or host may edit."""

    check_in_instructions: str | None = None
    access_code: str | None = Field(default=None, max_length=50)


class BookingConfirmRequest(BaseModel):
    check_in_instructions: str | None = None


class BookingCancelRequest(BaseModel):
    cancellation_reason: str | None = Field(default=None, max_length=1000)


class PaymentResult(BaseModel):
    """Outcome of a charge attempt reported by the payment service."""

    succeeded: bool


class BookingListParams(BaseModel):
    """Filters for listing bookings."""

    guest_id: uuid.UUID | None = None
    property_id: uuid.UUID | None = None
    booking_status: BookingStatus | None = None
    payment_status: PaymentStatus | None = None
    check_in_from: date | None = None
    check_in_to: date | None = None
    sort_by: Literal["created_at", "check_in_date", "total_price"] = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"
    limit: int = Field(default=10, ge=1, le=100)
    offset: int = Field(default=0, ge=0)


class BookingRead(BaseModel):
    """Serialized booking representation."""

    id: uuid.UUID
    property_id: uuid.UUID
    guest_id: uuid.UUID
    check_in_date: date
    check_out_date: date
    guest_count: int
    adults: int
    children: int
    infants: int
    nights: int
    base_price: Decimal
    cleaning_fee: Decimal
    service_fee: Decimal
    taxes_and_fees: Decimal
    extra_guest_fee: Decimal
    total_price: Decimal
    currency: str
    special_requests: str | None = None
    booking_status: BookingStatus
    payment_status: PaymentStatus
    cancellation_reason: str | None = None
    cancelled_at: datetime | None = None
    confirmed_at: datetime | None = None
    completed_at: datetime | None = None
    check_in_instructions: str | None = None
    access_code: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
