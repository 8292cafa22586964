"""Availability and quote schemas."""

from __future__ import annotations

import uuid
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class DailyAvailability(BaseModel):
    """Ledger state for a single night."""

    date: date
    is_available: bool
    is_blocked: bool
    price_override: Decimal | None = None


class AvailabilityRequest(BaseModel):
    """Half-open calendar range to report on."""

    start_date: date
    end_date: date


class AvailabilityResponse(BaseModel):
    """Availability response payload."""

    property_id: uuid.UUID
    days: list[DailyAvailability]

    model_config = ConfigDict(from_attributes=True)


class QuoteRequest(BaseModel):
    check_in_date: date
    check_out_date: date
    guest_count: int = Field(default=1, ge=1, le=100)


class PriceQuote(BaseModel):
    """Price breakdown for a prospective stay."""

    property_id: uuid.UUID
    check_in_date: date
    check_out_date: date
    guest_count: int
    nights: int
    base_price: Decimal
    cleaning_fee: Decimal
    service_fee: Decimal
    taxes_and_fees: Decimal
    extra_guest_fee: Decimal
    total_price: Decimal
    currency: str
    is_available: bool
