"""Schema exports."""

from staybook.schemas.availability import (
    AvailabilityRequest,
    AvailabilityResponse,
    DailyAvailability,
    PriceQuote,
    QuoteRequest,
)
from staybook.schemas.booking import (
    BookingCancelRequest,
    BookingConfirmRequest,
    BookingCreate,
    BookingListParams,
    BookingRead,
    BookingUpdate,
    PaymentResult,
)

__all__ = [
    "AvailabilityRequest",
    "AvailabilityResponse",
    "BookingCancelRequest",
    "BookingConfirmRequest",
    "BookingCreate",
    "BookingListParams",
    "BookingRead",
    "BookingUpdate",
    "DailyAvailability",
    "PaymentResult",
    "PriceQuote",
    "QuoteRequest",
]
