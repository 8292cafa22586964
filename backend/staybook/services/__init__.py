"""Service layer exports."""
from staybook.services import (
    availability_service,
    booking_lifecycle_service,
    booking_service,
    event_service,
    pricing_service,
)

__all__ = [
    "availability_service",
    "booking_lifecycle_service",
    "booking_service",
    "event_service",
    "pricing_service",
]
