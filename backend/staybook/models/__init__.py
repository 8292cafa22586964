"""ORM models package export."""

from staybook.models.availability import AvailabilityRecord
from staybook.models.booking import Booking, BookingStatus, PaymentStatus
from staybook.models.property import Property

__all__ = [
    "AvailabilityRecord",
    "Booking",
    "BookingStatus",
    "PaymentStatus",
    "Property",
]
