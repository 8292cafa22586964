"""Authorization checks for booking operations."""

from __future__ import annotations

import uuid
from collections.abc import Iterable

from sqlalchemy.ext.asyncio import AsyncSession

from staybook.core.exceptions import PermissionDenied
from staybook.core.security import Principal
from staybook.models.booking import Booking


def ensure_can_book_for(principal: Principal, guest_id: uuid.UUID) -> None:
    """Only admins may create bookings on behalf of another guest."""

    if principal.is_admin or principal.user_id == guest_id:
        return
    raise PermissionDenied("Cannot create a booking for another guest")


def ensure_payment_authority(principal: Principal) -> None:
    """Payment outcomes and refunds are recorded by admins or the payment service."""

    if principal.is_admin:
        return
    raise PermissionDenied("Only the payment service may record payment outcomes")


def ensure_booking_access(principal: Principal, booking: Booking) -> None:
    """Allow the booking's guest, the property's owner, or an admin."""

    if principal.is_admin:
        return
    if principal.user_id == booking.guest_id:
        return
    if booking.listing is not None and principal.user_id == booking.listing.owner_id:
        return
    raise PermissionDenied(
        "Permission denied", context={"booking_id": str(booking.id)}
    )


async def authorize_rooms(
    session: AsyncSession, principal: Principal, rooms: Iterable[str]
) -> set[str]:
    """Return the event rooms the caller may join, or raise PermissionDenied.

    Property rooms carry only availability and are open to any caller. User
    rooms are limited to the caller's own, and booking rooms follow the same
    rules as reading the booking.
    """
    allowed: set[str] = set()
    for room in rooms:
        kind, _, raw_id = room.partition("_")
        try:
            target_id = uuid.UUID(raw_id)
        except ValueError:
            raise PermissionDenied(f"Unknown event room {room!r}") from None

        if kind == "user":
            if target_id != principal.user_id and not principal.is_admin:
                raise PermissionDenied("Cannot subscribe to another user's events")
        elif kind == "booking":
            booking = await session.get(Booking, target_id)
            if booking is None:
                raise PermissionDenied(f"Unknown event room {room!r}")
            ensure_booking_access(principal, booking)
        elif kind != "property":
            raise PermissionDenied(f"Unknown event room {room!r}")
        allowed.add(f"{kind}_{target_id}")
    return allowed


__all__ = [
    "authorize_rooms",
    "ensure_booking_access",
    "ensure_can_book_for",
    "ensure_payment_authority",
]
