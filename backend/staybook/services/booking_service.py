"""Booking orchestration: validate, claim, price and persist as one unit."""
from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from datetime import date

from sqlalchemy import Select, asc, desc, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from staybook.core.exceptions import NotFound, ResourceConflict, ValidationError
from staybook.core.security import Principal
from staybook.db.session import unit_of_work
from staybook.models.booking import Booking, BookingStatus, PaymentStatus
from staybook.models.property import Property
from staybook.security.permissions import ensure_booking_access, ensure_can_book_for
from staybook.services import availability_service, event_service, pricing_service
from staybook.services.event_service import EventNotifier
from staybook.services.pricing_service import PriceBreakdown

logger = logging.getLogger(__name__)

MAX_GUEST_COUNT = 100

_SORT_COLUMNS = {
    "created_at": Booking.created_at,
    "check_in_date": Booking.check_in_date,
    "total_price": Booking.total_price,
}


def count_nights(check_in: date, check_out: date) -> int:
    return (check_out - check_in).days


async def _load_property(session: AsyncSession, property_id: uuid.UUID) -> Property:
    listing = await session.get(Property, property_id)
    if listing is None:
        raise NotFound("Property not found", context={"property_id": str(property_id)})
    return listing


def _validate_stay(
    listing: Property,
    *,
    check_in: date,
    check_out: date,
    guest_count: int,
) -> int:
    if check_out <= check_in:
        raise ValidationError("Check-out date must be after check-in date")
    if not listing.is_active:
        raise ValidationError("Property is not accepting bookings")
    if guest_count < 1 or guest_count > MAX_GUEST_COUNT:
        raise ValidationError(f"Guest count must be between 1 and {MAX_GUEST_COUNT}")
    nights = count_nights(check_in, check_out)
    if nights < listing.minimum_stay:
        raise ValidationError(f"Minimum stay is {listing.minimum_stay} nights")
    if listing.maximum_stay and nights > listing.maximum_stay:
        raise ValidationError(f"Maximum stay is {listing.maximum_stay} nights")
    return nights


def _validate_party(*, guest_count: int, adults: int, children: int, infants: int) -> None:
    if adults < 1:
        raise ValidationError("At least one adult is required")
    if children < 0 or infants < 0:
        raise ValidationError("Children and infants cannot be negative")
    if adults + children > guest_count:
        raise ValidationError("Adults and children exceed the guest count")


async def quote_stay(
    session: AsyncSession,
    *,
    property_id: uuid.UUID,
    check_in: date,
    check_out: date,
    guest_count: int,
) -> tuple[PriceBreakdown, bool]:
    """Price a prospective stay without claiming it.

    Returns the breakdown and whether the range is free right now.
    """
    listing = await _load_property(session, property_id)
    nights = _validate_stay(
        listing, check_in=check_in, check_out=check_out, guest_count=guest_count
    )
    breakdown = pricing_service.calculate_price(
        listing, nights=nights, guest_count=guest_count
    )
    available = await availability_service.is_range_free(
        session, property_id=property_id, check_in=check_in, check_out=check_out
    )
    return breakdown, available


async def create_booking(
    session: AsyncSession,
    *,
    notifier: EventNotifier,
    principal: Principal,
    property_id: uuid.UUID,
    check_in_date: date,
    check_out_date: date,
    guest_count: int,
    adults: int,
    children: int = 0,
    infants: int = 0,
    special_requests: str | None = None,
    guest_id: uuid.UUID | None = None,
) -> Booking:
    """Reserve, price and persist a stay.

    Validation and permission checks run before any write. The availability
    check, booking insert and ledger claim then commit together or not at
    all; a lost race on any night surfaces as ``ResourceConflict``.
    """
    guest_id = guest_id or principal.user_id
    ensure_can_book_for(principal, guest_id)
    listing = await _load_property(session, property_id)
    nights = _validate_stay(
        listing,
        check_in=check_in_date,
        check_out=check_out_date,
        guest_count=guest_count,
    )
    _validate_party(
        guest_count=guest_count, adults=adults, children=children, infants=infants
    )

    async with unit_of_work(session):
        free = await availability_service.is_range_free(
            session,
            property_id=property_id,
            check_in=check_in_date,
            check_out=check_out_date,
        )
        if not free:
            raise ResourceConflict(
                "Property is not available for selected dates",
                context={"property_id": str(property_id)},
            )

        breakdown = pricing_service.calculate_price(
            listing, nights=nights, guest_count=guest_count
        )
        booking = Booking(
            listing=listing,
            guest_id=guest_id,
            check_in_date=check_in_date,
            check_out_date=check_out_date,
            guest_count=guest_count,
            adults=adults,
            children=children,
            infants=infants,
            nights=nights,
            base_price=breakdown.base_price,
            cleaning_fee=breakdown.cleaning_fee,
            service_fee=breakdown.service_fee,
            taxes_and_fees=breakdown.taxes_and_fees,
            extra_guest_fee=breakdown.extra_guest_fee,
            total_price=breakdown.total_price,
            currency=breakdown.currency,
            special_requests=special_requests,
            booking_status=BookingStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
        )
        session.add(booking)
        await session.flush()
        await availability_service.claim_range(
            session,
            property_id=property_id,
            check_in=check_in_date,
            check_out=check_out_date,
        )

    logger.info(
        "Booking %s created for property %s (%s to %s, %d nights)",
        booking.id,
        property_id,
        check_in_date,
        check_out_date,
        nights,
    )
    await notifier.emit(
        event_service.booking_created(booking, owner_id=listing.owner_id),
        event_service.availability_updated(
            property_id,
            check_in=check_in_date,
            check_out=check_out_date,
            is_available=False,
        ),
    )
    return booking


async def get_booking(
    session: AsyncSession,
    *,
    principal: Principal,
    booking_id: uuid.UUID,
) -> Booking:
    """Return a booking the caller is allowed to see."""
    booking = await session.get(Booking, booking_id)
    if booking is None:
        raise NotFound("Booking not found", context={"booking_id": str(booking_id)})
    ensure_booking_access(principal, booking)
    return booking


async def list_bookings(
    session: AsyncSession,
    *,
    principal: Principal,
    guest_id: uuid.UUID | None = None,
    property_id: uuid.UUID | None = None,
    booking_status: BookingStatus | None = None,
    payment_status: PaymentStatus | None = None,
    check_in_from: date | None = None,
    check_in_to: date | None = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    skip: int = 0,
    limit: int = 10,
) -> Sequence[Booking]:
    """List bookings visible to the caller, newest first by default."""
    column = _SORT_COLUMNS.get(sort_by)
    if column is None:
        raise ValidationError(f"Cannot sort bookings by {sort_by!r}")
    ordering = asc(column) if sort_order == "asc" else desc(column)

    stmt: Select[tuple[Booking]] = select(Booking).join(Booking.listing)
    if not principal.is_admin:
        stmt = stmt.where(
            or_(
                Booking.guest_id == principal.user_id,
                Property.owner_id == principal.user_id,
            )
        )
    if guest_id is not None:
        stmt = stmt.where(Booking.guest_id == guest_id)
    if property_id is not None:
        stmt = stmt.where(Booking.property_id == property_id)
    if booking_status is not None:
        stmt = stmt.where(Booking.booking_status == booking_status)
    if payment_status is not None:
        stmt = stmt.where(Booking.payment_status == payment_status)
    if check_in_from is not None:
        stmt = stmt.where(Booking.check_in_date >= check_in_from)
    if check_in_to is not None:
        stmt = stmt.where(Booking.check_in_date <= check_in_to)

    stmt = stmt.order_by(ordering, Booking.id).offset(skip).limit(limit)
    result = await session.execute(stmt)
    return result.scalars().unique().all()
