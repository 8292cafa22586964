"""Tests for booking creation, lookup and listing."""

from __future__ import annotations

import asyncio
import uuid
from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from staybook.core.exceptions import (
    NotFound,
    PermissionDenied,
    ResourceConflict,
    ValidationError,
)
from staybook.core.security import Principal, PrincipalRole
from staybook.db.session import get_sessionmaker
from staybook.models import AvailabilityRecord, Booking, BookingStatus, PaymentStatus, Property
from staybook.services import booking_service
from staybook.services.event_service import EventNotifier, InMemoryEventSink

pytestmark = pytest.mark.asyncio


async def _book(
    db_url: str,
    notifier: EventNotifier,
    principal: Principal,
    listing: Property,
    check_in: date,
    check_out: date,
    **overrides,
) -> Booking:
    sessionmaker = get_sessionmaker(db_url)
    params = {"guest_count": 2, "adults": 2}
    params.update(overrides)
    async with sessionmaker() as session:
        return await booking_service.create_booking(
            session,
            notifier=notifier,
            principal=principal,
            property_id=listing.id,
            check_in_date=check_in,
            check_out_date=check_out,
            **params,
        )


async def test_create_booking_prices_and_claims(
    listing: Property,
    db_url: str,
    guest: Principal,
    notifier: EventNotifier,
    sink: InMemoryEventSink,
) -> None:
    booking = await _book(
        db_url,
        notifier,
        guest,
        listing,
        date(2030, 6, 1),
        date(2030, 6, 8),
        guest_count=6,
        adults=4,
        children=2,
        special_requests="Late arrival",
    )

    assert booking.booking_status == BookingStatus.PENDING
    assert booking.payment_status == PaymentStatus.PENDING
    assert booking.guest_id == guest.user_id
    assert booking.nights == 7
    assert booking.total_price == Decimal("3729.00")
    assert booking.currency == "USD"
    assert sink.names() == ["booking_created", "availability_updated"]

    created = sink.events[0]
    assert created.payload["total_price"] == "3729.00"
    assert f"user_{listing.owner_id}" in created.rooms
    assert sink.events[1].payload["is_available"] is False

    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        claimed = await session.scalar(
            select(func.count())
            .select_from(AvailabilityRecord)
            .where(
                AvailabilityRecord.property_id == listing.id,
                AvailabilityRecord.is_available.is_(False),
            )
        )
    assert claimed == 7


async def test_overlapping_booking_is_rejected_without_side_effects(
    listing: Property,
    db_url: str,
    guest: Principal,
    notifier: EventNotifier,
    sink: InMemoryEventSink,
) -> None:
    await _book(db_url, notifier, guest, listing, date(2030, 6, 1), date(2030, 6, 5))
    sink.events.clear()

    with pytest.raises(ResourceConflict) as excinfo:
        await _book(db_url, notifier, guest, listing, date(2030, 6, 4), date(2030, 6, 6))
    assert excinfo.value.code == "PROPERTY_NOT_AVAILABLE"
    assert sink.events == []

    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        bookings = await session.scalar(select(func.count()).select_from(Booking))
        night_five = await session.get(
            AvailabilityRecord, {"property_id": listing.id, "date": date(2030, 6, 5)}
        )
    assert bookings == 1
    assert night_five is None


async def test_back_to_back_stays_share_turnover_day(
    listing: Property, db_url: str, guest: Principal, notifier: EventNotifier
) -> None:
    await _book(db_url, notifier, guest, listing, date(2030, 6, 1), date(2030, 6, 5))
    second = await _book(
        db_url, notifier, guest, listing, date(2030, 6, 5), date(2030, 6, 7)
    )
    assert second.nights == 2


async def test_concurrent_overlapping_requests_admit_exactly_one(
    listing: Property, db_url: str, notifier: EventNotifier
) -> None:
    guests = [Principal(user_id=uuid.uuid4(), role=PrincipalRole.GUEST) for _ in range(5)]

    results = await asyncio.gather(
        *(
            _book(db_url, notifier, principal, listing, date(2030, 7, 1), date(2030, 7, 4))
            for principal in guests
        ),
        return_exceptions=True,
    )

    successes = [result for result in results if isinstance(result, Booking)]
    conflicts = [result for result in results if isinstance(result, ResourceConflict)]
    assert len(successes) == 1
    assert len(conflicts) == len(guests) - 1

    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        bookings = await session.scalar(select(func.count()).select_from(Booking))
        claimed = await session.scalar(
            select(func.count())
            .select_from(AvailabilityRecord)
            .where(AvailabilityRecord.is_available.is_(False))
        )
    assert bookings == 1
    assert claimed == 3


@pytest.mark.parametrize(
    ("check_in", "check_out", "overrides"),
    [
        (date(2030, 6, 5), date(2030, 6, 5), {}),
        (date(2030, 6, 5), date(2030, 6, 3), {}),
        (date(2030, 6, 1), date(2030, 7, 15), {}),
        (date(2030, 6, 1), date(2030, 6, 3), {"adults": 0}),
        (date(2030, 6, 1), date(2030, 6, 3), {"guest_count": 2, "adults": 2, "children": 1}),
        (date(2030, 6, 1), date(2030, 6, 3), {"guest_count": 101, "adults": 2}),
    ],
)
async def test_invalid_requests_are_rejected_before_any_write(
    listing: Property,
    db_url: str,
    guest: Principal,
    notifier: EventNotifier,
    sink: InMemoryEventSink,
    check_in: date,
    check_out: date,
    overrides: dict[str, int],
) -> None:
    with pytest.raises(ValidationError):
        await _book(db_url, notifier, guest, listing, check_in, check_out, **overrides)

    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        assert await session.scalar(select(func.count()).select_from(Booking)) == 0
        assert (
            await session.scalar(select(func.count()).select_from(AvailabilityRecord)) == 0
        )
    assert sink.events == []


async def test_minimum_stay_and_inactive_property(
    listing: Property, db_url: str, guest: Principal, notifier: EventNotifier
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        stored = await session.get(Property, listing.id)
        stored.minimum_stay = 3
        await session.commit()

    with pytest.raises(ValidationError):
        await _book(db_url, notifier, guest, listing, date(2030, 6, 1), date(2030, 6, 3))

    async with sessionmaker() as session:
        stored = await session.get(Property, listing.id)
        stored.is_active = False
        await session.commit()

    with pytest.raises(ValidationError):
        await _book(db_url, notifier, guest, listing, date(2030, 6, 1), date(2030, 6, 5))


async def test_unknown_property_is_not_found(
    reset_database: None, db_url: str, guest: Principal, notifier: EventNotifier
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        with pytest.raises(NotFound):
            await booking_service.create_booking(
                session,
                notifier=notifier,
                principal=guest,
                property_id=uuid.uuid4(),
                check_in_date=date(2030, 6, 1),
                check_out_date=date(2030, 6, 3),
                guest_count=1,
                adults=1,
            )


async def test_guests_cannot_book_for_others_but_admins_can(
    listing: Property,
    db_url: str,
    guest: Principal,
    admin: Principal,
    notifier: EventNotifier,
) -> None:
    other = uuid.uuid4()
    with pytest.raises(PermissionDenied):
        await _book(
            db_url, notifier, guest, listing, date(2030, 6, 1), date(2030, 6, 3), guest_id=other
        )

    booking = await _book(
        db_url, notifier, admin, listing, date(2030, 6, 1), date(2030, 6, 3), guest_id=other
    )
    assert booking.guest_id == other


async def test_get_and_list_respect_visibility(
    listing: Property,
    db_url: str,
    guest: Principal,
    owner: Principal,
    admin: Principal,
    notifier: EventNotifier,
) -> None:
    first = await _book(db_url, notifier, guest, listing, date(2030, 6, 1), date(2030, 6, 3))
    stranger = Principal(user_id=uuid.uuid4(), role=PrincipalRole.GUEST)
    await _book(db_url, notifier, stranger, listing, date(2030, 6, 10), date(2030, 6, 12))

    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        fetched = await booking_service.get_booking(
            session, principal=owner, booking_id=first.id
        )
        assert fetched.id == first.id

        with pytest.raises(PermissionDenied):
            await booking_service.get_booking(
                session, principal=stranger, booking_id=first.id
            )
        with pytest.raises(NotFound):
            await booking_service.get_booking(
                session, principal=admin, booking_id=uuid.uuid4()
            )

        mine = await booking_service.list_bookings(session, principal=guest)
        hosted = await booking_service.list_bookings(
            session, principal=owner, sort_by="check_in_date", sort_order="asc"
        )
        everything = await booking_service.list_bookings(
            session, principal=admin, check_in_from=date(2030, 6, 5)
        )

    assert [booking.id for booking in mine] == [first.id]
    assert [booking.check_in_date for booking in hosted] == [
        date(2030, 6, 1),
        date(2030, 6, 10),
    ]
    assert [booking.check_in_date for booking in everything] == [date(2030, 6, 10)]


async def test_quote_reports_price_and_availability(
    listing: Property, db_url: str, guest: Principal, notifier: EventNotifier
) -> None:
    await _book(db_url, notifier, guest, listing, date(2030, 6, 3), date(2030, 6, 5))

    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        breakdown, available = await booking_service.quote_stay(
            session,
            property_id=listing.id,
            check_in=date(2030, 6, 1),
            check_out=date(2030, 6, 8),
            guest_count=6,
        )
    assert breakdown.total_price == Decimal("3729.00")
    assert available is False
