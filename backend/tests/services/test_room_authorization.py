"""Tests for event room subscription rules."""

from __future__ import annotations

import uuid
from datetime import date

import pytest

from staybook.core.exceptions import PermissionDenied
from staybook.core.security import Principal, PrincipalRole
from staybook.db.session import get_sessionmaker
from staybook.models import Property
from staybook.security.permissions import authorize_rooms
from staybook.services import booking_service
from staybook.services.event_service import EventNotifier

pytestmark = pytest.mark.asyncio


async def test_booking_rooms_follow_booking_access(
    listing: Property,
    db_url: str,
    guest: Principal,
    owner: Principal,
    notifier: EventNotifier,
) -> None:
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        booking = await booking_service.create_booking(
            session,
            notifier=notifier,
            principal=guest,
            property_id=listing.id,
            check_in_date=date(2030, 6, 1),
            check_out_date=date(2030, 6, 3),
            guest_count=1,
            adults=1,
        )

    room = f"booking_{booking.id}"
    stranger = Principal(user_id=uuid.uuid4(), role=PrincipalRole.GUEST)
    async with sessionmaker() as session:
        assert await authorize_rooms(session, guest, [room]) == {room}
        assert await authorize_rooms(session, owner, [room]) == {room}
        with pytest.raises(PermissionDenied):
            await authorize_rooms(session, stranger, [room])
        with pytest.raises(PermissionDenied):
            await authorize_rooms(session, guest, [f"booking_{uuid.uuid4()}"])


async def test_user_and_property_rooms(
    reset_database: None, db_url: str, guest: Principal, admin: Principal
) -> None:
    property_room = f"property_{uuid.uuid4()}"
    own_room = f"user_{guest.user_id}"
    other_room = f"user_{uuid.uuid4()}"

    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        assert await authorize_rooms(session, guest, [property_room, own_room]) == {
            property_room,
            own_room,
        }
        assert await authorize_rooms(session, admin, [other_room]) == {other_room}
        with pytest.raises(PermissionDenied):
            await authorize_rooms(session, guest, [other_room])
        with pytest.raises(PermissionDenied):
            await authorize_rooms(session, guest, ["lobby"])
        with pytest.raises(PermissionDenied):
            await authorize_rooms(session, guest, [f"invoice_{uuid.uuid4()}"])
