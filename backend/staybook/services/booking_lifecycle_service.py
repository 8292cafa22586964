"""Booking lifecycle: the only writer of booking and payment status.

Every transition is checked against a closed table before anything is
mutated, so a rejected transition leaves the booking and the ledger as they
were. Cancellation releases the booking's nights in the same transaction.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from datetime import UTC, date, datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from staybook.core.config import get_settings
from staybook.core.exceptions import IllegalTransition, NotFound
from staybook.core.security import Principal
from staybook.db.session import unit_of_work
from staybook.models.booking import Booking, BookingStatus, PaymentStatus
from staybook.security.permissions import ensure_booking_access, ensure_payment_authority
from staybook.services import availability_service, event_service
from staybook.services.event_service import DomainEvent, EventNotifier

logger = logging.getLogger(__name__)

DEFAULT_CANCELLATION_REASON = "Cancelled by user"

BOOKING_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset(
        {BookingStatus.CANCELLED, BookingStatus.COMPLETED}
    ),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PENDING: frozenset({PaymentStatus.COMPLETED, PaymentStatus.FAILED}),
    PaymentStatus.COMPLETED: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.FAILED: frozenset(),
    PaymentStatus.REFUNDED: frozenset(),
}

_TERMINAL_BOOKING_STATUSES = frozenset(
    status for status, targets in BOOKING_TRANSITIONS.items() if not targets
)


def _now() -> datetime:
    return datetime.now(UTC)


def check_booking_transition(current: BookingStatus, target: BookingStatus) -> None:
    if target not in BOOKING_TRANSITIONS[current]:
        raise IllegalTransition(
            f"Cannot move booking from {current.value} to {target.value}"
        )


def check_payment_transition(current: PaymentStatus, target: PaymentStatus) -> None:
    if target not in PAYMENT_TRANSITIONS[current]:
        raise IllegalTransition(
            f"Cannot move payment from {current.value} to {target.value}"
        )


async def _load_booking(session: AsyncSession, booking_id: uuid.UUID) -> Booking:
    result = await session.execute(
        select(Booking)
        .where(Booking.id == booking_id)
        .with_for_update(of=Booking)
        .execution_options(populate_existing=True)
    )
    booking = result.scalars().unique().one_or_none()
    if booking is None:
        raise NotFound("Booking not found", context={"booking_id": str(booking_id)})
    return booking


async def _authorized_booking(
    session: AsyncSession,
    booking_id: uuid.UUID,
    principal: Principal | None,
) -> Booking:
    booking = await _load_booking(session, booking_id)
    # A missing principal means a trusted internal caller such as the sweeper.
    if principal is not None:
        ensure_booking_access(principal, booking)
    return booking


def _apply_confirm(booking: Booking, *, check_in_instructions: str | None) -> None:
    booking.booking_status = BookingStatus.CONFIRMED
    booking.confirmed_at = _now()
    if check_in_instructions:
        booking.check_in_instructions = check_in_instructions
    elif not booking.check_in_instructions:
        booking.check_in_instructions = get_settings().default_check_in_instructions


async def confirm(
    session: AsyncSession,
    *,
    notifier: EventNotifier,
    principal: Principal | None,
    booking_id: uuid.UUID,
    check_in_instructions: str | None = None,
) -> Booking:
    """Move a pending booking to confirmed. The ledger is untouched."""
    async with unit_of_work(session):
        booking = await _authorized_booking(session, booking_id, principal)
        check_booking_transition(booking.booking_status, BookingStatus.CONFIRMED)
        if booking.payment_status == PaymentStatus.FAILED:
            raise IllegalTransition("Cannot confirm a booking whose payment failed")
        _apply_confirm(booking, check_in_instructions=check_in_instructions)

    logger.info("Booking %s confirmed", booking.id)
    await notifier.emit(event_service.booking_confirmed(booking))
    return booking


async def cancel(
    session: AsyncSession,
    *,
    notifier: EventNotifier,
    principal: Principal | None,
    booking_id: uuid.UUID,
    reason: str | None = None,
) -> Booking:
    """Cancel a pending or confirmed booking and release its nights.

    A completed payment is recorded as refunded; the refund amount itself is
    decided by the payment collaborator, so the event reports the amount
    paid.
    """
    async with unit_of_work(session):
        booking = await _authorized_booking(session, booking_id, principal)
        check_booking_transition(booking.booking_status, BookingStatus.CANCELLED)

        refund_amount = Decimal("0.00")
        if booking.payment_status == PaymentStatus.COMPLETED:
            check_payment_transition(booking.payment_status, PaymentStatus.REFUNDED)
            booking.payment_status = PaymentStatus.REFUNDED
            refund_amount = booking.total_price

        booking.booking_status = BookingStatus.CANCELLED
        booking.cancellation_reason = reason or DEFAULT_CANCELLATION_REASON
        booking.cancelled_at = _now()
        await session.flush()
        await availability_service.release_range(
            session,
            property_id=booking.property_id,
            check_in=booking.check_in_date,
            check_out=booking.check_out_date,
        )

    logger.info("Booking %s cancelled: %s", booking.id, booking.cancellation_reason)
    await notifier.emit(
        event_service.booking_cancelled(booking, refund_amount=refund_amount),
        event_service.availability_updated(
            booking.property_id,
            check_in=booking.check_in_date,
            check_out=booking.check_out_date,
            is_available=True,
        ),
    )
    return booking


async def mark_completed(
    session: AsyncSession,
    *,
    notifier: EventNotifier,
    principal: Principal | None,
    booking_id: uuid.UUID,
) -> Booking:
    """Close out a confirmed booking once the stay is over."""
    async with unit_of_work(session):
        booking = await _authorized_booking(session, booking_id, principal)
        check_booking_transition(booking.booking_status, BookingStatus.COMPLETED)
        booking.booking_status = BookingStatus.COMPLETED
        booking.completed_at = _now()

    logger.info("Booking %s completed", booking.id)
    await notifier.emit(event_service.booking_completed(booking))
    return booking


async def record_payment_result(
    session: AsyncSession,
    *,
    notifier: EventNotifier,
    principal: Principal | None,
    booking_id: uuid.UUID,
    succeeded: bool,
) -> Booking:
    """Apply the outcome of a charge attempt reported by the payment service.

    Success completes the payment and confirms the booking together; failure
    marks the payment failed and leaves the booking pending.
    """
    events: list[DomainEvent] = []
    if principal is not None:
        ensure_payment_authority(principal)
    async with unit_of_work(session):
        booking = await _load_booking(session, booking_id)
        if succeeded:
            check_payment_transition(booking.payment_status, PaymentStatus.COMPLETED)
            check_booking_transition(booking.booking_status, BookingStatus.CONFIRMED)
            booking.payment_status = PaymentStatus.COMPLETED
            _apply_confirm(booking, check_in_instructions=None)
        else:
            check_payment_transition(booking.payment_status, PaymentStatus.FAILED)
            booking.payment_status = PaymentStatus.FAILED

    if succeeded:
        logger.info("Payment completed for booking %s", booking.id)
        events.append(event_service.booking_confirmed(booking))
    else:
        logger.info("Payment failed for booking %s", booking.id)
        events.append(event_service.payment_failed(booking))
    await notifier.emit(*events)
    return booking


async def refund(
    session: AsyncSession,
    *,
    principal: Principal | None,
    booking_id: uuid.UUID,
) -> Booking:
    """Record an explicit refund of a completed payment."""
    if principal is not None:
        ensure_payment_authority(principal)
    async with unit_of_work(session):
        booking = await _load_booking(session, booking_id)
        check_payment_transition(booking.payment_status, PaymentStatus.REFUNDED)
        booking.payment_status = PaymentStatus.REFUNDED

    logger.info("Payment refunded for booking %s", booking.id)
    return booking


async def update_details(
    session: AsyncSession,
    *,
    principal: Principal | None,
    booking_id: uuid.UUID,
    check_in_instructions: str | None = None,
    access_code: str | None = None,
) -> Booking:
    """Update arrival details on a booking that is still active."""
    async with unit_of_work(session):
        booking = await _authorized_booking(session, booking_id, principal)
        if booking.booking_status in _TERMINAL_BOOKING_STATUSES:
            raise IllegalTransition(
                f"Cannot update a {booking.booking_status.value} booking"
            )
        if check_in_instructions is not None:
            booking.check_in_instructions = check_in_instructions
        if access_code is not None:
            booking.access_code = access_code
    return booking


async def complete_elapsed_bookings(
    session: AsyncSession,
    *,
    notifier: EventNotifier,
    today: date,
) -> Sequence[Booking]:
    """Complete every confirmed booking whose check-out date has arrived."""
    result = await session.execute(
        select(Booking.id).where(
            Booking.booking_status == BookingStatus.CONFIRMED,
            Booking.check_out_date <= today,
        )
    )
    completed: list[Booking] = []
    for booking_id in result.scalars().all():
        try:
            booking = await mark_completed(
                session, notifier=notifier, principal=None, booking_id=booking_id
            )
        except IllegalTransition:
            logger.info("Booking %s changed before it could be completed", booking_id)
            continue
        completed.append(booking)
    return completed
