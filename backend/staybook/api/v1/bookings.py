"""Booking management API."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Query, status

from staybook.api.deps import NotifierDep, PrincipalDep, RateLimitDep, SessionDep
from staybook.core.config import get_settings
from staybook.schemas.booking import (
    BookingCancelRequest,
    BookingConfirmRequest,
    BookingCreate,
    BookingListParams,
    BookingRead,
    BookingUpdate,
    PaymentResult,
)
from staybook.services import booking_lifecycle_service, booking_service

router = APIRouter()

settings = get_settings()


@router.post(
    "",
    response_model=BookingRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create booking",
    dependencies=[RateLimitDep],
)
async def create_booking(
    payload: BookingCreate,
    session: SessionDep,
    principal: PrincipalDep,
    notifier: NotifierDep,
) -> BookingRead:
    booking = await booking_service.create_booking(
        session,
        notifier=notifier,
        principal=principal,
        **payload.model_dump(),
    )
    return BookingRead.model_validate(booking)


@router.get("", response_model=list[BookingRead], summary="List bookings")
async def list_bookings(
    params: Annotated[BookingListParams, Query()],
    session: SessionDep,
    principal: PrincipalDep,
) -> list[BookingRead]:
    bookings = await booking_service.list_bookings(
        session,
        principal=principal,
        guest_id=params.guest_id,
        property_id=params.property_id,
        booking_status=params.booking_status,
        payment_status=params.payment_status,
        check_in_from=params.check_in_from,
        check_in_to=params.check_in_to,
        sort_by=params.sort_by,
        sort_order=params.sort_order,
        skip=params.offset,
        limit=min(params.limit, settings.booking_list_max_limit),
    )
    return [BookingRead.model_validate(obj) for obj in bookings]


@router.get("/{booking_id}", response_model=BookingRead, summary="Get booking")
async def get_booking(
    booking_id: uuid.UUID,
    session: SessionDep,
    principal: PrincipalDep,
) -> BookingRead:
    booking = await booking_service.get_booking(
        session, principal=principal, booking_id=booking_id
    )
    return BookingRead.model_validate(booking)


@router.patch("/{booking_id}", response_model=BookingRead, summary="Update arrival details")
async def update_booking(
    booking_id: uuid.UUID,
    payload: BookingUpdate,
    session: SessionDep,
    principal: PrincipalDep,
) -> BookingRead:
    booking = await booking_lifecycle_service.update_details(
        session,
        principal=principal,
        booking_id=booking_id,
        **payload.model_dump(exclude_unset=True),
    )
    return BookingRead.model_validate(booking)


@router.post(
    "/{booking_id}/confirm", response_model=BookingRead, summary="Confirm booking"
)
async def confirm_booking(
    booking_id: uuid.UUID,
    session: SessionDep,
    principal: PrincipalDep,
    notifier: NotifierDep,
    payload: BookingConfirmRequest | None = None,
) -> BookingRead:
    payload = payload or BookingConfirmRequest()
    booking = await booking_lifecycle_service.confirm(
        session,
        notifier=notifier,
        principal=principal,
        booking_id=booking_id,
        check_in_instructions=payload.check_in_instructions,
    )
    return BookingRead.model_validate(booking)


@router.post(
    "/{booking_id}/cancel", response_model=BookingRead, summary="Cancel booking"
)
async def cancel_booking(
    booking_id: uuid.UUID,
    session: SessionDep,
    principal: PrincipalDep,
    notifier: NotifierDep,
    payload: BookingCancelRequest | None = None,
) -> BookingRead:
    payload = payload or BookingCancelRequest()
    booking = await booking_lifecycle_service.cancel(
        session,
        notifier=notifier,
        principal=principal,
        booking_id=booking_id,
        reason=payload.cancellation_reason,
    )
    return BookingRead.model_validate(booking)


@router.post(
    "/{booking_id}/complete", response_model=BookingRead, summary="Complete booking"
)
async def complete_booking(
    booking_id: uuid.UUID,
    session: SessionDep,
    principal: PrincipalDep,
    notifier: NotifierDep,
) -> BookingRead:
    booking = await booking_lifecycle_service.mark_completed(
        session, notifier=notifier, principal=principal, booking_id=booking_id
    )
    return BookingRead.model_validate(booking)


@router.post(
    "/{booking_id}/payment",
    response_model=BookingRead,
    summary="Record payment outcome",
)
async def record_payment(
    booking_id: uuid.UUID,
    payload: PaymentResult,
    session: SessionDep,
    principal: PrincipalDep,
    notifier: NotifierDep,
) -> BookingRead:
    booking = await booking_lifecycle_service.record_payment_result(
        session,
        notifier=notifier,
        principal=principal,
        booking_id=booking_id,
        succeeded=payload.succeeded,
    )
    return BookingRead.model_validate(booking)


@router.post(
    "/{booking_id}/refund", response_model=BookingRead, summary="Record refund"
)
async def refund_booking(
    booking_id: uuid.UUID,
    session: SessionDep,
    principal: PrincipalDep,
) -> BookingRead:
    booking = await booking_lifecycle_service.refund(
        session, principal=principal, booking_id=booking_id
    )
    return BookingRead.model_validate(booking)
