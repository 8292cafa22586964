"""Property calendar and quote API."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Query

from staybook.api.deps import PrincipalDep, SessionDep
from staybook.schemas.availability import (
    AvailabilityRequest,
    AvailabilityResponse,
    DailyAvailability,
    PriceQuote,
    QuoteRequest,
)
from staybook.services import availability_service, booking_service

router = APIRouter()


@router.get(
    "/{property_id}/availability",
    response_model=AvailabilityResponse,
    summary="Nightly availability for a property",
)
async def get_availability(
    property_id: uuid.UUID,
    params: Annotated[AvailabilityRequest, Query()],
    session: SessionDep,
    _principal: PrincipalDep,
) -> AvailabilityResponse:
    days = await availability_service.get_availability(
        session,
        property_id=property_id,
        start_date=params.start_date,
        end_date=params.end_date,
    )
    return AvailabilityResponse(
        property_id=property_id,
        days=[DailyAvailability.model_validate(day) for day in days],
    )


@router.get(
    "/{property_id}/quote",
    response_model=PriceQuote,
    summary="Price a prospective stay",
)
async def quote_stay(
    property_id: uuid.UUID,
    params: Annotated[QuoteRequest, Query()],
    session: SessionDep,
    _principal: PrincipalDep,
) -> PriceQuote:
    breakdown, available = await booking_service.quote_stay(
        session,
        property_id=property_id,
        check_in=params.check_in_date,
        check_out=params.check_out_date,
        guest_count=params.guest_count,
    )
    return PriceQuote(
        property_id=property_id,
        check_in_date=params.check_in_date,
        check_out_date=params.check_out_date,
        guest_count=params.guest_count,
        is_available=available,
        **breakdown.to_dict(),
    )
