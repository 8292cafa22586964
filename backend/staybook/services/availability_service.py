"""Availability ledger: per-property, per-date bookability.

Claims never commit on their own. Callers run them inside their unit of work
so the booking row and the claimed dates are written or discarded together.
"""
from __future__ import annotations

import logging
import uuid
from collections.abc import Iterator
from datetime import date, timedelta

from sqlalchemy import func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from staybook.core.exceptions import ResourceConflict, ValidationError
from staybook.models.availability import AvailabilityRecord

logger = logging.getLogger(__name__)


def iter_nights(check_in: date, check_out: date) -> Iterator[date]:
    """Yield each night in the half-open range ``[check_in, check_out)``."""
    current = check_in
    while current < check_out:
        yield current
        current += timedelta(days=1)


def _ensure_range(check_in: date, check_out: date) -> None:
    if check_out <= check_in:
        raise ValidationError("Check-out date must be after check-in date")


def _conflict(property_id: uuid.UUID, check_in: date) -> ResourceConflict:
    logger.info("Claim conflict for property %s starting %s", property_id, check_in)
    return ResourceConflict(
        "Property is not available for selected dates",
        context={"property_id": str(property_id)},
    )


async def is_range_free(
    session: AsyncSession,
    *,
    property_id: uuid.UUID,
    check_in: date,
    check_out: date,
) -> bool:
    """Return True when no night in the range is claimed or blocked."""
    _ensure_range(check_in, check_out)
    stmt = select(func.count()).select_from(AvailabilityRecord).where(
        AvailabilityRecord.property_id == property_id,
        AvailabilityRecord.date >= check_in,
        AvailabilityRecord.date < check_out,
        or_(
            AvailabilityRecord.is_available.is_(False),
            AvailabilityRecord.is_blocked.is_(True),
        ),
    )
    unavailable = (await session.execute(stmt)).scalar_one()
    return unavailable == 0


async def claim_range(
    session: AsyncSession,
    *,
    property_id: uuid.UUID,
    check_in: date,
    check_out: date,
) -> list[date]:
    """Mark every night in the range unavailable, or raise ResourceConflict.

    Existing rows are flipped with a compare-and-set update that only matches
    free rows; missing rows are inserted and collide on the
    ``(property_id, date)`` primary key if another writer got there first.
    Either way a concurrent claimant cannot also succeed.
    """
    _ensure_range(check_in, check_out)
    nights = list(iter_nights(check_in, check_out))

    existing_result = await session.execute(
        select(AvailabilityRecord.date)
        .where(
            AvailabilityRecord.property_id == property_id,
            AvailabilityRecord.date.in_(nights),
        )
        .with_for_update()
    )
    existing = set(existing_result.scalars().all())

    if existing:
        flipped = await session.execute(
            update(AvailabilityRecord)
            .where(
                AvailabilityRecord.property_id == property_id,
                AvailabilityRecord.date.in_(sorted(existing)),
                AvailabilityRecord.is_available.is_(True),
                AvailabilityRecord.is_blocked.is_(False),
            )
            .values(is_available=False)
            .execution_options(synchronize_session=False)
        )
        if flipped.rowcount != len(existing):
            raise _conflict(property_id, check_in)

    missing = [night for night in nights if night not in existing]
    if missing:
        try:
            await session.execute(
                insert(AvailabilityRecord),
                [
                    {
                        "property_id": property_id,
                        "date": night,
                        "is_available": False,
                        "is_blocked": False,
                    }
                    for night in missing
                ],
            )
        except IntegrityError as exc:
            raise _conflict(property_id, check_in) from exc

    logger.debug(
        "Claimed %d night(s) for property %s starting %s",
        len(nights),
        property_id,
        check_in,
    )
    return nights


async def release_range(
    session: AsyncSession,
    *,
    property_id: uuid.UUID,
    check_in: date,
    check_out: date,
) -> int:
    """Return claimed nights in the range to available.

    Releasing free or missing dates is a no-op. Host blocks are left alone.
    """
    _ensure_range(check_in, check_out)
    result = await session.execute(
        update(AvailabilityRecord)
        .where(
            AvailabilityRecord.property_id == property_id,
            AvailabilityRecord.date >= check_in,
            AvailabilityRecord.date < check_out,
            AvailabilityRecord.is_available.is_(False),
        )
        .values(is_available=True)
        .execution_options(synchronize_session=False)
    )
    released = result.rowcount or 0
    logger.debug(
        "Released %d night(s) for property %s starting %s",
        released,
        property_id,
        check_in,
    )
    return released


async def get_availability(
    session: AsyncSession,
    *,
    property_id: uuid.UUID,
    start_date: date,
    end_date: date,
) -> list[dict[str, object]]:
    """Return the calendar for ``[start_date, end_date)``, one entry per date."""
    _ensure_range(start_date, end_date)
    result = await session.execute(
        select(AvailabilityRecord).where(
            AvailabilityRecord.property_id == property_id,
            AvailabilityRecord.date >= start_date,
            AvailabilityRecord.date < end_date,
        )
    )
    records = {record.date: record for record in result.scalars().all()}

    days: list[dict[str, object]] = []
    for night in iter_nights(start_date, end_date):
        record = records.get(night)
        if record is None:
            days.append(
                {
                    "date": night,
                    "is_available": True,
                    "is_blocked": False,
                    "price_override": None,
                }
            )
            continue
        days.append(
            {
                "date": night,
                "is_available": record.is_available,
                "is_blocked": record.is_blocked,
                "price_override": record.price_override,
            }
        )
    return days
