"""Domain event delivery.

The booking services hand events to an ``EventNotifier``, which fans them
out to every configured ``EventSink``. Delivery is best effort: a sink that
fails is logged and skipped, and nothing here can roll back the transaction
that produced the event.
"""

from __future__ import annotations

import abc
import enum
import json
import logging
import uuid
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from decimal import Decimal
from functools import lru_cache
from typing import Any

import redis.asyncio as redis  # type: ignore[import-untyped]
from fastapi import WebSocket

from staybook.core.config import get_settings
from staybook.models.booking import Booking
from staybook.services.pricing_service import MONEY_PLACES

logger = logging.getLogger(__name__)

BOOKING_CREATED = "booking_created"
BOOKING_CONFIRMED = "booking_confirmed"
BOOKING_CANCELLED = "booking_cancelled"
BOOKING_COMPLETED = "booking_completed"
PAYMENT_FAILED = "payment_failed"
AVAILABILITY_UPDATED = "availability_updated"


@dataclass(frozen=True, slots=True)
class DomainEvent:
    """A named notification with a JSON-ready payload."""

    name: str
    payload: dict[str, Any]
    rooms: tuple[str, ...] = ()
    occurred_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_message(self) -> dict[str, Any]:
        return {"event": self.name, "data": self.payload}


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return f"{value.quantize(MONEY_PLACES):.2f}"
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, enum.Enum):
        return value.value
    return value


def _event(name: str, payload: dict[str, Any], rooms: Iterable[str]) -> DomainEvent:
    return DomainEvent(
        name=name,
        payload={key: _plain(value) for key, value in payload.items()},
        rooms=tuple(rooms),
    )


def property_room(property_id: uuid.UUID) -> str:
    return f"property_{property_id}"


def booking_room(booking_id: uuid.UUID) -> str:
    return f"booking_{booking_id}"


def user_room(user_id: uuid.UUID) -> str:
    return f"user_{user_id}"


def booking_created(booking: Booking, *, owner_id: uuid.UUID | None = None) -> DomainEvent:
    rooms = [booking_room(booking.id), user_room(booking.guest_id)]
    if owner_id is not None:
        rooms.append(user_room(owner_id))
    return _event(
        BOOKING_CREATED,
        {
            "booking_id": booking.id,
            "property_id": booking.property_id,
            "guest_id": booking.guest_id,
            "check_in_date": booking.check_in_date,
            "check_out_date": booking.check_out_date,
            "total_price": booking.total_price,
            "currency": booking.currency,
            "booking_status": booking.booking_status,
            "created_at": booking.created_at,
        },
        rooms,
    )


def booking_confirmed(booking: Booking) -> DomainEvent:
    return _event(
        BOOKING_CONFIRMED,
        {
            "booking_id": booking.id,
            "confirmation_date": booking.confirmed_at,
            "check_in_instructions": booking.check_in_instructions,
        },
        [booking_room(booking.id), user_room(booking.guest_id)],
    )


def booking_cancelled(booking: Booking, *, refund_amount: Decimal) -> DomainEvent:
    return _event(
        BOOKING_CANCELLED,
        {
            "booking_id": booking.id,
            "cancellation_reason": booking.cancellation_reason,
            "cancelled_at": booking.cancelled_at,
            "refund_amount": refund_amount,
        },
        [booking_room(booking.id), user_room(booking.guest_id)],
    )


def booking_completed(booking: Booking) -> DomainEvent:
    return _event(
        BOOKING_COMPLETED,
        {"booking_id": booking.id, "completed_at": booking.completed_at},
        [booking_room(booking.id)],
    )


def payment_failed(booking: Booking) -> DomainEvent:
    return _event(
        PAYMENT_FAILED,
        {
            "booking_id": booking.id,
            "amount": booking.total_price,
            "currency": booking.currency,
            "failed_at": datetime.now(UTC),
        },
        [booking_room(booking.id), user_room(booking.guest_id)],
    )


def availability_updated(
    property_id: uuid.UUID,
    *,
    check_in: date,
    check_out: date,
    is_available: bool,
) -> DomainEvent:
    return _event(
        AVAILABILITY_UPDATED,
        {
            "property_id": property_id,
            "date_range": {
                "start_date": check_in.isoformat(),
                "end_date": check_out.isoformat(),
            },
            "is_available": is_available,
            "updated_at": datetime.now(UTC),
        },
        [property_room(property_id)],
    )


class EventSink(abc.ABC):
    """A transport that delivers domain events to subscribers."""

    @abc.abstractmethod
    async def publish(self, event: DomainEvent) -> None:
        """Deliver a single event."""


class LoggingEventSink(EventSink):
    """Write events to the application log."""

    async def publish(self, event: DomainEvent) -> None:
        logger.info("event %s %s", event.name, json.dumps(event.payload, sort_keys=True))


class InMemoryEventSink(EventSink):
    """Keep events in a list; useful for tooling and tests."""

    def __init__(self) -> None:
        self.events: list[DomainEvent] = []

    async def publish(self, event: DomainEvent) -> None:
        self.events.append(event)

    def names(self) -> list[str]:
        return [event.name for event in self.events]


class RedisEventSink(EventSink):
    """Publish events to Redis pub/sub channels for the notification service."""

    def __init__(self, client: redis.Redis, *, channel_prefix: str) -> None:
        self._client = client
        self._prefix = channel_prefix

    async def publish(self, event: DomainEvent) -> None:
        channel = f"{self._prefix}:{event.name}"
        await self._client.publish(channel, json.dumps(event.to_message()))


class RoomConnectionManager:
    """Track WebSocket subscribers by room."""

    def __init__(self) -> None:
        self._rooms: dict[str, set[WebSocket]] = defaultdict(set)

    async def connect(self, websocket: WebSocket, rooms: Iterable[str]) -> None:
        await websocket.accept()
        for room in rooms:
            self._rooms[room].add(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        for room in list(self._rooms):
            self._rooms[room].discard(websocket)
            if not self._rooms[room]:
                del self._rooms[room]

    def subscribers(self, room: str) -> int:
        return len(self._rooms.get(room, ()))

    async def broadcast(self, room: str, message: dict[str, Any]) -> None:
        for websocket in list(self._rooms.get(room, ())):
            try:
                await websocket.send_json(message)
            except Exception:  # pragma: no cover - socket went away mid-send
                logger.warning("Dropping websocket subscriber in room %s", room)
                self.disconnect(websocket)


class WebSocketEventSink(EventSink):
    """Push events to WebSocket subscribers of the event's rooms."""

    def __init__(self, manager: RoomConnectionManager) -> None:
        self._manager = manager

    async def publish(self, event: DomainEvent) -> None:
        message = event.to_message()
        for room in event.rooms:
            await self._manager.broadcast(room, message)


class EventNotifier:
    """Fan events out to sinks without letting delivery failures escape."""

    def __init__(self, sinks: Iterable[EventSink] = ()) -> None:
        self.sinks: list[EventSink] = list(sinks)

    async def emit(self, *events: DomainEvent) -> None:
        for event in events:
            for sink in self.sinks:
                try:
                    await sink.publish(event)
                except Exception:
                    logger.exception(
                        "Failed to deliver %s via %s", event.name, type(sink).__name__
                    )


room_manager = RoomConnectionManager()


@lru_cache
def get_notifier() -> EventNotifier:
    """Return the process-wide notifier built from configuration."""
    settings = get_settings()
    sinks: list[EventSink] = []
    for name in settings.event_sinks:
        if name == "log":
            sinks.append(LoggingEventSink())
        elif name == "websocket":
            sinks.append(WebSocketEventSink(room_manager))
        elif name == "redis":
            if not settings.redis_url:
                logger.warning("Redis event sink requested without REDIS_URL; skipping")
                continue
            client = redis.from_url(
                settings.redis_url, encoding="utf-8", decode_responses=True
            )
            sinks.append(
                RedisEventSink(client, channel_prefix=settings.event_channel_prefix)
            )
        else:
            logger.warning("Unknown event sink %r; skipping", name)
    return EventNotifier(sinks)
