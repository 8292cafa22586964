"""Real-time event subscriptions over WebSocket."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, WebSocket, WebSocketDisconnect, status

from staybook.api.deps import principal_from_token
from staybook.core.exceptions import PermissionDenied
from staybook.db.session import get_sessionmaker
from staybook.security.permissions import authorize_rooms
from staybook.services.event_service import room_manager, user_room

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def subscribe(
    websocket: WebSocket,
    token: str = Query(...),
    room: list[str] | None = Query(default=None),
) -> None:
    """Stream events for the requested rooms plus the caller's own user room."""
    try:
        principal = principal_from_token(token)
        async with get_sessionmaker()() as session:
            rooms = await authorize_rooms(session, principal, room or [])
    except (HTTPException, PermissionDenied) as exc:
        logger.info("Rejected event subscription: %s", getattr(exc, "detail", exc))
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    rooms.add(user_room(principal.user_id))
    await room_manager.connect(websocket, rooms)
    logger.debug("Subscriber %s joined %s", principal.user_id, sorted(rooms))
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        room_manager.disconnect(websocket)
