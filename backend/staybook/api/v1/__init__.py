"""Versioned API router."""

from fastapi import APIRouter

from . import bookings, events, health, properties

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
router.include_router(properties.router, prefix="/properties", tags=["properties"])
router.include_router(events.router, prefix="/events", tags=["events"])
