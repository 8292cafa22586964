"""Test fixtures for the booking engine."""
from __future__ import annotations

import os
import uuid
from collections.abc import AsyncIterator
from decimal import Decimal

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")
os.environ.setdefault("EVENT_SINKS", "log")

from staybook.api import deps
from staybook.core.config import get_settings
from staybook.core.security import Principal, PrincipalRole, create_access_token
from staybook.db.base import Base
from staybook.db.session import dispose_engine, get_sessionmaker
from staybook.main import app
from staybook.models import Property
from staybook.services.event_service import EventNotifier, InMemoryEventSink, get_notifier


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a temporary SQLite database URL for the test session."""
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest_asyncio.fixture()
async def reset_database(db_url: str) -> AsyncIterator[None]:
    """Drop and recreate the database schema for an isolated test."""
    os.environ["DATABASE_URL"] = db_url
    get_settings.cache_clear()
    get_notifier.cache_clear()
    get_settings()

    await dispose_engine(db_url)
    engine = create_async_engine(db_url, future=True)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    await engine.dispose()
    yield
    await dispose_engine(db_url)


@pytest.fixture()
def sink() -> InMemoryEventSink:
    return InMemoryEventSink()


@pytest.fixture()
def notifier(sink: InMemoryEventSink) -> EventNotifier:
    return EventNotifier([sink])


@pytest.fixture()
def owner() -> Principal:
    return Principal(user_id=uuid.uuid4(), role=PrincipalRole.HOST)


@pytest.fixture()
def guest() -> Principal:
    return Principal(user_id=uuid.uuid4(), role=PrincipalRole.GUEST)


@pytest.fixture()
def admin() -> Principal:
    return Principal(user_id=uuid.uuid4(), role=PrincipalRole.ADMIN)


@pytest_asyncio.fixture()
async def listing(
    reset_database: None, db_url: str, owner: Principal
) -> Property:
    """Seed a bookable property owned by ``owner``."""
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        listing = Property(
            owner_id=owner.user_id,
            title="Lakeside Cabin",
            base_price_per_night=Decimal("450.00"),
            cleaning_fee=Decimal("75.00"),
            extra_guest_fee=Decimal("50.00"),
            currency="USD",
            guest_count=8,
            minimum_stay=1,
            maximum_stay=28,
            is_active=True,
        )
        session.add(listing)
        await session.commit()
    return listing


def _auth_headers(principal: Principal) -> dict[str, str]:
    token = create_access_token(str(principal.user_id), role=principal.role)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture()
async def app_context(
    listing: Property,
    notifier: EventNotifier,
    sink: InMemoryEventSink,
    owner: Principal,
    guest: Principal,
    admin: Principal,
) -> AsyncIterator[dict[str, object]]:
    """Yield an async client wired to an in-memory event sink."""
    app.dependency_overrides[deps.get_event_notifier] = lambda: notifier
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield {
                "client": client,
                "listing": listing,
                "sink": sink,
                "owner_headers": _auth_headers(owner),
                "guest_headers": _auth_headers(guest),
                "admin_headers": _auth_headers(admin),
                "guest": guest,
            }
    finally:
        app.dependency_overrides.pop(deps.get_event_notifier, None)
