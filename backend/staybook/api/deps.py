"""Common API dependencies."""

from __future__ import annotations

import uuid
from typing import Annotated
from collections.abc import AsyncGenerator

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from fastapi_limiter import FastAPILimiter
from fastapi_limiter.depends import RateLimiter
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from staybook.core.config import get_settings
from staybook.core.security import Principal, PrincipalRole, decode_access_token
from staybook.db.session import get_session
from staybook.services.event_service import EventNotifier, get_notifier

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide an async database session."""
    async for session in get_session():
        yield session


def principal_from_token(token: str) -> Principal:
    """Translate an identity-service token into a Principal or raise 401."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
    except JWTError as exc:  # pragma: no cover - handled as HTTP 401
        raise credentials_exception from exc

    subject = payload.get("sub")
    if subject is None:
        raise credentials_exception

    try:
        user_id = uuid.UUID(subject)
        role = PrincipalRole(payload.get("role", PrincipalRole.GUEST.value))
    except (ValueError, TypeError) as exc:
        raise credentials_exception from exc
    return Principal(user_id=user_id, role=role)


async def get_current_principal(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
) -> Principal:
    """Authenticate request via bearer token."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal_from_token(credentials.credentials)


def get_event_notifier() -> EventNotifier:
    """Provide the configured event notifier."""
    return get_notifier()


SessionDep = Annotated[AsyncSession, Depends(get_db_session)]
PrincipalDep = Annotated[Principal, Depends(get_current_principal)]
NotifierDep = Annotated[EventNotifier, Depends(get_event_notifier)]

_RATE_WINDOWS = {
    "second": 1,
    "seconds": 1,
    "minute": 60,
    "minutes": 60,
    "hour": 3600,
    "hours": 3600,
}


def parse_rate(value: str, *, fallback: tuple[int, int] = (100, 60)) -> tuple[int, int]:
    """Parse ``"<count>/<window>"`` into ``(times, seconds)``."""
    try:
        count_str, window_str = value.split("/", 1)
        count = int(count_str.strip())
    except ValueError:
        return fallback
    return count, _RATE_WINDOWS.get(window_str.strip().lower(), fallback[1])


async def rate_limit(request: Request, response: Response) -> None:
    """Apply the default request budget when the limiter has a Redis backend."""
    if FastAPILimiter.redis is None:
        return None
    times, seconds = parse_rate(get_settings().rate_limit_default)
    await RateLimiter(times=times, seconds=seconds)(request, response)


RateLimitDep = Depends(rate_limit)
