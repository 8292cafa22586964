"""JWT helpers for the identity collaborator boundary.

Tokens are issued by the identity service; this module only needs to decode
them. ``create_access_token`` exists for tooling and tests.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import jwt

from staybook.core.config import get_settings


class PrincipalRole(str, enum.Enum):
    """Authorization roles supplied by the identity collaborator."""

    GUEST = "guest"
    HOST = "host"
    ADMIN = "admin"


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller of a booking operation."""

    user_id: uuid.UUID
    role: PrincipalRole

    @property
    def is_admin(self) -> bool:
        return self.role == PrincipalRole.ADMIN


def create_access_token(
    subject: str,
    role: PrincipalRole = PrincipalRole.GUEST,
    expires_delta: timedelta | None = None,
    **extra: Any,
) -> str:
    """Create a JWT access token."""
    settings = get_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    expire = datetime.now(UTC) + expires_delta
    claims: dict[str, Any] = {"sub": subject, "role": role.value, "exp": expire}
    claims.update(extra)
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode a JWT token, raising JWTError on failure."""
    settings = get_settings()
    return jwt.decode(
        token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm]
    )
