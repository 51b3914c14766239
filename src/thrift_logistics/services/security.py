"""Authorization context passed explicitly into every core operation."""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import Any

import jwt

from ..config import settings
from ..models.domain import UserRole
from .errors import AuthRequired


@dataclass(frozen=True, slots=True)
class Principal:
    """Trusted identity produced by the authentication boundary."""

    user_id: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN

    @property
    def is_rider(self) -> bool:
        return self.role is UserRole.RIDER


def decode_access_token(token: str, *, secret: str | None = None, algorithm: str | None = None) -> Principal:
    """Verify a bearer token and return the principal it carries."""
    secret = secret or settings.jwt_secret
    if not secret:
        raise AuthRequired("Token verification is not configured", code="AUTH_NOT_CONFIGURED")
    try:
        payload: dict[str, Any] = jwt.decode(token, secret, algorithms=[algorithm or settings.jwt_algorithm])
    except jwt.PyJWTError as exc:
        raise AuthRequired("Invalid or expired token", code="INVALID_TOKEN") from exc

    user_id = payload.get("sub") or payload.get("userId")
    raw_role = payload.get("role")
    if not user_id or not raw_role:
        raise AuthRequired("Token is missing identity claims", code="INVALID_TOKEN")
    try:
        role = UserRole(str(raw_role).upper())
    except ValueError as exc:
        raise AuthRequired("Token carries an unknown role", code="INVALID_TOKEN") from exc
    return Principal(user_id=str(user_id), role=role)


def issue_access_token(principal: Principal, *, secret: str | None = None, **claims: Any) -> str:
    """Sign a token for ``principal``; used by tooling and tests."""
    secret = secret or settings.jwt_secret
    if not secret:
        raise AuthRequired("Token signing is not configured", code="AUTH_NOT_CONFIGURED")
    payload = {"sub": principal.user_id, "role": principal.role.value, **claims}
    return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)


def verify_internal_key(api_key: str | None) -> None:
    expected = settings.internal_api_key
    if not expected or not api_key or not hmac.compare_digest(api_key, expected):
        raise AuthRequired("Invalid internal API key", code="INVALID_API_KEY")
