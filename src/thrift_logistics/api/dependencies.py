"""FastAPI dependencies for the authentication boundary."""

from __future__ import annotations

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer

from ..services.errors import AuthRequired, ServiceError
from ..services.security import Principal, decode_access_token, verify_internal_key

_bearer_scheme = HTTPBearer(auto_error=False)
_api_key_scheme = APIKeyHeader(name="X-API-Key", auto_error=False)


def to_http_exception(exc: ServiceError) -> HTTPException:
    return HTTPException(status_code=exc.http_status, detail=exc.to_dict())


def get_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> Principal:
    """Resolve the bearer token into a ``Principal`` or reject with 401."""
    if credentials is None or not credentials.credentials:
        raise to_http_exception(AuthRequired())
    try:
        return decode_access_token(credentials.credentials)
    except ServiceError as exc:
        raise to_http_exception(exc) from exc


def require_internal_key(api_key: str | None = Depends(_api_key_scheme)) -> None:
    """Guard for service-to-service endpoints."""
    try:
        verify_internal_key(api_key)
    except ServiceError as exc:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, detail=exc.to_dict()) from exc
