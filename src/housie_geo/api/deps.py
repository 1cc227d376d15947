"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, Header, HTTPException, status

from ..data.zones_repository import ZoneDirectory, get_zone_directory
from ..errors import LocationPermissionDenied, LocationTimeout, LocationUnavailable, StoreNotConfigured
from ..persistence.database import SupabaseStore
from ..persistence.database import get_store as build_store
from ..services.proximity import SessionRegistry


def get_store() -> SupabaseStore:
    try:
        return build_store()
    except StoreNotConfigured as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


def get_directory() -> ZoneDirectory:
    return get_zone_directory()


@lru_cache(maxsize=1)
def get_session_registry() -> SessionRegistry:
    return SessionRegistry(store_factory=build_store)


def get_caller_id(
    authorization: str | None = Header(default=None),
    store: SupabaseStore = Depends(get_store),
) -> str:
    """Resolve the bearer token in the Authorization header to a user id."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="No authorization header")
    user_id = store.resolve_user_id(authorization[len("bearer "):].strip())
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid authorization")
    return user_id


def location_http_error(exc: LocationUnavailable) -> HTTPException:
    if isinstance(exc, LocationPermissionDenied):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"Location access denied: {exc}")
    if isinstance(exc, LocationTimeout):
        return HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=f"Location request timed out: {exc}")
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=f"Location unavailable: {exc}")
