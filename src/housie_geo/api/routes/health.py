"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


def _get_osrm_health_check():
    """Lazy import to avoid startup failures."""
    from ...services.routing.osrm_client import check_health as osrm_health_check
    return osrm_health_check


@router.get("/health/osrm", status_code=status.HTTP_200_OK)
def health_osrm() -> dict:
    """Check routing provider health."""
    osrm_health_check = _get_osrm_health_check()
    return {"service": "osrm", "healthy": osrm_health_check()}


@router.get("/health/database", status_code=status.HTTP_200_OK)
def check_database() -> dict:
    """Check database connection and zone directory status."""
    from ...data.zones_repository import get_zone_directory
    from ...errors import StoreError
    from ...persistence.database import get_store

    try:
        store = get_store()
    except StoreError as exc:
        return {"configured": False, "message": str(exc), "zones_count": 0}

    try:
        zones = store.list_zones()
    except StoreError as exc:
        return {
            "configured": True,
            "connected": False,
            "error": str(exc),
            "message": f"Database connection error: {exc}",
        }

    loaded = get_zone_directory().load()
    return {
        "configured": True,
        "connected": True,
        "zones_count": len(zones),
        "zone_directory_degraded": loaded.degraded,
        "message": f"Database connected. Found {len(zones)} service zones.",
    }
