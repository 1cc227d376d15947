"""Service zone loader with database-first approach, falling back to built-in zones."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from ..errors import StoreError
from ..models.domain import Coordinate, Zone

logger = logging.getLogger(__name__)


# Montreal defaults used whenever the zone table cannot be read.
FALLBACK_ZONES: tuple[Zone, ...] = (
    Zone(
        id="1",
        name="Plateau-Mont-Royal",
        code="PLATEAU",
        zone_type="residential",
        center=Coordinate(latitude=45.5276, longitude=-73.5794),
        radius_m=3000.0,
        demand_level="high",
        pricing_multiplier=1.20,
    ),
    Zone(
        id="2",
        name="Downtown Montreal",
        code="DOWNTOWN",
        zone_type="commercial",
        center=Coordinate(latitude=45.5017, longitude=-73.5673),
        radius_m=4000.0,
        demand_level="high",
        pricing_multiplier=1.30,
    ),
    Zone(
        id="3",
        name="Westmount",
        code="WESTMOUNT",
        zone_type="premium",
        center=Coordinate(latitude=45.4869, longitude=-73.5989),
        radius_m=2500.0,
        demand_level="medium",
        pricing_multiplier=1.50,
    ),
)


@dataclass(frozen=True, slots=True)
class ZoneLoad:
    zones: tuple[Zone, ...]
    degraded: bool


class ZoneDirectory:
    """Named circular service zones, read from the store and cached after the first good load.

    A failed or empty load never raises: the fallback zones are returned with
    ``degraded=True`` and the next call tries the store again.
    """

    def __init__(
        self,
        loader: Optional[Callable[[], Sequence[Zone]]],
        fallback: Sequence[Zone] = FALLBACK_ZONES,
    ) -> None:
        self._loader = loader
        self._fallback = tuple(fallback)
        self._cached: tuple[Zone, ...] | None = None
        self._lock = threading.Lock()

    def load(self) -> ZoneLoad:
        with self._lock:
            if self._cached is not None:
                return ZoneLoad(zones=self._cached, degraded=False)

            if self._loader is None:
                logger.warning("No zone store configured, using built-in fallback zones")
                return ZoneLoad(zones=self._fallback, degraded=True)

            try:
                zones = tuple(self._loader())
            except StoreError as e:
                logger.warning(f"Zone directory load failed, using built-in fallback zones: {e}")
                return ZoneLoad(zones=self._fallback, degraded=True)

            if not zones:
                logger.warning("Zone table returned no usable zones, using built-in fallback zones")
                return ZoneLoad(zones=self._fallback, degraded=True)

            logger.info(f"Loaded {len(zones)} service zones from database")
            self._cached = zones
            return ZoneLoad(zones=zones, degraded=False)

    def invalidate(self) -> None:
        with self._lock:
            self._cached = None


_directory: ZoneDirectory | None = None
_directory_lock = threading.Lock()


def get_zone_directory() -> ZoneDirectory:
    """Process-wide directory bound to the configured Supabase store (fallback-only if unconfigured)."""
    global _directory
    with _directory_lock:
        if _directory is None:
            from ..persistence.database import get_store

            try:
                loader = get_store().list_zones
            except StoreError as e:
                logger.warning(f"Zone directory running without a store: {e}")
                loader = None
            _directory = ZoneDirectory(loader)
        return _directory


def reset_zone_directory() -> None:
    global _directory
    with _directory_lock:
        _directory = None
