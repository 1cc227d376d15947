"""Proximity detection and imprint logging for one client session."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Protocol, Union

from ...config import Settings, settings as default_settings
from ...errors import LocationPermissionDenied, LocationTimeout, LocationUnavailable
from ...models.domain import ACTION_TYPES, Coordinate, DropPoint, Imprint, NearbyDropPoint, PositionFix
from ..geospatial import haversine_m
from .events import ImprintEventChannel
from .position import PositionSource

logger = logging.getLogger(__name__)


class WatchState(str, Enum):
    IDLE = "idle"
    WATCHING = "watching"


@dataclass(slots=True)
class ImprintContext:
    user_id: str
    service_type: Optional[str] = None
    note: Optional[str] = None


class ImprintStore(Protocol):
    def nearby_drop_points(
        self, coordinate: Coordinate, max_distance_m: float
    ) -> list[tuple[DropPoint, Optional[float]]]:
        ...

    def log_imprint(
        self,
        user_id: str,
        coordinate: Coordinate,
        action_type: str,
        service_type: str | None = None,
        note: str | None = None,
    ) -> Imprint:
        ...


Target = Union[DropPoint, Coordinate]


def _as_location_error(error: Exception) -> LocationUnavailable:
    if isinstance(error, LocationUnavailable):
        return error
    if isinstance(error, PermissionError):
        return LocationPermissionDenied(str(error) or "Location permission denied")
    if isinstance(error, TimeoutError):
        return LocationTimeout(str(error) or "Location request timed out")
    return LocationUnavailable(str(error) or type(error).__name__)


class ImprintEngine:
    """Tracks a device position and logs imprints for a single session.

    The engine owns no global state: the position source, the store and the
    clock are all supplied by the caller.
    """

    def __init__(
        self,
        position_source: PositionSource,
        store: ImprintStore,
        *,
        clock: Callable[[], float] = time.time,
        config: Settings | None = None,
        events: ImprintEventChannel | None = None,
    ) -> None:
        config = config or default_settings
        self.position_source = position_source
        self.store = store
        self.events = events or ImprintEventChannel()
        self._clock = clock
        self.freshness_seconds = config.position_freshness_seconds
        self.position_timeout = config.position_timeout_seconds
        self.watch_timeout = config.watch_timeout_seconds
        self.high_accuracy = config.high_accuracy
        self.default_radius_m = config.nearby_default_radius_m

        self._lock = threading.RLock()
        self._state = WatchState.IDLE
        self._watch_handle: Any = None
        self._last_fix: PositionFix | None = None
        self._last_watch_error: LocationUnavailable | None = None

    # Watch state machine

    @property
    def state(self) -> WatchState:
        return self._state

    def start_watching(self) -> None:
        with self._lock:
            if self._state is WatchState.WATCHING:
                return
            self._watch_handle = self.position_source.watch_position(
                self._on_watch_update,
                self._on_watch_error,
                high_accuracy=self.high_accuracy,
                timeout=self.watch_timeout,
            )
            self._state = WatchState.WATCHING
            self._last_watch_error = None
        logger.debug("Position watch started")

    def stop_watching(self) -> None:
        with self._lock:
            if self._state is WatchState.IDLE:
                return
            handle, self._watch_handle = self._watch_handle, None
            self._state = WatchState.IDLE
        self.position_source.clear_watch(handle)
        logger.debug("Position watch stopped")

    def _on_watch_update(self, fix: PositionFix) -> None:
        with self._lock:
            if self._state is not WatchState.WATCHING:
                return
            self._cache(fix)

    def _on_watch_error(self, error: LocationUnavailable) -> None:
        logger.warning(f"Position watch error: {error}")
        with self._lock:
            self._last_watch_error = error

    @property
    def last_watch_error(self) -> LocationUnavailable | None:
        return self._last_watch_error

    # Position

    def _cache(self, fix: PositionFix) -> PositionFix:
        received = PositionFix(coordinate=fix.coordinate, timestamp=self._clock(), accuracy_m=fix.accuracy_m)
        self._last_fix = received
        return received

    @property
    def last_known_position(self) -> PositionFix | None:
        return self._last_fix

    def get_current_position(self) -> PositionFix:
        """Cached position if fresh, otherwise a one-shot request.

        Raises:
            LocationUnavailable: permission denied, timeout or any other source failure.
        """
        with self._lock:
            cached = self._last_fix
            if cached is not None and self._clock() - cached.timestamp < self.freshness_seconds:
                return cached

        try:
            fix = self.position_source.get_current_position(
                high_accuracy=self.high_accuracy, timeout=self.position_timeout
            )
        except Exception as e:
            raise _as_location_error(e) from e

        with self._lock:
            return self._cache(fix)

    # Distance checks

    def distance_to(self, target: Target, position: Coordinate | None = None) -> float | None:
        """Meters from ``position`` (default: current position) to a drop point or coordinate."""
        destination = target.coordinate if isinstance(target, DropPoint) else target
        if destination is None:
            return None
        origin = position if position is not None else self.get_current_position().coordinate
        return haversine_m(origin, destination)

    def is_within(self, target: Target, radius_m: float, position: Coordinate | None = None) -> bool:
        distance = self.distance_to(target, position)
        return distance is not None and distance <= radius_m

    def find_nearby(self, radius_m: float | None = None) -> list[NearbyDropPoint]:
        """Drop points within ``radius_m`` of the current position, nearest first."""
        radius = radius_m if radius_m is not None else self.default_radius_m
        if radius <= 0:
            raise ValueError("radius_m must be > 0")

        position = self.get_current_position().coordinate
        candidates = self.store.nearby_drop_points(position, radius)

        nearby: list[tuple[float, DropPoint]] = []
        for drop_point, reported in candidates:
            distance = haversine_m(position, drop_point.coordinate) if drop_point.coordinate is not None else reported
            if distance is None or distance > radius:
                continue
            nearby.append((distance, drop_point))

        nearby.sort(key=lambda item: item[0])
        return [NearbyDropPoint(drop_point=point, distance_m=round(distance)) for distance, point in nearby]

    # Imprints

    def log_imprint(
        self,
        action_type: str,
        context: ImprintContext,
        coordinate: Coordinate | None = None,
    ) -> Imprint:
        """Append an imprint at ``coordinate`` or at the current position.

        No distance gate is applied here; callers check :meth:`is_within`
        first when their policy needs one.
        """
        if action_type not in ACTION_TYPES:
            raise ValueError(f"Unknown imprint action type '{action_type}'")

        position = coordinate if coordinate is not None else self.get_current_position().coordinate
        imprint = self.store.log_imprint(
            context.user_id,
            position,
            action_type,
            service_type=context.service_type,
            note=context.note,
        )
        logger.info(
            f"Logged {action_type} imprint {imprint.id} for user {context.user_id}, "
            f"{imprint.imprints_created} drop point match(es)"
        )
        self.events.publish(imprint)
        return imprint
