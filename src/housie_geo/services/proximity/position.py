"""Position sources feeding the imprint engine."""

from __future__ import annotations

import itertools
import logging
import threading
from typing import Any, Callable, Protocol

from ...errors import LocationTimeout, LocationUnavailable
from ...models.domain import PositionFix

logger = logging.getLogger(__name__)

UpdateCallback = Callable[[PositionFix], None]
ErrorCallback = Callable[[LocationUnavailable], None]


class PositionSource(Protocol):
    """Live location provider, shaped after the browser geolocation API."""

    def watch_position(
        self,
        on_update: UpdateCallback,
        on_error: ErrorCallback,
        *,
        high_accuracy: bool,
        timeout: float,
    ) -> Any:
        ...

    def clear_watch(self, handle: Any) -> None:
        ...

    def get_current_position(self, *, high_accuracy: bool, timeout: float) -> PositionFix:
        ...


class PushPositionSource:
    """Position source fed by fixes the client device reports to the API.

    Watchers receive every pushed fix. A one-shot request waits for the next
    push (or reported device error) up to its timeout.
    """

    def __init__(self) -> None:
        self._condition = threading.Condition()
        self._watchers: dict[int, tuple[UpdateCallback, ErrorCallback]] = {}
        self._handles = itertools.count(1)
        self._sequence = 0
        self._latest: PositionFix | None = None
        self._latest_error: LocationUnavailable | None = None

    def watch_position(
        self,
        on_update: UpdateCallback,
        on_error: ErrorCallback,
        *,
        high_accuracy: bool = True,
        timeout: float = 15.0,
    ) -> int:
        with self._condition:
            handle = next(self._handles)
            self._watchers[handle] = (on_update, on_error)
        return handle

    def clear_watch(self, handle: Any) -> None:
        with self._condition:
            self._watchers.pop(handle, None)

    def push(self, fix: PositionFix) -> None:
        with self._condition:
            self._sequence += 1
            self._latest = fix
            self._latest_error = None
            watchers = list(self._watchers.values())
            self._condition.notify_all()
        for on_update, _ in watchers:
            on_update(fix)

    def fail(self, error: LocationUnavailable) -> None:
        with self._condition:
            self._sequence += 1
            self._latest = None
            self._latest_error = error
            watchers = list(self._watchers.values())
            self._condition.notify_all()
        for _, on_error in watchers:
            on_error(error)

    def get_current_position(self, *, high_accuracy: bool = True, timeout: float = 10.0) -> PositionFix:
        with self._condition:
            start = self._sequence
            arrived = self._condition.wait_for(lambda: self._sequence > start, timeout=timeout)
            if not arrived:
                raise LocationTimeout(f"No position reported within {timeout:.1f}s")
            if self._latest_error is not None:
                raise self._latest_error
            if self._latest is None:
                raise LocationUnavailable("Position report carried neither a fix nor an error")
            return self._latest

    @property
    def watcher_count(self) -> int:
        with self._condition:
            return len(self._watchers)
