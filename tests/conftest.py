from __future__ import annotations

import itertools
from datetime import datetime, time, timezone
from typing import Any, Optional

import pytest

from housie_geo.errors import StoreError
from housie_geo.models.domain import (
    Cluster,
    ClusterParticipant,
    Coordinate,
    DropPoint,
    Imprint,
    OptimizationResult,
    PositionFix,
    TimeBlock,
)

MONTREAL = Coordinate(latitude=45.5017, longitude=-73.5673)


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakePositionSource:
    """Scripted position source; one-shot requests pop from ``responses``."""

    def __init__(self, *responses: Any) -> None:
        self.responses = list(responses)
        self.one_shot_calls = 0
        self.watchers: dict[int, tuple] = {}
        self.cleared: list[int] = []
        self.last_timeout: Optional[float] = None
        self._handles = itertools.count(1)

    def watch_position(self, on_update, on_error, *, high_accuracy, timeout):
        handle = next(self._handles)
        self.watchers[handle] = (on_update, on_error)
        return handle

    def clear_watch(self, handle):
        self.cleared.append(handle)
        self.watchers.pop(handle, None)

    def emit(self, coordinate: Coordinate, accuracy: float | None = None) -> None:
        for on_update, _ in list(self.watchers.values()):
            on_update(PositionFix(coordinate=coordinate, timestamp=0.0, accuracy_m=accuracy))

    def emit_error(self, error: Exception) -> None:
        for _, on_error in list(self.watchers.values()):
            on_error(error)

    def get_current_position(self, *, high_accuracy, timeout):
        self.one_shot_calls += 1
        self.last_timeout = timeout
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return PositionFix(coordinate=response, timestamp=0.0, accuracy_m=5.0)


class FakeStore:
    """In-memory stand-in for SupabaseStore."""

    def __init__(self) -> None:
        self.zones: list = []
        self.zones_error: Optional[Exception] = None
        self.drop_points: list[tuple[DropPoint, Optional[float]]] = []
        self.nearby_queries: list[tuple[Coordinate, float]] = []
        self.imprints: list[Imprint] = []
        self.clusters: dict[str, Cluster] = {}
        self.bids: set[tuple[str, str]] = set()
        self.participants: dict[str, list[ClusterParticipant]] = {}
        self.time_blocks: dict[str, list[TimeBlock]] = {}
        self.saved: dict[str, OptimizationResult] = {}
        self.save_error: Optional[Exception] = None
        self.tokens: dict[str, str] = {}
        self.calls: list[str] = []
        self._ids = itertools.count(1)

    def list_zones(self):
        self.calls.append("list_zones")
        if self.zones_error:
            raise self.zones_error
        return list(self.zones)

    def nearby_drop_points(self, coordinate, max_distance_m):
        self.nearby_queries.append((coordinate, max_distance_m))
        return list(self.drop_points)

    def log_imprint(self, user_id, coordinate, action_type, service_type=None, note=None):
        imprint = Imprint(
            id=f"imp-{next(self._ids)}",
            user_id=user_id,
            coordinate=coordinate,
            timestamp=datetime.now(timezone.utc),
            action_type=action_type,
            note=note,
            service_type=service_type,
            imprints_created=1,
        )
        self.imprints.append(imprint)
        return imprint

    def list_imprints(self, user_id, limit=50):
        return [imprint for imprint in reversed(self.imprints) if imprint.user_id == user_id][:limit]

    def get_cluster(self, cluster_id):
        self.calls.append("get_cluster")
        return self.clusters.get(cluster_id)

    def is_organizer(self, cluster_id, user_id):
        self.calls.append("is_organizer")
        cluster = self.clusters.get(cluster_id)
        return cluster is not None and cluster.organizer_id == user_id

    def has_bid(self, cluster_id, user_id):
        self.calls.append("has_bid")
        return (cluster_id, user_id) in self.bids

    def list_participants(self, cluster_id):
        self.calls.append("list_participants")
        return [p for p in self.participants.get(cluster_id, []) if p.unit_id]

    def list_time_blocks(self, cluster_id):
        self.calls.append("list_time_blocks")
        return list(self.time_blocks.get(cluster_id, []))

    def save_optimization_result(self, cluster_id, result):
        self.calls.append("save_optimization_result")
        if self.save_error:
            raise self.save_error
        self.saved[cluster_id] = result

    def resolve_user_id(self, token):
        return self.tokens.get(token)


def participant(unit_id: str | None, *preferences: str, user_id: str | None = None) -> ClusterParticipant:
    return ClusterParticipant(
        user_id=user_id or f"user-{unit_id}",
        display_name=f"Resident {unit_id}",
        unit_id=unit_id,
        preferred_time_blocks=list(preferences),
    )


def block(block_id: str, name: str, start: str, end: str) -> TimeBlock:
    return TimeBlock(id=block_id, name=name, start_time=time.fromisoformat(start), end_time=time.fromisoformat(end))


@pytest.fixture(autouse=True)
def reset_shared_state():
    from housie_geo.api.deps import get_session_registry
    from housie_geo.data.zones_repository import reset_zone_directory
    from housie_geo.db.supabase import get_supabase_client

    reset_zone_directory()
    get_session_registry.cache_clear()
    get_supabase_client.cache_clear()
    yield
    reset_zone_directory()
    get_session_registry.cache_clear()
    get_supabase_client.cache_clear()


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def failing_store_error() -> StoreError:
    return StoreError("Failed to load service zones: connection refused")
