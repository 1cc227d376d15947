"""Per-session imprint engines for API clients."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable

from ...config import Settings, settings as default_settings
from ...errors import SessionNotFoundError
from .engine import ImprintEngine, ImprintStore
from .events import ImprintEventChannel
from .position import PushPositionSource

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ProximitySession:
    session_id: str
    owner_id: str
    source: PushPositionSource
    engine: ImprintEngine
    last_active: float


class SessionRegistry:
    """Holds one engine per client session; sessions never share cached positions.

    Sessions are created only by :meth:`open` and belong to the user who
    opened them. Every registry call first closes sessions idle for longer
    than ``idle_timeout``; a user opening more than ``max_per_user`` sessions
    loses the least recently used one.
    """

    def __init__(
        self,
        store_factory: Callable[[], ImprintStore],
        events: ImprintEventChannel | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        config: Settings | None = None,
    ) -> None:
        config = config or default_settings
        self._store_factory = store_factory
        self.events = events or ImprintEventChannel()
        self._clock = clock
        self.idle_timeout = config.session_idle_timeout_seconds
        self.max_per_user = config.max_sessions_per_user
        self._sessions: dict[str, ProximitySession] = {}
        self._lock = threading.Lock()

    def open(self, session_id: str, owner_id: str) -> ProximitySession:
        """Return the caller's session, creating it if the id is free."""
        stale: list[ProximitySession] = []
        with self._lock:
            now = self._clock()
            stale.extend(self._pop_idle(now))
            session = self._sessions.get(session_id)
            if session is not None:
                if session.owner_id != owner_id:
                    raise SessionNotFoundError(f"Session '{session_id}' not found")
                session.last_active = now
            else:
                owned = sorted(
                    (s for s in self._sessions.values() if s.owner_id == owner_id),
                    key=lambda s: s.last_active,
                )
                while len(owned) >= self.max_per_user:
                    stale.append(self._sessions.pop(owned.pop(0).session_id))
                source = PushPositionSource()
                engine = ImprintEngine(source, self._store_factory(), events=self.events)
                session = ProximitySession(
                    session_id=session_id,
                    owner_id=owner_id,
                    source=source,
                    engine=engine,
                    last_active=now,
                )
                self._sessions[session_id] = session
                logger.info(f"Opened proximity session {session_id} for user {owner_id}")
        self._shutdown(stale)
        return session

    def get(self, session_id: str, owner_id: str) -> ProximitySession:
        """Existing session owned by ``owner_id``.

        Raises:
            SessionNotFoundError: unknown id, expired, or owned by someone else.
        """
        with self._lock:
            now = self._clock()
            stale = self._pop_idle(now)
            session = self._sessions.get(session_id)
            if session is not None and session.owner_id == owner_id:
                session.last_active = now
        self._shutdown(stale)
        if session is None or session.owner_id != owner_id:
            raise SessionNotFoundError(f"Session '{session_id}' not found")
        return session

    def close(self, session_id: str, owner_id: str) -> bool:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None or session.owner_id != owner_id:
                return False
            del self._sessions[session_id]
        self._shutdown([session])
        return True

    def evict_idle(self) -> int:
        with self._lock:
            stale = self._pop_idle(self._clock())
        self._shutdown(stale)
        return len(stale)

    def _pop_idle(self, now: float) -> list[ProximitySession]:
        expired = [sid for sid, s in self._sessions.items() if now - s.last_active > self.idle_timeout]
        return [self._sessions.pop(sid) for sid in expired]

    def _shutdown(self, sessions: list[ProximitySession]) -> None:
        for session in sessions:
            session.engine.stop_watching()
            logger.info(f"Closed proximity session {session.session_id}")

    def __contains__(self, session_id: str) -> bool:
        with self._lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
