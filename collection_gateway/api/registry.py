"""In-process registry of open collection sessions"""

import time
import logging
from typing import Callable, Dict, Optional

from collection_gateway.config import settings
from collection_gateway.domain.models import SessionContext
from collection_gateway.domain.session import CollectionSession


class SessionRegistry:
    """
    Holds one CollectionSession per open (lead, day) workspace.

    Sessions idle for longer than `idle_ttl_seconds` are dropped, and once
    `max_sessions` are open the least recently used one makes room for a new one.
    """

    def __init__(
        self,
        weekly_reset_scope: str | None = None,
        idle_ttl_seconds: float | None = None,
        max_sessions: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.weekly_reset_scope = weekly_reset_scope or settings.weekly_reset_scope
        self.idle_ttl_seconds = idle_ttl_seconds or settings.session_idle_ttl_seconds
        self.max_sessions = max_sessions or settings.max_open_sessions
        self.clock = clock
        self._sessions: Dict[str, CollectionSession] = {}
        self._last_used: Dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def open(self, context: SessionContext) -> CollectionSession:
        self.prune()
        while len(self._sessions) >= self.max_sessions:
            oldest = min(self._last_used, key=self._last_used.get)
            logging.info("Evicting least recently used session", extra={"session_id": oldest})
            self.close(oldest)

        session = CollectionSession(context, weekly_reset_scope=self.weekly_reset_scope)
        self._sessions[session.id] = session
        self._last_used[session.id] = self.clock()
        return session

    def get(self, session_id: str) -> Optional[CollectionSession]:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if self._expired(session_id):
            self.close(session_id)
            return None
        self._last_used[session_id] = self.clock()
        return session

    def close(self, session_id: str) -> bool:
        self._last_used.pop(session_id, None)
        return self._sessions.pop(session_id, None) is not None

    def prune(self) -> int:
        """Drop every idle session. Returns how many were dropped."""
        expired = [session_id for session_id in self._sessions if self._expired(session_id)]
        for session_id in expired:
            self.close(session_id)
        if expired:
            logging.info(f"Dropped {len(expired)} idle sessions")
        return len(expired)

    def _expired(self, session_id: str) -> bool:
        return self.clock() - self._last_used[session_id] > self.idle_ttl_seconds
