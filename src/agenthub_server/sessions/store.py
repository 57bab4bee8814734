"""In-memory store of conversation sessions.

Sessions are keyed by agent id, plus one shared group session for the
orchestrator-side conversation. They live for the lifetime of the process.
Writes to one key are serialized through that key's lock; different keys
never contend.
"""

import asyncio
import logging
from datetime import datetime, timezone

from agenthub_server.sessions.types import ConversationSession

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class ConversationStore:
    """Holds one ConversationSession per key, created on first use."""

    def __init__(self) -> None:
        self._sessions: dict[str, ConversationSession] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def get(self, key: str) -> ConversationSession | None:
        return self._sessions.get(key)

    def get_or_create(self, key: str) -> ConversationSession:
        session = self._sessions.get(key)
        if session is None:
            now = _now()
            session = ConversationSession(key=key, created_at=now, updated_at=now)
            self._sessions[key] = session
            logger.debug(f"Created conversation session {key}")
        return session

    def session_token(self, key: str) -> str | None:
        session = self._sessions.get(key)
        return session.session_token if session else None

    def touch(self, session: ConversationSession) -> None:
        session.updated_at = _now()

    def clear(self, key: str) -> bool:
        """Forget the transcript and session token for ``key``.

        Returns:
            True if a session existed, False otherwise.
        """
        removed = self._sessions.pop(key, None)
        if removed is not None:
            logger.info(f"Cleared conversation session {key}")
        return removed is not None

    def keys(self) -> list[str]:
        return list(self._sessions)

    def lock(self, key: str) -> asyncio.Lock:
        """Return the writer lock for ``key``."""
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock
