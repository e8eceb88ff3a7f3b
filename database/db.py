"""In-memory session registry."""
import time
from threading import Lock
from typing import Dict, Optional
from uuid import uuid4

from config import Config
from image.models import AppStatus
from image.session import GenerationSession
from utils.logger import get_logger

logger = get_logger("database")


class SessionStore:
    """A small thread-safe map of session id -> GenerationSession.

    - Nothing is written to disk; sessions live only as long as the process
    - Sessions idle for longer than ``ttl_seconds`` are pruned on access
    - A session with a generation in flight is never pruned
    """

    def __init__(self, ttl_seconds: Optional[float] = None):
        self._lock = Lock()
        self._sessions: Dict[str, GenerationSession] = {}
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else Config.SESSION_TTL_MINUTES * 60

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    @staticmethod
    def new_id() -> str:
        return uuid4().hex

    def get(self, session_id: Optional[str]) -> Optional[GenerationSession]:
        if not session_id:
            return None
        with self._lock:
            return self._sessions.get(session_id)

    def get_or_create(self, session_id: Optional[str] = None) -> GenerationSession:
        """Return the session for ``session_id``, creating a fresh one if unknown."""
        self.prune()
        with self._lock:
            session = self._sessions.get(session_id) if session_id else None
            if session is None:
                session = GenerationSession(session_id or self.new_id())
                self._sessions[session.session_id] = session
                logger.info(f"Created session {session.session_id[:8]} ({len(self._sessions)} active)")
            session.touch()
            return session

    def remove(self, session_id: str) -> Optional[GenerationSession]:
        with self._lock:
            return self._sessions.pop(session_id, None)

    def prune(self, now: Optional[float] = None) -> int:
        """Drop idle sessions. Returns how many were removed."""
        if self.ttl_seconds <= 0:
            return 0
        now = time.monotonic() if now is None else now
        with self._lock:
            expired = [
                sid for sid, session in self._sessions.items()
                if session.status != AppStatus.LOADING and now - session.last_active > self.ttl_seconds
            ]
            for sid in expired:
                del self._sessions[sid]
        if expired:
            logger.info(f"Pruned {len(expired)} idle session(s)")
        return len(expired)


sessions = SessionStore()
