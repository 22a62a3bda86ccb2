"""Session Store: the only owner of live question banks.

Sessions are keyed by owning user and session id. A separate owner index
maps a session id to its user so that a lookup by another user is answered
with Forbidden without reading the bank itself.
"""

import threading
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, Tuple

import redis

from db.redis_db import RedisDB
from logger import get_logger
from utils.config import SESSION_IDLE_SECONDS, SESSION_LOCK_TIMEOUT
from utils.errors import Forbidden, NotFound, SessionBusy
from utils.models import QuizSession

logger = get_logger(__name__)


class SessionStore(ABC):
    def __init__(
        self,
        idle_seconds: int = SESSION_IDLE_SECONDS,
        lock_timeout: float = SESSION_LOCK_TIMEOUT,
    ):
        self.idle_seconds = idle_seconds
        self.lock_timeout = lock_timeout

    @abstractmethod
    def put(self, session: QuizSession) -> None:
        """Stores (or replaces) a session and refreshes its idle timer."""

    @abstractmethod
    def get(self, session_id: str, user_id: str) -> QuizSession:
        """Returns the session or raises NotFound / Forbidden."""

    @abstractmethod
    def touch(self, session_id: str, user_id: str) -> None:
        """Refreshes the idle timer of an owned session."""

    @abstractmethod
    def delete(self, session_id: str, user_id: str) -> None:
        """Removes an owned session."""

    @abstractmethod
    def lock(self, session_id: str):
        """Context manager serializing mutations of one session."""

    def evict_idle(self) -> int:
        """Drops sessions idle for longer than the window. Returns the
        number evicted."""
        return 0

    @staticmethod
    def _check_owner(session_id: str, owner: str, user_id: str) -> None:
        if owner is None:
            raise NotFound()
        if owner != user_id:
            logger.warning(f"User {user_id} tried to access session owned by another user")
            raise Forbidden()


@dataclass
class _Entry:
    data: dict
    last_seen: float


class InMemorySessionStore(SessionStore):
    """Process-local store with idle eviction on a monotonic clock."""

    def __init__(
        self,
        idle_seconds: int = SESSION_IDLE_SECONDS,
        lock_timeout: float = SESSION_LOCK_TIMEOUT,
        clock: Callable[[], float] = time.monotonic,
    ):
        super().__init__(idle_seconds, lock_timeout)
        self.clock = clock
        self._guard = threading.RLock()
        self._entries: Dict[Tuple[str, str], _Entry] = {}
        self._owners: Dict[str, str] = {}
        self._locks: Dict[str, threading.Lock] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)

    def _is_idle(self, entry: _Entry, now: float) -> bool:
        return now - entry.last_seen > self.idle_seconds

    def _remove(self, session_id: str, user_id: str) -> None:
        self._entries.pop((user_id, session_id), None)
        self._owners.pop(session_id, None)
        lock = self._locks.get(session_id)
        if lock is not None and not lock.locked():
            del self._locks[session_id]

    def _owned_entry(self, session_id: str, user_id: str) -> _Entry:
        owner = self._owners.get(session_id)
        self._check_owner(session_id, owner, user_id)
        entry = self._entries.get((owner, session_id))
        if entry is None:
            raise NotFound()
        if self._is_idle(entry, self.clock()):
            logger.info(f"Session {session_id[:8]}... expired on access")
            self._remove(session_id, owner)
            raise NotFound()
        return entry

    def put(self, session: QuizSession) -> None:
        with self._guard:
            key = (session.user_id, session.session_id)
            self._entries[key] = _Entry(
                data=session.model_dump(mode="json"), last_seen=self.clock()
            )
            self._owners[session.session_id] = session.user_id
        logger.debug(f"Stored session {session.session_id[:8]}... ({session.status.value})")

    def get(self, session_id: str, user_id: str) -> QuizSession:
        with self._guard:
            entry = self._owned_entry(session_id, user_id)
            data = entry.data
        return QuizSession.model_validate(data)

    def touch(self, session_id: str, user_id: str) -> None:
        with self._guard:
            entry = self._owned_entry(session_id, user_id)
            entry.last_seen = self.clock()

    def delete(self, session_id: str, user_id: str) -> None:
        with self._guard:
            self._owned_entry(session_id, user_id)
            self._remove(session_id, user_id)
        logger.info(f"Deleted session {session_id[:8]}...")

    def evict_idle(self) -> int:
        now = self.clock()
        with self._guard:
            idle = [
                key for key, entry in self._entries.items() if self._is_idle(entry, now)
            ]
            for user_id, session_id in idle:
                self._remove(session_id, user_id)
        if idle:
            logger.info(f"Evicted {len(idle)} idle quiz sessions")
        return len(idle)

    @contextmanager
    def lock(self, session_id: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(session_id, threading.Lock())
        if not lock.acquire(timeout=self.lock_timeout):
            raise SessionBusy()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                # no session behind the id (unknown, foreign or just deleted)
                if (
                    session_id not in self._owners
                    and self._locks.get(session_id) is lock
                    and not lock.locked()
                ):
                    del self._locks[session_id]


class RedisSessionStore(SessionStore):
    """Shared store for multi-process deployments; idle eviction is the
    key TTL, refreshed on every touch."""

    def __init__(
        self,
        redis_db: RedisDB,
        idle_seconds: int = SESSION_IDLE_SECONDS,
        lock_timeout: float = SESSION_LOCK_TIMEOUT,
        prefix: str = "quiz",
    ):
        super().__init__(idle_seconds, lock_timeout)
        self.redis = redis_db
        self.prefix = prefix

    def _session_key(self, user_id: str, session_id: str) -> str:
        return f"{self.prefix}:session:{user_id}:{session_id}"

    def _owner_key(self, session_id: str) -> str:
        return f"{self.prefix}:owner:{session_id}"

    def _owner(self, session_id: str):
        record = self.redis.get(self._owner_key(session_id))
        if isinstance(record, dict):
            return record.get("user_id")
        return None

    def put(self, session: QuizSession) -> None:
        self.redis.set(
            self._session_key(session.user_id, session.session_id),
            session.model_dump(mode="json"),
            expiry=self.idle_seconds,
        )
        self.redis.set(
            self._owner_key(session.session_id),
            {"user_id": session.user_id},
            expiry=self.idle_seconds,
        )

    def get(self, session_id: str, user_id: str) -> QuizSession:
        self._check_owner(session_id, self._owner(session_id), user_id)
        data = self.redis.get(self._session_key(user_id, session_id))
        if not isinstance(data, dict):
            raise NotFound()
        return QuizSession.model_validate(data)

    def touch(self, session_id: str, user_id: str) -> None:
        self._check_owner(session_id, self._owner(session_id), user_id)
        if not self.redis.expire(self._session_key(user_id, session_id), self.idle_seconds):
            raise NotFound()
        self.redis.expire(self._owner_key(session_id), self.idle_seconds)

    def delete(self, session_id: str, user_id: str) -> None:
        self._check_owner(session_id, self._owner(session_id), user_id)
        self.redis.delete(
            self._session_key(user_id, session_id), self._owner_key(session_id)
        )
        logger.info(f"Deleted session {session_id[:8]}...")

    @contextmanager
    def lock(self, session_id: str) -> Iterator[None]:
        lock = self.redis.lock(
            f"{self.prefix}:lock:{session_id}",
            timeout=self.lock_timeout,
            blocking_timeout=self.lock_timeout,
        )
        if not lock.acquire():
            raise SessionBusy()
        try:
            yield
        finally:
            try:
                lock.release()
            except redis.exceptions.LockError:
                logger.warning(f"Lock for session {session_id[:8]}... expired before release")
