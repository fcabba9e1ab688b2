"""
In-memory session table for the session coordinator.

Maps a user id to the token and profile location obtained at sign-on. Nothing
is persisted; a restart signs everyone off.

Locking: one guard lock protects the table itself, and each user id has its
own lock that callers hold for the whole of a state-changing operation
(``with store.hold(user_id): ...``). Operations on the same user serialize;
different users do not contend beyond the short guard section. A user's lock
exists only while some caller holds or waits on it, so the lock table never
outgrows the number of in-flight requests.
"""
from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterator, List, Optional

from .friends import Location


@dataclass(frozen=True)
class Session:
    token: str
    partition: str
    row: str
    signed_on_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def location(self) -> Location:
        return Location(self.partition, self.row)


@dataclass
class _UserLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


class SessionStore:
    def __init__(self):
        self._sessions: Dict[str, Session] = {}
        self._user_locks: Dict[str, _UserLock] = {}
        self._guard = threading.Lock()

    @contextmanager
    def hold(self, user_id: str) -> Iterator[None]:
        with self._guard:
            entry = self._user_locks.get(user_id)
            if entry is None:
                entry = self._user_locks[user_id] = _UserLock()
            entry.holders += 1
        try:
            with entry.lock:
                yield
        finally:
            # Drop the lock once nobody holds or waits on it.
            with self._guard:
                entry.holders -= 1
                if entry.holders == 0:
                    del self._user_locks[user_id]

    def lock_count(self) -> int:
        with self._guard:
            return len(self._user_locks)

    def get(self, user_id: str) -> Optional[Session]:
        with self._guard:
            return self._sessions.get(user_id)

    def add(self, user_id: str, session: Session) -> bool:
        """Insert unless a session already exists. True if inserted."""
        with self._guard:
            if user_id in self._sessions:
                return False
            self._sessions[user_id] = session
            return True

    def remove(self, user_id: str) -> Optional[Session]:
        with self._guard:
            return self._sessions.pop(user_id, None)

    def user_ids(self) -> List[str]:
        with self._guard:
            return sorted(self._sessions)

    def __contains__(self, user_id: str) -> bool:
        return self.get(user_id) is not None

    def __len__(self) -> int:
        with self._guard:
            return len(self._sessions)
