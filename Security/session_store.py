"""
SESSION STORE
=============
Session lookup capability consumed by the authentication layer.

FLOW:
- Login creates a session and hands the opaque id to the browser.
- Authenticate calls lookup() on every protected request (read-only).
- Logout invalidates; the scheduler purges expired sessions.

HOW:
- Only a SHA-256 hash of the session id is stored, so a leaked table
  does not yield usable cookies.
- lookup() returns None for unknown, expired and deactivated sessions alike.
"""

from __future__ import annotations

import datetime
import hashlib
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Protocol

from sqlalchemy.orm import Session, sessionmaker

from Security.token_generator import generate_token
from app.models import User, UserSession


@dataclass(frozen=True)
class RequestIdentity:
    user_id: int
    role: str


class SessionStore(Protocol):
    def lookup(self, session_id: str) -> Optional[RequestIdentity]:
        ...

    def create(self, user_id: int, role: str, max_age: int) -> str:
        ...

    def invalidate(self, session_id: str) -> None:
        ...

    def purge_expired(self) -> int:
        ...


def hash_session_id(session_id: str) -> str:
    return hashlib.sha256(session_id.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class _MemorySession:
    user_id: int
    role: str
    expires_at: float


class InMemorySessionStore:
    """Process-local store for tests and single-process demos."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self._sessions: Dict[str, _MemorySession] = {}
        self._lock = threading.Lock()

    def lookup(self, session_id: str) -> Optional[RequestIdentity]:
        record = self._sessions.get(hash_session_id(session_id))
        if record is None or self.clock() >= record.expires_at:
            return None
        return RequestIdentity(user_id=record.user_id, role=record.role)

    def create(self, user_id: int, role: str, max_age: int) -> str:
        session_id = generate_token()
        record = _MemorySession(user_id=user_id, role=role, expires_at=self.clock() + max_age)
        with self._lock:
            self._sessions[hash_session_id(session_id)] = record
        return session_id

    def invalidate(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(hash_session_id(session_id), None)

    def purge_expired(self) -> int:
        now = self.clock()
        with self._lock:
            expired = [key for key, record in self._sessions.items() if now >= record.expires_at]
            for key in expired:
                del self._sessions[key]
        return len(expired)


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class SqlSessionStore:
    """Sessions persisted in the user_sessions table."""

    def __init__(self, session_factory: sessionmaker, clock: Callable[[], datetime.datetime] = _utcnow):
        self.session_factory = session_factory
        self.clock = clock

    def lookup(self, session_id: str) -> Optional[RequestIdentity]:
        db: Session = self.session_factory()
        try:
            row = (
                db.query(UserSession.user_id, UserSession.role)
                .join(User, User.id == UserSession.user_id)
                .filter(
                    UserSession.token_hash == hash_session_id(session_id),
                    UserSession.expires_at > self.clock(),
                    User.is_active.is_(True),
                )
                .first()
            )
        finally:
            db.close()
        if row is None:
            return None
        return RequestIdentity(user_id=row.user_id, role=row.role)

    def create(self, user_id: int, role: str, max_age: int) -> str:
        session_id = generate_token()
        now = self.clock()
        db: Session = self.session_factory()
        try:
            db.add(UserSession(
                token_hash=hash_session_id(session_id),
                user_id=user_id,
                role=role,
                created_at=now,
                expires_at=now + datetime.timedelta(seconds=max_age),
            ))
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
        return session_id

    def invalidate(self, session_id: str) -> None:
        db: Session = self.session_factory()
        try:
            db.query(UserSession).filter(UserSession.token_hash == hash_session_id(session_id)).delete()
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def purge_expired(self) -> int:
        db: Session = self.session_factory()
        try:
            removed = db.query(UserSession).filter(UserSession.expires_at <= self.clock()).delete()
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
        return removed
