"""
Farmer Market - Session Store Tests
In-memory and SQLAlchemy-backed session adapters.
"""

import datetime

import pytest

from app.database import SessionLocal
from app.main import purge_expired_sessions
from app.models import User, UserSession
from Security.session_store import RequestIdentity, SqlSessionStore, hash_session_id


class SqlClock:
    def __init__(self):
        self.now = datetime.datetime(2026, 1, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += datetime.timedelta(seconds=seconds)


@pytest.fixture
def sql_clock():
    return SqlClock()


@pytest.fixture
def sql_store(db_tables, sql_clock):
    return SqlSessionStore(SessionLocal, clock=sql_clock)


# =============================================================================
# In-memory store
# =============================================================================

def test_memory_create_and_lookup(memory_store):
    session_id = memory_store.create(4, "buyer", 60)
    assert memory_store.lookup(session_id) == RequestIdentity(user_id=4, role="buyer")
    assert memory_store.lookup("unknown") is None


def test_memory_expiry_and_purge(memory_store, clock):
    short = memory_store.create(1, "buyer", 10)
    long = memory_store.create(2, "farmer", 100)
    clock.advance(10)
    assert memory_store.lookup(short) is None
    assert memory_store.purge_expired() == 1
    assert memory_store.lookup(long) == RequestIdentity(user_id=2, role="farmer")


def test_memory_invalidate(memory_store):
    session_id = memory_store.create(1, "admin", 60)
    memory_store.invalidate(session_id)
    memory_store.invalidate(session_id)
    assert memory_store.lookup(session_id) is None


def test_purge_job_tolerates_store_errors(caplog):
    class BrokenStore:
        def purge_expired(self):
            raise RuntimeError("database down")

    purge_expired_sessions(BrokenStore())
    assert "Session purge failed" in caplog.text


# =============================================================================
# SQL store
# =============================================================================

def test_sql_create_stores_only_hash(sql_store, seeded_users, db):
    session_id = sql_store.create(seeded_users["buyer"], "buyer", 3600)
    rows = db.query(UserSession).all()
    assert len(rows) == 1
    assert rows[0].token_hash == hash_session_id(session_id)
    assert rows[0].token_hash != session_id


def test_sql_lookup(sql_store, seeded_users):
    session_id = sql_store.create(seeded_users["farmer"], "farmer", 3600)
    assert sql_store.lookup(session_id) == RequestIdentity(user_id=seeded_users["farmer"], role="farmer")
    assert sql_store.lookup("missing") is None


def test_sql_lookup_expired(sql_store, seeded_users, sql_clock):
    session_id = sql_store.create(seeded_users["buyer"], "buyer", 60)
    sql_clock.advance(60)
    assert sql_store.lookup(session_id) is None


def test_sql_lookup_rejects_deactivated_user(sql_store, seeded_users, db):
    session_id = sql_store.create(seeded_users["farmer"], "farmer", 3600)
    db.query(User).filter(User.id == seeded_users["farmer"]).update({"is_active": False})
    db.commit()
    assert sql_store.lookup(session_id) is None


def test_sql_invalidate(sql_store, seeded_users):
    session_id = sql_store.create(seeded_users["admin"], "admin", 3600)
    sql_store.invalidate(session_id)
    assert sql_store.lookup(session_id) is None


def test_sql_purge_expired(sql_store, seeded_users, sql_clock, db):
    sql_store.create(seeded_users["buyer"], "buyer", 30)
    keep = sql_store.create(seeded_users["admin"], "admin", 3600)
    sql_clock.advance(31)
    assert sql_store.purge_expired() == 1
    assert db.query(UserSession).count() == 1
    assert sql_store.lookup(keep) is not None
