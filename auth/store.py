"""
auth/store.py -- SQLAlchemy Core persistence layer for users and sessions.

Pattern: Repository + Data Mapper.
UserStore and SessionStore are the repositories; _row_to_user is the mapper.
Route, strategy, and signup code never touch SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  UNIQUE(name) on users is the only guard against duplicate accounts; two
  concurrent signups for the same name race on the INSERT and the loser gets
  ConflictError.
  Session ids come from secrets.token_urlsafe(32). The browser only ever sees
  the id; the principal itself stays server-side.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

import json
import secrets
from datetime import datetime, timedelta, timezone

from sqlalchemy import Column, Integer, LargeBinary, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import ConflictError
from auth.models import SessionPrincipal, UserRecord

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
    Column("password", LargeBinary, nullable=False),  # scrypt digest
    Column("salt", LargeBinary, nullable=False),
    Column("email", String(255)),
    Column("age", Integer),
    Column("created_at", String(32), nullable=False),
)

_sessions = Table(
    "sessions",
    _metadata,
    Column("sid", String(64), primary_key=True),
    Column("data", Text, nullable=False),  # JSON-serialized SessionPrincipal
    Column("created_at", String(32), nullable=False),
    Column("expires_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# Engine helpers
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _make_engine(db_url: str) -> Engine:
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        # FastAPI runs sync handlers on a thread pool.
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _set_wal_mode)
    _metadata.create_all(engine)
    return engine


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _now_iso() -> str:
    return _now().isoformat()


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for UserRecord entities.

    Usage:
        store = UserStore("sqlite:///users.db")
        salt = generate_salt()
        store.create_user(UserRecord(name="alice", password_digest=calc_hash("pw", salt), salt=salt))
        user = store.get_by_name("alice")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        self.engine: Engine = _make_engine(db_url)

    def has_users(self) -> bool:
        """Return True if at least one user record exists."""
        with self.engine.connect() as conn:
            result = conn.execute(text("SELECT COUNT(*) FROM users")).scalar()
        return (result or 0) > 0

    def create_user(self, user: UserRecord) -> int:
        """Insert a new user and return its assigned database ID.

        Raises ConflictError if the name is already taken.
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        name=user.name,
                        password=bytes(user.password_digest),
                        salt=bytes(user.salt),
                        email=user.email,
                        age=user.age,
                        created_at=_now_iso(),
                    )
                )
                conn.commit()
                return result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise ConflictError("name", "That name is already taken.") from exc

    def get_by_name(self, name: str) -> UserRecord | None:
        """Look up a user by exact name (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.name == name)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> UserRecord | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


class SessionStore:
    """Server-side storage for serialized SessionPrincipal records.

    Each row is keyed by a random session id. Rows past expires_at are
    treated as absent and deleted when read; purge_expired() sweeps the rest.
    """

    def __init__(self, db_url: str, expire_seconds: int = 3600) -> None:
        self.engine: Engine = _make_engine(db_url)
        self.expire_seconds = expire_seconds

    def save(self, principal: SessionPrincipal) -> str:
        """Persist principal under a fresh session id and return the id."""
        sid = secrets.token_urlsafe(32)
        now = _now()
        with self.engine.connect() as conn:
            conn.execute(
                _sessions.insert().values(
                    sid=sid,
                    data=json.dumps(principal.to_dict()),
                    created_at=now.isoformat(),
                    expires_at=(now + timedelta(seconds=self.expire_seconds)).isoformat(),
                )
            )
            conn.commit()
        return sid

    def load(self, sid: str) -> SessionPrincipal | None:
        """Return the principal stored under sid, or None if unknown or expired."""
        if not sid:
            return None
        with self.engine.connect() as conn:
            row = conn.execute(_sessions.select().where(_sessions.c.sid == sid)).fetchone()
        if row is None:
            return None
        if datetime.fromisoformat(row.expires_at) <= _now():
            self.delete(sid)
            return None
        return SessionPrincipal.from_dict(json.loads(row.data))

    def delete(self, sid: str) -> bool:
        """Invalidate a session. Returns True if a row was removed."""
        with self.engine.connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.sid == sid))
            conn.commit()
        return result.rowcount > 0

    def purge_expired(self) -> int:
        """Delete every expired session row and return how many were removed."""
        with self.engine.connect() as conn:
            result = conn.execute(_sessions.delete().where(_sessions.c.expires_at <= _now_iso()))
            conn.commit()
        return result.rowcount

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> UserRecord:
    return UserRecord(
        id=row.id,
        name=row.name,
        password_digest=bytes(row.password),
        salt=bytes(row.salt),
        email=row.email,
        age=row.age,
        created_at=row.created_at,
    )
