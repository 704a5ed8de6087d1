"""
auth/store.py -- SQLAlchemy Core persistence layer for auth entities.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user / _row_to_refresh_token are the
mappers. Service and route code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(email) is enforced by the schema. create_user() lets the resulting
  IntegrityError propagate so the caller can turn a concurrent duplicate
  sign-up into the same error as a sequential one.

  refresh_tokens.revoked only ever moves 0 -> 1. No method sets it back.
  claim_refresh_token() makes that transition the single-use gate for
  refresh rotation.

UserStore is synchronous. The async facade the auth core consumes lives in
auth/repository.py and moves every call off the event loop.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, ForeignKey, Integer, MetaData, String, Table, Text, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from auth.models import RefreshToken, User

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False, unique=True),  # case-sensitive
    Column("name", String(255), nullable=False),
    Column("password", Text, nullable=False),  # bcrypt hash
    Column("created_at", String(32), nullable=False),
)

_refresh_tokens = Table(
    "refresh_tokens",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("token", String(255), nullable=False, unique=True),
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("expires_at", String(32), nullable=False),  # ISO 8601 UTC
    Column("revoked", Integer, nullable=False, server_default="0"),
    Column("created_at", String(32), nullable=False),
)

# Columns update_user() accepts. Anything else is a programming error.
_USER_MUTABLE_FIELDS = {"name", "password"}


# ---------------------------------------------------------------------------
# SQLite connection setup
# ---------------------------------------------------------------------------


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign keys on every new connection.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _now_iso() -> str:
    return _now().isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User and RefreshToken entities.

    Usage:
        store = UserStore("sqlite:///:memory:")
        user = store.create_user("a@x.com", "A", hash_password("secret"))
        store.create_refresh_token("opaque", user.id, expires_at)
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        engine_kwargs: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            # A plain :memory: DB is per-connection. Pin a single connection so
            # worker threads (asyncio.to_thread) all see the same schema.
            # That connection is shared by concurrent threads, so each statement
            # must commit on its own: a pool-return rollback from one thread
            # would otherwise undo another thread's uncommitted write.
            if ":memory:" in db_url:
                engine_kwargs["poolclass"] = StaticPool
                engine_kwargs["isolation_level"] = "AUTOCOMMIT"
        self.engine: Engine = create_engine(db_url, connect_args=connect_args, **engine_kwargs)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_sqlite_pragmas)
        _metadata.create_all(self.engine)

    # ------------------------------------------------------------------
    # User queries
    # ------------------------------------------------------------------

    def create_user(self, email: str, name: str, hashed_password: str) -> User:
        """Insert a new user and return the stored record.

        Raises sqlalchemy.exc.IntegrityError if the email already exists.
        """
        created_at = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _users.insert().values(
                    email=email,
                    name=name,
                    password=hashed_password,
                    created_at=created_at,
                )
            )
            conn.commit()
            user_id = result.inserted_primary_key[0]
        return User(id=user_id, email=email, name=name, password=hashed_password, created_at=created_at)

    def get_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def update_user(self, user_id: int, **fields) -> bool:
        """Update mutable fields on an existing user.

        Accepted fields: name, password (already hashed). Unknown fields raise
        ValueError rather than being silently ignored.

        Returns True if a row was updated, False if user_id was not found.
        """
        unknown = set(fields) - _USER_MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {unknown!r}")
        if not fields:
            return False
        with self.engine.connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(**fields))
            conn.commit()
        return result.rowcount > 0

    # ------------------------------------------------------------------
    # Refresh token queries
    # ------------------------------------------------------------------

    def create_refresh_token(self, token: str, user_id: int, expires_at: datetime) -> RefreshToken:
        """Insert a new unrevoked refresh-token record and return it."""
        created_at = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _refresh_tokens.insert().values(
                    token=token,
                    user_id=user_id,
                    expires_at=expires_at.astimezone(timezone.utc).isoformat(),
                    revoked=0,
                    created_at=created_at,
                )
            )
            conn.commit()
            token_id = result.inserted_primary_key[0]
        return RefreshToken(
            id=token_id,
            token=token,
            user_id=user_id,
            expires_at=expires_at,
            revoked=False,
            created_at=created_at,
        )

    def get_refresh_token_with_user(self, token: str) -> tuple[RefreshToken, User] | None:
        """Return (record, owning user) for an opaque token, or None if unknown."""
        with self.engine.connect() as conn:
            record_row = conn.execute(_refresh_tokens.select().where(_refresh_tokens.c.token == token)).fetchone()
            if record_row is None:
                return None
            user_row = conn.execute(_users.select().where(_users.c.id == record_row.user_id)).fetchone()
        if user_row is None:
            return None
        return _row_to_refresh_token(record_row), _row_to_user(user_row)

    def get_user_refresh_tokens(self, user_id: int) -> list[RefreshToken]:
        """Return every refresh-token record for a user, oldest first."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _refresh_tokens.select()
                .where(_refresh_tokens.c.user_id == user_id)
                .order_by(_refresh_tokens.c.id)
            ).fetchall()
        return [_row_to_refresh_token(r) for r in rows]

    def delete_refresh_token(self, token_id: int) -> RefreshToken | None:
        """Delete a record by id and return it, or None if it did not exist."""
        with self.engine.connect() as conn:
            row = conn.execute(_refresh_tokens.select().where(_refresh_tokens.c.id == token_id)).fetchone()
            if row is None:
                return None
            conn.execute(_refresh_tokens.delete().where(_refresh_tokens.c.id == token_id))
            conn.commit()
        return _row_to_refresh_token(row)

    def claim_refresh_token(self, token_id: int) -> bool:
        """Revoke one record only if it is still unrevoked.

        The check and the write are a single UPDATE, so when several callers
        race on the same token exactly one sees rowcount 1.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _refresh_tokens.update()
                .where((_refresh_tokens.c.id == token_id) & (_refresh_tokens.c.revoked == 0))
                .values(revoked=1)
            )
            conn.commit()
        return result.rowcount == 1

    def revoke_all_user_refresh_tokens(self, user_id: int) -> int:
        """Set revoked on every currently unrevoked record for a user.

        Returns the number of records revoked.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _refresh_tokens.update()
                .where((_refresh_tokens.c.user_id == user_id) & (_refresh_tokens.c.revoked == 0))
                .values(revoked=1)
            )
            conn.commit()
        return result.rowcount

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(_users.select().limit(1))
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        name=row.name,
        password=row.password,
        created_at=row.created_at,
    )


def _row_to_refresh_token(row) -> RefreshToken:
    expires_at = datetime.fromisoformat(row.expires_at)
    if expires_at.tzinfo is None:
        expires_at = expires_at.replace(tzinfo=timezone.utc)
    return RefreshToken(
        id=row.id,
        token=row.token,
        user_id=row.user_id,
        expires_at=expires_at,
        revoked=bool(row.revoked),
        created_at=row.created_at,
    )
