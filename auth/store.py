"""
auth/store.py -- SQLAlchemy Core persistence layer for the User entity.

Pattern: Repository + Data Mapper.
UserStore is the repository; _row_to_user is the mapper. Route and session
code never touches SQL directly.

Errors:
  IntegrityError on the UNIQUE(username) constraint becomes DuplicateUsername.
  Every other SQLAlchemyError becomes StoreUnavailable, so callers only ever
  see the typed exceptions from auth/exceptions.py.

Security:
  All queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/, web/ or core/.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.exceptions import DuplicateUsername, StoreUnavailable
from auth.models import User

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    # Unique across providers: local accounts use the email, OAuth accounts
    # the provider's profile id.
    Column("username", String(255), nullable=False, unique=True),
    Column("hashed_password", Text),  # NULL for OAuth-only users
    Column("provider", String(30), nullable=False, server_default="local"),
    Column("email", String(255)),
    Column("secret", Text),  # NULL until the first submission
    Column("created_at", String(32), nullable=False),
    Column("last_login", String(32)),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked during writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore("sqlite:///secretshare.db")
        user_id = store.create_user(User(username="a@b.c", provider="local", hashed_password=...))
        store.set_secret(user_id, "I like pineapple on pizza")
        store.list_with_secrets()
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        try:
            _metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"could not initialise user store: {exc}") from exc

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        """Yield a connection, translating driver failures to StoreUnavailable.

        IntegrityError passes through untouched; create_user() turns it into
        DuplicateUsername.
        """
        try:
            with self.engine.connect() as conn:
                yield conn
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            raise StoreUnavailable(str(exc)) from exc

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self._connect() as conn:
                conn.execute(text("SELECT 1"))
        except StoreUnavailable:
            return False
        return True

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create_user(self, user: User) -> int:
        """Insert a new user and return its assigned database ID.

        Raises DuplicateUsername if the username is already taken, whatever
        provider owns it.
        """
        try:
            with self._connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        username=user.username,
                        hashed_password=user.hashed_password,
                        provider=user.provider,
                        email=user.email,
                        secret=user.secret,
                        created_at=_now_iso(),
                    )
                )
                conn.commit()
                return result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise DuplicateUsername(user.username) from exc

    def find_or_create(self, username: str, provider: str, email: str | None = None) -> tuple[User, bool]:
        """Return the user owning (username, provider), inserting it if absent.

        Returns (user, created). An existing record is returned as-is; email
        is only written on creation.

        If the username exists under a different provider, raises
        DuplicateUsername: usernames are unique across providers and an OAuth
        login must never adopt someone else's account.

        A concurrent insert of the same username is not an error. The loser
        of the race re-reads and returns the winner's row.
        """
        user = self.get_by_username(username)
        created = False
        if user is None:
            try:
                self.create_user(User(username=username, provider=provider, email=email))
                created = True
            except DuplicateUsername:
                pass
            user = self.get_by_username(username)
            if user is None:
                raise StoreUnavailable(f"user {username!r} vanished after insert")
        if user.provider != provider:
            raise DuplicateUsername(username)
        return user, created

    def set_secret(self, user_id: int, secret: str) -> bool:
        """Overwrite the user's secret. Returns False if user_id does not exist."""
        with self._connect() as conn:
            result = conn.execute(_users.update().where(_users.c.id == user_id).values(secret=secret))
            conn.commit()
        return result.rowcount > 0

    def update_last_login(self, user_id: int) -> None:
        """Stamp the current UTC time as last_login for the given user."""
        with self._connect() as conn:
            conn.execute(_users.update().where(_users.c.id == user_id).values(last_login=_now_iso()))
            conn.commit()

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self._connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def get_by_username(self, username: str) -> User | None:
        """Look up a user by exact username (case-sensitive). Returns None if not found."""
        with self._connect() as conn:
            row = conn.execute(_users.select().where(_users.c.username == username)).fetchone()
        return _row_to_user(row) if row is not None else None

    def list_with_secrets(self) -> list[User]:
        """Return every user whose secret is set, oldest account first."""
        with self._connect() as conn:
            rows = conn.execute(_users.select().where(_users.c.secret.is_not(None)).order_by(_users.c.id)).fetchall()
        return [_row_to_user(r) for r in rows]

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        username=row.username,
        hashed_password=row.hashed_password,
        provider=row.provider,
        email=row.email,
        secret=row.secret,
        created_at=row.created_at,
        last_login=row.last_login,
    )
