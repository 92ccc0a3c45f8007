"""
auth/store.py -- SQLAlchemy Core persistence layer for accounts.

Pattern: Repository + Data Mapper.
AccountStore is the repository; _row_to_account is the mapper.
Service and route code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

Concurrency:
  Username uniqueness is enforced by the UNIQUE constraint, not by a
  read-then-insert check. Two concurrent create() calls for the same name
  both reach the INSERT; the database lets exactly one commit and the other
  gets IntegrityError, surfaced as DuplicateUsername.

  update_credentials() and set_password() are single UPDATE statements keyed
  on the current username, so there is no read-modify-write window. A rename
  onto a taken username fails the constraint and leaves the row unchanged.

DB path: auth/credkeep.db unless DATABASE_URL says otherwise.

Layer rule: no imports from api/ or web/.
"""

from __future__ import annotations

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.errors import AccountNotFound, DuplicateUsername
from auth.models import Account

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_accounts = Table(
    "accounts",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("username", String(255), nullable=False, unique=True),  # case-sensitive
    Column("password_hash", Text, nullable=False),  # bcrypt digest
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AccountStore:
    """Repository for Account entities.

    Usage:
        store = AccountStore("sqlite:///accounts.db")
        account_id = store.create("alice", hasher.hash("secret"))
        account = store.find_by_username("alice")
        store.close()
    """

    def __init__(self, db_url: str) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    def has_accounts(self) -> bool:
        """Return True if at least one account exists."""
        with self.engine.connect() as conn:
            result = conn.execute(select(func.count()).select_from(_accounts)).scalar()
        return (result or 0) > 0

    def create(self, username: str, password_hash: str) -> int:
        """Insert a new account and return its assigned ID.

        Raises DuplicateUsername if the username already exists.
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(_accounts.insert().values(username=username, password_hash=password_hash))
                conn.commit()
                return result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise DuplicateUsername() from exc

    def find_by_username(self, username: str) -> Account | None:
        """Look up an account by exact username (case-sensitive). Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(_accounts.select().where(_accounts.c.username == username)).fetchone()
        return _row_to_account(row) if row is not None else None

    def update_credentials(self, old_username: str, new_username: str, new_password_hash: str) -> None:
        """Rename an account and replace its hash in one statement.

        Raises AccountNotFound if old_username does not exist, DuplicateUsername
        if new_username belongs to a different account. Either way nothing is
        written.
        """
        try:
            with self.engine.connect() as conn:
                result = conn.execute(
                    _accounts.update()
                    .where(_accounts.c.username == old_username)
                    .values(username=new_username, password_hash=new_password_hash)
                )
                conn.commit()
        except IntegrityError as exc:
            raise DuplicateUsername() from exc
        if result.rowcount == 0:
            raise AccountNotFound()

    def set_password(self, username: str, new_password_hash: str) -> None:
        """Replace the password hash for username. Raises AccountNotFound if absent."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _accounts.update().where(_accounts.c.username == username).values(password_hash=new_password_hash)
            )
            conn.commit()
        if result.rowcount == 0:
            raise AccountNotFound()

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_account(row) -> Account:
    return Account(
        id=row.id,
        username=row.username,
        password_hash=row.password_hash,
    )
