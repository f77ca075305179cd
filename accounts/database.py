"""SQLite-backed persistence for user accounts."""
from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional, Protocol

from passlib.context import CryptContext

from .errors import ConflictError
from .models import UserAccount

DUPLICATE_EMAIL_MESSAGE = "email already registered"

_pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# SQLite INTEGER is a signed 64-bit value.
_SQLITE_INTEGER_MIN = -(2**63)
_SQLITE_INTEGER_MAX = 2**63 - 1


class UserStore(Protocol):
    """Persistence capability required by the account service."""

    def find_one(
        self,
        *,
        id: Optional[int] = None,
        username: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Optional[UserAccount]: ...

    def list_accounts(self) -> List[UserAccount]: ...

    def create(self, *, email: str, username: str, password: str) -> UserAccount: ...

    def update(self, account_id: int, *, username: str) -> int: ...

    def delete(self, account_id: int) -> int: ...


def _ensure_directory(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def resolve_database_path(env_value: Optional[str]) -> Path:
    """Resolve the on-disk path for the accounts database."""

    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    base_dir = Path(__file__).resolve().parent.parent / "data"
    return (base_dir / "accounts.sqlite3").resolve(strict=False)


def _current_timestamp() -> datetime:
    return datetime.now(timezone.utc)


def _serialize_datetime(value: datetime) -> str:
    return value.isoformat()


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value)


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _storable_id(value: int) -> bool:
    return _SQLITE_INTEGER_MIN <= value <= _SQLITE_INTEGER_MAX


def _hash_password(password: str) -> str:
    return _pwd_context.hash(password)


def _verify_password(password: str, hashed: str) -> bool:
    try:
        return _pwd_context.verify(password, hashed)
    except ValueError:
        return False


class Database:
    """Simple wrapper around SQLite for persisting user accounts."""

    def __init__(self, path: Path) -> None:
        _ensure_directory(path)
        self._path = path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    def initialize(self) -> None:
        """Create the required tables if they do not already exist."""

        with self._session() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    email TEXT NOT NULL UNIQUE,
                    username TEXT NOT NULL,
                    password_hash TEXT NOT NULL,
                    created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_users_username ON users(username);
                """
            )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def find_one(
        self,
        *,
        id: Optional[int] = None,
        username: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Optional[UserAccount]:
        """Return the account matching exactly one of ``id``, ``username`` or ``email``."""

        filters = [
            (column, value)
            for column, value in (("id", id), ("username", username), ("email", email))
            if value is not None
        ]
        if len(filters) != 1:
            raise TypeError("find_one() expects exactly one of id, username or email")

        column, value = filters[0]
        if column == "email":
            value = _normalize_email(str(value))
        elif column == "id" and not _storable_id(int(value)):
            return None

        with self._session() as conn:
            row = conn.execute(
                f"SELECT * FROM users WHERE {column} = ? ORDER BY id LIMIT 1",
                (value,),
            ).fetchone()
        if row is None:
            return None
        return self._row_to_account(row)

    def list_accounts(self) -> List[UserAccount]:
        with self._session() as conn:
            rows = conn.execute("SELECT * FROM users ORDER BY id").fetchall()
        return [self._row_to_account(row) for row in rows]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def create(self, *, email: str, username: str, password: str) -> UserAccount:
        """Insert a new account and return it with its assigned id."""

        if not password:
            raise ValueError("Password must not be empty")

        created_at = _current_timestamp()
        normalized_email = _normalize_email(email)
        password_hash = _hash_password(password)

        with self._session() as conn:
            try:
                cursor = conn.execute(
                    """
                    INSERT INTO users (email, username, password_hash, created_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (
                        normalized_email,
                        username,
                        password_hash,
                        _serialize_datetime(created_at),
                    ),
                )
            except sqlite3.IntegrityError as exc:
                raise ConflictError(DUPLICATE_EMAIL_MESSAGE) from exc

            account_id = cursor.lastrowid

        return UserAccount(
            id=int(account_id),
            email=normalized_email,
            username=username,
            created_at=created_at,
        )

    def update(self, account_id: int, *, username: str) -> int:
        """Change the username of an account and return the affected row count."""

        if not _storable_id(account_id):
            return 0

        with self._session() as conn:
            cursor = conn.execute(
                "UPDATE users SET username = ? WHERE id = ?",
                (username, account_id),
            )
            return cursor.rowcount

    def delete(self, account_id: int) -> int:
        if not _storable_id(account_id):
            return 0
        with self._session() as conn:
            cursor = conn.execute("DELETE FROM users WHERE id = ?", (account_id,))
            return cursor.rowcount

    def verify_password(self, account_id: int, password: str) -> bool:
        """Return ``True`` if the supplied password matches the stored hash."""

        if not _storable_id(account_id):
            return False

        with self._session() as conn:
            row = conn.execute(
                "SELECT password_hash FROM users WHERE id = ?",
                (account_id,),
            ).fetchone()

        if row is None:
            return False

        stored_hash = row["password_hash"]
        if not stored_hash:
            return False

        return _verify_password(password, stored_hash)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _row_to_account(self, row: sqlite3.Row) -> UserAccount:
        return UserAccount(
            id=int(row["id"]),
            email=str(row["email"]),
            username=str(row["username"]),
            created_at=_parse_datetime(str(row["created_at"])),
        )


__all__ = ["DUPLICATE_EMAIL_MESSAGE", "Database", "UserStore", "resolve_database_path"]
