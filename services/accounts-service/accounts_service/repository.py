"""Database repository for account data."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Tuple

from psycopg import errors
from psycopg import Error as PsycopgError
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool, PoolTimeout

from .domain.account import Account, Password
from .domain.errors import (
    AccountNotFoundError,
    DuplicateEmailError,
    InvariantViolation,
    StorageError,
)

EMAIL_UNIQUE_CONSTRAINT = "accounts_email_key"
DEFAULT_TIMEOUT_SECONDS = 30.0


@dataclass(slots=True)
class AccountRecord:
    """Row projection of the ``accounts`` table, in SELECT column order."""

    id: int
    created_at: datetime
    name: str
    email: str
    password_hash: bytes
    activated: bool
    version: int


class AccountRepository:
    """Postgres-backed account persistence."""

    def __init__(self, pool: ConnectionPool, timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        """Store the shared connection pool and the per-operation deadline."""
        self._pool = pool
        self._timeout = timeout_seconds

    def _statement_timeout(self, deadline: float) -> str:
        """Milliseconds left before ``deadline``, as a Postgres setting value."""
        remaining_ms = int((deadline - time.monotonic()) * 1000)
        return str(max(remaining_ms, 1))

    def insert(self, account: Account) -> Tuple[int, datetime, int]:
        """Insert ``account`` and return the store-assigned ``(id, created_at, version)``.

        Raises
        ------
        DuplicateEmailError
            If another account already holds the same email.
        StorageError
            On timeouts or any other database failure.
        """
        if account.password.hash is None:
            raise InvariantViolation("refusing to persist an account without a password hash")
        deadline = time.monotonic() + self._timeout
        try:
            with self._pool.connection(timeout=self._timeout) as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(
                        "SELECT set_config('statement_timeout', %s, true)",
                        (self._statement_timeout(deadline),),
                    )
                    cur.execute(
                        """
                        INSERT INTO accounts (name, email, password_hash, activated)
                        VALUES (%s, %s, %s, %s)
                        RETURNING id, created_at, version
                        """,
                        (account.name, account.email, account.password.hash, account.activated),
                    )
                    row = cur.fetchone()
                conn.commit()
        except errors.UniqueViolation as exc:
            if exc.diag.constraint_name == EMAIL_UNIQUE_CONSTRAINT:
                raise DuplicateEmailError(account.email) from exc
            raise StorageError("account insert violated an unexpected unique constraint") from exc
        except PoolTimeout as exc:
            raise StorageError("timed out waiting for a database connection") from exc
        except errors.QueryCanceled as exc:
            raise StorageError("account insert timed out") from exc
        except PsycopgError as exc:
            raise StorageError("account insert failed") from exc

        return row[0], row[1], row[2]

    def get_by_email(self, email: str) -> Account:
        """Fetch the account registered under ``email``.

        Raises
        ------
        AccountNotFoundError
            If no account uses this email.
        StorageError
            On timeouts or any other database failure.
        """
        deadline = time.monotonic() + self._timeout
        try:
            with self._pool.connection(timeout=self._timeout) as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(
                        "SELECT set_config('statement_timeout', %s, true)",
                        (self._statement_timeout(deadline),),
                    )
                    cur.execute(
                        """
                        SELECT id, created_at, name, email, password_hash, activated, version
                        FROM accounts
                        WHERE email = %s
                        """,
                        (email,),
                    )
                    row = cur.fetchone()
        except PoolTimeout as exc:
            raise StorageError("timed out waiting for a database connection") from exc
        except errors.QueryCanceled as exc:
            raise StorageError("account lookup timed out") from exc
        except PsycopgError as exc:
            raise StorageError("account lookup failed") from exc

        if not row:
            raise AccountNotFoundError(email)
        return self._map_record(AccountRecord(*row))

    def _map_record(self, record: AccountRecord) -> Account:
        """Convert a row projection into the domain ``Account`` dataclass."""
        return Account(
            id=record.id,
            created_at=record.created_at,
            name=record.name,
            email=record.email,
            password=Password(hash=bytes(record.password_hash)),
            activated=record.activated,
            version=record.version,
        )
