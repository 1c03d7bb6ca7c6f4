"""
PostgreSQL session-keyed stores - Implement PendingRegistrationStore and SessionStore.

Pending registrations live in the database rather than process memory so
that the two registration requests can be served by different instances.
Per-session serialisation uses SELECT ... FOR UPDATE inside an explicit
transaction: concurrent verify calls for the same session queue on the
row lock and each sees the attempt count left by the previous one. A
successful verification inserts the user on the same locked connection,
so each verify needs exactly one pooled connection.
"""

import secrets
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from psycopg import Connection
from psycopg_pool import ConnectionPool

from handinhand.domain.models import PendingRegistration, SessionUser, User

from .postgres import PostgresUserRepository, storage_errors


class PostgresPendingSlot:
    """Locked pending-registration row bound to an open transaction."""

    def __init__(
        self,
        conn: Connection,
        session_id: str,
        pending: PendingRegistration | None,
        users: PostgresUserRepository,
    ) -> None:
        self._conn = conn
        self._users = users
        self._session_id = session_id
        self.pending = pending

    def save(self, pending: PendingRegistration) -> None:
        """Insert or replace the session's pending registration."""
        sql = """
            INSERT INTO pending_registrations
                (session_id, email, display_name, password_hash, code_hash, issued_at, attempts)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (session_id) DO UPDATE
            SET email = EXCLUDED.email,
                display_name = EXCLUDED.display_name,
                password_hash = EXCLUDED.password_hash,
                code_hash = EXCLUDED.code_hash,
                issued_at = EXCLUDED.issued_at,
                attempts = EXCLUDED.attempts
        """
        self._conn.execute(
            sql,
            (
                self._session_id,
                pending.email,
                pending.display_name,
                pending.password_hash,
                pending.code_hash,
                pending.issued_at,
                pending.attempts,
            ),
        )
        self.pending = pending

    def discard(self) -> None:
        self._conn.execute(
            "DELETE FROM pending_registrations WHERE session_id = %s", (self._session_id,)
        )
        self.pending = None

    def promote(self) -> User:
        """Insert the user on this transaction's connection, then delete the row."""
        pending = self.pending
        user = self._users.insert(
            pending.email, pending.display_name, pending.password_hash, conn=self._conn
        )
        self.discard()
        return user


class PostgresPendingRegistrationStore:
    """
    Implements PendingRegistrationStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, pool: ConnectionPool, users: PostgresUserRepository) -> None:
        self._pool = pool
        self._users = users

    @contextmanager
    def locked(self, session_id: str) -> Iterator[PostgresPendingSlot]:
        """
        Yield the session's pending registration under a row lock.

        Commits on clean exit; any exception raised in the block rolls
        back every change made through the slot.
        """
        select_sql = """
            SELECT email, display_name, password_hash, code_hash, issued_at, attempts
            FROM pending_registrations
            WHERE session_id = %s
            FOR UPDATE
        """
        with storage_errors(), self._pool.connection() as conn, conn.transaction():
            row = conn.execute(select_sql, (session_id,)).fetchone()
            pending = None
            if row is not None:
                pending = PendingRegistration(
                    email=row[0],
                    display_name=row[1],
                    password_hash=row[2],
                    code_hash=row[3],
                    issued_at=row[4],
                    attempts=row[5],
                )
            yield PostgresPendingSlot(conn, session_id, pending, self._users)

    def discard(self, session_id: str) -> None:
        with storage_errors(), self._pool.connection() as conn:
            conn.execute("DELETE FROM pending_registrations WHERE session_id = %s", (session_id,))

    def purge_expired(self, older_than: datetime) -> int:
        """Delete pending registrations issued before older_than."""
        with storage_errors(), self._pool.connection() as conn:
            cursor = conn.execute(
                "DELETE FROM pending_registrations WHERE issued_at < %s", (older_than,)
            )
            return cursor.rowcount


class PostgresSessionStore:
    """
    Implements SessionStore protocol via psycopg3.

    Tokens are 32 random bytes, URL-safe encoded. Expiry is evaluated with
    database time so all instances agree on it.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def create(self, user_id: int, ttl_seconds: int) -> str:
        """Issue a session token; expired sessions are swept on the way."""
        token = secrets.token_urlsafe(32)
        sql = """
            INSERT INTO sessions (token, user_id, expires_at)
            VALUES (%s, %s, NOW() + %s * INTERVAL '1 second')
        """
        with storage_errors(), self._pool.connection() as conn:
            conn.execute("DELETE FROM sessions WHERE expires_at <= NOW()")
            conn.execute(sql, (token, user_id, ttl_seconds))
        return token

    def get_user(self, token: str) -> SessionUser | None:
        sql = """
            SELECT u.id, u.email, u.display_name
            FROM sessions s
            JOIN users u ON u.id = s.user_id
            WHERE s.token = %s AND s.expires_at > NOW()
        """
        with storage_errors(), self._pool.connection() as conn:
            row = conn.execute(sql, (token,)).fetchone()
        if row is None:
            return None
        return SessionUser(id=row[0], email=row[1], display_name=row[2])

    def delete(self, token: str) -> None:
        with storage_errors(), self._pool.connection() as conn:
            conn.execute("DELETE FROM sessions WHERE token = %s", (token,))

    def purge_expired(self) -> int:
        with storage_errors(), self._pool.connection() as conn:
            cursor = conn.execute("DELETE FROM sessions WHERE expires_at <= NOW()")
            return cursor.rowcount
