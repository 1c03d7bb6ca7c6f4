"""
PostgreSQL repository adapters - Implement UserRepository and ProductRepository.

This module provides the PostgreSQL implementations of the domain's
repository ports using psycopg3 with raw SQL.

Security Design - Timing Oracle Prevention:
------------------------------------------
verify_login always runs exactly one bcrypt comparison. When the email is
unknown it compares against _DUMMY_BCRYPT_HASH, so response time does not
reveal whether an account exists, and both failure cases raise the same
InvalidCredentials.

Uniqueness:
-----------
users.email carries a UNIQUE constraint. insert() relies on it and maps
UniqueViolation to DuplicateEmail; a prior find_by_email() is only a
fast-path rejection, never the authoritative check.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from decimal import Decimal
from pathlib import Path

import bcrypt
import psycopg
from psycopg import Connection, errors
from psycopg_pool import ConnectionPool

from handinhand.domain.credentials import BcryptHasher
from handinhand.domain.exceptions import DuplicateEmail, InvalidCredentials, StorageUnavailable
from handinhand.domain.models import Product, User

logger = logging.getLogger(__name__)

# Pre-computed bcrypt hash for timing oracle prevention.
# Used when email doesn't exist to ensure constant-time password comparison.
_DUMMY_BCRYPT_HASH = bcrypt.hashpw(b"dummy_password_for_timing_safety", bcrypt.gensalt(10)).decode()

_USER_COLUMNS = "id, email, display_name, password_hash, created_at"
_PRODUCT_COLUMNS = "id, name, description, price, image_url, producer_id, created_at"


@contextmanager
def storage_errors() -> Iterator[None]:
    """Translate connection-level psycopg failures into StorageUnavailable."""
    try:
        yield
    except psycopg.OperationalError as e:
        logger.error("Database unavailable: %s", e)
        raise StorageUnavailable() from e


def _user_from_row(row: tuple) -> User:
    return User(
        id=row[0],
        email=row[1],
        display_name=row[2],
        password_hash=row[3],
        created_at=row[4],
    )


def _product_from_row(row: tuple) -> Product:
    return Product(
        id=row[0],
        name=row[1],
        description=row[2],
        price=row[3],
        image_url=row[4],
        producer_id=row[5],
        created_at=row[6],
    )


class PostgresUserRepository:
    """
    Implements UserRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool, hasher: BcryptHasher) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
            hasher: Credential hasher used by verify_login
        """
        self._pool = pool
        self._hasher = hasher

    def find_by_email(self, email: str) -> User | None:
        sql = f"SELECT {_USER_COLUMNS} FROM users WHERE email = %s"
        with storage_errors(), self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (email,))
            row = cursor.fetchone()
        return _user_from_row(row) if row is not None else None

    def get_by_id(self, user_id: int) -> User | None:
        sql = f"SELECT {_USER_COLUMNS} FROM users WHERE id = %s"
        with storage_errors(), self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (user_id,))
            row = cursor.fetchone()
        return _user_from_row(row) if row is not None else None

    def insert(
        self, email: str, display_name: str, password_hash: str, conn: Connection | None = None
    ) -> User:
        """
        Insert a committed user.

        The UNIQUE constraint on users.email is the authoritative check, so
        two sessions verifying the same email concurrently cannot both win.

        Args:
            email: Normalized email address
            display_name: Public name
            password_hash: bcrypt hash produced by the domain layer
            conn: Open connection to insert on (e.g. a locked pending slot's);
                the insert then commits with that connection's transaction

        Returns:
            The inserted User with its database-assigned id

        Raises:
            DuplicateEmail: If the email is already present
        """
        sql = f"""
            INSERT INTO users (email, display_name, password_hash)
            VALUES (%s, %s, %s)
            RETURNING {_USER_COLUMNS}
        """
        if conn is None:
            with storage_errors(), self._pool.connection() as own_conn:
                return self.insert(email, display_name, password_hash, conn=own_conn)

        # Inside an open transaction this is a savepoint, so a UniqueViolation
        # leaves the caller's transaction usable
        try:
            with conn.transaction(), conn.cursor() as cursor:
                cursor.execute(sql, (email, display_name, password_hash))
                row = cursor.fetchone()
        except errors.UniqueViolation as e:
            logger.info("Duplicate email rejected by storage: %s", email)
            raise DuplicateEmail(email) from e
        return _user_from_row(row)

    def verify_login(self, email: str, password: str) -> User:
        """
        Verify an email/password pair.

        Security measures:
        - Constant-time password verification via bcrypt
        - Dummy hash comparison for non-existent emails
        - Single InvalidCredentials for both failure cases

        Raises:
            InvalidCredentials: Unknown email or wrong password
        """
        user = self.find_by_email(email)
        stored_hash = user.password_hash if user is not None else _DUMMY_BCRYPT_HASH

        # CRITICAL: Always run the comparison, even for unknown emails
        password_valid = self._hasher.verify(password, stored_hash)

        if user is None or not password_valid:
            logger.info("Failed login for %s", email)
            raise InvalidCredentials()
        return user


class PostgresProductRepository:
    """Implements ProductRepository protocol via psycopg3."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def add(
        self,
        name: str,
        description: str,
        price: Decimal,
        image_url: str,
        producer_id: int,
    ) -> Product:
        sql = f"""
            INSERT INTO products (name, description, price, image_url, producer_id)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING {_PRODUCT_COLUMNS}
        """
        with storage_errors(), self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (name, description, price, image_url, producer_id))
            row = cursor.fetchone()
            conn.commit()
        return _product_from_row(row)

    def list_all(self) -> list[Product]:
        sql = f"SELECT {_PRODUCT_COLUMNS} FROM products ORDER BY created_at DESC, id DESC"
        with storage_errors(), self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql)
            rows = cursor.fetchall()
        return [_product_from_row(row) for row in rows]


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: handinhand/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)
                # pool.connection() commits on clean exit

            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
