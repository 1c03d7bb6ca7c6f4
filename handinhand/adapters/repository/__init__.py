"""Repository adapters - Database implementations."""

from .postgres import PostgresProductRepository, PostgresUserRepository, run_migrations
from .sessions import PostgresPendingRegistrationStore, PostgresSessionStore

__all__ = [
    "PostgresPendingRegistrationStore",
    "PostgresProductRepository",
    "PostgresSessionStore",
    "PostgresUserRepository",
    "run_migrations",
]
