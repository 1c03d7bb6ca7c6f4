"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- In-memory port implementations (see tests/fakes.py)
- A controllable clock
- A registration service wired to those fakes with a cheap bcrypt cost
- A PostgreSQL pool for integration and adversarial tests (skipped when
  the database at DATABASE_URL is unreachable)
"""

from collections.abc import Generator

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from handinhand.adapters.repository import (
    PostgresPendingRegistrationStore,
    PostgresUserRepository,
    run_migrations,
)
from handinhand.config.settings import get_settings
from handinhand.domain.credentials import CodeGenerator
from handinhand.domain.registration import RegistrationService
from tests.fakes import (
    FAST_HASHER,
    FakeClock,
    InMemoryPendingStore,
    InMemoryUserRepository,
    RecordingNotifier,
)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def users() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def pending_store(users: InMemoryUserRepository) -> InMemoryPendingStore:
    return InMemoryPendingStore(users)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def service(
    users: InMemoryUserRepository,
    pending_store: InMemoryPendingStore,
    notifier: RecordingNotifier,
    clock: FakeClock,
) -> RegistrationService:
    return RegistrationService(
        users=users,
        pending_store=pending_store,
        notifier=notifier,
        hasher=FAST_HASHER,
        code_generator=CodeGenerator(),
        code_ttl_seconds=900,
        max_attempts=5,
        clock=clock,
    )


@pytest.fixture(scope="session")
def pg_pool() -> Generator[ConnectionPool, None, None]:
    """Connection pool against DATABASE_URL with migrations applied."""
    settings = get_settings()
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=10,
        open=True,
    )
    try:
        pool.wait(timeout=5.0)
    except PoolTimeout:
        pool.close()
        pytest.skip(f"PostgreSQL not reachable at {settings.database_url}")

    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def pool(pg_pool: ConnectionPool) -> ConnectionPool:
    """The shared pool, with every table emptied before the test."""
    with pg_pool.connection() as conn:
        conn.execute(
            "TRUNCATE sessions, pending_registrations, products, users RESTART IDENTITY CASCADE"
        )
    return pg_pool


@pytest.fixture
def pg_service(pool: ConnectionPool, notifier: RecordingNotifier) -> RegistrationService:
    """Registration service backed by PostgreSQL stores."""
    users = PostgresUserRepository(pool, FAST_HASHER)
    return RegistrationService(
        users=users,
        pending_store=PostgresPendingRegistrationStore(pool, users),
        notifier=notifier,
        hasher=FAST_HASHER,
        code_ttl_seconds=900,
        max_attempts=5,
    )
