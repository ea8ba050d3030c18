"""
Shared fixtures for adversarial tests.

Wires the real PostgreSQL code store into PasswordResetService so that
attack simulations exercise the database's concurrency guarantees.
Users and email delivery come from the in-memory fakes.
"""

from collections.abc import Generator

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from src.adapters.repository.postgres import PostgresVerificationCodeRepository, run_migrations
from src.config.settings import get_settings
from src.domain.codes import CodeGenerator, SystemClock
from src.domain.password_reset import PasswordResetService
from src.domain.rate_limit import RateLimiter
from src.domain.users import UserResolver


@pytest.fixture(scope="module")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool for adversarial tests, or skip without PostgreSQL."""
    pool = ConnectionPool(
        conninfo=get_settings().database_url,
        min_size=1,
        max_size=20,
        open=True,
    )
    try:
        pool.wait(timeout=3.0)
    except PoolTimeout:
        pool.close()
        pytest.skip("PostgreSQL is not reachable")
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture(autouse=True)
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Clean verification_codes before each test."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM verification_codes")
    yield


@pytest.fixture
def repository(pool: ConnectionPool) -> PostgresVerificationCodeRepository:
    return PostgresVerificationCodeRepository(pool)


@pytest.fixture
def db_service(repository, profiles, identities, email_sender) -> PasswordResetService:
    """PasswordResetService over PostgreSQL with the wall clock."""
    return PasswordResetService(
        repository=repository,
        resolver=UserResolver.with_fallback(profiles, identities),
        email_sender=email_sender,
        identities=identities,
        rate_limiter=RateLimiter(repository=repository),
        generator=CodeGenerator(),
        clock=SystemClock(),
    )
