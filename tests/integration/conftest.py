"""
Shared fixtures for integration tests.

Tests here run against a real PostgreSQL database (DATABASE_URL). When
the database cannot be reached they are skipped rather than failed.
"""

from collections.abc import Generator

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from src.adapters.repository.postgres import run_migrations
from src.config.settings import get_settings


@pytest.fixture(scope="session")
def pool() -> Generator[ConnectionPool, None, None]:
    """Migrated connection pool, or skip when PostgreSQL is unavailable."""
    pool = ConnectionPool(
        conninfo=get_settings().database_url,
        min_size=1,
        max_size=10,
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
def clean_database(request: pytest.FixtureRequest) -> Generator[None, None, None]:
    """Empty the service tables before each database test."""
    if "pool" not in request.fixturenames:
        yield
        return
    pool: ConnectionPool = request.getfixturevalue("pool")
    with pool.connection() as conn:
        conn.execute("DELETE FROM verification_codes")
        conn.execute("DELETE FROM user_profiles")
        conn.execute("DELETE FROM auth_users")
    yield
