"""
PostgreSQL repository adapters - Implement the Code Store and profile ports.

This module provides the PostgreSQL implementations of the domain's
repository ports using psycopg3 with raw SQL.

Concurrency Design:
-------------------
1. **Rate-limited insert**: ``create_if_below_limit`` takes a transaction
   scoped advisory lock keyed on (lower(email), purpose), counts codes in
   the window and inserts in the same transaction. Concurrent issuers for
   one email serialize on the lock, so the limit cannot be overshot.

2. **Conditional transitions**: ``mark_verified`` and ``mark_used`` only
   update rows still in the expected state (and, for verify, with the
   expected attempt count). The caller learns from ``rowcount`` whether
   it won; a loser re-reads instead of double-counting.

3. **Caller-supplied time**: All timestamps come from the domain clock
   rather than ``NOW()``, so windows are evaluated consistently with the
   service logic.

Every psycopg error (including pool checkout timeouts) is translated to
DependencyUnavailable; driver messages are logged, never returned.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from src.domain.exceptions import DependencyUnavailable
from src.domain.models import NewVerificationCode, UserProfile, VerificationCode
from src.domain.ports import CodePurpose, CodeStatus

logger = logging.getLogger(__name__)

_CODE_COLUMNS = """
    id, email, verification_code, purpose, status, created_at, expires_at,
    verified_at, used_at, attempts, max_attempts, user_profile_id
"""


@contextmanager
def translate_errors(operation: str) -> Iterator[None]:
    """Re-raise psycopg failures as DependencyUnavailable."""
    try:
        yield
    except psycopg.Error as e:
        logger.error("Database error during %s: %s", operation, e)
        raise DependencyUnavailable("Database is temporarily unavailable") from e


def _to_code(row: dict[str, Any]) -> VerificationCode:
    return VerificationCode(
        id=str(row["id"]),
        email=row["email"],
        code=row["verification_code"],
        purpose=CodePurpose(row["purpose"]),
        status=CodeStatus(row["status"]),
        created_at=row["created_at"],
        expires_at=row["expires_at"],
        verified_at=row["verified_at"],
        used_at=row["used_at"],
        attempts=row["attempts"],
        max_attempts=row["max_attempts"],
        user_profile_id=row["user_profile_id"],
    )


class PostgresVerificationCodeRepository:
    """
    Implements VerificationCodeRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def count_issued_since(self, email: str, purpose: CodePurpose, since: datetime) -> int:
        sql = """
            SELECT COUNT(*) FROM verification_codes
            WHERE lower(email) = lower(%s) AND purpose = %s AND created_at >= %s
        """
        with translate_errors("count_issued_since"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (email, purpose.value, since))
                return cursor.fetchone()[0]

    def create_if_below_limit(
        self, new_code: NewVerificationCode, since: datetime, limit: int
    ) -> VerificationCode | None:
        """
        Count and insert under a per-(email, purpose) advisory lock.

        ``pg_advisory_xact_lock`` is released on commit, so the lock covers
        exactly the count + insert pair.

        Returns:
            Created record, or None if ``limit`` codes already exist in the window
        """
        lock_sql = "SELECT pg_advisory_xact_lock(hashtext(%s))"
        count_sql = """
            SELECT COUNT(*) AS issued FROM verification_codes
            WHERE lower(email) = lower(%s) AND purpose = %s AND created_at >= %s
        """
        insert_sql = f"""
            INSERT INTO verification_codes
                (email, verification_code, purpose, status, created_at, expires_at,
                 attempts, max_attempts, user_profile_id)
            VALUES (%s, %s, %s, 'pending', %s, %s, 0, %s, %s)
            RETURNING {_CODE_COLUMNS}
        """
        lock_key = f"{new_code.email.lower()}:{new_code.purpose.value}"

        with translate_errors("create_if_below_limit"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(lock_sql, (lock_key,))
                cursor.execute(count_sql, (new_code.email, new_code.purpose.value, since))
                if cursor.fetchone()["issued"] >= limit:
                    conn.commit()
                    return None

                cursor.execute(
                    insert_sql,
                    (
                        new_code.email,
                        new_code.code,
                        new_code.purpose.value,
                        new_code.created_at,
                        new_code.expires_at,
                        new_code.max_attempts,
                        new_code.user_profile_id,
                    ),
                )
                row = cursor.fetchone()
                conn.commit()
                return _to_code(row)

    def find_latest_pending(
        self, email: str, code: str, purpose: CodePurpose
    ) -> VerificationCode | None:
        sql = f"""
            SELECT {_CODE_COLUMNS} FROM verification_codes
            WHERE lower(email) = lower(%s)
              AND verification_code = %s
              AND purpose = %s
              AND status = 'pending'
            ORDER BY created_at DESC
            LIMIT 1
        """
        with translate_errors("find_latest_pending"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(sql, (email, code, purpose.value))
                row = cursor.fetchone()
        return _to_code(row) if row is not None else None

    def mark_verified(self, code_id: str, expected_attempts: int, verified_at: datetime) -> bool:
        sql = """
            UPDATE verification_codes
            SET status = 'verified', verified_at = %s, attempts = attempts + 1
            WHERE id = %s AND status = 'pending' AND attempts = %s
        """
        with translate_errors("mark_verified"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (verified_at, code_id, expected_attempts))
                conn.commit()
                return cursor.rowcount == 1

    def find_latest_verified(self, email: str, purpose: CodePurpose) -> VerificationCode | None:
        sql = f"""
            SELECT {_CODE_COLUMNS} FROM verification_codes
            WHERE lower(email) = lower(%s) AND purpose = %s AND status = 'verified'
            ORDER BY verified_at DESC
            LIMIT 1
        """
        with translate_errors("find_latest_verified"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(sql, (email, purpose.value))
                row = cursor.fetchone()
        return _to_code(row) if row is not None else None

    def mark_used(self, code_id: str, used_at: datetime) -> bool:
        sql = """
            UPDATE verification_codes
            SET status = 'used', used_at = %s
            WHERE id = %s AND status = 'verified'
        """
        with translate_errors("mark_used"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (used_at, code_id))
                conn.commit()
                return cursor.rowcount == 1

    def count_all(self) -> int:
        with translate_errors("count_all"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute("SELECT COUNT(*) FROM verification_codes")
                return cursor.fetchone()[0]

    def count_created_since(self, since: datetime) -> int:
        with translate_errors("count_created_since"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(
                    "SELECT COUNT(*) FROM verification_codes WHERE created_at >= %s", (since,)
                )
                return cursor.fetchone()[0]


class PostgresProfileRepository:
    """
    Implements ProfileRepository protocol via psycopg3.

    Read-only: profiles are owned by the enrollment application.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def find_by_email(self, email: str) -> UserProfile | None:
        sql = """
            SELECT id, email, first_name, last_name, auth_user_id
            FROM user_profiles
            WHERE email = %s
            LIMIT 1
        """
        with translate_errors("find_profile_by_email"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(sql, (email,))
                row = cursor.fetchone()

        if row is None:
            return None
        return UserProfile(
            id=str(row["id"]),
            email=row["email"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            auth_user_id=str(row["auth_user_id"]) if row["auth_user_id"] is not None else None,
        )


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
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

            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
