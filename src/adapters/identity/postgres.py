"""
PostgreSQL identity provider adapter - Implements IdentityProvider protocol.

Self-hosted alternative to the Supabase admin API, selected with
IDENTITY_BACKEND=postgres. Accounts live in the ``auth_users`` table and
passwords are stored as bcrypt hashes, never in plaintext.
"""

import logging

import bcrypt
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import translate_errors
from src.domain.exceptions import DependencyUnavailable, InvalidInput
from src.domain.models import Identity

logger = logging.getLogger(__name__)

BCRYPT_MAX_BYTES = 72


class PostgresIdentityProvider:
    """
    Implements IdentityProvider protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, pool: ConnectionPool, bcrypt_cost: int = 10) -> None:
        """
        Initialize provider with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
            bcrypt_cost: bcrypt work factor for new password hashes
        """
        self._pool = pool
        self._bcrypt_cost = bcrypt_cost

    def list_identities(self) -> list[Identity]:
        sql = "SELECT id, email, raw_user_meta_data FROM auth_users ORDER BY email"
        with translate_errors("list_identities"):
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                cursor.execute(sql)
                rows = cursor.fetchall()
        return [
            Identity(id=str(row["id"]), email=row["email"], metadata=row["raw_user_meta_data"] or {})
            for row in rows
        ]

    def update_password(self, identity_id: str, new_password: str) -> None:
        """
        Replace the stored bcrypt hash for an identity.

        Raises:
            InvalidInput: If the password is longer than bcrypt accepts
            DependencyUnavailable: If the update fails or no row matches
        """
        if len(new_password.encode()) > BCRYPT_MAX_BYTES:
            raise InvalidInput(f"Password must be at most {BCRYPT_MAX_BYTES} bytes long")
        password_hash = self._hash_password(new_password)
        sql = """
            UPDATE auth_users
            SET password_hash = %s, updated_at = NOW()
            WHERE id = %s
        """
        with translate_errors("update_password"):
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (password_hash, identity_id))
                conn.commit()
                updated = cursor.rowcount == 1

        if not updated:
            logger.error("No auth_users row for identity %s", identity_id)
            raise DependencyUnavailable("Failed to update password")
        logger.info("Password updated for identity %s", identity_id)

    def ping(self) -> None:
        with translate_errors("ping"):
            with self._pool.connection() as conn:
                conn.execute("SELECT 1 FROM auth_users LIMIT 1")

    def _hash_password(self, password: str) -> str:
        """Hash password using bcrypt with the configured cost factor."""
        return bcrypt.hashpw(password.encode(), bcrypt.gensalt(rounds=self._bcrypt_cost)).decode()
