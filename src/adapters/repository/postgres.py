"""
PostgreSQL repository adapter - Implements RegistrationStore protocol.

This module provides the PostgreSQL implementation of the domain's
repository port using psycopg3 with raw SQL.

Concurrency Design - Exactly-Once Verification:
----------------------------------------------
1. **UNIQUE (email)**: The existence check in add_registration gives a
   friendly DuplicateEmail; the constraint catches the race between two
   concurrent inserts (UniqueViolation is mapped to DuplicateEmail).

2. **Conditional UPDATE**: verify_registration is one statement,
   ``UPDATE ... WHERE verification_token = %s AND status = 'pending' AND
   verification_expires_at >= NOW()``. PostgreSQL row locking serializes
   concurrent attempts; the loser re-evaluates the WHERE clause against the
   committed row, matches nothing and is reported as AlreadyVerified.

3. **Database time**: created_at, verification_expires_at and verified_at
   all come from NOW() so caller clock skew cannot shift the window.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import psycopg
from psycopg import errors
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from src.config.settings import Settings
from src.domain.exceptions import (
    AlreadyVerified,
    BackendUnavailable,
    DuplicateEmail,
    InvalidToken,
    TokenExpired,
)
from src.domain.ports import Registration, RegistrationStatus, Stats, StorageKind
from src.domain.registration import (
    VERIFICATION_TTL,
    generate_token,
    token_digest,
    validate_email,
    validate_full_name,
)
from src.domain.stats import advance_fake_base_count, build_stats

logger = logging.getLogger(__name__)

_COLUMNS = (
    "id, email, full_name, status, created_at, "
    "verification_token, verification_expires_at, verified_at"
)


def _to_registration(row: dict[str, Any]) -> Registration:
    return Registration(
        id=str(row["id"]),
        email=row["email"],
        full_name=row["full_name"],
        status=RegistrationStatus(row["status"]),
        created_at=row["created_at"],
        verification_token=row["verification_token"],
        verification_expires_at=row["verification_expires_at"],
        verified_at=row["verified_at"],
    )


class PostgresRegistrationRepository:
    """
    Implements RegistrationStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    kind = StorageKind.POSTGRES
    requires_full_name = True
    supports_full_name = True

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    @contextmanager
    def _cursor(self) -> Iterator[tuple[psycopg.Connection, psycopg.Cursor]]:
        """Connection and dict-row cursor; driver failures become BackendUnavailable."""
        try:
            with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
                yield conn, cursor
        except psycopg.OperationalError as e:
            logger.error(f"Database operation failed: {e}")
            raise BackendUnavailable("Database unavailable") from e

    def add_registration(self, email: str, full_name: str | None = None) -> Registration:
        """
        Insert a pending registration.

        Raises:
            InvalidEmail, InvalidFullName: Input validation
            DuplicateEmail: Existence check hit, or the UNIQUE constraint
                fired for a concurrent insert
        """
        normalized_email = validate_email(email)
        trimmed_name = validate_full_name(full_name, self.requires_full_name)

        insert_sql = f"""
            INSERT INTO registrations
                (email, full_name, status, verification_token, created_at, verification_expires_at)
            VALUES (%s, %s, 'pending', %s, NOW(), NOW() + %s)
            RETURNING {_COLUMNS}
        """

        with self._cursor() as (conn, cursor):
            cursor.execute("SELECT id FROM registrations WHERE email = %s", (normalized_email,))
            if cursor.fetchone() is not None:
                raise DuplicateEmail(normalized_email)

            try:
                cursor.execute(
                    insert_sql,
                    (normalized_email, trimmed_name, generate_token(), VERIFICATION_TTL),
                )
            except errors.UniqueViolation:
                conn.rollback()
                raise DuplicateEmail(normalized_email) from None
            row = cursor.fetchone()
            conn.commit()
        return _to_registration(row)

    def get_registration_by_token(self, token: str) -> Registration | None:
        if not token:
            return None
        with self._cursor() as (_, cursor):
            cursor.execute(
                f"SELECT {_COLUMNS} FROM registrations WHERE verification_token = %s", (token,)
            )
            row = cursor.fetchone()
        return _to_registration(row) if row is not None else None

    def verify_registration(self, token: str) -> Registration:
        """
        Consume ``token`` with a single conditional UPDATE.

        When the UPDATE matches nothing a diagnostic read picks the
        failure: expired token, consumed token, or unknown token.
        """
        if not token:
            raise InvalidToken("Invalid verification token")

        activate_sql = f"""
            UPDATE registrations
            SET status = 'registered',
                verified_at = NOW(),
                verification_token = NULL,
                verification_expires_at = NULL,
                verified_token_digest = %s
            WHERE verification_token = %s
              AND status = 'pending'
              AND verification_expires_at >= NOW()
            RETURNING {_COLUMNS}
        """

        diagnose_sql = """
            SELECT status, verification_expires_at < NOW() AS expired
            FROM registrations
            WHERE verification_token = %s
        """

        digest = token_digest(token)
        with self._cursor() as (conn, cursor):
            cursor.execute(activate_sql, (digest, token))
            row = cursor.fetchone()
            if row is not None:
                conn.commit()
                return _to_registration(row)

            cursor.execute(diagnose_sql, (token,))
            state = cursor.fetchone()
            if state is None:
                cursor.execute(
                    "SELECT 1 FROM registrations WHERE verified_token_digest = %s", (digest,)
                )
                consumed = cursor.fetchone() is not None
                conn.commit()
                if consumed:
                    raise AlreadyVerified("Email already verified")
                raise InvalidToken("Invalid verification token")

            conn.commit()
            if state["expired"]:
                raise TokenExpired("Verification token has expired")
            raise AlreadyVerified("Email already verified")

    def get_stats(self) -> Stats:
        """
        Count registrations and advance the stats singleton row.

        The floor is written with GREATEST so a concurrent writer holding
        an older value can never lower it.
        """
        counts_sql = """
            SELECT COUNT(*) FILTER (WHERE status = 'registered') AS registered,
                   COUNT(*) FILTER (WHERE status = 'pending') AS pending,
                   NOW() AS now
            FROM registrations
        """

        upsert_sql = """
            INSERT INTO stats (id, fake_base_count, last_updated)
            VALUES (1, %s, NOW())
            ON CONFLICT (id) DO UPDATE
            SET fake_base_count = GREATEST(stats.fake_base_count, EXCLUDED.fake_base_count),
                last_updated = NOW()
            RETURNING fake_base_count
        """

        with self._cursor() as (conn, cursor):
            cursor.execute(counts_sql)
            counts = cursor.fetchone()
            cursor.execute("SELECT fake_base_count FROM stats WHERE id = 1")
            stats_row = cursor.fetchone()
            stored = stats_row["fake_base_count"] if stats_row is not None else None

            fake_base_count, advanced = advance_fake_base_count(stored, counts["now"])
            if advanced:
                cursor.execute(upsert_sql, (fake_base_count,))
                fake_base_count = cursor.fetchone()["fake_base_count"]
            conn.commit()
        return build_stats(counts["registered"], counts["pending"], fake_base_count)

    def list_registrations(self) -> list[Registration]:
        with self._cursor() as (_, cursor):
            cursor.execute(f"SELECT {_COLUMNS} FROM registrations ORDER BY created_at DESC")
            rows = cursor.fetchall()
        return [_to_registration(row) for row in rows]

    def clear_registrations(self) -> None:
        with self._cursor() as (conn, cursor):
            cursor.execute("DELETE FROM registrations")
            conn.commit()
        logger.info("Database registrations cleared")

    def test_connection(self) -> bool:
        """Return True if the database answers SELECT 1."""
        try:
            with self._cursor() as (_, cursor):
                cursor.execute("SELECT 1")
            return True
        except BackendUnavailable:
            return False

    def close(self) -> None:
        self._pool.close()


def create_postgres_repository(settings: Settings) -> PostgresRegistrationRepository:
    """
    Open a connection pool, run migrations and wrap it in a repository.

    Raises:
        BackendUnavailable: Pool could not connect within db_connect_timeout
    """
    pool = ConnectionPool(
        conninfo=settings.conninfo,
        min_size=settings.pool_min_size,
        max_size=settings.pool_max_size,
        open=False,
    )
    try:
        pool.open(wait=True, timeout=settings.db_connect_timeout)
        run_migrations(pool)
    except Exception as e:
        pool.close()
        raise BackendUnavailable(f"Cannot connect to database: {e}") from e
    return PostgresRegistrationRepository(pool)


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
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise BackendUnavailable(f"Database migration failed: {sql_file.name}") from e
