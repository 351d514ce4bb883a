"""Versioned schema migrations for the local SQLite database.

Every migration runs inside its own transaction together with the ledger insert that
records it in ``schema_migrations``. A failing statement rolls the whole migration back,
so the database is always left at the last fully applied version.

Released migrations must never be edited. Schema changes are made by appending a new
:class:`Migration` with a higher version.
"""
import logging
import sqlite3
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from ..status import status

TIMESTAMP_DEFAULT = "(strftime('%Y-%m-%dT%H:%M:%fZ','now'))"


@dataclass(frozen=True)
class MigrationStatement:
    sql: str
    args: Tuple = field(default_factory=tuple)


@dataclass(frozen=True)
class Migration:
    version: int
    name: str
    statements: Tuple[MigrationStatement, ...]


MIGRATIONS: Tuple[Migration, ...] = (
    Migration(
        version=1,
        name='initial-schema',
        statements=(
            MigrationStatement(f"""
                CREATE TABLE IF NOT EXISTS categories (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL CHECK (LENGTH(name) > 0) UNIQUE,
                    created_at TEXT NOT NULL DEFAULT {TIMESTAMP_DEFAULT},
                    updated_at TEXT NOT NULL DEFAULT {TIMESTAMP_DEFAULT}
                );
            """),
            MigrationStatement(f"""
                CREATE TABLE IF NOT EXISTS expenses (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    description TEXT NOT NULL,
                    amount_native REAL NOT NULL CHECK (amount_native > 0),
                    currency_code TEXT NOT NULL CHECK (LENGTH(currency_code) = 3),
                    fx_rate_to_base REAL NOT NULL CHECK (fx_rate_to_base > 0),
                    base_amount REAL NOT NULL CHECK (base_amount >= 0),
                    date TEXT NOT NULL CHECK (LENGTH(date) = 10),
                    category_id INTEGER NULL,
                    notes TEXT NULL,
                    created_at TEXT NOT NULL DEFAULT {TIMESTAMP_DEFAULT},
                    updated_at TEXT NOT NULL DEFAULT {TIMESTAMP_DEFAULT},
                    FOREIGN KEY (category_id)
                        REFERENCES categories(id)
                        ON DELETE SET NULL
                        ON UPDATE CASCADE
                );
            """),
            MigrationStatement('CREATE INDEX IF NOT EXISTS idx_expenses_date ON expenses(date DESC);'),
            MigrationStatement('CREATE INDEX IF NOT EXISTS idx_expenses_category_id ON expenses(category_id);'),
            MigrationStatement("""
                CREATE TABLE IF NOT EXISTS app_settings (
                    key TEXT PRIMARY KEY,
                    value TEXT
                );
            """),
        ),
    ),
    Migration(
        version=2,
        name='export-queue',
        statements=(
            MigrationStatement(f"""
                CREATE TABLE IF NOT EXISTS export_queue (
                    id TEXT PRIMARY KEY,
                    filename TEXT NOT NULL,
                    file_path TEXT NOT NULL,
                    status TEXT NOT NULL CHECK (status IN ('pending','uploading','completed','failed')),
                    created_at TEXT NOT NULL DEFAULT {TIMESTAMP_DEFAULT},
                    updated_at TEXT NOT NULL DEFAULT {TIMESTAMP_DEFAULT},
                    last_error TEXT NULL
                );
            """),
            MigrationStatement('CREATE INDEX IF NOT EXISTS idx_export_queue_status ON export_queue(status);'),
        ),
    ),
    Migration(
        version=3,
        name='export-queue-metadata',
        statements=(
            MigrationStatement('ALTER TABLE export_queue ADD COLUMN uploaded_at TEXT NULL;'),
            MigrationStatement('ALTER TABLE export_queue ADD COLUMN drive_file_id TEXT NULL;'),
            MigrationStatement(
                'CREATE INDEX IF NOT EXISTS idx_export_queue_uploaded_at ON export_queue(uploaded_at);'),
            MigrationStatement(
                'CREATE INDEX IF NOT EXISTS idx_export_queue_drive_file_id ON export_queue(drive_file_id);'),
        ),
    ),
    Migration(
        version=4,
        name='export-queue-file-uri',
        statements=(
            MigrationStatement('ALTER TABLE export_queue ADD COLUMN file_uri TEXT NULL;'),
            MigrationStatement('UPDATE export_queue SET file_uri = file_path WHERE file_uri IS NULL;'),
        ),
    ),
)


def latest_migration_version(migrations: Sequence[Migration] = MIGRATIONS) -> int:
    """Return the highest known schema version without touching the database."""
    return max((m.version for m in migrations), default=0)


def ensure_migrations_table(conn: sqlite3.Connection) -> None:
    conn.execute(f"""
        CREATE TABLE IF NOT EXISTS schema_migrations (
            version INTEGER PRIMARY KEY,
            name TEXT NOT NULL,
            applied_at TEXT NOT NULL DEFAULT {TIMESTAMP_DEFAULT}
        );
    """)


def current_version(conn: sqlite3.Connection) -> int:
    """Return the highest applied version recorded in the ledger, 0 for a fresh database.

    Args:
        conn (sqlite3.Connection): An open connection. The ledger table must exist.
    """
    row = conn.execute('SELECT MAX(version) AS version FROM schema_migrations').fetchone()
    if row is None or row[0] is None:
        return 0
    return int(row[0])


def apply_migration(conn: sqlite3.Connection, migration: Migration) -> None:
    """Apply a single migration atomically.

    Args:
        conn (sqlite3.Connection): A connection in autocommit mode (``isolation_level=None``).
        migration (Migration): The migration to apply.

    Raises:
        status.MigrationException: If any statement fails. Nothing of the migration is kept.
    """
    logging.debug(f'Applying migration {migration.version} "{migration.name}"')
    conn.execute('BEGIN')
    try:
        for statement in migration.statements:
            conn.execute(statement.sql, statement.args)
        conn.execute(
            'INSERT INTO schema_migrations (version, name) VALUES (?, ?)',
            (migration.version, migration.name)
        )
    except sqlite3.Error as ex:
        if conn.in_transaction:
            conn.execute('ROLLBACK')
        raise status.MigrationException(
            f'Migration {migration.version} "{migration.name}" failed: {ex}'
        ) from ex
    conn.execute('COMMIT')


def pending_migrations(version: int, migrations: Sequence[Migration] = MIGRATIONS) -> List[Migration]:
    """Return the migrations newer than ``version`` in ascending order."""
    return sorted((m for m in migrations if m.version > version), key=lambda m: m.version)


def run_migrations(conn: sqlite3.Connection, migrations: Optional[Sequence[Migration]] = None) -> List[int]:
    """Bring the database schema up to the latest version.

    Args:
        conn (sqlite3.Connection): A connection in autocommit mode.
        migrations (Sequence[Migration], optional): The migration list. Defaults to :data:`MIGRATIONS`.

    Returns:
        list[int]: The versions applied by this call, in order.

    Raises:
        status.MigrationException: If a migration fails. Earlier migrations stay applied.
    """
    migrations = MIGRATIONS if migrations is None else migrations

    ensure_migrations_table(conn)
    version = current_version(conn)

    applied = []
    for migration in pending_migrations(version, migrations):
        apply_migration(conn, migration)
        applied.append(migration.version)

    if applied:
        logging.info(f'Database migrated from version {version} to {applied[-1]}')
    else:
        logging.debug(f'Database schema is up to date (version {version})')
    return applied
