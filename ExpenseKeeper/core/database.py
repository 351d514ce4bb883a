"""
Local SQLite database lifecycle.

:class:`Database` owns the single connection of the application. Opening it applies the
connection pragmas, runs the schema migrations and seeds the baseline rows, in that order
and only once. Repositories borrow the connection per call through :meth:`Database.session`
which serialises access, so migrations, seeding and ordinary reads and writes never
interleave.

The module-level :func:`get_database` returns a lazily opened shared instance for code that
does not construct its own.
"""

import contextlib
import logging
import pathlib
import sqlite3
import threading
from typing import Any, Callable, Iterator, Optional, TypeVar, Union

from . import migrations
from . import seeding
from ..settings import lib

T = TypeVar('T')


class Database:
    """Owner of the application's SQLite connection.

    Args:
        path (str | pathlib.Path): Location of the database file. Use ``':memory:'`` for a
            private in-memory database.
        timeout (float): Seconds to wait on a locked database.
        journal_mode (str): The journal mode pragma applied on open.
    """

    def __init__(self, path: Union[str, pathlib.Path], timeout: float = 5.0, journal_mode: str = 'WAL') -> None:
        self.path = path
        self.timeout = timeout
        self.journal_mode = journal_mode

        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    @classmethod
    def from_settings(cls) -> 'Database':
        """Create a database at the configured location using the ``database`` config section."""
        settings = lib.get_settings()
        config = settings.get_section('database')
        return cls(
            settings.db_path,
            timeout=float(config['busy_timeout']),
            journal_mode=config['journal_mode'],
        )

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> sqlite3.Connection:
        """Open the connection, migrate and seed. Subsequent calls return the open connection.

        Returns:
            sqlite3.Connection: The live connection.

        Raises:
            status.MigrationException: If a schema migration fails.
            sqlite3.Error: If the database cannot be opened or seeded.
        """
        with self._lock:
            if self._conn is not None:
                return self._conn

            if str(self.path) != ':memory:':
                pathlib.Path(self.path).parent.mkdir(parents=True, exist_ok=True)

            logging.debug(f'Opening database "{self.path}"')
            conn = sqlite3.connect(
                str(self.path),
                timeout=self.timeout,
                isolation_level=None,
                check_same_thread=False,
            )
            conn.row_factory = sqlite3.Row

            try:
                self._apply_pragmas(conn)
                migrations.run_migrations(conn)
                seeding.seed_initial_data(conn)
            except Exception:
                conn.close()
                raise

            self._conn = conn
            logging.info(f'Database ready at schema version {migrations.current_version(conn)}')
            return conn

    def _apply_pragmas(self, conn: sqlite3.Connection) -> None:
        conn.execute('PRAGMA foreign_keys = ON')
        mode = conn.execute(f'PRAGMA journal_mode = {self.journal_mode}').fetchone()
        logging.debug(f'Journal mode: {mode[0] if mode else "unknown"}')

    def close(self) -> None:
        """Close the connection. Closing a closed database does nothing."""
        with self._lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
            logging.debug(f'Closed database "{self.path}"')

    @contextlib.contextmanager
    def session(self) -> Iterator[sqlite3.Connection]:
        """Borrow the connection, opening the database first if needed.

        Yields:
            sqlite3.Connection: The connection. Do not keep it beyond the ``with`` block.
        """
        with self._lock:
            yield self.open()

    @contextlib.contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """Borrow the connection inside a transaction that commits on success and rolls back on error."""
        with self.session() as conn:
            conn.execute('BEGIN')
            try:
                yield conn
            except BaseException:
                if conn.in_transaction:
                    conn.execute('ROLLBACK')
                raise
            conn.execute('COMMIT')

    def with_database(self, callback: Callable[[sqlite3.Connection], T]) -> T:
        """Run ``callback`` with the borrowed connection and return its result."""
        with self.session() as conn:
            return callback(conn)

    def current_schema_version(self) -> int:
        with self.session() as conn:
            return migrations.current_version(conn)

    @staticmethod
    def expected_schema_version() -> int:
        return migrations.latest_migration_version()

    def __enter__(self) -> 'Database':
        self.open()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


database: Optional[Database] = None


def get_database() -> Database:
    """Return the shared database, creating and opening it on first use."""
    global database
    if database is None:
        database = Database.from_settings()
    database.open()
    return database


def close_database() -> None:
    """Close and forget the shared database."""
    global database
    if database is None:
        return
    database.close()
    database = None


def with_database(callback: Callable[[sqlite3.Connection], T]) -> T:
    return get_database().with_database(callback)
