"""Key/value application settings stored in the ``app_settings`` table."""
from typing import Dict, Optional

from ..database import Database


class SettingsRepository:
    """Upsert and read application settings.

    :meth:`get` returns None both for a missing key and for a key stored with a null value.
    Use :meth:`has` or :meth:`get_all` when the difference matters.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    def set(self, key: str, value: Optional[str]) -> None:
        with self.db.session() as conn:
            conn.execute(
                """
                INSERT INTO app_settings (key, value)
                VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, value)
            )

    def get(self, key: str) -> Optional[str]:
        with self.db.session() as conn:
            row = conn.execute(
                'SELECT value FROM app_settings WHERE key = ? LIMIT 1',
                (key,)
            ).fetchone()
        if row is None:
            return None
        return row['value']

    def has(self, key: str) -> bool:
        with self.db.session() as conn:
            row = conn.execute('SELECT 1 FROM app_settings WHERE key = ? LIMIT 1', (key,)).fetchone()
        return row is not None

    def get_all(self) -> Dict[str, Optional[str]]:
        """Return every stored setting, ordered by key."""
        with self.db.session() as conn:
            rows = conn.execute('SELECT key, value FROM app_settings ORDER BY key ASC').fetchall()
        return {row['key']: row['value'] for row in rows}

    def delete(self, key: str) -> None:
        with self.db.session() as conn:
            conn.execute('DELETE FROM app_settings WHERE key = ?', (key,))
