"""Baseline rows created after migration.

Seeding is idempotent: the base currency placeholder is inserted only when the key is
missing, and default categories only when the categories table is empty.
"""
import logging
import sqlite3
from typing import Sequence

from .models import SettingKey

DEFAULT_CATEGORIES: Sequence[str] = (
    'Groceries',
    'Dining',
    'Transport',
    'Housing',
    'Utilities',
    'Health',
    'Entertainment',
    'Shopping',
    'Travel',
    'Other',
)


def ensure_base_currency_placeholder(conn: sqlite3.Connection) -> bool:
    """Insert an empty ``base_currency`` setting if the key is absent.

    Returns:
        bool: True if the placeholder was inserted.
    """
    row = conn.execute(
        'SELECT 1 FROM app_settings WHERE key = ? LIMIT 1',
        (SettingKey.BaseCurrency.value,)
    ).fetchone()
    if row is not None:
        return False

    conn.execute(
        'INSERT INTO app_settings (key, value) VALUES (?, NULL)',
        (SettingKey.BaseCurrency.value,)
    )
    logging.debug('Inserted base currency placeholder.')
    return True


def ensure_default_categories(conn: sqlite3.Connection,
                              names: Sequence[str] = DEFAULT_CATEGORIES) -> int:
    """Insert the default categories in one transaction if no category exists.

    Returns:
        int: The number of categories inserted.
    """
    count = conn.execute('SELECT COUNT(*) AS count FROM categories').fetchone()[0]
    if count > 0:
        return 0

    conn.execute('BEGIN')
    try:
        conn.executemany('INSERT INTO categories (name) VALUES (?)', [(name,) for name in names])
    except sqlite3.Error:
        if conn.in_transaction:
            conn.execute('ROLLBACK')
        raise
    conn.execute('COMMIT')

    logging.debug(f'Inserted {len(names)} default categories.')
    return len(names)


def seed_initial_data(conn: sqlite3.Connection) -> None:
    ensure_base_currency_placeholder(conn)
    ensure_default_categories(conn)
