"""Category records.

Names are trimmed before they are stored and are unique regardless of case. Deleting a
category is unconditional here; expenses referencing it are set to uncategorised by the
foreign key.
"""
import logging
import sqlite3
from typing import List, Optional

from ..database import Database
from ..models import Category
from ..validation import validate_category_name
from ...status import status

CATEGORY_COLUMNS = 'id, name, created_at, updated_at'


class CategoriesRepository:

    def __init__(self, db: Database) -> None:
        self.db = db

    @staticmethod
    def _normalise(name: str) -> str:
        message = validate_category_name(name)
        if message:
            raise status.ValidationException({'name': message})
        return name.strip()

    @staticmethod
    def _check_unique(conn: sqlite3.Connection, name: str, exclude_id: Optional[int] = None) -> None:
        row = conn.execute(
            'SELECT id FROM categories WHERE LOWER(name) = LOWER(?) LIMIT 1',
            (name,)
        ).fetchone()
        if row is not None and row['id'] != exclude_id:
            raise status.DuplicateCategoryException(f'"{name}"')

    def create(self, name: str) -> Category:
        """Insert a category.

        Raises:
            status.ValidationException: If the name is empty.
            status.DuplicateCategoryException: If the name is taken, ignoring case.
            status.InsertIdentityException: If the new row id cannot be determined.
            status.RecordUnreadableException: If the inserted row cannot be read back.
        """
        name = self._normalise(name)
        with self.db.session() as conn:
            self._check_unique(conn, name)
            cursor = conn.execute('INSERT INTO categories (name) VALUES (?)', (name,))
            category_id = cursor.lastrowid
            if not category_id:
                raise status.InsertIdentityException('Failed to create category.')

            category = self._get(conn, category_id)
            if category is None:
                raise status.RecordUnreadableException(f'Failed to load created category {category_id}.')

        logging.debug(f'Created category {category.id} "{category.name}"')
        return category

    def update(self, category_id: int, name: str) -> Category:
        """Rename a category.

        Raises:
            status.ValidationException: If the name is empty.
            status.DuplicateCategoryException: If another category has the name, ignoring case.
            status.NotFoundException: If no category has ``category_id``.
            status.RecordUnreadableException: If the updated row cannot be read back.
        """
        name = self._normalise(name)
        with self.db.session() as conn:
            self._check_unique(conn, name, exclude_id=category_id)
            cursor = conn.execute(
                """
                UPDATE categories
                SET name = ?,
                    updated_at = (strftime('%Y-%m-%dT%H:%M:%fZ','now'))
                WHERE id = ?
                """,
                (name, category_id)
            )
            if cursor.rowcount == 0:
                raise status.NotFoundException(f'Category {category_id} not found.')

            category = self._get(conn, category_id)
            if category is None:
                raise status.RecordUnreadableException(f'Failed to load updated category {category_id}.')

        return category

    def delete(self, category_id: int) -> None:
        with self.db.session() as conn:
            conn.execute('DELETE FROM categories WHERE id = ?', (category_id,))

    def get(self, category_id: int) -> Optional[Category]:
        with self.db.session() as conn:
            return self._get(conn, category_id)

    @staticmethod
    def _get(conn: sqlite3.Connection, category_id: int) -> Optional[Category]:
        row = conn.execute(
            f'SELECT {CATEGORY_COLUMNS} FROM categories WHERE id = ? LIMIT 1',
            (category_id,)
        ).fetchone()
        return Category.from_row(row) if row is not None else None

    def get_by_name(self, name: str) -> Optional[Category]:
        """Find a category by name, ignoring case and surrounding whitespace."""
        with self.db.session() as conn:
            row = conn.execute(
                f'SELECT {CATEGORY_COLUMNS} FROM categories WHERE LOWER(name) = LOWER(?) LIMIT 1',
                (name.strip(),)
            ).fetchone()
        return Category.from_row(row) if row is not None else None

    def list(self) -> List[Category]:
        """Return all categories sorted by name, ignoring case."""
        with self.db.session() as conn:
            rows = conn.execute(
                f'SELECT {CATEGORY_COLUMNS} FROM categories ORDER BY name COLLATE NOCASE ASC'
            ).fetchall()
        return [Category.from_row(row) for row in rows]
