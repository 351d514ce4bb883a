"""Expense records."""
import logging
import sqlite3
from typing import Any, List, Optional

from ..database import Database
from ..models import Expense
from ...status import status

EXPENSE_COLUMNS = (
    'id, description, amount_native, currency_code, fx_rate_to_base, base_amount, '
    'date, category_id, notes, created_at, updated_at'
)


class ExpensesRepository:
    """CRUD and listing of expenses.

    ``base_amount`` is stored as given. Callers derive it from the native amount and rate.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    def create(self, description: str, amount_native: float, currency_code: str, fx_rate_to_base: float,
               base_amount: float, date: str, category_id: Optional[int] = None,
               notes: Optional[str] = None) -> Expense:
        """Insert a new expense and return it as stored.

        Raises:
            status.InsertIdentityException: If the new row id cannot be determined.
            status.RecordUnreadableException: If the inserted row cannot be read back.
            sqlite3.IntegrityError: If a column constraint rejects a value.
        """
        with self.db.session() as conn:
            cursor = conn.execute(
                """
                INSERT INTO expenses (
                    description, amount_native, currency_code, fx_rate_to_base,
                    base_amount, date, category_id, notes
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (description, amount_native, currency_code, fx_rate_to_base,
                 base_amount, date, category_id, notes)
            )
            expense_id = cursor.lastrowid
            if not expense_id:
                raise status.InsertIdentityException('Failed to determine inserted expense ID.')

            expense = self._get(conn, expense_id)
            if expense is None:
                raise status.RecordUnreadableException(f'Failed to load inserted expense {expense_id}.')

        logging.debug(f'Created expense {expense.id}')
        return expense

    def update(self, expense_id: int, description: str, amount_native: float, currency_code: str,
               fx_rate_to_base: float, base_amount: float, date: str, category_id: Optional[int] = None,
               notes: Optional[str] = None) -> Expense:
        """Replace all editable fields of an expense.

        Raises:
            status.NotFoundException: If no expense has ``expense_id``.
            status.RecordUnreadableException: If the updated row cannot be read back.
        """
        with self.db.session() as conn:
            cursor = conn.execute(
                """
                UPDATE expenses SET
                    description = ?,
                    amount_native = ?,
                    currency_code = ?,
                    fx_rate_to_base = ?,
                    base_amount = ?,
                    date = ?,
                    category_id = ?,
                    notes = ?,
                    updated_at = (strftime('%Y-%m-%dT%H:%M:%fZ','now'))
                WHERE id = ?
                """,
                (description, amount_native, currency_code, fx_rate_to_base,
                 base_amount, date, category_id, notes, expense_id)
            )
            if cursor.rowcount == 0:
                raise status.NotFoundException(f'Expense {expense_id} not found.')

            expense = self._get(conn, expense_id)
            if expense is None:
                raise status.RecordUnreadableException(f'Failed to load updated expense {expense_id}.')

        logging.debug(f'Updated expense {expense_id}')
        return expense

    def delete(self, expense_id: int) -> None:
        """Delete an expense. Deleting a missing id does nothing."""
        with self.db.session() as conn:
            cursor = conn.execute('DELETE FROM expenses WHERE id = ?', (expense_id,))
        if cursor.rowcount == 0:
            logging.debug(f'Expense {expense_id} was already deleted')

    def get(self, expense_id: int) -> Optional[Expense]:
        with self.db.session() as conn:
            return self._get(conn, expense_id)

    @staticmethod
    def _get(conn: sqlite3.Connection, expense_id: int) -> Optional[Expense]:
        row = conn.execute(
            f'SELECT {EXPENSE_COLUMNS} FROM expenses WHERE id = ? LIMIT 1',
            (expense_id,)
        ).fetchone()
        return Expense.from_row(row) if row is not None else None

    def list(self, category_id: Optional[int] = None, start_date: Optional[str] = None,
             end_date: Optional[str] = None, limit: Optional[int] = None,
             offset: Optional[int] = None) -> List[Expense]:
        """List expenses, newest first.

        Filters are combined with AND. Dates are inclusive.

        Args:
            category_id (int, optional): Only expenses of this category.
            start_date (str, optional): Earliest ISO date.
            end_date (str, optional): Latest ISO date.
            limit (int, optional): Maximum number of rows.
            offset (int, optional): Number of rows to skip.

        Returns:
            list[Expense]: Ordered by date descending, then id descending.
        """
        conditions: List[str] = []
        params: List[Any] = []

        if category_id is not None:
            conditions.append('category_id = ?')
            params.append(category_id)
        if start_date:
            conditions.append('date >= ?')
            params.append(start_date)
        if end_date:
            conditions.append('date <= ?')
            params.append(end_date)

        where_clause = f'WHERE {" AND ".join(conditions)}' if conditions else ''

        limit_clause = ''
        if limit is not None:
            limit_clause += ' LIMIT ?'
            params.append(limit)
        if offset is not None:
            limit_clause += ' OFFSET ?' if limit_clause else ' LIMIT -1 OFFSET ?'
            params.append(offset)

        sql = (
            f'SELECT {EXPENSE_COLUMNS} FROM expenses {where_clause} '
            f'ORDER BY date DESC, id DESC{limit_clause}'
        )
        with self.db.session() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [Expense.from_row(row) for row in rows]

    def count_by_category(self, category_id: int) -> int:
        with self.db.session() as conn:
            row = conn.execute(
                'SELECT COUNT(*) FROM expenses WHERE category_id = ?',
                (category_id,)
            ).fetchone()
        return int(row[0])
