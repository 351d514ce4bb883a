"""Export queue items.

Item ids are chosen by the caller, so removing or updating an id that does not exist
raises :class:`~ExpenseKeeper.status.status.NotFoundException`.
"""
import logging
import sqlite3
from typing import List, Optional

from ..database import Database
from ..models import ExportQueueItem, ExportQueueUpdate, ExportStatus, UNSET
from ...status import status

EXPORT_QUEUE_COLUMNS = (
    'id, filename, file_path, file_uri, status, created_at, updated_at, '
    'uploaded_at, drive_file_id, last_error'
)


class ExportQueueRepository:

    def __init__(self, db: Database) -> None:
        self.db = db

    def list(self) -> List[ExportQueueItem]:
        """Return all items, oldest first."""
        with self.db.session() as conn:
            rows = conn.execute(
                f'SELECT {EXPORT_QUEUE_COLUMNS} FROM export_queue ORDER BY created_at ASC, rowid ASC'
            ).fetchall()
        return [ExportQueueItem.from_row(row) for row in rows]

    def get(self, item_id: str) -> Optional[ExportQueueItem]:
        with self.db.session() as conn:
            return self._get(conn, item_id)

    @staticmethod
    def _get(conn: sqlite3.Connection, item_id: str) -> Optional[ExportQueueItem]:
        row = conn.execute(
            f'SELECT {EXPORT_QUEUE_COLUMNS} FROM export_queue WHERE id = ? LIMIT 1',
            (item_id,)
        ).fetchone()
        return ExportQueueItem.from_row(row) if row is not None else None

    def insert(self, item_id: str, filename: str, file_path: str, file_uri: Optional[str] = None,
               state: ExportStatus = ExportStatus.Pending, last_error: Optional[str] = None) -> ExportQueueItem:
        """Insert a new item and return it as stored.

        Raises:
            sqlite3.IntegrityError: If the id already exists.
            status.RecordUnreadableException: If the inserted row cannot be read back.
        """
        with self.db.session() as conn:
            conn.execute(
                """
                INSERT INTO export_queue (
                    id, filename, file_path, file_uri, status,
                    created_at, updated_at, uploaded_at, drive_file_id, last_error
                ) VALUES (
                    ?, ?, ?, ?, ?,
                    (strftime('%Y-%m-%dT%H:%M:%fZ','now')),
                    (strftime('%Y-%m-%dT%H:%M:%fZ','now')),
                    NULL, NULL, ?
                )
                """,
                (item_id, filename, file_path, file_uri, ExportStatus(state).value, last_error)
            )
            item = self._get(conn, item_id)
            if item is None:
                raise status.RecordUnreadableException(f'Failed to load inserted export {item_id}.')

        logging.debug(f'Queued export {item_id} ({filename})')
        return item

    def update(self, item_id: str, update: ExportQueueUpdate) -> None:
        """Write the fields set on ``update``.

        An update with no fields set does not touch the database. Otherwise ``updated_at``
        is refreshed along with the given fields.

        Raises:
            status.NotFoundException: If no item has ``item_id``.
        """
        changes = update.changes()
        if not changes:
            return

        assignments = [f'{column} = ?' for column in changes]
        assignments.append("updated_at = (strftime('%Y-%m-%dT%H:%M:%fZ','now'))")
        sql = f'UPDATE export_queue SET {", ".join(assignments)} WHERE id = ?'

        with self.db.session() as conn:
            cursor = conn.execute(sql, (*changes.values(), item_id))
        if cursor.rowcount == 0:
            raise status.NotFoundException(f'Export queue item {item_id} not found.')

    def update_status(self, item_id: str, state: ExportStatus, last_error=UNSET, drive_file_id=UNSET,
                      uploaded_at=UNSET, file_path=UNSET, file_uri=UNSET, filename=UNSET) -> None:
        """Set the status of an item together with any of its other fields."""
        self.update(item_id, ExportQueueUpdate(
            status=state,
            last_error=last_error,
            drive_file_id=drive_file_id,
            uploaded_at=uploaded_at,
            file_path=file_path,
            file_uri=file_uri,
            filename=filename,
        ))

    def remove(self, item_id: str) -> None:
        """Delete an item.

        Raises:
            status.NotFoundException: If no item has ``item_id``.
        """
        with self.db.session() as conn:
            cursor = conn.execute('DELETE FROM export_queue WHERE id = ?', (item_id,))
        if cursor.rowcount == 0:
            raise status.NotFoundException(f'Export queue item {item_id} not found.')

    def clear_finished(self) -> int:
        """Delete all completed and failed items.

        Returns:
            int: The number of items deleted.
        """
        with self.db.session() as conn:
            cursor = conn.execute("DELETE FROM export_queue WHERE status IN ('completed','failed')")
        return max(cursor.rowcount, 0)
