"""Domain records returned by the repositories.

Records are immutable snapshots of a row. Repositories build them from ``sqlite3.Row``
objects and never hand out rows themselves.
"""
import enum
import sqlite3
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional


class ExportStatus(enum.StrEnum):
    """Lifecycle state of an export queue item."""
    Pending = 'pending'
    Uploading = 'uploading'
    Completed = 'completed'
    Failed = 'failed'


class SettingKey(enum.StrEnum):
    """Keys stored in the app_settings table."""
    BaseCurrency = 'base_currency'
    BiometricGateEnabled = 'biometric_gate_enabled'
    DriveFolderId = 'drive_folder_id'


class _Unset:
    """Marker for a field that should be left untouched by a sparse update."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return 'UNSET'

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


def _from_row(cls, row: sqlite3.Row):
    keys = row.keys()
    return cls(**{f.name: row[f.name] for f in fields(cls) if f.name in keys})


@dataclass(frozen=True)
class Category:
    id: int
    name: str
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> 'Category':
        return _from_row(cls, row)


@dataclass(frozen=True)
class Expense:
    id: int
    description: str
    amount_native: float
    currency_code: str
    fx_rate_to_base: float
    base_amount: float
    date: str
    category_id: Optional[int]
    notes: Optional[str]
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> 'Expense':
        return _from_row(cls, row)


@dataclass(frozen=True)
class ExportQueueItem:
    id: str
    filename: str
    file_path: str
    status: ExportStatus
    created_at: str
    updated_at: str
    file_uri: Optional[str] = None
    uploaded_at: Optional[str] = None
    drive_file_id: Optional[str] = None
    last_error: Optional[str] = None

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> 'ExportQueueItem':
        item = _from_row(cls, row)
        return replace(item, status=ExportStatus(item.status))


@dataclass(frozen=True)
class ExportQueueUpdate:
    """A sparse update of an export queue item.

    Fields left as :data:`UNSET` are not written. ``None`` is a value and clears the column.
    """
    filename: Any = UNSET
    file_path: Any = UNSET
    file_uri: Any = UNSET
    status: Any = UNSET
    uploaded_at: Any = UNSET
    drive_file_id: Any = UNSET
    last_error: Any = UNSET

    def changes(self) -> Dict[str, Any]:
        """Return the fields that are set, in column order."""
        result = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is UNSET:
                continue
            if f.name == 'status':
                value = ExportStatus(value).value
            result[f.name] = value
        return result
