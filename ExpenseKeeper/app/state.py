"""In-memory application state and its reducer.

:class:`AppState` is an immutable snapshot of everything the interface shows. It only changes
through :func:`reduce`, which takes the previous state and an :class:`Action` and returns the
next state without touching storage. Storage calls live in
:class:`~ExpenseKeeper.app.store.ExpenseStore`, which dispatches actions with the results.
"""
import enum
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Optional, Tuple

from ..core.dates import DatePreset
from ..core.models import UNSET, Category, Expense, ExportQueueItem, ExportStatus, SettingKey


@dataclass(frozen=True)
class Filters:
    """Expense list filters.

    ``category_id`` is :data:`~ExpenseKeeper.core.models.UNSET` for all categories, None for
    uncategorised expenses, or a category id. Dates are inclusive ISO dates.
    """
    category_id: Any = UNSET
    start_date: Optional[str] = None
    end_date: Optional[str] = None


@dataclass(frozen=True)
class AppState:
    loading: bool = False
    ready: bool = False
    busy: bool = False
    error: Optional[str] = None

    expenses: Tuple[Expense, ...] = ()
    categories: Tuple[Category, ...] = ()
    settings: Dict[str, Optional[str]] = field(default_factory=dict)
    export_queue: Tuple[ExportQueueItem, ...] = ()
    schema_version: int = 0

    filters: Filters = Filters()
    date_preset: str = DatePreset.AllTime

    uploading: bool = False
    last_upload: Any = None
    online: bool = True

    locked: bool = False
    lock_error: Optional[str] = None

    @property
    def base_currency(self) -> Optional[str]:
        return self.settings.get(SettingKey.BaseCurrency)

    @property
    def biometric_gate_enabled(self) -> bool:
        return self.settings.get(SettingKey.BiometricGateEnabled) == 'true'

    @property
    def drive_folder_id(self) -> Optional[str]:
        return self.settings.get(SettingKey.DriveFolderId)

    @property
    def pending_exports(self) -> Tuple[ExportQueueItem, ...]:
        return tuple(item for item in self.export_queue if item.status == ExportStatus.Pending)


class ActionType(enum.StrEnum):
    LoadStarted = enum.auto()
    LoadSucceeded = enum.auto()
    LoadFailed = enum.auto()

    OperationStarted = enum.auto()
    OperationSucceeded = enum.auto()
    OperationFailed = enum.auto()
    ErrorCleared = enum.auto()

    ExpenseSaved = enum.auto()
    ExpenseDeleted = enum.auto()
    CategorySaved = enum.auto()
    CategoryDeleted = enum.auto()
    SettingChanged = enum.auto()

    FiltersChanged = enum.auto()

    ExportQueueLoaded = enum.auto()
    UploadStarted = enum.auto()
    UploadFinished = enum.auto()
    OnlineChanged = enum.auto()

    Locked = enum.auto()
    Unlocked = enum.auto()
    UnlockFailed = enum.auto()


@dataclass(frozen=True)
class Action:
    type: ActionType
    payload: Any = None


@dataclass(frozen=True)
class Snapshot:
    """Everything read from storage by a full load."""
    expenses: Tuple[Expense, ...]
    categories: Tuple[Category, ...]
    settings: Dict[str, Optional[str]]
    export_queue: Tuple[ExportQueueItem, ...]
    schema_version: int


def _sort_expenses(expenses) -> Tuple[Expense, ...]:
    return tuple(sorted(expenses, key=lambda e: (e.date, e.id), reverse=True))


def _sort_categories(categories) -> Tuple[Category, ...]:
    return tuple(sorted(categories, key=lambda c: c.name.lower()))


def _load_started(state: AppState, action: Action) -> AppState:
    return replace(state, loading=True, error=None)


def _load_succeeded(state: AppState, action: Action) -> AppState:
    snapshot: Snapshot = action.payload
    return replace(
        state,
        loading=False,
        ready=True,
        expenses=tuple(snapshot.expenses),
        categories=tuple(snapshot.categories),
        settings=dict(snapshot.settings),
        export_queue=tuple(snapshot.export_queue),
        schema_version=snapshot.schema_version,
    )


def _load_failed(state: AppState, action: Action) -> AppState:
    return replace(state, loading=False, error=action.payload)


def _operation_started(state: AppState, action: Action) -> AppState:
    return replace(state, busy=True, error=None)


def _operation_succeeded(state: AppState, action: Action) -> AppState:
    return replace(state, busy=False)


def _operation_failed(state: AppState, action: Action) -> AppState:
    return replace(state, busy=False, uploading=False, error=action.payload)


def _error_cleared(state: AppState, action: Action) -> AppState:
    return replace(state, error=None)


def _expense_saved(state: AppState, action: Action) -> AppState:
    expense: Expense = action.payload
    others = (e for e in state.expenses if e.id != expense.id)
    return replace(state, expenses=_sort_expenses((*others, expense)))


def _expense_deleted(state: AppState, action: Action) -> AppState:
    return replace(state, expenses=tuple(e for e in state.expenses if e.id != action.payload))


def _category_saved(state: AppState, action: Action) -> AppState:
    category: Category = action.payload
    others = (c for c in state.categories if c.id != category.id)
    return replace(state, categories=_sort_categories((*others, category)))


def _category_deleted(state: AppState, action: Action) -> AppState:
    category_id = action.payload
    expenses = tuple(
        replace(e, category_id=None) if e.category_id == category_id else e
        for e in state.expenses
    )
    filters = state.filters
    if filters.category_id == category_id:
        filters = replace(filters, category_id=UNSET)
    return replace(
        state,
        categories=tuple(c for c in state.categories if c.id != category_id),
        expenses=expenses,
        filters=filters,
    )


def _setting_changed(state: AppState, action: Action) -> AppState:
    key, value = action.payload
    return replace(state, settings={**state.settings, str(key): value})


def _filters_changed(state: AppState, action: Action) -> AppState:
    filters, preset = action.payload
    return replace(state, filters=filters, date_preset=preset)


def _export_queue_loaded(state: AppState, action: Action) -> AppState:
    return replace(state, export_queue=tuple(action.payload))


def _upload_started(state: AppState, action: Action) -> AppState:
    return replace(state, uploading=True)


def _upload_finished(state: AppState, action: Action) -> AppState:
    summary, queue = action.payload
    settings = state.settings
    if summary is not None and summary.updated_folder_id:
        settings = {**settings, SettingKey.DriveFolderId.value: summary.updated_folder_id}
    return replace(
        state,
        uploading=False,
        last_upload=summary if summary is not None else state.last_upload,
        export_queue=tuple(queue),
        settings=settings,
    )


def _online_changed(state: AppState, action: Action) -> AppState:
    return replace(state, online=bool(action.payload))


def _locked(state: AppState, action: Action) -> AppState:
    return replace(state, locked=True, lock_error=None)


def _unlocked(state: AppState, action: Action) -> AppState:
    return replace(state, locked=False, lock_error=None)


def _unlock_failed(state: AppState, action: Action) -> AppState:
    return replace(state, locked=True, lock_error=action.payload)


REDUCERS: Dict[ActionType, Callable[[AppState, Action], AppState]] = {
    ActionType.LoadStarted: _load_started,
    ActionType.LoadSucceeded: _load_succeeded,
    ActionType.LoadFailed: _load_failed,
    ActionType.OperationStarted: _operation_started,
    ActionType.OperationSucceeded: _operation_succeeded,
    ActionType.OperationFailed: _operation_failed,
    ActionType.ErrorCleared: _error_cleared,
    ActionType.ExpenseSaved: _expense_saved,
    ActionType.ExpenseDeleted: _expense_deleted,
    ActionType.CategorySaved: _category_saved,
    ActionType.CategoryDeleted: _category_deleted,
    ActionType.SettingChanged: _setting_changed,
    ActionType.FiltersChanged: _filters_changed,
    ActionType.ExportQueueLoaded: _export_queue_loaded,
    ActionType.UploadStarted: _upload_started,
    ActionType.UploadFinished: _upload_finished,
    ActionType.OnlineChanged: _online_changed,
    ActionType.Locked: _locked,
    ActionType.Unlocked: _unlocked,
    ActionType.UnlockFailed: _unlock_failed,
}


def reduce(state: AppState, action: Action) -> AppState:
    """Return the state that follows ``state`` after ``action``.

    Raises:
        KeyError: If the action type has no reducer.
    """
    return REDUCERS[action.type](state, action)
