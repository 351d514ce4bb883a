"""Application data orchestrator.

:class:`ExpenseStore` owns the :class:`~ExpenseKeeper.app.state.AppState` snapshot. Every
public method performs its storage calls through the repositories and then dispatches an
action with the result, so the state is always derived from what storage returned.

Follow-up work, such as an opportunistic upload after an export is queued, is posted to a
command queue that is drained on the next turn of the Qt event loop. Call :meth:`drain` to run
queued commands synchronously.

Example:

    .. code-block:: python

        store = ExpenseStore(database.get_database())
        store.load()
        store.add_expense({'description': 'Coffee', 'amount_native': '3.20', ...})
        store.queue_export()

"""
import collections
import contextlib
import logging
import re
import secrets
import sqlite3
import string
from typing import Any, Callable, Deque, Dict, Iterator, Optional, Tuple

from PySide6 import QtCore

from . import lock as lock_module
from .state import AppState, Action, ActionType, Filters, Snapshot, reduce
from ..core import auth, dates, network, validation
from ..core.database import Database
from ..core.models import UNSET, Category, Expense, ExportQueueItem, ExportStatus, SettingKey
from ..core.repositories.app_settings import SettingsRepository
from ..core.repositories.categories import CategoriesRepository
from ..core.repositories.expenses import ExpensesRepository
from ..core.repositories.export_queue import ExportQueueRepository
from ..export import drive, manager
from ..settings import lib
from ..signals import signals
from ..status import status

DEFAULT_HISTORY_SIZE = 200
UNLOCK_PROMPT = 'Unlock Expense Tracker'
UNLOCK_CANCELLED_MESSAGE = 'Authentication cancelled. Tap Try again to retry.'
UNLOCK_UNAVAILABLE_MESSAGE = 'Biometric authentication is not available.'

OPERATION_ERRORS = (status.BaseStatusException, sqlite3.Error, OSError)

_id_alphabet = string.digits + string.ascii_lowercase


def new_export_id() -> str:
    """Return a new export queue id, ``exp-<timestamp digits>-<6 random base36 chars>``."""
    timestamp = re.sub(r'\D', '', dates.now_str())
    suffix = ''.join(secrets.choice(_id_alphabet) for _ in range(6))
    return f'exp-{timestamp}-{suffix}'


def _error_message(ex: Exception) -> str:
    return getattr(ex, 'message', None) or str(ex) or ex.__class__.__name__


class ExpenseStore(QtCore.QObject):
    """Single writer of the application state.

    Args:
        db (Database): The opened application database.
        uploader (drive.DriveUploader, optional): Uploader for queued exports. Defaults to one
            using the stored Google credentials.
        gate (CredentialGate, optional): The biometric challenge used to unlock.
        app_lock (AppLock, optional): The idle lock timer.
        exports_dir (str, optional): Directory for export files. Defaults to the configured one.

    Signals:
        stateChanged (AppState): Emitted after each dispatched action that changed the state.
    """
    stateChanged = QtCore.Signal(object)

    def __init__(self, db: Database, uploader: Optional[drive.DriveUploader] = None,
                 gate: Optional[lock_module.CredentialGate] = None,
                 app_lock: Optional[lock_module.AppLock] = None,
                 exports_dir: Optional[str] = None,
                 parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent=parent)
        self.db = db
        self.expenses = ExpensesRepository(db)
        self.categories = CategoriesRepository(db)
        self.settings = SettingsRepository(db)
        self.export_queue = ExportQueueRepository(db)

        self.uploader = uploader or drive.DriveUploader(db, token_provider=auth.auth_manager.get_valid_token)
        self.gate = gate
        self.app_lock = app_lock or lock_module.AppLock()
        self.exports_dir = exports_dir

        history_size = lib.get_settings()['store.history_size'] or DEFAULT_HISTORY_SIZE
        self.history: Deque[Action] = collections.deque(maxlen=history_size)
        self._commands: Deque[Tuple[Callable[..., Any], tuple]] = collections.deque()
        self._state = AppState()

    @property
    def state(self) -> AppState:
        return self._state

    def dispatch(self, action: Action) -> AppState:
        """Apply an action to the state and notify listeners."""
        previous = self._state
        self._state = reduce(previous, action)
        self.history.append(action)
        if self._state != previous:
            self.stateChanged.emit(self._state)
        return self._state

    def post(self, func: Callable[..., Any], *args: Any) -> None:
        """Queue a command to run on the next event loop turn."""
        self._commands.append((func, args))
        QtCore.QTimer.singleShot(0, self.drain)

    def drain(self) -> int:
        """Run all queued commands in order.

        Returns:
            int: The number of commands run.
        """
        count = 0
        while self._commands:
            func, args = self._commands.popleft()
            func(*args)
            count += 1
        return count

    @property
    def pending_commands(self) -> int:
        return len(self._commands)

    @contextlib.contextmanager
    def _operation(self) -> Iterator[None]:
        self.dispatch(Action(ActionType.OperationStarted))
        try:
            yield
        except OPERATION_ERRORS as ex:
            self.dispatch(Action(ActionType.OperationFailed, _error_message(ex)))
            raise
        self.dispatch(Action(ActionType.OperationSucceeded))

    def _require_ready(self) -> None:
        if not self._state.ready:
            raise status.DataNotReadyException()

    # Loading

    def load(self) -> AppState:
        """Read expenses, categories, settings and the export queue from storage.

        Raises:
            sqlite3.Error: If storage cannot be read.
        """
        self.dispatch(Action(ActionType.LoadStarted))
        try:
            snapshot = Snapshot(
                expenses=tuple(self.expenses.list()),
                categories=tuple(self.categories.list()),
                settings=self.settings.get_all(),
                export_queue=tuple(self.export_queue.list()),
                schema_version=self.db.current_schema_version(),
            )
        except OPERATION_ERRORS as ex:
            self.dispatch(Action(ActionType.LoadFailed, _error_message(ex)))
            raise
        logging.debug(f'Loaded {len(snapshot.expenses)} expenses, {len(snapshot.categories)} categories')
        return self.dispatch(Action(ActionType.LoadSucceeded, snapshot))

    def refresh(self) -> AppState:
        return self.load()

    def refresh_exports(self) -> None:
        self.dispatch(Action(ActionType.ExportQueueLoaded, tuple(self.export_queue.list())))
        signals.exportQueueChanged.emit()

    def clear_error(self) -> None:
        self.dispatch(Action(ActionType.ErrorCleared))

    # Expenses

    def add_expense(self, values: Dict[str, Any]) -> Expense:
        """Validate and store a new expense.

        Raises:
            status.ValidationException: If a field is invalid.
        """
        with self._operation():
            payload = validation.validate_expense(values)
            expense = self.expenses.create(**payload)
        self.dispatch(Action(ActionType.ExpenseSaved, expense))
        return expense

    def update_expense(self, expense_id: int, values: Dict[str, Any]) -> Expense:
        """Validate and store new values for an existing expense.

        Raises:
            status.ValidationException: If a field is invalid.
            status.NotFoundException: If the expense does not exist.
        """
        with self._operation():
            payload = validation.validate_expense(values)
            expense = self.expenses.update(expense_id, **payload)
        self.dispatch(Action(ActionType.ExpenseSaved, expense))
        return expense

    def delete_expense(self, expense_id: int) -> None:
        with self._operation():
            self.expenses.delete(expense_id)
        self.dispatch(Action(ActionType.ExpenseDeleted, expense_id))

    # Categories

    def add_category(self, name: str) -> Category:
        with self._operation():
            category = self.categories.create(name)
        self.dispatch(Action(ActionType.CategorySaved, category))
        return category

    def rename_category(self, category_id: int, name: str) -> Category:
        with self._operation():
            category = self.categories.update(category_id, name)
        self.dispatch(Action(ActionType.CategorySaved, category))
        return category

    def delete_category(self, category_id: int) -> None:
        """Delete a category that no expense uses.

        Raises:
            status.CategoryInUseException: If expenses reference the category.
        """
        with self._operation():
            count = self.expenses.count_by_category(category_id)
            if count:
                raise status.CategoryInUseException(
                    f'The category is still used by {count} expense{"s" if count != 1 else ""}.'
                )
            self.categories.delete(category_id)
        self.dispatch(Action(ActionType.CategoryDeleted, category_id))

    # Settings

    def _set_setting(self, key: SettingKey, value: Optional[str]) -> None:
        self.settings.set(key, value)
        self.dispatch(Action(ActionType.SettingChanged, (key, value)))

    def set_base_currency(self, code: str) -> None:
        """Store the base currency.

        Raises:
            status.ValidationException: If the code is not a known ISO-4217 code.
        """
        with self._operation():
            message = validation.validate_currency_code(code)
            if message:
                raise status.ValidationException({'currency_code': message})
            self._set_setting(SettingKey.BaseCurrency, code.strip().upper())

    def set_drive_folder_id(self, folder_id: Optional[str]) -> None:
        with self._operation():
            self._set_setting(SettingKey.DriveFolderId, folder_id or None)

    def set_biometric_gate_enabled(self, enabled: bool) -> None:
        """Turn the biometric gate on or off.

        Turning it off unlocks immediately. Turning it on provisions the credential gate and
        starts the background clock from now.
        """
        with self._operation():
            if enabled and self.gate is not None:
                self.gate.provision()
            self._set_setting(SettingKey.BiometricGateEnabled, 'true' if enabled else 'false')

        if enabled:
            self.app_lock.restart()
            return

        self.app_lock.reset()
        was_locked = self._state.locked
        self.dispatch(Action(ActionType.Unlocked))
        if was_locked:
            signals.lockStateChanged.emit(False)

        if self.gate is not None:
            try:
                self.gate.reset()
            except Exception as ex:
                logging.debug(f'Could not reset credential gate: {ex}')

    # Filters

    def set_filters(self, category_id: Any = UNSET, start_date: Optional[str] = None,
                    end_date: Optional[str] = None) -> None:
        filters = Filters(category_id=category_id, start_date=start_date, end_date=end_date)
        preset = dates.detect_preset(start_date, end_date)
        self.dispatch(Action(ActionType.FiltersChanged, (filters, preset)))

    def clear_filters(self) -> None:
        self.dispatch(Action(ActionType.FiltersChanged, (Filters(), dates.DatePreset.AllTime)))

    def apply_date_preset(self, preset: dates.DatePreset) -> None:
        preset = dates.DatePreset(preset)
        start_date, end_date = dates.compute_preset_range(preset)
        filters = Filters(
            category_id=self._state.filters.category_id,
            start_date=start_date,
            end_date=end_date,
        )
        self.dispatch(Action(ActionType.FiltersChanged, (filters, preset)))

    # Export queue

    def _write_export(self) -> manager.ExportFile:
        directory = self.exports_dir or manager.get_exports_dir()
        return manager.write_export_file(directory, self._state.expenses, self._state.categories)

    def queue_export(self) -> ExportQueueItem:
        """Write a CSV backup of all expenses and queue it for upload.

        An upload is posted when online.

        Raises:
            status.DataNotReadyException: If called before the first load.
            status.ExportFailedException: If the file cannot be written.
        """
        with self._operation():
            self._require_ready()
            export = self._write_export()
            try:
                item = self.export_queue.insert(
                    new_export_id(),
                    export.filename,
                    export.file_path,
                    file_uri=export.file_uri,
                )
            except sqlite3.Error:
                manager.delete_export_file(path=export.file_path)
                raise

        logging.info(f'Queued export {item.filename} ({export.content_size} bytes)')
        self.refresh_exports()
        if self._state.online:
            self.post(self.upload_silently)
        return item

    def retry_export(self, item_id: str) -> None:
        """Put a failed or completed export back into the pending state.

        The file is written again when it no longer exists. An upload is posted when online.

        Raises:
            status.NotFoundException: If the item does not exist.
        """
        with self._operation():
            item = self.export_queue.get(item_id)
            if item is None:
                raise status.NotFoundException(f'Export queue item {item_id} not found.')

            file_changes = {}
            if not manager.export_file_exists(item):
                self._require_ready()
                export = self._write_export()
                file_changes = {
                    'filename': export.filename,
                    'file_path': export.file_path,
                    'file_uri': export.file_uri,
                }
                logging.info(f'Regenerated missing export file for {item_id}')

            self.export_queue.update_status(
                item_id,
                ExportStatus.Pending,
                last_error=None,
                uploaded_at=None,
                drive_file_id=None,
                **file_changes,
            )

        self.refresh_exports()
        if self._state.online:
            self.post(self.upload_silently)

    def remove_export(self, item_id: str) -> None:
        """Remove an export from the queue and delete its file.

        Raises:
            status.NotFoundException: If the item does not exist.
        """
        with self._operation():
            item = self.export_queue.get(item_id)
            self.export_queue.remove(item_id)
        if item is not None:
            manager.delete_export_file(item)
        self.refresh_exports()

    def clear_completed_exports(self) -> int:
        """Remove all completed and failed exports and delete their files.

        Returns:
            int: The number of items removed.
        """
        with self._operation():
            finished = [
                item for item in self.export_queue.list()
                if item.status in (ExportStatus.Completed, ExportStatus.Failed)
            ]
            count = self.export_queue.clear_finished()
        for item in finished:
            manager.delete_export_file(item)
        self.refresh_exports()
        return count

    def upload_queued_exports(self, interactive: bool = True) -> Optional[drive.UploadSummary]:
        """Upload all pending exports.

        Args:
            interactive (bool): Whether the user may be asked to sign in.

        Returns:
            UploadSummary: The outcome, or None if an upload is already running.
        """
        if self.uploader.is_running:
            logging.debug('Upload already in progress, skipping.')
            return None

        self.dispatch(Action(ActionType.UploadStarted))
        with self._operation():
            summary = self.uploader.upload_pending(interactive=interactive)
            queue = tuple(self.export_queue.list())
        self.dispatch(Action(ActionType.UploadFinished, (summary, queue)))
        signals.exportQueueChanged.emit()
        return summary

    def upload_silently(self) -> Optional[drive.UploadSummary]:
        """Upload pending exports without prompting, logging failures instead of raising."""
        if not self._state.online or not self._state.pending_exports:
            return None
        try:
            return self.upload_queued_exports(interactive=False)
        except OPERATION_ERRORS as ex:
            logging.warning(f'Background upload failed: {_error_message(ex)}')
            return None

    # Platform events

    def set_online(self, online: bool) -> None:
        """Record network reachability. Regaining the network posts an upload of pending items."""
        was_online = self._state.online
        self.dispatch(Action(ActionType.OnlineChanged, online))
        if online and not was_online and self._state.pending_exports:
            self.post(self.upload_silently)

    def attach_network_monitor(self, monitor: network.NetworkMonitor) -> None:
        """Follow the reachability reported by ``monitor``."""
        monitor.onlineChanged.connect(self.set_online)
        self.set_online(monitor.online)

    def set_app_state(self, active: bool) -> None:
        """Handle the app moving to the background (False) or the foreground (True)."""
        if not active:
            self.app_lock.on_background()
            return

        if self.app_lock.on_foreground(self._state.biometric_gate_enabled) and not self._state.locked:
            logging.info('Locking after idle timeout')
            self.dispatch(Action(ActionType.Locked))
            signals.lockStateChanged.emit(True)

    def unlock_with_biometrics(self, prompt: str = UNLOCK_PROMPT) -> bool:
        """Run the credential gate challenge and unlock on success.

        Returns:
            bool: True if the app is unlocked.
        """
        if not self._state.locked:
            return True

        if self.gate is None:
            self.dispatch(Action(ActionType.UnlockFailed, UNLOCK_UNAVAILABLE_MESSAGE))
            return False

        if not self.gate.authenticate(prompt):
            self.dispatch(Action(ActionType.UnlockFailed, UNLOCK_CANCELLED_MESSAGE))
            return False

        self.dispatch(Action(ActionType.Unlocked))
        signals.lockStateChanged.emit(False)
        return True
