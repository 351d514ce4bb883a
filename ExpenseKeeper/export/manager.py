"""Local export files.

Writes CSV backups into the export directory and resolves the files of queued exports.
Tracking the files in the export queue is left to the caller.
"""
import logging
import pathlib
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from PySide6 import QtCore

from . import csvbuilder
from ..core.models import Category, Expense, ExportQueueItem
from ..settings import lib
from ..status import status


@dataclass(frozen=True)
class ExportFile:
    filename: str
    file_path: str
    file_uri: str
    content_size: int


def get_exports_dir() -> pathlib.Path:
    """Return the configured export directory under the application data directory."""
    settings = lib.get_settings()
    return settings.app_data_dir / settings['export.directory']


def _unique_path(directory: pathlib.Path, filename: str) -> pathlib.Path:
    path = directory / filename
    counter = 1
    while path.exists():
        path = directory / f'{pathlib.Path(filename).stem}_{counter}{pathlib.Path(filename).suffix}'
        counter += 1
    return path


def write_export_file(directory: Union[str, pathlib.Path], expenses: Iterable[Expense],
                      categories: Iterable[Category] = (), generated_at=None) -> ExportFile:
    """Write a CSV backup of ``expenses`` into ``directory``.

    The directory is created if needed. When a file of the same name already exists a
    numeric suffix is added.

    Args:
        directory (str | pathlib.Path): Destination directory.
        expenses (Iterable[Expense]): The expenses to export.
        categories (Iterable[Category]): Categories used to resolve names.
        generated_at (datetime.datetime, optional): Time used for the filename.

    Returns:
        ExportFile: Filename, absolute path, file URI and size in bytes.

    Raises:
        status.ExportFailedException: If the file cannot be written.
    """
    directory = pathlib.Path(directory)
    document = csvbuilder.build_csv(expenses, categories, generated_at=generated_at)
    data = document.content.encode('utf-8')

    try:
        directory.mkdir(parents=True, exist_ok=True)
        path = _unique_path(directory, document.filename)
        with path.open('wb') as f:
            f.write(data)
    except OSError as ex:
        raise status.ExportFailedException(f'{document.filename}: {ex}') from ex

    path = path.resolve()
    logging.debug(f'Wrote export "{path}" ({len(data)} bytes)')
    return ExportFile(
        filename=path.name,
        file_path=str(path),
        file_uri=QtCore.QUrl.fromLocalFile(str(path)).toString(),
        content_size=len(data),
    )


def resolve_local_path(item: ExportQueueItem) -> pathlib.Path:
    """Return the file of a queued export, preferring its file URI over the plain path."""
    if item.file_uri:
        url = QtCore.QUrl(item.file_uri)
        if url.isLocalFile():
            return pathlib.Path(url.toLocalFile())
    return pathlib.Path(item.file_path)


def read_export_file(item: ExportQueueItem) -> bytes:
    with resolve_local_path(item).open('rb') as f:
        return f.read()


def export_file_exists(item: ExportQueueItem) -> bool:
    return resolve_local_path(item).exists()


def delete_export_file(item: Optional[ExportQueueItem] = None, path: Optional[str] = None) -> bool:
    """Delete the file of a queued export, ignoring failures.

    Returns:
        bool: True if a file was deleted.
    """
    target = resolve_local_path(item) if item is not None else pathlib.Path(path)
    try:
        target.unlink()
    except OSError as ex:
        logging.debug(f'Could not delete export file "{target}": {ex}')
        return False
    logging.debug(f'Deleted export file "{target}"')
    return True
