"""Google Drive backups of queued exports.

:class:`DriveClient` wraps the few Drive v3 calls the backups need. :class:`DriveUploader`
drains the export queue: every pending item moves to ``uploading`` and then to ``completed``
or ``failed``, one item at a time, oldest first.

Outcomes are reported in an :class:`UploadSummary`. Per-item failures never raise. A missing
token, or a 401/403 response, sets ``requires_auth`` and the remaining items are counted as
skipped without touching their rows.
"""
import io
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import google.auth.exceptions
import google.oauth2.credentials
import httplib2
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseUpload

from . import manager
from ..core import dates
from ..core.database import Database
from ..core.models import ExportQueueItem, ExportStatus, SettingKey
from ..core.repositories.app_settings import SettingsRepository
from ..core.repositories.export_queue import ExportQueueRepository
from ..settings import lib
from ..signals import signals
from ..status import status

DEFAULT_FOLDER_NAME = 'Expense Tracker Backups'
FOLDER_MIME_TYPE = 'application/vnd.google-apps.folder'
CSV_MIME_TYPE = 'text/csv'


def _to_drive_error(ex: Exception) -> status.DriveRequestException:
    if isinstance(ex, google.auth.exceptions.RefreshError):
        return status.DriveRequestException(f'Google Drive authorisation expired: {ex}', status_code=401)
    if isinstance(ex, HttpError):
        code = ex.resp.status if ex.resp is not None else None
        reason = getattr(ex, 'reason', None) or f'Google Drive request failed with status {code}'
        return status.DriveRequestException(reason, status_code=int(code) if code else None)
    return status.DriveRequestException(str(ex) or ex.__class__.__name__)


class DriveClient:
    """Thin wrapper around a Drive v3 service resource.

    Args:
        service: A resource built with ``googleapiclient.discovery.build('drive', 'v3', ...)``.
    """

    def __init__(self, service) -> None:
        self.service = service

    @classmethod
    def from_token(cls, token: str) -> 'DriveClient':
        """Build a client authorised with a bearer token."""
        creds = google.oauth2.credentials.Credentials(token=token)
        service = build('drive', 'v3', credentials=creds, cache_discovery=False)
        return cls(service)

    def folder_exists(self, folder_id: str) -> bool:
        """Check that a folder exists and is not in the trash.

        Raises:
            status.DriveRequestException: On any failure other than 404.
        """
        try:
            data = self.service.files().get(fileId=folder_id, fields='id,trashed').execute()
        except HttpError as ex:
            if ex.resp is not None and ex.resp.status == 404:
                return False
            raise _to_drive_error(ex) from ex
        except (google.auth.exceptions.RefreshError, httplib2.HttpLib2Error, OSError) as ex:
            raise _to_drive_error(ex) from ex
        return bool(data.get('id') and not data.get('trashed'))

    def create_folder(self, name: str) -> str:
        """Create a folder in the Drive root and return its id.

        Raises:
            status.DriveRequestException: If the request fails or returns no id.
        """
        body = {'name': name, 'mimeType': FOLDER_MIME_TYPE}
        try:
            data = self.service.files().create(body=body, fields='id').execute()
        except (HttpError, google.auth.exceptions.RefreshError, httplib2.HttpLib2Error, OSError) as ex:
            raise _to_drive_error(ex) from ex

        if not data.get('id'):
            raise status.DriveRequestException('Google Drive did not return a folder ID.')
        logging.info(f'Created Drive folder "{name}" ({data["id"]})')
        return data['id']

    def upload_csv(self, filename: str, content: bytes, folder_id: str) -> str:
        """Upload a CSV file into a folder with a multipart request.

        Returns:
            str: The id of the new Drive file.

        Raises:
            status.DriveRequestException: If the request fails or returns no id.
        """
        metadata = {
            'name': filename,
            'parents': [folder_id],
            'mimeType': CSV_MIME_TYPE,
        }
        media = MediaIoBaseUpload(io.BytesIO(content), mimetype=CSV_MIME_TYPE, resumable=False)
        try:
            data = self.service.files().create(body=metadata, media_body=media, fields='id').execute()
        except (HttpError, google.auth.exceptions.RefreshError, httplib2.HttpLib2Error, OSError) as ex:
            raise _to_drive_error(ex) from ex

        if not data.get('id'):
            raise status.DriveRequestException(f'Google Drive upload response missing file ID for {filename}.')
        return data['id']


@dataclass
class UploadSummary:
    attempted: int = 0
    uploaded: int = 0
    failed: int = 0
    skipped: int = 0
    errors: List[str] = field(default_factory=list)
    requires_auth: bool = False
    updated_folder_id: Optional[str] = None


TokenProvider = Callable[[bool], Optional[str]]
ClientFactory = Callable[[str], DriveClient]


class DriveUploader:
    """Uploads pending exports to Google Drive.

    Only one run can be active at a time. Calling :meth:`upload_pending` while a run is in
    progress returns None immediately.

    Args:
        db (Database): The application database.
        token_provider (Callable[[bool], Optional[str]]): Returns a bearer token. The argument
            tells whether an interactive sign-in is allowed.
        client_factory (Callable[[str], DriveClient]): Builds a client from a token.
        folder_name (str, optional): Name of the backup folder. Defaults to the ``drive`` config.
    """

    def __init__(self, db: Database, token_provider: TokenProvider,
                 client_factory: ClientFactory = DriveClient.from_token,
                 folder_name: Optional[str] = None) -> None:
        self.queue = ExportQueueRepository(db)
        self.settings = SettingsRepository(db)
        self.token_provider = token_provider
        self.client_factory = client_factory
        self._folder_name = folder_name
        self._running = False

    @property
    def folder_name(self) -> str:
        if self._folder_name:
            return self._folder_name
        return lib.get_settings()['drive.folder_name'] or DEFAULT_FOLDER_NAME

    @property
    def is_running(self) -> bool:
        return self._running

    def ensure_folder(self, client: DriveClient, current_folder_id: Optional[str]) -> tuple[str, bool]:
        """Return a usable backup folder id, creating a folder if the stored one is gone.

        Returns:
            tuple[str, bool]: The folder id and whether it differs from ``current_folder_id``.
        """
        if current_folder_id:
            try:
                if client.folder_exists(current_folder_id):
                    return current_folder_id, False
            except status.DriveRequestException as ex:
                logging.warning(f'Failed to verify Drive folder, creating a new one: {ex}')

        folder_id = client.create_folder(self.folder_name)
        return folder_id, folder_id != current_folder_id

    def upload_pending(self, interactive: bool = False) -> Optional[UploadSummary]:
        """Upload every pending export.

        Args:
            interactive (bool): Whether the token provider may prompt the user to sign in.

        Returns:
            UploadSummary: The outcome, or None if another run is in progress.

        Raises:
            status.DriveRequestException: If the backup folder cannot be resolved.
        """
        if self._running:
            logging.debug('Upload already in progress, skipping.')
            return None

        self._running = True
        try:
            summary = self._upload_pending(interactive)
        finally:
            self._running = False

        logging.info(
            f'Upload finished: {summary.uploaded} uploaded, {summary.failed} failed, '
            f'{summary.skipped} skipped of {summary.attempted}'
        )
        signals.uploadFinished.emit(summary)
        if summary.requires_auth:
            signals.authenticationRequested.emit()
        return summary

    def _upload_pending(self, interactive: bool) -> UploadSummary:
        pending = [item for item in self.queue.list() if item.status == ExportStatus.Pending]
        if not pending:
            return UploadSummary()

        token = self.token_provider(interactive)
        if not token:
            return UploadSummary(
                attempted=len(pending),
                skipped=len(pending),
                requires_auth=True,
            )

        client = self.client_factory(token)
        current_folder_id = self.settings.get(SettingKey.DriveFolderId)
        folder_id, updated = self.ensure_folder(client, current_folder_id)
        if updated:
            self.settings.set(SettingKey.DriveFolderId, folder_id)

        summary = UploadSummary(
            attempted=len(pending),
            updated_folder_id=folder_id if updated else None,
        )

        for item in pending:
            if summary.requires_auth:
                summary.skipped += 1
                continue
            self._upload_item(client, folder_id, item, summary)

        return summary

    def _upload_item(self, client: DriveClient, folder_id: str, item: ExportQueueItem,
                     summary: UploadSummary) -> None:
        self.queue.update_status(item.id, ExportStatus.Uploading, last_error=None)
        signals.exportQueueChanged.emit()

        try:
            content = manager.read_export_file(item)
            drive_file_id = client.upload_csv(item.filename, content, folder_id)
        except Exception as ex:
            if not isinstance(ex, (status.DriveRequestException, OSError)):
                logging.error(f'Unexpected error uploading {item.filename}: {ex!r}')
            message = getattr(ex, 'message', None) or str(ex) or 'Upload failed.'
            self.queue.update_status(item.id, ExportStatus.Failed, last_error=message)
            summary.failed += 1
            summary.errors.append(f'{item.filename}: {message}')
            if isinstance(ex, status.DriveRequestException) and ex.is_auth_error:
                summary.requires_auth = True
        else:
            self.queue.update_status(
                item.id,
                ExportStatus.Completed,
                drive_file_id=drive_file_id,
                uploaded_at=dates.now_str(),
                last_error=None,
            )
            summary.uploaded += 1
        signals.exportQueueChanged.emit()
