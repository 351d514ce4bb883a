"""Status definitions and exceptions for ExpenseKeeper.

This module provides:
    - Status: enumeration of possible application states
    - STATUS_MESSAGE: user-facing messages for each status
    - get_message: retrieve the message for a status
    - BaseStatusException: base exception carrying a Status
    - Specific exceptions (e.g., NotFoundException) raised by storage, export and auth code
"""
import enum
import logging
from typing import Dict, Optional


class Status(enum.StrEnum):
    """Enumeration of application status codes."""
    UnknownStatus = enum.auto()
    Okay = enum.auto()

    # Config status
    ConfigInvalid = enum.auto()

    # Storage status
    MigrationFailed = enum.auto()
    IntegrityFault = enum.auto()
    NotFound = enum.auto()
    DataNotReady = enum.auto()

    # Validation status
    ValidationFailed = enum.auto()
    DuplicateCategory = enum.auto()
    CategoryInUse = enum.auto()

    # Authentication status
    ClientSecretNotFound = enum.auto()
    ClientSecretInvalid = enum.auto()
    CredsInvalid = enum.auto()
    NotAuthenticated = enum.auto()

    # Export status
    ExportFailed = enum.auto()
    DriveRequestFailed = enum.auto()


STATUS_MESSAGE: Dict[Status, str] = {
    Status.UnknownStatus: 'Unknown status. Please check the settings.',
    Status.Okay: 'Everything is okay.',

    Status.ConfigInvalid: 'The config file seems to be incomplete, or contains invalid values.',

    Status.MigrationFailed: 'Could not upgrade the database.',
    Status.IntegrityFault: 'The database returned an inconsistent result.',
    Status.NotFound: 'The requested record could not be found.',
    Status.DataNotReady: 'Data is not ready yet. Try again shortly.',

    Status.ValidationFailed: 'Some of the values are invalid.',
    Status.DuplicateCategory: 'A category with this name already exists.',
    Status.CategoryInUse: 'The category is still used by expenses.',

    Status.ClientSecretNotFound: 'Could not find the google client secret. Have you set up a valid Google client secret?',
    Status.ClientSecretInvalid: 'Could not verify the client secret. Have you set up a valid Google client secret?',
    Status.CredsInvalid: 'Could not verify the credentials. Please sign in again to your Google account.',
    Status.NotAuthenticated: 'Authentication error. Try signing in again to your Google account.',

    Status.ExportFailed: 'Could not write the export file.',
    Status.DriveRequestFailed: 'Google Drive request failed.',
}


def get_message(status: Status) -> str:
    """
    Get the message for a given status.

    Args:
        status (Status): The status enum.

    Returns:
        str: The message associated with the status.
    """
    return STATUS_MESSAGE.get(status, 'Unknown status')


class BaseStatusException(Exception):
    """Base exception for status-based errors in ExpenseKeeper.

    Attributes:
        status (Status): Status code associated with this error.
        status_message (str): User-facing message for the status.
        message (str): The additional context passed in, or the status message.

    Args:
        message (str): Optional additional context for the error.
    """
    status = Status.UnknownStatus

    def __init__(self, message: str = None):
        self.status_message = get_message(self.status)
        self.message = message or self.status_message
        exception_message = f'{self.status_message} {message}' if message else self.status_message
        super().__init__(exception_message)

        logging.error(exception_message)

        from ..signals import signals
        signals.error.emit(self.message)


class ConfigInvalidException(BaseStatusException):
    """Exception raised when config.json is missing sections or contains invalid values."""
    status = Status.ConfigInvalid


class MigrationException(BaseStatusException):
    """Exception raised when a schema migration fails and is rolled back."""
    status = Status.MigrationFailed


class IntegrityFaultException(BaseStatusException):
    """Base exception for storage results that contradict a successful write."""
    status = Status.IntegrityFault


class InsertIdentityException(IntegrityFaultException):
    """Exception raised when the identity of a freshly inserted row cannot be determined."""
    pass


class RecordUnreadableException(IntegrityFaultException):
    """Exception raised when a row that was just written cannot be read back."""
    pass


class NotFoundException(BaseStatusException):
    """Exception raised when an update or removal matched no rows."""
    status = Status.NotFound


class DataNotReadyException(BaseStatusException):
    """Exception raised when an action needs data that has not been loaded yet."""
    status = Status.DataNotReady


class ValidationException(BaseStatusException):
    """Exception raised when user-supplied values fail validation.

    Attributes:
        errors (Dict[str, str]): Field name to user-facing message.
    """
    status = Status.ValidationFailed

    def __init__(self, errors: Optional[Dict[str, str]] = None, message: str = None):
        self.errors: Dict[str, str] = dict(errors or {})
        if message is None and self.errors:
            message = ' '.join(self.errors.values())
        super().__init__(message)


class DuplicateCategoryException(BaseStatusException):
    """Exception raised when a category name is already taken (case-insensitively)."""
    status = Status.DuplicateCategory


class CategoryInUseException(BaseStatusException):
    """Exception raised when deleting a category that expenses still reference."""
    status = Status.CategoryInUse


class ClientSecretNotFoundException(BaseStatusException):
    """Exception raised when the Google OAuth client secret file cannot be found."""
    status = Status.ClientSecretNotFound


class ClientSecretInvalidException(BaseStatusException):
    """Exception raised when the Google OAuth client secret is invalid or malformed."""
    status = Status.ClientSecretInvalid


class CredsInvalidException(BaseStatusException):
    """Exception raised when stored Google credentials are invalid or expired."""
    status = Status.CredsInvalid


class AuthenticationRequiredException(BaseStatusException):
    """Exception raised when user is not authenticated with Google services."""
    status = Status.NotAuthenticated


class ExportFailedException(BaseStatusException):
    """Exception raised when an export file cannot be written to disk."""
    status = Status.ExportFailed


class DriveRequestException(BaseStatusException):
    """Exception raised when a Google Drive request fails.

    Attributes:
        status_code (Optional[int]): The HTTP status code, if the request got a response.
    """
    status = Status.DriveRequestFailed

    def __init__(self, message: str = None, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)

    @property
    def is_auth_error(self) -> bool:
        """True for 401 and 403 responses."""
        return self.status_code in (401, 403)
