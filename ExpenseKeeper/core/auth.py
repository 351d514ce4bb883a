"""
Google OAuth2 credential management.

Provides :class:`AuthManager`, which hands out bearer tokens for the Drive API. Stored
credentials are refreshed silently when possible. The browser consent flow only runs when a
caller explicitly asks for an interactive token.
"""

import json
import logging
import threading
from typing import Dict, List, Optional, Union

import google.auth.exceptions
import google.auth.transport.requests
import google.oauth2.credentials
import google_auth_oauthlib.flow

from ..settings import lib
from ..status import status

DEFAULT_SCOPES: List[str] = ['https://www.googleapis.com/auth/drive.file', ]


def get_scopes() -> List[str]:
    """Return the OAuth scopes from the ``drive`` config section."""
    return list(lib.get_settings().get_section('drive').get('scopes') or DEFAULT_SCOPES)


class AuthManager:
    """Manages OAuth2 credentials with thread-safe refresh."""

    def __init__(self):
        self._lock = threading.Lock()
        self._creds: Optional[google.oauth2.credentials.Credentials] = None

    def _load_stored_credentials(self) -> Optional[google.oauth2.credentials.Credentials]:
        settings = lib.get_settings()
        if not settings.creds_path.exists():
            return None

        try:
            return google.oauth2.credentials.Credentials.from_authorized_user_file(
                str(settings.creds_path))
        except (ValueError, json.JSONDecodeError) as ex:
            # Corrupt credentials are removed so the next interactive flow starts clean
            logging.error(f'Failed to load credentials, removing {settings.creds_path}: {ex}')
            try:
                settings.creds_path.unlink()
            except OSError as unlink_ex:
                logging.debug(f'Could not remove credentials file: {unlink_ex}')
            return None

    def get_valid_credentials(self, interactive: bool = False) -> Optional[google.oauth2.credentials.Credentials]:
        """
        Return valid credentials, refreshing or signing in as allowed.

        Args:
            interactive (bool): Whether the browser consent flow may be started.

        Returns:
            Credentials: Valid credentials, or None when they would require user interaction
            that was not allowed.

        Raises:
            status.ClientSecretNotFoundException: If an interactive flow is needed but no client secret exists.
            status.ClientSecretInvalidException: If the client secret is malformed.
            status.AuthenticationRequiredException: If the interactive flow fails.
            status.CredsInvalidException: If the interactive flow returns unusable credentials.
        """
        with self._lock:
            if self._creds is None:
                self._creds = self._load_stored_credentials()

            creds = self._creds
            if creds is not None and not set(get_scopes()).issubset(set(creds.scopes or [])):
                logging.debug('Cached credentials have mismatched scopes.')
                creds = None

            if creds is not None and creds.expired:
                if creds.refresh_token:
                    try:
                        creds.refresh(google.auth.transport.requests.Request())
                        save_creds(creds)
                        logging.debug('Successfully refreshed credentials.')
                    except google.auth.exceptions.GoogleAuthError as ex:
                        logging.error(f'Refresh failed: {ex}')
                        creds = None
                else:
                    creds = None

            if creds is not None and creds.token:
                self._creds = creds
                return creds

            if not interactive:
                logging.debug('No valid credentials and interactive sign-in not allowed.')
                return None

            creds = authenticate()
            self._creds = creds
            return creds

    def get_valid_token(self, interactive: bool = False) -> Optional[str]:
        """
        Return a bearer token for the Drive API.

        Args:
            interactive (bool): Whether the browser consent flow may be started.

        Returns:
            str: The access token, or None if no token could be obtained.
        """
        try:
            creds = self.get_valid_credentials(interactive=interactive)
        except status.BaseStatusException as ex:
            logging.error(f'Could not obtain an access token: {ex}')
            return None
        return creds.token if creds else None

    def sign_out(self) -> None:
        with self._lock:
            self._creds = None
        sign_out()


auth_manager = AuthManager()


def save_creds(creds: Union[google.oauth2.credentials.Credentials, Dict]) -> None:
    """
    Save OAuth2 credentials to the configured token file.

    Args:
        creds (Union[google.oauth2.credentials.Credentials, Dict]): Credentials or dict to save.
    """
    settings = lib.get_settings()
    data = creds if isinstance(creds, dict) else json.loads(creds.to_json())
    with open(settings.creds_path, 'w', encoding='utf-8') as token_file:
        json.dump(data, token_file, indent=4)

    logging.debug(f'Credentials saved to {settings.creds_path}.')


def authenticate() -> google.oauth2.credentials.Credentials:
    """
    Run the installed-app OAuth flow in the browser and store the credentials.

    Returns:
        google.oauth2.credentials.Credentials: The authenticated credentials.

    Raises:
        status.ClientSecretNotFoundException: If the client secret file is not found.
        status.ClientSecretInvalidException: If the client secret is malformed.
        status.AuthenticationRequiredException: If authentication fails or is cancelled.
        status.CredsInvalidException: If the flow returns credentials without a token.
    """
    client_config = lib.get_settings().load_client_secret()

    logging.debug('Starting OAuth flow...')
    flow = google_auth_oauthlib.flow.InstalledAppFlow.from_client_config(client_config, scopes=get_scopes())
    try:
        creds = flow.run_local_server(port=0)
    except Exception as ex:
        raise status.AuthenticationRequiredException(f'OAuth flow failed: {ex}') from ex

    if not creds:
        raise status.AuthenticationRequiredException('Authentication was cancelled or no credentials obtained.')
    if not creds.token:
        raise status.CredsInvalidException('Invalid credentials returned from OAuth flow.')

    save_creds(creds)
    return creds


def sign_out() -> None:
    """
    Delete stored credentials to sign out the user.
    """
    settings = lib.get_settings()
    if settings.creds_path.exists():
        logging.debug(f'Deleting {settings.creds_path}...')
        settings.creds_path.unlink()
        logging.debug('Successfully signed out.')
    else:
        logging.debug('No credentials file found. No action taken.')
