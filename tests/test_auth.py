"""Tests for ExpenseKeeper.core.auth."""
import datetime
import json
from unittest.mock import MagicMock, patch

import google.auth.exceptions
import google.oauth2.credentials

from ExpenseKeeper.core import auth
from ExpenseKeeper.settings import lib
from ExpenseKeeper.status import status
from tests.base import BaseTestCase

SCOPES = ['https://www.googleapis.com/auth/drive.file']

CLIENT_SECRET = {
    'installed': {
        'client_id': 'client-id.apps.googleusercontent.com',
        'project_id': 'expense-keeper-test',
        'auth_uri': 'https://accounts.google.com/o/oauth2/auth',
        'token_uri': 'https://oauth2.googleapis.com/token',
        'client_secret': 'secret',
        'redirect_uris': ['http://localhost'],
    }
}


def authorized_user(token='stored-token', expiry=None, scopes=None, **overrides):
    data = {
        'token': token,
        'refresh_token': 'refresh-token',
        'token_uri': 'https://oauth2.googleapis.com/token',
        'client_id': 'client-id.apps.googleusercontent.com',
        'client_secret': 'secret',
        'scopes': scopes or SCOPES,
    }
    if expiry:
        data['expiry'] = expiry
    data.update(overrides)
    return data


class DummyCreds:
    def __init__(self, token='interactive-token'):
        self.token = token
        self.scopes = SCOPES
        self.expired = False
        self.refresh_token = 'refresh-token'

    def to_json(self):
        return json.dumps({'token': self.token})


class AuthManagerTests(BaseTestCase):

    def setUp(self) -> None:
        super().setUp()
        self.manager = auth.AuthManager()

    def test_scopes_from_config(self):
        self.assertEqual(auth.get_scopes(), SCOPES)

    def test_stored_token(self):
        auth.save_creds(authorized_user())
        self.assertEqual(self.manager.get_valid_token(), 'stored-token')

    def test_no_credentials_without_interaction(self):
        with patch('ExpenseKeeper.core.auth.authenticate') as authenticate:
            self.assertIsNone(self.manager.get_valid_token(interactive=False))
        authenticate.assert_not_called()

    def test_interactive_sign_in(self):
        with patch('ExpenseKeeper.core.auth.authenticate', return_value=DummyCreds()) as authenticate:
            self.assertEqual(self.manager.get_valid_token(interactive=True), 'interactive-token')
            self.assertEqual(self.manager.get_valid_token(interactive=False), 'interactive-token')
        authenticate.assert_called_once()

    def test_interactive_failure_returns_none(self):
        with patch('ExpenseKeeper.core.auth.authenticate', side_effect=status.ClientSecretNotFoundException):
            self.assertIsNone(self.manager.get_valid_token(interactive=True))

    def test_mismatched_scopes_need_sign_in(self):
        auth.save_creds(authorized_user(scopes=['https://www.googleapis.com/auth/drive.readonly']))
        self.assertIsNone(self.manager.get_valid_token())

    def test_corrupt_credentials_are_removed(self):
        with open(lib.settings.creds_path, 'w', encoding='utf-8') as f:
            f.write('{not json')
        self.assertIsNone(self.manager.get_valid_token())
        self.assertFalse(lib.settings.creds_path.exists())

    def test_expired_credentials_are_refreshed(self):
        auth.save_creds(authorized_user(token='old-token', expiry='2000-01-01T00:00:00Z'))

        def refresh(creds, request):
            creds.token = 'fresh-token'
            now = datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)
            creds.expiry = now + datetime.timedelta(hours=1)

        with patch.object(google.oauth2.credentials.Credentials, 'refresh', autospec=True, side_effect=refresh):
            self.assertEqual(self.manager.get_valid_token(), 'fresh-token')

        with open(lib.settings.creds_path, 'r', encoding='utf-8') as f:
            self.assertEqual(json.load(f)['token'], 'fresh-token')

    def test_failed_refresh_needs_sign_in(self):
        auth.save_creds(authorized_user(token='old-token', expiry='2000-01-01T00:00:00Z'))
        with patch.object(
                google.oauth2.credentials.Credentials, 'refresh',
                side_effect=google.auth.exceptions.RefreshError('revoked')
        ):
            self.assertIsNone(self.manager.get_valid_token())

    def test_sign_out(self):
        auth.save_creds(authorized_user())
        self.assertEqual(self.manager.get_valid_token(), 'stored-token')

        self.manager.sign_out()
        self.assertFalse(lib.settings.creds_path.exists())
        self.assertIsNone(self.manager.get_valid_token())

        auth.sign_out()


class AuthenticateTests(BaseTestCase):

    def test_template_client_secret_is_invalid(self):
        with self.assertRaises(status.ClientSecretInvalidException):
            auth.authenticate()

    def test_missing_client_secret(self):
        lib.settings.client_secret_path.unlink()
        with self.assertRaises(status.ClientSecretNotFoundException):
            auth.authenticate()

    def test_flow_stores_credentials(self):
        with open(lib.settings.client_secret_path, 'w', encoding='utf-8') as f:
            json.dump(CLIENT_SECRET, f)

        flow = MagicMock()
        flow.run_local_server.return_value = DummyCreds()
        with patch('google_auth_oauthlib.flow.InstalledAppFlow.from_client_config', return_value=flow) as factory:
            creds = auth.authenticate()

        self.assertEqual(creds.token, 'interactive-token')
        factory.assert_called_once_with(CLIENT_SECRET, scopes=SCOPES)
        with open(lib.settings.creds_path, 'r', encoding='utf-8') as f:
            self.assertEqual(json.load(f), {'token': 'interactive-token'})

    def test_flow_failure(self):
        with open(lib.settings.client_secret_path, 'w', encoding='utf-8') as f:
            json.dump(CLIENT_SECRET, f)

        flow = MagicMock()
        flow.run_local_server.side_effect = RuntimeError('browser closed')
        with patch('google_auth_oauthlib.flow.InstalledAppFlow.from_client_config', return_value=flow):
            with self.assertRaises(status.AuthenticationRequiredException):
                auth.authenticate()

    def test_flow_without_token(self):
        with open(lib.settings.client_secret_path, 'w', encoding='utf-8') as f:
            json.dump(CLIENT_SECRET, f)

        flow = MagicMock()
        flow.run_local_server.return_value = DummyCreds(token=None)
        with patch('google_auth_oauthlib.flow.InstalledAppFlow.from_client_config', return_value=flow):
            with self.assertRaises(status.CredsInvalidException):
                auth.authenticate()
        self.assertFalse(lib.settings.creds_path.exists())

        flow.run_local_server.return_value = None
        with patch('google_auth_oauthlib.flow.InstalledAppFlow.from_client_config', return_value=flow):
            with self.assertRaises(status.AuthenticationRequiredException):
                auth.authenticate()
