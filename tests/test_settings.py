"""Tests for ExpenseKeeper.settings.lib and ExpenseKeeper.settings.locale."""
import json
from typing import Any, Dict

from ExpenseKeeper.settings import lib, locale
from ExpenseKeeper.status import status
from tests.base import BaseTestCase

DUMMY_SECRET = {
    'installed': {
        'client_id': 'dummy',
        'project_id': 'dummy',
        'client_secret': 'dummy',
        'auth_uri': 'https://example',
        'token_uri': 'https://example',
    }
}


def template_config() -> Dict[str, Any]:
    with lib.settings.config_template.open('r', encoding='utf-8') as f:
        return json.load(f)


class ConfigPathsTests(BaseTestCase):

    def test_directories_and_files_created(self):
        s = lib.settings
        for directory in (s.config_dir, s.auth_dir, s.db_dir):
            self.assertTrue(directory.is_dir(), directory)
        self.assertTrue(s.config_path.exists())
        self.assertTrue(s.client_secret_path.exists())
        self.assertEqual(s.db_path.name, lib.DB_FILENAME)
        self.assertEqual(s.db_path.parent, s.db_dir)

    def test_missing_template_raises(self):
        s = lib.settings
        original = s.config_template
        s.config_template = s.template_dir / 'missing.json.template'
        try:
            with self.assertRaises(FileNotFoundError):
                s._verify_and_prepare()
        finally:
            s.config_template = original

    def test_revert_config_to_template(self):
        s = lib.settings
        s.config_path.write_text('{}', encoding='utf-8')
        s.revert_config_to_template()
        self.assertEqual(json.loads(s.config_path.read_text(encoding='utf-8')), template_config())


class SettingsAPITests(BaseTestCase):

    def test_loads_template_defaults(self):
        s = lib.settings
        self.assertEqual(s['lock.timeout_seconds'], 300)
        self.assertEqual(s['drive.folder_name'], 'Expense Tracker Backups')
        self.assertEqual(s['drive.scopes'], ['https://www.googleapis.com/auth/drive.file'])
        self.assertEqual(s['database.journal_mode'], 'WAL')
        self.assertEqual(s['store.history_size'], 200)

    def test_getitem_errors(self):
        s = lib.settings
        with self.assertRaises(KeyError):
            s['unknown.key']
        with self.assertRaises(KeyError):
            s['lock']
        with self.assertRaises(KeyError):
            s['lock.missing']

    def test_get_section_returns_copy(self):
        section = lib.settings.get_section('lock')
        section['timeout_seconds'] = 1
        self.assertEqual(lib.settings['lock.timeout_seconds'], 300)

    def test_set_section_persists(self):
        lib.settings.set_section('lock', {'timeout_seconds': 60})
        self.assertEqual(lib.settings['lock.timeout_seconds'], 60)

        reloaded = lib.SettingsAPI()
        self.assertEqual(reloaded['lock.timeout_seconds'], 60)
        self.assertEqual(reloaded['drive.folder_name'], 'Expense Tracker Backups')

    def test_set_section_rolls_back_invalid_data(self):
        s = lib.settings
        with self.assertRaises(TypeError):
            s.set_section('lock', {'timeout_seconds': 'soon'})
        self.assertEqual(s['lock.timeout_seconds'], 300)

        with self.assertRaises(ValueError):
            s.set_section('database', {'busy_timeout': 5.0, 'journal_mode': 'FAST'})
        self.assertEqual(s['database.journal_mode'], 'WAL')

        with self.assertRaises(ValueError):
            s.set_section('export', {})
        self.assertEqual(s['export.directory'], 'exports')

    def test_booleans_are_not_integers(self):
        with self.assertRaises(TypeError):
            lib.settings.set_section('lock', {'timeout_seconds': True})

    def test_unknown_section(self):
        with self.assertRaises(ValueError):
            lib.settings.set_section('ledger', {})
        with self.assertRaises(ValueError):
            lib.settings.revert_section('ledger')
        with self.assertRaises(ValueError):
            lib.settings.save_section('ledger')

    def test_revert_section(self):
        lib.settings.set_section('lock', {'timeout_seconds': 10})
        lib.settings.revert_section('lock')
        self.assertEqual(lib.settings['lock.timeout_seconds'], 300)
        self.assertEqual(lib.SettingsAPI()['lock.timeout_seconds'], 300)

    def test_invalid_config_file(self):
        lib.settings.config_path.write_text('{not json', encoding='utf-8')
        with self.assertRaises(status.ConfigInvalidException):
            lib.SettingsAPI()

        data = template_config()
        del data['drive']
        lib.settings.config_path.write_text(json.dumps(data), encoding='utf-8')
        with self.assertRaises(status.ConfigInvalidException):
            lib.SettingsAPI()

    def test_get_settings_creates_instance(self):
        lib.settings = None
        s = lib.get_settings()
        self.assertIsInstance(s, lib.SettingsAPI)
        self.assertIs(lib.get_settings(), s)


class ClientSecretTests(BaseTestCase):

    def test_template_secret_is_invalid(self):
        with self.assertRaises(status.ClientSecretInvalidException):
            lib.settings.load_client_secret()

    def test_missing_secret(self):
        lib.settings.client_secret_path.unlink()
        with self.assertRaises(status.ClientSecretNotFoundException):
            lib.settings.load_client_secret()

    def test_malformed_secret(self):
        lib.settings.client_secret_path.write_text('{oops', encoding='utf-8')
        with self.assertRaises(status.ClientSecretInvalidException):
            lib.settings.load_client_secret()

    def test_valid_secret(self):
        lib.settings.client_secret_path.write_text(json.dumps(DUMMY_SECRET), encoding='utf-8')
        self.assertEqual(lib.settings.load_client_secret(), DUMMY_SECRET)
        self.assertEqual(lib.settings.validate_client_secret(), 'installed')
        self.assertEqual(lib.settings.get_section('client_secret'), DUMMY_SECRET)

    def test_missing_section(self):
        with self.assertRaises(status.ClientSecretInvalidException):
            lib.settings.validate_client_secret({'other': {}})


class LocaleTests(BaseTestCase):

    def test_known_currencies(self):
        currencies = locale.load_currencies()
        self.assertIn('GBP', currencies)
        self.assertIn('EUR', currencies)
        self.assertTrue(all(len(code) == 3 and code.isupper() for code in currencies))
        self.assertTrue(locale.is_known_currency('JPY'))
        self.assertFalse(locale.is_known_currency('ZZZ'))

    def test_find_currency_name(self):
        self.assertEqual(locale.find_currency_name(' gbp '), 'British Pound')
        self.assertIsNone(locale.find_currency_name(''))
        self.assertIsNone(locale.find_currency_name('ZZZ'))

    def test_currency_options_sorted(self):
        codes = [code for code, _ in locale.get_currency_options()]
        self.assertEqual(codes, sorted(codes))

    def test_format_currency_value(self):
        self.assertEqual(locale.format_currency_value(1234.5, 'GBP'), '£1,234.50')
