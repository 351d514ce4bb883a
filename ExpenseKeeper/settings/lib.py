"""Settings library for application paths and config.json.

Provides:
    - Application data paths (config, auth, database and export directories).
    - Schema validation and enforcement for the config.json structure.
    - Loading, saving and reverting config sections.
    - Client secret loading and validation for the Google OAuth flow.
"""

import json
import logging
import pathlib
import shutil
from typing import Dict, Any, Optional, List

from PySide6 import QtCore

from ..status import status

app_name: str = 'ExpenseKeeper'

DB_FILENAME: str = 'expense_tracker.db'

JOURNAL_MODES: List[str] = ['DELETE', 'TRUNCATE', 'PERSIST', 'MEMORY', 'WAL', 'OFF']

CONFIG_SCHEMA: Dict[str, Any] = {
    'database': {
        'type': dict,
        'required': True,
        'item_schema': {
            'busy_timeout': {'type': (int, float), 'required': True},
            'journal_mode': {'type': str, 'required': True, 'allowed_values': JOURNAL_MODES},
        }
    },
    'drive': {
        'type': dict,
        'required': True,
        'item_schema': {
            'folder_name': {'type': str, 'required': True},
            'scopes': {'type': list, 'required': True},
        }
    },
    'lock': {
        'type': dict,
        'required': True,
        'item_schema': {
            'timeout_seconds': {'type': int, 'required': True},
        }
    },
    'export': {
        'type': dict,
        'required': True,
        'item_schema': {
            'directory': {'type': str, 'required': True},
        }
    },
    'store': {
        'type': dict,
        'required': True,
        'item_schema': {
            'history_size': {'type': int, 'required': True},
        }
    },
}


def _validate_section(section_name: str, section: Dict[str, Any], item_schema: Dict[str, Any]) -> None:
    """Validate a single config section against its item schema.

    Args:
        section_name: Name of the section, used in error messages.
        section: The section data.
        item_schema: Dict describing required fields, types and allowed values.

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If a required field is missing or a value is not allowed.
    """
    logging.debug(f'Validating "{section_name}" section.')
    for field, field_specs in item_schema.items():
        if field_specs['required'] and field not in section:
            msg: str = f'Section "{section_name}" missing "{field}".'
            logging.error(msg)
            raise ValueError(msg)
        if field not in section:
            continue

        value = section[field]
        if not isinstance(value, field_specs['type']) or isinstance(value, bool):
            msg = (
                f'Section "{section_name}" field "{field}" must be {field_specs["type"]}, '
                f'got {type(value)}.'
            )
            logging.error(msg)
            raise TypeError(msg)

        allowed = field_specs.get('allowed_values')
        if allowed and value not in allowed:
            msg = f'Section "{section_name}" field "{field}" must be one of {allowed}, got "{value}".'
            logging.error(msg)
            raise ValueError(msg)


class ConfigPaths:
    """Manage application file paths and ensure default templates and directories exist.

    All user data lives under the Qt AppDataLocation for the application. Templates
    shipped with the package are copied into place when the user copies are missing.
    """

    def __init__(self) -> None:
        QtCore.QCoreApplication.setApplicationName(app_name)
        QtCore.QCoreApplication.setOrganizationName('')
        logging.debug(f'Setting application name: {app_name}')

        p = QtCore.QStandardPaths.writableLocation(QtCore.QStandardPaths.AppDataLocation)
        app_data_dir = pathlib.Path(p)
        logging.debug(f'Using app data directory: {app_data_dir}')

        self.template_dir: pathlib.Path = pathlib.Path(__file__).parent.parent / 'config'
        self.client_secret_template: pathlib.Path = self.template_dir / 'client_secret.json.template'
        self.config_template: pathlib.Path = self.template_dir / 'config.json.template'

        self.app_data_dir: pathlib.Path = app_data_dir
        self.config_dir: pathlib.Path = app_data_dir / 'config'
        self.auth_dir: pathlib.Path = self.config_dir / 'auth'
        self.db_dir: pathlib.Path = app_data_dir / 'db'
        self.exports_dir: pathlib.Path = app_data_dir / 'exports'

        self.client_secret_path: pathlib.Path = self.config_dir / 'client_secret.json'
        self.config_path: pathlib.Path = self.config_dir / 'config.json'
        self.creds_path: pathlib.Path = self.auth_dir / 'creds.json'
        self.db_path: pathlib.Path = self.db_dir / DB_FILENAME

        self._verify_and_prepare()

    def _verify_and_prepare(self) -> None:
        """Verify templates exist and prepare configuration directories and files.

        Raises:
            FileNotFoundError: If the template directory or a template file is missing.
        """
        logging.debug(f'Verifying required directories and templates in {self.template_dir}')
        if not self.template_dir.exists():
            msg: str = f'Missing template directory: {self.template_dir}'
            logging.error(msg)
            raise FileNotFoundError(msg)
        for template in (self.client_secret_template, self.config_template):
            if not template.exists():
                msg = f'Missing template: {template}'
                logging.error(msg)
                raise FileNotFoundError(msg)

        for directory in (self.config_dir, self.auth_dir, self.db_dir):
            if not directory.exists():
                logging.debug(f'Creating directory: {directory}')
                directory.mkdir(parents=True, exist_ok=True)

        # Ensure valid configs exists even if we haven't yet set them up
        if not self.client_secret_path.exists():
            logging.debug(f'Copying default client_secret from template to {self.client_secret_path}')
            shutil.copy(self.client_secret_template, self.client_secret_path)
        if not self.config_path.exists():
            logging.debug(f'Copying default config from template to {self.config_path}')
            shutil.copy(self.config_template, self.config_path)

    def revert_config_to_template(self) -> None:
        """Restore config.json from the default template file."""
        logging.debug(f'Reverting config to template: {self.config_template}')
        shutil.copy(self.config_template, self.config_path)


class SettingsAPI(ConfigPaths):
    """
    Provides an interface to get/set/revert/save config.json sections and to read client_secret.json.
    """
    required_client_secret_keys: List[str] = ['client_id', 'project_id', 'client_secret', 'auth_uri', 'token_uri']

    def __init__(self, config_path: Optional[str] = None) -> None:
        super().__init__()

        self.config_path: pathlib.Path = pathlib.Path(config_path) if config_path else self.config_path

        self.config_data: Dict[str, Any] = {k: {} for k in CONFIG_SCHEMA}
        self.client_secret_data: Dict[str, Any] = {}

        self.load_config()

    def __getitem__(self, key: str) -> Any:
        """Retrieve a config value using a dotted ``section.key`` path.

        Args:
            key: The dotted path, e.g. ``'lock.timeout_seconds'``.

        Returns:
            The stored value.

        Raises:
            KeyError: If the section or the key does not exist.
        """
        section_name, _, field = key.partition('.')
        if section_name not in CONFIG_SCHEMA:
            raise KeyError(f'Invalid section: {section_name}, must be one of {list(CONFIG_SCHEMA)}')
        if not field:
            raise KeyError(f'Invalid key: "{key}", expected "section.key"')
        return self.config_data[section_name][field]

    def load_config(self) -> Dict[str, Any]:
        """Load config.json from disk and validate against schema.

        Returns:
            The loaded config data dictionary.

        Raises:
            status.ConfigInvalidException: If JSON parsing or validation fails.
        """
        logging.debug(f'Loading config from "{self.config_path}"')
        try:
            with self.config_path.open('r', encoding='utf-8') as f:
                data: Dict[str, Any] = json.load(f)
            self.validate_config_data(data)
        except (OSError, ValueError, TypeError) as ex:
            raise status.ConfigInvalidException(str(ex)) from ex

        self.config_data = data
        return self.config_data

    def load_client_secret(self) -> Dict[str, Any]:
        """Load client_secret.json from disk and validate required OAuth fields.

        Returns:
            The loaded client secret data dictionary.

        Raises:
            status.ClientSecretNotFoundException: If client_secret.json file is missing.
            status.ClientSecretInvalidException: If JSON parsing or required fields are missing.
        """
        logging.debug(f'Loading client_secret from "{self.client_secret_path}"')
        if not self.client_secret_path.exists():
            raise status.ClientSecretNotFoundException

        try:
            with self.client_secret_path.open('r', encoding='utf-8') as f:
                data: Dict[str, Any] = json.load(f)
        except (ValueError, json.JSONDecodeError) as ex:
            raise status.ClientSecretInvalidException from ex

        self.validate_client_secret(data)
        self.client_secret_data = data
        return self.client_secret_data

    def validate_client_secret(self, data=None) -> str:
        """Validate that the client configuration contains required OAuth credentials.

        Args:
            data (dict, optional): Client secret data to validate. Defaults to loaded client_secret_data.

        Returns:
            str: Section key used ('installed' or 'web').

        Raises:
            status.ClientSecretInvalidException: If no valid client_secret section exists or required fields are missing.
        """
        if data is None:
            data = self.client_secret_data

        key = next((k for k in ('installed', 'web') if k in data), None)
        if not key:
            raise status.ClientSecretInvalidException('Missing "installed" or "web" section in client_secret.')

        config_section: Dict[str, Any] = data[key]
        missing: List[str] = [
            k for k in self.required_client_secret_keys if not config_section.get(k)
        ]
        if missing:
            raise status.ClientSecretInvalidException(
                f'Missing required fields in the \'{key}\' section: {missing}.'
            )
        return key

    def validate_config_data(self, data: Dict[str, Any] = None) -> None:
        """Validate config data against the defined CONFIG_SCHEMA.

        Args:
            data (dict, optional): Config data to validate. Defaults to self.config_data.

        Raises:
            ValueError: If a required section or field is missing, or a value is not allowed.
            TypeError: If a section or field has the wrong type.
        """
        if data is None:
            data = self.config_data
        if not isinstance(data, dict) or not data:
            raise ValueError('Config data is empty.')

        for field, specs in CONFIG_SCHEMA.items():
            if specs.get('required') and field not in data:
                raise ValueError(f'Missing required section: {field}')
            if field not in data:
                continue
            if not isinstance(data[field], specs['type']):
                raise TypeError(f'Section "{field}" must be {specs["type"]}, got {type(data[field])}.')
            _validate_section(field, data[field], specs['item_schema'])

        logging.debug('Config data is valid.')

    def get_section(self, section_name: str) -> Dict[str, Any]:
        """Retrieve a copy of configuration data for a section.

        Args:
            section_name: Section name ('client_secret' or key from config schema).

        Returns:
            A copied dict of the requested section data.

        Raises:
            KeyError: If section_name is not in config_data.
        """
        if section_name == 'client_secret':
            if not self.client_secret_data:
                self.load_client_secret()
            return self.client_secret_data.copy()

        return self.config_data[section_name].copy()

    def set_section(self, section_name: str, new_data: Dict[str, Any]) -> None:
        """Replace, validate and persist a configuration section.

        Args:
            section_name: Section to update.
            new_data: New data dict for the section.

        Raises:
            ValueError: If section_name is unrecognized or new_data fails validation.
            TypeError: If new_data has values of the wrong type.
        """
        if section_name not in CONFIG_SCHEMA:
            msg: str = f'Unknown section_name for set: "{section_name}"'
            logging.error(msg)
            raise ValueError(msg)

        current_section_data: Dict[str, Any] = self.config_data[section_name]
        self.config_data[section_name] = new_data
        try:
            self.validate_config_data()
        except (ValueError, TypeError) as e:
            logging.error(f'Validation error on set_section("{section_name}"): {e}')
            self.config_data[section_name] = current_section_data
            raise

        self.save_section(section_name)

    def revert_section(self, section_name: str) -> None:
        """Revert a configuration section to its template default and save.

        Args:
            section_name: Section to revert.

        Raises:
            ValueError: If section_name is invalid.
        """
        if section_name not in CONFIG_SCHEMA:
            msg: str = f'Unknown section_name for revert: "{section_name}"'
            logging.error(msg)
            raise ValueError(msg)

        with self.config_template.open('r', encoding='utf-8') as f:
            template_data: Dict[str, Any] = json.load(f)

        self.config_data[section_name] = template_data[section_name]
        self.save_section(section_name)

    def save_section(self, section_name: str) -> None:
        """Persist a single configuration section to config.json.

        Args:
            section_name: The section to save.

        Raises:
            ValueError: If section_name is not recognized.
        """
        if section_name not in CONFIG_SCHEMA:
            msg: str = f'Unknown section_name for save: "{section_name}"'
            logging.error(msg)
            raise ValueError(msg)

        with self.config_path.open('r', encoding='utf-8') as f:
            original_data: Dict[str, Any] = json.load(f)

        new_data: Dict[str, Any] = original_data.copy()
        new_data[section_name] = self.config_data[section_name]

        logging.debug(f'Saving section "{section_name}" to "{self.config_path}"')
        with self.config_path.open('w', encoding='utf-8') as f:
            json.dump(new_data, f, indent=4, ensure_ascii=False)


settings: Optional[SettingsAPI] = None


def get_settings() -> SettingsAPI:
    """Return the shared SettingsAPI instance, creating it on first use."""
    global settings
    if settings is None:
        settings = SettingsAPI()
    return settings
