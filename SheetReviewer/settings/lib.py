"""Settings library for review and authentication configurations.

Provides:
    - Schema validation and enforcement for review.json structure.
    - Loading, saving, reverting, and managing application settings.
    - Paths to the client_secret.json template and stored credentials.
"""

import json
import logging
import pathlib
import shutil
from typing import Dict, Any, Optional, List

from PySide6 import QtCore

from ..status import status

app_name: str = 'SheetReviewer'

DEFAULT_WORKSHEET: str = 'Form Responses 1'
DEFAULT_POLL_INTERVAL: float = 10.0
SECTION_COLUMN_COUNT: int = 4
NO_FILTER_COLUMN: int = -1

REVIEW_SCHEMA: Dict[str, Any] = {
    'spreadsheet': {
        'type': dict,
        'required': True,
        'item_schema': {
            'id': {'type': str, 'required': True},
            'worksheet': {'type': str, 'required': True},
        }
    },
    'polling': {
        'type': dict,
        'required': True,
        'item_schema': {
            'interval': {'type': (int, float), 'required': True},
            'enabled': {'type': bool, 'required': True},
        }
    },
    'view': {
        'type': dict,
        'required': True,
        'item_schema': {
            'filter_column': {'type': int, 'required': True},
            'filter_value': {'type': str, 'required': True},
            'section_columns': {'type': list, 'required': True},
            'section_vocabulary': {'type': list, 'required': True},
        }
    },
}


def _validate_item_schema(section: str, data: Dict[str, Any], item_schema: Dict[str, Any]) -> None:
    """Validate a flat section against its item schema.

    Args:
        section: Name of the section, used in error messages.
        data: The section's data.
        item_schema: Mapping of field names to their 'type' and 'required' specs.

    Raises:
        TypeError: If data is not a dict or a field has the wrong type.
        ValueError: If a required field is missing.
    """
    logging.debug(f'Validating "{section}" section.')
    if not isinstance(data, dict):
        msg: str = f'"{section}" must be a dict.'
        logging.error(msg)
        raise TypeError(msg)

    for field, field_specs in item_schema.items():
        if field not in data:
            if field_specs['required']:
                msg = f'"{section}" is missing "{field}".'
                logging.error(msg)
                raise ValueError(msg)
            continue

        value = data[field]
        # bool is an int subclass, so it is rejected explicitly for numeric fields
        if isinstance(value, bool) and field_specs['type'] is not bool:
            msg = f'"{section}" field "{field}" must be {field_specs["type"]}, got {type(value)}.'
            logging.error(msg)
            raise TypeError(msg)
        if not isinstance(value, field_specs['type']):
            msg = f'"{section}" field "{field}" must be {field_specs["type"]}, got {type(value)}.'
            logging.error(msg)
            raise TypeError(msg)


def _validate_polling(polling_dict: Dict[str, Any]) -> None:
    """Validate the 'polling' section.

    Raises:
        ValueError: If the interval is not a positive number.
    """
    if polling_dict['interval'] <= 0:
        msg: str = f'Polling interval must be positive, got {polling_dict["interval"]}.'
        logging.error(msg)
        raise ValueError(msg)


def _validate_view(view_dict: Dict[str, Any]) -> None:
    """Validate the 'view' section.

    The filter column is a zero-based column index, or -1 for no filter.
    Exactly four section columns are required.

    Raises:
        TypeError: If section columns or vocabulary items have the wrong type.
        ValueError: If indices are out of range or the wrong number of section columns is given.
    """
    if view_dict['filter_column'] < NO_FILTER_COLUMN:
        msg: str = f'filter_column must be {NO_FILTER_COLUMN} or a column index, got {view_dict["filter_column"]}.'
        logging.error(msg)
        raise ValueError(msg)

    columns: List[Any] = view_dict['section_columns']
    if len(columns) != SECTION_COLUMN_COUNT:
        msg = f'section_columns must list {SECTION_COLUMN_COUNT} columns, got {len(columns)}.'
        logging.error(msg)
        raise ValueError(msg)
    for column in columns:
        if not isinstance(column, int) or isinstance(column, bool):
            msg = f'Section column "{column}" must be an int.'
            logging.error(msg)
            raise TypeError(msg)
        if column < 0:
            msg = f'Section column "{column}" must not be negative.'
            logging.error(msg)
            raise ValueError(msg)

    for word in view_dict['section_vocabulary']:
        if not isinstance(word, str):
            msg = f'Section vocabulary entry "{word}" must be a string.'
            logging.error(msg)
            raise TypeError(msg)


class ConfigPaths:
    """Manage application file paths and ensure default templates and directories exist.

    Defines template, config and auth paths. Creates missing directories and
    copies the default templates into the user data directory.
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
        self.review_template: pathlib.Path = self.template_dir / 'review.json.template'

        self.config_dir: pathlib.Path = app_data_dir / 'config'
        self.auth_dir: pathlib.Path = self.config_dir / 'auth'

        self.client_secret_path: pathlib.Path = self.config_dir / 'client_secret.json'
        self.review_path: pathlib.Path = self.config_dir / 'review.json'
        self.creds_path: pathlib.Path = self.auth_dir / 'creds.json'

        self._verify_and_prepare()

    def _verify_and_prepare(self) -> None:
        """Verify templates exist and prepare configuration directories and files.

        Raises:
            FileNotFoundError: If required template directory or file is missing.
        """
        logging.debug(f'Verifying required directories and templates in {self.template_dir}')
        if not self.template_dir.exists():
            msg: str = f'Missing template directory: {self.template_dir}'
            logging.error(msg)
            raise FileNotFoundError(msg)
        if not self.client_secret_template.exists():
            msg = f'Missing client_secret template: {self.client_secret_template}'
            logging.error(msg)
            raise FileNotFoundError(msg)
        if not self.review_template.exists():
            msg = f'Missing review template: {self.review_template}'
            logging.error(msg)
            raise FileNotFoundError(msg)

        if not self.config_dir.exists():
            logging.debug(f'Creating config directory: {self.config_dir}')
            self.config_dir.mkdir(parents=True, exist_ok=True)

        if not self.auth_dir.exists():
            logging.debug(f'Creating auth directory: {self.auth_dir}')
            self.auth_dir.mkdir(parents=True, exist_ok=True)

        # Ensure valid configs exists even if we haven't yet set them up
        if not self.client_secret_path.exists():
            self.revert_client_secret_to_template()
        if not self.review_path.exists():
            self.revert_review_to_template()

    def revert_review_to_template(self) -> None:
        """Restore review.json from the default template file.

        Raises:
            FileNotFoundError: If the review template file is missing.
        """
        logging.debug(f'Reverting review config to template: {self.review_template}')
        if not self.review_template.exists():
            msg: str = f'Review template not found: {self.review_template}'
            logging.error(msg)
            raise FileNotFoundError(msg)
        shutil.copy(self.review_template, self.review_path)

    def revert_client_secret_to_template(self) -> None:
        """Restore client_secret.json from the default template file.

        Raises:
            FileNotFoundError: If the client_secret template file is missing.
        """
        logging.debug(f'Reverting client_secret to template: {self.client_secret_template}')
        if not self.client_secret_template.exists():
            msg: str = f'Client_secret template not found: {self.client_secret_template}'
            logging.error(msg)
            raise FileNotFoundError(msg)
        shutil.copy(self.client_secret_template, self.client_secret_path)


class SettingsAPI(ConfigPaths):
    """
    Provides an interface to get/set/save review.json sections and client_secret.json.
    """
    required_client_secret_keys: List[str] = ['client_id', 'project_id', 'client_secret', 'auth_uri', 'token_uri']

    def __init__(self, review_path: Optional[str] = None, client_secret_path: Optional[str] = None) -> None:
        """Initialize SettingsAPI and load review and client_secret data.

        Args:
            review_path: Optional path to a custom review.json file.
            client_secret_path: Optional path to a custom client_secret.json file.
        """
        super().__init__()

        self.review_path: pathlib.Path = pathlib.Path(review_path) if review_path else self.review_path

        self.client_secret_path: pathlib.Path = (
            pathlib.Path(client_secret_path)
            if client_secret_path
            else self.client_secret_path
        )

        self.review_data: Dict[str, Any] = {}
        for k in REVIEW_SCHEMA.keys():
            self.review_data[k] = {}

        self.client_secret_data: Dict[str, Any] = {}

        self.init_data()

    @QtCore.Slot()
    def init_data(self) -> None:
        """Reload review and client_secret data, emitting config change signals."""
        self.load_review()
        self.load_client_secret()

        from ..ui.actions import signals
        signals.configSectionChanged.emit('client_secret')
        for section in REVIEW_SCHEMA.keys():
            signals.configSectionChanged.emit(section)

    def load_review(self) -> Dict[str, Any]:
        """Load review.json from disk and validate against schema.

        Returns:
            The loaded review data dictionary.

        Raises:
            status.ConfigNotFoundError: If review.json file is missing.
            status.ConfigInvalidError: If JSON parsing or validation fails.
        """
        logging.debug(f'Loading review config from "{self.review_path}"')
        if not self.review_path.exists():
            raise status.ConfigNotFoundError

        try:
            with self.review_path.open('r', encoding='utf-8') as f:
                data: Dict[str, Any] = json.load(f)
            self.validate_review_data(data)
            self.review_data = data
            return self.review_data

        except status.ConfigInvalidError:
            raise
        except Exception as ex:
            raise status.ConfigInvalidError(str(ex)) from ex

    def load_client_secret(self) -> Dict[str, Any]:
        """Load client_secret.json from disk.

        The template ships with placeholder values, so an incomplete secret is
        only reported when the OAuth flow needs it.

        Returns:
            The loaded client secret data dictionary.

        Raises:
            FileNotFoundError: If client_secret.json file is missing.
            status.ClientSecretInvalidError: If JSON parsing fails.
        """
        logging.debug(f'Loading client_secret from "{self.client_secret_path}"')
        if not self.client_secret_path.exists():
            msg: str = f'Client secret file not found: {self.client_secret_path}'
            logging.error(msg)
            raise FileNotFoundError(msg)
        try:
            with self.client_secret_path.open('r', encoding='utf-8') as f:
                data: Dict[str, Any] = json.load(f)
        except (ValueError, json.JSONDecodeError) as ex:
            raise status.ClientSecretInvalidError from ex
        self.client_secret_data = data
        return self.client_secret_data

    def validate_client_secret(self, data=None) -> str:
        """Validate that the client configuration contains required OAuth credentials.

        Args:
            data (dict, optional): Client secret data to validate. Defaults to loaded client_secret_data.

        Returns:
            str: Section key used ('installed' or 'web').

        Raises:
            status.ClientSecretInvalidError: If no valid client_secret section exists or required fields are missing.
        """
        if data is None:
            data = self.client_secret_data

        # Prefer 'installed', then 'web'
        key = next((k for k in ('installed', 'web') if k in data), None)
        if not key:
            raise status.ClientSecretInvalidError('Missing "installed" or "web" section in client_secret.')

        logging.debug(f'Found "{key}" section in client_secret.')

        config_section: Dict[str, Any] = data[key]
        missing: List[str] = [k for k in self.required_client_secret_keys if not config_section.get(k)]
        if missing:
            raise status.ClientSecretInvalidError(
                f'Missing required fields in the \'{key}\' section: {missing}.'
            )
        return key

    def validate_review_data(self, data: Dict[str, Any] = None) -> None:
        """Validate review data against REVIEW_SCHEMA.

        Args:
            data (dict, optional): Review data to validate. Defaults to self.review_data.

        Raises:
            RuntimeError: If data is empty.
            status.ConfigInvalidError: If a required section is missing.
            TypeError, ValueError: If a section fails validation.
        """
        if data is None:
            data = self.review_data
        if not data:
            raise RuntimeError('Review data is empty.')

        logging.debug('Validating review data against schema.')
        for field, specs in REVIEW_SCHEMA.items():
            if specs.get('required') and field not in data:
                msg: str = f'Missing required field: {field}'
                raise status.ConfigInvalidError(msg)

            if field not in data:
                continue

            if not isinstance(data[field], specs['type']):
                msg = f'Field "{field}" must be {specs["type"]}, got {type(data[field])}.'
                raise status.ConfigInvalidError(msg)

            _validate_item_schema(field, data[field], specs['item_schema'])
            if field == 'polling':
                _validate_polling(data[field])
            elif field == 'view':
                _validate_view(data[field])

        logging.debug('Review data is valid.')

    def get_section(self, section_name: str) -> Dict[str, Any]:
        """Retrieve a copy of configuration data for a review or client_secret section.

        Args:
            section_name: Section name ('client_secret' or key from the review schema).

        Returns:
            A copied dict of the requested section data.

        Raises:
            KeyError: If section_name is not in review_data.
        """
        if section_name == 'client_secret':
            return self.client_secret_data.copy()

        return self.review_data[section_name].copy()

    def set_section(self, section_name: str, new_data: Dict[str, Any]) -> None:
        """Replace and persist a configuration section.

        The previous section data is restored if validation fails.

        Args:
            section_name: Section to update ('client_secret' or review key).
            new_data: New data dict for the section.

        Raises:
            ValueError: If section_name is unrecognized or the data is invalid.
            TypeError: If the data has the wrong types.
        """
        from ..ui.actions import signals

        if section_name == 'client_secret':
            logging.debug('Setting entire client_secret data.')
            self.validate_client_secret(new_data)
            self.client_secret_data = new_data
            self.save_section('client_secret')

            signals.configSectionChanged.emit(section_name)
            return

        if section_name not in self.review_data:
            msg: str = f'Unknown section_name for set: "{section_name}"'
            logging.error(msg)
            raise ValueError(msg)

        current_section_data: Dict[str, Any] = self.review_data.get(section_name).copy()

        self.review_data[section_name] = new_data
        try:
            self.validate_review_data()
            self.save_section(section_name)
            signals.configSectionChanged.emit(section_name)

        except (ValueError, TypeError) as e:
            logging.error(f'Validation error on set_section("{section_name}"): {e}')
            self.review_data[section_name] = current_section_data
            raise

    def save_section(self, section_name: str) -> None:
        """Persist a single configuration section to its corresponding file.

        Args:
            section_name: The section to save ('client_secret' or review key).

        Raises:
            ValueError: If section_name is not recognized.
        """
        if section_name == 'client_secret':
            logging.debug(f'Saving client_secret to "{self.client_secret_path}"')
            self.validate_client_secret(self.client_secret_data)
            try:
                with self.client_secret_path.open('w', encoding='utf-8') as f:
                    json.dump(self.client_secret_data, f, indent=4, ensure_ascii=False)

            except Exception as e:
                logging.error(f'Error saving client_secret: {e}')
                raise
            return

        if section_name not in self.review_data:
            msg: str = f'Unknown section_name for save: "{section_name}"'
            logging.error(msg)
            raise ValueError(msg)

        with self.review_path.open('r', encoding='utf-8') as f:
            original_data: Dict[str, Any] = json.load(f)

        new_data: Dict[str, Any] = original_data.copy()
        new_data[section_name] = self.review_data[section_name]

        with self.review_path.open('w', encoding='utf-8') as f:
            json.dump(new_data, f, indent=4, ensure_ascii=False)


settings: SettingsAPI = SettingsAPI()
