"""
Google OAuth2 authentication and credential management.

Sign-in is an external collaborator of the sync engine: the engine only
needs gateway calls to fail with :class:`status.UnauthenticatedError` when
nobody is signed in. This module loads, refreshes and stores credentials,
runs the installed-app OAuth flow, and looks up the reviewer's display name.
"""

import json
import logging
import threading
from typing import Any, Optional

import google.auth.exceptions
import google.auth.transport.requests
import google.oauth2.credentials
import google_auth_oauthlib.flow
from PySide6 import QtCore
from googleapiclient.discovery import build

from ..status import status

DEFAULT_SCOPES = [
    'https://www.googleapis.com/auth/spreadsheets',
    'https://www.googleapis.com/auth/userinfo.profile',
    'openid',
]
AUTH_TIMEOUT: int = 120


class AuthManager:
    """Manages OAuth2 credentials with thread-safe refresh."""

    def __init__(self):
        self._lock = threading.Lock()
        self._creds: Optional[google.oauth2.credentials.Credentials] = None

    def get_valid_credentials(self) -> google.oauth2.credentials.Credentials:
        """
        Return valid credentials without any user interaction.

        Raises:
            status.UnauthenticatedError: if no credentials exist, they are corrupt,
                or they expired and cannot be refreshed.
        """
        from ..settings import lib
        with self._lock:
            if self._creds is None:
                if not lib.settings.creds_path.exists():
                    raise status.UnauthenticatedError('No stored credentials.')
                try:
                    self._creds = google.oauth2.credentials.Credentials.from_authorized_user_file(
                        str(lib.settings.creds_path))
                except (ValueError, json.JSONDecodeError) as ex:
                    lib.settings.creds_path.unlink(missing_ok=True)
                    raise status.UnauthenticatedError('Stored credentials are invalid.') from ex

            if self._creds.expired:
                if not self._creds.refresh_token:
                    self._creds = None
                    raise status.UnauthenticatedError('Credentials expired.')
                try:
                    self._creds.refresh(google.auth.transport.requests.Request())
                except google.auth.exceptions.GoogleAuthError as ex:
                    self._creds = None
                    raise status.UnauthenticatedError('Failed to refresh credentials.') from ex
                save_creds(self._creds)

            return self._creds

    def is_signed_in(self) -> bool:
        """Return True if valid credentials can be obtained without interaction."""
        try:
            self.get_valid_credentials()
        except status.UnauthenticatedError:
            return False
        return True

    def refresh_credentials_interactive(self) -> google.oauth2.credentials.Credentials:
        """Run the browser OAuth flow and store the resulting credentials."""
        creds = authenticate()
        with self._lock:
            self._creds = creds
        from ..ui.actions import signals
        signals.signedIn.emit(get_user_name(creds))
        return creds


auth_manager = AuthManager()


class AuthFlowWorker(QtCore.QThread):
    """
    Runs OAuth web flow in a background thread.

    Signals:
        resultReady (object): Emitted with credentials on success.
        errorOccurred (object): Emitted with the exception on failure.
    """
    resultReady = QtCore.Signal(object)
    errorOccurred = QtCore.Signal(object)

    def __init__(self, flow: google_auth_oauthlib.flow.InstalledAppFlow, parent=None):
        super().__init__(parent)
        self.flow = flow

    def run(self):
        logging.debug('Waiting for the browser sign-in to complete...')
        try:
            creds = self.flow.run_local_server(port=0)
        except Exception as ex:
            self.errorOccurred.emit(ex)
            return
        if not creds or not creds.token:
            self.errorOccurred.emit(RuntimeError('Authentication did not complete successfully.'))
            return
        self.resultReady.emit(creds)


def save_creds(creds: google.oauth2.credentials.Credentials) -> None:
    """
    Save OAuth2 credentials to the configured token file.

    Args:
        creds: Credentials to save.
    """
    from ..settings import lib
    with open(lib.settings.creds_path, 'w', encoding='utf-8') as token_file:
        token_file.write(creds.to_json())

    logging.debug(f'Credentials saved to {lib.settings.creds_path}.')


def authenticate(timeout: int = AUTH_TIMEOUT) -> google.oauth2.credentials.Credentials:
    """
    Run the OAuth installed-app flow and obtain credentials.

    The flow runs on an :class:`AuthFlowWorker` while a local event loop waits
    for it, so the Qt event loop keeps running during sign-in.

    Returns:
        google.oauth2.credentials.Credentials: The authenticated credentials.

    Raises:
        status.ClientSecretNotFoundError: If the client secret file is missing.
        status.ClientSecretInvalidError: If the client secret is incomplete.
        status.UnauthenticatedError: If the flow fails, is cancelled or times out.
    """
    from ..settings import lib
    if not lib.settings.client_secret_path.exists():
        raise status.ClientSecretNotFoundError

    lib.settings.validate_client_secret()
    client_config = lib.settings.get_section('client_secret')

    logging.debug('Starting new OAuth flow...')
    flow = google_auth_oauthlib.flow.InstalledAppFlow.from_client_config(client_config, scopes=DEFAULT_SCOPES)

    worker = AuthFlowWorker(flow)
    result = {'creds': None, 'error': None}
    loop = QtCore.QEventLoop()

    worker.resultReady.connect(lambda c: (result.update({'creds': c}), loop.quit()))
    worker.errorOccurred.connect(lambda err: (result.update({'error': err}), loop.quit()))

    timer = QtCore.QTimer()
    timer.setSingleShot(True)
    timer.timeout.connect(loop.quit)
    timer.start(timeout * 1000)

    worker.start()
    loop.exec()
    timer.stop()

    if worker.isRunning():
        worker.terminate()
        worker.wait()
        raise status.UnauthenticatedError('OAuth flow timed out (no response from browser).')

    if result['error']:
        raise status.UnauthenticatedError(f'OAuth flow failed: {result["error"]}')
    creds = result['creds']
    if not creds or not creds.valid:
        raise status.UnauthenticatedError('Authentication was cancelled or returned invalid credentials.')

    save_creds(creds)
    return creds


def get_user_name(creds: Any = None) -> str:
    """
    Return the signed-in reviewer's display name, or an empty string.

    Args:
        creds: Credentials to use. Defaults to the stored credentials.
    """
    try:
        creds = creds or auth_manager.get_valid_credentials()
    except status.UnauthenticatedError:
        return ''

    try:
        with build('oauth2', 'v2', credentials=creds, cache_discovery=False) as service:
            info = service.userinfo().get().execute()
    except Exception as ex:
        logging.warning(f'Could not look up the signed-in user: {ex}')
        return ''
    return info.get('name') or info.get('email') or ''

