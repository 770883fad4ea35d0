"""Application-wide Qt signals for SheetReviewer.

This module provides:
    - Signals: custom Qt signals for configuration changes, authentication
      requests and error reporting.
"""
import logging

from PySide6 import QtCore


class Signals(QtCore.QObject):
    """Centralized Qt signals for application config, authentication and error events."""
    authenticationRequested = QtCore.Signal()
    signedIn = QtCore.Signal(str)

    configSectionChanged = QtCore.Signal(str)

    error = QtCore.Signal(str)

    def __init__(self):
        super().__init__()
        self._connect_signals()

    def _connect_signals(self):
        @QtCore.Slot()
        def _on_authentication_requested() -> None:
            try:
                from ..core.auth import auth_manager
                auth_manager.refresh_credentials_interactive()
            except Exception as ex:
                logging.error(f'Authentication failed: {ex}')

        self.authenticationRequested.connect(_on_authentication_requested)


signals = Signals()
