"""Status definitions and exceptions for SheetReviewer.

This module provides:
    - Status: enumeration of possible application states
    - STATUS_MESSAGE: user-facing messages for each status
    - get_message: retrieve the message for a status
    - BaseStatusException: base exception carrying a Status
    - Specific exceptions (e.g., TransientFetchError) for error handling in the sync engine
"""
import enum
import logging
from typing import Dict


class Status(enum.StrEnum):
    """Enumeration of application status codes."""
    UnknownStatus = enum.auto()
    Okay = enum.auto()

    # Config status
    ConfigNotFound = enum.auto()
    ConfigInvalid = enum.auto()

    # Authentication status
    ClientSecretNotFound = enum.auto()
    ClientSecretInvalid = enum.auto()
    NotAuthenticated = enum.auto()

    # Spreadsheet access status
    SpreadsheetIdNotConfigured = enum.auto()
    WorksheetNotConfigured = enum.auto()
    ServiceUnavailable = enum.auto()

    # Sync engine status
    FetchFailed = enum.auto()
    SaveFailed = enum.auto()
    InvalidArgument = enum.auto()
    InvalidState = enum.auto()


STATUS_MESSAGE: Dict[Status, str] = {
    Status.UnknownStatus: 'Unknown status. Please check the settings.',
    Status.Okay: 'Everything is okay.',

    Status.ConfigNotFound: 'Could not find the review config.',
    Status.ConfigInvalid: 'The review config seems to be incomplete, or contains invalid values.',

    Status.ClientSecretNotFound: 'Could not find the google client secret. Have you set up a valid Google client secret?',
    Status.ClientSecretInvalid: 'Could not verify the client secret. Have you set up a valid Google client secret?',
    Status.NotAuthenticated: 'Not signed in. Please sign in to your Google account.',

    Status.SpreadsheetIdNotConfigured: 'Could not find a valid spreadsheet id. Have you set up a valid spreadsheet id in the settings?',
    Status.WorksheetNotConfigured: 'Worksheet name could not be found. Have you set the worksheet name in the settings?',
    Status.ServiceUnavailable: 'Google Sheets service is unavailable. Please check your connection.',

    Status.FetchFailed: 'Could not refresh the sheet. Will try again shortly.',
    Status.SaveFailed: 'Your comment could not be saved. Your text has been kept, please try again.',
    Status.InvalidArgument: 'Invalid argument.',
    Status.InvalidState: 'This action is not available right now.',
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
    """Base exception for status-based errors in SheetReviewer.

    Attributes:
        status (Status): Status code associated with this error.
        status_message (str): User-facing message for the status.

    Args:
        message (str): Optional additional context for the error.
    """
    status = Status.UnknownStatus

    def __init__(self, message: str = None):
        self.status_message = get_message(self.status)
        exception_message = f'{self.status_message} {message}' if message else self.status_message
        super().__init__(exception_message)

        logging.error(exception_message)

        from ..ui.actions import signals
        signals.error.emit(message or self.status_message)


class ConfigNotFoundError(BaseStatusException):
    """Raised when the review configuration file cannot be found."""
    status = Status.ConfigNotFound


class ConfigInvalidError(BaseStatusException):
    """Raised when the review configuration is invalid or malformed."""
    status = Status.ConfigInvalid


class ClientSecretNotFoundError(BaseStatusException):
    """Raised when the Google OAuth client secret file cannot be found."""
    status = Status.ClientSecretNotFound


class ClientSecretInvalidError(BaseStatusException):
    """Raised when the Google OAuth client secret is invalid or malformed."""
    status = Status.ClientSecretInvalid


class UnauthenticatedError(BaseStatusException):
    """Raised when a gateway call is attempted without a signed-in identity."""
    status = Status.NotAuthenticated


class SpreadsheetIdNotConfiguredError(BaseStatusException):
    """Raised when the spreadsheet ID is not configured in settings."""
    status = Status.SpreadsheetIdNotConfigured


class WorksheetNotConfiguredError(BaseStatusException):
    """Raised when the worksheet name is not configured in settings."""
    status = Status.WorksheetNotConfigured


class ServiceUnavailableError(BaseStatusException):
    """Raised when the Google Sheets service cannot be reached or rejects a call."""
    status = Status.ServiceUnavailable


class TransientFetchError(BaseStatusException):
    """Raised when a poll fetch fails. The snapshot is left untouched."""
    status = Status.FetchFailed


class TransientSaveError(BaseStatusException):
    """Raised when the read-compare-write round trips of a save fail.

    The edit session stays open so the draft is not lost.
    """
    status = Status.SaveFailed


class InvalidArgumentError(BaseStatusException):
    """Raised on a programming-contract violation, e.g. a non-positive column ordinal."""
    status = Status.InvalidArgument


class InvalidStateError(BaseStatusException):
    """Raised when an edit command is issued in a state that does not allow it."""
    status = Status.InvalidState
