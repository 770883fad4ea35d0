"""Google Sheets access for the review table.

Provides the two range operations the sync engine needs, ``get_range`` and
``update_range``, plus helpers to fetch the whole table and to read or write
a single comment cell. Transport failures are translated into status
exceptions so callers only deal with :mod:`SheetReviewer.status`.
"""

import contextlib
import logging
import socket
import ssl
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from PySide6 import QtCore
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from .auth import auth_manager
from .columns import block_range, cell_range, sheet_row
from ..status import status

# Cached Sheets API client to avoid repeated discovery/auth costs
_cached_service: Any = None

VALUE_RENDER_OPTION: str = 'FORMATTED_VALUE'
VALUE_INPUT_OPTION: str = 'RAW'


class AsyncWorker(QtCore.QThread):
    """
    Generic worker thread running one blocking call.

    There is no retry: a failed call is reported and the caller decides
    whether to try again.

    Signals:
        resultReady (object): Emitted with the function's result on success.
        errorOccurred (object): Emitted with the exception on failure.
    """
    resultReady = QtCore.Signal(object)
    errorOccurred = QtCore.Signal(object)

    def __init__(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> None:
        super().__init__()
        self.func = func
        self.args = args
        self.kwargs = kwargs

    def run(self) -> None:
        try:
            result = self.func(*self.args, **self.kwargs)
        except Exception as ex:
            self.errorOccurred.emit(ex)
            return
        self.resultReady.emit(result)


def clear_service() -> None:
    """
    Clears the cached Sheets API client.
    """
    global _cached_service

    try:
        if _cached_service:
            _cached_service.close()
    except Exception as ex:
        logging.debug(f'Failed closing cached Sheets service client: {ex}')

    _cached_service = None


def get_service() -> Any:
    """
    Builds (or returns cached) Google Sheets service client.

    Returns:
        The Sheets API Resource, reusing a single client per app run.

    Raises:
        status.UnauthenticatedError: If nobody is signed in.
        status.ServiceUnavailableError: If the client cannot be built.
    """
    global _cached_service
    creds: Any = auth_manager.get_valid_credentials()
    if _cached_service is not None:
        return _cached_service
    try:
        service: Any = build('sheets', 'v4', credentials=creds, cache_discovery=False)
    except Exception as ex:
        raise status.ServiceUnavailableError(f'Could not create the Sheets client: {ex}') from ex
    logging.debug('Google Sheets service client created successfully.')
    _cached_service = service
    return service


@contextlib.contextmanager
def translate_errors(table_id: str, range_spec: str) -> Iterator[None]:
    """Re-raise transport errors of a Sheets call as status exceptions.

    Raises:
        status.UnauthenticatedError: On HTTP 401. The cached client is dropped so the
            next call is built from freshly loaded credentials.
        status.ServiceUnavailableError: On any other HTTP, socket or SSL failure.
    """
    try:
        yield
    except status.BaseStatusException:
        raise
    except HttpError as ex:
        stat: Optional[int] = ex.resp.status if ex.resp else None
        if stat == 401:
            clear_service()
            raise status.UnauthenticatedError('Sheets rejected the credentials (HTTP 401).') from ex
        if stat == 404:
            raise status.ServiceUnavailableError(
                f'Spreadsheet "{table_id}" or range "{range_spec}" not found (HTTP 404).'
            ) from ex
        if stat == 403:
            raise status.ServiceUnavailableError(
                f'Access denied (HTTP 403) for spreadsheet "{table_id}". '
                'Please share the sheet with your authenticated Google account.'
            ) from ex
        raise status.ServiceUnavailableError(f'Error accessing range "{range_spec}": {ex}') from ex
    except socket.timeout as ex:
        raise status.ServiceUnavailableError(f'Timeout accessing range "{range_spec}": {ex}') from ex
    except ssl.SSLError as ex:
        raise status.ServiceUnavailableError(f'SSL error accessing range "{range_spec}": {ex}') from ex
    except OSError as ex:
        raise status.ServiceUnavailableError(f'Network error accessing range "{range_spec}": {ex}') from ex


class TableGateway:
    """Remote table operations over the Sheets v4 values API.

    Args:
        service: A Sheets API resource. When omitted, :func:`get_service` is
            called for every operation so sign-in state is checked each time.
    """

    def __init__(self, service: Any = None) -> None:
        self._service = service

    @property
    def service(self) -> Any:
        if self._service is not None:
            return self._service
        return get_service()

    def get_range(self, table_id: str, range_spec: str) -> List[List[str]]:
        """Read a rectangular range of cells.

        Trailing empty rows and cells are omitted by the API; callers pad them.

        Returns:
            list[list[str]]: The cell grid, possibly ragged or empty.
        """
        logging.debug(f'Fetching range "{range_spec}".')
        with translate_errors(table_id, range_spec):
            result: Dict[str, Any] = self.service.spreadsheets().values().get(
                spreadsheetId=table_id,
                range=range_spec,
                valueRenderOption=VALUE_RENDER_OPTION,
            ).execute()
        return result.get('values', [])

    def update_range(self, table_id: str, range_spec: str, grid: List[List[str]]) -> None:
        """Overwrite a rectangular range of cells."""
        logging.debug(f'Updating range "{range_spec}".')
        with translate_errors(table_id, range_spec):
            self.service.spreadsheets().values().update(
                spreadsheetId=table_id,
                range=range_spec,
                valueInputOption=VALUE_INPUT_OPTION,
                body={'values': grid},
            ).execute()

    def query_sheet_size(self, table_id: str, worksheet: str) -> Tuple[int, int]:
        """
        Queries the worksheet's grid size.

        Returns:
            A tuple (row_count, column_count).

        Raises:
            status.ServiceUnavailableError: If the worksheet doesn't exist.
        """
        with translate_errors(table_id, worksheet):
            result: Dict[str, Any] = self.service.spreadsheets().get(
                spreadsheetId=table_id,
                fields='sheets(properties(title,gridProperties(rowCount,columnCount)))'
            ).execute()

        sheet: Optional[Dict[str, Any]] = next(
            (s for s in result.get('sheets', [])
             if s.get('properties', {}).get('title', '') == worksheet), None)
        if not sheet:
            raise status.ServiceUnavailableError(f'Worksheet "{worksheet}" not found in spreadsheet "{table_id}".')
        grid_props: Dict[str, Any] = sheet.get('properties', {}).get('gridProperties', {})
        return grid_props.get('rowCount', 0), grid_props.get('columnCount', 0)

    def fetch_table(self, table_id: str, worksheet: str) -> List[List[str]]:
        """Fetch the header row and every data row of the worksheet."""
        row_count, col_count = self.query_sheet_size(table_id, worksheet)
        if row_count < 1 or col_count < 1:
            logging.warning(f'Worksheet "{worksheet}" is empty.')
            return []
        grid = self.get_range(table_id, block_range(worksheet, 1, 1, col_count, row_count))
        logging.debug(f'Fetched {max(len(grid) - 1, 0)} data rows from "{worksheet}".')
        return grid

    def fetch_cell(self, table_id: str, worksheet: str, column: int, row_index: int) -> str:
        """Read a single cell of a data row.

        Args:
            column: One-based column ordinal.
            row_index: One-based data row index, header excluded.

        Returns:
            str: The cell value, ``''`` if the cell is empty.
        """
        grid = self.get_range(table_id, cell_range(worksheet, column, sheet_row(row_index)))
        if not grid or not grid[0]:
            return ''
        value = grid[0][0]
        return '' if value is None else str(value)

    def write_cell(self, table_id: str, worksheet: str, column: int, row_index: int, value: str) -> None:
        """Overwrite a single cell of a data row."""
        self.update_range(table_id, cell_range(worksheet, column, sheet_row(row_index)), [[value]])
