"""Review session: the surface a viewer binds to.

:class:`ReviewAPI` owns one snapshot store, view index, conflict resolver and
poller, and forwards their signals. A viewer reads the properties, issues the
commands, and re-renders on the signals. No state lives at module level; build
one instance per open spreadsheet, usually with :meth:`ReviewAPI.from_settings`.

Example:

    .. code-block:: python

        api = ReviewAPI.from_settings()
        api.rowChanged.connect(render)
        api.conflictRaised.connect(show_conflict)
        api.load()
        api.start()

"""
import logging
from typing import Any, List, Optional, Sequence, Tuple

from PySide6 import QtCore

from .poller import Poller
from .session import ConflictNotice, ConflictResolver, EditState
from .snapshot import Row, SnapshotStore
from .view import FilterCriterion, ViewIndex, comment_text, question_pairs, section_ranks
from ..status import status

DEFAULT_SECTION_COLUMNS: Tuple[int, ...] = (9, 10, 11, 12)
DEFAULT_SECTION_VOCABULARY: Tuple[str, ...] = ('yes', 'interested', 'very interested')


class ReviewAPI(QtCore.QObject):
    """One reviewer's session over one worksheet.

    Args:
        gateway: Object providing ``fetch_table``, ``fetch_cell`` and ``write_cell``.
        table_id: Spreadsheet id.
        worksheet: Worksheet name.
        interval: Seconds between polls.
        criterion: Initial filter, or None to show every row.
        section_columns: Zero-based columns ranked by :meth:`section_ranks`.
        section_vocabulary: Answers that count as opting into a section.
        polling_enabled: When False, :meth:`start` does nothing.
        threaded: Fetch polls on a worker thread.

    Signals:
        rowChanged (object): The row in view changed. Carries the :class:`Row` or None.
        tableReplaced (object): A new :class:`Table` was committed.
        conflictRaised (object): Carries the :class:`ConflictNotice`.
        conflictCleared (): The conflict notice was acknowledged.
        editStateChanged (str): Carries the new :class:`EditState`.
        draftChanged (str): Carries the new draft text.
        saved (object): Carries the saved :class:`Row`.
        saveFailed (str): A save could not reach the sheet.
        fetchFailed (str): A poll could not reach the sheet.
    """
    rowChanged = QtCore.Signal(object)
    tableReplaced = QtCore.Signal(object)
    conflictRaised = QtCore.Signal(object)
    conflictCleared = QtCore.Signal()
    editStateChanged = QtCore.Signal(str)
    draftChanged = QtCore.Signal(str)
    saved = QtCore.Signal(object)
    saveFailed = QtCore.Signal(str)
    fetchFailed = QtCore.Signal(str)

    def __init__(self, gateway: Any, table_id: str, worksheet: str, interval: float = 10.0,
                 criterion: Optional[FilterCriterion] = None,
                 section_columns: Sequence[int] = DEFAULT_SECTION_COLUMNS,
                 section_vocabulary: Sequence[str] = DEFAULT_SECTION_VOCABULARY,
                 polling_enabled: bool = True, threaded: bool = True,
                 parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent)
        if not table_id:
            raise status.SpreadsheetIdNotConfiguredError
        if not worksheet:
            raise status.WorksheetNotConfiguredError

        self.section_columns: Tuple[int, ...] = tuple(section_columns)
        self.section_vocabulary: Tuple[str, ...] = tuple(section_vocabulary)
        self.polling_enabled = polling_enabled

        self.store = SnapshotStore(parent=self)
        self.index = ViewIndex(criterion)
        self.resolver = ConflictResolver(self.store, gateway, table_id, worksheet, parent=self)
        self.poller = Poller(gateway, self.store, self.index, self.resolver, table_id, worksheet,
                             interval=interval, threaded=threaded, parent=self)

        self._connect_signals()

    @classmethod
    def from_settings(cls, gateway: Any = None, threaded: bool = True) -> 'ReviewAPI':
        """Build a session from the ``spreadsheet``, ``polling`` and ``view`` config sections.

        Raises:
            status.SpreadsheetIdNotConfiguredError: If no spreadsheet id is set.
            status.WorksheetNotConfiguredError: If no worksheet name is set.
        """
        from ..settings import lib
        from .gateway import TableGateway

        spreadsheet = lib.settings.get_section('spreadsheet')
        polling = lib.settings.get_section('polling')
        view = lib.settings.get_section('view')

        criterion = None
        if view['filter_column'] != lib.NO_FILTER_COLUMN:
            criterion = FilterCriterion(view['filter_column'], view['filter_value'])

        return cls(
            gateway or TableGateway(),
            spreadsheet.get('id', ''),
            spreadsheet.get('worksheet', ''),
            interval=polling['interval'],
            criterion=criterion,
            section_columns=view['section_columns'],
            section_vocabulary=view['section_vocabulary'],
            polling_enabled=polling['enabled'],
            threaded=threaded,
        )

    def _connect_signals(self) -> None:
        self.store.tableReplaced.connect(self.tableReplaced)
        self.poller.rowUpdated.connect(self.rowChanged)
        self.poller.fetchFailed.connect(self.fetchFailed)

        self.resolver.editStateChanged.connect(self.editStateChanged)
        self.resolver.draftChanged.connect(self.draftChanged)
        self.resolver.conflictRaised.connect(self.conflictRaised)
        self.resolver.conflictCleared.connect(self.conflictCleared)
        self.resolver.saved.connect(self.saved)
        self.resolver.saveFailed.connect(self.saveFailed)

    @property
    def headers(self) -> Tuple[str, ...]:
        return self.store.table.headers

    @property
    def current_row(self) -> Optional[Row]:
        """The row in view, or None while loading or when the page is out of range."""
        return self.poller.last_row

    @property
    def page(self) -> int:
        return self.index.page

    @property
    def total(self) -> int:
        return self.index.total

    @property
    def position(self) -> Optional[int]:
        """One-based position of the row in view among the filtered rows."""
        row = self.current_row
        if row is None:
            return None
        return self.index.position_of(row.row_index)

    @property
    def has_previous(self) -> bool:
        return self.index.has_previous

    @property
    def has_next(self) -> bool:
        return self.index.has_next

    @property
    def criterion(self) -> Optional[FilterCriterion]:
        return self.index.criterion

    @property
    def conflict(self) -> Optional[ConflictNotice]:
        return self.resolver.conflict

    @property
    def state(self) -> EditState:
        return self.resolver.state

    @property
    def editing(self) -> bool:
        return self.resolver.editing

    @property
    def draft(self) -> str:
        return self.resolver.draft

    def question_pairs(self) -> List[Tuple[str, str]]:
        return question_pairs(self.headers, self.current_row)

    def section_ranks(self) -> List[Tuple[int, int]]:
        return section_ranks(self.current_row, self.section_columns, self.section_vocabulary)

    def comment_text(self) -> str:
        return comment_text(self.current_row)

    def load(self) -> Optional[Row]:
        """Fetch the table once and show the row on the current page.

        Raises:
            status.TransientFetchError: If the table could not be fetched.
        """
        self.poller.wait_for_fetch()
        try:
            grid = self.poller.fetch()
        except status.BaseStatusException as ex:
            raise status.TransientFetchError(str(ex)) from ex

        self.poller.apply(grid)
        self._show(self.index.current)
        logging.info(f'Loaded {self.total} rows from "{self.poller.worksheet}".')
        return self.current_row

    def start(self) -> None:
        if not self.polling_enabled:
            logging.debug('Polling is disabled in the settings.')
            return
        self.poller.start()

    def stop(self) -> None:
        self.poller.shutdown()

    def _require_viewing(self) -> None:
        if self.resolver.state != EditState.Viewing:
            raise status.InvalidStateError('Finish or cancel the current edit before moving to another row.')

    def _show(self, row: Optional[Row]) -> None:
        self.poller.accept(row)
        self.rowChanged.emit(row)

    def _change_context(self) -> None:
        active = self.poller.is_active()
        self.poller.stop()
        self.index.update(self.store.table)
        self._show(self.index.current)
        if active:
            self.poller.start()

    def set_filter(self, criterion: Optional[FilterCriterion]) -> None:
        """Filter the rows in view and go back to the first page."""
        self._require_viewing()
        logging.debug(f'Filter set to {criterion}.')
        self.index.criterion = criterion
        self.index.page = 1
        self._change_context()

    def set_page(self, page: int) -> None:
        """Show the row at a one-based position among the filtered rows.

        Pages out of range show no row. They are not an error.
        """
        self._require_viewing()
        if isinstance(page, bool) or not isinstance(page, int):
            raise status.InvalidArgumentError(f'Page must be an integer, got {page!r}.')
        self.index.page = page
        self._change_context()

    def next_page(self) -> bool:
        if not self.has_next:
            return False
        self.set_page(self.page + 1)
        return True

    def previous_page(self) -> bool:
        if not self.has_previous:
            return False
        self.set_page(self.page - 1)
        return True

    def begin_edit(self) -> None:
        self.resolver.begin_edit(self.current_row)

    def update_draft(self, text: str) -> None:
        self.resolver.update_draft(text)

    def cancel(self) -> None:
        self.resolver.cancel()

    def save(self) -> bool:
        """Save the draft.

        Returns:
            bool: True if written, False if a conflict was raised instead.

        Raises:
            status.TransientSaveError: If the sheet could not be reached. The draft is kept.
        """
        self.poller.wait_for_fetch()
        row = self.resolver.save()
        if row is None:
            return False
        self.poller.discard_in_flight()
        self._show(row)
        return True

    def acknowledge_conflict(self, adopt: bool = True) -> None:
        """Dismiss the conflict notice.

        Args:
            adopt: True replaces the draft with the remote comment and ends the
                edit. False keeps editing; the next save overwrites the remote comment.
                When the edited row was deleted the edit always ends and the
                row now on the current page is shown.
        """
        row = self.resolver.acknowledge_conflict(adopt)
        if row is None:
            row = self.index.current
        self._show(row)
