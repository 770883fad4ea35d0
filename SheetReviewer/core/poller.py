"""Periodic refresh of the snapshot from the remote sheet.

Each tick fetches the whole table, commits it to the :class:`SnapshotStore`
and checks whether the row in view changed. The row in view is tracked by its
stable ``row_index``, never by its position in the filtered list, so inserted
or re-filtered rows cannot be mistaken for the viewed one.

When the viewed row changed and nobody is editing, the new row is accepted
into view. While an edit session is open the draft is left alone and a
conflict is raised on the :class:`ConflictResolver` instead, including when
the edited row was deleted.
"""
import logging
from typing import Any, List, Optional

from PySide6 import QtCore

from .gateway import AsyncWorker
from .session import ConflictResolver, ConflictSource
from .snapshot import Row, SnapshotStore, Table, fields_equal
from .view import ViewIndex
from ..status import status


def rows_equal(a: Optional[Row], b: Optional[Row]) -> bool:
    """Compare two rows by stable index and normalized fields. Two missing rows are equal."""
    if a is None or b is None:
        return a is b
    return a.row_index == b.row_index and fields_equal(a.fields, b.fields)


class Poller(QtCore.QObject):
    """Timer-driven fetch loop feeding the snapshot store.

    Args:
        gateway: Object providing ``fetch_table(table_id, worksheet)``.
        store: The snapshot store to commit tables into.
        index: The view index, re-derived from every committed table.
        resolver: Receives conflicts while an edit session is open.
        table_id: Spreadsheet id.
        worksheet: Worksheet name.
        interval: Seconds between ticks.
        threaded: Fetch on a worker thread. When False the fetch runs inline.

    Signals:
        rowUpdated (object): Emitted with the row newly accepted into view, or None.
        fetchFailed (str): Emitted with a message when a tick could not fetch the table.
    """
    rowUpdated = QtCore.Signal(object)
    fetchFailed = QtCore.Signal(str)

    def __init__(self, gateway: Any, store: SnapshotStore, index: ViewIndex, resolver: ConflictResolver,
                 table_id: str, worksheet: str, interval: float = 10.0, threaded: bool = True,
                 parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent)
        if interval <= 0:
            raise status.InvalidArgumentError(f'Poll interval must be positive, got {interval}.')

        self._gateway = gateway
        self._store = store
        self._index = index
        self._resolver = resolver
        self.table_id = table_id
        self.worksheet = worksheet
        self.threaded = threaded

        self._last_row: Optional[Row] = None
        self._in_flight: bool = False
        self._generation: int = 0
        self._worker: Optional[AsyncWorker] = None
        self._worker_generation: int = 0

        self._timer = QtCore.QTimer(self)
        self._timer.setInterval(int(interval * 1000))
        self._timer.timeout.connect(self.tick)

    @property
    def interval(self) -> float:
        return self._timer.interval() / 1000.0

    @property
    def last_row(self) -> Optional[Row]:
        """The row last accepted into view."""
        return self._last_row

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def is_active(self) -> bool:
        return self._timer.isActive()

    def start(self) -> None:
        if self._timer.isActive():
            return
        logging.debug(f'Polling "{self.worksheet}" every {self.interval:.1f}s.')
        self._timer.start()

    def stop(self) -> None:
        """Stop ticking. A fetch already in flight is discarded when it returns."""
        if self._timer.isActive():
            logging.debug('Polling stopped.')
        self._timer.stop()
        self.discard_in_flight()

    def restart(self) -> None:
        """Restart the interval so the next tick runs against the current context."""
        self.stop()
        self.start()

    def shutdown(self, timeout: int = 5000) -> None:
        """Stop ticking and wait for a running worker to return.

        A worker still running after ``timeout`` milliseconds is handed to the
        application so it can finish after this poller is deleted.
        """
        self.stop()
        worker = self._worker
        if worker is None or not worker.isRunning() or worker.wait(timeout):
            return
        logging.warning('A fetch is still running, letting it finish in the background.')
        worker.setParent(QtCore.QCoreApplication.instance())
        worker.finished.connect(worker.deleteLater)
        if worker.isFinished():
            worker.deleteLater()

    def wait_for_fetch(self) -> None:
        """Block until a fetch running on the worker thread has returned.

        The Sheets client is not thread-safe, so calls made from the GUI thread
        wait here first. The result is still delivered through the event loop.
        """
        if self._worker is not None and self._worker.isRunning():
            logging.debug('Waiting for the running fetch to return.')
            self._worker.wait()

    def discard_in_flight(self) -> None:
        """Drop the result of any fetch that started before now."""
        self._generation += 1

    def accept(self, row: Optional[Row]) -> None:
        """Accept a row into view.

        The accepted row is the baseline the next tick compares against. The
        view page follows the row when it is still part of the filtered set,
        and the idle draft is re-derived from its comment.
        """
        self._last_row = row
        if row is not None:
            pos = self._index.position_of(row.row_index)
            if pos is not None:
                self._index.page = pos
        self._resolver.sync_draft(row)

    def fetch(self) -> List[List[Any]]:
        return self._gateway.fetch_table(self.table_id, self.worksheet)

    @QtCore.Slot()
    def tick(self) -> None:
        """Run one poll cycle unless the previous one is still in flight."""
        if self._in_flight:
            logging.debug('Previous fetch still in flight, skipping tick.')
            return

        self._in_flight = True
        generation = self._generation

        if not self.threaded:
            try:
                grid = self.fetch()
            except Exception as ex:
                self._fetch_error(ex, generation)
                return
            self._fetch_result(grid, generation)
            return

        if self._worker is not None:
            self._worker.wait()

        worker = AsyncWorker(self.fetch)
        worker.resultReady.connect(self._on_worker_result)
        worker.errorOccurred.connect(self._on_worker_error)
        self._worker = worker
        self._worker_generation = generation
        worker.start()

    @QtCore.Slot(object)
    def _on_worker_result(self, grid: Any) -> None:
        self._fetch_result(grid, self._worker_generation)

    @QtCore.Slot(object)
    def _on_worker_error(self, ex: Any) -> None:
        self._fetch_error(ex, self._worker_generation)

    def _fetch_result(self, grid: Any, generation: int) -> None:
        self._in_flight = False
        if generation != self._generation:
            logging.debug('Discarding a stale fetch result.')
            return
        self.apply(grid)

    def _fetch_error(self, ex: Exception, generation: int) -> None:
        self._in_flight = False
        if generation != self._generation:
            return
        if not isinstance(ex, status.BaseStatusException):
            logging.error(f'Unexpected fetch failure: {ex}', exc_info=ex)
        err = status.TransientFetchError(str(ex))
        self.fetchFailed.emit(str(err))

    def poll(self) -> bool:
        """Fetch and apply synchronously.

        Fetch failures are reported on :attr:`fetchFailed` and leave the snapshot untouched.

        Returns:
            bool: True if the viewed row changed.
        """
        if self._in_flight:
            logging.debug('Previous fetch still in flight, skipping poll.')
            return False
        try:
            grid = self.fetch()
        except Exception as ex:
            self._fetch_error(ex, self._generation)
            return False
        return self.apply(grid)

    def apply(self, grid: Any) -> bool:
        """Commit a fetched grid and reconcile the row in view.

        Returns:
            bool: True if the viewed row changed.
        """
        table = Table.from_grid(grid)
        previous = self._last_row

        self._store.replace(table)
        self._index.update(table)

        if previous is None:
            row = self._index.current
        else:
            row = table.row(previous.row_index)
            pos = self._index.position_of(previous.row_index)
            if pos is not None:
                self._index.page = pos

        if rows_equal(previous, row):
            return False

        if self._resolver.editing:
            if row is None:
                self._resolver.raise_removed(ConflictSource.Poll)
            else:
                self._resolver.raise_conflict(row, ConflictSource.Poll)
            return True

        if row is None:
            row = self._index.current
        logging.debug('Row in view updated from the sheet.')
        self.accept(row)
        self.rowUpdated.emit(row)
        return True
