"""Local snapshot of the remote review table.

The remote grid is normalized once at ingestion: every cell becomes a string,
``None`` becomes ``''`` and short rows are right-padded to the header width.
Readers can therefore compare fields directly without guarding for missing
cells.

The :class:`SnapshotStore` owns the authoritative :class:`Table`. Tables are
immutable and swapped wholesale; the only partial update is
:meth:`SnapshotStore.patch_annotation`, used right after a confirmed save.
"""
import dataclasses
import logging
import threading
from typing import Any, List, Optional, Sequence, Tuple

from PySide6 import QtCore


def normalize_cell(value: Any) -> str:
    """Return the canonical string form of a remote cell value."""
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def values_equal(a: Any, b: Any) -> bool:
    """Compare two cell values treating missing, ``None`` and ``''`` as equal."""
    return normalize_cell(a) == normalize_cell(b)


def fields_equal(a: Sequence[Any], b: Sequence[Any]) -> bool:
    """Compare two rows field-by-field with :func:`values_equal`.

    The shorter row is treated as padded with empty strings.
    """
    width = max(len(a), len(b))
    for i in range(width):
        left = a[i] if i < len(a) else ''
        right = b[i] if i < len(b) else ''
        if not values_equal(left, right):
            return False
    return True


@dataclasses.dataclass(frozen=True)
class Row:
    """One data row of the remote table.

    Attributes:
        row_index: One-based position among the data rows, header excluded.
        fields: One string per column. The last one is the reviewer comment.
    """
    row_index: int
    fields: Tuple[str, ...]

    @property
    def annotation(self) -> str:
        """The reviewer comment held in the last column."""
        return self.fields[-1] if self.fields else ''

    def with_annotation(self, value: Any) -> 'Row':
        """Return a copy of this row with the reviewer comment replaced."""
        if not self.fields:
            return self
        return Row(self.row_index, self.fields[:-1] + (normalize_cell(value),))

    def field(self, column: int) -> str:
        """Return the field at a zero-based column, or ``''`` when out of range."""
        if 0 <= column < len(self.fields):
            return self.fields[column]
        return ''


@dataclasses.dataclass(frozen=True)
class Table:
    """A full copy of the remote table: the header row plus every data row."""
    headers: Tuple[str, ...] = ()
    rows: Tuple[Row, ...] = ()

    @classmethod
    def from_grid(cls, grid: Sequence[Sequence[Any]]) -> 'Table':
        """Build a normalized table from a raw value grid.

        The first row of the grid is the header and fixes the table width.
        Data rows are padded or truncated to it, so stray cells to the right
        of the comment column never move the comment.

        Args:
            grid: Rows of cell values as returned by the Sheets values API.

        Returns:
            Table: The normalized table. Empty if the grid is empty.
        """
        if not grid:
            return cls()

        headers = [normalize_cell(v) for v in grid[0]]
        width = len(headers)

        rows: List[Row] = []
        for i, raw in enumerate(grid[1:], start=1):
            fields = [normalize_cell(v) for v in raw[:width]]
            fields.extend([''] * (width - len(fields)))
            rows.append(Row(i, tuple(fields)))

        return cls(tuple(headers), tuple(rows))

    @property
    def width(self) -> int:
        return len(self.headers)

    @property
    def annotation_column(self) -> int:
        """One-based ordinal of the reviewer comment column."""
        return self.width

    def row(self, row_index: int) -> Optional[Row]:
        """Return the row with the given stable index, or None."""
        if 1 <= row_index <= len(self.rows):
            row = self.rows[row_index - 1]
            if row.row_index == row_index:
                return row
        return next((r for r in self.rows if r.row_index == row_index), None)


class SnapshotStore(QtCore.QObject):
    """Holds the last known table and swaps it atomically.

    Signals:
        tableReplaced (object): Emitted with the new :class:`Table` after every swap.
    """
    tableReplaced = QtCore.Signal(object)

    def __init__(self, parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent)
        self._lock = threading.Lock()
        self._table: Table = Table()
        self._loaded: bool = False

    @property
    def table(self) -> Table:
        with self._lock:
            return self._table

    @property
    def loaded(self) -> bool:
        """True once a table has been committed."""
        with self._lock:
            return self._loaded

    def replace(self, table: Table) -> None:
        """Swap in a new table."""
        with self._lock:
            self._table = table
            self._loaded = True
        logging.debug(f'Snapshot replaced: {len(table.rows)} rows x {table.width} columns.')
        self.tableReplaced.emit(table)

    def current_row(self, row_index: int) -> Optional[Row]:
        """Return the row at a stable index in the latest snapshot, or None if it no longer exists."""
        return self.table.row(row_index)

    def patch_annotation(self, row_index: int, value: Any) -> Optional[Row]:
        """Overwrite the reviewer comment of one row ahead of the next poll.

        A new table is built with the single field changed and swapped in.

        Returns:
            Row: The patched row, or None if the row is not in the snapshot.
        """
        with self._lock:
            table = self._table
            row = table.row(row_index)
            if row is None:
                logging.warning(f'Cannot patch row {row_index}: not in the snapshot.')
                return None
            patched = row.with_annotation(value)
            rows = tuple(patched if r.row_index == row_index else r for r in table.rows)
            self._table = Table(table.headers, rows)
            new_table = self._table

        logging.debug(f'Patched comment of row {row_index} in the snapshot.')
        self.tableReplaced.emit(new_table)
        return patched
