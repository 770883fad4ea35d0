"""Filtered, paginated view over the snapshot table.

All functions here are pure. Pages are one-based positions in the filtered
row sequence; a page outside ``[1, len(filtered_rows)]`` resolves to ``None``
(the empty/loading state) and is never an error.
"""
import dataclasses
from typing import Iterable, List, Optional, Sequence, Tuple

from .snapshot import Row, Table

NO_ANSWER: str = 'No answer provided'
NO_COMMENT: str = 'No comments yet'


def _canonical(value: str) -> str:
    return (value or '').strip().casefold()


@dataclasses.dataclass(frozen=True)
class FilterCriterion:
    """Keep only rows whose zero-based ``column`` equals ``value``, ignoring case and surrounding whitespace."""
    column: int
    value: str

    def matches(self, row: Row) -> bool:
        return _canonical(row.field(self.column)) == _canonical(self.value)


def filter_rows(table: Table, criterion: Optional[FilterCriterion]) -> Tuple[Row, ...]:
    """Return the rows passing the criterion, in remote storage order.

    With no criterion every row passes.
    """
    if criterion is None:
        return table.rows
    return tuple(r for r in table.rows if criterion.matches(r))


def resolve(filtered_rows: Sequence[Row], page: int) -> Optional[Row]:
    """Return the row shown on a one-based page, or None when out of range."""
    if page < 1 or page > len(filtered_rows):
        return None
    return filtered_rows[page - 1]


def position(filtered_rows: Sequence[Row], row_index: int) -> Optional[int]:
    """Return the one-based page currently holding a stable row, or None if filtered out."""
    for i, row in enumerate(filtered_rows, start=1):
        if row.row_index == row_index:
            return i
    return None


def has_previous(page: int) -> bool:
    return page > 1


def has_next(page: int, total: int) -> bool:
    return page < total


def section_ranks(row: Optional[Row], columns: Sequence[int], vocabulary: Iterable[str]) -> List[Tuple[int, int]]:
    """Rank the sections an applicant opted into.

    Each of the configured columns whose lowercased value is in the vocabulary
    is recorded with its one-based position among ``columns``.

    Args:
        row: The current row, or None.
        columns: Zero-based column indices, in display priority order.
        vocabulary: Accepted answers, matched case-insensitively.

    Returns:
        list[tuple[int, int]]: ``(column, rank)`` pairs in rank order.
    """
    if row is None:
        return []
    words = {_canonical(w) for w in vocabulary}
    return [
        (column, rank)
        for rank, column in enumerate(columns, start=1)
        if _canonical(row.field(column)) in words
    ]


def question_pairs(headers: Sequence[str], row: Optional[Row]) -> List[Tuple[str, str]]:
    """Pair every question header with the applicant's answer.

    The last column holds the reviewer comment and is excluded. Empty answers
    are shown as :data:`NO_ANSWER`.
    """
    if row is None:
        return []
    return [
        (question, row.field(i) or NO_ANSWER)
        for i, question in enumerate(headers[:-1])
    ]


def comment_text(row: Optional[Row]) -> str:
    """Return the reviewer comment for display, or :data:`NO_COMMENT`."""
    if row is None:
        return ''
    return row.annotation or NO_COMMENT


class ViewIndex:
    """Tracks the filter criterion and page over the latest table.

    The index only derives; it never holds rows of its own. Call
    :meth:`update` with each new table.
    """

    def __init__(self, criterion: Optional[FilterCriterion] = None, page: int = 1) -> None:
        self.criterion: Optional[FilterCriterion] = criterion
        self.page: int = page
        self._filtered: Tuple[Row, ...] = ()

    def update(self, table: Table) -> None:
        self._filtered = filter_rows(table, self.criterion)

    @property
    def filtered_rows(self) -> Tuple[Row, ...]:
        return self._filtered

    @property
    def total(self) -> int:
        return len(self._filtered)

    @property
    def current(self) -> Optional[Row]:
        return resolve(self._filtered, self.page)

    @property
    def has_previous(self) -> bool:
        return has_previous(self.page)

    @property
    def has_next(self) -> bool:
        return has_next(self.page, self.total)

    def position_of(self, row_index: int) -> Optional[int]:
        return position(self._filtered, row_index)
