"""Edit session and conflict resolution for the reviewer comment.

The backing sheet has no locks or transactions; the only primitive is "set
the value of one cell". Saving therefore uses optimistic concurrency:

1. Re-read the comment cell of the edited row.
2. If it no longer equals the value seen when editing began, reject the save
   and raise a :class:`ConflictNotice`. Nothing is written and the draft is kept.
3. Otherwise write the draft to that single cell and patch the local snapshot.

A save is never retried automatically.

States::

    Viewing --begin_edit--> Editing --cancel / save--> Viewing
    Editing --conflict (poll or save)--> ConflictPending
    ConflictPending --acknowledge_conflict(adopt=True)--> Viewing
    ConflictPending --acknowledge_conflict(adopt=False)--> Editing

A row deleted from the sheet while it is being edited is also a conflict. Such
a notice carries no remote row and acknowledging it always ends the session,
since there is nothing left to save into.
"""
import dataclasses
import enum
import logging
from typing import Any, Optional

from PySide6 import QtCore

from .snapshot import Row, SnapshotStore, values_equal
from ..status import status


class EditState(enum.StrEnum):
    """Edit lifecycle of the comment field."""
    Viewing = 'viewing'
    Editing = 'editing'
    ConflictPending = 'conflict pending'


class ConflictSource(enum.StrEnum):
    """Where a divergence from the baseline was discovered."""
    Poll = 'poll'
    Save = 'save'


@dataclasses.dataclass
class EditSession:
    """An open edit of one row's comment.

    Attributes:
        row_index: Stable data row index of the edited row.
        baseline_value: Comment value observed when editing began.
        draft_value: The reviewer's in-progress text.
    """
    row_index: int
    baseline_value: str
    draft_value: str
    active: bool = True


@dataclasses.dataclass(frozen=True)
class ConflictNotice:
    """The remote row that diverged from the edit baseline.

    Attributes:
        row_index: Stable data row index of the edited row.
        row: The remote row, or None if the row was deleted. For save conflicts,
            the snapshot row with its comment replaced by the value re-read from the sheet.
        remote_value: The comment value currently stored remotely.
        draft_value: The reviewer's draft at the time of the conflict, so it can be copied.
        source: Whether a poll or a save discovered the conflict.
    """
    row_index: int
    row: Optional[Row]
    remote_value: str
    draft_value: str
    source: ConflictSource

    @property
    def removed(self) -> bool:
        """True if the edited row no longer exists remotely."""
        return self.row is None


class ConflictResolver(QtCore.QObject):
    """Owns the edit session and the conflict notice.

    Args:
        store: The snapshot store, patched after a confirmed save.
        gateway: Object providing ``fetch_cell`` and ``write_cell``.
        table_id: Spreadsheet id.
        worksheet: Worksheet name.

    Signals:
        editStateChanged (str): Emitted with the new :class:`EditState`.
        draftChanged (str): Emitted when the draft text changes.
        conflictRaised (object): Emitted with a :class:`ConflictNotice`.
        conflictCleared (): Emitted when the notice is acknowledged.
        saved (object): Emitted with the patched :class:`Row` after a save.
        saveFailed (str): Emitted with a message when a save could not reach the sheet.
    """
    editStateChanged = QtCore.Signal(str)
    draftChanged = QtCore.Signal(str)
    conflictRaised = QtCore.Signal(object)
    conflictCleared = QtCore.Signal()
    saved = QtCore.Signal(object)
    saveFailed = QtCore.Signal(str)

    def __init__(self, store: SnapshotStore, gateway: Any, table_id: str, worksheet: str,
                 parent: Optional[QtCore.QObject] = None) -> None:
        super().__init__(parent)
        self._store = store
        self._gateway = gateway
        self.table_id = table_id
        self.worksheet = worksheet

        self._state: EditState = EditState.Viewing
        self._session: Optional[EditSession] = None
        self._conflict: Optional[ConflictNotice] = None
        self._idle_draft: str = ''

    @property
    def state(self) -> EditState:
        return self._state

    @property
    def session(self) -> Optional[EditSession]:
        return self._session

    @property
    def conflict(self) -> Optional[ConflictNotice]:
        return self._conflict

    @property
    def editing(self) -> bool:
        """True while an edit session is open, including while a conflict is pending."""
        return self._session is not None and self._session.active

    @property
    def draft(self) -> str:
        if self._session is not None:
            return self._session.draft_value
        return self._idle_draft

    def _set_state(self, state: EditState) -> None:
        if state == self._state:
            return
        logging.debug(f'Edit state: {self._state} -> {state}')
        self._state = state
        self.editStateChanged.emit(str(state))

    def _require(self, *states: EditState) -> None:
        if self._state not in states:
            raise status.InvalidStateError(
                f'Expected state {" or ".join(str(s) for s in states)}, but the session is {self._state}.'
            )

    def sync_draft(self, row: Optional[Row]) -> None:
        """Re-derive the idle draft from a row accepted into view.

        Ignored while a session is open so remote refreshes never touch the reviewer's text.
        """
        if self.editing:
            return
        value = row.annotation if row is not None else ''
        if value == self._idle_draft:
            return
        self._idle_draft = value
        self.draftChanged.emit(value)

    def begin_edit(self, row: Optional[Row]) -> EditSession:
        """Open an edit session on a row's comment.

        Raises:
            status.InvalidStateError: If a session is already open or no row is in view.
        """
        self._require(EditState.Viewing)
        if row is None:
            raise status.InvalidStateError('There is no row in view to edit.')

        self._session = EditSession(row.row_index, row.annotation, row.annotation)
        logging.debug(f'Editing comment of row {row.row_index}.')
        self._set_state(EditState.Editing)
        self.draftChanged.emit(self._session.draft_value)
        return self._session

    def update_draft(self, text: str) -> None:
        """Replace the draft text. Local only."""
        self._require(EditState.Editing)
        if text == self._session.draft_value:
            return
        self._session.draft_value = text
        self.draftChanged.emit(text)

    def cancel(self) -> None:
        """Discard the draft and return to viewing.

        The draft is reset to the comment currently held by the snapshot, not the baseline.
        """
        self._require(EditState.Editing)
        row = self._store.current_row(self._session.row_index)
        logging.debug(f'Edit of row {self._session.row_index} cancelled.')
        self._close_session(row.annotation if row is not None else self._session.baseline_value)
        self._set_state(EditState.Viewing)

    def save(self) -> Optional[Row]:
        """Save the draft with a read-compare-write round trip.

        The save is refused with a conflict if the edited row is no longer in
        the snapshot, so a comment is never written into a row that was deleted.

        Returns:
            Row: The patched row on success, or None when a conflict was raised.

        Raises:
            status.InvalidStateError: If no edit is in progress.
            status.TransientSaveError: If the sheet could not be read or written.
                The session stays open.
        """
        self._require(EditState.Editing)
        session = self._session
        column = self._store.table.annotation_column
        if column < 1:
            raise status.InvalidStateError('The table has no columns to save into.')

        current = self._store.current_row(session.row_index)
        if current is None:
            logging.info(f'Save of row {session.row_index} rejected: the row no longer exists.')
            self.raise_removed(ConflictSource.Save)
            return None

        try:
            remote_value = self._gateway.fetch_cell(self.table_id, self.worksheet, column, session.row_index)
        except status.BaseStatusException as ex:
            self._fail_save(ex)

        if not values_equal(remote_value, session.baseline_value):
            logging.info(
                f'Save of row {session.row_index} rejected: the comment was changed remotely.'
            )
            self.raise_conflict(current.with_annotation(remote_value), ConflictSource.Save)
            return None

        try:
            self._gateway.write_cell(self.table_id, self.worksheet, column, session.row_index,
                                     session.draft_value)
        except status.BaseStatusException as ex:
            self._fail_save(ex)

        logging.info(f'Saved comment of row {session.row_index}.')
        row = self._store.patch_annotation(session.row_index, session.draft_value)
        if row is None:
            row = current.with_annotation(session.draft_value)

        self._close_session(session.draft_value)
        self._set_state(EditState.Viewing)
        self.saved.emit(row)
        return row

    def _fail_save(self, ex: Exception) -> None:
        err = status.TransientSaveError(str(ex))
        self.saveFailed.emit(str(err))
        raise err from ex

    def raise_conflict(self, row: Row, source: ConflictSource) -> None:
        """Record a divergence from the baseline while a session is open.

        The draft and the session are left untouched. A notice that already
        carries the same remote row is not raised again.
        """
        self._notify(row.row_index, row, row.annotation, source)

    def raise_removed(self, source: ConflictSource) -> None:
        """Record that the edited row was deleted from the sheet."""
        row_index = self._session.row_index if self._session is not None else 0
        self._notify(row_index, None, '', source)

    def _notify(self, row_index: int, row: Optional[Row], remote_value: str, source: ConflictSource) -> None:
        if not self.editing:
            logging.warning('Conflict ignored: no edit session is open.')
            return

        if self._conflict is not None and self._conflict.row_index == row_index and self._conflict.row == row:
            return

        self._conflict = ConflictNotice(row_index, row, remote_value, self._session.draft_value, source)
        if row is None:
            logging.warning(f'Row {row_index} was deleted from the sheet while being edited.')
        else:
            logging.info(f'Conflict on row {row_index} detected by {source}.')
        self._set_state(EditState.ConflictPending)
        self.conflictRaised.emit(self._conflict)

    def acknowledge_conflict(self, adopt: bool) -> Optional[Row]:
        """Resolve the pending conflict.

        Args:
            adopt: True adopts the remote value: the session is closed and the
                draft discarded. False keeps editing with the draft intact and
                re-anchors the baseline on the remote value, so the next save
                deliberately overwrites it. Ignored for a deleted row, whose
                session is always closed.

        Returns:
            Row: The remote row to be accepted into view, or None if it was deleted.
        """
        self._require(EditState.ConflictPending)
        notice = self._conflict
        self._conflict = None

        if notice.removed:
            logging.debug(f'Closed the edit of deleted row {notice.row_index}.')
            self._close_session('')
            self._set_state(EditState.Viewing)
        elif adopt:
            if notice.source == ConflictSource.Save:
                self._store.patch_annotation(notice.row_index, notice.remote_value)
            logging.debug(f'Adopted remote comment of row {notice.row_index}.')
            self._close_session(notice.remote_value)
            self._set_state(EditState.Viewing)
        else:
            logging.debug(f'Kept draft for row {notice.row_index}; baseline moved to the remote value.')
            self._session.baseline_value = notice.remote_value
            self._set_state(EditState.Editing)

        self.conflictCleared.emit()
        return notice.row

    def _close_session(self, idle_draft: str) -> None:
        self._session.active = False
        self._session = None
        self._idle_draft = idle_draft
        self.draftChanged.emit(idle_draft)
