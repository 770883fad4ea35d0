"""Application object for SheetReviewer.

This module provides:
    - Application: QGuiApplication subclass configuring application metadata
      and running one review session over the configured worksheet.
"""
import logging
import sys
from typing import Optional, Sequence

from PySide6 import QtCore, QtGui

from .. import __version__
from ..status import status

RESTART_SECTIONS = ('spreadsheet', 'polling', 'view')


class Application(QtGui.QGuiApplication):
    """Application running a review session without widgets.

    Row changes, conflicts and failures are reported through the log so the
    session can run in a terminal or be driven by a separate viewer.
    """

    def __init__(self, argv: Optional[Sequence[str]] = None) -> None:
        if argv is None:
            argv = sys.argv

        super().__init__(list(argv))

        from ..settings import lib
        self.setApplicationName(lib.app_name)
        self.setOrganizationName('')
        self.setApplicationVersion(__version__)

        self.review = None
        self.reviewer_name: str = ''

        self._connect_signals()

    def _connect_signals(self) -> None:
        from .actions import signals
        signals.configSectionChanged.connect(self._on_config_section_changed)
        signals.signedIn.connect(self._on_signed_in)
        self.aboutToQuit.connect(self.stop_session)

    @QtCore.Slot(str)
    def _on_signed_in(self, name: str) -> None:
        self.reviewer_name = name
        logging.info(f'Reviewing as {name or "an unknown reviewer"}')

    @QtCore.Slot(str)
    def _on_config_section_changed(self, section: str) -> None:
        if section not in RESTART_SECTIONS or self.review is None:
            return
        logging.debug(f'"{section}" settings changed, restarting the review session.')
        self.start_session()

    @QtCore.Slot()
    def start_session(self) -> None:
        """Sign in if needed, then load and start polling the configured worksheet."""
        from ..core import auth
        from ..core.review import ReviewAPI
        from .actions import signals

        self.stop_session()

        if not auth.auth_manager.is_signed_in():
            signals.authenticationRequested.emit()
            if not auth.auth_manager.is_signed_in():
                logging.error('Not signed in, the review session was not started.')
                return
        elif not self.reviewer_name:
            self._on_signed_in(auth.get_user_name())

        try:
            review = ReviewAPI.from_settings()
        except status.BaseStatusException:
            return

        review.rowChanged.connect(self._on_row_changed)
        review.conflictRaised.connect(self._on_conflict_raised)
        review.saved.connect(lambda row: logging.info(f'Comment saved for row {row.row_index}.'))
        self.review = review

        try:
            review.load()
        except status.BaseStatusException:
            logging.warning('Initial load failed, waiting for the next poll.')
        review.start()

    @QtCore.Slot()
    def stop_session(self) -> None:
        if self.review is None:
            return
        self.review.stop()
        self.review.deleteLater()
        self.review = None

    @QtCore.Slot(object)
    def _on_row_changed(self, row) -> None:
        if row is None:
            logging.info('No response to show.')
            return
        review = self.review
        logging.info(f'Response {review.position or "-"} of {review.total} (row {row.row_index})')
        for question, answer in review.question_pairs():
            logging.debug(f'{question}: {answer}')
        logging.info(f'Comment: {review.comment_text()}')

    @QtCore.Slot(object)
    def _on_conflict_raised(self, notice) -> None:
        if notice.removed:
            logging.warning(f'Row {notice.row_index} was deleted from the sheet. Your draft: "{notice.draft_value}"')
            return
        logging.warning(
            f'Row {notice.row_index} was changed by someone else: "{notice.remote_value}". '
            f'Your draft: "{notice.draft_value}"'
        )
