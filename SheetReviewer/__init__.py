"""
SheetReviewer: collaborative review of Google Form responses stored in Google Sheets.

Reviewers page through the responses of a worksheet, optionally filtered on one
column, and leave a comment in the last column of each row. The sheet is polled
for remote changes, and comments are saved with optimistic concurrency so two
reviewers never silently overwrite each other.

This package provides:

- :mod:`SheetReviewer.core` – The sync engine: sheet access, snapshot, view, edit sessions and polling.
- :mod:`SheetReviewer.settings` – Settings management and schema validation.
- :mod:`SheetReviewer.status` – Status codes and exceptions.
- :mod:`SheetReviewer.log` – Logging setup and the Qt message bridge.
- :mod:`SheetReviewer.ui` – Application-wide signals and the application object.

Use :func:`SheetReviewer.exec_` to run a review session.
"""

import sys

from PySide6 import QtCore

# Fail on Python < 3.11
if not (sys.version_info.major == 3 and sys.version_info.minor >= 11):
    raise RuntimeError('SheetReviewer requires Python 3.11 or higher.')

__version__ = '0.1.0'
__author__ = 'Gergely Wootsch'
__license__ = 'GPL-3.0'
__copyright__ = 'Copyright (C) 2025 Gergely Wootsch'
__description__ = 'SheetReviewer: collaborative review of Google Form responses stored in Google Sheets.'
__url__ = 'https://github.com/wgergely/SheetReviewer'
__email__ = 'hello+SheetReviewer@gergely-wootsch.com'

from .log import log

log.setup_logging()


def exec_() -> None:
    """Run a review session and enter the Qt event loop.

    Signs in if needed, loads the configured worksheet and keeps polling it
    until the application quits.
    """
    from .ui import app
    application = app.Application(sys.argv)
    QtCore.QTimer.singleShot(0, application.start_session)
    sys.exit(application.exec())


if __name__ == '__main__':
    exec_()
