"""
Core package for SheetReviewer providing the sync engine.

This package includes:

- :mod:`SheetReviewer.core.auth` – Google OAuth2 authentication and credential management.
- :mod:`SheetReviewer.core.columns` – Column letters and A1 range specs.
- :mod:`SheetReviewer.core.gateway` – Google Sheets range reads and writes.
- :mod:`SheetReviewer.core.snapshot` – Normalized local copy of the remote table.
- :mod:`SheetReviewer.core.view` – Filtering, pagination and derived row data.
- :mod:`SheetReviewer.core.session` – Edit sessions and optimistic-concurrency saves.
- :mod:`SheetReviewer.core.poller` – Periodic refresh and change detection.
- :mod:`SheetReviewer.core.review` – The review session a viewer binds to.
"""
