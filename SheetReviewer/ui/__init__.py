"""
UI package: application-wide signals and the application entry point.

This package provides:

- :mod:`SheetReviewer.ui.actions` – Application-wide Qt signals and utility slots.
- :mod:`SheetReviewer.ui.app` – Application object running a review session without widgets.
"""
