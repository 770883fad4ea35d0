"""
Settings package for SheetReviewer.

- :mod:`SheetReviewer.settings.lib` – Schema validation and persistence for review.json and client_secret.json.
"""
