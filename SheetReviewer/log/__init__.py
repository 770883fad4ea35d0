"""
Logging subsystem for SheetReviewer.

Modules:

- :mod:`SheetReviewer.log.log` – Root logger setup and the Qt message bridge.
"""
