"""Spreadsheet column labels and A1 range specs.

Google Sheets names columns with bijective base-26 labels: ``A`` is 1,
``Z`` is 26, ``AA`` is 27 and ``ZZ`` is 702. There is no digit for zero, so
the label is built by subtracting one before every modulo step.
"""
from ..status import status


def column_letter(n: int) -> str:
    """Convert a one-based column ordinal to its spreadsheet label.

    Args:
        n: The one-based column ordinal.

    Returns:
        The column label, e.g. ``A``, ``Z``, ``AA``.

    Raises:
        status.InvalidArgumentError: If n is not a positive integer.
    """
    if not isinstance(n, int) or isinstance(n, bool) or n <= 0:
        raise status.InvalidArgumentError(f'Column ordinal must be a positive integer, got {n!r}.')

    letters = ''
    while n > 0:
        n, rem = divmod(n - 1, 26)
        letters = chr(rem + ord('A')) + letters
    return letters


def quote_sheet_name(sheet: str) -> str:
    """Quote a worksheet name for use in A1 notation when needed.

    Names with spaces or punctuation must be single-quoted and embedded quotes doubled,
    e.g. ``'Form Responses 1'``.
    """
    if sheet.isalnum() or sheet.replace('_', '').isalnum():
        return sheet
    escaped = sheet.replace("'", "''")
    return f"'{escaped}'"


def cell_range(sheet: str, column: int, row: int) -> str:
    """Return the A1 spec of a single cell.

    Args:
        sheet: Worksheet name.
        column: One-based column ordinal.
        row: One-based sheet row, the header being row 1.
    """
    if not isinstance(row, int) or row <= 0:
        raise status.InvalidArgumentError(f'Row must be a positive integer, got {row!r}.')
    return f'{quote_sheet_name(sheet)}!{column_letter(column)}{row}'


def block_range(sheet: str, first_column: int, first_row: int, last_column: int, last_row: int) -> str:
    """Return the A1 spec of a rectangular block of cells."""
    start = cell_range(sheet, first_column, first_row).split('!', 1)[1]
    end = cell_range(sheet, last_column, last_row).split('!', 1)[1]
    return f'{quote_sheet_name(sheet)}!{start}:{end}'


def sheet_row(row_index: int) -> int:
    """Map a one-based data row index to its sheet row, accounting for the header."""
    return row_index + 1
