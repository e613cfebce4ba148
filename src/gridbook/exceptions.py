"""
Exception classes for gridbook.

These exceptions are used throughout the gridbook package to signal invalid
coordinates, bad sheet lookups, storage failures and use of a document after
it has been released.
"""


class GridbookError(Exception):
    """Base class for every error raised by gridbook."""
    pass


class InvalidAddressError(GridbookError, ValueError):
    """Raised when a cell coordinate or A1 address is not valid.

    Examples:
        - Column or row less than 1 (``encode(0, 1)``)
        - Address text that does not match ``^[A-Za-z]+[0-9]+$`` (``"1A"``, ``""``)
        - Row part equal to zero (``"A0"``)
    """
    pass


class InvalidRangeError(GridbookError, ValueError):
    """Raised when range text cannot be parsed.

    Examples:
        - More than one separator (``"A1:B2:C3"``)
        - A missing side (``"A1:"``)
        - Either side failing address decoding
    """
    pass


class InvalidArgumentError(GridbookError, ValueError):
    """Raised when a numeric or structural argument is out of its domain.

    Examples:
        - Negative start row or non-positive count for a row delete
        - An unknown style id passed as the base of a style override
        - A blank export path
    """
    pass


class SheetNotFoundError(GridbookError, KeyError):
    """Raised when a sheet index or name does not exist in the workbook."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""


class StorageError(GridbookError):
    """Raised when the storage collaborator fails.

    This error wraps exceptions from openpyxl, zip/XML parsing or the Google
    Sheets API (via gspread) and records which operation failed. Common causes
    include:
        - Missing or unreadable files
        - Files that are not valid xlsx packages
        - Authentication failures or rate limiting (HTTP 429)
    """
    pass


class OpenFailedError(GridbookError):
    """Raised when a document could not be opened or parsed."""
    pass


class UseAfterDisposeError(GridbookError, RuntimeError):
    """Raised when a document is used after ``dispose()`` or ``save()``."""
    pass
