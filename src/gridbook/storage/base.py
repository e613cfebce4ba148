"""
Abstract storage interface for workbook backends.

The Storage protocol defines the contract every backend must satisfy: build a
Workbook from some persisted source, and flush a Workbook's grid, style and
shared-string state back to a target. Concrete implementations include
XlsxStorage (xlsx packages via openpyxl) and SheetsStorage (Google Sheets via
gspread).
"""

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from gridbook.spreadsheet.workbook import Workbook


class Storage(Protocol):
    """Protocol for workbook storage backends."""

    def load(self, source: Any) -> "Workbook":
        """Load a workbook.

        Args:
            source: Backend-specific location (a path or file object for
                XlsxStorage, a spreadsheet key for SheetsStorage)

        Returns:
            The loaded Workbook

        Raises:
            StorageError: If the source cannot be read or parsed
        """
        ...

    def save(self, workbook: "Workbook", target: Any) -> None:
        """Persist a workbook.

        Args:
            workbook: The workbook to write
            target: Backend-specific location (a path or file object for
                XlsxStorage, a spreadsheet title for SheetsStorage)

        Raises:
            StorageError: If the target cannot be written
        """
        ...
