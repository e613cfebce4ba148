"""
Storage module for gridbook.

This module provides backends that load and save workbooks. ``XlsxStorage``
reads and writes xlsx packages via openpyxl; ``SheetsStorage`` publishes to
and loads from the Google Sheets API via gspread.
"""

from gridbook.storage.base import Storage
from gridbook.storage.sheets_client import SheetsClient
from gridbook.storage.sheets_storage import SheetsStorage
from gridbook.storage.xlsx_storage import XlsxStorage

__all__ = [
    "Storage",
    "SheetsClient",
    "SheetsStorage",
    "XlsxStorage",
]
