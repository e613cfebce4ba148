"""
gridbook - Edit spreadsheet workbooks while keeping them valid.

This package keeps a workbook's cell grid and style tables in memory with the
structure spreadsheet readers require: rows and cells in strict order, one
style record per distinct appearance, and consistent A1 addressing. Workbooks
are loaded from and saved to xlsx packages (openpyxl) or Google Sheets
(gspread).

Usage:
    >>> import gridbook
    >>> doc = gridbook.SpreadsheetDocument.open("input.xlsx")
    >>> doc.set_value("A1", "Total")
    >>> doc.pos(2, 1).value = 1250.5
    >>> doc.pos(1, 1, 2, 1).attr.back_color = "#DDEBF7"
    >>> doc.save(target="output.xlsx")

Key components:
- SpreadsheetDocument: open/edit/save facade with a copy/paste clipboard
- Workbook / CellGrid: in-memory sheets and their sparse, ordered cells
- StyleCache: append-only, deduplicating style tables
- XlsxStorage / SheetsStorage: storage backends
"""

from .config import DateEpoch, DocumentOptions
from .document import SpreadsheetDocument
from .exceptions import *
from .position import Pos, PosAttr
from .spreadsheet import (
    Address,
    Alignment,
    Border,
    BorderLine,
    CalculationMode,
    CellGrid,
    CellRange,
    Fill,
    Font,
    StyleCache,
    StyleOverride,
    Workbook,
    decode,
    decode_range,
    encode,
    to_absolute,
)
from .storage import SheetsClient, SheetsStorage, XlsxStorage
from .utils import OperationLogger, configure_logging

# Version
__version__ = "0.1.0"

__all__ = [
    'SpreadsheetDocument',
    'DocumentOptions',
    'DateEpoch',
    'Pos',
    'PosAttr',
    'Address',
    'CellRange',
    'CellGrid',
    'Workbook',
    'CalculationMode',
    'StyleCache',
    'StyleOverride',
    'Font',
    'Fill',
    'Border',
    'BorderLine',
    'Alignment',
    'encode',
    'decode',
    'decode_range',
    'to_absolute',
    'XlsxStorage',
    'SheetsClient',
    'SheetsStorage',
    'OperationLogger',
    'configure_logging',
    'GridbookError',
    'InvalidAddressError',
    'InvalidRangeError',
    'InvalidArgumentError',
    'SheetNotFoundError',
    'StorageError',
    'OpenFailedError',
    'UseAfterDisposeError',
]
