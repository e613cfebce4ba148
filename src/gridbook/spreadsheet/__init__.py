"""
Spreadsheet core.

This module provides the in-memory workbook model: A1 addressing, the sparse
ordered cell grid, the shared string table, the memoising style cache, and
workbook-level sheets, defined names and calculation properties.
"""

from gridbook.spreadsheet.address import (
    Address,
    CellRange,
    column_index,
    column_letters,
    decode,
    decode_range,
    encode,
    to_absolute,
)
from gridbook.spreadsheet.model import (
    Cell,
    CellFormula,
    CellSnapshot,
    CellType,
    FormulaKind,
    Row,
)
from gridbook.spreadsheet.shared_strings import SharedStringTable
from gridbook.spreadsheet.styles import (
    Alignment,
    Border,
    BorderEdge,
    BorderLine,
    CellFormat,
    Fill,
    Font,
    StyleCache,
    StyleOverride,
    normalize_color,
)
from gridbook.spreadsheet.grid import CellGrid
from gridbook.spreadsheet.workbook import (
    PRINT_AREA,
    CalculationMode,
    CalculationProperties,
    DefinedName,
    DefinedNameTable,
    Sheet,
    SheetDirectory,
    Workbook,
)
from gridbook.spreadsheet.formulas import (
    SharedFormulaRecord,
    export_shared_formulas,
    write_shared_formulas_csv,
)

__all__ = [
    "Address",
    "CellRange",
    "column_index",
    "column_letters",
    "decode",
    "decode_range",
    "encode",
    "to_absolute",
    "Cell",
    "CellFormula",
    "CellSnapshot",
    "CellType",
    "FormulaKind",
    "Row",
    "SharedStringTable",
    "Alignment",
    "Border",
    "BorderEdge",
    "BorderLine",
    "CellFormat",
    "Fill",
    "Font",
    "StyleCache",
    "StyleOverride",
    "normalize_color",
    "CellGrid",
    "PRINT_AREA",
    "CalculationMode",
    "CalculationProperties",
    "DefinedName",
    "DefinedNameTable",
    "Sheet",
    "SheetDirectory",
    "Workbook",
    "SharedFormulaRecord",
    "export_shared_formulas",
    "write_shared_formulas_csv",
]
