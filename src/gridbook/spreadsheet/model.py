"""
Cell grid model classes.

This module provides the storage records a worksheet is made of:
- Cell: one materialised cell (raw value text, type tag, format id, formula)
- Row: an ordered list of cells plus an optional row-level format
- CellFormula: formula text with its shared-formula linkage
- CellSnapshot: value and format captured from a cell for copy/paste

Rows keep their cells sorted by column. ``Row.get_or_insert`` is the single
place new cells enter a row, so the order never has to be repaired later.
"""

from bisect import bisect_left
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Optional, Tuple

from gridbook.spreadsheet.address import Address


class CellType(Enum):
    """Type tag stored alongside a cell's raw value text.

    Numbers carry no tag: a cell with raw text and no type is a number.
    """
    SHARED_STRING = "s"
    BOOLEAN = "b"


class FormulaKind(Enum):
    NORMAL = "normal"
    SHARED = "shared"
    ARRAY = "array"


@dataclass
class CellFormula:
    """A formula installed in a cell.

    Shared formulas are defined once on an anchor cell (which carries the
    ``reference`` of the block it covers) and reused by the other cells of the
    block through ``share_id``.

    Attributes:
        text: Formula text without the leading '='
        kind: Normal, shared or array formula
        share_id: Shared-formula group index (shared formulas only)
        reference: Block covered by the formula, e.g. "B1:B10" (anchor only)
    """
    text: str
    kind: FormulaKind = FormulaKind.NORMAL
    share_id: Optional[int] = None
    reference: Optional[str] = None

    @property
    def is_shared(self) -> bool:
        return self.kind is FormulaKind.SHARED

    def clear_shared(self) -> None:
        """Drop the shared-formula linkage, keeping the text."""
        self.share_id = None
        self.reference = None
        self.kind = FormulaKind.NORMAL

    def __str__(self) -> str:
        return f"={self.text}"


@dataclass
class Cell:
    """A materialised cell.

    Attributes:
        address: Cell coordinate; rewritten when rows above are deleted
        raw: Stored value text (shared-string index, "0"/"1", or number text)
        data_type: Type tag for ``raw``; None when the cell holds no value
        format_id: Cell format id, or None to fall back to column/row formats
        formula: Optional formula
    """
    address: Address
    raw: Optional[str] = None
    data_type: Optional[CellType] = None
    format_id: Optional[int] = None
    formula: Optional[CellFormula] = None

    @property
    def col(self) -> int:
        return self.address.col

    @property
    def row(self) -> int:
        return self.address.row

    @property
    def reference(self) -> str:
        return self.address.to_a1()

    @property
    def has_value(self) -> bool:
        return self.raw is not None

    def clear_value(self) -> None:
        self.raw = None
        self.data_type = None


@dataclass
class Row:
    """A worksheet row with its cells sorted by column.

    Attributes:
        index: 1-based row number
        cells: Cells ordered by column, at most one per column
        format_id: Row-level format used as a style fallback, if any
    """
    index: int
    cells: List[Cell] = field(default_factory=list)
    format_id: Optional[int] = None

    def _position(self, col: int) -> int:
        return bisect_left(self.cells, col, key=lambda cell: cell.col)

    def find(self, col: int) -> Optional[Cell]:
        """Return the cell in column ``col``, or None if not materialised."""
        pos = self._position(col)
        if pos < len(self.cells) and self.cells[pos].col == col:
            return self.cells[pos]
        return None

    def get_or_insert(self, col: int) -> Tuple[Cell, bool]:
        """Find the cell in column ``col``, creating it in order if absent.

        The new cell goes immediately before the first cell with a larger
        column, or at the end when there is none.

        Returns:
            (cell, created) where created is True for a new cell
        """
        pos = self._position(col)
        if pos < len(self.cells) and self.cells[pos].col == col:
            return self.cells[pos], False

        cell = Cell(address=Address(col, self.index))
        self.cells.insert(pos, cell)
        return cell, True

    def renumber(self, new_index: int) -> None:
        """Move the row to ``new_index`` and rewrite its cell addresses."""
        self.index = new_index
        for cell in self.cells:
            cell.address = Address(cell.col, new_index)


@dataclass(frozen=True)
class CellSnapshot:
    """Value and format captured from one cell.

    Attributes:
        value: Typed value (str, int, float, bool or None)
        is_string: True if the value was stored as a shared string
        format_id: Cell format id (0 when the cell had none)
    """
    value: Any = None
    is_string: bool = False
    format_id: int = 0
