"""
Sparse, ordered cell grid for one worksheet.

Rows are kept sorted by index and each row keeps its cells sorted by column,
which is the order spreadsheet readers require. Cells are materialised
lazily: reading never creates anything, and writing creates the row and the
cell in their sorted position (``bisect``) so the order never needs repair.

Values are stored the way a worksheet part stores them: text goes through the
workbook's shared string table, booleans become ``"1"``/``"0"``, and numbers
and dates become invariant number text.
"""

from __future__ import annotations

import datetime
import logging
import math
import numbers
import re
from bisect import bisect_left
from decimal import Decimal
from typing import Any, Callable, Iterator, List, Optional, Tuple

import pandas as pd
from openpyxl.utils.datetime import to_excel

from gridbook.config import DateEpoch
from gridbook.exceptions import InvalidAddressError, InvalidArgumentError
from gridbook.spreadsheet.address import Address, CellRange, RangeLike, as_range, column_letters
from gridbook.spreadsheet.model import (
    Cell,
    CellFormula,
    CellSnapshot,
    CellType,
    FormulaKind,
    Row,
)
from gridbook.spreadsheet.shared_strings import SharedStringTable
from gridbook.spreadsheet.styles import StyleCache, StyleOverride

logger = logging.getLogger(__name__)

_INTEGER_RE = re.compile(r"^-?[0-9]+$")

_DATE_TYPES = (datetime.datetime, datetime.date, datetime.time, datetime.timedelta)


class CellGrid:
    """The cells, row formats, column formats and merges of one worksheet.

    The grid does not own the shared string table or the style tables; they
    belong to the workbook and are shared by every sheet.

    Attributes:
        strings: Workbook shared string table
        styles: Workbook style cache
        date_epoch: Epoch used to turn dates into serial numbers
    """

    def __init__(
        self,
        strings: SharedStringTable,
        styles: StyleCache,
        date_epoch: DateEpoch = DateEpoch.WINDOWS_1900,
        on_rows_deleted: Optional[Callable[[], None]] = None,
    ) -> None:
        """Initialize an empty grid.

        Args:
            strings: Shared string table to intern text into
            styles: Style cache used for format inheritance
            date_epoch: Serial date epoch
            on_rows_deleted: Called after rows were removed, so the owner can
                invalidate calculation state
        """
        self.strings = strings
        self.styles = styles
        self.date_epoch = date_epoch
        self._on_rows_deleted = on_rows_deleted

        self._rows: List[Row] = []
        # (first column, last column, format id); later spans win
        self._column_spans: List[Tuple[int, int, int]] = []
        self._merges: List[CellRange] = []

    # ------------------------------------------------------------------ #
    # Row / cell lookup
    # ------------------------------------------------------------------ #

    def _row_position(self, index: int) -> int:
        return bisect_left(self._rows, index, key=lambda row: row.index)

    def find_row(self, index: int) -> Optional[Row]:
        """Return row ``index`` (1-based) or None if it was never materialised."""
        pos = self._row_position(index)
        if pos < len(self._rows) and self._rows[pos].index == index:
            return self._rows[pos]
        return None

    def find_cell(self, address: Address) -> Optional[Cell]:
        row = self.find_row(address.row)
        if row is None:
            return None
        return row.find(address.col)

    def _get_or_insert_row(self, index: int) -> Row:
        pos = self._row_position(index)
        if pos < len(self._rows) and self._rows[pos].index == index:
            return self._rows[pos]

        row = Row(index=index)
        self._rows.insert(pos, row)
        return row

    def _materialize(self, address: Address) -> Cell:
        row = self._get_or_insert_row(address.row)
        cell, created = row.get_or_insert(address.col)
        if created:
            inherited = self.styles.base_format(self, address)
            if inherited:
                cell.format_id = inherited
        return cell

    def touch(self, target: RangeLike) -> None:
        """Materialise every cell of ``target`` without changing its value."""
        for address in as_range(target):
            self._materialize(address)

    @property
    def rows(self) -> Tuple[Row, ...]:
        return tuple(self._rows)

    def iter_cells(self) -> Iterator[Cell]:
        """Yield every materialised cell, row by row, left to right."""
        for row in self._rows:
            yield from row.cells

    def dimension(self) -> Optional[CellRange]:
        """Bounding range of all materialised cells, or None for an empty grid."""
        cells = list(self.iter_cells())
        if not cells:
            return None
        return CellRange(
            min(c.col for c in cells),
            min(c.row for c in cells),
            max(c.col for c in cells),
            max(c.row for c in cells),
        )

    # ------------------------------------------------------------------ #
    # Row / column formats
    # ------------------------------------------------------------------ #

    def row_format(self, index: int) -> Optional[int]:
        row = self.find_row(index)
        return row.format_id if row is not None else None

    def set_row_format(self, index: int, format_id: Optional[int]) -> None:
        if format_id is not None:
            self.styles.get_format(format_id)
        if isinstance(index, bool) or not isinstance(index, int) or index <= 0:
            raise InvalidAddressError(f"Row must be a positive integer, got {index!r}")
        self._get_or_insert_row(index).format_id = format_id

    def column_format(self, col: int) -> Optional[int]:
        for first, last, format_id in reversed(self._column_spans):
            if first <= col <= last:
                return format_id
        return None

    def set_column_format(self, first: int, last: int, format_id: int) -> None:
        """Give columns ``first``..``last`` (1-based, inclusive) a format."""
        self.styles.get_format(format_id)
        column_letters(first)
        column_letters(last)
        self._column_spans.append((min(first, last), max(first, last), format_id))

    @property
    def column_spans(self) -> Tuple[Tuple[int, int, int], ...]:
        return tuple(self._column_spans)

    # ------------------------------------------------------------------ #
    # Values
    # ------------------------------------------------------------------ #

    def get(self, target: RangeLike) -> Any:
        """Return the typed value of a cell (top-left cell for a range).

        Returns:
            None if the cell was never materialised or holds no value; a str
            for shared strings; a bool for booleans; otherwise an int for
            integral number text or a float.
        """
        address = as_range(target).start
        cell = self.find_cell(address)
        if cell is None or cell.raw is None:
            return None
        return self._decode(cell)

    def _decode(self, cell: Cell) -> Any:
        if cell.data_type is CellType.SHARED_STRING:
            try:
                return self.strings.get(int(cell.raw))
            except ValueError:
                return ""

        if cell.data_type is CellType.BOOLEAN:
            return cell.raw == "1"

        if _INTEGER_RE.fullmatch(cell.raw):
            return int(cell.raw)
        try:
            return float(cell.raw)
        except ValueError:
            return cell.raw

    def set_range(self, target: RangeLike, value: Any, as_text: bool = False) -> None:
        """Write ``value`` into every cell of ``target``.

        Missing rows and cells are created in sorted position; a new cell
        inherits the column or row format. The value is converted once, before
        any cell is touched, so an unsupported value leaves the grid as it
        was. Writing a value removes any formula from the cell.

        Args:
            target: Range text, CellRange, Address or (col, row) tuple
            value: None (clears), str, bool, number, date/time, or any object
                (stored as its ``str()``)
            as_text: Store the value as text even if it is a number

        Raises:
            InvalidRangeError: If target cannot be parsed
            InvalidArgumentError: If the value cannot be stored (e.g. infinity,
                timezone-aware datetime)
        """
        cell_range = as_range(target)
        raw, data_type = self._encode(value, as_text)

        for address in cell_range:
            cell = self._materialize(address)
            cell.raw = raw
            cell.data_type = data_type
            cell.formula = None

    def _encode(self, value: Any, as_text: bool) -> Tuple[Optional[str], Optional[CellType]]:
        if value is None:
            return None, None

        if as_text or isinstance(value, str):
            return self._intern(str(value))

        if isinstance(value, bool):
            return ("1" if value else "0"), CellType.BOOLEAN

        if isinstance(value, _DATE_TYPES):
            if getattr(value, "tzinfo", None) is not None:
                raise InvalidArgumentError(
                    f"Timezone-aware values cannot be stored as serial dates: {value!r}"
                )
            serial = to_excel(value, epoch=self.date_epoch.origin)
            return _format_number(serial), None

        if isinstance(value, (numbers.Real, Decimal)):
            if not isinstance(value, numbers.Integral):
                if math.isnan(value):
                    return None, None
                if math.isinf(value):
                    raise InvalidArgumentError(f"Cannot store non-finite number: {value!r}")
            return _format_number(value), None

        return self._intern(str(value))

    def _intern(self, text: str) -> Tuple[str, CellType]:
        return str(self.strings.intern(text)), CellType.SHARED_STRING

    # ------------------------------------------------------------------ #
    # Formulas
    # ------------------------------------------------------------------ #

    def set_formula(
        self,
        target: RangeLike,
        text: str,
        share_id: Optional[int] = None,
        reference: Optional[str] = None,
        kind: Optional[FormulaKind] = None,
    ) -> None:
        """Install a formula in a single cell.

        Args:
            target: The cell (a range selects its top-left cell)
            text: Formula text, with or without a leading '='
            share_id: Shared-formula group index; marks the formula as shared
            reference: Block covered by a shared or array formula (anchor
                cell only)
            kind: Explicit formula kind; defaults to shared when share_id is
                given, normal otherwise
        """
        address = as_range(target).start
        formula_text = text[1:] if text.startswith("=") else text
        if kind is None:
            kind = FormulaKind.SHARED if share_id is not None else FormulaKind.NORMAL

        cell = self._materialize(address)
        cell.clear_value()
        cell.formula = CellFormula(formula_text, kind, share_id, reference)

    def get_formula(self, target: RangeLike) -> Optional[CellFormula]:
        cell = self.find_cell(as_range(target).start)
        return cell.formula if cell is not None else None

    def shared_formula_cells(self) -> Iterator[Cell]:
        """Yield cells whose formula is flagged shared, in grid order."""
        for cell in self.iter_cells():
            if cell.formula is not None and cell.formula.is_shared:
                yield cell

    # ------------------------------------------------------------------ #
    # Styles
    # ------------------------------------------------------------------ #

    def apply_style(self, target: RangeLike, format_id: int) -> None:
        """Stamp ``format_id`` on every cell of ``target``; values are untouched.

        Raises:
            InvalidArgumentError: If format_id is not a known format
        """
        cell_range = as_range(target)
        self.styles.get_format(format_id)

        for address in cell_range:
            self._materialize(address).format_id = format_id

    def restyle(self, target: RangeLike, overrides: StyleOverride) -> None:
        """Apply ``overrides`` on top of each cell's effective format.

        Cells that share a base format end up sharing the resulting format.
        """
        cell_range = as_range(target)
        resolved = {}

        for address in cell_range:
            cell = self._materialize(address)
            base = self.styles.base_format(self, address)
            new_id = resolved.get(base)
            if new_id is None:
                new_id = self.styles.resolve(base, overrides)
                resolved[base] = new_id
            cell.format_id = new_id

    # ------------------------------------------------------------------ #
    # Copy / paste
    # ------------------------------------------------------------------ #

    def capture(self, target: RangeLike) -> CellSnapshot:
        """Capture value and format of one cell (top-left cell of a range)."""
        address = as_range(target).start
        cell = self.find_cell(address)
        if cell is None:
            return CellSnapshot()

        return CellSnapshot(
            value=self.get(address),
            is_string=cell.data_type is CellType.SHARED_STRING,
            format_id=cell.format_id or 0,
        )

    def apply(self, target: RangeLike, snapshot: CellSnapshot) -> None:
        """Write a captured snapshot over ``target``.

        The value is written with the type it was captured with; the format is
        stamped afterwards unless it is the default (0).
        """
        cell_range = as_range(target)
        if snapshot.format_id:
            self.styles.get_format(snapshot.format_id)

        self.set_range(cell_range, snapshot.value, as_text=snapshot.is_string)
        if snapshot.format_id:
            self.apply_style(cell_range, snapshot.format_id)

    # ------------------------------------------------------------------ #
    # Merges
    # ------------------------------------------------------------------ #

    @property
    def merged_ranges(self) -> Tuple[CellRange, ...]:
        return tuple(self._merges)

    def merge(self, target: RangeLike) -> bool:
        """Register ``target`` as a merged region.

        A single cell needs no merge, and merging an already merged range
        again changes nothing.

        Returns:
            True if a new merged region was added

        Raises:
            InvalidArgumentError: If the range overlaps a different merged region
        """
        cell_range = as_range(target)
        if cell_range.is_single_cell:
            return False

        for existing in self._merges:
            if existing == cell_range:
                return False
            if existing.intersect(cell_range) is not None:
                raise InvalidArgumentError(
                    f"{cell_range.to_a1()} overlaps merged range {existing.to_a1()}"
                )

        self._merges.append(cell_range)
        return True

    # ------------------------------------------------------------------ #
    # Structure
    # ------------------------------------------------------------------ #

    def delete_rows(self, start_row: int, count: int) -> None:
        """Delete ``count`` rows starting at 0-based ``start_row``.

        In order: shared-formula linkage is cleared on every cell of the sheet
        (row deletion breaks the anchor geometry), rows
        ``start_row + 1 .. start_row + count`` are removed, rows below are
        renumbered with their cell addresses rewritten, and the owner is told
        to invalidate calculation state. A grid with no rows is left alone.

        Raises:
            InvalidArgumentError: If start_row < 0 or count <= 0
        """
        if isinstance(start_row, bool) or not isinstance(start_row, int) or start_row < 0:
            raise InvalidArgumentError(f"start_row must be >= 0, got {start_row!r}")
        if isinstance(count, bool) or not isinstance(count, int) or count <= 0:
            raise InvalidArgumentError(f"count must be > 0, got {count!r}")

        if not self._rows:
            return

        for cell in list(self.shared_formula_cells()):
            cell.formula.clear_shared()

        first = start_row + 1
        last = start_row + count

        self._rows = [row for row in self._rows if not first <= row.index <= last]
        for row in self._rows:
            if row.index > last:
                row.renumber(row.index - count)

        logger.debug("Deleted rows %d-%d", first, last)

        if self._on_rows_deleted is not None:
            self._on_rows_deleted()

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    def to_dataframe(self) -> pd.DataFrame:
        """Return the values from A1 to the last used cell as a DataFrame.

        Rows are indexed by row number and columns are labelled with column
        letters; cells without a value are None.
        """
        area = self.dimension()
        if area is None:
            return pd.DataFrame()

        max_row, max_col = area.end.row, area.end.col
        matrix = [[None] * max_col for _ in range(max_row)]
        for cell in self.iter_cells():
            if cell.raw is not None:
                matrix[cell.row - 1][cell.col - 1] = self._decode(cell)

        return pd.DataFrame(
            matrix,
            index=range(1, max_row + 1),
            columns=[column_letters(c) for c in range(1, max_col + 1)],
            dtype=object,
        )


def _format_number(value: Any) -> str:
    """Format a number as invariant text ('.' decimal point, no grouping)."""
    if isinstance(value, numbers.Integral):
        return str(int(value))
    if isinstance(value, Decimal):
        return str(value)
    as_float = float(value)
    if as_float.is_integer() and abs(as_float) < 1e15:
        return str(int(as_float))
    return repr(as_float)
