"""
Workbook-level state.

This module provides the containers that sit above a single sheet's grid:
- SheetDirectory: ordered sheets and the active-sheet selection
- DefinedNameTable: workbook defined names, including sheet-scoped print areas
- CalculationProperties: calculation mode and recalculation flags
- Workbook: owner of the sheets, the shared string table and the style cache
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, List, Optional, Union

from gridbook.config import DateEpoch, DocumentOptions
from gridbook.exceptions import InvalidArgumentError, SheetNotFoundError
from gridbook.spreadsheet.address import (
    CellRange,
    RangeLike,
    as_range,
    quote_sheet_name,
    split_sheet_reference,
)
from gridbook.spreadsheet.grid import CellGrid
from gridbook.spreadsheet.shared_strings import SharedStringTable
from gridbook.spreadsheet.styles import StyleCache

logger = logging.getLogger(__name__)

PRINT_AREA = "_xlnm.Print_Area"


@dataclass
class Sheet:
    """A named worksheet and its grid."""
    name: str
    grid: CellGrid


class SheetDirectory:
    """Ordered sheets of a workbook plus the active selection.

    Sheets keep their declaration order. The position of a sheet in that
    order is its local id, which is what sheet-scoped defined names refer to.
    """

    def __init__(self) -> None:
        self._sheets: List[Sheet] = []
        self._current = 0

    def add(self, name: str, grid: CellGrid) -> Sheet:
        """Append a sheet.

        Raises:
            InvalidArgumentError: If the name is blank or already used
        """
        if not isinstance(name, str) or not name.strip():
            raise InvalidArgumentError("Sheet name must be a non-empty string")
        if name in self.names():
            raise InvalidArgumentError(f"Duplicate sheet name: {name!r}")

        sheet = Sheet(name, grid)
        self._sheets.append(sheet)
        return sheet

    def select(self, key: Union[int, str]) -> Sheet:
        """Make a sheet the active one, by 0-based index or exact name.

        Raises:
            SheetNotFoundError: If the index is out of bounds or no sheet has
                that name (names are case-sensitive)
        """
        if isinstance(key, str):
            for position, sheet in enumerate(self._sheets):
                if sheet.name == key:
                    self._current = position
                    return sheet
            raise SheetNotFoundError(f"Sheet not found: {key!r}")

        if isinstance(key, bool) or not isinstance(key, int) or not 0 <= key < len(self._sheets):
            raise SheetNotFoundError(f"Sheet index out of range: {key!r}")

        self._current = key
        return self._sheets[key]

    def get(self, name: str) -> Sheet:
        for sheet in self._sheets:
            if sheet.name == name:
                return sheet
        raise SheetNotFoundError(f"Sheet not found: {name!r}")

    def names(self) -> List[str]:
        return [sheet.name for sheet in self._sheets]

    def current_local_id(self) -> int:
        """0-based position of the active sheet."""
        self._require_sheets()
        return self._current

    @property
    def current(self) -> Sheet:
        self._require_sheets()
        return self._sheets[self._current]

    def _require_sheets(self) -> None:
        if not self._sheets:
            raise SheetNotFoundError("Workbook has no sheets")

    def __iter__(self) -> Iterator[Sheet]:
        return iter(self._sheets)

    def __len__(self) -> int:
        return len(self._sheets)


@dataclass(frozen=True)
class DefinedName:
    """A workbook defined name.

    Attributes:
        name: Defined name, e.g. ``_xlnm.Print_Area``
        text: Reference text, e.g. ``'Sheet1'!$A$1:$D$20``
        local_sheet_id: Position of the sheet the name is scoped to, or None
            for a workbook-wide name
    """
    name: str
    text: str
    local_sheet_id: Optional[int] = None

    @property
    def area(self) -> CellRange:
        """Range part of ``text`` (raises InvalidRangeError for other shapes)."""
        _, area = split_sheet_reference(self.text)
        return as_range(area)


class DefinedNameTable:
    """Ordered defined names."""

    def __init__(self) -> None:
        self._names: List[DefinedName] = []

    def add(self, defined_name: DefinedName) -> None:
        self._names.append(defined_name)

    def find(self, name: str, local_sheet_id: Optional[int] = None) -> Optional[DefinedName]:
        for defined_name in self._names:
            if defined_name.name == name and defined_name.local_sheet_id == local_sheet_id:
                return defined_name
        return None

    def remove(self, name: str, local_sheet_id: Optional[int] = None) -> int:
        """Remove every entry with this name and scope; return how many went."""
        before = len(self._names)
        self._names = [
            d for d in self._names
            if not (d.name == name and d.local_sheet_id == local_sheet_id)
        ]
        return before - len(self._names)

    def set_print_area(self, sheet_name: str, local_sheet_id: int, area: CellRange) -> DefinedName:
        """Replace the print area of one sheet.

        Print areas of other sheets are left alone.
        """
        self.remove(PRINT_AREA, local_sheet_id)
        defined_name = DefinedName(
            PRINT_AREA,
            f"{quote_sheet_name(sheet_name)}!{area.to_absolute()}",
            local_sheet_id,
        )
        self._names.append(defined_name)
        return defined_name

    def print_areas(self) -> List[DefinedName]:
        return [d for d in self._names if d.name == PRINT_AREA]

    def __iter__(self) -> Iterator[DefinedName]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)


class CalculationMode(Enum):
    AUTOMATIC = "auto"
    MANUAL = "manual"


@dataclass
class CalculationProperties:
    """Calculation settings stored with the workbook.

    Attributes:
        mode: Calculation mode
        full_calc_on_load: Ask the reading application to recalculate everything
        has_calc_chain: Whether the cached formula dependency chain is still valid
    """
    mode: CalculationMode = CalculationMode.AUTOMATIC
    full_calc_on_load: bool = False
    has_calc_chain: bool = False

    def invalidate(self) -> None:
        """Drop the dependency chain and request a full recalculation on open."""
        self.has_calc_chain = False
        self.full_calc_on_load = True
        self.mode = CalculationMode.AUTOMATIC


class Workbook:
    """A workbook: sheets plus the tables they share.

    The workbook exclusively owns its grids, the shared string table, the
    style cache, the defined names and the calculation properties.
    """

    def __init__(self, options: Optional[DocumentOptions] = None) -> None:
        self.options = options or DocumentOptions()
        self.date_epoch: DateEpoch = self.options.date_epoch
        self.strings = SharedStringTable()
        self.styles = StyleCache()
        self.sheets = SheetDirectory()
        self.defined_names = DefinedNameTable()
        self.calculation = CalculationProperties()
        # package object the workbook was loaded from, owned by the storage
        self.source: Any = None

    def add_sheet(self, name: str) -> CellGrid:
        grid = CellGrid(
            self.strings,
            self.styles,
            self.date_epoch,
            on_rows_deleted=self.calculation.invalidate,
        )
        self.sheets.add(name, grid)
        return grid

    @property
    def current(self) -> CellGrid:
        """Grid of the active sheet."""
        return self.sheets.current.grid

    def grid(self, name: str) -> CellGrid:
        return self.sheets.get(name).grid

    def select(self, key: Union[int, str]) -> CellGrid:
        return self.sheets.select(key).grid

    def set_print_area(self, target: RangeLike) -> DefinedName:
        """Set the print area of the active sheet.

        Raises:
            InvalidRangeError: If the range text cannot be parsed
        """
        area = as_range(target)
        sheet = self.sheets.current
        defined_name = self.defined_names.set_print_area(
            sheet.name, self.sheets.current_local_id(), area
        )
        logger.debug("Print area of %r set to %s", sheet.name, defined_name.text)
        return defined_name

    def print_area(self, sheet_name: Optional[str] = None) -> Optional[DefinedName]:
        """Return the print area of a sheet (the active sheet by default)."""
        if sheet_name is None:
            local_id = self.sheets.current_local_id()
        else:
            self.sheets.get(sheet_name)
            local_id = self.sheets.names().index(sheet_name)
        return self.defined_names.find(PRINT_AREA, local_id)

    def delete_rows(self, start_row: int, count: int) -> None:
        """Delete rows of the active sheet (see ``CellGrid.delete_rows``)."""
        self.current.delete_rows(start_row, count)

    def set_calculation_mode(self, mode: CalculationMode) -> None:
        """Set the calculation mode and clear the full-recalculation-on-open flag."""
        if not isinstance(mode, CalculationMode):
            raise InvalidArgumentError(f"Unknown calculation mode: {mode!r}")
        self.calculation.mode = mode
        self.calculation.full_calc_on_load = False
