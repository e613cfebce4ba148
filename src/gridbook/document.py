"""
Document facade.

SpreadsheetDocument is the entry point for editing a workbook: it opens a
package through a storage backend, routes value and appearance edits to the
active sheet's grid, owns the copy/paste clipboard, and saves and releases
the workbook when done.

Usage:
    >>> with SpreadsheetDocument.open("report.xlsx") as doc:
    ...     doc.select_sheet("Summary")
    ...     doc.set_value("B2", 42)
    ...     doc.pos(1, 1, 4, 1).attr.back_color = "#FFFF00"
    ...     doc.save()
"""

import logging
import os
from typing import Any, List, Optional, Union

from gridbook.config import DocumentOptions
from gridbook.exceptions import (
    GridbookError,
    InvalidArgumentError,
    OpenFailedError,
    UseAfterDisposeError,
)
from gridbook.position import Pos
from gridbook.spreadsheet.address import CellRange, as_range
from gridbook.spreadsheet.formulas import (
    SharedFormulaExport,
    export_shared_formulas,
    write_shared_formulas_csv,
)
from gridbook.spreadsheet.model import CellSnapshot
from gridbook.spreadsheet.workbook import CalculationMode, DefinedName, Workbook
from gridbook.storage.base import Storage
from gridbook.storage.xlsx_storage import XlsxStorage

logger = logging.getLogger(__name__)


class SpreadsheetDocument:
    """An open workbook plus the editing state that goes with it.

    Attributes:
        path: Location the workbook was loaded from (default save target)
        storage: Backend used to load and save
        clipboard: Snapshot taken by the last ``Pos.copy()``, or None
    """

    def __init__(
        self,
        workbook: Optional[Workbook] = None,
        storage: Optional[Storage] = None,
        path: Any = None,
        options: Optional[DocumentOptions] = None,
    ) -> None:
        self.options = options or (workbook.options if workbook is not None else DocumentOptions())
        self.storage: Storage = storage or XlsxStorage(self.options)
        self.path = path
        self.clipboard: Optional[CellSnapshot] = None
        self._workbook = workbook
        self._disposed = False

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    @classmethod
    def open(
        cls,
        path: Any,
        storage: Optional[Storage] = None,
        options: Optional[DocumentOptions] = None,
    ) -> "SpreadsheetDocument":
        """Open a workbook.

        Raises:
            OpenFailedError: If the storage cannot open or parse the source
        """
        document = cls(storage=storage, options=options)
        document.load(path)
        return document

    @classmethod
    def new(cls, *sheet_names: str, options: Optional[DocumentOptions] = None,
            storage: Optional[Storage] = None) -> "SpreadsheetDocument":
        """Create an empty in-memory workbook with the given sheets."""
        options = options or DocumentOptions()
        workbook = Workbook(options)
        for name in sheet_names or (options.default_sheet_name,):
            workbook.add_sheet(name)
        return cls(workbook, storage=storage, options=options)

    def load(self, path: Any) -> None:
        """Replace this document's workbook with the one stored at ``path``.

        Raises:
            OpenFailedError: If the storage cannot open or parse the source
        """
        self._require_not_disposed()
        try:
            workbook = self.storage.load(path)
        except (GridbookError, ValueError) as e:
            raise OpenFailedError(f"Failed to open '{path}': {e}") from e

        self._workbook = workbook
        self.path = path
        self.clipboard = None
        logger.debug("Opened %s", path)

    def save(self, save: bool = True, target: Any = None) -> None:
        """Optionally persist the workbook, then release the document.

        Args:
            save: Write through the storage backend before releasing
            target: Where to write; defaults to the path the document was
                opened from

        Raises:
            InvalidArgumentError: If saving with no target and no open path
            StorageError: If the storage backend fails (the document is
                released regardless)
        """
        workbook = self.workbook
        try:
            if save:
                destination = target if target is not None else self.path
                if destination is None:
                    raise InvalidArgumentError("No save target given and document has no path")
                self.storage.save(workbook, destination)
                logger.debug("Saved %s", destination)
        finally:
            self.dispose()

    finalize = save

    def dispose(self) -> None:
        """Release the workbook. Safe to call more than once."""
        if self._disposed:
            return
        self._workbook = None
        self.clipboard = None
        self._disposed = True

    close = dispose

    @property
    def disposed(self) -> bool:
        return self._disposed

    def __enter__(self) -> "SpreadsheetDocument":
        self._require_not_disposed()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.dispose()

    def _require_not_disposed(self) -> None:
        if self._disposed:
            raise UseAfterDisposeError("SpreadsheetDocument has been disposed")

    def _require_open(self) -> Workbook:
        self._require_not_disposed()
        if self._workbook is None:
            raise UseAfterDisposeError("SpreadsheetDocument has no open workbook")
        return self._workbook

    @property
    def workbook(self) -> Workbook:
        return self._require_open()

    # ------------------------------------------------------------------ #
    # Sheets
    # ------------------------------------------------------------------ #

    def select_sheet(self, key: Union[int, str]) -> None:
        """Activate a sheet by 0-based index or exact name.

        Raises:
            SheetNotFoundError: If no such sheet exists
        """
        self.workbook.select(key)

    @property
    def sheet_names(self) -> List[str]:
        return self.workbook.sheets.names()

    # ------------------------------------------------------------------ #
    # Values
    # ------------------------------------------------------------------ #

    def set_value(self, *args: Any, as_text: bool = False) -> None:
        """Write a value to a cell or block of the active sheet.

        Accepted forms:
            set_value(col, row, value)
            set_value(sx, sy, ex, ey, value)
            set_value("B2", value) or set_value("A1:D4", value)
            set_value("B2", cx, cy, value)   # B2 moved by cx columns, cy rows
        """
        if len(args) < 2:
            raise InvalidArgumentError("set_value needs a target and a value")
        target = _resolve_target(args[:-1])
        self.workbook.current.set_range(target, args[-1], as_text=as_text)

    def get_value(self, *args: Any) -> Any:
        """Read the value of a cell of the active sheet.

        Takes the same target forms as ``set_value``; a block reads its
        top-left cell.
        """
        return self.workbook.current.get(_resolve_target(args))

    def pos(self, sx: int, sy: int, ex: Optional[int] = None, ey: Optional[int] = None) -> Pos:
        workbook = self._require_open()
        return Pos(self, workbook.current, CellRange(sx, sy, ex, ey))

    def cell(self, address: Union[str, CellRange], cx: int = 0, cy: int = 0) -> Pos:
        """Handle for ``address`` moved by ``cx`` columns and ``cy`` rows."""
        workbook = self._require_open()
        return Pos(self, workbook.current, _resolve_target((address, cx, cy)))

    # ------------------------------------------------------------------ #
    # Sheet structure and workbook settings
    # ------------------------------------------------------------------ #

    def set_print_area(self, *args: Any) -> DefinedName:
        """Set the active sheet's print area from range text or coordinates."""
        return self.workbook.set_print_area(_resolve_target(args))

    def delete_rows(self, start_row: int, count: int) -> None:
        """Delete ``count`` rows of the active sheet starting at 0-based ``start_row``."""
        self.workbook.delete_rows(start_row, count)

    def set_calculation_mode(self, mode: CalculationMode) -> None:
        self.workbook.set_calculation_mode(mode)

    def shared_formulas(self) -> SharedFormulaExport:
        return export_shared_formulas(self.workbook)

    def export_shared_formulas_csv(self, path: Union[str, os.PathLike]) -> int:
        """Write every shared-formula cell of the workbook to a CSV file."""
        return write_shared_formulas_csv(self.workbook, path)


def _resolve_target(args) -> CellRange:
    if len(args) == 1:
        return as_range(args[0])

    if len(args) == 3 and isinstance(args[0], (str, CellRange)):
        base = as_range(args[0])
        _, cx, cy = args
        return CellRange.from_addresses(base.start.offset(cx, cy), base.end.offset(cx, cy))

    if len(args) in (2, 4) and all(isinstance(a, int) for a in args):
        return CellRange(*args)

    raise InvalidArgumentError(f"Cannot interpret {args!r} as a cell target")
