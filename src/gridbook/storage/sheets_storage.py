"""
Google Sheets storage with batch writes and retry logic.

SheetsStorage publishes a Workbook's values, formulas and merges to a new
Google spreadsheet, and loads values and formulas from an existing one.
Styles, print areas and calculation settings have no counterpart in this
backend and are not transferred. Every API call is retried with exponential
backoff on transient failures.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

import gspread
from gspread.exceptions import APIError

from gridbook.config import DocumentOptions
from gridbook.exceptions import StorageError
from gridbook.spreadsheet.address import CellRange
from gridbook.spreadsheet.grid import CellGrid
from gridbook.spreadsheet.workbook import Workbook
from gridbook.storage.sheets_client import SheetsClient

logger = logging.getLogger(__name__)

T = TypeVar("T")

MIN_ROWS = 100
MIN_COLS = 26


class SheetsStorage:
    """Reads and writes workbooks through the Google Sheets API.

    Attributes:
        client: SheetsClient wrapper for API calls
        max_retries: Maximum number of retry attempts for transient failures
        base_delay: Base delay in seconds for exponential backoff
        options: DocumentOptions for loaded workbooks
    """

    def __init__(
        self,
        client: SheetsClient,
        max_retries: int = 3,
        base_delay: float = 1.0,
        options: Optional[DocumentOptions] = None,
    ):
        """Initialize the storage.

        Args:
            client: Authenticated SheetsClient
            max_retries: Maximum retry attempts (default: 3)
            base_delay: Base delay for exponential backoff in seconds (default: 1.0)
            options: Options applied to loaded workbooks
        """
        self.client = client
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.options = options

    def save(self, workbook: Workbook, target: str) -> gspread.Spreadsheet:
        """Publish ``workbook`` as a new spreadsheet titled ``target``.

        Returns:
            The created Spreadsheet object

        Raises:
            StorageError: If API calls fail after retries
        """
        spreadsheet = self._retry_operation(
            lambda: self.client.create_spreadsheet(target),
            f"create spreadsheet '{target}'"
        )
        default_sheets = self._retry_operation(
            lambda: self.client.worksheets(spreadsheet),
            "list worksheets"
        )

        for position, sheet in enumerate(workbook.sheets):
            rows, cols = _sheet_size(sheet.grid)

            if position == 0 and default_sheets:
                worksheet = default_sheets[0]
                self._retry_operation(
                    lambda: self.client.rename_sheet(worksheet, sheet.name),
                    f"rename worksheet to '{sheet.name}'"
                )
                self._retry_operation(
                    lambda: self.client.resize_sheet(worksheet, rows, cols),
                    f"resize worksheet '{sheet.name}'"
                )
            else:
                worksheet = self._retry_operation(
                    lambda: self.client.add_sheet(spreadsheet, sheet.name, rows, cols),
                    f"add worksheet '{sheet.name}'"
                )

            values, formulas = _collect_updates(sheet.grid)
            self._retry_operation(
                lambda: self.client.batch_update_values(worksheet, values),
                f"write values to '{sheet.name}'"
            )
            self._retry_operation(
                lambda: self.client.batch_update_formulas(worksheet, formulas),
                f"write formulas to '{sheet.name}'"
            )

            for merged in sheet.grid.merged_ranges:
                self._retry_operation(
                    lambda: self.client.merge_cells(worksheet, merged.to_a1()),
                    f"merge '{merged.to_a1()}' on '{sheet.name}'"
                )

        workbook.source = spreadsheet
        logger.debug("Published %d sheet(s) to spreadsheet %r", len(workbook.sheets), target)
        return spreadsheet

    def load(self, source: str) -> Workbook:
        """Load the spreadsheet with key ``source``.

        Cells whose formula view starts with '=' become formulas; every other
        non-empty cell keeps its unformatted value.

        Raises:
            StorageError: If API calls fail after retries
        """
        spreadsheet = self._retry_operation(
            lambda: self.client.open_spreadsheet(source),
            f"open spreadsheet '{source}'"
        )
        worksheets = self._retry_operation(
            lambda: self.client.worksheets(spreadsheet),
            "list worksheets"
        )

        workbook = Workbook(self.options)
        for worksheet in worksheets:
            grid = workbook.add_sheet(worksheet.title)
            values = self._retry_operation(
                lambda: self.client.read_values(worksheet),
                f"read worksheet '{worksheet.title}'"
            )
            formulas = self._retry_operation(
                lambda: self.client.read_formulas(worksheet),
                f"read formulas of '{worksheet.title}'"
            )
            _fill_grid(grid, values, formulas)

        if len(workbook.sheets):
            workbook.sheets.select(0)
        workbook.source = spreadsheet
        return workbook

    def _retry_operation(
        self,
        operation: Callable[[], T],
        description: str
    ) -> T:
        """Execute an operation with retry logic and exponential backoff.

        Args:
            operation: Callable that performs the operation
            description: Human-readable description for error messages

        Returns:
            Result of the operation

        Raises:
            StorageError: If operation fails after all retries
        """
        last_error = None

        for attempt in range(self.max_retries + 1):
            try:
                return operation()
            except (APIError, StorageError) as e:
                last_error = e

                if attempt < self.max_retries:
                    delay = self.base_delay * (2 ** attempt)
                    logger.debug("Retrying %s in %.1fs after: %s", description, delay, e)
                    time.sleep(delay)
                    continue
                else:
                    break

        raise StorageError(
            f"Failed to {description} after {self.max_retries + 1} attempts: {last_error}"
        ) from last_error


def _sheet_size(grid: CellGrid) -> Tuple[int, int]:
    area = grid.dimension()
    if area is None:
        return MIN_ROWS, MIN_COLS
    return max(area.end.row, MIN_ROWS), max(area.end.col, MIN_COLS)


def _collect_updates(grid: CellGrid) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """Build one value update per row span and one formula update per formula cell."""
    values: List[Dict[str, Any]] = []
    formulas: List[Dict[str, Any]] = []

    for row in grid.rows:
        if not row.cells:
            continue

        first, last = row.cells[0].col, row.cells[-1].col
        line: List[Any] = [None] * (last - first + 1)
        has_value = False

        for cell in row.cells:
            if cell.formula is not None:
                formulas.append({"range": cell.reference, "values": [[str(cell.formula)]]})
            elif cell.raw is not None:
                line[cell.col - first] = grid.get(cell.address)
                has_value = True

        if has_value:
            span = CellRange(first, row.index, last, row.index)
            values.append({"range": span.to_a1(), "values": [line]})

    return values, formulas


def _fill_grid(grid: CellGrid, values: List[List[Any]], formulas: List[List[Any]]) -> None:
    for r, line in enumerate(values, start=1):
        for c, value in enumerate(line, start=1):
            formula = formulas[r - 1][c - 1] if r <= len(formulas) and c <= len(formulas[r - 1]) else None
            if isinstance(formula, str) and formula.startswith("="):
                grid.set_formula((c, r), formula)
            elif value not in ("", None):
                grid.set_range((c, r), value)
