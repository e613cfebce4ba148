"""
Shared-formula export.

Shared formulas are defined once on an anchor cell and reused by the rest of
their block. This module lists every cell whose formula is still flagged
shared, in sheet order then grid order, and can write that listing as CSV
with the columns ``SheetName,Cell,Row,Col,SharedIndex,Formula,Reference``.
"""

import logging
import os
from dataclasses import dataclass
from typing import TYPE_CHECKING, Iterator, List, Optional, Union

import pandas as pd

from gridbook.exceptions import InvalidArgumentError

if TYPE_CHECKING:
    from gridbook.spreadsheet.workbook import Workbook

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["SheetName", "Cell", "Row", "Col", "SharedIndex", "Formula", "Reference"]


@dataclass(frozen=True)
class SharedFormulaRecord:
    """One cell carrying a shared formula.

    Attributes:
        sheet: Sheet name
        cell: A1 address of the cell
        row: 1-based row
        col: 1-based column
        share_id: Shared-formula group index
        formula: Formula text without the leading '='
        reference: Block covered by the formula (anchor cells only)
    """
    sheet: str
    cell: str
    row: int
    col: int
    share_id: Optional[int]
    formula: str
    reference: Optional[str]

    def to_row(self) -> List[Union[str, int]]:
        return [
            self.sheet,
            self.cell,
            self.row,
            self.col,
            "" if self.share_id is None else str(self.share_id),
            self.formula,
            self.reference or "",
        ]


class SharedFormulaExport:
    """Lazy, restartable listing of the shared-formula cells of a workbook.

    Every iteration walks the workbook again, so iterating twice over an
    unchanged workbook yields the same records.
    """

    def __init__(self, workbook: "Workbook") -> None:
        self._workbook = workbook

    def __iter__(self) -> Iterator[SharedFormulaRecord]:
        for sheet in self._workbook.sheets:
            for cell in sheet.grid.shared_formula_cells():
                yield SharedFormulaRecord(
                    sheet=sheet.name,
                    cell=cell.reference,
                    row=cell.row,
                    col=cell.col,
                    share_id=cell.formula.share_id,
                    formula=cell.formula.text,
                    reference=cell.formula.reference,
                )

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame([record.to_row() for record in self], columns=CSV_COLUMNS)


def export_shared_formulas(workbook: "Workbook") -> SharedFormulaExport:
    return SharedFormulaExport(workbook)


def write_shared_formulas_csv(workbook: "Workbook", path: Union[str, os.PathLike]) -> int:
    """Write the shared-formula listing of ``workbook`` to ``path``.

    The file is UTF-8 without a byte-order mark, starts with a header row and
    quotes only fields that contain a comma, a quote or a line break (quotes
    are doubled). Missing parent directories are created.

    Returns:
        Number of records written

    Raises:
        InvalidArgumentError: If path is blank
    """
    if path is None or not str(path).strip():
        raise InvalidArgumentError("An output path is required")

    directory = os.path.dirname(os.fspath(path))
    if directory:
        os.makedirs(directory, exist_ok=True)

    frame = export_shared_formulas(workbook).to_dataframe()
    frame.to_csv(path, index=False, encoding="utf-8", lineterminator="\r\n")

    logger.debug("Wrote %d shared formula records to %s", len(frame), path)
    return len(frame)
