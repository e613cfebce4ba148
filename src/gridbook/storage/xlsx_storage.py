"""
xlsx package storage via openpyxl.

Loading reads values, formulas, cell/row/column styles, merges, print areas,
the date system and calculation properties into a Workbook. openpyxl expands
shared formulas into ordinary ones while reading, so the shared-formula
metadata (``t="shared"``, ``si``, ``ref``) is recovered from the worksheet XML
in a second pass.

Saving syncs the Workbook back into the openpyxl workbook it was loaded from
(or a fresh one), so package parts gridbook does not model survive a round
trip.
"""

import dataclasses
import logging
import zipfile
from typing import Any, Dict, Iterator, List, Optional, Tuple

import openpyxl
from openpyxl.cell.cell import MergedCell
from openpyxl.styles import Alignment as XlAlignment
from openpyxl.styles import Border as XlBorder
from openpyxl.styles import Color as XlColor
from openpyxl.styles import Font as XlFont
from openpyxl.styles import PatternFill as XlPatternFill
from openpyxl.styles import Side as XlSide
from openpyxl.utils.datetime import MAC_EPOCH
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.worksheet.formula import ArrayFormula
from openpyxl.xml.constants import PKG_REL_NS, REL_NS, SHEET_MAIN_NS
from openpyxl.xml.functions import fromstring

from gridbook.config import DateEpoch, DocumentOptions
from gridbook.exceptions import StorageError
from gridbook.spreadsheet.address import (
    Address,
    column_index,
    column_letters,
    quote_sheet_name,
    split_sheet_reference,
)
from gridbook.spreadsheet.model import FormulaKind
from gridbook.spreadsheet.styles import (
    Alignment,
    Border,
    BorderEdge,
    BorderLine,
    CellFormat,
    Fill,
    Font,
)
from gridbook.spreadsheet.workbook import (
    PRINT_AREA,
    CalculationMode,
    DefinedName,
    Workbook,
)

logger = logging.getLogger(__name__)

_LOAD_ERRORS = (OSError, zipfile.BadZipFile, InvalidFileException, KeyError, ValueError, TypeError)
_SAVE_ERRORS = (OSError, ValueError, TypeError)

CALC_CHAIN_PART = "xl/calcChain.xml"


class XlsxStorage:
    """Reads and writes xlsx packages with openpyxl.

    Attributes:
        options: DocumentOptions used for workbooks this storage creates
    """

    def __init__(self, options: Optional[DocumentOptions] = None) -> None:
        self.options = options

    # ------------------------------------------------------------------ #
    # Load
    # ------------------------------------------------------------------ #

    def load(self, source: Any) -> Workbook:
        """Load an xlsx package from a path or binary file object.

        Raises:
            StorageError: If the package cannot be read or parsed
        """
        try:
            book = openpyxl.load_workbook(source)
            shared, has_calc_chain = _scan_package(source)
        except _LOAD_ERRORS as e:
            raise StorageError(f"Failed to load workbook '{source}': {e}") from e

        workbook = Workbook(self.options)
        workbook.date_epoch = DateEpoch.MAC_1904 if book.epoch == MAC_EPOCH else DateEpoch.WINDOWS_1900
        workbook.options = dataclasses.replace(workbook.options, date_epoch=workbook.date_epoch)
        reader = _StyleReader(workbook)

        for local_id, ws in enumerate(book.worksheets):
            grid = workbook.add_sheet(ws.title)
            _load_cells(grid, ws, reader, shared.get(ws.title, {}))
            _load_dimensions(grid, ws, reader)

            for merged in ws.merged_cells.ranges:
                grid.merge(merged.coord)

            if ws.print_area:
                text = ",".join(
                    f"{quote_sheet_name(ws.title)}!{area}" for area in _print_area_ranges(ws.print_area)
                )
                workbook.defined_names.add(DefinedName(PRINT_AREA, text, local_id))

        calc = book.calculation
        if calc is not None:
            workbook.calculation.mode = (
                CalculationMode.MANUAL if calc.calcMode == "manual" else CalculationMode.AUTOMATIC
            )
            workbook.calculation.full_calc_on_load = bool(calc.fullCalcOnLoad)
        workbook.calculation.has_calc_chain = has_calc_chain

        if len(workbook.sheets):
            workbook.sheets.select(book.worksheets.index(book.active) if book.active in book.worksheets else 0)

        workbook.source = book
        logger.debug("Loaded %d sheet(s) from %s", len(workbook.sheets), source)
        return workbook

    # ------------------------------------------------------------------ #
    # Save
    # ------------------------------------------------------------------ #

    def save(self, workbook: Workbook, target: Any) -> None:
        """Write ``workbook`` as an xlsx package to a path or binary file object.

        Raises:
            StorageError: If the package cannot be written
        """
        book = workbook.source if isinstance(workbook.source, openpyxl.Workbook) else None
        if book is None:
            book = openpyxl.Workbook()
            book.remove(book.active)

        names = workbook.sheets.names()
        for ws in list(book.worksheets):
            if ws.title not in names:
                book.remove(ws)

        writer = _StyleWriter(workbook)
        for local_id, sheet in enumerate(workbook.sheets):
            ws = book[sheet.name] if sheet.name in book.sheetnames else book.create_sheet(sheet.name)
            book.move_sheet(ws, local_id - book.index(ws))
            _clear_worksheet(ws)
            _save_cells(sheet.grid, ws, writer)
            _save_dimensions(sheet.grid, ws, writer)

            for merged in sheet.grid.merged_ranges:
                ws.merge_cells(merged.to_a1())

            print_area = workbook.defined_names.find(PRINT_AREA, local_id)
            ws.print_area = _print_area_ranges(print_area.text) if print_area else None

        book.epoch = workbook.date_epoch.origin
        book.calculation.calcMode = workbook.calculation.mode.value
        book.calculation.fullCalcOnLoad = workbook.calculation.full_calc_on_load
        if len(workbook.sheets):
            book.active = workbook.sheets.current_local_id()

        try:
            book.save(target)
        except _SAVE_ERRORS as e:
            raise StorageError(f"Failed to save workbook to '{target}': {e}") from e

        workbook.source = book
        logger.debug("Saved %d sheet(s) to %s", len(workbook.sheets), target)


# ---------------------------------------------------------------------- #
# Package scan
# ---------------------------------------------------------------------- #

def _scan_package(source: Any) -> Tuple[Dict[str, Dict[str, Tuple[int, Optional[str]]]], bool]:
    """Read shared-formula metadata straight from the worksheet XML.

    Returns:
        ({sheet name: {cell ref: (share id, block ref)}}, calc chain present)
    """
    if hasattr(source, "seek"):
        source.seek(0)

    shared: Dict[str, Dict[str, Tuple[int, Optional[str]]]] = {}
    with zipfile.ZipFile(source) as archive:
        members = set(archive.namelist())
        for name, part in _worksheet_parts(archive):
            if part not in members:
                continue
            shared[name] = dict(_shared_formulas(fromstring(archive.read(part))))
        has_calc_chain = CALC_CHAIN_PART in members

    if hasattr(source, "seek"):
        source.seek(0)
    return shared, has_calc_chain


def _worksheet_parts(archive: zipfile.ZipFile) -> Iterator[Tuple[str, str]]:
    workbook_xml = fromstring(archive.read("xl/workbook.xml"))
    rels_xml = fromstring(archive.read("xl/_rels/workbook.xml.rels"))

    targets = {
        rel.get("Id"): rel.get("Target")
        for rel in rels_xml.iter(f"{{{PKG_REL_NS}}}Relationship")
    }

    for sheet in workbook_xml.iter(f"{{{SHEET_MAIN_NS}}}sheet"):
        target = targets.get(sheet.get(f"{{{REL_NS}}}id"))
        if not target:
            continue
        part = target.lstrip("/") if target.startswith("/") else f"xl/{target}"
        yield sheet.get("name"), part


def _shared_formulas(sheet_xml) -> Iterator[Tuple[str, Tuple[int, Optional[str]]]]:
    for cell in sheet_xml.iter(f"{{{SHEET_MAIN_NS}}}c"):
        formula = cell.find(f"{{{SHEET_MAIN_NS}}}f")
        if formula is None or formula.get("t") != "shared" or formula.get("si") is None:
            continue
        yield cell.get("r"), (int(formula.get("si")), formula.get("ref"))


# ---------------------------------------------------------------------- #
# Cells and dimensions
# ---------------------------------------------------------------------- #

def _load_cells(grid, ws, reader: "_StyleReader", shared: Dict[str, Tuple[int, Optional[str]]]) -> None:
    for row in ws.iter_rows():
        for xl_cell in row:
            if isinstance(xl_cell, MergedCell):
                continue

            value = xl_cell.value
            format_id = reader.format_id(xl_cell) if xl_cell.has_style else None
            if value is None and format_id is None:
                continue

            address = Address(xl_cell.column, xl_cell.row)
            if isinstance(value, ArrayFormula):
                grid.set_formula(address, value.text or "", reference=value.ref, kind=FormulaKind.ARRAY)
            elif xl_cell.data_type == "f" and isinstance(value, str):
                share_id, reference = shared.get(address.to_a1(), (None, None))
                grid.set_formula(address, value, share_id=share_id, reference=reference)
            elif value is not None:
                grid.set_range(address, value, as_text=xl_cell.data_type in ("s", "inlineStr", "str", "e"))
            else:
                grid.touch(address)

            if format_id is not None:
                grid.apply_style(address, format_id)


def _load_dimensions(grid, ws, reader: "_StyleReader") -> None:
    for key, dim in ws.column_dimensions.items():
        if not dim.has_style:
            continue
        first = dim.min or column_index(key)
        last = dim.max or first
        grid.set_column_format(first, last, reader.format_id(dim))

    for index, dim in ws.row_dimensions.items():
        if dim.has_style:
            grid.set_row_format(index, reader.format_id(dim))


def _clear_worksheet(ws) -> None:
    for merged in list(ws.merged_cells.ranges):
        ws.unmerge_cells(merged.coord)
    if ws.max_row:
        ws.delete_rows(1, ws.max_row)
    ws.row_dimensions.clear()


def _save_cells(grid, ws, writer: "_StyleWriter") -> None:
    for cell in grid.iter_cells():
        xl_cell = ws.cell(row=cell.row, column=cell.col)

        if cell.formula is not None:
            if cell.formula.kind is FormulaKind.ARRAY:
                xl_cell.value = ArrayFormula(cell.formula.reference or cell.reference, str(cell.formula))
            else:
                xl_cell.value = str(cell.formula)
        else:
            value = grid.get(cell.address)
            xl_cell.value = value
            if isinstance(value, str) and value.startswith("="):
                xl_cell.data_type = "s"

        if cell.format_id is not None:
            writer.apply(xl_cell, cell.format_id)


def _save_dimensions(grid, ws, writer: "_StyleWriter") -> None:
    for first, last, format_id in grid.column_spans:
        dim = ws.column_dimensions[column_letters(first)]
        dim.min = first
        dim.max = last
        writer.apply(dim, format_id)

    for row in grid.rows:
        if row.format_id is not None:
            writer.apply(ws.row_dimensions[row.index], row.format_id)


def _print_area_ranges(text: str) -> List[str]:
    return [split_sheet_reference(part)[1] for part in text.split(",")]


# ---------------------------------------------------------------------- #
# Style conversion
# ---------------------------------------------------------------------- #

def _rgb(color) -> Optional[str]:
    if color is None or color.type != "rgb" or not isinstance(color.rgb, str):
        return None
    return color.rgb


class _StyleReader:
    """Converts openpyxl styles to format ids, once per distinct style."""

    def __init__(self, workbook: Workbook) -> None:
        self.styles = workbook.styles
        self._cache: Dict[Any, int] = {}

    def format_id(self, obj) -> int:
        # style proxies are unhashable; the style array indexes the same tables
        key = tuple(obj._style)
        format_id = self._cache.get(key)
        if format_id is None:
            fmt = CellFormat(
                font_id=self.styles.font_id(self._font(obj.font)),
                fill_id=self.styles.fill_id(self._fill(obj.fill)),
                border_id=self.styles.border_id(self._border(obj.border)),
                alignment=self._alignment(obj.alignment),
                number_format=obj.number_format or "General",
            )
            format_id = self.styles.register_format(fmt)
            self._cache[key] = format_id
        return format_id

    @staticmethod
    def _font(font) -> Font:
        color = font.color
        return Font(
            name=font.name or "Calibri",
            size=font.sz or 11.0,
            bold=bool(font.b),
            italic=bool(font.i),
            underline=font.u not in (None, "none"),
            color=_rgb(color),
            theme=color.theme if color is not None and color.type == "theme" else None,
            indexed=color.indexed if color is not None and color.type == "indexed" else None,
        )

    @staticmethod
    def _fill(fill) -> Fill:
        pattern = getattr(fill, "patternType", None)
        if not pattern:
            return Fill()
        return Fill(pattern=pattern, color=_rgb(fill.fgColor))

    @staticmethod
    def _border(border) -> Border:
        def edge(side) -> BorderEdge:
            if side is None or side.style is None:
                return BorderEdge()
            return BorderEdge(BorderLine(side.style), _rgb(side.color))

        return Border(
            left=edge(border.left),
            right=edge(border.right),
            top=edge(border.top),
            bottom=edge(border.bottom),
        )

    @staticmethod
    def _alignment(alignment) -> Optional[Alignment]:
        if alignment is None:
            return None
        if alignment.horizontal is None and alignment.vertical is None and not alignment.wrap_text:
            return None
        return Alignment(alignment.horizontal, alignment.vertical, bool(alignment.wrap_text))


class _StyleWriter:
    """Converts format ids to openpyxl style objects, once per id."""

    def __init__(self, workbook: Workbook) -> None:
        self.styles = workbook.styles
        self._cache: Dict[int, Tuple[XlFont, XlPatternFill, XlBorder, XlAlignment, str]] = {}

    def apply(self, target, format_id: int) -> None:
        font, fill, border, alignment, number_format = self._convert(format_id)
        target.font = font
        target.fill = fill
        target.border = border
        target.alignment = alignment
        target.number_format = number_format

    def _convert(self, format_id: int):
        converted = self._cache.get(format_id)
        if converted is None:
            fmt = self.styles.get_format(format_id)
            converted = (
                self._font(self.styles.get_font(fmt.font_id)),
                self._fill(self.styles.get_fill(fmt.fill_id)),
                self._border(self.styles.get_border(fmt.border_id)),
                self._alignment(fmt.alignment),
                fmt.number_format,
            )
            self._cache[format_id] = converted
        return converted

    @staticmethod
    def _font(font: Font) -> XlFont:
        if font.color is not None:
            color = XlColor(rgb=font.color)
        elif font.theme is not None:
            color = XlColor(theme=font.theme)
        elif font.indexed is not None:
            color = XlColor(indexed=font.indexed)
        else:
            color = None
        return XlFont(
            name=font.name,
            sz=font.size,
            b=font.bold,
            i=font.italic,
            u="single" if font.underline else None,
            color=color,
        )

    @staticmethod
    def _fill(fill: Fill) -> XlPatternFill:
        if fill.pattern == "none":
            return XlPatternFill(fill_type=None)
        if fill.color is None:
            return XlPatternFill(fill_type=fill.pattern)
        return XlPatternFill(fill_type=fill.pattern, fgColor=fill.color)

    @staticmethod
    def _border(border: Border) -> XlBorder:
        def side(edge: BorderEdge) -> XlSide:
            if edge.line is BorderLine.NONE:
                return XlSide()
            return XlSide(style=edge.line.value, color=edge.color)

        return XlBorder(
            left=side(border.left),
            right=side(border.right),
            top=side(border.top),
            bottom=side(border.bottom),
        )

    @staticmethod
    def _alignment(alignment: Optional[Alignment]) -> XlAlignment:
        if alignment is None:
            return XlAlignment()
        return XlAlignment(
            horizontal=alignment.horizontal,
            vertical=alignment.vertical,
            wrap_text=alignment.wrap_text or None,
        )
