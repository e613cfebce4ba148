"""
Range handles.

``Pos`` is a lightweight view of a block of cells on the sheet that was
active when it was created: reading goes to the top-left cell, writing goes
to every cell. ``PosAttr`` exposes the appearance of the same block. Neither
object holds any cell state, and both fail with UseAfterDisposeError once the
document is released.
"""

from typing import TYPE_CHECKING, Any, Optional

from gridbook.spreadsheet.address import CellRange
from gridbook.spreadsheet.styles import Alignment, Border, ColorLike, StyleOverride

if TYPE_CHECKING:
    from gridbook.document import SpreadsheetDocument
    from gridbook.spreadsheet.grid import CellGrid
    from gridbook.spreadsheet.styles import CellFormat


class Pos:
    """A cell or block of cells.

    Usage:
        >>> pos = doc.pos(1, 1, 3, 2)
        >>> pos.value = 10
        >>> pos.str = "007"
        >>> pos.attr.back_color = "#FFFF00"
        >>> pos.merge()
    """

    def __init__(self, document: "SpreadsheetDocument", grid: "CellGrid", cell_range: CellRange) -> None:
        self._document = document
        self._sheet_grid = grid
        self.range = cell_range
        self._attr: Optional[PosAttr] = None

    def _grid(self) -> "CellGrid":
        self._document._require_open()
        return self._sheet_grid

    @property
    def value(self) -> Any:
        """Value of the top-left cell; assigning writes every cell."""
        return self._grid().get(self.range)

    @value.setter
    def value(self, value: Any) -> None:
        self._grid().set_range(self.range, value)

    @property
    def str(self) -> Any:
        """Like ``value``, but assignments are always stored as text."""
        return self._grid().get(self.range)

    @str.setter
    def str(self, value: Any) -> None:
        self._grid().set_range(self.range, value, as_text=True)

    @property
    def attr(self) -> "PosAttr":
        if self._attr is None:
            self._attr = PosAttr(self)
        return self._attr

    def copy(self) -> None:
        """Capture the top-left cell into the document clipboard."""
        self._document.clipboard = self._grid().capture(self.range)

    def paste(self) -> None:
        """Write the clipboard snapshot over the whole block.

        Does nothing when nothing has been copied yet.
        """
        snapshot = self._document.clipboard
        if snapshot is None:
            return
        self._grid().apply(self.range, snapshot)

    def merge(self) -> bool:
        return self._grid().merge(self.range)

    def __repr__(self) -> str:
        return f"Pos({self.range.to_a1()!r})"


class PosAttr:
    """Appearance of a Pos block.

    Assigning a property restyles every cell of the block on top of its
    current format; reading returns the top-left cell's effective value.
    """

    def __init__(self, pos: Pos) -> None:
        self._pos = pos

    def _restyle(self, overrides: StyleOverride) -> None:
        self._pos._grid().restyle(self._pos.range, overrides)

    def _format(self) -> "CellFormat":
        grid = self._pos._grid()
        format_id = grid.styles.base_format(grid, self._pos.range.start)
        return grid.styles.get_format(format_id)

    @property
    def back_color(self) -> Optional[str]:
        grid = self._pos._grid()
        fill = grid.styles.get_fill(self._format().fill_id)
        return fill.color if fill.pattern == "solid" else None

    @back_color.setter
    def back_color(self, color: ColorLike) -> None:
        self._restyle(StyleOverride.background(color))

    @property
    def font_color(self) -> Optional[str]:
        grid = self._pos._grid()
        return grid.styles.get_font(self._format().font_id).color

    @font_color.setter
    def font_color(self, color: ColorLike) -> None:
        self._restyle(StyleOverride(font_color=color))

    @property
    def number_format(self) -> str:
        return self._format().number_format

    @number_format.setter
    def number_format(self, code: str) -> None:
        if not code:
            return
        self._restyle(StyleOverride(number_format=code))

    @property
    def alignment(self) -> Optional[Alignment]:
        return self._format().alignment

    @alignment.setter
    def alignment(self, alignment: Alignment) -> None:
        self._restyle(StyleOverride(alignment=alignment))

    @property
    def border(self) -> Border:
        grid = self._pos._grid()
        return grid.styles.get_border(self._format().border_id)

    @border.setter
    def border(self, border: Border) -> None:
        self._restyle(StyleOverride(border=border))
