"""
Style records and the style cache.

A cell's appearance is described by a CellFormat, which points into three
shared tables (fonts, fills, borders) and carries its alignment and number
format inline. All tables are append-only: ids are list positions, they only
grow, and a record is never rewritten or removed once handed out.

StyleCache guarantees at most one CellFormat per distinct
``(base format id, StyleOverride)`` request, so repeatedly painting cells with
the same colour does not grow the workbook's style table.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence, Tuple, Union

from gridbook.exceptions import InvalidArgumentError

if TYPE_CHECKING:
    from gridbook.spreadsheet.address import Address
    from gridbook.spreadsheet.grid import CellGrid


ColorLike = Union[str, Tuple[int, int, int]]

_HEX_RE = re.compile(r"^[0-9A-Fa-f]+$")

HORIZONTAL_ALIGNMENTS = frozenset({
    "general", "left", "center", "right", "fill",
    "justify", "centerContinuous", "distributed",
})
VERTICAL_ALIGNMENTS = frozenset({"top", "center", "bottom", "justify", "distributed"})

DEFAULT_NUMBER_FORMAT = "General"


def normalize_color(value: ColorLike) -> str:
    """Normalise a colour to upper-case ARGB hex (``"FFRRGGBB"``).

    Accepts ``"#RGB"``, ``"RRGGBB"`` (with or without ``#``), ``"AARRGGBB"``
    and ``(r, g, b)`` tuples of 0-255 integers.

    Raises:
        InvalidArgumentError: If the value is not a recognisable colour
    """
    if isinstance(value, tuple):
        if len(value) != 3 or not all(
            isinstance(c, int) and not isinstance(c, bool) and 0 <= c <= 255 for c in value
        ):
            raise InvalidArgumentError(f"Invalid RGB colour tuple: {value!r}")
        r, g, b = value
        return f"FF{r:02X}{g:02X}{b:02X}"

    if not isinstance(value, str):
        raise InvalidArgumentError(f"Invalid colour: {value!r}")

    text = value.strip().lstrip("#")
    if not _HEX_RE.fullmatch(text):
        raise InvalidArgumentError(f"Invalid colour: {value!r}")

    if len(text) == 3:
        text = "".join(ch * 2 for ch in text)
    if len(text) == 6:
        text = "FF" + text
    if len(text) != 8:
        raise InvalidArgumentError(f"Invalid colour: {value!r}")

    return text.upper()


def _optional_color(value: Optional[ColorLike]) -> Optional[str]:
    return None if value is None else normalize_color(value)


@dataclass(frozen=True)
class Font:
    """Font record.

    Attributes:
        name: Font face name
        size: Point size
        bold: Bold flag
        italic: Italic flag
        underline: Single underline flag
        color: ARGB colour; takes priority over theme/indexed in readers
        theme: Theme colour index
        indexed: Legacy palette index
    """
    name: str = "Calibri"
    size: float = 11.0
    bold: bool = False
    italic: bool = False
    underline: bool = False
    color: Optional[str] = None
    theme: Optional[int] = None
    indexed: Optional[int] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "color", _optional_color(self.color))
        object.__setattr__(self, "size", float(self.size))


@dataclass(frozen=True)
class Fill:
    """Pattern fill record. ``Fill.solid("FFFF00")`` is a background colour.

    Attributes:
        pattern: Pattern type ("none", "solid", "gray125", ...)
        color: Foreground ARGB colour of the pattern
    """
    pattern: str = "none"
    color: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "color", _optional_color(self.color))

    @classmethod
    def solid(cls, color: ColorLike) -> "Fill":
        return cls(pattern="solid", color=color)


class BorderLine(Enum):
    """Line style of one border edge."""
    NONE = "none"
    THIN = "thin"
    MEDIUM = "medium"
    THICK = "thick"
    HAIR = "hair"
    DASHED = "dashed"
    DOTTED = "dotted"
    DOUBLE = "double"
    DASH_DOT = "dashDot"
    DASH_DOT_DOT = "dashDotDot"
    MEDIUM_DASHED = "mediumDashed"
    MEDIUM_DASH_DOT = "mediumDashDot"
    MEDIUM_DASH_DOT_DOT = "mediumDashDotDot"
    SLANT_DASH_DOT = "slantDashDot"


@dataclass(frozen=True)
class BorderEdge:
    line: BorderLine = BorderLine.NONE
    color: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "color", _optional_color(self.color))


@dataclass(frozen=True)
class Border:
    """Border record made of four edges."""
    left: BorderEdge = field(default_factory=BorderEdge)
    right: BorderEdge = field(default_factory=BorderEdge)
    top: BorderEdge = field(default_factory=BorderEdge)
    bottom: BorderEdge = field(default_factory=BorderEdge)

    @classmethod
    def outline(cls, line: BorderLine, color: Optional[ColorLike] = None) -> "Border":
        """Build a border with the same line on all four edges."""
        edge = BorderEdge(line, color)
        return cls(left=edge, right=edge, top=edge, bottom=edge)


@dataclass(frozen=True)
class Alignment:
    """Alignment settings. None leaves an axis at its current value."""
    horizontal: Optional[str] = None
    vertical: Optional[str] = None
    wrap_text: bool = False

    def __post_init__(self) -> None:
        if self.horizontal is not None and self.horizontal not in HORIZONTAL_ALIGNMENTS:
            raise InvalidArgumentError(f"Unknown horizontal alignment: {self.horizontal!r}")
        if self.vertical is not None and self.vertical not in VERTICAL_ALIGNMENTS:
            raise InvalidArgumentError(f"Unknown vertical alignment: {self.vertical!r}")

    def merged_onto(self, current: Optional["Alignment"]) -> "Alignment":
        """Overlay this alignment on ``current``; wrap_text always wins."""
        base = current or Alignment()
        return Alignment(
            horizontal=self.horizontal if self.horizontal is not None else base.horizontal,
            vertical=self.vertical if self.vertical is not None else base.vertical,
            wrap_text=self.wrap_text,
        )


@dataclass(frozen=True)
class CellFormat:
    """Composite cell format (an ``xf`` record).

    Attributes:
        font_id: Index into the font table
        fill_id: Index into the fill table
        border_id: Index into the border table
        alignment: Inline alignment, or None for the reader's default
        number_format: Number format code, passed through unchanged
    """
    font_id: int = 0
    fill_id: int = 0
    border_id: int = 0
    alignment: Optional[Alignment] = None
    number_format: str = DEFAULT_NUMBER_FORMAT


@dataclass(frozen=True)
class StyleOverride:
    """The fields a caller wants to change on top of a base format.

    Every field is independently optional; only the ones that are set are
    applied, so a background colour can be changed without touching the font.
    ``font_color`` recolours whichever font the result ends up with (the
    base format's font unless ``font`` is also set).
    """
    font: Optional[Font] = None
    font_color: Optional[str] = None
    fill: Optional[Fill] = None
    border: Optional[Border] = None
    alignment: Optional[Alignment] = None
    number_format: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "font_color", _optional_color(self.font_color))

    @classmethod
    def background(cls, color: ColorLike) -> "StyleOverride":
        return cls(fill=Fill.solid(color))


class StyleCache:
    """Append-only style tables with memoised format resolution.

    The tables start with the records every workbook needs: font 0 (Calibri
    11), fill 0 (none), fill 1 (gray125), border 0 (no edges) and format 0
    (all defaults, the document default).
    """

    def __init__(self) -> None:
        self._fonts: List[Font] = []
        self._fills: List[Fill] = []
        self._borders: List[Border] = []
        self._formats: List[CellFormat] = []

        self._font_ids: Dict[Font, int] = {}
        self._fill_ids: Dict[Fill, int] = {}
        self._border_ids: Dict[Border, int] = {}
        self._format_ids: Dict[CellFormat, int] = {}
        self._resolved: Dict[Tuple[int, StyleOverride], int] = {}

        self.font_id(Font())
        self.fill_id(Fill())
        self.fill_id(Fill(pattern="gray125"))
        self.border_id(Border())
        self.register_format(CellFormat())

    # ------------------------------------------------------------------ #
    # Tables
    # ------------------------------------------------------------------ #

    @property
    def fonts(self) -> Sequence[Font]:
        return tuple(self._fonts)

    @property
    def fills(self) -> Sequence[Fill]:
        return tuple(self._fills)

    @property
    def borders(self) -> Sequence[Border]:
        return tuple(self._borders)

    @property
    def formats(self) -> Sequence[CellFormat]:
        return tuple(self._formats)

    def get_format(self, format_id: int) -> CellFormat:
        """Return the CellFormat with id ``format_id``.

        Raises:
            InvalidArgumentError: If the id is not in the table
        """
        if isinstance(format_id, bool) or not isinstance(format_id, int) \
                or not 0 <= format_id < len(self._formats):
            raise InvalidArgumentError(f"Unknown cell format id: {format_id!r}")
        return self._formats[format_id]

    # ------------------------------------------------------------------ #
    # Component resolvers
    # ------------------------------------------------------------------ #

    def font_id(self, font: Font) -> int:
        """Return the id of ``font``, appending it on first use."""
        return self._intern(font, self._fonts, self._font_ids)

    def fill_id(self, fill: Fill) -> int:
        """Return the id of ``fill``, appending it on first use."""
        return self._intern(fill, self._fills, self._fill_ids)

    def border_id(self, border: Border) -> int:
        """Return the id of ``border``, appending it on first use."""
        return self._intern(border, self._borders, self._border_ids)

    def register_format(self, fmt: CellFormat) -> int:
        """Intern an existing format record (used when loading a package).

        Unlike ``resolve``, this deduplicates by value: a format equal to one
        already in the table gets that record's id.
        """
        self.get_font(fmt.font_id)
        self.get_fill(fmt.fill_id)
        self.get_border(fmt.border_id)
        return self._intern(fmt, self._formats, self._format_ids)

    def get_font(self, font_id: int) -> Font:
        return self._lookup(self._fonts, font_id, "font")

    def get_fill(self, fill_id: int) -> Fill:
        return self._lookup(self._fills, fill_id, "fill")

    def get_border(self, border_id: int) -> Border:
        return self._lookup(self._borders, border_id, "border")

    @staticmethod
    def _intern(record, table: list, ids: dict) -> int:
        record_id = ids.get(record)
        if record_id is None:
            record_id = len(table)
            table.append(record)
            ids[record] = record_id
        return record_id

    @staticmethod
    def _lookup(table: list, record_id: int, kind: str):
        if not 0 <= record_id < len(table):
            raise InvalidArgumentError(f"Unknown {kind} id: {record_id!r}")
        return table[record_id]

    # ------------------------------------------------------------------ #
    # Format resolution
    # ------------------------------------------------------------------ #

    def resolve(self, base_format_id: int, overrides: StyleOverride) -> int:
        """Return the format id for ``base_format_id`` with ``overrides`` applied.

        The same (base, overrides) request always returns the same id without
        appending anything. A new request clones the base format, applies only
        the override fields that are set, appends the clone and memoises it.
        New ids are never reused, even when the clone happens to equal a
        format created from a different base.

        Args:
            base_format_id: Format the override is applied on top of
            overrides: Fields to change

        Returns:
            The resulting cell format id

        Raises:
            InvalidArgumentError: If base_format_id is unknown
        """
        key = (base_format_id, overrides)
        cached = self._resolved.get(key)
        if cached is not None:
            return cached

        fmt = self.get_format(base_format_id)

        if overrides.font is not None:
            fmt = replace(fmt, font_id=self.font_id(overrides.font))
        if overrides.font_color is not None:
            font = replace(self.get_font(fmt.font_id), color=overrides.font_color)
            fmt = replace(fmt, font_id=self.font_id(font))
        if overrides.fill is not None:
            fmt = replace(fmt, fill_id=self.fill_id(overrides.fill))
        if overrides.border is not None:
            fmt = replace(fmt, border_id=self.border_id(overrides.border))
        if overrides.alignment is not None:
            fmt = replace(fmt, alignment=overrides.alignment.merged_onto(fmt.alignment))
        if overrides.number_format is not None:
            fmt = replace(fmt, number_format=overrides.number_format)

        new_id = len(self._formats)
        self._formats.append(fmt)
        self._format_ids.setdefault(fmt, new_id)
        self._resolved[key] = new_id
        return new_id

    @staticmethod
    def base_format(grid: "CellGrid", address: "Address") -> int:
        """Resolve the format a cell effectively has.

        Precedence: the cell's own format id, then the column format, then
        the row format, then the document default (0).
        """
        cell = grid.find_cell(address)
        if cell is not None and cell.format_id is not None:
            return cell.format_id

        column_format = grid.column_format(address.col)
        if column_format is not None:
            return column_format

        row_format = grid.row_format(address.row)
        if row_format is not None:
            return row_format

        return 0
