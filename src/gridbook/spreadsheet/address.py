"""
A1 address codec.

This module converts between 1-based ``(column, row)`` pairs and spreadsheet
A1 text:

- Column letters use bijective base-26 (A = 1 ... Z = 26, AA = 27); there is
  no "zero" digit, so the conversion is not plain base-26.
- Absolute references (``$A$1``) are accepted on input and can be produced
  with ``to_absolute``.
- Ranges are written ``A1:D20`` and are always normalised so that the start
  is the top-left corner.
"""

import re
from collections import namedtuple
from typing import Iterator, Optional, Tuple, Union

from gridbook.exceptions import InvalidAddressError, InvalidRangeError


_A1_RE = re.compile(r"^([A-Za-z]+)([0-9]+)$")
_LETTERS_RE = re.compile(r"^[A-Za-z]+$")


def column_letters(col: int) -> str:
    """Convert a 1-based column number to its letters (1 -> A, 27 -> AA).

    Raises:
        InvalidAddressError: If col is not a positive integer
    """
    if isinstance(col, bool) or not isinstance(col, int) or col <= 0:
        raise InvalidAddressError(f"Column must be a positive integer, got {col!r}")

    result = ""
    n = col
    while n > 0:
        n -= 1
        result = chr(65 + (n % 26)) + result
        n //= 26
    return result


def column_index(letters: str) -> int:
    """Convert column letters to a 1-based column number (A -> 1, AA -> 27).

    Letters are matched case-insensitively.

    Raises:
        InvalidAddressError: If letters is empty or contains non A-Z characters
    """
    if not isinstance(letters, str) or not _LETTERS_RE.fullmatch(letters):
        raise InvalidAddressError(f"Invalid column letters: {letters!r}")

    n = 0
    for char in letters.upper():
        n = n * 26 + (ord(char) - 64)
    return n


def _check_row(row: int) -> None:
    if isinstance(row, bool) or not isinstance(row, int) or row <= 0:
        raise InvalidAddressError(f"Row must be a positive integer, got {row!r}")


class Address(namedtuple("Address", ["col", "row"])):
    """A 1-based cell coordinate.

    Behaves like the tuple ``(col, row)`` so it can be unpacked and compared
    with plain tuples.

    Attributes:
        col: Column number (1 = A)
        row: Row number (1 = first row)
    """

    __slots__ = ()

    def __new__(cls, col: int, row: int) -> "Address":
        column_letters(col)
        _check_row(row)
        return super().__new__(cls, col, row)

    @classmethod
    def from_a1(cls, text: str) -> "Address":
        """Parse a single A1 address (see ``decode``)."""
        return decode(text)

    def to_a1(self) -> str:
        return encode(self.col, self.row)

    def to_absolute(self) -> str:
        return to_absolute(self.col, self.row)

    def offset(self, col_offset: int = 0, row_offset: int = 0) -> "Address":
        """Return a new Address moved by the given amounts.

        Raises:
            InvalidAddressError: If the result falls before A1
        """
        return Address(self.col + col_offset, self.row + row_offset)

    def __repr__(self) -> str:
        return f"Address({self.to_a1()!r})"


class CellRange:
    """A rectangular block of cells with 1-based, inclusive bounds.

    The constructor normalises its corners, so ``CellRange(4, 20, 1, 1)``
    and ``CellRange(1, 1, 4, 20)`` describe the same block ``A1:D20``.

    Attributes:
        start: Top-left Address
        end: Bottom-right Address
    """

    def __init__(
        self,
        sx: int,
        sy: int,
        ex: Optional[int] = None,
        ey: Optional[int] = None
    ) -> None:
        """Initialize a CellRange.

        Args:
            sx: Start column (1-based)
            sy: Start row (1-based)
            ex: End column (defaults to sx for a single cell)
            ey: End row (defaults to sy for a single cell)

        Raises:
            InvalidAddressError: If any coordinate is not positive
        """
        ex = sx if ex is None else ex
        ey = sy if ey is None else ey

        first = Address(sx, sy)
        second = Address(ex, ey)

        self.start = Address(min(first.col, second.col), min(first.row, second.row))
        self.end = Address(max(first.col, second.col), max(first.row, second.row))

    @classmethod
    def from_addresses(cls, start: Address, end: Address) -> "CellRange":
        return cls(start.col, start.row, end.col, end.row)

    @classmethod
    def from_a1(cls, text: str) -> "CellRange":
        """Parse range text (see ``decode_range``)."""
        return decode_range(text)

    @property
    def is_single_cell(self) -> bool:
        return self.start == self.end

    @property
    def width(self) -> int:
        return self.end.col - self.start.col + 1

    @property
    def height(self) -> int:
        return self.end.row - self.start.row + 1

    def to_a1(self) -> str:
        """Convert to A1 text: ``"B2"`` for a single cell, else ``"A1:D20"``."""
        if self.is_single_cell:
            return self.start.to_a1()
        return f"{self.start.to_a1()}:{self.end.to_a1()}"

    def to_absolute(self) -> str:
        """Convert to absolute A1 text, always in ``$A$1:$D$20`` form."""
        return f"{self.start.to_absolute()}:{self.end.to_absolute()}"

    def rows(self) -> range:
        return range(self.start.row, self.end.row + 1)

    def columns(self) -> range:
        return range(self.start.col, self.end.col + 1)

    def __iter__(self) -> Iterator[Address]:
        """Yield every address in the range, row by row, left to right."""
        for row in self.rows():
            for col in self.columns():
                yield Address(col, row)

    def __len__(self) -> int:
        return self.width * self.height

    def __contains__(self, item: object) -> bool:
        if not isinstance(item, tuple) or len(item) != 2:
            return False
        col, row = item
        return (
            self.start.col <= col <= self.end.col
            and self.start.row <= row <= self.end.row
        )

    def intersect(self, other: "CellRange") -> Optional["CellRange"]:
        """Compute the overlap of two ranges, or None if they are disjoint."""
        sx = max(self.start.col, other.start.col)
        sy = max(self.start.row, other.start.row)
        ex = min(self.end.col, other.end.col)
        ey = min(self.end.row, other.end.row)

        if sx > ex or sy > ey:
            return None

        return CellRange(sx, sy, ex, ey)

    def __repr__(self) -> str:
        return f"CellRange({self.to_a1()!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CellRange):
            return NotImplemented
        return self.start == other.start and self.end == other.end

    def __hash__(self) -> int:
        return hash((self.start, self.end))


RangeLike = Union[str, CellRange, Address, Tuple[int, int]]


def encode(col: int, row: int) -> str:
    """Convert a 1-based (column, row) pair to A1 text.

    Args:
        col: Column number (1 = A)
        row: Row number

    Returns:
        A1 text such as ``"A1"``, ``"Z1"`` or ``"AA1"``

    Raises:
        InvalidAddressError: If col or row is not positive
    """
    letters = column_letters(col)
    _check_row(row)
    return f"{letters}{row}"


def decode(text: str) -> Address:
    """Parse A1 text to an Address.

    Args:
        text: Address text matching ``^[A-Za-z]+[0-9]+$`` (case-insensitive)

    Returns:
        The decoded Address

    Raises:
        InvalidAddressError: If text is empty, malformed or has row 0
    """
    if not isinstance(text, str) or not text:
        raise InvalidAddressError("Empty cell address")

    match = _A1_RE.fullmatch(text)
    if not match:
        raise InvalidAddressError(f"Invalid cell address: {text!r}")

    letters, digits = match.groups()
    row = int(digits)
    if row <= 0:
        raise InvalidAddressError(f"Row must be positive in address: {text!r}")

    return Address(column_index(letters), row)


def decode_range(text: str) -> CellRange:
    """Parse a single address or ``addr1:addr2`` range text.

    Surrounding whitespace and absolute markers (``$``) are ignored, and the
    result is normalised so that start <= end on both axes.

    Args:
        text: Range text, e.g. ``"A1:D20"``, ``"$A$1:$D$20"`` or ``"B2"``

    Returns:
        The decoded CellRange

    Raises:
        InvalidRangeError: If text is blank, has more than one ``:`` or
            either side is not a valid address
    """
    if not isinstance(text, str) or not text.strip():
        raise InvalidRangeError("Empty range notation")

    cleaned = text.strip().replace("$", "")
    parts = cleaned.split(":")
    if len(parts) > 2:
        raise InvalidRangeError(f"Invalid range notation: {text!r}")

    try:
        corners = [decode(part.strip()) for part in parts]
    except InvalidAddressError as e:
        raise InvalidRangeError(f"Invalid range notation: {text!r} ({e})") from e

    start = corners[0]
    end = corners[-1]
    return CellRange(start.col, start.row, end.col, end.row)


def to_absolute(col: int, row: int) -> str:
    """Convert a (column, row) pair to absolute A1 text (``$A$1``).

    Raises:
        InvalidAddressError: If col or row is not positive
    """
    letters = column_letters(col)
    _check_row(row)
    return f"${letters}${row}"


def as_range(target: RangeLike) -> CellRange:
    """Coerce range text, an Address, a (col, row) tuple or a CellRange."""
    if isinstance(target, CellRange):
        return target
    if isinstance(target, str):
        return decode_range(target)
    if isinstance(target, tuple) and len(target) == 2:
        col, row = target
        return CellRange(col, row)
    raise InvalidRangeError(f"Cannot interpret {target!r} as a cell range")


def quote_sheet_name(name: str) -> str:
    """Quote a sheet name for a reference, doubling embedded quotes."""
    escaped = name.replace("'", "''")
    return f"'{escaped}'"


def split_sheet_reference(text: str) -> Tuple[Optional[str], str]:
    """Split ``'Sheet'!$A$1:$B$2`` into the sheet name and the range part.

    Quoted names are unescaped (``''`` -> ``'``). Text without ``!`` is
    returned with a sheet of None.
    """
    sheet, sep, area = text.rpartition("!")
    if not sep:
        return None, text
    if len(sheet) >= 2 and sheet.startswith("'") and sheet.endswith("'"):
        sheet = sheet[1:-1].replace("''", "'")
    return sheet, area
