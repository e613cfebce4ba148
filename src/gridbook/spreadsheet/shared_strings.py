"""Shared string table: interned cell text referenced by index."""

from typing import Dict, Iterator, List


class SharedStringTable:
    """Append-only table of distinct strings.

    Identical text (exact equality, no normalisation) always maps to the same
    index, and indices never change once handed out.
    """

    def __init__(self) -> None:
        self._strings: List[str] = []
        self._index: Dict[str, int] = {}

    def intern(self, text: str) -> int:
        """Return the index of ``text``, appending it on first use."""
        index = self._index.get(text)
        if index is None:
            index = len(self._strings)
            self._strings.append(text)
            self._index[text] = index
        return index

    def get(self, index: int) -> str:
        """Return the string at ``index``, or "" when out of range."""
        if 0 <= index < len(self._strings):
            return self._strings[index]
        return ""

    def __len__(self) -> int:
        return len(self._strings)

    def __iter__(self) -> Iterator[str]:
        return iter(self._strings)

    def __contains__(self, text: object) -> bool:
        return text in self._index
