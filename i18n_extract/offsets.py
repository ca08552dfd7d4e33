"""Conversions between (line, column) positions and absolute offsets.

Lines are 1-based, columns are 0-based character columns. Only ``\\n``
terminates a line, so a ``\\r\\n`` file keeps the ``\\r`` as the last column
of each line and offsets still round-trip exactly.
"""

from __future__ import annotations

from bisect import bisect_right


def line_offsets(text: str) -> list[int]:
    offsets = [0]
    for idx, ch in enumerate(text):
        if ch == "\n":
            offsets.append(idx + 1)
    return offsets


def abs_pos(offsets: list[int], line: int, col: int) -> int:
    if line < 1 or col < 0 or line > len(offsets):
        return -1
    return offsets[line - 1] + col


def locate_with_offsets(offsets: list[int], index: int) -> tuple[int, int]:
    line = bisect_right(offsets, index)
    return line, index - offsets[line - 1]


def adjust_location(line: int, col: int, base_line: int, base_col: int) -> tuple[int, int]:
    """Map a position inside a nested buffer onto its host file.

    The nested buffer starts at ``(base_line, base_col)`` of the host. Its
    first line shares the host line, so columns shift; later lines keep
    their own columns.
    """
    if line == 1:
        return base_line, base_col + col
    return base_line + line - 1, col


class ByteToChar:
    """Translate UTF-8 byte offsets (as reported by the parser) to str offsets."""

    def __init__(self, text: str) -> None:
        self.text = text
        self._ascii = text.isascii()
        self._table: list[int] | None = None

    def _build(self) -> list[int]:
        table: list[int] = []
        for idx, ch in enumerate(self.text):
            table.extend([idx] * len(ch.encode("utf-8")))
        table.append(len(self.text))
        return table

    def __call__(self, byte_offset: int) -> int:
        if self._ascii:
            return byte_offset
        if self._table is None:
            self._table = self._build()
        if byte_offset >= len(self._table):
            return len(self.text)
        return self._table[byte_offset]
