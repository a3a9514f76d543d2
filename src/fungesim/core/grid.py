"""
Grid: the 2D program space that instruction pointers walk over.

The grid stores ONLY cell values:
- Sparse mapping (x, y) -> integer code, absent cells read as space
- An original extent frozen at load time

The original extent decides two things and nothing else:
- Where pointers wrap (torus topology)
- Whether a `p` write is in bounds

Storage itself is unbounded: with extend_bounds a write may land anywhere,
and the bounding box used for snapshots grows to include it.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator

import numpy as np

from fungesim.core.vector import Position


SPACE = ord(" ")

_INT64 = np.iinfo(np.int64)


@dataclass(frozen=True)
class Extent:
    """Axis-aligned rectangle [x0, x0 + width) x [y0, y0 + height)."""

    width: int
    height: int
    x0: int = 0
    y0: int = 0

    def contains(self, pos: Position) -> bool:
        x, y = pos
        return (
            self.x0 <= x < self.x0 + self.width
            and self.y0 <= y < self.y0 + self.height
        )


class Grid:
    """
    Sparse program grid with a frozen original extent.

    IMPORTANT: in_bounds() and wrap() look at the original extent only.
    Cells written outside it (extend_bounds) are readable with get() but
    pointers never travel there.
    """

    def __init__(self, width: int, height: int, cells: dict[Position, int] | None = None):
        if width < 1 or height < 1:
            raise ValueError(f"Grid extent must be at least 1x1, got {width}x{height}")

        self.extent = Extent(width=width, height=height)
        self._cells: dict[Position, int] = {}
        for pos, value in (cells or {}).items():
            self.set(pos, value)

        # Snapshot of the loaded program, restored by reset()
        self._original: dict[Position, int] = dict(self._cells)

    @classmethod
    def load(cls, text: str) -> Grid:
        """
        Build a grid from program text.

        Rows come from splitlines(); the extent is the longest row by the
        number of rows. An empty program still gets a 1x1 extent.
        """
        rows = text.splitlines()
        width = max((len(row) for row in rows), default=0)
        height = len(rows)

        cells = {
            (x, y): ord(ch)
            for y, row in enumerate(rows)
            for x, ch in enumerate(row)
            if ch != " "
        }
        return cls(max(width, 1), max(height, 1), cells)

    @property
    def width(self) -> int:
        return self.extent.width

    @property
    def height(self) -> int:
        return self.extent.height

    def get(self, pos: Position) -> int:
        """Return the cell at pos, or space if nothing is stored there."""
        return self._cells.get(pos, SPACE)

    def set(self, pos: Position, value: int) -> None:
        """Store a cell; storing a space frees the entry."""
        pos = (int(pos[0]), int(pos[1]))
        if value == SPACE:
            self._cells.pop(pos, None)
        else:
            self._cells[pos] = int(value)

    def in_bounds(self, pos: Position) -> bool:
        """Check pos against the original extent, ignoring grown storage."""
        return self.extent.contains(pos)

    def wrap(self, pos: Position) -> Position:
        """Map pos onto the torus formed by the original extent."""
        ext = self.extent
        return (
            (pos[0] - ext.x0) % ext.width + ext.x0,
            (pos[1] - ext.y0) % ext.height + ext.y0,
        )

    @property
    def bounds(self) -> Extent:
        """Bounding box of the original extent and every stored cell."""
        ext = self.extent
        xs = [ext.x0, ext.x0 + ext.width - 1] + [x for x, _ in self._cells]
        ys = [ext.y0, ext.y0 + ext.height - 1] + [y for _, y in self._cells]
        x0, y0 = min(xs), min(ys)
        return Extent(width=max(xs) - x0 + 1, height=max(ys) - y0 + 1, x0=x0, y0=y0)

    def iter_cells(self) -> Iterator[tuple[Position, int]]:
        """Iterate over stored (non-space) cells."""
        yield from self._cells.items()

    def to_array(self) -> np.ndarray:
        """
        Dense copy of the grid over its bounding box.

        Cells are unbounded integers. The array is int64 while every cell
        fits, and falls back to an object array of Python ints otherwise.

        Returns:
            [height, width] array of cell codes; index [y - y0, x - x0]
        """
        b = self.bounds
        fits = all(_INT64.min <= value <= _INT64.max for value in self._cells.values())
        arr = np.full((b.height, b.width), SPACE, dtype=np.int64 if fits else object)
        for (x, y), value in self._cells.items():
            arr[y - b.y0, x - b.x0] = value
        return arr

    def rows(self) -> list[str]:
        """Text rendition of the original extent, one string per row."""
        out = []
        for y in range(self.height):
            chars = []
            for x in range(self.width):
                code = self.get((x, y))
                chars.append(chr(code) if 0 <= code <= 0x10FFFF else "?")
            out.append("".join(chars))
        return out

    def reset(self) -> None:
        """Restore the cells that were present at load time."""
        self._cells = dict(self._original)

    def copy(self) -> Grid:
        result = Grid(self.width, self.height)
        result._cells = dict(self._cells)
        result._original = dict(self._original)
        return result

    def __len__(self) -> int:
        return len(self._cells)
