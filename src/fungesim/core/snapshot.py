"""
Read-only snapshots of engine state.

Renderers, loggers and tests look at a program through these, never
through the live objects. A snapshot shares nothing mutable with the
engine: the grid is a read-only numpy copy and stacks are tuples.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

from fungesim.core.grid import Extent, SPACE
from fungesim.core.vector import DIRECTION_NAMES, Direction, Position

if TYPE_CHECKING:
    from fungesim.core.io import ProgramIO
    from fungesim.core.pointer import InstructionPointer
    from fungesim.core.scheduler import ProgramState


@dataclass(frozen=True)
class PointerSnapshot:
    """State of one live pointer at the end of a tick."""

    id: int
    position: Position
    direction: Direction
    stack: tuple[int, ...]  # bottom first
    mode: str               # "lifo" or "fifo"
    string_mode: bool
    skipping: bool
    awaiting_input: bool

    @classmethod
    def from_pointer(cls, ip: "InstructionPointer") -> PointerSnapshot:
        return cls(
            id=ip.id,
            position=ip.position,
            direction=ip.direction,
            stack=tuple(ip.stack.to_list()),
            mode=ip.stack.mode.value,
            string_mode=ip.string_mode,
            skipping=ip.skipping,
            awaiting_input=ip.awaiting_input,
        )

    @property
    def direction_name(self) -> str:
        return DIRECTION_NAMES[self.direction]


@dataclass(frozen=True)
class ProgramSnapshot:
    """
    Whole-program view for external tooling.

    cells covers the grid's bounding box; cells[y - bounds.y0, x - bounds.x0]
    is the code at (x, y). rows is the text of the original extent.
    """

    cells: np.ndarray = field(compare=False, repr=False)
    bounds: Extent
    extent: Extent
    rows: tuple[str, ...]
    pointers: tuple[PointerSnapshot, ...]
    tick: int
    halted: bool
    halt_reason: str | None
    output: str

    @classmethod
    def capture(cls, state: "ProgramState", io: "ProgramIO") -> ProgramSnapshot:
        cells = state.grid.to_array()
        cells.setflags(write=False)
        return cls(
            cells=cells,
            bounds=state.grid.bounds,
            extent=state.grid.extent,
            rows=tuple(state.grid.rows()),
            pointers=tuple(PointerSnapshot.from_pointer(ip) for ip in state.pointers),
            tick=state.tick,
            halted=state.halted,
            halt_reason=state.halt_reason,
            output=io.output,
        )

    def cell(self, pos: Position) -> int:
        """Cell code at pos; space outside the captured bounds."""
        if not self.bounds.contains(pos):
            return SPACE
        x, y = pos
        return int(self.cells[y - self.bounds.y0, x - self.bounds.x0])

    @property
    def pointer_ids(self) -> list[int]:
        return [p.id for p in self.pointers]

    def pointer(self, pointer_id: int) -> PointerSnapshot | None:
        for p in self.pointers:
            if p.id == pointer_id:
                return p
        return None

    def stacks(self) -> dict[int, list[int]]:
        """id -> stack contents (bottom first) for each live pointer."""
        return {p.id: list(p.stack) for p in self.pointers}
