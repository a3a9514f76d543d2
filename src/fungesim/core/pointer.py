"""
InstructionPointer: one execution cursor on the grid.

A pointer owns its position, its direction and exactly one CellStack.
Two pieces of per-pointer mode live here rather than in the dispatcher:
- string mode, entered and left by `"`, pushes cells instead of running them
- skip mode, entered by `;`, ignores cells until the closing `;`

Everything else a cell can do is the dispatcher's job.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from fungesim.core import vector
from fungesim.core.stack import CellStack
from fungesim.core.vector import Direction, Position, EAST

if TYPE_CHECKING:
    from fungesim.core.dispatcher import Dispatcher
    from fungesim.core.grid import Grid
    from fungesim.core.scheduler import RunConfig


QUOTE = ord('"')
SEMICOLON = ord(";")


@dataclass
class StepResult:
    """Outcome of one pointer step, collected by the scheduler until the tick ends."""

    pointer: "InstructionPointer"
    spawned: "InstructionPointer | None" = None
    died: bool = False
    halt: str | None = None


@dataclass
class InstructionPointer:
    """
    An execution cursor.

    id is None only for a freshly split child that the scheduler has not
    admitted yet; ids are handed out at the tick boundary.
    """

    id: int | None
    position: Position = (0, 0)
    direction: Direction = EAST
    stack: CellStack = field(default_factory=CellStack)
    string_mode: bool = False
    skipping: bool = False
    alive: bool = True
    awaiting_input: bool = False

    # ── movement ───────────────────────────────────────────────────

    def advance(self, grid: "Grid", steps: int = 1) -> None:
        """
        Move `steps` cells along the direction, wrapping on the grid's torus.

        Negative steps walk backwards. The result is the same as calling
        advance() |steps| times, without the loop.
        """
        self.position = grid.wrap(vector.offset(self.position, self.direction, steps))

    def face(self, direction: Direction) -> None:
        self.direction = direction

    def turn_left(self) -> None:
        self.direction = vector.turn_left(self.direction)

    def turn_right(self) -> None:
        self.direction = vector.turn_right(self.direction)

    def reflect(self) -> None:
        self.direction = vector.reflect(self.direction)

    # ── concurrency ────────────────────────────────────────────────

    def split(self, child_id: int | None = None) -> InstructionPointer:
        """
        Create the child for a `t` instruction.

        Same position, reversed direction, a copy of the stack (mode
        included). String and skip modes are not inherited: `t` only runs
        outside both.
        """
        return InstructionPointer(
            id=child_id,
            position=self.position,
            direction=vector.reflect(self.direction),
            stack=self.stack.copy(),
        )

    # ── execution ──────────────────────────────────────────────────

    def step(self, dispatcher: "Dispatcher", grid: "Grid", config: "RunConfig") -> StepResult:
        """
        Execute the current cell, then move on.

        The pointer does not move when it dies or when it is waiting for
        input; in the latter case it retries the same cell next tick.
        """
        cell = grid.get(self.position)

        if self.skipping:
            if cell == SEMICOLON:
                self.skipping = False
            self.advance(grid)
            return StepResult(pointer=self)

        if self.string_mode:
            if cell == QUOTE:
                self.string_mode = False
            else:
                self.stack.push(cell)
            self.advance(grid)
            return StepResult(pointer=self)

        effect = dispatcher.execute(self, grid, config)

        if effect.die:
            self.alive = False
        elif not effect.hold:
            self.advance(grid)

        return StepResult(
            pointer=self,
            spawned=effect.spawn,
            died=not self.alive,
            halt=effect.halt,
        )
