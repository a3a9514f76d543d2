"""
Dispatcher: maps the cell under a pointer to what it does.

The dispatcher is a total function over cell values. Every cell yields an
Effect, most of them empty, after mutating the pointer (stack, direction,
position) and possibly the grid. Effects that change the set of pointers
are never applied here:
- spawn: a split child, admitted by the scheduler at the tick boundary
- die: the pointer stops, removed at the tick boundary
- halt: the whole program stops at the tick boundary

Uppercase letters are not built in. They go through an InstructionRegistry,
the extension point for fingerprint-style instruction sets.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Protocol, TYPE_CHECKING
import logging

import numpy as np

from fungesim.core import vector
from fungesim.core.grid import Grid, SPACE
from fungesim.core.io import NO_DATA, ProgramIO
from fungesim.core.pointer import SEMICOLON
from fungesim.core.stack import StackMode
from fungesim.core.vector import CARDINALS, EAST, NORTH, SOUTH, WEST, Position

if TYPE_CHECKING:
    from fungesim.core.pointer import InstructionPointer
    from fungesim.core.scheduler import RunConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Effect:
    """What a dispatched cell asks of the scheduler."""

    spawn: "InstructionPointer | None" = None
    die: bool = False
    halt: str | None = None
    hold: bool = False  # Stay on this cell instead of advancing


NO_EFFECT = Effect()

Handler = Callable[["InstructionPointer", Grid, "RunConfig"], "Effect | None"]


# ═══════════════════════════════════════════════════════════════
# Extension point
# ═══════════════════════════════════════════════════════════════

class InstructionHandler(Protocol):
    """Protocol for instructions bound to a letter at run time."""

    def execute(self, pointer: "InstructionPointer", grid: Grid) -> Effect | None:
        """
        Run the instruction for one pointer.

        Args:
            pointer: The pointer standing on the letter
            grid: The shared program grid

        Returns:
            An Effect, or None for no scheduler-visible effect
        """
        ...


@dataclass
class Fingerprint:
    """A named bundle of letter handlers loaded and unloaded together."""

    name: str
    handlers: dict[str, InstructionHandler] = field(default_factory=dict)

    @property
    def id(self) -> int:
        """Numeric id: the name's character codes read as base-256 digits."""
        value = 0
        for ch in self.name:
            value = value * 256 + ord(ch)
        return value


def _check_letter(letter: str) -> None:
    if len(letter) != 1 or not ("A" <= letter <= "Z"):
        raise ValueError(f"Instruction letters must be a single A-Z, got {letter!r}")


class InstructionRegistry:
    """
    Letter -> stack of handlers.

    Loading pushes, unloading pops, and the top handler wins. A letter
    with an empty stack is not an instruction at all, and the dispatcher
    falls back to its unknown-instruction policy.
    """

    def __init__(self):
        self._slots: dict[str, list[InstructionHandler]] = {}

    def push(self, letter: str, handler: InstructionHandler) -> None:
        _check_letter(letter)
        self._slots.setdefault(letter, []).append(handler)

    def pop(self, letter: str) -> InstructionHandler:
        _check_letter(letter)
        slot = self._slots.get(letter)
        if not slot:
            raise KeyError(f"No handler loaded for {letter!r}")
        handler = slot.pop()
        if not slot:
            del self._slots[letter]
        return handler

    def lookup(self, letter: str) -> InstructionHandler | None:
        slot = self._slots.get(letter)
        return slot[-1] if slot else None

    def load(self, fingerprint: Fingerprint) -> None:
        for letter, handler in fingerprint.handlers.items():
            self.push(letter, handler)
        logger.debug("Loaded fingerprint %s (%d letters)", fingerprint.name, len(fingerprint.handlers))

    def unload(self, fingerprint: Fingerprint) -> None:
        for letter in fingerprint.handlers:
            self.pop(letter)
        logger.debug("Unloaded fingerprint %s", fingerprint.name)

    @property
    def letters(self) -> list[str]:
        return sorted(self._slots)

    def __contains__(self, letter: str) -> bool:
        return bool(self._slots.get(letter))

    def clear(self) -> None:
        self._slots.clear()


# ═══════════════════════════════════════════════════════════════
# Arithmetic helpers
# ═══════════════════════════════════════════════════════════════

def trunc_div(a: int, b: int) -> int:
    """Integer division rounding toward zero; division by zero gives 0."""
    if b == 0:
        return 0
    q = abs(a) // abs(b)
    return q if (a < 0) == (b < 0) else -q


def trunc_mod(a: int, b: int) -> int:
    """Remainder matching trunc_div (sign of the dividend); modulo by zero gives 0."""
    if b == 0:
        return 0
    return a - b * trunc_div(a, b)


BINARY_OPS: dict[str, Callable[[int, int], int]] = {
    "+": lambda a, b: a + b,
    "-": lambda a, b: a - b,
    "*": lambda a, b: a * b,
    "/": trunc_div,
    "%": trunc_mod,
    "`": lambda a, b: 1 if a > b else 0,
}

# Accepted, reserved for future instructions
RESERVED = "hm"


class Dispatcher:
    """
    Executes one cell for one pointer.

    Holds the per-run resources every pointer shares: the I/O buffers, the
    instruction registry, and the random generator for `?`.
    """

    def __init__(
        self,
        io: ProgramIO | None = None,
        registry: InstructionRegistry | None = None,
        seed: int | None = None,
    ):
        self.io = io if io is not None else ProgramIO()
        self.registry = registry if registry is not None else InstructionRegistry()
        self.rng = np.random.default_rng(seed)
        self._table: dict[int, Handler] = self._build_table()

    def reseed(self, seed: int | None) -> None:
        self.rng = np.random.default_rng(seed)

    def execute(self, ip: "InstructionPointer", grid: Grid, config: "RunConfig") -> Effect:
        """Run the cell under ip and return its effect."""
        return self._dispatch(grid.get(ip.position), ip, grid, config)

    def _dispatch(self, cell: int, ip: "InstructionPointer", grid: Grid, config: "RunConfig") -> Effect:
        handler = self._table.get(cell)
        if handler is not None:
            return handler(ip, grid, config) or NO_EFFECT

        if ord("A") <= cell <= ord("Z"):
            extension = self.registry.lookup(chr(cell))
            if extension is not None:
                return extension.execute(ip, grid) or NO_EFFECT

        return self._unknown(ip, grid, config)

    @property
    def instructions(self) -> str:
        """Every built-in instruction character, sorted."""
        return "".join(sorted(chr(c) for c in self._table))

    def _build_table(self) -> dict[int, Handler]:
        table: dict[int, Handler] = {}

        for ch in "0123456789abcdef":
            table[ord(ch)] = self._literal(int(ch, 16))
        for ch, op in BINARY_OPS.items():
            table[ord(ch)] = self._binary(op)
        for ch, direction in zip("^v><", (NORTH, SOUTH, EAST, WEST)):
            table[ord(ch)] = self._heading(direction)

        table.update({
            ord(" "): self._nop,
            ord("z"): self._nop,
            ord("!"): self._not,
            ord(":"): self._duplicate,
            ord("$"): self._discard,
            ord("\\"): self._swap,
            ord("n"): self._clear,
            ord("?"): self._random_heading,
            ord("["): self._turn_left,
            ord("]"): self._turn_right,
            ord("r"): self._reflect,
            ord("_"): self._horizontal_if,
            ord("|"): self._vertical_if,
            ord("w"): self._compare,
            ord("j"): self._jump,
            ord("k"): self._iterate,
            ord("#"): self._trampoline,
            ord(";"): self._skip,
            ord('"'): self._string_mode,
            ord("'"): self._fetch,
            ord("."): self._output_int,
            ord(","): self._output_char,
            ord("&"): self._input_int,
            ord("~"): self._input_char,
            ord("g"): self._get,
            ord("p"): self._put,
            ord("q"): self._queue_mode,
            ord("s"): self._stack_mode,
            ord("l"): self._permute,
            ord("t"): self._split,
            ord("@"): self._stop,
        })
        for ch in RESERVED:
            table[ord(ch)] = self._nop
        return table

    # ── literals, arithmetic, stack ────────────────────────────────

    @staticmethod
    def _literal(value: int) -> Handler:
        def push_literal(ip, grid, config):
            ip.stack.push(value)
        return push_literal

    @staticmethod
    def _binary(op: Callable[[int, int], int]) -> Handler:
        def apply(ip, grid, config):
            b = ip.stack.pop()
            a = ip.stack.pop()
            ip.stack.push(op(a, b))
        return apply

    def _nop(self, ip, grid, config):
        return None

    def _not(self, ip, grid, config):
        ip.stack.push(1 if ip.stack.pop() == 0 else 0)

    def _duplicate(self, ip, grid, config):
        value = ip.stack.pop()
        ip.stack.push(value)
        ip.stack.push(value)

    def _discard(self, ip, grid, config):
        ip.stack.pop()

    def _swap(self, ip, grid, config):
        b = ip.stack.pop()
        a = ip.stack.pop()
        ip.stack.push(b)
        ip.stack.push(a)

    def _clear(self, ip, grid, config):
        ip.stack.clear()

    def _queue_mode(self, ip, grid, config):
        ip.stack.set_mode(StackMode.FIFO)

    def _stack_mode(self, ip, grid, config):
        ip.stack.set_mode(StackMode.LIFO)

    def _permute(self, ip, grid, config):
        ip.stack.permute(ip.stack.pop())

    # ── flow control ───────────────────────────────────────────────

    @staticmethod
    def _heading(direction) -> Handler:
        def face(ip, grid, config):
            ip.face(direction)
        return face

    def _random_heading(self, ip, grid, config):
        ip.face(CARDINALS[int(self.rng.integers(len(CARDINALS)))])

    def _turn_left(self, ip, grid, config):
        ip.turn_left()

    def _turn_right(self, ip, grid, config):
        ip.turn_right()

    def _reflect(self, ip, grid, config):
        ip.reflect()

    def _horizontal_if(self, ip, grid, config):
        ip.face(EAST if ip.stack.pop() == 0 else WEST)

    def _vertical_if(self, ip, grid, config):
        ip.face(SOUTH if ip.stack.pop() == 0 else NORTH)

    def _compare(self, ip, grid, config):
        b = ip.stack.pop()
        a = ip.stack.pop()
        if a < b:
            ip.turn_left()
        elif a > b:
            ip.turn_right()

    def _jump(self, ip, grid, config):
        ip.advance(grid, ip.stack.pop())

    def _iterate(self, ip, grid, config):
        """
        `k`: run the next instruction ahead n times from this cell.

        n = 0 skips that instruction and n < 0 does nothing. If the
        repetitions leave the pointer where it was, heading the same way,
        it moves onto the repeated cell so it is not run once more.
        Repetition stops at the first effect for the scheduler; a read still
        waiting for input puts the remaining count back on the stack so the
        next tick resumes it.
        """
        n = ip.stack.pop()
        target = self._instruction_ahead(ip, grid)
        if target is None or n < 0:
            return None
        if n == 0:
            ip.position = target
            return None

        start = (ip.position, ip.direction)
        cell = grid.get(target)
        effect = NO_EFFECT
        for done in range(n):
            effect = self._dispatch(cell, ip, grid, config)
            if effect.hold:
                ip.stack.push(n - done)
                return effect
            if effect != NO_EFFECT:
                break

        if (ip.position, ip.direction) == start:
            ip.position = target
        return effect

    @staticmethod
    def _instruction_ahead(ip, grid) -> Position | None:
        """Next cell along the heading that holds an instruction, passing over spaces and ;...; regions."""
        pos = ip.position
        skipping = False
        while True:
            pos = grid.wrap(vector.offset(pos, ip.direction))
            if pos == ip.position:
                return None
            cell = grid.get(pos)
            if cell == SEMICOLON:
                skipping = not skipping
            elif not skipping and cell != SPACE:
                return pos

    def _trampoline(self, ip, grid, config):
        ip.advance(grid)

    def _skip(self, ip, grid, config):
        ip.skipping = True

    def _string_mode(self, ip, grid, config):
        ip.string_mode = True

    def _fetch(self, ip, grid, config):
        ip.advance(grid)
        ip.stack.push(grid.get(ip.position))

    # ── I/O ────────────────────────────────────────────────────────

    def _output_int(self, ip, grid, config):
        self.io.write_int(ip.stack.pop())

    def _output_char(self, ip, grid, config):
        self.io.write_char(ip.stack.pop())

    def _input_int(self, ip, grid, config):
        return self._read(ip, self.io.read_int())

    def _input_char(self, ip, grid, config):
        return self._read(ip, self.io.read_char())

    def _read(self, ip, value) -> Effect | None:
        if value is NO_DATA:
            if self.io.at_eof():
                ip.awaiting_input = False
                ip.reflect()
                return None
            ip.awaiting_input = True
            return Effect(hold=True)

        ip.awaiting_input = False
        ip.stack.push(value)
        return None

    # ── grid access ────────────────────────────────────────────────

    def _get(self, ip, grid, config):
        y = ip.stack.pop()
        x = ip.stack.pop()
        ip.stack.push(grid.get((x, y)))

    def _put(self, ip, grid, config):
        y = ip.stack.pop()
        x = ip.stack.pop()
        value = ip.stack.pop()
        if grid.in_bounds((x, y)) or config.extend_bounds:
            grid.set((x, y), value)
            return None
        logger.debug("Pointer %s wrote outside the grid at (%d, %d) and dies", ip.id, x, y)
        return Effect(die=True)

    # ── concurrency ────────────────────────────────────────────────

    def _split(self, ip, grid, config):
        return Effect(spawn=ip.split())

    def _stop(self, ip, grid, config):
        return Effect(die=True)

    def _unknown(self, ip, grid, config) -> Effect:
        if config.unknown_policy == "reflect":
            ip.reflect()
        return NO_EFFECT
