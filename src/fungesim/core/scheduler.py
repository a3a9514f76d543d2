"""
Scheduler: the tick loop that advances every live pointer.

One tick:
1. Step every pointer alive at the start of the tick, ascending id
2. Grid writes land immediately, so later pointers see earlier writes
3. Collect spawn, death and halt effects along the way
4. At the boundary: drop the dead, admit the spawned, check halting

Nothing is threaded and nothing blocks. A driver calls step() at whatever
pace it likes; stopping is simply not calling it again.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Literal
import logging

from fungesim.core.dispatcher import Dispatcher, InstructionRegistry
from fungesim.core.grid import Grid
from fungesim.core.io import ProgramIO
from fungesim.core.pointer import InstructionPointer
from fungesim.core.snapshot import ProgramSnapshot
from fungesim.core.vector import EAST

logger = logging.getLogger(__name__)


HALT_NO_POINTERS = "all pointers terminated"
HALT_TICK_LIMIT = "tick limit reached"
HALT_EXTERNAL = "halted by driver"


@dataclass
class RunConfig:
    """Configuration for one program run."""

    extend_bounds: bool = False   # Allow p writes outside the loaded extent
    random_seed: int | None = None  # Seed for `?`; None draws fresh entropy
    tick_limit: int | None = None   # Force a halt after this many ticks

    # What a cell with no meaning does: nothing, or turn the pointer around
    unknown_policy: Literal["noop", "reflect"] = "noop"

    def __post_init__(self):
        if self.tick_limit is not None and self.tick_limit < 0:
            raise ValueError(f"tick_limit must be non-negative, got {self.tick_limit}")
        if self.unknown_policy not in ("noop", "reflect"):
            raise ValueError(f"unknown_policy must be 'noop' or 'reflect', got {self.unknown_policy!r}")


@dataclass
class ProgramState:
    """Everything one step() mutates, owned by the scheduler."""

    grid: Grid
    pointers: list[InstructionPointer] = field(default_factory=list)
    tick: int = 0
    halt_reason: str | None = None

    @property
    def halted(self) -> bool:
        return self.halt_reason is not None

    def pointer(self, pointer_id: int) -> InstructionPointer | None:
        for ip in self.pointers:
            if ip.id == pointer_id:
                return ip
        return None


@dataclass
class Scheduler:
    """
    Deterministic round-robin scheduler over instruction pointers.

    The grid passed in is the loaded program; reset() returns it to the
    cells it held at load time.
    """

    grid: Grid
    config: RunConfig = field(default_factory=RunConfig)
    io: ProgramIO = field(default_factory=ProgramIO)
    registry: InstructionRegistry = field(default_factory=InstructionRegistry)

    state: ProgramState = field(default=None, init=False)
    dispatcher: Dispatcher = field(default=None, init=False)
    _retired: dict[int, list[int]] = field(default_factory=dict, init=False)
    _next_id: int = field(default=0, init=False)
    _halt_request: str | None = field(default=None, init=False)

    def __post_init__(self):
        self.dispatcher = Dispatcher(self.io, self.registry, seed=self.config.random_seed)
        self._start()

    @classmethod
    def from_source(cls, text: str, config: RunConfig | None = None, **kwargs) -> Scheduler:
        """Load program text into a grid and build a scheduler for it."""
        return cls(grid=Grid.load(text), config=config or RunConfig(), **kwargs)

    # ── lifecycle ──────────────────────────────────────────────────

    def _start(self) -> None:
        self._retired = {}
        self._next_id = 0
        self._halt_request = None
        first = InstructionPointer(id=self._allocate_id(), position=(0, 0), direction=EAST)
        self.state = ProgramState(grid=self.grid, pointers=[first])
        self._check_halt()

    def reset(self) -> None:
        """Return to the post-load state: original cells, one pointer, tick 0."""
        self.grid.reset()
        self.io.reset()
        self.dispatcher.reseed(self.config.random_seed)
        self._start()
        logger.info("Program reset")

    def halt(self, reason: str = HALT_EXTERNAL) -> None:
        """Stop the program; further step() calls do nothing."""
        if not self.state.halted:
            self.state.halt_reason = reason
            logger.info("Halted at tick %d: %s", self.state.tick, reason)

    def _allocate_id(self) -> int:
        pointer_id = self._next_id
        self._next_id += 1
        return pointer_id

    # ── ticking ────────────────────────────────────────────────────

    def step(self) -> bool:
        """
        Run one tick.

        Returns:
            True while the program is still running afterwards
        """
        state = self.state
        if state.halted:
            return False

        spawned: list[InstructionPointer] = []
        died: list[InstructionPointer] = []

        # Pointers admitted at this tick's boundary must not run in it
        for ip in list(state.pointers):
            result = ip.step(self.dispatcher, state.grid, self.config)
            if result.spawned is not None:
                spawned.append(result.spawned)
            if result.died:
                died.append(ip)
            if result.halt is not None and self._halt_request is None:
                self._halt_request = result.halt

        self._apply_boundary(spawned, died)
        state.tick += 1
        self._check_halt()
        return not state.halted

    def _apply_boundary(
        self, spawned: list[InstructionPointer], died: list[InstructionPointer]
    ) -> None:
        state = self.state

        for ip in died:
            self._retired[ip.id] = ip.stack.to_list()
            state.pointers.remove(ip)
            logger.debug("Pointer %d died at %s", ip.id, ip.position)

        for child in spawned:
            child.id = self._allocate_id()
            # Step off the split cell so the child does not split again
            child.advance(state.grid)
            state.pointers.append(child)
            logger.debug("Pointer %d spawned at %s heading %s", child.id, child.position, child.direction)

    def _check_halt(self) -> None:
        state = self.state
        if state.halted:
            return
        if self._halt_request is not None:
            self.halt(self._halt_request)
        elif not state.pointers:
            self.halt(HALT_NO_POINTERS)
        elif self.config.tick_limit is not None and state.tick >= self.config.tick_limit:
            self.halt(HALT_TICK_LIMIT)

    def run(self, max_ticks: int | None = None) -> dict:
        """
        Step until the program halts or max_ticks ticks have run.

        Returns:
            Summary of the run so far
        """
        start = self.state.tick
        while not self.state.halted:
            if max_ticks is not None and self.state.tick - start >= max_ticks:
                break
            self.step()

        return {
            "n_ticks": self.state.tick - start,
            "current_tick": self.state.tick,
            "n_pointers": len(self.state.pointers),
            "halted": self.state.halted,
            "halt_reason": self.state.halt_reason,
            "output": self.io.output,
        }

    # ── read-only views ────────────────────────────────────────────

    @property
    def tick(self) -> int:
        return self.state.tick

    @property
    def halted(self) -> bool:
        return self.state.halted

    @property
    def halt_reason(self) -> str | None:
        return self.state.halt_reason

    @property
    def pointers(self) -> tuple[InstructionPointer, ...]:
        return tuple(self.state.pointers)

    @property
    def output(self) -> str:
        return self.io.output

    def snapshot(self) -> ProgramSnapshot:
        return ProgramSnapshot.capture(self.state, self.io)

    def stack_dump(self) -> dict[int, list[int]]:
        """
        Stack contents of every pointer that has lived since the last reset.

        Live pointers report their current stack, dead ones the stack they
        died with. Values are bottom first.
        """
        dump = dict(self._retired)
        for ip in self.state.pointers:
            dump[ip.id] = ip.stack.to_list()
        return dict(sorted(dump.items()))
