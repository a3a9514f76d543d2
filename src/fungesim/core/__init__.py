"""
Core engine primitives.

This layer knows NOTHING about terminals, files or command lines.
It only knows:
- A sparse grid of cells with a frozen original extent
- Pointers that walk it on a torus, each with one stack
- What each cell does to a pointer (the dispatcher)
- Ticks: every live pointer steps once, effects land at the boundary

Drivers talk to it through Scheduler.step(), Scheduler.reset() and
read-only snapshots.
"""

from fungesim.core.grid import Grid, Extent
from fungesim.core.stack import CellStack, StackMode
from fungesim.core.pointer import InstructionPointer, StepResult
from fungesim.core.io import ProgramIO, NO_DATA
from fungesim.core.dispatcher import Dispatcher, Effect, Fingerprint, InstructionRegistry
from fungesim.core.snapshot import ProgramSnapshot, PointerSnapshot
from fungesim.core.scheduler import Scheduler, RunConfig, ProgramState

__all__ = [
    "Grid",
    "Extent",
    "CellStack",
    "StackMode",
    "InstructionPointer",
    "StepResult",
    "ProgramIO",
    "NO_DATA",
    "Dispatcher",
    "Effect",
    "Fingerprint",
    "InstructionRegistry",
    "ProgramSnapshot",
    "PointerSnapshot",
    "Scheduler",
    "RunConfig",
    "ProgramState",
]
