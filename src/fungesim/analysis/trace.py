"""
ExecutionTrace: records where pointers go, tick by tick.

The trace only observes. It reads the scheduler after each tick and
keeps pointer positions, so paths and visit heatmaps can be computed
(and plotted) after the run without touching the engine again.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from fungesim.core.grid import Extent
    from fungesim.core.scheduler import Scheduler


@dataclass
class ExecutionTrace:
    """Per-tick pointer positions for one run."""

    ticks: list[int] = field(default_factory=list)
    population: list[int] = field(default_factory=list)
    extent: "Extent | None" = None

    # pointer id -> list of (tick, x, y)
    _positions: dict[int, list[tuple[int, int, int]]] = field(default_factory=dict, init=False, repr=False)

    def record(self, scheduler: "Scheduler") -> None:
        """Record the position of every live pointer at the current tick."""
        tick = scheduler.tick
        self.ticks.append(tick)
        self.population.append(len(scheduler.pointers))
        self.extent = scheduler.grid.extent

        for ip in scheduler.pointers:
            x, y = ip.position
            self._positions.setdefault(ip.id, []).append((tick, x, y))

    def run(self, scheduler: "Scheduler", max_ticks: int) -> dict:
        """
        Step the scheduler up to max_ticks times, recording after each tick.

        The state before the first tick is recorded too.
        """
        if not self.ticks or self.ticks[-1] != scheduler.tick:
            self.record(scheduler)

        n_ticks = 0
        while n_ticks < max_ticks and not scheduler.halted:
            scheduler.step()
            self.record(scheduler)
            n_ticks += 1

        return {
            "n_ticks": n_ticks,
            "current_tick": scheduler.tick,
            "n_pointers_seen": len(self._positions),
            "max_population": max(self.population, default=0),
            "halted": scheduler.halted,
        }

    @property
    def pointer_ids(self) -> list[int]:
        return sorted(self._positions)

    def path(self, pointer_id: int) -> tuple[np.ndarray, np.ndarray]:
        """Recorded (xs, ys) of one pointer, in tick order."""
        samples = self._positions.get(pointer_id, [])
        if not samples:
            return np.array([], dtype=np.int64), np.array([], dtype=np.int64)
        arr = np.array(samples, dtype=np.int64)
        return arr[:, 1], arr[:, 2]

    def lifetime(self, pointer_id: int) -> tuple[int, int] | None:
        """First and last tick a pointer was seen alive."""
        samples = self._positions.get(pointer_id)
        if not samples:
            return None
        return samples[0][0], samples[-1][0]

    def visit_counts(self) -> np.ndarray:
        """
        How often a pointer stood on each cell.

        Returns:
            [height, width] int64 array over the original extent
        """
        if self.extent is None:
            return np.zeros((0, 0), dtype=np.int64)

        counts = np.zeros((self.extent.height, self.extent.width), dtype=np.int64)
        for samples in self._positions.values():
            arr = np.array(samples, dtype=np.int64)
            np.add.at(counts, (arr[:, 2] - self.extent.y0, arr[:, 1] - self.extent.x0), 1)
        return counts

    def population_array(self) -> tuple[np.ndarray, np.ndarray]:
        """(ticks, live pointer count) as arrays."""
        return np.array(self.ticks, dtype=np.int64), np.array(self.population, dtype=np.int64)
