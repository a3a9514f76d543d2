#!/usr/bin/env python3
"""
Demo: Concurrent pointers

Shows how `t` forks a pointer:
1. Pointer 0 pushes 5 and splits
2. The child inherits a copy of the stack and walks back the way it came
3. The `_` the parent passed eastward (empty stack) now sends the
   child west, because the child pops a 5
4. Both print, both stop

Expected output is "25": the parent prints 2 one tick before the child
prints 5.
"""

import logging

import matplotlib.pyplot as plt
from pathlib import Path

from fungesim.analysis import ExecutionTrace
from fungesim.core import RunConfig, Scheduler
from fungesim.logging_config import setup_logging
from fungesim.viz import plot_grid, plot_pointer_paths, plot_population, save_figure


PROGRAM = "_5t2.@."


def main():
    setup_logging(logging.DEBUG)

    print("=" * 60)
    print("  CONCURRENT POINTERS")
    print("=" * 60)

    print("\n1. Program:")
    print(f"   {PROGRAM}")

    scheduler = Scheduler.from_source(PROGRAM, RunConfig(random_seed=42, tick_limit=1_000))
    trace = ExecutionTrace()

    print("\n2. Stepping tick by tick:")
    trace.record(scheduler)
    snapshots = [scheduler.snapshot()]
    while scheduler.step():
        trace.record(scheduler)
        snap = scheduler.snapshot()
        snapshots.append(snap)
        where = ", ".join(f"IP {p.id}@{p.position}{p.direction_name}" for p in snap.pointers)
        print(f"   tick {snap.tick:2d}: {where}  output={snap.output!r}")
    trace.record(scheduler)
    snapshots.append(scheduler.snapshot())

    print(f"\n   Halted: {scheduler.halt_reason}")
    print(f"   Output: {scheduler.output!r}")
    for pid, stack in scheduler.stack_dump().items():
        print(f"   IP {pid} stack: {stack}")

    print("\n3. Creating visualization...")
    output_dir = Path("output/demo_split")
    output_dir.mkdir(parents=True, exist_ok=True)

    # Grid at every tick while both pointers are alive
    both_alive = [s for s in snapshots if len(s.pointers) == 2]
    fig, axes = plt.subplots(len(both_alive), 1, figsize=(6, 1.6 * len(both_alive)), squeeze=False)
    for ax, snap in zip(axes[:, 0], both_alive):
        plot_grid(snap, ax=ax)
    fig.tight_layout()
    save_figure(fig, output_dir / "ticks.png")
    plt.close(fig)
    print(f"   Saved: {output_dir / 'ticks.png'}")

    fig, _ = plot_pointer_paths(trace, title="Pointer paths", figsize=(8, 3))
    save_figure(fig, output_dir / "paths.png")
    plt.close(fig)
    print(f"   Saved: {output_dir / 'paths.png'}")

    fig, _ = plot_population(trace)
    save_figure(fig, output_dir / "population.png")
    plt.close(fig)
    print(f"   Saved: {output_dir / 'population.png'}")

    print("\n" + "=" * 60)
    print("  SUMMARY")
    print("=" * 60)
    print(f"  • Pointers seen: {trace.pointer_ids}")
    print(f"  • Child lifetime: ticks {trace.lifetime(1)}")
    print(f"  • Output: {scheduler.output}")
    print("=" * 60)


if __name__ == "__main__":
    main()
