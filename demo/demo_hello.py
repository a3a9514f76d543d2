#!/usr/bin/env python3
"""
Demo: Hello, World!

Runs the classic one-line program:
1. Load the source into a grid
2. Step the scheduler until every pointer has stopped
3. Print the output and the final stacks
4. Save the final grid and the visit heatmap

The string is pushed backwards, then a `>:#,_` loop prints it one
character at a time until the terminating zero.
"""

import logging

import matplotlib.pyplot as plt
from pathlib import Path

from fungesim.analysis import ExecutionTrace
from fungesim.core import RunConfig, Scheduler
from fungesim.logging_config import setup_logging
from fungesim.viz import plot_grid, plot_visits, save_figure


PROGRAM = '"!dlroW ,olleH">:#,_@'


def main():
    setup_logging(logging.INFO)

    print("=" * 60)
    print("  HELLO, WORLD")
    print("=" * 60)

    print("\n1. Program:")
    print(f"   {PROGRAM}")

    config = RunConfig(random_seed=42, tick_limit=10_000)
    scheduler = Scheduler.from_source(PROGRAM, config)

    print("\n2. Running...")
    trace = ExecutionTrace()
    stats = trace.run(scheduler, max_ticks=config.tick_limit)
    print(f"   {stats['n_ticks']} ticks completed")
    print(f"   Halted: {scheduler.halt_reason}")

    print("\n3. Result:")
    print(f"   Output: {scheduler.output!r}")
    for pid, stack in scheduler.stack_dump().items():
        print(f"   IP {pid} stack: {stack}")

    print("\n4. Creating visualization...")
    output_dir = Path("output/demo_hello")
    output_dir.mkdir(parents=True, exist_ok=True)

    fig, _ = plot_grid(scheduler.snapshot(), fontsize=14)
    save_figure(fig, output_dir / "grid.png")
    plt.close(fig)
    print(f"   Saved: {output_dir / 'grid.png'}")

    fig, _ = plot_visits(trace, title="Cell visits (Hello, World!)", figsize=(10, 3))
    save_figure(fig, output_dir / "visits.png")
    plt.close(fig)
    print(f"   Saved: {output_dir / 'visits.png'}")

    print("\n" + "=" * 60)
    print("  SUMMARY")
    print("=" * 60)
    counts = trace.visit_counts()
    print(f"  • {len(PROGRAM)} cells, {stats['n_ticks']} ticks")
    print(f"  • Busiest cell visited {counts.max()} times (the print loop)")
    print(f"  • Output: {scheduler.output}")
    print("=" * 60)


if __name__ == "__main__":
    main()
