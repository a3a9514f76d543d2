"""
Trajectory visualization for instruction pointers.

Plots pointer paths from an ExecutionTrace over the visit heatmap,
and the live pointer count over time.
"""

from __future__ import annotations
from typing import TYPE_CHECKING, Sequence

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.figure import Figure
from matplotlib.axes import Axes

from fungesim.viz.grid import CMAP_VISITS, POINTER_COLORS

if TYPE_CHECKING:
    from fungesim.analysis.trace import ExecutionTrace


def _split_at_wraps(xs: np.ndarray, ys: np.ndarray) -> list[tuple[np.ndarray, np.ndarray]]:
    """Break a path wherever it jumps more than one cell (torus wrap or `j`/`#`)."""
    if len(xs) < 2:
        return [(xs, ys)]
    jumps = np.flatnonzero((np.abs(np.diff(xs)) + np.abs(np.diff(ys))) > 1) + 1
    return list(zip(np.split(xs, jumps), np.split(ys, jumps)))


def plot_pointer_paths(
    trace: "ExecutionTrace",
    pointer_ids: Sequence[int] | None = None,
    title: str = "Pointer Paths",
    show_background: bool = True,
    figsize: tuple[float, float] = (8, 8),
    colors: Sequence[str] | None = None,
    show_start: bool = True,
    line_width: float = 2.0,
) -> tuple[Figure, Axes]:
    """
    Plot recorded pointer paths on one set of axes.

    Args:
        trace: ExecutionTrace with recorded positions
        pointer_ids: Which pointers to draw (all if None)
        title: Plot title
        show_background: Draw the visit heatmap underneath
        colors: Optional list of colors, one per pointer
        show_start: Mark each pointer's first recorded position
        line_width: Path line width

    Returns:
        (fig, ax) tuple
    """
    if pointer_ids is None:
        pointer_ids = trace.pointer_ids
    if colors is None:
        colors = POINTER_COLORS

    fig, ax = plt.subplots(figsize=figsize)

    if show_background and trace.extent is not None:
        ax.imshow(trace.visit_counts(), origin="upper", cmap=CMAP_VISITS, alpha=0.6)

    for i, pid in enumerate(pointer_ids):
        xs, ys = trace.path(pid)
        if len(xs) == 0:
            continue
        color = colors[i % len(colors)]

        for k, (seg_x, seg_y) in enumerate(_split_at_wraps(xs, ys)):
            ax.plot(
                seg_x, seg_y, color=color, linewidth=line_width,
                label=f"IP {pid}" if k == 0 else None, zorder=2,
            )

        if show_start:
            ax.scatter(
                [xs[0]], [ys[0]], color=color, s=80, marker="o",
                edgecolors="white", linewidths=1.5, zorder=3,
            )

    if trace.extent is not None:
        ax.set_xlim(trace.extent.x0 - 0.5, trace.extent.x0 + trace.extent.width - 0.5)
        ax.set_ylim(trace.extent.y0 + trace.extent.height - 0.5, trace.extent.y0 - 0.5)

    ax.set_title(title)
    ax.set_xlabel("x")
    ax.set_ylabel("y")
    if len(pointer_ids) > 0:
        ax.legend(loc="upper right")

    return fig, ax


def plot_population(
    trace: "ExecutionTrace",
    title: str = "Live pointers",
    ax: Axes | None = None,
    figsize: tuple[float, float] = (8, 4),
) -> tuple[Figure, Axes]:
    """Plot the number of live pointers against tick."""
    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure

    ticks, population = trace.population_array()
    ax.step(ticks, population, where="post", color="black", linewidth=1.5)

    ax.set_title(title)
    ax.set_xlabel("tick")
    ax.set_ylabel("pointers")
    ax.grid(True, alpha=0.3)
    return fig, ax
