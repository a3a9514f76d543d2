"""
2D visualization of program grids.

Provides plots for:
- the program text, with live pointers marked on top
- the visit heatmap of a recorded trace

Rows are drawn top to bottom as in the source text (origin="upper").
All plots use matplotlib and return (fig, ax) so they can be composed.
"""

from __future__ import annotations
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.figure import Figure
from matplotlib.axes import Axes

from fungesim.core.grid import SPACE

if TYPE_CHECKING:
    from fungesim.analysis.trace import ExecutionTrace
    from fungesim.core.snapshot import ProgramSnapshot


CMAP_VISITS = "magma"

# Arrow glyph drawn for each pointer heading
_ARROWS = {"N": "^", "S": "v", "E": ">", "W": "<"}

POINTER_COLORS = plt.rcParams["axes.prop_cycle"].by_key()["color"]


def plot_grid(
    snapshot: "ProgramSnapshot",
    title: str | None = None,
    ax: Axes | None = None,
    figsize: tuple[float, float] | None = None,
    show_pointers: bool = True,
    fontsize: float = 11,
) -> tuple[Figure, Axes]:
    """
    Draw the program cells as text with pointer positions highlighted.

    Args:
        snapshot: ProgramSnapshot to draw
        title: Plot title (defaults to the tick number)
        ax: Existing axes (creates new if None)
        figsize: Figure size; scales with the grid if None
        show_pointers: Mark each live pointer with its id and heading
        fontsize: Font size of cell glyphs

    Returns:
        (fig, ax) tuple
    """
    b = snapshot.bounds
    if figsize is None:
        figsize = (max(4.0, 0.4 * b.width), max(3.0, 0.4 * b.height))

    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure

    # Occupied cells lightly shaded; the rectangle marks the original extent
    occupied = (snapshot.cells != SPACE).astype(np.float64)
    ax.imshow(
        occupied,
        origin="upper",
        cmap="Greys",
        vmin=0.0,
        vmax=4.0,
        extent=(b.x0 - 0.5, b.x0 + b.width - 0.5, b.y0 + b.height - 0.5, b.y0 - 0.5),
    )
    ext = snapshot.extent
    ax.add_patch(plt.Rectangle(
        (ext.x0 - 0.5, ext.y0 - 0.5), ext.width, ext.height,
        fill=False, edgecolor="black", linewidth=1.0,
    ))

    for (row, col), code in np.ndenumerate(snapshot.cells):
        if code == SPACE:
            continue
        try:
            glyph = chr(int(code))
        except (ValueError, OverflowError):
            glyph = "?"
        ax.text(
            b.x0 + col, b.y0 + row, glyph,
            ha="center", va="center", fontsize=fontsize, family="monospace",
        )

    if show_pointers:
        for i, p in enumerate(snapshot.pointers):
            color = POINTER_COLORS[i % len(POINTER_COLORS)]
            x, y = p.position
            ax.add_patch(plt.Rectangle(
                (x - 0.5, y - 0.5), 1, 1,
                fill=True, alpha=0.35, facecolor=color, edgecolor=color,
            ))
            ax.annotate(
                f"{p.id}{_ARROWS[p.direction_name]}",
                (x, y), xytext=(0, 9), textcoords="offset points",
                ha="center", fontsize=fontsize * 0.7, color=color,
            )

    if title is None:
        status = f" ({snapshot.halt_reason})" if snapshot.halted else ""
        title = f"Tick {snapshot.tick}{status}"

    ax.set_title(title)
    ax.set_xlabel("x")
    ax.set_ylabel("y")
    return fig, ax


def plot_visits(
    trace: "ExecutionTrace",
    title: str = "Cell visits",
    cmap=None,
    ax: Axes | None = None,
    colorbar: bool = True,
    figsize: tuple[float, float] = (8, 6),
) -> tuple[Figure, Axes]:
    """
    Plot how often pointers stood on each cell.

    Args:
        trace: ExecutionTrace with recorded positions
        title: Plot title
        cmap: Colormap (CMAP_VISITS if None)
        ax: Existing axes (creates new if None)
        colorbar: Whether to add a colorbar
        figsize: Figure size if creating new figure

    Returns:
        (fig, ax) tuple
    """
    if cmap is None:
        cmap = CMAP_VISITS

    if ax is None:
        fig, ax = plt.subplots(figsize=figsize)
    else:
        fig = ax.figure

    counts = trace.visit_counts()
    im = ax.imshow(counts, origin="upper", cmap=cmap, aspect="equal")

    if colorbar:
        plt.colorbar(im, ax=ax, fraction=0.046, pad=0.04)

    ax.set_title(title)
    ax.set_xlabel("x")
    ax.set_ylabel("y")
    return fig, ax


def save_figure(fig: Figure, path: str | Path, dpi: int = 150, **kwargs) -> None:
    """Save figure to file."""
    fig.savefig(path, dpi=dpi, bbox_inches="tight", **kwargs)
