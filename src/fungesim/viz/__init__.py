"""
Visualization utilities.

- Grid plots with pointer markers
- Visit heatmaps
- Pointer path and population plots
"""

from fungesim.viz.grid import (
    plot_grid,
    plot_visits,
    save_figure,
)

from fungesim.viz.trajectories import (
    plot_pointer_paths,
    plot_population,
)

__all__ = [
    "plot_grid",
    "plot_visits",
    "save_figure",
    "plot_pointer_paths",
    "plot_population",
]
