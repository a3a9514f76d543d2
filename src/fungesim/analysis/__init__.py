"""
Analysis layer: everything computed FROM a run, never fed back into it.

- ExecutionTrace: pointer paths, visit heatmap, population over time
"""

from fungesim.analysis.trace import ExecutionTrace

__all__ = [
    "ExecutionTrace",
]
