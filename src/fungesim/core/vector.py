"""
Positions and directions on the program grid.

Coordinates follow the source text: x is the column, y is the row, and y
grows downward. Directions are always one of the four cardinal unit
vectors; diagonals never occur.
"""

from __future__ import annotations

Position = tuple[int, int]
Direction = tuple[int, int]


NORTH: Direction = (0, -1)   # North: y decreases
SOUTH: Direction = (0, 1)    # South: y increases
EAST: Direction = (1, 0)     # East: x increases
WEST: Direction = (-1, 0)    # West: x decreases

# Order matters: random direction choice indexes into this tuple
CARDINALS: tuple[Direction, ...] = (NORTH, SOUTH, EAST, WEST)

DIRECTION_NAMES = {
    NORTH: "N",
    SOUTH: "S",
    EAST: "E",
    WEST: "W",
}


def turn_left(d: Direction) -> Direction:
    """Rotate 90° counter-clockwise (as seen on screen)."""
    dx, dy = d
    return dy, -dx


def turn_right(d: Direction) -> Direction:
    """Rotate 90° clockwise (as seen on screen)."""
    dx, dy = d
    return -dy, dx


def reflect(d: Direction) -> Direction:
    dx, dy = d
    return -dx, -dy


def offset(pos: Position, d: Direction, steps: int = 1) -> Position:
    """Position reached by moving `steps` times along d, without wrapping."""
    return pos[0] + d[0] * steps, pos[1] + d[1] * steps
