"""
fungesim: 2D Funge-98 style interpreter with concurrent instruction pointers

A program is a grid of characters. Instruction pointers walk the grid on a
torus, each with its own data stack, and a scheduler steps every live
pointer once per tick until none remain.

Core concepts:
- The grid is shared and mutable: writes are seen by later pointers in the same tick
- Every pointer owns exactly one stack (LIFO or FIFO)
- Splitting and dying take effect at tick boundaries only
- The engine never blocks: input reads poll, the driver decides the pacing
"""

__version__ = "0.1.0"
