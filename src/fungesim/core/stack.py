"""
CellStack: the per-pointer integer stack.

Push always appends to the back. The mode decides which end pop takes:
- LIFO: the back (an ordinary stack)
- FIFO: the front (a queue)

Popping an empty stack yields 0. Underflow is never an error.

The `l` instruction reorders the top of the stack by a Lehmer code. The
helpers at the bottom of this module convert between a rank n and the
permutation it names in the factorial number system.
"""

from __future__ import annotations
from collections import deque
from enum import Enum
from typing import Iterable, Sequence
import logging

logger = logging.getLogger(__name__)


class StackMode(Enum):
    LIFO = "lifo"
    FIFO = "fifo"


class CellStack:
    """
    Integer stack with switchable pop end.

    "Top" always means the end that pop() takes from, so in FIFO mode the
    top is the oldest value. to_list() is independent of the mode and
    returns values in push order (bottom first).
    """

    def __init__(self, values: Iterable[int] = (), mode: StackMode = StackMode.LIFO):
        self._items: deque[int] = deque(int(v) for v in values)
        self.mode = mode

    def push(self, value: int) -> None:
        self._items.append(int(value))

    def pop(self) -> int:
        if not self._items:
            return 0
        if self.mode is StackMode.LIFO:
            return self._items.pop()
        return self._items.popleft()

    def peek(self) -> int:
        if not self._items:
            return 0
        if self.mode is StackMode.LIFO:
            return self._items[-1]
        return self._items[0]

    def size(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def set_mode(self, mode: StackMode) -> None:
        self.mode = mode

    def clear(self) -> None:
        self._items.clear()

    def copy(self) -> CellStack:
        return CellStack(self._items, mode=self.mode)

    def to_list(self) -> list[int]:
        """Values in push order, bottom first."""
        return list(self._items)

    def top(self, k: int) -> list[int]:
        """The k values nearest the pop end, deepest first."""
        k = min(k, len(self._items))
        if k == 0:
            return []
        if self.mode is StackMode.LIFO:
            return list(self._items)[-k:]
        return list(self._items)[:k][::-1]

    def _replace_top(self, values: Sequence[int]) -> None:
        k = len(values)
        items = list(self._items)
        if self.mode is StackMode.LIFO:
            items[len(items) - k:] = values
        else:
            items[:k] = list(values)[::-1]
        self._items = deque(items)

    def permute(self, n: int) -> bool:
        """
        Reorder the top k values by the permutation of rank n.

        k is the smallest integer with n < k!. The top k values are taken
        deepest first, so rank 0 is the identity and rank 1 swaps the two
        topmost values.

        An index that is negative, or that needs more values than the stack
        holds, leaves the stack untouched.

        Returns:
            True if the stack was reordered
        """
        if n < 0:
            logger.debug("Ignoring negative permutation index %d", n)
            return False

        k = factorial_base_width(n)
        if k > len(self._items):
            logger.debug(
                "Ignoring permutation index %d: needs %d values, stack holds %d",
                n, k, len(self._items),
            )
            return False

        segment = self.top(k)
        perm = permutation_from_rank(n, k)
        self._replace_top([segment[i] for i in perm])
        return True

    def __repr__(self) -> str:
        return f"CellStack({self.to_list()!r}, mode={self.mode.name})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CellStack):
            return NotImplemented
        return self.mode is other.mode and self._items == other._items


# ═══════════════════════════════════════════════════════════════
# Lehmer code helpers
# ═══════════════════════════════════════════════════════════════

def factorial_base_width(n: int) -> int:
    """Smallest k >= 1 with n < k!."""
    if n < 0:
        raise ValueError(f"Permutation rank must be non-negative, got {n}")
    k, fact = 1, 1
    while n >= fact:
        k += 1
        fact *= k
    return k


def lehmer_code(n: int, k: int) -> list[int]:
    """
    Decode rank n into a k-digit Lehmer code.

    Successive division by 1, 2, ..., k yields the factorial-base digits,
    least significant first; the code reads them most significant first,
    so code[i] lies in [0, k - 1 - i].
    """
    digits = []
    for radix in range(1, k + 1):
        digits.append(n % radix)
        n //= radix
    if n:
        raise ValueError(f"Rank does not fit in {k} factorial digits")
    return digits[::-1]


def permutation_from_rank(n: int, k: int) -> list[int]:
    """Permutation of range(k) with lexicographic rank n."""
    available = list(range(k))
    return [available.pop(digit) for digit in lehmer_code(n, k)]


def permutation_rank(perm: Sequence[int]) -> int:
    """Lexicographic rank of a permutation of range(len(perm))."""
    available = sorted(perm)
    rank = 0
    for value in perm:
        idx = available.index(value)
        rank = rank * len(available) + idx
        available.pop(idx)
    return rank


def inverse_permutation(perm: Sequence[int]) -> list[int]:
    inverse = [0] * len(perm)
    for i, p in enumerate(perm):
        inverse[p] = i
    return inverse
