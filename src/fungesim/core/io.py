"""
Program I/O buffers.

Input is polled, never awaited: the driver feeds text whenever it has
some, and a read with nothing buffered returns NO_DATA straight away.
Output accumulates as text for the driver to display or drain.
"""

from __future__ import annotations
from collections import deque
import logging

logger = logging.getLogger(__name__)


class _NoData:
    """Sentinel type for a read that found nothing buffered."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_DATA"

    def __bool__(self) -> bool:
        return False


NO_DATA = _NoData()

_DIGITS = "0123456789"


class ProgramIO:
    """
    Input and output buffers shared by every pointer of one program.

    Structure:
    - Pending input characters, consumed front to back
    - A closed flag: once closed and empty, reads report end of input
    - Output chunks in the order pointers wrote them
    """

    def __init__(self, initial_input: str = ""):
        self._input: deque[str] = deque(initial_input)
        self._closed = False
        self._output: list[str] = []
        self._drained = 0

    # ── input ──────────────────────────────────────────────────────

    def feed(self, text: str) -> None:
        """Append text to the pending input."""
        if self._closed:
            raise ValueError("Cannot feed input after close_input()")
        self._input.extend(text)

    def close_input(self) -> None:
        """Mark the input stream as finished; later reads past the end report EOF."""
        self._closed = True

    @property
    def input_closed(self) -> bool:
        return self._closed

    @property
    def pending_input(self) -> str:
        return "".join(self._input)

    def at_eof(self) -> bool:
        """True once the stream is closed and nothing is left to read."""
        return self._closed and not self._input

    def read_char(self) -> int | _NoData:
        """Pop one character as its code value, or NO_DATA."""
        if not self._input:
            return NO_DATA
        return ord(self._input.popleft())

    def read_int(self) -> int | _NoData:
        """
        Read a decimal integer.

        Characters before the first digit are discarded; a '-' directly in
        front of the first digit makes the number negative. The run of
        digits is consumed and the terminator after it stays buffered.

        A number is only complete once a non-digit follows it or the input
        is closed. Until then NO_DATA is returned and the digits (and a
        leading '-') stay buffered for the next read, so a number fed one
        keystroke at a time is read whole.

        Returns NO_DATA if the buffer holds no digit at all, after
        discarding what it did hold.
        """
        negative = False
        while self._input and self._input[0] not in _DIGITS:
            if self._input[0] == "-" and len(self._input) == 1 and not self._closed:
                # May be the sign of a number still being typed
                return NO_DATA
            ch = self._input.popleft()
            negative = ch == "-"

        if not self._input:
            return NO_DATA

        n_digits = 0
        for ch in self._input:
            if ch not in _DIGITS:
                break
            n_digits += 1

        if n_digits == len(self._input) and not self._closed:
            if negative:
                self._input.appendleft("-")
            return NO_DATA

        value = int("".join(self._input.popleft() for _ in range(n_digits)))
        return -value if negative else value

    # ── output ─────────────────────────────────────────────────────

    def write(self, text: str) -> None:
        self._output.append(text)

    def write_int(self, value: int) -> None:
        self.write(str(value))

    def write_char(self, code: int) -> None:
        """Write a character; codes that are not valid code points write a space."""
        try:
            self.write(chr(code))
        except (ValueError, OverflowError):
            logger.debug("Writing space for invalid code point %d", code)
            self.write(" ")

    @property
    def output(self) -> str:
        """Everything written since the last reset."""
        return "".join(self._output)

    def drain_output(self) -> str:
        """Return the output written since the previous drain."""
        text = "".join(self._output[self._drained:])
        self._drained = len(self._output)
        return text

    def reset(self, initial_input: str = "") -> None:
        self._input = deque(initial_input)
        self._closed = False
        self._output = []
        self._drained = 0
