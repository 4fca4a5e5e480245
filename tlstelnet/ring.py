"""Circular byte buffer used for the network and terminal queues.

The buffer has two parts::

    full:  [consume, supply)
    empty: [supply, consume)

When ``consume == supply`` a clock decides whether the ring is full or
empty. The clock is shared by every ring, and a ring that has never been
touched counts as empty.
"""

from __future__ import annotations

import itertools
from typing import Callable, Optional

Encryptor = Callable[[bytes], bytes]


class Ring:
    """A fixed-size ring buffer with an optional urgent-data mark."""

    _clock = itertools.count(1)

    def __init__(self, size: int) -> None:
        if size <= 0:
            raise ValueError("ring size must be positive")
        self.size = size
        self._buffer = bytearray(size)
        self._consume = 0
        self._supply = 0
        self._mark: Optional[int] = None
        self._clearto: Optional[int] = None
        self._consumetime = 0
        self._supplytime = 0

    # Internal arithmetic on buffer offsets.

    def _subtract(self, a: int, b: int) -> int:
        diff = a - b
        return diff if diff >= 0 else diff + self.size

    def _increment(self, a: int, count: int) -> int:
        pos = a + count
        return pos if pos < self.size else pos - self.size

    def _decrement(self, a: int, count: int) -> int:
        pos = a - count
        return pos if pos >= 0 else pos + self.size

    def _is_empty(self) -> bool:
        return self._consume == self._supply and self._consumetime >= self._supplytime

    def _is_full(self) -> bool:
        return self._supply == self._consume and self._supplytime > self._consumetime

    # Mark routines.

    def mark(self) -> None:
        """Mark the most recently supplied byte."""
        self._mark = self._decrement(self._supply, 1)

    def at_mark(self) -> bool:
        """Return True when the next byte to consume is the marked one."""
        return self._mark == self._consume

    def clear_mark(self) -> None:
        """Forget any mark set on the ring."""
        self._mark = None

    # State transitions.

    def supplied(self, count: int) -> None:
        """Record that ``count`` bytes were written at the supply point."""
        self._supply = self._increment(self._supply, count)
        self._supplytime = next(Ring._clock)

    def consumed(self, count: int) -> None:
        """Record that ``count`` bytes were taken from the consume point."""
        if count == 0:
            return
        if self._mark is not None and self._subtract(self._mark, self._consume) < count:
            self._mark = None
        if self._clearto is not None:
            end = self._consume + count
            if self._consume < self._clearto <= end or end > self.size:
                self._clearto = None
        self._consume = self._increment(self._consume, count)
        self._consumetime = next(Ring._clock)
        # Encourage empty_consecutive() to be large.
        if self._is_empty():
            self._consume = self._supply = 0

    # State queries.

    def empty_count(self) -> int:
        """Number of bytes that may still be supplied."""
        if self._is_empty():
            return self.size
        return self._subtract(self._consume, self._supply)

    def empty_consecutive(self) -> int:
        """Number of contiguous bytes that may be supplied at once."""
        if self._consume < self._supply or self._is_empty():
            return self._subtract(self.size, self._supply)
        return self._subtract(self._consume, self._supply)

    def full_count(self) -> int:
        """Number of bytes available to consume, stopping at the mark."""
        if self._mark is None or self._mark == self._consume:
            if self._is_full():
                return self.size
            return self._subtract(self._supply, self._consume)
        return self._subtract(self._mark, self._consume)

    def full_consecutive(self) -> int:
        """Number of contiguous bytes available to consume, stopping at the mark."""
        if self._mark is None or self._mark == self._consume:
            if self._supply < self._consume or self._is_full():
                return self._subtract(self.size, self._consume)
            return self._subtract(self._supply, self._consume)
        if self._mark < self._consume:
            return self._subtract(self.size, self._consume)
        return self._subtract(self._mark, self._consume)

    # Data movement.

    def supply_data(self, data: bytes) -> None:
        """Copy ``data`` into the ring, wrapping around as needed."""
        view = memoryview(bytes(data))
        if len(view) > self.empty_count():
            raise ValueError("not enough room in ring buffer")
        while view:
            chunk = min(len(view), self.empty_consecutive())
            self._buffer[self._supply:self._supply + chunk] = view[:chunk]
            self.supplied(chunk)
            view = view[chunk:]

    def peek_consecutive(self, count: int) -> bytes:
        """Return up to ``count`` contiguous bytes at the consume point."""
        count = min(count, self.full_consecutive())
        return bytes(self._buffer[self._consume:self._consume + count])

    def _apply(self, start: int, end: int, encryptor: Encryptor) -> None:
        if start >= end:
            return
        result = encryptor(bytes(self._buffer[start:end]))
        if len(result) != end - start:
            raise ValueError("encryptor must return data of the same length")
        self._buffer[start:end] = result

    def encrypt(self, encryptor: Encryptor) -> None:
        """Pass the not yet encrypted part of the queued data through ``encryptor``."""
        if self._is_empty() or self._clearto == self._supply:
            return
        start = self._clearto if self._clearto is not None else self._consume
        supply = self._supply
        if supply <= start:
            self._apply(start, self.size, encryptor)
            self._apply(0, supply, encryptor)
        else:
            self._apply(start, supply, encryptor)
        self._clearto = self._supply

    def clearto(self) -> None:
        """Declare everything currently queued as already processed."""
        self._clearto = None if self._is_empty() else self._supply