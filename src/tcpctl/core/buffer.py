"""
Growable receive buffer.

TCP delivers bytes in arbitrary chunks, so every receive policy collects
into one of these until its stop condition is met. The accumulator keeps
an explicit *capacity* which decides how much the next recv() asks the
kernel for:

    capacity  4096 ──► full ──► 8192 ──► full ──► 16384 ...
                                   (never past the cap, when there is one)

Only two mutating operations exist: append() and take(). Bytes already
accumulated are never dropped or reordered.
"""

from typing import Optional


class ByteAccumulator:
    """
    Owned byte container with amortized doubling growth.

    Args:
        initial_capacity: Starting read size.
        cap: Optional hard limit on total bytes. Capacity never exceeds it.
    """

    def __init__(self, initial_capacity: int = 4096, cap: Optional[int] = None):
        if initial_capacity < 1:
            raise ValueError("initial_capacity must be >= 1")
        if cap is not None and cap < 0:
            raise ValueError("cap must be >= 0")
        self._data = bytearray()
        self._cap = cap
        self._capacity = initial_capacity if cap is None else max(1, min(initial_capacity, cap))

    def __len__(self) -> int:
        return len(self._data)

    def __bool__(self) -> bool:
        return bool(self._data)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def cap(self) -> Optional[int]:
        return self._cap

    @property
    def full(self) -> bool:
        """True once the cap (if any) has been reached."""
        return self._cap is not None and len(self._data) >= self._cap

    @property
    def room(self) -> int:
        """
        How many bytes the next read should request.

        Grows the capacity first when the buffer is already at capacity,
        so a read never asks for zero bytes unless the cap is reached.
        """
        if self.full:
            return 0
        if len(self._data) >= self._capacity:
            self._grow()
        return self._capacity - len(self._data)

    def append(self, chunk: bytes) -> None:
        """
        Add bytes to the end. Caller must respect ``room`` when a cap is set;
        anything beyond the cap is a programming error.
        """
        if self._cap is not None and len(self._data) + len(chunk) > self._cap:
            raise ValueError(
                f"append of {len(chunk)} bytes would exceed cap {self._cap}"
            )
        self._data += chunk
        while len(self._data) > self._capacity:
            self._grow()

    def find(self, needle: bytes, start: int = 0) -> int:
        return self._data.find(needle, start)

    def take(self) -> bytes:
        """Hand over the final contents and reset to empty."""
        data = bytes(self._data)
        self._data.clear()
        return data

    def _grow(self) -> None:
        new_capacity = self._capacity * 2
        if self._cap is not None:
            new_capacity = min(new_capacity, self._cap)
        self._capacity = max(new_capacity, len(self._data))
