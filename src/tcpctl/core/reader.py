"""
=============================================================================
FRAMED READER
=============================================================================

TCP is a byte stream, not a message protocol. recv() hands back whatever
the kernel happens to have, so a caller that wants "one line" or "exactly
N bytes" needs a loop that keeps reading until its stop condition holds.

=============================================================================
TERMINATION POLICIES
=============================================================================

    ┌─────────┬──────────────────────────────┬─────────────────────────────┐
    │  Mode   │  Stops when                  │  EOF before that            │
    ├─────────┼──────────────────────────────┼─────────────────────────────┤
    │  line   │  "\\n" seen (kept in result)  │  partial line returned      │
    │         │  or cap reached              │                             │
    │  bytes  │  exactly cap bytes           │  short read returned        │
    │  all    │  EOF or cap reached          │  (EOF is the normal stop)   │
    └─────────┴──────────────────────────────┴─────────────────────────────┘

=============================================================================
THE SHARED LOOP
=============================================================================

    ┌──────────────────────────────────────────────────────────────────┐
    │   loop:                                                          │
    │       wait for POLLIN up to the deadline                         │
    │         ├── timed out, nothing collected  → OperationTimeout      │
    │         ├── timed out, some bytes         → return them (success) │
    │         ├── error                         → OperationalFailure    │
    │         └── ready                                                │
    │               recv(room)                                         │
    │                 ├── EINTR / EAGAIN  → back to the wait (spurious) │
    │                 ├── other OSError   → OperationalFailure          │
    │                 ├── b""             → EOF, return what we have    │
    │                 └── data            → append, check stop rule     │
    └──────────────────────────────────────────────────────────────────┘

The deadline bounds each wait, i.e. how long the peer may stay silent.
A peer that keeps trickling bytes keeps the read alive.

=============================================================================
NO LOST BYTES
=============================================================================

Line mode reads in chunks, so one recv() can return the end of this line
AND the start of the next one:

    recv() → b"ping\\npo"
              ^^^^^^      returned now
                    ^^    kept as pushback on the handle

The next read on that handle (any mode) starts from the pushback before
touching the socket again.

=============================================================================
"""

import logging
import socket
from enum import Enum
from typing import Optional

from ..errors import OperationalFailure, OperationTimeout, UsageError
from .buffer import ByteAccumulator
from .deadline import Deadline, INFINITE
from .readiness import wait_readable


logger = logging.getLogger(__name__)


class ReceiveMode(Enum):
    LINE = "line"
    BYTES = "bytes"
    ALL = "all"


LINE_TERMINATOR = b"\n"


class FramedReader:
    """
    Pulls bytes from a socket under one of the three termination policies.

    Args:
        line_chunk_size: recv() size used in line mode.
        initial_buffer_size: Starting capacity for the accumulator.
        default_bytes_cap: Byte count for bytes mode when none is given.
    """

    def __init__(
        self,
        line_chunk_size: int = 1024,
        initial_buffer_size: int = 4096,
        default_bytes_cap: int = 4096,
    ):
        self.line_chunk_size = line_chunk_size
        self.initial_buffer_size = initial_buffer_size
        self.default_bytes_cap = default_bytes_cap

    def receive(
        self,
        sock: socket.socket,
        mode: ReceiveMode,
        deadline: Deadline = INFINITE,
        cap: Optional[int] = None,
        pushback: Optional[bytearray] = None,
    ) -> bytes:
        """
        Read from ``sock`` according to ``mode``.

        Args:
            sock: Connected socket.
            mode: Termination policy.
            deadline: Budget for each readiness wait.
            cap: Maximum bytes (line/all) or exact count (bytes).
                 None or 0 means no cap; bytes mode then uses
                 default_bytes_cap.
            pushback: Per-handle leftover bytes; consumed first and
                      refilled with anything read past a line end.

        Returns:
            The bytes read. May be empty only when the peer closed the
            stream before sending anything.

        Raises:
            OperationTimeout: Deadline elapsed with zero bytes collected.
            OperationalFailure: The wait or the read failed.
        """
        if cap is not None and cap < 0:
            raise UsageError(f"recv: cap must be >= 0, got {cap}")
        if not cap:
            cap = None
        if pushback is None:
            pushback = bytearray()

        if mode is ReceiveMode.LINE:
            return self._read_line(sock, deadline, cap, pushback)
        if mode is ReceiveMode.BYTES:
            return self._read_bytes(sock, deadline, cap or self.default_bytes_cap, pushback)
        return self._read_all(sock, deadline, cap, pushback)

    # =========================================================================
    # POLICIES
    # =========================================================================

    def _read_line(self, sock, deadline: Deadline, cap: Optional[int], pushback: bytearray) -> bytes:
        initial = self.initial_buffer_size if cap is None else min(cap, self.initial_buffer_size)
        buf = ByteAccumulator(initial, cap)

        # A complete line may already be waiting in the pushback.
        if self._feed_line(buf, bytes(pushback), pushback, replace=True):
            return buf.take()

        while not buf.full:
            size = self.line_chunk_size
            if cap is not None:
                size = min(size, cap - len(buf))
            chunk = self._read_chunk(sock, size, deadline, collected=len(buf))
            if not chunk:
                break  # EOF, or deadline after partial data
            if self._feed_line(buf, chunk, pushback, replace=False):
                break

        return buf.take()

    def _feed_line(self, buf: ByteAccumulator, data: bytes, pushback: bytearray, replace: bool) -> bool:
        """
        Move ``data`` into ``buf`` up to and including the first newline
        (or until the cap). Whatever is left over becomes the pushback.

        Returns True when the line is complete or the cap is reached.
        """
        if replace:
            pushback.clear()
        if not data:
            return buf.full

        limit = len(data)
        if buf.cap is not None:
            limit = min(limit, buf.cap - len(buf))

        end = data.find(LINE_TERMINATOR, 0, limit)
        take = end + 1 if end >= 0 else limit

        buf.append(data[:take])
        if take < len(data):
            pushback[0:0] = data[take:]
        return end >= 0 or buf.full

    def _read_bytes(self, sock, deadline: Deadline, need: int, pushback: bytearray) -> bytes:
        buf = ByteAccumulator(min(self.initial_buffer_size, need), need)
        self._drain_pushback(buf, pushback)

        while not buf.full:
            chunk = self._read_chunk(sock, buf.room, deadline, collected=len(buf))
            if not chunk:
                break  # short read: EOF, or deadline after partial data
            buf.append(chunk)

        return buf.take()

    def _read_all(self, sock, deadline: Deadline, cap: Optional[int], pushback: bytearray) -> bytes:
        buf = ByteAccumulator(self.initial_buffer_size, cap)
        self._drain_pushback(buf, pushback)

        while not buf.full:
            chunk = self._read_chunk(sock, buf.room, deadline, collected=len(buf))
            if not chunk:
                break
            buf.append(chunk)

        return buf.take()

    @staticmethod
    def _drain_pushback(buf: ByteAccumulator, pushback: bytearray) -> None:
        if not pushback:
            return
        limit = len(pushback) if buf.cap is None else min(len(pushback), buf.cap)
        buf.append(bytes(pushback[:limit]))
        del pushback[:limit]

    # =========================================================================
    # ONE READ
    # =========================================================================

    def _read_chunk(self, sock, size: int, deadline: Deadline, collected: int) -> bytes:
        """
        Wait for readability, then recv() up to ``size`` bytes.

        Returns:
            Data, or b"" for EOF, or b"" when the deadline elapsed after
            ``collected`` > 0 bytes (the caller stops either way).

        Raises:
            OperationTimeout: Deadline elapsed and ``collected`` == 0.
            OperationalFailure: Wait or read error.
        """
        while True:
            outcome = wait_readable(sock, deadline)
            if outcome.timed_out:
                if collected == 0:
                    raise OperationTimeout(f"recv: timed out after {deadline}")
                logger.debug(f"recv: deadline reached with {collected} bytes collected")
                return b""
            if not outcome.ready:
                raise OperationalFailure.from_os_error("recv: poll", outcome.error)

            try:
                return sock.recv(size)
            except (InterruptedError, BlockingIOError):
                # Spurious wakeup; go back to waiting.
                continue
            except OSError as e:
                raise OperationalFailure.from_os_error("recv", e)
