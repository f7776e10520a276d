"""
=============================================================================
HANDLE TABLE
=============================================================================

Callers identify sockets by a plain integer: the OS file descriptor
number. The table maps those numbers back to the socket objects this
engine owns.

    ┌────────┬────────────────────┬────────────┬────────────────────────┐
    │ handle │ socket             │ kind       │ pushback               │
    ├────────┼────────────────────┼────────────┼────────────────────────┤
    │   5    │ <socket fd=5 ...>  │ LISTENER   │                        │
    │   6    │ <socket fd=6 ...>  │ CONNECTION │ b"second line\n"       │
    └────────┴────────────────────┴────────────┴────────────────────────┘

    closed: {4}

Three different lookups fail in three different ways:

    handle never seen (or negative)   → InvalidHandleError
    handle we closed earlier          → ClosedHandleError
    listener used for send/recv       → WrongHandleKindError

The OS is free to hand out descriptor 4 again for a brand new socket.
When that happens the new socket is registered under 4 and the number
leaves the closed set; the old socket object is never reachable again.

=============================================================================
OWNERSHIP
=============================================================================

A socket opened in the middle of an operation (a connect candidate, a
listen candidate) is wrapped in OwnedSocket until it is handed to the
table. If anything fails before the hand-off, leaving the ``with`` block
closes it. The hand-off itself (adopt) happens once.

    with OwnedSocket(socket.socket(...)) as owned:
        owned.sock.connect(...)          # raises → socket closed
        handle = table.adopt(owned, HandleKind.CONNECTION)
                                         # ownership moves to the table

=============================================================================
"""

import logging
import socket
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set

from ..errors import (
    ClosedHandleError,
    InvalidHandleError,
    OperationalFailure,
    WrongHandleKindError,
)


logger = logging.getLogger(__name__)


class HandleKind(Enum):
    CONNECTION = "connection"
    LISTENER = "listener"


@dataclass
class HandleEntry:
    """
    One live socket owned by the engine.

    Attributes:
        handle: Descriptor number the caller uses.
        sock: The socket object.
        kind: CONNECTION or LISTENER.
        peer: Numeric "addr:port" of the remote end, when known.
        pushback: Bytes already read from the kernel but not yet handed
                  to a caller (left over after a line terminator).
    """

    handle: int
    sock: socket.socket
    kind: HandleKind
    peer: Optional[str] = None
    opened_at: float = field(default_factory=time.time)
    pushback: bytearray = field(default_factory=bytearray, repr=False)


class OwnedSocket:
    """Closes the wrapped socket on exit unless it was adopted."""

    def __init__(self, sock: socket.socket):
        self.sock = sock
        self._adopted = False

    @property
    def adopted(self) -> bool:
        return self._adopted

    def detach(self) -> socket.socket:
        if self._adopted:
            raise RuntimeError("socket ownership already transferred")
        self._adopted = True
        return self.sock

    def __enter__(self) -> "OwnedSocket":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if not self._adopted:
            try:
                self.sock.close()
            except OSError:
                pass  # Closing a half-built socket; the original error wins
        return False


class HandleTable:
    """
    Registry of every socket the engine currently owns.

    A lock guards the dictionaries so that operations on *different*
    handles from different threads stay consistent. Two threads using the
    *same* handle at once is the caller's problem.
    """

    def __init__(self):
        self._entries: Dict[int, HandleEntry] = {}
        self._closed: Set[int] = set()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, handle: int) -> bool:
        return handle in self._entries

    def handles(self) -> List[int]:
        with self._lock:
            return sorted(self._entries)

    def adopt(self, owned: OwnedSocket, kind: HandleKind, peer: Optional[str] = None) -> int:
        """Take ownership of a freshly opened socket and return its handle."""
        sock = owned.sock
        handle = sock.fileno()
        with self._lock:
            if handle in self._entries:
                # The OS would never hand out a live descriptor twice.
                raise RuntimeError(f"handle {handle} is already registered")
            owned.detach()
            self._entries[handle] = HandleEntry(handle=handle, sock=sock, kind=kind, peer=peer)
            self._closed.discard(handle)
        logger.debug(f"Registered {kind.value} handle {handle}")
        return handle

    def lookup(self, handle: int, kind: Optional[HandleKind] = None) -> HandleEntry:
        """
        Find a live entry.

        Raises:
            InvalidHandleError: Never registered, or negative.
            ClosedHandleError: Registered once, closed since.
            WrongHandleKindError: Exists but is not of ``kind``.
        """
        with self._lock:
            entry = self._entries.get(handle)
            was_closed = handle in self._closed
        if entry is None:
            if handle >= 0 and was_closed:
                raise ClosedHandleError(handle)
            raise InvalidHandleError(handle)
        if kind is not None and entry.kind is not kind:
            raise WrongHandleKindError(handle, kind.value, entry.kind.value)
        return entry

    def close(self, handle: int) -> None:
        """
        Release and close a handle. A second close of the same handle
        raises ClosedHandleError rather than silently succeeding.
        """
        with self._lock:
            entry = self._entries.pop(handle, None)
            if entry is None:
                was_closed = handle in self._closed
            else:
                self._closed.add(handle)

        if entry is None:
            if handle >= 0 and was_closed:
                raise ClosedHandleError(handle)
            raise InvalidHandleError(handle)

        if entry.pushback:
            logger.debug(f"Discarding {len(entry.pushback)} unread bytes on handle {handle}")
        try:
            entry.sock.close()
        except OSError as e:
            raise OperationalFailure.from_os_error("close", e)
        logger.debug(f"Closed {entry.kind.value} handle {handle}")

    def close_all(self) -> int:
        """Close every live handle. Returns how many were closed."""
        closed = 0
        for handle in self.handles():
            try:
                self.close(handle)
                closed += 1
            except OperationalFailure as e:
                logger.warning(f"Failed to close handle {handle}: {e}")
        return closed
