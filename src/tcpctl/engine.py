"""
=============================================================================
SOCKET ENGINE
=============================================================================

The typed facade over the core primitives. One SocketEngine owns one
handle table; every socket it hands out is identified by an integer.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SocketEngine                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   connect(host, port, ...)  ──► connector.open_connection()          │
    │   listen(port, ...)         ──► listener.open_listener()             │
    │   accept(handle, deadline)  ──► listener.accept_connection()         │
    │        │                                                             │
    │        └──► HandleTable.adopt()     new handle (int) back to caller  │
    │                                                                      │
    │   send(handle, data)        ──► writer.send_all()                    │
    │   recv(handle, mode, ...)   ──► FramedReader.receive()               │
    │   close(handle)             ──► HandleTable.close()                  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
USAGE
=============================================================================

    from tcpctl import SocketEngine, Deadline, ReceiveMode

    with SocketEngine() as engine:
        fd = engine.connect("example.org", 80, deadline=Deadline.bounded(3000))
        engine.send(fd, b"GET / HTTP/1.0\\r\\nHost: example.org\\r\\n\\r\\n")
        status_line = engine.recv(fd, ReceiveMode.LINE, Deadline.bounded(3000))
        engine.close(fd)

=============================================================================
THREADING
=============================================================================

Every call runs on the calling thread and returns before the next one
starts; there are no background threads. Calls on *different* handles
from different threads are fine. Two threads on the *same* handle at the
same time is undefined and left to the caller to prevent.

=============================================================================
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Union

from .config import EngineConfig
from .core import (
    AddressFamily,
    Deadline,
    FramedReader,
    HandleKind,
    HandleTable,
    INFINITE,
    OwnedSocket,
    ReceiveMode,
    accept_connection,
    open_connection,
    open_listener,
    send_all,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AcceptResult:
    """A freshly accepted connection handle and its numeric peer string."""
    handle: int
    peer: str


class SocketEngine:
    """
    Connection / IO / timeout engine.

    Args:
        config: Engine tunables. Validated eagerly.
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.config.validate()

        self._handles = HandleTable()
        self._reader = FramedReader(
            line_chunk_size=self.config.line_chunk_size,
            initial_buffer_size=self.config.initial_buffer_size,
            default_bytes_cap=self.config.default_bytes_cap,
        )

    @property
    def handles(self) -> HandleTable:
        return self._handles

    def open_handles(self) -> List[int]:
        return self._handles.handles()

    # =========================================================================
    # CONNECTIONS
    # =========================================================================

    def connect(
        self,
        host: str,
        port: Union[int, str],
        family: AddressFamily = AddressFamily.UNSPECIFIED,
        nonblocking: bool = False,
        deadline: Deadline = INFINITE,
    ) -> int:
        """
        Open a TCP connection and return its handle.

        Raises:
            OperationalFailure: Resolution failed or every candidate failed.
            OperationTimeout: The deadline elapsed during the connect.
        """
        sock = open_connection(host, port, family, nonblocking=nonblocking, deadline=deadline)
        with OwnedSocket(sock) as owned:
            return self._handles.adopt(owned, HandleKind.CONNECTION)

    def send(self, handle: int, data: bytes) -> None:
        """Write all of ``data``; no deadline. Raises OperationalFailure."""
        entry = self._handles.lookup(handle, HandleKind.CONNECTION)
        send_all(entry.sock, data)

    def recv(
        self,
        handle: int,
        mode: ReceiveMode = ReceiveMode.LINE,
        deadline: Deadline = INFINITE,
        cap: Optional[int] = None,
    ) -> bytes:
        """
        Read under ``mode`` until its stop rule, EOF, or the deadline.

        Returns:
            The bytes read. Partial data at the deadline is a success.

        Raises:
            OperationTimeout: Nothing at all arrived before the deadline.
                The handle stays usable.
            OperationalFailure: Wait/read error or bad handle.
        """
        entry = self._handles.lookup(handle, HandleKind.CONNECTION)
        data = self._reader.receive(entry.sock, mode, deadline, cap, entry.pushback)
        logger.debug(f"recv: {len(data)} bytes from handle {handle} ({mode.value})")
        return data

    def close(self, handle: int) -> None:
        """
        Close a connection or listener.

        Raises:
            ClosedHandleError: Already closed (double close is an error).
            InvalidHandleError: Never opened by this engine.
        """
        self._handles.close(handle)

    # =========================================================================
    # LISTENERS
    # =========================================================================

    def listen(self, port: int, address: Optional[str] = None, backlog: Optional[int] = None) -> int:
        """
        Bind and listen; returns a listener handle (valid for accept/close).

        Raises:
            UsageError: Port is 0 or out of range.
            OperationalFailure: Resolve, bind or listen failed.
        """
        if backlog is None:
            backlog = self.config.default_backlog
        sock = open_listener(port, address=address, backlog=backlog)
        with OwnedSocket(sock) as owned:
            return self._handles.adopt(owned, HandleKind.LISTENER)

    def accept(self, handle: int, deadline: Deadline = INFINITE) -> AcceptResult:
        """
        Accept one pending connection on a listener handle.

        Raises:
            OperationTimeout: No connection arrived before the deadline.
            OperationalFailure: Wait/accept error or bad handle.
        """
        entry = self._handles.lookup(handle, HandleKind.LISTENER)
        accepted = accept_connection(entry.sock, deadline)
        with OwnedSocket(accepted.sock) as owned:
            new_handle = self._handles.adopt(owned, HandleKind.CONNECTION, peer=accepted.peer)
        return AcceptResult(handle=new_handle, peer=accepted.peer)

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def close_all(self) -> int:
        """Close every handle still open. Returns how many were closed."""
        count = self._handles.close_all()
        if count:
            logger.debug(f"Closed {count} remaining handle(s)")
        return count

    def __enter__(self) -> "SocketEngine":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close_all()
        return False
