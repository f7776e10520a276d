"""
Core socket primitives.

Leaves first:

- deadline.py: Per-call wait budgets (infinite / immediate / bounded)
- readiness.py: poll()-based readiness waiter
- buffer.py: Growable receive buffer
- handles.py: Handle table and scoped socket ownership
- connector.py: Resolution and the three connect modes
- reader.py: Line / bytes / all receive policies
- writer.py: Fully-drained send loop
- listener.py: Dual-stack listen and deadline-bounded accept
"""

from .deadline import Deadline, DeadlineKind, INFINITE, IMMEDIATE, MAX_MILLIS
from .readiness import Interest, WaitOutcome, WaitState, wait_ready, wait_readable, wait_writable
from .buffer import ByteAccumulator
from .handles import HandleEntry, HandleKind, HandleTable, OwnedSocket
from .connector import AddressFamily, Candidate, open_connection, resolve
from .reader import FramedReader, ReceiveMode
from .writer import send_all
from .listener import AcceptedConnection, accept_connection, format_peer, open_listener

__all__ = [
    "Deadline",
    "DeadlineKind",
    "INFINITE",
    "IMMEDIATE",
    "MAX_MILLIS",
    "Interest",
    "WaitOutcome",
    "WaitState",
    "wait_ready",
    "wait_readable",
    "wait_writable",
    "ByteAccumulator",
    "HandleEntry",
    "HandleKind",
    "HandleTable",
    "OwnedSocket",
    "AddressFamily",
    "Candidate",
    "open_connection",
    "resolve",
    "FramedReader",
    "ReceiveMode",
    "send_all",
    "AcceptedConnection",
    "accept_connection",
    "format_peer",
    "open_listener",
]
