"""
=============================================================================
ERROR TAXONOMY
=============================================================================

Three kinds of things can go wrong with a socket command, and callers
must be able to tell them apart without parsing messages:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketCommandError                                                 │
    │     │                                                                │
    │     ├── UsageError            bad/missing/extra arguments            │
    │     │                         (raised BEFORE any I/O happens)        │
    │     │                                                                │
    │     ├── OperationTimeout      deadline elapsed, nothing collected    │
    │     │                         (retryable, handle stays usable)       │
    │     │                                                                │
    │     └── OperationalFailure    the OS said no                         │
    │           │                                                          │
    │           ├── InvalidHandleError    never opened / out of range     │
    │           ├── ClosedHandleError     already closed by us            │
    │           └── WrongHandleKindError  listener used for I/O, etc.     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Each exception carries the ExitStatus the dispatcher reports for it, so
handlers can map an error to a status without an isinstance ladder.

=============================================================================
"""

import errno as _errno
import os
from typing import Optional

from .status import ExitStatus


class SocketCommandError(Exception):
    """Base class for every error a socket command can report."""

    exit_status: ExitStatus = ExitStatus.FAILURE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UsageError(SocketCommandError):
    """
    Malformed, missing, or extra arguments.

    Raised by the command parser and by engine entry points that validate
    their inputs (e.g. listen on port 0). Never raised after I/O started.
    """

    exit_status = ExitStatus.USAGE


class OperationTimeout(SocketCommandError):
    """
    The deadline elapsed before any qualifying progress was made.

    Not named TimeoutError on purpose: the builtin TimeoutError is an
    OSError subclass and would be swallowed by ``except OSError``.
    """

    exit_status = ExitStatus.TIMEOUT


class OperationalFailure(SocketCommandError):
    """
    An OS-level error: resolution, connect, bind, read, write, accept,
    or a bad handle.

    Attributes:
        errno: The errno value when one is known, else None.
    """

    exit_status = ExitStatus.FAILURE

    def __init__(self, message: str, errno: Optional[int] = None):
        super().__init__(message)
        self.errno = errno

    @classmethod
    def from_os_error(cls, context: str, exc: OSError) -> "OperationalFailure":
        """Wrap an OSError as '<context>: <strerror>'."""
        text = exc.strerror or str(exc)
        return cls(f"{context}: {text}", errno=exc.errno)

    @classmethod
    def from_errno(cls, context: str, code: int) -> "OperationalFailure":
        return cls(f"{context}: {os.strerror(code)}", errno=code)


class InvalidHandleError(OperationalFailure):
    """Handle was never opened by this engine (or is out of range)."""

    def __init__(self, handle: int):
        super().__init__(f"invalid handle {handle}", errno=_errno.EBADF)
        self.handle = handle


class ClosedHandleError(OperationalFailure):
    """Handle was opened by this engine and has since been closed."""

    def __init__(self, handle: int):
        super().__init__(f"handle {handle} is closed", errno=_errno.EBADF)
        self.handle = handle


class WrongHandleKindError(OperationalFailure):
    """A listener was used where a connection is required, or vice versa."""

    def __init__(self, handle: int, expected: str, actual: str):
        super().__init__(
            f"handle {handle} is a {actual}, expected a {expected}",
            errno=_errno.ENOTCONN if expected == "connection" else _errno.EINVAL,
        )
        self.handle = handle
        self.expected = expected
        self.actual = actual
