"""
=============================================================================
EXIT STATUS CODES
=============================================================================

Every socket command finishes with exactly one of four stable status
codes. The host environment branches on these numbers, never on the
diagnostic text printed to the error stream.

    ┌────────┬────────────┬──────────────────────────────────────────────┐
    │  Code  │  Name      │  Meaning                                     │
    ├────────┼────────────┼──────────────────────────────────────────────┤
    │   0    │  OK        │  Operation completed                         │
    │   1    │  FAILURE   │  OS-level error (resolve, connect, read...)  │
    │   2    │  USAGE     │  Bad arguments, no I/O was attempted         │
    │  124   │  TIMEOUT   │  Deadline elapsed with no qualifying progress│
    └────────┴────────────┴──────────────────────────────────────────────┘

124 is the code coreutils `timeout` uses, so shell scripts that already
know that convention can reuse it.

=============================================================================
"""

from enum import IntEnum


class ExitStatus(IntEnum):
    """
    Stable result signal for a dispatched command.

    Because this is an IntEnum it can be handed straight to sys.exit():

        >>> ExitStatus.TIMEOUT == 124
        True
        >>> ExitStatus.USAGE.label
        'usage error'
    """

    OK = 0
    FAILURE = 1
    USAGE = 2
    TIMEOUT = 124

    @property
    def label(self) -> str:
        """Short human-readable label for logs."""
        return _LABELS[self]

    @property
    def is_success(self) -> bool:
        return self is ExitStatus.OK

    @property
    def is_retryable(self) -> bool:
        """Only a timeout is worth retrying unchanged."""
        return self is ExitStatus.TIMEOUT


_LABELS = {
    ExitStatus.OK: "ok",
    ExitStatus.FAILURE: "operational failure",
    ExitStatus.USAGE: "usage error",
    ExitStatus.TIMEOUT: "timeout",
}
