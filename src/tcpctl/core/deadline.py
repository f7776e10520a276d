"""
=============================================================================
DEADLINES
=============================================================================

Every blocking socket command takes a deadline. A deadline is NOT a
wall-clock alarm; it is a budget handed to one readiness wait.

    ┌──────────────┬──────────────────────┬─────────────────────────────┐
    │  Kind        │  Command surface     │  poll() timeout argument    │
    ├──────────────┼──────────────────────┼─────────────────────────────┤
    │  INFINITE    │  no -T, or -T -1     │  None  (block until ready)  │
    │  IMMEDIATE   │  -T 0                │  0     (check once)         │
    │  BOUNDED     │  -T 1500             │  1500  (milliseconds)       │
    └──────────────┴──────────────────────┴─────────────────────────────┘

A Bounded(0) deadline is the same thing as Immediate: look at the
current readiness once, never sleep.

=============================================================================
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


# poll() takes a C int of milliseconds (about 24.8 days).
MAX_MILLIS = 2**31 - 1


class DeadlineKind(Enum):
    INFINITE = "infinite"
    IMMEDIATE = "immediate"
    BOUNDED = "bounded"


@dataclass(frozen=True)
class Deadline:
    """
    Per-call wait budget.

    Build one with the classmethods rather than the constructor:

        Deadline.infinite()
        Deadline.immediate()
        Deadline.bounded(2000)
        Deadline.from_millis(-1)    # -> infinite
    """

    kind: DeadlineKind
    millis: int = 0

    def __post_init__(self):
        if self.millis < 0:
            raise ValueError(f"deadline milliseconds must be >= 0, got {self.millis}")
        if self.millis > MAX_MILLIS:
            raise ValueError(f"deadline milliseconds must be <= {MAX_MILLIS}, got {self.millis}")
        # Bounded(0) and Immediate mean the same thing; normalize.
        if self.kind is DeadlineKind.BOUNDED and self.millis == 0:
            object.__setattr__(self, "kind", DeadlineKind.IMMEDIATE)
        if self.kind is not DeadlineKind.BOUNDED:
            object.__setattr__(self, "millis", 0)

    @classmethod
    def infinite(cls) -> "Deadline":
        return cls(DeadlineKind.INFINITE)

    @classmethod
    def immediate(cls) -> "Deadline":
        return cls(DeadlineKind.IMMEDIATE)

    @classmethod
    def bounded(cls, millis: int) -> "Deadline":
        return cls(DeadlineKind.BOUNDED, millis)

    @classmethod
    def from_millis(cls, millis: Optional[int]) -> "Deadline":
        """Map the command-surface value: None or negative is infinite."""
        if millis is None or millis < 0:
            return cls.infinite()
        return cls.bounded(millis)

    @classmethod
    def from_seconds(cls, seconds: Optional[float]) -> "Deadline":
        """Python-side convenience matching socket.settimeout() semantics."""
        if seconds is None:
            return cls.infinite()
        if seconds < 0:
            raise ValueError("timeout must be None or >= 0")
        return cls.bounded(int(round(seconds * 1000)))

    @property
    def is_infinite(self) -> bool:
        return self.kind is DeadlineKind.INFINITE

    @property
    def is_immediate(self) -> bool:
        return self.kind is DeadlineKind.IMMEDIATE

    @property
    def poll_timeout(self) -> Optional[int]:
        """Argument for select.poll().poll(): None blocks forever."""
        if self.is_infinite:
            return None
        return self.millis

    def __str__(self) -> str:
        if self.kind is DeadlineKind.BOUNDED:
            return f"{self.millis}ms"
        return self.kind.value


INFINITE = Deadline.infinite()
IMMEDIATE = Deadline.immediate()
