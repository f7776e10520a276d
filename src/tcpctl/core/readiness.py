"""
=============================================================================
READINESS WAITER
=============================================================================

The ONLY place in the engine where the calling thread sleeps (apart from
the writer's untimed wait, which also comes through here).

=============================================================================
STATE MACHINE
=============================================================================

                         ┌──────────────┐
              ┌─────────►│   WAITING    │◄────────┐
              │          └──────┬───────┘         │
              │                 │ poll()          │ EINTR
              │     ┌───────────┼───────────┐     │ (silent re-entry,
              │     ▼           ▼           ▼     │  remaining budget)
          ┌───────┐      ┌───────────┐   ┌───────┐│
          │ READY │      │ TIMED_OUT │   │ ERROR ├┘
          └───────┘      └───────────┘   └───────┘

poll() is used rather than select() because select() cannot watch a
descriptor numbered 1024 or higher.

POLLERR and POLLHUP are reported as READY. The caller's next read(),
write() or SO_ERROR check then surfaces the precise condition (EOF,
ECONNREFUSED, ...), which is far more useful than a generic "error".
POLLNVAL means the descriptor is not open at all, so that one is ERROR.

=============================================================================
"""

import errno
import select
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .deadline import Deadline


class Interest(Enum):
    """What the caller is waiting for."""
    READ = select.POLLIN
    WRITE = select.POLLOUT


class WaitState(Enum):
    READY = "ready"
    TIMED_OUT = "timed_out"
    ERROR = "error"


@dataclass(frozen=True)
class WaitOutcome:
    state: WaitState
    error: Optional[OSError] = None

    @property
    def ready(self) -> bool:
        return self.state is WaitState.READY

    @property
    def timed_out(self) -> bool:
        return self.state is WaitState.TIMED_OUT


_READY = WaitOutcome(WaitState.READY)
_TIMED_OUT = WaitOutcome(WaitState.TIMED_OUT)


def _fileno(target) -> int:
    if isinstance(target, int):
        return target
    return target.fileno()


def wait_ready(target, interest: Interest, deadline: Deadline) -> WaitOutcome:
    """
    Block until ``target`` is ready for ``interest`` or ``deadline`` elapses.

    Args:
        target: A file descriptor or anything with fileno().
        interest: Interest.READ or Interest.WRITE.
        deadline: Wait budget for this single call.

    Returns:
        WaitOutcome with state READY, TIMED_OUT or ERROR. Never raises
        for OS errors; they come back inside the outcome.
    """
    try:
        fd = _fileno(target)
    except OSError as e:
        return WaitOutcome(WaitState.ERROR, e)

    if fd < 0:
        return WaitOutcome(WaitState.ERROR, OSError(errno.EBADF, "Bad file descriptor"))

    poller = select.poll()
    poller.register(fd, interest.value)

    timeout = deadline.poll_timeout
    started = time.monotonic()

    while True:
        try:
            events = poller.poll(timeout)
        except InterruptedError:
            # Re-enter WAITING with whatever is left of the budget.
            if timeout is not None:
                elapsed_ms = int((time.monotonic() - started) * 1000)
                timeout = max(0, deadline.millis - elapsed_ms)
            continue
        except OSError as e:
            return WaitOutcome(WaitState.ERROR, e)
        break

    if not events:
        return _TIMED_OUT

    _, revents = events[0]
    if revents & select.POLLNVAL:
        return WaitOutcome(WaitState.ERROR, OSError(errno.EBADF, "Bad file descriptor"))
    return _READY


def wait_readable(target, deadline: Deadline) -> WaitOutcome:
    return wait_ready(target, Interest.READ, deadline)


def wait_writable(target, deadline: Deadline) -> WaitOutcome:
    return wait_ready(target, Interest.WRITE, deadline)
