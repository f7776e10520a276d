"""
=============================================================================
TCPCTL - Synchronous TCP Primitives With Explicit Deadlines
=============================================================================

Open, read, write and close TCP connections and run a listen/accept
cycle from a scripting host, with a per-call deadline on everything that
can block and four distinct outcomes: ok, failure, usage error, timeout.

=============================================================================
PROJECT OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        TCPCTL ARCHITECTURE                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   python -m tcpctl / host code                                       │
    │        │                                                             │
    │        ▼                                                             │
    │   Dispatcher          verb + args → typed command → ExitStatus       │
    │        │                                                             │
    │        ▼                                                             │
    │   SocketEngine        handle table, typed connect/send/recv/...      │
    │        │                                                             │
    │        ├──► connector   resolve, blocking / non-blocking / deadline  │
    │        ├──► reader      line / bytes / all                           │
    │        ├──► writer      drain until every byte is out                │
    │        └──► listener    dual-stack listen, deadline-bounded accept   │
    │                  │                                                   │
    │                  ▼                                                   │
    │        readiness (poll) + deadline    the only place we sleep        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
QUICK START
=============================================================================

    from tcpctl import Dispatcher, ExitStatus

    sh = Dispatcher()
    sh.run(["connect", "-T", "3000", "example.org", "80", "fd"])
    sh.run(["send", sh.slots["fd"], "GET / HTTP/1.0\\r\\nHost: example.org\\r\\n\\r\\n"])
    status = sh.run(["recv", "-T", "3000", "-mode", "line", sh.slots["fd"], "status_line"])
    if status is ExitStatus.OK:
        print(sh.slots["status_line"])
    sh.run(["close", sh.slots["fd"]])

Or with typed calls:

    from tcpctl import SocketEngine, Deadline, ReceiveMode

    with SocketEngine() as engine:
        fd = engine.connect("example.org", 80, deadline=Deadline.bounded(3000))
        ...

=============================================================================
"""

__version__ = "1.0.0"

from .commands import Dispatcher, ResultSlots
from .config import EngineConfig
from .core import AddressFamily, Deadline, ReceiveMode
from .engine import AcceptResult, SocketEngine
from .errors import (
    ClosedHandleError,
    InvalidHandleError,
    OperationalFailure,
    OperationTimeout,
    SocketCommandError,
    UsageError,
    WrongHandleKindError,
)
from .status import ExitStatus

__all__ = [
    "AcceptResult",
    "AddressFamily",
    "ClosedHandleError",
    "Deadline",
    "Dispatcher",
    "EngineConfig",
    "ExitStatus",
    "InvalidHandleError",
    "OperationalFailure",
    "OperationTimeout",
    "ReceiveMode",
    "ResultSlots",
    "SocketCommandError",
    "SocketEngine",
    "UsageError",
    "WrongHandleKindError",
    "__version__",
]
