"""
Fully-drained send loop.

send() may write only part of the buffer (the kernel send buffer is
full), or nothing at all on a non-blocking socket. We keep a cursor and
loop until every byte is out:

    ┌──────────────────────────────────────────────────────────────────┐
    │   while cursor < len(data):                                      │
    │       send(data[cursor:])                                        │
    │         ├── n bytes written   → cursor += n                      │
    │         ├── EAGAIN            → wait for POLLOUT (no deadline)   │
    │         ├── EINTR             → try again right away             │
    │         └── anything else     → OperationalFailure, stop         │
    └──────────────────────────────────────────────────────────────────┘

There is deliberately no deadline here. A peer that never drains its
receive window can hold send() forever; callers that cannot accept that
must not send to untrusted peers. On a fatal error the caller is not
told how many bytes made it out.
"""

import logging
import socket

from ..errors import OperationalFailure
from .deadline import INFINITE
from .readiness import wait_writable


logger = logging.getLogger(__name__)


def send_all(sock: socket.socket, data: bytes) -> int:
    """
    Write every byte of ``data`` or raise.

    Returns:
        len(data)

    Raises:
        OperationalFailure: Any error other than EAGAIN/EINTR.
    """
    view = memoryview(data)
    cursor = 0
    total = len(view)

    while cursor < total:
        try:
            written = sock.send(view[cursor:])
        except InterruptedError:
            continue
        except BlockingIOError:
            outcome = wait_writable(sock, INFINITE)
            if not outcome.ready:
                raise OperationalFailure.from_os_error("send: poll", outcome.error)
            continue
        except OSError as e:
            raise OperationalFailure.from_os_error("send", e)
        cursor += written

    logger.debug(f"send: wrote {total} bytes to fd {sock.fileno()}")
    return total
