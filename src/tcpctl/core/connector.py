"""
=============================================================================
ADDRESS RESOLVER & CONNECTOR
=============================================================================

Turns "host port" into a connected TCP socket.

=============================================================================
RESOLUTION
=============================================================================

getaddrinfo() may return several candidate endpoints for one name, for
example an IPv6 and an IPv4 address for "localhost":

    getaddrinfo("localhost", 8080, AF_UNSPEC, SOCK_STREAM)
        → (AF_INET6, ..., ('::1', 8080, 0, 0))
        → (AF_INET,  ..., ('127.0.0.1', 8080))

We try them in the order the resolver gives, which already reflects the
system's address selection policy (RFC 6724). Resolution is not covered
by the deadline; only the connection phase is.

=============================================================================
THREE CONNECT MODES
=============================================================================

    ┌─────────────────┬───────────────────────────────────────────────────┐
    │  Mode           │  What happens per candidate                        │
    ├─────────────────┼───────────────────────────────────────────────────┤
    │  non-blocking   │  connect_ex() on a non-blocking socket, return    │
    │  (-n)           │  immediately, possibly still connecting. The      │
    │                 │  socket stays non-blocking.                        │
    ├─────────────────┼───────────────────────────────────────────────────┤
    │  deadline       │  connect_ex() non-blocking, poll for POLLOUT up   │
    │  (-T ms)        │  to the deadline, check SO_ERROR, back to         │
    │                 │  blocking. Deadline elapsed → Timeout, stop.      │
    ├─────────────────┼───────────────────────────────────────────────────┤
    │  blocking       │  Same as above with an untimed wait.              │
    └─────────────────┴───────────────────────────────────────────────────┘

WHY CHECK SO_ERROR?
───────────────────
A non-blocking connect that fails (e.g. connection refused) still makes
the socket "writable". POLLOUT only means "the attempt finished", not
"the attempt succeeded". SO_ERROR holds the real result.

=============================================================================
"""

import errno
import logging
import os
import socket
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple, Union

from ..errors import OperationalFailure, OperationTimeout
from .deadline import Deadline, INFINITE
from .handles import OwnedSocket
from .readiness import wait_writable


logger = logging.getLogger(__name__)


# connect_ex() results that mean "started, finishing in the background"
_IN_PROGRESS = frozenset({errno.EINPROGRESS, errno.EWOULDBLOCK, errno.EAGAIN, errno.EINTR})


class AddressFamily(Enum):
    """Address family preference for resolution (connect only)."""
    UNSPECIFIED = socket.AF_UNSPEC
    IPV4 = socket.AF_INET
    IPV6 = socket.AF_INET6


@dataclass(frozen=True)
class Candidate:
    """One resolved endpoint to try."""
    family: int
    socktype: int
    proto: int
    sockaddr: Tuple

    @property
    def display(self) -> str:
        host, port = self.sockaddr[0], self.sockaddr[1]
        if self.family == socket.AF_INET6:
            return f"[{host}]:{port}"
        return f"{host}:{port}"


def resolve(
    host: str,
    port: Union[int, str],
    family: AddressFamily = AddressFamily.UNSPECIFIED,
    passive: bool = False,
) -> List[Candidate]:
    """
    Resolve host and port into candidate endpoints, in resolver order.

    Raises:
        OperationalFailure: The name or service could not be resolved.
            Never OperationTimeout; resolution has no deadline.
    """
    flags = socket.AI_PASSIVE if passive else 0
    try:
        infos = socket.getaddrinfo(host, port, family.value, socket.SOCK_STREAM, 0, flags)
    except socket.gaierror as e:
        raise OperationalFailure(
            f"getaddrinfo({host},{port}): {e.strerror or e}", errno=e.errno
        )
    except (OSError, UnicodeError, OverflowError) as e:
        raise OperationalFailure(f"getaddrinfo({host},{port}): {e}")

    return [
        Candidate(family=af, socktype=socktype, proto=proto, sockaddr=sockaddr)
        for af, socktype, proto, _canonname, sockaddr in infos
    ]


def _start_connect(sock: socket.socket, candidate: Candidate) -> bool:
    """
    Kick off a non-blocking connect.

    Returns:
        True if already connected, False if still in progress.

    Raises:
        OSError: The attempt failed outright.
    """
    sock.setblocking(False)
    code = sock.connect_ex(candidate.sockaddr)
    if code == 0:
        return True
    if code in _IN_PROGRESS:
        return False
    raise OSError(code, os.strerror(code))


def _finish_connect(sock: socket.socket, candidate: Candidate, deadline: Deadline) -> None:
    """
    Wait for an in-progress connect and verify it actually succeeded.

    Raises:
        OperationTimeout: Deadline elapsed before the attempt finished.
        OSError: The wait failed, or the connect failed asynchronously.
    """
    outcome = wait_writable(sock, deadline)
    if outcome.timed_out:
        raise OperationTimeout(f"connect: {candidate.display}: timed out after {deadline}")
    if not outcome.ready:
        raise outcome.error

    # POLLOUT only says the attempt finished; SO_ERROR says how.
    code = sock.getsockopt(socket.SOL_SOCKET, socket.SO_ERROR)
    if code != 0:
        raise OSError(code, os.strerror(code))


def open_connection(
    host: str,
    port: Union[int, str],
    family: AddressFamily = AddressFamily.UNSPECIFIED,
    nonblocking: bool = False,
    deadline: Deadline = INFINITE,
) -> socket.socket:
    """
    Resolve and connect, trying each candidate in order.

    The returned socket is owned by the caller. Every candidate socket
    that did not win has been closed before this returns or raises.

    Args:
        host: Name or numeric address.
        port: Port number or service name.
        family: Resolution preference.
        nonblocking: Return right after starting the connect; the
                     deadline is ignored in this mode.
        deadline: Budget for the connection phase of the attempt.

    Raises:
        OperationalFailure: Resolution failed, or every candidate failed
            (carries the last specific error).
        OperationTimeout: A candidate's deadline elapsed.
    """
    candidates = resolve(host, port, family)
    last_error: Optional[OSError] = None

    for candidate in candidates:
        try:
            sock = socket.socket(candidate.family, candidate.socktype, candidate.proto)
        except OSError as e:
            last_error = e
            logger.debug(f"connect: socket() for {candidate.display} failed: {e}")
            continue

        with OwnedSocket(sock) as owned:
            try:
                connected = _start_connect(sock, candidate)

                if nonblocking:
                    logger.debug(
                        f"connect: {candidate.display} "
                        f"{'connected' if connected else 'in progress'} (non-blocking)"
                    )
                    return owned.detach()

                if not connected:
                    _finish_connect(sock, candidate, deadline)

                sock.setblocking(True)
            except OSError as e:
                last_error = e
                logger.debug(f"connect: {candidate.display} failed: {e}")
                continue

            logger.debug(f"connect: connected to {candidate.display} (fd {sock.fileno()})")
            return owned.detach()

    if last_error is None:
        raise OperationalFailure.from_errno("connect", errno.ECONNREFUSED)
    raise OperationalFailure.from_os_error("connect", last_error)
