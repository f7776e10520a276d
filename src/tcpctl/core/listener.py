"""
=============================================================================
LISTENER & ACCEPTOR
=============================================================================

Server side of the socket lifecycle:

    socket() → setsockopt(SO_REUSEADDR) → bind() → listen()   [open_listener]
                                                      │
                                   poll(POLLIN, deadline)
                                                      │
                                                  accept()     [accept_connection]

=============================================================================
DUAL STACK
=============================================================================

With no bind address we resolve the IPv6 wildcard "::" first. An IPv6
socket with IPV6_V6ONLY switched off also accepts IPv4 clients, which
show up as IPv4-mapped addresses:

    peer = "::ffff:127.0.0.1:53122"

Hosts without IPv6 fail to resolve "::" (or cannot open an AF_INET6
socket), so we fall back to the IPv4 wildcard "0.0.0.0".

SO_REUSEADDR:
─────────────
Without it, restarting a server right after it stopped fails with
"Address already in use" while the old connections sit in TIME_WAIT.

=============================================================================
PEER STRINGS
=============================================================================

getnameinfo() with NI_NUMERICHOST | NI_NUMERICSERV formats the address
without any reverse DNS lookup:

    ('192.168.1.50', 54321)       → "192.168.1.50:54321"
    ('::1', 54321, 0, 0)          → "::1:54321"

=============================================================================
"""

import errno
import logging
import socket
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..errors import OperationalFailure, OperationTimeout, UsageError
from .connector import AddressFamily, Candidate, resolve
from .deadline import Deadline, INFINITE
from .handles import OwnedSocket
from .readiness import wait_readable


logger = logging.getLogger(__name__)


IPV6_WILDCARD = "::"
IPV4_WILDCARD = "0.0.0.0"


@dataclass(frozen=True)
class AcceptedConnection:
    """Result of accept_connection(): the new socket and who it talks to."""
    sock: socket.socket
    address: Tuple
    peer: str


def format_peer(address: Tuple) -> str:
    """
    Numeric "host:port" for a socket address, or "" if it cannot be
    formatted. Never performs a reverse lookup.
    """
    try:
        host, port = socket.getnameinfo(address, socket.NI_NUMERICHOST | socket.NI_NUMERICSERV)
    except (OSError, TypeError, ValueError):
        return ""
    return f"{host}:{port}"


def _resolve_bind_candidates(address: Optional[str], port: int) -> List[Candidate]:
    try:
        return resolve(address or IPV6_WILDCARD, port, AddressFamily.UNSPECIFIED, passive=True)
    except OperationalFailure as first:
        logger.debug(f"listen: {first}; retrying with IPv4 wildcard")
        return resolve(address or IPV4_WILDCARD, port, AddressFamily.UNSPECIFIED, passive=True)


def _try_candidates(candidates: List[Candidate], backlog: int) -> Tuple[Optional[socket.socket], Optional[OSError]]:
    last_error: Optional[OSError] = None
    for candidate in candidates:
        try:
            sock = _bind_candidate(candidate, backlog)
        except OSError as e:
            last_error = e
            logger.debug(f"listen: {candidate.display} failed: {e}")
            continue
        logger.info(f"Listening on {candidate.display} (fd {sock.fileno()}, backlog {backlog})")
        return sock, None
    return None, last_error


def _bind_candidate(candidate: Candidate, backlog: int) -> socket.socket:
    sock = socket.socket(candidate.family, candidate.socktype, candidate.proto)
    with OwnedSocket(sock) as owned:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        if candidate.family == socket.AF_INET6:
            try:
                sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 0)
            except (OSError, AttributeError):
                pass  # Platform insists on v6-only; IPv6 clients still work

        sock.bind(candidate.sockaddr)
        sock.listen(backlog)
        return owned.detach()


def open_listener(port: int, address: Optional[str] = None, backlog: int = 128) -> socket.socket:
    """
    Bind and listen.

    Args:
        port: 1..65535. Port 0 is rejected; an ephemeral port would be
              useless to a caller that only gets a handle back.
        address: Bind address; wildcard (dual stack) when None.
        backlog: listen() queue length.

    Returns:
        A listening socket owned by the caller.

    Raises:
        UsageError: Port out of range or backlog negative.
        OperationalFailure: Resolution, bind or listen failed.
    """
    if not 0 < port < 65536:
        raise UsageError(f"listen: port must be 1-65535, got {port}")
    if backlog < 0:
        raise UsageError(f"listen: backlog must be >= 0, got {backlog}")

    sock, last_error = _try_candidates(_resolve_bind_candidates(address, port), backlog)

    if sock is None and address is None:
        # "::" resolved but the host has IPv6 switched off (EAFNOSUPPORT).
        logger.debug("listen: IPv6 wildcard unusable; retrying with IPv4 wildcard")
        fallback = resolve(IPV4_WILDCARD, port, AddressFamily.UNSPECIFIED, passive=True)
        sock, last_error = _try_candidates(fallback, backlog)

    if sock is not None:
        return sock
    if last_error is None:
        raise OperationalFailure.from_errno("listen", errno.EADDRINUSE)
    raise OperationalFailure.from_os_error("listen", last_error)


def accept_connection(listener: socket.socket, deadline: Deadline = INFINITE) -> AcceptedConnection:
    """
    Wait up to ``deadline`` for a pending connection and accept exactly one.

    Raises:
        OperationTimeout: Nothing arrived in time.
        OperationalFailure: The wait or accept() failed.
    """
    if deadline.is_infinite:
        conn, address = _accept_one(listener)
    else:
        outcome = wait_readable(listener, deadline)
        if outcome.timed_out:
            raise OperationTimeout(f"accept: timed out after {deadline}")
        if not outcome.ready:
            raise OperationalFailure.from_os_error("accept: poll", outcome.error)

        # The pending connection can be reset between poll() and accept().
        listener.setblocking(False)
        try:
            conn, address = _accept_one(listener)
        except BlockingIOError:
            raise OperationTimeout(f"accept: connection vanished before accept ({deadline})")
        finally:
            listener.setblocking(True)

    # accept() on a non-blocking listener yields a non-blocking socket on
    # some platforms; connections are always handed out blocking.
    conn.setblocking(True)

    peer = format_peer(address)
    logger.debug(f"accept: connection from {peer or address} (fd {conn.fileno()})")
    return AcceptedConnection(sock=conn, address=address, peer=peer)


def _accept_one(listener: socket.socket) -> Tuple[socket.socket, Tuple]:
    while True:
        try:
            return listener.accept()
        except InterruptedError:
            continue
        except BlockingIOError:
            raise
        except OSError as e:
            raise OperationalFailure.from_os_error("accept", e)
