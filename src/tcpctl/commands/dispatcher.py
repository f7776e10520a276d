"""
=============================================================================
DISPATCHER
=============================================================================

Runs one command line against a SocketEngine and reports one of four
exit statuses.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       Dispatcher.run(argv)                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   CommandParser.parse(argv)                                          │
    │        │                                                             │
    │        ├── UsageError ──────────► usage text → err      → 2          │
    │        │                                                             │
    │        ▼                                                             │
    │   execute(command)                                                   │
    │        │                                                             │
    │        ├── OperationTimeout ────► (slot cleared for recv) → 124      │
    │        ├── OperationalFailure ──► "socket <verb>: ..." → err → 1     │
    │        ├── UsageError ──────────► usage text → err      → 2          │
    │        └── ok ──────────────────► results in slots      → 0          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Diagnostics go to the error stream only. Results go to slots only.
Timeouts print nothing: a timeout is an expected outcome that scripts
loop on, not an error.

=============================================================================
"""

import logging
import sys
from typing import Callable, Dict, Optional, Sequence, TextIO

from ..engine import SocketEngine
from ..errors import (
    ClosedHandleError,
    InvalidHandleError,
    OperationalFailure,
    OperationTimeout,
    UsageError,
)
from ..status import ExitStatus
from .parser import USAGE, CommandParser
from .slots import ResultSlots
from .verbs import (
    AcceptCommand,
    CloseCommand,
    Command,
    ConnectCommand,
    ListenCommand,
    RecvCommand,
    SendCommand,
    Verb,
)


logger = logging.getLogger(__name__)


class Dispatcher:
    """
    Routes parsed commands to the engine and maps outcomes to ExitStatus.

    Args:
        engine: Engine to run against. A fresh one is created if omitted.
        slots: Result variables. A fresh ResultSlots if omitted.
        err: Error stream for diagnostics and usage text (stderr).

    Usage:
        dispatcher = Dispatcher()
        dispatcher.run(["listen", "-a", "127.0.0.1", "-p", "9000", "lfd"])
        dispatcher.run(["accept", "-T", "5000", dispatcher.slots["lfd"], "cfd", "peer"])
    """

    def __init__(
        self,
        engine: Optional[SocketEngine] = None,
        slots: Optional[ResultSlots] = None,
        err: Optional[TextIO] = None,
    ):
        self.engine = engine if engine is not None else SocketEngine()
        self.slots = slots if slots is not None else ResultSlots()
        self.err = err
        self.parser = CommandParser()

        self._handlers: Dict[Verb, Callable[[Command], None]] = {
            Verb.CONNECT: self._connect,
            Verb.SEND: self._send,
            Verb.RECV: self._recv,
            Verb.CLOSE: self._close,
            Verb.LISTEN: self._listen,
            Verb.ACCEPT: self._accept,
        }

    def __call__(self, *argv: str) -> ExitStatus:
        return self.run(argv)

    def run(self, argv: Sequence[str]) -> ExitStatus:
        """Parse and execute one command; never raises for command errors."""
        try:
            command = self.parser.parse(argv)
        except UsageError as e:
            return self.report_usage(e, _verb_of(argv))
        return self.dispatch(command)

    def dispatch(self, command: Command) -> ExitStatus:
        """Execute an already-parsed command and map the outcome."""
        try:
            self.execute(command)
        except OperationTimeout as e:
            logger.debug(f"{command.verb.value}: {e.message}")
            return e.exit_status
        except UsageError as e:
            return self.report_usage(e, command.verb)
        except (ClosedHandleError, InvalidHandleError) as e:
            if isinstance(command, CloseCommand):
                # Closing something that is not open: status 1, no noise.
                logger.debug(f"close: {e.message}")
            else:
                self._diagnose(command.verb, e.message)
            return e.exit_status
        except OperationalFailure as e:
            self._diagnose(command.verb, e.message)
            return e.exit_status
        return ExitStatus.OK

    def execute(self, command: Command) -> None:
        """Execute a command, letting SocketCommandError propagate."""
        self._handlers[command.verb](command)

    # =========================================================================
    # VERB HANDLERS
    # =========================================================================

    def _connect(self, command: ConnectCommand) -> None:
        handle = self.engine.connect(
            command.host,
            command.port,
            family=command.family,
            nonblocking=command.nonblocking,
            deadline=command.deadline,
        )
        self.slots.set_handle(command.slot, handle)

    def _send(self, command: SendCommand) -> None:
        self.engine.send(command.handle, command.payload())

    def _recv(self, command: RecvCommand) -> None:
        try:
            data = self.engine.recv(
                command.handle,
                mode=command.mode,
                deadline=command.deadline,
                cap=command.cap,
            )
        except OperationTimeout:
            self.slots[command.slot] = ""
            raise
        self.slots.set_bytes(command.slot, data)

    def _close(self, command: CloseCommand) -> None:
        self.engine.close(command.handle)

    def _listen(self, command: ListenCommand) -> None:
        handle = self.engine.listen(command.port, address=command.address, backlog=command.backlog)
        self.slots.set_handle(command.slot, handle)

    def _accept(self, command: AcceptCommand) -> None:
        result = self.engine.accept(command.handle, deadline=command.deadline)
        self.slots.set_handle(command.slot, result.handle)
        if command.peer_slot is not None:
            self.slots[command.peer_slot] = result.peer

    # =========================================================================
    # ERROR CHANNEL
    # =========================================================================

    def _stream(self) -> TextIO:
        return self.err if self.err is not None else sys.stderr

    @staticmethod
    def _format(verb: Optional[Verb], message: str) -> str:
        """"socket <verb>: <message>", without repeating a verb prefix."""
        if verb is None:
            return f"socket: {message}"
        prefix = f"{verb.value}: "
        if message.startswith(prefix):
            message = message[len(prefix):]
        return f"socket {verb.value}: {message}"

    def _diagnose(self, verb: Verb, message: str) -> None:
        logger.debug(f"{verb.value}: {message}")
        print(self._format(verb, message), file=self._stream())

    def report_usage(self, error: UsageError, verb: Optional[Verb] = None) -> ExitStatus:
        stream = self._stream()
        print(self._format(verb, error.message), file=stream)
        stream.write(USAGE)
        return error.exit_status


def _verb_of(argv: Sequence[str]) -> Optional[Verb]:
    if not argv:
        return None
    try:
        return Verb(argv[0])
    except ValueError:
        return None
