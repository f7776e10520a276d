"""
=============================================================================
COMMAND PARSER
=============================================================================

Turns an argument vector into a typed command, or raises UsageError.
Parsing never touches the network.

=============================================================================
GRAMMAR
=============================================================================

    socket connect [-4|-6] [-n] [-T ms] <host> <port> <varfd>
    socket send    [-b64] <fd> [--] <data...>
    socket recv    [-T ms] [-max N] [-mode line|bytes|all] <fd> <var>
    socket close   <fd>
    socket listen  [-b backlog] [-a addr] [-p port] <varfd>
    socket accept  [-T ms] <listenfd> <varfd> [<varpeer>]

Options come first. The first word that is not an option ends option
parsing, so data words after the fd in `send` may start with "-".

=============================================================================
NUMBERS
=============================================================================

    -T ms      -1 (infinite) or 0..2147483647
                                      0 means "poll once, don't wait"
    -max N     0..                    0 means "no cap"
    -b N       0..
    -p port    0..65535               listen still rejects 0
    fd         0..

Only plain decimal digits are accepted: "+5", " 5", "5ms", "0x10" are
all usage errors.

=============================================================================
"""

import re
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..core import AddressFamily, Deadline, MAX_MILLIS, ReceiveMode
from ..errors import UsageError
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


USAGE = (
    "usage:\n"
    "  socket connect [-4|-6] [-n] [-T ms] <host> <port> <varfd>\n"
    "  socket send    [-b64] <fd> [--] <data...>\n"
    "  socket recv    [-T ms] [-max N] [-mode line|bytes|all] <fd> <var>\n"
    "  socket close   <fd>\n"
    "  socket listen  [-b backlog] [-a addr] [-p port] <varfd>\n"
    "  socket accept  [-T ms] <listenfd> <varfd> [<varpeer>]\n"
)

_DECIMAL = re.compile(r"[0-9]+\Z")
_SLOT_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*\Z")

UINT_MAX = 2**32 - 1


def is_option(word: str) -> bool:
    return len(word) > 1 and word.startswith("-")


def parse_uint(text: str, what: str, maximum: int = UINT_MAX) -> int:
    if not _DECIMAL.match(text):
        raise UsageError(f"{what}: expected a non-negative integer, got '{text}'")
    value = int(text)
    if value > maximum:
        raise UsageError(f"{what}: {value} is out of range (max {maximum})")
    return value


def parse_deadline(text: str) -> Deadline:
    if text == "-1":
        return Deadline.infinite()
    return Deadline.bounded(parse_uint(text, "-T", maximum=MAX_MILLIS))


def parse_handle(text: str) -> int:
    return parse_uint(text, "fd")


def check_slot(name: str) -> str:
    if not _SLOT_NAME.match(name):
        raise UsageError(f"'{name}' is not a valid variable name")
    return name


class _Options:
    """Walks the leading options of one verb's argument list."""

    def __init__(self, verb: Verb, args: Sequence[str]):
        self.verb = verb
        self.args = list(args)
        self.index = 0

    def __iter__(self):
        while self.index < len(self.args) and is_option(self.args[self.index]):
            option = self.args[self.index]
            self.index += 1
            yield option

    def value(self, option: str) -> str:
        if self.index >= len(self.args):
            raise UsageError(f"{self.verb.value}: option {option} requires a value")
        text = self.args[self.index]
        self.index += 1
        return text

    def unknown(self, option: str) -> UsageError:
        return UsageError(f"{self.verb.value}: unknown option '{option}'")

    def rest(self) -> List[str]:
        return self.args[self.index:]


class CommandParser:
    """
    Parses ``[verb, arg, ...]`` into a typed command.

    Usage:
        parser = CommandParser()
        command = parser.parse(["recv", "-T", "500", "5", "line"])
        # RecvCommand(handle=5, slot='line', deadline=Deadline(BOUNDED, 500))
    """

    def __init__(self):
        self._parsers: Dict[Verb, Callable[[_Options], Command]] = {
            Verb.CONNECT: self._parse_connect,
            Verb.SEND: self._parse_send,
            Verb.RECV: self._parse_recv,
            Verb.CLOSE: self._parse_close,
            Verb.LISTEN: self._parse_listen,
            Verb.ACCEPT: self._parse_accept,
        }

    def parse(self, argv: Sequence[str]) -> Command:
        if not argv:
            raise UsageError("missing command")
        verb = Verb.from_name(argv[0])
        return self._parsers[verb](_Options(verb, argv[1:]))

    # =========================================================================
    # PER-VERB GRAMMARS
    # =========================================================================

    def _parse_connect(self, opts: _Options) -> ConnectCommand:
        family = AddressFamily.UNSPECIFIED
        nonblocking = False
        deadline = Deadline.infinite()

        for option in opts:
            if option == "-4":
                family = AddressFamily.IPV4
            elif option == "-6":
                family = AddressFamily.IPV6
            elif option == "-n":
                nonblocking = True
            elif option == "-T":
                deadline = parse_deadline(opts.value(option))
            else:
                raise opts.unknown(option)

        host, port, slot = self._positionals(opts, 3, 3)
        return ConnectCommand(
            host=host,
            port=port,
            slot=check_slot(slot),
            family=family,
            nonblocking=nonblocking,
            deadline=deadline,
        )

    def _parse_send(self, opts: _Options) -> SendCommand:
        decode_base64 = False
        for option in opts:
            if option == "-b64":
                decode_base64 = True
            else:
                raise opts.unknown(option)

        rest = opts.rest()
        if len(rest) < 2:
            raise UsageError("send: expected <fd> and data")
        handle = parse_handle(rest[0])
        words = rest[1:]
        if words and words[0] == "--":
            words = words[1:]
        if not words:
            raise UsageError("send: no data given")

        return SendCommand(handle=handle, words=tuple(words), decode_base64=decode_base64)

    def _parse_recv(self, opts: _Options) -> RecvCommand:
        deadline = Deadline.infinite()
        cap: Optional[int] = None
        mode = ReceiveMode.LINE

        for option in opts:
            if option == "-T":
                deadline = parse_deadline(opts.value(option))
            elif option == "-max":
                cap = parse_uint(opts.value(option), "-max") or None
            elif option == "-mode":
                text = opts.value(option)
                try:
                    mode = ReceiveMode(text)
                except ValueError:
                    raise UsageError(f"recv: unknown mode '{text}' (line, bytes or all)")
            else:
                raise opts.unknown(option)

        fd, slot = self._positionals(opts, 2, 2)
        return RecvCommand(
            handle=parse_handle(fd),
            slot=check_slot(slot),
            mode=mode,
            deadline=deadline,
            cap=cap,
        )

    def _parse_close(self, opts: _Options) -> CloseCommand:
        for option in opts:
            raise opts.unknown(option)
        (fd,) = self._positionals(opts, 1, 1)
        return CloseCommand(handle=parse_handle(fd))

    def _parse_listen(self, opts: _Options) -> ListenCommand:
        backlog: Optional[int] = None
        address: Optional[str] = None
        port = 0

        for option in opts:
            if option == "-b":
                backlog = parse_uint(opts.value(option), "-b", maximum=2**31 - 1)
            elif option == "-a":
                address = opts.value(option)
            elif option == "-p":
                port = parse_uint(opts.value(option), "-p", maximum=65535)
            else:
                raise opts.unknown(option)

        (slot,) = self._positionals(opts, 1, 1)
        if port == 0:
            raise UsageError("listen: -p <port> is required and must be non-zero")
        return ListenCommand(port=port, slot=check_slot(slot), address=address, backlog=backlog)

    def _parse_accept(self, opts: _Options) -> AcceptCommand:
        deadline = Deadline.infinite()
        for option in opts:
            if option == "-T":
                deadline = parse_deadline(opts.value(option))
            else:
                raise opts.unknown(option)

        words = self._positionals(opts, 2, 3)
        peer_slot = check_slot(words[2]) if len(words) == 3 else None
        return AcceptCommand(
            handle=parse_handle(words[0]),
            slot=check_slot(words[1]),
            peer_slot=peer_slot,
            deadline=deadline,
        )

    @staticmethod
    def _positionals(opts: _Options, minimum: int, maximum: int) -> Tuple[str, ...]:
        rest = opts.rest()
        if not minimum <= len(rest) <= maximum:
            expected = str(minimum) if minimum == maximum else f"{minimum}-{maximum}"
            raise UsageError(
                f"{opts.verb.value}: expected {expected} arguments, got {len(rest)}"
            )
        return tuple(rest)
