"""
=============================================================================
VERBS AND TYPED COMMANDS
=============================================================================

The command surface is a closed set of six verbs. A verb name is turned
into a Verb exactly once, at the boundary, and the parser then produces
one of the command dataclasses below. Nothing past the parser compares
strings to decide what to do.

    argv ──► CommandParser.parse() ──► ConnectCommand | SendCommand | ...
                                                 │
                                                 ▼
                                     Dispatcher.execute(command)

=============================================================================
"""

import base64
import binascii
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional, Tuple, Union

from ..core import AddressFamily, Deadline, INFINITE, ReceiveMode
from ..errors import OperationalFailure, UsageError


class Verb(Enum):
    CONNECT = "connect"
    SEND = "send"
    RECV = "recv"
    CLOSE = "close"
    LISTEN = "listen"
    ACCEPT = "accept"

    @classmethod
    def from_name(cls, name: str) -> "Verb":
        try:
            return cls(name)
        except ValueError:
            raise UsageError(f"unknown command '{name}'")


# Payload text is carried through str, so bytes that are not valid UTF-8
# survive as lone surrogates and come back out unchanged.
TEXT_ENCODING = "utf-8"
TEXT_ERRORS = "surrogateescape"


def encode_text(text: str) -> bytes:
    return text.encode(TEXT_ENCODING, TEXT_ERRORS)


def decode_text(data: bytes) -> str:
    return data.decode(TEXT_ENCODING, TEXT_ERRORS)


@dataclass(frozen=True)
class ConnectCommand:
    verb: ClassVar[Verb] = Verb.CONNECT

    host: str
    port: str
    slot: str
    family: AddressFamily = AddressFamily.UNSPECIFIED
    nonblocking: bool = False
    deadline: Deadline = INFINITE


@dataclass(frozen=True)
class SendCommand:
    """
    send [-b64] <fd> [--] <data...>

    Plain words are joined with single spaces. With -b64 the words are
    concatenated and base64-decoded; a decode failure is an operational
    failure, not a usage error, because the arguments were well formed.
    """

    verb: ClassVar[Verb] = Verb.SEND

    handle: int
    words: Tuple[str, ...]
    decode_base64: bool = False

    def payload(self) -> bytes:
        if not self.decode_base64:
            return encode_text(" ".join(self.words))

        text = "".join(self.words)
        text += "=" * (-len(text) % 4)  # tolerate missing padding
        try:
            return base64.b64decode(text, validate=True)
        except (binascii.Error, ValueError):
            raise OperationalFailure("send: base64 decode failed")


@dataclass(frozen=True)
class RecvCommand:
    verb: ClassVar[Verb] = Verb.RECV

    handle: int
    slot: str
    mode: ReceiveMode = ReceiveMode.LINE
    deadline: Deadline = INFINITE
    cap: Optional[int] = None


@dataclass(frozen=True)
class CloseCommand:
    verb: ClassVar[Verb] = Verb.CLOSE

    handle: int


@dataclass(frozen=True)
class ListenCommand:
    verb: ClassVar[Verb] = Verb.LISTEN

    port: int
    slot: str
    address: Optional[str] = None
    backlog: Optional[int] = None


@dataclass(frozen=True)
class AcceptCommand:
    verb: ClassVar[Verb] = Verb.ACCEPT

    handle: int
    slot: str
    peer_slot: Optional[str] = None
    deadline: Deadline = INFINITE


Command = Union[
    ConnectCommand,
    SendCommand,
    RecvCommand,
    CloseCommand,
    ListenCommand,
    AcceptCommand,
]
