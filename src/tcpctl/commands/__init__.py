"""
Command surface: verbs, argument grammar, result slots and dispatch.

Exports:
- Verb, *Command: Typed commands
- CommandParser, USAGE: argv → typed command
- ResultSlots: Named result variables
- Dispatcher: Run a command, get an ExitStatus
"""

from .verbs import (
    AcceptCommand,
    CloseCommand,
    Command,
    ConnectCommand,
    ListenCommand,
    RecvCommand,
    SendCommand,
    Verb,
    decode_text,
    encode_text,
)
from .parser import USAGE, CommandParser
from .slots import ResultSlots
from .dispatcher import Dispatcher

__all__ = [
    "AcceptCommand",
    "CloseCommand",
    "Command",
    "ConnectCommand",
    "ListenCommand",
    "RecvCommand",
    "SendCommand",
    "Verb",
    "decode_text",
    "encode_text",
    "USAGE",
    "CommandParser",
    "ResultSlots",
    "Dispatcher",
]
