"""
Named result slots.

Results never travel through stdout. Handles, received data and peer
strings are stored under the variable names the command was given, the
way a shell builtin binds shell variables.

Slots hold text. Received bytes are cut at the first NUL (a host string
cannot carry one) and decoded with surrogateescape, so any other byte
sequence round-trips exactly through get_bytes().
"""

from typing import Optional

from .parser import check_slot
from .verbs import decode_text, encode_text


class ResultSlots(dict):
    """A ``dict[str, str]`` that only accepts valid variable names."""

    def __setitem__(self, name: str, value: str) -> None:
        check_slot(name)
        if not isinstance(value, str):
            raise TypeError(f"slot values are text, got {type(value).__name__}")
        super().__setitem__(name, value)

    def set_handle(self, name: str, handle: int) -> None:
        self[name] = str(handle)

    def set_bytes(self, name: str, data: bytes) -> None:
        nul = data.find(b"\x00")
        if nul >= 0:
            data = data[:nul]
        self[name] = decode_text(data)

    def get_handle(self, name: str) -> Optional[int]:
        value = self.get(name)
        if value is None or not value.isdigit():
            return None
        return int(value)

    def get_bytes(self, name: str) -> bytes:
        return encode_text(self.get(name, ""))
