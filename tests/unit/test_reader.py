"""
Unit tests for FramedReader buffer sizing.
"""

import socket
from typing import List

import pytest

from tcpctl.core.deadline import Deadline
from tcpctl.core.reader import FramedReader, ReceiveMode


class RecordingSocket:
    """Wraps a real socket and remembers every recv() size asked for."""

    def __init__(self, sock: socket.socket):
        self.sock = sock
        self.sizes: List[int] = []

    def fileno(self) -> int:
        return self.sock.fileno()

    def recv(self, size: int) -> bytes:
        self.sizes.append(size)
        return self.sock.recv(size)


@pytest.fixture
def pair():
    a, b = socket.socketpair()
    yield a, b
    a.close()
    b.close()


@pytest.fixture
def reader() -> FramedReader:
    return FramedReader(line_chunk_size=8, initial_buffer_size=16, default_bytes_cap=4096)


class TestBytesMode:
    """Tests for recv -mode bytes buffer growth."""

    def test_large_cap_starts_at_initial_capacity(self, pair, reader):
        """A huge -max does not turn into a huge first read."""
        a, b = pair
        b.sendall(b"abc")
        b.close()
        wrapped = RecordingSocket(a)

        data = reader.receive(wrapped, ReceiveMode.BYTES, Deadline.bounded(1000), cap=50_000_000)

        assert data == b"abc"
        assert wrapped.sizes[0] == 16
        assert max(wrapped.sizes) <= 16

    def test_reads_double_as_data_arrives(self, pair, reader):
        a, b = pair
        b.sendall(b"x" * 40)
        b.close()
        wrapped = RecordingSocket(a)

        data = reader.receive(wrapped, ReceiveMode.BYTES, Deadline.bounded(1000), cap=100)

        assert data == b"x" * 40
        assert wrapped.sizes[:3] == [16, 16, 32]

    def test_small_cap_reads_exactly_cap(self, pair, reader):
        a, b = pair
        b.sendall(b"0123456789")
        wrapped = RecordingSocket(a)

        assert reader.receive(wrapped, ReceiveMode.BYTES, Deadline.bounded(1000), cap=4) == b"0123"
        assert wrapped.sizes == [4]
