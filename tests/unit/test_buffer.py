"""
Unit tests for the growable receive buffer.
"""

import pytest

from tcpctl.core.buffer import ByteAccumulator


class TestByteAccumulator:
    """Tests for ByteAccumulator."""

    def test_starts_empty(self):
        buf = ByteAccumulator(8)
        assert len(buf) == 0
        assert not buf
        assert buf.room == 8

    def test_doubles_when_full(self):
        """Capacity doubles once the buffer reaches it."""
        buf = ByteAccumulator(4)
        buf.append(b"abcd")
        assert buf.room == 4
        assert buf.capacity == 8

    def test_growth_never_passes_cap(self):
        buf = ByteAccumulator(4, cap=6)
        buf.append(b"abcd")
        assert buf.room == 2
        assert buf.capacity == 6
        buf.append(b"ef")
        assert buf.full
        assert buf.room == 0

    def test_append_past_cap_raises(self):
        buf = ByteAccumulator(4, cap=4)
        with pytest.raises(ValueError):
            buf.append(b"abcde")

    def test_large_append_grows_capacity(self):
        buf = ByteAccumulator(2)
        buf.append(b"x" * 100)
        assert len(buf) == 100
        assert buf.capacity >= 100

    def test_take_resets(self):
        """Bytes come out in order and the buffer is empty afterwards."""
        buf = ByteAccumulator(4)
        buf.append(b"hel")
        buf.append(b"lo\n")
        assert buf.find(b"\n") == 5
        assert buf.take() == b"hello\n"
        assert len(buf) == 0

    def test_initial_capacity_clamped_to_cap(self):
        assert ByteAccumulator(4096, cap=10).capacity == 10

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            ByteAccumulator(0)
        with pytest.raises(ValueError):
            ByteAccumulator(4, cap=-1)
