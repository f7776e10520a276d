"""
pytest configuration and fixtures.
"""

import io
import logging
import socket
from typing import Generator, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tcpctl import Deadline, Dispatcher, EngineConfig, SocketEngine


@pytest.fixture(autouse=True)
def reset_package_logger() -> Generator[None, None, None]:
    """Undo configure_logging() calls made by CLI tests."""
    yield
    package_logger = logging.getLogger("tcpctl")
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


@pytest.fixture
def config() -> EngineConfig:
    """Default test engine configuration (small buffers to exercise growth)."""
    return EngineConfig(
        initial_buffer_size=16,
        line_chunk_size=8,
        default_bytes_cap=4096,
    )


@pytest.fixture
def engine(config: EngineConfig) -> Generator[SocketEngine, None, None]:
    """Engine that closes every handle it still owns after the test."""
    eng = SocketEngine(config)
    yield eng
    eng.close_all()


@pytest.fixture
def err() -> io.StringIO:
    """Captures the dispatcher's diagnostics."""
    return io.StringIO()


@pytest.fixture
def dispatcher(engine: SocketEngine, err: io.StringIO) -> Dispatcher:
    return Dispatcher(engine, err=err)


@pytest.fixture
def listener(engine: SocketEngine, free_port: int) -> Tuple[int, int]:
    """A loopback listener handle and the port it is bound to."""
    handle = engine.listen(free_port, address="127.0.0.1")
    return handle, free_port


@pytest.fixture
def connected_pair(engine: SocketEngine, listener: Tuple[int, int]) -> Tuple[int, int]:
    """
    (server_handle, client_handle) for one loopback connection,
    both owned by ``engine``.
    """
    listen_handle, port = listener
    client = engine.connect("127.0.0.1", port, deadline=Deadline.bounded(2000))
    accepted = engine.accept(listen_handle, Deadline.bounded(2000))
    return accepted.handle, client
