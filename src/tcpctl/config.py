"""
=============================================================================
ENGINE CONFIGURATION
=============================================================================

Centralized tunables for the socket engine.

Nothing in here is per-call state. Deadlines, caps and modes always
travel with each command; this class only holds the defaults and sizes
the engine falls back on.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── python -m tcpctl --log-level DEBUG script.tcp              │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── TCPCTL_BACKLOG=512 python -m tcpctl script.tcp             │
    │                                                                      │
    │   3. Default values (in this dataclass)                             │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass


_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
_LOG_FORMATS = ("text", "json")


@dataclass
class EngineConfig:
    """
    Configuration for the socket engine.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    LISTEN
    - default_backlog

    RECEIVE
    - initial_buffer_size, line_chunk_size, default_bytes_cap

    LOGGING
    - log_level, log_format

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # LISTEN
    # ─────────────────────────────────────────────────────────────────────

    default_backlog: int = 128
    """
    listen() queue length used when the command gives no -b.
    When the queue is full, new connections are refused.
    """

    # ─────────────────────────────────────────────────────────────────────
    # RECEIVE
    # ─────────────────────────────────────────────────────────────────────

    initial_buffer_size: int = 4096
    """
    Starting capacity of the receive buffer. It doubles as data arrives,
    never beyond the command's cap.
    """

    line_chunk_size: int = 1024
    """
    recv() size in line mode. Bytes read past the newline are kept on the
    handle for the next read, so this only affects syscall count.
    """

    default_bytes_cap: int = 4096
    """Byte count for `recv -mode bytes` when no -max is given."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "WARNING"
    """
    Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    DEBUG shows every connect candidate, accept and close.
    """

    log_format: str = "text"
    """Log format: 'json' or 'text'."""

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        TCPCTL_BACKLOG      Default listen backlog (default: 128)
        TCPCTL_BUFFER_SIZE  Initial receive buffer (default: 4096)
        TCPCTL_LINE_CHUNK   Line-mode recv size (default: 1024)
        TCPCTL_BYTES_CAP    Bytes-mode default count (default: 4096)
        TCPCTL_LOG_LEVEL    Logging level (default: WARNING)
        TCPCTL_LOG_FORMAT   text or json (default: text)

        =====================================================================
        """
        return cls(
            default_backlog=int(os.getenv("TCPCTL_BACKLOG", "128")),
            initial_buffer_size=int(os.getenv("TCPCTL_BUFFER_SIZE", "4096")),
            line_chunk_size=int(os.getenv("TCPCTL_LINE_CHUNK", "1024")),
            default_bytes_cap=int(os.getenv("TCPCTL_BYTES_CAP", "4096")),
            log_level=os.getenv("TCPCTL_LOG_LEVEL", "WARNING"),
            log_format=os.getenv("TCPCTL_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Fail fast: a bad value should stop the engine before the first
        socket is opened, not surface halfway through a script.
        """
        if self.default_backlog < 0:
            raise ValueError(f"default_backlog must be >= 0")

        if self.initial_buffer_size < 1:
            raise ValueError(f"initial_buffer_size must be >= 1")

        if self.line_chunk_size < 1:
            raise ValueError(f"line_chunk_size must be >= 1")

        if self.default_bytes_cap < 1:
            raise ValueError(f"default_bytes_cap must be >= 1")

        if self.log_level.upper() not in _LOG_LEVELS:
            raise ValueError(f"Invalid log_level: {self.log_level}")

        if self.log_format not in _LOG_FORMATS:
            raise ValueError(f"log_format must be 'text' or 'json', got {self.log_format!r}")
