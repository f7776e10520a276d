"""
Unit tests for exit statuses and the error taxonomy.
"""

import errno

import pytest

from tcpctl.errors import (
    ClosedHandleError,
    InvalidHandleError,
    OperationalFailure,
    OperationTimeout,
    SocketCommandError,
    UsageError,
    WrongHandleKindError,
)
from tcpctl.status import ExitStatus


class TestExitStatus:
    """Tests for ExitStatus."""

    def test_stable_codes(self):
        assert int(ExitStatus.OK) == 0
        assert int(ExitStatus.FAILURE) == 1
        assert int(ExitStatus.USAGE) == 2
        assert int(ExitStatus.TIMEOUT) == 124

    def test_labels(self):
        assert ExitStatus.TIMEOUT.label == "timeout"
        assert ExitStatus.USAGE.label == "usage error"

    def test_predicates(self):
        assert ExitStatus.OK.is_success
        assert not ExitStatus.FAILURE.is_success
        assert ExitStatus.TIMEOUT.is_retryable
        assert not ExitStatus.FAILURE.is_retryable


class TestErrors:
    """Tests for SocketCommandError subclasses."""

    @pytest.mark.parametrize("error, status", [
        (UsageError("x"), ExitStatus.USAGE),
        (OperationTimeout("x"), ExitStatus.TIMEOUT),
        (OperationalFailure("x"), ExitStatus.FAILURE),
        (InvalidHandleError(9), ExitStatus.FAILURE),
        (ClosedHandleError(9), ExitStatus.FAILURE),
    ])
    def test_exit_status(self, error, status):
        assert isinstance(error, SocketCommandError)
        assert error.exit_status is status

    def test_timeout_is_not_an_os_error(self):
        """except OSError must not swallow our timeout."""
        assert not issubclass(OperationTimeout, OSError)

    def test_from_os_error(self):
        failure = OperationalFailure.from_os_error(
            "connect", ConnectionRefusedError(errno.ECONNREFUSED, "Connection refused")
        )
        assert failure.message == "connect: Connection refused"
        assert failure.errno == errno.ECONNREFUSED

    def test_from_errno(self):
        failure = OperationalFailure.from_errno("listen", errno.EADDRINUSE)
        assert failure.message.startswith("listen: ")
        assert failure.errno == errno.EADDRINUSE

    def test_handle_errors(self):
        assert InvalidHandleError(4).errno == errno.EBADF
        assert ClosedHandleError(4).handle == 4
        wrong = WrongHandleKindError(4, "connection", "listener")
        assert wrong.errno == errno.ENOTCONN
        assert "listener" in wrong.message
        assert isinstance(wrong, OperationalFailure)
