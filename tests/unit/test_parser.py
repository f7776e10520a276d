"""
Unit tests for command parsing.
"""

import pytest

from tcpctl.core import AddressFamily, Deadline, ReceiveMode
from tcpctl.commands.parser import CommandParser, check_slot, parse_deadline, parse_uint
from tcpctl.commands.verbs import (
    AcceptCommand,
    CloseCommand,
    ConnectCommand,
    ListenCommand,
    RecvCommand,
    SendCommand,
)
from tcpctl.errors import UsageError
from tcpctl.status import ExitStatus


@pytest.fixture
def parser() -> CommandParser:
    return CommandParser()


class TestNumbers:
    """Tests for strict decimal parsing."""

    def test_plain_decimal(self):
        assert parse_uint("42", "n") == 42
        assert parse_uint("0", "n") == 0

    @pytest.mark.parametrize("text", ["+5", " 5", "5ms", "0x10", "", "-3", "1.5"])
    def test_rejects_non_decimal(self, text):
        with pytest.raises(UsageError):
            parse_uint(text, "n")

    def test_rejects_out_of_range(self):
        with pytest.raises(UsageError):
            parse_uint("65536", "-p", maximum=65535)

    def test_deadline_minus_one_is_infinite(self):
        assert parse_deadline("-1").is_infinite
        assert parse_deadline("0").is_immediate
        assert parse_deadline("250") == Deadline.bounded(250)

    def test_deadline_other_negative_rejected(self):
        with pytest.raises(UsageError):
            parse_deadline("-2")

    def test_deadline_limited_to_poll_range(self):
        """poll() takes a C int; larger budgets are usage errors, not crashes."""
        assert parse_deadline("2147483647") == Deadline.bounded(2147483647)
        with pytest.raises(UsageError):
            parse_deadline("2147483648")
        with pytest.raises(UsageError):
            parse_deadline("4294967295")


class TestSlotNames:
    """Tests for result variable names."""

    @pytest.mark.parametrize("name", ["fd", "_x", "Line2", "peer_addr"])
    def test_valid(self, name):
        assert check_slot(name) == name

    @pytest.mark.parametrize("name", ["", "2fd", "a-b", "a b", "$fd"])
    def test_invalid(self, name):
        with pytest.raises(UsageError):
            check_slot(name)


class TestCommandParser:
    """Tests for CommandParser.parse()."""

    def test_empty_argv(self, parser):
        with pytest.raises(UsageError):
            parser.parse([])

    def test_unknown_verb(self, parser):
        with pytest.raises(UsageError) as exc_info:
            parser.parse(["shutdown", "3"])
        assert exc_info.value.exit_status is ExitStatus.USAGE

    def test_connect_defaults(self, parser):
        command = parser.parse(["connect", "example.org", "80", "fd"])
        assert command == ConnectCommand(host="example.org", port="80", slot="fd")
        assert command.deadline.is_infinite
        assert command.family is AddressFamily.UNSPECIFIED

    def test_connect_options(self, parser):
        command = parser.parse(["connect", "-6", "-n", "-T", "500", "::1", "http", "fd"])
        assert command.family is AddressFamily.IPV6
        assert command.nonblocking is True
        assert command.deadline == Deadline.bounded(500)
        assert command.port == "http"

    def test_connect_wrong_arity(self, parser):
        with pytest.raises(UsageError):
            parser.parse(["connect", "example.org", "80"])
        with pytest.raises(UsageError):
            parser.parse(["connect", "example.org", "80", "fd", "extra"])

    def test_option_missing_value(self, parser):
        with pytest.raises(UsageError):
            parser.parse(["connect", "-T"])

    def test_unknown_option(self, parser):
        with pytest.raises(UsageError):
            parser.parse(["recv", "-x", "3", "line"])

    def test_send_joins_after_double_dash(self, parser):
        """'--' is consumed; data may start with '-' after the fd."""
        command = parser.parse(["send", "5", "--", "-hello", "world"])
        assert isinstance(command, SendCommand)
        assert command.handle == 5
        assert command.words == ("-hello", "world")
        assert command.payload() == b"-hello world"

    def test_send_requires_data(self, parser):
        with pytest.raises(UsageError):
            parser.parse(["send", "5"])
        with pytest.raises(UsageError):
            parser.parse(["send", "5", "--"])

    def test_send_b64_flag(self, parser):
        command = parser.parse(["send", "-b64", "5", "aGk="])
        assert command.decode_base64 is True

    def test_recv_defaults(self, parser):
        command = parser.parse(["recv", "3", "line"])
        assert command == RecvCommand(handle=3, slot="line")
        assert command.mode is ReceiveMode.LINE
        assert command.cap is None

    def test_recv_options(self, parser):
        command = parser.parse(["recv", "-T", "0", "-max", "10", "-mode", "bytes", "3", "data"])
        assert command.deadline.is_immediate
        assert command.cap == 10
        assert command.mode is ReceiveMode.BYTES

    def test_recv_max_zero_means_no_cap(self, parser):
        assert parser.parse(["recv", "-max", "0", "3", "data"]).cap is None

    def test_recv_bad_mode(self, parser):
        with pytest.raises(UsageError):
            parser.parse(["recv", "-mode", "words", "3", "data"])

    def test_recv_bad_slot(self, parser):
        with pytest.raises(UsageError):
            parser.parse(["recv", "3", "1bad"])

    def test_close(self, parser):
        assert parser.parse(["close", "7"]) == CloseCommand(handle=7)
        with pytest.raises(UsageError):
            parser.parse(["close", "seven"])
        with pytest.raises(UsageError):
            parser.parse(["close"])

    def test_listen(self, parser):
        command = parser.parse(["listen", "-b", "16", "-a", "127.0.0.1", "-p", "9000", "lfd"])
        assert command == ListenCommand(port=9000, slot="lfd", address="127.0.0.1", backlog=16)

    def test_listen_port_zero_is_usage_error(self, parser):
        with pytest.raises(UsageError):
            parser.parse(["listen", "-p", "0", "lfd"])
        with pytest.raises(UsageError):
            parser.parse(["listen", "lfd"])

    def test_accept_with_and_without_peer(self, parser):
        command = parser.parse(["accept", "-T", "-1", "4", "cfd", "peer"])
        assert command == AcceptCommand(handle=4, slot="cfd", peer_slot="peer")
        assert command.deadline.is_infinite
        assert parser.parse(["accept", "4", "cfd"]).peer_slot is None
