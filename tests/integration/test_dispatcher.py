"""
Integration tests for the command surface: Dispatcher, slots and CLI.
"""

import json
import time

import pytest

from tcpctl.__main__ import main
from tcpctl.status import ExitStatus


@pytest.fixture
def session(dispatcher, free_port):
    """A dispatcher with a listener, a client and the accepted server side."""
    d = dispatcher
    assert d("listen", "-a", "127.0.0.1", "-p", str(free_port), "lfd") is ExitStatus.OK
    assert d("connect", "-T", "2000", "127.0.0.1", str(free_port), "cfd") is ExitStatus.OK
    assert d("accept", "-T", "2000", d.slots["lfd"], "sfd", "peer") is ExitStatus.OK
    return d


class TestDispatcher:
    """Tests for Dispatcher.run()."""

    def test_ping_round_trip(self, session):
        d = session
        assert d("send", d.slots["cfd"], "ping\n") is ExitStatus.OK
        assert d("recv", "-T", "2000", d.slots["sfd"], "got") is ExitStatus.OK
        assert d.slots["got"] == "ping\n"

        assert d("send", d.slots["sfd"], "--", "-pong", "back") is ExitStatus.OK
        assert d("recv", "-T", "2000", "-mode", "bytes", "-max", "10", d.slots["cfd"], "got") is ExitStatus.OK
        assert d.slots["got"] == "-pong back"

    def test_peer_slot(self, session):
        host, _, port = session.slots["peer"].rpartition(":")
        assert host == "127.0.0.1"
        assert port.isdigit()

    def test_timeout_clears_slot_and_prints_nothing(self, session, err):
        d = session
        d.slots["got"] = "stale"
        started = time.monotonic()
        assert d("recv", "-T", "150", d.slots["sfd"], "got") is ExitStatus.TIMEOUT
        assert time.monotonic() - started >= 0.14
        assert d.slots["got"] == ""
        assert err.getvalue() == ""

    def test_base64_send(self, session):
        d = session
        assert d("send", "-b64", d.slots["cfd"], "AGhp") is ExitStatus.OK
        assert d("recv", "-T", "2000", "-mode", "bytes", "-max", "3", d.slots["sfd"], "got") is ExitStatus.OK
        # Leading NUL truncates the slot value.
        assert d.slots["got"] == ""

    def test_bad_base64_is_failure(self, session, err):
        d = session
        assert d("send", "-b64", d.slots["cfd"], "!!!") is ExitStatus.FAILURE
        assert "base64" in err.getvalue()

    def test_double_close(self, session, err):
        d = session
        assert d("close", d.slots["cfd"]) is ExitStatus.OK
        assert d("close", d.slots["cfd"]) is ExitStatus.FAILURE
        assert err.getvalue() == ""

    def test_usage_error_prints_usage(self, dispatcher, err):
        assert dispatcher("listen", "-p", "0", "lfd") is ExitStatus.USAGE
        text = err.getvalue()
        assert text.startswith("socket listen: ")
        assert "usage:" in text

    def test_wrong_kind_is_failure(self, session, err):
        d = session
        assert d("recv", "-T", "0", d.slots["lfd"], "got") is ExitStatus.FAILURE
        assert "listener" in err.getvalue()

    def test_accept_timeout(self, session):
        d = session
        assert d("accept", "-T", "100", d.slots["lfd"], "other") is ExitStatus.TIMEOUT
        assert "other" not in d.slots

    def test_connect_failure_message(self, dispatcher, err, free_port):
        status = dispatcher("connect", "-T", "2000", "127.0.0.1", str(free_port), "fd")
        assert status is ExitStatus.FAILURE
        assert err.getvalue().startswith("socket connect: ")
        assert "fd" not in dispatcher.slots

    def test_invalid_handle_names_the_verb(self, dispatcher, err):
        assert dispatcher("send", "987654", "x") is ExitStatus.FAILURE
        assert err.getvalue() == "socket send: invalid handle 987654\n"

    def test_unknown_verb_has_no_verb_prefix(self, dispatcher, err):
        assert dispatcher("bogus") is ExitStatus.USAGE
        assert err.getvalue().startswith("socket: unknown command 'bogus'")

    @pytest.mark.parametrize("verb", ["recv", "accept"])
    def test_deadline_past_poll_range_is_usage_error(self, session, err, verb):
        """-T beyond what poll() accepts is rejected before any wait."""
        d = session
        handle = d.slots["sfd"] if verb == "recv" else d.slots["lfd"]
        assert d(verb, "-T", "3000000000", handle, "got") is ExitStatus.USAGE
        assert err.getvalue().startswith(f"socket {verb}: -T:")
        assert "got" not in d.slots

    def test_largest_deadline_is_accepted(self, session):
        d = session
        assert d("send", d.slots["cfd"], "now\n") is ExitStatus.OK
        assert d("recv", "-T", "2147483647", d.slots["sfd"], "got") is ExitStatus.OK
        assert d.slots["got"] == "now\n"


class TestCli:
    """Tests for python -m tcpctl."""

    def test_commands_and_dump(self, free_port, capsys):
        status = main([
            "-c", f"listen -a 127.0.0.1 -p {free_port} lfd",
            "-c", "accept -T 0 $lfd cfd",
            "--dump",
        ])
        assert status == 124
        slots = json.loads(capsys.readouterr().out)
        assert slots["lfd"].isdigit()
        assert "cfd" not in slots

    def test_errexit(self, capsys):
        status = main(["-e", "-c", "close 999999", "-c", "bogus"])
        assert status == 1
        assert "usage:" not in capsys.readouterr().err

    def test_script_file(self, tmp_path, free_port, capsys):
        script = tmp_path / "echo.tcp"
        script.write_text(
            f"socket listen -a 127.0.0.1 -p {free_port} lfd\n"
            f"socket connect -T 2000 127.0.0.1 {free_port} cfd\n"
            "socket accept -T 2000 $lfd sfd peer\n"
            "# one line there and back\n"
            "socket send $cfd 'hello there'\n"
            "socket recv -T 2000 -mode bytes -max 11 $sfd got\n"
        )
        assert main(["-e", "--dump", str(script)]) == 0
        slots = json.loads(capsys.readouterr().out)
        assert slots["got"] == "hello there"

    def test_missing_script(self, tmp_path, capsys):
        assert main([str(tmp_path / "nope.tcp")]) == 1
        assert "nope.tcp" in capsys.readouterr().err

    def test_bad_env_config(self, monkeypatch, capsys):
        monkeypatch.setenv("TCPCTL_LOG_FORMAT", "xml")
        assert main(["-c", "close 1"]) == 2
        assert "configuration error" in capsys.readouterr().err
