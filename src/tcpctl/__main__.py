"""
=============================================================================
TCPCTL CLI ENTRY POINT
=============================================================================

Runs a script of socket commands in one process, so handles stay open
from one line to the next.

=============================================================================
USAGE
=============================================================================

    # Run a script file
    python -m tcpctl examples/http_get.tcp

    # Read commands from stdin
    printf 'connect -T 3000 example.org 80 fd\\nclose $fd\\n' | python -m tcpctl

    # One-liners
    python -m tcpctl -c 'listen -p 9000 lfd' -c 'accept -T 5000 $lfd cfd peer'

    # Stop at the first non-zero status, print slots as JSON at the end
    python -m tcpctl -e --dump script.tcp

    # Verbose logging to stderr
    python -m tcpctl --log-level DEBUG script.tcp

The exit status is the status of the last command that ran:
0 ok, 1 failure, 2 usage error, 124 timeout.

=============================================================================
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from . import __version__
from .commands import Dispatcher
from .config import EngineConfig
from .engine import SocketEngine
from .logging_setup import configure_logging
from .script import ScriptRunner
from .status import ExitStatus


logger = logging.getLogger("tcpctl.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tcpctl",
        description="Run TCP socket commands with explicit per-call deadlines",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m tcpctl script.tcp                     # Run a script file
  python -m tcpctl < script.tcp                   # Read commands from stdin
  python -m tcpctl -c 'connect -T 3000 h 80 fd'   # Single command
  python -m tcpctl -e --dump script.tcp           # Stop on error, dump slots
        """
    )

    parser.add_argument(
        "script",
        nargs="?",
        default=None,
        help="File of socket commands, one per line (default: stdin)"
    )

    parser.add_argument(
        "--command", "-c",
        action="append",
        default=None,
        help="Run this command line instead of a script (repeatable)"
    )

    parser.add_argument(
        "--errexit", "-e",
        action="store_true",
        help="Stop at the first command that does not succeed"
    )

    parser.add_argument(
        "--dump",
        action="store_true",
        help="Print result slots as JSON to stdout when done"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: WARNING, or TCPCTL_LOG_LEVEL)"
    )

    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=None,
        help="Log format (default: text, or TCPCTL_LOG_FORMAT)"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"tcpctl {__version__}"
    )

    return parser


def _read_lines(args: argparse.Namespace) -> List[str]:
    if args.command:
        return list(args.command)
    if args.script is None or args.script == "-":
        return sys.stdin.read().splitlines()
    with open(args.script, encoding="utf-8", errors="surrogateescape") as handle:
        return handle.read().splitlines()


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point. Returns the process exit status."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # =========================================================================
    # CONFIGURATION
    # =========================================================================
    # Environment first, CLI flags override.

    try:
        config = EngineConfig.from_env()
        if args.log_level:
            config.log_level = args.log_level
        if args.log_format:
            config.log_format = args.log_format
        config.validate()
    except ValueError as e:
        print(f"tcpctl: configuration error: {e}", file=sys.stderr)
        return int(ExitStatus.USAGE)

    configure_logging(config)

    try:
        lines = _read_lines(args)
    except OSError as e:
        print(f"tcpctl: {args.script}: {e.strerror or e}", file=sys.stderr)
        return int(ExitStatus.FAILURE)

    # =========================================================================
    # RUN
    # =========================================================================

    engine = SocketEngine(config)
    dispatcher = Dispatcher(engine)
    runner = ScriptRunner(dispatcher, errexit=args.errexit)

    try:
        with engine:
            status = runner.run(lines)
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
        return 130

    logger.debug(f"Ran {runner.executed} command(s), last status {int(status)}")

    if args.dump:
        json.dump(dict(dispatcher.slots), sys.stdout, indent=2, sort_keys=True)
        sys.stdout.write("\n")

    return int(status)


if __name__ == "__main__":
    sys.exit(main())
