"""
Command-script runner.

Feeds a sequence of command lines to a Dispatcher, one at a time:

    # echo one line back to the first client
    listen -a 127.0.0.1 -p 9000 lfd
    accept -T 5000 $lfd cfd peer
    recv -T 5000 -mode line $cfd line
    send $cfd $line
    close $cfd
    close $lfd

Lines are split with shlex (so quoting works and "#" starts a comment).
A leading "socket" word is allowed and ignored. In each word, $name and
${name} are replaced with the slot value ("" when unset); "$$" is a
literal dollar sign. Substituted values are never re-split.
"""

import logging
import re
import shlex
from typing import Iterable, List, Optional

from .commands import Dispatcher
from .errors import UsageError
from .status import ExitStatus


logger = logging.getLogger(__name__)


_REFERENCE = re.compile(r"\$\$|\$\{([A-Za-z_][A-Za-z0-9_]*)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


class ScriptRunner:
    """
    Runs command lines in order.

    Args:
        dispatcher: Dispatcher whose slots provide $name values.
        errexit: Stop at the first command that does not return OK.
    """

    def __init__(self, dispatcher: Dispatcher, errexit: bool = False):
        self.dispatcher = dispatcher
        self.errexit = errexit
        self.executed = 0

    def expand(self, word: str) -> str:
        def replace(match: "re.Match") -> str:
            if match.group(0) == "$$":
                return "$"
            name = match.group(1) or match.group(2)
            return self.dispatcher.slots.get(name, "")

        return _REFERENCE.sub(replace, word)

    def split(self, line: str) -> List[str]:
        """Tokenize one line and expand slot references. [] for blank/comment."""
        try:
            words = shlex.split(line, comments=True)
        except ValueError as e:
            raise UsageError(f"cannot parse line: {e}")
        if words and words[0] == "socket":
            words = words[1:]
            if not words:
                raise UsageError("missing command")
        return [self.expand(word) for word in words]

    def run_line(self, line: str) -> Optional[ExitStatus]:
        """Run one line. Returns None for blank and comment lines."""
        try:
            argv = self.split(line)
        except UsageError as e:
            return self.dispatcher.report_usage(e)
        if not argv:
            return None
        self.executed += 1
        status = self.dispatcher.run(argv)
        logger.debug(f"{argv[0]} -> {int(status)} ({status.label})")
        return status

    def run(self, lines: Iterable[str]) -> ExitStatus:
        """
        Run every line (or up to the first failure with errexit).

        Returns:
            Status of the last command executed, OK if none ran.
        """
        last = ExitStatus.OK
        for number, line in enumerate(lines, start=1):
            status = self.run_line(line)
            if status is None:
                continue
            last = status
            if self.errexit and status is not ExitStatus.OK:
                logger.info(f"Stopping at line {number}: {status.label}")
                break
        return last
