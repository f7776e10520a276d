"""
=============================================================================
EXAMPLE: LINE ECHO SERVER
=============================================================================

Accepts one client and echoes every line back until the client sends an
empty line or disconnects. Shows the status-driven loop a scripting host
writes around the dispatcher:

    ┌──────────────────────────────────────────────────────────────────┐
    │   listen ──► accept ──► recv line ──┬── 0   → send it back       │
    │                            ▲        ├── 124 → nothing yet, loop  │
    │                            │        └── 1   → peer gone, stop    │
    │                            └──────────────────────┘              │
    └──────────────────────────────────────────────────────────────────┘

Run:
    python examples/echo_server.py 12345
    # elsewhere:
    nc 127.0.0.1 12345

=============================================================================
"""

import sys

from tcpctl import Dispatcher, ExitStatus


def main() -> int:
    port = sys.argv[1] if len(sys.argv) > 1 else "12345"
    sh = Dispatcher()

    if sh.run(["listen", "-a", "0.0.0.0", "-p", port, "lfd"]) is not ExitStatus.OK:
        return 1
    print(f"Listening on 0.0.0.0:{port} (single client, Ctrl-C to exit)", file=sys.stderr)

    if sh.run(["accept", "-T", "-1", sh.slots["lfd"], "cfd", "peer"]) is not ExitStatus.OK:
        return 1
    print(f"Client: {sh.slots['peer']}", file=sys.stderr)

    while True:
        status = sh.run(["recv", "-T", "1000", "-mode", "line", sh.slots["cfd"], "line"])
        if status is ExitStatus.TIMEOUT:
            continue
        if status is not ExitStatus.OK or not sh.slots["line"].strip():
            break
        if sh.run(["send", sh.slots["cfd"], "--", sh.slots["line"]]) is not ExitStatus.OK:
            break

    sh.run(["close", sh.slots["cfd"]])
    sh.run(["close", sh.slots["lfd"]])
    print("Bye.", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
