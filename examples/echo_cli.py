#!/usr/bin/env python
"""Stand-in assistant CLI for trying the chat without credentials.

Reads the prompt from stdin and echoes the last line back:

    python examples/offline_chat.py
"""

import sys


def main() -> int:
    prompt = sys.stdin.read().strip()
    if not prompt:
        print("echo_cli: empty prompt", file=sys.stderr)
        return 1
    last_line = prompt.splitlines()[-1]
    print(f"You said: {last_line}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
