"""Chat against the echo CLI in this directory. No key or assistant CLI needed."""

import sys
from pathlib import Path

from textual.app import App, ComposeResult

from textual_claude import ChatPanel, TransportConfig, TransportKind

ECHO_CLI = Path(__file__).with_name("echo_cli.py")


class OfflineChatApp(App):
    def compose(self) -> ComposeResult:
        yield ChatPanel(
            config=TransportConfig(
                preferred_transport=TransportKind.CLI,
                command_path=sys.executable,
                cli_args=(str(ECHO_CLI),),
            ),
            title="echo",
        )


if __name__ == "__main__":
    OfflineChatApp().run()
