"""The simplest possible assistant chat app. 6 lines of code."""

from textual.app import App, ComposeResult

from textual_claude import ChatPanel


class ChatApp(App):
    def compose(self) -> ComposeResult:
        yield ChatPanel()


if __name__ == "__main__":
    ChatApp().run()
