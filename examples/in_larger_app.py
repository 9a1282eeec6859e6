"""Add the assistant to an existing app as a sidebar that sees the open file."""

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Footer, Header, TextArea

from textual_claude import ChatPanel, EditorContext, SessionStorage
from textual_claude.tasks import TaskUnavailable, explain_code

SAMPLE = '''def fizzbuzz(n):
    for i in range(1, n + 1):
        if i % 15 == 0:
            print("FizzBuzz")
        elif i % 3 == 0:
            print("Fizz")
        elif i % 5 == 0:
            print("Buzz")
        else:
            print(i)
'''


class EditorApp(App):
    CSS = """
    #editor { width: 1fr; }
    #sidebar { width: 60; border-left: solid $primary; }
    """

    BINDINGS = [
        Binding("ctrl+b", "toggle_sidebar", "Toggle Chat"),
        Binding("ctrl+e", "explain", "Explain selection"),
        Binding("ctrl+q", "quit", "Quit"),
    ]

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal():
            yield TextArea(SAMPLE, language="python", id="editor")
            yield ChatPanel(
                context_provider=self.editor_context,
                storage=SessionStorage(),
                id="sidebar",
            )
        yield Footer()

    def editor_context(self) -> EditorContext:
        editor = self.query_one("#editor", TextArea)
        return EditorContext(
            file_content=editor.text,
            selection=editor.selected_text or None,
            language="python",
            filename="fizzbuzz.py",
        )

    def action_toggle_sidebar(self) -> None:
        self.query_one(ChatPanel).display = not self.query_one(ChatPanel).display

    async def action_explain(self) -> None:
        try:
            task = explain_code(None, self.editor_context())
        except TaskUnavailable as e:
            self.notify(str(e), severity="warning")
            return
        await self.query_one(ChatPanel).run_task(task)


if __name__ == "__main__":
    EditorApp().run()
