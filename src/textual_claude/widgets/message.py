"""Message widget for chat display."""

from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import ScrollableContainer, Vertical
from textual.widget import Widget
from textual.widgets import Markdown, Static
from textual_golden import Golden

from ..session import ConversationEntry, EntryState


def _error_text(error: str) -> Static:
    return Static(Text.assemble(("Error: ", "bold"), error), classes="content")


class MessageWidget(Widget):
    """One side of an exchange: the user's text or the assistant's reply.

    An assistant message starts with an animated "Thinking..." indicator and
    is replaced by the response (markdown) or an error once the entry
    reaches a terminal state.
    """

    DEFAULT_CSS = """
    MessageWidget {
        height: auto;
    }
    MessageWidget #message-content {
        height: auto;
    }
    """

    def __init__(
        self,
        role: str,
        content: str = "",
        waiting: bool = False,
        title: str | None = None,
    ) -> None:
        super().__init__(classes=f"message {role}")
        self.role = role
        self._initial_content = content
        self._waiting = waiting
        self.border_title = title or role.title()

    def compose(self) -> ComposeResult:
        with Vertical(id="message-content"):
            if self._waiting:
                yield Golden("Thinking...", id="loading-indicator")
            elif self.role == "error":
                yield _error_text(self._initial_content)
            elif self.role == "user":
                # user text is shown verbatim, not as markdown
                yield Static(Text(self._initial_content), classes="content")
            elif self._initial_content:
                yield Markdown(self._initial_content, classes="content")

    @property
    def waiting(self) -> bool:
        """True while the reply is still shown as "Thinking..."."""
        return self._waiting

    def _get_content_container(self) -> Vertical:
        """Get the content container."""
        return self.query_one("#message-content", Vertical)

    def _scroll_parent(self) -> None:
        """Scroll parent container to show this message."""
        if isinstance(self.parent, ScrollableContainer):
            self.parent.scroll_end(animate=False)

    def _replace_content(self, widget: Widget) -> None:
        self._waiting = False
        container = self._get_content_container()
        container.remove_children()
        container.mount(widget)
        self.call_after_refresh(self._scroll_parent)

    def update_content(self, content: str) -> None:
        """Replace all content with new markdown."""
        self.remove_class("error")
        self._replace_content(Markdown(content, classes="content"))

    def update_error(self, error: str) -> None:
        """Show error message in red."""
        self.add_class("error")
        self._replace_content(_error_text(error))


def assistant_widget_for(entry: ConversationEntry, title: str | None = None) -> MessageWidget:
    """Build the reply widget matching an entry's current state."""
    if entry.state is EntryState.RESOLVED:
        return MessageWidget("assistant", entry.response or "", title=title)
    if entry.state is EntryState.FAILED:
        return MessageWidget("error", entry.error_message or "", title=title or "Error")
    return MessageWidget("assistant", waiting=True, title=title)
