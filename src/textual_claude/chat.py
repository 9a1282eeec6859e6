"""Coding assistant chat for Textual apps.

    from textual_claude import ChatPanel

    # In your Textual app:
    yield ChatPanel()

Requests go to the assistant CLI when it is installed, or to the Messages API
over curl when ANTHROPIC_API_KEY is set. Pass a ``context_provider`` to attach
the file, selection, or error the user is looking at:

    yield ChatPanel(context_provider=lambda: {"selection": editor.selected_text})
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

# Setup logging to file (controlled by TEXTUAL_CLAUDE_LOGGING_LEVEL env var)
_log_level = os.environ.get("TEXTUAL_CLAUDE_LOGGING_LEVEL", "").upper()
if _log_level:
    logging.basicConfig(
        filename="textual_claude.log",
        level=getattr(logging, _log_level, logging.DEBUG),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
log = logging.getLogger(__name__)

# Separate logger for raw prompts and responses (controlled by TEXTUAL_CLAUDE_LOG_LLM env var)
llm_log = logging.getLogger("textual_claude.llm")
llm_log.setLevel(logging.DEBUG)
llm_log.propagate = False  # Don't propagate to root logger
if os.environ.get("TEXTUAL_CLAUDE_LOG_LLM"):
    _llm_handler = logging.FileHandler("llm_content.log", mode="w")
    _llm_handler.setLevel(logging.DEBUG)
    _llm_handler.setFormatter(logging.Formatter("%(asctime)s\n%(message)s\n"))
    llm_log.addHandler(_llm_handler)

from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import ScrollableContainer, Vertical
from textual.css.query import NoMatches
from textual.message import Message
from textual.widget import Widget
from textual.widgets import Static

from .config import TransportConfig
from .dispatcher import Dispatcher
from .events import EntryAdded, EntryUpdated, HistoryCleared, HistoryRestored, SessionEvent
from .prompt import ContextLike
from .session import (
    DEFAULT_MAX_HISTORY,
    ContextProvider,
    ConversationEntry,
    ConversationSession,
    EntryState,
)
from .session_storage import SessionStorage
from .tasks import Task
from .widgets import ChatInput, MessageWidget, assistant_widget_for


class ChatPanel(Widget):
    """Assistant chat widget for Textual apps.

        from textual_claude import ChatPanel

        class MyApp(App):
            def compose(self):
                yield ChatPanel()

    Customize as needed:

        chat = ChatPanel(
            config=TransportConfig(preferred_transport=TransportKind.HTTP, credential=key),
            context_provider=current_editor_context,
            storage=SessionStorage(),
        )
    """

    DEFAULT_CSS = """
    ChatPanel {
        width: 100%;
        height: 100%;
        layout: vertical;
    }
    ChatPanel #chat-messages {
        height: 1fr;
        padding: 1;
    }
    ChatPanel #chat-input-area {
        height: auto;
        padding: 0 1 1 1;
        dock: bottom;
    }
    ChatPanel #chat-input {
        width: 100%;
        height: auto;
        min-height: 3;
        max-height: 12;
        background: transparent;
        border: round $surface-lighten-1;
    }
    ChatPanel #chat-input:focus {
        background: transparent;
        border: round $primary;
    }
    ChatPanel #chat-status {
        height: 1;
        padding: 0 1;
        color: $text-muted;
    }
    ChatPanel .message {
        width: 100%;
        padding: 0 1;
        margin: 0;
        border: round $primary-darken-2;
    }
    ChatPanel .message.user {
        border: round $primary;
    }
    ChatPanel .message.assistant {
        border: round $accent;
    }
    ChatPanel .message.error {
        border: round $error;
        color: $error;
    }
    ChatPanel .content {
        width: 100%;
        margin: 0;
        padding: 0;
    }
    ChatPanel .content > * {
        margin: 0 0 1 0;
        padding: 0;
    }
    ChatPanel .content > *:last-child {
        margin-bottom: 0;
    }
    """

    BINDINGS = [
        Binding("ctrl+l", "clear", "Clear", show=True),
        Binding("ctrl+c", "cancel", "Interrupt", show=True),
    ]

    class Sent(Message):
        """User sent a message."""

        def __init__(self, content: str) -> None:
            super().__init__()
            self.content = content

    class Responded(Message):
        """Assistant responded."""

        def __init__(self, content: str) -> None:
            super().__init__()
            self.content = content

    class ProcessingFailed(Message):
        """A request ended in an error."""

        def __init__(self, error: str) -> None:
            super().__init__()
            self.error = error

    class ProcessingCancelled(Message):
        """In-flight requests were interrupted by the user."""

        def __init__(self, count: int) -> None:
            super().__init__()
            self.count = count

    def __init__(
        self,
        session: ConversationSession | None = None,
        *,
        config: TransportConfig | None = None,
        context_provider: ContextProvider | None = None,
        max_history: int = DEFAULT_MAX_HISTORY,
        storage: SessionStorage | None = None,
        cwd: str | None = None,
        placeholder: str = "Ask about your code...",
        title: str | None = None,
        assistant_name: str | None = None,
        name: str | None = None,
        id: str | None = None,
        classes: str | None = None,
    ) -> None:
        """Create a chat panel.

        Args:
            session: Existing session to display. Built from ``config`` if not set.
            config: Transport configuration (read from the environment if not set)
            context_provider: Called on every send for the current editor context
            max_history: Number of exchanges kept in the transcript
            storage: Saves the transcript per working directory and restores it on mount
            cwd: Working directory used as the storage key (defaults to os.getcwd())
            placeholder: Input placeholder text
            title: Border title for the message input widget (optional).
            assistant_name: Border title for assistant replies (defaults to "Assistant").
        """
        super().__init__(name=name, id=id, classes=classes)

        self._owns_session = session is None
        if session is None:
            session = ConversationSession(
                Dispatcher(config),
                context_provider=context_provider,
                max_history=max_history,
            )
        self.session = session
        self.storage = storage
        self.cwd = cwd or os.getcwd()
        self.placeholder = placeholder
        self.title = title
        self.assistant_name = assistant_name

        # entry id -> (user widget, reply widget)
        self._widgets: dict[str, tuple[MessageWidget, MessageWidget]] = {}
        self.session.on_change(self._on_session_change)

    def compose(self) -> ComposeResult:
        yield ScrollableContainer(id="chat-messages")
        with Vertical(id="chat-input-area"):
            yield Static("", id="chat-status")
            yield ChatInput(
                placeholder=self.placeholder,
                title=self.title,
                subtitle=str(Path(self.cwd).name) if self.storage else None,
                id="chat-input",
            )

    def on_mount(self) -> None:
        """Restore a saved transcript and show transport status."""
        if self.storage:
            rows = self.storage.load(self.cwd)
            if rows:
                log.info(f"Restoring {len(rows)} entries for {self.cwd}")
                self.session.restore(rows)
        if not self._widgets:
            self._render_all()
        self._update_transport_status()

    async def on_unmount(self) -> None:
        self.session.remove_listener(self._on_session_change)
        if self._owns_session:
            await self.session.dispatcher.shutdown()

    # ========== Status ==========

    def _set_status(self, text: str) -> None:
        """Update the status line."""
        try:
            self.query_one("#chat-status", Static).update(text)
        except NoMatches:
            pass

    def _update_transport_status(self) -> None:
        status = self.session.dispatcher.status()
        active = self.session.dispatcher.active_count()
        if not status.available:
            self._set_status(f"⚠ {status.message}")
        elif active:
            self._set_status(f"{status.kind.value.upper()} · {active} request(s) in flight")
        else:
            self._set_status(f"{status.kind.value.upper()} · {status.message}")

    # ========== Rendering ==========

    def _add_exchange(self, entry: ConversationEntry) -> None:
        container = self.query_one("#chat-messages", ScrollableContainer)
        user = MessageWidget("user", entry.user_message, title="You")
        reply = assistant_widget_for(entry, title=self.assistant_name)
        container.mount(user)
        container.mount(reply)
        container.scroll_end(animate=False)
        self._widgets[entry.id] = (user, reply)

    def _remove_exchange(self, entry_id: str) -> None:
        widgets = self._widgets.pop(entry_id, None)
        if widgets:
            for widget in widgets:
                widget.remove()

    def _render_all(self) -> None:
        container = self.query_one("#chat-messages", ScrollableContainer)
        container.remove_children()
        self._widgets.clear()
        for entry in self.session.get_history():
            self._add_exchange(entry)

    def _on_session_change(self, event: SessionEvent) -> None:
        """Keep the message list in step with the transcript."""
        if not self.is_mounted:
            return

        if isinstance(event, EntryAdded):
            for old in event.evicted:
                self._remove_exchange(old.id)
            self._add_exchange(event.entry)
        elif isinstance(event, EntryUpdated):
            self._show_update(event.entry)
        elif isinstance(event, HistoryCleared):
            self.query_one("#chat-messages", ScrollableContainer).remove_children()
            self._widgets.clear()
        elif isinstance(event, HistoryRestored):
            self._render_all()

        self._update_transport_status()

    def _show_update(self, entry: ConversationEntry) -> None:
        widgets = self._widgets.get(entry.id)
        if widgets is None:
            return
        _, reply = widgets

        if entry.state is EntryState.RESOLVED:
            reply.update_content(entry.response or "")
            self.post_message(self.Responded(entry.response or ""))
        elif entry.state is EntryState.FAILED:
            reply.update_error(entry.error_message or "Unknown error")
            self.post_message(self.ProcessingFailed(entry.error_message or ""))
        else:
            return

        self._save_transcript()

    def _save_transcript(self) -> None:
        if self.storage:
            self.storage.save(self.cwd, self.session.snapshot())

    # ========== Input ==========

    async def on_chat_input_submitted(self, event: ChatInput.Submitted) -> None:
        """Handle message submission."""
        event.stop()
        await self._send(event.content)

    def on_chat_input_recall_requested(self, event: ChatInput.RecallRequested) -> None:
        """Step through earlier inputs."""
        event.stop()
        text = self.session.navigate_history(event.direction)
        try:
            self.query_one("#chat-input", ChatInput).recall(text)
        except NoMatches:
            pass

    async def _send(self, content: str) -> None:
        entry = await self.session.send(content)
        if entry is not None:
            self.post_message(self.Sent(entry.user_message))

    # ========== Actions ==========

    def action_clear(self) -> None:
        """Clear the transcript. Requests in flight keep running."""
        self.session.clear()
        if self.storage:
            self.storage.delete(self.cwd)
        self._set_status("Cleared")

    def action_cancel(self) -> None:
        """Interrupt every request in flight."""
        count = self.session.cancel()
        if count:
            self.post_message(self.ProcessingCancelled(count))
            self._set_status("⚡ Interrupted")

    # Convenience methods for programmatic use

    async def say(self, message: str) -> ConversationEntry | None:
        """Send a message as if the user had typed it."""
        return await self.session.send(message)

    async def run_task(self, task: Task) -> ConversationEntry | None:
        """Send a prebuilt task prompt (see ``textual_claude.tasks``)."""
        return await self.session.send_task(task.prompt, task.context)

    @property
    def active_context(self) -> ContextLike:
        return self.session.active_context
