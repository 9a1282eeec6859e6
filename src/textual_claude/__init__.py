"""Coding assistant chat for Textual apps. Talk to Claude from your TUI in 6 lines of code.

    from textual.app import App, ComposeResult
    from textual_claude import ChatPanel

    class MyApp(App):
        def compose(self) -> ComposeResult:
            yield ChatPanel()

    MyApp().run()

Without a UI, drive a ``ConversationSession`` directly:

    session = ConversationSession(Dispatcher(TransportConfig.from_env()))
    await session.send("Explain this function")
"""

# Re-export Golden for convenience
from textual_golden import Golden

from .chat import ChatPanel
from .config import ConfigurationError, TransportConfig, TransportKind
from .dispatcher import Completion, Dispatcher, Request
from .errors import (
    APIError,
    CancelledRequest,
    DispatchError,
    EmptyResponse,
    JSONParseError,
    NonZeroExit,
    ProcessSpawnFailure,
    TransportUnavailable,
)
from .events import EntryAdded, EntryUpdated, HistoryCleared, HistoryRestored, SessionEvent
from .prompt import EditorContext
from .session import ConversationEntry, ConversationSession, EntryState
from .session_storage import SessionStorage
from .widgets import ChatInput, MessageWidget

__version__ = "0.1.0"
__all__ = [
    "ChatPanel",
    "ChatInput",
    "MessageWidget",
    "Golden",
    "TransportConfig",
    "TransportKind",
    "ConfigurationError",
    "Dispatcher",
    "Request",
    "Completion",
    "DispatchError",
    "TransportUnavailable",
    "ProcessSpawnFailure",
    "NonZeroExit",
    "EmptyResponse",
    "JSONParseError",
    "APIError",
    "CancelledRequest",
    "EditorContext",
    "ConversationSession",
    "ConversationEntry",
    "EntryState",
    "SessionEvent",
    "EntryAdded",
    "EntryUpdated",
    "HistoryCleared",
    "HistoryRestored",
    "SessionStorage",
]
