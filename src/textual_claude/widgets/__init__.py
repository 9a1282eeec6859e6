"""Widget components for textual-claude."""

from .chat_input import ChatInput
from .message import MessageWidget, assistant_widget_for

__all__ = [
    "ChatInput",
    "MessageWidget",
    "assistant_widget_for",
]
