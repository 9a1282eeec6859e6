"""Change events delivered to the session's render hooks.

Each mutation of a ConversationSession produces exactly one of these.
Listeners receive the event after the state has been updated, so a
``session.get_history()`` inside a listener already reflects it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .session import ConversationEntry


@dataclass(frozen=True)
class EntryAdded:
    """A new entry was appended (it may have evicted older ones)."""

    entry: ConversationEntry
    evicted: tuple[ConversationEntry, ...] = ()


@dataclass(frozen=True)
class EntryUpdated:
    """An entry changed state."""

    entry: ConversationEntry
    previous: ConversationEntry


@dataclass(frozen=True)
class HistoryCleared:
    """All entries were removed."""

    count: int


@dataclass(frozen=True)
class HistoryRestored:
    """Entries were replaced from a snapshot."""

    count: int


# Union type for all possible events
SessionEvent = EntryAdded | EntryUpdated | HistoryCleared | HistoryRestored
