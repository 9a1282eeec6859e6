"""Conversation session.

Turns user input into dispatched requests and keeps a bounded, ordered
transcript of the exchanges:

    session = ConversationSession(Dispatcher(config), context_provider=get_context)

    @session.on_change
    def redraw(event: SessionEvent) -> None:
        ...

    await session.send("Why does this test fail?")

Entries are immutable values. A state change replaces the entry in the
transcript with an updated copy, so snapshots handed out by
``get_history()`` never change underneath the caller.

Each entry moves through Pending -> Loading -> Resolved/Failed, or straight
from Pending to Failed when the dispatcher rejects the request up front.
"""

from __future__ import annotations

import logging
import time
import uuid
from collections import deque
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from .config import ConfigurationError, TransportKind
from .dispatcher import Dispatcher
from .errors import CancelledRequest, DispatchError
from .events import EntryAdded, EntryUpdated, HistoryCleared, HistoryRestored, SessionEvent
from .prompt import ContextLike

log = logging.getLogger(__name__)

DEFAULT_MAX_HISTORY = 50
DEFAULT_INPUT_HISTORY_SIZE = 50

ContextProvider = Callable[[], ContextLike]
ChangeListener = Callable[[SessionEvent], None]


class EntryState(str, Enum):
    PENDING = "pending"
    LOADING = "loading"
    RESOLVED = "resolved"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (EntryState.RESOLVED, EntryState.FAILED)


_TRANSITIONS: dict[EntryState, frozenset[EntryState]] = {
    EntryState.PENDING: frozenset({EntryState.LOADING, EntryState.FAILED}),
    EntryState.LOADING: frozenset({EntryState.RESOLVED, EntryState.FAILED}),
    EntryState.RESOLVED: frozenset(),
    EntryState.FAILED: frozenset(),
}


class InvalidTransition(Exception):
    """An entry was asked to leave a state it cannot leave."""

    pass


@dataclass(frozen=True)
class ConversationEntry:
    """One user/assistant exchange."""

    user_message: str
    state: EntryState = EntryState.PENDING
    response: str | None = None
    error_message: str | None = None
    timestamp: float = field(default_factory=time.time)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    request_id: str | None = None
    transport_kind: TransportKind | None = None

    def transition(self, state: EntryState, **changes: Any) -> ConversationEntry:
        """Return a copy in ``state``.

        Raises:
            InvalidTransition: the move is not part of the entry lifecycle.
        """
        if state not in _TRANSITIONS[self.state]:
            raise InvalidTransition(f"Cannot move entry from {self.state.value} to {state.value}")
        return replace(self, state=state, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "user_message": self.user_message,
            "state": self.state.value,
            "response": self.response,
            "error_message": self.error_message,
            "timestamp": self.timestamp,
            "request_id": self.request_id,
            "transport_kind": self.transport_kind.value if self.transport_kind else None,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ConversationEntry:
        kind = data.get("transport_kind")
        return cls(
            id=str(data.get("id") or uuid.uuid4().hex),
            user_message=str(data["user_message"]),
            state=EntryState(data.get("state", EntryState.PENDING.value)),
            response=data.get("response"),
            error_message=data.get("error_message"),
            timestamp=float(data.get("timestamp") or time.time()),
            request_id=data.get("request_id"),
            transport_kind=TransportKind(kind) if kind else None,
        )


class InputHistory:
    """Bounded recall buffer of previously sent raw inputs.

    The cursor runs from 0 (oldest) to ``len(self)``, which means "editing a
    fresh line".
    """

    def __init__(self, size: int = DEFAULT_INPUT_HISTORY_SIZE) -> None:
        if size < 1:
            raise ConfigurationError(f"input history size must be >= 1, got {size}")
        self._items: deque[str] = deque(maxlen=size)
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._items)

    @property
    def size(self) -> int:
        return self._items.maxlen or 0

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def items(self) -> tuple[str, ...]:
        return tuple(self._items)

    def append(self, text: str) -> None:
        """Record ``text`` (oldest dropped when full) and reset to a fresh line."""
        self._items.append(text)
        self._cursor = len(self._items)

    def navigate(self, direction: int) -> str:
        """Move the cursor -1 (older) or +1 (newer) and return the line there."""
        if not self._items:
            return ""
        step = -1 if direction < 0 else 1
        self._cursor = max(0, min(len(self._items), self._cursor + step))
        if self._cursor == len(self._items):
            return ""
        return self._items[self._cursor]


class ConversationSession:
    """Owns the transcript and recall buffer for one conversation."""

    def __init__(
        self,
        dispatcher: Dispatcher | None = None,
        *,
        context_provider: ContextProvider | None = None,
        max_history: int = DEFAULT_MAX_HISTORY,
        input_history_size: int = DEFAULT_INPUT_HISTORY_SIZE,
    ) -> None:
        if max_history < 1:
            raise ConfigurationError(f"max_history must be >= 1, got {max_history}")
        self.dispatcher = dispatcher if dispatcher is not None else Dispatcher()
        self.max_history = max_history
        self._context_provider = context_provider
        self._entries: list[ConversationEntry] = []
        self._input = InputHistory(input_history_size)
        self._active_context: ContextLike = None
        self._listeners: list[ChangeListener] = []

    # ========== Render hooks ==========

    def on_change(self, callback: ChangeListener) -> ChangeListener:
        """Register a render hook. Usable as a decorator."""
        self._listeners.append(callback)
        return callback

    def remove_listener(self, callback: ChangeListener) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self, event: SessionEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                log.exception(f"Render hook {listener!r} failed on {type(event).__name__}")

    # ========== Read access ==========

    def get_history(self) -> tuple[ConversationEntry, ...]:
        """Immutable snapshot of the transcript, oldest first."""
        return tuple(self._entries)

    @property
    def input_history(self) -> tuple[str, ...]:
        return self._input.items

    @property
    def input_cursor(self) -> int:
        return self._input.cursor

    @property
    def active_context(self) -> ContextLike:
        return self._active_context

    @property
    def loading(self) -> bool:
        return any(entry.state is EntryState.LOADING for entry in self._entries)

    def find(self, entry_id: str) -> ConversationEntry | None:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    # ========== Sending ==========

    async def send(self, raw_text: str) -> ConversationEntry | None:
        """Send user input. Returns the entry as it stands after dispatch.

        Blank input is ignored and returns None.
        """
        trimmed = raw_text.strip()
        if not trimmed:
            return None

        self._input.append(raw_text)
        return await self._dispatch(trimmed, self._pull_context())

    async def send_task(self, prompt: str, context: ContextLike = None) -> ConversationEntry | None:
        """Send a prebuilt prompt (see ``tasks``) with its own context.

        Task prompts do not go into the recall buffer.
        """
        trimmed = prompt.strip()
        if not trimmed:
            return None
        if context is None:
            context = self._pull_context()
        else:
            self._active_context = context
        return await self._dispatch(trimmed, context)

    def _pull_context(self) -> ContextLike:
        if self._context_provider is None:
            self._active_context = None
            return None
        try:
            self._active_context = self._context_provider()
        except Exception:
            log.exception("Context provider failed, sending without context")
            self._active_context = None
        return self._active_context

    async def _dispatch(self, message: str, context: ContextLike) -> ConversationEntry | None:
        entry = ConversationEntry(user_message=message)
        self._append(entry)

        def on_complete(response: str | None, error: DispatchError | None) -> None:
            self._complete(entry.id, response, error)

        request = await self.dispatcher.request(message, context, on_complete)

        current = self.find(entry.id)
        if current is None or current.state is not EntryState.PENDING:
            return current

        if request is None:
            # rejected without the error reaching on_complete
            self._update(entry.id, EntryState.FAILED, error_message="Failed to start request")
        elif request.cancelled:
            self._update(
                entry.id,
                EntryState.FAILED,
                error_message=CancelledRequest("Request cancelled").message,
                request_id=request.id,
                transport_kind=request.transport_kind,
            )
        else:
            self._update(
                entry.id,
                EntryState.LOADING,
                request_id=request.id,
                transport_kind=request.transport_kind,
            )
        return self.find(entry.id)

    def _append(self, entry: ConversationEntry) -> None:
        self._entries.append(entry)
        evicted: list[ConversationEntry] = []
        while len(self._entries) > self.max_history:
            evicted.append(self._entries.pop(0))
        if evicted:
            log.debug(f"History full, evicted {len(evicted)} oldest entries")
        self._notify(EntryAdded(entry=entry, evicted=tuple(evicted)))

    def _update(self, entry_id: str, state: EntryState, **changes: Any) -> ConversationEntry | None:
        for index, entry in enumerate(self._entries):
            if entry.id == entry_id:
                break
        else:
            log.debug(f"Entry {entry_id} no longer in history, dropping {state.value} update")
            return None

        updated = entry.transition(state, **changes)
        self._entries[index] = updated
        self._notify(EntryUpdated(entry=updated, previous=entry))
        return updated

    def _complete(self, entry_id: str, response: str | None, error: DispatchError | None) -> None:
        entry = self.find(entry_id)
        if entry is None:
            log.debug(f"Completion for evicted entry {entry_id} dropped")
            return
        if entry.state.terminal:
            log.warning(f"Entry {entry_id} already {entry.state.value}, ignoring completion")
            return

        if error is not None:
            message = str(error) or error.reason
            log.info(f"Entry {entry_id} failed: {message}")
            self._update(entry_id, EntryState.FAILED, error_message=message)
            return

        if entry.state is EntryState.PENDING:
            # the transport finished before dispatch returned
            self._update(entry_id, EntryState.LOADING)
        self._update(entry_id, EntryState.RESOLVED, response=response or "")

    # ========== Recall, clear, cancel ==========

    def navigate_history(self, direction: int) -> str:
        """Step through previously sent inputs like a shell history."""
        return self._input.navigate(direction)

    def clear(self) -> None:
        """Drop every entry. The recall buffer is kept."""
        count = len(self._entries)
        self._entries.clear()
        self._notify(HistoryCleared(count=count))

    def cancel(self) -> int:
        """Cancel all in-flight requests and fail their unfinished entries.

        The dispatcher never calls back for cancelled requests, so the
        entries are failed here instead. Pending entries are still waiting
        for their process to start.
        """
        cancelled = self.dispatcher.cancel()
        error = CancelledRequest("Request cancelled")
        for entry in list(self._entries):
            if not entry.state.terminal:
                self._update(entry.id, EntryState.FAILED, error_message=error.message)
        return cancelled

    # ========== Snapshot / restore ==========

    def snapshot(self) -> list[dict[str, Any]]:
        return [entry.to_dict() for entry in self._entries]

    def restore(self, rows: Iterable[Mapping[str, Any]]) -> None:
        """Replace the transcript with entries from ``snapshot()``.

        Entries that were still in flight cannot be resumed and come back
        Failed.
        """
        entries = []
        for row in rows:
            entry = ConversationEntry.from_dict(row)
            if not entry.state.terminal:
                entry = replace(
                    entry,
                    state=EntryState.FAILED,
                    error_message="Interrupted before completion",
                )
            entries.append(entry)
        self._entries = entries[-self.max_history :]
        self._notify(HistoryRestored(count=len(self._entries)))
