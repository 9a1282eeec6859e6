"""Request dispatcher.

Chooses a transport for each prompt, spawns it, and keeps a registry of the
requests that are still in flight. Every request completes at most once:

    dispatcher = Dispatcher(TransportConfig.from_env())

    def done(response, error):
        ...

    request = await dispatcher.request("Explain this", context, done)
    if request is None:
        ...  # rejected; done() has already been called with the error

The callback always runs on the event loop that issued the request, whatever
thread the exit notification arrives on. ``request.future`` resolves to the
same outcome for callers that prefer to await it.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import threading
import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field

from .config import TransportConfig, TransportKind
from .errors import DispatchError, ProcessSpawnFailure, TransportUnavailable
from .process import ProcessExit, ProcessHandle, ProcessRunner
from .prompt import ContextLike
from .transports import (
    Transport,
    TransportStatus,
    Which,
    create_transport,
    resolve_transport_kind,
    transport_status,
)

log = logging.getLogger(__name__)
llm_log = logging.getLogger("textual_claude.llm")

CompletionCallback = Callable[[str | None, DispatchError | None], None]


@dataclass(frozen=True)
class Completion:
    """Outcome of a request: exactly one of response or error is set."""

    response: str | None = None
    error: DispatchError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(eq=False)
class Request:
    """One outstanding call to a transport."""

    id: str
    transport_kind: TransportKind
    future: asyncio.Future[Completion] = field(repr=False)
    handle: ProcessHandle | None = field(default=None, repr=False)
    completed: bool = False
    cancelled: bool = False
    created_at: float = field(default_factory=time.time)


class _CompletionGuard:
    """Wraps a callback so it fires once, on the owning loop."""

    def __init__(
        self,
        dispatcher: Dispatcher,
        request: Request,
        callback: CompletionCallback | None,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        self._dispatcher = dispatcher
        self._request = request
        self._callback = callback
        self._loop = loop
        self._thread_id = threading.get_ident()

    def __call__(self, response: str | None, error: DispatchError | None) -> None:
        if threading.get_ident() != self._thread_id:
            self._loop.call_soon_threadsafe(self, response, error)
            return

        request = self._request
        if request.completed or request.cancelled:
            log.debug(f"Ignoring late completion for request {request.id}")
            return

        request.completed = True
        self._dispatcher._requests.pop(request.id, None)

        if not request.future.done():
            request.future.set_result(Completion(response=response, error=error))

        if self._callback is None:
            return
        try:
            self._callback(response, error)
        except Exception:
            log.exception(f"Completion callback for request {request.id} raised")


class Dispatcher:
    """Owns transport selection and the in-flight request registry."""

    def __init__(
        self,
        config: TransportConfig | None = None,
        *,
        runner: ProcessRunner | None = None,
        which: Which = shutil.which,
    ) -> None:
        self.config = config if config is not None else TransportConfig.from_env()
        self._runner = runner or ProcessRunner()
        self._which = which
        self._requests: dict[str, Request] = {}

    def active_count(self) -> int:
        """Number of requests still in flight (diagnostics only)."""
        return len(self._requests)

    @property
    def active_requests(self) -> tuple[Request, ...]:
        return tuple(self._requests.values())

    def status(self) -> TransportStatus:
        """Report which transport would be used and whether it is ready."""
        return transport_status(self.config, self._which)

    def resolve(self) -> TransportKind:
        """Resolve the transport for the next request.

        Raises:
            TransportUnavailable: no usable transport.
        """
        return resolve_transport_kind(self.config, self._which)

    async def request(
        self,
        prompt: str,
        context: ContextLike = None,
        callback: CompletionCallback | None = None,
    ) -> Request | None:
        """Dispatch ``prompt`` and return as soon as the process is running.

        Returns None when the request is rejected before anything runs; in
        that case ``callback`` has already been called with the error.
        """
        loop = asyncio.get_running_loop()

        try:
            kind = self.resolve()
        except TransportUnavailable as e:
            log.warning("No transport available, rejecting request")
            self._reject(callback, e)
            return None

        transport = create_transport(kind, self.config)
        payload = transport.payload(prompt, context)
        request = Request(
            id=uuid.uuid4().hex,
            transport_kind=kind,
            future=loop.create_future(),
        )
        guard = _CompletionGuard(self, request, callback, loop)

        llm_log.debug(f">>> [{request.id}] {kind.value}\n{payload.decode('utf-8', errors='replace')}")
        log.info(f"Dispatching request {request.id} via {kind.value}: {transport.redacted_argv()}")

        def on_exit(result: ProcessExit) -> None:
            response, error = self._interpret(transport, request, result)
            guard(response, error)

        # registered before spawning so a cancel() during the spawn reaches it
        self._requests[request.id] = request
        try:
            handle = await self._runner.spawn(transport.argv(), payload, on_exit)
        except ProcessSpawnFailure as e:
            self._requests.pop(request.id, None)
            log.warning(f"Request {request.id} failed to start: {e}")
            if not request.cancelled:
                self._reject(callback, e)
            return None

        request.handle = handle
        if request.cancelled:
            log.info(f"Request {request.id} cancelled while starting, killing process")
            handle.terminate()
        return request

    def _interpret(
        self, transport: Transport, request: Request, result: ProcessExit
    ) -> tuple[str | None, DispatchError | None]:
        try:
            response = transport.interpret(result)
        except DispatchError as e:
            log.info(f"Request {request.id} failed ({e.reason}): {e}")
            llm_log.debug(f"<<< [{request.id}] error {e.reason}\n{e}")
            return None, e
        log.info(f"Request {request.id} completed ({len(response)} chars)")
        llm_log.debug(f"<<< [{request.id}]\n{response}")
        return response, None

    @staticmethod
    def _reject(callback: CompletionCallback | None, error: DispatchError) -> None:
        if callback is not None:
            callback(None, error)

    def cancel(self) -> int:
        """Kill every in-flight request without calling its callback.

        Returns the number of requests cancelled. ``active_count()`` is 0
        afterwards.
        """
        requests = list(self._requests.values())
        self._requests.clear()
        for request in requests:
            request.cancelled = True
            if request.handle is not None:
                request.handle.terminate()
            request.future.cancel()
        if requests:
            log.info(f"Cancelled {len(requests)} request(s)")
        return len(requests)

    async def shutdown(self) -> None:
        """Cancel everything and wait for the killed processes to exit."""
        handles = [r.handle for r in self._requests.values() if r.handle is not None]
        self.cancel()
        for handle in handles:
            try:
                await asyncio.wait_for(handle.wait(), timeout=5.0)
            except asyncio.TimeoutError:
                log.warning(f"Process {handle.pid} did not exit after kill")
