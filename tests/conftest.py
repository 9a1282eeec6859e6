"""Pytest configuration and shared fixtures for textual-claude tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import pytest

from textual_claude.config import TransportConfig, TransportKind
from textual_claude.dispatcher import Dispatcher
from textual_claude.errors import ProcessSpawnFailure
from textual_claude.process import ExitCallback, ProcessExit
from textual_claude.session import ConversationSession


class FakeHandle:
    """Stands in for ProcessHandle; records termination."""

    def __init__(self, argv: Sequence[str], pid: int) -> None:
        self.argv = list(argv)
        self.pid = pid
        self.terminated = False
        self.exited = False

    @property
    def running(self) -> bool:
        return not (self.terminated or self.exited)

    def terminate(self) -> None:
        self.terminated = True

    async def wait(self) -> int:
        return -9 if self.terminated else 0


@dataclass
class Spawned:
    argv: list[str]
    payload: bytes
    on_exit: ExitCallback
    handle: FakeHandle


class FakeRunner:
    """In-memory ProcessRunner.

    Spawned processes stay "running" until the test calls ``finish``. Set
    ``fail_with`` to make the next spawn raise, or ``exit_immediately`` to
    report the exit before ``spawn`` returns. Set ``gate`` to hold every spawn
    until the event is set.
    """

    def __init__(self) -> None:
        self.spawned: list[Spawned] = []
        self.fail_with: str | None = None
        self.exit_immediately: ProcessExit | None = None
        self.gate: asyncio.Event | None = None

    async def spawn(
        self, argv: Sequence[str], stdin_payload: bytes, on_exit: ExitCallback
    ) -> FakeHandle:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise ProcessSpawnFailure(self.fail_with)
        handle = FakeHandle(argv, pid=1000 + len(self.spawned))
        self.spawned.append(Spawned(list(argv), stdin_payload, on_exit, handle))
        if self.exit_immediately is not None:
            self._report(self.spawned[-1], self.exit_immediately)
        return handle

    def finish(self, index: int = -1, stdout: str = "", stderr: str = "", exit_code: int = 0) -> None:
        """Report the exit of a spawned process, unless it was terminated."""
        result = ProcessExit(
            exit_code=exit_code, stdout=stdout.encode("utf-8"), stderr=stderr.encode("utf-8")
        )
        self._report(self.spawned[index], result)

    @staticmethod
    def _report(spawned: Spawned, result: ProcessExit) -> None:
        if spawned.handle.terminated or spawned.handle.exited:
            return
        spawned.handle.exited = True
        spawned.on_exit(result)


def which_found(name: str) -> str | None:
    return f"/usr/bin/{name}"


def which_missing(name: str) -> str | None:
    return None


class Recorder:
    """Completion callback that remembers every call."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def __call__(self, response, error) -> None:
        self.calls.append((response, error))


@pytest.fixture
def runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def cli_config() -> TransportConfig:
    return TransportConfig(preferred_transport=TransportKind.CLI)


@pytest.fixture
def dispatcher(runner: FakeRunner, cli_config: TransportConfig) -> Dispatcher:
    """Dispatcher that always picks the CLI and spawns nothing real."""
    return Dispatcher(cli_config, runner=runner, which=which_found)


@pytest.fixture
def make_session(dispatcher: Dispatcher) -> Callable[..., ConversationSession]:
    def make(**kwargs) -> ConversationSession:
        return ConversationSession(dispatcher, **kwargs)

    return make


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()
