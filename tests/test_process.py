"""Tests for running real child processes."""

import asyncio
import sys

import pytest

from textual_claude.errors import ProcessSpawnFailure
from textual_claude.process import ProcessExit, ProcessRunner

ECHO = "import sys; data = sys.stdin.read(); sys.stdout.write(data.upper())"
FAIL = "import sys; sys.stderr.write('bad things'); sys.exit(4)"
SLEEP = "import time; time.sleep(30)"
BIG = "import sys; sys.stdout.write('x' * 5000)"


async def run(argv: list[str], payload: bytes = b"") -> ProcessExit:
    loop = asyncio.get_running_loop()
    done: asyncio.Future[ProcessExit] = loop.create_future()
    await ProcessRunner().spawn(argv, payload, done.set_result)
    return await asyncio.wait_for(done, timeout=10)


class TestProcessRunner:
    """Tests for ProcessRunner against a Python child."""

    @pytest.mark.asyncio
    async def test_stdin_reaches_child(self) -> None:
        """The payload is written to stdin and stdout is collected."""
        result = await run([sys.executable, "-c", ECHO], b"hello\n")
        assert result.exit_code == 0
        assert result.stdout_text == "HELLO\n"

    @pytest.mark.asyncio
    async def test_stream_limit_does_not_truncate(self) -> None:
        """Output longer than the stream buffer is still read in full."""
        loop = asyncio.get_running_loop()
        done: asyncio.Future[ProcessExit] = loop.create_future()
        runner = ProcessRunner(stream_limit=64)
        await runner.spawn([sys.executable, "-c", BIG], b"", done.set_result)

        result = await asyncio.wait_for(done, timeout=10)
        assert result.stdout_text == "x" * 5000

    @pytest.mark.asyncio
    async def test_failure_exit_code_and_stderr(self) -> None:
        """Exit code and stderr are reported."""
        result = await run([sys.executable, "-c", FAIL])
        assert result.exit_code == 4
        assert result.stderr_text == "bad things"

    @pytest.mark.asyncio
    async def test_missing_executable(self) -> None:
        """A missing executable raises ProcessSpawnFailure and never calls back."""
        calls: list[ProcessExit] = []
        with pytest.raises(ProcessSpawnFailure, match="no-such-assistant-binary"):
            await ProcessRunner().spawn(["no-such-assistant-binary"], b"", calls.append)
        assert calls == []

    @pytest.mark.asyncio
    async def test_empty_command(self) -> None:
        """An empty argv is a spawn failure."""
        with pytest.raises(ProcessSpawnFailure, match="Empty command"):
            await ProcessRunner().spawn([], b"", lambda result: None)

    @pytest.mark.asyncio
    async def test_terminate_suppresses_exit(self) -> None:
        """A terminated process never reports its exit."""
        calls: list[ProcessExit] = []
        handle = await ProcessRunner().spawn([sys.executable, "-c", SLEEP], b"", calls.append)
        assert handle.running

        handle.terminate()
        await asyncio.wait_for(handle.wait(), timeout=10)
        await asyncio.sleep(0.05)

        assert not handle.running
        assert calls == []
