"""Process transport: run one external process and report its exit once."""

from __future__ import annotations

import asyncio
import asyncio.subprocess as aio_subprocess
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from .errors import ProcessSpawnFailure

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProcessExit:
    """Outcome of a finished process."""

    exit_code: int
    stdout: bytes
    stderr: bytes

    @property
    def stdout_text(self) -> str:
        return self.stdout.decode("utf-8", errors="replace")

    @property
    def stderr_text(self) -> str:
        return self.stderr.decode("utf-8", errors="replace")


ExitCallback = Callable[[ProcessExit], None]


class ProcessHandle:
    """Ownership of one running process and the task supervising it."""

    def __init__(self, proc: aio_subprocess.Process, argv: Sequence[str]) -> None:
        self.proc = proc
        self.argv = list(argv)
        self._task: asyncio.Task[None] | None = None
        self._exited = False

    @property
    def pid(self) -> int:
        return self.proc.pid

    @property
    def running(self) -> bool:
        return not self._exited and self.proc.returncode is None

    def terminate(self) -> None:
        """Signal the process to stop and drop its exit notification.

        Does not wait for the process to actually exit.
        """
        self._exited = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
        if self.proc.returncode is None:
            try:
                self.proc.kill()
            except ProcessLookupError:
                pass
            log.info(f"Killed process {self.pid} ({self.argv[0]})")

    async def wait(self) -> int:
        """Wait for the OS process to go away."""
        return await self.proc.wait()


class ProcessRunner:
    """Spawns processes; instances share no state between calls."""

    def __init__(self, *, stream_limit: int = 10 * 1024 * 1024) -> None:
        # StreamReader buffer size for the child's pipes; output is not truncated
        self.stream_limit = stream_limit

    async def spawn(
        self,
        argv: Sequence[str],
        stdin_payload: bytes,
        on_exit: ExitCallback,
    ) -> ProcessHandle:
        """Launch ``argv``, feed it ``stdin_payload`` and call ``on_exit`` once.

        Raises:
            ProcessSpawnFailure: the process could not be started. ``on_exit``
                is never called in that case.
        """
        if not argv:
            raise ProcessSpawnFailure("Empty command")

        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdin=aio_subprocess.PIPE,
                stdout=aio_subprocess.PIPE,
                stderr=aio_subprocess.PIPE,
                limit=self.stream_limit,
            )
        except OSError as e:
            # missing executable or permission denied
            raise ProcessSpawnFailure(f"Failed to start {argv[0]}: {e}") from e

        log.info(f"Spawned process {proc.pid}: {argv[0]}")
        handle = ProcessHandle(proc, argv)
        handle._task = asyncio.create_task(self._supervise(handle, stdin_payload, on_exit))
        return handle

    async def _supervise(
        self, handle: ProcessHandle, stdin_payload: bytes, on_exit: ExitCallback
    ) -> None:
        proc = handle.proc
        # communicate() writes stdin, closes it, then drains both pipes until exit
        stdout, stderr = await proc.communicate(stdin_payload)

        if handle._exited:
            return
        handle._exited = True
        exit_code = proc.returncode if proc.returncode is not None else -1
        log.info(f"Process {proc.pid} exited with code {exit_code}")
        on_exit(ProcessExit(exit_code=exit_code, stdout=stdout or b"", stderr=stderr or b""))
