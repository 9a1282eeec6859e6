"""The two transports and the resolver that picks between them.

CLITransport pipes a text prompt into the assistant's command-line client.
HTTPTransport pipes a JSON body into curl, which posts it to the messages API.
Both run as a single child process via ``ProcessRunner``; they differ only in
the command line, the stdin payload and how stdout is interpreted.
"""

from __future__ import annotations

import json
import shutil
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

from .config import TransportConfig, TransportKind
from .errors import APIError, EmptyResponse, JSONParseError, NonZeroExit, TransportUnavailable
from .process import ProcessExit
from .prompt import ContextLike, build_cli_prompt, build_http_payload

Which = Callable[[str], str | None]

NO_TRANSPORT_MESSAGE = (
    "No API key configured and the assistant CLI is not available.\n\n"
    "Options to fix:\n"
    "1. Set the ANTHROPIC_API_KEY environment variable\n"
    "2. Install the assistant CLI and make sure it is on PATH\n"
    "3. Authenticate the CLI: 'claude auth login'"
)


class Transport(ABC):
    """A way of turning a prompt into one child process and back."""

    kind: TransportKind
    label: str

    def __init__(self, config: TransportConfig) -> None:
        self.config = config

    @abstractmethod
    def argv(self) -> list[str]:
        """Command line of the child process."""

    @abstractmethod
    def payload(self, user_text: str, context: ContextLike) -> bytes:
        """Bytes written to the child's stdin."""

    @abstractmethod
    def parse_output(self, stdout: str) -> str:
        """Turn the stdout of a clean exit into a response, or raise."""

    def redacted_argv(self) -> list[str]:
        return self.argv()

    def interpret(self, result: ProcessExit) -> str:
        """Map a process exit to a response string.

        Raises:
            DispatchError: one of the failure classes in ``errors``.
        """
        if result.exit_code != 0:
            stderr = result.stderr_text.strip()
            if stderr:
                message = f"{self.label} error: {stderr}"
            else:
                message = f"{self.label} failed with exit code: {result.exit_code}"
            raise NonZeroExit(message, exit_code=result.exit_code, stderr=stderr)
        return self.parse_output(result.stdout_text)


class CLITransport(Transport):
    kind = TransportKind.CLI
    label = "Assistant CLI"

    def argv(self) -> list[str]:
        return [self.config.command_path, *self.config.cli_args]

    def payload(self, user_text: str, context: ContextLike) -> bytes:
        prompt = build_cli_prompt(user_text, context, system=self.config.system_prompt)
        return (prompt + "\n").encode("utf-8", errors="replace")

    def parse_output(self, stdout: str) -> str:
        text = stdout.strip()
        if not text:
            raise EmptyResponse("Empty response from assistant CLI")
        return text


class HTTPTransport(Transport):
    kind = TransportKind.HTTP
    label = "HTTP request"

    @property
    def url(self) -> str:
        return f"{self.config.base_url}/messages"

    def _headers(self, credential: str) -> list[str]:
        return [
            "Content-Type: application/json",
            f"x-api-key: {credential}",
            f"anthropic-version: {self.config.api_version}",
        ]

    def _argv(self, credential: str) -> list[str]:
        cmd = [self.config.curl_path, "-sS", "-X", "POST", "--max-time", f"{self.config.timeout:g}"]
        for header in self._headers(credential):
            cmd.extend(["-H", header])
        # body comes from stdin so it never shows up in the process list
        cmd.extend(["--data-binary", "@-", self.url])
        return cmd

    def argv(self) -> list[str]:
        return self._argv(self.config.credential or "")

    def redacted_argv(self) -> list[str]:
        return self._argv("***")

    def payload(self, user_text: str, context: ContextLike) -> bytes:
        body = build_http_payload(user_text, context, config=self.config)
        return json.dumps(body).encode("utf-8")

    def parse_output(self, stdout: str) -> str:
        if not stdout.strip():
            raise EmptyResponse("Empty response from API")

        try:
            data = json.loads(stdout)
        except json.JSONDecodeError as e:
            raise JSONParseError(f"Failed to parse JSON response: {e}") from e
        if not isinstance(data, dict):
            raise JSONParseError("Failed to parse JSON response: expected an object")

        error = data.get("error")
        if error:
            if isinstance(error, dict):
                message = error.get("message") or error.get("type") or "unknown error"
            else:
                message = str(error)
            raise APIError(f"API error: {message}")

        blocks = data.get("content") or []
        text = "".join(
            block.get("text", "")
            for block in blocks
            if isinstance(block, dict) and block.get("type") == "text"
        )
        if not text.strip():
            raise EmptyResponse("No content in API response")
        return text.strip()


TRANSPORTS: dict[TransportKind, type[Transport]] = {
    TransportKind.CLI: CLITransport,
    TransportKind.HTTP: HTTPTransport,
}


def cli_available(config: TransportConfig, which: Which = shutil.which) -> bool:
    """Whether the CLI executable can be found."""
    return which(config.command_path) is not None


def resolve_transport_kind(config: TransportConfig, which: Which = shutil.which) -> TransportKind:
    """Pick CLI or HTTP for one request.

    An explicit preference wins. Otherwise the CLI is used when it is
    installed and no credential is configured, and HTTP in every other case.

    Raises:
        TransportUnavailable: HTTP was chosen but there is no credential.
    """
    if config.preferred_transport is TransportKind.AUTO:
        use_cli = not config.has_credential and cli_available(config, which)
        kind = TransportKind.CLI if use_cli else TransportKind.HTTP
    else:
        kind = config.preferred_transport

    if kind is TransportKind.HTTP and not config.has_credential:
        raise TransportUnavailable(NO_TRANSPORT_MESSAGE)
    return kind


def create_transport(kind: TransportKind, config: TransportConfig) -> Transport:
    return TRANSPORTS[kind](config)


@dataclass(frozen=True)
class TransportStatus:
    """What auto-detection would pick, and whether it can be used."""

    kind: TransportKind
    available: bool
    message: str


def transport_status(config: TransportConfig, which: Which = shutil.which) -> TransportStatus:
    if config.preferred_transport is TransportKind.AUTO:
        use_cli = not config.has_credential and cli_available(config, which)
    else:
        use_cli = config.preferred_transport is TransportKind.CLI

    if use_cli:
        available = cli_available(config, which)
        message = (
            "Assistant CLI found and ready"
            if available
            else f"Assistant CLI '{config.command_path}' not found on PATH"
        )
        return TransportStatus(TransportKind.CLI, available, message)

    available = config.has_credential
    message = (
        "API key configured and ready"
        if available
        else "API key not configured. Set the ANTHROPIC_API_KEY environment variable."
    )
    return TransportStatus(TransportKind.HTTP, available, message)
