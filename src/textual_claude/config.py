"""Transport configuration.

    config = TransportConfig.from_env(preferred_transport="http")

Every recognised option is a field below. The object is immutable and
validated once, at construction.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum

log = logging.getLogger(__name__)

MAX_TOKENS_LIMIT = 8192

DEFAULT_SYSTEM_PROMPT = (
    "You are an advanced AI coding assistant. "
    "You excel at writing clean, efficient code, debugging, code review, "
    "and providing detailed explanations."
)


class ConfigurationError(Exception):
    """Raised when a component is misconfigured."""

    pass


class TransportKind(str, Enum):
    """Which transport delivers a prompt."""

    CLI = "cli"
    HTTP = "http"
    AUTO = "auto"


@dataclass(frozen=True)
class TransportConfig:
    """Read-only input to the dispatcher."""

    preferred_transport: TransportKind = TransportKind.AUTO
    credential: str | None = None
    command_path: str = "claude"
    cli_args: tuple[str, ...] = ("chat",)
    curl_path: str = "curl"
    base_url: str = "https://api.anthropic.com/v1"
    api_version: str = "2023-06-01"
    model: str = "claude-3-5-sonnet-20241022"
    max_tokens: int = 4096
    temperature: float = 0.1
    timeout: float = 30.0
    system_prompt: str | None = None
    fixes: tuple[str, ...] = field(default=(), compare=False, repr=False)

    def __post_init__(self) -> None:
        # frozen, so every normalisation goes through object.__setattr__
        set_ = object.__setattr__

        try:
            set_(self, "preferred_transport", TransportKind(self.preferred_transport))
        except ValueError:
            raise ConfigurationError(
                f"preferred_transport must be one of: cli, http, auto "
                f"(got {self.preferred_transport!r})"
            ) from None

        if self.credential is not None and not self.credential.strip():
            set_(self, "credential", None)

        if not self.command_path:
            raise ConfigurationError("command_path must not be empty")
        if not self.curl_path:
            raise ConfigurationError("curl_path must not be empty")
        set_(self, "cli_args", tuple(str(arg) for arg in self.cli_args))

        if not self.base_url.startswith(("http://", "https://")):
            raise ConfigurationError(f"base_url must start with http:// or https:// ({self.base_url})")
        set_(self, "base_url", self.base_url.rstrip("/"))

        if not self.model:
            raise ConfigurationError("model must not be empty")

        if self.max_tokens < 1:
            raise ConfigurationError(f"max_tokens must be >= 1, got {self.max_tokens}")
        if not 1 <= self.timeout <= 300:
            raise ConfigurationError(f"timeout must be between 1 and 300 seconds, got {self.timeout}")

        fixes = []
        if self.max_tokens > MAX_TOKENS_LIMIT:
            set_(self, "max_tokens", MAX_TOKENS_LIMIT)
            fixes.append(f"max_tokens clamped to {MAX_TOKENS_LIMIT}")
        if self.temperature > 1.0:
            set_(self, "temperature", 1.0)
            fixes.append("temperature clamped to 1.0")
        elif self.temperature < 0.0:
            set_(self, "temperature", 0.0)
            fixes.append("temperature clamped to 0.0")

        for fix in fixes:
            log.warning(f"Configuration fix applied: {fix}")
        set_(self, "fixes", tuple(fixes))

    @classmethod
    def from_env(cls, **overrides: object) -> TransportConfig:
        """Build a config, taking the credential from the environment if not given.

        Checks ANTHROPIC_API_KEY first, then CLAUDE_API_KEY.
        """
        if overrides.get("credential") is None:
            overrides["credential"] = os.environ.get("ANTHROPIC_API_KEY") or os.environ.get(
                "CLAUDE_API_KEY"
            )
        return cls(**overrides)  # type: ignore[arg-type]

    @property
    def has_credential(self) -> bool:
        return self.credential is not None

    @property
    def system_preamble(self) -> str:
        return self.system_prompt or DEFAULT_SYSTEM_PROMPT
