"""Base abstractions for providers.

This module defines the Provider contract that every backend must implement,
along with the request, response and capability types shared by the
registry and the dispatcher. Provider-specific behaviour lives entirely
inside the concrete subclasses.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

import anyio

from ..config import ProviderConfig
from ..errors import RequestTimeoutError
from ..validation import validate_model

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 120000


@dataclass(frozen=True)
class Capabilities:
    """Feature flags used to shape a provider's tool schema and description."""

    supports_streaming: bool = False
    supports_system_prompt: bool = False
    supports_images: bool = False
    supports_function_calling: bool = False

    def describe(self) -> list[str]:
        """Human-readable names of the supported features."""
        labels = []
        if self.supports_streaming:
            labels.append("streaming")
        if self.supports_system_prompt:
            labels.append("system prompts")
        if self.supports_images:
            labels.append("images")
        if self.supports_function_calling:
            labels.append("function calling")
        return labels


@dataclass(frozen=True)
class Usage:
    """Token counts. Every field is optional; not all backends report them."""

    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None

    def to_dict(self) -> dict[str, int]:
        data = {}
        if self.prompt_tokens is not None:
            data["promptTokens"] = self.prompt_tokens
        if self.completion_tokens is not None:
            data["completionTokens"] = self.completion_tokens
        if self.total_tokens is not None:
            data["totalTokens"] = self.total_tokens
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Usage":
        return cls(
            prompt_tokens=data.get("promptTokens"),
            completion_tokens=data.get("completionTokens"),
            total_tokens=data.get("totalTokens"),
        )

    @classmethod
    def from_counts(cls, prompt: int | None, completion: int | None) -> "Usage | None":
        """Build usage from prompt/completion counts, deriving the total."""
        if prompt is None and completion is None:
            return None
        return cls(
            prompt_tokens=prompt,
            completion_tokens=completion,
            total_tokens=(prompt or 0) + (completion or 0),
        )


@dataclass(frozen=True)
class ProviderRequest:
    """A single inference request, already validated and alias-resolved."""

    model: str
    prompt: str
    system: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None


@dataclass
class ProviderResponse:
    """Normalized response from a provider.

    Attributes:
        text: Generated text
        model: Resolved (non-alias) model identifier
        usage: Token counts, when the backend reports them
        metadata: Free-form details; always includes `duration` in ms
    """

    text: str
    model: str
    usage: Usage | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class Provider(ABC):
    """Abstract base class for provider backends.

    Subclasses must implement:
        - name: Stable identifier, used in tool names
        - capabilities: Feature flags
        - list_models: Known model identifiers (aliases included)
        - execute: One inference call
        - validate_config: Non-raising reachability probe

    `execute` raises ValidationError for arguments it rejects,
    AuthenticationError for rejected credentials, RequestTimeoutError when
    the configured timeout elapses, NetworkError for transport failures and
    ProviderError for anything else the backend reports, including an empty
    successful response.
    """

    def __init__(self, config: ProviderConfig) -> None:
        self.config = config

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier (e.g., 'ollama', 'openai')."""
        ...

    @property
    @abstractmethod
    def capabilities(self) -> Capabilities:
        ...

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    @property
    def timeout_ms(self) -> int:
        return self.config.timeout or DEFAULT_TIMEOUT_MS

    @property
    def max_retries(self) -> int:
        return self.config.max_retries

    def resolve_model(self, model: str) -> str:
        """Map an alias to its backing model identifier; other names pass through."""
        return self.config.models.get(model, model)

    @abstractmethod
    async def list_models(self) -> list[str]:
        """Return currently known model identifiers.

        Raises:
            ProviderError: If the backend cannot be reached
        """
        ...

    @abstractmethod
    async def execute(self, request: ProviderRequest) -> ProviderResponse:
        """Perform one inference call."""
        ...

    @abstractmethod
    async def validate_config(self) -> bool:
        """Probe credentials and reachability. Never raises."""
        ...

    async def check_model(self, model: str) -> str:
        """Validate `model` against the live model list."""
        return validate_model(model, await self.list_models())

    @contextmanager
    def deadline(self, timeout_ms: int | None = None, what: str = "request") -> Iterator[None]:
        """Cancel the enclosed I/O once the timeout elapses.

        Cancellation is converted to RequestTimeoutError carrying the timeout.
        """
        timeout_ms = timeout_ms or self.timeout_ms
        try:
            with anyio.fail_after(timeout_ms / 1000):
                yield
        except TimeoutError as e:
            raise RequestTimeoutError(
                f"{self.name} {what} timed out after {timeout_ms}ms", timeout_ms
            ) from e
