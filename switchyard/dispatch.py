"""Tool-call dispatch.

A protocol tool call is parsed once into a ToolCall (InvokeTool or
ListModelsTool), routed to its provider through the registry, validated,
executed under the provider's timeout and, for invoke calls, recorded in the
history ledger. Provider-side failures never escape: they come back as an
error ToolResult. Only an unparseable tool name raises (UnknownToolError),
which the transport reports as a protocol-level error.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any

from .config import SecurityConfig
from .errors import ProviderError, SwitchyardError, UnknownToolError, ValidationError
from .history import HistoryEntry, HistoryLedger
from .providers.base import Provider, ProviderRequest, ProviderResponse
from .providers.registry import INVOKE_PREFIX, LIST_PREFIX, LIST_SUFFIX, ProviderRegistry
from .validation import (
    validate_max_tokens,
    validate_prompt,
    validate_system,
    validate_temperature,
)

logger = logging.getLogger(__name__)

LOG_PROMPT_CHARS = 100


@dataclass(frozen=True)
class InvokeTool:
    """`use_<provider>`: run one inference request."""

    provider: str


@dataclass(frozen=True)
class ListModelsTool:
    """`list_<provider>_models`: list the provider's models."""

    provider: str


ToolCall = InvokeTool | ListModelsTool


def parse_tool_name(tool_name: str) -> ToolCall:
    """Parse a wire-level tool name.

    Raises:
        UnknownToolError: If the name has neither shape or an empty provider
    """
    if tool_name.startswith(INVOKE_PREFIX):
        provider = tool_name[len(INVOKE_PREFIX) :]
        if provider:
            return InvokeTool(provider)
    elif tool_name.startswith(LIST_PREFIX) and tool_name.endswith(LIST_SUFFIX):
        provider = tool_name[len(LIST_PREFIX) : -len(LIST_SUFFIX)]
        if provider:
            return ListModelsTool(provider)
    raise UnknownToolError(tool_name)


@dataclass(frozen=True)
class ToolResult:
    """Normalized tool-call result."""

    text: str
    is_error: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Protocol payload shape."""
        result: dict[str, Any] = {"content": [{"type": "text", "text": self.text}]}
        if self.is_error:
            result["isError"] = True
        return result


class Dispatcher:
    """Routes tool calls to providers and records invoke outcomes.

    Args:
        registry: Providers addressable by tool name
        history: Ledger receiving one entry per invoke call
        security: Prompt and response bounds
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        history: HistoryLedger,
        security: SecurityConfig | None = None,
    ) -> None:
        self.registry = registry
        self.history = history
        self.security = security or SecurityConfig()

    async def call(self, tool_name: str, arguments: dict[str, Any] | None = None) -> ToolResult:
        """Dispatch one tool call.

        Raises:
            UnknownToolError: If `tool_name` cannot be parsed
        """
        arguments = arguments or {}
        tool = parse_tool_name(tool_name)
        logger.info("Tool called: %s %s", tool_name, summarize_arguments(arguments))

        provider = self.registry.get(tool.provider)
        if provider is None:
            return self._error(tool_name, f"Provider not found: {tool.provider}")

        if isinstance(tool, ListModelsTool):
            return await self._list_models(tool_name, provider)
        return await self._invoke(tool_name, provider, arguments)

    async def _list_models(self, tool_name: str, provider: Provider) -> ToolResult:
        try:
            models = await provider.list_models()
        except Exception as e:
            return self._failure(tool_name, e)
        return ToolResult("\n".join(models))

    async def _invoke(
        self, tool_name: str, provider: Provider, arguments: dict[str, Any]
    ) -> ToolResult:
        model = self._resolve_model(provider, arguments.get("model"))
        prompt = arguments.get("prompt")
        system = arguments.get("system")
        response: ProviderResponse | None = None
        error: Exception | None = None
        duration = 0

        try:
            request = self.build_request(model, arguments)
            start = time.perf_counter()
            try:
                response = await provider.execute(request)
            finally:
                duration = int((time.perf_counter() - start) * 1000)
            self._check_response(provider, response)
            response.metadata["duration"] = duration
            logger.info(
                "Provider %s executed successfully (model=%s, duration=%dms)",
                provider.name,
                request.model,
                duration,
            )
        except Exception as e:
            error = e
            response = None

        await self._record(provider, model, prompt, system, response, error, duration)

        if error is not None:
            return self._failure(tool_name, error)
        return ToolResult(response.text)

    def _resolve_model(self, provider: Provider, model: Any) -> Any:
        if model is None or model == "":
            model = provider.config.default_model or model
        if isinstance(model, str):
            return provider.resolve_model(model)
        return model

    def build_request(self, model: Any, arguments: dict[str, Any]) -> ProviderRequest:
        """Validate invoke arguments into a ProviderRequest.

        Raises:
            ValidationError: Naming the first field that fails
        """
        if not isinstance(model, str) or not model:
            raise ValidationError("Model must be a non-empty string")
        return ProviderRequest(
            model=model,
            prompt=validate_prompt(arguments.get("prompt"), self.security.max_prompt_length),
            system=validate_system(arguments.get("system"), self.security.max_system_length),
            temperature=validate_temperature(arguments.get("temperature")),
            max_tokens=validate_max_tokens(arguments.get("max_tokens")),
        )

    def _check_response(self, provider: Provider, response: ProviderResponse) -> None:
        # An empty completion is treated as a backend failure.
        if not response.text:
            raise ProviderError(f"{provider.name} returned empty response", provider=provider.name)
        limit = self.security.max_response_length
        if len(response.text) > limit:
            raise ProviderError(
                f"Response exceeds maximum length of {limit} characters",
                provider=provider.name,
            )

    async def _record(
        self,
        provider: Provider,
        model: Any,
        prompt: Any,
        system: Any,
        response: ProviderResponse | None,
        error: Exception | None,
        duration: int,
    ) -> None:
        entry = HistoryEntry.create(
            provider=provider.name,
            model=model if isinstance(model, str) else str(model or ""),
            prompt=prompt if isinstance(prompt, str) else str(prompt or ""),
            system=system if isinstance(system, str) else None,
            text=response.text if response else None,
            usage=response.usage if response else None,
            duration=duration,
            error=_message(error) if error is not None else None,
        )
        try:
            await self.history.record(entry)
        except Exception as e:
            logger.error("Failed to record history entry: %s", e)

    def _failure(self, tool_name: str, error: Exception) -> ToolResult:
        if isinstance(error, SwitchyardError):
            logger.error("Tool execution failed: %s: %s", tool_name, error)
        else:
            logger.error("Unexpected error in tool %s", tool_name, exc_info=error)
        return self._error(tool_name, _message(error))

    def _error(self, tool_name: str, message: str) -> ToolResult:
        logger.debug("Returning error result for %s: %s", tool_name, message)
        return ToolResult(f"Error executing {tool_name}: {message}", is_error=True)


def _message(error: Exception) -> str:
    return str(error) or type(error).__name__


def summarize_arguments(arguments: dict[str, Any]) -> dict[str, Any]:
    """Shorten long prompts for logging."""
    summary = dict(arguments)
    for key in ("prompt", "system"):
        value = summary.get(key)
        if isinstance(value, str) and len(value) > LOG_PROMPT_CHARS:
            summary[key] = value[:LOG_PROMPT_CHARS] + "..."
    return summary
