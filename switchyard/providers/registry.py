"""Provider registry and tool-descriptor generation."""

import logging
from dataclasses import dataclass
from typing import Any

from ..errors import ConfigurationError
from .base import Provider

logger = logging.getLogger(__name__)

INVOKE_PREFIX = "use_"
LIST_PREFIX = "list_"
LIST_SUFFIX = "_models"


def invoke_tool_name(provider_name: str) -> str:
    return f"{INVOKE_PREFIX}{provider_name}"


def list_tool_name(provider_name: str) -> str:
    return f"{LIST_PREFIX}{provider_name}{LIST_SUFFIX}"


@dataclass(frozen=True)
class ToolDescriptor:
    """A callable operation advertised to the protocol client."""

    name: str
    description: str
    input_schema: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


class ProviderRegistry:
    """Registry for enabled providers.

    Providers are keyed by name. Disabled providers are never stored, and
    registering a second provider under an existing name replaces the first.
    """

    def __init__(self) -> None:
        self._providers: dict[str, Provider] = {}

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, name: object) -> bool:
        return name in self._providers

    def register(self, provider: Provider) -> None:
        """Register a provider; disabled providers are skipped.

        Raises:
            ConfigurationError: If the name cannot be routed by tool name
        """
        if not provider.enabled:
            logger.debug("Provider %s is disabled, skipping registration", provider.name)
            return
        if not provider.name or provider.name.endswith(LIST_SUFFIX):
            raise ConfigurationError(
                f"Invalid provider name {provider.name!r}: must be non-empty "
                f"and must not end with {LIST_SUFFIX!r}"
            )
        if provider.name in self._providers:
            logger.debug("Replacing previously registered provider %s", provider.name)
        self._providers[provider.name] = provider
        logger.info("Registered provider: %s", provider.name)

    def get(self, name: str) -> Provider | None:
        """Get a provider by name, or None if it is not registered."""
        return self._providers.get(name)

    def names(self) -> set[str]:
        return set(self._providers)

    def providers(self) -> list[Provider]:
        return list(self._providers.values())

    async def initialize_all(self) -> dict[str, bool]:
        """Probe every provider.

        A probe that raises counts as a failure and does not stop the
        remaining probes.

        Returns:
            Mapping of provider name to probe result
        """
        results: dict[str, bool] = {}
        for name, provider in self._providers.items():
            logger.debug("Validating provider: %s", name)
            try:
                ok = bool(await provider.validate_config())
            except Exception as e:
                logger.error("Provider %s initialization failed: %s", name, e)
                ok = False
            results[name] = ok
            if ok:
                logger.info("Provider %s initialized successfully", name)
            else:
                logger.warning("Provider %s validation failed", name)
        return results

    async def generate_tools(self) -> list[ToolDescriptor]:
        """Generate the invoke and list-models descriptors for every provider."""
        tools: list[ToolDescriptor] = []
        for provider in self.providers():
            try:
                models = await provider.list_models()
            except Exception as e:
                logger.warning("Could not list models for %s: %s", provider.name, e)
                models = []
            tools.append(self._build_invoke_tool(provider, models))
            tools.append(
                ToolDescriptor(
                    name=list_tool_name(provider.name),
                    description=f"List all available {provider.name} models",
                    input_schema={"type": "object", "properties": {}},
                )
            )
        return tools

    def _build_invoke_tool(self, provider: Provider, models: list[str]) -> ToolDescriptor:
        model_schema: dict[str, Any] = {
            "type": "string",
            "description": f"Model to use from {provider.name}",
        }
        if models:
            model_schema["enum"] = list(models)

        properties: dict[str, Any] = {
            "model": model_schema,
            "prompt": {
                "type": "string",
                "description": "The prompt/question to send to the model",
            },
        }
        if provider.capabilities.supports_system_prompt:
            properties["system"] = {
                "type": "string",
                "description": "Optional system prompt to guide the model's behavior",
            }
        properties["temperature"] = {
            "type": "number",
            "description": "Temperature for response generation (0.0 to 2.0)",
        }

        return ToolDescriptor(
            name=invoke_tool_name(provider.name),
            description=self._describe(provider),
            input_schema={
                "type": "object",
                "properties": properties,
                "required": ["model", "prompt"],
            },
        )

    def _describe(self, provider: Provider) -> str:
        features = provider.capabilities.describe()
        supports = f" Supports: {', '.join(features)}." if features else ""
        return (
            f"Use {provider.name} for AI tasks.{supports} "
            "This helps manage token usage by delegating tasks to different providers."
        )
