"""Provider backends.

Each backend implements the Provider contract defined in `base`. The
registry turns the enabled set into the tool surface.

Supported providers:
    - ollama: local Ollama server (HTTP)
    - llamaCpp: llama.cpp server (HTTP)
    - anthropic: Anthropic Messages API (HTTP)
    - openai: OpenAI API (optional SDK)
    - gemini: Gemini CLI (subprocess)

Usage:
    from switchyard.providers import build_registry

    registry = build_registry(config)
    provider = registry.get("ollama")
"""

import logging
from collections.abc import Callable

from ..config import Config, ProviderConfig
from ..errors import ConfigurationError
from .anthropic import AnthropicProvider
from .base import Capabilities, Provider, ProviderRequest, ProviderResponse, Usage
from .gemini import GeminiProvider
from .llama_cpp import LlamaCppProvider
from .ollama import OllamaProvider
from .openai import OpenAIProvider
from .registry import ProviderRegistry, ToolDescriptor

logger = logging.getLogger(__name__)

# Config key -> provider factory
PROVIDER_FACTORIES: dict[str, Callable[[ProviderConfig], Provider]] = {
    "ollama": OllamaProvider,
    "gemini": GeminiProvider,
    "openai": OpenAIProvider,
    "anthropic": AnthropicProvider,
    "llamaCpp": LlamaCppProvider,
}

__all__ = [
    # Core types
    "Capabilities",
    "Provider",
    "ProviderRequest",
    "ProviderResponse",
    "Usage",
    "ProviderRegistry",
    "ToolDescriptor",
    # Backends
    "AnthropicProvider",
    "GeminiProvider",
    "LlamaCppProvider",
    "OllamaProvider",
    "OpenAIProvider",
    "PROVIDER_FACTORIES",
    "build_registry",
]


def build_registry(
    config: Config,
    factories: dict[str, Callable[[ProviderConfig], Provider]] | None = None,
) -> ProviderRegistry:
    """Construct every enabled provider and register it.

    A provider whose construction fails with ConfigurationError is logged
    and skipped so the others still register.

    Args:
        config: Loaded configuration
        factories: Override of PROVIDER_FACTORIES (mainly for tests)

    Returns:
        Registry holding the successfully constructed providers
    """
    factories = PROVIDER_FACTORIES if factories is None else factories
    registry = ProviderRegistry()

    for key, provider_config in config.providers.items():
        if not provider_config.enabled:
            continue
        factory = factories.get(key)
        if factory is None:
            logger.warning("Unknown provider %r in configuration, ignoring", key)
            continue
        try:
            registry.register(factory(provider_config))
        except ConfigurationError as e:
            logger.error("Failed to register %s provider: %s", key, e)

    if len(registry) == 0:
        logger.warning(
            "No providers are enabled. Please enable at least one provider in configuration."
        )
    return registry
