"""OpenAI provider implementation.

Uses the official OpenAI SDK, which is an optional dependency.

Requires: pip install switchyard[openai]
"""

import logging
import os
from typing import Any

from ..config import ProviderConfig
from ..errors import (
    AuthenticationError,
    ConfigurationError,
    NetworkError,
    ProviderError,
    RateLimitError,
    RequestTimeoutError,
)
from .base import Capabilities, Provider, ProviderRequest, ProviderResponse, Usage

logger = logging.getLogger(__name__)

# Check for SDK availability
try:
    import openai

    _SDK_AVAILABLE = True
except ImportError:
    _SDK_AVAILABLE = False
    openai = None  # type: ignore

# Used when the models endpoint is unavailable.
FALLBACK_MODELS = [
    "gpt-4o",
    "gpt-4o-mini",
    "gpt-4-turbo",
    "gpt-4",
    "gpt-3.5-turbo",
]


class OpenAIProvider(Provider):
    """Provider for OpenAI chat models.

    The SDK client is created on first use. Construction fails with
    ConfigurationError when the SDK is missing or no API key is available,
    so a misconfigured provider is simply not registered.
    """

    def __init__(self, config: ProviderConfig) -> None:
        super().__init__(config)
        self._check_available()
        self.api_key = config.api_key or os.environ.get("OPENAI_API_KEY")
        if not self.api_key:
            raise ConfigurationError(
                "OpenAI API key not configured. Set providers.openai.apiKey "
                "or the OPENAI_API_KEY environment variable."
            )
        self.default_model = config.default_model
        self._client: Any = None

    @property
    def name(self) -> str:
        return "openai"

    @property
    def capabilities(self) -> Capabilities:
        return Capabilities(
            supports_streaming=True,
            supports_system_prompt=True,
            supports_images=True,
            supports_function_calling=True,
        )

    def _check_available(self) -> None:
        """Raise error if SDK not installed."""
        if not _SDK_AVAILABLE:
            raise ConfigurationError(
                "OpenAI SDK not installed. Install with: pip install switchyard[openai]"
            )

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = openai.AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.config.base_url,
                organization=self.config.organization,
                timeout=self.timeout_ms / 1000,
                max_retries=0,
            )
        return self._client

    async def list_models(self) -> list[str]:
        try:
            with self.deadline(what="list models request"):
                page = await self.client.models.list()
            models = [model.id for model in page.data]
        except (openai.OpenAIError, RequestTimeoutError) as e:
            logger.debug("OpenAI model listing failed, using fallback list: %s", e)
            models = list(FALLBACK_MODELS)
        return models + [a for a in self.config.models if a not in models]

    async def execute(self, request: ProviderRequest) -> ProviderResponse:
        model = request.model or self.default_model
        if not model:
            raise ConfigurationError("No model given and providers.openai.defaultModel is unset")

        messages = []
        if request.system:
            messages.append({"role": "system", "content": request.system})
        messages.append({"role": "user", "content": request.prompt})

        kwargs: dict[str, Any] = {"model": model, "messages": messages}
        if request.temperature is not None:
            kwargs["temperature"] = request.temperature
        if request.max_tokens is not None:
            kwargs["max_tokens"] = request.max_tokens

        try:
            with self.deadline():
                completion = await self.client.chat.completions.create(**kwargs)
        except openai.OpenAIError as e:
            raise self._translate(e) from e

        text = ""
        if completion.choices:
            text = completion.choices[0].message.content or ""
        if not text:
            raise ProviderError("OpenAI returned empty response", provider=self.name)

        usage = None
        if completion.usage is not None:
            usage = Usage(
                prompt_tokens=completion.usage.prompt_tokens,
                completion_tokens=completion.usage.completion_tokens,
                total_tokens=completion.usage.total_tokens,
            )
        return ProviderResponse(
            text=text,
            model=completion.model or model,
            usage=usage,
            metadata={"finish_reason": completion.choices[0].finish_reason},
        )

    def _translate(self, error: Exception) -> ProviderError:
        """Map an SDK exception onto the Switchyard error taxonomy."""
        if isinstance(error, (openai.AuthenticationError, openai.PermissionDeniedError)):
            return AuthenticationError("Invalid OpenAI API key", provider=self.name)
        if isinstance(error, openai.RateLimitError):
            retry_after = error.response.headers.get("retry-after")
            return RateLimitError(
                f"OpenAI rate limit exceeded: {error.message}",
                retry_after=float(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        if isinstance(error, openai.APITimeoutError):
            return RequestTimeoutError(
                f"openai request timed out after {self.timeout_ms}ms", self.timeout_ms
            )
        if isinstance(error, openai.APIConnectionError):
            return NetworkError(f"Failed to connect to OpenAI: {error}", url=self.config.base_url)
        if isinstance(error, openai.APIStatusError):
            return ProviderError(
                f"OpenAI API error: {error.message}",
                provider=self.name,
                status_code=error.status_code,
            )
        return ProviderError(f"OpenAI API error: {error}", provider=self.name)

    async def validate_config(self) -> bool:
        try:
            with self.deadline(what="probe"):
                await self.client.models.list()
        except Exception as e:
            logger.debug("OpenAI probe failed: %s", e)
            return False
        return True
