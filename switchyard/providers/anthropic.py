"""Anthropic Claude provider."""

import logging
import os
from typing import Any

import httpx

from ..config import ProviderConfig
from ..errors import (
    AuthenticationError,
    ConfigurationError,
    NetworkError,
    ProviderError,
    RateLimitError,
)
from .base import Capabilities, Provider, ProviderRequest, ProviderResponse, Usage

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.anthropic.com"
API_VERSION = "2023-06-01"
DEFAULT_MAX_TOKENS = 4096

# The Messages API has no model listing endpoint.
KNOWN_MODELS = [
    "claude-opus-4-5-20251101",
    "claude-sonnet-4-20250514",
    "claude-3-7-sonnet-20250219",
    "claude-3-5-haiku-20241022",
    "claude-3-5-sonnet-20241022",
    "claude-3-opus-20240229",
]
PROBE_MODEL = "claude-3-5-haiku-20241022"


class AnthropicProvider(Provider):
    """Provider for Anthropic Claude models via the Messages API."""

    def __init__(
        self,
        config: ProviderConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(config)
        self.api_key = config.api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise ConfigurationError(
                "Anthropic API key not configured. Set providers.anthropic.apiKey "
                "or the ANTHROPIC_API_KEY environment variable."
            )
        self.base_url = (
            config.base_url or os.environ.get("ANTHROPIC_BASE_URL") or DEFAULT_BASE_URL
        ).rstrip("/")
        self.default_model = config.default_model
        self._transport = transport

    @property
    def name(self) -> str:
        return "anthropic"

    @property
    def capabilities(self) -> Capabilities:
        return Capabilities(
            supports_streaming=True,
            supports_system_prompt=True,
            supports_images=True,
            supports_function_calling=True,
        )

    async def list_models(self) -> list[str]:
        return KNOWN_MODELS + [a for a in self.config.models if a not in KNOWN_MODELS]

    async def execute(self, request: ProviderRequest) -> ProviderResponse:
        model = request.model or self.default_model
        if not model:
            raise ConfigurationError("No model given and providers.anthropic.defaultModel is unset")

        body: dict[str, Any] = {
            "model": model,
            "messages": [{"role": "user", "content": request.prompt}],
            "max_tokens": request.max_tokens or DEFAULT_MAX_TOKENS,
        }
        if request.system:
            body["system"] = request.system
        if request.temperature is not None:
            body["temperature"] = request.temperature

        result = await self._post_messages(body)
        text = self._parse_text(result)
        if not text:
            raise ProviderError("Anthropic returned empty response", provider=self.name)

        usage = result.get("usage") or {}
        return ProviderResponse(
            text=text,
            model=result.get("model", model),
            usage=Usage.from_counts(usage.get("input_tokens"), usage.get("output_tokens")),
            metadata={"stop_reason": result.get("stop_reason")},
        )

    async def _post_messages(self, body: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}/v1/messages"
        headers = {
            "content-type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": API_VERSION,
        }

        with self.deadline():
            try:
                async with httpx.AsyncClient(timeout=None, transport=self._transport) as client:
                    response = await client.post(url, json=body, headers=headers)
            except httpx.HTTPError as e:
                raise NetworkError(f"Network error: {e}", url=url) from e

        status = response.status_code
        if status in (401, 403):
            raise AuthenticationError("Invalid Anthropic API key", provider=self.name)
        if status == 429:
            raise RateLimitError(
                f"Anthropic rate limit exceeded: {response.text}",
                retry_after=_retry_after(response),
            )
        if response.is_error:
            raise ProviderError(
                f"Anthropic API error {status}: {response.text}",
                provider=self.name,
                status_code=status,
            )
        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(f"Anthropic returned invalid JSON: {e}", provider=self.name) from e

    def _parse_text(self, result: dict[str, Any]) -> str:
        parts = [
            block.get("text", "")
            for block in result.get("content", [])
            if block.get("type") == "text"
        ]
        return "".join(parts)

    async def validate_config(self) -> bool:
        """Send a one-token request to check the API key."""
        try:
            await self._post_messages(
                {
                    "model": PROBE_MODEL,
                    "messages": [{"role": "user", "content": "test"}],
                    "max_tokens": 1,
                }
            )
        except Exception as e:
            logger.debug("Anthropic probe failed: %s", e)
            return False
        return True


def _retry_after(response: httpx.Response) -> float | None:
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None
