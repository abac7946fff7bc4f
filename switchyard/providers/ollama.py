"""Ollama provider.

Talks to a local Ollama server over its HTTP API. Model aliases from the
`models` config map are merged into the model list and resolved before the
request is sent.
"""

import logging
from typing import Any

import httpx

from ..config import ProviderConfig
from ..errors import NetworkError, ProviderError
from .base import Capabilities, Provider, ProviderRequest, ProviderResponse, Usage

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:11434"
LIST_TIMEOUT_MS = 10000


class OllamaProvider(Provider):
    """Provider for models served by Ollama.

    Example:
        provider = OllamaProvider(ProviderConfig(enabled=True, models={"fast": "qwen2.5:7b"}))
        response = await provider.execute(ProviderRequest(model="qwen2.5:7b", prompt="hi"))
    """

    def __init__(
        self,
        config: ProviderConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(config)
        self.base_url = (config.base_url or DEFAULT_BASE_URL).rstrip("/")
        self._transport = transport

    @property
    def name(self) -> str:
        return "ollama"

    @property
    def capabilities(self) -> Capabilities:
        return Capabilities(supports_streaming=True, supports_system_prompt=True)

    def _client(self) -> httpx.AsyncClient:
        # Deadlines are enforced by Provider.deadline, not by httpx.
        return httpx.AsyncClient(base_url=self.base_url, timeout=None, transport=self._transport)

    async def list_models(self) -> list[str]:
        """List installed models followed by configured aliases."""
        url = f"{self.base_url}/api/tags"
        with self.deadline(LIST_TIMEOUT_MS, "list models request"):
            try:
                async with self._client() as client:
                    response = await client.get("/api/tags")
            except httpx.HTTPError as e:
                raise NetworkError(f"Failed to list Ollama models: {e}", url=url) from e

        if response.is_error:
            raise NetworkError(
                f"Ollama API error: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                url=url,
            )
        try:
            models = [model["name"] for model in response.json().get("models", [])]
        except (ValueError, KeyError, TypeError, AttributeError) as e:
            raise ProviderError(f"Unexpected Ollama model list: {e}", provider=self.name) from e

        return models + [alias for alias in self.config.models if alias not in models]

    async def execute(self, request: ProviderRequest) -> ProviderResponse:
        model = request.model
        await self.check_model(model)

        body: dict[str, Any] = {"model": model, "prompt": request.prompt, "stream": False}
        if request.system is not None:
            body["system"] = request.system
        options: dict[str, Any] = {}
        if request.temperature is not None:
            options["temperature"] = request.temperature
        if request.max_tokens is not None:
            options["num_predict"] = request.max_tokens
        if options:
            body["options"] = options

        url = f"{self.base_url}/api/generate"
        with self.deadline():
            try:
                async with self._client() as client:
                    response = await client.post("/api/generate", json=body)
            except httpx.HTTPError as e:
                raise NetworkError(f"Failed to connect to Ollama: {e}", url=url) from e

        if response.is_error:
            raise NetworkError(
                f"Ollama API error: {response.status_code} {response.reason_phrase} - {response.text}",
                status_code=response.status_code,
                url=url,
            )
        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(f"Ollama returned invalid JSON: {e}", provider=self.name) from e

        text = data.get("response") or ""
        if not text:
            raise ProviderError("Ollama returned empty response", provider=self.name)

        metadata: dict[str, Any] = {}
        if "total_duration" in data:
            # Ollama reports nanoseconds
            metadata["backend_duration"] = data["total_duration"] // 1_000_000
        return ProviderResponse(
            text=text,
            model=model,
            usage=Usage.from_counts(data.get("prompt_eval_count"), data.get("eval_count")),
            metadata=metadata,
        )

    async def validate_config(self) -> bool:
        try:
            await self.list_models()
        except Exception as e:
            logger.debug("Ollama probe failed: %s", e)
            return False
        return True
