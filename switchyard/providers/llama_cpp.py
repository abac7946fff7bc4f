"""llama.cpp server provider."""

import logging
from typing import Any

import httpx

from ..config import ProviderConfig
from ..errors import NetworkError, ProviderError
from .base import Capabilities, Provider, ProviderRequest, ProviderResponse, Usage

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8080"
DEFAULT_MODEL = "llama-cpp-model"
DEFAULT_N_PREDICT = 512
HEALTH_TIMEOUT_MS = 5000


class LlamaCppProvider(Provider):
    """Provider for a llama.cpp HTTP server.

    The server hosts a single model, so the model list is a fixed placeholder
    plus any configured aliases. llama.cpp has no system-prompt slot; a system
    prompt, if given, is prepended to the user prompt.
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
        return "llamaCpp"

    @property
    def capabilities(self) -> Capabilities:
        return Capabilities(supports_streaming=True)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=None, transport=self._transport)

    async def list_models(self) -> list[str]:
        return [DEFAULT_MODEL] + [a for a in self.config.models if a != DEFAULT_MODEL]

    async def execute(self, request: ProviderRequest) -> ProviderResponse:
        model = request.model or DEFAULT_MODEL
        prompt = f"{request.system}\n\n{request.prompt}" if request.system else request.prompt

        body: dict[str, Any] = {
            "prompt": prompt,
            "n_predict": request.max_tokens or DEFAULT_N_PREDICT,
            "stream": False,
        }
        if request.temperature is not None:
            body["temperature"] = request.temperature

        data = await self._complete(body)

        text = data.get("content") or ""
        if not text:
            raise ProviderError("llama.cpp returned empty response", provider=self.name)

        timings = data.get("timings") or {}
        return ProviderResponse(
            text=text,
            model=model,
            usage=Usage.from_counts(timings.get("prompt_n"), timings.get("predicted_n")),
        )

    async def _complete(self, body: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}/completion"
        with self.deadline():
            try:
                async with self._client() as client:
                    response = await client.post("/completion", json=body)
            except httpx.HTTPError as e:
                raise NetworkError(f"Failed to connect to llama.cpp: {e}", url=url) from e

        if response.is_error:
            raise NetworkError(
                f"llama.cpp API error: {response.status_code} {response.reason_phrase} - {response.text}",
                status_code=response.status_code,
                url=url,
            )
        try:
            return response.json()
        except ValueError as e:
            raise ProviderError(f"llama.cpp returned invalid JSON: {e}", provider=self.name) from e

    async def validate_config(self) -> bool:
        try:
            with self.deadline(HEALTH_TIMEOUT_MS, "health check"):
                async with self._client() as client:
                    response = await client.get("/health")
            if response.is_success:
                return True
        except Exception as e:
            logger.debug("llama.cpp health check failed: %s", e)

        # Older servers have no /health endpoint; fall back to a one-token completion.
        try:
            await self._complete({"prompt": "test", "n_predict": 1, "stream": False})
        except Exception as e:
            logger.debug("llama.cpp probe failed: %s", e)
            return False
        return True
