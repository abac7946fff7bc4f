"""Tests for the Ollama provider."""

import json

import anyio
import httpx
import pytest

from switchyard.config import ProviderConfig
from switchyard.errors import NetworkError, ProviderError, ValidationError
from switchyard.providers.base import ProviderRequest
from switchyard.providers.ollama import OllamaProvider

TAGS = {"models": [{"name": "llama3:8b"}, {"name": "qwen2.5:7b"}]}


def make_provider(handler, **config) -> OllamaProvider:
    config.setdefault("enabled", True)
    return OllamaProvider(ProviderConfig(**config), transport=httpx.MockTransport(handler))


def ollama_handler(generate: dict, seen: list | None = None):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/tags":
            return httpx.Response(200, json=TAGS)
        if request.url.path == "/api/generate":
            if seen is not None:
                seen.append(json.loads(request.content))
            return httpx.Response(200, json=generate)
        return httpx.Response(404)

    return handler


class TestOllamaListModels:
    def test_models_then_aliases(self) -> None:
        provider = make_provider(ollama_handler({}), models={"fast": "qwen2.5:7b"})
        assert anyio.run(provider.list_models) == ["llama3:8b", "qwen2.5:7b", "fast"]

    def test_http_error(self) -> None:
        provider = make_provider(lambda r: httpx.Response(500))
        with pytest.raises(NetworkError) as exc_info:
            anyio.run(provider.list_models)
        assert exc_info.value.status_code == 500

    def test_connection_error(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused")

        provider = make_provider(refuse)
        with pytest.raises(NetworkError, match="connection refused"):
            anyio.run(provider.list_models)


class TestOllamaExecute:
    def test_generate_body_and_usage(self) -> None:
        seen: list = []
        generate = {"response": "Hi!", "prompt_eval_count": 4, "eval_count": 2}
        provider = make_provider(ollama_handler(generate, seen))

        request = ProviderRequest(
            model="llama3:8b", prompt="hello", system="be nice", temperature=0.5, max_tokens=64
        )
        response = anyio.run(provider.execute, request)

        assert response.text == "Hi!"
        assert response.model == "llama3:8b"
        assert response.usage.total_tokens == 6
        assert seen == [
            {
                "model": "llama3:8b",
                "prompt": "hello",
                "stream": False,
                "system": "be nice",
                "options": {"temperature": 0.5, "num_predict": 64},
            }
        ]

    def test_unknown_model_rejected_before_generate(self) -> None:
        seen: list = []
        provider = make_provider(ollama_handler({"response": "x"}, seen))
        with pytest.raises(ValidationError, match="Invalid model: mistral"):
            anyio.run(provider.execute, ProviderRequest(model="mistral", prompt="hi"))
        assert seen == []

    def test_empty_response(self) -> None:
        provider = make_provider(ollama_handler({"response": ""}))
        with pytest.raises(ProviderError, match="empty response"):
            anyio.run(provider.execute, ProviderRequest(model="llama3:8b", prompt="hi"))


class TestOllamaValidateConfig:
    def test_reachable(self) -> None:
        assert anyio.run(make_provider(ollama_handler({})).validate_config) is True

    def test_unreachable(self) -> None:
        assert anyio.run(make_provider(lambda r: httpx.Response(503)).validate_config) is False
