"""Shared test fixtures for Switchyard tests."""

from pathlib import Path

import pytest

from switchyard.config import ProviderConfig
from switchyard.history import HistoryLedger
from switchyard.providers.base import Capabilities, Provider, ProviderRequest, ProviderResponse, Usage
from switchyard.providers.registry import ProviderRegistry


class FakeProvider(Provider):
    """In-memory provider with scripted behaviour.

    Args:
        name: Provider name
        models: Models returned by list_models
        reply: Text returned by execute
        error: Exception raised by execute instead of replying
        list_error: Exception raised by list_models
    """

    def __init__(
        self,
        name: str = "fake",
        config: ProviderConfig | None = None,
        models: list[str] | None = None,
        reply: str = "Hello from fake",
        error: Exception | None = None,
        list_error: Exception | None = None,
        system_prompts: bool = True,
        probe: bool | Exception = True,
    ) -> None:
        super().__init__(config or ProviderConfig(enabled=True))
        self._name = name
        self.models = ["model-a", "model-b"] if models is None else models
        self.reply = reply
        self.error = error
        self.list_error = list_error
        self.system_prompts = system_prompts
        self.probe = probe
        self.requests: list[ProviderRequest] = []

    @property
    def name(self) -> str:
        return self._name

    @property
    def capabilities(self) -> Capabilities:
        return Capabilities(supports_system_prompt=self.system_prompts)

    async def list_models(self) -> list[str]:
        if self.list_error is not None:
            raise self.list_error
        return self.models + [a for a in self.config.models if a not in self.models]

    async def execute(self, request: ProviderRequest) -> ProviderResponse:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return ProviderResponse(
            text=self.reply,
            model=request.model,
            usage=Usage.from_counts(3, 4),
        )

    async def validate_config(self) -> bool:
        if isinstance(self.probe, Exception):
            raise self.probe
        return self.probe


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def registry(fake_provider: FakeProvider) -> ProviderRegistry:
    registry = ProviderRegistry()
    registry.register(fake_provider)
    return registry


@pytest.fixture
def ledger() -> HistoryLedger:
    return HistoryLedger(enabled=True, max_entries=100)


@pytest.fixture
def history_path(tmp_path: Path) -> Path:
    return tmp_path / "history" / "history.jsonl"
