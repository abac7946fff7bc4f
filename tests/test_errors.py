"""Tests for the error hierarchy."""

from switchyard.errors import (
    AuthenticationError,
    ConfigurationError,
    ExitCode,
    NetworkError,
    ProviderError,
    RateLimitError,
    RequestTimeoutError,
    SwitchyardError,
    UnknownToolError,
    ValidationError,
)


class TestErrorHierarchy:
    def test_provider_subtypes(self) -> None:
        for error in (
            NetworkError("down"),
            RequestTimeoutError("slow", 1000),
            AuthenticationError("bad key"),
            RateLimitError("busy"),
        ):
            assert isinstance(error, ProviderError)
            assert isinstance(error, SwitchyardError)

    def test_exit_codes(self) -> None:
        assert ValidationError("x").exit_code == ExitCode.USAGE_ERROR
        assert ConfigurationError("x").exit_code == ExitCode.CONFIG_ERROR
        assert ProviderError("x").exit_code == ExitCode.PROVIDER_ERROR
        assert SwitchyardError("x").exit_code == ExitCode.RUNTIME_ERROR

    def test_message_property(self) -> None:
        assert ProviderError("boom", provider="ollama").message == "boom"
        assert SwitchyardError().message == ""


class TestErrorAttributes:
    def test_authentication_error_is_401(self) -> None:
        error = AuthenticationError("Invalid key", provider="anthropic")
        assert error.status_code == 401
        assert error.provider == "anthropic"

    def test_rate_limit_error_is_429(self) -> None:
        error = RateLimitError("slow down", retry_after=30)
        assert error.status_code == 429
        assert error.retry_after == 30

    def test_timeout_error_carries_timeout(self) -> None:
        error = RequestTimeoutError("timed out", 5000)
        assert error.timeout_ms == 5000
        assert not isinstance(error, TimeoutError)

    def test_network_error_url(self) -> None:
        error = NetworkError("refused", status_code=502, url="http://localhost:11434")
        assert error.url == "http://localhost:11434"
        assert error.status_code == 502

    def test_unknown_tool_error_message(self) -> None:
        error = UnknownToolError("frobnicate")
        assert error.tool_name == "frobnicate"
        assert str(error) == "Invalid tool name format: frobnicate"
