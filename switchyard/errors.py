"""Switchyard error types and exit codes."""

from enum import IntEnum


class ExitCode(IntEnum):
    """Process exit codes for the CLI."""

    SUCCESS = 0
    RUNTIME_ERROR = 1
    CONFIG_ERROR = 2
    PROVIDER_ERROR = 3
    USAGE_ERROR = 4


class SwitchyardError(Exception):
    """Base error for all Switchyard errors."""

    exit_code: ExitCode = ExitCode.RUNTIME_ERROR

    @property
    def message(self) -> str:
        return self.args[0] if self.args else ""


class ValidationError(SwitchyardError):
    """Caller input failed a bounds or type check."""

    exit_code = ExitCode.USAGE_ERROR


class ConfigurationError(SwitchyardError):
    """Configuration is missing, malformed or names an unusable backend."""

    exit_code = ExitCode.CONFIG_ERROR


class UnknownToolError(SwitchyardError):
    """Tool name matches neither `use_<provider>` nor `list_<provider>_models`."""

    exit_code = ExitCode.USAGE_ERROR

    def __init__(self, tool_name: str):
        self.tool_name = tool_name
        super().__init__(f"Invalid tool name format: {tool_name}")


class ProviderError(SwitchyardError):
    """Error reported by a provider backend."""

    exit_code = ExitCode.PROVIDER_ERROR

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class NetworkError(ProviderError):
    """Transport failure talking to a backend."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        url: str | None = None,
    ):
        super().__init__(message, status_code=status_code)
        self.url = url


class RequestTimeoutError(ProviderError):
    """A backend call exceeded its configured timeout."""

    def __init__(self, message: str, timeout_ms: int):
        super().__init__(message)
        self.timeout_ms = timeout_ms


class AuthenticationError(ProviderError):
    """The backend rejected the configured credentials."""

    def __init__(self, message: str, provider: str | None = None):
        super().__init__(message, provider=provider, status_code=401)


class RateLimitError(ProviderError):
    """The backend is throttling requests."""

    def __init__(self, message: str, retry_after: float | None = None):
        super().__init__(message, status_code=429)
        self.retry_after = retry_after
