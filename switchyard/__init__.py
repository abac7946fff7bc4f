"""Switchyard - route tool calls to local and hosted LLM providers."""

from .config import Config, ProviderConfig, SecurityConfig, ServerConfig, load_config
from .dispatch import Dispatcher, ToolResult, parse_tool_name
from .errors import (
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
from .history import HistoryEntry, HistoryLedger
from .providers import build_registry
from .server import ToolServer

__version__ = "0.1.0"

__all__ = [
    "load_config",
    "build_registry",
    "parse_tool_name",
    "Config",
    "ServerConfig",
    "ProviderConfig",
    "SecurityConfig",
    "Dispatcher",
    "ToolResult",
    "ToolServer",
    "HistoryEntry",
    "HistoryLedger",
    "SwitchyardError",
    "ValidationError",
    "ConfigurationError",
    "UnknownToolError",
    "ProviderError",
    "NetworkError",
    "RequestTimeoutError",
    "AuthenticationError",
    "RateLimitError",
    "ExitCode",
]
