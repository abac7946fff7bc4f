"""Configuration loading.

Configuration is a JSON document with camelCase keys. It is discovered from
an explicit path, the SWITCHYARD_CONFIG environment variable, a project-local
file or the user config directory, in that order. `${VAR}` placeholders in
string values are expanded from the environment, and loaded sections are
merged over the defaults below.
"""

import json
import os
import re
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any

from .errors import ConfigurationError, ValidationError
from .validation import validate_url

CONFIG_ENV_VAR = "SWITCHYARD_CONFIG"
PROJECT_CONFIG = Path("config") / "switchyard.json"
USER_CONFIG = Path.home() / ".config" / "switchyard" / "config.json"

LOG_LEVELS = ("debug", "info", "warn", "error")
REDACTED = "***REDACTED***"
SENSITIVE_KEYS = (
    "apikey",
    "api_key",
    "token",
    "password",
    "secret",
    "authorization",
    "credentials",
)

_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


@dataclass
class ServerConfig:
    """Server-wide settings."""

    name: str = "switchyard"
    version: str = "0.1.0"
    log_level: str = "info"
    log_file: str | None = None
    history_enabled: bool = False
    history_file: str | None = None
    history_max_entries: int = 1000


@dataclass
class ProviderConfig:
    """Settings for one provider backend.

    Attributes:
        enabled: Disabled providers are never registered
        timeout: Per-request timeout in milliseconds
        max_retries: Retry budget (advisory, not applied by the dispatcher)
        env: Extra environment variables for CLI-backed providers
        base_url: HTTP endpoint for HTTP-backed providers
        models: Alias map (short name -> backing model identifier)
        api_key: Credential for hosted providers
        default_model: Model used when the caller leaves it empty
        cli_path: Executable for CLI-backed providers
        organization: OpenAI organization id
    """

    enabled: bool = False
    timeout: int = 120000
    max_retries: int = 0
    env: dict[str, str] = field(default_factory=dict)
    base_url: str | None = None
    models: dict[str, str] = field(default_factory=dict)
    api_key: str | None = None
    default_model: str | None = None
    cli_path: str | None = None
    organization: str | None = None


@dataclass
class SecurityConfig:
    """Input and output bounds shared by all providers."""

    max_prompt_length: int = 100000
    max_system_length: int = 10000
    max_response_length: int = 500000


def _default_providers() -> dict[str, ProviderConfig]:
    return {
        "ollama": ProviderConfig(base_url="http://localhost:11434", timeout=120000),
        "gemini": ProviderConfig(timeout=60000),
        "openai": ProviderConfig(timeout=60000),
        "anthropic": ProviderConfig(timeout=60000),
        "llamaCpp": ProviderConfig(base_url="http://localhost:8080", timeout=120000),
    }


@dataclass
class Config:
    """Complete Switchyard configuration."""

    version: str = "1.0"
    server: ServerConfig = field(default_factory=ServerConfig)
    providers: dict[str, ProviderConfig] = field(default_factory=_default_providers)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    source: Path | None = None

    def redacted(self) -> dict[str, Any]:
        """Return a JSON-safe view of the config with credentials masked."""
        data = asdict(self)
        data["source"] = str(self.source) if self.source else None
        return redact(data)


def redact(value: Any) -> Any:
    """Mask values whose key looks like a credential."""
    if isinstance(value, dict):
        result = {}
        for key, item in value.items():
            lowered = str(key).lower()
            if item is not None and any(s in lowered for s in SENSITIVE_KEYS):
                result[key] = REDACTED
            else:
                result[key] = redact(item)
        return result
    if isinstance(value, list):
        return [redact(item) for item in value]
    return value


def _load_dotenv(env_path: Path) -> None:
    """Load .env file into os.environ if it exists.

    Does not override existing environment variables.

    Args:
        env_path: Path to .env file
    """
    if not env_path.exists():
        return

    with open(env_path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, _, value = line.partition("=")
            key = key.strip()
            value = value.strip()
            if (value.startswith('"') and value.endswith('"')) or (
                value.startswith("'") and value.endswith("'")
            ):
                value = value[1:-1]
            if key not in os.environ:
                os.environ[key] = value


def find_config_file(explicit: str | Path | None = None) -> Path | None:
    """Return the first existing config file in discovery order."""
    candidates: list[Path] = []
    if explicit:
        candidates.append(Path(explicit).expanduser().resolve())
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        candidates.append(Path(env_path).expanduser().resolve())
    candidates.append(PROJECT_CONFIG.resolve())
    candidates.append(USER_CONFIG)

    for candidate in candidates:
        if candidate.is_file():
            return candidate
    return None


def expand_env_vars(value: Any) -> Any:
    """Replace `${VAR}` placeholders in every string of a JSON structure.

    Raises:
        ConfigurationError: If a referenced variable is not defined
    """
    if isinstance(value, str):

        def _sub(match: re.Match) -> str:
            name = match.group(1)
            if name not in os.environ:
                raise ConfigurationError(f"Environment variable {name} is not defined")
            return os.environ[name]

        return _ENV_PATTERN.sub(_sub, value)
    if isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    if isinstance(value, dict):
        return {key: expand_env_vars(item) for key, item in value.items()}
    return value


def load_config(path: str | Path | None = None, env_file: Path | None = None) -> Config:
    """Discover, parse and validate configuration.

    Args:
        path: Explicit config file path (takes precedence over discovery)
        env_file: .env file to load first (default: ./.env)

    Returns:
        Config merged over defaults; defaults alone when no file is found

    Raises:
        ConfigurationError: If the file cannot be read or is invalid
    """
    _load_dotenv(env_file or Path(".env"))

    if path is not None and not Path(path).expanduser().is_file():
        raise ConfigurationError(f"Config file not found: {path}")

    config_path = find_config_file(path)
    if config_path is None:
        return Config()

    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Failed to parse config file {config_path}: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Failed to load config file {config_path}: {e}") from e

    config = parse_config(expand_env_vars(raw))
    config.source = config_path
    return config


def parse_config(data: Any) -> Config:
    """Validate a decoded JSON document and merge it over the defaults.

    Raises:
        ConfigurationError: Naming the first offending key
    """
    if not isinstance(data, dict):
        raise ConfigurationError("Config must be a JSON object")

    version = data.get("version", "1.0")
    if version != "1.0":
        raise ConfigurationError(f"Unsupported config version: {version!r} (expected '1.0')")

    config = Config()
    config.server = _merge_section(config.server, _section(data, "server"), "server")
    config.security = _merge_section(config.security, _section(data, "security"), "security")

    if config.server.log_level not in LOG_LEVELS:
        raise ConfigurationError(
            f"server.logLevel must be one of {', '.join(LOG_LEVELS)}, "
            f"got {config.server.log_level!r}"
        )
    _require_positive(config.server.history_max_entries, "server.historyMaxEntries")
    _require_positive(config.security.max_prompt_length, "security.maxPromptLength")
    _require_positive(config.security.max_system_length, "security.maxSystemLength")
    _require_positive(config.security.max_response_length, "security.maxResponseLength")

    for name, block in _section(data, "providers").items():
        prefix = f"providers.{name}"
        if not isinstance(block, dict):
            raise ConfigurationError(f"{prefix} must be an object")
        if "enabled" not in block:
            raise ConfigurationError(f"{prefix}.enabled is required")
        base = config.providers.get(name, ProviderConfig())
        provider = _merge_section(base, block, prefix)
        _require_positive(provider.timeout, f"{prefix}.timeout")
        if provider.max_retries < 0:
            raise ConfigurationError(f"{prefix}.maxRetries must be >= 0")
        if provider.base_url is not None:
            _require_http_url(provider.base_url, f"{prefix}.baseUrl")
        for mapping_key in ("env", "models"):
            mapping = getattr(provider, mapping_key)
            if not all(isinstance(v, str) for v in mapping.values()):
                raise ConfigurationError(f"{prefix}.{mapping_key} values must be strings")
        config.providers[name] = provider

    return config


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    section = data.get(key, {})
    if not isinstance(section, dict):
        raise ConfigurationError(f"{key} must be an object")
    return section


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _merge_section(base: Any, values: dict[str, Any], prefix: str) -> Any:
    """Overlay camelCase JSON values onto a dataclass instance, type-checking each."""
    known = {_camel(f.name): f for f in fields(base)}
    updates: dict[str, Any] = {}

    for key, value in values.items():
        target = known.get(key)
        if target is None:
            # Unknown keys are tolerated so newer config files keep loading.
            continue
        current = getattr(base, target.name)
        if value is None and not isinstance(current, (bool, int, dict)):
            updates[target.name] = None
            continue
        if isinstance(current, bool):
            ok = isinstance(value, bool)
        elif isinstance(current, int):
            ok = isinstance(value, int) and not isinstance(value, bool)
        elif isinstance(current, dict):
            ok = isinstance(value, dict)
        else:
            ok = isinstance(value, str)
        if not ok:
            raise ConfigurationError(
                f"{prefix}.{key} has invalid type {type(value).__name__}"
            )
        updates[target.name] = dict(value) if isinstance(value, dict) else value

    return replace(base, **updates)


def _require_positive(value: int, key: str) -> None:
    if value <= 0:
        raise ConfigurationError(f"{key} must be a positive integer")


def _require_http_url(url: str, key: str) -> None:
    try:
        validate_url(url)
    except ValidationError as e:
        raise ConfigurationError(f"{key}: {e}") from e
