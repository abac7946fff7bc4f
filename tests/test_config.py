"""Tests for configuration loading."""

import json
from pathlib import Path

import pytest

from switchyard import config as config_module
from switchyard.config import (
    REDACTED,
    Config,
    expand_env_vars,
    find_config_file,
    load_config,
    parse_config,
)
from switchyard.errors import ConfigurationError


@pytest.fixture
def isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run in an empty directory with no user config or env override."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(config_module.CONFIG_ENV_VAR, raising=False)
    monkeypatch.setattr(config_module, "USER_CONFIG", tmp_path / "user" / "config.json")
    return tmp_path


def write_config(path: Path, data: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data))
    return path


class TestDefaults:
    def test_defaults_when_no_file(self, isolated: Path) -> None:
        config = load_config()
        assert config.source is None
        assert config.server.log_level == "info"
        assert config.server.history_enabled is False
        assert config.server.history_max_entries == 1000
        assert config.security.max_prompt_length == 100000
        assert config.security.max_system_length == 10000
        assert config.security.max_response_length == 500000
        assert not any(p.enabled for p in config.providers.values())

    def test_default_provider_settings(self) -> None:
        config = Config()
        assert config.providers["ollama"].base_url == "http://localhost:11434"
        assert config.providers["llamaCpp"].base_url == "http://localhost:8080"
        assert config.providers["gemini"].timeout == 60000
        assert config.providers["ollama"].timeout == 120000


class TestDiscovery:
    def test_explicit_path_wins(self, isolated: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        explicit = write_config(isolated / "explicit.json", {"server": {"name": "explicit"}})
        env = write_config(isolated / "env.json", {"server": {"name": "env"}})
        monkeypatch.setenv(config_module.CONFIG_ENV_VAR, str(env))

        assert load_config(explicit).server.name == "explicit"

    def test_env_var_before_project_file(
        self, isolated: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        write_config(isolated / "config" / "switchyard.json", {"server": {"name": "project"}})
        env = write_config(isolated / "env.json", {"server": {"name": "env"}})
        monkeypatch.setenv(config_module.CONFIG_ENV_VAR, str(env))

        assert load_config().server.name == "env"

    def test_project_file_before_user_file(self, isolated: Path) -> None:
        project = write_config(isolated / "config" / "switchyard.json", {})
        write_config(config_module.USER_CONFIG, {})

        assert find_config_file() == project.resolve()

    def test_user_file(self, isolated: Path) -> None:
        user = write_config(config_module.USER_CONFIG, {"server": {"name": "user"}})
        config = load_config()
        assert config.server.name == "user"
        assert config.source == user

    def test_missing_explicit_file(self, isolated: Path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(isolated / "missing.json")

    def test_malformed_json(self, isolated: Path) -> None:
        path = isolated / "bad.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError, match="Failed to parse"):
            load_config(path)


class TestEnvExpansion:
    def test_expands_nested_strings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SY_KEY", "sk-123")
        data = {"a": ["${SY_KEY}", 3], "b": {"c": "key=${SY_KEY}"}}
        assert expand_env_vars(data) == {"a": ["sk-123", 3], "b": {"c": "key=sk-123"}}

    def test_undefined_variable(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("SY_UNDEFINED", raising=False)
        with pytest.raises(ConfigurationError, match="SY_UNDEFINED"):
            expand_env_vars("${SY_UNDEFINED}")

    def test_dotenv_loaded_before_expansion(
        self, isolated: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.delenv("SY_DOTENV_KEY", raising=False)
        env_file = isolated / ".env"
        env_file.write_text('# comment\nSY_DOTENV_KEY="from-dotenv"\n')
        path = write_config(
            isolated / "c.json",
            {"providers": {"openai": {"enabled": True, "apiKey": "${SY_DOTENV_KEY}"}}},
        )

        config = load_config(path, env_file=env_file)
        assert config.providers["openai"].api_key == "from-dotenv"
        monkeypatch.delenv("SY_DOTENV_KEY", raising=False)

    def test_dotenv_does_not_override(
        self, isolated: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SY_EXISTING", "shell")
        env_file = isolated / ".env"
        env_file.write_text("SY_EXISTING=dotenv\n")
        config_module._load_dotenv(env_file)
        assert config_module.os.environ["SY_EXISTING"] == "shell"


class TestParseConfig:
    def test_merges_provider_over_defaults(self) -> None:
        config = parse_config(
            {
                "providers": {
                    "ollama": {"enabled": True, "models": {"fast": "qwen2.5:7b"}},
                }
            }
        )
        ollama = config.providers["ollama"]
        assert ollama.enabled is True
        assert ollama.base_url == "http://localhost:11434"
        assert ollama.models == {"fast": "qwen2.5:7b"}

    def test_camel_case_keys(self) -> None:
        config = parse_config(
            {
                "server": {"logLevel": "debug", "historyEnabled": True, "historyMaxEntries": 5},
                "security": {"maxPromptLength": 50},
            }
        )
        assert config.server.log_level == "debug"
        assert config.server.history_enabled is True
        assert config.server.history_max_entries == 5
        assert config.security.max_prompt_length == 50

    def test_unknown_keys_ignored(self) -> None:
        config = parse_config({"server": {"someFutureKey": 1}})
        assert config.server.name == "switchyard"

    def test_rejects_non_object(self) -> None:
        with pytest.raises(ConfigurationError):
            parse_config([])

    def test_rejects_bad_version(self) -> None:
        with pytest.raises(ConfigurationError, match="version"):
            parse_config({"version": "2.0"})

    def test_rejects_bad_log_level(self) -> None:
        with pytest.raises(ConfigurationError, match="logLevel"):
            parse_config({"server": {"logLevel": "verbose"}})

    def test_requires_enabled(self) -> None:
        with pytest.raises(ConfigurationError, match="providers.ollama.enabled"):
            parse_config({"providers": {"ollama": {"timeout": 100}}})

    def test_rejects_wrong_type(self) -> None:
        with pytest.raises(ConfigurationError, match="providers.ollama.timeout"):
            parse_config({"providers": {"ollama": {"enabled": True, "timeout": "fast"}}})

    def test_rejects_non_positive_timeout(self) -> None:
        with pytest.raises(ConfigurationError, match="timeout"):
            parse_config({"providers": {"ollama": {"enabled": True, "timeout": 0}}})

    def test_rejects_bad_base_url(self) -> None:
        with pytest.raises(ConfigurationError, match="baseUrl"):
            parse_config({"providers": {"ollama": {"enabled": True, "baseUrl": "ftp://x"}}})

    def test_rejects_non_string_alias(self) -> None:
        with pytest.raises(ConfigurationError, match="models"):
            parse_config({"providers": {"ollama": {"enabled": True, "models": {"a": 1}}}})

    def test_unknown_provider_kept(self) -> None:
        config = parse_config({"providers": {"custom": {"enabled": True}}})
        assert config.providers["custom"].enabled is True


class TestRedaction:
    def test_masks_credentials(self) -> None:
        config = parse_config(
            {"providers": {"anthropic": {"enabled": True, "apiKey": "sk-ant-secret"}}}
        )
        view = config.redacted()
        assert view["providers"]["anthropic"]["api_key"] == REDACTED
        assert "sk-ant-secret" not in json.dumps(view)

    def test_leaves_unset_credentials(self) -> None:
        view = Config().redacted()
        assert view["providers"]["ollama"]["api_key"] is None
