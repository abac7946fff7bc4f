"""Tests for the CLI entry point."""

import json
from pathlib import Path

import pytest

from switchyard import __main__ as cli
from switchyard.errors import ExitCode, ValidationError
from switchyard.history import HistoryEntry


def write_config(tmp_path: Path, data: dict) -> Path:
    path = tmp_path / "switchyard.json"
    path.write_text(json.dumps(data))
    return path


class TestParseCallArguments:
    def test_pairs_and_json(self) -> None:
        arguments = cli.parse_call_arguments(
            ["prompt=hello world", "temperature=0.3", "model=7b"],
            '{"model": "llama3", "system": "terse"}',
        )
        assert arguments == {
            "model": "7b",
            "system": "terse",
            "prompt": "hello world",
            "temperature": 0.3,
        }

    def test_strings_stay_strings(self) -> None:
        assert cli.parse_call_arguments(["model=qwen2.5:7b", "flag=true"], None) == {
            "model": "qwen2.5:7b",
            "flag": "true",
        }

    def test_rejects_bad_pair(self) -> None:
        with pytest.raises(ValidationError):
            cli.parse_call_arguments(["noequals"], None)

    def test_rejects_non_object_json(self) -> None:
        with pytest.raises(ValidationError):
            cli.parse_call_arguments([], "[1, 2]")


class TestMain:
    def test_version(self, capsys: pytest.CaptureFixture) -> None:
        assert cli.main(["version"]) == 0
        assert capsys.readouterr().out.startswith("switchyard ")

    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture) -> None:
        assert cli.main([]) == 0
        assert "usage" in capsys.readouterr().out

    def test_missing_config_is_config_error(self, tmp_path: Path) -> None:
        code = cli.main(["--config", str(tmp_path / "missing.json"), "tools"])
        assert code == ExitCode.CONFIG_ERROR

    def test_tools_with_no_providers(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        config = write_config(tmp_path, {"server": {"logLevel": "error"}})
        assert cli.main(["--config", str(config), "tools"]) == 0
        assert json.loads(capsys.readouterr().out) == []

    def test_call_unknown_provider(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        config = write_config(tmp_path, {"server": {"logLevel": "error"}})
        code = cli.main(["--config", str(config), "call", "use_ollama", "--arg", "prompt=hi"])
        assert code == ExitCode.RUNTIME_ERROR
        assert "Provider not found: ollama" in capsys.readouterr().err

    def test_call_unknown_tool(self, tmp_path: Path) -> None:
        config = write_config(tmp_path, {"server": {"logLevel": "error"}})
        code = cli.main(["--config", str(config), "call", "frobnicate"])
        assert code == ExitCode.USAGE_ERROR

    def test_check_without_providers(self, tmp_path: Path) -> None:
        config = write_config(tmp_path, {"server": {"logLevel": "error"}})
        assert cli.main(["--config", str(config), "check"]) == ExitCode.CONFIG_ERROR

    def test_history_show_and_clear(self, tmp_path: Path, capsys: pytest.CaptureFixture) -> None:
        history_file = tmp_path / "history.jsonl"
        entry = HistoryEntry.create(provider="ollama", model="llama3", prompt="hi", text="yo")
        history_file.write_text(json.dumps(entry.to_dict()) + "\n")
        config = write_config(
            tmp_path,
            {"server": {"logLevel": "error", "historyFile": str(history_file)}},
        )

        assert cli.main(["--config", str(config), "history"]) == 0
        assert "ollama/llama3" in capsys.readouterr().out

        assert cli.main(["--config", str(config), "history", "--clear"]) == 0
        assert history_file.read_text() == ""

    def test_history_requires_file(self, tmp_path: Path) -> None:
        config = write_config(tmp_path, {"server": {"logLevel": "error"}})
        assert cli.main(["--config", str(config), "history"]) == ExitCode.CONFIG_ERROR
