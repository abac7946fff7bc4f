"""CLI entry point for Switchyard."""

import argparse
import json
import logging
import sys

import anyio

from . import ExitCode, SwitchyardError, __version__
from .config import Config, ServerConfig, load_config
from .dispatch import Dispatcher
from .errors import ValidationError
from .history import HistoryLedger
from .providers import build_registry
from .server import ToolServer

logger = logging.getLogger("switchyard")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="switchyard",
        description="Switchyard - route tool calls to local and hosted LLM providers",
    )
    parser.add_argument("--version", action="version", version=f"switchyard {__version__}")
    parser.add_argument("--config", "-c", help="Path to config file")
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("version", help="Show version")
    subparsers.add_parser("serve", help="Serve tools over stdio")
    subparsers.add_parser("tools", help="Print the generated tool descriptors")
    subparsers.add_parser("check", help="Probe every enabled provider")

    # call
    call_parser = subparsers.add_parser("call", help="Dispatch a single tool call")
    call_parser.add_argument("tool", help="Tool name, e.g. use_ollama")
    call_parser.add_argument(
        "--arg",
        "-a",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Tool argument (repeatable)",
    )
    call_parser.add_argument("--json", dest="json_args", help="Tool arguments as a JSON object")

    # history
    history_parser = subparsers.add_parser("history", help="Show or clear the request history")
    history_parser.add_argument(
        "--limit", "-n", type=int, default=10, help="Entries to show (default: 10)"
    )
    history_parser.add_argument("--clear", action="store_true", help="Clear the history")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    try:
        if args.command == "version":
            return cmd_version()

        config = load_config(args.config)
        configure_logging(config.server)
        logger.debug("Loaded configuration: %s", json.dumps(config.redacted()))

        if args.command == "serve":
            return cmd_serve(config)
        elif args.command == "tools":
            return cmd_tools(config)
        elif args.command == "call":
            return cmd_call(config, args)
        elif args.command == "check":
            return cmd_check(config)
        elif args.command == "history":
            return cmd_history(config, args)
    except SwitchyardError as e:
        print(f"Error: {e}", file=sys.stderr)
        return e.exit_code
    except KeyboardInterrupt:
        return ExitCode.SUCCESS
    except Exception as e:
        print(f"Unexpected error: {e}", file=sys.stderr)
        return ExitCode.RUNTIME_ERROR

    return 0


def configure_logging(server: ServerConfig) -> None:
    """Send logs to stderr (and optionally a file); stdout carries the protocol."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if server.log_file:
        handlers.append(logging.FileHandler(server.log_file, encoding="utf-8"))
    logging.basicConfig(
        level=_LEVELS.get(server.log_level, logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def build_dispatcher(config: Config) -> Dispatcher:
    """Wire ledger, registry and dispatcher from configuration."""
    history = HistoryLedger.from_config(config.server)
    registry = build_registry(config)
    return Dispatcher(registry, history, config.security)


def cmd_version() -> int:
    """Show version."""
    print(f"switchyard {__version__}")
    return 0


def cmd_serve(config: Config) -> int:
    """Probe providers, then serve until stdin closes."""
    dispatcher = build_dispatcher(config)
    registry = dispatcher.registry

    async def _serve() -> None:
        results = await registry.initialize_all()
        ready = sorted(name for name, ok in results.items() if ok)
        logger.info(
            "%d/%d providers ready: %s",
            len(ready),
            len(results),
            ", ".join(ready) or "none",
        )
        server = ToolServer(dispatcher, registry, config.server.name, config.server.version)
        await server.serve()

    anyio.run(_serve)
    return 0


def cmd_tools(config: Config) -> int:
    """Print tool descriptors as JSON."""
    registry = build_registry(config)
    tools = anyio.run(registry.generate_tools)
    print(json.dumps([tool.to_dict() for tool in tools], indent=2))
    return 0


def cmd_call(config: Config, args) -> int:
    """Dispatch one tool call and print its text."""
    arguments = parse_call_arguments(args.arg, args.json_args)
    dispatcher = build_dispatcher(config)
    result = anyio.run(dispatcher.call, args.tool, arguments)
    if result.is_error:
        print(result.text, file=sys.stderr)
        return ExitCode.RUNTIME_ERROR
    print(result.text)
    return 0


def parse_call_arguments(pairs: list[str], json_args: str | None) -> dict:
    """Merge --json and --arg values; --arg wins. Numeric values are decoded."""
    arguments: dict = {}
    if json_args:
        try:
            decoded = json.loads(json_args)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid --json arguments: {e}") from e
        if not isinstance(decoded, dict):
            raise ValidationError("--json arguments must be a JSON object")
        arguments.update(decoded)

    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValidationError(f"Invalid --arg {pair!r}, expected KEY=VALUE")
        arguments[key] = _coerce(value)
    return arguments


def _coerce(value: str):
    try:
        number = json.loads(value)
    except json.JSONDecodeError:
        return value
    return number if isinstance(number, (int, float)) and not isinstance(number, bool) else value


def cmd_check(config: Config) -> int:
    """Print name: ok|failed for every enabled provider."""
    registry = build_registry(config)
    results = anyio.run(registry.initialize_all)
    if not results:
        print("No providers enabled")
        return ExitCode.CONFIG_ERROR
    for name, ok in results.items():
        print(f"{name}: {'ok' if ok else 'failed'}")
    return 0 if all(results.values()) else ExitCode.PROVIDER_ERROR


def cmd_history(config: Config, args) -> int:
    """Show or clear the persisted ledger."""
    if not config.server.history_file:
        print("History file not configured (server.historyFile)", file=sys.stderr)
        return ExitCode.CONFIG_ERROR

    history = HistoryLedger(
        enabled=True,
        max_entries=config.server.history_max_entries,
        history_file=config.server.history_file,
    )
    if args.clear:
        anyio.run(history.clear)
        print("History cleared")
        return 0

    for entry in history.recent(args.limit):
        status = f"error: {entry.error}" if entry.error else f"{entry.response.duration}ms"
        print(f"{entry.timestamp}  {entry.provider}/{entry.model}  {status}")
        print(f"  {_shorten(entry.request.prompt)}")
    return 0


def _shorten(text: str, limit: int = 80) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else text[: limit - 3] + "..."


if __name__ == "__main__":
    sys.exit(main())
