"""Request/response history ledger.

Every invoke-class tool call produces one HistoryEntry. Entries are kept in a
bounded in-memory buffer and, when a history file is configured, appended to
it as JSON Lines. On startup the buffer is rehydrated from the tail of that
file. Persistence failures are logged, never raised to the dispatcher.
"""

import json
import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import anyio

from .config import ServerConfig
from .providers.base import Usage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestSnapshot:
    """The persisted part of a request: prompt and system prompt only."""

    prompt: str
    system: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"prompt": self.prompt}
        if self.system is not None:
            data["system"] = self.system
        return data


@dataclass(frozen=True)
class ResponseSnapshot:
    """The persisted part of a response."""

    text: str
    duration: int
    usage: Usage | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"text": self.text, "duration": self.duration}
        if self.usage is not None:
            data["usage"] = self.usage.to_dict()
        return data


@dataclass(frozen=True)
class HistoryEntry:
    """Immutable record of one invoke call.

    Exactly one of `response` and `error` is set.
    """

    timestamp: str
    provider: str
    model: str
    request: RequestSnapshot
    response: ResponseSnapshot | None = None
    error: str | None = None

    def __post_init__(self) -> None:
        if (self.response is None) == (self.error is None):
            raise ValueError("HistoryEntry needs exactly one of response or error")

    @classmethod
    def create(
        cls,
        provider: str,
        model: str,
        prompt: str,
        system: str | None = None,
        text: str | None = None,
        usage: Usage | None = None,
        duration: int = 0,
        error: str | None = None,
    ) -> "HistoryEntry":
        """Build an entry stamped with the current time."""
        response = None
        if error is None:
            response = ResponseSnapshot(text=text or "", duration=duration, usage=usage)
        return cls(
            timestamp=datetime.now(UTC).isoformat(),
            provider=provider,
            model=model,
            request=RequestSnapshot(prompt=prompt, system=system),
            response=response,
            error=error,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the JSON-serializable persisted shape."""
        data: dict[str, Any] = {
            "timestamp": self.timestamp,
            "provider": self.provider,
            "model": self.model,
            "request": self.request.to_dict(),
        }
        if self.response is not None:
            data["response"] = self.response.to_dict()
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoryEntry":
        """Create from the persisted shape.

        Raises:
            KeyError, TypeError, ValueError: If the record is malformed
        """
        request = data["request"]
        response = data.get("response")
        return cls(
            timestamp=data["timestamp"],
            provider=data["provider"],
            model=data["model"],
            request=RequestSnapshot(prompt=request["prompt"], system=request.get("system")),
            response=(
                ResponseSnapshot(
                    text=response["text"],
                    duration=response["duration"],
                    usage=Usage.from_dict(response["usage"]) if response.get("usage") else None,
                )
                if response is not None
                else None
            ),
            error=data.get("error"),
        )


class HistoryLedger:
    """Bounded, append-only history of invoke calls."""

    def __init__(
        self,
        enabled: bool = False,
        max_entries: int = 1000,
        history_file: str | Path | None = None,
    ) -> None:
        self.enabled = enabled
        self.max_entries = max_entries
        self.history_file = Path(history_file) if history_file else None
        self._entries: list[HistoryEntry] = []

        if self.enabled and self.history_file:
            self._entries = self._load()

    @classmethod
    def from_config(cls, config: ServerConfig) -> "HistoryLedger":
        return cls(
            enabled=config.history_enabled,
            max_entries=config.history_max_entries,
            history_file=config.history_file,
        )

    def __len__(self) -> int:
        return len(self._entries)

    async def record(self, entry: HistoryEntry) -> None:
        """Append an entry to memory and, if configured, to the history file."""
        if not self.enabled:
            return

        self._entries.append(entry)
        if len(self._entries) > self.max_entries:
            del self._entries[: len(self._entries) - self.max_entries]

        if self.history_file:
            await self._append(entry)

    def recent(self, count: int = 10) -> list[HistoryEntry]:
        """Return up to `count` most recent entries, oldest first."""
        if count <= 0:
            return []
        return self._entries[-count:]

    def all(self) -> list[HistoryEntry]:
        return list(self._entries)

    async def clear(self) -> None:
        """Empty the buffer and truncate the history file."""
        self._entries = []
        if self.history_file:
            try:
                await anyio.Path(self.history_file).write_text("", encoding="utf-8")
            except OSError as e:
                logger.error("Failed to clear history file %s: %s", self.history_file, e)

    async def _append(self, entry: HistoryEntry) -> None:
        try:
            # Encode first; an unencodable entry must not touch the file.
            line = (json.dumps(entry.to_dict(), ensure_ascii=False) + "\n").encode("utf-8")
            await anyio.Path(self.history_file).parent.mkdir(parents=True, exist_ok=True)
            async with await anyio.open_file(self.history_file, "ab") as f:
                await f.write(line)
        except (OSError, UnicodeEncodeError) as e:
            logger.error("Failed to append to history file %s: %s", self.history_file, e)

    def _load(self) -> list[HistoryEntry]:
        """Read the tail of the history file, skipping corrupt lines."""
        try:
            content = self.history_file.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.error("Failed to load history file %s: %s", self.history_file, e)
            return []

        entries: list[HistoryEntry] = []
        skipped = 0
        for line in content.splitlines():
            if not line.strip():
                continue
            try:
                entries.append(HistoryEntry.from_dict(json.loads(line)))
            except (json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError):
                skipped += 1

        if skipped:
            logger.debug("Skipped %d corrupt history lines in %s", skipped, self.history_file)
        return entries[-self.max_entries :]
