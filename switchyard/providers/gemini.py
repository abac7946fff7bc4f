"""Google Gemini provider.

Drives the Gemini CLI as a subprocess. The prompt is written to stdin and
the command line is passed as an argument list, never through a shell.
"""

import logging
import os
import subprocess

import anyio

from ..config import ProviderConfig
from ..errors import ProviderError
from .base import Capabilities, Provider, ProviderRequest, ProviderResponse

logger = logging.getLogger(__name__)

DEFAULT_CLI = "gemini"
VERSION_TIMEOUT_MS = 5000
MAX_OUTPUT_BYTES = 10 * 1024 * 1024

# The CLI has no model listing command.
KNOWN_MODELS = [
    "gemini-2.0-flash-exp",
    "gemini-1.5-pro",
    "gemini-1.5-flash",
    "gemini-1.0-pro",
]


class GeminiProvider(Provider):
    """Provider backed by the Gemini command line tool.

    The CLI has no system-prompt flag; a system prompt, if given, is
    prepended to the user prompt.
    """

    def __init__(self, config: ProviderConfig) -> None:
        super().__init__(config)
        self.cli_path = config.cli_path or DEFAULT_CLI
        self.default_model = config.default_model

    @property
    def name(self) -> str:
        return "gemini"

    @property
    def capabilities(self) -> Capabilities:
        return Capabilities(supports_images=True)

    async def list_models(self) -> list[str]:
        return KNOWN_MODELS + [a for a in self.config.models if a not in KNOWN_MODELS]

    async def execute(self, request: ProviderRequest) -> ProviderResponse:
        model = request.model or self.default_model
        if model:
            await self.check_model(model)

        prompt = f"{request.system}\n\n{request.prompt}" if request.system else request.prompt
        args = ["--model", model] if model else []

        with self.deadline():
            result = await self._run(args, prompt)

        if result.returncode != 0:
            detail = _decode(result.stderr) or _decode(result.stdout)
            raise ProviderError(
                f"Gemini generation failed: command exited with code {result.returncode}: {detail}",
                provider=self.name,
            )

        text = _decode(result.stdout).strip()
        if not text:
            raise ProviderError("Gemini returned empty response", provider=self.name)

        return ProviderResponse(text=text, model=model or KNOWN_MODELS[0])

    async def _run(self, args: list[str], stdin: str | None = None) -> subprocess.CompletedProcess:
        env = {**os.environ, **self.config.env}
        try:
            result = await anyio.run_process(
                [self.cli_path, *args],
                input=stdin.encode("utf-8") if stdin is not None else None,
                check=False,
                env=env,
            )
        except OSError as e:
            raise ProviderError(
                f"Failed to execute command {self.cli_path}: {e}", provider=self.name
            ) from e

        if len(result.stdout) > MAX_OUTPUT_BYTES or len(result.stderr) > MAX_OUTPUT_BYTES:
            raise ProviderError(
                f"Output exceeded maximum buffer size of {MAX_OUTPUT_BYTES} bytes",
                provider=self.name,
            )
        return result

    async def validate_config(self) -> bool:
        """Check that the CLI can be executed."""
        try:
            with self.deadline(VERSION_TIMEOUT_MS, "version check"):
                result = await self._run(["--version"])
        except Exception as e:
            logger.debug("Gemini probe failed: %s", e)
            return False
        return result.returncode == 0


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")
