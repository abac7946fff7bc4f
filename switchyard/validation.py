"""Input validation shared by every provider.

All checks are pure: no I/O, no provider state. Each failed check raises
ValidationError naming the offending field and constraint. Model membership
is checked against the provider's live model list by the caller, which owns
that (dynamic) set.
"""

import math
from collections.abc import Iterable
from typing import Any
from urllib.parse import urlparse

from .errors import ValidationError

DEFAULT_MAX_PROMPT_LENGTH = 100000
DEFAULT_MAX_SYSTEM_LENGTH = 10000
MIN_TEMPERATURE = 0.0
MAX_TEMPERATURE = 2.0
MIN_MAX_TOKENS = 1
MAX_MAX_TOKENS = 1000000


def validate_prompt(prompt: Any, max_length: int = DEFAULT_MAX_PROMPT_LENGTH) -> str:
    """Validate the user prompt.

    Args:
        prompt: Caller-supplied prompt
        max_length: Maximum number of characters accepted

    Returns:
        The prompt, unchanged

    Raises:
        ValidationError: If the prompt is not a non-empty string within bounds
            or contains a null byte
    """
    if not isinstance(prompt, str):
        raise ValidationError("Prompt must be a string")
    if len(prompt) == 0:
        raise ValidationError("Prompt cannot be empty")
    if len(prompt) > max_length:
        raise ValidationError(f"Prompt exceeds maximum length of {max_length} characters")
    if "\0" in prompt:
        raise ValidationError("Prompt contains null bytes")
    return prompt


def validate_system(system: Any, max_length: int = DEFAULT_MAX_SYSTEM_LENGTH) -> str | None:
    """Validate an optional system prompt. None passes through."""
    if system is None:
        return None
    if not isinstance(system, str):
        raise ValidationError("System prompt must be a string")
    if len(system) > max_length:
        raise ValidationError(
            f"System prompt exceeds maximum length of {max_length} characters"
        )
    if "\0" in system:
        raise ValidationError("System prompt contains null bytes")
    return system


def validate_temperature(temperature: Any) -> float | None:
    """Validate an optional temperature in the closed range [0, 2]."""
    if temperature is None:
        return None
    if isinstance(temperature, bool) or not isinstance(temperature, (int, float)):
        raise ValidationError("Temperature must be a number")
    if isinstance(temperature, float) and not math.isfinite(temperature):
        raise ValidationError("Temperature must be a finite number")
    if temperature < MIN_TEMPERATURE or temperature > MAX_TEMPERATURE:
        raise ValidationError(
            f"Temperature must be between {MIN_TEMPERATURE:g} and {MAX_TEMPERATURE:g}"
        )
    return float(temperature)


def validate_max_tokens(max_tokens: Any) -> int | None:
    """Validate an optional output-token limit; non-integers are floored."""
    if max_tokens is None:
        return None
    if isinstance(max_tokens, bool) or not isinstance(max_tokens, (int, float)):
        raise ValidationError("Max tokens must be a number")
    if isinstance(max_tokens, float) and not math.isfinite(max_tokens):
        raise ValidationError("Max tokens must be a finite number")
    if max_tokens < MIN_MAX_TOKENS or max_tokens > MAX_MAX_TOKENS:
        raise ValidationError(
            f"Max tokens must be between {MIN_MAX_TOKENS:,} and {MAX_MAX_TOKENS:,}"
        )
    return math.floor(max_tokens)


def validate_model(model: Any, allowed_models: Iterable[str]) -> str:
    """Validate a model identifier against a provider's current model list."""
    if not isinstance(model, str):
        raise ValidationError("Model must be a string")
    if len(model) == 0:
        raise ValidationError("Model name cannot be empty")
    allowed = list(allowed_models)
    if model not in allowed:
        raise ValidationError(f"Invalid model: {model}. Allowed models: {', '.join(allowed)}")
    return model


def validate_url(url: Any) -> str:
    """Validate an http(s) URL."""
    if not isinstance(url, str):
        raise ValidationError("URL must be a string")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        raise ValidationError("URL must use HTTP or HTTPS protocol")
    if not parsed.netloc:
        raise ValidationError(f"Invalid URL: {url}")
    return url
