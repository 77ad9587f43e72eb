"""Structural checks on generated text, and the single-retry policy."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from narrative_engine.llm import LLMError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GenerationError(ValueError):
    """Generated output is malformed or missing expected fields."""

    def __init__(self, message: str, raw: str = "") -> None:
        super().__init__(message)
        self.raw = raw


class EmptyResultError(GenerationError):
    """Generated output parsed fine but carries nothing usable."""


def parse_json_output(text: str) -> dict[str, Any]:
    """Parse a JSON object from LLM output, stripping markdown fences.

    Models often wrap the object in prose; everything outside the outermost
    braces is ignored.
    """
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)
    start, end = cleaned.find("{"), cleaned.rfind("}")
    if start == -1 or end < start:
        logger.warning("Generated output has no JSON object: %r", text)
        raise GenerationError("Generated output has no JSON object", raw=text)
    try:
        data = json.loads(cleaned[start:end + 1])
    except json.JSONDecodeError as e:
        logger.warning("Generated output is not valid JSON (%s): %r", e, text)
        raise GenerationError(f"Generated output is not valid JSON: {e}", raw=text) from e
    if not isinstance(data, dict):
        raise GenerationError("Generated output must be a JSON object", raw=text)
    return data


def require_text(data: dict[str, Any], field: str, raw: str = "") -> str:
    value = data.get(field)
    if not isinstance(value, str):
        raise GenerationError(f"Missing or non-string field {field!r}", raw=raw)
    if not value.strip():
        raise EmptyResultError(f"Field {field!r} is empty", raw=raw)
    return value.strip()


RETRYABLE = (LLMError, GenerationError)


async def retry_once(
    call: Callable[[], Awaitable[T]], *, delay: float = 1.0, what: str = "request"
) -> T:
    """Run `call`, retrying exactly once after `delay` seconds on a retryable fault.

    The second failure propagates to the caller.
    """
    try:
        return await call()
    except RETRYABLE as e:
        logger.warning("%s failed (%s), retrying once in %.1fs", what, e, delay)
        log_raw_output(what, e)
    await asyncio.sleep(delay)
    return await call()


def log_raw_output(what: str, error: BaseException) -> None:
    """Log the generated text behind a GenerationError so bad output can be diagnosed."""
    if isinstance(error, GenerationError) and error.raw:
        logger.warning("%s raw output: %r", what, error.raw)
