"""Text-completion client shared by the phase generators and the critic.

Generators call an LLM as

    await llm(stage, prompt) -> str

where `stage` names the phase making the call ("observation",
"focus_observation", "thinking", "outcome_narration"). It is only used for
logging.

    HttpLLM  completion over HTTP, KoboldCpp or OpenAI-compatible wire format.
    EchoLLM  hands the prompt back; wiring smoke tests without a model.

`Connection` and `post_json` carry the HTTP details (base URL, bearer token,
timeout, error mapping) for both HttpLLM and critic.HttpCritic.
"""

from __future__ import annotations

import logging
from typing import Any, Literal, Protocol

import httpx
from pydantic import BaseModel

logger = logging.getLogger(__name__)

ProviderFormat = Literal["koboldcpp", "openai"]


class LLMError(RuntimeError):
    """The completion backend was unreachable, failed, or replied in an unknown shape."""


class LLM(Protocol):
    async def __call__(self, stage: str, prompt: str) -> str: ...


class Connection(BaseModel):
    """Where a completion backend lives and how to authenticate against it."""

    provider_url: str
    api_key: str = ""
    model: str = ""
    timeout: float = 120.0

    @property
    def base_url(self) -> str:
        return self.provider_url.rstrip("/")

    def headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers


async def post_json(connection: Connection, path: str, body: dict[str, Any], what: str) -> dict:
    """POST `body` to `path` on the connection and return the decoded reply.

    Transport failures and HTTP error statuses become LLMError; `what` names
    the backend in the message ("LLM backend", "critic backend").
    """
    url = f"{connection.base_url}{path}"
    try:
        async with httpx.AsyncClient(timeout=connection.timeout) as client:
            resp = await client.post(url, json=body, headers=connection.headers())
            resp.raise_for_status()
    except httpx.ConnectError as e:
        raise LLMError(f"Cannot connect to {what} at {connection.base_url}") from e
    except httpx.TimeoutException as e:
        raise LLMError(f"{what} timed out after {connection.timeout}s") from e
    except httpx.HTTPStatusError as e:
        raise LLMError(f"{what} returned HTTP {e.response.status_code}") from e
    return resp.json()


class HttpLLM:
    """Completion client for the configured wire format.

        koboldcpp  POST /api/v1/generate  {"prompt", "max_length"}  -> results[0].text
        openai     POST /v1/completions   {"prompt", "max_tokens", "model"?}  -> choices[0].text

    `max_tokens` is the generation budget per call; 600 leaves room for the
    thinking phase's reasoning plus five actions.
    """

    def __init__(
        self,
        provider_url: str,
        api_key: str = "",
        provider_format: ProviderFormat = "koboldcpp",
        model: str = "",
        timeout: float = 120.0,
        max_tokens: int = 600,
    ) -> None:
        self.connection = Connection(
            provider_url=provider_url, api_key=api_key, model=model, timeout=timeout,
        )
        self.provider_format = provider_format
        self.max_tokens = max_tokens

    @classmethod
    def from_config(cls, section: dict[str, Any]) -> HttpLLM:
        """Build from the `llm_connection` config section."""
        return cls(
            provider_url=section["provider_url"],
            api_key=section.get("api_key", ""),
            provider_format=section.get("provider_format", "koboldcpp"),
            model=section.get("model", ""),
            timeout=float(section.get("timeout", 120.0)),
        )

    def _request(self, prompt: str) -> tuple[str, dict[str, Any]]:
        if self.provider_format == "openai":
            body: dict[str, Any] = {"prompt": prompt, "max_tokens": self.max_tokens}
            if self.connection.model:
                body["model"] = self.connection.model
            return "/v1/completions", body
        return "/api/v1/generate", {"prompt": prompt, "max_length": self.max_tokens}

    def _completion_text(self, data: dict) -> str:
        key = "choices" if self.provider_format == "openai" else "results"
        entries = data.get(key)
        if not entries or "text" not in entries[0]:
            raise LLMError(f"Unexpected response format from {self.provider_format} backend")
        return entries[0]["text"]

    async def __call__(self, stage: str, prompt: str) -> str:
        path, body = self._request(prompt)
        logger.debug("%s: %d prompt chars -> %s%s", stage, len(prompt), self.connection.base_url, path)
        data = await post_json(self.connection, path, body, "LLM backend")
        text = self._completion_text(data)
        logger.debug("%s: %d completion chars", stage, len(text))
        return text


class EchoLLM:
    """Replies with the prompt itself; structured phases will reject it as non-JSON."""

    async def __call__(self, stage: str, prompt: str) -> str:
        logger.debug("echo %s (%d chars)", stage, len(prompt))
        return prompt
