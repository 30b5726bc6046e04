"""OpenAI-compatible chat-completions client used for low-confidence chat turns."""

from __future__ import annotations

import logging
import re
from collections.abc import Awaitable, Callable
from typing import Any, cast, TypeAlias

import httpx

from launchpad.models.chat import ActionType, ChatAction, ChatContext, ChatResponse, ResponseSource

logger = logging.getLogger(__name__)

JSONObject: TypeAlias = dict[str, Any]
ChatTransport: TypeAlias = Callable[[str, dict[str, str], JSONObject, float], Awaitable[JSONObject]]

DEFAULT_API_URL = "https://api.groq.com/openai/v1/chat/completions"
DEFAULT_MODEL = "llama-3.3-70b-versatile"
PLACEHOLDER_API_KEY = "your-groq-api-key-here"
LLM_CONFIDENCE = 0.8
RECENT_LOG_COUNT = 3
SYSTEM_PROMPT = (
    "You are a helpful setup assistant for JavaScript projects. "
    "Be concise and actionable. Provide specific commands when possible."
)

_COMMAND_PATTERN = re.compile(r"`([^`]+)`|npm (install|run|start|build)")


class LLMTransportError(RuntimeError):
    """A chat-completions request failed before a usable payload arrived."""


async def post_json(
    url: str,
    headers: dict[str, str],
    body: JSONObject,
    timeout_seconds: float,
) -> JSONObject:
    """POST a JSON body and return the decoded object, raising `LLMTransportError`."""
    try:
        async with httpx.AsyncClient(timeout=timeout_seconds) as client:
            response = await client.post(url, headers=headers, json=body)
        response.raise_for_status()
    except httpx.TimeoutException as exc:
        msg = f"request timed out after {timeout_seconds}s"
        raise LLMTransportError(msg) from exc
    except httpx.HTTPStatusError as exc:
        msg = f"http status {exc.response.status_code}"
        raise LLMTransportError(msg) from exc
    except httpx.HTTPError as exc:
        raise LLMTransportError(str(exc)) from exc

    try:
        payload = response.json()
    except ValueError as exc:
        msg = "invalid JSON response"
        raise LLMTransportError(msg) from exc
    if not isinstance(payload, dict):
        msg = "invalid JSON response"
        raise LLMTransportError(msg)
    return cast(JSONObject, payload)


def build_messages(text: str, context: ChatContext) -> list[dict[str, str]]:
    """System prompt plus the user text prefixed by a condensed context summary."""
    parts: list[str] = []
    if context.project_name is not None:
        parts.append(f"Project: {context.project_name}")
    if context.analysis is not None:
        parts.append(f"Type: {context.analysis.kind.value}")
        parts.append(f"Stack: {', '.join(context.analysis.stack)}")
    parts.append(f"Status: {context.setup_status.value}")

    recent = context.logs[-RECENT_LOG_COUNT:]
    if recent:
        parts.append("\nRecent logs:")
        parts.extend(f"- {entry.type.value}: {entry.message}" for entry in recent)

    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": "\n".join(parts) + f"\n\nUser: {text}"},
    ]


def parse_response(content: str) -> ChatResponse | None:
    cleaned = content.strip()
    if not cleaned:
        return None
    actions = [
        ChatAction(
            type=ActionType.SUGGESTION,
            payload={"command": match.group(1) or f"npm {match.group(2)}"},
        )
        for match in _COMMAND_PATTERN.finditer(cleaned)
    ]
    return ChatResponse(
        message=cleaned,
        actions=actions,
        confidence=LLM_CONFIDENCE,
        source=ResponseSource.LLM,
    )


class LLMClient:
    """Chat-completions backend with an explicit availability flag.

    `query` answers only after `check_availability` has succeeded once.
    """

    def __init__(
        self,
        api_key: str,
        *,
        api_url: str = DEFAULT_API_URL,
        model: str = DEFAULT_MODEL,
        timeout_seconds: float = 15.0,
        probe_timeout_seconds: float = 5.0,
        max_tokens: int = 500,
        temperature: float = 0.7,
        transport: ChatTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.available = False
        self._timeout_seconds = timeout_seconds
        self._probe_timeout_seconds = probe_timeout_seconds
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._transport = transport or post_json

    @property
    def configured(self) -> bool:
        return bool(self.api_key) and self.api_key != PLACEHOLDER_API_KEY

    async def check_availability(self) -> bool:
        if not self.configured:
            self.available = False
            return False
        body: JSONObject = {
            "model": self.model,
            "messages": [{"role": "user", "content": "test"}],
            "max_tokens": 10,
        }
        try:
            await self._transport(self.api_url, self._headers(), body, self._probe_timeout_seconds)
        except LLMTransportError as exc:
            logger.info("Language model backend unavailable: %s", exc)
            self.available = False
            return False
        self.available = True
        return True

    async def query(self, text: str, context: ChatContext) -> ChatResponse | None:
        """Ask the backend; `None` on any transport or payload failure."""
        if not self.available:
            return None
        body: JSONObject = {
            "model": self.model,
            "messages": build_messages(text, context),
            "temperature": self._temperature,
            "max_tokens": self._max_tokens,
        }
        try:
            payload = await self._transport(
                self.api_url, self._headers(), body, self._timeout_seconds
            )
        except LLMTransportError as exc:
            logger.warning("Language model query failed: %s", exc)
            return None

        content = _first_choice_content(payload)
        if content is None:
            logger.warning("Language model response had no message content")
            return None
        return parse_response(content)

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }


def _first_choice_content(payload: JSONObject) -> str | None:
    choices = payload.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    message = first.get("message")
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    return content if isinstance(content, str) else None
