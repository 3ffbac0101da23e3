"""Integration helpers for the OpenRouter chat completions API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import Settings
from ..errors import UpstreamServiceError
from ..utils import parse_structured_payload

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are Learning Lanes, an assistant that helps parents curate safe, "
    "educational video lanes for their children. When asked for JSON you "
    "respond with a single JSON object and never include commentary outside it."
)


class OpenRouterClient:
    """Client responsible for talking to OpenRouter."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient):
        self._settings = settings
        self._client = http_client

    async def generate_text(
        self,
        prompt: str,
        *,
        temperature: float = 0.7,
        max_tokens: int = 2_048,
        system_prompt: str | None = None,
    ) -> str:
        """Return a free-form completion for ``prompt``."""

        return await self._complete(
            prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            system_prompt=system_prompt,
        )

    async def generate_structured(
        self,
        prompt: str,
        *,
        temperature: float = 0.3,
        max_tokens: int = 16_384,
        system_prompt: str | None = None,
    ) -> Any:
        """Return the parsed JSON payload of a completion.

        Raises ``GenerationParseError`` when neither the raw text nor the
        contents of a fenced code block parse as JSON.
        """

        content = await self._complete(
            prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            system_prompt=system_prompt,
            json_mode=True,
        )
        return parse_structured_payload(content)

    async def _complete(
        self,
        prompt: str,
        *,
        temperature: float,
        max_tokens: int,
        system_prompt: str | None,
        json_mode: bool = False,
    ) -> str:
        api_key = self._settings.openrouter_api_key
        if not api_key:
            raise UpstreamServiceError(
                "OpenRouter API key is required to generate lanes", status_code=503
            )

        payload: dict[str, Any] = {
            "model": self._settings.openrouter_model,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "messages": [
                {"role": "system", "content": system_prompt or SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
        }
        if json_mode:
            payload["response_format"] = {"type": "json_object"}

        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "X-Title": self._settings.app_name,
        }

        try:
            response = await self._client.post(
                "/chat/completions", json=payload, headers=headers
            )
        except httpx.HTTPError as exc:
            raise UpstreamServiceError(
                f"Generation request failed: {exc.__class__.__name__}"
            ) from exc
        if response.status_code >= 400:
            logger.error(
                "Generation request failed (%s): %s", response.status_code, response.text
            )
            raise UpstreamServiceError(
                f"Generation service returned {response.status_code}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamServiceError("Generation service returned invalid JSON") from exc
        choices = data.get("choices", []) if isinstance(data, dict) else []
        if not choices:
            raise UpstreamServiceError("Model returned no choices")
        choice = choices[0]
        if not isinstance(choice, dict):
            raise UpstreamServiceError("Model returned a malformed choice")
        message = choice.get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str):
            raise UpstreamServiceError("Model response missing content")
        return content
