"""
ClaudeModelClient — the assistant's language-model client with tool-use support.

Multi-key round-robin: supports multiple API keys. Each request picks the
next key in rotation; a rate-limited request is retried once on the next key.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from typing import Any, Optional

import anthropic

from buddyup.core.errors import GatewayError

logger = logging.getLogger(__name__)

RATE_LIMIT_BACKOFF_S = 2.0


class ClaudeModelClient:
    """ModelClient implementation backed by the Anthropic Messages API."""

    def __init__(
        self,
        api_key: str | list[str],
        model: str = "claude-sonnet-4-5-20250929",
        max_tokens: int = 1024,
        base_url: str | None = None,
    ):
        keys = api_key if isinstance(api_key, list) else [api_key]
        if not keys:
            raise ValueError("ClaudeModelClient needs at least one API key")
        client_kwargs: dict[str, Any] = {}
        if base_url:
            client_kwargs["base_url"] = base_url

        self._clients = [
            anthropic.AsyncAnthropic(api_key=k, **client_kwargs)
            for k in keys
        ]
        self._cycle = itertools.cycle(range(len(self._clients)))
        self._model = model
        self._max_tokens = max_tokens

        logger.info(
            "ClaudeModelClient: %d key(s), model=%s, base_url=%s",
            len(keys), model, base_url or "default",
        )

    def _next_client(self) -> tuple[int, anthropic.AsyncAnthropic]:
        idx = next(self._cycle)
        return idx, self._clients[idx]

    def _key_label(self, idx: int) -> str:
        """Return safe label for logging (key index + last 4 chars)."""
        key = self._clients[idx].api_key or ""
        return f"key[{idx}]...{key[-4:]}"

    async def chat(
        self,
        messages: list[dict[str, Any]],
        system_prompt: Optional[str] = None,
        tools: Optional[list[dict[str, Any]]] = None,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "messages": messages,
        }
        if system_prompt:
            kwargs["system"] = system_prompt
        if tools:
            kwargs["tools"] = tools

        idx, client = self._next_client()
        try:
            return await self._create(idx, client, kwargs)
        except anthropic.RateLimitError as e:
            logger.warning("Model call RATE_LIMITED | %s | %s — switching key",
                           self._key_label(idx), e)
            await asyncio.sleep(RATE_LIMIT_BACKOFF_S)
            idx2, client2 = self._next_client()
            logger.info("Model call RETRY | %s", self._key_label(idx2))
            try:
                return await self._create(idx2, client2, kwargs)
            except anthropic.APIError as retry_e:
                raise GatewayError(f"Model call failed after retry: {retry_e}") from retry_e
        except anthropic.APIError as e:
            raise GatewayError(f"Model call failed: {e}") from e

    async def _create(
        self,
        idx: int,
        client: anthropic.AsyncAnthropic,
        kwargs: dict[str, Any],
    ) -> dict[str, Any]:
        key_label = self._key_label(idx)
        tool_count = len(kwargs.get("tools") or [])
        logger.info("Model call START | %s | model=%s | messages=%d | tools=%d",
                    key_label, self._model, len(kwargs["messages"]), tool_count)
        t0 = time.monotonic()
        try:
            response = await client.messages.create(**kwargs)
        except anthropic.APIError as e:
            logger.error("Model call FAIL  | %s | %.0fms | %s",
                         key_label, (time.monotonic() - t0) * 1000, e)
            raise

        parsed = self._parse_response(response)
        tc = len(parsed["tool_calls"]) if parsed.get("tool_calls") else 0
        text_len = len(parsed["content"]) if parsed.get("content") else 0
        logger.info("Model call OK    | %s | %.0fms | stop=%s | tool_calls=%d | text_len=%d",
                    key_label, (time.monotonic() - t0) * 1000,
                    parsed.get("stop_reason"), tc, text_len)
        return parsed

    def _parse_response(self, response: Any) -> dict[str, Any]:
        """Parse Anthropic API response into the ModelClient format."""
        text_parts: list[str] = []
        tool_calls: list[dict[str, Any]] = []

        for block in response.content:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                tool_calls.append({
                    "name": block.name,
                    "arguments": block.input,
                    "id": block.id,
                })

        content = "".join(text_parts) if text_parts else None

        return {
            "content": content,
            "tool_calls": tool_calls if tool_calls else None,
            "stop_reason": response.stop_reason,
        }
